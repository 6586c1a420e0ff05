"""Database client protocol definition.

Defines the ``DatabaseClient`` Protocol that the revisioning engine uses
as its statement executor.  All methods are ``async def``.

Usage:
    from db_revisioning.adapters.base import DatabaseClient

    async def do_work(client: DatabaseClient) -> None:
        rows = await client.fetch(
            "SELECT column_name FROM information_schema.columns WHERE table_name = :table",
            {"table": "orders"},
        )
        await client.execute("DROP TRIGGER IF EXISTS `orders-afterdelete`")
        await client.close()
"""

from typing import Any, Protocol


class DatabaseClient(Protocol):
    """Statement executor interface that all adapters must implement.

    All methods are async -- callers must ``await`` every operation.
    """

    async def fetch(self, sql: str, params: dict[str, Any] | None = None) -> list[dict]:
        """Run a query and return its rows.

        Args:
            sql: SQL query using ``:name`` placeholders.
            params: Optional dict of named parameters.

        Returns:
            List of dicts, one per row.  Empty list if no rows.

        Raises:
            StatementError: If the server rejects the query.

        Example:
            rows = await client.fetch(
                "SELECT * FROM orders WHERE id = :id", {"id": 1}
            )
        """
        ...

    async def execute(self, sql: str, params: dict[str, Any] | None = None) -> int:
        """Execute a statement (DDL, DML or trigger definition).

        Without *params* the statement is sent verbatim, so trigger bodies
        may contain any characters.

        Args:
            sql: SQL statement to execute.
            params: Optional dict of named parameters.

        Returns:
            Affected row count reported by the driver (``-1`` if unknown).

        Raises:
            StatementError: If the server rejects the statement, with the
                server's native code and message.

        Example:
            await client.execute("ALTER TABLE orders ADD `_revision` bigint unsigned NULL")
        """
        ...

    async def close(self) -> None:
        """Close the connection and clean up resources."""
        ...
