"""MySQL schema introspection via information_schema.

This module queries the live database to extract what revisioning needs:
- Columns, declared types, nullability, auto_increment, character set,
  collation and comment
- Primary key columns (in key order)
- Unique constraints (name -> columns), excluding revisioning's own
- Foreign key from a child table to its parent

Runs over any ``DatabaseClient`` so the same connection is used for
introspection and statement execution.
"""

from collections import defaultdict

from db_revisioning.adapters.base import DatabaseClient
from db_revisioning.errors import SchemaError
from db_revisioning.schema.models import ChildLink, ColumnModel, RevisionNaming, TableModel


def _as_str(value: object) -> str:
    # information_schema text columns come back as bytes on some servers
    if isinstance(value, bytes):
        return value.decode()
    return str(value)


class SchemaIntrospector:
    """Introspects MySQL table structure for revisioning.

    Queries are scoped to the connection's current database
    (``DATABASE()``).

    Usage:
        introspector = SchemaIntrospector(client)

        # Root table (requires a primary key)
        orders = await introspector.describe("orders")

        # Child table (requires a foreign key to the parent)
        lines = await introspector.describe("order_lines", parent="orders")
    """

    def __init__(self, client: DatabaseClient, naming: RevisionNaming | None = None):
        """Initialize with a database client.

        Args:
            client: Executor used for the metadata queries.
            naming: Revisioning names; reserved columns and indexes are
                excluded from the returned model.
        """
        self._client = client
        self._naming = naming or RevisionNaming()

    async def describe(self, table: str, parent: str | None = None) -> TableModel:
        """Describe *table* as a root (``parent=None``) or as a child.

        Args:
            table: Table name in the current database.
            parent: Root table of the group when *table* is a child.

        Returns:
            TableModel with columns, keys and (for children) the link.

        Raises:
            SchemaError: ``missing_table`` if the table does not exist,
                ``missing_primary_key`` for a root without primary key,
                ``missing_foreign_key`` for a child without a foreign key
                to *parent*.
        """
        columns, reserved = await self._get_columns(table)
        if not columns and not reserved:
            raise SchemaError(table, "missing_table", "Table does not exist")

        primary_key = await self._get_primary_key(table)
        if parent is None and not primary_key:
            raise SchemaError(table, "missing_primary_key", "Table does not have a primary key")

        link = None
        if parent is not None:
            foreign_key, parent_key = await self.resolve_foreign_key(table, parent)
            link = ChildLink(parent=parent, foreign_key=foreign_key, parent_key=parent_key)

        autoincrement = next((c.name for c in columns if c.is_autoincrement), None)

        return TableModel(
            name=table,
            columns=columns,
            primary_key=primary_key,
            unique_indexes=await self._get_unique_indexes(table),
            autoincrement=autoincrement,
            reserved_columns=reserved,
            link=link,
        )

    async def resolve_foreign_key(self, table: str, parent: str) -> tuple[str, str]:
        """Find the foreign key from *table* to *parent*.

        For a composite or repeated reference the first column pair is used.

        Returns:
            ``(foreign_key_column, parent_key_column)``

        Raises:
            SchemaError: ``missing_foreign_key`` if no reference exists.
        """
        query = """
            SELECT
                column_name AS foreign_key,
                referenced_column_name AS parent_key
            FROM information_schema.key_column_usage
            WHERE table_schema = DATABASE()
              AND table_name = :table
              AND referenced_table_schema = DATABASE()
              AND referenced_table_name = :parent
              AND referenced_column_name IS NOT NULL
            ORDER BY constraint_name, ordinal_position
        """
        rows = await self._client.fetch(query, {"table": table, "parent": parent})
        if not rows:
            raise SchemaError(
                table,
                "missing_foreign_key",
                f"Table does not have a foreign key reference to parent table '{parent}'",
            )
        return _as_str(rows[0]["foreign_key"]), _as_str(rows[0]["parent_key"])

    async def has_revisioning(self, table: str) -> bool:
        """True if *table* carries revisioning columns."""
        _, reserved = await self._get_columns(table)
        return bool(reserved)

    async def has_revision_table(self, table: str) -> bool:
        """True if the revision table of *table* exists."""
        query = """
            SELECT table_name AS name
            FROM information_schema.tables
            WHERE table_schema = DATABASE()
              AND table_name = :table
        """
        rows = await self._client.fetch(query, {"table": self._naming.revision_table(table)})
        return bool(rows)

    async def _get_columns(self, table: str) -> tuple[list[ColumnModel], list[str]]:
        """Get columns in ordinal order, split into (regular, reserved)."""
        query = """
            SELECT
                column_name AS name,
                column_type AS column_type,
                is_nullable AS is_nullable,
                extra AS extra,
                character_set_name AS character_set,
                collation_name AS collation,
                column_comment AS comment
            FROM information_schema.columns
            WHERE table_schema = DATABASE()
              AND table_name = :table
            ORDER BY ordinal_position
        """
        rows = await self._client.fetch(query, {"table": table})

        columns: list[ColumnModel] = []
        reserved: list[str] = []
        for row in rows:
            name = _as_str(row["name"])
            if self._naming.is_reserved(name):
                reserved.append(name)
                continue
            columns.append(
                ColumnModel(
                    name=name,
                    column_type=_as_str(row["column_type"]),
                    is_nullable=(_as_str(row["is_nullable"]) == "YES"),
                    is_autoincrement="auto_increment" in _as_str(row["extra"] or "").lower(),
                    character_set=_as_str(row["character_set"]) if row["character_set"] else None,
                    collation=_as_str(row["collation"]) if row["collation"] else None,
                    comment=_as_str(row["comment"] or ""),
                )
            )
        return columns, reserved

    async def _get_primary_key(self, table: str) -> list[str]:
        """Get primary key columns in key order."""
        query = """
            SELECT k.column_name AS name
            FROM information_schema.table_constraints AS c
            JOIN information_schema.key_column_usage AS k
                ON c.table_schema = k.table_schema
                AND c.table_name = k.table_name
                AND c.constraint_name = k.constraint_name
            WHERE c.table_schema = DATABASE()
              AND c.table_name = :table
              AND c.constraint_type = 'PRIMARY KEY'
            ORDER BY k.ordinal_position
        """
        rows = await self._client.fetch(query, {"table": table})
        return [_as_str(row["name"]) for row in rows]

    async def _get_unique_indexes(self, table: str) -> dict[str, list[str]]:
        """Get unique constraints (excluding revisioning's own)."""
        query = """
            SELECT
                c.constraint_name AS constraint_name,
                k.column_name AS column_name
            FROM information_schema.table_constraints AS c
            JOIN information_schema.key_column_usage AS k
                ON c.table_schema = k.table_schema
                AND c.table_name = k.table_name
                AND c.constraint_name = k.constraint_name
            WHERE c.table_schema = DATABASE()
              AND c.table_name = :table
              AND c.constraint_type = 'UNIQUE'
            ORDER BY c.constraint_name, k.ordinal_position
        """
        rows = await self._client.fetch(query, {"table": table})

        indexes: dict[str, list[str]] = defaultdict(list)
        for row in rows:
            name = _as_str(row["constraint_name"])
            if self._naming.is_reserved(name):
                continue
            indexes[name].append(_as_str(row["column_name"]))
        return dict(indexes)
