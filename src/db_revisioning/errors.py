"""Exception hierarchy for revisioning install/remove.

- ``SchemaError``: introspected structure cannot be revisioned (missing
  table, primary key or foreign key).  Non-fatal to a batch.
- ``StatementError``: a statement failed on the server.  Carries the
  engine's native error code and message.
- ``ImmutablePrimaryKeyError``: the before-update guard rejected a
  primary key change on a revisioned table.

Usage:
    from db_revisioning.errors import SchemaError, StatementError

    try:
        await client.execute(sql)
    except StatementError as e:
        print(e.code, e.message)
"""

from typing import Literal

SchemaErrorReason = Literal["missing_table", "missing_primary_key", "missing_foreign_key"]

# SQLSTATE raised by the primary key guard (integrity constraint violation)
IMMUTABLE_PK_SQLSTATE = "23000"

_IMMUTABLE_PK_MARKER = "because of revisioning"


class RevisioningError(Exception):
    """Base class for all revisioning errors."""

    pass


class SchemaError(RevisioningError):
    """Raised when a table's structure does not allow revisioning.

    Example:
        >>> err = SchemaError("orders", "missing_primary_key", "Table does not have a primary key")
        >>> str(err)
        "Unable to add revisioning to table 'orders': Table does not have a primary key"
    """

    def __init__(self, table: str, reason: SchemaErrorReason, message: str) -> None:
        self.table = table
        self.reason = reason
        self.message = message
        super().__init__(f"Unable to add revisioning to table '{table}': {message}")


class StatementError(RevisioningError):
    """Raised when the server rejects a statement.

    Args:
        code: Native MySQL error number (``None`` if the driver gave none).
        message: Native error message.
        statement: The SQL that failed.
    """

    def __init__(self, code: int | None, message: str, statement: str = "") -> None:
        self.code = code
        self.message = message
        self.statement = statement
        super().__init__(f"Query failed ({code}): {message}")


class ImmutablePrimaryKeyError(StatementError):
    """Raised when a primary key change hits the revisioning guard."""

    @staticmethod
    def message_for(table: str) -> str:
        """Fixed guard message for *table*, used inside trigger bodies."""
        return (
            f"Can't change the value of the primary key of table '{table}' "
            f"{_IMMUTABLE_PK_MARKER}"
        )

    @staticmethod
    def matches(message: str) -> bool:
        """True if a server message came from the guard.

        Matches both dialects: ``SIGNAL`` reports the message verbatim,
        the legacy form reports it inside an unknown-column error.
        """
        return "primary key of table" in message and _IMMUTABLE_PK_MARKER in message


def classify_statement_error(
    code: int | None, message: str, statement: str = ""
) -> StatementError:
    """Build the most specific ``StatementError`` for a server error.

    Example:
        >>> err = classify_statement_error(1644, ImmutablePrimaryKeyError.message_for("t"))
        >>> isinstance(err, ImmutablePrimaryKeyError)
        True
    """
    if ImmutablePrimaryKeyError.matches(message):
        return ImmutablePrimaryKeyError(code, message, statement)
    return StatementError(code, message, statement)
