"""How a trigger raises an application error.

MySQL 5.5+ has ``SIGNAL``.  Older servers have no way to raise an error
from a trigger, so the legacy form references a column named after the
message: the statement fails with "Unknown column '<message>'", which
aborts the write and still carries the message to the client.

The dialect is chosen explicitly by the caller (config or CLI flag);
it is never inferred from the server version.
"""

from enum import Enum

from db_revisioning.synth.sql import quote_identifier, quote_literal


class Dialect(str, Enum):
    """Error-signal form used inside synthesized triggers.

    Example:
        >>> Dialect("legacy") is Dialect.LEGACY_SIGNAL
        True
        >>> Dialect.STANDARD_SIGNAL.raise_error("23000", "Nope")
        "SIGNAL SQLSTATE '23000' SET MESSAGE_TEXT = 'Nope'"
    """

    STANDARD_SIGNAL = "standard"
    LEGACY_SIGNAL = "legacy"

    def raise_error(self, sqlstate: str, message: str) -> str:
        """Trigger statement that aborts the current write with *message*."""
        if self is Dialect.LEGACY_SIGNAL:
            return f"DO {quote_identifier(message)}"
        return f"SIGNAL SQLSTATE {quote_literal(sqlstate)} SET MESSAGE_TEXT = {quote_literal(message)}"
