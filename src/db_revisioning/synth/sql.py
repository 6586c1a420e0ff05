"""Statement building blocks with centralized MySQL quoting.

Every table and column name that ends up in a synthesized statement comes
from introspection and passes through ``quote_identifier``; every string
value passes through ``quote_literal``.  Synthesizers never format raw
names into SQL themselves.

Usage:
    from db_revisioning.synth.sql import column_list, equalities, quote_identifier

    column_list(["id", "status"], "NEW")
    # 'NEW.`id`, NEW.`status`'
    equalities(["id"], "t", "r")
    # '`t`.`id` = `r`.`id`'
"""

from collections.abc import Iterable
from dataclasses import dataclass

# Row references inside trigger bodies; never quoted
ROW_REFERENCES = frozenset({"NEW", "OLD"})


@dataclass
class Statement:
    """A synthesized statement ready for execution.

    Example:
        stmt = Statement(table="orders", summary="drop trigger", sql="DROP TRIGGER ...")
        stmt.to_sql()
        # 'DROP TRIGGER ...'
    """

    table: str
    summary: str
    sql: str

    def to_sql(self) -> str:
        """Return the SQL text."""
        return self.sql


def quote_identifier(name: str) -> str:
    """Quote a MySQL identifier with backticks.

    Example:
        >>> quote_identifier("order`s")
        '`order``s`'
    """
    return "`" + name.replace("`", "``") + "`"


def quote_literal(value: str | int | None) -> str:
    """Quote a value as a MySQL literal.

    Example:
        >>> quote_literal("Can't")
        "'Can''t'"
        >>> quote_literal(None)
        'NULL'
    """
    if value is None:
        return "NULL"
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, int):
        return str(value)
    escaped = str(value).replace("\\", "\\\\").replace("'", "''")
    return f"'{escaped}'"


def qualified(prefix: str | None, name: str) -> str:
    """Qualify a column with a row reference or table alias.

    ``NEW``/``OLD`` are emitted bare, aliases are quoted.

    Example:
        >>> qualified("NEW", "id")
        'NEW.`id`'
        >>> qualified("p", "id")
        '`p`.`id`'
    """
    if prefix is None:
        return quote_identifier(name)
    if prefix in ROW_REFERENCES:
        return f"{prefix}.{quote_identifier(name)}"
    return f"{quote_identifier(prefix)}.{quote_identifier(name)}"


def column_list(names: Iterable[str], prefix: str | None = None) -> str:
    """Comma-separated, quoted (optionally qualified) column list."""
    return ", ".join(qualified(prefix, n) for n in names)


def equalities(
    names: Iterable[str],
    left: str | None,
    right: str | None,
    separator: str = " AND ",
) -> str:
    """``left.col = right.col`` for each column, joined by *separator*.

    Example:
        >>> equalities(["a", "b"], None, "NEW", ", ")
        '`a` = NEW.`a`, `b` = NEW.`b`'
    """
    return separator.join(f"{qualified(left, n)} = {qualified(right, n)}" for n in names)


def null_safe_equalities(names: Iterable[str], left: str | None, right: str | None) -> str:
    """Like ``equalities`` but NULL matches NULL (``<=>``)."""
    return " AND ".join(f"{qualified(left, n)} <=> {qualified(right, n)}" for n in names)


def variable(name: str) -> str:
    """Local variable holding a fetched snapshot value inside a trigger.

    Example:
        >>> variable("status")
        '`var-status`'
    """
    return quote_identifier(f"var-{name}")


def session_variable(name: str) -> str:
    """User-defined session variable reference (e.g. ``@`auth_uid```)."""
    return "@" + quote_identifier(name)


def indent(lines: Iterable[str], depth: int = 1) -> str:
    """Join trigger body lines with two-space indentation per level."""
    pad = "  " * depth
    return "\n".join(f"{pad}{line}" if line else "" for line in lines)
