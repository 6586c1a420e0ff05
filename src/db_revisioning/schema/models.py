"""Pydantic models for introspected tables and revisioning groups.

This module contains the schema-domain models:
- Introspection models: ColumnModel, ChildLink, TableModel
- Group models: GroupSpec, Single, WithChildren, TableGroup
- Naming: RevisionNaming (physical names of every revisioning artifact)

All introspection models are frozen -- once built they are not mutated.
"""

import re
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field


# ============================================================================
# Naming
# ============================================================================


class RevisionNaming(BaseModel):
    """Physical names of revisioning tables, columns and triggers.

    Defaults produce ``_revision_<table>`` / ``_revhistory_<table>``
    tables and add ``_revision`` / ``_revision_comment`` to the root.

    Example:
        >>> naming = RevisionNaming()
        >>> naming.revision_table("orders")
        '_revision_orders'
        >>> naming.trigger_name("orders", "before", "update")
        'orders-beforeupdate'
    """

    model_config = ConfigDict(frozen=True)

    reserved_prefix: str = "_revision"
    revision_table_prefix: str = "_revision_"
    history_table_prefix: str = "_revhistory_"

    pointer: str = "_revision"
    comment: str = "_revision_comment"
    previous: str = "_revision_previous"
    action: str = "_revision_action"
    user_id: str = "_revision_user_id"
    timestamp: str = "_revision_timestamp"

    history_user_id: str = "_revhistory_user_id"
    history_timestamp: str = "_revhistory_timestamp"

    original_key_index: str = "org_primary"

    # Type of the user id read from the session variable
    user_id_type: str = "int(10) unsigned"

    def revision_table(self, table: str) -> str:
        return f"{self.revision_table_prefix}{table}"

    def history_table(self, table: str) -> str:
        return f"{self.history_table_prefix}{table}"

    def trigger_name(self, table: str, timing: str, event: str) -> str:
        return f"{table}-{timing.lower()}{event.lower()}"

    def is_reserved(self, name: str) -> bool:
        """True if *name* is a column or index owned by revisioning."""
        return name.startswith(self.reserved_prefix)


# ============================================================================
# Introspection Models
# ============================================================================


class ColumnModel(BaseModel):
    """A column of a live table.

    Example:
        >>> col = ColumnModel(name="id", column_type="int(10) unsigned", is_autoincrement=True)
        >>> col.is_nullable
        True
    """

    model_config = ConfigDict(frozen=True)

    name: str
    column_type: str
    is_nullable: bool = True
    is_autoincrement: bool = False
    character_set: str | None = None
    collation: str | None = None
    comment: str = ""


class ChildLink(BaseModel):
    """Foreign key from a child table to its group's root."""

    model_config = ConfigDict(frozen=True)

    parent: str
    foreign_key: str  # column in the child
    parent_key: str  # referenced column in the parent


class TableModel(BaseModel):
    """Structure of a table as needed for revisioning.

    ``columns`` never contains revisioning columns; those are listed in
    ``reserved_columns`` so already-revisioned tables can be detected.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    columns: list[ColumnModel] = Field(default_factory=list)
    primary_key: list[str] = Field(default_factory=list)
    unique_indexes: dict[str, list[str]] = Field(default_factory=dict)
    autoincrement: str | None = None
    reserved_columns: list[str] = Field(default_factory=list)
    link: ChildLink | None = None

    @property
    def column_names(self) -> list[str]:
        return [c.name for c in self.columns]

    @property
    def is_child(self) -> bool:
        return self.link is not None

    @property
    def is_revisioned(self) -> bool:
        return bool(self.reserved_columns)

    def column(self, name: str) -> ColumnModel:
        """Look up a column by name.

        Raises:
            KeyError: If the table has no such column.
        """
        for col in self.columns:
            if col.name == name:
                return col
        raise KeyError(f"Table '{self.name}' has no column '{name}'")


# ============================================================================
# Group Models
# ============================================================================


_TABLE_TOKEN = re.compile(r"[^,()\s]+")


class GroupSpec(BaseModel):
    """A requested revisioning group: one root and its ordered children.

    Example:
        >>> spec = GroupSpec.parse("orders(order_lines, order_notes)")
        >>> spec.root, spec.children
        ('orders', ['order_lines', 'order_notes'])
    """

    model_config = ConfigDict(frozen=True)

    root: str
    children: list[str] = Field(default_factory=list)

    @classmethod
    def parse(cls, text: str) -> "GroupSpec":
        """Parse ``root(child, ...)`` or ``root,child,...`` notation.

        Raises:
            ValueError: If *text* contains no table name.
        """
        names = _TABLE_TOKEN.findall(text)
        if not names:
            raise ValueError(f"No table name in group specification: {text!r}")
        return cls(root=names[0], children=names[1:])

    @property
    def tables(self) -> list[str]:
        return [self.root, *self.children]

    def __str__(self) -> str:
        if not self.children:
            return self.root
        return f"{self.root}({', '.join(self.children)})"


class Single(BaseModel):
    """Trigger shape for a root without children."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["single"] = "single"


class WithChildren(BaseModel):
    """Trigger shape for a root whose writes cascade to child snapshots."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["with_children"] = "with_children"
    children: list[TableModel] = Field(min_length=1)


TriggerShape = Annotated[Single | WithChildren, Field(discriminator="kind")]


class TableGroup(BaseModel):
    """A root table and the children sharing its revisioning lifecycle.

    ``structural_skip`` is set when the root is already revisioned: its
    storage is kept and the triggers are reinstalled.  ``existing_children``
    lists the children whose revision table already exists; any other
    child still gets its storage.
    """

    model_config = ConfigDict(frozen=True)

    root: TableModel
    children: list[TableModel] = Field(default_factory=list)
    structural_skip: bool = False
    existing_children: list[str] = Field(default_factory=list)
    shape: TriggerShape = Field(default_factory=Single)

    @property
    def tables(self) -> list[TableModel]:
        return [self.root, *self.children]
