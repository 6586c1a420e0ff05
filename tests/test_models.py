"""Tests for schema models: naming, table models and group specifications."""

import pytest
from pydantic import ValidationError

from db_revisioning.schema.models import (
    ChildLink,
    ColumnModel,
    GroupSpec,
    RevisionNaming,
    Single,
    TableGroup,
    TableModel,
    WithChildren,
)


def _table(name: str, **kwargs) -> TableModel:
    return TableModel(
        name=name,
        columns=[ColumnModel(name="id", column_type="int(10) unsigned")],
        primary_key=["id"],
        **kwargs,
    )


# ============================================================================
# Test: RevisionNaming
# ============================================================================


class TestRevisionNaming:
    """Verify physical names of revisioning artifacts."""

    def test_default_table_names(self) -> None:
        """Revision and history tables are prefixed copies of the name."""
        naming = RevisionNaming()
        assert naming.revision_table("orders") == "_revision_orders"
        assert naming.history_table("orders") == "_revhistory_orders"

    def test_trigger_name(self) -> None:
        """Trigger names combine table, timing and event."""
        naming = RevisionNaming()
        assert naming.trigger_name("orders", "before", "update") == "orders-beforeupdate"
        assert naming.trigger_name("orders", "AFTER", "DELETE") == "orders-afterdelete"

    def test_reserved_names(self) -> None:
        """Names starting with the reserved prefix belong to revisioning."""
        naming = RevisionNaming()
        assert naming.is_reserved("_revision")
        assert naming.is_reserved("_revision_comment")
        assert not naming.is_reserved("revision")

    def test_overrides(self) -> None:
        """Prefixes are configurable."""
        naming = RevisionNaming(history_table_prefix="_history_")
        assert naming.history_table("orders") == "_history_orders"

    def test_frozen(self) -> None:
        """Naming cannot be mutated after creation."""
        naming = RevisionNaming()
        with pytest.raises(ValidationError):
            naming.pointer = "rev"


# ============================================================================
# Test: TableModel
# ============================================================================


class TestTableModel:
    """Verify TableModel helpers."""

    def test_column_names_in_order(self) -> None:
        """column_names follows declared order."""
        table = TableModel(
            name="t",
            columns=[ColumnModel(name="b", column_type="int"), ColumnModel(name="a", column_type="int")],
        )
        assert table.column_names == ["b", "a"]

    def test_column_lookup(self) -> None:
        """column() returns the model or raises KeyError."""
        table = _table("orders")
        assert table.column("id").column_type == "int(10) unsigned"
        with pytest.raises(KeyError, match="no column 'missing'"):
            table.column("missing")

    def test_child_and_revisioned_flags(self) -> None:
        """is_child follows link; is_revisioned follows reserved columns."""
        child = _table("lines", link=ChildLink(parent="orders", foreign_key="order_id", parent_key="id"))
        assert child.is_child
        assert not child.is_revisioned
        assert _table("orders", reserved_columns=["_revision"]).is_revisioned


# ============================================================================
# Test: GroupSpec
# ============================================================================


class TestGroupSpec:
    """Verify parsing of group notation."""

    def test_parse_parenthesized(self) -> None:
        """root(child, child) notation."""
        spec = GroupSpec.parse("orders(order_lines, order_tags)")
        assert spec.root == "orders"
        assert spec.children == ["order_lines", "order_tags"]

    def test_parse_comma_separated(self) -> None:
        """root,child notation."""
        spec = GroupSpec.parse("orders,order_lines")
        assert spec.tables == ["orders", "order_lines"]

    def test_parse_single(self) -> None:
        """A bare table name is a group without children."""
        spec = GroupSpec.parse(" customers ")
        assert spec.root == "customers"
        assert spec.children == []

    def test_parse_empty_raises(self) -> None:
        """Text without a table name is rejected."""
        with pytest.raises(ValueError, match="No table name"):
            GroupSpec.parse(" ( , ) ")

    def test_str(self) -> None:
        """str() renders the parenthesized notation."""
        assert str(GroupSpec(root="orders", children=["a", "b"])) == "orders(a, b)"
        assert str(GroupSpec(root="orders")) == "orders"


# ============================================================================
# Test: TableGroup and TriggerShape
# ============================================================================


class TestTableGroup:
    """Verify group defaults and the tagged trigger shape."""

    def test_default_shape_is_single(self) -> None:
        """A group built without shape gets Single."""
        group = TableGroup(root=_table("orders"))
        assert isinstance(group.shape, Single)
        assert group.tables[0].name == "orders"

    def test_shape_from_tagged_dict(self) -> None:
        """The shape discriminates on its kind tag."""
        group = TableGroup.model_validate(
            {
                "root": _table("orders").model_dump(),
                "shape": {"kind": "with_children", "children": [_table("lines").model_dump()]},
            }
        )
        assert isinstance(group.shape, WithChildren)
        assert group.shape.children[0].name == "lines"

    def test_with_children_requires_children(self) -> None:
        """WithChildren cannot be empty."""
        with pytest.raises(ValidationError):
            WithChildren(children=[])
