"""Tests for RevisionModelBuilder group assembly."""

import logging

import pytest

from db_revisioning.errors import SchemaError
from db_revisioning.schema.builder import RevisionModelBuilder
from db_revisioning.schema.introspector import SchemaIntrospector
from db_revisioning.schema.models import GroupSpec, Single, WithChildren


@pytest.fixture
def builder(client) -> RevisionModelBuilder:
    return RevisionModelBuilder(SchemaIntrospector(client))


class TestBuild:
    """Verify group building."""

    @pytest.mark.asyncio
    async def test_single_root(self, builder) -> None:
        """A root without children gets the Single shape."""
        group = await builder.build(GroupSpec.parse("orders"))
        assert group.root.name == "orders"
        assert group.children == []
        assert isinstance(group.shape, Single)
        assert not group.structural_skip

    @pytest.mark.asyncio
    async def test_with_children(self, builder) -> None:
        """Children keep their declared order and define the shape."""
        group = await builder.build(GroupSpec.parse("orders(order_tags, order_lines)"))
        assert [c.name for c in group.children] == ["order_tags", "order_lines"]
        assert isinstance(group.shape, WithChildren)
        assert [c.name for c in group.shape.children] == ["order_tags", "order_lines"]

    @pytest.mark.asyncio
    async def test_root_error_propagates(self, builder) -> None:
        """An invalid root aborts the group."""
        with pytest.raises(SchemaError) as exc:
            await builder.build(GroupSpec.parse("audit_log(order_lines)"))
        assert exc.value.table == "audit_log"

    @pytest.mark.asyncio
    async def test_invalid_child_skipped(self, builder, caplog) -> None:
        """A child without foreign key is skipped with a warning."""
        with caplog.at_level(logging.WARNING):
            group = await builder.build(GroupSpec.parse("orders(customers, order_lines)"))

        assert [c.name for c in group.children] == ["order_lines"]
        assert [e.table for e in builder.skipped] == ["customers"]
        assert "customers" in caplog.text

    @pytest.mark.asyncio
    async def test_all_children_invalid_gives_single(self, builder) -> None:
        """With no valid child left the shape falls back to Single."""
        group = await builder.build(GroupSpec.parse("orders(customers)"))
        assert group.children == []
        assert isinstance(group.shape, Single)

    @pytest.mark.asyncio
    async def test_skipped_reset_between_builds(self, builder) -> None:
        """skipped only reports the last build."""
        await builder.build(GroupSpec.parse("orders(customers)"))
        await builder.build(GroupSpec.parse("orders"))
        assert builder.skipped == []

    @pytest.mark.asyncio
    async def test_already_revisioned_root(self, builder) -> None:
        """A root with revisioning columns sets structural_skip."""
        group = await builder.build(GroupSpec.parse("invoices"))
        assert group.structural_skip

    @pytest.mark.asyncio
    async def test_new_child_of_revisioned_root(self, builder) -> None:
        """A child without a revision table is not counted as existing."""
        group = await builder.build(GroupSpec.parse("invoices(invoice_lines)"))
        assert group.structural_skip
        assert group.existing_children == []

    @pytest.mark.asyncio
    async def test_existing_child_of_revisioned_root(self, tables, client) -> None:
        """A child whose revision table exists keeps its storage."""
        tables["_revision_invoice_lines"] = {"columns": []}
        builder = RevisionModelBuilder(SchemaIntrospector(client))
        group = await builder.build(GroupSpec.parse("invoices(invoice_lines)"))
        assert group.existing_children == ["invoice_lines"]

    @pytest.mark.asyncio
    async def test_new_root_ignores_stale_child_storage(self, tables, client) -> None:
        """Child revision tables are only looked up for a revisioned root."""
        tables["_revision_order_lines"] = {"columns": []}
        builder = RevisionModelBuilder(SchemaIntrospector(client))
        group = await builder.build(GroupSpec.parse("orders(order_lines)"))
        assert not group.structural_skip
        assert group.existing_children == []
