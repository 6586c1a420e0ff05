"""Tests for SchemaIntrospector against a fake information_schema."""

import pytest

from conftest import FakeMySQLClient
from db_revisioning.errors import SchemaError
from db_revisioning.schema.introspector import SchemaIntrospector


class TestDescribeRoot:
    """Verify root table introspection."""

    @pytest.mark.asyncio
    async def test_columns_keys_and_autoincrement(self, client) -> None:
        """Columns, primary key, unique indexes and auto_increment are read."""
        orders = await SchemaIntrospector(client).describe("orders")

        assert orders.column_names == ["id", "reference", "status", "customer_id"]
        assert orders.primary_key == ["id"]
        assert orders.unique_indexes == {"reference": ["reference"]}
        assert orders.autoincrement == "id"
        assert orders.column("status").column_type == "enum('new','paid','shipped')"
        assert not orders.column("status").is_nullable
        assert orders.column("customer_id").is_nullable
        assert orders.link is None
        assert not orders.is_revisioned

    @pytest.mark.asyncio
    async def test_missing_table(self, client) -> None:
        """Unknown tables raise missing_table."""
        with pytest.raises(SchemaError) as exc:
            await SchemaIntrospector(client).describe("nope")
        assert exc.value.reason == "missing_table"

    @pytest.mark.asyncio
    async def test_missing_primary_key(self, client) -> None:
        """A root without primary key raises missing_primary_key."""
        with pytest.raises(SchemaError, match="does not have a primary key") as exc:
            await SchemaIntrospector(client).describe("audit_log")
        assert exc.value.reason == "missing_primary_key"

    @pytest.mark.asyncio
    async def test_reserved_columns_split_out(self, client) -> None:
        """Revisioning columns and indexes are excluded from the model."""
        invoices = await SchemaIntrospector(client).describe("invoices")

        assert invoices.column_names == ["id", "total"]
        assert invoices.reserved_columns == ["_revision", "_revision_comment"]
        assert invoices.unique_indexes == {}
        assert invoices.is_revisioned

    @pytest.mark.asyncio
    async def test_bytes_values_decoded(self) -> None:
        """Servers returning bytes for metadata are handled."""
        client = FakeMySQLClient(
            {"t": {"columns": [(b"id", b"int(11)", False, b"")], "primary_key": [b"id"]}}
        )
        table = await SchemaIntrospector(client).describe("t")
        assert table.column_names == ["id"]
        assert table.primary_key == ["id"]


class TestDescribeChild:
    """Verify child table introspection."""

    @pytest.mark.asyncio
    async def test_link_resolved(self, client) -> None:
        """The foreign key to the parent becomes the link."""
        lines = await SchemaIntrospector(client).describe("order_lines", parent="orders")

        assert lines.link is not None
        assert lines.link.parent == "orders"
        assert lines.link.foreign_key == "order_id"
        assert lines.link.parent_key == "id"

    @pytest.mark.asyncio
    async def test_child_without_primary_key_allowed(self, client) -> None:
        """Children need no primary key of their own."""
        tags = await SchemaIntrospector(client).describe("order_tags", parent="orders")
        assert tags.primary_key == []
        assert tags.is_child

    @pytest.mark.asyncio
    async def test_missing_foreign_key(self, client) -> None:
        """A child without reference to the parent raises missing_foreign_key."""
        with pytest.raises(SchemaError, match="foreign key reference to parent table 'orders'") as exc:
            await SchemaIntrospector(client).describe("customers", parent="orders")
        assert exc.value.reason == "missing_foreign_key"

    @pytest.mark.asyncio
    async def test_first_pair_of_composite_key(self, tables) -> None:
        """For a composite reference the first column pair is used."""
        tables["order_lines"]["foreign_keys"]["orders"] = [("order_id", "id"), ("order_ref", "reference")]
        introspector = SchemaIntrospector(FakeMySQLClient(tables))
        assert await introspector.resolve_foreign_key("order_lines", "orders") == ("order_id", "id")


class TestHasRevisioning:
    """Verify detection of revisioning columns."""

    @pytest.mark.asyncio
    async def test_has_revisioning(self, client) -> None:
        """Only tables with reserved columns are revisioned."""
        introspector = SchemaIntrospector(client)
        assert await introspector.has_revisioning("invoices")
        assert not await introspector.has_revisioning("orders")
        assert not await introspector.has_revisioning("nope")

    @pytest.mark.asyncio
    async def test_has_revision_table(self, tables, client) -> None:
        """The revision table is looked up under its configured name."""
        tables["_revision_order_lines"] = {"columns": []}
        introspector = SchemaIntrospector(client)
        assert await introspector.has_revision_table("order_lines")
        assert not await introspector.has_revision_table("order_tags")


class TestColumnAttributes:
    """Verify character set, collation and comment are read."""

    @pytest.mark.asyncio
    async def test_attributes(self, tables, client) -> None:
        """String columns keep their collation; others have none."""
        tables["customers"]["columns"][1] = (
            "name",
            "varchar(100)",
            False,
            "",
            {"character_set": "latin1", "collation": "latin1_swedish_ci", "comment": "Display name"},
        )
        customers = await SchemaIntrospector(client).describe("customers")

        name = customers.column("name")
        assert name.character_set == "latin1"
        assert name.collation == "latin1_swedish_ci"
        assert name.comment == "Display name"
        assert customers.column("id").collation is None
        assert customers.column("id").comment == ""
