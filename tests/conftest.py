"""Shared fixtures: an in-memory information_schema and a recording client."""

from typing import Any

import pytest

from db_revisioning.errors import StatementError
from db_revisioning.schema.models import ChildLink, ColumnModel, TableModel


class FakeMySQLClient:
    """``DatabaseClient`` answering introspection queries from a dict.

    ``tables`` maps a table name to::

        {
            "columns": [(name, column_type, is_nullable, extra[, attributes]), ...],
            "primary_key": [...],
            "unique": {index_name: [columns]},
            "foreign_keys": {parent: [(column, referenced_column), ...]},
        }

    A name present in ``tables`` also exists for ``information_schema.tables``.
    Executed statements are recorded in ``executed``.  A statement
    containing ``fail_on`` raises ``StatementError``.
    """

    def __init__(self, tables: dict[str, dict], fail_on: str | None = None):
        self.tables = tables
        self.fail_on = fail_on
        self.executed: list[str] = []
        self.closed = False

    async def fetch(self, sql: str, params: dict[str, Any] | None = None) -> list[dict]:
        params = params or {}
        table = self.tables.get(params.get("table", ""))
        if table is None:
            return []

        if "information_schema.columns" in sql:
            return [_column_row(*column) for column in table["columns"]]
        if "information_schema.tables" in sql:
            return [{"name": params["table"]}]
        if "'PRIMARY KEY'" in sql:
            return [{"name": n} for n in table.get("primary_key", [])]
        if "'UNIQUE'" in sql:
            return [
                {"constraint_name": name, "column_name": col}
                for name, cols in table.get("unique", {}).items()
                for col in cols
            ]
        if "referenced_table_name" in sql:
            pairs = table.get("foreign_keys", {}).get(params["parent"], [])
            return [{"foreign_key": fk, "parent_key": pk} for fk, pk in pairs]
        raise AssertionError(f"Unexpected query: {sql}")

    async def execute(self, sql: str, params: dict[str, Any] | None = None) -> int:
        if self.fail_on and self.fail_on in sql:
            raise StatementError(1064, "You have an error in your SQL syntax", sql)
        self.executed.append(sql)
        return 0

    async def close(self) -> None:
        self.closed = True


def _column_row(name, column_type, nullable, extra, attributes=None) -> dict:
    row = {
        "name": name,
        "column_type": column_type,
        "is_nullable": "YES" if nullable else "NO",
        "extra": extra,
        "character_set": None,
        "collation": None,
        "comment": "",
    }
    row.update(attributes or {})
    return row


def shop_tables() -> dict[str, dict]:
    """A small shop schema: orders with lines and tags, plus odd tables."""
    return {
        "orders": {
            "columns": [
                ("id", "int(10) unsigned", False, "auto_increment"),
                ("reference", "varchar(32)", False, ""),
                ("status", "enum('new','paid','shipped')", False, ""),
                ("customer_id", "int(10) unsigned", True, ""),
            ],
            "primary_key": ["id"],
            "unique": {"reference": ["reference"]},
        },
        "order_lines": {
            "columns": [
                ("id", "int(10) unsigned", False, "auto_increment"),
                ("order_id", "int(10) unsigned", False, ""),
                ("product", "varchar(100)", False, ""),
                ("quantity", "int(11)", False, ""),
            ],
            "primary_key": ["id"],
            "foreign_keys": {"orders": [("order_id", "id")]},
        },
        "order_tags": {
            "columns": [
                ("order_id", "int(10) unsigned", False, ""),
                ("tag", "varchar(30)", True, ""),
            ],
            "foreign_keys": {"orders": [("order_id", "id")]},
        },
        "customers": {
            "columns": [
                ("id", "int(10) unsigned", False, "auto_increment"),
                ("name", "varchar(100)", False, ""),
            ],
            "primary_key": ["id"],
        },
        "audit_log": {
            "columns": [("message", "text", True, "")],
        },
        "invoices": {
            "columns": [
                ("id", "int(10) unsigned", False, ""),
                ("total", "decimal(10,2)", True, ""),
                ("_revision", "bigint(20) unsigned", True, ""),
                ("_revision_comment", "text", True, ""),
            ],
            "primary_key": ["id"],
            "unique": {"_revision": ["_revision"]},
        },
        "invoice_lines": {
            "columns": [
                ("id", "int(10) unsigned", False, "auto_increment"),
                ("invoice_id", "int(10) unsigned", False, ""),
                ("amount", "decimal(10,2)", False, ""),
            ],
            "primary_key": ["id"],
            "foreign_keys": {"invoices": [("invoice_id", "id")]},
        },
    }


@pytest.fixture
def tables() -> dict[str, dict]:
    return shop_tables()


@pytest.fixture
def client(tables) -> FakeMySQLClient:
    return FakeMySQLClient(tables)


def orders_model() -> TableModel:
    return TableModel(
        name="orders",
        columns=[
            ColumnModel(name="id", column_type="int(10) unsigned", is_nullable=False, is_autoincrement=True),
            ColumnModel(name="reference", column_type="varchar(32)", is_nullable=False),
            ColumnModel(name="status", column_type="enum('new','paid','shipped')", is_nullable=False),
            ColumnModel(name="customer_id", column_type="int(10) unsigned"),
        ],
        primary_key=["id"],
        unique_indexes={"reference": ["reference"]},
        autoincrement="id",
    )


def order_lines_model() -> TableModel:
    return TableModel(
        name="order_lines",
        columns=[
            ColumnModel(name="id", column_type="int(10) unsigned", is_nullable=False, is_autoincrement=True),
            ColumnModel(name="order_id", column_type="int(10) unsigned", is_nullable=False),
            ColumnModel(name="product", column_type="varchar(100)", is_nullable=False),
            ColumnModel(name="quantity", column_type="int(11)", is_nullable=False),
        ],
        primary_key=["id"],
        autoincrement="id",
        link=ChildLink(parent="orders", foreign_key="order_id", parent_key="id"),
    )


def order_tags_model() -> TableModel:
    return TableModel(
        name="order_tags",
        columns=[
            ColumnModel(name="order_id", column_type="int(10) unsigned", is_nullable=False),
            ColumnModel(name="tag", column_type="varchar(30)"),
        ],
        link=ChildLink(parent="orders", foreign_key="order_id", parent_key="id"),
    )
