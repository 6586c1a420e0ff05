"""Structural statements for revisioning storage.

Produces, for a root table R:

1. ``_revision_R`` -- a clone of R holding one row per snapshot, keyed by
   a serial ``_revision`` with a backward ``_revision_previous`` chain,
   backfilled with every existing row as an ``INSERT`` revision.
2. R altered to carry a unique ``_revision`` pointer and a transient
   ``_revision_comment`` column, backfilled from the revision table.
3. ``_revhistory_R`` -- append-only (pk, revision, user, timestamp) log,
   backfilled with one row per existing revision.

and for each child C a ``_revision_C`` clone keyed by (revision, C's
primary key), backfilled by pairing live child rows with the parent's
current revision.

All functions are pure: they return ``Statement`` lists and never touch
the database.
"""

from db_revisioning.schema.models import ColumnModel, RevisionNaming, TableGroup, TableModel
from db_revisioning.synth.sql import (
    Statement,
    column_list,
    equalities,
    quote_identifier,
    quote_literal,
)

REVISION_ID_TYPE = "bigint unsigned"
ACTION_TYPE = "enum('INSERT','UPDATE')"
INITIAL_COMMENT = "initialization"


class DDLSynthesizer:
    """Synthesizes storage DDL and backfills for a table group.

    Example:
        ddl = DDLSynthesizer()
        for stmt in ddl.group_storage(group):
            await client.execute(stmt.to_sql())
    """

    def __init__(self, naming: RevisionNaming | None = None):
        self.naming = naming or RevisionNaming()

    # ------------------------------------------------------------------
    # Group
    # ------------------------------------------------------------------

    def group_storage(self, group: TableGroup) -> list[Statement]:
        """All storage statements for *group*, root first.

        The root's storage is skipped when it is already revisioned
        (``structural_skip``), a child's when its revision table exists.
        """
        statements = [] if group.structural_skip else self.root_storage(group.root)
        for child in group.children:
            if child.name in group.existing_children:
                continue
            statements.extend(self.child_storage(child, group.root))
        return statements

    def root_storage(self, root: TableModel) -> list[Statement]:
        """Revision table, root alteration and history table, in order."""
        return [
            *self.revision_table(root),
            *self.alter_root(root),
            *self.history_table(root),
        ]

    # ------------------------------------------------------------------
    # Root
    # ------------------------------------------------------------------

    def revision_table(self, root: TableModel) -> list[Statement]:
        """Create and backfill ``_revision_<root>``.

        Every cloned column becomes nullable (pending revisions hold only
        metadata until they are resolved) and loses auto_increment.  Its
        character set, collation and comment are kept.  The
        original primary key and unique indexes become plain indexes,
        since a table of snapshots holds many rows per key.
        """
        n = self.naming
        rev = quote_identifier(n.revision_table(root.name))

        clauses: list[str] = [
            f"MODIFY {quote_identifier(c.name)} {_column_definition(c, 'NULL')}"
            for c in root.columns
            if not c.is_nullable or c.is_autoincrement
        ]
        clauses += [
            "DROP PRIMARY KEY",
            f"ADD {quote_identifier(n.pointer)} {REVISION_ID_TYPE} NOT NULL AUTO_INCREMENT",
            f"ADD {quote_identifier(n.previous)} {REVISION_ID_TYPE} NULL",
            f"ADD {quote_identifier(n.action)} {ACTION_TYPE} NULL DEFAULT NULL",
            f"ADD {quote_identifier(n.user_id)} {n.user_id_type} NULL",
            f"ADD {quote_identifier(n.timestamp)} datetime NULL DEFAULT NULL",
            f"ADD {quote_identifier(n.comment)} text NULL",
            f"ADD PRIMARY KEY ({quote_identifier(n.pointer)})",
            f"ADD INDEX ({quote_identifier(n.previous)})",
            f"ADD INDEX {quote_identifier(n.original_key_index)} ({column_list(root.primary_key)})",
        ]
        clauses += self._unique_to_plain(root)

        fields = column_list(root.column_names)
        backfill = (
            f"INSERT INTO {rev} ({fields}, {quote_identifier(n.action)}, "
            f"{quote_identifier(n.timestamp)}, {quote_identifier(n.comment)})\n"
            f"SELECT {fields}, 'INSERT', NOW(), {quote_literal(INITIAL_COMMENT)}\n"
            f"FROM {quote_identifier(root.name)} ORDER BY {column_list(root.primary_key)}"
        )

        return [
            Statement(
                root.name,
                "create revision table",
                f"CREATE TABLE {rev} LIKE {quote_identifier(root.name)}",
            ),
            Statement(root.name, "alter revision table", _alter(rev, clauses)),
            Statement(root.name, "backfill revision table", backfill),
        ]

    def alter_root(self, root: TableModel) -> list[Statement]:
        """Add the revision pointer and comment columns to the live root."""
        n = self.naming
        table = quote_identifier(root.name)
        rev = quote_identifier(n.revision_table(root.name))
        pointer = quote_identifier(n.pointer)

        alter = _alter(
            table,
            [
                f"ADD {pointer} {REVISION_ID_TYPE} NULL",
                f"ADD {quote_identifier(n.comment)} text NULL",
                f"ADD UNIQUE INDEX {pointer} ({pointer})",
            ],
        )
        backfill = (
            f"UPDATE {table} AS `t` INNER JOIN {rev} AS `r` "
            f"ON {equalities(root.primary_key, 't', 'r')} "
            f"SET `t`.{pointer} = `r`.{pointer}"
        )
        return [
            Statement(root.name, "add revision columns", alter),
            Statement(root.name, "backfill revision pointer", backfill),
        ]

    def history_table(self, root: TableModel) -> list[Statement]:
        """Create and backfill ``_revhistory_<root>``."""
        n = self.naming
        history = quote_identifier(n.history_table(root.name))
        rev = quote_identifier(n.revision_table(root.name))
        pk = column_list(root.primary_key)
        user_id = quote_identifier(n.history_user_id)
        timestamp = quote_identifier(n.history_timestamp)
        pointer = quote_identifier(n.pointer)

        definitions = [
            f"{quote_identifier(name)} {_column_definition(root.column(name), 'NULL')}"
            for name in root.primary_key
        ]
        definitions += [
            f"{pointer} {REVISION_ID_TYPE} NULL",
            f"{user_id} {n.user_id_type} NULL",
            f"{timestamp} timestamp NOT NULL DEFAULT CURRENT_TIMESTAMP",
            f"INDEX ({pk})",
            f"INDEX ({pointer})",
            f"INDEX ({user_id})",
            f"INDEX ({timestamp})",
        ]
        create = (
            f"CREATE TABLE {history} (\n  "
            + ",\n  ".join(definitions)
            + "\n) ENGINE=InnoDB"
        )
        backfill = (
            f"INSERT INTO {history} ({pk}, {pointer}, {user_id}, {timestamp})\n"
            f"SELECT {pk}, {pointer}, NULL, {quote_identifier(n.timestamp)} FROM {rev}"
        )
        return [
            Statement(root.name, "create history table", create),
            Statement(root.name, "backfill history table", backfill),
        ]

    # ------------------------------------------------------------------
    # Child
    # ------------------------------------------------------------------

    def child_storage(self, child: TableModel, root: TableModel) -> list[Statement]:
        """Create and backfill ``_revision_<child>``.

        A child with its own primary key is keyed by (revision, pk); a
        child without one only gets a plain index on the revision.
        """
        if not child.is_child:
            raise ValueError(f"Table '{child.name}' is not a child table")

        n = self.naming
        rev = quote_identifier(n.revision_table(child.name))
        pointer = quote_identifier(n.pointer)

        clauses: list[str] = []
        if child.autoincrement:
            col = child.column(child.autoincrement)
            nullability = "NOT NULL" if col.name in child.primary_key else "NULL"
            clauses.append(f"MODIFY {quote_identifier(col.name)} {_column_definition(col, nullability)}")

        if child.primary_key:
            pk = column_list(child.primary_key)
            clauses += [
                "DROP PRIMARY KEY",
                f"ADD {pointer} {REVISION_ID_TYPE} NOT NULL",
                f"ADD PRIMARY KEY ({pointer}, {pk})",
                f"ADD INDEX {quote_identifier(n.original_key_index)} ({pk})",
            ]
        else:
            clauses += [
                f"ADD {pointer} {REVISION_ID_TYPE} NULL",
                f"ADD INDEX {pointer} ({pointer})",
            ]
        clauses += self._unique_to_plain(child)
        clauses.append(
            "COMMENT = "
            + quote_literal(f"Child of {quote_identifier(n.revision_table(root.name))}")
        )

        link = child.link
        backfill = (
            f"INSERT INTO {rev} ({column_list(child.column_names)}, {pointer})\n"
            f"SELECT {column_list(child.column_names, 't')}, `p`.{pointer}\n"
            f"FROM {quote_identifier(child.name)} AS `t` "
            f"INNER JOIN {quote_identifier(root.name)} AS `p` "
            f"ON `t`.{quote_identifier(link.foreign_key)} = `p`.{quote_identifier(link.parent_key)}"
        )

        return [
            Statement(
                child.name,
                "create revision table",
                f"CREATE TABLE {rev} LIKE {quote_identifier(child.name)}",
            ),
            Statement(child.name, "alter revision table", _alter(rev, clauses)),
            Statement(child.name, "backfill revision table", backfill),
        ]

    # ------------------------------------------------------------------
    # Teardown
    # ------------------------------------------------------------------

    def teardown(self, table: str, is_root: bool, strip_columns: bool = True) -> list[Statement]:
        """Drop storage for *table* (triggers are dropped separately).

        Args:
            table: Root or child table name.
            is_root: Drops the history table and strips root columns too.
            strip_columns: Set False if the root no longer has the
                revisioning columns.
        """
        n = self.naming
        statements: list[Statement] = []
        if is_root:
            statements.append(
                Statement(
                    table,
                    "drop history table",
                    f"DROP TABLE IF EXISTS {quote_identifier(n.history_table(table))}",
                )
            )
        statements.append(
            Statement(
                table,
                "drop revision table",
                f"DROP TABLE IF EXISTS {quote_identifier(n.revision_table(table))}",
            )
        )
        if is_root and strip_columns:
            statements.append(
                Statement(
                    table,
                    "drop revision columns",
                    _alter(
                        quote_identifier(table),
                        [
                            f"DROP {quote_identifier(n.pointer)}",
                            f"DROP {quote_identifier(n.comment)}",
                        ],
                    ),
                )
            )
        return statements

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _unique_to_plain(self, table: TableModel) -> list[str]:
        clauses: list[str] = []
        for name, columns in table.unique_indexes.items():
            clauses.append(f"DROP INDEX {quote_identifier(name)}")
            clauses.append(f"ADD INDEX {quote_identifier(name)} ({column_list(columns)})")
        return clauses


def _column_definition(col: ColumnModel, nullability: str) -> str:
    """Type, character set, collation, nullability and comment of *col*."""
    parts = [col.column_type]
    if col.character_set:
        parts.append(f"CHARACTER SET {col.character_set}")
    if col.collation:
        parts.append(f"COLLATE {col.collation}")
    parts.append(nullability)
    if col.comment:
        parts.append(f"COMMENT {quote_literal(col.comment)}")
    return " ".join(parts)


def _alter(table_sql: str, clauses: list[str]) -> str:
    return f"ALTER TABLE {table_sql}\n  " + ",\n  ".join(clauses)
