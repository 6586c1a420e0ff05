"""Trigger bodies implementing the revision chain.

Root table state machine (evaluated per row):

Before insert/update, from the incoming ``_revision`` pointer:

- NO_REVISION: pointer is NULL -> insert a pending revision (action NULL,
  previous = OLD pointer) and assign its id to the row.
- SAME_REVISION (update): pointer unchanged -> cleared, so it is handled
  as NO_REVISION and every write gets a fresh revision.
- OTHER_REVISION: pointer names another revision -> a revert.  The fields
  of a resolved snapshot are copied onto the row; a pending one is left
  to be resolved by the after trigger.
- Update guard: primary key columns may not change.

After insert/update:

1. Resolve the revision if it is still pending (fresh revision) -- a
   revert finds it resolved already.
2. Append a history row.
3. With children, a fresh revision snapshots the live child rows; a revert
   replaces the live child rows with the snapshot.

After delete appends a history row with a NULL revision.

Child tables get their own after triggers that keep the snapshot of the
parent's current revision in step with direct child writes.
"""

from collections.abc import Iterable

from db_revisioning.errors import IMMUTABLE_PK_SQLSTATE, ImmutablePrimaryKeyError
from db_revisioning.schema.models import (
    ChildLink,
    RevisionNaming,
    TableGroup,
    TableModel,
    TriggerShape,
    WithChildren,
)
from db_revisioning.synth.dialect import Dialect
from db_revisioning.synth.ddl import ACTION_TYPE, REVISION_ID_TYPE
from db_revisioning.synth.sql import (
    Statement,
    column_list,
    equalities,
    indent,
    null_safe_equalities,
    qualified,
    quote_identifier,
    quote_literal,
    session_variable,
    variable,
)

ROOT_EVENTS = (("before", "insert"), ("before", "update"), ("after", "insert"), ("after", "update"), ("after", "delete"))

# MySQL error numbers ignored by child mirrors:
# 1062 duplicate entry (the parent cascade already captured the row),
# 1442 table in use by the statement that invoked the trigger (a revert
# rewriting child rows from inside the parent's trigger).
ER_DUP_ENTRY = 1062
ER_CANT_UPDATE_USED_TABLE_IN_SF_OR_TRG = 1442

CURSOR = "`revisionCursor`"
FOUND = "`var-found`"
NEW_REVISION = "`newrev`"

# User-defined exception class
UNKNOWN_REVISION_SQLSTATE = "45000"


def unknown_revision_message(table: str) -> str:
    return f"Unknown revision for table '{table}'"


class TriggerSynthesizer:
    """Synthesizes trigger definitions for a table group.

    Args:
        dialect: How the primary key guard raises its error.
        naming: Revisioning names.
        user_variable: Session variable holding the acting user's id.

    Example:
        triggers = TriggerSynthesizer(Dialect.STANDARD_SIGNAL)
        for stmt in triggers.group_triggers(group):
            await client.execute(stmt.to_sql())
    """

    def __init__(
        self,
        dialect: Dialect = Dialect.STANDARD_SIGNAL,
        naming: RevisionNaming | None = None,
        user_variable: str = "auth_uid",
    ):
        self.dialect = dialect
        self.naming = naming or RevisionNaming()
        self.user_variable = user_variable

    # ------------------------------------------------------------------
    # Statement lists
    # ------------------------------------------------------------------

    def group_triggers(self, group: TableGroup) -> list[Statement]:
        """Drop-and-create statements for every trigger of *group*."""
        statements = self.root_triggers(group.root, group.shape)
        for child in group.children:
            statements.extend(self.child_triggers(child))
        return statements

    def root_triggers(self, root: TableModel, shape: TriggerShape) -> list[Statement]:
        bodies = {
            ("before", "insert"): self.before_insert(root),
            ("before", "update"): self.before_update(root),
            ("after", "insert"): self.after_write("insert", root, shape),
            ("after", "update"): self.after_write("update", root, shape),
            ("after", "delete"): self.after_delete(root),
        }
        return self._install(root.name, bodies)

    def child_triggers(self, child: TableModel) -> list[Statement]:
        bodies = {
            ("after", "insert"): self.child_after_insert(child),
            ("after", "update"): self.child_after_update(child),
            ("after", "delete"): self.child_after_delete(child),
        }
        return self._install(child.name, bodies)

    def drop_triggers(self, table: str) -> list[Statement]:
        """Drop every revisioning trigger that may exist on *table*."""
        return [self._drop(table, timing, event) for timing, event in reversed(ROOT_EVENTS)]

    def _install(self, table: str, bodies: dict[tuple[str, str], str]) -> list[Statement]:
        statements: list[Statement] = []
        for (timing, event), sql in bodies.items():
            statements.append(self._drop(table, timing, event))
            statements.append(Statement(table, f"create {timing} {event} trigger", sql))
        return statements

    def _drop(self, table: str, timing: str, event: str) -> Statement:
        name = quote_identifier(self.naming.trigger_name(table, timing, event))
        return Statement(table, f"drop {timing} {event} trigger", f"DROP TRIGGER IF EXISTS {name}")

    # ------------------------------------------------------------------
    # Root: before triggers
    # ------------------------------------------------------------------

    def before_insert(self, root: TableModel) -> str:
        """New rows get a pending revision; an explicit one is restored."""
        n = self.naming
        body = [
            *self._snapshot_declarations(root, with_action=False),
            "",
            f"IF NEW.{quote_identifier(n.pointer)} IS NULL THEN",
            *self._new_pending_revision(root, previous="NULL", depth=1),
            "ELSE",
            *self._fetch_snapshot(root, with_action=False, depth=1),
            f"  SET {self._assign_snapshot(root)};",
            "END IF;",
            "",
            f"SET NEW.{quote_identifier(n.comment)} = NULL;",
        ]
        return self._create(root.name, "before", "insert", body)

    def before_update(self, root: TableModel) -> str:
        """Revision switch, primary key guard and new pending revision."""
        n = self.naming
        pointer = quote_identifier(n.pointer)
        action_var = variable(n.action)

        body = [
            *self._snapshot_declarations(root, with_action=True),
            "",
            f"IF NEW.{pointer} = OLD.{pointer} THEN",
            f"  SET NEW.{pointer} = NULL;",
            "",
            f"ELSEIF NEW.{pointer} IS NOT NULL THEN",
            *self._fetch_snapshot(root, with_action=True, depth=1),
            "",
            f"  IF {action_var} IS NOT NULL THEN",
            f"    SET {self._assign_snapshot(root)};",
            "  END IF;",
            "END IF;",
            "",
            f"IF {self._primary_key_changed(root)} THEN",
            "  "
            + self.dialect.raise_error(
                IMMUTABLE_PK_SQLSTATE, ImmutablePrimaryKeyError.message_for(root.name)
            )
            + ";",
            "END IF;",
            "",
            f"IF NEW.{pointer} IS NULL THEN",
            *self._new_pending_revision(root, previous=f"OLD.{pointer}", depth=1),
            "END IF;",
            "",
            f"SET NEW.{quote_identifier(n.comment)} = NULL;",
        ]
        return self._create(root.name, "before", "update", body)

    # ------------------------------------------------------------------
    # Root: after triggers
    # ------------------------------------------------------------------

    def after_write(self, event: str, root: TableModel, shape: TriggerShape) -> str:
        """After insert/update: resolve, log history, cascade to children.

        Args:
            event: ``"insert"`` or ``"update"``.
            root: The root table.
            shape: ``Single`` (no cascade) or ``WithChildren``.
        """
        if event not in ("insert", "update"):
            raise ValueError(f"Unsupported event for after_write: {event!r}")

        n = self.naming
        rev = quote_identifier(n.revision_table(root.name))
        pointer = quote_identifier(n.pointer)
        action = quote_identifier(n.action)

        resolve = (
            f"UPDATE {rev} SET {equalities(root.column_names, None, 'NEW', ', ')}, "
            f"{action} = {quote_literal(event.upper())} "
            f"WHERE {pointer} = NEW.{pointer} AND {action} IS NULL;"
        )

        body: list[str] = []
        if isinstance(shape, WithChildren):
            body += [f"DECLARE {NEW_REVISION} BOOLEAN;", ""]
        body.append(resolve)
        if isinstance(shape, WithChildren):
            body.append(f"SET {NEW_REVISION} = (ROW_COUNT() > 0);")
        body.append(self._history_row(root, "NEW", f"NEW.{pointer}"))

        if isinstance(shape, WithChildren):
            body += [
                "",
                f"IF {NEW_REVISION} THEN",
                *indent(self._capture_children(shape), 1).split("\n"),
                "ELSE",
                *indent(self._restore_children(shape, replace=(event == "update")), 1).split("\n"),
                "END IF;",
            ]
        return self._create(root.name, "after", event, body)

    def after_delete(self, root: TableModel) -> str:
        """Deletes are logged with a NULL revision; revisions are kept."""
        body = [self._history_row(root, "OLD", "NULL")]
        return self._create(root.name, "after", "delete", body)

    # ------------------------------------------------------------------
    # Child triggers
    # ------------------------------------------------------------------

    def child_after_insert(self, child: TableModel) -> str:
        """Mirror a new child row into the parent's current revision."""
        link = _link(child)
        n = self.naming
        body = [
            self._ignore_handler(ER_DUP_ENTRY, ER_CANT_UPDATE_USED_TABLE_IN_SF_OR_TRG),
            f"INSERT INTO {quote_identifier(n.revision_table(child.name))} "
            f"({column_list(child.column_names)}, {quote_identifier(n.pointer)}) "
            f"SELECT {column_list(child.column_names, 'NEW')}, `p`.{quote_identifier(n.pointer)} "
            f"FROM {quote_identifier(link.parent)} AS `p` "
            f"WHERE `p`.{quote_identifier(link.parent_key)} = NEW.{quote_identifier(link.foreign_key)};",
        ]
        return self._create(child.name, "after", "insert", body)

    def child_after_update(self, child: TableModel) -> str:
        """Replace the child's snapshot row in the parent's current revision."""
        link = _link(child)
        n = self.naming
        body: list[str] = []
        if not child.primary_key:
            body.append(self._delete_matching_snapshot(child, "OLD") + ";")
        body.append(
            f"REPLACE INTO {quote_identifier(n.revision_table(child.name))} "
            f"({column_list(child.column_names)}, {quote_identifier(n.pointer)}) "
            f"SELECT {column_list(child.column_names, 'NEW')}, `p`.{quote_identifier(n.pointer)} "
            f"FROM {quote_identifier(link.parent)} AS `p` "
            f"WHERE `p`.{quote_identifier(link.parent_key)} = NEW.{quote_identifier(link.foreign_key)};"
        )
        return self._create(child.name, "after", "update", body)

    def child_after_delete(self, child: TableModel) -> str:
        """Remove the child's row from the parent's current revision."""
        link = _link(child)
        n = self.naming
        pointer = quote_identifier(n.pointer)

        if child.primary_key:
            delete = (
                f"DELETE `r` FROM {quote_identifier(n.revision_table(child.name))} AS `r` "
                f"INNER JOIN {quote_identifier(link.parent)} AS `p` ON `r`.{pointer} = `p`.{pointer} "
                f"WHERE `p`.{quote_identifier(link.parent_key)} = OLD.{quote_identifier(link.foreign_key)} "
                f"AND {equalities(child.primary_key, 'r', 'OLD')}"
            )
        else:
            delete = self._delete_matching_snapshot(child, "OLD")

        body = [
            self._ignore_handler(ER_CANT_UPDATE_USED_TABLE_IN_SF_OR_TRG),
            delete + ";",
        ]
        return self._create(child.name, "after", "delete", body)

    # ------------------------------------------------------------------
    # Fragments
    # ------------------------------------------------------------------

    def _create(self, table: str, timing: str, event: str, body: Iterable[str]) -> str:
        name = quote_identifier(self.naming.trigger_name(table, timing, event))
        return (
            f"CREATE TRIGGER {name} {timing.upper()} {event.upper()} ON {quote_identifier(table)}\n"
            f"FOR EACH ROW BEGIN\n"
            f"{indent(body)}\n"
            f"END"
        )

    def _snapshot_declarations(self, root: TableModel, with_action: bool) -> list[str]:
        """Local variables and cursor for reading a revision snapshot."""
        n = self.naming
        lines = [f"DECLARE {variable(c.name)} {c.column_type};" for c in root.columns]
        lines.append(f"DECLARE {variable(n.pointer)} {REVISION_ID_TYPE};")
        fields = column_list(root.column_names)
        if with_action:
            lines.append(f"DECLARE {variable(n.action)} {ACTION_TYPE};")
            fields += f", {quote_identifier(n.action)}"
        lines += [
            f"DECLARE {FOUND} BOOLEAN DEFAULT TRUE;",
            f"DECLARE {CURSOR} CURSOR FOR SELECT {fields} "
            f"FROM {quote_identifier(n.revision_table(root.name))} "
            f"WHERE {quote_identifier(n.pointer)} = {variable(n.pointer)} LIMIT 1;",
            f"DECLARE CONTINUE HANDLER FOR NOT FOUND SET {FOUND} = FALSE;",
        ]
        return lines

    def _fetch_snapshot(self, root: TableModel, with_action: bool, depth: int) -> list[str]:
        """Load the snapshot named by NEW's pointer; unknown ids abort."""
        n = self.naming
        targets = ", ".join(variable(c) for c in root.column_names)
        if with_action:
            targets += f", {variable(n.action)}"
        lines = [
            f"SET {variable(n.pointer)} = NEW.{quote_identifier(n.pointer)};",
            f"OPEN {CURSOR};",
            f"FETCH {CURSOR} INTO {targets};",
            f"CLOSE {CURSOR};",
            f"IF NOT {FOUND} THEN",
            "  "
            + self.dialect.raise_error(UNKNOWN_REVISION_SQLSTATE, unknown_revision_message(root.name))
            + ";",
            "END IF;",
        ]
        return indent(lines, depth).split("\n")

    def _assign_snapshot(self, root: TableModel) -> str:
        return ", ".join(f"{qualified('NEW', c)} = {variable(c)}" for c in root.column_names)

    def _new_pending_revision(self, root: TableModel, previous: str, depth: int) -> list[str]:
        n = self.naming
        lines = [
            f"INSERT INTO {quote_identifier(n.revision_table(root.name))} "
            f"({quote_identifier(n.previous)}, {quote_identifier(n.comment)}, "
            f"{quote_identifier(n.user_id)}, {quote_identifier(n.timestamp)}) "
            f"VALUES ({previous}, NEW.{quote_identifier(n.comment)}, "
            f"{session_variable(self.user_variable)}, NOW());",
            f"SET NEW.{quote_identifier(n.pointer)} = LAST_INSERT_ID();",
        ]
        return indent(lines, depth).split("\n")

    def _primary_key_changed(self, root: TableModel) -> str:
        checks = [
            f"(NEW.{quote_identifier(c)} != OLD.{quote_identifier(c)} "
            f"OR (NEW.{quote_identifier(c)} IS NULL) != (OLD.{quote_identifier(c)} IS NULL))"
            for c in root.primary_key
        ]
        return " OR ".join(checks)

    def _history_row(self, root: TableModel, row: str, revision: str) -> str:
        n = self.naming
        return (
            f"INSERT INTO {quote_identifier(n.history_table(root.name))} "
            f"({column_list(root.primary_key)}, {quote_identifier(n.pointer)}, "
            f"{quote_identifier(n.history_user_id)}, {quote_identifier(n.history_timestamp)}) "
            f"VALUES ({column_list(root.primary_key, row)}, {revision}, "
            f"{session_variable(self.user_variable)}, NOW());"
        )

    def _capture_children(self, shape: WithChildren) -> list[str]:
        """Copy live child rows into their snapshot under the new revision."""
        n = self.naming
        lines: list[str] = []
        for child in shape.children:
            link = _link(child)
            lines.append(
                f"INSERT INTO {quote_identifier(n.revision_table(child.name))} "
                f"({column_list(child.column_names)}, {quote_identifier(n.pointer)}) "
                f"SELECT {column_list(child.column_names)}, NEW.{quote_identifier(n.pointer)} "
                f"FROM {quote_identifier(child.name)} "
                f"WHERE {quote_identifier(link.foreign_key)} = NEW.{quote_identifier(link.parent_key)};"
            )
        return lines

    def _restore_children(self, shape: WithChildren, replace: bool) -> list[str]:
        """Put the snapshot of the reverted-to revision back as live rows.

        The delete joins the revision table (matching nothing) so that the
        table is in use by the statement: the child's own after-delete
        mirror then fails with 1442 and leaves the snapshot intact.
        """
        n = self.naming
        lines: list[str] = []
        for child in shape.children:
            link = _link(child)
            if replace:
                lines.append(
                    f"DELETE `t` FROM {quote_identifier(child.name)} AS `t` "
                    f"LEFT JOIN {quote_identifier(n.revision_table(child.name))} AS `r` ON FALSE "
                    f"WHERE `t`.{quote_identifier(link.foreign_key)} = NEW.{quote_identifier(link.parent_key)};"
                )
            lines.append(
                f"INSERT INTO {quote_identifier(child.name)} ({column_list(child.column_names)}) "
                f"SELECT {column_list(child.column_names)} "
                f"FROM {quote_identifier(n.revision_table(child.name))} "
                f"WHERE {quote_identifier(n.pointer)} = NEW.{quote_identifier(n.pointer)};"
            )
        return lines

    def _delete_matching_snapshot(self, child: TableModel, row: str) -> str:
        """Delete one snapshot row equal to *row* within the parent's revision."""
        link = _link(child)
        n = self.naming
        pointer = quote_identifier(n.pointer)
        return (
            f"DELETE FROM {quote_identifier(n.revision_table(child.name))} "
            f"WHERE {pointer} IN (SELECT {pointer} FROM {quote_identifier(link.parent)} "
            f"WHERE {quote_identifier(link.parent_key)} = {row}.{quote_identifier(link.foreign_key)}) "
            f"AND {null_safe_equalities(child.column_names, None, row)} LIMIT 1"
        )

    def _ignore_handler(self, *codes: int) -> str:
        return f"DECLARE CONTINUE HANDLER FOR {', '.join(str(c) for c in codes)} BEGIN END;"


def _link(child: TableModel) -> ChildLink:
    if not child.is_child:
        raise ValueError(f"Table '{child.name}' is not a child table")
    return child.link


__all__ = [
    "TriggerSynthesizer",
    "ROOT_EVENTS",
    "unknown_revision_message",
]
