"""Install and remove revisioning for groups of tables.

Sequencing per group:

1. Build the ``TableGroup`` (introspection + validation).  A root that
   cannot be revisioned skips the group; the batch goes on.
2. Storage DDL, root first then children, for every member that has no
   storage yet (``structural_skip``, ``existing_children``).
3. Triggers, always: drop-if-exists then create, root then children.

A failing statement aborts its group only.  Statements already executed
are not rolled back (MySQL DDL commits implicitly).

Usage:
    orchestrator = Orchestrator(client, dialect=Dialect.LEGACY_SIGNAL)
    result = await orchestrator.install([GroupSpec.parse("orders(order_lines)")])
    for group in result.groups:
        print(group.group, group.status)
"""

import logging
from typing import Literal

from pydantic import BaseModel, Field

from db_revisioning.adapters.base import DatabaseClient
from db_revisioning.errors import SchemaError, StatementError
from db_revisioning.schema.builder import RevisionModelBuilder
from db_revisioning.schema.introspector import SchemaIntrospector
from db_revisioning.schema.models import GroupSpec, RevisionNaming
from db_revisioning.synth.ddl import DDLSynthesizer
from db_revisioning.synth.dialect import Dialect
from db_revisioning.synth.sql import Statement
from db_revisioning.synth.triggers import TriggerSynthesizer

logger = logging.getLogger(__name__)

GroupStatus = Literal["installed", "skipped", "failed", "removed"]


# ============================================================================
# Result Models
# ============================================================================


class GroupResult(BaseModel):
    """Outcome of installing or removing one group."""

    group: str
    status: GroupStatus
    statements: list[str] = Field(default_factory=list)
    error: str | None = None
    error_code: int | None = None
    skipped_children: list[str] = Field(default_factory=list)
    structural_skip: bool = False


class RevisioningResult(BaseModel):
    """Outcome of a batch of groups."""

    dry_run: bool = False
    groups: list[GroupResult] = Field(default_factory=list)

    @property
    def success(self) -> bool:
        """True if every group was installed or removed."""
        return all(g.status in ("installed", "removed") for g in self.groups)

    def by_status(self, status: GroupStatus) -> list[GroupResult]:
        return [g for g in self.groups if g.status == status]


# ============================================================================
# Orchestrator
# ============================================================================


class Orchestrator:
    """Drives introspection, synthesis and execution for table groups.

    Args:
        client: Statement executor.
        dialect: Error-signal form for the primary key guard.
        naming: Revisioning names (tables, columns, triggers).
        user_variable: Session variable holding the acting user's id.
    """

    def __init__(
        self,
        client: DatabaseClient,
        dialect: Dialect = Dialect.STANDARD_SIGNAL,
        naming: RevisionNaming | None = None,
        user_variable: str = "auth_uid",
    ):
        self._client = client
        self.naming = naming or RevisionNaming()
        self.introspector = SchemaIntrospector(client, self.naming)
        self.builder = RevisionModelBuilder(self.introspector)
        self.ddl = DDLSynthesizer(self.naming)
        self.triggers = TriggerSynthesizer(dialect, self.naming, user_variable)

    async def install(self, specs: list[GroupSpec], dry_run: bool = False) -> RevisioningResult:
        """Install revisioning on each group in order.

        Args:
            specs: Groups to install.
            dry_run: Build and synthesize only; nothing is executed.
        """
        result = RevisioningResult(dry_run=dry_run)
        for spec in specs:
            result.groups.append(await self._install_group(spec, dry_run))
        return result

    async def plan(self, specs: list[GroupSpec]) -> RevisioningResult:
        """Statements ``install`` would execute."""
        return await self.install(specs, dry_run=True)

    async def remove(self, specs: list[GroupSpec], dry_run: bool = False) -> RevisioningResult:
        """Remove revisioning from each group in order.

        Drops the triggers of every member table, then the history and
        revision tables, and strips the revisioning columns from the root
        if it still has them.  Tables need not pass install validation.
        """
        result = RevisioningResult(dry_run=dry_run)
        for spec in specs:
            result.groups.append(await self._remove_group(spec, dry_run))
        return result

    # ------------------------------------------------------------------
    # Per group
    # ------------------------------------------------------------------

    async def _install_group(self, spec: GroupSpec, dry_run: bool) -> GroupResult:
        try:
            group = await self.builder.build(spec)
        except SchemaError as e:
            logger.warning("Skipping group %s: %s", spec, e)
            return GroupResult(group=str(spec), status="skipped", error=str(e))

        outcome = GroupResult(
            group=str(spec),
            status="installed",
            skipped_children=[str(e) for e in self.builder.skipped],
            structural_skip=group.structural_skip,
        )
        statements = self.ddl.group_storage(group) + self.triggers.group_triggers(group)
        await self._run(statements, outcome, dry_run)

        if outcome.status == "installed" and not dry_run:
            logger.info("Installed revisioning on %s", spec)
        return outcome

    async def _remove_group(self, spec: GroupSpec, dry_run: bool) -> GroupResult:
        outcome = GroupResult(group=str(spec), status="removed")
        try:
            strip_columns = await self.introspector.has_revisioning(spec.root)
        except StatementError as e:
            self._fail(outcome, e)
            return outcome

        statements: list[Statement] = []
        for table in spec.tables:
            statements.extend(self.triggers.drop_triggers(table))
        statements.extend(self.ddl.teardown(spec.root, is_root=True, strip_columns=strip_columns))
        for child in spec.children:
            statements.extend(self.ddl.teardown(child, is_root=False))

        await self._run(statements, outcome, dry_run)

        if outcome.status == "removed" and not dry_run:
            logger.info("Removed revisioning from %s", spec)
        return outcome

    async def _run(self, statements: list[Statement], outcome: GroupResult, dry_run: bool) -> None:
        """Execute *statements* in order, stopping at the first failure."""
        for stmt in statements:
            sql = stmt.to_sql()
            if not dry_run:
                logger.debug("%s: %s", stmt.table, stmt.summary)
                try:
                    await self._client.execute(sql)
                except StatementError as e:
                    self._fail(outcome, e)
                    return
            outcome.statements.append(sql)

    def _fail(self, outcome: GroupResult, error: StatementError) -> None:
        logger.error("Group %s failed: %s", outcome.group, error)
        outcome.status = "failed"
        outcome.error = str(error)
        outcome.error_code = error.code
