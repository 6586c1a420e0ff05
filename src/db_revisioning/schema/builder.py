"""Assemble introspected tables into revisioning groups.

``RevisionModelBuilder.build()`` turns a ``GroupSpec`` into a
``TableGroup``:

1. The root is described; any ``SchemaError`` aborts the whole group.
2. Each child is described against the root; a ``SchemaError`` skips that
   child only (it is logged and recorded in ``skipped``).
3. If the root already carries revisioning columns the group gets
   ``structural_skip`` -- root storage stays, triggers are reinstalled.
   Children whose revision table exists keep it; new children get one.
4. The trigger shape is decided once: ``Single`` or ``WithChildren``.
"""

import logging

from db_revisioning.errors import SchemaError
from db_revisioning.schema.introspector import SchemaIntrospector
from db_revisioning.schema.models import GroupSpec, Single, TableGroup, TableModel, WithChildren

logger = logging.getLogger(__name__)


class RevisionModelBuilder:
    """Builds ``TableGroup`` models from group specifications.

    Attributes:
        skipped: Child ``SchemaError``s collected by the last ``build()``.
    """

    def __init__(self, introspector: SchemaIntrospector):
        self._introspector = introspector
        self.skipped: list[SchemaError] = []

    async def build(self, spec: GroupSpec) -> TableGroup:
        """Build the group for *spec*.

        Raises:
            SchemaError: If the root table cannot be revisioned.
        """
        self.skipped = []
        root = await self._introspector.describe(spec.root)

        children: list[TableModel] = []
        for name in spec.children:
            try:
                child = await self._introspector.describe(name, parent=spec.root)
            except SchemaError as e:
                logger.warning("%s", e)
                self.skipped.append(e)
                continue
            children.append(child)

        structural_skip = root.is_revisioned
        existing_children: list[str] = []
        if structural_skip:
            logger.info("Revisioning already present on '%s'; reinstalling triggers", spec.root)
            for child in children:
                if await self._introspector.has_revision_table(child.name):
                    existing_children.append(child.name)
                else:
                    logger.info("Adding revision storage for new child '%s'", child.name)

        shape = WithChildren(children=children) if children else Single()

        return TableGroup(
            root=root,
            children=children,
            structural_skip=structural_skip,
            existing_children=existing_children,
            shape=shape,
        )
