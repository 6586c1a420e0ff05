"""Schema introspection and revisioning group models.

Provides live MySQL introspection (``SchemaIntrospector``), the group
builder that validates tables for revisioning (``RevisionModelBuilder``),
and the models both produce.

Usage:
    from db_revisioning.schema import SchemaIntrospector, RevisionModelBuilder
    from db_revisioning.schema import GroupSpec, TableGroup, RevisionNaming
"""

from db_revisioning.schema.builder import RevisionModelBuilder
from db_revisioning.schema.introspector import SchemaIntrospector
from db_revisioning.schema.models import (
    ChildLink,
    ColumnModel,
    GroupSpec,
    RevisionNaming,
    Single,
    TableGroup,
    TableModel,
    TriggerShape,
    WithChildren,
)

__all__ = [
    "SchemaIntrospector",
    "RevisionModelBuilder",
    "RevisionNaming",
    "ColumnModel",
    "ChildLink",
    "TableModel",
    "GroupSpec",
    "Single",
    "WithChildren",
    "TriggerShape",
    "TableGroup",
]
