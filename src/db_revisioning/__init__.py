"""db-revisioning: revision history, revert and child cascades for MySQL tables.

Installs generated storage tables and row-level triggers so that every
insert and update of a table is recorded as a revision, any earlier
revision can be restored by writing its id back, and child tables follow
their parent's revisions.

Usage:
    from db_revisioning import AsyncMySQLAdapter, Orchestrator, GroupSpec

    adapter = AsyncMySQLAdapter("mysql://root@localhost/shop")
    result = await Orchestrator(adapter).install([GroupSpec.parse("orders(order_lines)")])
"""

__version__ = "0.1.0"

# Adapters
from db_revisioning.adapters.base import DatabaseClient
from db_revisioning.adapters.mysql import AsyncMySQLAdapter

# Config
from db_revisioning.config.loader import load_db_config
from db_revisioning.config.models import DatabaseConfig, DatabaseProfile, RevisioningSettings

# Errors
from db_revisioning.errors import (
    ImmutablePrimaryKeyError,
    RevisioningError,
    SchemaError,
    StatementError,
)

# Factory
from db_revisioning.factory import ProfileNotFoundError, get_adapter, resolve_url

# Orchestration
from db_revisioning.orchestrator import GroupResult, Orchestrator, RevisioningResult

# Schema models
from db_revisioning.schema.models import GroupSpec, RevisionNaming, TableGroup

# Synthesis
from db_revisioning.synth.dialect import Dialect

__all__ = [
    # Adapters
    "DatabaseClient",
    "AsyncMySQLAdapter",
    # Config
    "load_db_config",
    "DatabaseProfile",
    "DatabaseConfig",
    "RevisioningSettings",
    # Errors
    "RevisioningError",
    "SchemaError",
    "StatementError",
    "ImmutablePrimaryKeyError",
    # Factory
    "get_adapter",
    "ProfileNotFoundError",
    "resolve_url",
    # Orchestration
    "Orchestrator",
    "GroupResult",
    "RevisioningResult",
    # Schema models
    "GroupSpec",
    "RevisionNaming",
    "TableGroup",
    "Dialect",
]
