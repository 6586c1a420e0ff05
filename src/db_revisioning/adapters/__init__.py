"""Database adapters package.

Provides the ``DatabaseClient`` Protocol and the async MySQL adapter
used to execute synthesized revisioning statements.

Usage:
    from db_revisioning.adapters import DatabaseClient, AsyncMySQLAdapter
"""

from db_revisioning.adapters.base import DatabaseClient
from db_revisioning.adapters.mysql import AsyncMySQLAdapter

__all__ = [
    "DatabaseClient",
    "AsyncMySQLAdapter",
]
