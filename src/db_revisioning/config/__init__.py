"""Configuration management: profiles, TOML loading, and config models.

Usage:
    >>> from db_revisioning.config import load_db_config, DatabaseProfile, DatabaseConfig
"""

from db_revisioning.config.loader import load_db_config
from db_revisioning.config.models import DatabaseConfig, DatabaseProfile, RevisioningSettings

__all__ = ["load_db_config", "DatabaseConfig", "DatabaseProfile", "RevisioningSettings"]
