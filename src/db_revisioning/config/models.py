"""Pydantic models for database and revisioning configuration."""

from pydantic import BaseModel, Field

from db_revisioning.schema.models import RevisionNaming
from db_revisioning.synth.dialect import Dialect


# ============================================================================
# Configuration Models
# ============================================================================


class DatabaseProfile(BaseModel):
    """Database connection profile from db.toml."""

    url: str
    description: str = ""
    db_password: str | None = None  # For [YOUR-PASSWORD] placeholder substitution
    provider: str = "mysql"


class RevisioningSettings(BaseModel):
    """The ``[revisioning]`` section of db.toml."""

    signal: Dialect = Dialect.STANDARD_SIGNAL
    user_variable: str = "auth_uid"
    naming: RevisionNaming = Field(default_factory=RevisionNaming)


class DatabaseConfig(BaseModel):
    """Complete configuration from db.toml."""

    profiles: dict[str, DatabaseProfile]
    revisioning: RevisioningSettings = Field(default_factory=RevisioningSettings)
