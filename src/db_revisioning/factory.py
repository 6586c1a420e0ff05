"""Database client factory.

Resolves the connection for a revisioning run:
1. Direct URL (``database_url=``): used as-is.
2. Profile mode (db.toml): explicit profile name, else the
   ``<PREFIX>DB_PROFILE`` environment variable.
"""

import os
from urllib.parse import quote

from db_revisioning.adapters.mysql import AsyncMySQLAdapter
from db_revisioning.config.loader import load_db_config
from db_revisioning.config.models import DatabaseConfig, DatabaseProfile


class ProfileNotFoundError(Exception):
    """Raised when no database profile is configured."""

    pass


def get_active_profile_name(env_prefix: str = "") -> str:
    """Get the active profile name from the environment.

    Args:
        env_prefix: Prefix for the environment variable, e.g. ``"SHOP_"``
            reads ``SHOP_DB_PROFILE``.

    Raises:
        ProfileNotFoundError: If the variable is not set
    """
    env_var = f"{env_prefix}DB_PROFILE"
    env_profile = os.environ.get(env_var)
    if env_profile:
        return env_profile

    raise ProfileNotFoundError(
        "No database profile configured.\n"
        f"Set {env_var}=<name> or pass --profile <name>."
    )


def get_active_profile(
    profile_name: str | None = None,
    env_prefix: str = "",
    config: DatabaseConfig | None = None,
) -> tuple[str, DatabaseProfile]:
    """Get active profile name and configuration.

    Returns:
        Tuple of (profile_name, DatabaseProfile)

    Raises:
        ProfileNotFoundError: If no profile is configured or the named
            profile is not in db.toml
        FileNotFoundError: If db.toml is needed and missing
    """
    if profile_name is None:
        profile_name = get_active_profile_name(env_prefix)
    if config is None:
        config = load_db_config()

    if profile_name not in config.profiles:
        available = ", ".join(config.profiles.keys()) or "(none)"
        raise ProfileNotFoundError(
            f"Profile '{profile_name}' not found in db.toml.\n"
            f"Available profiles: {available}"
        )

    return profile_name, config.profiles[profile_name]


def resolve_url(profile: DatabaseProfile) -> str:
    """Resolve profile URL with password substitution.

    Example:
        >>> resolve_url(DatabaseProfile(url="mysql://app:[YOUR-PASSWORD]@db/shop", db_password="p@ss"))
        'mysql://app:p%40ss@db/shop'
    """
    url = profile.url
    if profile.db_password and "[YOUR-PASSWORD]" in url:
        url = url.replace("[YOUR-PASSWORD]", quote(profile.db_password, safe=""))
    return url


async def get_adapter(
    profile_name: str | None = None,
    database_url: str | None = None,
    env_prefix: str = "",
    config: DatabaseConfig | None = None,
    echo_statements: bool = False,
) -> AsyncMySQLAdapter:
    """Create a MySQL adapter for a profile or URL.

    A new adapter is created on every call; the caller owns it and must
    ``await adapter.close()``.

    Args:
        profile_name: Profile from db.toml (ignored if database_url given)
        database_url: Direct connection URL
        env_prefix: Prefix for the ``DB_PROFILE`` environment variable
        config: Pre-loaded configuration (default: ./db.toml)
        echo_statements: Log every executed statement at INFO

    Raises:
        ProfileNotFoundError: If no URL and no profile can be resolved
    """
    if database_url is None:
        _, profile = get_active_profile(profile_name, env_prefix, config)
        database_url = resolve_url(profile)

    return AsyncMySQLAdapter(database_url=database_url, echo_statements=echo_statements)
