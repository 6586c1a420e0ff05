"""CLI module for installing and removing table revisioning.

Provides commands to add revision history to MySQL table groups, preview
the statements, remove revisioning again, and list configured profiles.

Usage:
    DB_PROFILE=local db-revisioning install "orders(order_lines)" customers
    db-revisioning --profile local plan orders
    db-revisioning --database-url mysql://root@localhost/shop --signal legacy install orders
    db-revisioning remove "orders(order_lines)" --confirm
    db-revisioning profiles
    db-revisioning --profile local connect

A group is written ``root(child, ...)`` or ``root,child,...``.

Commands:
    install   - Add revisioning to table groups
    plan      - Show the statements install would execute
    remove    - Remove revisioning from table groups
    profiles  - List available profiles
    connect   - Check that the database answers
"""

import argparse
import asyncio
import logging
import sys

from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.syntax import Syntax
from rich.table import Table

from db_revisioning.adapters.mysql import AsyncMySQLAdapter
from db_revisioning.config.loader import load_db_config
from db_revisioning.config.models import DatabaseConfig
from db_revisioning.errors import StatementError
from db_revisioning.factory import ProfileNotFoundError, get_active_profile_name, get_adapter
from db_revisioning.orchestrator import Orchestrator, RevisioningResult
from db_revisioning.schema.models import GroupSpec
from db_revisioning.synth.dialect import Dialect

console = Console()

_STATUS_STYLES = {
    "installed": "green",
    "removed": "green",
    "skipped": "yellow",
    "failed": "red",
}


# ============================================================================
# Helpers
# ============================================================================


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )
    # Statements are echoed by the adapter
    logging.getLogger("sqlalchemy").setLevel(logging.WARNING)


def _load_config(args: argparse.Namespace) -> DatabaseConfig:
    """Load db.toml; optional when a URL is given on the command line."""
    try:
        return load_db_config()
    except FileNotFoundError:
        if args.database_url:
            return DatabaseConfig(profiles={})
        raise


def _parse_groups(values: list[str]) -> list[GroupSpec]:
    return [GroupSpec.parse(value) for value in values]


def _print_result(result: RevisioningResult, title: str) -> None:
    table = Table(title=title, show_header=True, header_style="bold")
    table.add_column("Group")
    table.add_column("Status")
    table.add_column("Statements", justify="right")
    table.add_column("Details")

    for group in result.groups:
        style = _STATUS_STYLES[group.status]
        notes = [group.error] if group.error else []
        if group.structural_skip:
            notes.append("root already revisioned")
        notes.extend(group.skipped_children)
        table.add_row(
            group.group,
            f"[{style}]{group.status}[/{style}]",
            str(len(group.statements)),
            escape("\n".join(notes)),
        )

    console.print(table)

    skipped = result.by_status("skipped")
    failed = result.by_status("failed")
    if skipped or failed:
        console.print(
            f"[yellow]{len(skipped)} skipped[/yellow], [red]{len(failed)} failed[/red] "
            f"of {len(result.groups)} groups"
        )


def _print_statements(result: RevisioningResult) -> None:
    for group in result.groups:
        console.print()
        console.print(f"[bold]-- {group.group}[/bold]")
        for sql in group.statements:
            console.print(Syntax(sql + ";", "sql", word_wrap=True))


async def _open_adapter(args: argparse.Namespace) -> tuple[DatabaseConfig, AsyncMySQLAdapter] | None:
    """Load config and create the adapter, printing any setup error."""
    try:
        config = _load_config(args)
        adapter = await get_adapter(
            profile_name=args.profile,
            database_url=args.database_url,
            env_prefix=args.env_prefix,
            config=config,
            echo_statements=args.verbose,
        )
    except (FileNotFoundError, ProfileNotFoundError) as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        return None
    return config, adapter


# ============================================================================
# Async command implementations
# ============================================================================


async def _async_connect(args: argparse.Namespace) -> int:
    """Async implementation for connect command.

    Returns:
        0 if the server answers, 1 otherwise.
    """
    opened = await _open_adapter(args)
    if opened is None:
        return 1
    _, adapter = opened

    console.print("Connecting to database...", style="dim")
    try:
        connected = await adapter.test_connection()
    except StatementError as e:
        console.print(f"[bold red]x[/bold red] {escape(str(e))}")
        return 1
    finally:
        await adapter.close()

    if not connected:
        console.print("[bold red]x[/bold red] Server did not answer SELECT 1")
        return 1

    if args.database_url:
        target = "database URL"
    else:
        target = args.profile or get_active_profile_name(args.env_prefix)
    console.print(f"[bold green]v[/bold green] Connected to [bold cyan]{escape(target)}[/bold cyan]")
    return 0


async def _run_orchestrator(args: argparse.Namespace, action: str) -> RevisioningResult | None:
    """Connect, run *action* on the orchestrator and close the adapter.

    Returns ``None`` (after printing the error) if no connection could be
    configured.
    """
    try:
        specs = _parse_groups(args.groups)
    except ValueError as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        return None

    opened = await _open_adapter(args)
    if opened is None:
        return None
    config, adapter = opened

    settings = config.revisioning
    orchestrator = Orchestrator(
        adapter,
        dialect=Dialect(args.signal) if args.signal else settings.signal,
        naming=settings.naming,
        user_variable=args.user_variable or settings.user_variable,
    )

    try:
        if action == "install":
            return await orchestrator.install(specs)
        if action == "plan":
            return await orchestrator.plan(specs)
        return await orchestrator.remove(specs, dry_run=not args.confirm)
    except StatementError as e:
        console.print(f"[bold red]x[/bold red] {escape(str(e))}")
        return None
    finally:
        await adapter.close()


async def _async_install(args: argparse.Namespace) -> int:
    """Async implementation for install command.

    Returns:
        0 if every group was installed, 1 otherwise.
    """
    result = await _run_orchestrator(args, "install")
    if result is None:
        return 1

    _print_result(result, "Install Revisioning")
    return 0 if result.success else 1


async def _async_plan(args: argparse.Namespace) -> int:
    """Async implementation for plan command."""
    result = await _run_orchestrator(args, "plan")
    if result is None:
        return 1

    _print_statements(result)
    console.print()
    _print_result(result, "Revisioning Plan")
    return 0 if result.success else 1


async def _async_remove(args: argparse.Namespace) -> int:
    """Async implementation for remove command.

    Without ``--confirm`` only the statements are shown.
    """
    result = await _run_orchestrator(args, "remove")
    if result is None:
        return 1

    if result.dry_run:
        _print_statements(result)
        console.print()
        console.print(
            "[dim]To remove revisioning, add[/dim] [cyan]--confirm[/cyan] "
            "[dim]flag.[/dim]"
        )
        return 0 if result.success else 1

    _print_result(result, "Remove Revisioning")
    return 0 if result.success else 1


# ============================================================================
# Command handlers
# ============================================================================


def cmd_install(args: argparse.Namespace) -> int:
    """Install revisioning on table groups.

    Wraps the async implementation with ``asyncio.run()``.
    """
    return asyncio.run(_async_install(args))


def cmd_plan(args: argparse.Namespace) -> int:
    """Show the statements install would execute.

    Wraps the async implementation with ``asyncio.run()``.
    """
    return asyncio.run(_async_plan(args))


def cmd_remove(args: argparse.Namespace) -> int:
    """Remove revisioning from table groups.

    Wraps the async implementation with ``asyncio.run()``.
    """
    return asyncio.run(_async_remove(args))


def cmd_connect(args: argparse.Namespace) -> int:
    """Check the connection to the configured database.

    Wraps the async implementation with ``asyncio.run()``.
    """
    return asyncio.run(_async_connect(args))


def cmd_profiles(args: argparse.Namespace) -> int:
    """List available database profiles from db.toml.

    Returns:
        0 on success, 1 if db.toml not found.
    """
    try:
        config = load_db_config()
    except FileNotFoundError as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        return 1

    table = Table(title="Database Profiles", show_header=True, header_style="bold")
    table.add_column("Profile")
    table.add_column("Provider")
    table.add_column("Description")

    for name, profile in config.profiles.items():
        table.add_row(name, profile.provider, profile.description or "")

    console.print(table)
    console.print(
        f"\n[dim]Trigger signal:[/dim] {config.revisioning.signal.value}  "
        f"[dim]User variable:[/dim] @{config.revisioning.user_variable}"
    )
    return 0


# ============================================================================
# Main entry point
# ============================================================================


def _add_group_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "groups",
        nargs="+",
        metavar="GROUP",
        help='Table group, e.g. "orders(order_lines, order_notes)" or orders',
    )


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point.

    Parses command line arguments and dispatches to appropriate handler.

    Returns:
        Exit code (0 for success, non-zero for errors).
    """
    parser = argparse.ArgumentParser(
        prog="db-revisioning",
        description="Add revision history and revert to MySQL tables using triggers",
    )

    # Global options
    parser.add_argument(
        "--env-prefix",
        default="",
        help=(
            "Prefix for environment variable lookup "
            "(e.g., --env-prefix APP_ reads APP_DB_PROFILE)"
        ),
    )
    parser.add_argument(
        "--profile",
        "-p",
        default=None,
        help="Profile from db.toml (default: <PREFIX>DB_PROFILE)",
    )
    parser.add_argument(
        "--database-url",
        default=None,
        help="Connect to this URL instead of a profile",
    )
    parser.add_argument(
        "--signal",
        choices=[d.value for d in Dialect],
        default=None,
        help="How triggers raise errors: standard (SIGNAL) or legacy (pre-5.5 servers)",
    )
    parser.add_argument(
        "--user-variable",
        default=None,
        help="Session variable holding the acting user id (default: auth_uid)",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Log every executed statement",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    # install command
    p_install = subparsers.add_parser(
        "install",
        help="Add revisioning to table groups",
    )
    _add_group_arguments(p_install)
    p_install.set_defaults(func=cmd_install)

    # plan command
    p_plan = subparsers.add_parser(
        "plan",
        help="Show the statements install would execute",
    )
    _add_group_arguments(p_plan)
    p_plan.set_defaults(func=cmd_plan)

    # remove command
    p_remove = subparsers.add_parser(
        "remove",
        help="Remove revisioning from table groups",
    )
    _add_group_arguments(p_remove)
    p_remove.add_argument(
        "--confirm",
        action="store_true",
        help="Actually drop triggers, tables and columns",
    )
    p_remove.set_defaults(func=cmd_remove)

    # profiles command
    p_profiles = subparsers.add_parser(
        "profiles",
        help="List available profiles",
    )
    p_profiles.set_defaults(func=cmd_profiles)

    # connect command
    p_connect = subparsers.add_parser(
        "connect",
        help="Check that the database answers",
    )
    p_connect.set_defaults(func=cmd_connect)

    args = parser.parse_args(argv)
    _configure_logging(args.verbose)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
