"""CLI for journal backup, restore, and background backup scheduling.

Usage:
    journal-backup backup
    journal-backup backup --automatic
    journal-backup restore ~/Journal/Documents/journal-backup-2024-01-15T10-30-00-000Z.zip --yes
    journal-backup history
    journal-backup status
    journal-backup run-auto
    journal-backup frequency daily
    journal-backup location --mode share
    journal-backup serve

Commands:
    backup     - Create a backup of every journal entry now
    restore    - Restore entries from a .json or .zip backup (no overwrites)
    history    - Show recent backup and restore runs
    status     - Show backup preferences and last backup time
    run-auto   - Run the background backup once (cadence + retries)
    frequency  - Set the automatic backup frequency
    location   - Show or change where backups go
    serve      - Run the background backup scheduler until interrupted
"""

import argparse
import asyncio
import logging
import sys
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from journal_backup.adapters.sqlite import AsyncSqliteStore
from journal_backup.backup.archiver import is_compressed
from journal_backup.backup.models import BackupStatus
from journal_backup.backup.service import BackupService
from journal_backup.config.loader import DEFAULT_CONFIG_NAME, default_config, load_config
from journal_backup.config.models import BackupFrequency, DestinationMode, JournalConfig
from journal_backup.config.store import JsonSettingsStore
from journal_backup.errors import JournalBackupError, SchedulerPermissionError
from journal_backup.factory import build_service, build_settings_store, open_store
from journal_backup.formatting import format_file_size, format_last_backup_time
from journal_backup.tasks.background import (
    BackgroundResult,
    BackupTaskManager,
    run_background_backup,
)
from journal_backup.tasks.scheduler import APSchedulerPeriodicScheduler

console = Console()

DEFAULT_HOME = Path.home() / ".journal-backup"


# ============================================================================
# Session setup (CLI-internal helpers)
# ============================================================================


def _load_config(args: argparse.Namespace) -> JournalConfig:
    """Resolve configuration from ``--config``, ``./journal.toml``, or defaults.

    Raises:
        FileNotFoundError: If ``--config`` names a missing file.
        ValueError: If the config file is invalid.
    """
    config_path = getattr(args, "config", None)
    if config_path:
        return load_config(Path(config_path))

    local = Path.cwd() / DEFAULT_CONFIG_NAME
    if local.exists():
        return load_config(local)

    return default_config(DEFAULT_HOME)


@dataclass
class Session:
    config: JournalConfig
    settings: JsonSettingsStore
    service: BackupService


@asynccontextmanager
async def _session(args: argparse.Namespace) -> AsyncIterator[Session]:
    """Open the store and wire the service; close the store on exit."""
    config = _load_config(args)
    store = await open_store(config)
    settings = build_settings_store(config)
    try:
        yield Session(
            config=config,
            settings=settings,
            service=build_service(config, store, settings=settings),
        )
    finally:
        if isinstance(store, AsyncSqliteStore):
            await store.close()


def _print_no_store_notice(session: Session) -> None:
    if session.service.no_store_mode:
        console.print(
            "[yellow]No journal database available; backup and restore are disabled.[/yellow]"
        )


# ============================================================================
# Async command implementations
# ============================================================================


async def _async_backup(args: argparse.Namespace) -> int:
    """Async implementation for backup command.

    Args:
        args: Parsed arguments with automatic flag.

    Returns:
        0 on success, 1 on failure.
    """
    async with _session(args) as session:
        _print_no_store_notice(session)
        manager = BackupTaskManager(
            APSchedulerPeriodicScheduler(), session.service, session.settings
        )

        console.print("Creating backup...", style="dim")
        try:
            if args.automatic:
                location = await manager.trigger_backup_now()
            else:
                location = await manager.create_manual_backup()
        except JournalBackupError as e:
            console.print(f"[bold red]x[/bold red] {escape(str(e))}")
            if e.__cause__ is not None:
                console.print(f"  [dim]{escape(str(e.__cause__))}[/dim]")
            return 1

        console.print(f"[bold green]v[/bold green] Backup saved: [cyan]{location}[/cyan]")
        return 0


async def _async_restore(args: argparse.Namespace) -> int:
    """Async implementation for restore command.

    Without ``--yes`` only describes what would be restored.

    Args:
        args: Parsed arguments with path and yes.

    Returns:
        0 on success, 1 on failure or when not confirmed.
    """
    backup_path = Path(args.path).expanduser()
    if not backup_path.exists():
        console.print(f"[red]Error: Backup file not found: {backup_path}[/red]")
        return 1

    compressed = is_compressed(backup_path)

    if not args.yes:
        kind = "compressed" if compressed else "uncompressed"
        console.print(
            f"Would restore from {kind} backup [cyan]{backup_path}[/cyan] "
            f"({format_file_size(backup_path.stat().st_size)})."
        )
        console.print("[dim]Existing entries are never overwritten.[/dim]")
        console.print("[yellow]Re-run with --yes to restore.[/yellow]")
        return 1

    async with _session(args) as session:
        _print_no_store_notice(session)
        try:
            if compressed:
                outcome = await session.service.restore_from_backup(
                    b"", is_compressed=True, archive_path=backup_path
                )
            else:
                outcome = await session.service.restore_from_backup(backup_path.read_bytes())
        except JournalBackupError as e:
            console.print(f"[bold red]x[/bold red] {escape(str(e))}")
            return 1

    console.print()
    console.print(
        f"[bold green]v[/bold green] Restore complete: "
        f"[bold]{outcome.restored}[/bold] restored, "
        f"[bold]{outcome.skipped}[/bold] skipped"
    )
    if outcome.errors:
        console.print(f"\n[yellow]{len(outcome.errors)} entries could not be restored:[/yellow]")
        for error in outcome.errors:
            console.print(f"  [dim]{escape(error)}[/dim]")

    return 0


async def _async_history(args: argparse.Namespace) -> int:
    """Async implementation for history command.

    Returns:
        0 always (informational command).
    """
    async with _session(args) as session:
        _print_no_store_notice(session)
        history = await session.service.get_backup_history(args.limit)

    if not history:
        console.print("[yellow]No backups recorded yet.[/yellow]")
        return 0

    table = Table(title="Backup History", show_header=True, header_style="bold")
    table.add_column("When")
    table.add_column("Type")
    table.add_column("Status")
    table.add_column("Size", justify="right")
    table.add_column("Location")

    for entry in history:
        status_style = "green" if entry.status is BackupStatus.SUCCESS else "red"
        table.add_row(
            entry.occurred_at.strftime("%Y-%m-%d %H:%M"),
            entry.kind.value,
            f"[{status_style}]{entry.status.value}[/{status_style}]",
            format_file_size(entry.size_bytes) if entry.size_bytes else "-",
            entry.location,
        )

    console.print(table)
    return 0


async def _async_status(args: argparse.Namespace) -> int:
    """Async implementation for status command.

    Returns:
        0 always (informational command).
    """
    async with _session(args) as session:
        app_settings = await session.settings.load_app_settings()
        backup_settings = await session.service.get_backup_settings()
        location = await session.service.get_backup_location_description()

        table = Table(title="Backup Status", show_header=False)
        table.add_column("Key", style="dim")
        table.add_column("Value")

        table.add_row("Platform", session.config.platform.value)
        if session.service.no_store_mode:
            table.add_row("Database", "[yellow]unavailable (no-store mode)[/yellow]")
        else:
            table.add_row("Database", str(session.config.storage.database))
        table.add_row("Location", location)
        table.add_row("Compression", "on" if backup_settings.compress else "off")
        table.add_row("Auto-backup", "enabled" if backup_settings.auto_backup_enabled else "disabled")
        table.add_row("Frequency", app_settings.auto_backup_frequency.value)
        table.add_row(
            "Last backup",
            f"[bold cyan]{format_last_backup_time(app_settings.last_backup_time)}[/bold cyan]",
        )

    console.print(table)
    return 0


async def _async_run_auto(args: argparse.Namespace) -> int:
    """Async implementation for run-auto command.

    Returns:
        0 unless the background backup failed.
    """
    async with _session(args) as session:
        result = await run_background_backup(session.service, session.settings)

    if result is BackgroundResult.NEW_DATA:
        console.print("[bold green]v[/bold green] Background backup completed")
    elif result is BackgroundResult.NO_DATA:
        console.print("[dim]No backup needed.[/dim]")
    else:
        console.print("[bold red]x[/bold red] Background backup failed")
        return 1
    return 0


async def _async_frequency(args: argparse.Namespace) -> int:
    """Async implementation for frequency command.

    Returns:
        0 on success, 1 if the setting could not be saved.
    """
    frequency = BackupFrequency(args.frequency)
    config = _load_config(args)
    settings = build_settings_store(config)
    try:
        await settings.set("auto_backup_frequency", frequency)
    except JournalBackupError as e:
        console.print(f"[bold red]x[/bold red] {escape(str(e))}")
        return 1

    console.print(f"Backup frequency set to [bold cyan]{frequency.value}[/bold cyan]")
    if frequency is not BackupFrequency.OFF:
        console.print(
            "[dim]Run[/dim] [cyan]journal-backup serve[/cyan] [dim]to schedule it.[/dim]"
        )
    return 0


async def _async_location(args: argparse.Namespace) -> int:
    """Async implementation for location command.

    Returns:
        0 on success, 1 if the settings could not be saved.
    """
    changes: dict = {}
    if args.mode:
        changes["destination_mode"] = DestinationMode(args.mode)
    if args.path:
        changes["custom_path"] = args.path
    if args.compress is not None:
        changes["compress"] = args.compress

    async with _session(args) as session:
        if changes:
            try:
                await session.service.update_backup_settings(**changes)
            except JournalBackupError as e:
                console.print(f"[bold red]x[/bold red] {escape(str(e))}")
                return 1
        description = await session.service.get_backup_location_description()

    console.print(f"Backups go to: [bold cyan]{description}[/bold cyan]")
    return 0


async def _async_serve(args: argparse.Namespace) -> int:
    """Async implementation for serve command.

    Registers the background task at the stored frequency and keeps the
    event loop alive until interrupted.

    Returns:
        0 on clean shutdown, 1 if the task could not be registered.
    """
    async with _session(args) as session:
        scheduler = APSchedulerPeriodicScheduler()
        manager = BackupTaskManager(scheduler, session.service, session.settings)
        app_settings = await session.settings.load_app_settings()
        frequency = app_settings.auto_backup_frequency

        if frequency is BackupFrequency.OFF:
            console.print("[yellow]Auto-backup is off.[/yellow]")
            console.print(
                "[dim]Run[/dim] [cyan]journal-backup frequency daily[/cyan] [dim]first.[/dim]"
            )
            return 1

        try:
            await manager.register_backup_task(frequency)
        except SchedulerPermissionError as e:
            console.print(f"[bold red]x[/bold red] {escape(str(e))}")
            return 1

        console.print(
            f"[bold green]v[/bold green] Background backup scheduled "
            f"([cyan]{frequency.value}[/cyan]). Press Ctrl+C to stop."
        )
        try:
            await asyncio.Event().wait()
        finally:
            await manager.unregister_backup_task()
            scheduler.shutdown()

    return 0


# ============================================================================
# Sync command wrappers
# ============================================================================


def cmd_backup(args: argparse.Namespace) -> int:
    """Create a backup now.

    Wraps the async implementation with ``asyncio.run()``.
    """
    return asyncio.run(_async_backup(args))


def cmd_restore(args: argparse.Namespace) -> int:
    """Restore entries from a backup file.

    Wraps the async implementation with ``asyncio.run()``.
    """
    return asyncio.run(_async_restore(args))


def cmd_history(args: argparse.Namespace) -> int:
    return asyncio.run(_async_history(args))


def cmd_status(args: argparse.Namespace) -> int:
    return asyncio.run(_async_status(args))


def cmd_run_auto(args: argparse.Namespace) -> int:
    return asyncio.run(_async_run_auto(args))


def cmd_frequency(args: argparse.Namespace) -> int:
    return asyncio.run(_async_frequency(args))


def cmd_location(args: argparse.Namespace) -> int:
    return asyncio.run(_async_location(args))


def cmd_serve(args: argparse.Namespace) -> int:
    """Run the background scheduler until Ctrl+C."""
    try:
        return asyncio.run(_async_serve(args))
    except KeyboardInterrupt:
        console.print("\n[dim]Scheduler stopped.[/dim]")
        return 0


# ============================================================================
# Main entry point
# ============================================================================


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="journal-backup",
        description="Back up and restore journal entries",
    )

    # Global options
    parser.add_argument(
        "--config",
        "-c",
        default=None,
        help=f"Path to {DEFAULT_CONFIG_NAME} (default: ./{DEFAULT_CONFIG_NAME} or ~/.journal-backup)",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    # backup command
    p_backup = subparsers.add_parser(
        "backup",
        help="Create a backup of every journal entry now",
    )
    p_backup.add_argument(
        "--automatic",
        action="store_true",
        help="Record the run as automatic instead of manual",
    )
    p_backup.set_defaults(func=cmd_backup)

    # restore command
    p_restore = subparsers.add_parser(
        "restore",
        help="Restore entries from a .json or .zip backup",
    )
    p_restore.add_argument("path", help="Backup file to restore from")
    p_restore.add_argument(
        "--yes",
        "-y",
        action="store_true",
        help="Actually perform the restore",
    )
    p_restore.set_defaults(func=cmd_restore)

    # history command
    p_history = subparsers.add_parser(
        "history",
        help="Show recent backup and restore runs",
    )
    p_history.add_argument(
        "--limit",
        type=int,
        default=20,
        help="Number of runs to show (max 20)",
    )
    p_history.set_defaults(func=cmd_history)

    # status command
    p_status = subparsers.add_parser(
        "status",
        help="Show backup preferences and last backup time",
    )
    p_status.set_defaults(func=cmd_status)

    # run-auto command
    p_run_auto = subparsers.add_parser(
        "run-auto",
        help="Run the background backup once (cadence check and retries)",
    )
    p_run_auto.set_defaults(func=cmd_run_auto)

    # frequency command
    p_frequency = subparsers.add_parser(
        "frequency",
        help="Set the automatic backup frequency",
    )
    p_frequency.add_argument(
        "frequency",
        choices=[f.value for f in BackupFrequency],
    )
    p_frequency.set_defaults(func=cmd_frequency)

    # location command
    p_location = subparsers.add_parser(
        "location",
        help="Show or change where backups go",
    )
    p_location.add_argument(
        "--mode",
        choices=[m.value for m in DestinationMode],
        help="Destination mode",
    )
    p_location.add_argument(
        "--path",
        help="Custom destination path (custom mode)",
    )
    p_location.add_argument(
        "--compress",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Compress backups into .zip archives",
    )
    p_location.set_defaults(func=cmd_location)

    # serve command
    p_serve = subparsers.add_parser(
        "serve",
        help="Run the background backup scheduler until interrupted",
    )
    p_serve.set_defaults(func=cmd_serve)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point.

    Parses command line arguments and dispatches to appropriate handler.

    Returns:
        Exit code (0 for success, non-zero for errors).
    """
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )

    try:
        return args.func(args)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        return 1


if __name__ == "__main__":
    sys.exit(main())
