"""
Command-line interface for Notion ↔ Google Calendar Sync.
"""

import logging
from dataclasses import dataclass
from dataclasses import field
from datetime import datetime
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from notion_gcal_sync.config import load_config
from notion_gcal_sync.config import read_config_file
from notion_gcal_sync.db import clear_cursors
from notion_gcal_sync.db import query_cursor_status
from notion_gcal_sync.gcal_client import GoogleCalendarClient
from notion_gcal_sync.gcal_client import build_calendar_service
from notion_gcal_sync.models import DEFAULT_CONFIG
from notion_gcal_sync.models import DEFAULT_STATE_DB
from notion_gcal_sync.models import CalendarSyncError
from notion_gcal_sync.models import SyncConfig
from notion_gcal_sync.notion_client import NotionClient
from notion_gcal_sync.sync import ReconciliationEngine

# ---------------------------------------------------------------------------
# Typer app
# ---------------------------------------------------------------------------

app = typer.Typer(
    no_args_is_help=True,
    rich_markup_mode="rich",
    help="Two-way sync between Notion databases and Google Calendar.",
)

console = Console()


# ---------------------------------------------------------------------------
# Global state shared across subcommands
# ---------------------------------------------------------------------------


@dataclass
class _State:
    config_path: Path = field(default_factory=lambda: DEFAULT_CONFIG)
    state_db: Path = field(default_factory=lambda: DEFAULT_STATE_DB)
    verbose: bool = False


state = _State()


@app.callback()
def _global(
    config: Annotated[
        Path,
        typer.Option("--config", "-c", help=f"Config file path (default: {DEFAULT_CONFIG})"),
    ] = DEFAULT_CONFIG,
    state_db: Annotated[
        Path,
        typer.Option("--state-db", help=f"State DB path (default: {DEFAULT_STATE_DB})"),
    ] = DEFAULT_STATE_DB,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable verbose debug output"),
    ] = False,
) -> None:
    state.config_path = config
    state.state_db = state_db
    state.verbose = verbose
    _setup_logging(verbose)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False, console=console)],
    )
    # googleapiclient and httpx log every request at INFO
    if not verbose:
        logging.getLogger("googleapiclient").setLevel(logging.WARNING)
        logging.getLogger("httpx").setLevel(logging.WARNING)


def _build_config(**overrides) -> SyncConfig:
    try:
        return load_config(
            state.config_path, state_db_path=state.state_db, verbose=state.verbose, **overrides
        )
    except CalendarSyncError as e:
        console.print(f"[bold red]Error:[/] {e}")
        raise typer.Exit(1) from None


def _connect(cfg: SyncConfig) -> tuple[NotionClient, GoogleCalendarClient]:
    try:
        service = build_calendar_service(cfg.google_credentials)
    except CalendarSyncError as e:
        console.print(f"[bold red]Error:[/] {e}")
        raise typer.Exit(1) from None
    return NotionClient(cfg.notion_token), GoogleCalendarClient(service, timezone=cfg.timezone)


def _run_sync(cfg: SyncConfig, only: list[str] | None) -> None:
    """Core sync runner: display panel, confirm, run, show results."""
    from notion_gcal_sync.preflight import run_preflight_checks

    unknown = [name for name in only or [] if name not in cfg.databases]
    if unknown:
        console.print(f"[bold red]Error:[/] unknown database(s): {', '.join(unknown)}")
        raise typer.Exit(1)

    notion_client, calendar_client = _connect(cfg)
    with notion_client:
        if not run_preflight_checks(cfg, console, notion_client, calendar_client, only):
            raise typer.Exit(1)

        # -- Info panel ------------------------------------------------------
        info = Text()
        info.append("  Databases: ", style="bold")
        selected = [n for n in cfg.databases if not only or n in only]
        info.append(", ".join(selected) + "\n")
        info.append("  Calendars: ", style="bold")
        info.append(", ".join(cfg.calendars))
        info.append(f" [default: {cfg.default_calendar}]\n", style="dim")
        info.append("  Operation: ")
        if cfg.full_resync:
            info.append("FULL RESYNC (ignore stored cursors)", style="bold yellow")
        else:
            info.append("SYNC", style="bold green")
        if cfg.dry_run:
            info.append("\n  Mode:      ")
            info.append("DRY RUN", style="bold magenta")

        console.print(Panel(info, title="[bold]Notion ↔ Google Calendar Sync[/bold]"))

        # -- Confirmation ----------------------------------------------------
        if not cfg.yes and not cfg.dry_run:
            typer.confirm("Proceed?", abort=True)

        # -- Run -------------------------------------------------------------
        try:
            stats = ReconciliationEngine(cfg, notion_client, calendar_client).run(only)
        except CalendarSyncError as e:
            console.print(f"[bold red]Sync failed:[/] {e}")
            raise typer.Exit(1) from None
        except KeyboardInterrupt:
            console.print("[yellow]Interrupted by user[/]")
            raise typer.Exit(130) from None
        except Exception as e:
            console.print_exception()
            console.print(f"[bold red]Unexpected error:[/] {e}")
            raise typer.Exit(1) from e

    # -- Results table -------------------------------------------------------
    results = Table.grid(padding=(0, 2))
    results.add_column(style="bold")
    results.add_column(justify="right")
    results.add_row("Added", str(stats.added))
    results.add_row("Modified", str(stats.modified))
    results.add_row("Deleted", str(stats.deleted))
    results.add_row("Archived", str(stats.archived))
    results.add_row("Skipped", str(stats.skipped))
    error_val = Text(str(stats.errors))
    if stats.errors == 0:
        error_val.append(" ✓", style="green")
    else:
        error_val.stylize("bold red")
    results.add_row("Errors", error_val)
    if stats.failed_databases:
        results.add_row("Failed", Text(", ".join(stats.failed_databases), style="bold red"))

    console.print(Panel(results, title="[bold]Results[/bold]", expand=False))

    if stats.errors:
        raise typer.Exit(1)


# ---------------------------------------------------------------------------
# Subcommand: sync
# ---------------------------------------------------------------------------

_DATABASE_OPT = Annotated[
    list[str] | None,
    typer.Option(
        "--database", "-d", help="Only sync this logical database (repeatable; default: all)"
    ),
]
_DRY_RUN = Annotated[bool, typer.Option("--dry-run", "-n", help="Preview changes without applying")]
_YES = Annotated[bool, typer.Option("--yes", "-y", help="Skip confirmation prompt")]


@app.command()
def sync(
    database: _DATABASE_OPT = None,
    full_resync: Annotated[
        bool,
        typer.Option("--full-resync", help="Ignore stored cursors and list the whole window"),
    ] = False,
    dry_run: _DRY_RUN = False,
    yes: _YES = False,
) -> None:
    """Run deletion, push and pull for every configured database."""
    cfg = _build_config(full_resync=full_resync, dry_run=dry_run, yes=yes)
    _run_sync(cfg, database or None)


# ---------------------------------------------------------------------------
# Subcommand: reset
# ---------------------------------------------------------------------------


@app.command()
def reset(
    database: Annotated[
        str | None,
        typer.Option("--database", "-d", help="Only forget cursors of this logical database"),
    ] = None,
    dry_run: _DRY_RUN = False,
    yes: _YES = False,
) -> None:
    """Forget stored sync cursors so the next sync lists the full window."""
    parser = read_config_file(state.config_path)
    database_id = None
    if database:
        if not parser.has_option("databases", database):
            console.print(f"[bold red]Error:[/] unknown database: {database}")
            raise typer.Exit(1)
        database_id = parser.get("databases", database)

    count = clear_cursors(state.state_db, database_id, dry_run=True)
    if count == 0:
        console.print("[yellow]No stored cursors to clear.[/]")
        return

    target = f"database [cyan]{database}[/]" if database else "[cyan]all databases[/]"
    if dry_run:
        console.print(f"[magenta][DRY RUN][/] Would clear {count} cursor(s) for {target}")
        return
    if not yes:
        typer.confirm(f"Clear {count} cursor(s) for {database or 'all databases'}?", abort=True)

    clear_cursors(state.state_db, database_id)
    console.print(f"[green]Cleared {count} cursor(s) for[/] {target}")


# ---------------------------------------------------------------------------
# Subcommand: status
# ---------------------------------------------------------------------------


@app.command()
def status() -> None:
    """Show sync configuration and state database summary."""
    config_exists = state.config_path.exists()
    db_exists = state.state_db.exists()

    cfg_info = Text()
    cfg_info.append("  Config:   ", style="bold")
    cfg_info.append(str(state.config_path) + " ")
    cfg_info.append(
        "✓" if config_exists else "(not found)", style="green" if config_exists else "red"
    )
    cfg_info.append("\n  State DB: ", style="bold")
    cfg_info.append(str(state.state_db) + " ")
    cfg_info.append("✓" if db_exists else "(not found)", style="green" if db_exists else "yellow")

    parser = read_config_file(state.config_path)
    databases = dict(parser["databases"]) if parser.has_section("databases") else {}
    calendars = dict(parser["calendars"]) if parser.has_section("calendars") else {}
    for name, database_id in databases.items():
        cfg_info.append(f"\n  Database: {name}\n", style="bold")
        cfg_info.append(f"            {database_id}", style="dim")
    for name, calendar_id in calendars.items():
        cfg_info.append(f"\n  Calendar: {name}\n", style="bold")
        cfg_info.append(f"            {calendar_id}", style="dim")

    console.print(Panel(cfg_info, title="[bold]Notion ↔ Google Calendar Sync: Status[/bold]"))

    rows = query_cursor_status(state.state_db)
    if not rows:
        if not db_exists:
            console.print(
                "[yellow]No state database yet; run[/] "
                "[cyan]notion-gcal-sync sync[/] "
                "[yellow]to create it.[/]"
            )
        else:
            console.print("[yellow]No sync cursors stored yet.[/]")
        return

    database_names = {v: k for k, v in databases.items()}
    calendar_names = {v: k for k, v in calendars.items()}

    table = Table(show_header=True, header_style="bold cyan", box=None, padding=(0, 2))
    table.add_column("Database")
    table.add_column("Calendar")
    table.add_column("Last pull")
    for row in rows:
        ts = row["updated_at"] or 0
        last_sync_str = datetime.fromtimestamp(ts).strftime("%Y-%m-%d %H:%M:%S") if ts else "—"
        table.add_row(
            database_names.get(row["database_id"], row["database_id"]),
            calendar_names.get(row["calendar_id"], row["calendar_id"]),
            last_sync_str,
        )
    console.print(Panel(table, title="[bold]Sync cursors[/bold]", expand=False))


# ---------------------------------------------------------------------------
# Subcommand: calendars
# ---------------------------------------------------------------------------


@app.command()
def calendars() -> None:
    """Check access to every configured Google calendar."""
    cfg = _build_config()
    _, calendar_client = _connect(cfg)

    table = Table(show_header=True, header_style="bold cyan", box=None, padding=(0, 2))
    table.add_column("Name")
    table.add_column("Calendar")
    table.add_column("Time zone")
    table.add_column("Access")
    failed = False
    for name, calendar_id in cfg.calendars.items():
        label = name + (" (default)" if name == cfg.default_calendar else "")
        try:
            info = calendar_client.get_calendar(calendar_id)
        except CalendarSyncError as e:
            failed = True
            table.add_row(label, calendar_id, "", Text(str(e), style="red"))
            continue
        table.add_row(
            label,
            info.get("summary", calendar_id),
            info.get("timeZone", ""),
            Text("ok", style="green"),
        )
    console.print(table)
    if failed:
        raise typer.Exit(1)


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main() -> None:
    app()
