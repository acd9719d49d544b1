"""
Preflight checks run before sync to catch common misconfigurations early.
"""

import logging
import sqlite3

from rich.console import Console
from rich.panel import Panel
from rich.text import Text

from notion_gcal_sync.gcal_client import GoogleCalendarClient
from notion_gcal_sync.models import AuthorizationError
from notion_gcal_sync.models import CalendarSyncError
from notion_gcal_sync.models import Control
from notion_gcal_sync.models import NotFoundError
from notion_gcal_sync.models import SyncConfig
from notion_gcal_sync.notion_client import NotionClient

logger = logging.getLogger(__name__)


def _check_databases(
    cfg: SyncConfig, notion_client: NotionClient, only: list[str] | None
) -> list[tuple[str, str, str]]:
    issues = []
    names = cfg.properties
    for name, database_id in cfg.databases.items():
        if only and name not in only:
            continue
        label = f"Notion database '{name}'"
        try:
            database = notion_client.retrieve_database(database_id)
        except AuthorizationError as e:
            logger.error("Notion rejected access to %s: %s", database_id, e)
            issues.append(
                (label, str(e), "Share the database with the integration or check NOTION_TOKEN")
            )
            continue
        except NotFoundError:
            logger.error("Notion database not found: %s", database_id)
            issues.append(
                (label, f"ID not found: {database_id}", "Check the [databases] section")
            )
            continue
        except CalendarSyncError as e:
            issues.append((label, str(e), "Notion API unavailable, try again later"))
            continue

        schema = database.get("properties", {})
        required = (names.title, names.date, names.tags, names.event_id, names.last_synced)
        missing = [prop for prop in required if prop not in schema]
        if missing:
            issues.append(
                (
                    label,
                    f"missing properties: {', '.join(missing)}",
                    "Add them to the database or rename them in [properties]",
                )
            )
            continue

        tag_options = {
            opt.get("name")
            for opt in schema[names.tags].get("multi_select", {}).get("options", [])
        }
        for control in (Control.REMOVE, Control.IGNORE):
            if tag_options and cfg.label(control) not in tag_options:
                # Notion creates missing multi-select options on first use.
                logger.warning(
                    "Tag '%s' is not yet an option of '%s' in %s",
                    cfg.label(control),
                    names.tags,
                    name,
                )
    return issues


def _check_calendars(
    cfg: SyncConfig, calendar_client: GoogleCalendarClient
) -> list[tuple[str, str, str]]:
    issues = []
    for name, calendar_id in cfg.calendars.items():
        try:
            calendar_client.get_calendar(calendar_id)
        except CalendarSyncError as e:
            logger.error("Cannot read calendar %s (%s): %s", name, calendar_id, e)
            issues.append(
                (
                    f"Calendar '{name}'",
                    f"{calendar_id}: {e}",
                    "Share the calendar with the credentials' account (make changes to events)",
                )
            )
    return issues


def run_preflight_checks(
    cfg: SyncConfig,
    console: Console,
    notion_client: NotionClient,
    calendar_client: GoogleCalendarClient,
    only: list[str] | None = None,
) -> bool:
    """Return True if sync may proceed; print issues and return False otherwise."""
    issues: list[tuple[str, str, str]] = []  # (label, detail, hint)

    # 1. Every configured (or selected) database is reachable and has the
    #    properties the engine writes.
    issues.extend(_check_databases(cfg, notion_client, only))

    # 2. Every configured calendar is readable with the credentials.
    issues.extend(_check_calendars(cfg, calendar_client))

    # 3. State DB parent dir writable + DB readable if it exists
    db_path = cfg.state_db_path
    try:
        db_path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        logger.error("Cannot create state DB directory %s: %s", db_path.parent, e)
        issues.append(
            (
                "State database",
                f"{db_path}: {e}",
                f"Check permissions on {db_path.parent}",
            )
        )
    else:
        if db_path.exists():
            try:
                conn = sqlite3.connect(db_path)
                conn.execute("SELECT 1")
                # BEGIN IMMEDIATE takes the write lock and needs a journal file
                # next to the DB.
                conn.execute("BEGIN IMMEDIATE")
                conn.execute("ROLLBACK")
                conn.close()
            except sqlite3.Error as e:
                logger.error("State DB not readable/writable (%s): %s", db_path, e)
                issues.append(
                    (
                        "State database",
                        f"{db_path}: {e}",
                        f"Check permissions on {db_path.parent} "
                        f"(journal files must be creatable alongside the DB)",
                    )
                )

    if issues:
        _print_issues(issues, console)
        return False

    return True


def _print_issues(issues: list[tuple[str, str, str]], console: Console) -> None:
    body = Text()
    for i, (label, detail, hint) in enumerate(issues):
        if i:
            body.append("\n")
        body.append(f"  ✗  {label}: ", style="bold red")
        body.append(detail, style="bold red")
        body.append(f"\n       → {hint}", style="yellow")

    console.print(Panel(body, title="[bold red]Preflight checks failed[/bold red]"))
