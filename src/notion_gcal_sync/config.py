"""
Configuration file loading.

Example::

    [notion-gcal-sync]
    notion_token = secret_xxx
    google_credentials = ~/.config/notion-gcal-sync-credentials.json
    default_calendar = Personal
    timezone = Europe/Berlin
    completed_exempt_calendars = Birthdays

    [databases]
    tasks = 0123456789abcdef0123456789abcdef

    [calendars]
    Personal = me@example.com
    Birthdays = abc123@group.calendar.google.com

    [controls]
    remove = Delete
    ignore = Ignore
    completed = Done

    [properties]
    date = When
"""

import os
from configparser import ConfigParser
from dataclasses import fields
from pathlib import Path

from notion_gcal_sync.models import DEFAULT_CONTROL_LABELS
from notion_gcal_sync.models import DEFAULT_STATE_DB
from notion_gcal_sync.models import CalendarSyncError
from notion_gcal_sync.models import Control
from notion_gcal_sync.models import PropertyNames
from notion_gcal_sync.models import SyncConfig

MAIN_SECTION = "notion-gcal-sync"


class ConfigError(CalendarSyncError):
    """The configuration file is missing required values or is malformed."""


def read_config_file(config_path: Path) -> ConfigParser:
    parser = ConfigParser()
    # Keep calendar names case-sensitive.
    parser.optionxform = str
    if config_path.exists():
        parser.read(config_path, encoding="utf-8")
    return parser


def _split_list(value: str) -> frozenset[str]:
    return frozenset(item.strip() for item in value.split(",") if item.strip())


def load_config(
    config_path: Path, state_db_path: Path | None = None, **overrides
) -> SyncConfig:
    """Build a SyncConfig from the INI file; keyword overrides win over file values."""
    parser = read_config_file(config_path)
    main = parser[MAIN_SECTION] if parser.has_section(MAIN_SECTION) else {}

    token = os.environ.get("NOTION_TOKEN") or main.get("notion_token")
    if not token:
        raise ConfigError(
            f"No Notion token: set NOTION_TOKEN or notion_token in [{MAIN_SECTION}] "
            f"of {config_path}"
        )
    credentials = main.get("google_credentials")
    if not credentials:
        raise ConfigError(f"google_credentials missing from [{MAIN_SECTION}] of {config_path}")

    databases = dict(parser["databases"]) if parser.has_section("databases") else {}
    calendars = dict(parser["calendars"]) if parser.has_section("calendars") else {}
    if not databases:
        raise ConfigError(f"No [databases] configured in {config_path}")
    if not calendars:
        raise ConfigError(f"No [calendars] configured in {config_path}")

    default_calendar = main.get("default_calendar") or next(iter(calendars))
    if default_calendar not in calendars:
        raise ConfigError(f"default_calendar {default_calendar!r} is not listed in [calendars]")

    control_labels = dict(DEFAULT_CONTROL_LABELS)
    if parser.has_section("controls"):
        for control in Control:
            if parser.has_option("controls", control.value):
                control_labels[control] = parser.get("controls", control.value)

    properties = PropertyNames()
    if parser.has_section("properties"):
        for f in fields(PropertyNames):
            if parser.has_option("properties", f.name):
                setattr(properties, f.name, parser.get("properties", f.name))

    section = parser[MAIN_SECTION] if parser.has_section(MAIN_SECTION) else None

    def _int(key: str, default: int) -> int:
        try:
            return section.getint(key, default) if section is not None else default
        except ValueError as e:
            raise ConfigError(f"{key} must be an integer: {e}") from None

    def _bool(key: str, default: bool) -> bool:
        try:
            return section.getboolean(key, default) if section is not None else default
        except ValueError as e:
            raise ConfigError(f"{key} must be a boolean: {e}") from None

    config = SyncConfig(
        notion_token=token,
        google_credentials=Path(credentials).expanduser(),
        databases=databases,
        calendars=calendars,
        default_calendar=default_calendar,
        state_db_path=state_db_path or DEFAULT_STATE_DB,
        properties=properties,
        control_labels=control_labels,
        timezone=main.get("timezone", "UTC"),
        past_days=_int("past_days", 30),
        future_days=_int("future_days", 1825),
        default_duration_minutes=_int("default_duration_minutes", 60),
        page_size=_int("page_size", 100),
        archive_on_delete=_bool("archive_on_delete", True),
        tag_cancelled_events=_bool("tag_cancelled_events", True),
        skip_invalid=_bool("skip_invalid", True),
        completed_exempt_calendars=_split_list(main.get("completed_exempt_calendars", "")),
    )
    for key, value in overrides.items():
        setattr(config, key, value)
    return config
