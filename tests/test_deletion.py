"""
Tests for the deletion phase: removal-tagged and completed entries.
"""

from datetime import UTC
from datetime import datetime

import pytest

from notion_gcal_sync.models import AuthorizationError
from notion_gcal_sync.models import CalendarEvent
from notion_gcal_sync.sync.deletion import run_deletions
from tests.conftest import DATABASE_ID
from tests.conftest import PERSONAL_CAL_ID
from tests.conftest import WORK_CAL_ID
from tests.conftest import make_page
from tests.fake_clients import server_error


def _seed_event(gcal, calendar_id: str, title: str = "Dentist") -> str:
    event = gcal.add_event(
        calendar_id,
        CalendarEvent(
            id=f"evt-{title.lower()}",
            title=title,
            start=datetime(2026, 3, 2, 9, tzinfo=UTC),
            end=datetime(2026, 3, 2, 10, tzinfo=UTC),
            tag=DATABASE_ID,
        ),
    )
    return event.id


def _run(sync_config, sync_stats, sync_logger, ctx, notion, gcal):
    run_deletions(sync_config, sync_stats, sync_logger, ctx, notion, gcal)


class TestTotalRemoval:
    def test_deletes_event_and_archives_page(
        self, sync_config, sync_stats, sync_logger, ctx, notion, gcal
    ):
        event_id = _seed_event(gcal, PERSONAL_CAL_ID)
        notion.add_page(
            DATABASE_ID,
            make_page(
                "p1",
                "Dentist",
                "2026-03-02",
                tags=("Delete",),
                event_id=event_id,
                event_calendar=PERSONAL_CAL_ID,
            ),
        )

        _run(sync_config, sync_stats, sync_logger, ctx, notion, gcal)

        assert gcal.deletes == [(PERSONAL_CAL_ID, event_id)]
        assert notion.pages["p1"]["archived"] is True
        assert sync_stats.deleted == 1
        assert sync_stats.archived == 1
        assert ctx.guard.is_suppressed(event_id)

    def test_unlinks_instead_of_archiving_when_disabled(
        self, sync_config, sync_stats, sync_logger, ctx, notion, gcal
    ):
        sync_config.archive_on_delete = False
        event_id = _seed_event(gcal, PERSONAL_CAL_ID)
        notion.add_page(
            DATABASE_ID,
            make_page("p1", tags=("Delete",), event_id=event_id, event_calendar=PERSONAL_CAL_ID),
        )

        _run(sync_config, sync_stats, sync_logger, ctx, notion, gcal)

        assert notion.pages["p1"]["archived"] is False
        assert notion.text("p1", "Event ID") == ""
        assert sync_stats.archived == 0

    def test_failed_event_delete_keeps_page(
        self, sync_config, sync_stats, sync_logger, ctx, notion, gcal
    ):
        event_id = _seed_event(gcal, PERSONAL_CAL_ID)
        gcal.fail_deletes[event_id] = server_error()
        notion.add_page(
            DATABASE_ID,
            make_page("p1", tags=("Delete",), event_id=event_id, event_calendar=PERSONAL_CAL_ID),
        )

        _run(sync_config, sync_stats, sync_logger, ctx, notion, gcal)

        assert notion.pages["p1"]["archived"] is False
        assert notion.text("p1", "Event ID") == event_id
        assert sync_stats.errors == 1
        assert not ctx.guard.is_suppressed(event_id)

    def test_already_deleted_event_still_archives(
        self, sync_config, sync_stats, sync_logger, ctx, notion, gcal
    ):
        notion.add_page(
            DATABASE_ID,
            make_page("p1", tags=("Delete",), event_id="evt-gone", event_calendar=PERSONAL_CAL_ID),
        )

        _run(sync_config, sync_stats, sync_logger, ctx, notion, gcal)

        assert notion.pages["p1"]["archived"] is True
        assert sync_stats.errors == 0
        assert not ctx.guard.is_suppressed("evt-gone")

    def test_ignored_entry_is_untouched(
        self, sync_config, sync_stats, sync_logger, ctx, notion, gcal
    ):
        event_id = _seed_event(gcal, PERSONAL_CAL_ID)
        notion.add_page(
            DATABASE_ID,
            make_page(
                "p1",
                tags=("Delete", "Ignore"),
                event_id=event_id,
                event_calendar=PERSONAL_CAL_ID,
            ),
        )

        _run(sync_config, sync_stats, sync_logger, ctx, notion, gcal)

        assert gcal.deletes == []
        assert notion.pages["p1"]["archived"] is False

    def test_entry_already_in_sync_is_skipped(
        self, sync_config, sync_stats, sync_logger, ctx, notion, gcal
    ):
        event_id = _seed_event(gcal, PERSONAL_CAL_ID)
        notion.add_page(
            DATABASE_ID,
            make_page(
                "p1",
                tags=("Delete",),
                event_id=event_id,
                event_calendar=PERSONAL_CAL_ID,
                last_synced="2026-03-01T09:00:00+00:00",
            ),
        )

        _run(sync_config, sync_stats, sync_logger, ctx, notion, gcal)

        assert gcal.deletes == []

    def test_authorization_failure_propagates(
        self, sync_config, sync_stats, sync_logger, ctx, notion, gcal
    ):
        event_id = _seed_event(gcal, PERSONAL_CAL_ID)
        gcal.fail_deletes[event_id] = AuthorizationError("denied")
        notion.add_page(
            DATABASE_ID,
            make_page("p1", tags=("Delete",), event_id=event_id, event_calendar=PERSONAL_CAL_ID),
        )

        with pytest.raises(AuthorizationError):
            _run(sync_config, sync_stats, sync_logger, ctx, notion, gcal)

    def test_dry_run_changes_nothing(
        self, sync_config, sync_stats, sync_logger, ctx, notion, gcal
    ):
        sync_config.dry_run = True
        event_id = _seed_event(gcal, PERSONAL_CAL_ID)
        notion.add_page(
            DATABASE_ID,
            make_page("p1", tags=("Delete",), event_id=event_id, event_calendar=PERSONAL_CAL_ID),
        )

        _run(sync_config, sync_stats, sync_logger, ctx, notion, gcal)

        assert gcal.deletes == []
        assert notion.updates == []
        assert sync_stats.deleted == 1


class TestCompleted:
    def test_completed_entry_is_unlinked_not_archived(
        self, sync_config, sync_stats, sync_logger, ctx, notion, gcal
    ):
        event_id = _seed_event(gcal, WORK_CAL_ID)
        notion.add_page(
            DATABASE_ID,
            make_page(
                "p1",
                status="Done",
                calendar="Work",
                event_id=event_id,
                event_calendar=WORK_CAL_ID,
            ),
        )

        _run(sync_config, sync_stats, sync_logger, ctx, notion, gcal)

        assert gcal.deletes == [(WORK_CAL_ID, event_id)]
        assert notion.pages["p1"]["archived"] is False
        assert notion.text("p1", "Event ID") == ""
        assert notion.text("p1", "Current Calendar") == ""
        assert sync_stats.archived == 0

    def test_exempt_calendar_is_kept(
        self, sync_config, sync_stats, sync_logger, ctx, notion, gcal
    ):
        sync_config.completed_exempt_calendars = frozenset({"Work"})
        event_id = _seed_event(gcal, WORK_CAL_ID)
        notion.add_page(
            DATABASE_ID,
            make_page(
                "p1",
                status="Done",
                calendar="Work",
                event_id=event_id,
                event_calendar=WORK_CAL_ID,
            ),
        )

        _run(sync_config, sync_stats, sync_logger, ctx, notion, gcal)

        assert gcal.deletes == []

    def test_exempt_default_calendar_covers_empty_selection(
        self, sync_config, sync_stats, sync_logger, ctx, notion, gcal
    ):
        sync_config.completed_exempt_calendars = frozenset({"Personal"})
        personal_id = _seed_event(gcal, PERSONAL_CAL_ID)
        work_id = _seed_event(gcal, WORK_CAL_ID, title="Standup")
        notion.add_page(
            DATABASE_ID,
            make_page("p1", status="Done", event_id=personal_id, event_calendar=PERSONAL_CAL_ID),
        )
        notion.add_page(
            DATABASE_ID,
            make_page(
                "p2",
                status="Done",
                calendar="Work",
                event_id=work_id,
                event_calendar=WORK_CAL_ID,
            ),
        )

        _run(sync_config, sync_stats, sync_logger, ctx, notion, gcal)

        assert gcal.deletes == [(WORK_CAL_ID, work_id)]
        assert notion.text("p1", "Event ID") == personal_id

    def test_exemption_without_calendar_property(
        self, sync_config, sync_stats, sync_logger, ctx, notion, gcal
    ):
        del notion.schemas[DATABASE_ID]["Calendar"]
        sync_config.completed_exempt_calendars = frozenset({"Work"})
        event_id = _seed_event(gcal, PERSONAL_CAL_ID)
        notion.add_page(
            DATABASE_ID,
            make_page("p1", status="Done", event_id=event_id, event_calendar=PERSONAL_CAL_ID),
        )

        _run(sync_config, sync_stats, sync_logger, ctx, notion, gcal)

        assert gcal.deletes == [(PERSONAL_CAL_ID, event_id)]
        assert sync_stats.errors == 0

    def test_exempt_default_without_calendar_property_skips_pass(
        self, sync_config, sync_stats, sync_logger, ctx, notion, gcal
    ):
        del notion.schemas[DATABASE_ID]["Calendar"]
        sync_config.completed_exempt_calendars = frozenset({"Personal"})
        event_id = _seed_event(gcal, PERSONAL_CAL_ID)
        notion.add_page(
            DATABASE_ID,
            make_page("p1", status="Done", event_id=event_id, event_calendar=PERSONAL_CAL_ID),
        )

        _run(sync_config, sync_stats, sync_logger, ctx, notion, gcal)

        assert gcal.deletes == []
        assert sync_stats.errors == 0

    def test_database_without_status_is_skipped(
        self, sync_config, sync_stats, sync_logger, ctx, notion, gcal
    ):
        del notion.schemas[DATABASE_ID]["Status"]
        event_id = _seed_event(gcal, PERSONAL_CAL_ID)
        notion.add_page(
            DATABASE_ID,
            make_page("p1", event_id=event_id, event_calendar=PERSONAL_CAL_ID),
        )

        _run(sync_config, sync_stats, sync_logger, ctx, notion, gcal)

        assert gcal.deletes == []
        assert sync_stats.errors == 0

    def test_status_as_select_property(
        self, sync_config, sync_stats, sync_logger, ctx, notion, gcal
    ):
        notion.schemas[DATABASE_ID]["Status"] = {"type": "select"}
        event_id = _seed_event(gcal, PERSONAL_CAL_ID)
        page = make_page("p1", event_id=event_id, event_calendar=PERSONAL_CAL_ID)
        page["properties"]["Status"] = {"type": "select", "select": {"name": "Done"}}
        notion.add_page(DATABASE_ID, page)

        _run(sync_config, sync_stats, sync_logger, ctx, notion, gcal)

        assert gcal.deletes == [(PERSONAL_CAL_ID, event_id)]

    def test_removal_wins_over_completion(
        self, sync_config, sync_stats, sync_logger, ctx, notion, gcal
    ):
        """An entry both tagged for removal and completed is handled once, by removal."""
        event_id = _seed_event(gcal, PERSONAL_CAL_ID)
        notion.add_page(
            DATABASE_ID,
            make_page(
                "p1",
                tags=("Delete",),
                status="Done",
                event_id=event_id,
                event_calendar=PERSONAL_CAL_ID,
            ),
        )

        _run(sync_config, sync_stats, sync_logger, ctx, notion, gcal)

        assert gcal.deletes == [(PERSONAL_CAL_ID, event_id)]
        assert notion.pages["p1"]["archived"] is True
        assert sync_stats.deleted == 1
        assert sync_stats.errors == 0
