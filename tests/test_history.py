"""
Tests for the procedural history engine.
"""

from dataclasses import replace

from conftest import USER_A, make_case

from case_ledger.models.entities import HistoryItem
from case_ledger.services.history import (
    MIGRATED_NOTES,
    MIGRATED_STEP,
    apply_schedule_change,
    display_history,
    timeline_newest_first,
)


def test_new_case_is_used_unchanged():
    incoming = make_case()
    change = apply_schedule_change(None, incoming)

    assert change.case is incoming
    assert change.appended is None


def test_unchanged_date_appends_nothing():
    existing = make_case(history=[HistoryItem("2024-04-01", "Notice")])
    incoming = replace(existing, notes="new notes", status="Completed")

    change = apply_schedule_change(existing, incoming)

    assert change.appended is None
    assert change.case.history == existing.history
    assert change.case.notes == "new notes"


def test_changed_date_appends_the_superseded_step():
    existing = make_case(next_date="2024-05-10", step_of_the_day="Filing", notes="bring docs")
    incoming = replace(existing, next_date="2024-06-01", step_of_the_day="Evidence", notes="")

    change = apply_schedule_change(existing, incoming)

    assert change.appended == HistoryItem(date="2024-05-10", step="Filing", notes="bring docs")
    assert change.case.history == [change.appended]
    assert change.case.previous_date == "2024-05-10"
    assert change.case.next_date == "2024-06-01"
    assert change.case.step_of_the_day == "Evidence"


def test_append_keeps_existing_history_order():
    older = [HistoryItem("2024-01-01", "Notice"), HistoryItem("2024-02-01", "Appearance")]
    existing = make_case(next_date="2024-03-01", history=older)
    incoming = replace(existing, next_date="2024-04-01", history=[])

    final = apply_schedule_change(existing, incoming).case

    assert final.history[:2] == older
    assert final.history[2].date == "2024-03-01"
    assert len(final.history) == 3


def test_inputs_are_not_modified():
    existing = make_case(history=[HistoryItem("2024-04-01", "Notice")])
    incoming = replace(existing, next_date="2024-07-01")

    apply_schedule_change(existing, incoming)

    assert len(existing.history) == 1
    assert incoming.previous_date == ""


def test_scenario_adjournment_through_ledger(ledger):
    original = ledger.save_case(
        USER_A, None, make_case(case_number="X1", next_date="2024-01-10", step_of_the_day="Filing", notes="")
    )
    edited = replace(original, next_date="2024-02-10", step_of_the_day="Arguments")

    stored = ledger.save_case(USER_A, original, edited)

    assert [(h.date, h.step) for h in stored.history] == [("2024-01-10", "Filing")]
    assert stored.previous_date == "2024-01-10"


def test_repeated_identical_save_adds_no_history(ledger):
    original = ledger.save_case(USER_A, None, make_case())
    moved = ledger.save_case(USER_A, original, replace(original, next_date="2024-06-01"))

    again = ledger.save_case(USER_A, moved, replace(moved))

    assert len(again.history) == len(moved.history) == 1


def test_display_history_derives_legacy_entry():
    legacy = make_case(previous_date="2023-12-01", history=[])

    items = display_history(legacy)

    assert items == [HistoryItem("2023-12-01", MIGRATED_STEP, MIGRATED_NOTES)]
    assert legacy.history == []


def test_display_history_prefers_stored_entries():
    case = make_case(previous_date="2023-12-01", history=[HistoryItem("2023-12-01", "Filing")])
    assert display_history(case) == case.history
    assert display_history(make_case()) == []


def test_timeline_is_newest_first():
    case = make_case(
        history=[
            HistoryItem("2024-01-05", "Notice"),
            HistoryItem("2024-03-01", "Evidence"),
            HistoryItem("2024-02-10", "Appearance"),
        ]
    )

    assert [h.date for h in timeline_newest_first(case)] == ["2024-03-01", "2024-02-10", "2024-01-05"]
    assert [h.date for h in case.history] == ["2024-01-05", "2024-03-01", "2024-02-10"]
