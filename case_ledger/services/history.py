"""
Procedural history engine.

A case's next_date is the cursor of its timeline. When an edit moves the
cursor to a different date, the step that was scheduled for the old date is
frozen into a HistoryItem and appended to the case history. The stored
history is kept in insertion order; newest-first ordering is only ever a
display projection.
"""

from dataclasses import dataclass, replace
from datetime import date
from typing import List, Optional

from case_ledger.models.entities import Case, HistoryItem

MIGRATED_STEP = "Previous Proceeding"
MIGRATED_NOTES = "Historical record migrated from previous date field."


@dataclass(frozen=True)
class ScheduleChange:
    """Result of applying an edit to a case timeline"""
    case: Case
    appended: Optional[HistoryItem] = None


def apply_schedule_change(existing: Optional[Case], incoming: Case) -> ScheduleChange:
    """Compute the case to persist for an edit of ``existing`` into ``incoming``.

    Pure function: neither argument is modified.

    - No existing version (new case): ``incoming`` is used unchanged.
    - ``next_date`` changed: the existing date, step and notes are appended to
      the existing history and the existing date becomes ``previous_date``.
    - ``next_date`` unchanged: ``incoming`` is used unchanged, so edits to
      notes or status never fabricate a history entry.
    """
    if existing is None or existing.next_date == incoming.next_date:
        return ScheduleChange(case=incoming)

    item = HistoryItem(date=existing.next_date, step=existing.step_of_the_day, notes=existing.notes)
    final = replace(
        incoming,
        history=list(existing.history or []) + [item],
        previous_date=existing.next_date,
    )
    return ScheduleChange(case=final, appended=item)


def display_history(case: Case) -> List[HistoryItem]:
    """History as shown to the user.

    Cases recorded before history tracking only carry a previous_date; for
    those a single synthetic entry is derived. The result is never stored.
    """
    if case.history:
        return list(case.history)
    if case.previous_date:
        return [HistoryItem(date=case.previous_date, step=MIGRATED_STEP, notes=MIGRATED_NOTES)]
    return []


def _sort_key(item: HistoryItem):
    try:
        return date.fromisoformat(item.date[:10])
    except (TypeError, ValueError):
        return date.min


def timeline_newest_first(case: Case) -> List[HistoryItem]:
    """Display history sorted by date, most recent first (stable for equal dates)"""
    return sorted(display_history(case), key=_sort_key, reverse=True)
