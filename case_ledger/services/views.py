"""
Filtered and sorted projections of the ledger collections.

These functions back the dashboard, the all-cases list, the client directory
and the profile page. They only read the records they are given.
"""

from datetime import date
from typing import Dict, Iterable, List, Optional

from case_ledger.models.entities import (
    PRIORITY_HIGH,
    PRIORITY_LOW,
    PRIORITY_MEDIUM,
    STATUS_COMPLETED,
    Case,
    Client,
)

ALL = "All"

DASHBOARD_SORTS = ("SERIAL", "PRIORITY")
ALL_CASES_SORTS = ("RECENT", "DATE_ASC", "DATE_DESC")

PRIORITY_WEIGHT = {PRIORITY_HIGH: 3, PRIORITY_MEDIUM: 2, PRIORITY_LOW: 1}


def _contains(value: Optional[str], needle: str) -> bool:
    return needle in (value or "").lower()


def _serial(case: Case) -> int:
    digits = ""
    for ch in (case.serial_number or "").strip():
        if not ch.isdigit():
            break
        digits += ch
    return int(digits) if digits else 0


def _parse_date(value: Optional[str]) -> date:
    try:
        return date.fromisoformat((value or "")[:10])
    except ValueError:
        return date.min


def dashboard_cases(
    cases: Iterable[Case],
    on_date: str,
    query: str = "",
    court: str = ALL,
    sort_by: str = "SERIAL",
) -> List[Case]:
    """Cases listed on a given date.

    Completed cases are hidden unless a search query is active. Sorted by
    serial number, or by priority (High first) with ``sort_by="PRIORITY"``.
    """
    needle = (query or "").strip().lower()
    selected = [
        c
        for c in cases
        if c.next_date == on_date
        and (
            _contains(c.case_number, needle)
            or _contains(c.court_name, needle)
            or _contains(c.case_name_parties, needle)
        )
        and (court in (None, "", ALL) or c.court_name == court)
        and (c.status != STATUS_COMPLETED or needle != "")
    ]

    if sort_by == "PRIORITY":
        return sorted(selected, key=lambda c: PRIORITY_WEIGHT.get(c.priority, 1), reverse=True)
    return sorted(selected, key=_serial)


def court_names(cases: Iterable[Case]) -> List[str]:
    """'All' followed by each distinct court name in first-seen order"""
    names = [ALL]
    for c in cases:
        if c.court_name not in names:
            names.append(c.court_name)
    return names


def all_cases(cases: Iterable[Case], query: str = "", status: str = ALL, sort_by: str = "RECENT") -> List[Case]:
    needle = (query or "").strip().lower()
    selected = [
        c
        for c in cases
        if (
            _contains(c.case_number, needle)
            or _contains(c.court_name, needle)
            or _contains(c.case_type, needle)
            or _contains(c.case_name_parties, needle)
        )
        and (status in (None, "", ALL) or c.status == status)
    ]

    if sort_by == "DATE_ASC":
        return sorted(selected, key=lambda c: _parse_date(c.next_date))
    if sort_by == "DATE_DESC":
        return sorted(selected, key=lambda c: _parse_date(c.next_date), reverse=True)
    return sorted(selected, key=lambda c: c.updated_at, reverse=True)


def client_directory(clients: Iterable[Client], query: str = "") -> List[Client]:
    needle = (query or "").strip().lower()
    selected = [
        c
        for c in clients
        if _contains(c.name, needle)
        or needle in (c.phone or "")
        or _contains(c.email, needle)
        or _contains(c.case_number, needle)
        or _contains(c.case_name, needle)
    ]
    return sorted(selected, key=lambda c: (c.name or "").lower())


def is_contact_stale(last_contacted: Optional[str], today: Optional[date] = None, days: int = 30) -> bool:
    """True when the client was never contacted or not within ``days``"""
    if not last_contacted:
        return True
    contacted = _parse_date(last_contacted)
    if contacted == date.min:
        return True
    today = today or date.today()
    return abs((today - contacted).days) > days


def profile_stats(cases: Iterable[Case]) -> Dict[str, int]:
    cases = list(cases)
    completed = sum(1 for c in cases if c.status == STATUS_COMPLETED)
    return {"total": len(cases), "active": len(cases) - completed, "completed": completed}
