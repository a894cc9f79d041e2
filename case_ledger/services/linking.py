"""
Client/case linking engine.

Clients are usually entered before any formal link exists, so the only join
key between the two collections is the human-entered case number. These
functions compute which cases must be rewritten to keep Case.client_id
consistent whenever a client is saved or deleted; persisting them is up to
the caller.
"""

from dataclasses import replace
from typing import Iterable, List, Optional

from case_ledger.models.entities import Case, Client


def _normalize(case_number: Optional[str], case_insensitive: bool) -> str:
    value = (case_number or "").strip()
    return value.casefold() if case_insensitive else value


def matching_cases(case_number: Optional[str], cases: Iterable[Case], case_insensitive: bool = False) -> List[Case]:
    """Cases whose case_number equals the given one"""
    wanted = _normalize(case_number, case_insensitive)
    if not wanted:
        return []
    return [c for c in cases if _normalize(c.case_number, case_insensitive) == wanted]


def link_cases_to_client(client: Client, cases: Iterable[Case], case_insensitive: bool = False) -> List[Case]:
    """Copies of every case sharing the client's case number, re-pointed at the client.

    Cases already linked to this client are left out. Several cases may share
    one case number; all of them are adopted.
    """
    return [
        replace(c, client_id=client.client_id)
        for c in matching_cases(client.case_number, cases, case_insensitive)
        if c.client_id != client.client_id
    ]


def unlink_cases_from_client(client_id: str, cases: Iterable[Case]) -> List[Case]:
    """Copies of every case linked to client_id with the link cleared"""
    return [replace(c, client_id=None) for c in cases if c.client_id == client_id]


def case_display_name(case: Case) -> str:
    """Party description of a case, falling back to '<type> @ <court>'"""
    if case.case_name_parties:
        return case.case_name_parties
    return f"{case.case_type} @ {case.court_name}"


def suggest_cases(query: Optional[str], cases: Iterable[Case], limit: int = 5) -> List[Case]:
    """Cases a client form could link to, matched on case number or parties"""
    needle = (query or "").strip().lower()
    if len(needle) < 2:
        return []
    found = [
        c
        for c in cases
        if needle in (c.case_number or "").lower() or needle in (c.case_name_parties or "").lower()
    ]
    return found[:limit]
