"""
Bulk case transitions.

Multi-select actions apply one transition to a set of case ids. Unknown ids
are skipped rather than reported, and the batch is not atomic: callers
persist the returned cases one by one and re-read the collection afterwards.
"""

from dataclasses import replace
from typing import Iterable, List

from case_ledger.models.entities import STATUS_COMPLETED, Case


def unique_ids(ids: Iterable[str]) -> List[str]:
    """Ids in first-seen order without duplicates or blanks"""
    seen = set()
    result = []
    for case_id in ids:
        if case_id and case_id not in seen:
            seen.add(case_id)
            result.append(case_id)
    return result


def complete_cases(ids: Iterable[str], cases: Iterable[Case]) -> List[Case]:
    """Copies of the selected cases with status Completed; only status changes"""
    by_id = {c.case_id: c for c in cases}
    return [replace(by_id[case_id], status=STATUS_COMPLETED) for case_id in unique_ids(ids) if case_id in by_id]
