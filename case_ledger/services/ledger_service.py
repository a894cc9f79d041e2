"""
Case ledger service.

The operations the HTTP layer (or any other front end) calls. Each one takes
the acting principal explicitly, reads the collection snapshot it needs, runs
the history/linking/bulk rules and writes the results through the repository.
Persistence failures propagate as PersistenceUnavailable; nothing is retried.
"""

from dataclasses import dataclass, field, replace
from typing import Iterable, List, Optional

from case_ledger.models.entities import CASES, CLIENTS, USERS, Case, Client, User
from case_ledger.models.errors import OwnershipViolation
from case_ledger.services.bulk import complete_cases, unique_ids
from case_ledger.services.history import apply_schedule_change
from case_ledger.services.linking import (
    case_display_name,
    link_cases_to_client,
    matching_cases,
    unlink_cases_from_client,
)
from case_ledger.services.repository import RecordRepository
from case_ledger.utils.logging_config import get_logger, log_business_event


@dataclass
class ClientSaveResult:
    client: Client
    linked_cases: List[Case] = field(default_factory=list)


class CaseLedger:
    """Boundary operations over cases, clients and users"""

    def __init__(self, repository: RecordRepository, case_insensitive_linking: bool = False):
        self.repository = repository
        self.case_insensitive_linking = case_insensitive_linking
        self.logger = get_logger("ledger")

    def _owned_snapshot(self, user_id: str, current_cases: Optional[Iterable[Case]]) -> List[Case]:
        if current_cases is None:
            return self.load_cases(user_id)
        cases = list(current_cases)
        for c in cases:
            if c.user_id != user_id:
                raise OwnershipViolation(CASES, c.case_id, user_id)
        return cases

    # Loading
    def load_cases(self, user_id: str) -> List[Case]:
        return self.repository.list(CASES, user_id)

    def load_clients(self, user_id: str) -> List[Client]:
        return self.repository.list(CLIENTS, user_id)

    def get_case(self, user_id: str, case_id: str) -> Case:
        return self.repository.get(CASES, case_id, user_id)

    def get_client(self, user_id: str, client_id: str) -> Client:
        return self.repository.get(CLIENTS, client_id, user_id)

    # Cases
    def save_case(self, user_id: str, previous: Optional[Case], incoming: Case) -> Case:
        """Persist a new or edited case, recording superseded dates in its history"""
        if previous is not None:
            if previous.user_id != user_id:
                raise OwnershipViolation(CASES, previous.case_id, user_id)
            if previous.case_id != incoming.case_id:
                raise ValueError("previous version belongs to a different case")
            # An edit never brings a deleted case back
            self.repository.get(CASES, previous.case_id, user_id)
        if incoming.client_id:
            # Raises RecordNotFound / OwnershipViolation for a dangling link
            self.repository.get(CLIENTS, incoming.client_id, user_id)

        change = apply_schedule_change(previous, incoming)
        stored = self.repository.upsert(CASES, change.case, user_id)

        log_business_event(
            "case_saved" if previous else "case_created",
            entity_type="case",
            entity_id=stored.case_id,
            user_id=user_id,
            history_appended=change.appended is not None,
            history_length=len(stored.history),
        )
        return stored

    def delete_case(self, user_id: str, case_id: str) -> bool:
        """Hard delete; linked clients are left untouched"""
        removed = self.repository.remove(CASES, case_id, user_id)
        log_business_event("case_deleted", entity_type="case", entity_id=case_id, user_id=user_id, removed=removed)
        return removed

    # Clients
    def save_client(
        self, user_id: str, client: Client, current_cases: Optional[Iterable[Case]] = None
    ) -> ClientSaveResult:
        """Persist a client, then adopt every case carrying its case number"""
        cases = self._owned_snapshot(user_id, current_cases)
        matches = matching_cases(client.case_number, cases, self.case_insensitive_linking)

        if matches and not client.case_name:
            client = replace(client, case_name=case_display_name(matches[0]))

        stored = self.repository.upsert(CLIENTS, client, user_id)

        linked = []
        for case in link_cases_to_client(stored, cases, self.case_insensitive_linking):
            linked.append(self.repository.upsert(CASES, case, user_id))

        if len(matches) > 1:
            self.logger.info(
                "Client case number matches several cases",
                extra={
                    "event": "client_link_fan_out",
                    "client_id": stored.client_id,
                    "case_number": stored.case_number,
                    "matched_cases": len(matches),
                },
            )
        log_business_event(
            "client_saved",
            entity_type="client",
            entity_id=stored.client_id,
            user_id=user_id,
            linked_cases=[c.case_id for c in linked],
        )
        return ClientSaveResult(client=stored, linked_cases=linked)

    def delete_client(
        self, user_id: str, client_id: str, current_cases: Optional[Iterable[Case]] = None
    ) -> List[Case]:
        """Clear the link on every case pointing at the client, then delete it"""
        # Ownership is checked before anything is written
        self.repository.find(CLIENTS, client_id, user_id)
        cases = self._owned_snapshot(user_id, current_cases)

        unlinked = [self.repository.upsert(CASES, c, user_id) for c in unlink_cases_from_client(client_id, cases)]
        removed = self.repository.remove(CLIENTS, client_id, user_id)

        log_business_event(
            "client_deleted",
            entity_type="client",
            entity_id=client_id,
            user_id=user_id,
            removed=removed,
            unlinked_cases=[c.case_id for c in unlinked],
        )
        return unlinked

    # Bulk operations
    def bulk_complete_cases(
        self, user_id: str, ids: Iterable[str], current_cases: Optional[Iterable[Case]] = None
    ) -> List[Case]:
        """Mark the selected cases Completed.

        Unknown ids are skipped. An id owned by another user refuses the whole
        batch with OwnershipViolation before anything is written, as in
        bulk_delete_cases.
        """
        wanted = unique_ids(ids)
        for case_id in wanted:
            self.repository.find(CASES, case_id, user_id)
        cases = self._owned_snapshot(user_id, current_cases)
        completed = [self.repository.upsert(CASES, c, user_id) for c in complete_cases(wanted, cases)]
        log_business_event(
            "cases_bulk_completed", entity_type="case", user_id=user_id, case_ids=[c.case_id for c in completed]
        )
        return completed

    def bulk_delete_cases(self, user_id: str, ids: Iterable[str]) -> List[str]:
        """Delete the selected cases.

        Ids that are already gone are skipped. An id owned by another user
        refuses the whole batch with OwnershipViolation, as in
        bulk_complete_cases.
        """
        wanted = unique_ids(ids)
        # Refuse the whole batch up front if any id belongs to another user
        for case_id in wanted:
            self.repository.find(CASES, case_id, user_id)

        removed = [case_id for case_id in wanted if self.repository.remove(CASES, case_id, user_id)]
        log_business_event("cases_bulk_deleted", entity_type="case", user_id=user_id, case_ids=removed)
        return removed

    # Users
    def login(self, email: str, name: Optional[str] = None) -> User:
        user = self.repository.get_or_create_user(email, name)
        log_business_event("user_login", entity_type="user", entity_id=user.user_id)
        return user

    def get_user(self, user_id: str) -> User:
        return self.repository.get(USERS, user_id, user_id)

    def update_profile(self, user_id: str, name: Optional[str] = None, photo: Optional[str] = None) -> User:
        user = self.get_user(user_id)
        if name is not None:
            user = replace(user, name=name)
        if photo is not None:
            user = replace(user, photo=photo or None)
        return self.repository.save_user(user, user_id)
