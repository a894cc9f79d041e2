"""
Record repository for the Case Ledger.

Typed access to the users, clients and cases collections of a store. The
repository owns identifier uniqueness, timestamps and ownership scoping:
every operation takes the acting principal and refuses to read or mutate a
record that belongs to somebody else.
"""

import time
from dataclasses import replace
from typing import Any, Callable, Dict, List, Optional

from case_ledger.models.entities import COLLECTIONS, USERS, User, new_record_id
from case_ledger.models.errors import OwnershipViolation, PersistenceUnavailable, RecordNotFound
from case_ledger.services.store import CollectionStore
from case_ledger.utils.logging_config import get_logger


def now_ms() -> int:
    """Current time in milliseconds since the epoch"""
    return int(time.time() * 1000)


class RecordRepository:
    """Ownership-scoped accessors over the entity collections"""

    def __init__(self, store: CollectionStore, clock: Callable[[], int] = now_ms):
        self.store = store
        self.clock = clock
        self.logger = get_logger("repository")

    @staticmethod
    def _describe(collection: str):
        try:
            return COLLECTIONS[collection]
        except KeyError:
            raise ValueError(f"Unknown collection: {collection}") from None

    def _load(self, collection: str) -> List[Dict[str, Any]]:
        return self.store.get(collection)

    def _decode(self, collection: str, entity_cls, raw: Dict[str, Any]) -> Any:
        """Build an entity from a stored record; a malformed record is a read failure"""
        try:
            return entity_cls.from_dict(raw)
        except (TypeError, ValueError, AttributeError) as e:
            self.logger.error(
                "Stored record could not be decoded",
                extra={"event": "record_decode_failed", "collection": collection, "error": str(e)},
            )
            raise PersistenceUnavailable("read", collection, f"malformed record: {e}") from e

    def list(self, collection: str, user_id: str) -> List[Any]:
        """Records of a collection owned by user_id, in stored order"""
        entity_cls, _ = self._describe(collection)
        return [
            self._decode(collection, entity_cls, r) for r in self._load(collection) if r.get("user_id") == user_id
        ]

    def get(self, collection: str, record_id: str, user_id: str) -> Any:
        """Fetch one record, raising RecordNotFound or OwnershipViolation"""
        entity_cls, id_field = self._describe(collection)
        for raw in self._load(collection):
            if raw.get(id_field) == record_id:
                if raw.get("user_id") != user_id:
                    raise OwnershipViolation(collection, record_id, user_id)
                return self._decode(collection, entity_cls, raw)
        raise RecordNotFound(collection, record_id)

    def find(self, collection: str, record_id: str, user_id: str) -> Optional[Any]:
        """Like get() but returns None for a missing record"""
        try:
            return self.get(collection, record_id, user_id)
        except RecordNotFound:
            return None

    def upsert(self, collection: str, record: Any, user_id: str) -> Any:
        """
        Insert or replace a record and return the stored version.

        created_at is kept from an existing record with the same id (or set to
        now for a new one); updated_at is set to now and never moves backwards.
        """
        entity_cls, id_field = self._describe(collection)
        record_id = getattr(record, id_field)
        if not record_id:
            raise ValueError(f"{collection} record has no {id_field}")
        if record.user_id != user_id:
            raise OwnershipViolation(collection, record_id, user_id)

        records = self._load(collection)
        index = next((i for i, r in enumerate(records) if r.get(id_field) == record_id), None)
        now = self.clock()

        if index is None:
            stored = record
            if hasattr(record, "created_at"):
                stored = replace(record, created_at=now, updated_at=now)
            records.append(stored.to_dict())
        else:
            existing = records[index]
            if existing.get("user_id") != user_id:
                raise OwnershipViolation(collection, record_id, user_id)
            stored = record
            if hasattr(record, "created_at"):
                created_at = existing.get("created_at") or now
                updated_at = max(now, existing.get("updated_at") or 0, created_at)
                stored = replace(record, created_at=created_at, updated_at=updated_at)
            records[index] = stored.to_dict()

        self.store.put(collection, records)
        self.logger.debug(
            "Record saved",
            extra={"event": "record_upsert", "collection": collection, "record_id": record_id, "created": index is None},
        )
        return stored

    def remove(self, collection: str, record_id: str, user_id: str) -> bool:
        """Delete a record if present; returns whether anything was removed"""
        _, id_field = self._describe(collection)
        records = self._load(collection)
        remaining = []
        removed = False
        for raw in records:
            if raw.get(id_field) == record_id:
                if raw.get("user_id") != user_id:
                    raise OwnershipViolation(collection, record_id, user_id)
                removed = True
            else:
                remaining.append(raw)

        if removed:
            self.store.put(collection, remaining)
            self.logger.debug(
                "Record removed",
                extra={"event": "record_remove", "collection": collection, "record_id": record_id},
            )
        return removed

    # User methods
    def find_user_by_email(self, email: str) -> Optional[User]:
        wanted = email.strip().lower()
        for raw in self._load(USERS):
            if (raw.get("email") or "").strip().lower() == wanted:
                return self._decode(USERS, User, raw)
        return None

    def get_or_create_user(self, email: str, name: Optional[str] = None) -> User:
        """Return the user registered under email, registering one if needed"""
        user = self.find_user_by_email(email)
        if user:
            return user

        user = User(user_id=new_record_id(), name=name or email.split("@")[0], email=email.strip())
        return self.upsert(USERS, user, user.user_id)

    def save_user(self, user: User, user_id: str) -> User:
        return self.upsert(USERS, user, user_id)
