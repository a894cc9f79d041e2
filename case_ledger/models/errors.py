"""
Exception taxonomy for the Case Ledger.

Every error raised by the store, repository and ledger operations derives from
LedgerError so the HTTP layer can map them to responses in one place.
"""

from typing import Any, Dict, Optional


class LedgerError(Exception):
    """Base class for case ledger errors"""

    code = "LEDGER_ERROR"

    def __init__(self, message: str, **details: Any):
        self.message = message
        self.details: Dict[str, Any] = details
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        return {"message": self.message, "code": self.code, **self.details}


class RecordNotFound(LedgerError):
    """A referenced record id does not exist in its collection"""

    code = "NOT_FOUND"

    def __init__(self, collection: str, record_id: Optional[str]):
        super().__init__(f"{collection} record '{record_id}' not found", collection=collection, record_id=record_id)
        self.collection = collection
        self.record_id = record_id


class OwnershipViolation(LedgerError):
    """The record belongs to a different principal than the acting one"""

    code = "OWNERSHIP_VIOLATION"

    def __init__(self, collection: str, record_id: Optional[str], user_id: str):
        super().__init__(
            f"{collection} record '{record_id}' is not owned by the acting user",
            collection=collection,
            record_id=record_id,
            user_id=user_id,
        )
        self.collection = collection
        self.record_id = record_id
        self.user_id = user_id


class PersistenceUnavailable(LedgerError):
    """The underlying store could not be read or written"""

    code = "PERSISTENCE_UNAVAILABLE"

    def __init__(self, operation: str, key: Optional[str] = None, reason: str = ""):
        message = f"Persistence unavailable during {operation}"
        if key:
            message += f" of '{key}'"
        if reason:
            message += f": {reason}"
        super().__init__(message, operation=operation, key=key)
        self.operation = operation
        self.key = key


class AdvisoryUnavailable(LedgerError):
    """The optional advisory generator failed or is not configured"""

    code = "ADVISORY_UNAVAILABLE"
