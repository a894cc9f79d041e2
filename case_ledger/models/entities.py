"""
Data models and entities for the Case Ledger.

This module defines the records kept per practitioner: cases with their
procedural history, clients and the owning user.
"""

import uuid
from dataclasses import asdict, dataclass, field, fields
from typing import Any, Dict, List, Optional


def _known_fields(cls, data: Dict[str, Any]) -> Dict[str, Any]:
    """Drop keys the dataclass does not declare so older documents still load"""
    names = {f.name for f in fields(cls)}
    return {k: v for k, v in data.items() if k in names}


def new_record_id() -> str:
    """Generate an opaque record identifier"""
    return uuid.uuid4().hex


@dataclass(frozen=True)
class HistoryItem:
    """Snapshot of a past procedural step"""
    date: str
    step: str
    notes: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "HistoryItem":
        return cls(**_known_fields(cls, data))


@dataclass
class User:
    """Owning principal"""
    user_id: str
    name: str
    email: str
    photo: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "User":
        return cls(**_known_fields(cls, data))


@dataclass
class Client:
    """Client entity model"""
    client_id: str
    user_id: str
    name: str
    phone: str = ''
    email: str = ''
    address: str = ''
    notes: str = ''
    photo: Optional[str] = None  # data URL
    case_number: Optional[str] = None  # join key into Case.case_number
    case_name: Optional[str] = None  # display cache of the linked case
    last_contacted: Optional[str] = None  # YYYY-MM-DD
    created_at: int = 0
    updated_at: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Client":
        return cls(**_known_fields(cls, data))


@dataclass
class Case:
    """Case entity model"""
    case_id: str
    user_id: str
    case_number: str
    next_date: str  # YYYY-MM-DD, the currently scheduled listing
    client_id: Optional[str] = None
    serial_number: str = ''
    case_name_parties: str = ''
    court_name: str = ''
    case_type: str = ''
    priority: str = 'Medium'  # Low, Medium, High
    status: str = 'Active'  # Active, Completed
    section: str = ''
    previous_date: str = ''
    step_of_the_day: str = ''
    is_task_done: bool = False
    notes: str = ''
    history: List[HistoryItem] = field(default_factory=list)
    created_at: int = 0
    updated_at: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Case":
        values = _known_fields(cls, data)
        values["history"] = [
            item if isinstance(item, HistoryItem) else HistoryItem.from_dict(item)
            for item in (values.get("history") or [])
        ]
        return cls(**values)


# Collection names in the store, with the entity type and id attribute of each
USERS = "users"
CLIENTS = "clients"
CASES = "cases"

COLLECTIONS = {
    USERS: (User, "user_id"),
    CLIENTS: (Client, "client_id"),
    CASES: (Case, "case_id"),
}

# Common constants
CASE_TYPES = ['Civil', 'Criminal', 'Family', 'Revenue', 'Consumer', 'Labour', 'Writ', 'Other']
PRIORITY_LOW = 'Low'
PRIORITY_MEDIUM = 'Medium'
PRIORITY_HIGH = 'High'
PRIORITY_LEVELS = [PRIORITY_LOW, PRIORITY_MEDIUM, PRIORITY_HIGH]
STATUS_ACTIVE = 'Active'
STATUS_COMPLETED = 'Completed'
CASE_STATUSES = [STATUS_ACTIVE, STATUS_COMPLETED]
