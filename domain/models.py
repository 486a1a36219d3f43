"""
Domain models for Digitale Kleiderkammer.

These dataclasses represent the core business entities of the clothing depot.
They are framework-agnostic and have no dependencies on database or UI.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional, List, Dict, Any


# ==================== Domain Constants ====================

HELMET_CATEGORY = "helm"
HELMET_LIFETIME_YEARS = 10
HELMET_CHECK_INTERVAL_YEARS = 2
WARNING_WINDOW_DAYS = 30

ARTICLE_ID_LENGTH = 9

LOCATION_STORAGE = "storage"
LOCATION_PERSON = "person"
LOCATION_KINDS = [LOCATION_STORAGE, LOCATION_PERSON]

STATUS_IN_STORAGE = "in_storage"
STATUS_ISSUED = "issued"
STATUS_WARNING_ACTIVE = "warning_active"

WARNING_CHECK_DUE = "check_due"
WARNING_EXPIRY_DUE = "expiry_due"

PERSON_STATUS_ACTIVE = "active"
PERSON_STATUS_INACTIVE = "inactive"
PERSON_STATUSES = [PERSON_STATUS_ACTIVE, PERSON_STATUS_INACTIVE]

# Movement ledger: action tag and secondary event type
ACTION_CREATE = "create"
ACTION_TRANSFER_TO_PERSON = "transfer_to_person"
ACTION_TRANSFER_TO_STORAGE = "transfer_to_storage"
ACTION_UPDATE = "update"
ACTION_CERTIFICATION_UPDATE = "certification_update"
ACTION_RETIRE = "retire"

EVENT_CREATE = "create"
EVENT_TRANSFER = "transfer"
EVENT_UPDATE = "update"
EVENT_CERTIFICATION_UPDATE = "certification_update"
EVENT_RETIRE = "retire"


def _iso(value) -> Optional[str]:
    """Serialize date/datetime to ISO string (None stays None)."""
    return value.isoformat() if value is not None else None


@dataclass
class Location:
    """
    Where an article currently sits.

    Either the single storage location or the 1:1 location of a person.
    The display name of a person location is resolved live from the
    person record, never copied onto the article.
    """

    kind: str
    id: Optional[int] = None
    name: str = ""
    person_id: Optional[int] = None

    def __post_init__(self):
        """Validate location kind."""
        if self.kind not in LOCATION_KINDS:
            raise ValueError(f"kind must be one of {LOCATION_KINDS}")

    @property
    def is_person(self) -> bool:
        """Check if this location belongs to a person."""
        return self.kind == LOCATION_PERSON

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.kind,
            "name": self.name,
            "person_id": self.person_id,
        }


@dataclass
class Person:
    """A child (or other individual) who may hold articles."""

    first_name: str
    last_name: str
    status: str = PERSON_STATUS_ACTIVE
    id: Optional[int] = None
    created_at: Optional[datetime] = None
    article_count: Optional[int] = None

    def __post_init__(self):
        """Validate person data."""
        if not self.first_name:
            raise ValueError("first_name cannot be empty")
        if not self.last_name:
            raise ValueError("last_name cannot be empty")
        if self.status not in PERSON_STATUSES:
            raise ValueError(f"status must be one of {PERSON_STATUSES}")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "id": self.id,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "status": self.status,
            "created_at": _iso(self.created_at),
        }
        if self.article_count is not None:
            data["article_count"] = self.article_count
        return data


@dataclass
class ArticleWarning:
    """
    Derived, non-persisted helmet warning.

    kind is "check_due" or "expiry_due"; date is the date that triggered it.
    """

    kind: str
    date: date
    window_days: int = WARNING_WINDOW_DAYS

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.kind,
            "date": _iso(self.date),
            "window_days": self.window_days,
        }


@dataclass
class NoteEntry:
    """
    One line of the notes log.

    Not persisted separately - parsed from the article's notes blob.
    timestamp is only set when the label is a valid note stamp.
    """

    text: str
    label: Optional[str] = None
    timestamp: Optional[datetime] = None
    index: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": f"note-{self.index}",
            "timestamp": _iso(self.timestamp),
            "label": self.label,
            "text": self.text,
        }


@dataclass
class Movement:
    """
    Immutable ledger row: one location or field change of an article.

    Locations are None when the ledger row has no from/to side or when the
    referenced location no longer exists.
    """

    article_id: str
    action: str
    event_type: Optional[str] = None
    from_location: Optional[Location] = None
    to_location: Optional[Location] = None
    old_value: Optional[Dict[str, Any]] = None
    new_value: Optional[Dict[str, Any]] = None
    performed_at: Optional[datetime] = None
    performed_by: Optional[str] = None
    id: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "action": self.action,
            "event_type": self.event_type,
            "performed_at": _iso(self.performed_at),
            "performed_by": self.performed_by,
            "from": self.from_location.to_dict() if self.from_location else None,
            "to": self.to_location.to_dict() if self.to_location else None,
            "old_value": self.old_value,
            "new_value": self.new_value,
        }


@dataclass
class TimelineEntry:
    """One row of the merged article history view."""

    label: str
    timestamp: Optional[datetime] = None
    meta: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "label": self.label,
            "date": _iso(self.timestamp),
            "meta": self.meta,
        }


@dataclass
class Article:
    """
    A tracked equipment item with its derived live view.

    Stored fields come from the articles table; status, warning,
    movement_history, note_entries and timeline are derived on read.
    """

    id: str
    category: str
    label: str
    location: Location
    size: Optional[str] = None
    notes: Optional[str] = None
    expiry_date: Optional[date] = None
    helmet_manufactured_at: Optional[date] = None
    helmet_last_check: Optional[date] = None
    helmet_next_check: Optional[date] = None
    active: bool = True
    status: str = STATUS_IN_STORAGE
    warning: Optional[ArticleWarning] = None
    assigned_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    # Only populated for single-article reads
    movement_history: List[Movement] = field(default_factory=list)
    note_entries: List[NoteEntry] = field(default_factory=list)
    timeline: List[TimelineEntry] = field(default_factory=list)

    def __post_init__(self):
        """Validate article data."""
        if not self.id:
            raise ValueError("id cannot be empty")
        if len(self.id) != ARTICLE_ID_LENGTH or not self.id.isdigit():
            raise ValueError(f"id must be {ARTICLE_ID_LENGTH} digits")
        if not self.category:
            raise ValueError("category cannot be empty")
        if not self.label:
            raise ValueError("label cannot be empty")

    @property
    def is_helmet(self) -> bool:
        """Check if the article falls under the helmet certification rule."""
        return self.category.strip().casefold() == HELMET_CATEGORY

    @property
    def is_issued(self) -> bool:
        """Check if the article is held by a person."""
        return self.location.is_person

    def to_dict(self, include_history: bool = False) -> Dict[str, Any]:
        """
        Convert to a JSON-shaped dict for transport layers.

        Args:
            include_history: Include movements, note entries and timeline
        """
        data = {
            "id": self.id,
            "category": self.category,
            "label": self.label,
            "size": self.size,
            "notes": self.notes,
            "status": self.status,
            "location": self.location.to_dict(),
            "assigned_at": _iso(self.assigned_at),
            "expiry_date": _iso(self.expiry_date),
            "helmet_next_check": _iso(self.helmet_next_check),
            "helmet_last_check": _iso(self.helmet_last_check),
            "helmet_manufactured_at": _iso(self.helmet_manufactured_at),
            "warning": self.warning.to_dict() if self.warning else None,
        }
        if include_history:
            data["movement_history"] = [m.to_dict() for m in self.movement_history]
            data["note_entries"] = [n.to_dict() for n in self.note_entries]
            data["timeline"] = [t.to_dict() for t in self.timeline]
        return data


@dataclass
class HelmetAlert:
    """
    Dashboard alert for a helmet needing attention.

    severity is "warning" (due soon / undocumented) or "critical" (overdue).
    """

    article: Article
    reason: str
    severity: str = "warning"

    @property
    def is_critical(self) -> bool:
        return self.severity == "critical"
