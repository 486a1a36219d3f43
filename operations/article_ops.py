"""
Article Operations for Digitale Kleiderkammer.

Create, read, update and retire articles.
Pure functions with dependency injection - no global state.

Every mutation runs under the article lock inside one transaction and writes
exactly one ledger row together with the article row. Reads return freshly
derived Article views (status and warning computed on the fly).
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from config.constants import CATEGORY_PRESETS
from data.interface import DatabaseInterface
from domain.exceptions import (
    DatabaseError,
    KleiderkammerBaseException,
    NotFoundError,
    ValidationError,
)
from domain.models import (
    Article,
    Location,
    ACTION_CREATE,
    ACTION_RETIRE,
    ACTION_UPDATE,
    EVENT_CREATE,
    EVENT_RETIRE,
    EVENT_UPDATE,
    LOCATION_PERSON,
    LOCATION_STORAGE,
)
from domain.notes import append_note_entry, extract_note_entries
from domain.rules import (
    build_change_payload,
    calculate_helmet_expiry,
    derive_status,
    is_helmet_category,
)
from domain.validators import (
    clean_optional_text,
    normalize_date_input,
    validate_article_id,
    validate_category,
    validate_label,
    validate_target_type,
)
from .timeline_ops import (
    TIMELINE_MOVEMENT_LIMIT,
    build_article_timeline,
    movement_from_row,
)

logger = logging.getLogger(__name__)


# Fields accepted by update_article()
UPDATABLE_FIELDS = (
    "category",
    "label",
    "size",
    "expiry_date",
    "helmet_next_check",
    "helmet_last_check",
    "helmet_manufactured_at",
)

# Columns compared for the update diff
TRACKED_COLUMNS = UPDATABLE_FIELDS + ("notes",)


# ==================== Views ====================


def article_from_row(row: Dict[str, Any], today=None) -> Article:
    """
    Build an Article view from a joined article row.

    The holder name of a person location is taken from the person record,
    status and warning are derived for `today`.

    Args:
        row: Row from DatabaseInterface.get_article() / list_articles()
        today: Override for the current date (testing)

    Returns:
        Article (without history)
    """
    if row["location_kind"] == LOCATION_PERSON:
        name = f"{row.get('first_name') or ''} {row.get('last_name') or ''}".strip()
    else:
        name = row.get("location_name") or ""

    location = Location(
        kind=row["location_kind"],
        id=row["location_id"],
        name=name,
        person_id=row.get("person_id"),
    )

    status, warning = derive_status(
        row["category"],
        location.kind,
        helmet_next_check=row.get("helmet_next_check"),
        expiry_date=row.get("expiry_date"),
        today=today,
    )

    return Article(
        id=row["id"],
        category=row["category"],
        label=row["label"],
        location=location,
        size=row.get("size"),
        notes=row.get("notes"),
        expiry_date=row.get("expiry_date"),
        helmet_manufactured_at=row.get("helmet_manufactured_at"),
        helmet_last_check=row.get("helmet_last_check"),
        helmet_next_check=row.get("helmet_next_check"),
        active=bool(row.get("active", 1)),
        status=status,
        warning=warning,
        assigned_at=row.get("last_movement_at") or row.get("updated_at"),
        created_at=row.get("created_at"),
        updated_at=row.get("updated_at"),
    )


def load_article_view(
    db: DatabaseInterface,
    article_id: str,
    today=None,
) -> Article:
    """
    Load one active article with movement history, notes and timeline.

    Raises:
        NotFoundError: If the article does not exist or is retired
    """
    row = db.get_article(article_id)
    if not row:
        raise NotFoundError(
            f"Article '{article_id}' not found",
            details={"article_id": article_id},
        )

    article = article_from_row(row, today=today)
    article.movement_history = [
        movement_from_row(movement)
        for movement in db.get_article_movements(article_id, limit=TIMELINE_MOVEMENT_LIMIT)
    ]
    article.note_entries = extract_note_entries(article.notes)
    article.timeline = build_article_timeline(
        article, article.movement_history, article.note_entries
    )
    return article


def resolve_location_id(
    db: DatabaseInterface,
    target_type: str,
    person_id: Optional[int] = None,
) -> int:
    """
    Resolve a validated transfer target to a location row id.

    Args:
        db: Database instance (injected)
        target_type: "storage" or "person"
        person_id: Person id for person targets

    Raises:
        NotFoundError: If the person has no location
    """
    if target_type == LOCATION_STORAGE:
        return db.storage_location_id

    location_id = db.get_person_location_id(person_id)
    if location_id is None:
        raise NotFoundError(
            f"Person {person_id} not found",
            details={"person_id": person_id},
        )
    return location_id


def match_category_preset(category: Optional[str]) -> Optional[Dict[str, Any]]:
    """Preset whose label matches the category (case-insensitive), None if custom."""
    normalized = (category or "").strip().casefold()
    for preset in CATEGORY_PRESETS:
        if preset["label"].casefold() == normalized:
            return preset
    return None


def require_active_article_row(db: DatabaseInterface, article_id: str) -> Dict[str, Any]:
    """Raw article row for a mutation, NotFoundError if absent or retired."""
    row = db.get_article_for_update(article_id)
    if not row or not row["active"]:
        raise NotFoundError(
            f"Article '{article_id}' not found",
            details={"article_id": article_id},
        )
    return row


# ==================== Create ====================


def create_article(
    db: DatabaseInterface,
    article_id: str,
    category: str,
    label: Optional[str] = None,
    size: Optional[str] = None,
    notes: Optional[str] = None,
    target_type: str = LOCATION_STORAGE,
    person_id: Optional[int] = None,
    manufactured_at: Any = None,
    expiry_date: Any = None,
    performed_by: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Article:
    """
    Create a new article at storage or directly at a person.

    For helmets the manufacture date is mandatory and the expiry date is
    always manufacture date + 10 years (a supplied expiry is discarded).

    Args:
        db: Database instance (injected)
        article_id: Raw id (normalized to 9 digits)
        category: Category, e.g. "Helm"
        label: Display label (defaults to category)
        size: Size (blank -> default size of the category preset, else None)
        notes: Initial note (stamped into the notes log)
        target_type: "storage" or "person"
        person_id: Person id when target_type is "person"
        manufactured_at: Manufacture date (required for helmets)
        expiry_date: Expiry date (ignored for helmets)
        performed_by: Acting user, recorded on the ledger row
        now: Override for the current moment (testing)

    Returns:
        Created Article view

    Raises:
        ValidationError: Missing id/category, invalid date or target,
                         helmet without manufacture date
        NotFoundError: If the target person does not exist
        ConflictError: If an article with this id already exists
        DatabaseError: If the write fails

    Example:
        >>> article = create_article(db, "123", "Helm", manufactured_at="2020-01-01")
        >>> article.id, article.expiry_date
        ('000000123', datetime.date(2030, 1, 1))
    """
    article_id = validate_article_id(article_id)
    category = validate_category(category)
    label = clean_optional_text(label) or category
    size = clean_optional_text(size)
    target_type = validate_target_type(target_type, person_id)

    if size is None:
        preset = match_category_preset(category)
        if preset and preset.get("default_size"):
            size = preset["default_size"]

    manufactured = normalize_date_input(manufactured_at, "helmet_manufactured_at")
    expiry = normalize_date_input(expiry_date, "expiry_date")

    if is_helmet_category(category):
        if manufactured is None:
            raise ValidationError(
                "Manufacture date required for helmets",
                details={"article_id": article_id},
            )
        expiry = calculate_helmet_expiry(manufactured)

    now = now or datetime.now()
    stamped_notes = append_note_entry(notes, None, now) or None

    try:
        with db.lock_article(article_id), db.transaction():
            location_id = resolve_location_id(db, target_type, person_id)

            db.insert_article(
                article_id=article_id,
                category=category,
                label=label,
                location_id=location_id,
                created_at=now,
                size=size,
                notes=stamped_notes,
                expiry_date=expiry,
                helmet_manufactured_at=manufactured,
            )
            db.insert_movement(
                article_id=article_id,
                action=ACTION_CREATE,
                event_type=EVENT_CREATE,
                from_location_id=None,
                to_location_id=location_id,
                performed_at=now,
                new_value={"category": category, "size": size},
                performed_by=performed_by,
            )

    except KleiderkammerBaseException:
        raise

    except Exception as e:
        logger.exception(f"Error creating article {article_id}")
        raise DatabaseError(
            f"Failed to create article: {e}",
            details={"article_id": article_id},
        )

    logger.info(f"Created article {article_id} ({category}) at {target_type}")
    return load_article_view(db, article_id, today=now.date())


# ==================== Read ====================


def get_article(db: DatabaseInterface, article_id: str, today=None) -> Article:
    """
    Get one active article with derived status, warning and timeline.

    Raises:
        ValidationError: If the id holds no digits
        NotFoundError: If the article does not exist or is retired
    """
    article_id = validate_article_id(article_id)
    article = load_article_view(db, article_id, today=today)
    logger.debug(f"Loaded article {article_id} (status={article.status})")
    return article


def list_articles(
    db: DatabaseInterface,
    assigned_only: bool = False,
    today=None,
) -> List[Article]:
    """
    List all active articles ordered by id.

    Args:
        db: Database instance (injected)
        assigned_only: Only articles currently held by a person
        today: Override for the current date (testing)

    Returns:
        List of Article views (without history)
    """
    try:
        rows = db.list_articles(assigned_only=assigned_only)
    except Exception as e:
        logger.exception("Error listing articles")
        raise DatabaseError(
            f"Failed to list articles: {e}",
            details={"assigned_only": assigned_only},
        )

    articles = [article_from_row(row, today=today) for row in rows]
    logger.debug(f"Listed {len(articles)} articles (assigned_only={assigned_only})")
    return articles


# ==================== Update ====================


def _normalize_changes(changes: Dict[str, Any]) -> Dict[str, Any]:
    """Validate the recognized fields of an update request."""
    normalized = {}

    for field_name in UPDATABLE_FIELDS:
        if field_name not in changes:
            continue

        value = changes[field_name]
        if field_name == "category":
            normalized[field_name] = validate_category(value)
        elif field_name == "label":
            normalized[field_name] = validate_label(value)
        elif field_name == "size":
            normalized[field_name] = clean_optional_text(value)
        else:
            normalized[field_name] = normalize_date_input(value, field_name)

    return normalized


def update_article(
    db: DatabaseInterface,
    article_id: str,
    changes: Dict[str, Any],
    note: Optional[str] = None,
    performed_by: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Article:
    """
    Apply a partial update to an article.

    Only fields present in `changes` are touched. After the change, a helmet
    category requires a manufacture date and forces the expiry date. A
    non-blank note is prepended to the notes log; a note alone is not a
    change. Only columns whose value actually changes are written, together with one "update" ledger row
    carrying old/new values. An update that changes nothing writes nothing.

    Args:
        db: Database instance (injected)
        article_id: Raw article id
        changes: Field name -> new value (see UPDATABLE_FIELDS)
        note: Optional note text
        performed_by: Acting user, recorded on the ledger row
        now: Override for the current moment (testing)

    Returns:
        Updated Article view

    Raises:
        ValidationError: No recognized field submitted, empty
                         category/label, invalid date, helmet without
                         manufacture date
        NotFoundError: If the article does not exist or is retired
        DatabaseError: If the write fails

    Example:
        >>> article = update_article(db, "123", {"size": "L"}, note="Umgetauscht")
        >>> article.size
        'L'
    """
    article_id = validate_article_id(article_id)
    changes = changes or {}

    ignored = [key for key in changes if key not in UPDATABLE_FIELDS]
    if ignored:
        logger.warning(f"Ignoring unknown fields for article {article_id}: {ignored}")

    note_text = (note or "").strip()
    normalized = _normalize_changes(changes)

    if not normalized:
        raise ValidationError(
            "No changes submitted",
            details={"article_id": article_id},
        )

    now = now or datetime.now()

    try:
        with db.lock_article(article_id), db.transaction():
            row = require_active_article_row(db, article_id)
            current = {column: row.get(column) for column in TRACKED_COLUMNS}
            merged = {**current, **normalized}

            if is_helmet_category(merged["category"]):
                if merged["helmet_manufactured_at"] is None:
                    raise ValidationError(
                        "Manufacture date required for helmets",
                        details={"article_id": article_id},
                    )
                normalized["expiry_date"] = calculate_helmet_expiry(
                    merged["helmet_manufactured_at"]
                )

            if note_text:
                normalized["notes"] = append_note_entry(note_text, row.get("notes"), now)

            old_values, new_values = build_change_payload(normalized, current)

            if not new_values:
                logger.info(f"Update of article {article_id} changed nothing")
            else:
                db.update_article_fields(article_id, new_values, now)
                db.insert_movement(
                    article_id=article_id,
                    action=ACTION_UPDATE,
                    event_type=EVENT_UPDATE,
                    from_location_id=row["location_id"],
                    to_location_id=row["location_id"],
                    performed_at=now,
                    old_value=old_values,
                    new_value=new_values,
                    performed_by=performed_by,
                )
                logger.info(
                    f"Updated article {article_id}: {sorted(new_values.keys())}"
                )

    except KleiderkammerBaseException:
        raise

    except Exception as e:
        logger.exception(f"Error updating article {article_id}")
        raise DatabaseError(
            f"Failed to update article: {e}",
            details={"article_id": article_id},
        )

    return load_article_view(db, article_id, today=now.date())


# ==================== Retire ====================


def retire_article(
    db: DatabaseInterface,
    article_id: str,
    performed_by: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """
    Retire (soft-delete) an article.

    The row stays in the database with active = 0 and disappears from all
    listings and lookups. One "retire" ledger row is written.

    Returns:
        {"deleted": True, "id": article_id}

    Raises:
        NotFoundError: If the article does not exist or is already retired
        DatabaseError: If the write fails
    """
    article_id = validate_article_id(article_id)
    now = now or datetime.now()

    try:
        with db.lock_article(article_id), db.transaction():
            row = require_active_article_row(db, article_id)

            db.retire_article(article_id, now)
            db.insert_movement(
                article_id=article_id,
                action=ACTION_RETIRE,
                event_type=EVENT_RETIRE,
                from_location_id=row["location_id"],
                to_location_id=row["location_id"],
                performed_at=now,
                performed_by=performed_by,
            )

    except KleiderkammerBaseException:
        raise

    except Exception as e:
        logger.exception(f"Error retiring article {article_id}")
        raise DatabaseError(
            f"Failed to retire article: {e}",
            details={"article_id": article_id},
        )

    logger.info(f"Retired article {article_id}")
    return {"deleted": True, "id": article_id}
