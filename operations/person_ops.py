"""
Person Operations for Digitale Kleiderkammer.

Persons (children) who may hold articles. Every person owns exactly one
location, created, renamed and removed together with the person.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from data.interface import DatabaseInterface
from domain.exceptions import (
    ConflictError,
    DatabaseError,
    KleiderkammerBaseException,
    NotFoundError,
    ValidationError,
)
from domain.models import Article, Person, PERSON_STATUS_ACTIVE
from domain.validators import validate_person_name, validate_person_status
from .article_ops import article_from_row

logger = logging.getLogger(__name__)


def _person_from_row(row: Dict[str, Any]) -> Person:
    return Person(
        id=row["id"],
        first_name=row["first_name"],
        last_name=row["last_name"],
        status=row["status"],
        created_at=row.get("created_at"),
        article_count=row.get("article_count"),
    )


def _require_person_row(db: DatabaseInterface, person_id: int) -> Dict[str, Any]:
    row = db.get_person(person_id)
    if not row:
        raise NotFoundError(
            f"Person {person_id} not found",
            details={"person_id": person_id},
        )
    return row


def create_person(
    db: DatabaseInterface,
    first_name: str,
    last_name: str,
    status: str = PERSON_STATUS_ACTIVE,
    now: Optional[datetime] = None,
) -> Person:
    """
    Create a person together with their location.

    Args:
        db: Database instance (injected)
        first_name: First name (required)
        last_name: Last name (required)
        status: "active" or "inactive"
        now: Override for the current moment (testing)

    Returns:
        Created Person

    Raises:
        ValidationError: Empty name or unknown status
        DatabaseError: If the write fails

    Example:
        >>> person = create_person(db, "Anna", "Schmidt")
        >>> person.full_name
        'Anna Schmidt'
    """
    first_name = validate_person_name(first_name, "First name")
    last_name = validate_person_name(last_name, "Last name")
    status = validate_person_status(status)
    now = now or datetime.now()

    try:
        with db.transaction():
            person_id = db.insert_person(first_name, last_name, now, status=status)
            db.insert_person_location(person_id, f"{first_name} {last_name}")

    except KleiderkammerBaseException:
        raise

    except Exception as e:
        logger.exception(f"Error creating person {first_name} {last_name}")
        raise DatabaseError(
            f"Failed to create person: {e}",
            details={"first_name": first_name, "last_name": last_name},
        )

    logger.info(f"Created person {person_id}: {first_name} {last_name}")
    return get_person(db, person_id)


def get_person(db: DatabaseInterface, person_id: int) -> Person:
    """
    Get a person by id.

    Raises:
        NotFoundError: If the person does not exist
    """
    return _person_from_row(_require_person_row(db, person_id))


def list_persons(db: DatabaseInterface) -> List[Person]:
    """
    List all persons with the number of active articles they hold.

    Ordered by last name, then first name (case-insensitive).
    """
    try:
        rows = db.list_persons()
    except Exception as e:
        logger.exception("Error listing persons")
        raise DatabaseError(f"Failed to list persons: {e}")

    logger.debug(f"Listed {len(rows)} persons")
    return [_person_from_row(row) for row in rows]


def update_person(
    db: DatabaseInterface,
    person_id: int,
    first_name: Optional[str] = None,
    last_name: Optional[str] = None,
    status: Optional[str] = None,
) -> Person:
    """
    Update a person and rename their location accordingly.

    Only the given fields are changed.

    Raises:
        ValidationError: Nothing to update, empty name or unknown status
        NotFoundError: If the person does not exist
        DatabaseError: If the write fails
    """
    fields = {}
    if first_name is not None:
        fields["first_name"] = validate_person_name(first_name, "First name")
    if last_name is not None:
        fields["last_name"] = validate_person_name(last_name, "Last name")
    if status is not None:
        fields["status"] = validate_person_status(status)

    if not fields:
        raise ValidationError(
            "No changes submitted",
            details={"person_id": person_id},
        )

    try:
        with db.lock_person(person_id), db.transaction():
            current = _require_person_row(db, person_id)
            db.update_person_fields(person_id, fields)

            merged = {**current, **fields}
            db.rename_person_location(
                person_id, f"{merged['first_name']} {merged['last_name']}"
            )

    except KleiderkammerBaseException:
        raise

    except Exception as e:
        logger.exception(f"Error updating person {person_id}")
        raise DatabaseError(
            f"Failed to update person: {e}",
            details={"person_id": person_id},
        )

    logger.info(f"Updated person {person_id}: {sorted(fields.keys())}")
    return get_person(db, person_id)


def delete_person(db: DatabaseInterface, person_id: int) -> Dict[str, Any]:
    """
    Delete a person and their location.

    Retired articles still pointing at the person's location are moved to
    the storage first. Ledger rows are kept; they show the location as
    unknown from then on.

    Returns:
        {"deleted": True, "id": person_id}

    Raises:
        NotFoundError: If the person does not exist
        ConflictError: If the person still holds active articles
        DatabaseError: If the write fails
    """
    try:
        with db.lock_person(person_id), db.transaction():
            _require_person_row(db, person_id)

            location_id = db.get_person_location_id(person_id)
            if location_id is not None:
                held = db.count_active_articles_at_location(location_id)
                if held:
                    raise ConflictError(
                        "Person still has assigned articles",
                        details={"person_id": person_id, "article_count": held},
                    )
                db.move_retired_articles(location_id, db.storage_location_id)

            db.delete_person(person_id)

    except KleiderkammerBaseException:
        logger.warning(f"Deleting person {person_id} rejected")
        raise

    except Exception as e:
        logger.exception(f"Error deleting person {person_id}")
        raise DatabaseError(
            f"Failed to delete person: {e}",
            details={"person_id": person_id},
        )

    logger.info(f"Deleted person {person_id}")
    return {"deleted": True, "id": person_id}


def list_person_articles(
    db: DatabaseInterface,
    person_id: int,
    today=None,
) -> List[Article]:
    """
    List active articles held by a person.

    Raises:
        NotFoundError: If the person does not exist
    """
    _require_person_row(db, person_id)
    rows = db.list_person_articles(person_id)
    logger.debug(f"Person {person_id} holds {len(rows)} articles")
    return [article_from_row(row, today=today) for row in rows]
