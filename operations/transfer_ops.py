"""
Transfer Operations for Digitale Kleiderkammer.

Moves articles between the storage and persons (issue / return).
"""

import logging
from datetime import datetime
from typing import Optional

from data.interface import DatabaseInterface
from domain.exceptions import DatabaseError, KleiderkammerBaseException
from domain.models import (
    Article,
    ACTION_TRANSFER_TO_PERSON,
    ACTION_TRANSFER_TO_STORAGE,
    EVENT_TRANSFER,
    LOCATION_PERSON,
)
from domain.validators import validate_article_id, validate_target_type
from .article_ops import require_active_article_row, load_article_view, resolve_location_id

logger = logging.getLogger(__name__)


def assign_article(
    db: DatabaseInterface,
    article_id: str,
    target_type: str,
    person_id: Optional[int] = None,
    performed_by: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Article:
    """
    Move an article to the storage or to a person.

    Assigning an article to the location it already sits at is a no-op:
    nothing is written and the current view is returned. Otherwise the
    location is updated and one transfer ledger row with from/to locations
    is written in the same transaction.

    Args:
        db: Database instance (injected)
        article_id: Raw article id
        target_type: "storage" or "person"
        person_id: Person id (required for person targets)
        performed_by: Acting user, recorded on the ledger row
        now: Override for the current moment (testing)

    Returns:
        Article view after the transfer

    Raises:
        ValidationError: Invalid target type or missing person id
        NotFoundError: Unknown person, unknown or retired article
        DatabaseError: If the write fails

    Example:
        >>> article = assign_article(db, "123", "person", person_id=1)
        >>> article.status
        'issued'
        >>> article = assign_article(db, "123", "storage")
        >>> article.status
        'in_storage'
    """
    article_id = validate_article_id(article_id)
    target_type = validate_target_type(target_type, person_id)
    now = now or datetime.now()

    try:
        with db.lock_article(article_id), db.transaction():
            row = require_active_article_row(db, article_id)
            target_location_id = resolve_location_id(db, target_type, person_id)
            current_location_id = row["location_id"]

            if target_location_id == current_location_id:
                logger.info(f"Article {article_id} already at target location, nothing to do")
            else:
                action = (
                    ACTION_TRANSFER_TO_PERSON
                    if target_type == LOCATION_PERSON
                    else ACTION_TRANSFER_TO_STORAGE
                )
                db.update_article_location(article_id, target_location_id, now)
                db.insert_movement(
                    article_id=article_id,
                    action=action,
                    event_type=EVENT_TRANSFER,
                    from_location_id=current_location_id,
                    to_location_id=target_location_id,
                    performed_at=now,
                    performed_by=performed_by,
                )
                logger.info(
                    f"Article {article_id}: {action} "
                    f"(location {current_location_id} -> {target_location_id})"
                )

    except KleiderkammerBaseException:
        raise

    except Exception as e:
        logger.exception(f"Error transferring article {article_id}")
        raise DatabaseError(
            f"Failed to transfer article: {e}",
            details={"article_id": article_id, "target_type": target_type},
        )

    return load_article_view(db, article_id, today=now.date())
