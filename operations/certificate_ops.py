"""
Certificate Operations for Digitale Kleiderkammer.

Helmet certification: record a completed check and compute the next one.
"""

import logging
from datetime import datetime
from typing import Any, Optional

from data.interface import DatabaseInterface
from domain.exceptions import (
    CategoryMismatchError,
    DatabaseError,
    KleiderkammerBaseException,
)
from domain.models import (
    Article,
    ACTION_CERTIFICATION_UPDATE,
    EVENT_CERTIFICATION_UPDATE,
)
from domain.rules import calculate_helmet_check_dates, is_helmet_category
from domain.validators import normalize_date_input, validate_article_id
from .article_ops import load_article_view, require_active_article_row

logger = logging.getLogger(__name__)


def complete_helmet_check(
    db: DatabaseInterface,
    article_id: str,
    performed_at: Any = None,
    performed_by: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Article:
    """
    Record a completed helmet check.

    Sets helmet_last_check to the check date and helmet_next_check to the
    check date + 2 years. One "certification_update" ledger row carries the
    previous and the new check dates.

    Args:
        db: Database instance (injected)
        article_id: Raw article id
        performed_at: Date of the check (defaults to today)
        performed_by: Acting user, recorded on the ledger row
        now: Override for the current moment (testing)

    Returns:
        Updated Article view

    Raises:
        ValidationError: Invalid check date
        NotFoundError: Unknown or retired article
        CategoryMismatchError: If the article is not a helmet
        DatabaseError: If the write fails

    Example:
        >>> article = complete_helmet_check(db, "123", "2024-05-01")
        >>> article.helmet_next_check
        datetime.date(2026, 5, 1)
    """
    article_id = validate_article_id(article_id)
    check_date = normalize_date_input(performed_at, "helmet_last_check")
    now = now or datetime.now()

    last_check, next_check = calculate_helmet_check_dates(check_date, today=now.date())

    try:
        with db.lock_article(article_id), db.transaction():
            row = require_active_article_row(db, article_id)

            if not is_helmet_category(row["category"]):
                raise CategoryMismatchError(
                    "Article is not a helmet",
                    details={"article_id": article_id, "category": row["category"]},
                )

            new_values = {
                "helmet_last_check": last_check,
                "helmet_next_check": next_check,
            }
            old_values = {
                "helmet_last_check": row.get("helmet_last_check"),
                "helmet_next_check": row.get("helmet_next_check"),
            }

            db.update_article_fields(article_id, new_values, now)
            db.insert_movement(
                article_id=article_id,
                action=ACTION_CERTIFICATION_UPDATE,
                event_type=EVENT_CERTIFICATION_UPDATE,
                from_location_id=row["location_id"],
                to_location_id=row["location_id"],
                performed_at=now,
                old_value=old_values,
                new_value=new_values,
                performed_by=performed_by,
            )

    except KleiderkammerBaseException:
        raise

    except Exception as e:
        logger.exception(f"Error recording helmet check for {article_id}")
        raise DatabaseError(
            f"Failed to record helmet check: {e}",
            details={"article_id": article_id},
        )

    logger.info(f"Helmet check recorded for {article_id}: next check {next_check.isoformat()}")
    return load_article_view(db, article_id, today=now.date())
