"""
Business rules for Digitale Kleiderkammer.

These functions encode the helmet certification discipline and the live
status of an article. They are pure functions with no side effects.
"""

from datetime import date, timedelta
from typing import Any, Dict, Optional, Tuple

from .models import (
    ArticleWarning,
    HELMET_CATEGORY,
    HELMET_CHECK_INTERVAL_YEARS,
    HELMET_LIFETIME_YEARS,
    LOCATION_PERSON,
    STATUS_IN_STORAGE,
    STATUS_ISSUED,
    STATUS_WARNING_ACTIVE,
    WARNING_CHECK_DUE,
    WARNING_EXPIRY_DUE,
    WARNING_WINDOW_DAYS,
)


def is_helmet_category(category: Optional[str]) -> bool:
    """
    Check if a category falls under the helmet rule.

    Comparison is case-insensitive on the trimmed value: "Helm", "HELM",
    " helm " all match.
    """
    return (category or "").strip().casefold() == HELMET_CATEGORY


def add_years(value: date, years: int) -> date:
    """
    Add whole years to a date.

    29 February rolls over to 1 March in non-leap target years.

    Examples:
        >>> add_years(date(2020, 1, 1), 10)
        datetime.date(2030, 1, 1)
        >>> add_years(date(2020, 2, 29), 2)
        datetime.date(2022, 3, 1)
    """
    try:
        return value.replace(year=value.year + years)
    except ValueError:
        return date(value.year + years, 3, 1)


def calculate_helmet_expiry(manufactured_at: date) -> date:
    """Helmet expiry: manufacture date + 10 years."""
    return add_years(manufactured_at, HELMET_LIFETIME_YEARS)


def calculate_helmet_check_dates(
    performed_at: Optional[date] = None,
    today: Optional[date] = None,
) -> Tuple[date, date]:
    """
    Dates recorded when a helmet check is completed.

    Args:
        performed_at: Date the check was performed (defaults to today)
        today: Override for the current date (testing)

    Returns:
        (last_check, next_check) where next_check = last_check + 2 years
    """
    last_check = performed_at or today or date.today()
    return last_check, add_years(last_check, HELMET_CHECK_INTERVAL_YEARS)


def derive_status(
    category: Optional[str],
    location_kind: Optional[str],
    helmet_next_check: Optional[date] = None,
    expiry_date: Optional[date] = None,
    today: Optional[date] = None,
) -> Tuple[str, Optional[ArticleWarning]]:
    """
    Derive live status and active warning of an article.

    Rule:
    - base status is "issued" if the article sits at a person, else "in_storage"
    - helmets only: a next check or an expiry within today + 30 days sets
      "warning_active"; the expiry warning is evaluated last and replaces
      a check warning when both apply
    - other categories never warn

    Args:
        category: Article category
        location_kind: "storage" or "person"
        helmet_next_check: Next check date (may be None)
        expiry_date: Expiry date (may be None)
        today: Override for the current date (testing)

    Returns:
        (status, warning or None)
    """
    status = STATUS_ISSUED if location_kind == LOCATION_PERSON else STATUS_IN_STORAGE
    warning = None

    if not is_helmet_category(category):
        return status, warning

    warning_window = (today or date.today()) + timedelta(days=WARNING_WINDOW_DAYS)

    if helmet_next_check is not None and helmet_next_check <= warning_window:
        status = STATUS_WARNING_ACTIVE
        warning = ArticleWarning(kind=WARNING_CHECK_DUE, date=helmet_next_check)

    if expiry_date is not None and expiry_date <= warning_window:
        status = STATUS_WARNING_ACTIVE
        warning = ArticleWarning(kind=WARNING_EXPIRY_DUE, date=expiry_date)

    return status, warning


def build_change_payload(
    changes: Dict[str, Any],
    current: Dict[str, Any],
) -> Tuple[Dict[str, Any], Dict[str, Any]]:
    """
    Build old/new snapshots for the fields that actually change.

    Args:
        changes: Requested new values keyed by field name
        current: Current values keyed by field name

    Returns:
        (old_values, new_values) - both empty if nothing changes

    Example:
        >>> build_change_payload({"size": "M", "label": "Jacke"},
        ...                      {"size": "S", "label": "Jacke"})
        ({'size': 'S'}, {'size': 'M'})
    """
    old_values = {}
    new_values = {}

    for field_name, new_value in changes.items():
        old_value = current.get(field_name)
        if old_value == new_value:
            continue
        old_values[field_name] = old_value
        new_values[field_name] = new_value

    return old_values, new_values
