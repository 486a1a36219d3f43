"""
Input validators for Digitale Kleiderkammer.

These validators ensure data integrity before it reaches the database.
All validators raise ValidationError on failure.
"""

import re
from datetime import date, datetime
from pathlib import Path
from typing import Any, List, Optional, Union

from .exceptions import ValidationError
from .models import ARTICLE_ID_LENGTH, LOCATION_KINDS, LOCATION_PERSON, PERSON_STATUSES


def normalize_article_id(value: Any) -> str:
    """
    Normalize raw article id input.

    Strips every non-digit, keeps the last 9 digits and zero-pads to 9.
    Idempotent: normalize(normalize(x)) == normalize(x).

    Args:
        value: Raw id (scanned code, typed number, int, ...)

    Returns:
        9-digit id, or "" if the input holds no digits

    Examples:
        >>> normalize_article_id("123")
        '000000123'
        >>> normalize_article_id("AB-1234567890")
        '234567890'
    """
    if value is None:
        return ""

    digits = re.sub(r"[^0-9]", "", str(value))
    if not digits:
        return ""

    return digits[-ARTICLE_ID_LENGTH:].zfill(ARTICLE_ID_LENGTH)


def validate_article_id(value: Any) -> str:
    """
    Normalize and require an article id.

    Raises:
        ValidationError: If no digits are present
    """
    article_id = normalize_article_id(value)
    if not article_id:
        raise ValidationError(
            "Article id is required",
            details={"value": value},
        )
    return article_id


def validate_category(category: Optional[str]) -> str:
    """
    Validate article category (free text, e.g. "Helm", "Jacke").

    Returns:
        Cleaned category (trimmed, original case)

    Raises:
        ValidationError: If empty
    """
    cleaned = (category or "").strip()
    if not cleaned:
        raise ValidationError("Category cannot be empty")
    return cleaned


def validate_label(label: Optional[str]) -> str:
    """
    Validate article label.

    Raises:
        ValidationError: If empty
    """
    cleaned = (label or "").strip()
    if not cleaned:
        raise ValidationError("Label cannot be empty")
    return cleaned


def clean_optional_text(value: Optional[str]) -> Optional[str]:
    """Trim free text; empty input becomes None."""
    if value is None:
        return None
    cleaned = str(value).strip()
    return cleaned or None


def validate_person_name(name: Optional[str], field_label: str) -> str:
    """
    Validate first or last name of a person.

    Args:
        name: Name to validate
        field_label: Field name used in the error message

    Raises:
        ValidationError: If empty
    """
    cleaned = (name or "").strip()
    if not cleaned:
        raise ValidationError(
            f"{field_label} cannot be empty",
            details={"field": field_label},
        )
    return cleaned


def validate_person_status(status: Optional[str]) -> str:
    """
    Validate person status ("active" or "inactive").

    Raises:
        ValidationError: If not a known status
    """
    cleaned = (status or "").strip().lower()
    if cleaned not in PERSON_STATUSES:
        raise ValidationError(
            f"Invalid status: '{status}'",
            details={"status": status, "allowed": PERSON_STATUSES},
        )
    return cleaned


def validate_target_type(target_type: Optional[str], person_id: Optional[int] = None) -> str:
    """
    Validate a transfer target.

    Args:
        target_type: "storage" or "person"
        person_id: Required when target_type is "person"

    Returns:
        Cleaned target type

    Raises:
        ValidationError: If target type is unknown or person id is missing
    """
    cleaned = (target_type or "").strip().lower()
    if cleaned not in LOCATION_KINDS:
        raise ValidationError(
            "Invalid target type",
            details={"target_type": target_type, "allowed": LOCATION_KINDS},
        )

    if cleaned == LOCATION_PERSON and not person_id:
        raise ValidationError("Person id required")

    return cleaned


# Accepted textual date formats besides ISO 8601
_DATE_FORMATS = ["%d.%m.%Y", "%Y/%m/%d"]


def normalize_date_input(value: Any, field_label: str) -> Optional[date]:
    """
    Parse a date field into a calendar date.

    Accepts date/datetime objects, ISO dates ("2020-01-01"), ISO datetimes
    ("2020-01-01T10:00:00") and German dates ("01.01.2020").

    Args:
        value: Raw value (None or blank means "no date")
        field_label: Field name used in the error message

    Returns:
        date or None

    Raises:
        ValidationError: If the value cannot be parsed
    """
    if value is None:
        return None

    if isinstance(value, datetime):
        return value.date()

    if isinstance(value, date):
        return value

    raw = str(value).strip()
    if not raw:
        return None

    try:
        return date.fromisoformat(raw)
    except ValueError:
        pass

    try:
        return datetime.fromisoformat(raw.replace("Z", "+00:00")).date()
    except ValueError:
        pass

    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(raw, fmt).date()
        except ValueError:
            continue

    raise ValidationError(
        f"Invalid date for {field_label}",
        details={"field": field_label, "value": raw},
    )


def validate_file_path(
    file_path: Union[Path, str],
    must_exist: bool = True,
    allowed_extensions: Optional[List[str]] = None,
) -> Path:
    """
    Validate an import/export file path.

    Args:
        file_path: File path to validate
        must_exist: If True, file must exist on disk
        allowed_extensions: Allowed suffixes, e.g. ['.xlsx', '.xls']

    Raises:
        ValidationError: If empty, missing or of the wrong type
    """
    if not file_path:
        raise ValidationError("File path cannot be empty")

    path = Path(file_path)

    if must_exist and not path.is_file():
        raise ValidationError(
            f"File does not exist: {path}",
            details={"file_path": str(path)},
        )

    if allowed_extensions and path.suffix.lower() not in [ext.lower() for ext in allowed_extensions]:
        raise ValidationError(
            f"Invalid file extension: {path.suffix}",
            details={"file_path": str(path), "allowed": allowed_extensions},
        )

    return path
