"""
Unit tests for domain validators.

Tests cover validation logic and error handling.
"""

import pytest
from datetime import date, datetime

from domain.validators import (
    normalize_article_id,
    validate_article_id,
    validate_category,
    validate_label,
    clean_optional_text,
    validate_person_name,
    validate_person_status,
    validate_target_type,
    normalize_date_input,
    validate_file_path,
)
from domain.exceptions import ValidationError


def test_normalize_article_id_pads_short_ids():
    """Short numeric ids are zero-padded to 9 digits."""
    assert normalize_article_id("123") == "000000123"
    assert normalize_article_id(123) == "000000123"
    assert normalize_article_id("000000123") == "000000123"


def test_normalize_article_id_keeps_last_nine_digits():
    """Longer input keeps the last 9 digits, non-digits are stripped."""
    assert normalize_article_id("1234567890") == "234567890"
    assert normalize_article_id("AB-12 34") == "000001234"
    assert normalize_article_id("  42  ") == "000000042"


def test_normalize_article_id_without_digits():
    """Input without digits normalizes to empty string."""
    assert normalize_article_id("") == ""
    assert normalize_article_id("abc") == ""
    assert normalize_article_id(None) == ""


@pytest.mark.parametrize("raw", ["1", "123456789", "98765432100", "x-7-y", "0", 555])
def test_normalize_article_id_idempotent(raw):
    """normalize(normalize(x)) == normalize(x), always 9 digits."""
    once = normalize_article_id(raw)
    assert normalize_article_id(once) == once
    assert len(once) == 9
    assert once.isdigit()


def test_validate_article_id_required():
    """Ids without digits are rejected."""
    assert validate_article_id("77") == "000000077"

    with pytest.raises(ValidationError) as exc_info:
        validate_article_id("---")

    assert "required" in exc_info.value.message


def test_validate_category_and_label():
    """Category/label are trimmed, empty values rejected."""
    assert validate_category("  Helm ") == "Helm"
    assert validate_label("Jacke rot") == "Jacke rot"

    with pytest.raises(ValidationError):
        validate_category("   ")

    with pytest.raises(ValidationError):
        validate_label(None)


def test_clean_optional_text():
    """Blank text becomes None."""
    assert clean_optional_text("  M ") == "M"
    assert clean_optional_text("   ") is None
    assert clean_optional_text(None) is None


def test_validate_person_name_and_status():
    """Person names required, status normalized to lowercase."""
    assert validate_person_name(" Anna ", "First name") == "Anna"
    assert validate_person_status("Inactive") == "inactive"

    with pytest.raises(ValidationError) as exc_info:
        validate_person_name("", "Last name")
    assert exc_info.value.details["field"] == "Last name"

    with pytest.raises(ValidationError):
        validate_person_status("archived")


def test_validate_target_type():
    """Target must be storage or person, person needs an id."""
    assert validate_target_type("storage") == "storage"
    assert validate_target_type("Person", 3) == "person"

    with pytest.raises(ValidationError) as exc_info:
        validate_target_type("warehouse")
    assert exc_info.value.message == "Invalid target type"

    with pytest.raises(ValidationError) as exc_info:
        validate_target_type("person")
    assert exc_info.value.message == "Person id required"


def test_normalize_date_input_formats():
    """ISO dates, ISO datetimes, German dates and date objects are accepted."""
    assert normalize_date_input("2020-01-01", "expiry_date") == date(2020, 1, 1)
    assert normalize_date_input("2020-01-01T10:30:00Z", "expiry_date") == date(2020, 1, 1)
    assert normalize_date_input("05.03.2024", "expiry_date") == date(2024, 3, 5)
    assert normalize_date_input(date(2021, 6, 1), "expiry_date") == date(2021, 6, 1)
    assert normalize_date_input(datetime(2021, 6, 1, 8, 0), "expiry_date") == date(2021, 6, 1)


def test_normalize_date_input_empty():
    """None and blank mean no date."""
    assert normalize_date_input(None, "expiry_date") is None
    assert normalize_date_input("  ", "expiry_date") is None


def test_normalize_date_input_invalid_names_field():
    """Unparsable dates fail naming the field."""
    with pytest.raises(ValidationError) as exc_info:
        normalize_date_input("31.02.2024", "helmet_next_check")

    assert exc_info.value.message == "Invalid date for helmet_next_check"
    assert exc_info.value.error_code == "validation"


def test_validate_file_path(tmp_path):
    """Existing files with an allowed extension pass."""
    sheet = tmp_path / "inventar.xlsx"
    sheet.write_bytes(b"")

    assert validate_file_path(sheet, allowed_extensions=[".xlsx"]) == sheet

    with pytest.raises(ValidationError):
        validate_file_path(tmp_path / "missing.xlsx")

    with pytest.raises(ValidationError):
        validate_file_path(sheet, allowed_extensions=[".csv"])
