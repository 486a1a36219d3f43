"""
Unit tests for Article Operations.

Tests cover creation (helmet rule, normalization), reads with derived
status, partial updates with ledger diff and retirement.
"""

import pytest
from datetime import date, datetime

from data import create_database
from domain.exceptions import ConflictError, NotFoundError, ValidationError

from operations.article_ops import (
    create_article,
    get_article,
    list_articles,
    update_article,
    retire_article,
)
from operations.person_ops import create_person

NOW = datetime(2024, 3, 1, 10, 0)
TODAY = NOW.date()


@pytest.fixture
def db():
    """Create in-memory database for testing."""
    database = create_database("sqlite", ":memory:")
    return database


@pytest.fixture
def helmet(db):
    """Helmet in storage, manufactured 2020-01-01."""
    return create_article(db, "123", "Helm", manufactured_at="2020-01-01", now=NOW)


# ==================== Create ====================


def test_create_helmet_sets_expiry(helmet, db):
    """Helmet expiry = manufacture date + 10 years, one create movement."""
    assert helmet.id == "000000123"
    assert helmet.expiry_date == date(2030, 1, 1)
    assert helmet.helmet_manufactured_at == date(2020, 1, 1)
    assert helmet.status == "in_storage"
    assert helmet.location.kind == "storage"

    assert db.count_article_movements("000000123") == 1
    movement = helmet.movement_history[0]
    assert movement.action == "create"
    assert movement.event_type == "create"
    assert movement.from_location is None
    assert movement.to_location.kind == "storage"
    assert movement.new_value == {"category": "Helm", "size": "Einheitsgröße"}


def test_create_helmet_discards_supplied_expiry(db):
    """A supplied expiry date is replaced for helmets."""
    article = create_article(
        db, "5", "helm", manufactured_at="01.06.2019", expiry_date="2099-01-01", now=NOW
    )
    assert article.expiry_date == date(2029, 6, 1)


def test_create_helmet_without_manufacture_date_fails(db):
    """Helmets need a manufacture date, nothing is written."""
    with pytest.raises(ValidationError) as exc_info:
        create_article(db, "123", "Helm", now=NOW)

    assert exc_info.value.message == "Manufacture date required for helmets"
    assert db.get_article_for_update("000000123") is None
    assert db.count_article_movements("000000123") == 0


def test_create_label_defaults_to_category(db):
    """Without label the category is used, blank size becomes None."""
    article = create_article(db, "7", "Jacke", size="   ", now=NOW)

    assert article.label == "Jacke"
    assert article.size is None


def test_create_uses_preset_default_size(db):
    """Blank size takes the preset default, explicit sizes win."""
    helmet = create_article(db, "14", " helm ", manufactured_at="2020-01-01", now=NOW)
    sized = create_article(db, "15", "Helm", size="XL", manufactured_at="2020-01-01", now=NOW)
    gloves = create_article(db, "16", "Handschuhe", now=NOW)

    assert helmet.size == "Einheitsgröße"
    assert sized.size == "XL"
    assert gloves.size is None


def test_create_non_helmet_keeps_expiry(db):
    """Other categories store a supplied expiry and never warn."""
    article = create_article(db, "8", "Handschuhe", expiry_date="2024-03-05", now=NOW)

    assert article.expiry_date == date(2024, 3, 5)
    assert article.warning is None
    assert article.status == "in_storage"


def test_create_stamps_initial_note(db):
    """Initial notes become the first stamped log entry."""
    article = create_article(db, "9", "Jacke", notes="Neu geliefert", now=NOW)

    assert article.notes == "[01.03.2024 10:00] Neu geliefert"
    assert article.note_entries[0].text == "Neu geliefert"


def test_create_directly_at_person(db):
    """Articles can be created straight into a person's hands."""
    person = create_person(db, "Anna", "Schmidt", now=NOW)

    article = create_article(
        db, "10", "Jacke", target_type="person", person_id=person.id, now=NOW
    )

    assert article.status == "issued"
    assert article.location.name == "Anna Schmidt"
    assert article.location.person_id == person.id


def test_create_at_unknown_person_fails(db):
    """Unknown person target rolls back the whole create."""
    with pytest.raises(NotFoundError):
        create_article(db, "11", "Jacke", target_type="person", person_id=42, now=NOW)

    assert db.get_article_for_update("000000011") is None


def test_create_person_target_requires_person_id(db):
    """Person target without id is a validation error."""
    with pytest.raises(ValidationError) as exc_info:
        create_article(db, "12", "Jacke", target_type="person", now=NOW)

    assert exc_info.value.message == "Person id required"


def test_create_duplicate_id_conflicts(helmet, db):
    """Same normalized id twice is a conflict, no second ledger row."""
    with pytest.raises(ConflictError):
        create_article(db, "000000123", "Jacke", now=NOW)

    assert db.count_article_movements("000000123") == 1


def test_create_invalid_date_names_field(db):
    """Unparsable dates are rejected with the field name."""
    with pytest.raises(ValidationError) as exc_info:
        create_article(db, "13", "Helm", manufactured_at="gestern", now=NOW)

    assert "helmet_manufactured_at" in exc_info.value.message


# ==================== Read ====================


def test_get_article_normalizes_id(helmet, db):
    """Lookups normalize the id the same way as creation."""
    article = get_article(db, "123", today=TODAY)
    assert article.id == "000000123"
    assert article.timeline[0].label == "Article created"


def test_get_unknown_article(db):
    """Unknown id raises NotFoundError."""
    with pytest.raises(NotFoundError):
        get_article(db, "999")


def test_helmet_warning_near_expiry(db):
    """Helmet expiring within 30 days shows warning_active."""
    create_article(db, "20", "Helm", manufactured_at="2014-03-20", now=NOW)

    article = get_article(db, "20", today=TODAY)

    assert article.status == "warning_active"
    assert article.warning.kind == "expiry_due"
    assert article.warning.date == date(2024, 3, 20)


def test_list_articles_ordered_by_id(db):
    """Listing returns active articles ordered by id."""
    create_article(db, "3", "Jacke", now=NOW)
    create_article(db, "1", "Hose", now=NOW)
    create_article(db, "2", "Koppel", size="90", now=NOW)

    articles = list_articles(db, today=TODAY)

    assert [a.id for a in articles] == ["000000001", "000000002", "000000003"]
    assert list_articles(db, assigned_only=True) == []


# ==================== Update ====================


def test_update_records_only_changed_fields(db):
    """The ledger diff only contains fields whose value changed."""
    create_article(db, "30", "Jacke", size="S", now=NOW)

    article = update_article(
        db, "30", {"size": "M", "label": "Jacke"}, performed_by="tester",
        now=datetime(2024, 3, 2, 9, 0),
    )

    assert article.size == "M"
    movement = article.movement_history[0]
    assert movement.action == "update"
    assert movement.old_value == {"size": "S"}
    assert movement.new_value == {"size": "M"}
    assert movement.performed_by == "tester"
    assert movement.from_location.id == movement.to_location.id


def test_update_without_real_change_writes_nothing(db):
    """Submitting current values leaves the ledger untouched."""
    create_article(db, "31", "Jacke", size="S", now=NOW)

    update_article(db, "31", {"size": "S"}, now=NOW)

    assert db.count_article_movements("000000031") == 1


def test_update_with_nothing_submitted_fails(db):
    """No recognized field and no note is rejected."""
    create_article(db, "32", "Jacke", now=NOW)

    with pytest.raises(ValidationError) as exc_info:
        update_article(db, "32", {"colour": "rot"}, note="   ", now=NOW)

    assert exc_info.value.message == "No changes submitted"


def test_update_note_only_is_rejected(db):
    """A note without any recognized field change is not an update."""
    create_article(db, "33", "Jacke", notes="alt", now=NOW)

    with pytest.raises(ValidationError) as exc_info:
        update_article(db, "33", {}, note="nur Notiz", now=NOW)

    assert exc_info.value.message == "No changes submitted"
    assert get_article(db, "33").notes == "[01.03.2024 10:00] alt"
    assert db.count_article_movements("000000033") == 1


def test_update_note_prepends_entry(db):
    """A note sent with a field change goes on top of the existing log."""
    create_article(db, "34", "Jacke", size="S", notes="alt", now=NOW)

    article = update_article(db, "34", {"size": "M"}, note="Reißverschluss defekt",
                             now=datetime(2024, 3, 4, 16, 45))

    assert article.notes.startswith("[04.03.2024 16:45] Reißverschluss defekt\n")
    assert [n.text for n in article.note_entries] == ["Reißverschluss defekt", "alt"]
    assert set(article.movement_history[0].new_value) == {"size", "notes"}


def test_update_to_helmet_requires_manufacture_date(db):
    """Changing the category to Helm without manufacture date fails."""
    create_article(db, "35", "Mütze", now=NOW)

    with pytest.raises(ValidationError):
        update_article(db, "35", {"category": "Helm"}, now=NOW)

    assert get_article(db, "35").category == "Mütze"


def test_update_helmet_manufacture_date_recomputes_expiry(helmet, db):
    """Changing the manufacture date of a helmet moves its expiry."""
    article = update_article(db, "123", {"helmet_manufactured_at": "2021-05-10"}, now=NOW)

    assert article.expiry_date == date(2031, 5, 10)
    assert article.movement_history[0].new_value == {
        "helmet_manufactured_at": "2021-05-10",
        "expiry_date": "2031-05-10",
    }


def test_update_helmet_expiry_is_forced(helmet, db):
    """A direct expiry change on a helmet is overridden."""
    article = update_article(db, "123", {"expiry_date": "2099-01-01", "size": "L"}, now=NOW)

    assert article.expiry_date == date(2030, 1, 1)
    assert article.size == "L"


def test_update_rejects_empty_label(helmet, db):
    """An explicit empty label is invalid."""
    with pytest.raises(ValidationError):
        update_article(db, "123", {"label": "  "}, now=NOW)


def test_update_retired_article_not_found(helmet, db):
    """Retired articles cannot be updated."""
    retire_article(db, "123", now=NOW)

    with pytest.raises(NotFoundError):
        update_article(db, "123", {"size": "L"}, now=NOW)


# ==================== Retire ====================


def test_retire_hides_article(helmet, db):
    """Retired articles disappear from reads, the ledger gains one row."""
    result = retire_article(db, "123", performed_by="tester", now=NOW)

    assert result == {"deleted": True, "id": "000000123"}
    assert list_articles(db) == []
    with pytest.raises(NotFoundError):
        get_article(db, "123")

    assert db.count_article_movements("000000123") == 2


def test_retire_twice_fails(helmet, db):
    """Second retire raises NotFoundError and writes nothing."""
    retire_article(db, "123", now=NOW)

    with pytest.raises(NotFoundError):
        retire_article(db, "123", now=NOW)

    assert db.count_article_movements("000000123") == 2
