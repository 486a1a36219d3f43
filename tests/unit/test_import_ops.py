"""
Unit tests for Import Operations.

Tests cover Excel inventory import (per-row errors, holder matching) and
the inventory export.
"""

import pytest
import pandas as pd
from datetime import date, datetime

from data import create_database
from domain.exceptions import ImportValidationError

from operations.article_ops import create_article, get_article, list_articles
from operations.import_ops import (
    EXPORT_HEADERS,
    export_articles_to_excel,
    import_articles_from_excel,
    match_holder,
)
from operations.person_ops import create_person
from services.excel_reader import ExcelReader

NOW = datetime(2024, 3, 1, 10, 0)


@pytest.fixture
def db():
    """Create in-memory database for testing."""
    database = create_database("sqlite", ":memory:")
    return database


@pytest.fixture
def inventory_file(tmp_path):
    """Inventory sheet mixing valid and invalid rows."""
    file_path = tmp_path / "inventar.xlsx"
    df = pd.DataFrame({
        "Artikelnummer": ["1", "2", "3", "4", "", "1"],
        "Kategorie": ["Jacke", "Helm", "Helm", "Hose", "Jacke", "Jacke"],
        "Größe": ["M", None, None, "42", "S", "L"],
        "Herstellungsdatum": [None, "01.01.2020", None, None, None, None],
        "Ausgegeben an": ["Schmidt Anna", "anna schmidt", None, "Unbekannt Person", None, None],
    })
    df.to_excel(file_path, index=False)
    return file_path


# ==================== Holder Matching ====================


def test_match_holder_token_order_and_case():
    """Word order, case and commas do not matter."""
    persons = {1: "Anna Schmidt", 2: "Ben Meier"}

    assert match_holder("schmidt, anna", persons)[:2] == (1, "Anna Schmidt")
    assert match_holder("MEIER BEN", persons)[0] == 2


def test_match_holder_below_threshold():
    """Names that are not close enough do not match."""
    assert match_holder("Carla Weber", {1: "Anna Schmidt"}) is None
    assert match_holder("", {1: "Anna Schmidt"}) is None
    assert match_holder("Anna Schmidt", {}) is None


# ==================== Import ====================


def test_import_creates_valid_rows_and_reports_errors(db, inventory_file):
    """Valid rows are created, invalid rows reported with their row number."""
    anna = create_person(db, "Anna", "Schmidt", now=NOW)

    summary = import_articles_from_excel(db, inventory_file, performed_by="import", now=NOW)

    assert summary["total_rows"] == 6
    assert summary["created"] == ["000000001", "000000002", "000000004"]

    errors = {error["row"]: error["error"] for error in summary["errors"]}
    assert errors[4] == "Manufacture date required for helmets"
    assert errors[6] == "Article id is required"
    assert "already exists" in errors[7]

    assert summary["warnings"] == [{
        "row": 5,
        "id": "4",
        "warning": "No person matches holder 'Unbekannt Person', placed in storage",
    }]

    jacket = get_article(db, "1", today=NOW.date())
    assert jacket.location.person_id == anna.id
    assert jacket.size == "M"
    assert jacket.movement_history[0].performed_by == "import"

    helmet = get_article(db, "2", today=NOW.date())
    assert helmet.location.person_id == anna.id
    assert helmet.expiry_date == date(2030, 1, 1)

    assert get_article(db, "4").location.kind == "storage"


def test_import_writes_one_create_row_per_article(db, inventory_file):
    """Each imported article gets exactly one create ledger row."""
    summary = import_articles_from_excel(db, inventory_file, now=NOW)

    for article_id in summary["created"]:
        assert db.count_article_movements(article_id) == 1


def test_import_invalid_file(db, tmp_path):
    """Unreadable sources fail as a whole."""
    with pytest.raises(ImportValidationError):
        import_articles_from_excel(db, tmp_path / "missing.xlsx")

    bad = tmp_path / "bad.xlsx"
    pd.DataFrame({"Foo": [1]}).to_excel(bad, index=False)
    with pytest.raises(ImportValidationError):
        import_articles_from_excel(db, bad)

    assert list_articles(db) == []


# ==================== Export ====================


def test_export_round_trips_through_reader(db, tmp_path):
    """Exported sheets use headers the importer recognizes."""
    anna = create_person(db, "Anna", "Schmidt", now=NOW)
    create_article(db, "1", "Helm", manufactured_at="2020-01-01",
                   target_type="person", person_id=anna.id, now=NOW)
    create_article(db, "2", "Jacke", size="M", notes="neu", now=NOW)

    output = export_articles_to_excel(db, tmp_path / "export.xlsx", today=NOW.date())

    df = pd.read_excel(output, dtype={EXPORT_HEADERS["id"]: str})
    assert list(df.columns) == list(EXPORT_HEADERS.values())
    assert list(df[EXPORT_HEADERS["id"]]) == ["000000001", "000000002"]

    rows = ExcelReader(output).read_inventory()
    assert rows[0]["category"] == "Helm"
    assert rows[0]["holder"] == "Anna Schmidt"
    assert rows[1]["size"] == "M"
    assert rows[1]["holder"] is None
    assert rows[1]["notes"] == "[01.03.2024 10:00] neu"


def test_export_assigned_only(db, tmp_path):
    """assigned_only limits the export to issued articles."""
    anna = create_person(db, "Anna", "Schmidt", now=NOW)
    create_article(db, "1", "Jacke", target_type="person", person_id=anna.id, now=NOW)
    create_article(db, "2", "Jacke", now=NOW)

    output = export_articles_to_excel(db, tmp_path / "issued.xlsx", assigned_only=True)

    df = pd.read_excel(output)
    assert len(df) == 1
