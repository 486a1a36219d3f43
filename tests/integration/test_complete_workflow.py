"""
Integration tests for complete workflow.

Tests the end-to-end flow from person and article creation through issue,
certification, return and person deletion, plus the command line entry point.
"""

import json

import pytest
from pathlib import Path
from datetime import date, datetime

from data import create_database
from domain.exceptions import ConflictError
from operations import (
    assign_article,
    complete_helmet_check,
    create_article,
    create_person,
    delete_person,
    export_articles_to_excel,
    generate_person_issue_list_pdf,
    get_article,
    get_inventory_summary,
    get_system_health,
    import_articles_from_excel,
    list_articles,
    update_article,
)
from config.app_context import create_app_context
from config.settings import Settings, reset_settings

NOW = datetime(2024, 3, 1, 10, 0)
TODAY = NOW.date()


# ==================== Fixtures ====================


@pytest.fixture
def test_db():
    """Create in-memory database for testing."""
    db = create_database("sqlite", path=":memory:")
    yield db
    # Cleanup not needed for in-memory db


@pytest.fixture
def app_context(test_db, tmp_path):
    """Create application context for testing."""
    settings = Settings(
        database_path=Path(":memory:"),
        export_dir=tmp_path / "exports",
        user_name="kleiderwart",
    )

    return create_app_context(database=test_db, settings=settings)


# ==================== Workflow Tests ====================


def test_complete_workflow_end_to_end(app_context):
    """Test complete article lifecycle from creation to person deletion."""
    db = app_context.database
    user = app_context.user_name

    # Step 1: Create person and helmet
    anna = create_person(db, "Anna", "Schmidt", now=NOW)
    helmet = create_article(
        db, "000000123", "Helm", manufactured_at="2020-01-01", performed_by=user, now=NOW
    )

    assert helmet.expiry_date == date(2030, 1, 1)
    assert helmet.status == "in_storage"
    assert [m.action for m in helmet.movement_history] == ["create"]

    # Step 2: Issue to Anna
    helmet = assign_article(db, "123", "person", anna.id, performed_by=user,
                            now=datetime(2024, 3, 2, 9, 0))
    assert helmet.status == "issued"
    assert helmet.location.name == "Anna Schmidt"

    # Step 3: Record a helmet check
    helmet = complete_helmet_check(db, "123", "2024-03-02", performed_by=user,
                                   now=datetime(2024, 3, 2, 9, 30))
    assert helmet.helmet_next_check == date(2026, 3, 2)

    # Step 4: Relabel with a note
    helmet = update_article(db, "123", {"label": "Helm rot"}, note="Kinnriemen getauscht",
                            performed_by=user, now=datetime(2024, 3, 3, 8, 0))
    assert helmet.note_entries[0].text == "Kinnriemen getauscht"
    assert helmet.label == "Helm rot"
    assert [t.label for t in helmet.timeline][:2] == ["Updated", "Note (03.03.2024 08:00)"]

    # Step 5: Person cannot be deleted while holding the helmet
    with pytest.raises(ConflictError):
        delete_person(db, anna.id)

    # Step 6: Return and delete
    assign_article(db, "123", "storage", performed_by=user, now=datetime(2024, 3, 4, 9, 0))
    assert delete_person(db, anna.id) == {"deleted": True, "id": anna.id}

    # Ledger: create, issue, check, note, return
    assert db.count_article_movements("000000123") == 5
    movements = db.get_article_movements("000000123", limit=10)
    assert all(m["performed_by"] == "kleiderwart" for m in movements)

    helmet = get_article(db, "123", today=TODAY)
    assert helmet.status == "in_storage"
    assert helmet.timeline[0].label == "Returned to storage"


def test_category_change_releases_helmet_expiry_rule(test_db):
    """After switching away from Helm the expiry is no longer forced."""
    db = test_db
    create_article(db, "42", "Helm", manufactured_at="2020-01-01", now=NOW)

    jacket = update_article(db, "42", {"category": "Jacke"}, now=NOW)
    assert jacket.expiry_date == date(2030, 1, 1)

    jacket = update_article(
        db, "42", {"helmet_manufactured_at": "2021-01-01", "expiry_date": "2028-05-05"}, now=NOW
    )
    assert jacket.expiry_date == date(2028, 5, 5)
    assert jacket.warning is None


def test_expiry_invariant_for_helmets(test_db):
    """expiry == manufacture + 10 years after every helmet create/update."""
    db = test_db
    create_article(db, "1", "Jacke", expiry_date="2025-01-01", now=NOW)

    helmet = update_article(
        db, "1",
        {"category": "Helm", "helmet_manufactured_at": "2016-02-29", "expiry_date": "2099-01-01"},
        now=NOW,
    )

    assert helmet.expiry_date == date(2026, 3, 1)


def test_import_export_dashboard_flow(app_context, tmp_path):
    """Exported inventory can be re-imported into a fresh database."""
    db = app_context.database
    anna = create_person(db, "Anna", "Schmidt", now=NOW)
    create_article(db, "1", "Helm", manufactured_at="2020-01-01",
                   target_type="person", person_id=anna.id, now=NOW)
    create_article(db, "2", "Jacke", size="M", now=NOW)

    export_path = export_articles_to_excel(db, app_context.export_dir / "inventar.xlsx")
    pdf_path = generate_person_issue_list_pdf(
        db, anna.id, app_context.export_dir / "anna.pdf", today=TODAY
    )
    assert pdf_path.read_bytes().startswith(b"%PDF")

    fresh = create_database("sqlite", ":memory:")
    create_person(fresh, "Anna", "Schmidt", now=NOW)
    summary = import_articles_from_excel(fresh, export_path, now=NOW)

    assert summary["errors"] == []
    assert [a.id for a in list_articles(fresh)] == ["000000001", "000000002"]
    assert get_inventory_summary(fresh, today=TODAY)["issued"] == 1
    assert get_system_health(fresh)["status"] == "ok"


# ==================== Command Line ====================


@pytest.fixture
def cli_env(tmp_path, monkeypatch):
    """Point the CLI at a temporary database and export directory."""
    monkeypatch.setenv("KLEIDERKAMMER_EXPORT_DIR", str(tmp_path / "exports"))
    monkeypatch.setenv("KLEIDERKAMMER_LOG_LEVEL", "WARNING")
    reset_settings()
    yield tmp_path / "kk.db"
    reset_settings()


def _run(capsys, db_path, *args):
    from main import main

    code = main(["--database", str(db_path), "--user", "cli", *args])
    captured = capsys.readouterr()
    return code, captured.out, captured.err


def test_cli_person_and_article_lifecycle(cli_env, capsys):
    """The CLI drives the same operations and reports domain errors."""
    db_path = cli_env

    code, out, _ = _run(capsys, db_path, "person-add", "Anna", "Schmidt")
    assert code == 0
    person_id = json.loads(out)["id"]

    code, out, _ = _run(capsys, db_path, "create", "123", "Helm", "--manufactured", "2020-01-01")
    assert code == 0
    assert json.loads(out)["expiry_date"] == "2030-01-01"

    code, out, _ = _run(capsys, db_path, "issue", "123", str(person_id))
    assert json.loads(out)["status"] == "issued"

    code, _, err = _run(capsys, db_path, "person-delete", str(person_id))
    assert code == 1
    assert "error [conflict]" in err

    code, out, _ = _run(capsys, db_path, "show", "123")
    history = json.loads(out)["movement_history"]
    assert history[0]["action"] == "transfer_to_person"
    assert history[0]["performed_by"] == "cli"

    code, _, _ = _run(capsys, db_path, "return", "123")
    assert code == 0
    code, out, _ = _run(capsys, db_path, "person-delete", str(person_id))
    assert json.loads(out)["deleted"] is True

    code, out, _ = _run(capsys, db_path, "health")
    assert code == 0
    assert json.loads(out)["db"] == "ok"
