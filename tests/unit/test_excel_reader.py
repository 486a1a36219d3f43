"""
Unit tests for Excel Reader service.

Tests cover inventory sheet reading, column matching and export writing.
"""

import pytest
import pandas as pd
from datetime import datetime
from openpyxl import load_workbook

from services.excel_reader import ExcelReader, write_inventory_sheet
from domain.exceptions import ImportValidationError


@pytest.fixture
def inventory_file(tmp_path):
    """Inventory sheet with German headers (as exported by the depot)."""
    file_path = tmp_path / "inventar.xlsx"
    df = pd.DataFrame({
        "Artikelnummer": [123, "000000124", None],
        "Kategorie": ["Helm", " Jacke ", None],
        "Bezeichnung": ["Helm rot", None, None],
        "Größe": [None, "M", None],
        "Herstellungsdatum": [datetime(2020, 1, 1), None, None],
        "Ausgegeben an": ["Schmidt, Anna", None, None],
    })
    df.to_excel(file_path, index=False)
    return file_path


def test_excel_reader_init_with_valid_file(inventory_file):
    """Test ExcelReader initialization with valid file."""
    reader = ExcelReader(inventory_file)
    assert reader.file_path == inventory_file


def test_excel_reader_init_with_invalid_extension(tmp_path):
    """Wrong extensions are rejected as import errors."""
    test_file = tmp_path / "inventar.csv"
    test_file.touch()

    with pytest.raises(ImportValidationError) as exc_info:
        ExcelReader(test_file)

    assert "Invalid file extension" in str(exc_info.value)


def test_excel_reader_init_with_nonexistent_file(tmp_path):
    """Missing files are rejected."""
    with pytest.raises(ImportValidationError):
        ExcelReader(tmp_path / "missing.xlsx")


def test_read_inventory_rows(inventory_file):
    """Rows are read with Excel row numbers and cleaned values."""
    rows = ExcelReader(inventory_file).read_inventory()

    # Fully empty third row is dropped
    assert len(rows) == 2

    helmet, jacket = rows
    assert helmet["row"] == 2
    assert helmet["id"] == "123"
    assert helmet["category"] == "Helm"
    assert helmet["label"] == "Helm rot"
    assert helmet["size"] is None
    assert helmet["holder"] == "Schmidt, Anna"
    assert pd.Timestamp(helmet["manufactured_at"]).date().isoformat() == "2020-01-01"

    assert jacket["row"] == 3
    assert jacket["id"] == "000000124"
    assert jacket["category"] == "Jacke"
    assert jacket["label"] is None
    assert jacket["manufactured_at"] is None
    assert jacket["notes"] is None


def test_read_inventory_english_headers(tmp_path):
    """English header variants are recognized."""
    file_path = tmp_path / "inventory.xlsx"
    pd.DataFrame({
        "Article number": ["5"],
        "Category": ["Hose"],
        "Size": ["42"],
        "Notes": ["neu"],
    }).to_excel(file_path, index=False)

    rows = ExcelReader(file_path).read_inventory()

    assert rows[0]["id"] == "5"
    assert rows[0]["category"] == "Hose"
    assert rows[0]["size"] == "42"
    assert rows[0]["notes"] == "neu"
    assert rows[0]["holder"] is None


def test_read_inventory_missing_required_columns(tmp_path):
    """Sheets without id or category column are rejected."""
    file_path = tmp_path / "bad.xlsx"
    pd.DataFrame({"Bezeichnung": ["Jacke"]}).to_excel(file_path, index=False)

    with pytest.raises(ImportValidationError) as exc_info:
        ExcelReader(file_path).read_inventory()

    assert "Required columns missing" in exc_info.value.message
    assert "id" in exc_info.value.message
    assert "category" in exc_info.value.message


def test_read_inventory_empty_sheet(tmp_path):
    """A sheet with headers only is rejected."""
    file_path = tmp_path / "empty.xlsx"
    pd.DataFrame(columns=["Artikelnummer", "Kategorie"]).to_excel(file_path, index=False)

    with pytest.raises(ImportValidationError) as exc_info:
        ExcelReader(file_path).read_inventory()

    assert exc_info.value.message == "No rows found in inventory sheet"


def test_write_inventory_sheet(tmp_path):
    """Rows are written with the given column order and fitted widths."""
    output = tmp_path / "out" / "export.xlsx"
    rows = [
        {"Artikelnummer": "000000001", "Kategorie": "Jacke", "Notizen": "x" * 100},
    ]

    result = write_inventory_sheet(rows, output, columns=["Artikelnummer", "Kategorie", "Notizen"])

    assert result == output
    workbook = load_workbook(output)
    sheet = workbook["Inventar"]
    assert [cell.value for cell in sheet[1]] == ["Artikelnummer", "Kategorie", "Notizen"]
    assert sheet["A2"].value == "000000001"
    assert sheet.column_dimensions["C"].width == 60


def test_write_inventory_sheet_header_only(tmp_path):
    """No rows still produce a header line."""
    output = tmp_path / "empty.xlsx"

    write_inventory_sheet([], output, columns=["Artikelnummer", "Kategorie"])

    df = pd.read_excel(output)
    assert list(df.columns) == ["Artikelnummer", "Kategorie"]
    assert df.empty
