"""
Excel Reader Service.

Handles reading inventory sheets (one article per row) and writing
inventory exports.

Uses pandas and openpyxl for Excel processing.
"""

import logging
from pathlib import Path
from typing import List, Dict, Any, Optional

import pandas as pd
from openpyxl.utils import get_column_letter

from config.constants import EXCEL_EXTENSIONS, INVENTORY_COLUMNS
from domain.exceptions import ImportValidationError, ValidationError
from domain.validators import validate_file_path

logger = logging.getLogger(__name__)


REQUIRED_INVENTORY_FIELDS = ["id", "category"]

# Header row is Excel row 1, first data row is row 2
FIRST_DATA_ROW = 2


class ExcelReader:
    """
    Excel file reader for inventory sheets.

    Column headers are matched flexibly (German and English variants, exact
    match first, then partial match).
    """

    def __init__(self, file_path: Path):
        """
        Initialize Excel reader.

        Args:
            file_path: Path to Excel file (.xlsx or .xls)

        Raises:
            ImportValidationError: If file is invalid or doesn't exist
        """
        try:
            self.file_path = validate_file_path(
                file_path,
                must_exist=True,
                allowed_extensions=EXCEL_EXTENSIONS,
            )
        except ValidationError as e:
            raise ImportValidationError(e.message, details=e.details)
        logger.info(f"Initialized Excel reader for: {self.file_path}")

    def _find_column(self, columns: List[str], search_terms: List[str]) -> Optional[str]:
        """
        Find column name using flexible matching.

        Tries exact match first, then partial match (case-insensitive).

        Args:
            columns: Available column names in DataFrame
            search_terms: Possible column name variations

        Returns:
            Matched column name, or None if not found
        """
        for term in search_terms:
            for col in columns:
                if term.lower() == str(col).strip().lower():
                    logger.debug(f"Found exact match: '{col}' for search term '{term}'")
                    return col

        for term in search_terms:
            for col in columns:
                if term.lower() in str(col).lower():
                    logger.debug(f"Found partial match: '{col}' contains '{term}'")
                    return col

        return None

    def read_dataframe(self, sheet_name: Optional[str] = None) -> pd.DataFrame:
        """
        Read Excel file into pandas DataFrame.

        Args:
            sheet_name: Sheet to read (None = first sheet)

        Raises:
            ImportValidationError: If file cannot be read
        """
        try:
            df = pd.read_excel(self.file_path, sheet_name=sheet_name or 0)
        except Exception as e:
            raise ImportValidationError(
                f"Could not read Excel file: {e}",
                details={"file": str(self.file_path), "error": str(e)},
            )

        df = self._clean_dataframe(df)
        logger.debug(f"Read {len(df)} rows from {self.file_path.name}")
        return df

    def _clean_dataframe(self, df: pd.DataFrame) -> pd.DataFrame:
        """Remove completely empty rows and strip whitespace from text cells."""
        df = df.dropna(how="all")

        for col in df.columns:
            if df[col].dtype == "object":
                df[col] = df[col].map(lambda v: v.strip() if isinstance(v, str) else v)

        return df

    def _safe_value(self, value) -> Any:
        """None for empty cells (None, NaN, NaT, blank text)."""
        if value is None:
            return None
        if not isinstance(value, str) and pd.isna(value):
            return None
        if isinstance(value, str) and not value.strip():
            return None
        return value

    def _safe_str(self, value) -> Optional[str]:
        """
        Convert a cell to text, None if empty.

        Whole floats lose their ".0" (Excel stores numbers as floats), so an
        article number 123 read as 123.0 stays "123".
        """
        value = self._safe_value(value)
        if value is None:
            return None
        if isinstance(value, float) and value.is_integer():
            return str(int(value))
        return str(value).strip()

    def read_inventory(self, sheet_name: Optional[str] = None) -> List[Dict[str, Any]]:
        """
        Read inventory rows with flexible column matching.

        Columns (see INVENTORY_COLUMNS): id and category are required;
        label, size, manufactured_at, notes and holder are optional.

        Returns:
            List of row dicts with keys: row (Excel row number), id, category,
            label, size, manufactured_at, notes, holder

        Raises:
            ImportValidationError: If required columns are missing or the
                                   sheet holds no rows

        Example:
            >>> reader = ExcelReader(Path("inventar.xlsx"))
            >>> rows = reader.read_inventory()
            >>> rows[0]["id"], rows[0]["category"]
            ('123', 'Helm')
        """
        df = self.read_dataframe(sheet_name)
        columns = list(df.columns)

        mapping = {
            field_name: self._find_column(columns, variants)
            for field_name, variants in INVENTORY_COLUMNS.items()
        }
        logger.debug(f"Inventory column mapping: {mapping}")

        missing = [name for name in REQUIRED_INVENTORY_FIELDS if mapping[name] is None]
        if missing:
            raise ImportValidationError(
                f"Required columns missing: {', '.join(missing)}",
                details={"file": str(self.file_path), "columns": [str(c) for c in columns]},
            )

        if df.empty:
            raise ImportValidationError(
                "No rows found in inventory sheet",
                details={"file": str(self.file_path)},
            )

        rows = []
        for position, (_, record) in enumerate(df.iterrows()):
            row = {"row": position + FIRST_DATA_ROW}
            for field_name, column in mapping.items():
                if column is None:
                    row[field_name] = None
                elif field_name == "manufactured_at":
                    row[field_name] = self._safe_value(record[column])
                else:
                    row[field_name] = self._safe_str(record[column])
            rows.append(row)

        logger.info(f"Read {len(rows)} inventory rows from {self.file_path.name}")
        return rows


def write_inventory_sheet(
    rows: List[Dict[str, Any]],
    output_path: Path,
    sheet_name: str = "Inventar",
    columns: Optional[List[str]] = None,
) -> Path:
    """
    Write rows to an Excel file, one column per dict key.

    Column widths are fitted to the longest cell of each column.

    Args:
        rows: Row dicts (all with the same keys)
        output_path: Target .xlsx file (parent directories are created)
        sheet_name: Worksheet title
        columns: Column order (defaults to the keys of the first row)

    Returns:
        Path to the written file
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    df = pd.DataFrame(rows, columns=columns)

    with pd.ExcelWriter(output_path, engine="openpyxl") as writer:
        df.to_excel(writer, sheet_name=sheet_name, index=False)
        worksheet = writer.sheets[sheet_name]

        for index, column in enumerate(df.columns, start=1):
            cells = [str(column)] + [str(v) for v in df[column].tolist() if v is not None]
            width = max(len(cell) for cell in cells) + 2
            worksheet.column_dimensions[get_column_letter(index)].width = min(width, 60)

    logger.info(f"Wrote {len(df)} rows to {output_path}")
    return output_path
