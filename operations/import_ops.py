"""
Import Operations for Digitale Kleiderkammer.

Bulk import of inventory sheets and inventory export to Excel.

Each valid sheet row becomes one article (with its own create ledger row).
Rows that fail validation are reported and skipped; they never abort the
whole import.
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from rapidfuzz import fuzz, process

from config.constants import HOLDER_MATCH_THRESHOLD
from data.interface import DatabaseInterface
from domain.exceptions import KleiderkammerBaseException
from domain.models import LOCATION_PERSON, LOCATION_STORAGE
from services.excel_reader import ExcelReader, write_inventory_sheet
from .article_ops import create_article, list_articles
from .person_ops import list_persons

logger = logging.getLogger(__name__)


# Column headers of the export (readable again by ExcelReader.read_inventory)
EXPORT_HEADERS = {
    "id": "Artikelnummer",
    "category": "Kategorie",
    "label": "Bezeichnung",
    "size": "Größe",
    "helmet_manufactured_at": "Herstellungsdatum",
    "expiry_date": "Ablaufdatum",
    "helmet_last_check": "Letzte Prüfung",
    "helmet_next_check": "Nächste Prüfung",
    "status": "Status",
    "holder": "Ausgegeben an",
    "notes": "Notizen",
}


def match_holder(
    holder: str,
    persons: Dict[int, str],
    threshold: int = HOLDER_MATCH_THRESHOLD,
) -> Optional[Tuple[int, str, float]]:
    """
    Find the person whose full name best matches a holder cell.

    Uses token sort ratio, so "Schmidt Anna" matches "Anna Schmidt".

    Args:
        holder: Holder name from the sheet
        persons: Person id -> full name
        threshold: Minimum score (0-100)

    Returns:
        (person_id, full_name, score), or None if no name scores high enough

    Example:
        >>> match_holder("schmidt, anna", {1: "Anna Schmidt", 2: "Ben Meier"})
        (1, 'Anna Schmidt', 100.0)
    """
    if not holder or not persons:
        return None

    result = process.extractOne(
        holder,
        persons,
        scorer=fuzz.token_sort_ratio,
        processor=lambda name: name.casefold().replace(",", " "),
        score_cutoff=threshold,
    )
    if result is None:
        return None

    full_name, score, person_id = result
    return person_id, full_name, score


def import_articles_from_excel(
    db: DatabaseInterface,
    file_path: Path,
    performed_by: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """
    Import articles from an inventory sheet.

    Rows with a holder are issued directly to the best matching person;
    when no person matches, the article goes to storage and a warning is
    reported for the row.

    Args:
        db: Database instance (injected)
        file_path: Path to .xlsx/.xls file
        performed_by: Acting user, recorded on the ledger rows
        now: Override for the current moment (testing)

    Returns:
        Summary dict with keys:
        - created: List of created article ids
        - errors: List of {"row", "id", "error"} for skipped rows
        - warnings: List of {"row", "id", "warning"}
        - total_rows: Number of data rows read

    Raises:
        ImportValidationError: If the file cannot be read or lacks columns

    Example:
        >>> summary = import_articles_from_excel(db, Path("inventar.xlsx"))
        >>> len(summary["created"]), len(summary["errors"])
        (42, 1)
    """
    logger.info(f"Importing articles from: {file_path}")

    rows = ExcelReader(file_path).read_inventory()
    persons = {person.id: person.full_name for person in list_persons(db)}

    created: List[str] = []
    errors: List[Dict[str, Any]] = []
    warnings: List[Dict[str, Any]] = []

    for row in rows:
        target_type = LOCATION_STORAGE
        person_id = None

        if row["holder"]:
            match = match_holder(row["holder"], persons)
            if match:
                person_id = match[0]
                target_type = LOCATION_PERSON
                logger.debug(
                    f"Row {row['row']}: holder '{row['holder']}' -> {match[1]} ({match[2]:.0f})"
                )
            else:
                warnings.append({
                    "row": row["row"],
                    "id": row["id"],
                    "warning": f"No person matches holder '{row['holder']}', placed in storage",
                })

        try:
            article = create_article(
                db,
                article_id=row["id"],
                category=row["category"],
                label=row["label"],
                size=row["size"],
                notes=row["notes"],
                target_type=target_type,
                person_id=person_id,
                manufactured_at=row["manufactured_at"],
                performed_by=performed_by,
                now=now,
            )
            created.append(article.id)

        except KleiderkammerBaseException as e:
            logger.warning(f"Skipping row {row['row']}: {e.message}")
            errors.append({"row": row["row"], "id": row["id"], "error": e.message})

    logger.info(
        f"Import finished: {len(created)} created, {len(errors)} skipped, "
        f"{len(warnings)} warnings"
    )
    return {
        "created": created,
        "errors": errors,
        "warnings": warnings,
        "total_rows": len(rows),
    }


def export_articles_to_excel(
    db: DatabaseInterface,
    output_path: Path,
    assigned_only: bool = False,
    today=None,
) -> Path:
    """
    Export active articles to an Excel file.

    The export uses the same column headers the importer recognizes.

    Args:
        db: Database instance (injected)
        output_path: Target .xlsx path
        assigned_only: Only articles held by a person
        today: Override for the current date (status column)

    Returns:
        Path to the written file
    """
    articles = list_articles(db, assigned_only=assigned_only, today=today)

    rows = []
    for article in articles:
        values = {
            "id": article.id,
            "category": article.category,
            "label": article.label,
            "size": article.size,
            "helmet_manufactured_at": article.helmet_manufactured_at,
            "expiry_date": article.expiry_date,
            "helmet_last_check": article.helmet_last_check,
            "helmet_next_check": article.helmet_next_check,
            "status": article.status,
            "holder": article.location.name if article.is_issued else None,
            "notes": article.notes,
        }
        rows.append({EXPORT_HEADERS[key]: value for key, value in values.items()})

    if not rows:
        logger.warning("No articles to export, writing header only")

    return write_inventory_sheet(rows, output_path, columns=list(EXPORT_HEADERS.values()))
