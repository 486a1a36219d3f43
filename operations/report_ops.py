"""
Report Operations for Digitale Kleiderkammer.

Dashboard figures computed from the active inventory (totals, helmet
alerts, category/size matrix, shortage radar) and the printable PDF lists.
"""

import logging
from datetime import date, timedelta
from pathlib import Path
from typing import Any, Dict, List, Optional

from data.interface import DatabaseInterface
from domain.models import Article, HelmetAlert, WARNING_WINDOW_DAYS
from config.constants import SHORTAGE_DEMAND_RATIO, SHORTAGE_LIMIT, SHORTAGE_MAX_STORAGE
from services.pdf_service import create_pdf_service
from .article_ops import list_articles
from .person_ops import get_person, list_person_articles

logger = logging.getLogger(__name__)

DEFAULT_SIZE_LABEL = "One Size"
UNKNOWN_CATEGORY_LABEL = "Unknown"


def _format_date(value: date) -> str:
    return value.strftime("%d.%m.%Y")


def _format_optional_date(value: Optional[date]) -> str:
    return _format_date(value) if value else "-"


def helmet_alert_for(article: Article, today: date) -> Optional[HelmetAlert]:
    """
    Alert for one helmet, None if it needs no attention.

    - no documented check: warning
    - next check passed: critical, due within 30 days: warning
    - expiry passed: critical, within 30 days: warning (replaces a check reason)
    """
    warning_window = today + timedelta(days=WARNING_WINDOW_DAYS)
    severity = "warning"
    reason = None

    next_check = article.helmet_next_check
    if next_check is None:
        reason = "No check documented"
    elif next_check <= today:
        reason = f"Check overdue ({_format_date(next_check)})"
        severity = "critical"
    elif next_check <= warning_window:
        reason = f"Check due by {_format_date(next_check)}"

    expiry = article.expiry_date
    if expiry is not None:
        if expiry <= today:
            reason = f"Expired ({_format_date(expiry)})"
            severity = "critical"
        elif expiry <= warning_window:
            reason = f"Expires by {_format_date(expiry)}"

    if reason is None:
        return None

    return HelmetAlert(article=article, reason=reason, severity=severity)


def get_helmet_alerts(
    db: DatabaseInterface,
    today: Optional[date] = None,
    articles: Optional[List[Article]] = None,
) -> List[HelmetAlert]:
    """
    List helmets whose check or expiry needs attention.

    Args:
        db: Database instance (injected)
        today: Override for the current date (testing)
        articles: Pre-loaded active articles (loaded from db if None)

    Returns:
        List of HelmetAlert in article id order

    Example:
        >>> alerts = get_helmet_alerts(db)
        >>> [a.article.id for a in alerts if a.is_critical]
        ['000000123']
    """
    today = today or date.today()
    if articles is None:
        articles = list_articles(db, today=today)

    alerts = []
    for article in articles:
        if not article.is_helmet:
            continue
        alert = helmet_alert_for(article, today)
        if alert:
            alerts.append(alert)

    logger.debug(
        f"Helmet alerts: {len(alerts)} "
        f"({sum(1 for a in alerts if a.is_critical)} critical)"
    )
    return alerts


def get_inventory_summary(db: DatabaseInterface, today: Optional[date] = None) -> Dict[str, int]:
    """
    Headline figures of the active inventory.

    Returns:
        Dict with keys: total, issued, storage, helmets_due
    """
    today = today or date.today()
    articles = list_articles(db, today=today)
    issued = sum(1 for article in articles if article.is_issued)

    return {
        "total": len(articles),
        "issued": issued,
        "storage": len(articles) - issued,
        "helmets_due": len(get_helmet_alerts(db, today=today, articles=articles)),
    }


def get_type_size_matrix(
    db: DatabaseInterface,
    articles: Optional[List[Article]] = None,
) -> List[Dict[str, Any]]:
    """
    Count active articles per category and size.

    Category and size are grouped case-insensitively; a missing size counts
    as "One Size".

    Returns:
        Rows sorted by category, then size, each with keys: key, category,
        size, total, issued, storage, issued_ratio, storage_ratio
    """
    if articles is None:
        articles = list_articles(db)

    rows: Dict[str, Dict[str, Any]] = {}
    for article in articles:
        category = article.category or UNKNOWN_CATEGORY_LABEL
        size = article.size or DEFAULT_SIZE_LABEL
        key = f"{category.casefold()}__{size.casefold()}"

        row = rows.setdefault(key, {
            "key": key,
            "category": category,
            "size": size,
            "total": 0,
            "issued": 0,
            "storage": 0,
        })
        row["total"] += 1
        if article.is_issued:
            row["issued"] += 1
        else:
            row["storage"] += 1

    for row in rows.values():
        row["issued_ratio"] = row["issued"] / row["total"]
        row["storage_ratio"] = row["storage"] / row["total"]

    return sorted(
        rows.values(),
        key=lambda row: (row["category"].casefold(), row["size"].casefold()),
    )


def get_shortage_items(
    db: DatabaseInterface,
    articles: Optional[List[Article]] = None,
) -> List[Dict[str, Any]]:
    """
    Category/size combinations running low in storage.

    A row qualifies when at least 60% of its articles are issued and at most
    3 remain in storage. Level is "critical" with 1 or fewer in storage,
    "low" otherwise. The 6 rows with the highest demand are returned.
    """
    shortage = []
    for row in get_type_size_matrix(db, articles=articles):
        demand = row["issued_ratio"]
        if demand < SHORTAGE_DEMAND_RATIO or row["storage"] > SHORTAGE_MAX_STORAGE:
            continue
        shortage.append({
            **row,
            "demand_score": demand,
            "level": "critical" if row["storage"] <= 1 else "low",
        })

    shortage.sort(key=lambda row: row["demand_score"], reverse=True)

    if shortage:
        logger.info(f"Shortage radar: {len(shortage)} combinations running low")
    return shortage[:SHORTAGE_LIMIT]


# ==================== PDF Lists ====================


def generate_person_issue_list_pdf(
    db: DatabaseInterface,
    person_id: int,
    output_path: Path,
    page_size: str = "A4",
    today: Optional[date] = None,
) -> Path:
    """
    Print the articles currently issued to one person.

    Args:
        db: Database instance (injected)
        person_id: Person id
        output_path: Target .pdf path
        page_size: Page size for the PDF
        today: Override for the current date (status column)

    Returns:
        Path to the written PDF

    Raises:
        NotFoundError: If the person does not exist
        ReportGenerationError: If the PDF cannot be written

    Example:
        >>> generate_person_issue_list_pdf(db, 1, Path("exports/anna.pdf"))
        PosixPath('exports/anna.pdf')
    """
    person = get_person(db, person_id)
    articles = list_person_articles(db, person_id, today=today)

    rows = [
        [
            article.id,
            article.category,
            article.label,
            article.size or DEFAULT_SIZE_LABEL,
            _format_optional_date(article.helmet_next_check) if article.is_helmet else "",
            article.status,
        ]
        for article in articles
    ]

    logger.info(f"Generating issue list for person {person_id} ({len(rows)} articles)")
    return create_pdf_service(page_size).render_table(
        output_path,
        title=f"Issue list: {person.full_name}",
        subtitle=f"As of {_format_date(today or date.today())}, {len(rows)} articles",
        headers=["Article", "Category", "Label", "Size", "Next check", "Status"],
        rows=rows,
        empty_message="No articles issued.",
    )


def generate_helmet_alert_report_pdf(
    db: DatabaseInterface,
    output_path: Path,
    page_size: str = "A4",
    today: Optional[date] = None,
) -> Path:
    """
    Print all helmet alerts, critical ones first.

    Returns:
        Path to the written PDF

    Raises:
        ReportGenerationError: If the PDF cannot be written
    """
    today = today or date.today()
    alerts = get_helmet_alerts(db, today=today)
    alerts = sorted(alerts, key=lambda alert: not alert.is_critical)

    rows = [
        [
            alert.article.id,
            alert.article.label,
            alert.article.location.name or alert.article.location.kind,
            _format_optional_date(alert.article.helmet_last_check),
            _format_optional_date(alert.article.helmet_next_check),
            _format_optional_date(alert.article.expiry_date),
            alert.severity,
            alert.reason,
        ]
        for alert in alerts
    ]

    logger.info(f"Generating helmet alert report ({len(rows)} alerts)")
    return create_pdf_service(page_size, landscape_mode=True).render_table(
        output_path,
        title="Helmet alerts",
        subtitle=f"As of {_format_date(today)}",
        headers=["Article", "Label", "Location", "Last check", "Next check",
                 "Expiry", "Severity", "Reason"],
        rows=rows,
        empty_message="No helmet needs attention.",
    )
