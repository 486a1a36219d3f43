"""
Operations layer for Digitale Kleiderkammer.

Business operations - plain functions taking an injected DatabaseInterface.
"""

from .article_ops import (
    create_article,
    get_article,
    list_articles,
    update_article,
    retire_article,
)

from .transfer_ops import assign_article

from .certificate_ops import complete_helmet_check

from .timeline_ops import build_article_timeline

from .person_ops import (
    create_person,
    get_person,
    list_persons,
    update_person,
    delete_person,
    list_person_articles,
)

from .report_ops import (
    get_inventory_summary,
    get_helmet_alerts,
    get_type_size_matrix,
    get_shortage_items,
    generate_person_issue_list_pdf,
    generate_helmet_alert_report_pdf,
)

from .import_ops import (
    import_articles_from_excel,
    export_articles_to_excel,
)

from .health_ops import get_system_health

__all__ = [
    # Article Operations
    "create_article",
    "get_article",
    "list_articles",
    "update_article",
    "retire_article",
    # Transfer Operations
    "assign_article",
    # Certificate Operations
    "complete_helmet_check",
    # Timeline Operations
    "build_article_timeline",
    # Person Operations
    "create_person",
    "get_person",
    "list_persons",
    "update_person",
    "delete_person",
    "list_person_articles",
    # Report Operations
    "get_inventory_summary",
    "get_helmet_alerts",
    "get_type_size_matrix",
    "get_shortage_items",
    "generate_person_issue_list_pdf",
    "generate_helmet_alert_report_pdf",
    # Import Operations
    "import_articles_from_excel",
    "export_articles_to_excel",
    # Health
    "get_system_health",
]
