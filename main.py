#!/usr/bin/env python3
"""
Digitale Kleiderkammer
Main entry point: command line interface for depot operators.
"""

import argparse
import json
import sys
import logging
from pathlib import Path

# Add project root to Python path
project_root = Path(__file__).parent
sys.path.insert(0, str(project_root))

from config import APP_NAME, APP_VERSION, CATEGORY_PRESETS, create_app_context, get_settings
from config.paths import sanitize_filename
from data import create_database
from domain.exceptions import KleiderkammerBaseException
import operations as ops

CONSOLE_HANDLER_NAME = "kleiderkammer-console"


def setup_logging(level: str = "INFO"):
    """
    Configure logging for the application.

    Sets up console output with pretty formatting.
    Suppresses noisy third-party loggers.
    """
    # Create formatter with timestamp, level, module name
    formatter = logging.Formatter(
        fmt='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%H:%M:%S'
    )

    # Console handler (stderr keeps stdout free for command output)
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.set_name(CONSOLE_HANDLER_NAME)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)

    # Root logger (replace our handler from an earlier call)
    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    for handler in list(root_logger.handlers):
        if handler.get_name() == CONSOLE_HANDLER_NAME:
            root_logger.removeHandler(handler)
    root_logger.addHandler(console_handler)

    # Suppress noisy third-party loggers
    logging.getLogger('openpyxl').setLevel(logging.WARNING)
    logging.getLogger('reportlab').setLevel(logging.WARNING)

    logging.debug(f"{APP_NAME} {APP_VERSION} - logging initialized at level {level}")


def _print_json(payload):
    print(json.dumps(payload, ensure_ascii=False, indent=2, default=str))


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser with one sub-command per operation."""
    parser = argparse.ArgumentParser(prog="kleiderkammer", description=APP_NAME)
    parser.add_argument("--database", type=Path, help="SQLite database file")
    parser.add_argument("--user", help="User name recorded on ledger rows")
    parser.add_argument("--version", action="version", version=f"%(prog)s {APP_VERSION}")

    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("health", help="Check database connectivity")

    p = sub.add_parser("list", help="List active articles")
    p.add_argument("--assigned", action="store_true", help="Only issued articles")

    p = sub.add_parser("show", help="Show one article with timeline")
    p.add_argument("article_id")

    p = sub.add_parser("create", help="Create an article")
    p.add_argument("article_id")
    p.add_argument("category")
    p.add_argument("--label")
    p.add_argument("--size")
    p.add_argument("--note")
    p.add_argument("--person", type=int, help="Issue directly to this person id")
    p.add_argument("--manufactured", help="Manufacture date (helmets)")
    p.add_argument("--expiry", help="Expiry date (non-helmets)")

    p = sub.add_parser("update", help="Update article fields")
    p.add_argument("article_id")
    p.add_argument("--set", nargs=2, action="append", metavar=("FIELD", "VALUE"),
                   default=[], help="Field to change (repeatable)")
    p.add_argument("--note")

    p = sub.add_parser("issue", help="Issue an article to a person")
    p.add_argument("article_id")
    p.add_argument("person_id", type=int)

    p = sub.add_parser("return", help="Return an article to storage")
    p.add_argument("article_id")

    p = sub.add_parser("check", help="Record a completed helmet check")
    p.add_argument("article_id")
    p.add_argument("--date", help="Check date (defaults to today)")

    p = sub.add_parser("retire", help="Retire an article")
    p.add_argument("article_id")

    sub.add_parser("categories", help="List category presets with size options")

    sub.add_parser("persons", help="List persons")

    p = sub.add_parser("person-add", help="Create a person")
    p.add_argument("first_name")
    p.add_argument("last_name")

    p = sub.add_parser("person-delete", help="Delete a person")
    p.add_argument("person_id", type=int)

    p = sub.add_parser("import", help="Import articles from Excel")
    p.add_argument("file", type=Path)

    p = sub.add_parser("export", help="Export articles to Excel")
    p.add_argument("--output", type=Path)

    p = sub.add_parser("report", help="Dashboard figures")
    p.add_argument("kind", choices=["summary", "alerts", "matrix", "shortage"])

    p = sub.add_parser("pdf-person", help="Print the issue list of a person")
    p.add_argument("person_id", type=int)
    p.add_argument("--output", type=Path)

    p = sub.add_parser("pdf-alerts", help="Print the helmet alert report")
    p.add_argument("--output", type=Path)

    return parser


def run_command(args, ctx) -> int:
    """Dispatch one parsed command. Returns the process exit code."""
    db = ctx.database
    user = ctx.user_name

    if args.command == "health":
        health = ops.get_system_health(db)
        _print_json(health)
        return 0 if health["status"] == "ok" else 1

    if args.command == "list":
        _print_json([a.to_dict() for a in ops.list_articles(db, assigned_only=args.assigned)])
    elif args.command == "show":
        _print_json(ops.get_article(db, args.article_id).to_dict(include_history=True))
    elif args.command == "create":
        article = ops.create_article(
            db, args.article_id, args.category,
            label=args.label, size=args.size, notes=args.note,
            target_type="person" if args.person else "storage",
            person_id=args.person,
            manufactured_at=args.manufactured, expiry_date=args.expiry,
            performed_by=user,
        )
        _print_json(article.to_dict())
    elif args.command == "update":
        article = ops.update_article(
            db, args.article_id, dict(args.set), note=args.note, performed_by=user
        )
        _print_json(article.to_dict())
    elif args.command == "issue":
        article = ops.assign_article(db, args.article_id, "person", args.person_id, performed_by=user)
        _print_json(article.to_dict())
    elif args.command == "return":
        article = ops.assign_article(db, args.article_id, "storage", performed_by=user)
        _print_json(article.to_dict())
    elif args.command == "check":
        article = ops.complete_helmet_check(db, args.article_id, args.date, performed_by=user)
        _print_json(article.to_dict())
    elif args.command == "retire":
        _print_json(ops.retire_article(db, args.article_id, performed_by=user))
    elif args.command == "categories":
        _print_json(CATEGORY_PRESETS)
    elif args.command == "persons":
        _print_json([p.to_dict() for p in ops.list_persons(db)])
    elif args.command == "person-add":
        _print_json(ops.create_person(db, args.first_name, args.last_name).to_dict())
    elif args.command == "person-delete":
        _print_json(ops.delete_person(db, args.person_id))
    elif args.command == "import":
        _print_json(ops.import_articles_from_excel(db, args.file, performed_by=user))
    elif args.command == "export":
        output = args.output or ctx.export_dir / "inventar.xlsx"
        print(ops.export_articles_to_excel(db, output))
    elif args.command == "report":
        if args.kind == "summary":
            _print_json(ops.get_inventory_summary(db))
        elif args.kind == "alerts":
            _print_json([
                {"article": alert.article.id, "reason": alert.reason, "severity": alert.severity}
                for alert in ops.get_helmet_alerts(db)
            ])
        elif args.kind == "matrix":
            _print_json(ops.get_type_size_matrix(db))
        else:
            _print_json(ops.get_shortage_items(db))
    elif args.command == "pdf-person":
        if args.output:
            output = args.output
        else:
            person = ops.get_person(db, args.person_id)
            output = ctx.export_dir / f"ausgabeliste_{sanitize_filename(person.full_name)}.pdf"
        print(ops.generate_person_issue_list_pdf(
            db, args.person_id, output, page_size=ctx.settings.pdf_page_size
        ))
    elif args.command == "pdf-alerts":
        output = args.output or ctx.export_dir / "helm_warnungen.pdf"
        print(ops.generate_helmet_alert_report_pdf(
            db, output, page_size=ctx.settings.pdf_page_size
        ))

    return 0


def main(argv=None) -> int:
    """Main application entry point."""
    args = build_parser().parse_args(argv)
    settings = get_settings()

    # Setup logging FIRST
    setup_logging(settings.effective_log_level)

    db = create_database("sqlite", args.database or settings.database_path)
    ctx = create_app_context(db, settings=settings, user_name=args.user)

    try:
        return run_command(args, ctx)
    except KleiderkammerBaseException as e:
        logging.getLogger(__name__).debug("Command failed", exc_info=True)
        print(f"error [{e.error_code}]: {e}", file=sys.stderr)
        return 1
    finally:
        ctx.close()


if __name__ == "__main__":
    sys.exit(main())
