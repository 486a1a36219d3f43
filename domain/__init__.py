"""
Domain layer for Digitale Kleiderkammer.

This module contains core business entities, rules, validators and the
note history codec.
No dependencies on database, UI, or external frameworks.
"""

from .models import (
    Article,
    ArticleWarning,
    Location,
    Person,
    Movement,
    NoteEntry,
    TimelineEntry,
    HelmetAlert,
)

from .exceptions import (
    KleiderkammerBaseException,
    DatabaseError,
    ValidationError,
    NotFoundError,
    ConflictError,
    CategoryMismatchError,
    ImportValidationError,
    ReportGenerationError,
)

from .validators import (
    normalize_article_id,
    validate_article_id,
    validate_category,
    validate_label,
    validate_person_name,
    validate_person_status,
    validate_target_type,
    normalize_date_input,
    validate_file_path,
)

from .rules import (
    is_helmet_category,
    add_years,
    calculate_helmet_expiry,
    calculate_helmet_check_dates,
    derive_status,
    build_change_payload,
)

from .notes import (
    append_note_entry,
    extract_note_entries,
)

__all__ = [
    # Models
    "Article",
    "ArticleWarning",
    "Location",
    "Person",
    "Movement",
    "NoteEntry",
    "TimelineEntry",
    "HelmetAlert",
    # Exceptions
    "KleiderkammerBaseException",
    "DatabaseError",
    "ValidationError",
    "NotFoundError",
    "ConflictError",
    "CategoryMismatchError",
    "ImportValidationError",
    "ReportGenerationError",
    # Validators
    "normalize_article_id",
    "validate_article_id",
    "validate_category",
    "validate_label",
    "validate_person_name",
    "validate_person_status",
    "validate_target_type",
    "normalize_date_input",
    "validate_file_path",
    # Rules
    "is_helmet_category",
    "add_years",
    "calculate_helmet_expiry",
    "calculate_helmet_check_dates",
    "derive_status",
    "build_change_payload",
    # Notes
    "append_note_entry",
    "extract_note_entries",
]
