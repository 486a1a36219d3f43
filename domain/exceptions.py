"""
Custom exceptions for Digitale Kleiderkammer.

All exceptions inherit from KleiderkammerBaseException for easier catching.
Each exception includes a message, an optional details dict and an
error_code that transport layers can map to a response status.
"""


class KleiderkammerBaseException(Exception):
    """Base exception for all Kleiderkammer-related errors."""

    error_code = "error"

    def __init__(self, message: str, details: dict = None):
        """
        Initialize base exception.

        Args:
            message: Human-readable error message
            details: Optional dict with additional context
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        """String representation with details if available."""
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({details_str})"
        return self.message


class DatabaseError(KleiderkammerBaseException):
    """Database operation failed."""
    error_code = "database"


class ValidationError(KleiderkammerBaseException):
    """Data validation failed (missing field, invalid date, invalid target)."""
    error_code = "validation"


class NotFoundError(KleiderkammerBaseException):
    """Requested article, person or location not found."""
    error_code = "not_found"


class ConflictError(KleiderkammerBaseException):
    """Operation conflicts with current state (e.g. person still holds articles)."""
    error_code = "conflict"


class CategoryMismatchError(KleiderkammerBaseException):
    """Certification action invoked on an article that is not a helmet."""
    error_code = "category_mismatch"


class ImportValidationError(KleiderkammerBaseException):
    """Import file validation failed."""
    error_code = "import_validation"


class ReportGenerationError(KleiderkammerBaseException):
    """Report generation failed."""
    error_code = "report_generation"
