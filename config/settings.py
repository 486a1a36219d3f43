"""
Application settings for Digitale Kleiderkammer.

Loads settings from environment variables or uses defaults.
Provides centralized configuration management.
"""

import os
from pathlib import Path
from typing import Optional
from dataclasses import dataclass, field

from .constants import (
    APP_VERSION,
    DEFAULT_USER_NAME,
)
from .paths import get_database_path, get_export_path


@dataclass
class Settings:
    """
    Application settings.

    Can be loaded from environment variables or initialized with defaults.
    """

    # Application info
    app_version: str = APP_VERSION
    user_name: str = DEFAULT_USER_NAME

    # Database settings
    database_type: str = "sqlite"
    database_path: Path = field(default_factory=get_database_path)

    # Excel/PDF output (created automatically if missing)
    export_dir: Path = field(default_factory=get_export_path)

    # PDF settings
    pdf_page_size: str = "A4"

    # Debug settings
    debug_mode: bool = False
    log_level: str = "INFO"  # DEBUG, INFO, WARNING, ERROR

    def __post_init__(self):
        """Ensure directories exist after initialization."""
        self.export_dir.mkdir(parents=True, exist_ok=True)

    @property
    def effective_log_level(self) -> str:
        """Debug mode forces DEBUG logging."""
        return "DEBUG" if self.debug_mode else self.log_level.upper()

    @classmethod
    def from_env(cls) -> "Settings":
        """
        Load settings from environment variables.

        Environment variables:
        - KLEIDERKAMMER_USER_NAME: User name recorded on ledger rows
        - KLEIDERKAMMER_DATABASE_PATH: Path to SQLite database
        - KLEIDERKAMMER_EXPORT_DIR: Directory for Excel/PDF exports
        - KLEIDERKAMMER_DEBUG: Enable debug mode (true/false)
        - KLEIDERKAMMER_LOG_LEVEL: Logging level (DEBUG/INFO/WARNING/ERROR)

        Returns:
            Settings instance with values from environment or defaults
        """
        database_path = os.getenv("KLEIDERKAMMER_DATABASE_PATH")
        export_dir = os.getenv("KLEIDERKAMMER_EXPORT_DIR")

        return cls(
            user_name=os.getenv("KLEIDERKAMMER_USER_NAME", DEFAULT_USER_NAME),
            database_path=Path(database_path) if database_path else get_database_path(),
            export_dir=Path(export_dir) if export_dir else get_export_path(),
            debug_mode=os.getenv("KLEIDERKAMMER_DEBUG", "false").lower() == "true",
            log_level=os.getenv("KLEIDERKAMMER_LOG_LEVEL", "INFO"),
        )

    def to_dict(self) -> dict:
        """Convert settings to dictionary for serialization."""
        return {
            "app_version": self.app_version,
            "user_name": self.user_name,
            "database_type": self.database_type,
            "database_path": str(self.database_path),
            "export_dir": str(self.export_dir),
            "pdf_page_size": self.pdf_page_size,
            "debug_mode": self.debug_mode,
            "log_level": self.log_level,
        }


# Global settings instance (lazy-loaded)
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """
    Get global settings instance.

    Lazy-loaded on first call. Loads from environment variables.

    Example:
        >>> from config.settings import get_settings
        >>> settings = get_settings()
        >>> print(settings.database_path)
    """
    global _settings
    if _settings is None:
        _settings = Settings.from_env()
    return _settings


def reset_settings():
    """
    Reset global settings instance.

    Useful for testing - forces reload from environment on next get_settings() call.
    """
    global _settings
    _settings = None
