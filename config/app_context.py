"""
Application context for Digitale Kleiderkammer.

Centralized application state and dependency injection.
"""

from dataclasses import dataclass, field
from typing import Optional
from pathlib import Path

from data.interface import DatabaseInterface
from .settings import Settings, get_settings


@dataclass
class AppContext:
    """
    Centralized application context.

    Holds the database, the settings and the acting user. Transport layers
    (CLI, web handlers) build one context and pass ctx.database and
    ctx.user_name to operations.

    Example:
        >>> from data import create_database
        >>> db = create_database("sqlite", ":memory:")
        >>> ctx = AppContext(database=db, settings=get_settings())
        >>> from operations import list_articles
        >>> articles = list_articles(ctx.database)
    """

    database: DatabaseInterface
    settings: Settings = field(default_factory=get_settings)

    # Recorded as performed_by on ledger rows
    user_name: str = field(default_factory=lambda: get_settings().user_name)

    app_version: str = field(default_factory=lambda: get_settings().app_version)

    @property
    def export_dir(self) -> Path:
        """Get export directory from settings."""
        return self.settings.export_dir

    def with_user(self, user_name: str) -> "AppContext":
        """
        Create new context acting as another user.

        Immutable pattern - returns new instance instead of modifying self.
        """
        return AppContext(
            database=self.database,
            settings=self.settings,
            user_name=user_name,
            app_version=self.app_version,
        )

    def close(self):
        """Close the underlying database."""
        self.database.close()


def create_app_context(
    database: DatabaseInterface,
    settings: Optional[Settings] = None,
    user_name: Optional[str] = None,
) -> AppContext:
    """
    Factory function to create AppContext.

    Args:
        database: Database instance (required)
        settings: Settings instance (defaults to global settings)
        user_name: User name (defaults to settings.user_name)

    Returns:
        AppContext instance
    """
    if settings is None:
        settings = get_settings()

    if user_name is None:
        user_name = settings.user_name

    return AppContext(
        database=database,
        settings=settings,
        user_name=user_name,
        app_version=settings.app_version,
    )
