"""
Path configuration for Digitale Kleiderkammer.

Centralized path management for the database file and generated exports.
"""

from pathlib import Path
import logging
import re
import sys

from .constants import DATA_DIR, DEFAULT_DATABASE_NAME, EXPORT_DIR

logger = logging.getLogger(__name__)


def get_app_root() -> Path:
    """
    Get application root directory.

    Returns:
        - Frozen build: Directory where the executable is located
        - Development (script): Project root
    """
    if getattr(sys, 'frozen', False):
        app_root = Path(sys.executable).parent
        logger.debug(f"Running frozen, app root: {app_root}")
    else:
        # parent = config/, parent.parent = project root
        app_root = Path(__file__).parent.parent
        logger.debug(f"Running as script, app root: {app_root}")

    return app_root


def sanitize_filename(name: str) -> str:
    """
    Sanitize a free-text name for use in a file name.

    Example:
        >>> sanitize_filename("Anna Müller/2")
        'Anna_Müller_2'
    """
    safe_name = re.sub(r'[/\\:*?"<>|]', '_', name.strip())
    return re.sub(r'\s+', '_', safe_name)


def get_data_path() -> Path:
    """
    Get directory holding the database file.

    Returns:
        Path to data directory (creates if doesn't exist)
    """
    data_path = get_app_root() / DATA_DIR
    data_path.mkdir(parents=True, exist_ok=True)
    return data_path


def get_database_path() -> Path:
    """
    Get default database file path.

    Example:
        Development: {project_root}/var/kleiderkammer.db
    """
    db_path = get_data_path() / DEFAULT_DATABASE_NAME
    logger.debug(f"Database path: {db_path}")
    return db_path


def get_export_path() -> Path:
    """
    Get default directory for Excel and PDF exports.

    Returns:
        Path to export directory (creates if doesn't exist)
    """
    export_path = get_app_root() / EXPORT_DIR
    export_path.mkdir(parents=True, exist_ok=True)
    logger.debug(f"Export path: {export_path}")
    return export_path
