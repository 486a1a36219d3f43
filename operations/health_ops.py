"""
Health Operations for Digitale Kleiderkammer.

Liveness probe for monitoring: reports whether the database answers.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict

from config.constants import APP_NAME, APP_VERSION
from data.interface import DatabaseInterface

logger = logging.getLogger(__name__)


def get_system_health(db: DatabaseInterface) -> Dict[str, Any]:
    """
    Check that the database is reachable.

    Never raises: a failing database is reported as status "error".

    Returns:
        Dict with keys: app, version, timestamp (ISO 8601), status
        ("ok"/"error") and db ("ok"/"down"); on failure also message

    Example:
        >>> get_system_health(db)["status"]
        'ok'
    """
    payload = {
        "app": APP_NAME,
        "version": APP_VERSION,
        "timestamp": datetime.now(timezone.utc).isoformat(timespec="seconds"),
    }

    if db.ping():
        payload["status"] = "ok"
        payload["db"] = "ok"
    else:
        logger.error("Health check failed: database not reachable")
        payload["status"] = "error"
        payload["db"] = "down"
        payload["message"] = "Database not reachable"

    return payload
