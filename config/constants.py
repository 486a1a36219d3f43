"""
Application constants for Digitale Kleiderkammer.

Centralized location for all application-wide constants.
"""

from pathlib import Path

# ==================== Application Info ====================

APP_NAME = "Digitale Kleiderkammer"
APP_VERSION = "1.0.0"

# ==================== Default Values ====================

# Database filename (actual path computed by paths.get_database_path())
DEFAULT_DATABASE_NAME = "kleiderkammer.db"
DEFAULT_USER_NAME = "system"

# ==================== Category Presets ====================

CATEGORY_PRESETS = [
    {"key": "helm", "label": "Helm", "size_options": ["Einheitsgröße"], "default_size": "Einheitsgröße"},
    {"key": "handschuhe", "label": "Handschuhe", "size_options": ["8", "9", "10", "11"]},
    {"key": "jacke", "label": "Jacke"},
    {"key": "hose", "label": "Hose"},
    {
        "key": "koppel",
        "label": "Koppel",
        "size_options": [str(80 + index * 5) for index in range(9)],
        "allow_custom_size": True,
    },
]

# ==================== Excel Column Names ====================

EXCEL_EXTENSIONS = [".xlsx", ".xls"]

INVENTORY_COLUMNS = {
    "id": ["artikelnummer", "artikel-id", "id", "article number"],
    "category": ["kategorie", "category", "typ"],
    "label": ["bezeichnung", "label", "beschreibung"],
    "size": ["größe", "groesse", "size"],
    "manufactured_at": ["herstellungsdatum", "hergestellt", "manufactured"],
    "notes": ["notizen", "notiz", "notes"],
    "holder": ["ausgegeben an", "inhaber", "kind", "holder", "person"],
}

# Minimum rapidfuzz score for matching a holder name to a person
HOLDER_MATCH_THRESHOLD = 85

# ==================== Dashboard ====================

SHORTAGE_DEMAND_RATIO = 0.6
SHORTAGE_MAX_STORAGE = 3
SHORTAGE_LIMIT = 6

# ==================== Paths ====================

DATA_DIR = Path("var")
EXPORT_DIR = Path("exports")

