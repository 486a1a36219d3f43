"""
Timeline Operations for Digitale Kleiderkammer.

Merges the most recent ledger rows and note entries of an article into one
history view, newest first.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from domain.models import (
    Article,
    Location,
    Movement,
    NoteEntry,
    TimelineEntry,
    ACTION_CREATE,
    ACTION_TRANSFER_TO_PERSON,
    ACTION_TRANSFER_TO_STORAGE,
    ACTION_CERTIFICATION_UPDATE,
    ACTION_RETIRE,
    LOCATION_PERSON,
)

logger = logging.getLogger(__name__)


# Entries taken from each source
TIMELINE_MOVEMENT_LIMIT = 3
TIMELINE_NOTE_LIMIT = 10


def _ledger_location(row: Dict[str, Any], side: str) -> Optional[Location]:
    """Location of one side of a ledger row, None if absent or deleted."""
    kind = row.get(f"{side}_kind")
    if row.get(f"{side}_location_id") is None or kind is None:
        return None

    return Location(
        kind=kind,
        id=row[f"{side}_location_id"],
        name=row.get(f"{side}_name") or "",
        person_id=row.get(f"{side}_person_id"),
    )


def movement_from_row(row: Dict[str, Any]) -> Movement:
    """Convert a ledger row (from get_article_movements) to a Movement."""
    return Movement(
        id=row.get("id"),
        article_id=row["article_id"],
        action=row["action"],
        event_type=row.get("event_type"),
        from_location=_ledger_location(row, "from"),
        to_location=_ledger_location(row, "to"),
        old_value=row.get("old_value"),
        new_value=row.get("new_value"),
        performed_at=row.get("performed_at"),
        performed_by=row.get("performed_by"),
    )


def summarize_location(location: Optional[Location]) -> str:
    """
    Display name of a location for history rows.

    Returns "unknown" for a missing location and "person"/"storage" when the
    location carries no name.
    """
    if location is None:
        return "unknown"

    if location.name and location.name.strip():
        return location.name

    return "person" if location.kind == LOCATION_PERSON else "storage"


def describe_movement_label(movement: Movement) -> str:
    """Human label of a ledger row, derived from its action tag."""
    target = summarize_location(movement.to_location)
    origin = summarize_location(movement.from_location)

    if movement.action == ACTION_TRANSFER_TO_PERSON:
        if movement.to_location is not None and movement.to_location.is_person:
            return f"Issued to {target}"
        return "Issued"

    if movement.action == ACTION_TRANSFER_TO_STORAGE:
        if movement.from_location is not None and movement.from_location.is_person:
            return f"Returned from {origin}"
        return "Returned to storage"

    if movement.action == ACTION_CREATE:
        return "Article created"

    if movement.action == ACTION_RETIRE:
        return "Article retired"

    if movement.action == ACTION_CERTIFICATION_UPDATE:
        return "Helmet check recorded"

    return "Updated"


def describe_movement_meta(movement: Movement) -> Optional[str]:
    """Route of a ledger row ("from → to", "To x", "From x")."""
    origin = summarize_location(movement.from_location) if movement.from_location else None
    target = summarize_location(movement.to_location) if movement.to_location else None

    if origin and target:
        return f"{origin} → {target}"

    if target:
        return f"To {target}"

    if origin:
        return f"From {origin}"

    return None


def _sort_value(moment: Optional[datetime]) -> int:
    """Epoch milliseconds, 0 when unknown."""
    if moment is None:
        return 0
    try:
        return int(moment.timestamp() * 1000)
    except (OverflowError, OSError, ValueError):
        return 0


def build_article_timeline(
    article: Article,
    movements: List[Movement],
    note_entries: List[NoteEntry],
) -> List[TimelineEntry]:
    """
    Build the merged history view of an article.

    Takes the 3 most recent movements and the 10 most recent notes, sorts
    them by timestamp descending (ties keep insertion order, undated entries
    sort last). When both sources are empty a single "Last moved" entry
    describes the current location.

    Args:
        article: Article view (location and assigned_at are used for the fallback)
        movements: Ledger rows, newest first
        note_entries: Decoded notes, newest first

    Returns:
        List of TimelineEntry, newest first

    Example:
        >>> timeline = build_article_timeline(article, article.movement_history,
        ...                                   article.note_entries)
        >>> timeline[0].label
        'Issued to Anna Schmidt'
    """
    entries = []

    for movement in movements[:TIMELINE_MOVEMENT_LIMIT]:
        entry = TimelineEntry(
            label=describe_movement_label(movement),
            timestamp=movement.performed_at,
            meta=describe_movement_meta(movement),
        )
        entries.append((_sort_value(entry.timestamp), entry))

    for note in note_entries[:TIMELINE_NOTE_LIMIT]:
        entry = TimelineEntry(
            label=f"Note ({note.label})" if note.label else "Note",
            timestamp=note.timestamp,
            meta=note.text,
        )
        entries.append((_sort_value(entry.timestamp), entry))

    if not entries:
        if article.location.is_person:
            meta = f"Currently with {article.location.name}"
        else:
            meta = "Currently in storage"
        logger.debug(f"No history for article {article.id}, using last-moved entry")
        return [TimelineEntry(label="Last moved", timestamp=article.assigned_at, meta=meta)]

    # sorted() is stable, so equal keys keep insertion order
    entries = sorted(entries, key=lambda pair: pair[0], reverse=True)
    return [entry for _, entry in entries]
