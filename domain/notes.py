"""
Note history codec for Digitale Kleiderkammer.

An article keeps its notes in a single text field used as an append-only
log. Each entry is one line of the form "[dd.mm.YYYY HH:MM] text", newest
first. Lines written by hand (without stamp) are kept as bare entries, and
so are the continuation lines of a multi-line note.
"""

import re
from datetime import datetime
from typing import List, Optional

from .models import NoteEntry

NOTE_TIMESTAMP_FORMAT = "%d.%m.%Y %H:%M"

_NOTE_LINE = re.compile(r"^\[(.+?)\]\s*(.+)$")


def format_note_stamp(moment: datetime) -> str:
    """Format a moment as note stamp, e.g. '05.03.2024 14:07'."""
    return moment.strftime(NOTE_TIMESTAMP_FORMAT)


def parse_note_stamp(label: str) -> Optional[datetime]:
    """Parse a bracket label as note stamp, None if it is not one."""
    try:
        return datetime.strptime(label, NOTE_TIMESTAMP_FORMAT)
    except ValueError:
        return None


def append_note_entry(
    note: Optional[str],
    existing: Optional[str],
    now: Optional[datetime] = None,
) -> str:
    """
    Prepend a stamped note above the existing log.

    Args:
        note: New note text (trimmed; blank leaves the log untouched)
        existing: Current notes blob (may be None)
        now: Moment to stamp (defaults to datetime.now())

    Returns:
        New notes blob

    Example:
        >>> append_note_entry("Riss am Visier", None, datetime(2024, 3, 5, 14, 7))
        '[05.03.2024 14:07] Riss am Visier'
    """
    trimmed = (note or "").strip()
    if not trimmed:
        return existing if existing is not None else ""

    stamp = format_note_stamp(now or datetime.now())
    entry = f"[{stamp}] {trimmed}"

    if existing and existing.strip():
        return f"{entry}\n{existing.lstrip()}"

    return entry


def extract_note_entries(notes: Optional[str]) -> List[NoteEntry]:
    """
    Decode a notes blob into entries.

    Order mirrors the blob (newest first for stamped logs), not re-sorted.

    Args:
        notes: Notes blob (may be None)

    Returns:
        List of NoteEntry
    """
    if notes is None or not notes.strip():
        return []

    entries = []
    for index, line in enumerate(notes.strip().splitlines()):
        clean = line.strip()
        if not clean:
            continue

        match = _NOTE_LINE.match(clean)
        if match:
            label, text = match.group(1), match.group(2)
            entries.append(NoteEntry(
                text=text,
                label=label,
                timestamp=parse_note_stamp(label),
                index=index,
            ))
            continue

        entries.append(NoteEntry(text=clean, index=index))

    return entries
