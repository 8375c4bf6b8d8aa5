"""
CSV export for Mindsort.
"""

import csv
import io
from datetime import date
from typing import Iterable

from mindsort.models import Chunk

CSV_HEADER = [
    "Content",
    "Category",
    "Emotional Intensity",
    "Importance",
    "Created At",
    "Updated At",
]


def export_csv(chunks: Iterable[Chunk]) -> str:
    """Serialize chunks as CSV, one row per chunk, in the given order."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_HEADER)

    for chunk in chunks:
        writer.writerow([
            chunk.content,
            chunk.category,
            chunk.emotional_intensity or "",
            chunk.importance or "",
            chunk.created_at.isoformat(),
            chunk.updated_at.isoformat(),
        ])

    return buffer.getvalue()


def export_filename(today: date | None = None) -> str:
    """Download filename for an export made today."""
    today = today or date.today()
    return f"mindsort-notes-{today.isoformat()}.csv"
