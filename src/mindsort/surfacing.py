"""
Surfacing module for Mindsort.

Renders chunk views for the terminal and for chat surfaces.
"""

import os
from typing import Any

from mindsort.categories import CategoryRegistry, default_registry
from mindsort.models import Chunk, ChunkProposal
from mindsort.ranking import RankedPartitions, group_by_category, pinned_chunk


# ANSI color codes
class Colors:
    """ANSI color codes for terminal output."""
    RESET = "\033[0m"
    BOLD = "\033[1m"
    DIM = "\033[2m"

    # Foreground colors
    RED = "\033[31m"
    GREEN = "\033[32m"
    YELLOW = "\033[33m"
    BLUE = "\033[34m"
    WHITE = "\033[37m"

    # Bright foreground colors
    BRIGHT_BLACK = "\033[90m"  # Gray
    BRIGHT_RED = "\033[91m"
    BRIGHT_GREEN = "\033[92m"
    BRIGHT_YELLOW = "\033[93m"
    BRIGHT_MAGENTA = "\033[95m"
    BRIGHT_CYAN = "\033[96m"

    @classmethod
    def enabled(cls) -> bool:
        """Check if colors should be enabled."""
        # Disable if NO_COLOR is set
        if os.environ.get("NO_COLOR"):
            return False
        return True


def c(text: str, *codes: str) -> str:
    """Apply color codes to text if colors are enabled."""
    if not Colors.enabled():
        return text
    return "".join(codes) + text + Colors.RESET


# Category colors, matching the badge palette of the web app
CATEGORY_COLORS = {
    "other_emotions": Colors.YELLOW,
    "insights": Colors.GREEN,
    "gratitudes": Colors.BRIGHT_YELLOW,
    "worries_anxiety": Colors.BRIGHT_RED,
    "affirmations": Colors.BRIGHT_GREEN,
    "ideas": Colors.RED,
    "experiments": Colors.RED,
    "wish": Colors.BRIGHT_MAGENTA,
    "questions": Colors.BRIGHT_CYAN,
    "other": Colors.BRIGHT_BLACK,
}

TIER_TITLES = {
    "1": "Top priority",
    "2": "Second priority",
    "3": "Third priority",
    None: "Unranked",
    "deprioritized": "Deprioritized",
}

ID_DISPLAY_LENGTH = 8


def format_id(chunk_id: str) -> str:
    """Short, still-unique-enough prefix of a chunk id."""
    return chunk_id[:ID_DISPLAY_LENGTH]


def format_chunk_line(chunk: Chunk, color: bool = True) -> str:
    """One line: id, flags, tier, content."""
    flags = ("📌" if chunk.pinned else "") + ("★" if chunk.starred else "")
    tier = f"[{chunk.importance}]" if chunk.importance else ""
    content = chunk.content.replace("\n", " ")
    if len(content) > 70:
        content = content[:67] + "..."

    parts = [format_id(chunk.id)]
    if flags:
        parts.append(flags)
    if tier:
        parts.append(tier)
    parts.append(content)

    if not color:
        return " ".join(parts)
    return " ".join([c(parts[0], Colors.DIM), *parts[1:]])


def format_proposals(
    proposals: list[ChunkProposal], registry: CategoryRegistry | None = None
) -> str:
    """Numbered proposal list for review before saving."""
    registry = registry or default_registry
    if not proposals:
        return "No chunks found in that text."

    lines = [f"{len(proposals)} proposed chunks:", ""]
    for index, proposal in enumerate(proposals, start=1):
        label = registry.label_for(proposal.category)
        intensity = f" ({proposal.emotional_intensity})" if proposal.emotional_intensity else ""
        lines.append(f"{index}. [{label}]{intensity} {proposal.content}")
    return "\n".join(lines)


def format_chunks(
    chunks: list[Chunk],
    registry: CategoryRegistry | None = None,
    color: bool = True,
) -> str:
    """Pinned chunk on top, then chunks grouped by category."""
    registry = registry or default_registry
    if not chunks:
        return c("No notes yet.", Colors.DIM) if color else "No notes yet."

    def paint(text: str, *codes: str) -> str:
        return c(text, *codes) if color else text

    lines = []

    pinned = pinned_chunk(chunks)
    if pinned:
        lines.append(paint("━━━ PINNED ━━━", Colors.BOLD, Colors.BLUE))
        lines.append(format_chunk_line(pinned, color))
        lines.append("")

    for key, items in group_by_category(chunks, registry).items():
        title = f"━━━ {registry.label_for(key).upper()} ({len(items)}) ━━━"
        lines.append(paint(title, Colors.BOLD, CATEGORY_COLORS.get(key, "")))
        for chunk in items:
            lines.append(format_chunk_line(chunk, color))
        lines.append("")

    return "\n".join(lines).rstrip()


def format_priority_view(
    partitions: RankedPartitions,
    category: str | None = None,
    registry: CategoryRegistry | None = None,
    color: bool = True,
) -> str:
    """The five importance sections for one category (or all)."""
    registry = registry or default_registry
    heading = registry.label_for(category) if category else "All notes"
    title = f"━━━ {heading.upper()} BY PRIORITY ━━━"
    lines = [c(title, Colors.BOLD) if color else title]

    if not len(partitions):
        lines.append("Nothing here yet.")
        return "\n".join(lines)

    for tier, items in partitions.sections():
        if not items:
            continue
        lines.append("")
        lines.append(f"{TIER_TITLES[tier]} ({len(items)})")
        for chunk in items:
            lines.append("  " + format_chunk_line(chunk, color))

    return "\n".join(lines)


def format_stats(stats: dict[str, Any], registry: CategoryRegistry | None = None) -> str:
    registry = registry or default_registry
    lines = ["Mindsort Statistics", "-" * 30, f"Total chunks: {stats['total_chunks']}"]

    lines.append("\nBy category:")
    for key, count in stats.get("by_category", {}).items():
        lines.append(f"  {registry.label_for(key)}: {count}")

    lines.append("\nBy importance:")
    for tier, count in stats.get("by_importance", {}).items():
        lines.append(f"  {tier}: {count}")

    lines.append(f"\nPinned: {stats['pinned']}  Starred: {stats['starred']}")
    return "\n".join(lines)
