"""
Priority ranking for Mindsort.

Pure functions over an already-fetched chunk list. Nothing here does I/O;
views are re-derived from the full list after every mutation, because the
importance tier is the only persisted ranking information.
"""

from dataclasses import dataclass, field
from typing import Callable, Iterable, TypeVar

from mindsort.categories import CategoryRegistry, default_registry
from mindsort.models import IMPORTANCE_TIERS, Chunk

T = TypeVar("T")


def newest_first(chunks: Iterable[Chunk]) -> list[Chunk]:
    """Sort by creation time descending. Stable, so ties keep input order."""
    return sorted(chunks, key=lambda chunk: chunk.created_at, reverse=True)


@dataclass
class RankedPartitions:
    """The five importance partitions of a chunk list."""

    unranked: list[Chunk] = field(default_factory=list)
    tier_1: list[Chunk] = field(default_factory=list)
    tier_2: list[Chunk] = field(default_factory=list)
    tier_3: list[Chunk] = field(default_factory=list)
    deprioritized: list[Chunk] = field(default_factory=list)

    def sections(self) -> list[tuple[str | None, list[Chunk]]]:
        """(tier, chunks) pairs in display order; None is unranked."""
        return [
            ("1", self.tier_1),
            ("2", self.tier_2),
            ("3", self.tier_3),
            (None, self.unranked),
            ("deprioritized", self.deprioritized),
        ]

    def all_chunks(self) -> list[Chunk]:
        return [chunk for _, chunks in self.sections() for chunk in chunks]

    def __len__(self) -> int:
        return sum(len(chunks) for _, chunks in self.sections())


def partition_by_importance(
    chunks: Iterable[Chunk], category: str | None = None
) -> RankedPartitions:
    """Split chunks into importance partitions, optionally for one category."""
    buckets: dict[str | None, list[Chunk]] = {tier: [] for tier in (None, *IMPORTANCE_TIERS)}

    for chunk in chunks:
        if category is not None and chunk.category != category:
            continue
        buckets[chunk.importance].append(chunk)

    return RankedPartitions(
        unranked=newest_first(buckets[None]),
        tier_1=newest_first(buckets["1"]),
        tier_2=newest_first(buckets["2"]),
        tier_3=newest_first(buckets["3"]),
        deprioritized=newest_first(buckets["deprioritized"]),
    )


def group_by_category(
    chunks: Iterable[Chunk], registry: CategoryRegistry | None = None
) -> dict[str, list[Chunk]]:
    """Group chunks by category in registry order, skipping empty ones."""
    registry = registry or default_registry
    groups: dict[str, list[Chunk]] = {key: [] for key in registry.category_keys()}

    for chunk in chunks:
        groups.setdefault(chunk.category, []).append(chunk)

    return {key: newest_first(items) for key, items in groups.items() if items}


def pinned_chunk(chunks: list[Chunk]) -> Chunk | None:
    """The pinned chunk of an owner-ordered list (pinned sorts first)."""
    if chunks and chunks[0].pinned:
        return chunks[0]
    return None


def toggle_importance(current: str | None, requested: str | None) -> str | None:
    """Choosing the tier a chunk already holds clears it."""
    if requested is not None and requested == current:
        return None
    return requested


class OptimisticTierUpdate:
    """
    Snapshot-and-restore for a speculative tier change.

    apply() returns a new list with the requested tier set on one chunk;
    rollback() restores only that chunk's captured tier, leaving any other
    local changes made in the meantime alone.
    """

    def __init__(self, chunks: list[Chunk], chunk_id: str, importance: str | None):
        self.chunk_id = chunk_id
        self.importance = importance
        self.previous = _find(chunks, chunk_id).importance

    def apply(self, chunks: list[Chunk]) -> list[Chunk]:
        return _replace(chunks, self.chunk_id, importance=self.importance)

    def rollback(self, chunks: list[Chunk]) -> list[Chunk]:
        return _replace(chunks, self.chunk_id, importance=self.previous)


class OptimisticPinUpdate:
    """Snapshot-and-restore for a speculative pin flip."""

    def __init__(self, chunks: list[Chunk], chunk_id: str, pinned: bool):
        _find(chunks, chunk_id)
        self.chunk_id = chunk_id
        self.pinned = pinned
        self.previous = {chunk.id: chunk.pinned for chunk in chunks}

    def apply(self, chunks: list[Chunk]) -> list[Chunk]:
        updated = []
        for chunk in chunks:
            if chunk.id == self.chunk_id:
                updated.append(chunk.model_copy(update={"pinned": self.pinned}))
            elif self.pinned and chunk.pinned:
                updated.append(chunk.model_copy(update={"pinned": False}))
            else:
                updated.append(chunk)
        return updated

    def rollback(self, chunks: list[Chunk]) -> list[Chunk]:
        return [
            chunk.model_copy(update={"pinned": self.previous[chunk.id]})
            if chunk.id in self.previous and chunk.pinned != self.previous[chunk.id]
            else chunk
            for chunk in chunks
        ]


def apply_optimistic_importance(
    chunks: list[Chunk],
    chunk_id: str,
    importance: str | None,
    commit: Callable[[str, str | None], T],
    on_change: Callable[[list[Chunk]], None] | None = None,
) -> list[Chunk]:
    """
    Run the optimistic tier protocol.

    The speculative list is handed to on_change before commit runs, so a
    view can re-partition immediately. If commit raises, the chunk's prior
    tier is restored, on_change sees the reverted list and the error
    propagates.
    """
    update = OptimisticTierUpdate(chunks, chunk_id, importance)
    speculative = update.apply(chunks)
    if on_change:
        on_change(speculative)

    try:
        commit(chunk_id, importance)
    except Exception:
        reverted = update.rollback(speculative)
        if on_change:
            on_change(reverted)
        raise

    return speculative


def apply_optimistic_pin(
    chunks: list[Chunk],
    chunk_id: str,
    pinned: bool,
    commit: Callable[[str, bool], T],
    on_change: Callable[[list[Chunk]], None] | None = None,
) -> list[Chunk]:
    """Same protocol as apply_optimistic_importance, for pin flips."""
    update = OptimisticPinUpdate(chunks, chunk_id, pinned)
    speculative = update.apply(chunks)
    if on_change:
        on_change(speculative)

    try:
        commit(chunk_id, pinned)
    except Exception:
        reverted = update.rollback(speculative)
        if on_change:
            on_change(reverted)
        raise

    return speculative


def _find(chunks: list[Chunk], chunk_id: str) -> Chunk:
    for chunk in chunks:
        if chunk.id == chunk_id:
            return chunk
    raise KeyError(chunk_id)


def _replace(chunks: list[Chunk], chunk_id: str, **changes) -> list[Chunk]:
    return [
        chunk.model_copy(update=changes) if chunk.id == chunk_id else chunk
        for chunk in chunks
    ]
