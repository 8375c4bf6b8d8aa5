"""
Service layer for Mindsort.

Orchestrates the flow every surface shares:
raw text -> classifier -> proposals -> user review -> store -> usage events.
"""

import logging
from typing import Any, Iterable

from mindsort.categories import CategoryRegistry
from mindsort.classifier import Classifier
from mindsort.config import load_config
from mindsort.db import Database
from mindsort.errors import ClassificationUnavailable, InvalidInput, NotFound
from mindsort.export import export_csv
from mindsort.models import Chunk, ChunkProposal
from mindsort.ranking import RankedPartitions, group_by_category, partition_by_importance
from mindsort.usage import NullNotifier, UsageNotifier, build_notifier, usage_events_for_chunks

logger = logging.getLogger(__name__)


class ChunkService:
    """Classify, confirm and manage chunks for an owner."""

    def __init__(
        self,
        db: Database | None = None,
        classifier: Classifier | None = None,
        notifier: UsageNotifier | NullNotifier | None = None,
        config: dict[str, Any] | None = None,
    ):
        self.config = config or load_config()
        self.db = db or Database(registry=CategoryRegistry.from_config(self.config))
        self._classifier = classifier
        self.notifier = notifier or build_notifier(self.config)

    @property
    def registry(self) -> CategoryRegistry:
        return self.db.registry

    @property
    def classifier(self) -> Classifier:
        # Built lazily so read-only surfaces work without an API key
        if self._classifier is None:
            try:
                self._classifier = Classifier(registry=self.registry, config=self.config)
            except ValueError as e:
                # Missing API key or unknown provider
                logger.error("Classifier not configured: %s", e)
                raise ClassificationUnavailable() from e
        return self._classifier

    def classify(self, text: str, emotional_intensity: str | None = None) -> list[ChunkProposal]:
        """Propose chunks for text. Nothing is stored."""
        return self.classifier.classify(text, emotional_intensity)

    def confirm(self, owner: str, proposals: Iterable[ChunkProposal]) -> list[Chunk]:
        """Store reviewed proposals, then report usage without waiting on it."""
        chunks = self.db.create_batch(owner, proposals)

        try:
            events = usage_events_for_chunks(chunks, self.notifier.event_name)
            self.notifier.notify(events)
        except Exception:
            # Usage reporting must never fail a save
            logger.exception("Usage notification failed for owner %s", owner)

        return chunks

    def list_chunks(self, owner: str) -> list[Chunk]:
        return self.db.list_by_owner(owner)

    def get(self, owner: str, chunk_id: str) -> Chunk:
        return self.db.get_chunk(chunk_id, owner)

    def resolve_id(self, owner: str, prefix: str) -> str:
        """Expand a displayed id prefix to the full id of an owned chunk."""
        prefix = prefix.strip().lower()
        if not prefix:
            raise InvalidInput("Chunk ID is required")

        matches = [c.id for c in self.db.list_by_owner(owner) if c.id.startswith(prefix)]
        if not matches:
            raise NotFound()
        if len(matches) > 1:
            raise InvalidInput(f"Ambiguous chunk ID: {prefix}")
        return matches[0]

    def edit(self, owner: str, chunk_id: str, content: str, category: str) -> Chunk:
        return self.db.update_content(chunk_id, owner, content, category)

    def rank(self, owner: str, chunk_id: str, importance: str | None) -> Chunk:
        return self.db.update_importance(chunk_id, owner, importance)

    def pin(self, owner: str, chunk_id: str, pinned: bool = True) -> Chunk:
        return self.db.set_pinned(chunk_id, owner, pinned)

    def star(self, owner: str, chunk_id: str, starred: bool = True) -> Chunk:
        return self.db.set_starred(chunk_id, owner, starred)

    def delete(self, owner: str, chunk_id: str) -> None:
        self.db.delete(chunk_id, owner)

    def count(self, owner: str) -> int:
        return self.db.count_by_owner(owner)

    def export(self, owner: str) -> str:
        return export_csv(self.db.list_by_owner(owner))

    def priority_view(self, owner: str, category: str | None = None) -> RankedPartitions:
        return partition_by_importance(self.db.list_by_owner(owner), category)

    def category_view(self, owner: str) -> dict[str, list[Chunk]]:
        return group_by_category(self.db.list_by_owner(owner), self.registry)

    def close(self) -> None:
        self.notifier.close()
