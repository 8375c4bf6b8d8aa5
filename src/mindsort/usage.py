"""
Usage reporting for Mindsort.

Each stored chunk is reported to the metering provider as a usage event.
Reporting is fire-and-forget: it runs on a background thread, failures
are logged and never reach the caller.
"""

import logging
import os
import uuid
from concurrent.futures import Future, ThreadPoolExecutor
from datetime import datetime, timezone
from typing import Any, Iterable

import httpx

from mindsort.config import load_config
from mindsort.models import Chunk, UsageEvent

logger = logging.getLogger(__name__)

DEFAULT_EVENT_NAME = "note.created"


def usage_events_for_chunks(
    chunks: Iterable[Chunk], event_name: str = DEFAULT_EVENT_NAME
) -> list[UsageEvent]:
    """One usage event per stored chunk."""
    now = datetime.now(timezone.utc)
    return [
        UsageEvent(
            event_id=uuid.uuid4().hex,
            owner=chunk.owner,
            event_name=event_name,
            timestamp=now,
            metadata={"chunk_id": chunk.id, "category": chunk.category},
        )
        for chunk in chunks
    ]


class NullNotifier:
    """Notifier that drops everything. Used when billing is not configured."""

    event_name = DEFAULT_EVENT_NAME

    def notify(self, events: list[UsageEvent]) -> None:
        logger.debug("Dropping %d usage events (billing disabled)", len(events))

    def close(self) -> None:
        pass


class UsageNotifier:
    """Sends usage events to the ingest endpoint in the background."""

    def __init__(
        self,
        config: dict[str, Any] | None = None,
        transport: httpx.BaseTransport | None = None,
        max_workers: int = 2,
    ):
        self.config = config or load_config()
        billing = self.config.get("billing", {})

        self.api_key = (
            billing.get("api_key")
            or os.environ.get("DODO_API_KEY")
            or os.environ.get("DODO_PAYMENTS_API_KEY")
        )
        self.ingest_url = billing.get("ingest_url", "https://test.dodopayments.com/events/ingest")
        self.event_name = billing.get("event_name", DEFAULT_EVENT_NAME)
        self.timeout = float(billing.get("timeout", 10.0))
        self.transport = transport
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="usage")

    def notify(self, events: list[UsageEvent]) -> Future | None:
        """Queue events for delivery and return immediately."""
        if not events:
            return None
        if not self.api_key:
            logger.warning("Billing API key missing; skipping usage event dispatch")
            return None

        try:
            return self._executor.submit(self._send, list(events))
        except RuntimeError as e:
            # Executor already shut down
            logger.error("Usage events not queued: %s", e)
            return None

    def _send(self, events: list[UsageEvent]) -> bool:
        payload = {
            "events": [event.model_dump(mode="json", by_alias=True) for event in events]
        }
        try:
            with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
                response = client.post(
                    self.ingest_url,
                    headers={
                        "Authorization": f"Bearer {self.api_key}",
                        "Content-Type": "application/json",
                    },
                    json=payload,
                )
            if response.is_error:
                logger.error(
                    "Usage events failed: %s %s", response.status_code, response.text[:200]
                )
                return False
        except httpx.HTTPError as e:
            logger.error("Usage events error: %s", e)
            return False

        logger.debug("Sent %d usage events", len(events))
        return True

    def close(self) -> None:
        """Wait for queued deliveries and stop the worker threads."""
        self._executor.shutdown(wait=True)


def build_notifier(config: dict[str, Any] | None = None) -> UsageNotifier | NullNotifier:
    """UsageNotifier when billing is configured, NullNotifier otherwise."""
    config = config or load_config()
    billing = config.get("billing", {})
    if billing.get("api_key") or os.environ.get("DODO_API_KEY") or os.environ.get("DODO_PAYMENTS_API_KEY"):
        return UsageNotifier(config)
    return NullNotifier()
