"""
Data models for Mindsort.

Chunks are the unit of storage and display. Proposals are what the
classifier hands back before the user confirms anything.
"""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

Importance = Literal["1", "2", "3", "deprioritized"]
EmotionalIntensity = Literal["low", "medium", "high"]

# Tier vocabulary, in ladder order. None means unranked.
IMPORTANCE_TIERS: tuple[str, ...] = ("1", "2", "3", "deprioritized")
EMOTIONAL_INTENSITIES: tuple[str, ...] = ("low", "medium", "high")


class ChunkProposal(BaseModel):
    """An unconfirmed (content, category) pair."""

    content: str
    category: str
    emotional_intensity: str | None = None


class Chunk(BaseModel):
    """A stored, categorized fragment of user text."""

    model_config = ConfigDict(frozen=True)

    id: str
    owner: str
    content: str
    category: str
    emotional_intensity: EmotionalIntensity | None = None
    importance: Importance | None = None
    pinned: bool = False
    starred: bool = False
    created_at: datetime
    updated_at: datetime

    def to_api(self) -> dict:
        """Shape used on the wire: owner is exposed as user_id."""
        data = self.model_dump(mode="json")
        data["user_id"] = data.pop("owner")
        return data


class UsageEvent(BaseModel):
    """A billable action reported to the metering collaborator."""

    event_id: str
    owner: str = Field(serialization_alias="customer_id")
    event_name: str
    timestamp: datetime
    metadata: dict[str, str] = Field(default_factory=dict)
