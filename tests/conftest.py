"""Shared test fixtures for Mindsort."""

from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest

from mindsort.categories import CategoryRegistry
from mindsort.classifier import Classifier
from mindsort.config import get_default_config
from mindsort.db import Database
from mindsort.models import Chunk
from mindsort.service import ChunkService
from mindsort.usage import NullNotifier


@pytest.fixture(autouse=True)
def isolated_home(tmp_path, monkeypatch):
    """Keep every test away from the real ~/mindsort and ~/.config."""
    monkeypatch.setenv("MINDSORT_HOME", str(tmp_path / "home"))
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    for name in (
        "OPENROUTER_API_KEY",
        "OPENAI_API_KEY",
        "ANTHROPIC_API_KEY",
        "DODO_API_KEY",
        "DODO_PAYMENTS_API_KEY",
        "MINDSORT_TELEGRAM_TOKEN",
        "MINDSORT_TELEGRAM_USERS",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def config():
    return get_default_config()


@pytest.fixture
def registry():
    return CategoryRegistry()


@pytest.fixture
def db(tmp_path, registry):
    """Fresh database per test."""
    return Database(db_path=tmp_path / "test.db", registry=registry)


@pytest.fixture
def completion():
    """Stub completion client; set .complete.return_value per test."""
    client = MagicMock()
    client.complete.return_value = "[]"
    return client


@pytest.fixture
def classifier(completion, registry, config):
    return Classifier(client=completion, registry=registry, config=config)


@pytest.fixture
def notifier():
    notifier = MagicMock(spec=NullNotifier)
    notifier.event_name = "note.created"
    return notifier


@pytest.fixture
def service(db, classifier, notifier, config):
    return ChunkService(db=db, classifier=classifier, notifier=notifier, config=config)


@pytest.fixture
def make_chunk():
    """Factory for in-memory chunks with increasing creation times."""
    base = datetime(2024, 3, 15, 12, 0, tzinfo=timezone.utc)
    counter = {"n": 0}

    def _make(**overrides) -> Chunk:
        counter["n"] += 1
        n = counter["n"]
        created = base + timedelta(minutes=n)
        data = {
            "id": f"chunk{n:04d}",
            "owner": "user-1",
            "content": f"note {n}",
            "category": "ideas",
            "created_at": created,
            "updated_at": created,
        }
        data.update(overrides)
        return Chunk(**data)

    return _make
