"""Tests for the SQLite chunk store."""

import threading
import time

import pytest

from mindsort.db import Database
from mindsort.errors import InvalidInput, NotFound, ValidationError
from mindsort.models import ChunkProposal


def proposals(*pairs) -> list[ChunkProposal]:
    return [ChunkProposal(content=content, category=category) for content, category in pairs]


class TestCreateBatch:
    """Tests for Database.create_batch."""

    def test_round_trip(self, db: Database) -> None:
        """Stored chunks come back with defaults and matching timestamps."""
        created = db.create_batch("user-1", [
            ChunkProposal(
                content="I feel grateful for my family today",
                category="gratitudes",
                emotional_intensity="low",
            ),
        ])

        chunk = created[0]
        assert chunk.owner == "user-1"
        assert chunk.content == "I feel grateful for my family today"
        assert chunk.category == "gratitudes"
        assert chunk.emotional_intensity == "low"
        assert chunk.importance is None
        assert chunk.pinned is False
        assert chunk.starred is False
        assert chunk.created_at == chunk.updated_at
        assert db.get_chunk(chunk.id, "user-1") == chunk

    def test_returns_input_order_with_unique_ids(self, db: Database) -> None:
        created = db.create_batch("user-1", proposals(("a", "ideas"), ("b", "other"), ("c", "wish")))
        assert [c.content for c in created] == ["a", "b", "c"]
        assert len({c.id for c in created}) == 3

    def test_content_is_trimmed(self, db: Database) -> None:
        created = db.create_batch("user-1", proposals(("  padded  ", "ideas")))
        assert created[0].content == "padded"

    def test_empty_batch_rejected(self, db: Database) -> None:
        with pytest.raises(InvalidInput):
            db.create_batch("user-1", [])

    def test_invalid_category_rejects_whole_batch(self, db: Database) -> None:
        with pytest.raises(ValidationError, match="Invalid category"):
            db.create_batch("user-1", proposals(("good", "ideas"), ("bad", "feelings")))
        assert db.count_by_owner("user-1") == 0

    def test_blank_content_rejects_whole_batch(self, db: Database) -> None:
        with pytest.raises(ValidationError):
            db.create_batch("user-1", proposals(("good", "ideas"), ("   ", "ideas")))
        assert db.list_by_owner("user-1") == []

    def test_invalid_intensity_rejected(self, db: Database) -> None:
        with pytest.raises(ValidationError):
            db.create_batch("user-1", [
                ChunkProposal(content="x", category="ideas", emotional_intensity="extreme"),
            ])


class TestOwnerIsolation:
    """A chunk owned by someone else behaves like a missing chunk."""

    def test_list_and_count_are_scoped(self, db: Database) -> None:
        db.create_batch("alice", proposals(("a1", "ideas"), ("a2", "ideas")))
        db.create_batch("bob", proposals(("b1", "ideas")))

        assert [c.content for c in db.list_by_owner("bob")] == ["b1"]
        assert db.count_by_owner("alice") == 2
        assert db.count_by_owner("nobody") == 0

    @pytest.mark.parametrize("operation", [
        lambda db, cid: db.get_chunk(cid, "bob"),
        lambda db, cid: db.update_content(cid, "bob", "hijacked", "other"),
        lambda db, cid: db.update_importance(cid, "bob", "1"),
        lambda db, cid: db.set_pinned(cid, "bob", True),
        lambda db, cid: db.set_starred(cid, "bob", True),
        lambda db, cid: db.delete(cid, "bob"),
    ])
    def test_foreign_chunk_is_not_found(self, db: Database, operation) -> None:
        chunk = db.create_batch("alice", proposals(("private", "ideas")))[0]

        with pytest.raises(NotFound):
            operation(db, chunk.id)

        assert db.get_chunk(chunk.id, "alice") == chunk

    def test_missing_chunk_is_not_found(self, db: Database) -> None:
        with pytest.raises(NotFound) as info:
            db.update_importance("does-not-exist", "alice", "1")
        assert info.value.code == "not_found"


class TestUpdates:
    """Tests for edits, tiers and flags."""

    def test_update_content(self, db: Database) -> None:
        chunk = db.create_batch("u", proposals(("old", "ideas")))[0]
        time.sleep(0.01)

        updated = db.update_content(chunk.id, "u", " new ", "questions")

        assert updated.content == "new"
        assert updated.category == "questions"
        assert updated.created_at == chunk.created_at
        assert updated.updated_at > chunk.updated_at

    def test_update_content_validates(self, db: Database) -> None:
        chunk = db.create_batch("u", proposals(("old", "ideas")))[0]
        with pytest.raises(ValidationError):
            db.update_content(chunk.id, "u", "", "ideas")
        with pytest.raises(ValidationError):
            db.update_content(chunk.id, "u", "text", "nope")
        assert db.get_chunk(chunk.id, "u").content == "old"

    def test_importance_any_to_any(self, db: Database) -> None:
        chunk = db.create_batch("u", proposals(("x", "ideas")))[0]
        for tier in ["3", "1", "deprioritized", "2", None, "1"]:
            assert db.update_importance(chunk.id, "u", tier).importance == tier

    @pytest.mark.parametrize("tier", ["0", "4", "high", 1, ""])
    def test_importance_rejects_unknown_tier(self, db: Database, tier) -> None:
        chunk = db.create_batch("u", proposals(("x", "ideas")))[0]
        with pytest.raises(ValidationError):
            db.update_importance(chunk.id, "u", tier)

    def test_star_is_independent(self, db: Database) -> None:
        a, b = db.create_batch("u", proposals(("a", "ideas"), ("b", "ideas")))
        db.set_starred(a.id, "u", True)
        db.set_starred(b.id, "u", True)
        assert all(c.starred for c in db.list_by_owner("u"))
        assert db.set_starred(a.id, "u", False).starred is False

    @pytest.mark.parametrize("value", [1, "true", None])
    def test_flags_require_booleans(self, db: Database, value) -> None:
        chunk = db.create_batch("u", proposals(("x", "ideas")))[0]
        with pytest.raises(InvalidInput):
            db.set_starred(chunk.id, "u", value)
        with pytest.raises(InvalidInput):
            db.set_pinned(chunk.id, "u", value)


class TestPinning:
    """At most one pinned chunk per owner."""

    def test_pinning_clears_previous_pin(self, db: Database) -> None:
        a, b = db.create_batch("u", proposals(("a", "ideas"), ("b", "ideas")))

        db.set_pinned(a.id, "u", True)
        db.set_pinned(b.id, "u", True)

        pinned = [c.id for c in db.list_by_owner("u") if c.pinned]
        assert pinned == [b.id]

    def test_pins_of_other_owners_untouched(self, db: Database) -> None:
        mine = db.create_batch("alice", proposals(("a", "ideas")))[0]
        theirs = db.create_batch("bob", proposals(("b", "ideas")))[0]

        db.set_pinned(mine.id, "alice", True)
        db.set_pinned(theirs.id, "bob", True)

        assert db.get_chunk(mine.id, "alice").pinned
        assert db.get_chunk(theirs.id, "bob").pinned

    def test_unpin(self, db: Database) -> None:
        chunk = db.create_batch("u", proposals(("a", "ideas")))[0]
        db.set_pinned(chunk.id, "u", True)
        assert db.set_pinned(chunk.id, "u", False).pinned is False
        assert not any(c.pinned for c in db.list_by_owner("u"))

    def test_concurrent_pins_leave_one(self, tmp_path, registry) -> None:
        """Racing pin requests from separate connections never leave two pins."""
        path = tmp_path / "race.db"
        setup = Database(db_path=path, registry=registry)
        chunks = setup.create_batch("u", proposals(*[(f"c{i}", "ideas") for i in range(8)]))

        errors = []

        def pin(chunk_id: str) -> None:
            try:
                Database(db_path=path, registry=registry).set_pinned(chunk_id, "u", True)
            except Exception as e:  # collected and asserted below
                errors.append(e)

        threads = [threading.Thread(target=pin, args=(c.id,)) for c in chunks]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert errors == []
        assert sum(c.pinned for c in setup.list_by_owner("u")) == 1


class TestReads:
    """Tests for ordering, deletion and stats."""

    def test_list_order_pinned_then_newest(self, db: Database) -> None:
        first = db.create_batch("u", proposals(("first", "ideas")))[0]
        time.sleep(0.01)
        db.create_batch("u", proposals(("second", "ideas")))
        time.sleep(0.01)
        db.create_batch("u", proposals(("third", "ideas")))

        assert [c.content for c in db.list_by_owner("u")] == ["third", "second", "first"]

        db.set_pinned(first.id, "u", True)
        assert [c.content for c in db.list_by_owner("u")] == ["first", "third", "second"]

    def test_batch_ties_are_deterministic(self, db: Database) -> None:
        db.create_batch("u", proposals(("a", "ideas"), ("b", "ideas"), ("c", "ideas")))
        assert [c.content for c in db.list_by_owner("u")] == ["c", "b", "a"]

    def test_delete_twice(self, db: Database) -> None:
        chunk = db.create_batch("u", proposals(("x", "ideas")))[0]
        db.delete(chunk.id, "u")
        with pytest.raises(NotFound):
            db.delete(chunk.id, "u")
        assert db.count_by_owner("u") == 0

    def test_stats(self, db: Database) -> None:
        a, b, _ = db.create_batch("u", proposals(("a", "ideas"), ("b", "ideas"), ("c", "wish")))
        db.update_importance(a.id, "u", "1")
        db.set_pinned(a.id, "u", True)
        db.set_starred(b.id, "u", True)
        db.create_batch("other", proposals(("z", "other")))

        stats = db.get_stats("u")

        assert stats["total_chunks"] == 3
        assert stats["by_category"] == {"ideas": 2, "wish": 1}
        assert stats["by_importance"] == {"1": 1, "unranked": 2}
        assert stats["pinned"] == 1
        assert stats["starred"] == 1
        assert db.get_stats()["total_chunks"] == 4

    def test_reopening_keeps_data(self, tmp_path, registry) -> None:
        path = tmp_path / "persist.db"
        Database(db_path=path, registry=registry).create_batch("u", proposals(("x", "ideas")))
        assert Database(db_path=path, registry=registry).count_by_owner("u") == 1
