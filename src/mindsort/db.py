"""
Database module for Mindsort.

SQLite storage for chunks. Every operation is scoped to an owner supplied
by the caller; a chunk owned by someone else behaves exactly like a chunk
that does not exist.
"""

import logging
import sqlite3
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable, Iterator

from mindsort.categories import CategoryRegistry, default_registry
from mindsort.config import get_db_path
from mindsort.errors import InvalidInput, NotFound, PersistenceError, ValidationError
from mindsort.models import EMOTIONAL_INTENSITIES, IMPORTANCE_TIERS, Chunk, ChunkProposal

logger = logging.getLogger(__name__)

# Schema version for migrations
SCHEMA_VERSION = 1

SCHEMA = """
-- Schema version tracking
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER PRIMARY KEY
);

-- Chunks. Category is validated against the registry at write time,
-- not here, because the registry is configurable.
CREATE TABLE IF NOT EXISTS chunks (
    id TEXT PRIMARY KEY,                    -- uuid4 hex
    owner TEXT NOT NULL,
    content TEXT NOT NULL CHECK(length(trim(content)) > 0),
    category TEXT NOT NULL,
    emotional_intensity TEXT CHECK(emotional_intensity IN ('low', 'medium', 'high')),
    importance TEXT CHECK(importance IN ('1', '2', '3', 'deprioritized')),
    pinned INTEGER NOT NULL DEFAULT 0,
    starred INTEGER NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL,               -- ISO 8601
    updated_at TEXT NOT NULL
);

-- Indexes
CREATE INDEX IF NOT EXISTS idx_chunks_owner_created ON chunks(owner, created_at);
CREATE INDEX IF NOT EXISTS idx_chunks_owner_category ON chunks(owner, category);

-- At most one pinned chunk per owner
CREATE UNIQUE INDEX IF NOT EXISTS idx_chunks_one_pin ON chunks(owner) WHERE pinned = 1;
"""

LIST_ORDER = "ORDER BY pinned DESC, created_at DESC, rowid DESC"


def utcnow() -> str:
    return datetime.now(timezone.utc).isoformat()


def row_to_chunk(row: sqlite3.Row) -> Chunk:
    data = dict(row)
    data["pinned"] = bool(data["pinned"])
    data["starred"] = bool(data["starred"])
    return Chunk(**data)


class Database:
    """SQLite-backed chunk store."""

    def __init__(
        self,
        db_path: Path | None = None,
        registry: CategoryRegistry | None = None,
        timeout: float = 10.0,
    ):
        self.db_path = db_path or get_db_path()
        self.registry = registry or default_registry
        self.timeout = timeout
        self._ensure_db()

    def _ensure_db(self) -> None:
        """Ensure database exists and schema is current."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        with self._transaction() as conn:
            for statement in SCHEMA.split(";"):
                if statement.strip():
                    conn.execute(statement)
            # Set schema version
            conn.execute(
                "INSERT OR REPLACE INTO schema_version (version) VALUES (?)",
                (SCHEMA_VERSION,)
            )

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        """Context manager for database connections (autocommit mode)."""
        try:
            conn = sqlite3.connect(self.db_path, timeout=self.timeout, isolation_level=None)
        except sqlite3.Error as e:
            logger.error("Could not open database %s: %s", self.db_path, e)
            raise PersistenceError("Database unavailable") from e

        conn.row_factory = sqlite3.Row
        try:
            yield conn
        except sqlite3.Error as e:
            logger.error("Database error: %s", e)
            raise PersistenceError("Database operation failed") from e
        finally:
            conn.close()

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        """
        Run a block inside BEGIN IMMEDIATE.

        IMMEDIATE takes the write lock up front, so two writers for the
        same owner are serialized even across processes.
        """
        with self._connect() as conn:
            conn.execute("BEGIN IMMEDIATE")
            try:
                yield conn
                conn.execute("COMMIT")
            except BaseException:
                if conn.in_transaction:
                    conn.execute("ROLLBACK")
                raise

    # Validation

    def _validate_content(self, content: Any) -> str:
        if not isinstance(content, str) or not content.strip():
            raise ValidationError("Each chunk must have content")
        return content.strip()

    def _validate_category(self, category: Any) -> str:
        if not self.registry.is_valid_key(category):
            raise ValidationError(f"Invalid category: {category}")
        return category

    def _validate_proposal(self, proposal: ChunkProposal) -> ChunkProposal:
        intensity = proposal.emotional_intensity
        if intensity is not None and intensity not in EMOTIONAL_INTENSITIES:
            raise ValidationError(f"Invalid emotional intensity: {intensity}")
        return ChunkProposal(
            content=self._validate_content(proposal.content),
            category=self._validate_category(proposal.category),
            emotional_intensity=intensity,
        )

    # Writes

    def create_batch(self, owner: str, proposals: Iterable[ChunkProposal]) -> list[Chunk]:
        """
        Insert confirmed proposals for an owner. All or nothing.

        Every proposal is validated before anything touches the database.
        """
        proposals = list(proposals)
        if not proposals:
            raise InvalidInput("Chunks array is required")

        validated = [self._validate_proposal(p) for p in proposals]
        now = utcnow()
        ids = [uuid.uuid4().hex for _ in validated]

        with self._transaction() as conn:
            conn.executemany("""
                INSERT INTO chunks (
                    id, owner, content, category, emotional_intensity,
                    importance, pinned, starred, created_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, NULL, 0, 0, ?, ?)
            """, [
                (chunk_id, owner, p.content, p.category, p.emotional_intensity, now, now)
                for chunk_id, p in zip(ids, validated)
            ])
            rows = {
                row["id"]: row
                for row in conn.execute(
                    f"SELECT * FROM chunks WHERE owner = ? AND id IN ({','.join('?' * len(ids))})",
                    (owner, *ids),
                ).fetchall()
            }

        logger.info("Stored %d chunks for owner %s", len(ids), owner)
        return [row_to_chunk(rows[chunk_id]) for chunk_id in ids]

    def _update(self, chunk_id: str, owner: str, assignments: dict[str, Any]) -> Chunk:
        """Apply column assignments to one owned chunk and return it."""
        assignments = {**assignments, "updated_at": utcnow()}
        columns = ", ".join(f"{column} = ?" for column in assignments)

        with self._transaction() as conn:
            cursor = conn.execute(
                f"UPDATE chunks SET {columns} WHERE id = ? AND owner = ?",
                (*assignments.values(), chunk_id, owner),
            )
            if cursor.rowcount == 0:
                raise NotFound()
            row = conn.execute(
                "SELECT * FROM chunks WHERE id = ? AND owner = ?", (chunk_id, owner)
            ).fetchone()

        return row_to_chunk(row)

    def update_content(self, chunk_id: str, owner: str, content: str, category: str) -> Chunk:
        """Edit a chunk's text and category."""
        content = self._validate_content(content)
        category = self._validate_category(category)
        return self._update(chunk_id, owner, {"content": content, "category": category})

    def update_importance(self, chunk_id: str, owner: str, importance: str | None) -> Chunk:
        """Move a chunk to any tier, or back to unranked with None."""
        if importance is not None and importance not in IMPORTANCE_TIERS:
            raise ValidationError(f"Invalid importance value: {importance}")
        return self._update(chunk_id, owner, {"importance": importance})

    def set_starred(self, chunk_id: str, owner: str, starred: bool) -> Chunk:
        if not isinstance(starred, bool):
            raise InvalidInput("Starred status must be a boolean")
        return self._update(chunk_id, owner, {"starred": int(starred)})

    def set_pinned(self, chunk_id: str, owner: str, pinned: bool) -> Chunk:
        """
        Pin or unpin a chunk.

        Pinning clears every other pin of the same owner in the same
        transaction, so an owner never has two pinned chunks.
        """
        if not isinstance(pinned, bool):
            raise InvalidInput("Pinned status must be a boolean")

        now = utcnow()
        with self._transaction() as conn:
            exists = conn.execute(
                "SELECT 1 FROM chunks WHERE id = ? AND owner = ?", (chunk_id, owner)
            ).fetchone()
            if not exists:
                raise NotFound()

            if pinned:
                conn.execute("""
                    UPDATE chunks SET pinned = 0, updated_at = ?
                    WHERE owner = ? AND pinned = 1 AND id != ?
                """, (now, owner, chunk_id))

            conn.execute(
                "UPDATE chunks SET pinned = ?, updated_at = ? WHERE id = ? AND owner = ?",
                (int(pinned), now, chunk_id, owner),
            )
            row = conn.execute(
                "SELECT * FROM chunks WHERE id = ? AND owner = ?", (chunk_id, owner)
            ).fetchone()

        return row_to_chunk(row)

    def delete(self, chunk_id: str, owner: str) -> None:
        """Delete an owned chunk. A second call raises NotFound."""
        with self._transaction() as conn:
            cursor = conn.execute(
                "DELETE FROM chunks WHERE id = ? AND owner = ?", (chunk_id, owner)
            )
            if cursor.rowcount == 0:
                raise NotFound()

    # Reads

    def get_chunk(self, chunk_id: str, owner: str) -> Chunk:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM chunks WHERE id = ? AND owner = ?", (chunk_id, owner)
            ).fetchone()
        if row is None:
            raise NotFound()
        return row_to_chunk(row)

    def list_by_owner(self, owner: str) -> list[Chunk]:
        """All chunks of an owner: pinned first, then newest first."""
        with self._connect() as conn:
            rows = conn.execute(
                f"SELECT * FROM chunks WHERE owner = ? {LIST_ORDER}", (owner,)
            ).fetchall()
        return [row_to_chunk(row) for row in rows]

    def count_by_owner(self, owner: str) -> int:
        with self._connect() as conn:
            return conn.execute(
                "SELECT COUNT(*) FROM chunks WHERE owner = ?", (owner,)
            ).fetchone()[0]

    def get_stats(self, owner: str | None = None) -> dict[str, Any]:
        """Get database statistics, optionally for a single owner."""
        where, params = ("WHERE owner = ?", (owner,)) if owner else ("", ())

        with self._connect() as conn:
            total = conn.execute(f"SELECT COUNT(*) FROM chunks {where}", params).fetchone()[0]
            by_category = dict(conn.execute(
                f"SELECT category, COUNT(*) FROM chunks {where} GROUP BY category", params
            ).fetchall())
            by_importance = {
                (tier or "unranked"): count
                for tier, count in conn.execute(
                    f"SELECT importance, COUNT(*) FROM chunks {where} GROUP BY importance",
                    params,
                ).fetchall()
            }
            flags = conn.execute(
                f"SELECT COALESCE(SUM(pinned), 0), COALESCE(SUM(starred), 0) FROM chunks {where}",
                params,
            ).fetchone()

        return {
            "total_chunks": total,
            "by_category": by_category,
            "by_importance": by_importance,
            "pinned": flags[0],
            "starred": flags[1],
        }
