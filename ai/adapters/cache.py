from __future__ import annotations
"""On-disk embedding cache.

EmbeddingCache – persistent LFU cache stored in an SQLite DB. Each vector row
is keyed by a SHA256 of model name and text to keep keys short.
"""

import asyncio
import hashlib
import json
import sqlite3
from pathlib import Path
from typing import List, Optional, Union

from core.logging import logger

__all__ = ["EmbeddingCache"]

DEFAULT_MAX_ENTRIES = 50000


class EmbeddingCache:
    """On-disk LFU cache for text → embedding vector (list[float])."""

    def __init__(self, db_path: Union[str, Path], max_entries: int = DEFAULT_MAX_ENTRIES) -> None:
        db_path = Path(db_path)
        db_path.parent.mkdir(parents=True, exist_ok=True)
        self._db_path = db_path
        self._max_entries = max_entries
        self._init_db()
        self._lock = asyncio.Lock()

    # ------------------------------------------------------------------
    def _init_db(self) -> None:
        with sqlite3.connect(self._db_path) as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS embeddings (
                    key TEXT PRIMARY KEY,
                    vector TEXT NOT NULL,
                    use_count INTEGER DEFAULT 0,
                    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
            """)
            conn.execute("CREATE INDEX IF NOT EXISTS idx_use_count ON embeddings(use_count)")

    @staticmethod
    def key_for(model: str, text: str) -> str:
        return hashlib.sha256(f"{model}\x00{text}".encode("utf-8")).hexdigest()

    # Async helpers -------------------------------------------------------
    async def get(self, model: str, text: str) -> Optional[List[float]]:
        key = self.key_for(model, text)
        async with self._lock:
            with sqlite3.connect(self._db_path) as conn:
                row = conn.execute("SELECT vector FROM embeddings WHERE key = ?", (key,)).fetchone()
                if row is None:
                    return None
                conn.execute("UPDATE embeddings SET use_count = use_count + 1 WHERE key = ?", (key,))
        return json.loads(row[0])

    async def set(self, model: str, text: str, vector: List[float]) -> None:
        key = self.key_for(model, text)
        vector_json = json.dumps(vector, separators=(",", ":"))
        async with self._lock:
            with sqlite3.connect(self._db_path) as conn:
                conn.execute(
                    "INSERT OR REPLACE INTO embeddings (key, vector, use_count) "
                    "VALUES (?, ?, COALESCE((SELECT use_count FROM embeddings WHERE key = ?), 0))",
                    (key, vector_json, key),
                )
                self._evict(conn)

    async def count(self) -> int:
        async with self._lock:
            with sqlite3.connect(self._db_path) as conn:
                return conn.execute("SELECT COUNT(*) FROM embeddings").fetchone()[0]

    # Eviction of least frequently used rows -----------------------------
    def _evict(self, conn: sqlite3.Connection) -> None:
        total = conn.execute("SELECT COUNT(*) FROM embeddings").fetchone()[0]
        if total <= self._max_entries:
            return
        to_delete = total - self._max_entries
        conn.execute(
            "DELETE FROM embeddings WHERE key IN "
            "(SELECT key FROM embeddings ORDER BY use_count ASC, rowid ASC LIMIT ?)",
            (to_delete,),
        )
        logger.debug(f"Embedding cache evicted {to_delete} least-used vectors")
