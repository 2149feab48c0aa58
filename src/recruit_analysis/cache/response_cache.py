"""SQLite cache for generation responses keyed by prompt fingerprint (TTL 1 hour)."""

from __future__ import annotations

import hashlib
import logging
import sqlite3
import time
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator

logger = logging.getLogger(__name__)

DEFAULT_DB_PATH = Path.home() / ".recruit-analysis" / "cache.db"
DEFAULT_TTL_SECONDS = 3600
DEFAULT_FINGERPRINT_CHARS = 8192


@dataclass(frozen=True)
class CachedGenerationResponse:
    prompt_fingerprint: str
    response_text: str
    created_at: float


def fingerprint(prompt: str, leading_chars: int = DEFAULT_FINGERPRINT_CHARS) -> str:
    """Short key for a prompt: hash of its leading content plus its length."""
    head = prompt[:leading_chars]
    digest = hashlib.sha256(f"{len(prompt)}:{head}".encode("utf-8")).hexdigest()
    return digest[:32]


class ResponseCache:
    """SQLite-backed response cache with TTL expiration.

    Purely an optimization: every miss behaves like a cold call, and the
    table can be cleared at any time.
    """

    def __init__(
        self,
        db_path: str | Path = DEFAULT_DB_PATH,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        fingerprint_chars: int = DEFAULT_FINGERPRINT_CHARS,
    ):
        self.db_path = Path(db_path)
        self.ttl_seconds = ttl_seconds
        self.fingerprint_chars = fingerprint_chars
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _init_db(self) -> None:
        with self._connect() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS generation_cache (
                    prompt_fingerprint TEXT PRIMARY KEY,
                    response_text TEXT NOT NULL,
                    created_at REAL NOT NULL
                )
            """)

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(str(self.db_path), timeout=5.0)
        try:
            conn.execute("PRAGMA journal_mode=WAL")
            with conn:
                yield conn
        finally:
            conn.close()

    def key_for(self, prompt: str) -> str:
        return fingerprint(prompt, self.fingerprint_chars)

    def get(self, prompt: str) -> CachedGenerationResponse | None:
        """Get the cached response for a prompt if not expired."""
        key = self.key_for(prompt)
        try:
            with self._connect() as conn:
                row = conn.execute(
                    "SELECT response_text, created_at FROM generation_cache"
                    " WHERE prompt_fingerprint = ?",
                    (key,),
                ).fetchone()
        except sqlite3.Error:
            logger.warning("Cache read failed for %s", key, exc_info=True)
            return None

        if row is None:
            return None

        response_text, created_at = row
        if time.time() - created_at >= self.ttl_seconds:
            self._delete_key(key)
            return None

        return CachedGenerationResponse(key, response_text, created_at)

    def put(self, prompt: str, response_text: str) -> None:
        """Cache a response. Empty responses are never stored."""
        if not response_text:
            return
        key = self.key_for(prompt)
        try:
            with self._connect() as conn:
                conn.execute(
                    """INSERT OR REPLACE INTO generation_cache
                       (prompt_fingerprint, response_text, created_at)
                       VALUES (?, ?, ?)""",
                    (key, response_text, time.time()),
                )
        except sqlite3.Error:
            logger.warning("Cache write failed for %s", key, exc_info=True)

    def delete(self, prompt: str) -> None:
        self._delete_key(self.key_for(prompt))

    def _delete_key(self, key: str) -> None:
        try:
            with self._connect() as conn:
                conn.execute(
                    "DELETE FROM generation_cache WHERE prompt_fingerprint = ?", (key,)
                )
        except sqlite3.Error:
            logger.warning("Cache delete failed for %s", key, exc_info=True)

    def purge_expired(self) -> int:
        """Delete expired entries. Returns count of deleted rows."""
        with self._connect() as conn:
            cursor = conn.execute(
                "DELETE FROM generation_cache WHERE ? - created_at >= ?",
                (time.time(), self.ttl_seconds),
            )
            purged = cursor.rowcount
        if purged:
            logger.info("Purged %d expired cache entries", purged)
        return purged

    def clear(self) -> int:
        """Clear all cached entries. Returns count of deleted rows."""
        with self._connect() as conn:
            cursor = conn.execute("DELETE FROM generation_cache")
            return cursor.rowcount

    def stats(self) -> dict:
        """Return cache statistics."""
        with self._connect() as conn:
            total = conn.execute(
                "SELECT COUNT(*) FROM generation_cache"
            ).fetchone()[0]
            expired = conn.execute(
                "SELECT COUNT(*) FROM generation_cache WHERE ? - created_at >= ?",
                (time.time(), self.ttl_seconds),
            ).fetchone()[0]
        return {"total": total, "expired": expired, "active": total - expired}
