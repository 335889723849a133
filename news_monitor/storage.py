"""SQLite-backed record of delivered articles."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
import json
import logging
from pathlib import Path
import sqlite3
import threading
from typing import Callable, List, Optional, TypeVar

from .errors import StorageError
from .models import ArticleRecord, MatchedArticle, StoreStats

logger = logging.getLogger(__name__)

T = TypeVar("T")

_SCHEMA = """
CREATE TABLE IF NOT EXISTS articles (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    url TEXT UNIQUE NOT NULL,
    title TEXT NOT NULL,
    source TEXT NOT NULL,
    published_at TEXT NOT NULL,
    processed_at TEXT NOT NULL,
    matched_keywords TEXT NOT NULL,
    image_url TEXT,
    description TEXT
);
CREATE UNIQUE INDEX IF NOT EXISTS idx_articles_url ON articles(url);
CREATE INDEX IF NOT EXISTS idx_articles_source ON articles(source);
CREATE INDEX IF NOT EXISTS idx_articles_published_at ON articles(published_at);
CREATE INDEX IF NOT EXISTS idx_articles_processed_at ON articles(processed_at);
"""

_COLUMNS = "id, url, title, source, published_at, processed_at, matched_keywords, image_url, description"


def _to_db(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    # Fixed-width UTC text keeps lexicographic order equal to time order.
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


def _from_db(value: str) -> datetime:
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class ArticleStore:
    """Durable set of article URLs that were successfully notified.

    Writes are serialized through a lock; reads go straight to the shared
    connection. A write that hits a corrupted database triggers one
    re-initialization and one retry.
    """

    def __init__(self, db_path: str | Path) -> None:
        self.db_path = Path(db_path)
        self._connection: Optional[sqlite3.Connection] = None
        self._write_lock = threading.Lock()

    def initialize(self) -> None:
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            self._connection = self._open()
        except (OSError, sqlite3.Error) as exc:
            logger.error("Failed to initialize database at %s: %s", self.db_path, exc)
            raise StorageError(f"Cannot open article store at {self.db_path}: {exc}") from exc
        logger.info("Database initialized at %s", self.db_path)

    def _open(self) -> sqlite3.Connection:
        connection = sqlite3.connect(self.db_path, check_same_thread=False)
        try:
            connection.row_factory = sqlite3.Row
            connection.execute("PRAGMA journal_mode=WAL")
            connection.executescript(_SCHEMA)
            connection.commit()
        except sqlite3.Error:
            connection.close()
            raise
        return connection

    @property
    def is_open(self) -> bool:
        return self._connection is not None

    def _conn(self) -> sqlite3.Connection:
        if self._connection is None:
            raise StorageError("Article store is not initialized")
        return self._connection

    def is_processed(self, url: str) -> bool:
        try:
            row = self._conn().execute("SELECT 1 FROM articles WHERE url = ? LIMIT 1", (url,)).fetchone()
        except sqlite3.Error as exc:
            raise StorageError(f"Lookup failed for {url}: {exc}") from exc
        return row is not None

    def save(self, article: MatchedArticle) -> int:
        """Insert the article unless its URL is already stored; return the row id."""

        def insert(connection: sqlite3.Connection) -> int:
            cursor = connection.execute(
                """
                INSERT OR IGNORE INTO articles
                    (url, title, source, published_at, processed_at, matched_keywords, image_url, description)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    article.url,
                    article.title,
                    article.source,
                    _to_db(article.published_at),
                    _to_db(article.processed_at),
                    json.dumps(article.matched_keywords, ensure_ascii=False),
                    article.image_url,
                    article.description,
                ),
            )
            connection.commit()
            if cursor.rowcount == 1 and cursor.lastrowid:
                return int(cursor.lastrowid)
            logger.debug("Article already stored: %s", article.url)
            row = connection.execute("SELECT id FROM articles WHERE url = ?", (article.url,)).fetchone()
            return int(row["id"]) if row else 0

        return self._write(insert, f"save {article.url}")

    def recent_records(self, source: Optional[str] = None, limit: int = 50) -> List[ArticleRecord]:
        query = f"SELECT {_COLUMNS} FROM articles"
        params: list = []
        if source:
            query += " WHERE source = ?"
            params.append(source)
        query += " ORDER BY processed_at DESC, id DESC LIMIT ?"
        params.append(limit)
        try:
            rows = self._conn().execute(query, params).fetchall()
        except sqlite3.Error as exc:
            raise StorageError(f"Recent records query failed: {exc}") from exc
        return [_row_to_record(row) for row in rows]

    def cleanup(self, retention_days: int = 30, now: Optional[datetime] = None) -> int:
        """Delete records processed more than ``retention_days`` ago."""
        cutoff = (now or datetime.now(timezone.utc)) - timedelta(days=retention_days)

        def delete(connection: sqlite3.Connection) -> int:
            cursor = connection.execute("DELETE FROM articles WHERE processed_at < ?", (_to_db(cutoff),))
            connection.commit()
            return cursor.rowcount

        return self._write(delete, "cleanup")

    def stats(self) -> StoreStats:
        try:
            connection = self._conn()
            total = connection.execute("SELECT COUNT(*) AS total FROM articles").fetchone()["total"]
            rows = connection.execute(
                "SELECT source, COUNT(*) AS count FROM articles GROUP BY source ORDER BY source"
            ).fetchall()
        except sqlite3.Error as exc:
            raise StorageError(f"Stats query failed: {exc}") from exc
        return StoreStats(total=int(total), by_source={row["source"]: int(row["count"]) for row in rows})

    def close(self) -> None:
        with self._write_lock:
            if self._connection is not None:
                self._connection.close()
                self._connection = None
                logger.info("Database connection closed")

    def _write(self, operation: Callable[[sqlite3.Connection], T], description: str) -> T:
        with self._write_lock:
            connection = self._conn()
            try:
                return operation(connection)
            except sqlite3.IntegrityError as exc:
                connection.rollback()
                raise StorageError(f"{description} violated a constraint: {exc}") from exc
            except sqlite3.DatabaseError as exc:
                logger.warning("Database error during %s, re-initializing: %s", description, exc)
                connection = self._reinitialize()
            try:
                return operation(connection)
            except sqlite3.Error as exc:
                logger.error("Retry of %s failed after re-initialization: %s", description, exc)
                raise StorageError(f"{description} failed after re-initialization: {exc}") from exc

    def _reinitialize(self) -> sqlite3.Connection:
        if self._connection is not None:
            try:
                self._connection.close()
            except sqlite3.Error:
                pass
            self._connection = None
        connection: Optional[sqlite3.Connection] = None
        try:
            connection = self._open()
            if connection.execute("PRAGMA quick_check").fetchone()[0] != "ok":
                raise sqlite3.DatabaseError("quick_check reported corruption")
        except sqlite3.DatabaseError as exc:
            if connection is not None:
                connection.close()
            logger.error("Database at %s is corrupt (%s); moving it aside", self.db_path, exc)
            self._quarantine()
            try:
                connection = self._open()
            except sqlite3.Error as open_exc:
                raise StorageError(f"Re-initialization of {self.db_path} failed: {open_exc}") from open_exc
        self._connection = connection
        return connection

    def _quarantine(self) -> None:
        stamp = datetime.now(timezone.utc).strftime("%Y%m%d%H%M%S")
        for suffix in ("", "-wal", "-shm"):
            path = Path(f"{self.db_path}{suffix}")
            if path.exists():
                path.replace(path.with_name(f"{path.name}.corrupt-{stamp}"))


def _row_to_record(row: sqlite3.Row) -> ArticleRecord:
    return ArticleRecord(
        id=int(row["id"]),
        url=row["url"],
        title=row["title"],
        source=row["source"],
        published_at=_from_db(row["published_at"]),
        processed_at=_from_db(row["processed_at"]),
        matched_keywords=list(json.loads(row["matched_keywords"])),
        image_url=row["image_url"],
        description=row["description"],
    )
