import logging
import sqlite3
import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path

from cliptrail.config import DB_PATH
from cliptrail.models import ContentType, HistoryRecord

logger = logging.getLogger(__name__)

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"

SCHEMA = """
CREATE TABLE IF NOT EXISTS history (
    id            INTEGER PRIMARY KEY,
    source_app    TEXT NOT NULL,
    icon_path     TEXT NOT NULL,
    content_type  TEXT NOT NULL,
    content       BLOB NOT NULL,
    timestamp     TEXT NOT NULL DEFAULT (DATETIME('NOW'))
);

CREATE INDEX IF NOT EXISTS idx_history_timestamp ON history(timestamp DESC);
"""

COLUMNS = "id, source_app, icon_path, content_type, content, timestamp"


class StoreError(Exception):
    """A history store operation failed."""


class StoreUnavailableError(StoreError):
    """The backing database could not be opened or initialized."""


class RecordNotFoundError(StoreError):
    def __init__(self, record_id: int):
        super().__init__(f"No history record with id {record_id}")
        self.record_id = record_id


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _format_timestamp(ts: datetime) -> str:
    if ts.tzinfo is not None:
        ts = ts.astimezone(timezone.utc)
    return ts.strftime(TIMESTAMP_FORMAT)


def _casefold_contains(haystack, needle) -> int:
    if haystack is None or needle is None:
        return 0
    if isinstance(haystack, bytes):
        haystack = haystack.decode("utf-8", errors="replace")
    return int(needle.casefold() in str(haystack).casefold())


class HistoryStore:
    """Clipboard history over a single SQLite connection.

    Every public method holds the store lock for its whole duration, so
    the monitor thread and UI callers never interleave on the handle.
    """

    def __init__(self, db_path: str | Path | None = None, clock: Callable[[], datetime] = _utcnow):
        self._db_path = str(db_path) if db_path else str(DB_PATH)
        self._clock = clock
        self._lock = threading.Lock()
        try:
            self._conn = sqlite3.connect(self._db_path, check_same_thread=False)
            self._conn.create_function("casefold_contains", 2, _casefold_contains, deterministic=True)
            self.init_db()
        except sqlite3.Error as exc:
            raise StoreUnavailableError(f"Cannot open history database at {self._db_path}: {exc}") from exc

    def init_db(self) -> None:
        with self._lock:
            self._conn.executescript(SCHEMA)
            self._conn.commit()

    @contextmanager
    def _locked(self) -> Iterator[sqlite3.Connection]:
        with self._lock:
            try:
                yield self._conn
            except sqlite3.Error as exc:
                raise StoreError(str(exc)) from exc

    def upsert(self, content_type: ContentType, content: bytes, source_app: str, icon_path: str) -> int:
        """Insert new content, or refresh the row already holding it.

        Identity is the exact (content_type, content) pair. A match gets
        the new source app, icon and timestamp and keeps its id.
        """
        blob = sqlite3.Binary(content)
        with self._locked() as conn, conn:
            now = _format_timestamp(self._clock())
            # CAST covers rows whose content was written with TEXT affinity
            row = conn.execute(
                "SELECT id FROM history WHERE content_type = ? AND CAST(content AS BLOB) = ? LIMIT 1",
                (content_type.value, blob),
            ).fetchone()
            if row is not None:
                record_id = row[0]
                conn.execute(
                    "UPDATE history SET source_app = ?, icon_path = ?, timestamp = ? WHERE id = ?",
                    (source_app, icon_path, now, record_id),
                )
            else:
                cursor = conn.execute(
                    """INSERT INTO history (source_app, icon_path, content_type, content, timestamp)
                       VALUES (?, ?, ?, ?, ?)""",
                    (source_app, icon_path, content_type.value, blob, now),
                )
                record_id = cursor.lastrowid
        return record_id

    def touch(self, record_id: int) -> None:
        with self._locked() as conn, conn:
            now = _format_timestamp(self._clock())
            cursor = conn.execute("UPDATE history SET timestamp = ? WHERE id = ?", (now, record_id))
            if cursor.rowcount == 0:
                raise RecordNotFoundError(record_id)

    def list_all(self) -> list[HistoryRecord]:
        with self._locked() as conn:
            rows = conn.execute(
                f"SELECT {COLUMNS} FROM history ORDER BY timestamp DESC, id DESC"
            ).fetchall()
        return [self._row_to_record(r) for r in rows]

    def list_recent(self, limit: int) -> list[HistoryRecord]:
        if limit <= 0:
            return []
        with self._locked() as conn:
            rows = conn.execute(
                f"SELECT {COLUMNS} FROM history ORDER BY timestamp DESC, id DESC LIMIT ?",
                (limit,),
            ).fetchall()
        return [self._row_to_record(r) for r in rows]

    def search(self, term: str) -> list[HistoryRecord]:
        """Case-insensitive substring search over text records."""
        with self._locked() as conn:
            rows = conn.execute(
                f"""SELECT {COLUMNS} FROM history
                    WHERE content_type = ? AND casefold_contains(content, ?)
                    ORDER BY timestamp DESC, id DESC""",
                (ContentType.TEXT.value, term),
            ).fetchall()
        return [self._row_to_record(r) for r in rows]

    def get_record(self, record_id: int) -> HistoryRecord | None:
        with self._locked() as conn:
            row = conn.execute(f"SELECT {COLUMNS} FROM history WHERE id = ?", (record_id,)).fetchone()
        return self._row_to_record(row) if row else None

    def count(self) -> int:
        with self._locked() as conn:
            row = conn.execute("SELECT COUNT(*) FROM history").fetchone()
        return row[0]

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    def _row_to_record(self, row: tuple) -> HistoryRecord:
        record_id, source_app, icon_path, raw_type, raw_content, raw_timestamp = row

        try:
            content_type = ContentType(raw_type)
        except ValueError:
            logger.warning("Row %s has unknown content type %r, reading as text", record_id, raw_type)
            content_type = ContentType.TEXT

        if isinstance(raw_content, bytes):
            content = raw_content
        elif isinstance(raw_content, str):
            content = raw_content.encode("utf-8")
        else:
            logger.warning("Row %s has unexpected content storage %s", record_id, type(raw_content).__name__)
            content = b""

        try:
            timestamp = datetime.strptime(raw_timestamp, TIMESTAMP_FORMAT).replace(tzinfo=timezone.utc)
        except (TypeError, ValueError):
            logger.warning("Row %s has unparsable timestamp %r", record_id, raw_timestamp)
            timestamp = _utcnow()

        return HistoryRecord(
            id=record_id,
            source_app=source_app or "",
            icon_path=icon_path or "",
            content_type=content_type,
            content=content,
            timestamp=timestamp,
        )
