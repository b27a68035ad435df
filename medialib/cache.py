from __future__ import annotations

import sqlite3
from pathlib import Path
from threading import Lock
from typing import Iterable, Optional


class TrackCache:
    """SQLite-backed store of serialized track descriptors, keyed by file path."""

    def __init__(self, path: Path) -> None:
        self.path = path
        if str(path) != ":memory:":
            self.path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = Lock()
        self._conn = sqlite3.connect(self.path, check_same_thread=False)
        self._conn.execute(
            """
            CREATE TABLE IF NOT EXISTS track_records (
                path TEXT PRIMARY KEY,
                mtime_ns INTEGER NOT NULL,
                size_bytes INTEGER NOT NULL,
                record BLOB NOT NULL,
                updated_at TEXT NOT NULL
            )
            """
        )
        self._conn.commit()

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    def get_record(self, path: Path | str) -> Optional[bytes]:
        with self._lock:
            cursor = self._conn.execute(
                "SELECT record FROM track_records WHERE path = ?",
                (str(path),),
            )
            row = cursor.fetchone()
        if not row:
            return None
        return bytes(row[0])

    def get_stat(self, path: Path | str) -> Optional[tuple[int, int]]:
        with self._lock:
            cursor = self._conn.execute(
                "SELECT mtime_ns, size_bytes FROM track_records WHERE path = ?",
                (str(path),),
            )
            row = cursor.fetchone()
        if not row:
            return None
        return int(row[0]), int(row[1])

    def set_record(self, path: Path | str, record: bytes, mtime_ns: int, size_bytes: int) -> None:
        with self._lock:
            self._conn.execute(
                """
                INSERT INTO track_records(path, mtime_ns, size_bytes, record, updated_at)
                VALUES(?, ?, ?, ?, CURRENT_TIMESTAMP)
                ON CONFLICT(path) DO UPDATE SET mtime_ns=excluded.mtime_ns, size_bytes=excluded.size_bytes,
                    record=excluded.record, updated_at=excluded.updated_at
                """,
                (str(path), int(mtime_ns), int(size_bytes), sqlite3.Binary(record)),
            )
            self._conn.commit()

    def delete_record(self, path: Path | str) -> None:
        with self._lock:
            self._conn.execute("DELETE FROM track_records WHERE path = ?", (str(path),))
            self._conn.commit()

    def list_paths(self) -> list[str]:
        with self._lock:
            cursor = self._conn.execute("SELECT path FROM track_records ORDER BY path")
            rows = cursor.fetchall()
        return [row[0] for row in rows]

    def prune(self, keep: Iterable[Path | str]) -> int:
        """Delete every record whose path is not in ``keep``; returns how many went."""
        keep_set = {str(path) for path in keep}
        stale = [path for path in self.list_paths() if path not in keep_set]
        if not stale:
            return 0
        with self._lock:
            self._conn.executemany(
                "DELETE FROM track_records WHERE path = ?",
                [(path,) for path in stale],
            )
            self._conn.commit()
        return len(stale)

    def count(self) -> int:
        with self._lock:
            cursor = self._conn.execute("SELECT COUNT(*) FROM track_records")
            row = cursor.fetchone()
        return int(row[0]) if row else 0

    def clear(self) -> None:
        with self._lock:
            self._conn.execute("DELETE FROM track_records")
            self._conn.commit()
