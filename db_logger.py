#!/usr/bin/env python3
"""
db_logger.py — SQLite session log for URL Tool.

Every window session gets one row in `sessions` (config label, start/end
time, action and error totals) and every line written to the log pane gets
one row in `entries`. The session log window reads them back.

Writes go through a queue to a single writer thread which inserts them in
batches, so typing in the parameter table never waits on the disk.

Entries older than RETAIN_DAYS are purged when a new session starts.
"""

import queue
import sqlite3
import threading
import uuid
from contextlib import closing
from datetime import datetime, timedelta
from pathlib import Path

RETAIN_DAYS = 30
DB_NAME     = "urltool.db"
BATCH_SIZE  = 50

SCHEMA = """
CREATE TABLE IF NOT EXISTS sessions (
    id          TEXT PRIMARY KEY,
    label       TEXT NOT NULL DEFAULT '',
    started_at  TEXT NOT NULL,
    ended_at    TEXT,
    actions     INTEGER NOT NULL DEFAULT 0,
    errors      INTEGER NOT NULL DEFAULT 0
);
CREATE TABLE IF NOT EXISTS entries (
    seq         INTEGER PRIMARY KEY AUTOINCREMENT,
    session     TEXT NOT NULL REFERENCES sessions(id),
    logged_at   TEXT NOT NULL,
    tag         TEXT NOT NULL,
    operation   TEXT NOT NULL DEFAULT '',
    message     TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_entries_session ON entries(session, seq);
"""

_INSERT = (
    "INSERT INTO entries(session, logged_at, tag, operation, message) "
    "VALUES(?,?,?,?,?)"
)

_STOP = object()


def _now() -> str:
    return datetime.now().isoformat(timespec="seconds")


class DBLogger:
    def __init__(self, location: str, label: str = ""):
        path = Path(location)
        self.db_path    = str(path / DB_NAME if path.is_dir() else path)
        self.session_id = uuid.uuid4().hex[:8]
        self.dropped    = 0
        self._queue     = queue.Queue()
        self._closed    = False

        with closing(self._connect()) as conn, conn:
            conn.executescript(SCHEMA)
            self._purge(conn)
            conn.execute(
                "INSERT INTO sessions(id, label, started_at) VALUES(?,?,?)",
                (self.session_id, label, _now())
            )

        self._writer = threading.Thread(
            target=self._drain, name="urltool-db-writer", daemon=True
        )
        self._writer.start()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path, timeout=10)
        conn.row_factory = sqlite3.Row
        return conn

    @staticmethod
    def _purge(conn: sqlite3.Connection):
        cutoff = (datetime.now() - timedelta(days=RETAIN_DAYS)).isoformat()
        conn.execute("DELETE FROM entries WHERE logged_at < ?", (cutoff,))
        conn.execute(
            "DELETE FROM sessions WHERE started_at < ? "
            "AND id NOT IN (SELECT session FROM entries)",
            (cutoff,)
        )

    # ── Writer thread ─────────────────────────────────────────────────────────

    def _drain(self):
        with closing(self._connect()) as conn:
            while True:
                batch = [self._queue.get()]
                while batch[-1] is not _STOP and len(batch) < BATCH_SIZE:
                    try:
                        batch.append(self._queue.get_nowait())
                    except queue.Empty:
                        break

                rows = [item for item in batch if item is not _STOP]
                if rows:
                    try:
                        with conn:
                            conn.executemany(_INSERT, rows)
                    except sqlite3.Error:
                        # Locked or read-only file: lose the lines, keep the UI
                        self.dropped += len(rows)
                for _ in batch:
                    self._queue.task_done()
                if batch[-1] is _STOP:
                    return

    # ── Public API ────────────────────────────────────────────────────────────

    def log(self, message: str, tag: str = "info", operation: str = ""):
        if self._closed:
            return
        self._queue.put((self.session_id, _now(), tag, operation or "", message))

    def flush(self):
        """Block until every queued line is in the database (or dropped)."""
        self._queue.join()

    def session_entries(self, tag: str = None, limit: int = 500) -> list:
        """
        The newest *limit* lines of this session, oldest first, as dicts:
            {seq, logged_at, tag, operation, message}
        """
        sql = "SELECT seq, logged_at, tag, operation, message FROM entries WHERE session = ?"
        args = [self.session_id]
        if tag:
            sql += " AND tag = ?"
            args.append(tag)
        sql += " ORDER BY seq DESC LIMIT ?"
        args.append(limit)
        with closing(self._connect()) as conn:
            rows = conn.execute(sql, args).fetchall()
        return [dict(r) for r in reversed(rows)]

    def tag_counts(self) -> dict:
        with closing(self._connect()) as conn:
            rows = conn.execute(
                "SELECT tag, COUNT(*) AS n FROM entries WHERE session = ? GROUP BY tag",
                (self.session_id,)
            ).fetchall()
        return {r["tag"]: r["n"] for r in rows}

    def close(self, actions: int = 0, errors: int = 0):
        """Write out pending lines, stamp the session totals, stop the writer."""
        if self._closed:
            return
        self._closed = True
        self._queue.put(_STOP)
        self._writer.join(timeout=3)
        with closing(self._connect()) as conn, conn:
            conn.execute(
                "UPDATE sessions SET ended_at = ?, actions = ?, errors = ? WHERE id = ?",
                (_now(), actions, errors, self.session_id)
            )

    def session_row(self) -> dict:
        with closing(self._connect()) as conn:
            row = conn.execute(
                "SELECT * FROM sessions WHERE id = ?", (self.session_id,)
            ).fetchone()
        return dict(row)
