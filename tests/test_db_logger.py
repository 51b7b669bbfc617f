import sqlite3
from datetime import datetime, timedelta

import pytest

from db_logger import DB_NAME, RETAIN_DAYS, DBLogger


@pytest.fixture
def db(tmp_path):
    logger = DBLogger(str(tmp_path), label="test.ini")
    yield logger
    logger.close()


def messages(entries) -> list:
    return [e["message"] for e in entries]


# --- Tests for location ---


def test_creates_db_in_folder(db, tmp_path):
    assert db.db_path == str(tmp_path / DB_NAME)
    assert (tmp_path / DB_NAME).exists()


def test_accepts_explicit_file(tmp_path):
    path = tmp_path / "custom.db"
    logger = DBLogger(str(path))
    try:
        assert logger.db_path == str(path)
        assert path.exists()
    finally:
        logger.close()


# --- Tests for session_entries ---


def test_log_and_read_back(db):
    db.log("Parsed https://example.com/", "ok", "parse")
    db.log("Invalid URL", "err", "parse")
    db.log("Cleared", "info", "clear")
    db.flush()

    entries = db.session_entries()
    assert messages(entries) == ["Parsed https://example.com/", "Invalid URL", "Cleared"]
    assert [e["tag"] for e in entries] == ["ok", "err", "info"]
    assert entries[0]["operation"] == "parse"
    assert entries[0]["logged_at"]
    assert entries[0]["seq"] < entries[1]["seq"] < entries[2]["seq"]


def test_operation_defaults_to_empty(db):
    db.log("Ready")
    db.flush()
    [entry] = db.session_entries()
    assert entry["tag"] == "info"
    assert entry["operation"] == ""


def test_filter_by_tag_and_limit(db):
    for i in range(5):
        db.log(f"ok {i}", "ok")
    db.log("boom", "err")
    db.flush()

    assert messages(db.session_entries(tag="err")) == ["boom"]
    # newest entries, returned oldest first
    assert messages(db.session_entries(tag="ok", limit=2)) == ["ok 3", "ok 4"]
    assert len(db.session_entries()) == 6


def test_entries_limited_to_own_session(tmp_path):
    first = DBLogger(str(tmp_path))
    first.log("from first", "info")
    first.close()

    second = DBLogger(str(tmp_path))
    try:
        second.log("from second", "info")
        second.flush()
        assert messages(second.session_entries()) == ["from second"]
        assert messages(first.session_entries()) == ["from first"]
    finally:
        second.close()


def test_many_lines_written_in_batches(db):
    for i in range(120):
        db.log(f"line {i}", "ok", "process")
    db.flush()

    entries = db.session_entries(limit=1000)
    assert len(entries) == 120
    assert entries[0]["message"] == "line 0"
    assert entries[-1]["message"] == "line 119"
    assert db.dropped == 0


# --- Tests for tag_counts ---


def test_tag_counts(db):
    for tag in ["ok", "ok", "err", "info", "ok"]:
        db.log("x", tag)
    db.flush()
    assert db.tag_counts() == {"ok": 3, "err": 1, "info": 1}


def test_tag_counts_empty_session(db):
    assert db.tag_counts() == {}


# --- Tests for session_row / close ---


def test_session_recorded(db):
    row = db.session_row()
    assert row["id"] == db.session_id
    assert row["label"] == "test.ini"
    assert row["started_at"]
    assert row["ended_at"] is None
    assert (row["actions"], row["errors"]) == (0, 0)


def test_close_stamps_totals(tmp_path):
    logger = DBLogger(str(tmp_path))
    logger.log("Encoded 3 chars", "ok", "process")
    logger.close(actions=4, errors=1)

    row = logger.session_row()
    assert row["ended_at"] is not None
    assert (row["actions"], row["errors"]) == (4, 1)
    # queued lines are written before the writer stops
    assert messages(logger.session_entries()) == ["Encoded 3 chars"]


def test_close_is_idempotent(tmp_path):
    logger = DBLogger(str(tmp_path))
    logger.close(actions=2, errors=0)
    logger.close()
    assert logger.session_row()["actions"] == 2


def test_log_after_close_is_ignored(tmp_path):
    logger = DBLogger(str(tmp_path))
    logger.log("before", "info")
    logger.close()
    logger.log("after", "info")
    logger.flush()
    assert messages(logger.session_entries()) == ["before"]


# --- Tests for retention ---


def test_purges_old_entries(tmp_path):
    first = DBLogger(str(tmp_path))
    first.log("recent", "info")
    first.close()

    old = (datetime.now() - timedelta(days=RETAIN_DAYS + 1)).isoformat(timespec="seconds")
    conn = sqlite3.connect(first.db_path)
    with conn:
        conn.execute(
            "INSERT INTO sessions(id, label, started_at) VALUES(?,?,?)",
            ("oldsess", "", old),
        )
        conn.execute(
            "INSERT INTO entries(session, logged_at, tag, operation, message)"
            " VALUES(?,?,?,?,?)",
            ("oldsess", old, "info", "", "ancient"),
        )
    conn.close()

    second = DBLogger(str(tmp_path))
    second.close()

    conn = sqlite3.connect(first.db_path)
    try:
        remaining = [r[0] for r in conn.execute("SELECT message FROM entries")]
        sessions = [r[0] for r in conn.execute("SELECT id FROM sessions")]
    finally:
        conn.close()
    assert remaining == ["recent"]
    assert "oldsess" not in sessions
    assert first.session_id in sessions
