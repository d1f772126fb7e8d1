"""Tests for database initialization, connections and transactions."""
import sqlite3

import pytest

from homework_portal.db import get_connection, init_db, transaction


def test_init_db_creates_tables(tmp_db):
    init_db(tmp_db)
    conn = get_connection(tmp_db)
    cursor = conn.execute(
        "SELECT name FROM sqlite_master WHERE type='table' ORDER BY name"
    )
    tables = {row[0] for row in cursor.fetchall()}
    expected = {
        "parents", "children", "child_coins", "packages", "package_problems",
        "assignments", "assignment_answers", "math_problems", "reading_questions",
    }
    assert expected.issubset(tables)
    conn.close()


def test_init_db_is_idempotent(tmp_db):
    init_db(tmp_db)
    init_db(tmp_db)  # should not raise
    conn = get_connection(tmp_db)
    cursor = conn.execute("SELECT name FROM sqlite_master WHERE type='table'")
    assert len(cursor.fetchall()) > 0
    conn.close()


def test_get_connection_returns_row_factory(tmp_db):
    init_db(tmp_db)
    conn = get_connection(tmp_db)
    conn.execute("INSERT INTO parents (id, name) VALUES ('p1', 'Pat')")
    row = conn.execute("SELECT id, name FROM parents WHERE id='p1'").fetchone()
    assert row["name"] == "Pat"
    conn.close()


def test_transaction_commits(tmp_db):
    init_db(tmp_db)
    with transaction(tmp_db) as conn:
        conn.execute("INSERT INTO parents (id, name) VALUES ('p1', 'Pat')")
    conn = get_connection(tmp_db)
    assert conn.execute("SELECT COUNT(*) FROM parents").fetchone()[0] == 1
    conn.close()


def test_transaction_rolls_back_on_error(tmp_db):
    init_db(tmp_db)
    with pytest.raises(RuntimeError):
        with transaction(tmp_db) as conn:
            conn.execute("INSERT INTO parents (id, name) VALUES ('p1', 'Pat')")
            raise RuntimeError("boom")
    conn = get_connection(tmp_db)
    assert conn.execute("SELECT COUNT(*) FROM parents").fetchone()[0] == 0
    conn.close()


def test_balance_cannot_go_negative(tmp_db):
    init_db(tmp_db)
    conn = get_connection(tmp_db)
    conn.execute("INSERT INTO parents (id, name) VALUES ('p1', 'Pat')")
    conn.execute("INSERT INTO children (id, parent_id, name) VALUES ('c1', 'p1', 'Kid')")
    with pytest.raises(sqlite3.IntegrityError):
        conn.execute("INSERT INTO child_coins (child_id, balance) VALUES ('c1', -1)")
    conn.close()
