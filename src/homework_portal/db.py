"""Database initialization, connection and transaction management."""
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

DEFAULT_DB_PATH = str(Path.home() / ".homework_portal" / "portal.db")

SCHEMA = """
CREATE TABLE IF NOT EXISTS parents (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    created_at TEXT
);

CREATE TABLE IF NOT EXISTS children (
    id TEXT PRIMARY KEY,
    parent_id TEXT NOT NULL REFERENCES parents(id) ON DELETE CASCADE,
    name TEXT NOT NULL,
    grade_level INTEGER,
    created_at TEXT
);

CREATE TABLE IF NOT EXISTS child_coins (
    child_id TEXT PRIMARY KEY REFERENCES children(id) ON DELETE CASCADE,
    balance INTEGER NOT NULL DEFAULT 0 CHECK (balance >= 0),
    total_earned INTEGER NOT NULL DEFAULT 0,
    current_streak INTEGER NOT NULL DEFAULT 0
);

CREATE TABLE IF NOT EXISTS packages (
    id TEXT PRIMARY KEY,
    parent_id TEXT REFERENCES parents(id) ON DELETE CASCADE,
    name TEXT NOT NULL,
    assignment_type TEXT NOT NULL CHECK (assignment_type IN ('math', 'reading')) DEFAULT 'math',
    grade_level INTEGER,
    problem_count INTEGER NOT NULL DEFAULT 0,
    story_text TEXT,
    is_active INTEGER DEFAULT 1,
    created_at TEXT
);

CREATE TABLE IF NOT EXISTS package_problems (
    id TEXT PRIMARY KEY,
    package_id TEXT NOT NULL REFERENCES packages(id) ON DELETE CASCADE,
    problem_number INTEGER NOT NULL,
    question_text TEXT NOT NULL,
    correct_answer TEXT NOT NULL,
    answer_type TEXT CHECK (answer_type IN ('number', 'text', 'multiple_choice')) DEFAULT 'number',
    options TEXT,
    explanation TEXT,
    hint TEXT,
    hint_cost INTEGER,
    difficulty TEXT DEFAULT 'medium',
    UNIQUE(package_id, problem_number)
);

CREATE TABLE IF NOT EXISTS assignments (
    id TEXT PRIMARY KEY,
    parent_id TEXT NOT NULL REFERENCES parents(id) ON DELETE CASCADE,
    child_id TEXT NOT NULL REFERENCES children(id) ON DELETE CASCADE,
    assignment_type TEXT NOT NULL CHECK (assignment_type IN ('math', 'reading')),
    title TEXT NOT NULL,
    grade_level INTEGER,
    status TEXT NOT NULL CHECK (status IN ('pending', 'in_progress', 'completed')) DEFAULT 'pending',
    package_id TEXT REFERENCES packages(id),
    hints_allowed INTEGER NOT NULL DEFAULT 1,
    display_order INTEGER,
    created_at TEXT,
    completed_at TEXT,
    deleted_at TEXT
);

CREATE TABLE IF NOT EXISTS assignment_answers (
    id TEXT PRIMARY KEY,
    assignment_id TEXT NOT NULL REFERENCES assignments(id) ON DELETE CASCADE,
    problem_id TEXT NOT NULL REFERENCES package_problems(id),
    child_answer TEXT,
    is_correct INTEGER,
    attempts_count INTEGER NOT NULL DEFAULT 0,
    hint_purchased INTEGER NOT NULL DEFAULT 0,
    coins_spent_on_hint INTEGER NOT NULL DEFAULT 0,
    scratch_pad_image TEXT,
    answered_at TEXT,
    UNIQUE(assignment_id, problem_id)
);

CREATE TABLE IF NOT EXISTS math_problems (
    id TEXT PRIMARY KEY,
    assignment_id TEXT NOT NULL REFERENCES assignments(id) ON DELETE CASCADE,
    problem_number INTEGER NOT NULL,
    question_text TEXT NOT NULL,
    correct_answer TEXT NOT NULL,
    answer_type TEXT CHECK (answer_type IN ('number', 'text', 'multiple_choice')) DEFAULT 'number',
    options TEXT,
    explanation TEXT,
    hint TEXT,
    hint_cost INTEGER,
    difficulty TEXT DEFAULT 'medium',
    child_answer TEXT,
    is_correct INTEGER,
    attempts_count INTEGER NOT NULL DEFAULT 0,
    hint_purchased INTEGER NOT NULL DEFAULT 0,
    coins_spent_on_hint INTEGER NOT NULL DEFAULT 0,
    scratch_pad_image TEXT,
    answered_at TEXT,
    UNIQUE(assignment_id, problem_number)
);

CREATE TABLE IF NOT EXISTS reading_questions (
    id TEXT PRIMARY KEY,
    assignment_id TEXT NOT NULL REFERENCES assignments(id) ON DELETE CASCADE,
    question_number INTEGER NOT NULL,
    question_text TEXT NOT NULL,
    correct_answer TEXT NOT NULL,
    options TEXT NOT NULL,
    explanation TEXT,
    difficulty TEXT DEFAULT 'medium',
    child_answer TEXT,
    is_correct INTEGER,
    attempts_count INTEGER NOT NULL DEFAULT 0,
    answered_at TEXT,
    UNIQUE(assignment_id, question_number)
);
"""


def get_connection(db_path: str = DEFAULT_DB_PATH) -> sqlite3.Connection:
    """Return a SQLite connection with row factory and foreign keys enabled."""
    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


def init_db(db_path: str = DEFAULT_DB_PATH) -> None:
    """Initialize the database, creating all tables if they don't exist."""
    Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    conn = get_connection(db_path)
    conn.executescript(SCHEMA)
    conn.commit()
    conn.close()


@contextmanager
def transaction(db_path: str = DEFAULT_DB_PATH) -> Iterator[sqlite3.Connection]:
    """Yield a connection holding the database write lock.

    Everything executed inside the block commits together when it exits
    normally and is rolled back if it raises.
    """
    conn = get_connection(db_path)
    conn.isolation_level = None
    try:
        conn.execute("BEGIN IMMEDIATE")
        try:
            yield conn
        except BaseException:
            conn.execute("ROLLBACK")
            raise
        conn.execute("COMMIT")
    finally:
        conn.close()
