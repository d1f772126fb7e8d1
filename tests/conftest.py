import pytest

from homework_portal.assignments import create_assignment, create_child, create_package, create_parent
from homework_portal.config import Settings
from homework_portal.db import get_connection, init_db

MATH_PROBLEMS = [
    {
        "question_text": "2 + 2 = ?",
        "correct_answer": "4",
        "answer_type": "number",
        "explanation": "Two plus two is four.",
        "hint": "Count on your fingers.",
    },
    {
        "question_text": "Half of 25?",
        "correct_answer": "12,5",
        "answer_type": "number",
        "hint": "Split 24 first, then the last one.",
    },
]

READING_QUESTIONS = [
    {
        "question_text": "Who found the key?",
        "correct_answer": "A",
        "options": ["A: Mia", "B: Leo", "C: Sam"],
        "explanation": "Mia found it under the mat.",
    },
    {
        "question_text": "Where was the door?",
        "correct_answer": "B",
        "options": ["A: In the attic", "B: In the garden"],
    },
]


@pytest.fixture
def tmp_db(tmp_path):
    """Provide a temporary SQLite database path for tests."""
    db_path = str(tmp_path / "test_portal.db")
    return db_path


@pytest.fixture
def settings(tmp_db, tmp_path):
    return Settings(_env_file=None, database_path=tmp_db, scratch_images_dir=str(tmp_path / "scratch"))


@pytest.fixture
def family(tmp_db):
    """An initialized database with one parent and one child."""
    init_db(tmp_db)
    parent_id = create_parent(tmp_db, "Parent")
    child_id = create_child(tmp_db, parent_id, "Kid", grade_level=3)
    return {"db": tmp_db, "parent_id": parent_id, "child_id": child_id}


@pytest.fixture
def make_assignment(family):
    """Factory for assignments in any of the three storage shapes."""
    def _make(kind="math", problems=None, package=False, hints_allowed=True):
        db = family["db"]
        if problems is None:
            problems = READING_QUESTIONS if kind == "reading" else MATH_PROBLEMS
        package_id = None
        if package:
            package_id = create_package(db, family["parent_id"], "Package", problems, kind=kind)
        return create_assignment(
            db, family["parent_id"], family["child_id"], kind, "Homework",
            problems=None if package else problems,
            package_id=package_id,
            hints_allowed=hints_allowed,
        )
    return _make


@pytest.fixture
def set_balance(family):
    def _set(amount, streak=None):
        conn = get_connection(family["db"])
        conn.execute("UPDATE child_coins SET balance = ? WHERE child_id = ?", (amount, family["child_id"]))
        if streak is not None:
            conn.execute("UPDATE child_coins SET current_streak = ? WHERE child_id = ?", (streak, family["child_id"]))
        conn.commit()
        conn.close()
    return _set
