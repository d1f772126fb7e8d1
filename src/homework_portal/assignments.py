"""Families, packages and assignments: creation, detail views and listing."""
import json
import uuid
from datetime import datetime
from typing import Optional

from homework_portal.answers import normalize_choice_problem
from homework_portal.attempts import load_assignment, load_attempts, load_problems
from homework_portal.cache import AssignmentsCache, list_cache_key
from homework_portal.coins import ensure_account
from homework_portal.completion import is_assignment_complete, mark_completed
from homework_portal.config import get_settings
from homework_portal.db import get_connection, transaction
from homework_portal.errors import NotFound
from homework_portal.models import (
    COMPLETED, MATH, MULTIPLE_CHOICE, NUMBER, PENDING, READING, AttemptRecord,
)
from homework_portal.rewards import max_attempts_for


def _now() -> str:
    return datetime.now().isoformat()


def create_parent(db_path: str, name: str) -> str:
    parent_id = str(uuid.uuid4())
    conn = get_connection(db_path)
    conn.execute(
        "INSERT INTO parents (id, name, created_at) VALUES (?, ?, ?)", (parent_id, name, _now())
    )
    conn.commit()
    conn.close()
    return parent_id


def create_child(db_path: str, parent_id: str, name: str, grade_level: Optional[int] = None) -> str:
    """Add a child under a parent, with an empty coin wallet."""
    child_id = str(uuid.uuid4())
    with transaction(db_path) as conn:
        if not conn.execute("SELECT 1 FROM parents WHERE id = ?", (parent_id,)).fetchone():
            raise NotFound("Parent not found", parent_id=parent_id)
        conn.execute(
            "INSERT INTO children (id, parent_id, name, grade_level, created_at) VALUES (?, ?, ?, ?, ?)",
            (child_id, parent_id, name, grade_level, _now()),
        )
        ensure_account(conn, child_id)
    return child_id


def list_children(db_path: str, parent_id: Optional[str] = None) -> list[dict]:
    conn = get_connection(db_path)
    if parent_id:
        rows = conn.execute(
            "SELECT * FROM children WHERE parent_id = ? ORDER BY created_at", (parent_id,)
        ).fetchall()
    else:
        rows = conn.execute("SELECT * FROM children ORDER BY created_at").fetchall()
    conn.close()
    return [dict(row) for row in rows]


def _prepare_problem(problem: dict, kind: str) -> dict:
    """Fill defaults and bring multiple-choice answers into letter form."""
    default_type = MULTIPLE_CHOICE if kind == READING else NUMBER
    answer_type = problem.get("answer_type") or default_type
    correct_answer = str(problem["correct_answer"])
    options = problem.get("options")
    if answer_type == MULTIPLE_CHOICE:
        correct_answer, options = normalize_choice_problem(
            correct_answer, options, problem.get("question_text")
        )
    return {
        "question_text": problem["question_text"],
        "correct_answer": correct_answer,
        "answer_type": answer_type,
        "options": json.dumps(options) if options else None,
        "explanation": problem.get("explanation"),
        "hint": problem.get("hint"),
        "hint_cost": problem.get("hint_cost") or get_settings().default_hint_cost,
        "difficulty": problem.get("difficulty", "medium"),
    }


def create_package(
    db_path: str,
    parent_id: Optional[str],
    name: str,
    problems: list[dict],
    kind: str = MATH,
    grade_level: Optional[int] = None,
    story_text: Optional[str] = None,
) -> str:
    """Create a reusable problem package. Returns the package id."""
    package_id = str(uuid.uuid4())
    with transaction(db_path) as conn:
        conn.execute(
            """INSERT INTO packages
            (id, parent_id, name, assignment_type, grade_level, problem_count, story_text, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
            (package_id, parent_id, name, kind, grade_level, len(problems), story_text, _now()),
        )
        for number, problem in enumerate(problems, 1):
            p = _prepare_problem(problem, kind)
            conn.execute(
                """INSERT INTO package_problems
                (id, package_id, problem_number, question_text, correct_answer, answer_type,
                 options, explanation, hint, hint_cost, difficulty)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                (
                    str(uuid.uuid4()), package_id, number, p["question_text"], p["correct_answer"],
                    p["answer_type"], p["options"], p["explanation"], p["hint"], p["hint_cost"],
                    p["difficulty"],
                ),
            )
    return package_id


def create_assignment(
    db_path: str,
    parent_id: str,
    child_id: str,
    kind: str,
    title: str,
    problems: Optional[list[dict]] = None,
    package_id: Optional[str] = None,
    hints_allowed: bool = True,
    grade_level: Optional[int] = None,
    cache: Optional[AssignmentsCache] = None,
) -> str:
    """Give a child an assignment, either from a package or with its own problems."""
    if kind not in (MATH, READING):
        raise ValueError("kind must be math or reading")
    assignment_id = str(uuid.uuid4())
    with transaction(db_path) as conn:
        child = conn.execute(
            "SELECT id, grade_level FROM children WHERE id = ? AND parent_id = ?", (child_id, parent_id)
        ).fetchone()
        if child is None:
            raise NotFound("Child not found", child_id=child_id)
        if package_id and not conn.execute("SELECT 1 FROM packages WHERE id = ?", (package_id,)).fetchone():
            raise NotFound("Package not found", package_id=package_id)

        conn.execute(
            """INSERT INTO assignments
            (id, parent_id, child_id, assignment_type, title, grade_level, status, package_id,
             hints_allowed, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                assignment_id, parent_id, child_id, kind, title, grade_level or child["grade_level"],
                PENDING, package_id, int(hints_allowed), _now(),
            ),
        )
        if not package_id:
            _insert_legacy_problems(conn, assignment_id, kind, problems or [])

    if cache is not None:
        cache.invalidate(parent_id, child_id)
    return assignment_id


def _insert_legacy_problems(conn, assignment_id: str, kind: str, problems: list[dict]) -> None:
    for number, problem in enumerate(problems, 1):
        p = _prepare_problem(problem, kind)
        if kind == MATH:
            conn.execute(
                """INSERT INTO math_problems
                (id, assignment_id, problem_number, question_text, correct_answer, answer_type,
                 options, explanation, hint, hint_cost, difficulty)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                (
                    str(uuid.uuid4()), assignment_id, number, p["question_text"], p["correct_answer"],
                    p["answer_type"], p["options"], p["explanation"], p["hint"], p["hint_cost"],
                    p["difficulty"],
                ),
            )
        else:
            conn.execute(
                """INSERT INTO reading_questions
                (id, assignment_id, question_number, question_text, correct_answer, options,
                 explanation, difficulty)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
                (
                    str(uuid.uuid4()), assignment_id, number, p["question_text"], p["correct_answer"],
                    p["options"] or "[]", p["explanation"], p["difficulty"],
                ),
            )


def delete_assignment(db_path: str, parent_id: str, assignment_id: str,
                      cache: Optional[AssignmentsCache] = None) -> None:
    """Soft delete: the row stays for history but no longer accepts answers."""
    conn = get_connection(db_path)
    row = conn.execute(
        "SELECT child_id FROM assignments WHERE id = ? AND parent_id = ? AND deleted_at IS NULL",
        (assignment_id, parent_id),
    ).fetchone()
    if row is None:
        conn.close()
        raise NotFound("Assignment not found", assignment_id=assignment_id)
    conn.execute("UPDATE assignments SET deleted_at = ? WHERE id = ?", (_now(), assignment_id))
    conn.commit()
    conn.close()
    if cache is not None:
        cache.invalidate(parent_id, row["child_id"], assignment_id)


def get_assignment(
    db_path: str,
    assignment_id: str,
    child_id: Optional[str] = None,
    parent_id: Optional[str] = None,
) -> dict:
    """Assignment with its questions and each question's attempt state.

    Correct answers are only shown to the child once a question is finished.
    An assignment whose questions are all answered but whose status lagged
    behind is completed here.
    """
    settings = get_settings()
    with transaction(db_path) as conn:
        assignment = load_assignment(conn, assignment_id)
        if (
            assignment is None
            or assignment.deleted_at
            or (child_id and assignment.child_id != child_id)
            or (parent_id and assignment.parent_id != parent_id)
        ):
            raise NotFound("Assignment not found", assignment_id=assignment_id)

        if assignment.status != COMPLETED and is_assignment_complete(conn, assignment):
            mark_completed(conn, assignment)

        problems = load_problems(conn, assignment)
        records = load_attempts(conn, assignment)
        story_text = None
        if assignment.package_id:
            row = conn.execute(
                "SELECT story_text FROM packages WHERE id = ?", (assignment.package_id,)
            ).fetchone()
            story_text = row["story_text"] if row else None

    questions = []
    for problem in problems:
        record = records.get(problem.id) or AttemptRecord()
        max_attempts = max_attempts_for(problem.content_kind, settings.max_attempts)
        state = record.state(max_attempts)
        reveal = state.is_terminal or child_id is None
        questions.append({
            "id": problem.id,
            "number": problem.number,
            "question_text": problem.question_text,
            "answer_type": problem.answer_type,
            "options": problem.options,
            "correct_answer": problem.correct_answer if reveal else None,
            "explanation": problem.explanation if reveal else None,
            "child_answer": record.child_answer,
            "is_correct": record.is_correct,
            "attempts_count": record.attempts_count,
            "max_attempts": max_attempts,
            "hint_purchased": record.hint_purchased,
            "hint": problem.hint if record.hint_purchased else None,
            "scratch_pad_image": record.scratch_pad_image,
            "state": state.value,
        })

    return {
        "id": assignment.id,
        "parent_id": assignment.parent_id,
        "child_id": assignment.child_id,
        "assignment_type": assignment.assignment_type,
        "title": assignment.title,
        "status": assignment.status,
        "package_id": assignment.package_id,
        "hints_allowed": assignment.hints_allowed,
        "completed_at": assignment.completed_at,
        "story_text": story_text,
        "questions": questions,
    }


_LIST_QUERY = """
    SELECT a.*, c.name AS child_name,
        CASE
            WHEN a.package_id IS NOT NULL THEN
                (SELECT COUNT(*) FROM assignment_answers aa WHERE aa.assignment_id = a.id AND aa.is_correct = 1)
            WHEN a.assignment_type = 'math' THEN
                (SELECT COUNT(*) FROM math_problems mp WHERE mp.assignment_id = a.id AND mp.is_correct = 1)
            ELSE
                (SELECT COUNT(*) FROM reading_questions rq WHERE rq.assignment_id = a.id AND rq.is_correct = 1)
        END AS correct_count,
        CASE
            WHEN a.package_id IS NOT NULL THEN
                (SELECT COUNT(*) FROM package_problems pp WHERE pp.package_id = a.package_id)
            WHEN a.assignment_type = 'math' THEN
                (SELECT COUNT(*) FROM math_problems mp WHERE mp.assignment_id = a.id)
            ELSE
                (SELECT COUNT(*) FROM reading_questions rq WHERE rq.assignment_id = a.id)
        END AS total_count
    FROM assignments a
    JOIN children c ON a.child_id = c.id
    WHERE a.deleted_at IS NULL
"""


def list_assignments(
    db_path: str,
    child_id: Optional[str] = None,
    parent_id: Optional[str] = None,
    status: Optional[str] = None,
    kind: Optional[str] = None,
    cache: Optional[AssignmentsCache] = None,
) -> list[dict]:
    """Assignments for a child, or for all of a parent's children, with score counts.

    Ordered by the parent's display order, newest first within the same order.
    Pass both ids to filter a parent's view down to one child.
    """
    if not child_id and not parent_id:
        raise ValueError("child_id or parent_id is required")

    if parent_id:
        cache_key = list_cache_key(parent_id, "parent", status, kind, child_id)
    else:
        cache_key = list_cache_key(child_id, "child", status, kind)
    if cache is not None:
        cached = cache.get_json(cache_key)
        if cached is not None:
            return cached

    query = _LIST_QUERY
    params: list = []
    if parent_id:
        query += " AND a.parent_id = ?"
        params.append(parent_id)
    if child_id:
        query += " AND a.child_id = ?"
        params.append(child_id)
    if status:
        query += " AND a.status = ?"
        params.append(status)
    if kind:
        query += " AND a.assignment_type = ?"
        params.append(kind)
    query += " ORDER BY COALESCE(a.display_order, 999999) ASC, a.created_at DESC"

    conn = get_connection(db_path)
    rows = conn.execute(query, params).fetchall()
    conn.close()
    assignments = [dict(row) for row in rows]

    if cache is not None:
        cache.set_json(cache_key, assignments)
    return assignments


def reorder_assignments(db_path: str, parent_id: str, assignment_ids: list[str],
                        cache: Optional[AssignmentsCache] = None) -> None:
    with transaction(db_path) as conn:
        for position, assignment_id in enumerate(assignment_ids):
            conn.execute(
                "UPDATE assignments SET display_order = ? WHERE id = ? AND parent_id = ?",
                (position, assignment_id, parent_id),
            )
        children = conn.execute(
            "SELECT DISTINCT child_id FROM assignments WHERE parent_id = ?", (parent_id,)
        ).fetchall()

    if cache is not None:
        for child in children:
            cache.invalidate(parent_id, child["child_id"])
