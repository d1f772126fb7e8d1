"""Attempt state storage.

Package problems keep each learner's attempts in ``assignment_answers``,
keyed by (assignment, problem). Legacy math problems and reading questions
keep them inline on their own row. The functions here load problems as an
explicit variant and read or write an ``AttemptRecord`` the same way for all
three shapes.

Every write is a compare-and-set against the record the caller loaded: the
UPDATE only matches when ``attempts_count`` and ``hint_purchased`` still hold
their previous values, and a write that touches anything other than exactly
one row raises ``TransactionConflict``.
"""
import sqlite3
import uuid
from typing import Optional

from homework_portal.errors import NotFound, TransactionConflict
from homework_portal.models import (
    DEFAULT_HINT_COST, LEGACY_MATH, LEGACY_READING, PACKAGE,
    Assignment, AttemptRecord, LegacyMathProblem, LegacyReadingQuestion,
    PackageProblem, Problem, parse_options,
)


def load_assignment(conn: sqlite3.Connection, assignment_id: str) -> Optional[Assignment]:
    row = conn.execute("SELECT * FROM assignments WHERE id = ?", (assignment_id,)).fetchone()
    return Assignment.from_row(row) if row else None


def load_owned_assignment(conn: sqlite3.Connection, assignment_id: str, child_id: str) -> Assignment:
    """Load an assignment the child may answer; deleted ones count as missing."""
    assignment = load_assignment(conn, assignment_id)
    if assignment is None or assignment.child_id != child_id or assignment.deleted_at:
        raise NotFound("Assignment not found", assignment_id=assignment_id)
    return assignment


def _common_fields(row) -> dict:
    return {
        "id": row["id"],
        "question_text": row["question_text"],
        "correct_answer": row["correct_answer"],
        "options": parse_options(row["options"]),
        "explanation": row["explanation"],
    }


def _package_problem(row, assignment: Assignment) -> PackageProblem:
    return PackageProblem(
        number=row["problem_number"],
        answer_type=row["answer_type"],
        hint=row["hint"],
        hint_cost=row["hint_cost"] or DEFAULT_HINT_COST,
        content_kind=assignment.assignment_type,
        package_id=row["package_id"],
        **_common_fields(row),
    )


def _legacy_math_problem(row, assignment: Assignment) -> LegacyMathProblem:
    return LegacyMathProblem(
        number=row["problem_number"],
        answer_type=row["answer_type"],
        hint=row["hint"],
        hint_cost=row["hint_cost"] or DEFAULT_HINT_COST,
        assignment_id=row["assignment_id"],
        **_common_fields(row),
    )


def _legacy_reading_question(row, assignment: Assignment) -> LegacyReadingQuestion:
    return LegacyReadingQuestion(
        number=row["question_number"],
        assignment_id=row["assignment_id"],
        **_common_fields(row),
    )


def problem_variant(assignment: Assignment) -> str:
    if assignment.is_package_based:
        return PACKAGE
    return LEGACY_READING if assignment.is_reading else LEGACY_MATH


# variant -> (problems query, order column, row builder); queries take the owning id
_PROBLEM_SOURCES = {
    PACKAGE: (
        "SELECT * FROM package_problems WHERE package_id = ?",
        "problem_number",
        _package_problem,
    ),
    LEGACY_MATH: (
        "SELECT * FROM math_problems WHERE assignment_id = ?",
        "problem_number",
        _legacy_math_problem,
    ),
    LEGACY_READING: (
        "SELECT * FROM reading_questions WHERE assignment_id = ?",
        "question_number",
        _legacy_reading_question,
    ),
}


def _owner_id(assignment: Assignment) -> str:
    return assignment.package_id if assignment.is_package_based else assignment.id


def load_problem(conn: sqlite3.Connection, assignment: Assignment, problem_id: str) -> Problem:
    query, _, build = _PROBLEM_SOURCES[problem_variant(assignment)]
    row = conn.execute(query + " AND id = ?", (_owner_id(assignment), problem_id)).fetchone()
    if row is None:
        raise NotFound("Problem not found", problem_id=problem_id)
    return build(row, assignment)


def load_problems(conn: sqlite3.Connection, assignment: Assignment) -> list[Problem]:
    query, order_column, build = _PROBLEM_SOURCES[problem_variant(assignment)]
    rows = conn.execute(f"{query} ORDER BY {order_column}", (_owner_id(assignment),)).fetchall()
    return [build(row, assignment) for row in rows]


def _record_from_row(row, math_columns: bool = True) -> AttemptRecord:
    return AttemptRecord(
        child_answer=row["child_answer"],
        is_correct=None if row["is_correct"] is None else bool(row["is_correct"]),
        attempts_count=row["attempts_count"] or 0,
        hint_purchased=bool(row["hint_purchased"]) if math_columns else False,
        coins_spent_on_hint=row["coins_spent_on_hint"] if math_columns else 0,
        scratch_pad_image=row["scratch_pad_image"] if math_columns else None,
        answered_at=row["answered_at"],
    )


def load_attempt(conn: sqlite3.Connection, assignment: Assignment, problem: Problem) -> Optional[AttemptRecord]:
    """The attempt state for one problem, or None if it was never touched."""
    if problem.variant == PACKAGE:
        row = conn.execute(
            "SELECT * FROM assignment_answers WHERE assignment_id = ? AND problem_id = ?",
            (assignment.id, problem.id),
        ).fetchone()
        return _record_from_row(row) if row else None

    if problem.variant == LEGACY_MATH:
        row = conn.execute(
            "SELECT * FROM math_problems WHERE id = ? AND assignment_id = ?",
            (problem.id, assignment.id),
        ).fetchone()
        if row is None or (row["child_answer"] is None and not row["hint_purchased"]):
            return None
        return _record_from_row(row)

    row = conn.execute(
        "SELECT * FROM reading_questions WHERE id = ? AND assignment_id = ?",
        (problem.id, assignment.id),
    ).fetchone()
    if row is None or row["child_answer"] is None:
        return None
    return _record_from_row(row, math_columns=False)


def load_attempts(conn: sqlite3.Connection, assignment: Assignment) -> dict[str, AttemptRecord]:
    """Attempt state for every touched problem of an assignment, by problem id."""
    if assignment.is_package_based:
        rows = conn.execute(
            "SELECT * FROM assignment_answers WHERE assignment_id = ?", (assignment.id,)
        ).fetchall()
        return {row["problem_id"]: _record_from_row(row) for row in rows}
    if assignment.is_reading:
        rows = conn.execute(
            "SELECT * FROM reading_questions WHERE assignment_id = ? AND child_answer IS NOT NULL",
            (assignment.id,),
        ).fetchall()
        return {row["id"]: _record_from_row(row, math_columns=False) for row in rows}
    rows = conn.execute(
        "SELECT * FROM math_problems WHERE assignment_id = ? AND (child_answer IS NOT NULL OR hint_purchased = 1)",
        (assignment.id,),
    ).fetchall()
    return {row["id"]: _record_from_row(row) for row in rows}


def _check_one_row(cursor: sqlite3.Cursor, problem: Problem) -> None:
    if cursor.rowcount != 1:
        raise TransactionConflict(
            "Answer was changed by another request, please try again",
            problem_id=problem.id,
            rows=cursor.rowcount,
        )


def _save_ledger_row(conn, assignment, problem, record, previous):
    if previous is None:
        try:
            cursor = conn.execute(
                """INSERT INTO assignment_answers
                (id, assignment_id, problem_id, child_answer, is_correct, attempts_count,
                 hint_purchased, coins_spent_on_hint, scratch_pad_image, answered_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                (
                    str(uuid.uuid4()), assignment.id, problem.id, record.child_answer,
                    _flag(record.is_correct), record.attempts_count, int(record.hint_purchased),
                    record.coins_spent_on_hint, record.scratch_pad_image, record.answered_at,
                ),
            )
        except sqlite3.IntegrityError as exc:
            raise TransactionConflict(
                "Answer was recorded by another request, please try again", problem_id=problem.id
            ) from exc
        _check_one_row(cursor, problem)
        return

    cursor = conn.execute(
        """UPDATE assignment_answers
        SET child_answer = ?, is_correct = ?, attempts_count = ?, hint_purchased = ?,
            coins_spent_on_hint = ?, scratch_pad_image = ?, answered_at = ?
        WHERE assignment_id = ? AND problem_id = ? AND attempts_count = ? AND hint_purchased = ?""",
        (
            record.child_answer, _flag(record.is_correct), record.attempts_count,
            int(record.hint_purchased), record.coins_spent_on_hint, record.scratch_pad_image,
            record.answered_at, assignment.id, problem.id, previous.attempts_count,
            int(previous.hint_purchased),
        ),
    )
    _check_one_row(cursor, problem)


def _save_inline_math(conn, assignment, problem, record, previous):
    previous = previous or AttemptRecord()
    cursor = conn.execute(
        """UPDATE math_problems
        SET child_answer = ?, is_correct = ?, attempts_count = ?, hint_purchased = ?,
            coins_spent_on_hint = ?, scratch_pad_image = ?, answered_at = ?
        WHERE id = ? AND assignment_id = ? AND attempts_count = ? AND hint_purchased = ?""",
        (
            record.child_answer, _flag(record.is_correct), record.attempts_count,
            int(record.hint_purchased), record.coins_spent_on_hint, record.scratch_pad_image,
            record.answered_at, problem.id, assignment.id, previous.attempts_count,
            int(previous.hint_purchased),
        ),
    )
    _check_one_row(cursor, problem)


def _save_inline_reading(conn, assignment, problem, record, previous):
    previous = previous or AttemptRecord()
    cursor = conn.execute(
        """UPDATE reading_questions
        SET child_answer = ?, is_correct = ?, attempts_count = ?, answered_at = ?
        WHERE id = ? AND assignment_id = ? AND attempts_count = ?""",
        (
            record.child_answer, _flag(record.is_correct), record.attempts_count,
            record.answered_at, problem.id, assignment.id, previous.attempts_count,
        ),
    )
    _check_one_row(cursor, problem)


def _flag(value: Optional[bool]) -> Optional[int]:
    return None if value is None else int(value)


_SAVERS = {
    PACKAGE: _save_ledger_row,
    LEGACY_MATH: _save_inline_math,
    LEGACY_READING: _save_inline_reading,
}


def save_attempt(
    conn: sqlite3.Connection,
    assignment: Assignment,
    problem: Problem,
    record: AttemptRecord,
    previous: Optional[AttemptRecord],
) -> None:
    """Write ``record`` if the stored state still equals ``previous``.

    ``previous`` is what ``load_attempt`` returned (None for a problem never
    touched). Raises TransactionConflict when the stored state moved on.
    """
    _SAVERS[problem.variant](conn, assignment, problem, record, previous)
