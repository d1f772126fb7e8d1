"""Assignment completion detection and status transitions."""
import sqlite3
from datetime import datetime

from loguru import logger

from homework_portal.models import COMPLETED, IN_PROGRESS, PENDING, Assignment


def count_answered(conn: sqlite3.Connection, assignment: Assignment) -> tuple[int, int]:
    """Return (answered, total) problem counts for an assignment.

    A problem counts as answered once it has a non-null submitted answer;
    hint-only placeholder rows do not count.
    """
    if assignment.is_package_based:
        total = conn.execute(
            "SELECT COUNT(*) FROM package_problems WHERE package_id = ?", (assignment.package_id,)
        ).fetchone()[0]
        answered = conn.execute(
            """SELECT COUNT(*) FROM assignment_answers aa
            JOIN package_problems pp ON pp.id = aa.problem_id AND pp.package_id = ?
            WHERE aa.assignment_id = ? AND aa.child_answer IS NOT NULL""",
            (assignment.package_id, assignment.id),
        ).fetchone()[0]
        return answered, total

    table = "reading_questions" if assignment.is_reading else "math_problems"
    row = conn.execute(
        f"""SELECT COUNT(*) AS total, COUNT(child_answer) AS answered
        FROM {table} WHERE assignment_id = ?""",
        (assignment.id,),
    ).fetchone()
    return row["answered"], row["total"]


def is_assignment_complete(conn: sqlite3.Connection, assignment: Assignment) -> bool:
    answered, total = count_answered(conn, assignment)
    return total > 0 and answered == total


def mark_in_progress(conn: sqlite3.Connection, assignment: Assignment) -> bool:
    """Move a pending assignment to in_progress. Returns True if it moved."""
    cursor = conn.execute(
        "UPDATE assignments SET status = ? WHERE id = ? AND status = ?",
        (IN_PROGRESS, assignment.id, PENDING),
    )
    if cursor.rowcount:
        assignment.status = IN_PROGRESS
    return cursor.rowcount == 1


def mark_completed(conn: sqlite3.Connection, assignment: Assignment) -> bool:
    """Complete the assignment and stamp completed_at, once. Returns True if it moved."""
    completed_at = datetime.now().isoformat()
    cursor = conn.execute(
        "UPDATE assignments SET status = ?, completed_at = ? WHERE id = ? AND status != ?",
        (COMPLETED, completed_at, assignment.id, COMPLETED),
    )
    if cursor.rowcount:
        assignment.status = COMPLETED
        assignment.completed_at = completed_at
        logger.info(f"Assignment {assignment.id} completed by child {assignment.child_id}")
    return cursor.rowcount == 1


def refresh_completion(conn: sqlite3.Connection, assignment: Assignment) -> bool:
    """Complete the assignment if every problem is answered.

    Safe to call repeatedly; returns whether the assignment is complete.
    """
    if not is_assignment_complete(conn, assignment):
        return False
    mark_completed(conn, assignment)
    return True
