"""Learner progress statistics."""
from homework_portal.coins import get_wallet
from homework_portal.db import get_connection

# Answered/correct counts across the three places answers are stored
_ANSWER_COUNTS = """
    SELECT COUNT(*) AS answered, COALESCE(SUM(is_correct), 0) AS correct FROM (
        SELECT aa.is_correct FROM assignment_answers aa
        JOIN assignments a ON a.id = aa.assignment_id
        WHERE a.child_id = ? AND a.deleted_at IS NULL AND aa.child_answer IS NOT NULL
        UNION ALL
        SELECT mp.is_correct FROM math_problems mp
        JOIN assignments a ON a.id = mp.assignment_id
        WHERE a.child_id = ? AND a.deleted_at IS NULL AND mp.child_answer IS NOT NULL
        UNION ALL
        SELECT rq.is_correct FROM reading_questions rq
        JOIN assignments a ON a.id = rq.assignment_id
        WHERE a.child_id = ? AND a.deleted_at IS NULL AND rq.child_answer IS NOT NULL
    )
"""


def get_accuracy_label(accuracy: float) -> str:
    if accuracy >= 80:
        return "GREAT"
    elif accuracy >= 60:
        return "GOOD"
    elif accuracy >= 40:
        return "KEEP PRACTICING"
    return "NEEDS HELP"


def get_accuracy_color(accuracy: float) -> str:
    if accuracy >= 80:
        return "green"
    elif accuracy >= 60:
        return "yellow"
    elif accuracy >= 40:
        return "dark_orange"
    return "red"


def get_child_stats(db_path: str, child_id: str) -> dict:
    wallet = get_wallet(db_path, child_id)
    conn = get_connection(db_path)
    assignments = conn.execute(
        """SELECT COUNT(*) AS total, SUM(CASE WHEN status = 'completed' THEN 1 ELSE 0 END) AS completed
        FROM assignments WHERE child_id = ? AND deleted_at IS NULL""",
        (child_id,),
    ).fetchone()
    answers = conn.execute(_ANSWER_COUNTS, (child_id, child_id, child_id)).fetchone()
    conn.close()
    accuracy = round(answers["correct"] / answers["answered"] * 100, 1) if answers["answered"] else 0.0
    return {
        "balance": wallet.balance,
        "total_earned": wallet.total_earned,
        "streak": wallet.current_streak,
        "assignments_total": assignments["total"],
        "assignments_completed": assignments["completed"] or 0,
        "questions_answered": answers["answered"],
        "questions_correct": answers["correct"],
        "accuracy": accuracy,
    }
