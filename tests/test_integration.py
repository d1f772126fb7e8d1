# tests/test_integration.py
"""End-to-end test of the core workflow."""
from homework_portal.assignments import get_assignment, list_assignments, list_children
from homework_portal.coins import get_wallet
from homework_portal.dashboard import get_child_stats
from homework_portal.db import init_db
from homework_portal.hints import purchase_hint
from homework_portal.seed import seed_all
from homework_portal.submission import submit_answer


def test_full_homework_workflow(tmp_db, settings):
    """Work through the demo assignments and verify all systems work together."""
    # Setup
    init_db(tmp_db)
    seed_all(tmp_db)
    child = list_children(tmp_db)[0]["id"]
    assignments = {a["title"]: a for a in list_assignments(tmp_db, child_id=child)}
    assert len(assignments) == 3
    assert all(a["status"] == "pending" for a in assignments.values())

    # Fractions (package based): one miss, a hint, then right
    fractions = assignments["Fractions practice"]["id"]
    questions = get_assignment(tmp_db, fractions, child_id=child)["questions"]
    assert questions[0]["correct_answer"] is None

    miss = submit_answer(tmp_db, child, fractions, questions[0]["id"], "0,2", settings=settings)
    assert miss.can_buy_hint
    right = submit_answer(tmp_db, child, fractions, questions[1]["id"], "10", settings=settings)
    assert right.coins_earned == 10
    hint = purchase_hint(tmp_db, child, fractions, questions[0]["id"], settings=settings)
    assert hint.hint == "Divide 1 by 2."
    assert hint.new_balance == 7
    second = submit_answer(tmp_db, child, fractions, questions[0]["id"], "0,5", settings=settings)
    assert second.coins_earned == 7
    assert not second.assignment_complete
    last = submit_answer(tmp_db, child, fractions, questions[2]["id"], "b", settings=settings)
    assert last.assignment_complete

    # Reading: single attempt each
    reading = assignments["The lighthouse keeper"]["id"]
    for question in get_assignment(tmp_db, reading, child_id=child)["questions"]:
        result = submit_answer(tmp_db, child, reading, question["id"], "A", settings=settings)
        assert result.question_complete

    wallet = get_wallet(tmp_db, child)
    assert wallet.balance == 10 - 3 + 7 + 10 + 10
    assert wallet.total_earned == 37
    assert wallet.current_streak == 0

    listed = {a["title"]: a for a in list_assignments(tmp_db, child_id=child)}
    assert listed["Fractions practice"]["status"] == "completed"
    assert listed["Fractions practice"]["correct_count"] == 3
    assert listed["The lighthouse keeper"]["correct_count"] == 1
    assert listed["Times tables"]["status"] == "pending"

    stats = get_child_stats(tmp_db, child)
    assert stats["assignments_completed"] == 2
    assert stats["questions_answered"] == 5
    assert stats["questions_correct"] == 4
