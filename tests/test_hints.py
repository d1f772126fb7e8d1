"""Tests for hint eligibility, pricing and purchase."""
from unittest.mock import MagicMock, patch

import pytest

from homework_portal.assignments import get_assignment
from homework_portal.coins import get_wallet
from homework_portal.errors import AlreadyTerminal, HintNotAvailable, InsufficientFunds, TransactionConflict
from homework_portal.hints import can_buy_hint, check_hint_eligibility, hint_price, purchase_hint
from homework_portal.models import Assignment, AttemptRecord, LegacyMathProblem
from homework_portal.submission import submit_answer


def _question(db, aid, index=0):
    return get_assignment(db, aid)["questions"][index]


def _math_problem(hint="Think"):
    return LegacyMathProblem(id="m1", number=1, question_text="1+1", correct_answer="2", hint=hint)


def _assignment(hints_allowed=True):
    return Assignment(id="a", parent_id="p", child_id="c", assignment_type="math", title="t",
                      hints_allowed=hints_allowed)


def test_hint_needs_a_prior_attempt():
    with pytest.raises(HintNotAvailable) as exc:
        check_hint_eligibility(None, _assignment(), _math_problem(), 3)
    assert "attempt" in exc.value.reason
    check_hint_eligibility(AttemptRecord(attempts_count=1, is_correct=False), _assignment(), _math_problem(), 3)


def test_hint_refusals():
    tried = AttemptRecord(attempts_count=1, is_correct=False)
    with pytest.raises(HintNotAvailable):
        check_hint_eligibility(tried, _assignment(hints_allowed=False), _math_problem(), 3)
    with pytest.raises(HintNotAvailable):
        check_hint_eligibility(tried, _assignment(), _math_problem(hint=None), 3)
    with pytest.raises(AlreadyTerminal):
        check_hint_eligibility(AttemptRecord(attempts_count=1, hint_purchased=True), _assignment(), _math_problem(), 3)
    with pytest.raises(AlreadyTerminal):
        check_hint_eligibility(AttemptRecord(attempts_count=1, is_correct=True), _assignment(), _math_problem(), 3)
    with pytest.raises(AlreadyTerminal):
        check_hint_eligibility(AttemptRecord(attempts_count=3, is_correct=False), _assignment(), _math_problem(), 3)
    assert not can_buy_hint(None, _assignment(), _math_problem(), 3)


def test_hint_price_follows_next_reward(settings):
    assert hint_price(AttemptRecord(attempts_count=1), settings) == 3
    assert hint_price(AttemptRecord(attempts_count=2), settings) == 1
    assert hint_price(None, settings) == 5


def test_purchase_after_wrong_attempt(family, make_assignment, set_balance, settings):
    aid = make_assignment()
    db, child = family["db"], family["child_id"]
    pid = _question(db, aid)["id"]
    first = submit_answer(db, child, aid, pid, "5", settings=settings)
    assert first.can_buy_hint
    assert first.hint_cost == 3

    set_balance(10)
    purchase = purchase_hint(db, child, aid, pid, settings=settings)
    assert purchase.hint == "Count on your fingers."
    assert purchase.coins_spent == 3
    assert purchase.new_balance == 7
    assert get_wallet(db, child).balance == 7

    question = _question(db, aid)
    assert question["hint_purchased"]
    assert question["hint"] == "Count on your fingers."

    with pytest.raises(AlreadyTerminal):
        purchase_hint(db, child, aid, pid, settings=settings)
    assert get_wallet(db, child).balance == 7


def test_purchase_before_any_attempt_is_refused(family, make_assignment, set_balance, settings):
    aid = make_assignment(package=True)
    set_balance(50)
    pid = _question(family["db"], aid)["id"]
    with pytest.raises(HintNotAvailable):
        purchase_hint(family["db"], family["child_id"], aid, pid, settings=settings)
    assert get_wallet(family["db"], family["child_id"]).balance == 50


def test_insufficient_funds_changes_nothing(family, make_assignment, set_balance, settings):
    aid = make_assignment(package=True)
    db, child = family["db"], family["child_id"]
    pid = _question(db, aid)["id"]
    submit_answer(db, child, aid, pid, "5", settings=settings)
    set_balance(2)
    with pytest.raises(InsufficientFunds):
        purchase_hint(db, child, aid, pid, settings=settings)
    assert get_wallet(db, child).balance == 2
    assert not _question(db, aid)["hint_purchased"]


def test_reading_questions_have_no_hints(family, make_assignment, set_balance, settings):
    aid = make_assignment(kind="reading")
    set_balance(50)
    pid = _question(family["db"], aid)["id"]
    with pytest.raises(HintNotAvailable):
        purchase_hint(family["db"], family["child_id"], aid, pid, settings=settings)


def test_hints_disabled_for_assignment(family, make_assignment, set_balance, settings):
    aid = make_assignment(hints_allowed=False)
    db, child = family["db"], family["child_id"]
    pid = _question(db, aid)["id"]
    result = submit_answer(db, child, aid, pid, "5", settings=settings)
    assert not result.can_buy_hint
    assert result.hint_cost == 0
    set_balance(50)
    with pytest.raises(HintNotAvailable):
        purchase_hint(db, child, aid, pid, settings=settings)


def test_purchase_invalidates_cache(family, make_assignment, set_balance, settings):
    aid = make_assignment()
    db, child = family["db"], family["child_id"]
    pid = _question(db, aid)["id"]
    submit_answer(db, child, aid, pid, "5", settings=settings)
    set_balance(10)
    cache = MagicMock()
    purchase_hint(db, child, aid, pid, cache=cache, settings=settings)
    cache.invalidate.assert_called_once_with(family["parent_id"], child, aid)


def test_unconfirmed_purchase_rolls_back_debit(family, make_assignment, set_balance, settings):
    aid = make_assignment()
    db, child = family["db"], family["child_id"]
    pid = _question(db, aid)["id"]
    submit_answer(db, child, aid, pid, "5", settings=settings)
    set_balance(10)
    cache = MagicMock()
    with patch("homework_portal.hints.save_attempt"):
        with pytest.raises(TransactionConflict):
            purchase_hint(db, child, aid, pid, cache=cache, settings=settings)
    assert get_wallet(db, child).balance == 10
    assert not _question(db, aid)["hint_purchased"]
    cache.invalidate.assert_not_called()
