"""Hint eligibility, pricing and purchase."""
from dataclasses import replace
from typing import Optional

from loguru import logger

from homework_portal.attempts import load_attempt, load_owned_assignment, load_problem, save_attempt
from homework_portal.cache import AssignmentsCache
from homework_portal.coins import debit, get_account
from homework_portal.config import Settings, get_settings
from homework_portal.db import transaction
from homework_portal.errors import AlreadyTerminal, HintNotAvailable, PortalError, TransactionConflict
from homework_portal.models import Assignment, AttemptRecord, HintPurchase, Problem
from homework_portal.rewards import max_attempts_for, preview_next_reward, price_of_hint


def check_hint_eligibility(
    record: Optional[AttemptRecord],
    assignment: Assignment,
    problem: Problem,
    max_attempts: int,
) -> None:
    """Raise if a hint may not be bought for this problem right now.

    Already-bought hints and finished questions raise AlreadyTerminal; every
    other refusal raises HintNotAvailable with the reason as its message.
    """
    if not assignment.hints_allowed:
        raise HintNotAvailable("Hints are not allowed for this assignment")
    if problem.single_attempt:
        raise HintNotAvailable("Reading questions have no hints")
    if not problem.has_hint:
        raise HintNotAvailable("This question has no hint")
    record = record or AttemptRecord()
    if record.hint_purchased:
        raise AlreadyTerminal("Hint already purchased")
    if record.is_terminal(max_attempts):
        raise AlreadyTerminal("Question already completed")
    # Hints unlock mid-retry: the learner must have missed at least once
    if record.attempts_count < 1:
        raise HintNotAvailable("You must attempt the question before buying a hint")


def can_buy_hint(
    record: Optional[AttemptRecord],
    assignment: Assignment,
    problem: Problem,
    max_attempts: int,
) -> bool:
    try:
        check_hint_eligibility(record, assignment, problem, max_attempts)
    except PortalError:
        return False
    return True


def hint_price(record: Optional[AttemptRecord], settings: Settings) -> int:
    attempts = record.attempts_count if record else 0
    preview = preview_next_reward(attempts, settings.base_reward, settings.attempt_multipliers)
    return price_of_hint(preview)


def purchase_hint(
    db_path: str,
    child_id: str,
    assignment_id: str,
    problem_id: str,
    cache: Optional[AssignmentsCache] = None,
    settings: Optional[Settings] = None,
) -> HintPurchase:
    """Buy the hint for one problem.

    Eligibility check, debit and the purchased flag commit together or not
    at all. The flag is re-read before commit, so an unconfirmed write
    rolls the debit back.
    """
    settings = settings or get_settings()
    try:
        with transaction(db_path) as conn:
            assignment = load_owned_assignment(conn, assignment_id, child_id)
            problem = load_problem(conn, assignment, problem_id)
            record = load_attempt(conn, assignment, problem)
            max_attempts = max_attempts_for(problem.content_kind, settings.max_attempts)
            check_hint_eligibility(record, assignment, problem, max_attempts)

            cost = hint_price(record, settings)
            debit(conn, child_id, cost)
            current = record or AttemptRecord()
            updated = replace(
                current,
                hint_purchased=True,
                coins_spent_on_hint=current.coins_spent_on_hint + cost,
            )
            save_attempt(conn, assignment, problem, updated, record)
            _confirm_purchase(conn, assignment, problem)
            balance = get_account(conn, child_id).balance
    except PortalError as exc:
        logger.info(f"Hint purchase refused for problem {problem_id}: {exc.message}")
        raise
    except Exception:
        logger.exception(f"Hint purchase failed for assignment {assignment_id}, problem {problem_id}")
        raise

    logger.info(f"Child {child_id} bought hint for problem {problem_id} ({cost} coins)")

    if cache is not None:
        cache.invalidate(assignment.parent_id, child_id, assignment_id)
    return HintPurchase(hint=problem.hint, coins_spent=cost, new_balance=balance)


def _confirm_purchase(conn, assignment: Assignment, problem: Problem) -> None:
    record = load_attempt(conn, assignment, problem)
    if record is None or not record.hint_purchased:
        logger.error(f"Hint purchase for problem {problem.id} wrote no purchased flag")
        raise TransactionConflict("Hint purchase could not be confirmed, please try again")
