"""Answer submission: grading, retries, rewards and assignment progress.

Each problem moves UNANSWERED -> ATTEMPTED(n) -> CORRECT | EXHAUSTED; the last
two accept no further answers. Math questions allow ``max_attempts`` tries,
reading questions one. An assignment moves pending -> in_progress on its
first answer and -> completed once every problem has an answer.

One submission is one transaction. A concurrent write on the same answer
row is detected by the attempt store and retried once. Scratch images are
written to disk only after the transaction commits.
"""
from dataclasses import replace
from datetime import datetime
from typing import Optional

from loguru import logger

from homework_portal.answers import is_correct
from homework_portal.attempts import load_attempt, load_owned_assignment, load_problem, save_attempt
from homework_portal.cache import AssignmentsCache
from homework_portal.coins import credit, get_account, penalize_streak
from homework_portal.completion import mark_in_progress, refresh_completion
from homework_portal.config import Settings, get_settings
from homework_portal.db import transaction
from homework_portal.errors import AlreadyTerminal, ConfigurationInvalid, PortalError, TransactionConflict
from homework_portal.hints import can_buy_hint, hint_price
from homework_portal.models import Assignment, AttemptRecord, SubmissionResult
from homework_portal.rewards import max_attempts_for, preview_next_reward, reward_for_attempt
from homework_portal.scratch import PendingFiles, ScratchStore

SUBMIT_RETRIES = 1


def submit_answer(
    db_path: str,
    child_id: str,
    assignment_id: str,
    problem_id: str,
    answer: str,
    scratch_images: Optional[list[str]] = None,
    scratch_image: Optional[str] = None,
    cache: Optional[AssignmentsCache] = None,
    scratch_store: Optional[ScratchStore] = None,
    settings: Optional[Settings] = None,
) -> SubmissionResult:
    """Grade one answer from a child and record the outcome.

    Raises NotFound, AlreadyTerminal, ConfigurationInvalid or
    TransactionConflict; nothing is written when it raises.
    """
    settings = settings or get_settings()
    attempt = 0
    while True:
        try:
            with transaction(db_path) as conn:
                assignment, result, scratch_files = _grade(
                    conn, settings, child_id, assignment_id, problem_id, answer,
                    scratch_images, scratch_image, scratch_store,
                )
            break
        except TransactionConflict:
            if attempt >= SUBMIT_RETRIES:
                logger.warning(f"Submission for problem {problem_id} conflicted again, giving up")
                raise
            attempt += 1
            logger.warning(f"Submission for problem {problem_id} conflicted, retrying")
        except ConfigurationInvalid as exc:
            logger.error(
                f"Misconfigured question {problem_id} in assignment {assignment_id}: {exc.message}"
            )
            raise
        except PortalError:
            raise
        except Exception:
            logger.exception(f"Submit answer failed for assignment {assignment_id}, problem {problem_id}")
            raise

    if scratch_files:
        try:
            scratch_store.write_files(scratch_files)
        except OSError as exc:
            logger.error(f"Could not write scratch work for problem {problem_id}: {exc}")

    if cache is not None:
        cache.invalidate(assignment.parent_id, child_id, assignment_id)
    return result


def _grade(conn, settings, child_id, assignment_id, problem_id, answer,
           scratch_images, scratch_image, scratch_store) -> tuple[Assignment, SubmissionResult, PendingFiles]:
    assignment = load_owned_assignment(conn, assignment_id, child_id)
    problem = load_problem(conn, assignment, problem_id)
    previous = load_attempt(conn, assignment, problem)
    current = previous or AttemptRecord()
    max_attempts = max_attempts_for(problem.content_kind, settings.max_attempts)

    if current.is_terminal(max_attempts):
        raise AlreadyTerminal("Question already completed", problem_id=problem_id)

    attempt_number = current.attempts_count + 1
    correct = is_correct(problem.answer_type, answer, problem.correct_answer, problem.options)

    # Reading is single attempt, so always paid at the first-attempt rate
    reward_attempt = 1 if problem.single_attempt else attempt_number
    coins = reward_for_attempt(reward_attempt, settings.base_reward, settings.attempt_multipliers) if correct else 0

    scratch_ref, scratch_files = None, []
    if scratch_store is not None and not problem.single_attempt:
        scratch_ref, scratch_files = scratch_store.prepare_submission(
            assignment.id, problem.id, scratch_images, scratch_image
        )

    mark_in_progress(conn, assignment)
    updated = replace(
        current,
        child_answer=answer,
        is_correct=correct,
        attempts_count=attempt_number,
        scratch_pad_image=scratch_ref or current.scratch_pad_image,
        answered_at=datetime.now().isoformat(),
    )
    save_attempt(conn, assignment, problem, updated, previous)

    question_complete = updated.is_terminal(max_attempts)
    if coins > 0:
        credit(conn, child_id, coins)
    elif not correct and question_complete:
        penalize_streak(conn, child_id)

    assignment_complete = refresh_completion(conn, assignment)
    account = get_account(conn, child_id)

    can_retry = not question_complete
    potential_reward = (
        preview_next_reward(attempt_number, settings.base_reward, settings.attempt_multipliers)
        if can_retry else 0
    )
    hint_available = can_buy_hint(updated, assignment, problem, max_attempts)

    result = SubmissionResult(
        is_correct=correct,
        correct_answer=problem.correct_answer if question_complete else None,
        coins_earned=coins,
        total_coins=account.balance,
        streak=account.current_streak,
        attempt_number=attempt_number,
        can_retry=can_retry,
        max_attempts=max_attempts,
        potential_reward=potential_reward,
        can_buy_hint=hint_available,
        hint_cost=hint_price(updated, settings) if hint_available else 0,
        explanation=problem.explanation if question_complete else None,
        question_complete=question_complete,
        assignment_complete=assignment_complete,
    )
    return assignment, result, scratch_files
