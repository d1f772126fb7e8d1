"""Data classes for the homework portal domain model."""
import json
from dataclasses import dataclass
from enum import Enum
from typing import ClassVar, Optional

MATH = "math"
READING = "reading"

PENDING = "pending"
IN_PROGRESS = "in_progress"
COMPLETED = "completed"

NUMBER = "number"
MULTIPLE_CHOICE = "multiple_choice"
TEXT = "text"

# Problem variant discriminants
PACKAGE = "package"
LEGACY_MATH = "legacy_math"
LEGACY_READING = "legacy_reading"

DEFAULT_HINT_COST = 5


class ProblemState(Enum):
    UNANSWERED = "unanswered"
    ATTEMPTED = "attempted"
    CORRECT = "correct"
    EXHAUSTED = "exhausted"

    @property
    def is_terminal(self) -> bool:
        return self in (ProblemState.CORRECT, ProblemState.EXHAUSTED)


def parse_options(raw) -> Optional[list]:
    """Decode a stored options column; anything that is not a JSON list is None."""
    if raw is None:
        return None
    if isinstance(raw, list):
        return raw
    try:
        value = json.loads(raw)
    except (TypeError, ValueError):
        return None
    return value if isinstance(value, list) else None


@dataclass
class Assignment:
    id: str
    parent_id: str
    child_id: str
    assignment_type: str
    title: str
    status: str = PENDING
    package_id: Optional[str] = None
    hints_allowed: bool = True
    display_order: Optional[int] = None
    grade_level: Optional[int] = None
    created_at: Optional[str] = None
    completed_at: Optional[str] = None
    deleted_at: Optional[str] = None

    @property
    def is_package_based(self) -> bool:
        return self.package_id is not None

    @property
    def is_reading(self) -> bool:
        return self.assignment_type == READING

    @classmethod
    def from_row(cls, row) -> "Assignment":
        return cls(
            id=row["id"],
            parent_id=row["parent_id"],
            child_id=row["child_id"],
            assignment_type=row["assignment_type"],
            title=row["title"],
            status=row["status"],
            package_id=row["package_id"],
            hints_allowed=bool(row["hints_allowed"]),
            display_order=row["display_order"],
            grade_level=row["grade_level"],
            created_at=row["created_at"],
            completed_at=row["completed_at"],
            deleted_at=row["deleted_at"],
        )


@dataclass
class Problem:
    """One gradable item, whichever table it is stored in.

    ``variant`` is the storage discriminant; ``content_kind`` drives the
    business rules (reading questions are single attempt and hint-free).
    """
    variant: ClassVar[str] = ""

    id: str
    number: int
    question_text: str
    correct_answer: str
    answer_type: str = NUMBER
    options: Optional[list] = None
    explanation: Optional[str] = None
    hint: Optional[str] = None
    hint_cost: int = DEFAULT_HINT_COST
    content_kind: str = MATH

    @property
    def single_attempt(self) -> bool:
        return self.content_kind == READING

    @property
    def has_hint(self) -> bool:
        return bool(self.hint)


@dataclass
class PackageProblem(Problem):
    variant: ClassVar[str] = PACKAGE

    package_id: str = ""


@dataclass
class LegacyMathProblem(Problem):
    variant: ClassVar[str] = LEGACY_MATH

    assignment_id: str = ""


@dataclass
class LegacyReadingQuestion(Problem):
    variant: ClassVar[str] = LEGACY_READING

    assignment_id: str = ""
    answer_type: str = MULTIPLE_CHOICE
    content_kind: str = READING


@dataclass
class AttemptRecord:
    child_answer: Optional[str] = None
    is_correct: Optional[bool] = None
    attempts_count: int = 0
    hint_purchased: bool = False
    coins_spent_on_hint: int = 0
    scratch_pad_image: Optional[str] = None
    answered_at: Optional[str] = None

    def state(self, max_attempts: int) -> ProblemState:
        if self.is_correct:
            return ProblemState.CORRECT
        if self.attempts_count >= max_attempts:
            return ProblemState.EXHAUSTED
        if self.attempts_count == 0:
            return ProblemState.UNANSWERED
        return ProblemState.ATTEMPTED

    def is_terminal(self, max_attempts: int) -> bool:
        return self.state(max_attempts).is_terminal


@dataclass
class CoinAccount:
    child_id: str
    balance: int = 0
    total_earned: int = 0
    current_streak: int = 0


@dataclass
class SubmissionResult:
    is_correct: bool
    coins_earned: int
    total_coins: int
    streak: int
    attempt_number: int
    can_retry: bool
    max_attempts: int
    potential_reward: int
    can_buy_hint: bool
    hint_cost: int
    question_complete: bool
    assignment_complete: bool = False
    correct_answer: Optional[str] = None
    explanation: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "isCorrect": self.is_correct,
            "correctAnswer": self.correct_answer,
            "coinsEarned": self.coins_earned,
            "totalCoins": self.total_coins,
            "streak": self.streak,
            "attemptNumber": self.attempt_number,
            "canRetry": self.can_retry,
            "maxAttempts": self.max_attempts,
            "potentialReward": self.potential_reward,
            "canBuyHint": self.can_buy_hint,
            "hintCost": self.hint_cost,
            "explanation": self.explanation,
            "questionComplete": self.question_complete,
            "assignmentComplete": self.assignment_complete,
        }


@dataclass
class HintPurchase:
    hint: str
    coins_spent: int
    new_balance: int

    def to_dict(self) -> dict:
        return {"hint": self.hint, "coinsSpent": self.coins_spent, "newBalance": self.new_balance}

