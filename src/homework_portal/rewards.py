"""Coin rewards for correct answers and hint pricing.

The reward decays with each attempt: full reward on the first try, then
66% and 33%. Streak is tracked separately and never changes the reward.
"""
import math
from typing import Sequence

from homework_portal.models import READING

BASE_REWARD = 10
ATTEMPT_MULTIPLIERS = (1.0, 0.66, 0.33)
MAX_ATTEMPTS = 3


def reward_for_attempt(
    attempt_number: int,
    base_reward: int = BASE_REWARD,
    multipliers: Sequence[float] = ATTEMPT_MULTIPLIERS,
) -> int:
    """Coins for a correct answer on the given attempt (1-based)."""
    index = min(max(attempt_number, 1), len(multipliers)) - 1
    # Half-up rounding: 6.6 -> 7, 3.3 -> 3, and 2.5 -> 3 rather than 2
    return math.floor(base_reward * multipliers[index] + 0.5)


def preview_next_reward(
    attempt_number: int,
    base_reward: int = BASE_REWARD,
    multipliers: Sequence[float] = ATTEMPT_MULTIPLIERS,
) -> int:
    """What a correct answer on the next attempt would earn."""
    return reward_for_attempt(attempt_number + 1, base_reward, multipliers)


def price_of_hint(preview_reward: int) -> int:
    """Half the next reward, rounded down, never less than one coin."""
    return max(1, preview_reward // 2)


def max_attempts_for(content_kind: str, cap: int = MAX_ATTEMPTS) -> int:
    return 1 if content_kind == READING else cap
