"""Answer checking for number, multiple-choice and text questions."""
import re
from typing import Optional

from loguru import logger

from homework_portal.errors import ConfigurationInvalid
from homework_portal.models import MULTIPLE_CHOICE, NUMBER, TEXT

CHOICE_LETTERS = "ABCD"
_OPTION_IN_TEXT = re.compile(r"([A-Da-d])[:)]\s*([^,]+?)(?=,?\s*[A-Da-d][:)]|$)")
_LABELLED_OPTION = re.compile(r"^([A-Da-d])[:)]?\s*(.+)$")
_ANSWER_PREFIX = re.compile(r"^([A-Da-d])[:)]\s*\S")


def normalize_number(value: str) -> str:
    """Canonical string form of a numeric answer.

    Comma and period are both decimal separators and a trailing percent sign
    is formatting, so "12,5%" and "12.5" normalize to the same string.
    """
    text = value.strip().lower().replace(",", ".")
    if text.endswith("%"):
        text = text[:-1].rstrip()
    return text


def option_letters(options: Optional[list]) -> list[str]:
    return [opt.strip()[0].upper() for opt in options or [] if isinstance(opt, str) and opt.strip()]


def is_answerable(answer_type: str, options: Optional[list]) -> bool:
    """A multiple-choice question needs at least two options to be answerable."""
    if answer_type == MULTIPLE_CHOICE:
        return isinstance(options, list) and len(options) >= 2
    return True


def validate_choice_config(correct_answer, options: Optional[list]) -> str:
    """Return the correct option letter or raise ConfigurationInvalid."""
    if not is_answerable(MULTIPLE_CHOICE, options):
        raise ConfigurationInvalid("Question has no options configured")
    letters = option_letters(options)
    letter = correct_answer.strip().upper() if isinstance(correct_answer, str) else ""
    if not letter or letter not in letters:
        raise ConfigurationInvalid(
            f'Question misconfigured: correct_answer "{correct_answer}" does not match '
            f"any option ({', '.join(letters)})",
            correct_answer=correct_answer,
            options=options,
        )
    return letter


def is_correct(answer_type: str, submitted, correct_answer, options: Optional[list] = None) -> bool:
    """Grade one answer.

    Malformed input grades as wrong. The only error raised is
    ConfigurationInvalid, for multiple-choice questions whose correct answer
    is not one of the option letters.
    """
    if answer_type == MULTIPLE_CHOICE:
        letter = validate_choice_config(correct_answer, options)
        if not isinstance(submitted, str):
            return False
        return submitted.strip().upper() == letter

    if not isinstance(submitted, str) or not isinstance(correct_answer, str):
        return False
    if answer_type == NUMBER:
        normalized = normalize_number(submitted)
        return bool(normalized) and normalized == normalize_number(correct_answer)
    if answer_type == TEXT:
        return submitted.strip().lower() == correct_answer.strip().lower()
    logger.warning(f"Unknown answer type {answer_type!r}; grading as incorrect")
    return False


def extract_options_from_text(question_text: str) -> Optional[list[str]]:
    """Pull "A: x, B: y" style options out of a question body."""
    matches = _OPTION_IN_TEXT.findall(question_text or "")
    if len(matches) >= 2:
        return [f"{letter.upper()}: {text.strip()}" for letter, text in matches]
    return None


def normalize_choice_problem(
    correct_answer: str,
    options: Optional[list] = None,
    question_text: Optional[str] = None,
) -> tuple[str, Optional[list]]:
    """Bring authored multiple-choice data into letter form.

    Used when problems are created or imported. Returns the correct answer
    as a single option letter and the options list (extracted from the
    question text when none were given). An answer that names no single
    option comes back unchanged, and grading then rejects the question.
    """
    if not options and question_text:
        options = extract_options_from_text(question_text) or options

    answer = correct_answer.strip()
    if len(answer) == 1 and answer.upper() in CHOICE_LETTERS:
        return answer.upper(), options or None

    labelled = _labelled_options(options)
    lowered = answer.lower()
    exact = [letter for letter, text, full in labelled if lowered in (text, full)]
    if exact:
        return exact[0], options

    prefixed = _ANSWER_PREFIX.match(answer)
    if prefixed:
        return prefixed.group(1).upper(), options or None

    partial = {letter for letter, text, _ in labelled if lowered in text or text in lowered}
    if len(partial) == 1:
        return partial.pop(), options

    # Left as authored so grading reports the question as misconfigured
    logger.warning(f"Multiple-choice answer {correct_answer!r} matches no single option in {options}")
    return answer, options or None


def _labelled_options(options: Optional[list]) -> list[tuple[str, str, str]]:
    """(letter, lowercased text, lowercased whole option) for each labelled option."""
    labelled = []
    for option in options or []:
        if not isinstance(option, str):
            continue
        match = _LABELLED_OPTION.match(option.strip())
        if match:
            letter, text = match.groups()
            labelled.append((letter.upper(), text.strip().lower(), option.strip().lower()))
    return labelled
