"""
Pythagorean name numerology: core numbers and the 0-100 base score.

Everything in this module is a pure function of its arguments. The base
score is the contract the generative layer is only allowed to nudge (see
``namescore.adjustment``), so the tables below are fixed.
"""
import datetime
import logging
import math
import re
from typing import Optional

from .schemas import CoreNumbers, NumerologyScore, ScoreBreakdown

logger = logging.getLogger(__name__)

LETTER_VALUES = {
    'A': 1, 'B': 2, 'C': 3, 'D': 4, 'E': 5, 'F': 6, 'G': 7, 'H': 8, 'I': 9,
    'J': 1, 'K': 2, 'L': 3, 'M': 4, 'N': 5, 'O': 6, 'P': 7, 'Q': 8, 'R': 9,
    'S': 1, 'T': 2, 'U': 3, 'V': 4, 'W': 5, 'X': 6, 'Y': 7, 'Z': 8,
}

# Y is always a consonant here.
VOWELS = frozenset('AEIOU')

MASTER_NUMBERS = frozenset({11, 22, 33})

NUMBER_TO_SCORE = {
    1: 22, 2: 20, 3: 21, 4: 18, 5: 23, 6: 24, 7: 19, 8: 17, 9: 21,
    11: 25, 22: 25, 33: 25,
}
DEFAULT_NUMBER_SCORE = 15
MAX_SCORE = 100

MIN_BIRTHDATE_DIGITS = 6

SCORE_LABELS = (
    (90, "Exceptional"),
    (80, "Excellent"),
    (70, "Very Good"),
    (60, "Good"),
    (50, "Average"),
    (40, "Below Average"),
)
LOWEST_SCORE_LABEL = "Needs Improvement"


class InvalidArgument(ValueError):
    """Raised when a required name is missing, empty or not a string."""


def validate_name(name, field: str = "name") -> str:
    if not isinstance(name, str) or not name.strip():
        raise InvalidArgument(f'A non-empty "{field}" argument is required.')
    return name


def clean_name(name: str) -> str:
    """Uppercases the name and drops every character outside A-Z."""
    return re.sub(r'[^A-Z]', '', name.upper())


def letter_value(char: str) -> int:
    return LETTER_VALUES.get(char.upper(), 0)


def name_value(letters: str) -> int:
    return sum(letter_value(char) for char in letters)


def reduce_number(number: int) -> int:
    """
    Reduces a non-negative integer by repeated digit sums.

    Master Numbers (11, 22, 33) are returned as they are, at every level of
    the reduction: 29 -> 11 stops at 11.
    """
    if number < 0:
        raise ValueError(f"Cannot reduce a negative number: {number}")
    if number in MASTER_NUMBERS or number < 10:
        return number
    return reduce_number(sum(int(digit) for digit in str(number)))


def calculate_life_path_number(birthdate: Optional[str]) -> int:
    """
    Life Path from every digit of a free-form birthdate string.

    Returns 0 when there is no birthdate or it holds fewer than six digits.
    """
    if not isinstance(birthdate, str):
        return 0
    digits = re.sub(r'\D', '', birthdate)
    if len(digits) < MIN_BIRTHDATE_DIGITS:
        logger.debug(f"Birthdate {birthdate!r} has too few digits for a Life Path Number.")
        return 0
    return reduce_number(sum(int(digit) for digit in digits))


def calculate_core_numbers(name: str, birthdate: Optional[str] = None) -> CoreNumbers:
    validate_name(name)
    letters = clean_name(name)
    vowels = ''.join(char for char in letters if char in VOWELS)
    consonants = ''.join(char for char in letters if char not in VOWELS)

    return CoreNumbers(
        life_path_number=calculate_life_path_number(birthdate),
        destiny_number=reduce_number(name_value(letters)),
        soul_urge_number=reduce_number(name_value(vowels)),
        personality_number=reduce_number(name_value(consonants)),
    )


def score_for_number(number: int, life_path: bool = False) -> int:
    """Sub-score of a single core number. An uncomputed Life Path scores 0."""
    if life_path and number == 0:
        return 0
    return NUMBER_TO_SCORE.get(number, DEFAULT_NUMBER_SCORE)


def calculate_breakdown(core_numbers: CoreNumbers) -> ScoreBreakdown:
    return ScoreBreakdown(
        life_path=score_for_number(core_numbers.life_path_number, life_path=True),
        destiny=score_for_number(core_numbers.destiny_number),
        soul_urge=score_for_number(core_numbers.soul_urge_number),
        personality=score_for_number(core_numbers.personality_number),
    )


def calculate_scores(name: str, birthdate: Optional[str] = None) -> NumerologyScore:
    """Core numbers, per-category breakdown and the bounded base score."""
    core_numbers = calculate_core_numbers(name, birthdate)
    breakdown = calculate_breakdown(core_numbers)
    score = min(MAX_SCORE, round_half_up(breakdown.total))
    return NumerologyScore(score=score, breakdown=breakdown, core_numbers=core_numbers)


def round_half_up(value: float) -> int:
    """Rounds .5 away from zero for non-negative values, unlike round()."""
    return int(math.floor(value + 0.5))


def score_label(score: int) -> str:
    for threshold, label in SCORE_LABELS:
        if score >= threshold:
            return label
    return LOWEST_SCORE_LABEL


def universal_day_number(on_date: Optional[datetime.date] = None) -> int:
    """Reduced digit sum of day, month and year, written without zero padding."""
    on_date = on_date or datetime.date.today()
    digits = f"{on_date.day}{on_date.month}{on_date.year}"
    return reduce_number(sum(int(digit) for digit in digits))
