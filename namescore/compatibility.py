import logging
from typing import Optional

from .numerology import MASTER_NUMBERS, MAX_SCORE, calculate_scores, round_half_up, validate_name
from .schemas import CoreNumbers, PairAnalysis

logger = logging.getLogger(__name__)

# Life path dominates, then destiny, soul urge and personality. Sums to 100.
HARMONY_WEIGHTS = (
    ('life_path_number', 40),
    ('destiny_number', 30),
    ('soul_urge_number', 20),
    ('personality_number', 10),
)


def harmony(a: int, b: int) -> float:
    """Pairwise harmony of two same-category core numbers, 0.4 to 1.0."""
    if a == 0 or b == 0:
        return 0.5
    if a == b:
        return 1.0
    if a in MASTER_NUMBERS or b in MASTER_NUMBERS:
        return 0.85
    difference = abs(a - b)
    if difference <= 2:
        return 0.8
    if difference <= 4:
        return 0.6
    return 0.4


def calculate_compatibility(first: CoreNumbers, second: CoreNumbers) -> int:
    total = sum(
        harmony(getattr(first, field), getattr(second, field)) * weight
        for field, weight in HARMONY_WEIGHTS
    )
    return min(MAX_SCORE, round_half_up(total))


def analyze_pair(name1: str, birthdate1: Optional[str], name2: str, birthdate2: Optional[str]) -> PairAnalysis:
    """Scores both people and the compatibility between them."""
    validate_name(name1, "name1")
    validate_name(name2, "name2")

    first = calculate_scores(name1, birthdate1)
    second = calculate_scores(name2, birthdate2)
    score = calculate_compatibility(first.core_numbers, second.core_numbers)
    logger.info(f"Compatibility between '{name1}' and '{name2}' computed: {score}")
    return PairAnalysis(first=first, second=second, score=score)
