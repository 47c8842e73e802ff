"""
Bounds on numbers coming back from the generative collaborator.

The model is handed the base score and asked to return a holistic score and
improved name variants. Nothing it returns is trusted: every numeric field is
read leniently, clamped, and anything malformed is dropped or replaced by a
default before it leaves this module.
"""
import logging
import math
from typing import Any, Dict, List, Mapping, Optional

from .schemas import CompatibilityInsight, HolisticAnalysis, NameSuggestion

logger = logging.getLogger(__name__)

HOLISTIC_TOLERANCE = 7
MIN_HOLISTIC_SCORE = 1
MAX_HOLISTIC_SCORE = 100

DEFAULT_SHORT_RATIONALE = "Your name carries a balanced numerological vibration."
DEFAULT_HOLISTIC_RATIONALE = "The score reflects your core numbers without further adjustment."

DEFAULT_COMPATIBILITY_INSIGHT = {
    "title": "A Powerful Connection",
    "strengths": "You share a deep understanding.",
    "challenges": "Communication may require conscious effort.",
    "summary": "Your bond has great potential for growth.",
}


def coerce_score(value: Any) -> Optional[int]:
    """Reads a loosely typed score. Returns None when it is not a number."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(math.floor(value + 0.5)) if math.isfinite(value) else None
    if isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
        return coerce_score(number)
    return None


def _clamp(value: int, lower: int, upper: int) -> int:
    return max(lower, min(upper, value))


def clamp_holistic_score(adjusted: Any, base_score: int, tolerance: int = HOLISTIC_TOLERANCE) -> int:
    """
    Final score the caller may expose for a model-adjusted score.

    The result lies in [1, 100] and within ``tolerance`` of ``base_score``.
    An unreadable value falls back to the base score.
    """
    anchor = _clamp(base_score, MIN_HOLISTIC_SCORE, MAX_HOLISTIC_SCORE)
    score = coerce_score(adjusted)
    if score is None:
        logger.warning(f"Discarding unreadable holistic score {adjusted!r}; using base score {anchor}.")
        return anchor

    score = _clamp(score, MIN_HOLISTIC_SCORE, MAX_HOLISTIC_SCORE)
    lower = max(MIN_HOLISTIC_SCORE, anchor - tolerance)
    upper = min(MAX_HOLISTIC_SCORE, anchor + tolerance)
    clamped = _clamp(score, lower, upper)
    if clamped != score:
        logger.warning(f"Holistic score {score} drifted more than {tolerance} from base {base_score}; clamped to {clamped}.")
    return clamped


def _string_or(value: Any, default: str) -> str:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return default


def _string_items(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [item.strip() for item in value if isinstance(item, str) and item.strip()]


def parse_holistic_payload(payload: Any, base_score: int) -> HolisticAnalysis:
    if not isinstance(payload, Mapping):
        payload = {}
    return HolisticAnalysis(
        holistic_score=clamp_holistic_score(payload.get('holistic_score'), base_score),
        holistic_rationale=_string_or(payload.get('holistic_rationale'), DEFAULT_HOLISTIC_RATIONALE),
        short_rationale=_string_or(payload.get('short_rationale'), DEFAULT_SHORT_RATIONALE),
        positive_traits=_string_items(payload.get('positive_traits')),
        challenges=_string_items(payload.get('challenges')),
    )


def fallback_holistic_analysis(base_score: int) -> HolisticAnalysis:
    return parse_holistic_payload({}, base_score)


def filter_name_suggestions(payload: Any, score: int) -> List[NameSuggestion]:
    """
    Keeps only suggestions that claim a strictly higher score than ``score``.

    Accepts a list of entries or a mapping carrying a ``suggestions`` list.
    Entries without a usable name or score are dropped; claimed scores are
    clamped into [1, 100]. Result is sorted by score, highest first.
    """
    if isinstance(payload, Mapping):
        payload = payload.get('suggestions')
    if not isinstance(payload, list):
        return []

    kept = []
    for entry in payload:
        if not isinstance(entry, Mapping):
            continue
        name = entry.get('suggested_name')
        new_score = coerce_score(entry.get('new_score'))
        if not isinstance(name, str) or not name.strip() or new_score is None:
            continue
        new_score = _clamp(new_score, MIN_HOLISTIC_SCORE, MAX_HOLISTIC_SCORE)
        if new_score <= score:
            continue
        kept.append(NameSuggestion(
            suggested_name=name.strip(),
            new_score=new_score,
            reason=_string_or(entry.get('reason'), ""),
        ))

    dropped = len(payload) - len(kept)
    if dropped:
        logger.info(f"Dropped {dropped} name suggestion(s) that were malformed or not above {score}.")
    return sorted(kept, key=lambda suggestion: suggestion.new_score, reverse=True)


def parse_compatibility_payload(payload: Any) -> CompatibilityInsight:
    if not isinstance(payload, Mapping):
        payload = {}
    fields: Dict[str, str] = {
        key: _string_or(payload.get(key), default)
        for key, default in DEFAULT_COMPATIBILITY_INSIGHT.items()
    }
    return CompatibilityInsight(**fields)
