"""NameScore numerology engine and analysis service."""
from .compatibility import analyze_pair, calculate_compatibility, harmony
from .numerology import InvalidArgument, calculate_core_numbers, calculate_scores, reduce_number, score_label
from .schemas import AnalysisResult, CompatibilityResult, CoreNumbers, NumerologyScore, ScoreBreakdown

__all__ = [
    'AnalysisResult', 'CompatibilityResult', 'CoreNumbers', 'InvalidArgument', 'NumerologyScore',
    'ScoreBreakdown', 'analyze_pair', 'calculate_compatibility', 'calculate_core_numbers',
    'calculate_scores', 'harmony', 'reduce_number', 'score_label',
]
