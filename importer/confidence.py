"""Confidence scoring and tier selection for parsed calendar events."""
from dataclasses import dataclass

from importer.builder_matcher import MATCH_EXACT, MATCH_FUZZY
from importer.models import ParsedEvent

TIER_HIGH = 'high'
TIER_MEDIUM = 'medium'
TIER_LOW = 'low'


@dataclass(frozen=True)
class ConfidenceWeights:
    """Points contributed by each classification signal."""
    exact_builder: int = 50
    fuzzy_builder: int = 30
    inspection_type: int = 45

    def __post_init__(self):
        if min(self.exact_builder, self.fuzzy_builder, self.inspection_type) < 0:
            raise ValueError("Confidence weights must be non-negative")
        if self.fuzzy_builder > self.exact_builder:
            raise ValueError("Fuzzy builder weight cannot exceed exact weight")


@dataclass(frozen=True)
class ConfidenceTiers:
    """Lower bounds of the high and medium confidence tiers."""
    high: int = 80
    medium: int = 60

    def __post_init__(self):
        if not 0 <= self.medium <= self.high <= 100:
            raise ValueError("Tier thresholds must satisfy 0 <= medium <= high <= 100")

    def tier_for(self, score: int) -> str:
        if score >= self.high:
            return TIER_HIGH
        if score >= self.medium:
            return TIER_MEDIUM
        return TIER_LOW


DEFAULT_WEIGHTS = ConfidenceWeights()
DEFAULT_TIERS = ConfidenceTiers()


def score_signals(
    builder_match: str,
    has_inspection_type: bool,
    weights: ConfidenceWeights = DEFAULT_WEIGHTS
) -> int:
    """
    Combine classification signals into a 0-100 score.

    Args:
        builder_match: Builder match quality (exact, fuzzy or none)
        has_inspection_type: Whether an inspection type was recognized
        weights: Points per signal

    Returns:
        Integer confidence clamped to [0, 100]
    """
    score = 0

    if builder_match == MATCH_EXACT:
        score += weights.exact_builder
    elif builder_match == MATCH_FUZZY:
        score += weights.fuzzy_builder

    if has_inspection_type:
        score += weights.inspection_type

    return max(0, min(100, score))


def score_parsed_event(
    parsed: ParsedEvent,
    weights: ConfidenceWeights = DEFAULT_WEIGHTS
) -> int:
    """Score a parsed event from its builder match and inspection type."""
    return score_signals(
        builder_match=parsed.builder_match,
        has_inspection_type=parsed.inspection_type is not None,
        weights=weights
    )
