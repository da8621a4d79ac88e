"""Classification of calendar events into builder, inspection type and score."""
import logging
from typing import Iterable, Optional

from importer.builder_matcher import BuilderMatcher
from importer.confidence import DEFAULT_WEIGHTS, ConfidenceWeights, score_parsed_event
from importer.models import BuilderAbbreviation, ParsedEvent
from importer.title_parser import TitleParser

logger = logging.getLogger(__name__)


class EventClassifier:
    """Runs title parsing, builder matching and scoring for one batch."""

    def __init__(
        self,
        abbreviations: Iterable[BuilderAbbreviation],
        weights: ConfidenceWeights = DEFAULT_WEIGHTS,
        parser: Optional[TitleParser] = None
    ):
        self.matcher = BuilderMatcher(abbreviations)
        self.weights = weights
        self.parser = parser or TitleParser()

    def classify(self, summary: Optional[str]) -> Optional[ParsedEvent]:
        """
        Classify one event title.

        Args:
            summary: Event title

        Returns:
            Fully populated ParsedEvent, or None for a blank title
        """
        parsed = self.parser.parse(summary)
        if parsed is None:
            return None

        match = self.matcher.match(parsed.builder_token)
        parsed.builder_id = match.builder_id
        parsed.builder_match = match.quality
        parsed.matched_abbreviation = match.abbreviation
        parsed.confidence = score_parsed_event(parsed, self.weights)

        logger.debug(
            f"Classified '{summary}': builder={match.quality} "
            f"type={parsed.inspection_type} confidence={parsed.confidence}"
        )
        return parsed
