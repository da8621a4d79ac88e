"""Builder abbreviation matching with exact and edit-distance lookup."""
import logging
from typing import Iterable, List, Optional

from importer.models import BuilderAbbreviation, BuilderMatch

logger = logging.getLogger(__name__)


MATCH_EXACT = 'exact'
MATCH_FUZZY = 'fuzzy'
MATCH_NONE = 'none'


def levenshtein_distance(a: str, b: str) -> int:
    """
    Compute the Levenshtein edit distance between two strings.

    Args:
        a: First string
        b: Second string

    Returns:
        Minimum number of single-character insertions, deletions or
        substitutions turning a into b
    """
    if a == b:
        return 0
    if not a:
        return len(b)
    if not b:
        return len(a)

    previous = list(range(len(b) + 1))
    for i, char_a in enumerate(a, start=1):
        current = [i]
        for j, char_b in enumerate(b, start=1):
            cost = 0 if char_a == char_b else 1
            current.append(min(
                previous[j] + 1,
                current[j - 1] + 1,
                previous[j - 1] + cost
            ))
        previous = current

    return previous[-1]


class BuilderMatcher:
    """Resolves a title token to a builder through its abbreviations."""

    def __init__(
        self,
        abbreviations: Iterable[BuilderAbbreviation],
        max_distance: int = 1
    ):
        """
        Initialize the matcher with a fixed abbreviation set.

        Args:
            abbreviations: Abbreviation rows read for the current batch
            max_distance: Largest edit distance accepted as a fuzzy match
        """
        self.abbreviations: List[BuilderAbbreviation] = [
            abbr for abbr in abbreviations
            if abbr.abbreviation and abbr.abbreviation.strip()
        ]
        self.max_distance = max_distance

    @staticmethod
    def _normalize(value: str) -> str:
        return value.strip().upper()

    def match(self, token: Optional[str]) -> BuilderMatch:
        """
        Match a candidate token against all abbreviations.

        Exact (case-insensitive) equality wins. Otherwise the closest
        abbreviation within max_distance is accepted, unless an
        abbreviation of a different builder is equally close.

        Args:
            token: Candidate builder token from the event title

        Returns:
            BuilderMatch with builder id, quality and matched abbreviation
        """
        if not token or not token.strip():
            return BuilderMatch(builder_id=None, quality=MATCH_NONE)

        normalized = self._normalize(token)

        exact = [
            abbr for abbr in self.abbreviations
            if self._normalize(abbr.abbreviation) == normalized
        ]
        if exact:
            builder_ids = {abbr.builder_id for abbr in exact}
            if len(builder_ids) == 1:
                return BuilderMatch(
                    builder_id=exact[0].builder_id,
                    quality=MATCH_EXACT,
                    abbreviation=exact[0].abbreviation
                )
            logger.warning(
                f"Abbreviation '{token}' is registered for "
                f"{len(builder_ids)} builders, treating as unmatched"
            )
            return BuilderMatch(builder_id=None, quality=MATCH_NONE)

        best_distance = None
        closest: List[BuilderAbbreviation] = []
        for abbr in self.abbreviations:
            distance = levenshtein_distance(
                normalized, self._normalize(abbr.abbreviation)
            )
            if best_distance is None or distance < best_distance:
                best_distance = distance
                closest = [abbr]
            elif distance == best_distance:
                closest.append(abbr)

        if best_distance is None or best_distance > self.max_distance:
            return BuilderMatch(builder_id=None, quality=MATCH_NONE)

        builder_ids = {abbr.builder_id for abbr in closest}
        if len(builder_ids) > 1:
            logger.info(
                f"Ambiguous fuzzy match for '{token}': "
                f"{sorted(abbr.abbreviation for abbr in closest)}"
            )
            return BuilderMatch(builder_id=None, quality=MATCH_NONE)

        return BuilderMatch(
            builder_id=closest[0].builder_id,
            quality=MATCH_FUZZY,
            abbreviation=closest[0].abbreviation
        )
