"""Inspection-type keyword resolution for calendar titles."""
import logging
from typing import Optional, Tuple

logger = logging.getLogger(__name__)


INSPECTION_KEYWORDS: Tuple[Tuple[str, str], ...] = (
    ('pre-drywall', 'Pre-Drywall'),
    ('pre drywall', 'Pre-Drywall'),
    ('predrywall', 'Pre-Drywall'),
    ('full test', 'Full Test'),
    ('final', 'Final'),
    ('rough', 'Rough'),
    ('test', 'Full Test'),
    ('sv2', 'SV2'),
)

INSPECTION_TYPES = ('Full Test', 'Pre-Drywall', 'SV2', 'Final', 'Rough')


class InspectionTypeResolver:
    """Maps free title text to one of the known inspection types."""

    def __init__(self, keywords: Tuple[Tuple[str, str], ...] = INSPECTION_KEYWORDS):
        self.keywords = tuple(
            sorted(keywords, key=lambda pair: len(pair[0]), reverse=True)
        )

    def find_keyword(self, text: str) -> Optional[Tuple[str, str]]:
        """
        Find the known keyword that starts earliest in text.

        Keywords starting at the same position resolve to the longest one,
        so "full test" wins over "test" and a type word further on (e.g. in
        the address) never overrides the one after the builder token.

        Args:
            text: Title text with the builder token already removed

        Returns:
            Tuple of (keyword as written in text, inspection type) or None
        """
        if not text:
            return None

        lowered = text.lower()
        best = None
        for keyword, inspection_type in self.keywords:
            index = lowered.find(keyword)
            if index < 0:
                continue
            # self.keywords is longest first, so equal positions keep the longer one
            if best is None or index < best[0]:
                best = (index, keyword, inspection_type)

        if best is None:
            return None
        index, keyword, inspection_type = best
        return text[index:index + len(keyword)], inspection_type

    def resolve(self, text: str) -> Optional[str]:
        """Return the inspection type named in text, or None."""
        found = self.find_keyword(text)
        if not found:
            logger.debug(f"No inspection type recognized in '{text}'")
            return None
        return found[1]
