"""Parser for inspection calendar event titles."""
import re
from typing import Optional

from importer.inspection_types import InspectionTypeResolver
from importer.models import ParsedEvent


class TitleParser:
    """
    Splits an event title into builder token, inspection keyword and
    remainder.

    Titles follow the scheduling convention "<BUILDER> <TYPE> - <address>",
    e.g. "INTTEST Test - 123 Main St". The first whitespace-delimited token
    is the builder candidate and keeps any punctuation attached to it.
    """

    SEPARATOR_CHARS = ' \t\r\n-:,|/'

    def __init__(self, resolver: Optional[InspectionTypeResolver] = None):
        self.resolver = resolver or InspectionTypeResolver()

    def parse(self, summary: Optional[str]) -> Optional[ParsedEvent]:
        """
        Parse an event summary.

        Args:
            summary: Event title, possibly empty

        Returns:
            ParsedEvent shell, or None when the summary is blank
        """
        if not summary or not summary.strip():
            return None

        parts = summary.strip().split(None, 1)
        builder_token = parts[0]
        rest = parts[1] if len(parts) > 1 else ''

        inspection_type_token = None
        remainder = rest
        found = self.resolver.find_keyword(rest)
        if found:
            inspection_type_token = found[0]
            index = rest.find(inspection_type_token)
            remainder = rest[:index] + ' ' + rest[index + len(inspection_type_token):]

        return ParsedEvent(
            builder_token=builder_token,
            inspection_type_token=inspection_type_token,
            remainder=self._clean_remainder(remainder),
            inspection_type=found[1] if found else None
        )

    def _clean_remainder(self, text: str) -> str:
        """Collapse whitespace and trim separator punctuation."""
        collapsed = re.sub(r'\s+', ' ', text)
        return collapsed.strip(self.SEPARATOR_CHARS)
