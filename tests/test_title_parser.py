"""Unit tests for TitleParser and InspectionTypeResolver."""
import pytest

from importer.inspection_types import INSPECTION_KEYWORDS, INSPECTION_TYPES, InspectionTypeResolver
from importer.title_parser import TitleParser


class TestTitleParser:
    """Test cases for TitleParser class."""

    def test_parse_builder_type_and_address(self):
        """Test the usual '<BUILDER> <TYPE> - <address>' title."""
        parser = TitleParser()

        parsed = parser.parse("INTTEST Test - 123 Main St")

        assert parsed.builder_token == "INTTEST"
        assert parsed.inspection_type_token == "Test"
        assert parsed.inspection_type == "Full Test"
        assert parsed.remainder == "123 Main St"

    def test_parse_keeps_punctuation_on_builder_token(self):
        """Test that punctuation attached to the first word stays in the token."""
        parser = TitleParser()

        parsed = parser.parse("inttest. Pre-Drywall - 456 Oak St")

        assert parsed.builder_token == "inttest."
        assert parsed.inspection_type_token == "Pre-Drywall"
        assert parsed.inspection_type == "Pre-Drywall"
        assert parsed.remainder == "456 Oak St"

    @pytest.mark.parametrize("summary", ["", "   ", "\t\n", None])
    def test_parse_blank_summary_returns_none(self, summary):
        """Test that blank titles are skipped."""
        parser = TitleParser()

        assert parser.parse(summary) is None

    def test_parse_without_inspection_type(self):
        """Test that unknown text is kept verbatim as remainder."""
        parser = TitleParser()

        parsed = parser.parse("MI Site Visit - Lot 12")

        assert parsed.builder_token == "MI"
        assert parsed.inspection_type is None
        assert parsed.inspection_type_token is None
        assert parsed.remainder == "Site Visit - Lot 12"

    def test_parse_single_word(self):
        """Test a title that is only one word."""
        parser = TitleParser()

        parsed = parser.parse("Test")

        assert parsed.builder_token == "Test"
        assert parsed.inspection_type is None
        assert parsed.remainder == ""

    @pytest.mark.parametrize("summary,inspection_type,remainder", [
        ("INTTEST SV2 - 12 Final Ct", "SV2", "12 Final Ct"),
        ("INTTEST Final - 8 Rough Rider Ln", "Final", "8 Rough Rider Ln"),
        ("INTTEST Rough - 3 Test Ave", "Rough", "3 Test Ave"),
    ])
    def test_parse_address_keywords_do_not_override_type(self, summary, inspection_type, remainder):
        """Test a type word inside the address is left in the remainder."""
        parser = TitleParser()

        parsed = parser.parse(summary)

        assert parsed.inspection_type == inspection_type
        assert parsed.remainder == remainder

    def test_parse_collapses_whitespace(self):
        """Test leading/trailing whitespace, tabs and repeated spaces."""
        parser = TitleParser()

        parsed = parser.parse("  MI\t  Full Test   -  9 Elm   Ct  ")

        assert parsed.builder_token == "MI"
        assert parsed.inspection_type == "Full Test"
        assert parsed.inspection_type_token == "Full Test"
        assert parsed.remainder == "9 Elm Ct"


class TestInspectionTypeResolver:
    """Test cases for InspectionTypeResolver class."""

    @pytest.mark.parametrize("text,expected", [
        ("Test", "Full Test"),
        ("full test - lot 4", "Full Test"),
        ("SV2", "SV2"),
        ("sv2 - 12 Pine", "SV2"),
        ("Pre-Drywall", "Pre-Drywall"),
        ("pre drywall", "Pre-Drywall"),
        ("Final", "Final"),
        ("ROUGH", "Rough"),
    ])
    def test_resolve_known_keywords(self, text, expected):
        """Test case-insensitive keyword containment."""
        resolver = InspectionTypeResolver()

        assert resolver.resolve(text) == expected

    @pytest.mark.parametrize("text", ["Meeting", "Consultation", "Site Visit", ""])
    def test_resolve_unknown_text(self, text):
        """Test that unrecognized text resolves to None."""
        resolver = InspectionTypeResolver()

        assert resolver.resolve(text) is None

    def test_find_keyword_returns_text_as_written(self):
        """Test that the matched keyword keeps the title's casing."""
        resolver = InspectionTypeResolver()

        assert resolver.find_keyword("a FULL TEST here") == ("FULL TEST", "Full Test")

    def test_keywords_map_into_closed_type_set(self):
        """Test every keyword resolves to a known inspection type."""
        for _, inspection_type in INSPECTION_KEYWORDS:
            assert inspection_type in INSPECTION_TYPES

    @pytest.mark.parametrize("text,expected", [
        ("SV2 - 12 Final Ct", ("SV2", "SV2")),
        ("Full Test - 4 Final Ave", ("Full Test", "Full Test")),
        ("pre drywall, 9 Test Rd", ("pre drywall", "Pre-Drywall")),
    ])
    def test_find_keyword_prefers_earliest_match(self, text, expected):
        """Test the earliest keyword wins, the longest one at equal positions."""
        resolver = InspectionTypeResolver()

        assert resolver.find_keyword(text) == expected
