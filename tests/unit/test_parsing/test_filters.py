"""
Unit tests for parsing.filters module.
"""
import pytest
from parsing.filters import (
    find_repeated_lines,
    is_blank,
    is_noise_line,
    is_page_artifact,
    is_punctuation_only,
    normalize_text_for_matching,
)


class TestNormalizeTextForMatching:
    """Tests for normalize_text_for_matching function."""

    def test_strip_page_numbers_and_punctuation(self):
        """Test running headers with page numbers normalize to the same text."""
        assert normalize_text_for_matching("Page 3 - The Family Cookbook") == "the family cookbook"
        assert normalize_text_for_matching("The Family Cookbook, page 4") == "the family cookbook"

    def test_empty(self):
        """Test empty input."""
        assert normalize_text_for_matching("") == ""


class TestLineChecks:
    """Tests for single-line noise checks."""

    @pytest.mark.parametrize("text", ["", "   "])
    def test_blank(self, text):
        """Test whitespace-only lines are blank."""
        assert is_blank(text)

    @pytest.mark.parametrize("text", ["---", "***", "• •", "~"])
    def test_punctuation_only(self, text):
        """Test symbol-only lines."""
        assert is_punctuation_only(text)

    @pytest.mark.parametrize("text", ["", "a.", "2"])
    def test_not_punctuation_only(self, text):
        """Test lines with letters or digits, and empty lines."""
        assert not is_punctuation_only(text)

    @pytest.mark.parametrize("text", ["42", "- 3 -", "Page 2 of 5", "page 7", "p. 12"])
    def test_page_artifact(self, text):
        """Test page numbers are artifacts."""
        assert is_page_artifact(text)

    @pytest.mark.parametrize("text", ["2 cups flour", "Serves 4", ""])
    def test_not_page_artifact(self, text):
        """Test content lines are not artifacts."""
        assert not is_page_artifact(text)


class TestRepeatedLines:
    """Tests for repeated running header detection."""

    def test_find_repeated(self):
        """Test a line seen on two pages is repeated."""
        lines = ["The Family Cookbook", "Soup", "2 cups stock", "The Family Cookbook"]

        assert find_repeated_lines(lines) == {"the family cookbook"}

    def test_short_lines_never_repeated(self):
        """Test short repeated steps are kept as content."""
        assert find_repeated_lines(["Stir well", "Stir well"]) == set()

    def test_is_noise_line_uses_repeated(self):
        """Test a repeated line is noise, other lines are not."""
        repeated = {"the family cookbook"}

        assert is_noise_line("THE FAMILY COOKBOOK", repeated)
        assert not is_noise_line("Tomato Soup", repeated)
