"""
Noise Filters Module

Detects lines that carry no recipe content:
- Empty and punctuation-only lines
- Page artifacts (page numbers, "Page 3 of 4")
- Running headers/footers repeated across captured pages
"""
from collections import Counter
from typing import Sequence, Set
import re

from core.constants import (
    PAGE_NUMBER_PATTERNS,
    REPEATED_LINE_MIN_COUNT,
    REPEATED_LINE_MIN_LENGTH,
)


def normalize_text_for_matching(text: str) -> str:
    """
    Normalize text for repetition matching.
    Removes page numbers, dates, punctuation and case differences.

    Args:
        text: Raw line text

    Returns:
        Normalized text for comparison
    """
    if not text:
        return ""

    normalized = text.strip().lower()

    # Remove page number patterns
    normalized = re.sub(r'\b(page\s*)?\d+\b', '', normalized)

    # Remove dates that may vary between pages
    normalized = re.sub(r'\b\d{1,2}/\d{1,2}/\d{2,4}\b', '', normalized)
    normalized = re.sub(r'[^\w\s]', '', normalized)
    normalized = re.sub(r'\s+', ' ', normalized)

    return normalized.strip()


def is_blank(text: str) -> bool:
    """Return True for empty or whitespace-only lines."""
    return not text or not text.strip()


def is_punctuation_only(text: str) -> bool:
    """Return True when a line holds symbols but no letters or digits."""
    stripped = text.strip()
    return bool(stripped) and not re.search(r'[^\W_]', stripped)


def is_page_artifact(text: str) -> bool:
    """
    Check whether a line is a page number or similar artifact.

    Args:
        text: Line text

    Returns:
        True if the line matches a page-number pattern
    """
    stripped = text.strip()
    if not stripped:
        return False
    for pattern in PAGE_NUMBER_PATTERNS:
        if re.match(pattern, stripped, re.IGNORECASE):
            return True
    return False


def find_repeated_lines(
    lines: Sequence[str],
    min_count: int = REPEATED_LINE_MIN_COUNT,
    min_length: int = REPEATED_LINE_MIN_LENGTH
) -> Set[str]:
    """
    Detect lines that repeat verbatim (after normalization), such as a
    cookbook name printed at the top of every captured page.

    Args:
        lines: All lines of the document
        min_count: Minimum occurrences to count as repeated
        min_length: Minimum normalized length to consider

    Returns:
        Set of normalized texts that repeat
    """
    counts: Counter = Counter()
    for line in lines:
        normalized = normalize_text_for_matching(line)
        if len(normalized) >= min_length:
            counts[normalized] += 1

    return {text for text, count in counts.items() if count >= min_count}


def is_noise_line(text: str, repeated: Set[str]) -> bool:
    """
    Combined noise check used by the line classifier.

    Args:
        text: Line text
        repeated: Output of find_repeated_lines for the same document

    Returns:
        True for empty, punctuation-only, page-artifact or repeated lines
    """
    if is_blank(text) or is_punctuation_only(text) or is_page_artifact(text):
        return True
    return normalize_text_for_matching(text) in repeated
