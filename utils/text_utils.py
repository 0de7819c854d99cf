"""
Text utilities for recipe parsing.

Handles OCR text cleaning and splitting into lines.
"""
import re
from typing import List

from core.constants import (
    BULLET_PATTERN,
    OCR_DIGIT_MISREADS,
    STEP_PREFIX_PATTERNS,
    UNIT_WORDS,
)

PARAGRAPH_BREAK = "\n\n"

_UNIT_ALTERNATION = "|".join(
    re.escape(unit) for unit in sorted(UNIT_WORDS, key=len, reverse=True)
)

# A quantity token possibly containing misread digits, followed by a unit.
# The lookahead keeps prose like "Oil" or "lo" out: the numeric part must
# hold at least one real digit.
_QUANTITY_UNIT_TOKEN = re.compile(
    r'(?<![A-Za-z0-9])(?=[0-9lIOo./]*\d)([0-9lIOo][0-9lIOo./]*)(\s?)(' + _UNIT_ALTERNATION + r')\b'
)

# Only letters that sit next to a digit are rewritten
_MISREAD_NEXT_TO_DIGIT = re.compile(r'(?<=\d)[lIOo]|[lIOo](?=\d)')


def collapse_whitespace(text: str) -> str:
    """
    Collapse runs of spaces/tabs and blank lines.

    Single newlines are kept as line breaks; two or more consecutive
    newlines (with or without whitespace between them) become exactly one
    paragraph break.

    Args:
        text: Raw OCR text

    Returns:
        Text with normalized whitespace
    """
    if not text:
        return ""

    text = text.replace('\r\n', '\n').replace('\r', '\n')
    lines = [re.sub(r'[^\S\n]+', ' ', line).strip() for line in text.split('\n')]
    text = '\n'.join(lines)
    text = re.sub(r'\n{2,}', PARAGRAPH_BREAK, text)
    return text.strip()


def join_hyphenated_words(text: str) -> str:
    """
    Rejoin words split by a trailing hyphen at a line break.

    "flour-\\nmeal" becomes "flourmeal". Ranges such as "2-\\n3" are left
    alone: the character after the break must be a lowercase letter and the
    one before the hyphen a letter.

    Args:
        text: Text with single-newline line breaks

    Returns:
        Text with hyphenated words rejoined
    """
    return re.sub(r'(?<=[A-Za-z])-\n(?=[a-z])', '', text)


def fix_quantity_misreads(text: str) -> str:
    """
    Correct common OCR misreads inside quantity+unit tokens.

    Lowercase "l" / capital "I" next to a digit become "1", "O" / "o" next
    to a digit become "0". Tokens that do not look like a quantity followed
    by a unit are never touched.

    Args:
        text: Text to correct

    Returns:
        Corrected text
    """
    def _fix(match: re.Match) -> str:
        quantity = match.group(1)
        # Each rewrite can put a new digit next to another misread letter
        previous = None
        while quantity != previous:
            previous = quantity
            quantity = _MISREAD_NEXT_TO_DIGIT.sub(
                lambda m: OCR_DIGIT_MISREADS[m.group(0)], quantity
            )
        return f"{quantity}{match.group(2)}{match.group(3)}"

    return _QUANTITY_UNIT_TOKEN.sub(_fix, text)


def normalize_text(raw: str) -> str:
    """
    Clean raw OCR text before structural parsing.

    Deterministic and idempotent: normalize_text(normalize_text(x)) equals
    normalize_text(x). Never fails; empty input gives an empty string.

    Args:
        raw: Raw OCR text

    Returns:
        Normalized text with single-newline lines and "\\n\\n" paragraph breaks
    """
    if not raw:
        return ""

    text = collapse_whitespace(raw)
    text = join_hyphenated_words(text)
    text = fix_quantity_misreads(text)
    return text


def split_lines(text: str) -> List[str]:
    """
    Split normalized text into lines.

    A paragraph break yields one empty line, which the classifier treats as
    a section boundary.

    Args:
        text: Normalized text

    Returns:
        List of lines, empty strings marking paragraph breaks
    """
    if not text:
        return []
    return text.split('\n')


def strip_list_marker(line: str) -> str:
    """
    Remove a leading bullet or step number from a line.

    Args:
        line: Ingredient or instruction line

    Returns:
        Line text without its list marker
    """
    cleaned = re.sub(BULLET_PATTERN, '', line)
    for pattern in STEP_PREFIX_PATTERNS:
        stripped = re.sub(pattern, '', cleaned, count=1, flags=re.IGNORECASE)
        if stripped != cleaned:
            cleaned = stripped
            break
    return cleaned.strip()
