"""
Ingredient and metadata text helpers.

Splits ingredient lines into quantity / unit / name and reads times and
servings out of metadata lines ("Prep: 15 min | Cook: 1 hr | Serves 4").
"""
import re
from typing import Dict, Optional

from core.constants import (
    BULLET_PATTERN,
    HOUR_UNITS,
    MAX_TIME_MINUTES,
    METADATA_HEAD_WORDS,
    METADATA_KEYWORDS,
    METADATA_VERB_KEYWORDS,
    MINUTE_UNITS,
    QUANTITY_PATTERN,
    UNIT_WORDS,
)
from core.models import IngredientParts
from utils.text_utils import strip_list_marker


def _alternation(words) -> str:
    """Regex alternation, longest first, with spaces matching any whitespace."""
    ordered = sorted(words, key=len, reverse=True)
    return "|".join(re.escape(w).replace(r'\ ', r'\s+') for w in ordered)


_INGREDIENT_RE = re.compile(
    r'^(?P<quantity>' + QUANTITY_PATTERN + r')'
    r'(?:\s*(?P<unit>' + _alternation(UNIT_WORDS) + r')\.?(?![A-Za-z])|\s+|$)'
    r'\s*(?P<name>.*)$',
    re.IGNORECASE
)

# "1." / "2)" list numbering, never a quantity
_ORDINAL_PREFIX_RE = re.compile(r'^\d{1,2}\s*[.)](?:\s|$)')

_TIME_RE = re.compile(
    r'(\d+(?:\.\d+)?)(?:\s*(?:-|–|to)\s*\d+(?:\.\d+)?)?\s*'
    r'(?:(?P<hours>' + _alternation(HOUR_UNITS) + r')|(?P<minutes>' + _alternation(MINUTE_UNITS) + r'))?'
    r'(?![A-Za-z])',
    re.IGNORECASE
)

_METADATA_KEYWORD_RE = re.compile(
    r'\b(' + _alternation(METADATA_KEYWORDS) + r')\b',
    re.IGNORECASE
)

_METADATA_LINE_RE = re.compile(
    r'^\W*(?P<keyword>' + _alternation(METADATA_KEYWORDS) + r')\b'
    r'\s*(?P<colon>[:\-–])?\s*(?:about\s+|approx\.?\s+|approximately\s+)?-?\d',
    re.IGNORECASE
)

# "4 servings", "6-8 portions"
_COUNT_FIRST_SERVINGS_RE = re.compile(
    r'^\W*(-?\d+)(?:\s*(?:-|–|to)\s*\d+)?\s*(?:servings|serving|portions|people)\b',
    re.IGNORECASE
)


def looks_like_ingredient(line: str) -> bool:
    """
    Check whether a line has the shape "[quantity] [unit]? [name]".

    List numbering ("1.", "2)") is not a quantity, and "30 minutes" or
    "4 servings" are metadata rather than ingredients.

    Args:
        line: Normalized line text

    Returns:
        True if the line reads as an ingredient
    """
    text = re.sub(BULLET_PATTERN, '', line).strip()
    if not text or _ORDINAL_PREFIX_RE.match(text):
        return False

    match = _INGREDIENT_RE.match(text)
    if not match:
        return False

    name = match.group('name').strip()
    if not match.group('unit') and not re.search(r'[A-Za-z]', name):
        return False

    if name:
        head = name.split()[0].lower().strip('.,:;()')
        if head in METADATA_HEAD_WORDS:
            return False
    return True


def split_ingredient(line: str) -> IngredientParts:
    """
    Split an ingredient line into quantity, unit and name.

    Args:
        line: Ingredient line, with or without a bullet

    Returns:
        IngredientParts; lines without a leading quantity keep the whole
        text as the name
    """
    text = strip_list_marker(line)
    match = _INGREDIENT_RE.match(text)
    if not match:
        return IngredientParts(text=text, name=text)

    quantity = " ".join(match.group('quantity').split())
    unit = match.group('unit')
    if unit:
        unit = " ".join(unit.lower().split())

    name = match.group('name').strip(" ,-")
    name = re.sub(r'^of\s+', '', name, flags=re.IGNORECASE)

    return IngredientParts(text=text, quantity=quantity, unit=unit, name=name)


def parse_minutes(text: str) -> Optional[int]:
    """
    Read a duration in minutes.

    "45 minutes" -> 45, "1 hr" -> 60, "1 hour 30 minutes" -> 90,
    a bare number counts as minutes. A range keeps its lower bound.

    Args:
        text: Text holding a duration

    Returns:
        Minutes, or None when no number is present or the total exceeds a day
    """
    total = 0.0
    found = False
    for match in _TIME_RE.finditer(text or ""):
        value = float(match.group(1))
        if match.group('hours'):
            value *= 60
        total += value
        found = True

    if not found:
        return None

    minutes = int(round(total))
    if minutes > MAX_TIME_MINUTES:
        return None
    return minutes


def parse_servings(text: str) -> Optional[int]:
    """
    Read a servings count: the first integer ("Serves 4-6" -> 4).

    Zero and negative counts are returned as-is for the validator to flag.
    """
    match = re.search(r'-?\d+', text or "")
    if not match:
        return None
    return int(match.group(0))


def is_metadata_line(line: str) -> bool:
    """
    Check whether a line is a metadata line: a keyword such as "prep time",
    "cook time", "serves" or "yield" followed by a number, or a count
    followed by "servings".

    Args:
        line: Normalized line text

    Returns:
        True for metadata lines
    """
    text = line.strip()
    return bool(_METADATA_LINE_RE.match(text) or _COUNT_FIRST_SERVINGS_RE.match(text))


def is_explicit_metadata_line(line: str) -> bool:
    """
    Metadata line that cannot be read as a cooking step: the keyword is
    followed by a colon/dash, or the line is at most four words long.

    "Cook: 20 min" qualifies, "Cook 5 minutes, stirring often" does not.
    """
    text = line.strip()
    if _COUNT_FIRST_SERVINGS_RE.match(text):
        return True
    match = _METADATA_LINE_RE.match(text)
    if not match:
        return False
    return bool(match.group('colon')) or len(text.split()) <= 4


def is_labelled_metadata_line(line: str) -> bool:
    """
    Explicit metadata line that keeps its role inside a directions list.

    A bare verb keyword needs a colon there: "Cook: 20 min" is metadata,
    "Cook 20 minutes" is a step.
    """
    text = line.strip()
    if _COUNT_FIRST_SERVINGS_RE.match(text):
        return True
    match = _METADATA_LINE_RE.match(text)
    if not match:
        return False
    if match.group('colon'):
        return True
    keyword = " ".join(match.group('keyword').lower().split())
    return keyword not in METADATA_VERB_KEYWORDS and len(text.split()) <= 4


def extract_metadata(line: str) -> Dict[str, int]:
    """
    Extract times and servings from one metadata line.

    Each keyword owns the text up to the next keyword, so compound lines
    like "Prep: 15 min | Cook: 30 min | Serves 4" yield all three values.

    Args:
        line: Metadata line

    Returns:
        Mapping of field name (prep_time, cook_time, total_time, servings)
        to value; the first value wins when a field repeats
    """
    result: Dict[str, int] = {}
    matches = list(_METADATA_KEYWORD_RE.finditer(line))

    for i, match in enumerate(matches):
        keyword = " ".join(match.group(1).lower().split())
        field = METADATA_KEYWORDS[keyword]
        end = matches[i + 1].start() if i + 1 < len(matches) else len(line)
        segment = line[match.end():end]

        if field == 'servings':
            value = parse_servings(segment)
        else:
            value = parse_minutes(segment)

        if value is not None:
            result.setdefault(field, value)

    if 'servings' not in result:
        count = _COUNT_FIRST_SERVINGS_RE.match(line.strip())
        if count:
            result['servings'] = int(count.group(1))

    return result
