"""
Line Classifier Module

Assigns each normalized line of recipe text a role: title, section header,
ingredient, instruction step, metadata or noise.

Rules are applied in order and the first match wins:
1. Title       - first content line, or a block in large type
2. Header      - short lexicon line ("Ingredients", "Directions", ...)
3. Ingredient  - "[quantity] [unit]? name", or inside an ingredients section
4. Step        - ordinal prefix ("1.", "Step 2", "First,"), or inside an
                 instructions section
5. Metadata    - "prep time" / "serves" / "yield" followed by a number
6. Noise       - empty, punctuation, page numbers, repeated running headers
7. Fallback    - section context inferred from earlier lines, else noise

A line that reads both as an ingredient and as a step goes to the section
it sits in, otherwise to the ingredient rule.
"""
from dataclasses import dataclass
from typing import List, Optional, Sequence, Set
import re

from core.constants import (
    BULLET_PATTERN,
    LARGE_FONT_RATIO,
    LINE_CERTAINTY,
    MAX_HEADER_WORDS,
    SECTION_HEADER_WORDS,
    STEP_PREFIX_PATTERNS,
)
from core.models import ClassifiedLine, LineRole, TextBlock
from parsing.filters import find_repeated_lines, is_blank, is_noise_line
from parsing.ingredients import (
    is_explicit_metadata_line,
    is_labelled_metadata_line,
    is_metadata_line,
    looks_like_ingredient,
)
from utils.bbox_utils import is_large_block, median_block_height

INGREDIENTS = 'ingredients'
INSTRUCTIONS = 'instructions'
NOTES = 'notes'

# Methods of lines that carry free text rather than a recognised role
FALLBACK_PROSE = 'fallback'
FALLBACK_NOTES = 'fallback_notes'


@dataclass
class _SectionState:
    """Section context while walking the lines top to bottom."""
    explicit: Optional[str] = None   # opened by a header
    implicit: Optional[str] = None   # inferred from the last pattern match
    lines_in_section: int = 0


def match_section_header(text: str) -> Optional[str]:
    """
    Check a line against the header lexicon.

    Args:
        text: Line text

    Returns:
        Section kind ('ingredients', 'instructions', 'notes') or None
    """
    stripped = text.strip()
    if not stripped or re.match(BULLET_PATTERN, stripped) or re.search(r'\d', stripped):
        return None

    cleaned = re.sub(r'[^\w\s]', ' ', stripped.lower())
    words = cleaned.split()
    if not words or len(words) > MAX_HEADER_WORDS:
        return None
    cleaned = " ".join(words)

    if cleaned in SECTION_HEADER_WORDS:
        return SECTION_HEADER_WORDS[cleaned]

    # "For the Sauce Ingredients", "Ingredients for the dough"
    for phrase in sorted(SECTION_HEADER_WORDS, key=len, reverse=True):
        if cleaned.startswith(phrase + " ") or cleaned.endswith(" " + phrase):
            return SECTION_HEADER_WORDS[phrase]
    return None


def has_step_prefix(text: str) -> bool:
    """Check for an ordinal step prefix: "1.", "2)", "Step 3", "First,"."""
    for pattern in STEP_PREFIX_PATTERNS:
        if re.match(pattern, text, re.IGNORECASE):
            return True
    return False


def _pattern_certainty(pattern_match: bool, position_match: bool) -> float:
    if pattern_match and position_match:
        return LINE_CERTAINTY['pattern_and_position']
    return LINE_CERTAINTY['pattern']


def _match_method(kind: str, pattern_match: bool, position_match: bool) -> str:
    if pattern_match and position_match:
        return f"{kind}_pattern_position"
    if pattern_match:
        return f"{kind}_pattern"
    return f"{kind}_position"


class LineClassifier:
    """
    Heuristic line classifier.

    Stateless between calls; one instance can be shared by concurrent
    parse runs.
    """

    def __init__(self, large_font_ratio: float = LARGE_FONT_RATIO):
        self.large_font_ratio = large_font_ratio

    def classify(
        self,
        lines: Sequence[str],
        blocks: Optional[Sequence[TextBlock]] = None,
        source_indices: Optional[Sequence[Optional[int]]] = None
    ) -> List[ClassifiedLine]:
        """
        Classify every line, preserving order.

        Args:
            lines: Normalized lines, empty strings marking paragraph breaks
            blocks: Optional OCR blocks. Used when they align 1:1 with
                lines, or when source_indices maps lines to blocks
            source_indices: Optional per-line index into blocks

        Returns:
            One ClassifiedLine per input line
        """
        lines = list(lines)
        indices = self._resolve_block_indices(lines, blocks, source_indices)
        median_height = median_block_height(blocks) if blocks else None
        repeated = find_repeated_lines(lines)
        first_content = self._first_content_index(lines, repeated)

        state = _SectionState()
        classified: List[ClassifiedLine] = []

        for i, text in enumerate(lines):
            block_index = indices[i]
            large = False
            if block_index is not None and median_height:
                large = is_large_block(blocks[block_index], median_height, self.large_font_ratio)

            line = self._classify_line(
                i, text, state, repeated,
                is_first_content=(i == first_content),
                is_large=large,
            )
            classified.append(ClassifiedLine(
                text=text,
                role=line[0],
                certainty=line[1],
                source_block_index=block_index,
                method=line[2],
            ))

        return classified

    def _classify_line(
        self,
        index: int,
        text: str,
        state: _SectionState,
        repeated: Set[str],
        is_first_content: bool,
        is_large: bool
    ):
        """Apply the rules to one line; returns (role, certainty, method)."""
        if is_blank(text):
            # A blank run closes an ingredient list once it has started
            if state.explicit == INGREDIENTS and state.lines_in_section > 0:
                state.explicit = None
            if state.implicit == INGREDIENTS:
                state.implicit = None
            return LineRole.NOISE, LINE_CERTAINTY['noise'], 'noise'

        noise = is_noise_line(text, repeated)
        header = match_section_header(text)

        # 1. Title
        first_line_title = is_first_content and not is_explicit_metadata_line(text)
        if not noise and header is None and (first_line_title or is_large):
            certainty = LINE_CERTAINTY['title']
            if index == 0:
                certainty += LINE_CERTAINTY['title_first_line_bonus']
            method = 'title_first_line' if first_line_title else 'title_large_font'
            return LineRole.TITLE, min(round(certainty, 4), 1.0), method

        # 2. Section header
        if header is not None:
            state.explicit = header
            state.implicit = None
            state.lines_in_section = 0
            return LineRole.SECTION_HEADER, LINE_CERTAINTY['section_header'], 'section_header'

        state.lines_in_section += 1

        # Notes sections keep everything except metadata and noise
        if state.explicit == NOTES:
            if is_explicit_metadata_line(text):
                return LineRole.METADATA, LINE_CERTAINTY['metadata'], 'metadata'
            if noise:
                return LineRole.NOISE, LINE_CERTAINTY['noise'], 'noise'
            return LineRole.NOISE, LINE_CERTAINTY['fallback'], FALLBACK_NOTES

        # Section membership alone does not claim metadata or noise lines
        if state.explicit == INSTRUCTIONS:
            metadata_line = is_labelled_metadata_line(text)
        else:
            metadata_line = is_explicit_metadata_line(text)
        claimable = not noise and not metadata_line
        in_ingredients = state.explicit == INGREDIENTS and claimable
        in_instructions = state.explicit == INSTRUCTIONS and claimable

        ingredient_pattern = looks_like_ingredient(text)
        step_pattern = has_step_prefix(text)
        ingredient_match = ingredient_pattern or in_ingredients
        step_match = step_pattern or in_instructions

        # 3./4. Ingredient or step; ties go to the enclosing section
        if ingredient_match and step_match:
            if in_instructions:
                ingredient_match = False
            else:
                step_match = False

        if ingredient_match:
            state.implicit = INGREDIENTS
            return (
                LineRole.INGREDIENT,
                _pattern_certainty(ingredient_pattern, in_ingredients),
                _match_method('ingredient', ingredient_pattern, in_ingredients),
            )

        if step_match:
            state.implicit = INSTRUCTIONS
            return (
                LineRole.INSTRUCTION_STEP,
                _pattern_certainty(step_pattern, in_instructions),
                _match_method('step', step_pattern, in_instructions),
            )

        # 5. Metadata
        if is_metadata_line(text):
            return LineRole.METADATA, LINE_CERTAINTY['metadata'], 'metadata'

        # 6. Noise
        if noise:
            return LineRole.NOISE, LINE_CERTAINTY['noise'], 'noise'

        # 7. Fallback on inferred context
        if state.implicit == INGREDIENTS:
            return LineRole.INGREDIENT, LINE_CERTAINTY['fallback'], 'fallback_ingredient'
        if state.implicit == INSTRUCTIONS:
            return LineRole.INSTRUCTION_STEP, LINE_CERTAINTY['fallback'], 'fallback_step'
        return LineRole.NOISE, LINE_CERTAINTY['fallback'], FALLBACK_PROSE

    @staticmethod
    def _first_content_index(lines: Sequence[str], repeated: Set[str]) -> Optional[int]:
        """Index of the first line that is neither blank nor noise."""
        for i, text in enumerate(lines):
            if not is_noise_line(text, repeated):
                return i
        return None

    @staticmethod
    def _resolve_block_indices(
        lines: Sequence[str],
        blocks: Optional[Sequence[TextBlock]],
        source_indices: Optional[Sequence[Optional[int]]]
    ) -> List[Optional[int]]:
        """Map each line to its source block, or None when unknown."""
        if not blocks:
            return [None] * len(lines)

        if source_indices is not None:
            if len(source_indices) != len(lines):
                return [None] * len(lines)
            return [
                idx if idx is not None and 0 <= idx < len(blocks) else None
                for idx in source_indices
            ]

        if len(blocks) == len(lines):
            return list(range(len(lines)))
        return [None] * len(lines)


_default_classifier = LineClassifier()


def classify_lines(
    lines: Sequence[str],
    blocks: Optional[Sequence[TextBlock]] = None,
    source_indices: Optional[Sequence[Optional[int]]] = None
) -> List[ClassifiedLine]:
    """Classify lines with the default classifier."""
    return _default_classifier.classify(lines, blocks, source_indices)
