"""
Heuristic Recipe Parser

Assembles classified lines into a ParsedRecipe candidate without any model
or network dependency. Always returns a candidate; incomplete input gives
empty fields and a low confidence, and the escalation controller decides
what to do with it.
"""
from typing import Dict, List, Optional, Sequence, Tuple

from core.constants import PLACEHOLDER_TITLE
from core.models import ClassifiedLine, LineRole, OCRResult, ParsedRecipe
from parsing.confidence import average, completeness_ratio, score
from parsing.ingredients import extract_metadata
from parsing.line_classifier import (
    FALLBACK_NOTES,
    FALLBACK_PROSE,
    LineClassifier,
)
from utils.text_utils import normalize_text, split_lines, strip_list_marker

# Prose lines shorter than this are not taken as a description
MIN_DESCRIPTION_WORDS = 3


def lines_from_ocr(ocr_result: OCRResult) -> Tuple[List[str], List[Optional[int]]]:
    """
    Build normalized lines from an OCR result.

    With blocks, each block is normalized on its own so that every line
    keeps a back-reference to its block. Without blocks (or when all blocks
    are empty) the full text is normalized and split.

    Args:
        ocr_result: OCR output

    Returns:
        Tuple of (lines, source block index per line)
    """
    lines: List[str] = []
    indices: List[Optional[int]] = []

    for idx, block in enumerate(ocr_result.blocks):
        normalized = normalize_text(block.text)
        if not normalized:
            continue
        for line in split_lines(normalized):
            lines.append(line)
            indices.append(idx)

    if lines:
        return lines, indices

    lines = split_lines(normalize_text(ocr_result.text))
    return lines, [None] * len(lines)


class HeuristicRecipeParser:
    """
    Rule-based recipe assembly on top of the line classifier.
    """

    def __init__(self, classifier: Optional[LineClassifier] = None):
        self.classifier = classifier or LineClassifier()

    def parse_ocr_result(self, ocr_result: OCRResult) -> ParsedRecipe:
        """
        Normalize, classify and assemble an OCR result.

        Args:
            ocr_result: OCR output

        Returns:
            Recipe candidate
        """
        lines, indices = lines_from_ocr(ocr_result)
        classified = self.classifier.classify(
            lines,
            blocks=ocr_result.blocks or None,
            source_indices=indices,
        )
        return self.parse(classified, ocr_result.confidence)

    def parse_text(self, text: str, ocr_confidence: float = 1.0) -> ParsedRecipe:
        """Parse plain text without block geometry."""
        return self.parse_ocr_result(OCRResult(text=text, confidence=ocr_confidence))

    def parse(
        self,
        classified: Sequence[ClassifiedLine],
        ocr_confidence: float
    ) -> ParsedRecipe:
        """
        Assemble classified lines into a recipe candidate.

        Args:
            classified: Lines in document order
            ocr_confidence: OCR engine confidence for the page

        Returns:
            ParsedRecipe; never raises for incomplete input
        """
        title, title_index = self._pick_title(classified)

        ingredients = self._collect(classified, LineRole.INGREDIENT)
        instructions = self._collect(classified, LineRole.INSTRUCTION_STEP)
        notes = [
            strip_list_marker(line.text) for line in classified
            if line.method == FALLBACK_NOTES and line.text.strip()
        ]

        metadata = self._collect_metadata(classified)
        description = self._find_description(classified, title_index)

        certainties = [line.certainty for line in classified if line.role != LineRole.NOISE]
        completeness = completeness_ratio(
            title is not None,
            bool(ingredients),
            bool(instructions),
        )
        confidence = score(ocr_confidence, average(certainties), completeness)

        return ParsedRecipe(
            title=title if title is not None else PLACEHOLDER_TITLE,
            description=description,
            ingredients=tuple(ingredients),
            instructions=tuple(instructions),
            prep_time=metadata.get('prep_time'),
            cook_time=metadata.get('cook_time'),
            servings=metadata.get('servings'),
            confidence=confidence,
            notes=tuple(notes),
        )

    @staticmethod
    def _pick_title(classified: Sequence[ClassifiedLine]) -> Tuple[Optional[str], Optional[int]]:
        """
        Highest-certainty Title line (earliest on ties). Without one the
        recipe gets the placeholder title; ingredient and step lines are
        never reused as the title.
        """
        best_index = None
        for i, line in enumerate(classified):
            if line.role != LineRole.TITLE or not line.text.strip():
                continue
            if best_index is None or line.certainty > classified[best_index].certainty:
                best_index = i

        if best_index is None:
            return None, None

        title = strip_list_marker(classified[best_index].text).rstrip(':').strip()
        if not title:
            return None, None
        return title, best_index

    @staticmethod
    def _collect(classified: Sequence[ClassifiedLine], role: LineRole) -> List[str]:
        """Texts of all lines with a role, in source order, markers removed."""
        items = []
        for line in classified:
            if line.role != role:
                continue
            text = strip_list_marker(line.text)
            if text:
                items.append(text)
        return items

    @staticmethod
    def _collect_metadata(classified: Sequence[ClassifiedLine]) -> Dict[str, int]:
        """Merge metadata lines; the first value seen for a field wins."""
        merged: Dict[str, int] = {}
        for line in classified:
            if line.role != LineRole.METADATA:
                continue
            for field, value in extract_metadata(line.text).items():
                merged.setdefault(field, value)
        return merged

    @staticmethod
    def _find_description(
        classified: Sequence[ClassifiedLine],
        title_index: Optional[int]
    ) -> Optional[str]:
        """
        Free prose between the title and the first ingredient, joined.
        """
        parts = []
        for i, line in enumerate(classified):
            if line.role == LineRole.INGREDIENT:
                break
            if i == title_index or line.method != FALLBACK_PROSE:
                continue
            if len(line.text.split()) >= MIN_DESCRIPTION_WORDS:
                parts.append(line.text.strip())

        if not parts:
            return None
        return " ".join(parts)
