"""
Confidence scoring shared by the heuristic parser, the LLM backends and
the validator.

score = 0.3 * ocr + 0.4 * classification + 0.3 * completeness, clamped to
[0, 1]. Weights are fixed so that scores from different backends compare.
"""
import math
from typing import Sequence

from core.constants import CONFIDENCE_WEIGHTS, PLACEHOLDER_TITLE
from core.models import ParsedRecipe


def clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    """Clamp a value into [low, high]; NaN maps to low."""
    if value is None or math.isnan(value):
        return low
    return max(low, min(high, value))


def score(
    ocr_confidence: float,
    classification_certainty: float,
    completeness: float
) -> float:
    """
    Combine the three signals into one recipe-level confidence.

    Args:
        ocr_confidence: OCR engine confidence
        classification_certainty: Average line certainty (or model certainty)
        completeness: Share of required fields populated

    Returns:
        Confidence in [0, 1]
    """
    combined = (
        CONFIDENCE_WEIGHTS['ocr'] * clamp(ocr_confidence)
        + CONFIDENCE_WEIGHTS['classification'] * clamp(classification_certainty)
        + CONFIDENCE_WEIGHTS['completeness'] * clamp(completeness)
    )
    return clamp(combined)


def completeness_ratio(has_title: bool, has_ingredients: bool, has_instructions: bool) -> float:
    """Share of the required fields {title, ingredients, instructions} present."""
    return sum([bool(has_title), bool(has_ingredients), bool(has_instructions)]) / 3.0


def recipe_completeness(recipe: ParsedRecipe) -> float:
    """Completeness of a candidate; the placeholder title counts as missing."""
    title = recipe.title.strip()
    return completeness_ratio(
        bool(title) and title != PLACEHOLDER_TITLE,
        bool(recipe.ingredients),
        bool(recipe.instructions),
    )


def average(values: Sequence[float]) -> float:
    """Mean of values, 0.0 for an empty sequence."""
    if not values:
        return 0.0
    return sum(values) / len(values)
