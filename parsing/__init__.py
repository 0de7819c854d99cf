"""Parsing package - Heuristic recipe text parsing."""

from .confidence import score, recipe_completeness
from .line_classifier import LineClassifier, classify_lines, match_section_header
from .heuristic_parser import HeuristicRecipeParser, lines_from_ocr
from .ingredients import split_ingredient, parse_minutes, parse_servings, extract_metadata
from .validator import RecipeValidator, validate_recipe, looks_like_recipe

__all__ = [
    'score',
    'recipe_completeness',
    'LineClassifier',
    'classify_lines',
    'match_section_header',
    'HeuristicRecipeParser',
    'lines_from_ocr',
    'split_ingredient',
    'parse_minutes',
    'parse_servings',
    'extract_metadata',
    'RecipeValidator',
    'validate_recipe',
    'looks_like_recipe',
]
