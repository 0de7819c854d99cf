"""
Recipe Validator

Checks a ParsedRecipe for completeness and plausibility. Errors block a
"successful" classification upstream, warnings do not, suggestions are
hints for the user. Findings are returned as data, never raised.
"""
import re

from core.constants import (
    LOW_CONFIDENCE_REVIEW_THRESHOLD,
    MAX_REASONABLE_SERVINGS,
    MAX_REASONABLE_TIME_MINUTES,
    MIN_RECIPE_INDICATORS,
    MIN_RECIPE_TEXT_LENGTH,
    PLACEHOLDER_TITLE,
    RECIPE_INDICATORS,
)
from core.models import ParsedRecipe, ValidationResult
from parsing.ingredients import split_ingredient


class RecipeValidator:
    """
    Validator for recipe candidates. Pure; safe to share.
    """

    def __init__(
        self,
        max_time_minutes: int = MAX_REASONABLE_TIME_MINUTES,
        max_servings: int = MAX_REASONABLE_SERVINGS,
        review_threshold: float = LOW_CONFIDENCE_REVIEW_THRESHOLD
    ):
        self.max_time_minutes = max_time_minutes
        self.max_servings = max_servings
        self.review_threshold = review_threshold

    def validate(self, recipe: ParsedRecipe) -> ValidationResult:
        """
        Validate a recipe candidate.

        Args:
            recipe: Candidate to check

        Returns:
            ValidationResult; is_valid is False when any error was found
        """
        errors = []
        warnings = []
        suggestions = []

        # Required fields
        if not recipe.title or not recipe.title.strip():
            errors.append("Title is required")
        elif recipe.title.strip() == PLACEHOLDER_TITLE:
            warnings.append("Title could not be detected, please enter one")

        if not recipe.ingredients:
            errors.append("At least one ingredient is required")
        if not recipe.instructions:
            errors.append("At least one instruction is required")

        # Times
        for label, minutes in (("Prep time", recipe.prep_time), ("Cook time", recipe.cook_time)):
            if minutes is None:
                continue
            if minutes < 0:
                warnings.append(f"{label} cannot be negative")
            elif minutes > self.max_time_minutes:
                warnings.append(
                    f"{label} of {minutes} minutes is unusually long, please verify"
                )

        # Servings
        if recipe.servings is not None:
            if recipe.servings <= 0:
                warnings.append("Servings should be a positive number")
            elif recipe.servings > self.max_servings:
                warnings.append(
                    f"{recipe.servings} servings is unusually many, please verify"
                )

        # Ingredient sanity
        if len(recipe.ingredients) < 2 and len(recipe.instructions) > 3:
            warnings.append(
                "Possible missing ingredients: only "
                f"{len(recipe.ingredients)} ingredient(s) for {len(recipe.instructions)} steps"
            )

        for line in recipe.ingredients:
            parts = split_ingredient(line)
            if parts.quantity and not parts.name:
                warnings.append(f"Ingredient '{line}' has a quantity but no name")

        # Suggestions
        if recipe.confidence < self.review_threshold:
            suggestions.append("Consider manual review of this recipe before saving")
        if recipe.prep_time is None and recipe.cook_time is None:
            suggestions.append("Add prep or cook time")
        if recipe.servings is None:
            suggestions.append("Add the number of servings")

        return ValidationResult(
            is_valid=not errors,
            errors=errors,
            warnings=warnings,
            suggestions=suggestions,
        )


def validate_recipe(recipe: ParsedRecipe) -> ValidationResult:
    """Validate with default bounds."""
    return RecipeValidator().validate(recipe)


def looks_like_recipe(text: str) -> bool:
    """
    Plausibility check on raw text before or after parsing.

    Text shorter than 20 characters, or mentioning fewer than 3 recipe
    indicator words, is probably not a recipe. Advisory only.

    Args:
        text: Raw or normalized OCR text

    Returns:
        True if the text reads like a recipe
    """
    if not text or len(text.strip()) < MIN_RECIPE_TEXT_LENGTH:
        return False

    lowered = text.lower()
    found = sum(
        1 for word in RECIPE_INDICATORS
        if re.search(r'\b' + re.escape(word), lowered)
    )
    return found >= MIN_RECIPE_INDICATORS
