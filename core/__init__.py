"""Core package - Domain models, errors and constants."""

from .models import (
    LineRole,
    BackendName,
    ParseError,
    EscalationState,
    BoundingBox,
    TextBlock,
    OCRResult,
    ClassifiedLine,
    IngredientParts,
    ParsedRecipe,
    ValidationResult,
    ParserBackendStatus,
    BackendAttempt,
    ParseOutcome,
)
from .errors import (
    BackendError,
    BackendUnavailableError,
    BackendTimeoutError,
    MalformedResponseError,
    BackendAuthError,
)
from .constants import (
    CONFIDENCE_WEIGHTS,
    DEFAULT_CONFIDENCE_THRESHOLD,
    LINE_CERTAINTY,
    SECTION_HEADER_WORDS,
    PLACEHOLDER_TITLE,
    RECIPE_PARSE_PROMPT,
)

__all__ = [
    'LineRole',
    'BackendName',
    'ParseError',
    'EscalationState',
    'BoundingBox',
    'TextBlock',
    'OCRResult',
    'ClassifiedLine',
    'IngredientParts',
    'ParsedRecipe',
    'ValidationResult',
    'ParserBackendStatus',
    'BackendAttempt',
    'ParseOutcome',
    'BackendError',
    'BackendUnavailableError',
    'BackendTimeoutError',
    'MalformedResponseError',
    'BackendAuthError',
    'CONFIDENCE_WEIGHTS',
    'DEFAULT_CONFIDENCE_THRESHOLD',
    'LINE_CERTAINTY',
    'SECTION_HEADER_WORDS',
    'PLACEHOLDER_TITLE',
    'RECIPE_PARSE_PROMPT',
]
