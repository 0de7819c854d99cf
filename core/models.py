"""
Core domain models for the recipe parsing pipeline.

These are pure data structures without business logic.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple


class LineRole(Enum):
    """Semantic role of one line of recipe text."""
    TITLE = "title"
    SECTION_HEADER = "section_header"
    INGREDIENT = "ingredient"
    INSTRUCTION_STEP = "instruction_step"
    METADATA = "metadata"
    NOISE = "noise"


class BackendName(Enum):
    """Parser backends in escalation order."""
    HEURISTIC = "heuristic"
    LOCAL_LLM = "local_llm"
    CLOUD_LLM = "cloud_llm"


class ParseError(Enum):
    """Reasons a parse run produced no candidate."""
    EMPTY_INPUT = "empty_input"
    ALL_BACKENDS_UNAVAILABLE = "all_backends_unavailable"
    CANCELLED = "cancelled"
    TIMEOUT = "timeout"


class EscalationState(Enum):
    """States of the escalation state machine."""
    IDLE = "idle"
    TRYING_HEURISTIC = "trying_heuristic"
    TRYING_LOCAL_LLM = "trying_local_llm"
    TRYING_CLOUD_LLM = "trying_cloud_llm"
    SUCCEEDED = "succeeded"
    EXHAUSTED_FAILED = "exhausted_failed"


@dataclass(frozen=True)
class BoundingBox:
    """Axis-aligned box of an OCR text region."""
    x: float
    y: float
    width: float
    height: float

    @property
    def area(self) -> float:
        """Calculate area."""
        return self.width * self.height

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            'x': self.x,
            'y': self.y,
            'width': self.width,
            'height': self.height,
        }


@dataclass(frozen=True)
class TextBlock:
    """One OCR-detected text region."""
    text: str
    confidence: float
    bounding_box: BoundingBox


@dataclass(frozen=True)
class OCRResult:
    """Output of the external OCR engine, consumed once per parse attempt."""
    text: str
    confidence: float
    language: str = "en"
    blocks: Tuple[TextBlock, ...] = ()


@dataclass(frozen=True)
class ClassifiedLine:
    """A normalized line with its assigned role."""
    text: str
    role: LineRole
    certainty: float
    source_block_index: Optional[int] = None
    method: str = "heuristic"  # which rule produced the role


@dataclass(frozen=True)
class IngredientParts:
    """An ingredient line split into quantity, unit and name."""
    text: str
    quantity: Optional[str] = None
    unit: Optional[str] = None
    name: str = ""

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            'text': self.text,
            'quantity': self.quantity,
            'unit': self.unit,
            'name': self.name,
        }


@dataclass(frozen=True)
class ParsedRecipe:
    """Structured recipe candidate produced by one backend attempt."""
    title: str
    ingredients: Tuple[str, ...] = ()
    instructions: Tuple[str, ...] = ()
    description: Optional[str] = None
    prep_time: Optional[int] = None  # minutes
    cook_time: Optional[int] = None  # minutes
    servings: Optional[int] = None
    confidence: float = 0.0
    notes: Tuple[str, ...] = ()

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            'title': self.title,
            'description': self.description,
            'ingredients': list(self.ingredients),
            'instructions': list(self.instructions),
            'prep_time': self.prep_time,
            'cook_time': self.cook_time,
            'servings': self.servings,
            'confidence': self.confidence,
            'notes': list(self.notes),
        }


@dataclass
class ValidationResult:
    """Diagnostics for a ParsedRecipe; errors block, warnings do not."""
    is_valid: bool
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    suggestions: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            'is_valid': self.is_valid,
            'errors': list(self.errors),
            'warnings': list(self.warnings),
            'suggestions': list(self.suggestions),
        }


@dataclass
class ParserBackendStatus:
    """Availability of one backend, refreshed per session with a TTL."""
    name: BackendName
    available: bool = True
    last_latency_ms: Optional[int] = None
    checked_at: Optional[float] = None  # monotonic seconds of last probe/update

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            'name': self.name.value,
            'available': self.available,
            'last_latency_ms': self.last_latency_ms,
        }


@dataclass(frozen=True)
class BackendAttempt:
    """Record of one backend call made during an escalation run."""
    backend: BackendName
    confidence: Optional[float] = None
    error: Optional[str] = None
    latency_ms: Optional[int] = None
    retried: bool = False


@dataclass
class ParseOutcome:
    """Result of one escalation run: a recipe or a ParseError."""
    recipe: Optional[ParsedRecipe] = None
    error: Optional[ParseError] = None
    backend_used: Optional[BackendName] = None
    low_confidence: bool = False
    final_state: EscalationState = EscalationState.IDLE
    transitions: List[Tuple[EscalationState, EscalationState]] = field(default_factory=list)
    attempts: List[BackendAttempt] = field(default_factory=list)

    @property
    def is_success(self) -> bool:
        """True when a candidate was returned."""
        return self.recipe is not None and self.error is None

    @property
    def confidence(self) -> float:
        """Confidence of the returned candidate, 0.0 when there is none."""
        return self.recipe.confidence if self.recipe is not None else 0.0
