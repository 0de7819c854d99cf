"""
Pydantic schemas for API request/response validation.
"""
from typing import List, Optional

from pydantic import BaseModel, Field

from core.models import BoundingBox, OCRResult, ParsedRecipe, TextBlock


class BoundingBoxSchema(BaseModel):
    """Bounding box of an OCR text block."""
    x: float = Field(ge=0)
    y: float = Field(ge=0)
    width: float = Field(gt=0)
    height: float = Field(gt=0)


class TextBlockSchema(BaseModel):
    """One OCR-detected text region."""
    text: str
    confidence: float = Field(ge=0.0, le=1.0)
    bounding_box: BoundingBoxSchema


class ParseRequest(BaseModel):
    """Request body for parsing OCR output."""
    text: str
    confidence: float = Field(default=1.0, ge=0.0, le=1.0)
    language: str = "en"
    blocks: Optional[List[TextBlockSchema]] = None
    confidence_threshold: Optional[float] = Field(default=None, ge=0.0, le=1.0)

    def to_ocr_result(self) -> OCRResult:
        """Convert to the core OCRResult."""
        blocks = tuple(
            TextBlock(
                text=b.text,
                confidence=b.confidence,
                bounding_box=BoundingBox(
                    x=b.bounding_box.x,
                    y=b.bounding_box.y,
                    width=b.bounding_box.width,
                    height=b.bounding_box.height,
                ),
            )
            for b in (self.blocks or [])
        )
        return OCRResult(
            text=self.text,
            confidence=self.confidence,
            language=self.language,
            blocks=blocks,
        )


class BatchParseRequest(BaseModel):
    """Request body for parsing several OCR outputs."""
    items: List[ParseRequest] = Field(min_length=1)
    confidence_threshold: Optional[float] = Field(default=None, ge=0.0, le=1.0)


class RecipeSchema(BaseModel):
    """Structured recipe."""
    title: str
    description: Optional[str] = None
    ingredients: List[str] = []
    instructions: List[str] = []
    prep_time: Optional[int] = None
    cook_time: Optional[int] = None
    servings: Optional[int] = None
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    notes: List[str] = []

    def to_parsed_recipe(self) -> ParsedRecipe:
        """Convert to the core ParsedRecipe."""
        return ParsedRecipe(
            title=self.title,
            description=self.description,
            ingredients=tuple(self.ingredients),
            instructions=tuple(self.instructions),
            prep_time=self.prep_time,
            cook_time=self.cook_time,
            servings=self.servings,
            confidence=self.confidence,
            notes=tuple(self.notes),
        )


class ValidationResponse(BaseModel):
    """Validator findings."""
    is_valid: bool
    errors: List[str]
    warnings: List[str]
    suggestions: List[str]


class ParseResponse(BaseModel):
    """Response for one parsed OCR result."""
    parsed_recipe: Optional[RecipeSchema] = None
    validation: Optional[ValidationResponse] = None
    confidence: float
    backend_used: Optional[str] = None
    low_confidence: bool = False
    looks_like_recipe: bool = False
    error: Optional[str] = None


class IngredientSplitRequest(BaseModel):
    """Request body for splitting ingredient lines."""
    lines: List[str]


class IngredientPartsResponse(BaseModel):
    """One ingredient line split into parts."""
    text: str
    quantity: Optional[str] = None
    unit: Optional[str] = None
    name: str


class BackendStatusResponse(BaseModel):
    """Availability of one parser backend."""
    name: str
    available: bool
    last_latency_ms: Optional[int] = None


class HealthResponse(BaseModel):
    """Service health with backend statuses."""
    status: str
    backends: List[BackendStatusResponse]
