"""
Recipe Parsing API.

Provides endpoints for:
- Parsing OCR output into a structured recipe (single and batch)
- Validating a recipe edited by the user
- Splitting ingredient lines into quantity / unit / name
- Backend health
"""
import asyncio
from contextlib import asynccontextmanager
from typing import List

from fastapi import Depends, FastAPI, HTTPException, Request

from api.dependencies import close_parsing_service, get_parsing_service
from api.schemas import (
    BatchParseRequest,
    HealthResponse,
    IngredientPartsResponse,
    IngredientSplitRequest,
    ParseRequest,
    ParseResponse,
    RecipeSchema,
    ValidationResponse,
)
from config.logging_setup import get_logger
from config.settings import settings
from core.models import ParseError
from parsing.ingredients import split_ingredient
from services.escalation import CancellationToken
from services.recipe_parsing_service import RecipeParsingService

logger = get_logger(__name__)

ERROR_STATUS_CODES = {
    ParseError.EMPTY_INPUT: 422,
    ParseError.ALL_BACKENDS_UNAVAILABLE: 503,
    ParseError.TIMEOUT: 504,
    ParseError.CANCELLED: 503,
}

# Seconds between client disconnect checks while a parse runs
DISCONNECT_POLL_SECONDS = 0.5


# Create FastAPI app
parse_app = FastAPI(
    title="Recipe Parsing API",
    description="Turns OCR text from recipe photos into structured recipes",
    version="1.0.0"
)


@parse_app.on_event("shutdown")
async def shutdown_event():
    """Close backend network clients on shutdown."""
    await close_parsing_service()
    logger.info("Recipe Parsing API stopped")


async def watch_disconnect(
    http_request: Request,
    token: CancellationToken,
    interval: float = DISCONNECT_POLL_SECONDS
):
    """Fire the token once the client has disconnected."""
    while not token.cancelled:
        if await http_request.is_disconnected():
            logger.info("Client disconnected, cancelling parse")
            token.cancel()
            return
        await asyncio.sleep(interval)


@asynccontextmanager
async def disconnect_token(http_request: Request):
    """CancellationToken tied to the client connection for one request."""
    token = CancellationToken()
    watcher = asyncio.create_task(watch_disconnect(http_request, token))
    try:
        yield token
    finally:
        watcher.cancel()
        await asyncio.gather(watcher, return_exceptions=True)


@parse_app.post("/parse", response_model=ParseResponse)
async def parse_recipe(
    request: ParseRequest,
    http_request: Request,
    service: RecipeParsingService = Depends(get_parsing_service)
):
    """
    Parse OCR output into a recipe.

    Args:
        request: OCR text, confidence and optional blocks
        http_request: Incoming request; a client disconnect cancels the parse
        service: Parsing service

    Returns:
        Parsed recipe, validation, confidence and backend used
    """
    async with disconnect_token(http_request) as token:
        result = await service.parse(
            request.to_ocr_result(),
            confidence_threshold=request.confidence_threshold,
            cancel_token=token,
        )

    error = result.outcome.error
    if error is not None:
        raise HTTPException(
            status_code=ERROR_STATUS_CODES.get(error, 503),
            detail=error.value,
        )

    return result.to_dict()


@parse_app.post("/parse/batch", response_model=List[ParseResponse])
async def parse_recipes(
    request: BatchParseRequest,
    http_request: Request,
    service: RecipeParsingService = Depends(get_parsing_service)
):
    """
    Parse several OCR outputs; failures are reported per item.

    Args:
        request: Items to parse
        http_request: Incoming request; a client disconnect cancels the batch
        service: Parsing service

    Returns:
        One result per item, in request order
    """
    ocr_results = [item.to_ocr_result() for item in request.items]
    async with disconnect_token(http_request) as token:
        results = await service.parse_many(
            ocr_results,
            confidence_threshold=request.confidence_threshold,
            cancel_token=token,
        )
    return [result.to_dict() for result in results]


@parse_app.post("/validate", response_model=ValidationResponse)
async def validate_recipe(
    recipe: RecipeSchema,
    service: RecipeParsingService = Depends(get_parsing_service)
):
    """
    Validate a recipe, e.g. after manual corrections.

    Args:
        recipe: Recipe to check
        service: Parsing service

    Returns:
        Errors, warnings and suggestions
    """
    return service.validate(recipe.to_parsed_recipe()).to_dict()


@parse_app.post("/ingredients/split", response_model=List[IngredientPartsResponse])
async def split_ingredients(request: IngredientSplitRequest):
    """Split ingredient lines into quantity, unit and name."""
    return [split_ingredient(line).to_dict() for line in request.lines]


@parse_app.get("/health", response_model=HealthResponse)
async def health(service: RecipeParsingService = Depends(get_parsing_service)):
    """Backend availability; stale statuses are re-probed."""
    statuses = await service.check_availability()
    return {
        "status": "ok" if any(s.available for s in statuses) else "degraded",
        "backends": [s.to_dict() for s in statuses],
    }


@parse_app.get("/")
async def root():
    """API root endpoint."""
    return {
        "name": "Recipe Parsing API",
        "version": "1.0.0",
        "endpoints": {
            "parse": "POST /parse",
            "parse_batch": "POST /parse/batch",
            "validate": "POST /validate",
            "split_ingredients": "POST /ingredients/split",
            "health": "GET /health"
        }
    }


# Export app for uvicorn
app = parse_app


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=settings.api_host, port=settings.api_port)
