"""
API Dependencies - Dependency injection for FastAPI.

Provides the shared recipe parsing service.
"""
from typing import Optional

from config.settings import settings
from services.recipe_parsing_service import RecipeParsingService

_parsing_service: Optional[RecipeParsingService] = None


def get_parsing_service() -> RecipeParsingService:
    """
    Dependency for the recipe parsing service.

    One service (and so one backend status cache) is shared by all
    requests of the process.

    Returns:
        RecipeParsingService instance
    """
    global _parsing_service
    if _parsing_service is None:
        _parsing_service = RecipeParsingService.from_settings(settings)
    return _parsing_service


async def close_parsing_service():
    """Release the shared service's network clients."""
    global _parsing_service
    if _parsing_service is not None:
        await _parsing_service.aclose()
        _parsing_service = None
