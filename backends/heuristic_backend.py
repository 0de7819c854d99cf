"""Heuristic backend: the rule-based parser, always available."""
from typing import Optional

from core.models import BackendName, OCRResult, ParsedRecipe
from parsing.heuristic_parser import HeuristicRecipeParser
from .base import ParserBackend


class HeuristicBackend(ParserBackend):
    """Wraps HeuristicRecipeParser; no network, no time bound."""

    name = BackendName.HEURISTIC
    timeout = None

    def __init__(self, parser: Optional[HeuristicRecipeParser] = None):
        self.parser = parser or HeuristicRecipeParser()

    async def try_parse(self, text: str, ocr_result: OCRResult) -> ParsedRecipe:
        # Blocks carry geometry the plain text has lost
        if ocr_result.blocks:
            return self.parser.parse_ocr_result(ocr_result)
        return self.parser.parse_text(text, ocr_result.confidence)

    async def check_available(self) -> bool:
        return True
