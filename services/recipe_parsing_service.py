"""
Recipe parsing service.

End-to-end pipeline used by the HTTP API and the CLI:
escalating parse -> validation -> plausibility check. Also provides batch
parsing and the backend health report.
"""
import asyncio
from dataclasses import dataclass
from typing import List, Optional, Sequence

from backends import build_backends
from config.logging_setup import get_logger
from config.settings import Settings, settings as default_settings
from core.models import (
    OCRResult,
    ParsedRecipe,
    ParseOutcome,
    ParserBackendStatus,
    ValidationResult,
)
from parsing.validator import RecipeValidator, looks_like_recipe
from .escalation import CancellationToken, ParserEscalationController

logger = get_logger(__name__)


@dataclass
class RecipeParseResult:
    """Outcome of one parse plus the diagnostics the UI needs."""
    outcome: ParseOutcome
    validation: Optional[ValidationResult] = None
    looks_like_recipe: bool = False

    @property
    def recipe(self) -> Optional[ParsedRecipe]:
        return self.outcome.recipe

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        outcome = self.outcome
        return {
            'parsed_recipe': outcome.recipe.to_dict() if outcome.recipe else None,
            'validation': self.validation.to_dict() if self.validation else None,
            'confidence': outcome.confidence,
            'backend_used': outcome.backend_used.value if outcome.backend_used else None,
            'low_confidence': outcome.low_confidence,
            'looks_like_recipe': self.looks_like_recipe,
            'error': outcome.error.value if outcome.error else None,
        }


class RecipeParsingService:
    """
    Service for turning OCR results into validated recipes.
    """

    def __init__(
        self,
        controller: ParserEscalationController,
        validator: Optional[RecipeValidator] = None,
        batch_max_concurrency: int = 4
    ):
        """
        Initialize the parsing service.

        Args:
            controller: Escalation controller owning the backends
            validator: Recipe validator (default bounds if omitted)
            batch_max_concurrency: Parallel runs in parse_many
        """
        self.controller = controller
        self.validator = validator or RecipeValidator()
        self.batch_max_concurrency = max(1, batch_max_concurrency)

    @classmethod
    def from_settings(
        cls,
        config: Optional[Settings] = None,
        heuristic_only: bool = False
    ) -> "RecipeParsingService":
        """
        Build the service with backends described by settings.

        Args:
            config: Settings (defaults to the global settings)
            heuristic_only: Use only the heuristic backend

        Returns:
            Configured service
        """
        config = config or default_settings
        backends = build_backends(config, heuristic_only=heuristic_only)
        logger.info(f"Parser backends: {[b.name.value for b in backends]}")

        controller = ParserEscalationController(
            backends,
            confidence_threshold=config.confidence_threshold,
            status_ttl=config.backend_status_ttl,
        )
        return cls(controller, batch_max_concurrency=config.batch_max_concurrency)

    async def parse(
        self,
        ocr_result: OCRResult,
        confidence_threshold: Optional[float] = None,
        cancel_token: Optional[CancellationToken] = None
    ) -> RecipeParseResult:
        """
        Parse one OCR result and validate the candidate.

        Args:
            ocr_result: OCR output
            confidence_threshold: Override of the controller threshold
            cancel_token: Optional caller cancellation signal

        Returns:
            RecipeParseResult; validation is None when no candidate was produced
        """
        outcome = await self.controller.parse_with_escalation(
            ocr_result,
            confidence_threshold=confidence_threshold,
            cancel_token=cancel_token,
        )

        validation = None
        if outcome.recipe is not None:
            validation = self.validator.validate(outcome.recipe)

        return RecipeParseResult(
            outcome=outcome,
            validation=validation,
            looks_like_recipe=looks_like_recipe(ocr_result.text),
        )

    async def parse_many(
        self,
        ocr_results: Sequence[OCRResult],
        confidence_threshold: Optional[float] = None,
        cancel_token: Optional[CancellationToken] = None
    ) -> List[RecipeParseResult]:
        """
        Parse several OCR results concurrently.

        Each item runs its own escalation; at most batch_max_concurrency
        run at a time. Results are in input order.

        Args:
            ocr_results: OCR outputs
            confidence_threshold: Override of the controller threshold
            cancel_token: Cancels every item still running

        Returns:
            One RecipeParseResult per input
        """
        semaphore = asyncio.Semaphore(self.batch_max_concurrency)

        async def _parse_one(ocr_result: OCRResult) -> RecipeParseResult:
            async with semaphore:
                return await self.parse(ocr_result, confidence_threshold, cancel_token)

        return list(await asyncio.gather(*(_parse_one(r) for r in ocr_results)))

    def validate(self, recipe: ParsedRecipe) -> ValidationResult:
        """Validate a recipe supplied by the caller."""
        return self.validator.validate(recipe)

    async def check_availability(self, force: bool = False) -> List[ParserBackendStatus]:
        """Backend statuses, re-probing stale ones."""
        return await self.controller.check_availability(force=force)

    async def aclose(self):
        """Close network clients held by the backends."""
        for backend in self.controller.backends:
            await backend.close()
