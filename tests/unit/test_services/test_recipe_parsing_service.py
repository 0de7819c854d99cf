"""
Unit tests for services.recipe_parsing_service module.
"""
import asyncio

import pytest
from conftest import SCENARIO_A_TEXT, FakeLLMClient, ScriptedBackend, make_recipe
from backends.heuristic_backend import HeuristicBackend
from backends.llm_backend import LLMRecipeBackend
from config.settings import Settings
from core.models import BackendName, OCRResult, ParseError
from services.escalation import ParserEscalationController
from services.recipe_parsing_service import RecipeParsingService


def _heuristic_service(**kwargs):
    controller = ParserEscalationController([HeuristicBackend()])
    return RecipeParsingService(controller, **kwargs)


class ConcurrencyTracker(ScriptedBackend):
    """Scripted backend that records how many calls overlap."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.active = 0
        self.max_active = 0

    async def try_parse(self, text, ocr_result):
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            await asyncio.sleep(0.02)
            return await super().try_parse(text, ocr_result)
        finally:
            self.active -= 1


class TestParse:
    """Tests for RecipeParsingService.parse."""

    def test_parse_and_validate(self):
        """Test a parsed recipe comes with its validation."""
        service = _heuristic_service()

        result = asyncio.run(service.parse(OCRResult(text=SCENARIO_A_TEXT, confidence=0.9)))

        assert result.recipe.title == "Chocolate Chip Cookies"
        assert result.validation.is_valid
        assert result.looks_like_recipe
        data = result.to_dict()
        assert data['backend_used'] == "heuristic"
        assert data['error'] is None
        assert data['parsed_recipe']['ingredients'] == ["2 cups flour", "1 cup sugar"]
        assert data['validation']['is_valid'] is True

    def test_failed_parse_has_no_validation(self):
        """Test failures carry the error and no validation."""
        service = _heuristic_service()

        result = asyncio.run(service.parse(OCRResult(text="", confidence=0.9)))

        assert result.recipe is None
        assert result.validation is None
        assert result.to_dict()['error'] == "empty_input"
        assert result.to_dict()['confidence'] == 0.0

    def test_validate(self):
        """Test validating a caller-supplied recipe."""
        service = _heuristic_service()

        assert service.validate(make_recipe(0.9)).is_valid


class TestParseMany:
    """Tests for RecipeParsingService.parse_many."""

    def test_results_in_input_order(self, messy_recipe_text):
        """Test each item gets its own result, in order."""
        service = _heuristic_service()
        items = [
            OCRResult(text=SCENARIO_A_TEXT, confidence=0.9),
            OCRResult(text="", confidence=0.9),
            OCRResult(text=messy_recipe_text, confidence=0.9),
        ]

        results = asyncio.run(service.parse_many(items))

        assert results[0].recipe.title == "Chocolate Chip Cookies"
        assert results[1].outcome.error == ParseError.EMPTY_INPUT
        assert results[2].recipe.title == "Grandma's Banana Bread"

    def test_concurrency_limit(self):
        """Test no more than batch_max_concurrency runs overlap."""
        backend = ConcurrencyTracker(BackendName.HEURISTIC, [make_recipe(0.9)])
        service = RecipeParsingService(ParserEscalationController([backend]), batch_max_concurrency=2)
        items = [OCRResult(text=SCENARIO_A_TEXT, confidence=0.9) for _ in range(5)]

        results = asyncio.run(service.parse_many(items))

        assert len(results) == 5
        assert backend.parse_calls == 5
        assert backend.max_active == 2


class TestLifecycle:
    """Tests for construction, health and shutdown."""

    def test_from_settings(self):
        """Test settings drive the backends and threshold."""
        service = RecipeParsingService.from_settings(
            Settings(confidence_threshold=0.7, batch_max_concurrency=3),
            heuristic_only=True,
        )

        assert [b.name for b in service.controller.backends] == [BackendName.HEURISTIC]
        assert service.controller.confidence_threshold == 0.7
        assert service.batch_max_concurrency == 3

    def test_check_availability(self):
        """Test the health report covers every backend."""
        backends = [
            HeuristicBackend(),
            ScriptedBackend(BackendName.LOCAL_LLM, [make_recipe(0.9)], available=False),
        ]
        service = RecipeParsingService(ParserEscalationController(backends))

        statuses = asyncio.run(service.check_availability())

        assert [(s.name, s.available) for s in statuses] == [
            (BackendName.HEURISTIC, True),
            (BackendName.LOCAL_LLM, False),
        ]

    def test_aclose_closes_clients(self):
        """Test closing the service closes LLM clients."""
        client = FakeLLMClient(["{}"])
        backends = [
            HeuristicBackend(),
            LLMRecipeBackend(BackendName.LOCAL_LLM, client, timeout=1.0, default_certainty=0.75),
        ]
        service = RecipeParsingService(ParserEscalationController(backends))

        asyncio.run(service.aclose())

        assert client.closed
