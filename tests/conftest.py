"""
Pytest configuration and global fixtures.
"""
import asyncio
import sys
from pathlib import Path
from typing import List, Optional, Sequence, Union

import pytest
import tiktoken

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from backends.base import ParserBackend
from core.models import BackendName, OCRResult, ParsedRecipe
from llm.llm_client_base import BaseLLMClient


SCENARIO_A_TEXT = (
    "Chocolate Chip Cookies\n\nIngredients:\n2 cups flour\n1 cup sugar\n\n"
    "Directions:\n1. Mix ingredients\n2. Bake at 350F"
)


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


def make_recipe(confidence: float, title: str = "Soup") -> ParsedRecipe:
    """Complete recipe candidate with a given confidence."""
    return ParsedRecipe(
        title=title,
        ingredients=("1 l water", "2 carrots"),
        instructions=("Boil water", "Add carrots"),
        confidence=confidence,
    )


class ScriptedBackend(ParserBackend):
    """
    Backend that plays back a script of results.

    Each script entry is a ParsedRecipe to return, or an exception to raise.
    The last entry repeats once the script is exhausted.
    """

    def __init__(
        self,
        name: BackendName,
        script: Sequence[Union[ParsedRecipe, Exception]],
        timeout: Optional[float] = None,
        available: bool = True,
        delay: float = 0.0,
        probe_delay: float = 0.0
    ):
        self.name = name
        # Scripted LLM backends are time-bounded like the real ones
        if timeout is None and name != BackendName.HEURISTIC:
            timeout = 30.0
        self.timeout = timeout
        self.script = list(script)
        self.available = available
        self.delay = delay
        self.probe_delay = probe_delay
        self.parse_calls = 0
        self.probe_calls = 0
        self.cancelled = False
        self.texts: List[str] = []

    async def try_parse(self, text: str, ocr_result: OCRResult) -> ParsedRecipe:
        index = min(self.parse_calls, len(self.script) - 1)
        self.parse_calls += 1
        self.texts.append(text)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
        except asyncio.CancelledError:
            self.cancelled = True
            raise

        entry = self.script[index]
        if isinstance(entry, Exception):
            raise entry
        return entry

    async def check_available(self) -> bool:
        self.probe_calls += 1
        if self.probe_delay:
            await asyncio.sleep(self.probe_delay)
        return self.available


class FakeLLMClient(BaseLLMClient):
    """LLM client returning canned replies."""

    provider = "fake"

    def __init__(self, replies: Sequence[Union[str, Exception]], healthy: bool = True):
        super().__init__("fake-model")
        self.replies = list(replies)
        self.healthy = healthy
        self.prompts: List[str] = []
        self.calls_kwargs: List[dict] = []
        self.closed = False

    async def chat_completion(self, prompt, chat_history=None, **kwargs):
        self.prompts.append(prompt)
        self.calls_kwargs.append(kwargs)
        reply = self.replies[min(len(self.prompts) - 1, len(self.replies) - 1)]
        if isinstance(reply, Exception):
            raise reply
        return reply

    async def health_check(self):
        return self.healthy

    def count_tokens(self, text):
        return len(text) // 4

    async def close(self):
        self.closed = True


@pytest.fixture
def scenario_a_text():
    """Well-formed recipe text with headers and numbered steps."""
    return SCENARIO_A_TEXT


@pytest.fixture
def messy_recipe_text():
    """OCR text with a running header, page number and broken words."""
    return (
        "The Family Cookbook\n"
        "Grandma's Banana Bread\n"
        "A moist loaf that uses up over-\nripe bananas.\n"
        "Prep time: 15 min | Cook time: 1 hour | Serves 8\n"
        "\n"
        "Ingredients\n"
        "• 3 ripe bananas\n"
        "• l00 g butter, melted\n"
        "• 1 cup sugar\n"
        "• 1 egg\n"
        "salt to taste\n"
        "\n"
        "Method\n"
        "1. Preheat the oven to 175C.\n"
        "2. Mash the bananas with the butter.\n"
        "Stir in sugar and egg.\n"
        "\n"
        "3. Bake for 60 minutes.\n"
        "\n"
        "The Family Cookbook\n"
        "42\n"
        "Notes\n"
        "Freezes well for a month."
    )


@pytest.fixture
def fake_clock():
    """Manually advanced clock."""
    return FakeClock()


class FakeEncoding:
    """Whitespace tokenizer standing in for a tiktoken encoding."""

    def encode(self, text):
        return text.split()


@pytest.fixture
def offline_tokenizer(monkeypatch):
    """Serve tiktoken encodings without downloading BPE files; records model lookups."""
    lookups = []

    def encoding_for_model(model):
        lookups.append(model)
        if model.startswith("unknown"):
            raise KeyError(model)
        return FakeEncoding()

    monkeypatch.setattr(tiktoken, "encoding_for_model", encoding_for_model)
    monkeypatch.setattr(tiktoken, "get_encoding", lambda name: FakeEncoding())
    return lookups
