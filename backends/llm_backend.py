"""
LLM-backed parser backends (local Ollama model, cloud OpenAI model).

The model is asked for a JSON object; the reply is mapped onto a
ParsedRecipe and scored with the same weights as the heuristic parser, the
model's self-reported confidence standing in for line certainty.
"""
import json
from dataclasses import replace
from typing import Any, Dict, List, Optional

from config.logging_setup import get_logger
from core.constants import RECIPE_PARSE_PROMPT
from core.errors import MalformedResponseError
from core.models import BackendName, OCRResult, ParsedRecipe
from llm.llm_client_base import BaseLLMClient
from parsing.confidence import clamp, recipe_completeness, score
from parsing.ingredients import parse_minutes, parse_servings
from .base import ParserBackend

logger = get_logger(__name__)


def _item_text(item: Any) -> str:
    """Text of one list item: a string, or an object with a text field."""
    if item is None:
        return ""
    if isinstance(item, str):
        return item.strip()
    if isinstance(item, dict):
        if item.get('text'):
            return str(item['text']).strip()
        # {"quantity": "2", "unit": "cups", "name": "flour"}
        amount = item.get('amount') if isinstance(item.get('amount'), dict) else {}
        parts = [
            item.get('quantity', amount.get('quantity')),
            item.get('unit', amount.get('unit')),
            item.get('name'),
        ]
        return " ".join(str(p).strip() for p in parts if p not in (None, "")).strip()
    return str(item).strip()


def _string_list(value: Any) -> List[str]:
    """Normalize a list-ish payload field to a list of non-empty strings."""
    if value is None:
        return []
    if isinstance(value, str):
        return [line.strip() for line in value.splitlines() if line.strip()]
    if not isinstance(value, list):
        return []
    return [text for text in (_item_text(item) for item in value) if text]


def _minutes(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        minutes = int(round(value))
        return minutes if minutes >= 0 else None
    return parse_minutes(str(value))


def _servings(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return int(value)
    return parse_servings(str(value))


def _reported_confidence(value: Any) -> Optional[float]:
    """Model self-reported confidence; values above 1 are read as percentages."""
    if isinstance(value, bool):
        return None
    if isinstance(value, str):
        try:
            value = float(value.strip().rstrip('%'))
        except ValueError:
            return None
    if not isinstance(value, (int, float)):
        return None
    if value > 1:
        value = value / 100.0
    return clamp(float(value))


def recipe_from_llm_payload(
    data: Dict[str, Any],
    ocr_confidence: float,
    default_certainty: float
) -> ParsedRecipe:
    """
    Map a model's JSON reply onto a ParsedRecipe.

    Accepts "instructions" or "directions" (or "steps"), list items as
    strings or {"text": ...} objects, and times as integers or strings.

    Args:
        data: Decoded JSON object
        ocr_confidence: OCR confidence of the input
        default_certainty: Model certainty used when the reply has none

    Returns:
        Scored recipe candidate
    """
    instructions = data.get('instructions')
    if instructions is None:
        instructions = data.get('directions', data.get('steps'))

    description = data.get('description')
    description = str(description).strip() if description else None

    recipe = ParsedRecipe(
        title=str(data.get('title') or "").strip(),
        description=description or None,
        ingredients=tuple(_string_list(data.get('ingredients'))),
        instructions=tuple(_string_list(instructions)),
        prep_time=_minutes(data.get('prepTime', data.get('prep_time'))),
        cook_time=_minutes(data.get('cookTime', data.get('cook_time'))),
        servings=_servings(data.get('servings')),
        notes=tuple(_string_list(data.get('notes'))),
    )

    certainty = _reported_confidence(data.get('confidence'))
    if certainty is None:
        certainty = default_certainty

    confidence = score(ocr_confidence, certainty, recipe_completeness(recipe))
    return replace(recipe, confidence=confidence)


class LLMRecipeBackend(ParserBackend):
    """
    Recipe extraction through a chat model.

    One class serves both the local and the cloud backend; they differ in
    client, time bound and default certainty.
    """

    def __init__(
        self,
        name: BackendName,
        client: BaseLLMClient,
        timeout: float,
        default_certainty: float,
        max_input_tokens: int = 3000,
        temperature: float = 0.0
    ):
        """
        Args:
            name: BackendName.LOCAL_LLM or BackendName.CLOUD_LLM
            client: LLM client to call
            timeout: Per-call time bound in seconds
            default_certainty: Certainty assumed when the model reports none
            max_input_tokens: OCR text is cut to this many tokens
            temperature: Sampling temperature
        """
        self.name = name
        self.client = client
        self.timeout = timeout
        self.default_certainty = default_certainty
        self.max_input_tokens = max_input_tokens
        self.temperature = temperature

    def build_prompt(self, text: str) -> str:
        """Fill the extraction prompt, cutting the text to the token budget."""
        budget_text = self.client.truncate_to_tokens(text, self.max_input_tokens)
        if len(budget_text) < len(text):
            logger.debug(
                f"{self.name.value}: input cut from {len(text)} to {len(budget_text)} chars"
            )
        return RECIPE_PARSE_PROMPT.format(text=budget_text)

    async def try_parse(self, text: str, ocr_result: OCRResult) -> ParsedRecipe:
        prompt = self.build_prompt(text)
        content = await self.client.chat_completion(
            prompt,
            temperature=self.temperature,
            json_mode=True,
        )

        try:
            data = self.client.extract_json(content)
        except json.JSONDecodeError as e:
            raise MalformedResponseError(
                f"{self.name.value} reply is not JSON: {content[:100]!r}",
                backend=self.name.value,
            ) from e

        if not isinstance(data, dict):
            raise MalformedResponseError(
                f"{self.name.value} reply is not a JSON object",
                backend=self.name.value,
            )

        return recipe_from_llm_payload(data, ocr_result.confidence, self.default_certainty)

    async def check_available(self) -> bool:
        return await self.client.health_check()

    async def close(self):
        await self.client.close()
