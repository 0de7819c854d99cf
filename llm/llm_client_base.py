"""
Base abstract class for LLM clients.

This defines the interface that all LLM provider implementations must follow.
Implementations translate their library's exceptions into the BackendError
taxonomy of core.errors.
"""

from abc import ABC, abstractmethod
from typing import Optional, Dict, Any, List
import json
import re


class BaseLLMClient(ABC):
    """
    Abstract base class for LLM clients.

    All LLM provider implementations (OpenAI, Ollama, etc.) must inherit from this
    class and implement the abstract methods.
    """

    provider = "base"

    def __init__(self, model: str, **kwargs):
        """
        Initialize the LLM client.

        Args:
            model: Model name/identifier
            **kwargs: Additional provider-specific configuration
        """
        self.model = model
        self.config = kwargs

    @abstractmethod
    async def chat_completion(
        self,
        prompt: str,
        chat_history: Optional[List[Dict[str, str]]] = None,
        **kwargs
    ) -> str:
        """
        Perform a chat completion request.

        Args:
            prompt: The user prompt/message
            chat_history: Optional conversation history in format [{"role": "user/assistant", "content": "..."}]
            **kwargs: Additional parameters (temperature, json_mode, etc.)

        Returns:
            The model's response as a string

        Raises:
            BackendUnavailableError: Server unreachable, 5xx or rate limited
            BackendTimeoutError: Request timed out
            BackendAuthError: Credentials rejected
            MalformedResponseError: Response body could not be read
            BackendError: Any other provider error
        """
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """
        Cheap availability probe.

        Returns:
            True if the provider answers and the model is usable
        """
        pass

    @abstractmethod
    def count_tokens(self, text: str) -> int:
        """
        Count the number of tokens in the given text.

        Args:
            text: Text to count tokens for

        Returns:
            Number of tokens
        """
        pass

    async def close(self):
        """Release network resources."""
        return None

    def truncate_to_tokens(self, text: str, max_tokens: int) -> str:
        """
        Cut text so that it fits a token budget, keeping the beginning.

        Args:
            text: Text to cut
            max_tokens: Token budget

        Returns:
            Text within the budget
        """
        if self.count_tokens(text) <= max_tokens:
            return text

        # Binary search on character length
        low, high = 0, len(text)
        while low < high:
            mid = (low + high + 1) // 2
            if self.count_tokens(text[:mid]) <= max_tokens:
                low = mid
            else:
                high = mid - 1
        return text[:low]

    def extract_json(self, content: str) -> Dict[str, Any]:
        """
        Extract JSON from LLM response.

        This handles common cases like:
        - JSON wrapped in markdown code blocks
        - JSON with extra text before/after

        Args:
            content: Raw response content from LLM

        Returns:
            Parsed JSON as dictionary

        Raises:
            json.JSONDecodeError: If no valid JSON found
        """
        # Try direct JSON parse first
        try:
            return json.loads(content)
        except json.JSONDecodeError:
            pass

        # Try to extract from markdown code blocks
        json_match = re.search(r'```(?:json)?\s*\n(.*?)\n```', content, re.DOTALL)
        if json_match:
            try:
                return json.loads(json_match.group(1))
            except json.JSONDecodeError:
                pass

        # Try to find JSON object in the content
        json_match = re.search(r'\{.*\}', content, re.DOTALL)
        if json_match:
            try:
                return json.loads(json_match.group(0))
            except json.JSONDecodeError:
                pass

        raise json.JSONDecodeError(
            f"Could not extract valid JSON from content: {content[:200]}...",
            content,
            0
        )
