"""
Ollama client implementation.

This wraps the Ollama HTTP API and implements the BaseLLMClient interface.
"""

import httpx
import json
from typing import Optional, Dict, List

from config.logging_setup import get_logger
from core.errors import (
    BackendError,
    BackendTimeoutError,
    BackendUnavailableError,
    MalformedResponseError,
)
from .llm_client_base import BaseLLMClient

logger = get_logger(__name__)


class OllamaClient(BaseLLMClient):
    """
    LLM client for Ollama (local LLM server).
    """

    provider = "ollama"

    def __init__(
        self,
        model: str,
        base_url: str = "http://localhost:11434",
        timeout: float = 8.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        **kwargs
    ):
        """
        Initialize Ollama client.

        Args:
            model: Ollama model name (e.g., 'llama3.1:8b', 'qwen2.5:7b')
            base_url: Ollama server URL (default: http://localhost:11434)
            timeout: Request timeout in seconds
            transport: Optional httpx transport (tests use httpx.MockTransport)
            **kwargs: Additional configuration
        """
        super().__init__(model, **kwargs)

        self.base_url = base_url.rstrip('/')
        self.timeout = timeout

        # Create async HTTP client
        self.client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(timeout),
            transport=transport,
        )

    async def chat_completion(
        self,
        prompt: str,
        chat_history: Optional[List[Dict[str, str]]] = None,
        **kwargs
    ) -> str:
        """
        Call Ollama chat completion API.

        Args:
            prompt: User prompt
            chat_history: Optional conversation history
            **kwargs: Additional parameters (temperature, json_mode)

        Returns:
            Model response text
        """
        # Build messages
        messages = []
        if chat_history:
            messages.extend(chat_history)
        messages.append({"role": "user", "content": prompt})

        # Prepare request payload
        payload = {
            "model": self.model,
            "messages": messages,
            "stream": False,
        }
        if kwargs.get('json_mode'):
            payload['format'] = 'json'

        # Add optional parameters
        options = {}
        if 'temperature' in kwargs:
            options['temperature'] = kwargs['temperature']
        if options:
            payload['options'] = options

        try:
            # Call Ollama API
            response = await self.client.post("/api/chat", json=payload)
            response.raise_for_status()

            # Parse response
            result = response.json()
            return result['message']['content'].strip()

        except httpx.ConnectError as e:
            raise BackendUnavailableError(
                f"Could not connect to Ollama server at {self.base_url}. "
                f"Please ensure Ollama is running (e.g., 'ollama serve') and "
                f"you have pulled the model (e.g., 'ollama pull {self.model}'). "
                f"Error: {e}",
                backend=self.provider,
            ) from e
        except httpx.TimeoutException as e:
            raise BackendTimeoutError(
                f"Ollama request timed out after {self.timeout}s",
                backend=self.provider,
            ) from e
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            message = f"Ollama server returned error: {status} - {e.response.text}"
            if status >= 500:
                raise BackendUnavailableError(message, backend=self.provider) from e
            raise BackendError(message, backend=self.provider) from e
        except httpx.HTTPError as e:
            raise BackendUnavailableError(
                f"Ollama request failed: {e}", backend=self.provider
            ) from e
        except (json.JSONDecodeError, KeyError, TypeError, AttributeError) as e:
            raise MalformedResponseError(
                f"Invalid JSON response from Ollama: {response.text[:200]}",
                backend=self.provider,
            ) from e

    async def health_check(self) -> bool:
        """
        Check that the server answers and the model has been pulled.

        Returns:
            True if /api/tags lists the configured model
        """
        try:
            response = await self.client.get("/api/tags")
            response.raise_for_status()
            models = response.json().get('models', [])
        except (httpx.HTTPError, json.JSONDecodeError, AttributeError) as e:
            logger.debug(f"Ollama health check failed: {e}")
            return False

        names = {m.get('name') for m in models if isinstance(m, dict)}
        if self.model in names or f"{self.model}:latest" in names:
            return True

        logger.debug(f"Ollama model {self.model} not pulled (available: {sorted(n for n in names if n)})")
        return False

    def count_tokens(self, text: str) -> int:
        """
        Estimate token count for Ollama models.

        Since Ollama doesn't provide a tokenizer API, we use a simple heuristic:
        approximately 4 characters per token (similar to OpenAI's GPT models).

        Args:
            text: Text to count tokens for

        Returns:
            Estimated number of tokens
        """
        # Simple heuristic: ~4 chars per token
        return len(text) // 4

    async def close(self):
        """Close the HTTP client."""
        await self.client.aclose()
