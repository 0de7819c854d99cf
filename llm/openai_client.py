"""
OpenAI client implementation.

This wraps the OpenAI API and implements the BaseLLMClient interface.
"""

import os
from typing import Optional, Dict, List

import openai
import tiktoken
from openai import AsyncOpenAI

from config.logging_setup import get_logger
from core.errors import (
    BackendAuthError,
    BackendError,
    BackendTimeoutError,
    BackendUnavailableError,
    MalformedResponseError,
)
from .llm_client_base import BaseLLMClient

logger = get_logger(__name__)


class OpenAIClient(BaseLLMClient):
    """
    LLM client for OpenAI API.
    """

    provider = "openai"

    def __init__(
        self,
        model: str,
        api_key: Optional[str] = None,
        timeout: float = 30.0,
        client: Optional[AsyncOpenAI] = None,
        **kwargs
    ):
        """
        Initialize OpenAI client.

        Args:
            model: OpenAI model name (e.g., 'gpt-4o-mini')
            api_key: OpenAI API key (defaults to OPENAI_API_KEY env var)
            timeout: Request timeout in seconds
            client: Pre-built AsyncOpenAI client (tests pass a stub)
            **kwargs: Additional configuration
        """
        super().__init__(model, **kwargs)
        self.timeout = timeout

        if client is not None:
            self.api_key = api_key
            self.client = client
        else:
            # Get API key from parameter or environment
            self.api_key = api_key or os.getenv('OPENAI_API_KEY')
            if not self.api_key:
                raise ValueError(
                    "OpenAI API key not found. Please set OPENAI_API_KEY environment variable "
                    "or pass api_key parameter."
                )

            # Retries are owned by the escalation controller
            self.client = AsyncOpenAI(api_key=self.api_key, timeout=timeout, max_retries=0)

        # Initialize tokenizer here, outside any time-bounded parse
        try:
            self.encoding = tiktoken.encoding_for_model(model)
        except KeyError:
            # Fallback to cl100k_base for unknown models
            self.encoding = tiktoken.get_encoding("cl100k_base")

    async def chat_completion(
        self,
        prompt: str,
        chat_history: Optional[List[Dict[str, str]]] = None,
        **kwargs
    ) -> str:
        """
        Call OpenAI chat completion API.

        Args:
            prompt: User prompt
            chat_history: Optional conversation history
            **kwargs: Additional parameters (temperature, json_mode, etc.)

        Returns:
            Model response text
        """
        # Build messages
        messages = []
        if chat_history:
            messages.extend(chat_history)
        messages.append({"role": "user", "content": prompt})

        params = dict(kwargs)
        if params.pop('json_mode', False):
            params['response_format'] = {"type": "json_object"}

        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=messages,
                **params
            )
        except openai.APITimeoutError as e:
            raise BackendTimeoutError(
                f"OpenAI request timed out after {self.timeout}s", backend=self.provider
            ) from e
        except openai.APIConnectionError as e:
            raise BackendUnavailableError(
                f"Could not reach OpenAI: {e}", backend=self.provider
            ) from e
        except (openai.AuthenticationError, openai.PermissionDeniedError) as e:
            raise BackendAuthError(
                f"OpenAI rejected the API key: {e}", backend=self.provider
            ) from e
        except openai.RateLimitError as e:
            raise BackendUnavailableError(
                f"OpenAI rate limit reached: {e}", backend=self.provider
            ) from e
        except openai.APIStatusError as e:
            message = f"OpenAI returned error: {e.status_code} - {e}"
            if e.status_code >= 500:
                raise BackendUnavailableError(message, backend=self.provider) from e
            raise BackendError(message, backend=self.provider) from e

        if not response.choices or response.choices[0].message.content is None:
            raise MalformedResponseError(
                "OpenAI returned no message content", backend=self.provider
            )
        return response.choices[0].message.content.strip()

    async def health_check(self) -> bool:
        """
        Check that the API key works and the model exists.

        Returns:
            True if the model can be retrieved
        """
        try:
            await self.client.models.retrieve(self.model)
        except openai.OpenAIError as e:
            logger.debug(f"OpenAI health check failed: {e}")
            return False
        return True

    def count_tokens(self, text: str) -> int:
        """
        Count tokens using tiktoken.

        Args:
            text: Text to count tokens for

        Returns:
            Number of tokens
        """
        return len(self.encoding.encode(text))

    async def close(self):
        """Close the underlying HTTP client."""
        await self.client.close()
