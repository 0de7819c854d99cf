"""
LLM client construction by provider name.

build_backends asks for 'ollama' for the local backend and 'openai' for the
cloud backend; keyword arguments come from Settings.get_local_llm_config()
and Settings.get_cloud_llm_config().
"""

from typing import Dict, List, Type

from config.logging_setup import get_logger
from .llm_client_base import BaseLLMClient
from .ollama_client import OllamaClient
from .openai_client import OpenAIClient

logger = get_logger(__name__)

PROVIDERS: Dict[str, Type[BaseLLMClient]] = {
    OllamaClient.provider: OllamaClient,
    OpenAIClient.provider: OpenAIClient,
}


class LLMClientFactory:
    """
    Creates recipe-extraction LLM clients from configuration.
    """

    @staticmethod
    def create_client(provider: str, model: str, **kwargs) -> BaseLLMClient:
        """
        Args:
            provider: 'ollama' (local) or 'openai' (cloud), case-insensitive
            model: Model served by the provider
            **kwargs: Passed to the client: base_url and timeout for Ollama,
                api_key and timeout for OpenAI

        Returns:
            Client ready for chat_completion calls

        Raises:
            ValueError: Unknown provider, or OpenAI without an API key
        """
        client_class = PROVIDERS.get(provider.lower().strip())
        if client_class is None:
            raise ValueError(
                f"Unknown LLM provider {provider!r}; "
                f"expected one of {LLMClientFactory.supported_providers()}"
            )

        logger.debug(f"Creating {client_class.provider} client for model {model}")
        return client_class(model=model, **kwargs)

    @staticmethod
    def supported_providers() -> List[str]:
        return sorted(PROVIDERS)
