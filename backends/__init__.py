"""Backends package - Parser backends in escalation order."""

from typing import List, Optional

from config.logging_setup import get_logger
from config.settings import Settings, settings as default_settings
from core.models import BackendName
from llm.client_factory import LLMClientFactory

from .base import ParserBackend
from .heuristic_backend import HeuristicBackend
from .llm_backend import LLMRecipeBackend, recipe_from_llm_payload

logger = get_logger(__name__)


def build_backends(config: Optional[Settings] = None, heuristic_only: bool = False) -> List[ParserBackend]:
    """
    Build the backend list from configuration: heuristic, then local LLM,
    then cloud LLM.

    The cloud backend is left out (with a warning) when no API key is set.

    Args:
        config: Settings to read; defaults to the global settings
        heuristic_only: Skip both LLM backends

    Returns:
        Ordered list of backends
    """
    config = config or default_settings
    backends: List[ParserBackend] = [HeuristicBackend()]

    if heuristic_only:
        return backends

    if config.local_llm_enabled:
        client = LLMClientFactory.create_client(
            'ollama',
            config.local_llm_model,
            **config.get_local_llm_config()
        )
        backends.append(LLMRecipeBackend(
            name=BackendName.LOCAL_LLM,
            client=client,
            timeout=config.local_llm_timeout,
            default_certainty=config.local_llm_certainty,
            max_input_tokens=config.llm_max_input_tokens,
        ))

    if config.cloud_llm_enabled:
        if not config.cloud_llm_api_key:
            logger.warning("OPENAI_API_KEY is not set, cloud LLM backend disabled")
        else:
            client = LLMClientFactory.create_client(
                'openai',
                config.cloud_llm_model,
                **config.get_cloud_llm_config()
            )
            backends.append(LLMRecipeBackend(
                name=BackendName.CLOUD_LLM,
                client=client,
                timeout=config.cloud_llm_timeout,
                default_certainty=config.cloud_llm_certainty,
                max_input_tokens=config.llm_max_input_tokens,
            ))

    return backends


__all__ = [
    'ParserBackend',
    'HeuristicBackend',
    'LLMRecipeBackend',
    'recipe_from_llm_payload',
    'build_backends',
]
