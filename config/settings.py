"""
Configuration management using Pydantic Settings.

Environment variables:
- CONFIDENCE_THRESHOLD: Minimum confidence before escalating to the next backend
- BACKEND_STATUS_TTL: Seconds a cached backend availability probe stays fresh
- LOCAL_LLM_BASE_URL / LOCAL_LLM_MODEL / LOCAL_LLM_TIMEOUT: Ollama backend
- OPENAI_API_KEY / CLOUD_LLM_MODEL / CLOUD_LLM_TIMEOUT: OpenAI backend
- LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR)
"""
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # Escalation
    confidence_threshold: float = Field(default=0.6, ge=0.0, le=1.0)
    backend_status_ttl: float = Field(default=60.0, gt=0)

    # Local LLM (Ollama)
    local_llm_enabled: bool = True
    local_llm_base_url: str = "http://localhost:11434"
    local_llm_model: str = "llama3.1:8b"
    local_llm_timeout: float = Field(default=8.0, gt=0)
    local_llm_certainty: float = Field(default=0.75, ge=0.0, le=1.0)

    # Cloud LLM (OpenAI)
    cloud_llm_enabled: bool = True
    cloud_llm_model: str = "gpt-4o-mini"
    cloud_llm_api_key: Optional[str] = Field(default=None, validation_alias="OPENAI_API_KEY")
    cloud_llm_timeout: float = Field(default=30.0, gt=0)
    cloud_llm_certainty: float = Field(default=0.85, ge=0.0, le=1.0)

    # Prompt budget
    llm_max_input_tokens: int = Field(default=3000, gt=0)

    # Batch parsing
    batch_max_concurrency: int = Field(default=4, ge=1)

    # API Configuration
    api_host: str = "0.0.0.0"
    api_port: int = 8003

    # Logging
    log_level: str = "INFO"

    def get_local_llm_config(self) -> dict:
        """Get local LLM client configuration as dictionary."""
        return {
            'base_url': self.local_llm_base_url,
            'timeout': self.local_llm_timeout,
        }

    def get_cloud_llm_config(self) -> dict:
        """Get cloud LLM client configuration as dictionary."""
        return {
            'api_key': self.cloud_llm_api_key,
            'timeout': self.cloud_llm_timeout,
        }


# Global settings instance
settings = Settings()
