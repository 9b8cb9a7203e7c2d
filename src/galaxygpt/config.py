"""Runtime configuration for the GalaxyGPT services."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_SYSTEM_PROMPT = (
    "You are GalaxyGPT, a helpful assistant that answers questions about Galaxy, a Roblox space game, "
    "using the Galaxypedia wiki. Answer only from the information provided with the question. "
    "If the information does not contain the answer, say that you do not know. "
    "Keep answers concise and do not mention that you were given information."
)

DEFAULT_USER_PROMPT_TEMPLATE = "Information:\n{context}\n\nQuestion: {question}"


class Settings(BaseSettings):
    """Environment-backed configuration model."""

    model_config = SettingsConfigDict(env_prefix="galaxygpt_", env_file=".env", case_sensitive=False)

    environment: Literal["dev", "test", "prod"] = "dev"
    log_level: str = "INFO"

    # OpenAI
    use_openai: bool = False
    openai_api_key: str | None = None
    openai_base_url: str | None = None
    gpt_model: str = "gpt-4o-mini"
    text_embedding_model: str = "text-embedding-3-small"
    moderation_model: str = "omni-moderation-latest"
    enable_moderation: bool = True
    embedding_dim: int = 1536
    chat_temperature: float = 0.3
    request_timeout_seconds: float = 30.0

    # Vector index
    chroma_persist_dir: Path = Path("./.chroma")
    chroma_collection: str = "galaxypedia"
    chroma_host: str | None = None
    chroma_port: int | None = None
    chroma_ssl: bool = False

    # Retrieval and prompt budgets
    default_max_context_documents: int = 5
    max_context_documents_limit: int = 20
    context_token_budget: int = 2048
    embedding_max_input_tokens: int = 8191
    default_max_output_tokens: int | None = None
    context_delimiter: str = "\n\n---\n\n"
    system_prompt: str = DEFAULT_SYSTEM_PROMPT
    user_prompt_template: str = DEFAULT_USER_PROMPT_TEMPLATE

    # Indexing
    chunk_size: int = 1000
    chunk_overlap: int = 100

    # Security
    api_key: str | None = None  # if set, required in X-API-Key header

    @field_validator("user_prompt_template")
    @classmethod
    def _template_has_placeholders(cls, value: str) -> str:
        for placeholder in ("{question}", "{context}"):
            if placeholder not in value:
                raise ValueError(f"user_prompt_template must contain {placeholder}")
        return value

    @field_validator("default_max_context_documents", "max_context_documents_limit")
    @classmethod
    def _positive(cls, value: int) -> int:
        if value < 1:
            raise ValueError("must be at least 1")
        return value

    @property
    def is_test(self) -> bool:
        return self.environment == "test"

    @property
    def moderation_enabled(self) -> bool:
        return self.use_openai and self.enable_moderation


@lru_cache(maxsize=1)
def _cached_settings() -> Settings:
    return Settings()


def get_settings(override: Optional[dict[str, object]] = None) -> Settings:
    """Return settings, optionally overriding values without mutating cache."""

    if override:
        return Settings(**override)
    return _cached_settings()
