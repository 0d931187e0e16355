"""Application settings loaded from environment variables via pydantic-settings.

Values come from two sources, in priority order:

    1. Environment variables, e.g. ``OPENAI_API_KEY=sk-abc123``
    2. A ``.env`` file in the working directory

Field ``openai_api_key`` maps to env var ``OPENAI_API_KEY``; defaults apply
when neither source sets a value.  An empty API key means "not configured":
the composition root in ``lexbrief.main`` then builds no embedding gateway
and composition falls back to core knowledge only.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """lexbrief application settings.

    Environment variables override defaults. Loaded from .env file when present.
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # === OpenAI-compatible providers ===
    openai_api_key: str = ""
    openai_base_url: str = ""  # Custom base URL for OpenAI-compatible APIs
    openai_embedding_model: str = ""  # Defaults to text-embedding-3-small when empty
    openai_text_model: str = ""  # Defaults to gpt-4o-mini when empty

    # === Embedding gateway ceilings ===
    # The char ceiling is applied first, then the token estimate
    # ceil(len / embedding_chars_per_token) is held under embedding_max_tokens.
    embedding_max_chars: int = 6000
    embedding_max_tokens: int = 4000
    embedding_chars_per_token: float = 2.5
    embedding_timeout_seconds: float = 30.0
    llm_timeout_seconds: float = 30.0

    # === Ingestion ===
    chunk_max_chars: int = 5000  # ~2000 tokens at 2.5 chars/token
    min_extracted_chars: int = 50
    max_upload_bytes: int = 10 * 1024 * 1024
    ingestion_concurrency: int = 1

    # === Composition ===
    composer_top_k: int = 3

    # === Document store ===
    document_store_backend: str = "sqlite"  # "sqlite" | "memory"
    document_store_path: str = "data/knowledge.db"

    # === App Config ===
    app_env: str = "development"
    log_level: str = "INFO"

    def has_embedding_credentials(self) -> bool:
        """Return True when an OpenAI-compatible API key is configured."""
        return bool(self.openai_api_key)
