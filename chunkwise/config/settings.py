"""Application settings loaded from environment variables via pydantic-settings.

Values are read from (highest priority first):

  1. Environment variables, e.g. ``OPENAI_API_KEY=sk-abc123``
  2. A ``.env`` file in the working directory
  3. ``config/config.yaml`` when loaded through :func:`chunkwise.config.loader.load_settings`
  4. The defaults below

Field ``splitter_chunk_size`` maps to env var ``SPLITTER_CHUNK_SIZE`` and to
``splitter: {chunk_size: ...}`` in YAML.  List fields (``splitter_separators``)
take JSON when set through the environment.
"""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """chunkwise settings.

    Environment variables override defaults. Loaded from .env file when present.
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # === OpenAI ===
    # Empty string = "not configured"; the CLI factories refuse to start.
    openai_api_key: str = ""
    openai_base_url: str = ""  # OpenAI-compatible endpoint (TogetherAI, vLLM, ...)
    openai_embedding_model: str = "text-embedding-3-small"
    openai_chat_model: str = "gpt-3.5-turbo"
    openai_temperature: float = 0.7
    openai_max_tokens: int = 500
    openai_timeout_seconds: float = 30.0

    # === Progress store ===
    progress_db_path: str = "data/progress.db"

    # === Splitter ===
    splitter_chunk_size: int = Field(default=500, gt=0)
    splitter_chunk_overlap: int = Field(default=50, ge=0)
    splitter_separators: list[str] = Field(default_factory=lambda: ["\n\n", "\n", " ", ""])

    # === Rate limits (separate quotas for ingestion and chat) ===
    embedding_rate_capacity: int = Field(default=3, gt=0)
    embedding_rate_window_seconds: float = Field(default=60.0, gt=0)
    chat_rate_capacity: int = Field(default=3, gt=0)
    chat_rate_window_seconds: float = Field(default=60.0, gt=0)

    # === Retry ===
    retry_max_attempts: int = Field(default=3, ge=1)
    retry_base_delay_seconds: float = Field(default=20.0, ge=0)

    # === Ingestion ===
    ingestion_inter_chunk_delay_seconds: float = Field(default=2.0, ge=0)

    # === Question answering ===
    qa_top_k: int = Field(default=4, gt=0)
    qa_max_context_chars: int = Field(default=4000, gt=0)
    qa_step_delay_seconds: float = Field(default=1.0, ge=0)

    # === App Config ===
    app_env: str = "development"
    log_level: str = "INFO"
