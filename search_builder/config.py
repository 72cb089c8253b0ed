"""Configuration for the search-builder core.

Settings are read from environment variables prefixed with ``SEARCH_BUILDER_``
(or a local ``.env`` file). Explicit function arguments always win over these
defaults.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime settings."""

    model_config = SettingsConfigDict(
        env_prefix="SEARCH_BUILDER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Scoring oracle
    scoring_api_key: str | None = None
    scoring_api_url: str = "https://api.withpi.ai/v1"
    scoring_timeout_seconds: float = Field(default=30.0, gt=0)

    # Scorer generation jobs (hosted scorer API)
    generation_poll_interval_seconds: float = Field(default=2.0, gt=0)
    generation_num_questions: int = Field(default=10, ge=1)

    # Feedback → criteria (OpenAI-compatible chat completions API)
    completion_api_key: str | None = None
    completion_api_url: str = "https://api.openai.com/v1"
    completion_timeout_seconds: float = Field(default=60.0, gt=0)
    criteria_model: str = "gpt-4o"
    integration_model: str = "gpt-4o-mini"
    criteria_temperature: float = Field(default=0.7, ge=0, le=2)

    # Rubric batch indexing
    rubric_index_concurrency: int = Field(default=20, ge=1)
    rubric_index_max_retries: int = Field(default=3, ge=0)
    rubric_index_initial_delay_seconds: float = Field(default=0.1, ge=0)

    # Rank fusion
    rrf_k: int = Field(default=60, ge=1)

    # Normalization calibration. These are empirical: the BM25 ceiling and
    # the RRF scale only hold for the engines shipped in this package.
    keyword_score_ceiling: float = Field(default=10.0, gt=0)
    hybrid_score_scale: float = Field(default=10.0, gt=0)

    # Query-time defaults
    default_result_limit: int = Field(default=20, ge=1)
    default_rubric_weight: float = Field(default=0.5, ge=0, le=1)
    rerank_candidate_multiplier: int = Field(default=2, ge=1)

    debug: bool = False
    log_level: str = "INFO"


settings = Settings()
