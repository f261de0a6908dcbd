"""
Configuration for the tweet search service.

Uses Pydantic BaseSettings to load from environment variables (and a .env file)
with defaults matching the production deployment.
"""
from typing import Optional, Literal
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator


class Settings(BaseSettings):
    """Configuration settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # OpenSearch Store Settings
    OPENSEARCH_URL: str = Field(default="http://localhost:9200", description="OpenSearch cluster URL")
    OPENSEARCH_INDEX: str = Field(default="tweets", description="Index holding the tweet corpus")
    OPENSEARCH_USERNAME: Optional[str] = Field(default=None, description="OpenSearch username (if auth required)")
    OPENSEARCH_PASSWORD: Optional[str] = Field(default=None, description="OpenSearch password (if auth required)")
    OPENSEARCH_VERIFY_CERTS: bool = Field(default=False, description="Verify TLS certificates")
    STORE_TIMEOUT_S: int = Field(default=30, description="Store request timeout")

    # Embedding Settings
    EMBED_BACKEND: Literal["openai", "local"] = Field(default="openai", description="Embedding backend")
    OPENAI_API_KEY: Optional[str] = Field(default=None, description="OpenAI API key")
    OPENAI_EMBEDDINGS_URL: str = Field(default="https://api.openai.com/v1/embeddings", description="Embeddings endpoint")
    EMBED_MODEL: str = Field(default="text-embedding-3-large", description="Hosted embedding model")
    EMBED_DIM: int = Field(default=1536, description="Embedding dimensionality")
    EMBED_BATCH_SIZE: int = Field(default=3000, description="Texts per embeddings request")
    EMBED_TIMEOUT_S: int = Field(default=60, description="Embedding request timeout")
    LOCAL_EMBED_MODEL: str = Field(
        default="sentence-transformers/paraphrase-multilingual-mpnet-base-v2",
        description="sentence-transformers model for EMBED_BACKEND=local",
    )

    # Relevance Judge Settings
    OPENROUTER_API_KEY: Optional[str] = Field(default=None, description="OpenRouter API key")
    OPENROUTER_URL: str = Field(default="https://openrouter.ai/api/v1/chat/completions", description="Chat completions URL")
    RERANK_MODEL: str = Field(default="gpt-5-mini", description="Model used as relevance judge")
    JUDGE_TIMEOUT_S: int = Field(default=60, description="Judge request timeout")
    JUDGE_MAX_TOKENS: int = Field(default=600, description="Max tokens for the judge response")
    JUDGE_TEXT_CHARS: int = Field(default=300, description="Max tweet chars sent to the judge")

    # Pipeline Settings
    CANDIDATE_LIMIT: int = Field(default=150, description="Candidates per fetcher (lexical and semantic)")
    DEFAULT_K: int = Field(default=10, description="Results returned by the CLI")
    HTTP_DEFAULT_K: int = Field(default=40, description="Results returned by the HTTP API")
    SEMANTIC_FALLBACK_LEXICAL: bool = Field(
        default=False,
        description="Continue with lexical-only candidates when the query embedding fails",
    )

    # Ranking Weights
    WEIGHT_LLM: float = Field(default=0.6, description="Weight for the judge score")
    WEIGHT_LEXICAL: float = Field(default=0.15, description="Weight for the lexical rank")
    WEIGHT_SEMANTIC: float = Field(default=0.15, description="Weight for semantic similarity")
    WEIGHT_AGE: float = Field(default=0.1, description="Weight for the log-age signal")
    RETWEET_PENALTY: float = Field(default=0.03, description="Subtracted from retweets")
    RANK_EPSILON: float = Field(default=1e-6, description="Denominator floor for normalization")

    # Server Settings
    SERVER_HOST: str = Field(default="0.0.0.0", description="HTTP bind host")
    SERVER_PORT: int = Field(default=3000, description="HTTP bind port")
    RATE_LIMIT_MAX_REQUESTS: int = Field(default=30, description="Search requests per client per window")
    RATE_LIMIT_WINDOW_S: float = Field(default=60.0, description="Rate limit window in seconds")
    TWEET_EMBED_API_URL: str = Field(default="https://api.fxtwitter.com/status", description="Tweet detail API")
    TWEET_EMBED_TIMEOUT_S: int = Field(default=15, description="Tweet detail request timeout")
    HEADINGS_URL: str = Field(default="https://lapoliticaonline.com/", description="Page scraped for example queries")

    # Ingest Settings
    INGEST_BATCH_SIZE: int = Field(default=5000, description="Rows per ingest upsert batch")

    @field_validator("WEIGHT_LLM", "WEIGHT_LEXICAL", "WEIGHT_SEMANTIC", "WEIGHT_AGE", "RETWEET_PENALTY")
    @classmethod
    def validate_non_negative(cls, v):
        if v < 0:
            raise ValueError("ranking weights and penalty must be non-negative")
        return v

    @field_validator("RANK_EPSILON")
    @classmethod
    def validate_epsilon(cls, v):
        if v <= 0:
            raise ValueError("RANK_EPSILON must be positive")
        return v

    @field_validator(
        "CANDIDATE_LIMIT", "DEFAULT_K", "HTTP_DEFAULT_K", "EMBED_DIM", "EMBED_BATCH_SIZE",
        "INGEST_BATCH_SIZE", "RATE_LIMIT_MAX_REQUESTS", "JUDGE_TEXT_CHARS",
    )
    @classmethod
    def validate_positive(cls, v):
        if v < 1:
            raise ValueError("must be at least 1")
        return v

    @field_validator("RATE_LIMIT_WINDOW_S")
    @classmethod
    def validate_window(cls, v):
        if v <= 0:
            raise ValueError("RATE_LIMIT_WINDOW_S must be positive")
        return v


# Singleton instance
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get or create settings singleton."""
    global _settings
    if _settings is None:
        from dotenv import load_dotenv
        load_dotenv()
        _settings = Settings()
    return _settings


def reload_settings() -> Settings:
    """Force reload settings (useful for testing)."""
    global _settings
    from dotenv import load_dotenv
    load_dotenv(override=True)
    _settings = Settings()
    return _settings
