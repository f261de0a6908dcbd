"""
Tests for settings loading and validation.
"""
import pytest
from pydantic import ValidationError

from tweet_search.config import Settings


def test_defaults():
    settings = Settings(_env_file=None)

    assert settings.CANDIDATE_LIMIT == 150
    assert settings.HTTP_DEFAULT_K == 40
    assert settings.RERANK_MODEL == "gpt-5-mini"
    assert settings.EMBED_DIM == 1536
    assert settings.SEMANTIC_FALLBACK_LEXICAL is False
    assert (settings.WEIGHT_LLM, settings.WEIGHT_LEXICAL, settings.WEIGHT_SEMANTIC, settings.WEIGHT_AGE) == (
        0.6, 0.15, 0.15, 0.1
    )
    assert settings.RATE_LIMIT_MAX_REQUESTS == 30


def test_env_override(monkeypatch):
    monkeypatch.setenv("CANDIDATE_LIMIT", "50")
    monkeypatch.setenv("SEMANTIC_FALLBACK_LEXICAL", "true")
    monkeypatch.setenv("EMBED_BACKEND", "local")

    settings = Settings(_env_file=None)

    assert settings.CANDIDATE_LIMIT == 50
    assert settings.SEMANTIC_FALLBACK_LEXICAL is True
    assert settings.EMBED_BACKEND == "local"


@pytest.mark.parametrize("name,value", [
    ("WEIGHT_LLM", "-0.1"),
    ("RANK_EPSILON", "0"),
    ("CANDIDATE_LIMIT", "0"),
    ("RATE_LIMIT_WINDOW_S", "0"),
    ("EMBED_BACKEND", "cohere"),
])
def test_invalid_values(monkeypatch, name, value):
    monkeypatch.setenv(name, value)

    with pytest.raises(ValidationError):
        Settings(_env_file=None)
