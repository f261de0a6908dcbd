"""
Tweet Search Package

Hybrid retrieval and ranking over a tweet corpus:
1. Lexical (full-text) and semantic (kNN) candidate fetch, run concurrently
2. Fusion by tweet id
3. LLM relevance judge (0-6 per candidate)
4. Weighted final score, retweet penalty, near-duplicate removal, top-k

The store, embedding provider and judge are pluggable.
"""

__version__ = "1.0.0"

from .config import get_settings
from .errors import (
    TweetSearchError,
    StoreUnavailable,
    EmbeddingProviderError,
    JudgeUnavailable,
    JudgeParseError,
)
from .schemas import Candidate, RankedCandidate, JudgeScore
from .pipeline import TweetSearchPipeline

__all__ = [
    "get_settings",
    "TweetSearchError",
    "StoreUnavailable",
    "EmbeddingProviderError",
    "JudgeUnavailable",
    "JudgeParseError",
    "Candidate",
    "RankedCandidate",
    "JudgeScore",
    "TweetSearchPipeline",
]
