"""
Shared stubs and fixtures for the test suite.
"""
import pytest

from tweet_search.embeddings import EmbeddingProvider
from tweet_search.judge import RelevanceJudge
from tweet_search.schemas import Candidate, JudgeScore
from tweet_search.store import TweetStore

CREATED_AT = "2024-03-01T12:00:00.000Z"


def build_candidate(doc_id, ordinal=0, lexical_rank=0.0, semantic_similarity=None,
                    text=None, created_at="2024-01-01T00:00:00.000Z", is_retweet=False):
    """Build a candidate with sensible defaults."""
    return Candidate(
        ordinal=ordinal,
        document_id=doc_id,
        created_at=created_at,
        text=text if text is not None else f"tweet {doc_id}",
        is_retweet=is_retweet,
        lexical_rank=lexical_rank,
        semantic_similarity=semantic_similarity,
    )


def build_row(doc_id, text=None, **extra):
    """Store row as returned by TweetStore searches."""
    row = {
        "id": doc_id,
        "created_at": CREATED_AT,
        "text": text or f"tweet {doc_id}",
        "is_retweet": False,
        "has_media": False,
    }
    row.update(extra)
    return row


class StubJudge(RelevanceJudge):
    """Judge returning fixed scores and recording its calls."""

    def __init__(self, scores=None, error=None):
        self.scores = scores or {}
        self.error = error
        self.calls = []

    def judge(self, query, candidates):
        self.calls.append((query, list(candidates)))
        if self.error is not None:
            raise self.error
        return [JudgeScore(ordinal=i, score=s) for i, s in self.scores.items()]


class StubStore(TweetStore):
    """In-memory store returning canned rows."""

    def __init__(self, lexical_rows=None, vector_rows=None, error=None):
        self.lexical_rows = lexical_rows or []
        self.vector_rows = vector_rows or []
        self.error = error
        self.lexical_calls = []
        self.vector_calls = []

    def lexical_search(self, query, limit):
        self.lexical_calls.append((query, limit))
        if self.error is not None:
            raise self.error
        return self.lexical_rows[:limit]

    def vector_search(self, embedding, limit):
        self.vector_calls.append((embedding, limit))
        return self.vector_rows[:limit]


class StubEmbedder(EmbeddingProvider):
    """Embedder returning a constant vector, or failing."""

    def __init__(self, dim=4, error=None):
        self.dim = dim
        self.error = error

    def embed(self, texts):
        if self.error is not None:
            raise self.error
        return [[0.5] * self.dim for _ in texts]


class FakeClock:
    """Manually advanced clock for the rate limiter."""

    def __init__(self, now=0.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def make_candidate():
    return build_candidate


@pytest.fixture
def make_row():
    return build_row


@pytest.fixture
def stub_judge():
    return StubJudge


@pytest.fixture
def stub_store():
    return StubStore


@pytest.fixture
def stub_embedder():
    return StubEmbedder


@pytest.fixture
def clock():
    return FakeClock(1000.0)
