"""
Pydantic schemas for the tweet search pipeline.

Candidates are ephemeral: they are built per request from store rows and
discarded once the response is produced.
"""
from datetime import datetime, timezone
from typing import Optional, List, Dict, Any
from pydantic import BaseModel, ConfigDict, Field

TWITTER_DATE_FORMAT = "%a %b %d %H:%M:%S %z %Y"


def parse_timestamp(value: Any) -> datetime:
    """
    Parse a timestamp from the store or a raw tweet export.

    Accepts datetimes, ISO-8601 strings (with or without a trailing "Z")
    and the classic Twitter API format ("Wed Oct 10 20:19:24 +0000 2018").
    Naive values are taken as UTC.

    Raises:
        ValueError: If the value cannot be parsed
    """
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str) and value.strip():
        raw = value.strip()
        try:
            dt = datetime.fromisoformat(raw[:-1] + "+00:00" if raw.endswith("Z") else raw)
        except ValueError:
            dt = datetime.strptime(raw, TWITTER_DATE_FORMAT)
    else:
        raise ValueError(f"Unparseable timestamp: {value!r}")

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def to_iso(value: Any) -> str:
    """Render a timestamp as UTC ISO-8601 with millisecond precision and a "Z" suffix."""
    dt = parse_timestamp(value).astimezone(timezone.utc)
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


class Candidate(BaseModel):
    """A tweet considered for ranking in a single search run."""

    ordinal: int
    document_id: str
    created_at: str  # ISO-8601, also shown to the judge
    text: str
    is_retweet: bool = False
    has_media: bool = False

    # Retrieval signals, only comparable within the same run
    lexical_rank: float = 0.0
    semantic_similarity: Optional[float] = None


class RankedCandidate(Candidate):
    """Candidate with its combined ranking score."""

    final_score: float


class JudgeScore(BaseModel):
    """One relevance score returned by the judge, keyed by candidate ordinal."""

    ordinal: int
    score: int = Field(..., ge=0, le=6, description="Relevance score 0-6")


class JudgeCandidate(BaseModel):
    """Compact candidate payload sent to the judge."""

    i: int
    id: str
    created_at: str
    text: str


class TweetRecord(BaseModel):
    """A tweet ready to be written to the store."""

    model_config = ConfigDict(frozen=True)

    tweet_id: str
    created_at: datetime
    text: str
    lang: Optional[str] = None
    is_retweet: bool = False
    has_media: bool = False

    def to_document(self, embedding: Optional[List[float]] = None) -> Dict[str, Any]:
        """Build the store document body."""
        doc: Dict[str, Any] = {
            "tweet_id": self.tweet_id,
            "created_at": to_iso(self.created_at),
            "text": self.text,
            "lang": self.lang,
            "is_retweet": self.is_retweet,
            "has_media": self.has_media,
        }
        if embedding is not None:
            doc["embedding"] = embedding
        return doc


class SearchResultItem(BaseModel):
    """Search result as served by the HTTP API."""

    tweet_id: str
    created_at: str
    text: str
    is_retweet: bool
    has_media: bool
    final_score: float
    fts_rank: float
    semantic_sim: Optional[float] = None

    @classmethod
    def from_ranked(cls, r: RankedCandidate) -> "SearchResultItem":
        return cls(
            tweet_id=r.document_id,
            created_at=r.created_at,
            text=r.text,
            is_retweet=r.is_retweet,
            has_media=r.has_media,
            final_score=r.final_score,
            fts_rank=r.lexical_rank,
            semantic_sim=r.semantic_similarity,
        )


class SearchResponse(BaseModel):
    query: str
    results: List[SearchResultItem]
