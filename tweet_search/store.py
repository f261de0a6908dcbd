"""
Tweet store over the OpenSearch REST API.

Provides the two candidate queries the pipeline needs: lexical rank and
nearest-neighbor. Index creation and bulk writes live in indexer.py.
"""
import logging
import math
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional
from urllib.parse import urljoin

import requests

from .errors import StoreUnavailable

logger = logging.getLogger(__name__)

# Fields returned for ranking (never the embedding itself)
SOURCE_FIELDS = ["tweet_id", "created_at", "text", "is_retweet", "has_media"]

TEXT_ANALYZER = "tweet_text_es"


def _finite_or_zero(value: Any) -> float:
    try:
        f = float(value)
    except (TypeError, ValueError):
        return 0.0
    return f if math.isfinite(f) else 0.0


class TweetStore(ABC):
    """Abstract read interface the search pipeline depends on."""

    @abstractmethod
    def lexical_search(self, query: str, limit: int) -> List[Dict[str, Any]]:
        """
        Full-text search ordered by relevance.

        Args:
            query: Raw user query
            limit: Maximum rows

        Returns:
            Rows with id, created_at, text, is_retweet, has_media, rank;
            ordered by rank desc then created_at asc
        """
        pass

    @abstractmethod
    def vector_search(self, embedding: List[float], limit: int) -> List[Dict[str, Any]]:
        """
        Nearest-neighbor search over stored embeddings.

        Args:
            embedding: Query vector
            limit: Maximum rows

        Returns:
            Rows with id, created_at, text, is_retweet, has_media, similarity;
            ordered by similarity desc. Rows without an embedding never appear.
        """
        pass


class OpenSearchTweetStore(TweetStore):
    """OpenSearch-backed tweet store."""

    def __init__(self, settings, session: Optional[requests.Session] = None):
        """
        Initialize OpenSearch store.

        Args:
            settings: Configuration settings
            session: Optional requests session (for connection pooling or tests)
        """
        self.settings = settings
        self.base_url = settings.OPENSEARCH_URL.rstrip("/") + "/"
        self.index_name = settings.OPENSEARCH_INDEX

        self.session = session or requests.Session()
        if settings.OPENSEARCH_USERNAME and settings.OPENSEARCH_PASSWORD:
            self.session.auth = (settings.OPENSEARCH_USERNAME, settings.OPENSEARCH_PASSWORD)
        self.session.verify = settings.OPENSEARCH_VERIFY_CERTS

    def _make_request(self, method: str, endpoint: str, **kwargs) -> requests.Response:
        """
        Make HTTP request to OpenSearch.

        Raises:
            StoreUnavailable: On transport failure or non-success status
        """
        url = urljoin(self.base_url, endpoint.lstrip("/"))
        kwargs.setdefault("timeout", self.settings.STORE_TIMEOUT_S)

        try:
            response = self.session.request(method, url, **kwargs)
            response.raise_for_status()
            return response
        except requests.RequestException as e:
            logger.error(f"OpenSearch request failed: {method} {url} - {e}")
            raise StoreUnavailable(f"OpenSearch request failed: {e}") from e

    def _search(self, body: Dict[str, Any]) -> List[Dict[str, Any]]:
        response = self._make_request("POST", f"/{self.index_name}/_search", json=body)
        try:
            data = response.json()
        except ValueError as e:
            raise StoreUnavailable(f"OpenSearch returned invalid JSON: {e}") from e
        hits = data.get("hits", {}) if isinstance(data, dict) else None
        if not isinstance(hits, dict) or not isinstance(hits.get("hits", []), list):
            raise StoreUnavailable("OpenSearch returned an unexpected search response")
        return [h for h in hits.get("hits", []) if isinstance(h, dict)]

    @staticmethod
    def _row_from_hit(hit: Dict[str, Any]) -> Dict[str, Any]:
        src = hit.get("_source") or {}
        return {
            "id": str(src.get("tweet_id") or hit.get("_id")),
            "created_at": src.get("created_at"),
            "text": src.get("text") or "",
            "is_retweet": bool(src.get("is_retweet")),
            "has_media": bool(src.get("has_media")),
        }

    def lexical_search(self, query: str, limit: int) -> List[Dict[str, Any]]:
        # simple_query_string: all terms required, "quoted phrases", -exclusions
        body = {
            "size": limit,
            "_source": SOURCE_FIELDS,
            "track_scores": True,
            "query": {
                "simple_query_string": {
                    "query": query,
                    "fields": ["text"],
                    "default_operator": "and",
                    "analyzer": TEXT_ANALYZER,
                }
            },
            "sort": [
                {"_score": {"order": "desc"}},
                {"created_at": {"order": "asc"}},
            ],
        }
        rows = []
        for hit in self._search(body):
            row = self._row_from_hit(hit)
            row["rank"] = _finite_or_zero(hit.get("_score"))
            rows.append(row)
        logger.debug(f"Lexical search returned {len(rows)} rows")
        return rows

    def vector_search(self, embedding: List[float], limit: int) -> List[Dict[str, Any]]:
        body = {
            "size": limit,
            "_source": SOURCE_FIELDS,
            "query": {
                "knn": {
                    "embedding": {
                        "vector": embedding,
                        "k": limit,
                    }
                }
            },
        }
        rows = []
        for hit in self._search(body):
            row = self._row_from_hit(hit)
            # lucene cosinesimil scores (1 + cos) / 2
            score = hit.get("_score")
            row["similarity"] = 2.0 * _finite_or_zero(score) - 1.0 if score is not None else 0.0
            rows.append(row)
        logger.debug(f"Vector search returned {len(rows)} rows")
        return rows
