"""
Candidate fetchers: lexical (full-text rank) and semantic (nearest neighbor).

Both fetchers are independent and run concurrently for a search; only the
semantic branch has an internal step (embedding the query first).
"""
import logging
import math
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, List

from .embeddings import EmbeddingProvider
from .errors import EmbeddingProviderError
from .fusion import fuse_candidates
from .schemas import Candidate, to_iso
from .store import TweetStore

logger = logging.getLogger(__name__)


def _finite(value: Any) -> float:
    """Coerce a store score to a finite float (0 for null/NaN/garbage)."""
    if isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value):
        return float(value)
    return 0.0


def _candidate_from_row(ordinal: int, row: Dict[str, Any], **signals) -> Candidate:
    return Candidate(
        ordinal=ordinal,
        document_id=str(row["id"]),
        created_at=to_iso(row["created_at"]),
        text=row.get("text") or "",
        is_retweet=bool(row.get("is_retweet")),
        has_media=bool(row.get("has_media")),
        **signals,
    )


def fetch_lexical_candidates(store: TweetStore, query: str, limit: int) -> List[Candidate]:
    """
    Fetch the top lexical matches for a query.

    Args:
        store: Tweet store
        query: Raw user query
        limit: Maximum candidates

    Returns:
        Candidates ordered as the store ranked them (rank desc, older first on ties);
        empty when nothing matches

    Raises:
        StoreUnavailable: If the store cannot be queried
    """
    rows = store.lexical_search(query, limit)
    return [
        _candidate_from_row(i, row, lexical_rank=_finite(row.get("rank")))
        for i, row in enumerate(rows[:limit])
    ]


def fetch_semantic_candidates(
    store: TweetStore,
    embedder: EmbeddingProvider,
    query: str,
    limit: int,
) -> List[Candidate]:
    """
    Embed the query and fetch its nearest neighbors.

    Only documents that have an embedding are returned; lexical_rank is 0.

    Raises:
        EmbeddingProviderError: If the query cannot be embedded
        StoreUnavailable: If the nearest-neighbor query fails
    """
    query_vec = embedder.embed_query(query)
    rows = store.vector_search(query_vec, limit)
    return [
        _candidate_from_row(i, row, lexical_rank=0.0, semantic_similarity=_finite(row.get("similarity")))
        for i, row in enumerate(rows[:limit])
    ]


def fetch_hybrid_candidates(
    store: TweetStore,
    embedder: EmbeddingProvider,
    query: str,
    limit: int,
    fallback_lexical: bool = False,
) -> List[Candidate]:
    """
    Run both fetchers concurrently and fuse their results.

    Args:
        store: Tweet store
        embedder: Embedding provider for the query vector
        query: Raw user query
        limit: Maximum candidates per fetcher
        fallback_lexical: Continue with lexical-only candidates when
            the query embedding fails instead of raising

    Returns:
        Fused candidate pool with dense ordinals
    """
    start = time.time()
    with ThreadPoolExecutor(max_workers=2) as executor:
        future_lexical = executor.submit(fetch_lexical_candidates, store, query, limit)
        future_semantic = executor.submit(fetch_semantic_candidates, store, embedder, query, limit)

        lexical = future_lexical.result()
        try:
            semantic = future_semantic.result()
        except EmbeddingProviderError as e:
            if not fallback_lexical:
                raise
            logger.warning(f"Query embedding failed, continuing lexical-only: {e}")
            semantic = []

    fused = fuse_candidates(lexical, semantic)
    logger.info(
        f"Lexical returned {len(lexical)}, semantic returned {len(semantic)}, "
        f"fused {len(fused)} unique ({int((time.time() - start) * 1000)}ms)"
    )
    return fused
