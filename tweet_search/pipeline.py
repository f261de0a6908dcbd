"""
Pipeline orchestrator for hybrid tweet search.

Coordinates retrieval (lexical + semantic), fusion, relevance judging and
final ranking. Each call is independent: no state survives a request.
"""
import time
import logging
from typing import List, Optional

from .embeddings import EmbeddingProvider, get_embedding_provider
from .judge import OpenRouterJudge, RelevanceJudge
from .ranking import RankingWeights, compute_final_ranking
from .retrieval import fetch_hybrid_candidates
from .schemas import RankedCandidate
from .store import OpenSearchTweetStore, TweetStore

logger = logging.getLogger(__name__)


class TweetSearchPipeline:
    """Main pipeline coordinating all stages."""

    def __init__(
        self,
        settings,
        store: Optional[TweetStore] = None,
        embedder: Optional[EmbeddingProvider] = None,
        judge: Optional[RelevanceJudge] = None,
    ):
        """
        Initialize pipeline.

        Args:
            settings: Configuration settings
            store: Optional store (OpenSearch if not provided)
            embedder: Optional embedding provider (configured backend if not provided)
            judge: Optional relevance judge (OpenRouter if not provided)
        """
        self.settings = settings
        self.store = store or OpenSearchTweetStore(settings)
        self.embedder = embedder or get_embedding_provider(settings)
        self.judge = judge or OpenRouterJudge(settings)
        self.weights = RankingWeights.from_settings(settings)

    def search(self, query: str, k: int) -> List[RankedCandidate]:
        """
        Execute a search.

        Args:
            query: Non-empty user query
            k: Number of results

        Returns:
            Up to k RankedCandidates, best first

        Raises:
            StoreUnavailable, EmbeddingProviderError, JudgeUnavailable, JudgeParseError
        """
        timing = {}
        start_total = time.time()

        # Stage 0: Retrieval
        start = time.time()
        candidates = fetch_hybrid_candidates(
            self.store,
            self.embedder,
            query,
            self.settings.CANDIDATE_LIMIT,
            fallback_lexical=self.settings.SEMANTIC_FALLBACK_LEXICAL,
        )
        timing["retrieval_ms"] = int((time.time() - start) * 1000)
        logger.info(f"[Stage 0] Retrieved {len(candidates)} candidates ({timing['retrieval_ms']}ms)")

        if not candidates:
            logger.info("No candidates, skipping judge")
            return []

        # Stage 1: Judge
        start = time.time()
        scores = self.judge.judge(query, candidates)
        timing["judge_ms"] = int((time.time() - start) * 1000)
        logger.info(f"[Stage 1] Judge scored {len(scores)}/{len(candidates)} candidates ({timing['judge_ms']}ms)")

        # Stage 2: Final ranking
        start = time.time()
        results = compute_final_ranking(candidates, scores, k, weights=self.weights)
        timing["rank_ms"] = int((time.time() - start) * 1000)
        timing["total_ms"] = int((time.time() - start_total) * 1000)
        logger.info(f"[Stage 2] Ranked top-{len(results)} of {len(candidates)} (total={timing['total_ms']}ms)")

        return results
