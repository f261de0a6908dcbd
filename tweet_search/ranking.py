"""
Final ranking: fuse judge score, lexical rank, semantic similarity and age.

All signals are normalized per run (they are only comparable within one
candidate pool), combined with fixed weights, retweets are penalized, and
near-identical texts are collapsed to their best-scoring copy.
"""
import math
import unicodedata
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional

from pydantic import BaseModel

from .judge import MAX_SCORE, clamp_score
from .schemas import Candidate, JudgeScore, RankedCandidate, parse_timestamp

SECONDS_PER_DAY = 86400.0


class RankingWeights(BaseModel):
    """Weights and penalty for the final score."""

    llm: float = 0.6
    lexical: float = 0.15
    semantic: float = 0.15
    age: float = 0.1
    retweet_penalty: float = 0.03
    epsilon: float = 1e-6

    @classmethod
    def from_settings(cls, settings) -> "RankingWeights":
        return cls(
            llm=settings.WEIGHT_LLM,
            lexical=settings.WEIGHT_LEXICAL,
            semantic=settings.WEIGHT_SEMANTIC,
            age=settings.WEIGHT_AGE,
            retweet_penalty=settings.RETWEET_PENALTY,
            epsilon=settings.RANK_EPSILON,
        )


def scores_by_ordinal(scores: Iterable[JudgeScore]) -> Dict[int, int]:
    """Index judge scores by ordinal (a repeated ordinal keeps its last score)."""
    return {s.ordinal: s.score for s in scores}


def normalize_for_dedup(text: str) -> str:
    """
    Dedup key: lower-case, punctuation/symbol/whitespace runs collapsed to one space, trimmed.

    "Hello World!" and "hello   world" share the key "hello world".
    """
    out = []
    in_gap = False
    for ch in text.lower():
        if ch.isspace() or unicodedata.category(ch)[0] in ("P", "S"):
            if not in_gap:
                out.append(" ")
                in_gap = True
        else:
            out.append(ch)
            in_gap = False
    return "".join(out).strip()


def dedupe_by_text(ranked: List[RankedCandidate]) -> List[RankedCandidate]:
    """
    Keep only the highest-scoring candidate per dedup key.

    The survivor takes the slot of the first candidate seen with that key;
    a later copy replaces it only with a strictly higher score.
    """
    slot_by_key: Dict[str, int] = {}
    deduped: List[RankedCandidate] = []
    for r in ranked:
        key = normalize_for_dedup(r.text)
        slot = slot_by_key.get(key)
        if slot is None:
            slot_by_key[key] = len(deduped)
            deduped.append(r)
        elif r.final_score > deduped[slot].final_score:
            deduped[slot] = r
    return deduped


def _log_age_days(created_at: str, now: datetime) -> float:
    age_days = (now - parse_timestamp(created_at)).total_seconds() / SECONDS_PER_DAY
    return math.log1p(max(0.0, age_days))


def score_candidates(
    candidates: List[Candidate],
    judge_scores: Dict[int, int],
    weights: Optional[RankingWeights] = None,
    now: Optional[datetime] = None,
) -> List[RankedCandidate]:
    """
    Compute final_score for every candidate (no dedup, no sorting).

    llm_norm = clamp(score, 0, 6) / 6, missing ordinal = 0
    lex_norm = lexical_rank / max(lexical_rank, eps)
    sem_norm = semantic_similarity / max(semantic_similarity, eps)
    age_norm = min-max of ln(1 + age_days): newest ~0, oldest ~1
    """
    if not candidates:
        return []
    weights = weights or RankingWeights()
    now = now or datetime.now(timezone.utc)
    eps = weights.epsilon

    max_lex = max([c.lexical_rank for c in candidates] + [eps])
    max_sem = max([c.semantic_similarity or 0.0 for c in candidates] + [eps])

    log_ages = [_log_age_days(c.created_at, now) for c in candidates]
    min_log_age = min(log_ages)
    age_den = max(eps, max(log_ages) - min_log_age)

    ranked = []
    for c, log_age in zip(candidates, log_ages):
        llm_norm = clamp_score(judge_scores.get(c.ordinal, 0)) / MAX_SCORE
        lex_norm = max(0.0, c.lexical_rank) / max_lex
        sem_norm = max(0.0, c.semantic_similarity or 0.0) / max_sem
        age_norm = (log_age - min_log_age) / age_den

        final_score = (
            weights.llm * llm_norm
            + weights.lexical * lex_norm
            + weights.semantic * sem_norm
            + weights.age * age_norm
        )
        if c.is_retweet:
            final_score -= weights.retweet_penalty

        ranked.append(RankedCandidate(**c.model_dump(), final_score=final_score))
    return ranked


def compute_final_ranking(
    candidates: List[Candidate],
    judge_scores: Iterable[JudgeScore],
    k: int,
    weights: Optional[RankingWeights] = None,
    now: Optional[datetime] = None,
) -> List[RankedCandidate]:
    """
    Produce the final ordered, deduplicated top-k.

    Args:
        candidates: Fused candidates (ordinals as sent to the judge)
        judge_scores: Sparse judge output
        k: Number of results
        weights: Ranking weights (defaults when omitted)
        now: Reference time for age (defaults to current UTC time)

    Returns:
        At most k RankedCandidates sorted by final_score desc; ties keep pool order
    """
    ranked = score_candidates(candidates, scores_by_ordinal(judge_scores), weights, now)
    deduped = dedupe_by_text(ranked)
    deduped.sort(key=lambda r: r.final_score, reverse=True)
    return deduped[:max(k, 0)]

