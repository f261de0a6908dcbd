"""
Relevance judge: an LLM that rates each candidate tweet 0-6 against the query.

The judge sees candidates by ordinal and answers with a sparse list of
{i, score}; candidates it leaves out are treated as score 0 by the ranker.
Its output is only loosely structured, so parsing is strict-then-fallback.
"""
import json
import logging
import math
from abc import ABC, abstractmethod
from typing import Any, List, Optional

import requests

from .errors import JudgeParseError, JudgeUnavailable
from .schemas import Candidate, JudgeCandidate, JudgeScore
from .truncation import truncate_text

logger = logging.getLogger(__name__)

MIN_SCORE = 0
MAX_SCORE = 6

SYSTEM_PROMPT = (
    "You rate tweets strictly 0..6 for how well they describe or entail the given headline. "
    "Return only compact JSON array of {i, score}. No commentary."
)


class RelevanceJudge(ABC):
    """Abstract relevance judge."""

    @abstractmethod
    def judge(self, query: str, candidates: List[Candidate]) -> List[JudgeScore]:
        """
        Score candidates against the query.

        Args:
            query: User query
            candidates: Fused candidates with dense ordinals

        Returns:
            Scores keyed by ordinal, possibly for a subset of candidates

        Raises:
            JudgeUnavailable: Transport or HTTP failure
            JudgeParseError: Response could not be interpreted
        """
        pass


def _to_number(value: Any) -> Optional[float]:
    """Numeric coercion for judge fields; None when not a finite number."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        f = float(value)
    elif isinstance(value, str) and value.strip():
        try:
            f = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    return f if math.isfinite(f) else None


def clamp_score(value: float, lo: int = MIN_SCORE, hi: int = MAX_SCORE) -> int:
    """Round half up and clamp into [lo, hi]."""
    return max(lo, min(hi, int(math.floor(value + 0.5))))


def normalize_judge_entries(entries: List[Any]) -> List[JudgeScore]:
    """
    Turn raw judge entries into JudgeScores.

    Entries without a finite integral ordinal or a finite score are dropped
    one by one; out-of-range scores are clamped.
    """
    scores = []
    for entry in entries:
        if not isinstance(entry, dict):
            logger.debug(f"Dropping non-object judge entry: {entry!r}")
            continue
        raw_ordinal = entry.get("i")
        if raw_ordinal is None:
            raw_ordinal = entry.get("ordinal")
        ordinal = _to_number(raw_ordinal)
        score = _to_number(entry.get("score"))
        if ordinal is None or score is None or not ordinal.is_integer():
            logger.debug(f"Dropping malformed judge entry: {entry!r}")
            continue
        scores.append(JudgeScore(ordinal=int(ordinal), score=clamp_score(score)))
    return scores


def _first_json_array(content: str) -> Optional[list]:
    """Find the first substring that decodes as a JSON array."""
    decoder = json.JSONDecoder()
    pos = content.find("[")
    while pos != -1:
        try:
            value, _ = decoder.raw_decode(content, pos)
        except ValueError:
            value = None
        if isinstance(value, list):
            return value
        pos = content.find("[", pos + 1)
    return None


def parse_judge_response(content: str) -> List[JudgeScore]:
    """
    Parse the judge's text answer.

    Tries the whole payload as a JSON array first, then the first
    well-formed array embedded in it (code fences, prose, wrapper objects).

    Raises:
        JudgeParseError: If neither stage yields an array
    """
    try:
        data = json.loads(content)
        if isinstance(data, list):
            return normalize_judge_entries(data)
    except ValueError:
        pass

    data = _first_json_array(content)
    if data is not None:
        return normalize_judge_entries(data)

    logger.error(f"Failed to parse judge response: {content[:200]!r}")
    raise JudgeParseError("Failed to parse rerank JSON", content=content)


def build_judge_candidates(candidates: List[Candidate], max_chars: int) -> List[JudgeCandidate]:
    """Compact candidates for the judge prompt."""
    return [
        JudgeCandidate(
            i=c.ordinal,
            id=c.document_id,
            created_at=c.created_at,
            text=truncate_text(c.text, max_chars),
        )
        for c in candidates
    ]


class OpenRouterJudge(RelevanceJudge):
    """Relevance judge served through the OpenRouter chat completions API."""

    def __init__(self, settings, session: Optional[requests.Session] = None):
        """
        Initialize judge.

        Args:
            settings: Configuration settings
            session: Optional requests session
        """
        self.settings = settings
        self.session = session or requests.Session()

    def build_messages(self, query: str, candidates: List[Candidate]) -> List[dict]:
        compact = build_judge_candidates(candidates, self.settings.JUDGE_TEXT_CHARS)
        jsonl = "\n".join(
            json.dumps(c.model_dump(), ensure_ascii=False, separators=(",", ":")) for c in compact
        )
        return [
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": f"Headline: {query}\n\nCandidates (JSONL):\n{jsonl}"},
        ]

    def _call(self, messages: List[dict]) -> str:
        payload = {
            "model": self.settings.RERANK_MODEL,
            "messages": messages,
            "temperature": 0,
            "max_tokens": self.settings.JUDGE_MAX_TOKENS,
        }
        headers = {
            "Authorization": f"Bearer {self.settings.OPENROUTER_API_KEY or ''}",
            "Content-Type": "application/json",
        }
        try:
            response = self.session.post(
                self.settings.OPENROUTER_URL,
                json=payload,
                headers=headers,
                timeout=self.settings.JUDGE_TIMEOUT_S,
            )
            response.raise_for_status()
            data = response.json()
        except requests.RequestException as e:
            logger.error(f"Judge request failed: {e}")
            raise JudgeUnavailable(f"OpenRouter request failed: {e}") from e

        try:
            return data["choices"][0]["message"]["content"] or ""
        except (KeyError, IndexError, TypeError):
            return ""

    def judge(self, query: str, candidates: List[Candidate]) -> List[JudgeScore]:
        if not candidates:
            return []

        logger.info(f"Judging {len(candidates)} candidates with {self.settings.RERANK_MODEL}")
        content = self._call(self.build_messages(query, candidates))
        scores = parse_judge_response(content)
        logger.info(f"Judge returned {len(scores)} scores")
        return scores
