"""
Candidate fusion: merge lexical and semantic candidates by tweet id.
"""
from typing import Dict, List

from .schemas import Candidate


def fuse_candidates(lexical: List[Candidate], semantic: List[Candidate]) -> List[Candidate]:
    """
    Union the two candidate lists by document id.

    Lexical candidates come first in fetched order, then semantic-only
    candidates in fetched order. A document found by both keeps its lexical
    rank and gains the semantic similarity; a signal missing from one source
    is set to 0. Ordinals are reassigned 0..n-1 over the fused order, which
    is the numbering the judge sees.

    Inputs are not modified.

    Args:
        lexical: Candidates from the lexical fetcher
        semantic: Candidates from the semantic fetcher

    Returns:
        Fused candidates, unique by document_id
    """
    combined: List[Candidate] = []
    position: Dict[str, int] = {}
    seen_semantic = set()

    for c in lexical:
        if c.document_id in position:
            continue
        position[c.document_id] = len(combined)
        combined.append(c.model_copy(update={"semantic_similarity": 0.0}))

    for c in semantic:
        if c.document_id in seen_semantic:
            continue
        seen_semantic.add(c.document_id)
        sim = c.semantic_similarity or 0.0
        idx = position.get(c.document_id)
        if idx is None:
            position[c.document_id] = len(combined)
            combined.append(c.model_copy(update={"lexical_rank": 0.0, "semantic_similarity": sim}))
        else:
            combined[idx] = combined[idx].model_copy(update={"semantic_similarity": sim})

    return [c.model_copy(update={"ordinal": i}) for i, c in enumerate(combined)]
