"""Embedding-based novelty scoring."""

from __future__ import annotations

import logging
import math
from collections.abc import Sequence

import numpy as np

from models import Paper

LOGGER = logging.getLogger(__name__)


def cosine_similarity(vec1: Sequence[float], vec2: Sequence[float]) -> float:
    """Return the cosine similarity of two vectors.

    A zero-magnitude vector on either side yields 0.0 rather than an error, as
    do vectors of mismatched dimension (logged).
    """
    try:
        arr1 = np.asarray(vec1, dtype=np.float64)
        arr2 = np.asarray(vec2, dtype=np.float64)

        norm1 = np.linalg.norm(arr1)
        norm2 = np.linalg.norm(arr2)
        if norm1 == 0 or norm2 == 0:
            return 0.0

        return float(np.dot(arr1, arr2) / (norm1 * norm2))
    except (ValueError, TypeError) as exc:
        LOGGER.error("Error calculating cosine similarity: %s", exc)
        return 0.0


def novelty_score(
    target: Sequence[float] | None,
    corpus: Sequence[Sequence[float]],
) -> float | None:
    """Return ``1 - max cosine similarity`` of target against the corpus.

    A paper that closely resembles any single other paper is not novel, so the
    comparison is a max, not an average. Returns None when the target has no
    embedding or the corpus is empty: there is no evidence either way.
    """
    if target is None or len(corpus) == 0:
        return None

    max_similarity = 0.0
    for vector in corpus:
        similarity = cosine_similarity(target, vector)
        if similarity > max_similarity:
            max_similarity = similarity

    # Rounding can put a self-match a few ulps either side of 1.0.
    if math.isclose(max_similarity, 1.0):
        return 0.0
    return max(0.0, 1.0 - max_similarity)


def score_corpus(papers: Sequence[Paper]) -> dict[str, float | None]:
    """Score every paper against all *other* embedded papers in the list."""
    scores: dict[str, float | None] = {}
    for paper in papers:
        others = [
            other.embedding
            for other in papers
            if other.paper_id != paper.paper_id and other.embedding is not None
        ]
        score = novelty_score(paper.embedding, others)
        if score is None:
            if paper.embedding is None:
                LOGGER.warning("Paper %s has no embedding; novelty unavailable", paper.paper_id)
            else:
                LOGGER.warning("Corpus is empty; novelty unavailable for %s", paper.paper_id)
        scores[paper.paper_id] = score
    return scores
