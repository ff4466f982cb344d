"""Daily digest generation and reconciliation of model output against the corpus.

The model is asked to reference papers by their exact IDs but regularly
invents, truncates or omits them. ``reconcile`` repairs its reply so that every
reference in the resulting Digest resolves to a paper that was actually sent:

- top papers with unknown IDs are dropped;
- themes keep only known related IDs and vanish when none are left;
- the outlier pick always resolves, through an ordered fallback chain.

Malformed replies degrade to empty lists and fixed messages. The only error is
an empty corpus, which is a caller bug.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from datetime import UTC, date, datetime
from typing import Any

from models import Digest, OutlierPick, Paper, Theme, TopPaper

LOGGER = logging.getLogger(__name__)

FALLBACK_OUTLIER_REASON = (
    "This paper was selected as a fallback outlier as the original pick was not valid."
)
EMERGENCY_OUTLIER_REASON = (
    "Emergency fallback: original outlier and first fallback were invalid."
)
DEFAULT_KEY_TAKEAWAY = "Key developments in AI research across multiple domains."


class EmptyCorpusError(ValueError):
    """Raised when a digest is requested over zero papers."""


def generate_paper_digest(papers: Sequence[Paper]) -> Digest:
    """Ask the model for a digest of ``papers`` and reconcile its reply."""
    if not papers:
        raise EmptyCorpusError("No papers provided for digest generation")

    from llm_client import request_digest  # noqa: PLC0415

    LOGGER.info("Generating digest over %s papers", len(papers))
    raw_digest = request_digest(papers)
    return reconcile(raw_digest, papers)


def reconcile(raw_digest: Any, corpus: Sequence[Paper]) -> Digest:
    """Validate and repair a raw model digest against the papers it was built from."""
    if not corpus:
        raise EmptyCorpusError("Cannot reconcile a digest over an empty corpus")

    raw = raw_digest if isinstance(raw_digest, dict) else {}
    if raw is not raw_digest:
        LOGGER.warning("Digest payload is %s, not an object; using an empty one", type(raw_digest).__name__)

    papers_by_id: dict[str, Paper] = {}
    for paper in corpus:
        papers_by_id.setdefault(paper.paper_id, paper)

    top_papers = _reconcile_top_papers(raw.get("topPapers"), papers_by_id)
    themes = _reconcile_themes(raw.get("emergingThemes"), papers_by_id)
    outlier = _resolve_outlier(raw.get("outlierPick"), corpus, papers_by_id)

    key_takeaway = raw.get("keyTakeaway")
    if not isinstance(key_takeaway, str) or not key_takeaway.strip():
        key_takeaway = DEFAULT_KEY_TAKEAWAY

    return Digest(
        date=digest_date(corpus[0]),
        top_papers=top_papers,
        emerging_themes=themes,
        outlier_pick=outlier,
        key_takeaway=key_takeaway,
    )


def digest_date(paper: Paper) -> str:
    """Return the paper's published day as YYYY-MM-DD, or today's when unknown."""
    raw = paper.published_at
    if raw:
        day = raw.strip().split("T")[0]
        try:
            return date.fromisoformat(day).isoformat()
        except ValueError:
            LOGGER.warning("Unparseable published date %r for %s", raw, paper.paper_id)
    return datetime.now(UTC).date().isoformat()


def _reconcile_top_papers(raw_top: Any, papers_by_id: dict[str, Paper]) -> list[TopPaper]:
    if not isinstance(raw_top, list):
        return []

    kept: list[TopPaper] = []
    for entry in raw_top:
        if not isinstance(entry, dict):
            continue
        paper = _lookup(entry.get("id"), papers_by_id)
        if paper is None:
            LOGGER.warning("Dropping top paper with unknown id=%r", entry.get("id"))
            continue
        kept.append(TopPaper(paper=paper, significance=_as_text(entry.get("significance"))))

    if raw_top and not kept:
        LOGGER.warning("Model returned %s top papers but none had a valid id", len(raw_top))
    return kept


def _reconcile_themes(raw_themes: Any, papers_by_id: dict[str, Paper]) -> list[Theme]:
    if not isinstance(raw_themes, list):
        return []

    themes: list[Theme] = []
    for entry in raw_themes:
        if not isinstance(entry, dict):
            continue
        related = entry.get("relatedPaperIds")
        if not isinstance(related, list):
            related = []
        valid_ids = [pid for pid in related if _lookup(pid, papers_by_id) is not None]
        if not valid_ids:
            LOGGER.warning("Dropping theme %r: no related paper ids survived", entry.get("theme"))
            continue
        themes.append(
            Theme(
                theme=_as_text(entry.get("theme")),
                description=_as_text(entry.get("description")),
                related_paper_ids=valid_ids,
            )
        )
    return themes


# ─────────────────────────────────────────────────────────────────────────────
# Outlier resolution
# ─────────────────────────────────────────────────────────────────────────────

OutlierStrategy = Callable[[dict[str, Any], Sequence[Paper], dict[str, Paper]], OutlierPick | None]


def _model_pick(
    raw_pick: dict[str, Any],
    corpus: Sequence[Paper],
    papers_by_id: dict[str, Paper],
) -> OutlierPick | None:
    paper = _lookup(raw_pick.get("paperId"), papers_by_id)
    if paper is None:
        return None
    return OutlierPick(paper=paper, why_interesting=_as_text(raw_pick.get("whyInteresting")))


def _last_paper_fallback(
    raw_pick: dict[str, Any],
    corpus: Sequence[Paper],
    papers_by_id: dict[str, Paper],
) -> OutlierPick | None:
    LOGGER.warning(
        "Outlier id=%r not found in corpus; falling back to the last paper",
        raw_pick.get("paperId"),
    )
    paper = papers_by_id.get(corpus[-1].paper_id)
    if paper is None:
        return None
    return OutlierPick(paper=paper, why_interesting=FALLBACK_OUTLIER_REASON)


def _first_paper_fallback(
    raw_pick: dict[str, Any],
    corpus: Sequence[Paper],
    papers_by_id: dict[str, Paper],
) -> OutlierPick | None:
    LOGGER.error("Could not find the fallback outlier paper; using the first paper")
    return OutlierPick(paper=corpus[0], why_interesting=EMERGENCY_OUTLIER_REASON)


# Tried in order; the last strategy always succeeds on a non-empty corpus.
OUTLIER_STRATEGIES: tuple[OutlierStrategy, ...] = (
    _model_pick,
    _last_paper_fallback,
    _first_paper_fallback,
)


def _resolve_outlier(
    raw_pick: Any,
    corpus: Sequence[Paper],
    papers_by_id: dict[str, Paper],
    strategies: Sequence[OutlierStrategy] = OUTLIER_STRATEGIES,
) -> OutlierPick:
    pick = raw_pick if isinstance(raw_pick, dict) else {}
    for strategy in strategies:
        resolved = strategy(pick, corpus, papers_by_id)
        if resolved is not None:
            return resolved
    raise RuntimeError("Outlier strategies exhausted without a result")


def _lookup(paper_id: Any, papers_by_id: dict[str, Paper]) -> Paper | None:
    if not isinstance(paper_id, str):
        return None
    return papers_by_id.get(paper_id)


def _as_text(value: Any) -> str:
    return value if isinstance(value, str) else ""
