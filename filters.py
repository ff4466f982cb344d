"""Listing filters: title search and category selection (no LLM calls)."""

from __future__ import annotations

from collections.abc import Iterable

from models import Paper

ALL_CATEGORIES = "all"


def filter_papers(
    papers: Iterable[Paper],
    query: str | None = None,
    category: str | None = None,
) -> list[Paper]:
    """Return papers whose title contains ``query`` and that carry ``category``.

    The title match is case-insensitive. A category of "all" or empty keeps
    every category. Input order is preserved.
    """
    needle = (query or "").lower()
    wanted = category if category and category != ALL_CATEGORIES else None

    kept: list[Paper] = []
    for paper in papers:
        if needle and needle not in paper.title.lower():
            continue
        if wanted is not None and wanted not in paper.categories:
            continue
        kept.append(paper)
    return kept


def all_categories(papers: Iterable[Paper]) -> list[str]:
    """Sorted unique categories across the given papers."""
    return sorted({category for paper in papers for category in paper.categories})
