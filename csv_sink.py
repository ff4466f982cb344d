"""CSV export of a paper listing with novelty scores."""

from __future__ import annotations

import csv
import logging
import os
from collections.abc import Mapping, Sequence
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from models import Paper

CSV_OUTPUT_PATH = os.getenv("CSV_OUTPUT_PATH", "papers_listing.csv")

LOGGER = logging.getLogger(__name__)

CSV_COLUMNS = [
    "paper_id",
    "title",
    "authors",
    "categories",
    "published_at",
    "updated_at",
    "pdf_link",
    "tags",
    "summary",
    "novelty_score",  # empty when the paper or corpus had no embedding
    "exported_at",
]


def write_listing(
    papers: Sequence[Paper],
    novelty: Mapping[str, float | None] | None = None,
    csv_path: str | None = None,
) -> Path:
    """Write one row per paper, replacing any previous export at the path."""
    path = Path(csv_path or CSV_OUTPUT_PATH)
    novelty = novelty or {}
    exported_at = datetime.now(UTC).isoformat()

    with path.open("w", newline="", encoding="utf-8") as fh:
        writer = csv.DictWriter(fh, fieldnames=CSV_COLUMNS)
        writer.writeheader()
        for paper in papers:
            score = novelty.get(paper.paper_id)
            writer.writerow(
                {
                    "paper_id": paper.paper_id,
                    "title": paper.title,
                    "authors": "; ".join(paper.authors),
                    "categories": "; ".join(paper.categories),
                    "published_at": paper.published_at or "",
                    "updated_at": paper.updated_at or "",
                    "pdf_link": paper.pdf_link,
                    "tags": "; ".join(paper.tags),
                    "summary": _as_text(paper.summary),
                    "novelty_score": "" if score is None else round(score, 4),
                    "exported_at": exported_at,
                }
            )

    LOGGER.info("Wrote %s rows to %s", len(papers), path)
    return path


def _as_text(value: Any, max_len: int = 1000) -> str:
    """Convert value to a stripped string, truncated to max_len chars."""
    s = value.strip() if isinstance(value, str) else ""
    if len(s) > max_len:
        return s[: max_len - 1] + "…"
    return s
