"""arXiv Atom API ingestion and per-paper enrichment."""

from __future__ import annotations

import logging
import os
from collections.abc import Iterable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import replace
from typing import Any

import feedparser
import requests

from llm_client import get_embedding_for_text, get_paper_analysis
from models import Paper

ARXIV_API_URL = "https://export.arxiv.org/api/query"
REQUEST_TIMEOUT_SECONDS = 30
ARXIV_CATEGORIES = [
    c.strip() for c in os.getenv("ARXIV_CATEGORIES", "cs.AI,cs.LG,stat.ML").split(",") if c.strip()
]
MAX_PAPERS_PER_CATEGORY = int(os.getenv("ARXIV_MAX_PER_CATEGORY", "5"))
MAX_PAPERS_FOR_DIGEST = int(os.getenv("ARXIV_MAX_DIGEST_PAPERS", "25"))
ENRICH_MAX_WORKERS = int(os.getenv("ENRICH_MAX_WORKERS", "8"))

LOGGER = logging.getLogger(__name__)


def display_categories() -> list[str]:
    """Categories fetched for the latest-papers listing."""
    return list(ARXIV_CATEGORIES)


def fetch_papers_from_category(
    category: str,
    max_results: int | None = None,
    enrich: bool = True,
) -> list[Paper]:
    """Fetch the most recently updated papers of one category.

    Returns an empty list on any request error so one bad category never sinks
    the whole listing.
    """
    params = {
        "search_query": f"cat:{category}",
        "start": 0,
        "max_results": max_results or MAX_PAPERS_PER_CATEGORY,
        "sortBy": "lastUpdatedDate",
        "sortOrder": "descending",
    }
    try:
        papers = _query(params)
    except requests.RequestException as exc:
        LOGGER.warning("arXiv fetch failed for category=%s: %s", category, exc)
        return []

    if not papers:
        LOGGER.warning("No entries found for category=%s", category)
        return []

    LOGGER.info("arXiv fetch: category=%s count=%s", category, len(papers))
    return enrich_papers(papers) if enrich else papers


def fetch_latest_papers(categories: Iterable[str] | None = None, enrich: bool = True) -> list[Paper]:
    """Fetch every category in parallel and de-duplicate by title.

    Papers cross-listed in several categories appear once; the last fetched
    copy wins but keeps the position of the first.
    """
    categories = list(categories) if categories is not None else display_categories()
    if not categories:
        return []

    with ThreadPoolExecutor(max_workers=len(categories)) as executor:
        futures = [
            executor.submit(fetch_papers_from_category, category, None, enrich)
            for category in categories
        ]
        results: list[list[Paper]] = []
        for category, future in zip(categories, futures):
            try:
                results.append(future.result())
            except Exception as exc:
                LOGGER.exception("Category fetch crashed for category=%s: %s", category, exc)
                results.append([])

    unique: dict[str, Paper] = {}
    for papers in results:
        for paper in papers:
            unique[paper.title] = paper

    LOGGER.info(
        "Latest papers: categories=%s raw_count=%s unique=%s",
        len(categories),
        sum(len(papers) for papers in results),
        len(unique),
    )
    return list(unique.values())


def fetch_papers_by_submission_date(
    date_string: str,
    max_results: int | None = None,
    enrich: bool = True,
) -> list[Paper]:
    """Fetch papers submitted on one calendar day (``YYYY-MM-DD``).

    Returns an empty list on any request error.
    """
    compact = date_string.replace("-", "")
    params = {
        "search_query": f"submittedDate:[{compact}0000 TO {compact}2359]",
        "max_results": max_results or MAX_PAPERS_FOR_DIGEST,
        "sortBy": "submittedDate",
        "sortOrder": "descending",
    }
    try:
        papers = _query(params)
    except requests.RequestException as exc:
        LOGGER.warning("arXiv fetch failed for submission date=%s: %s", date_string, exc)
        return []

    if not papers:
        LOGGER.info("No papers found for submission date=%s", date_string)
        return []

    LOGGER.info("arXiv fetch: date=%s count=%s", date_string, len(papers))
    return enrich_papers(papers) if enrich else papers


def enrich_paper(paper: Paper) -> Paper:
    """Attach the abstract analysis and embedding to a copy of ``paper``."""
    analysis = get_paper_analysis(paper.title, paper.abstract)
    embedding = get_embedding_for_text(paper.abstract, paper.paper_id)
    return replace(paper, summary=analysis.summary, tags=list(analysis.tags), embedding=embedding)


def enrich_papers(papers: list[Paper]) -> list[Paper]:
    """Enrich papers in parallel; a failed paper is kept without enrichment."""
    if not papers:
        return []

    with ThreadPoolExecutor(max_workers=min(ENRICH_MAX_WORKERS, len(papers))) as executor:
        futures = [executor.submit(enrich_paper, paper) for paper in papers]
        enriched: list[Paper] = []
        for paper, future in zip(papers, futures):
            try:
                enriched.append(future.result())
            except Exception as exc:
                LOGGER.warning("Enrichment failed for paper_id=%s: %s", paper.paper_id, exc)
                enriched.append(paper)
    return enriched


def _query(params: dict[str, Any]) -> list[Paper]:
    response = requests.get(ARXIV_API_URL, params=params, timeout=REQUEST_TIMEOUT_SECONDS)
    response.raise_for_status()
    return parse_feed(response.text)


def parse_feed(xml_text: str) -> list[Paper]:
    """Parse an arXiv Atom feed into Paper records (not yet enriched)."""
    feed = feedparser.parse(xml_text)

    parsed: list[Paper] = []
    for entry in feed.entries:
        paper_id = _as_str(entry.get("id"))
        if not paper_id:
            continue

        parsed.append(
            Paper(
                paper_id=paper_id,
                title=_collapse(entry.get("title")),
                abstract=_collapse(entry.get("summary")),
                authors=_authors(entry),
                categories=[
                    tag.get("term") for tag in entry.get("tags", []) if tag.get("term")
                ],
                pdf_link=_pdf_link(entry),
                published_at=_as_str(entry.get("published")),
                updated_at=_as_str(entry.get("updated")),
            )
        )

    return parsed


def _authors(entry: Any) -> list[str]:
    authors = [_as_str(author.get("name")) or "Unknown Author" for author in entry.get("authors", [])]
    return authors or ["Unknown Author"]


def _pdf_link(entry: Any) -> str:
    for link in entry.get("links", []):
        href = link.get("href") or ""
        if link.get("title") == "pdf" or link.get("type") == "application/pdf":
            return href
    for link in entry.get("links", []):
        href = link.get("href") or ""
        if "pdf" in href:
            return href
    return ""


def _collapse(value: Any) -> str:
    return value.replace("\n", " ").strip() if isinstance(value, str) else ""


def _as_str(value: Any) -> str | None:
    return value.strip() if isinstance(value, str) and value.strip() else None
