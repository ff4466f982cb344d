"""Shared typed models for the digest pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True, slots=True)
class Paper:
    """Normalized arXiv paper record used across ingestion and enrichment.

    ``paper_id`` is the canonical arXiv abs URL. ``embedding`` is None when the
    abstract was too short or embedding failed, which is not the same thing as
    a zero vector.
    """

    paper_id: str
    title: str
    abstract: str
    authors: list[str] = field(default_factory=list)
    categories: list[str] = field(default_factory=list)
    pdf_link: str = ""
    published_at: str | None = None
    updated_at: str | None = None
    embedding: list[float] | None = None
    summary: str | None = None
    tags: list[str] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class PaperAnalysis:
    summary: str
    tags: list[str]


@dataclass(frozen=True, slots=True)
class PaperCritique:
    analysis: str
    is_valid: bool
    confidence_score: float


@dataclass(frozen=True, slots=True)
class TopPaper:
    paper: Paper
    significance: str


@dataclass(frozen=True, slots=True)
class Theme:
    theme: str
    description: str
    related_paper_ids: list[str]


@dataclass(frozen=True, slots=True)
class OutlierPick:
    paper: Paper
    why_interesting: str


@dataclass(frozen=True, slots=True)
class Digest:
    """Date-stamped aggregate built from one corpus; recomputed on demand."""

    date: str
    top_papers: list[TopPaper]
    emerging_themes: list[Theme]
    outlier_pick: OutlierPick
    key_takeaway: str
