"""Plain-text rendering of digests, paper details and listings.

Novelty scores that could not be computed are shown as "unavailable", never
as 0.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from models import Digest, Paper, PaperCritique

NOVELTY_UNAVAILABLE = "unavailable"


def format_novelty(score: float | None) -> str:
    return NOVELTY_UNAVAILABLE if score is None else f"{score:.2f}"


def render_digest(digest: Digest) -> str:
    """Render a reconciled digest as Markdown."""
    lines = [f"# Daily Digest: {digest.date}", "", f"> {digest.key_takeaway}", ""]

    lines.append("## Top Papers")
    if not digest.top_papers:
        lines.append("_No top papers could be matched to the fetched papers._")
    for rank, top in enumerate(digest.top_papers, start=1):
        lines.append(f"{rank}. **{top.paper.title}** ({top.paper.paper_id})")
        if top.paper.categories:
            lines.append(f"   Categories: {', '.join(top.paper.categories)}")
        lines.append(f"   {top.significance}")
    lines.append("")

    titles = {top.paper.paper_id: top.paper.title for top in digest.top_papers}
    titles[digest.outlier_pick.paper.paper_id] = digest.outlier_pick.paper.title

    lines.append("## Emerging Themes")
    if not digest.emerging_themes:
        lines.append("_No themes._")
    for theme in digest.emerging_themes:
        lines.append(f"### {theme.theme}")
        lines.append(theme.description)
        for paper_id in theme.related_paper_ids:
            label = titles.get(paper_id)
            lines.append(f"- {label} ({paper_id})" if label else f"- {paper_id}")
        lines.append("")

    outlier = digest.outlier_pick
    lines.append("## Outlier Pick")
    lines.append(f"**{outlier.paper.title}** ({outlier.paper.paper_id})")
    lines.append(outlier.why_interesting)
    return "\n".join(lines).rstrip() + "\n"


def render_paper_detail(
    paper: Paper,
    novelty: float | None,
    full_summary: str | None = None,
    critique: PaperCritique | None = None,
) -> str:
    """Render the single-paper view: metadata, novelty, summaries, validity."""
    lines = [f"# {paper.title}", ""]
    lines.append(f"Authors: {', '.join(paper.authors)}")
    if paper.categories:
        lines.append(f"Categories: {', '.join(paper.categories)}")
    lines.append(f"Novelty: {format_novelty(novelty)}")
    if paper.tags:
        lines.append(f"Tags: {', '.join(paper.tags)}")
    lines.append(f"arXiv: {paper.paper_id}")
    if paper.pdf_link:
        lines.append(f"PDF: {paper.pdf_link}")
    lines += ["", "## Abstract", paper.abstract]

    if full_summary:
        lines += ["", "## Detailed Summary", full_summary]

    if critique is not None:
        verdict = "Valid" if critique.is_valid else "Invalid"
        lines += [
            "",
            "## Validity",
            critique.analysis,
            f"Verdict: {verdict} (confidence {critique.confidence_score:.2f})",
        ]
    return "\n".join(lines) + "\n"


def render_listing(papers: Sequence[Paper], novelty: Mapping[str, float | None] | None = None) -> str:
    """One block per paper: title, id, categories, AI summary."""
    novelty = novelty or {}
    blocks = []
    for paper in papers:
        block = [f"* {paper.title}", f"  {paper.paper_id}"]
        if paper.categories:
            block.append(f"  [{', '.join(paper.categories)}]")
        if paper.paper_id in novelty:
            block.append(f"  novelty: {format_novelty(novelty[paper.paper_id])}")
        if paper.summary:
            block.append(f"  {paper.summary}")
        blocks.append("\n".join(block))
    return "\n\n".join(blocks) + ("\n" if blocks else "")


def digest_as_dict(digest: Digest) -> dict[str, Any]:
    """JSON-ready view of a digest; embeddings are left out."""

    def paper_entry(paper: Paper, significance: str) -> dict[str, Any]:
        return {
            "id": paper.paper_id,
            "title": paper.title,
            "abstract": paper.abstract,
            "significance": significance,
            "categories": list(paper.categories),
            "pdfLink": paper.pdf_link,
        }

    return {
        "date": digest.date,
        "topPapers": [paper_entry(top.paper, top.significance) for top in digest.top_papers],
        "emergingThemes": [
            {
                "theme": theme.theme,
                "description": theme.description,
                "relatedPaperIds": list(theme.related_paper_ids),
            }
            for theme in digest.emerging_themes
        ],
        "outlierPick": {
            "paper": paper_entry(digest.outlier_pick.paper, digest.outlier_pick.why_interesting),
            "whyInteresting": digest.outlier_pick.why_interesting,
        },
        "keyTakeaway": digest.key_takeaway,
    }
