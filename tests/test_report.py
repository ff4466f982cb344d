from models import Digest, OutlierPick, Paper, PaperCritique, Theme, TopPaper
from report import digest_as_dict, format_novelty, render_digest, render_listing, render_paper_detail

PAPER_A = Paper(
    paper_id="http://arxiv.org/abs/A",
    title="Paper A",
    abstract="Abstract A.",
    authors=["Ada Lovelace"],
    categories=["cs.AI"],
    pdf_link="http://arxiv.org/pdf/A",
    embedding=[1.0, 0.0],
    summary="Summary A.",
    tags=["agents"],
)
PAPER_B = Paper(paper_id="http://arxiv.org/abs/B", title="Paper B", abstract="Abstract B.")

DIGEST = Digest(
    date="2024-08-08",
    top_papers=[TopPaper(paper=PAPER_A, significance="Matters a lot.")],
    emerging_themes=[
        Theme(theme="Agents", description="Tool use.", related_paper_ids=[PAPER_A.paper_id, PAPER_B.paper_id]),
    ],
    outlier_pick=OutlierPick(paper=PAPER_B, why_interesting="Unusual."),
    key_takeaway="Agents everywhere.",
)


def test_format_novelty_distinguishes_missing_from_zero() -> None:
    assert format_novelty(None) == "unavailable"
    assert format_novelty(0.0) == "0.00"
    assert format_novelty(0.4567) == "0.46"


def test_render_digest_sections() -> None:
    text = render_digest(DIGEST)
    assert text.startswith("# Daily Digest: 2024-08-08")
    assert "> Agents everywhere." in text
    assert "1. **Paper A** (http://arxiv.org/abs/A)" in text
    assert "### Agents" in text
    assert "- Paper B (http://arxiv.org/abs/B)" in text
    assert "Unusual." in text


def test_render_digest_without_top_papers_or_themes() -> None:
    empty = Digest(
        date="2024-08-08",
        top_papers=[],
        emerging_themes=[],
        outlier_pick=DIGEST.outlier_pick,
        key_takeaway="x",
    )
    text = render_digest(empty)
    assert "No top papers" in text
    assert "_No themes._" in text


def test_render_paper_detail_marks_missing_novelty() -> None:
    critique = PaperCritique(analysis="Overall, valid.", is_valid=True, confidence_score=0.8)
    text = render_paper_detail(PAPER_A, None, "Long summary.", critique)
    assert "Novelty: unavailable" in text
    assert "## Detailed Summary" in text
    assert "Verdict: Valid (confidence 0.80)" in text


def test_render_listing_shows_scores_only_when_known() -> None:
    text = render_listing([PAPER_A, PAPER_B], {PAPER_A.paper_id: 0.25})
    assert "novelty: 0.25" in text
    assert text.count("novelty:") == 1
    assert render_listing([]) == ""


def test_digest_as_dict_drops_embeddings() -> None:
    data = digest_as_dict(DIGEST)
    assert data["topPapers"][0]["id"] == PAPER_A.paper_id
    assert "embedding" not in data["topPapers"][0]
    assert data["outlierPick"]["paper"]["significance"] == "Unusual."
    assert data["emergingThemes"][0]["relatedPaperIds"] == [PAPER_A.paper_id, PAPER_B.paper_id]
