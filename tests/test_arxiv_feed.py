from unittest.mock import MagicMock, patch

import requests

import arxiv_feed
from arxiv_feed import (
    enrich_papers,
    fetch_latest_papers,
    fetch_papers_by_submission_date,
    fetch_papers_from_category,
    parse_feed,
)
from models import Paper, PaperAnalysis


def _entry(arxiv_id: str, title: str, categories: tuple[str, ...] = ("cs.AI",)) -> str:
    category_tags = "".join(f'<category term="{c}" scheme="http://arxiv.org/schemas/atom"/>' for c in categories)
    return f"""
  <entry>
    <id>http://arxiv.org/abs/{arxiv_id}</id>
    <updated>2024-08-09T10:00:00Z</updated>
    <published>2024-08-08T17:59:01Z</published>
    <title>{title}</title>
    <summary>First line of the abstract
continues here.</summary>
    <author><name>Ada Lovelace</name></author>
    <author><name>Alan Turing</name></author>
    <link href="http://arxiv.org/abs/{arxiv_id}" rel="alternate" type="text/html"/>
    <link title="pdf" href="http://arxiv.org/pdf/{arxiv_id}" rel="related" type="application/pdf"/>
    {category_tags}
  </entry>"""


def _feed(*entries: str) -> str:
    return (
        '<?xml version="1.0" encoding="UTF-8"?>\n'
        '<feed xmlns="http://www.w3.org/2005/Atom">\n'
        "  <title>ArXiv Query</title>"
        + "".join(entries)
        + "\n</feed>\n"
    )


def _mock_resp(xml_text: str) -> MagicMock:
    mock = MagicMock()
    mock.text = xml_text
    return mock


def test_parse_feed_smoke() -> None:
    papers = parse_feed(_feed(_entry("2408.04406v2", "Test\n  Paper", ("cs.AI", "cs.LG"))))

    assert len(papers) == 1
    paper = papers[0]
    assert paper.paper_id == "http://arxiv.org/abs/2408.04406v2"
    assert "\n" not in paper.title
    assert paper.abstract == "First line of the abstract continues here."
    assert paper.authors == ["Ada Lovelace", "Alan Turing"]
    assert paper.categories == ["cs.AI", "cs.LG"]
    assert paper.pdf_link == "http://arxiv.org/pdf/2408.04406v2"
    assert paper.published_at == "2024-08-08T17:59:01Z"
    assert paper.embedding is None


def test_parse_feed_empty() -> None:
    assert parse_feed(_feed()) == []


def test_fetch_category_returns_empty_on_request_error() -> None:
    with patch("arxiv_feed.requests.get", side_effect=requests.RequestException("timeout")):
        assert fetch_papers_from_category("cs.AI") == []


def test_fetch_category_query_params() -> None:
    with patch("arxiv_feed.requests.get", return_value=_mock_resp(_feed())) as mock_get:
        fetch_papers_from_category("cs.LG", max_results=7, enrich=False)

    params = mock_get.call_args.kwargs["params"]
    assert params["search_query"] == "cat:cs.LG"
    assert params["max_results"] == 7
    assert params["sortBy"] == "lastUpdatedDate"
    assert params["sortOrder"] == "descending"


def test_fetch_by_submission_date_builds_day_range() -> None:
    with patch("arxiv_feed.requests.get", return_value=_mock_resp(_feed(_entry("2408.00001v1", "A")))) as mock_get:
        papers = fetch_papers_by_submission_date("2024-08-08", enrich=False)

    params = mock_get.call_args.kwargs["params"]
    assert params["search_query"] == "submittedDate:[202408080000 TO 202408082359]"
    assert params["max_results"] == arxiv_feed.MAX_PAPERS_FOR_DIGEST
    assert [p.paper_id for p in papers] == ["http://arxiv.org/abs/2408.00001v1"]


def test_fetch_by_submission_date_returns_empty_on_error() -> None:
    with patch("arxiv_feed.requests.get", side_effect=requests.RequestException("500")):
        assert fetch_papers_by_submission_date("2024-08-08") == []


def test_fetch_latest_dedups_by_title_across_categories() -> None:
    ai = _feed(_entry("1v1", "Shared Paper", ("cs.AI",)), _entry("2v1", "Only AI"))
    lg = _feed(_entry("3v1", "Shared Paper", ("cs.LG",)), _entry("4v1", "Only LG"))

    def fake_get(url: str, params: dict, timeout: int) -> MagicMock:
        return _mock_resp(ai if params["search_query"] == "cat:cs.AI" else lg)

    with patch("arxiv_feed.requests.get", side_effect=fake_get):
        papers = fetch_latest_papers(["cs.AI", "cs.LG"], enrich=False)

    titles = [p.title for p in papers]
    assert titles == ["Shared Paper", "Only AI", "Only LG"]
    # the later copy wins, keeping the first position
    assert papers[0].paper_id == "http://arxiv.org/abs/3v1"


def test_fetch_latest_survives_failing_category() -> None:
    good = _feed(_entry("1v1", "Good Paper"))

    def fake_get(url: str, params: dict, timeout: int) -> MagicMock:
        if params["search_query"] == "cat:cs.AI":
            raise requests.RequestException("down")
        return _mock_resp(good)

    with patch("arxiv_feed.requests.get", side_effect=fake_get):
        papers = fetch_latest_papers(["cs.AI", "stat.ML"], enrich=False)

    assert [p.title for p in papers] == ["Good Paper"]


def test_enrich_papers_attaches_analysis_and_embedding() -> None:
    paper = Paper(paper_id="http://arxiv.org/abs/1v1", title="T", abstract="abstract text")

    with patch("arxiv_feed.get_paper_analysis", return_value=PaperAnalysis(summary="S", tags=["x"])), \
         patch("arxiv_feed.get_embedding_for_text", return_value=[1.0, 0.0]) as mock_embed:
        enriched = enrich_papers([paper])

    assert enriched[0].summary == "S"
    assert enriched[0].tags == ["x"]
    assert enriched[0].embedding == [1.0, 0.0]
    assert paper.summary is None
    mock_embed.assert_called_once_with("abstract text", "http://arxiv.org/abs/1v1")


def test_enrich_papers_keeps_paper_when_enrichment_crashes() -> None:
    paper = Paper(paper_id="http://arxiv.org/abs/1v1", title="T", abstract="abstract text")

    with patch("arxiv_feed.get_paper_analysis", side_effect=ValueError("bad")):
        enriched = enrich_papers([paper])

    assert enriched == [paper]
