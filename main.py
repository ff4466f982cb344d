"""CLI entrypoint for the arXiv digest pipeline."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from datetime import UTC, datetime

from dotenv import load_dotenv

from arxiv_feed import fetch_latest_papers, fetch_papers_by_submission_date
from chat import ChatContextError, stream_chat_reply
from csv_sink import write_listing
from digest import EmptyCorpusError, generate_paper_digest
from filters import all_categories, filter_papers
from llm_client import FULL_SUMMARY_FAILURES, generate_full_summary, generate_paper_critique
from novelty import score_corpus
from report import digest_as_dict, render_digest, render_listing, render_paper_detail


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line flags."""
    parser = argparse.ArgumentParser(description="Browse, score and digest recent arXiv papers")
    sub = parser.add_subparsers(dest="command", required=True)

    papers = sub.add_parser("papers", help="List the latest papers across configured categories")
    papers.add_argument("--query", default="", help="Case-insensitive title filter")
    papers.add_argument("--category", default="all", help="Only papers tagged with this category")
    papers.add_argument("--csv", dest="csv_path", default=None, help="Also export the listing to this CSV file")

    paper = sub.add_parser("paper", help="Show one paper with novelty, full summary and validity check")
    paper.add_argument("paper_id", help="Canonical arXiv abs URL, e.g. http://arxiv.org/abs/2408.04406v2")

    digest = sub.add_parser("digest", help="Build the daily digest for a submission date")
    digest.add_argument(
        "--date",
        default=datetime.now(UTC).date().isoformat(),
        help="Submission date as YYYY-MM-DD (default: today, UTC)",
    )
    digest.add_argument("--json", action="store_true", help="Print the digest as JSON instead of Markdown")

    chat = sub.add_parser("chat", help="Ask questions about one paper")
    chat.add_argument("paper_id", help="Canonical arXiv abs URL")

    return parser.parse_args(argv)


def run_papers(query: str, category: str, csv_path: str | None) -> int:
    papers = fetch_latest_papers()
    logging.info("Fetched %s papers; categories available: %s", len(papers), all_categories(papers))

    novelty = score_corpus(papers)
    shown = filter_papers(papers, query=query, category=category)
    print(render_listing(shown, novelty), end="")

    if csv_path:
        write_listing(shown, novelty, csv_path=csv_path)
    return 0


def run_paper(paper_id: str) -> int:
    papers = fetch_latest_papers()
    paper = next((p for p in papers if p.paper_id == paper_id), None)
    if paper is None:
        print(f"Paper not found: {paper_id}", file=sys.stderr)
        return 1

    score = score_corpus(papers)[paper_id]

    full_summary = generate_full_summary(paper.paper_id)
    critique = None
    if full_summary in FULL_SUMMARY_FAILURES:
        logging.warning("Skipping validity check for %s: %s", paper_id, full_summary)
    else:
        critique = generate_paper_critique(paper.abstract, full_summary)
    print(render_paper_detail(paper, score, full_summary, critique), end="")
    return 0


def run_digest(date_string: str, as_json: bool) -> int:
    papers = fetch_papers_by_submission_date(date_string)
    try:
        digest = generate_paper_digest(papers)
    except EmptyCorpusError:
        print(f"No papers were submitted on {date_string}.", file=sys.stderr)
        return 1

    if as_json:
        print(json.dumps(digest_as_dict(digest), indent=2, ensure_ascii=False))
    else:
        print(render_digest(digest), end="")
    return 0


def run_chat(paper_id: str) -> int:
    history: list[dict[str, str]] = []
    print("Ask about the paper (empty line to quit).")
    for line in sys.stdin:
        question = line.strip()
        if not question:
            break
        history.append({"role": "user", "content": question})

        parts: list[str] = []
        try:
            for delta in stream_chat_reply(paper_id, history):
                parts.append(delta)
                print(delta, end="", flush=True)
        except ChatContextError as exc:
            print(str(exc), file=sys.stderr)
            return 1
        print()
        history.append({"role": "assistant", "content": "".join(parts)})
    return 0


def main(argv: list[str] | None = None) -> int:
    """Initialize config and dispatch the chosen command."""
    load_dotenv()
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
    args = parse_args(argv)

    if args.command == "papers":
        return run_papers(args.query, args.category, args.csv_path)
    if args.command == "paper":
        return run_paper(args.paper_id)
    if args.command == "digest":
        return run_digest(args.date, args.json)
    return run_chat(args.paper_id)


if __name__ == "__main__":
    sys.exit(main())
