"""OpenAI-based enrichment: abstract analysis, embeddings, summaries, critiques, digests."""

from __future__ import annotations

import json
import logging
import os
import re
from collections.abc import Sequence
from json import JSONDecodeError
from typing import Any

import requests
from openai import OpenAI

from cache import MemoCache
from models import Paper, PaperAnalysis, PaperCritique

OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-3.5-turbo")
OPENAI_DIGEST_MODEL = os.getenv("OPENAI_DIGEST_MODEL", "gpt-4-turbo-preview")
OPENAI_EMBEDDING_MODEL = os.getenv("OPENAI_EMBEDDING_MODEL", "text-embedding-ada-002")
OPENAI_TEMPERATURE = float(os.getenv("OPENAI_TEMPERATURE", "0.3"))
DIGEST_TEMPERATURE = 0.7
SUMMARY_TEMPERATURE = 0.5
MAX_ATTEMPTS = 2

ARXIV_TXT_URL = "https://arxiv-txt.org/raw/pdf/{core_id}"
REQUEST_TIMEOUT_SECONDS = 60
MIN_ABSTRACT_CHARS = 50
MAX_FULL_TEXT_CHARS = 15000

ABSTRACT_TOO_SHORT = "Abstract too short for initial analysis."
ANALYSIS_FAILED = "Could not generate abstract summary."
INVALID_URL_SUMMARY = "Error: Invalid ArXiv URL provided for full summary."
FETCH_FAILED_SUMMARY = "Could not fetch the full paper text for summarization."
SUMMARY_FAILED = "Could not generate the full paper summary using AI."
CRITIQUE_FAILED = "Could not generate critique due to an error."
FULL_SUMMARY_FAILURES = frozenset({INVALID_URL_SUMMARY, FETCH_FAILED_SUMMARY, SUMMARY_FAILED})

LOGGER = logging.getLogger(__name__)

ANALYSIS_CACHE: MemoCache[PaperAnalysis] = MemoCache()
EMBEDDING_CACHE: MemoCache[list[float]] = MemoCache()
FULL_SUMMARY_CACHE: MemoCache[str] = MemoCache()

_ANALYSIS_PROMPT = """Paper Title: "{title}"
Paper Abstract: "{abstract}"

Based on the title and abstract, provide:
1. A concise summary of the paper in no more than 150 words.
2. A list of 3-5 key topics or techniques mentioned in the paper (e.g. "diffusion models", "RLHF", "LoRA").

Respond only with JSON in this shape:
{{
  "summary": "<summary>",
  "tags": ["<tag1>", "<tag2>"]
}}"""

_FULL_SUMMARY_PROMPT = """The following is the full text of a research paper:

{text}

Write a comprehensive yet concise summary of this paper (350-450 words, never more than 500).
Cover the core methodology, key findings and results, main conclusions, important
technical details and metrics, and limitations or future work. Emphasize novel
contributions and include specific numbers where relevant.

Summary (350-450 words):"""

_CRITIQUE_PROMPT = """As a scientific validity checker, analyze the following paper's abstract and detailed summary for potential issues, inconsistencies, or suspicious claims.

Papers published on arXiv have already passed basic screening and fewer than 5% contain serious validity issues. Treat a paper as valid unless there are clear and significant problems with methodology, claims, or data presentation.

Abstract:
{abstract}

Detailed Summary:
{summary}

Evaluate:
1. Consistency between the abstract and the detailed summary
2. Validity of numerical claims and statistics
3. Soundness of the methodology
4. Any red flags

Respond only with JSON in this shape:
{{
  "analysis": "2-3 sentences, ending with one sentence starting with 'Overall, ' that states whether the paper appears valid",
  "isValid": true,
  "confidenceScore": 0.0
}}"""

DIGEST_SYSTEM_PROMPT = """You are a research curator creating an insightful daily digest of academic papers.
Analyze the provided papers and produce:

1. The 5 most significant papers, explaining why each matters to the field
2. 2-3 emerging themes or trends across the papers
3. One outlier paper that takes a unique approach or makes an unexpected connection

When referencing papers you MUST use the exact IDs given in the input.
Each paper entry starts with "ID:". Use those exact IDs in your JSON response.

Focus on novel contributions, practical applications, and cross-disciplinary insights."""

_DIGEST_USER_PROMPT = """Here are the papers to analyze:

{papers}

Respond only with JSON in this shape, using the exact paper IDs from the input:
{{
  "topPapers": [
    {{"id": "<exact ID from input>", "significance": "Why this paper is significant"}}
  ],
  "emergingThemes": [
    {{"theme": "Theme name", "description": "Theme description", "relatedPaperIds": ["<exact IDs from input>"]}}
  ],
  "outlierPick": {{"paperId": "<exact ID from input>", "whyInteresting": "What makes this paper unique or surprising"}},
  "keyTakeaway": "One sentence capturing the most important development in today's papers."
}}

Only use paper IDs that appear in the input above."""


def openai_client() -> OpenAI:
    """Build an OpenAI client from OPENAI_API_KEY."""
    api_key = os.getenv("OPENAI_API_KEY")
    if not api_key:
        raise RuntimeError("OPENAI_API_KEY environment variable is required")
    return OpenAI(api_key=api_key)


def get_paper_analysis(title: str, abstract: str) -> PaperAnalysis:
    """Summarize an abstract and extract topic tags; cached by title.

    Never raises: failures come back as a fixed summary with an "error" tag.
    """
    if len(abstract) < MIN_ABSTRACT_CHARS:
        return PaperAnalysis(summary=ABSTRACT_TOO_SHORT, tags=[])

    cached = ANALYSIS_CACHE.get(title)
    if cached is not None:
        return cached

    try:
        client = openai_client()
        response = client.chat.completions.create(
            model=OPENAI_MODEL,
            temperature=OPENAI_TEMPERATURE,
            response_format={"type": "json_object"},
            messages=[
                {"role": "user", "content": _ANALYSIS_PROMPT.format(title=title, abstract=abstract)},
            ],
        )
        parsed = _parse_json_object(_message_content(response))
        summary = parsed.get("summary")
        tags = parsed.get("tags")
        if not isinstance(summary, str) or not isinstance(tags, list):
            raise RuntimeError("Analysis JSON did not match required schema")
        analysis = PaperAnalysis(summary=summary.strip(), tags=[str(tag) for tag in tags])
    except Exception as exc:  # enrichment must not break the listing
        LOGGER.warning("Abstract analysis failed for title=%r: %s", title, exc)
        return PaperAnalysis(summary=ANALYSIS_FAILED, tags=["error"])

    ANALYSIS_CACHE.set(title, analysis)
    return analysis


def get_embedding_for_text(text: str, cache_key: str) -> list[float] | None:
    """Embed ``text``; None for short or empty text and on any API failure."""
    cached = EMBEDDING_CACHE.get(cache_key)
    if cached is not None:
        return cached

    if not text or len(text.strip()) < MIN_ABSTRACT_CHARS:
        LOGGER.debug("Text too short for embedding, cache_key=%s", cache_key)
        return None

    try:
        client = openai_client()
        response = client.embeddings.create(model=OPENAI_EMBEDDING_MODEL, input=text.strip())
        embedding = list(response.data[0].embedding) if response.data else None
    except Exception as exc:
        LOGGER.warning("Embedding failed for cache_key=%s: %s", cache_key, exc)
        return None

    if not embedding:
        return None
    EMBEDDING_CACHE.set(cache_key, embedding)
    return embedding


def extract_core_arxiv_id(arxiv_url: str) -> str | None:
    """Return "2408.04406v2" for "http://arxiv.org/abs/2408.04406v2"."""
    match = re.search(r"abs/(.+)", arxiv_url)
    return match.group(1) if match else None


def generate_full_summary(arxiv_url: str) -> str:
    """Summarize the paper's full text; cached by core arXiv id."""
    core_id = extract_core_arxiv_id(arxiv_url)
    if not core_id:
        LOGGER.error("Could not extract core arXiv id from url=%s", arxiv_url)
        return INVALID_URL_SUMMARY

    cached = FULL_SUMMARY_CACHE.get(core_id)
    if cached is not None:
        return cached

    url = ARXIV_TXT_URL.format(core_id=core_id)
    try:
        response = requests.get(url, timeout=REQUEST_TIMEOUT_SECONDS)
        response.raise_for_status()
        paper_text = response.text
    except requests.RequestException as exc:
        LOGGER.warning("Full-text fetch failed for %s: %s", core_id, exc)
        return FETCH_FAILED_SUMMARY

    try:
        client = openai_client()
        completion = client.chat.completions.create(
            model=OPENAI_MODEL,
            temperature=SUMMARY_TEMPERATURE,
            max_tokens=700,
            messages=[
                {
                    "role": "user",
                    "content": _FULL_SUMMARY_PROMPT.format(text=paper_text[:MAX_FULL_TEXT_CHARS]),
                },
            ],
        )
        summary = _message_content(completion).strip()
    except Exception as exc:
        LOGGER.warning("Full summary generation failed for %s: %s", core_id, exc)
        return SUMMARY_FAILED

    FULL_SUMMARY_CACHE.set(core_id, summary)
    return summary


def generate_paper_critique(abstract: str, detailed_summary: str) -> PaperCritique:
    """Check a paper for validity red flags; defaults to valid with zero confidence."""
    try:
        client = openai_client()
        completion = client.chat.completions.create(
            model=OPENAI_DIGEST_MODEL,
            temperature=OPENAI_TEMPERATURE,
            response_format={"type": "json_object"},
            messages=[
                {
                    "role": "user",
                    "content": _CRITIQUE_PROMPT.format(abstract=abstract, summary=detailed_summary),
                },
            ],
        )
        parsed = _parse_json_object(_message_content(completion))
        return PaperCritique(
            analysis=str(parsed.get("analysis") or "").strip(),
            is_valid=bool(parsed.get("isValid", True)),
            confidence_score=float(parsed.get("confidenceScore") or 0.0),
        )
    except Exception as exc:
        LOGGER.warning("Paper critique failed: %s", exc)
        return PaperCritique(analysis=CRITIQUE_FAILED, is_valid=True, confidence_score=0.0)


def build_digest_context(papers: Sequence[Paper]) -> str:
    """Render the corpus the way the digest prompt lists it, one block per paper."""
    blocks = []
    for paper in papers:
        blocks.append(
            f"ID: {paper.paper_id}\n"
            f"Title: {paper.title}\n"
            f"Authors: {', '.join(paper.authors)}\n"
            f"Categories: {', '.join(paper.categories)}\n"
            f"Abstract: {paper.abstract}\n"
            "---"
        )
    return "\n\n".join(blocks)


def request_digest(papers: Sequence[Paper]) -> dict[str, Any]:
    """Ask the model for a raw digest payload over ``papers``.

    The reply is untrusted; callers must pass it through ``digest.reconcile``.
    Raises RuntimeError when both attempts fail.
    """
    client = openai_client()
    user_prompt = _DIGEST_USER_PROMPT.format(papers=build_digest_context(papers))
    last_error: Exception | None = None

    for attempt in range(1, MAX_ATTEMPTS + 1):
        try:
            completion = client.chat.completions.create(
                model=OPENAI_DIGEST_MODEL,
                temperature=DIGEST_TEMPERATURE,
                response_format={"type": "json_object"},
                messages=[
                    {"role": "system", "content": DIGEST_SYSTEM_PROMPT},
                    {"role": "user", "content": user_prompt},
                ],
            )
            parsed = _parse_json_object(_message_content(completion))
            LOGGER.info("Digest response received for %s papers", len(papers))
            return parsed
        except Exception as exc:
            last_error = exc
            LOGGER.warning("Digest request failed on attempt %s/%s: %s", attempt, MAX_ATTEMPTS, exc)

    raise RuntimeError(f"Digest request failed: {last_error}")


def _message_content(response: Any) -> str:
    content = response.choices[0].message.content
    if not content:
        raise RuntimeError("OpenAI returned an empty response")
    return content


def _parse_json_object(content: str) -> dict[str, Any]:
    """Parse possibly noisy model output into a strict JSON object."""
    try:
        parsed = json.loads(content)
    except JSONDecodeError:
        parsed = _extract_first_json_object(content)

    if not isinstance(parsed, dict):
        raise RuntimeError("Expected JSON object from OpenAI response")
    return parsed


def _extract_first_json_object(content: str) -> dict[str, Any]:
    """Extract the first decodable JSON object from an arbitrary string."""
    decoder = json.JSONDecoder()
    for index, char in enumerate(content):
        if char != "{":
            continue
        try:
            candidate, _ = decoder.raw_decode(content[index:])
        except JSONDecodeError:
            continue
        if isinstance(candidate, dict):
            return candidate
    raise RuntimeError("Could not extract valid JSON object from OpenAI output")
