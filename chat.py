"""Streaming question answering about a single paper."""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Iterator, Sequence

from cache import MemoCache
from llm_client import FULL_SUMMARY_FAILURES, generate_full_summary, openai_client

OPENAI_CHAT_MODEL = os.getenv("OPENAI_CHAT_MODEL", "gpt-3.5-turbo")
CHAT_TEMPERATURE = 0.7
CHAT_MAX_TOKENS = 500
SSE_DONE = "data: [DONE]\n\n"

LOGGER = logging.getLogger(__name__)

PAPER_CONTENT_CACHE: MemoCache[str] = MemoCache()

_SYSTEM_PROMPT = (
    "You are a helpful AI assistant answering questions about a research paper. "
    "Use the provided paper content to answer questions accurately and concisely. "
    "If you're not sure about something, say so.\n"
    "Here's the paper content: {content}"
)

_ALLOWED_ROLES = frozenset({"user", "assistant", "system"})


class ChatContextError(RuntimeError):
    """Raised when no paper content is available to ground the conversation."""


def paper_content(paper_id: str) -> str:
    """Return the full-text summary used as chat context; cached by paper id."""
    cached = PAPER_CONTENT_CACHE.get(paper_id)
    if cached is not None:
        return cached

    content = generate_full_summary(paper_id)
    if not content or content in FULL_SUMMARY_FAILURES:
        raise ChatContextError(f"Could not retrieve paper content for {paper_id}: {content or 'empty'}")

    PAPER_CONTENT_CACHE.set(paper_id, content)
    return content


def build_chat_messages(content: str, history: Sequence[dict[str, str]] | None) -> list[dict[str, str]]:
    """Prepend the grounding system message to the conversation history.

    History entries with an unknown role or a non-string content are skipped.
    """
    messages = [{"role": "system", "content": _SYSTEM_PROMPT.format(content=content)}]
    for message in history or []:
        if not isinstance(message, dict):
            continue
        role = message.get("role")
        text = message.get("content")
        if role in _ALLOWED_ROLES and isinstance(text, str):
            messages.append({"role": role, "content": text})
    return messages


def stream_chat_reply(paper_id: str, history: Sequence[dict[str, str]] | None = None) -> Iterator[str]:
    """Yield the assistant reply piece by piece as the model streams it."""
    messages = build_chat_messages(paper_content(paper_id), history)
    client = openai_client()

    LOGGER.debug("Streaming chat reply for paper_id=%s turns=%s", paper_id, len(messages) - 1)
    stream = client.chat.completions.create(
        model=OPENAI_CHAT_MODEL,
        messages=messages,
        temperature=CHAT_TEMPERATURE,
        max_tokens=CHAT_MAX_TOKENS,
        stream=True,
    )
    for chunk in stream:
        if not chunk.choices:
            continue
        delta = chunk.choices[0].delta.content
        if delta:
            yield delta


def format_sse(content: str) -> str:
    """Frame one text delta as a server-sent event."""
    return f"data: {json.dumps({'content': content})}\n\n"
