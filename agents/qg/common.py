"""Shared text utilities for question, follow-up and sample-answer generators."""
from __future__ import annotations

import re
from typing import List

_NON_ALNUM_RE = re.compile(r"[^a-z0-9\s]")

SAMPLE_ANSWER_STOP_WORDS = frozenset(
    {
        "about", "after", "also", "and", "because", "been", "from", "have",
        "into", "more", "that", "their", "there", "these", "this", "those",
        "with", "your", "you", "what", "why", "where", "when", "which",
        "would", "could", "should", "will", "round", "interview", "question",
    }
)


def tokenize(text: str) -> List[str]:
    """Lowercase alphanumeric word tokens."""

    return _NON_ALNUM_RE.sub(" ", str(text or "").lower()).split()


def normalize_words(text: str, min_length: int = 4) -> List[str]:
    """Tokens long enough to carry topic meaning."""

    return [token for token in tokenize(text) if len(token) >= min_length]


def extract_prompt_keywords(prompt: str, limit: int = 3) -> List[str]:
    """First distinct non-stop-word tokens of a question prompt."""

    keywords: List[str] = []
    for token in normalize_words(prompt):
        if token in SAMPLE_ANSWER_STOP_WORDS or token in keywords:
            continue
        keywords.append(token)
        if len(keywords) >= limit:
            break
    return keywords


def collapse(text: str) -> str:
    return " ".join(str(text or "").split())


def clamp_text(text: str, limit: int) -> str:
    value = str(text or "")
    return value if len(value) <= limit else value[:limit]


__all__ = [
    "SAMPLE_ANSWER_STOP_WORDS",
    "clamp_text",
    "collapse",
    "extract_prompt_keywords",
    "normalize_words",
    "tokenize",
]
