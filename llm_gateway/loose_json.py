"""Lenient JSON extraction for model output that wraps JSON in prose or fences."""
from __future__ import annotations

import json
import re
from typing import Any, Callable, Dict, List, Optional

_FENCE_RE = re.compile(r"```(?:json)?\s*([\s\S]*?)```", re.IGNORECASE)


def _parse(text: str) -> Optional[Any]:
    if not text:
        return None
    try:
        return json.loads(text)
    except (json.JSONDecodeError, ValueError):
        return None


def _whole(source: str) -> Optional[str]:
    return source


def _fenced(source: str) -> Optional[str]:
    match = _FENCE_RE.search(source)
    return match.group(1).strip() if match else None


def _span(source: str, opener: str, closer: str) -> Optional[str]:
    start = source.find(opener)
    end = source.rfind(closer)
    if start == -1 or end == -1 or end <= start:
        return None
    return source[start : end + 1]


# Stages run in order; the first candidate that parses wins.
STAGES: List[Callable[[str], Optional[str]]] = [
    _whole,
    _fenced,
    lambda source: _span(source, "{", "}"),
    lambda source: _span(source, "[", "]"),
]


def extract_json(text: Any) -> Optional[Any]:
    """Return the first JSON value recoverable from ``text`` or None."""

    source = str(text or "").strip()
    if not source:
        return None
    for stage in STAGES:
        candidate = stage(source)
        if candidate is None:
            continue
        parsed = _parse(candidate)
        if parsed is not None:
            return parsed
    return None


def extract_object(text: Any) -> Optional[Dict[str, Any]]:
    """Like :func:`extract_json` but only accepts a JSON object."""

    parsed = extract_json(text)
    return parsed if isinstance(parsed, dict) else None


__all__ = ["extract_json", "extract_object"]
