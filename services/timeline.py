"""Timeline markers pinned to moments of an evaluated answer."""
from __future__ import annotations

from typing import List, Sequence

from pydantic import BaseModel

from agents.types import round_half_up

WORDS_PER_MINUTE = 140
MIN_ESTIMATED_SECONDS = 10


class TimelineMarker(BaseModel):
    second: int
    label: str
    kind: str


def estimate_duration(text: str) -> int:
    words = len(str(text or "").split())
    if not words:
        return 0
    return max(MIN_ESTIMATED_SECONDS, round_half_up(words / WORDS_PER_MINUTE * 60))


def build_timeline_markers(
    *,
    duration_sec: int,
    text: str,
    improvements: Sequence[str] = (),
    relevance_notes: str = "",
) -> List[TimelineMarker]:
    duration = duration_sec if duration_sec > 0 else estimate_duration(text)
    if not duration:
        return []

    def at(ratio: float) -> int:
        return max(1, min(duration, round_half_up(duration * ratio)))

    markers = [
        TimelineMarker(second=at(0.2), label="Start with stronger context and clearer framing.", kind="clarity"),
        TimelineMarker(second=at(0.55), label="Add a specific action with measurable result.", kind="relevance"),
        TimelineMarker(second=at(0.85), label="Close with impact and ownership.", kind="confidence"),
    ]
    top_improvement = str(improvements[0] if improvements else "").strip()
    if top_improvement:
        markers[1].label = top_improvement
    note = str(relevance_notes or "").strip()
    if note:
        markers[2].label = note
    return markers


__all__ = ["TimelineMarker", "build_timeline_markers", "estimate_duration"]
