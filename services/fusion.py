"""Blend heuristic scores with whichever provider outcomes arrived."""
from __future__ import annotations

from typing import Dict, List, Optional, Sequence, Tuple

from agents.types import (
    METRIC_LABELS,
    METRICS,
    EvaluationResult,
    HeuristicResult,
    MetricScoreSet,
    ProviderOutcome,
    clamp_score,
)
from llm_gateway.providers import normalize_string_list

HEURISTIC_WEIGHT = 0.35
PROVIDER_WEIGHT = 0.65

STRENGTH_THRESHOLD = 78
IMPROVEMENT_THRESHOLD = 62
DEFAULT_STRENGTH_TIP = "Consistent baseline across metrics."
DEFAULT_IMPROVEMENT_TIP = "Push for sharper storytelling with measurable outcomes."


def fuse_metric(heuristic: int, reported: Sequence[int]) -> int:
    if not reported:
        return clamp_score(heuristic)
    mean = sum(reported) / len(reported)
    return clamp_score(heuristic * HEURISTIC_WEIGHT + mean * PROVIDER_WEIGHT)


def fuse_scores(heuristic: MetricScoreSet, outcomes: Sequence[ProviderOutcome]) -> MetricScoreSet:
    """Per-metric blend; metrics no provider reported keep the heuristic value."""

    fused: Dict[str, int] = {}
    for metric in METRICS:
        reported = [value for outcome in outcomes if (value := outcome.scores.reported().get(metric)) is not None]
        fused[metric] = fuse_metric(getattr(heuristic, metric), reported)
    return MetricScoreSet.from_metrics(fused)


def fallback_tips(scores: MetricScoreSet) -> Tuple[List[str], List[str]]:
    """Deterministic strengths/improvements derived from the fused metrics."""

    strengths: List[str] = []
    improvements: List[str] = []
    for metric, value in scores.metrics().items():
        label = METRIC_LABELS[metric]
        if value >= STRENGTH_THRESHOLD:
            strengths.append(f"Strong {label} ({value}).")
        if value < IMPROVEMENT_THRESHOLD:
            improvements.append(f"Improve {label} ({value}) with focused practice.")
    return strengths or [DEFAULT_STRENGTH_TIP], improvements or [DEFAULT_IMPROVEMENT_TIP]


def merge_lists(outcomes: Sequence[ProviderOutcome], field: str) -> List[str]:
    combined: List[str] = []
    for outcome in outcomes:
        combined.extend(getattr(outcome, field))
    return normalize_string_list(combined)


def first_note(outcomes: Sequence[ProviderOutcome], fallback: str) -> str:
    for outcome in outcomes:
        if outcome.relevance_notes.strip():
            return outcome.relevance_notes.strip()
    return fallback.strip()


def fuse(
    heuristic: HeuristicResult,
    outcomes: Sequence[Optional[ProviderOutcome]],
    *,
    transcript: str = "",
) -> EvaluationResult:
    """Combine one heuristic result with provider outcomes.

    ``outcomes`` is in tip-priority order and may contain ``None`` for
    providers that failed; those are ignored.
    """

    arrived = [outcome for outcome in outcomes if outcome is not None]
    scores = fuse_scores(heuristic.scores, arrived)
    strengths, improvements = fallback_tips(scores)
    return EvaluationResult(
        scores=scores,
        speaking_speed_wpm=heuristic.speaking_speed_wpm,
        feedback_tips=merge_lists(arrived, "feedback_tips") or strengths[:6],
        improvements=merge_lists(arrived, "improvements") or improvements[:6],
        relevance_notes=first_note(arrived, heuristic.relevance_notes),
        transcript=transcript,
        sources=[outcome.source for outcome in arrived],
    )


__all__ = [
    "HEURISTIC_WEIGHT",
    "PROVIDER_WEIGHT",
    "fallback_tips",
    "fuse",
    "fuse_metric",
    "fuse_scores",
]
