"""Session-level score aggregation and job-description fit."""
from __future__ import annotations

from typing import Dict, Iterable, List, Sequence

from agents.qg.common import normalize_words
from agents.types import METRIC_LABELS, METRICS, MetricScoreSet, SessionMetricsSummary, clamp_score

STRENGTH_THRESHOLD = 78
IMPROVEMENT_THRESHOLD = 62
LOW_JOB_FIT = 55

DEFAULT_STRENGTH = "Consistent baseline across all dimensions."
DEFAULT_IMPROVEMENT = "Add tighter examples with measurable impact."


def _average(values: Sequence[int]) -> int:
    if not values:
        return 0
    return clamp_score(sum(values) / len(values))


def job_fit_score(job_description: str, transcripts: Iterable[str]) -> int:
    """Percent of distinct job-description keywords present in any answer; 0 when not computable."""

    jd_tokens = set(normalize_words(job_description))
    if not jd_tokens:
        return 0
    answer_tokens = {token for transcript in transcripts for token in normalize_words(transcript)}
    if not answer_tokens:
        return 0
    matched = len(jd_tokens & answer_tokens)
    return clamp_score(matched / len(jd_tokens) * 100)


def summarize_session(
    answered: Sequence[MetricScoreSet],
    *,
    transcripts: Sequence[str] = (),
    job_description: str = "",
) -> SessionMetricsSummary:
    """Fold per-answer scores into one summary. Requires at least one answer."""

    if not answered:
        raise ValueError("Answer at least one question before completing.")

    metrics: Dict[str, int] = {metric: _average([getattr(scores, metric) for scores in answered]) for metric in METRICS}
    overall = _average([scores.overall for scores in answered])

    strengths: List[str] = []
    improvements: List[str] = []
    for metric, value in metrics.items():
        if value >= STRENGTH_THRESHOLD:
            strengths.append(f"Strong {METRIC_LABELS[metric]} ({value}).")
        if value < IMPROVEMENT_THRESHOLD:
            improvements.append(f"Work on {METRIC_LABELS[metric]} with focused drills.")
    strengths = strengths or [DEFAULT_STRENGTH]
    improvements = improvements or [DEFAULT_IMPROVEMENT]

    weakest = min(metrics, key=lambda metric: metrics[metric])
    recommendation = f"Prioritize {METRIC_LABELS[weakest]} in your next practice using STAR + quantified outcomes."

    fit = job_fit_score(job_description, transcripts) if job_description.strip() else 0
    if fit > 0:
        recommendation += f" Current JD fit score is {fit}/100."
    if 0 < fit < LOW_JOB_FIT:
        improvements.append(
            f"Job description fit is low ({fit}/100). Add examples with JD keywords and required outcomes."
        )
        recommendation += " Warning: job description fit is below target; mirror its keywords and outcomes."

    return SessionMetricsSummary(
        metrics=MetricScoreSet(**metrics, overall=overall),
        overall=overall,
        strengths=strengths,
        improvements=improvements,
        recommendation=recommendation,
        job_fit_score=fit,
    )


def backfill_job_fit(
    summary: SessionMetricsSummary,
    *,
    transcripts: Sequence[str],
    job_description: str,
) -> SessionMetricsSummary:
    """Fill ``job_fit_score`` on a stored summary when it was never computed."""

    if summary.job_fit_score > 0 or not job_description.strip():
        return summary
    return summary.model_copy(update={"job_fit_score": job_fit_score(job_description, transcripts)})


__all__ = [
    "IMPROVEMENT_THRESHOLD",
    "LOW_JOB_FIT",
    "STRENGTH_THRESHOLD",
    "backfill_job_fit",
    "job_fit_score",
    "summarize_session",
]
