import pytest

from agents.types import METRICS, HeuristicResult, MetricScoreSet, PartialScores, ProviderOutcome, weighted_overall
from services.fusion import DEFAULT_IMPROVEMENT_TIP, fallback_tips, fuse, fuse_metric


def _heuristic(value: int = 60) -> HeuristicResult:
    return HeuristicResult(
        scores=MetricScoreSet.from_metrics({metric: value for metric in METRICS}),
        speaking_speed_wpm=120,
        relevance_notes="Heuristic note.",
    )


def test_fuse_metric_blends_heuristic_with_provider_mean():
    assert fuse_metric(60, [80, 90]) == 76
    assert fuse_metric(70, [70, 70, 70]) == 70
    assert fuse_metric(60, []) == 60


def test_unreported_metrics_keep_heuristic_value():
    gemini = ProviderOutcome(source="gemini", scores=PartialScores(grammar=90))
    result = fuse(_heuristic(60), [None, gemini, None], transcript="answer")

    assert result.scores.grammar == fuse_metric(60, [90])
    assert result.scores.confidence == 60
    assert result.scores.technical_accuracy == 60
    assert result.sources == ["gemini"]
    assert result.transcript == "answer"
    assert result.speaking_speed_wpm == 120


def test_no_providers_falls_back_to_heuristic_and_templates():
    result = fuse(_heuristic(60), [None, None, None])
    assert result.scores.metrics() == {metric: 60 for metric in METRICS}
    assert result.sources == []
    assert result.relevance_notes == "Heuristic note."
    assert "Improve grammar (60) with focused practice." in result.improvements
    assert result.feedback_tips == ["Consistent baseline across metrics."]


def test_tips_merge_in_provider_order_without_duplicates():
    openai = ProviderOutcome(source="openai", feedback_tips=["A", "B"], relevance_notes="")
    gemini = ProviderOutcome(source="gemini", feedback_tips=["B", "C"], relevance_notes="Gemini note")
    nlp = ProviderOutcome(source="nlp", improvements=["Slow down"], relevance_notes="NLP note")

    result = fuse(_heuristic(), [openai, gemini, nlp])
    assert result.feedback_tips == ["A", "B", "C"]
    assert result.improvements == ["Slow down"]
    assert result.relevance_notes == "Gemini note"
    assert result.sources == ["openai", "gemini", "nlp"]


def test_fallback_tips_thresholds():
    strong = MetricScoreSet.from_metrics({metric: 80 for metric in METRICS})
    strengths, improvements = fallback_tips(strong)
    assert len(strengths) == len(METRICS)
    assert improvements == [DEFAULT_IMPROVEMENT_TIP]


@pytest.mark.parametrize("value", [0, 35, 70, 100])
def test_uniform_metrics_fuse_to_the_same_overall(value):
    assert weighted_overall({metric: value for metric in METRICS}) == value

    provider = ProviderOutcome(source="openai", scores=PartialScores(**{metric: value for metric in METRICS}))
    result = fuse(_heuristic(value), [provider, None])
    assert result.scores.metrics() == {metric: value for metric in METRICS}
    assert result.scores.overall == value
