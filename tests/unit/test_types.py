import pytest
from pydantic import ValidationError

from agents.types import (
    AnswerSubmission,
    DialogueContext,
    DialogueTurn,
    MetricScoreSet,
    clamp_score,
    round_half_up,
)


def test_round_half_up():
    assert round_half_up(2.5) == 3
    assert round_half_up(72.49) == 72
    assert clamp_score(130) == 100
    assert clamp_score(-4) == 0


def test_submission_clamps_signals():
    submission = AnswerSubmission(
        raw_text=" typed ", duration_sec="-5", facial_expression_score=150, confidence_self_rating=20
    )
    assert submission.duration_sec == 0
    assert submission.facial_expression_score == 100
    assert submission.confidence_self_rating == 10
    assert submission.text == "typed"
    assert AnswerSubmission(transcript="spoken", raw_text="typed").text == "spoken"


@pytest.mark.parametrize(
    "field, value",
    [
        ("duration_sec", float("inf")),
        ("duration_sec", float("nan")),
        ("facial_expression_score", float("nan")),
        ("facial_expression_score", "-inf"),
        ("confidence_self_rating", "inf"),
        ("confidence_self_rating", "ten"),
    ],
)
def test_submission_rejects_non_finite_signals(field, value):
    with pytest.raises(ValidationError):
        AnswerSubmission(transcript="spoken", **{field: value})


def test_clarity_and_relevance_mirror_metrics():
    scores = MetricScoreSet(communication=71, technical_accuracy=64)
    dumped = scores.model_dump()
    assert (scores.clarity, scores.relevance) == (71, 64)
    assert dumped["clarity"] == 71 and dumped["relevance"] == 64


def test_history_keeps_last_ten_turns():
    turns = [{"role": "user" if index % 2 else "assistant", "text": f"t{index}"} for index in range(15)]
    context = DialogueContext(history=turns)
    assert [turn.text for turn in context.history] == [f"t{index}" for index in range(5, 15)]
    assert context.history[0].role == "candidate"

    context.add_turn("judge", "one more")
    assert len(context.history) == 10
    assert context.history[-1] == DialogueTurn(role="judge", text="one more")


def test_unknown_mode_defaults_to_judge():
    assert DialogueContext(mode="narrator").mode == "judge"
