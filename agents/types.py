"""Shared type definitions for scoring and dialogue agents."""
from __future__ import annotations

import math
from typing import Annotated, Any, Dict, List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator

Category = Literal["HR", "Technical", "Behavioral", "Coding"]
AnswerType = Literal["text", "voice", "video"]
DialogueMode = Literal["judge", "live_interviewer"]
TurnRole = Literal["candidate", "judge", "interviewer"]

CATEGORIES: Tuple[str, ...] = ("HR", "Technical", "Behavioral", "Coding")
HISTORY_LIMIT = 10

METRICS: Tuple[str, ...] = (
    "confidence",
    "communication",
    "grammar",
    "technical_accuracy",
    "speaking_speed",
    "facial_expression",
)

OVERALL_WEIGHTS: Dict[str, float] = {
    "confidence": 0.2,
    "communication": 0.2,
    "grammar": 0.15,
    "technical_accuracy": 0.25,
    "speaking_speed": 0.1,
    "facial_expression": 0.1,
}

METRIC_LABELS: Dict[str, str] = {
    "confidence": "confidence",
    "communication": "communication",
    "grammar": "grammar",
    "technical_accuracy": "technical accuracy",
    "speaking_speed": "speaking speed",
    "facial_expression": "facial expression",
}

Score = Annotated[int, Field(ge=0, le=100)]


def round_half_up(value: float) -> int:
    """Round .5 away from zero for positives, matching browser-side scoring."""
    return int(math.floor(value + 0.5))


def clamp_score(value: float, low: int = 0, high: int = 100) -> int:
    return max(low, min(high, round_half_up(value)))


def weighted_overall(values: Dict[str, int]) -> int:
    total = sum(values.get(metric, 0) * weight for metric, weight in OVERALL_WEIGHTS.items())
    return clamp_score(total)


def _finite(value: Any) -> float:
    try:
        number = float(value or 0)
    except (TypeError, ValueError) as exc:
        raise ValueError("must be a number") from exc
    if not math.isfinite(number):
        raise ValueError("must be a finite number")
    return number


class AnswerSubmission(BaseModel):
    """Candidate answer as received; frozen so a stored answer never changes."""

    model_config = ConfigDict(frozen=True)

    transcript: str = ""
    raw_text: str = ""
    duration_sec: int = 0
    facial_expression_score: float = 0.0
    confidence_self_rating: float = 0.0
    answer_type: AnswerType = "text"
    media_reference: str = ""

    @field_validator("duration_sec", mode="before")
    @classmethod
    def _non_negative(cls, value: Any) -> int:
        return max(0, int(_finite(value)))

    @field_validator("facial_expression_score", mode="before")
    @classmethod
    def _facial_range(cls, value: Any) -> float:
        return max(0.0, min(100.0, _finite(value)))

    @field_validator("confidence_self_rating", mode="before")
    @classmethod
    def _rating_range(cls, value: Any) -> float:
        return max(0.0, min(10.0, _finite(value)))

    @property
    def text(self) -> str:
        return (self.transcript or self.raw_text or "").strip()


class MetricScoreSet(BaseModel):
    confidence: Score = 0
    communication: Score = 0
    grammar: Score = 0
    technical_accuracy: Score = 0
    speaking_speed: Score = 0
    facial_expression: Score = 0
    overall: Score = 0

    @computed_field  # type: ignore[prop-decorator]
    @property
    def clarity(self) -> int:
        return self.communication

    @computed_field  # type: ignore[prop-decorator]
    @property
    def relevance(self) -> int:
        return self.technical_accuracy

    def metrics(self) -> Dict[str, int]:
        return {metric: int(getattr(self, metric)) for metric in METRICS}

    def weakest(self) -> Optional[Tuple[str, int]]:
        values = self.metrics()
        if not values:
            return None
        name = min(values, key=lambda key: values[key])
        return name, values[name]

    @classmethod
    def from_metrics(cls, values: Dict[str, int]) -> "MetricScoreSet":
        clamped = {metric: clamp_score(values.get(metric, 0)) for metric in METRICS}
        return cls(**clamped, overall=weighted_overall(clamped))


class PartialScores(BaseModel):
    """Metrics reported by one provider; ``None`` means not reported."""

    confidence: Optional[Score] = None
    communication: Optional[Score] = None
    grammar: Optional[Score] = None
    technical_accuracy: Optional[Score] = None
    speaking_speed: Optional[Score] = None
    facial_expression: Optional[Score] = None

    def reported(self) -> Dict[str, int]:
        return {metric: value for metric in METRICS if (value := getattr(self, metric)) is not None}


class ProviderOutcome(BaseModel):
    source: str
    scores: PartialScores = Field(default_factory=PartialScores)
    feedback_tips: List[str] = Field(default_factory=list)
    improvements: List[str] = Field(default_factory=list)
    relevance_notes: str = ""


class HeuristicResult(BaseModel):
    scores: MetricScoreSet
    speaking_speed_wpm: int = 0
    relevance_notes: str = ""


class EvaluationRequest(BaseModel):
    category: str = "HR"
    prompt: str = ""
    tags: List[str] = Field(default_factory=list)
    target_role: str = "Generalist"
    submission: AnswerSubmission
    trace_id: str = ""
    session_id: str = ""


class EvaluationResult(BaseModel):
    scores: MetricScoreSet
    speaking_speed_wpm: int = 0
    feedback_tips: List[str] = Field(default_factory=list, max_length=6)
    improvements: List[str] = Field(default_factory=list, max_length=6)
    relevance_notes: str = ""
    transcript: str = ""
    sources: List[str] = Field(default_factory=list)
    timings: List[Dict[str, Any]] = Field(default_factory=list)


class QuestionRecord(BaseModel):
    id: str
    category: Category
    prompt: str
    tags: List[str] = Field(default_factory=list)
    role_focus: str = "General"
    company_context: str = "General"
    difficulty: str = "intermediate"
    source: str = "predefined"


class AnswerSnapshot(BaseModel):
    """What the dialogue engine may know about the current question's answer."""

    scores: Optional[MetricScoreSet] = None
    transcript: str = ""
    improvements: List[str] = Field(default_factory=list)

    @property
    def scored(self) -> bool:
        return self.scores is not None and self.scores.overall > 0


class SessionMeta(BaseModel):
    session_id: str = ""
    category: str = "HR"
    target_role: str = "Generalist"
    company_simulation: str = "Startup"
    job_description_text: str = ""
    job_fit_score: int = 0
    summary_improvements: List[str] = Field(default_factory=list)


class DialogueTurn(BaseModel):
    role: TurnRole
    text: str

    @field_validator("role", mode="before")
    @classmethod
    def _alias_role(cls, value: Any) -> str:
        role = str(value or "").strip().lower()
        return {"user": "candidate", "assistant": "judge"}.get(role, role)

    @field_validator("text", mode="before")
    @classmethod
    def _collapse(cls, value: Any) -> str:
        return " ".join(str(value or "").split())


class DialogueContext(BaseModel):
    mode: DialogueMode = "judge"
    current_question: str = ""
    current_answer: Optional[AnswerSnapshot] = None
    session: SessionMeta = Field(default_factory=SessionMeta)
    history: List[DialogueTurn] = Field(default_factory=list)

    @field_validator("mode", mode="before")
    @classmethod
    def _default_mode(cls, value: Any) -> str:
        mode = str(value or "").strip().lower()
        return mode if mode in ("judge", "live_interviewer") else "judge"

    @field_validator("history", mode="after")
    @classmethod
    def _cap_history(cls, value: List[DialogueTurn]) -> List[DialogueTurn]:
        kept = [turn for turn in value if turn.text]
        return kept[-HISTORY_LIMIT:]

    def add_turn(self, role: str, text: str) -> None:
        self.history.append(DialogueTurn(role=role, text=text))
        if len(self.history) > HISTORY_LIMIT:
            del self.history[:-HISTORY_LIMIT]


class SessionMetricsSummary(BaseModel):
    metrics: MetricScoreSet
    overall: Score = 0
    strengths: List[str] = Field(default_factory=list)
    improvements: List[str] = Field(default_factory=list)
    recommendation: str = ""
    job_fit_score: Score = 0


__all__ = [
    "AnswerSnapshot",
    "AnswerSubmission",
    "AnswerType",
    "CATEGORIES",
    "Category",
    "DialogueContext",
    "DialogueMode",
    "DialogueTurn",
    "EvaluationRequest",
    "EvaluationResult",
    "HISTORY_LIMIT",
    "HeuristicResult",
    "METRICS",
    "METRIC_LABELS",
    "MetricScoreSet",
    "OVERALL_WEIGHTS",
    "PartialScores",
    "ProviderOutcome",
    "QuestionRecord",
    "SessionMeta",
    "SessionMetricsSummary",
    "clamp_score",
    "round_half_up",
    "weighted_overall",
]
