"""Persisted session shapes kept by the session repository."""
from __future__ import annotations

import datetime as dt
import uuid
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from agents.types import (
    AnswerSnapshot,
    AnswerSubmission,
    EvaluationResult,
    SessionMeta,
    SessionMetricsSummary,
)
from services.timeline import TimelineMarker

SessionStatus = Literal["in_progress", "completed"]


def _new_id(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex[:16]}"


def _now() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


class AnswerRecord(BaseModel):
    """An evaluated answer; attached to its question exactly once."""

    submission: AnswerSubmission
    evaluation: EvaluationResult
    timeline_markers: List[TimelineMarker] = Field(default_factory=list)
    follow_up_question: str = ""
    answered_at: dt.datetime = Field(default_factory=_now)


class SessionQuestion(BaseModel):
    id: str = Field(default_factory=lambda: _new_id("sq"))
    question_ref: str = ""
    category: str = "HR"
    prompt: str
    tags: List[str] = Field(default_factory=list)
    order: int = 1
    answer: Optional[AnswerRecord] = None

    @property
    def answered(self) -> bool:
        return self.answer is not None

    def snapshot(self) -> Optional[AnswerSnapshot]:
        if self.answer is None:
            return None
        evaluation = self.answer.evaluation
        return AnswerSnapshot(
            scores=evaluation.scores,
            transcript=evaluation.transcript or self.answer.submission.raw_text,
            improvements=list(evaluation.improvements),
        )


class InterviewSession(BaseModel):
    id: str = Field(default_factory=lambda: _new_id("sess"))
    category: str = "HR"
    target_role: str = "Generalist"
    company_simulation: str = "Startup"
    job_description_text: str = ""
    status: SessionStatus = "in_progress"
    questions: List[SessionQuestion] = Field(default_factory=list)
    summary: Optional[SessionMetricsSummary] = None
    overall_score: int = 0
    version: int = 0
    created_at: dt.datetime = Field(default_factory=_now)
    ended_at: Optional[dt.datetime] = None

    def question(self, question_id: str) -> Optional[SessionQuestion]:
        return next((question for question in self.questions if question.id == question_id), None)

    def answered_questions(self) -> List[SessionQuestion]:
        return [question for question in self.questions if question.answered]

    def active_question(self, question_id: Optional[str] = None) -> Optional[SessionQuestion]:
        """Requested question, else the first unanswered one, else the first."""

        if question_id:
            found = self.question(question_id)
            if found is not None:
                return found
        for question in self.questions:
            if not question.answered:
                return question
        return self.questions[0] if self.questions else None

    def meta(self) -> SessionMeta:
        return SessionMeta(
            session_id=self.id,
            category=self.category,
            target_role=self.target_role,
            company_simulation=self.company_simulation,
            job_description_text=self.job_description_text,
            job_fit_score=self.summary.job_fit_score if self.summary else 0,
            summary_improvements=list(self.summary.improvements) if self.summary else [],
        )


__all__ = ["AnswerRecord", "InterviewSession", "SessionQuestion", "SessionStatus"]
