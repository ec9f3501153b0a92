"""Pydantic schemas for the coaching session API."""
from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from agents.types import AnswerType, Category, DialogueTurn, EvaluationResult, SessionMetricsSummary
from services.timeline import TimelineMarker
from storage.models import InterviewSession


class CreateSessionReq(BaseModel):
    category: Category
    target_role: str = "Generalist"
    company_simulation: str = "Startup"
    job_description_text: str = ""
    count: int = 5


class QuestionView(BaseModel):
    id: str
    prompt: str
    tags: List[str] = Field(default_factory=list)
    order: int
    answered: bool = False


class SessionView(BaseModel):
    id: str
    category: str
    target_role: str
    company_simulation: str
    status: str
    questions: List[QuestionView]
    overall_score: int = 0
    summary: Optional[SessionMetricsSummary] = None
    version: int = 0

    @classmethod
    def from_session(cls, session: InterviewSession) -> "SessionView":
        return cls(
            id=session.id,
            category=session.category,
            target_role=session.target_role,
            company_simulation=session.company_simulation,
            status=session.status,
            questions=[
                QuestionView(
                    id=question.id,
                    prompt=question.prompt,
                    tags=question.tags,
                    order=question.order,
                    answered=question.answered,
                )
                for question in session.questions
            ],
            overall_score=session.overall_score,
            summary=session.summary,
            version=session.version,
        )


class SubmitAnswerReq(BaseModel):
    answer_type: AnswerType = "text"
    transcript: str = ""
    raw_text: str = ""
    duration_sec: float = 0
    facial_expression_score: float = 0
    confidence_self_rating: float = 0
    media_reference: str = ""


class AnswerResp(BaseModel):
    question_id: str
    evaluation: EvaluationResult
    timeline_markers: List[TimelineMarker] = Field(default_factory=list)
    follow_up_question: str


class FollowUpReq(BaseModel):
    answer_text: Optional[str] = None


class FollowUpResp(BaseModel):
    question_id: str
    follow_up_question: str


class ChatReq(BaseModel):
    message: str
    mode: Literal["judge", "live_interviewer"] = "judge"
    question_id: Optional[str] = None
    history: List[DialogueTurn] = Field(default_factory=list)


class ChatResp(BaseModel):
    reply: str
    intent: str
    mode: str
    history: List[DialogueTurn] = Field(default_factory=list)


class CompleteResp(BaseModel):
    message: str
    session: SessionView


__all__ = [
    "AnswerResp",
    "ChatReq",
    "ChatResp",
    "CompleteResp",
    "CreateSessionReq",
    "FollowUpReq",
    "FollowUpResp",
    "QuestionView",
    "SessionView",
    "SubmitAnswerReq",
]
