"""FastAPI routes for coaching sessions."""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Request, UploadFile
from pydantic import ValidationError

from agents.types import AnswerSubmission
from api.schemas import (
    AnswerResp,
    ChatReq,
    ChatResp,
    CompleteResp,
    CreateSessionReq,
    FollowUpReq,
    FollowUpResp,
    SessionView,
    SubmitAnswerReq,
)
from llm_gateway.transcription import MediaClip
from services.errors import CoachError
from services.sessions import AnswerOutcome, CoachService


router = APIRouter(prefix="/api/sessions")


def get_service(request: Request) -> CoachService:
    service: Optional[CoachService] = getattr(request.app.state, "coach_service", None)
    if service is None:
        raise HTTPException(status_code=503, detail="coaching service not configured")
    return service


def _http_error(exc: CoachError) -> HTTPException:
    return HTTPException(status_code=exc.status_code, detail=exc.message)


@router.post("", response_model=SessionView, status_code=201)
def create_session(req: CreateSessionReq, service: CoachService = Depends(get_service)) -> SessionView:
    try:
        session = service.create_session(
            category=req.category,
            target_role=req.target_role,
            company_simulation=req.company_simulation,
            job_description_text=req.job_description_text,
            count=req.count,
        )
    except CoachError as exc:
        raise _http_error(exc) from exc
    return SessionView.from_session(session)


@router.get("/{session_id}", response_model=SessionView)
def get_session(session_id: str, service: CoachService = Depends(get_service)) -> SessionView:
    try:
        return SessionView.from_session(service.get_session(session_id))
    except CoachError as exc:
        raise _http_error(exc) from exc


def _unprocessable(exc: ValidationError) -> HTTPException:
    # Inputs stay out of the detail; a non-finite float cannot be rendered as JSON.
    return HTTPException(
        status_code=422, detail=exc.errors(include_url=False, include_context=False, include_input=False)
    )


def _submission(req: SubmitAnswerReq) -> AnswerSubmission:
    try:
        return AnswerSubmission(**req.model_dump())
    except ValidationError as exc:
        raise _unprocessable(exc) from exc


def _answer_response(outcome: AnswerOutcome) -> AnswerResp:
    return AnswerResp(
        question_id=outcome.question_id,
        evaluation=outcome.answer.evaluation,
        timeline_markers=outcome.answer.timeline_markers,
        follow_up_question=outcome.follow_up_question,
    )


@router.post("/{session_id}/answers/{question_id}", response_model=AnswerResp)
async def submit_answer(
    session_id: str,
    question_id: str,
    req: SubmitAnswerReq,
    service: CoachService = Depends(get_service),
) -> AnswerResp:
    submission = _submission(req)
    try:
        outcome = await service.submit_answer(session_id, question_id, submission)
    except CoachError as exc:
        raise _http_error(exc) from exc
    return _answer_response(outcome)


@router.post("/{session_id}/answers/{question_id}/media", response_model=AnswerResp)
async def submit_media_answer(
    session_id: str,
    question_id: str,
    media: UploadFile = File(...),
    answer_type: str = Form("text"),
    transcript: str = Form(""),
    raw_text: str = Form(""),
    duration_sec: str = Form("0"),
    facial_expression_score: str = Form("0"),
    confidence_self_rating: str = Form("0"),
    media_reference: str = Form(""),
    service: CoachService = Depends(get_service),
) -> AnswerResp:
    try:
        req = SubmitAnswerReq(
            answer_type=answer_type.strip().lower() or "text",
            transcript=transcript,
            raw_text=raw_text,
            duration_sec=duration_sec or 0,
            facial_expression_score=facial_expression_score or 0,
            confidence_self_rating=confidence_self_rating or 0,
            media_reference=media_reference.strip(),
        )
    except ValidationError as exc:
        raise _unprocessable(exc) from exc
    submission = _submission(req)
    clip = MediaClip(content=await media.read(), mime_type=media.content_type or "", filename=media.filename or "")
    try:
        outcome = await service.submit_answer(session_id, question_id, submission, media=clip)
    except CoachError as exc:
        raise _http_error(exc) from exc
    return _answer_response(outcome)


@router.post("/{session_id}/answers/{question_id}/follow-up", response_model=FollowUpResp)
async def follow_up(
    session_id: str,
    question_id: str,
    req: Optional[FollowUpReq] = None,
    service: CoachService = Depends(get_service),
) -> FollowUpResp:
    try:
        question = await service.follow_up(session_id, question_id, req.answer_text if req else None)
    except CoachError as exc:
        raise _http_error(exc) from exc
    return FollowUpResp(question_id=question_id, follow_up_question=question)


@router.post("/{session_id}/judge-chat", response_model=ChatResp)
async def judge_chat(session_id: str, req: ChatReq, service: CoachService = Depends(get_service)) -> ChatResp:
    try:
        reply = await service.chat(
            session_id,
            req.message,
            mode=req.mode,
            history=req.history,
            question_id=req.question_id,
        )
    except CoachError as exc:
        raise _http_error(exc) from exc
    return ChatResp(reply=reply.reply, intent=reply.intent.value, mode=reply.mode, history=reply.history)


@router.post("/{session_id}/complete", response_model=CompleteResp)
async def complete(session_id: str, service: CoachService = Depends(get_service)) -> CompleteResp:
    try:
        outcome = await service.complete(session_id)
    except CoachError as exc:
        raise _http_error(exc) from exc
    message = "Session already completed." if outcome.already_completed else "Session completed."
    return CompleteResp(message=message, session=SessionView.from_session(outcome.session))


__all__ = ["get_service", "router"]
