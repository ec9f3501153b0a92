"""Session orchestration: create, answer, follow up, chat, complete."""
from __future__ import annotations

import datetime as dt
import logging
import uuid
from pathlib import Path
from typing import Any, Dict, Iterable, Optional, Tuple

import httpx
from pydantic import BaseModel

from agents.answer_evaluator import AnswerEvaluator
from agents.dialogue_engine import DialogueEngine, DialogueReply
from agents.qg.followup import FollowUpGenerator
from agents.qg.qa_pack import QAPackBuilder
from agents.types import (
    CATEGORIES,
    AnswerSubmission,
    DialogueContext,
    DialogueTurn,
    EvaluationRequest,
)
from config.routes import resolve_routes
from config.settings import Settings, settings
from llm_gateway.chain import TextGenerationChain
from llm_gateway.providers import build_providers
from llm_gateway.transcription import MediaClip, TranscriptionChain, build_transcribers
from observability import log_event
from storage.models import AnswerRecord, InterviewSession, SessionQuestion
from storage.sessions import InMemorySessionRepository
from storage.ttl_store import TTLStore

from .errors import (
    MediaRejectedError,
    QuestionNotFoundError,
    SessionConflictError,
    SessionStateError,
    TranscriptEmptyError,
)
from .question_bank import QuestionBank
from .scoring import backfill_job_fit, summarize_session
from .timeline import build_timeline_markers

MIN_QUESTIONS = 3
MAX_QUESTIONS = 12
JOB_DESCRIPTION_CHARS = 12_000


class AnswerOutcome(BaseModel):
    question_id: str
    answer: AnswerRecord
    follow_up_question: str


class CompletionOutcome(BaseModel):
    session: InterviewSession
    already_completed: bool = False


class CoachService:
    def __init__(
        self,
        *,
        bank: QuestionBank,
        evaluator: AnswerEvaluator,
        followups: FollowUpGenerator,
        dialogue: DialogueEngine,
        repository: Optional[InMemorySessionRepository] = None,
        transcriber: Optional[TranscriptionChain] = None,
        history_limit: int = 10,
        max_media_bytes: int = 25 * 1024 * 1024,
    ) -> None:
        self.bank = bank
        self.evaluator = evaluator
        self.followups = followups
        self.dialogue = dialogue
        self.repository = repository or InMemorySessionRepository()
        self.transcriber = transcriber or TranscriptionChain()
        self.history_limit = history_limit
        self.max_media_bytes = max_media_bytes

    @classmethod
    def from_settings(cls, cfg: Settings = settings, *, client: Optional[httpx.AsyncClient] = None) -> "CoachService":
        """Wire the default providers, bank and caches from configuration."""

        overrides = Path(cfg.PROVIDER_ROUTES_PATH) if cfg.PROVIDER_ROUTES_PATH else None
        routes = resolve_routes(cfg, overrides)
        openai, gemini, nlp = build_providers(routes, client=client)
        chain = TextGenerationChain([openai, gemini])
        bank = QuestionBank.from_yaml(cfg.QUESTION_BANK_PATH)
        return cls(
            bank=bank,
            evaluator=AnswerEvaluator([openai, gemini, nlp], deadline_s=cfg.EVALUATION_DEADLINE_S or None),
            followups=FollowUpGenerator(chain),
            dialogue=DialogueEngine(
                chain,
                QAPackBuilder(bank, TTLStore(cfg.QA_PACK_CACHE_TTL_S)),
                snapshot_chars=cfg.ANSWER_SNAPSHOT_CHARS,
            ),
            transcriber=build_transcribers(routes, language=cfg.OPENAI_TRANSCRIPTION_LANGUAGE, client=client),
            history_limit=cfg.HISTORY_LIMIT,
            max_media_bytes=cfg.MAX_MEDIA_BYTES,
        )

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------
    def create_session(
        self,
        *,
        category: str,
        target_role: str = "Generalist",
        company_simulation: str = "Startup",
        job_description_text: str = "",
        count: int = 5,
    ) -> InterviewSession:
        if category not in CATEGORIES:
            raise SessionStateError("Invalid category.")
        target_role = (target_role or "").strip() or "Generalist"
        company_simulation = (company_simulation or "").strip() or "Startup"
        count = max(MIN_QUESTIONS, min(MAX_QUESTIONS, int(count or 5)))

        sampled = self.bank.sample(
            [category], count, target_role=target_role, company=company_simulation, fallback_source="predefined"
        )
        if not sampled:
            raise SessionStateError("No predefined questions found for this setup.")
        session = InterviewSession(
            category=category,
            target_role=target_role,
            company_simulation=company_simulation,
            job_description_text=(job_description_text or "").strip()[:JOB_DESCRIPTION_CHARS],
            questions=[
                SessionQuestion(
                    question_ref=record.id,
                    category=record.category,
                    prompt=record.prompt,
                    tags=list(record.tags),
                    order=index,
                )
                for index, record in enumerate(sampled, start=1)
            ],
        )
        stored = self.repository.add(session)
        log_event("session_created", stored.id, category=category, questions=len(stored.questions))
        return stored

    def get_session(self, session_id: str) -> InterviewSession:
        return self.repository.get(session_id)

    def _question(self, session: InterviewSession, question_id: str) -> SessionQuestion:
        question = session.question(question_id)
        if question is None:
            raise QuestionNotFoundError()
        return question

    # ------------------------------------------------------------------
    # Answers
    # ------------------------------------------------------------------
    async def _resolve_transcript(
        self,
        session_id: str,
        question_id: str,
        submission: AnswerSubmission,
        media: Optional[MediaClip],
        trace_id: str,
    ) -> AnswerSubmission:
        """Fill in ``transcript`` from uploaded or referenced media when no hint was sent."""

        updates: Dict[str, Any] = {}
        if media is not None:
            if media.size > self.max_media_bytes:
                raise MediaRejectedError(f"Uploaded media is too large (max {self.max_media_bytes // (1024 * 1024)}MB).")
            if not media.supported:
                raise MediaRejectedError("Unsupported media format. Use webm/wav/mp3/mp4/ogg.")
            if media.is_video:
                updates["answer_type"] = "video"
            elif submission.answer_type == "text":
                updates["answer_type"] = "voice"
            if not submission.media_reference:
                updates["media_reference"] = f"upload://{session_id}/{question_id}/{uuid.uuid4().hex[:12]}"
        if updates:
            submission = submission.model_copy(update=updates)

        if submission.transcript.strip() or (media is None and not submission.media_reference):
            return submission
        transcript = await self.transcriber.transcribe(
            media,
            media_reference=submission.media_reference,
            answer_type=submission.answer_type,
            session_id=session_id,
            trace_id=trace_id,
        )
        if transcript:
            submission = submission.model_copy(update={"transcript": transcript})
        return submission

    async def submit_answer(
        self,
        session_id: str,
        question_id: str,
        submission: AnswerSubmission,
        *,
        media: Optional[MediaClip] = None,
        trace_id: str = "",
    ) -> AnswerOutcome:
        """Evaluate and attach an answer.

        Without a transcript hint, uploaded ``media`` or the submission's
        ``media_reference`` is transcribed first. Evaluation runs without
        holding the session lock; the commit step re-reads the session under
        the lock and refuses to overwrite an answer that landed in the
        meantime.
        """

        session = self.repository.get(session_id)
        if session.status != "in_progress":
            raise SessionStateError("Session is already completed.")
        question = self._question(session, question_id)
        if question.answered:
            raise SessionStateError("Question already answered.")

        trace_id = trace_id or str(uuid.uuid4())
        if media is not None and not media.content:
            media = None
        submission = await self._resolve_transcript(session_id, question_id, submission, media, trace_id)
        if not submission.text:
            if media is not None or submission.media_reference:
                raise TranscriptEmptyError(
                    "Could not detect speech from recording. Retry with clearer audio or type your answer."
                )
            raise TranscriptEmptyError("Answer is empty. Provide text or a transcript.")

        evaluation = await self.evaluator.evaluate(
            EvaluationRequest(
                category=session.category,
                prompt=question.prompt,
                tags=question.tags,
                target_role=session.target_role,
                submission=submission,
                trace_id=trace_id,
                session_id=session_id,
            )
        )
        markers = build_timeline_markers(
            duration_sec=submission.duration_sec,
            text=submission.raw_text or evaluation.transcript,
            improvements=evaluation.improvements,
            relevance_notes=evaluation.relevance_notes,
        )
        follow_up = await self.followups.generate(
            prompt=question.prompt,
            answer_text=evaluation.transcript,
            category=session.category,
            target_role=session.target_role,
            session_id=session_id,
        )
        record = AnswerRecord(
            submission=submission,
            evaluation=evaluation,
            timeline_markers=markers,
            follow_up_question=follow_up,
        )

        async with self.repository.lock(session_id):
            current = self.repository.get(session_id)
            target = self._question(current, question_id)
            if current.status != "in_progress" or target.answered:
                log_event("session_conflict", session_id, level=logging.WARNING, trace_id=trace_id, outcome="answer_race")
                raise SessionConflictError("Question was answered or the session completed while evaluating.")
            target.answer = record
            self.repository.save(current, expected_version=current.version)

        return AnswerOutcome(question_id=question_id, answer=record, follow_up_question=follow_up)

    async def follow_up(self, session_id: str, question_id: str, answer_text: Optional[str] = None) -> str:
        session = self.repository.get(session_id)
        question = self._question(session, question_id)
        text = (answer_text or "").strip()
        if not text and question.answer is not None:
            text = question.answer.evaluation.transcript or question.answer.submission.raw_text
        return await self.followups.generate(
            prompt=question.prompt,
            answer_text=text,
            category=session.category,
            target_role=session.target_role,
            session_id=session_id,
        )

    # ------------------------------------------------------------------
    # Chat
    # ------------------------------------------------------------------
    async def chat(
        self,
        session_id: str,
        message: str,
        *,
        mode: str = "judge",
        history: Iterable[DialogueTurn | dict] = (),
        question_id: Optional[str] = None,
    ) -> DialogueReply:
        session = self.repository.get(session_id)
        question = session.active_question(question_id)
        turns = list(history)[-self.history_limit :]
        context = DialogueContext(
            mode=mode,
            current_question=question.prompt if question else "",
            current_answer=question.snapshot() if question else None,
            session=session.meta(),
            history=turns,
        )
        return await self.dialogue.respond(message, context)

    # ------------------------------------------------------------------
    # Completion
    # ------------------------------------------------------------------
    def _transcripts(self, session: InterviewSession) -> Tuple[str, ...]:
        return tuple(
            question.answer.evaluation.transcript or question.answer.submission.raw_text
            for question in session.answered_questions()
            if question.answer is not None
        )

    async def complete(self, session_id: str) -> CompletionOutcome:
        async with self.repository.lock(session_id):
            session = self.repository.get(session_id)
            if session.status == "completed":
                if session.summary is not None:
                    backfilled = backfill_job_fit(
                        session.summary,
                        transcripts=self._transcripts(session),
                        job_description=session.job_description_text,
                    )
                    if backfilled is not session.summary:
                        session.summary = backfilled
                        session = self.repository.save(session, expected_version=session.version)
                return CompletionOutcome(session=session, already_completed=True)

            answered = session.answered_questions()
            if not answered:
                raise SessionStateError("Answer at least one question before completing.")
            summary = summarize_session(
                [question.answer.evaluation.scores for question in answered if question.answer is not None],
                transcripts=self._transcripts(session),
                job_description=session.job_description_text,
            )
            session.summary = summary
            session.overall_score = summary.overall
            session.status = "completed"
            session.ended_at = dt.datetime.now(dt.timezone.utc)
            session = self.repository.save(session, expected_version=session.version)

        log_event(
            "session_completed",
            session_id,
            overall=summary.overall,
            answered=len(answered),
            job_fit=summary.job_fit_score,
        )
        return CompletionOutcome(session=session)


__all__ = ["AnswerOutcome", "CoachService", "CompletionOutcome"]
