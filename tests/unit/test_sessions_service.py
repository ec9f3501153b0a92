"""Session orchestration over the in-memory repository."""
from __future__ import annotations

import asyncio

import pytest

from agents.types import AnswerSubmission
from conftest import FakeProvider, FakeTranscriber, outcome
from llm_gateway.llm_gateway import ProviderHttpError
from llm_gateway.transcription import MediaClip
from services.errors import (
    MediaRejectedError,
    QuestionNotFoundError,
    SessionConflictError,
    SessionNotFoundError,
    SessionStateError,
    TranscriptEmptyError,
)

ANSWER = AnswerSubmission(
    transcript="In my last role I led a hiring drive with the team and improved offer acceptance by 20%.",
    duration_sec=30,
)


class SlowProvider(FakeProvider):
    async def evaluate(self, request, baseline):
        await asyncio.sleep(0.01)
        return await super().evaluate(request, baseline)


def test_create_session_validates_and_clamps(service):
    with pytest.raises(SessionStateError):
        service.create_session(category="Astrology")

    session = service.create_session(category="HR", count=1, target_role="  ", job_description_text=" jd ")
    assert len(session.questions) == 3
    assert [question.order for question in session.questions] == [1, 2, 3]
    assert session.target_role == "Generalist"
    assert session.job_description_text == "jd"
    assert session.version == 1
    assert service.get_session(session.id).id == session.id


def test_submit_answer_records_evaluation_and_followup(build_service):
    service = build_service(providers=[FakeProvider("openai", outcome("openai", grammar=90))])
    session = service.create_session(category="Behavioral", count=3)
    question = session.questions[0]

    result = asyncio.run(service.submit_answer(session.id, question.id, ANSWER))
    assert result.follow_up_question.startswith("Follow-up: ")
    assert result.answer.evaluation.sources == ["openai"]
    assert len(result.answer.timeline_markers) == 3

    stored = service.get_session(session.id)
    assert stored.questions[0].answered
    assert stored.version == 2

    with pytest.raises(SessionStateError):
        asyncio.run(service.submit_answer(session.id, question.id, ANSWER))


def test_submit_answer_errors(service):
    session = service.create_session(category="HR")
    with pytest.raises(TranscriptEmptyError):
        asyncio.run(service.submit_answer(session.id, session.questions[0].id, AnswerSubmission(transcript="  ")))
    with pytest.raises(SessionNotFoundError):
        asyncio.run(service.submit_answer("missing", "q", ANSWER))
    with pytest.raises(QuestionNotFoundError):
        asyncio.run(service.submit_answer(session.id, "missing", ANSWER))


def test_concurrent_answers_to_one_question_conflict(build_service):
    service = build_service(providers=[SlowProvider("nlp", outcome("nlp", confidence=70))])
    session = service.create_session(category="Technical")
    question_id = session.questions[0].id

    async def _race():
        return await asyncio.gather(
            service.submit_answer(session.id, question_id, ANSWER),
            service.submit_answer(session.id, question_id, ANSWER),
            return_exceptions=True,
        )

    results = asyncio.run(_race())
    conflicts = [item for item in results if isinstance(item, SessionConflictError)]
    assert len(conflicts) == 1
    assert service.get_session(session.id).version == 2


def test_follow_up_reuses_stored_transcript(service):
    session = service.create_session(category="Technical")
    question = session.questions[0]
    asyncio.run(service.submit_answer(session.id, question.id, ANSWER))
    follow_up = asyncio.run(service.follow_up(session.id, question.id))
    assert follow_up.startswith("Follow-up: You mentioned")


def test_chat_uses_active_question_and_caps_history(service):
    session = service.create_session(category="HR")
    history = [{"role": "candidate", "text": f"m{index}"} for index in range(12)]
    reply = asyncio.run(service.chat(session.id, "repeat the question", mode="live_interviewer", history=history))
    assert reply.reply.endswith(f'"{session.questions[0].prompt}"')
    assert len(reply.history) == 10


def test_complete_session(service):
    session = service.create_session(category="HR", job_description_text="hiring offer acceptance")
    with pytest.raises(SessionStateError):
        asyncio.run(service.complete(session.id))

    answered = asyncio.run(service.submit_answer(session.id, session.questions[0].id, ANSWER))
    done = asyncio.run(service.complete(session.id))
    assert not done.already_completed
    assert done.session.status == "completed"
    assert done.session.overall_score == answered.answer.evaluation.scores.overall
    assert done.session.summary.job_fit_score == 100
    assert done.session.ended_at is not None

    again = asyncio.run(service.complete(session.id))
    assert again.already_completed
    assert again.session.overall_score == done.session.overall_score

    with pytest.raises(SessionStateError):
        asyncio.run(service.submit_answer(session.id, session.questions[1].id, ANSWER))


def test_uploaded_audio_is_transcribed_before_evaluation(build_service):
    failing = FakeTranscriber("transcription", error=ProviderHttpError(503))
    fallback = FakeTranscriber("speech_to_text", transcript="I owned the incident review and fixed the alerting.")
    service = build_service(transcribers=[failing, fallback])
    session = service.create_session(category="Behavioral", count=3)
    question = session.questions[0]

    clip = MediaClip(content=b"audio", mime_type="audio/ogg")
    result = asyncio.run(
        service.submit_answer(session.id, question.id, AnswerSubmission(duration_sec=20), media=clip)
    )
    submission = result.answer.submission
    assert submission.transcript == "I owned the incident review and fixed the alerting."
    assert submission.answer_type == "voice"
    assert submission.media_reference.startswith(f"upload://{session.id}/{question.id}/")
    assert result.answer.evaluation.transcript == submission.transcript
    assert failing.calls[0]["clip"] is clip
    assert fallback.calls[0]["media_reference"] == submission.media_reference


def test_transcript_hint_skips_transcription(build_service):
    transcriber = FakeTranscriber(transcript="should not be used")
    service = build_service(transcribers=[transcriber])
    session = service.create_session(category="HR", count=3)

    clip = MediaClip(content=b"video", mime_type="video/mp4")
    result = asyncio.run(service.submit_answer(session.id, session.questions[0].id, ANSWER, media=clip))
    assert result.answer.submission.transcript == ANSWER.transcript
    assert result.answer.submission.answer_type == "video"
    assert transcriber.calls == []


def test_media_reference_alone_is_transcribed(build_service):
    transcriber = FakeTranscriber(transcript="Referenced recording text.")
    service = build_service(transcribers=[transcriber])
    session = service.create_session(category="HR", count=3)

    submission = AnswerSubmission(answer_type="voice", media_reference="s3://bucket/answer-1.webm")
    result = asyncio.run(service.submit_answer(session.id, session.questions[0].id, submission))
    assert result.answer.submission.transcript == "Referenced recording text."
    assert transcriber.calls == [{"clip": None, "media_reference": "s3://bucket/answer-1.webm", "answer_type": "voice"}]


def test_silent_recording_is_rejected_after_transcription(build_service):
    transcriber = FakeTranscriber(transcript="   ")
    service = build_service(transcribers=[transcriber])
    session = service.create_session(category="HR", count=3)

    with pytest.raises(TranscriptEmptyError) as excinfo:
        asyncio.run(
            service.submit_answer(
                session.id, session.questions[0].id, AnswerSubmission(), media=MediaClip(content=b"hiss")
            )
        )
    assert excinfo.value.message.startswith("Could not detect speech from recording.")
    assert len(transcriber.calls) == 1
    assert not service.get_session(session.id).questions[0].answered


def test_media_is_validated_before_transcription(build_service):
    transcriber = FakeTranscriber(transcript="text")
    service = build_service(transcribers=[transcriber])
    session = service.create_session(category="HR", count=3)
    question_id = session.questions[0].id

    with pytest.raises(MediaRejectedError, match="too large"):
        asyncio.run(service.submit_answer(session.id, question_id, AnswerSubmission(), media=MediaClip(content=b"0" * 2048)))
    with pytest.raises(MediaRejectedError, match="Unsupported"):
        asyncio.run(
            service.submit_answer(
                session.id, question_id, AnswerSubmission(), media=MediaClip(content=b"%PDF", mime_type="application/pdf")
            )
        )
    assert transcriber.calls == []
