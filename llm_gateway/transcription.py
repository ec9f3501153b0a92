from __future__ import annotations  # Speech-to-text adapters: multipart audio upload, media-reference lookup

import logging
import re
from typing import Any, Awaitable, Callable, Dict, List, Optional, Protocol, Sequence

import httpx
from pydantic import BaseModel, ConfigDict, field_validator

from config.routes import SPEECH_TO_TEXT_ROUTE, TRANSCRIPTION_ROUTE, ProviderRoute
from observability import log_event

from .llm_gateway import LlmGatewayError, ProviderPayloadError, post_json, post_multipart
from .retry import is_timeout, status_of, with_retry

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]

MAX_TRANSCRIPTION_BYTES = 25 * 1024 * 1024
DEFAULT_MIME_TYPE = "audio/webm"

AUDIO_MIME_TYPES = frozenset(
    {"audio/webm", "audio/wav", "audio/x-wav", "audio/mpeg", "audio/mp3", "audio/mp4", "audio/aac", "audio/ogg"}
)
VIDEO_MIME_TYPES = frozenset({"video/webm", "video/mp4", "video/quicktime", "video/x-msvideo"})

EXTENSION_BY_MIME: Dict[str, str] = {
    "audio/webm": "webm",
    "audio/wav": "wav",
    "audio/x-wav": "wav",
    "audio/mpeg": "mp3",
    "audio/mp3": "mp3",
    "audio/mp4": "mp4",
    "audio/aac": "aac",
    "audio/ogg": "ogg",
    "video/webm": "webm",
    "video/mp4": "mp4",
}


class TranscriptionRejectedError(LlmGatewayError):  # Upstream would refuse this clip outright
    status_code = 400


class MediaClip(BaseModel):
    """Recorded answer media held in memory."""

    model_config = ConfigDict(frozen=True)

    content: bytes = b""
    mime_type: str = DEFAULT_MIME_TYPE
    filename: str = ""

    @field_validator("mime_type", mode="before")
    @classmethod
    def _normalize_mime(cls, value: Any) -> str:
        return str(value or "").split(";", 1)[0].strip().lower() or DEFAULT_MIME_TYPE

    @property
    def size(self) -> int:
        return len(self.content)

    @property
    def is_video(self) -> bool:
        return self.mime_type.startswith("video/")

    @property
    def supported(self) -> bool:
        return self.mime_type in AUDIO_MIME_TYPES or self.mime_type in VIDEO_MIME_TYPES

    def upload_name(self) -> str:
        """Sanitised file name whose extension matches the mime type."""

        base = re.sub(r"[^a-z0-9_.-]+", "-", self.filename.lower()).strip("-").split(".")[0]
        return f"{base or 'answer-audio'}.{EXTENSION_BY_MIME.get(self.mime_type, 'webm')}"


def should_retry_transcription(error: BaseException, attempt: int, attempts: int) -> bool:
    """Rate limits, request timeouts and server errors only."""

    if attempt >= attempts:
        return False
    status = status_of(error)
    if status in (408, 429) or status >= 500:
        return True
    return is_timeout(error)


class Transcriber(Protocol):  # Uniform speech-to-text capability
    name: str

    @property
    def configured(self) -> bool: ...

    async def transcribe(self, clip: Optional[MediaClip], *, media_reference: str = "", answer_type: str = "text") -> str: ...


class WhisperTranscriber:
    """Upload the clip to an ``/audio/transcriptions`` endpoint as multipart form data."""

    def __init__(
        self,
        route: ProviderRoute,
        *,
        language: str = "",
        client: Optional[httpx.AsyncClient] = None,
        sleep: Optional[Sleep] = None,
    ) -> None:
        self.route = route
        self.name = route.name
        self.language = (language or "").strip()
        self._client = client
        self._sleep = sleep

    @property
    def configured(self) -> bool:
        return self.route.configured

    def _url(self) -> str:
        return f"{self.route.base_url.rstrip('/')}/audio/transcriptions"

    async def transcribe(self, clip: Optional[MediaClip], *, media_reference: str = "", answer_type: str = "text") -> str:
        if not self.configured or clip is None or not clip.content:
            return ""
        if clip.size > MAX_TRANSCRIPTION_BYTES:
            raise TranscriptionRejectedError("Audio file is too large for transcription (max 25MB).")

        fields = {"model": self.route.model, "temperature": "0"}
        if self.language:
            fields["language"] = self.language
        files = {"file": (clip.upload_name(), clip.content, clip.mime_type)}
        headers = dict(self.route.extra_headers)
        headers["Authorization"] = f"Bearer {self.route.api_key}"

        async def _attempt(attempt: int) -> Any:
            return await post_multipart(
                self._url(), fields, files, headers=headers, timeout_s=self.route.timeout_s, client=self._client
            )

        kwargs: Dict[str, Any] = {}
        if self._sleep is not None:
            kwargs["sleep"] = self._sleep
        data = await with_retry(
            _attempt,
            attempts=self.route.max_retries,
            min_delay_s=self.route.min_delay_s,
            max_delay_s=self.route.max_delay_s,
            should_retry=should_retry_transcription,
            **kwargs,
        )
        if not isinstance(data, dict):
            raise ProviderPayloadError("Transcription response was not a JSON object")
        text = str(data.get("text") or "").strip()
        if not text:
            logger.warning("Transcription response did not contain text provider=%s", self.name)
        return text


class MediaReferenceTranscriber:
    """Ask a bearer-token service to transcribe media it already stores."""

    def __init__(self, route: ProviderRoute, *, client: Optional[httpx.AsyncClient] = None) -> None:
        self.route = route
        self.name = route.name
        self._client = client

    @property
    def configured(self) -> bool:
        return bool(self.route.api_key and self.route.base_url)

    async def transcribe(self, clip: Optional[MediaClip], *, media_reference: str = "", answer_type: str = "text") -> str:
        if not self.configured or not media_reference:
            return ""
        headers = {"Content-Type": "application/json", **self.route.extra_headers}
        headers["Authorization"] = f"Bearer {self.route.api_key}"
        data = await post_json(
            self.route.base_url,
            {"mediaReference": media_reference, "answerType": answer_type},
            headers=headers,
            timeout_s=self.route.timeout_s,
            client=self._client,
        )
        if not isinstance(data, dict):
            raise ProviderPayloadError("Speech-to-text response was not a JSON object")
        return str(data.get("transcript") or "").strip()


class TranscriptionChain:
    """Try each transcriber in order and return the first non-empty transcript.

    A transcriber that fails is logged and skipped; an empty string means
    no upstream source produced usable text.
    """

    def __init__(self, transcribers: Sequence[Transcriber] = ()) -> None:
        self._transcribers: List[Transcriber] = list(transcribers)

    @property
    def available(self) -> bool:
        return any(transcriber.configured for transcriber in self._transcribers)

    async def transcribe(
        self,
        clip: Optional[MediaClip],
        *,
        media_reference: str = "",
        answer_type: str = "text",
        session_id: str = "",
        trace_id: str = "",
    ) -> str:
        for transcriber in self._transcribers:
            if not transcriber.configured:
                continue
            try:
                text = await transcriber.transcribe(clip, media_reference=media_reference, answer_type=answer_type)
            except Exception as exc:  # noqa: BLE001
                log_event(
                    "transcription_failed",
                    session_id,
                    level=logging.WARNING,
                    provider=transcriber.name,
                    status=status_of(exc),
                    trace_id=trace_id or None,
                    outcome=type(exc).__name__,
                    error=str(exc)[:200],
                )
                continue
            text = (text or "").strip()
            if text:
                log_event(
                    "answer_transcribed",
                    session_id,
                    provider=transcriber.name,
                    trace_id=trace_id or None,
                    transcript_chars=len(text),
                )
                return text
        return ""


def build_transcribers(
    routes: Dict[str, ProviderRoute],
    *,
    language: str = "",
    client: Optional[httpx.AsyncClient] = None,
    sleep: Optional[Sleep] = None,
) -> TranscriptionChain:  # Uploaded audio first, then the media-reference service
    return TranscriptionChain(
        [
            WhisperTranscriber(routes[TRANSCRIPTION_ROUTE], language=language, client=client, sleep=sleep),
            MediaReferenceTranscriber(routes[SPEECH_TO_TEXT_ROUTE], client=client),
        ]
    )


__all__ = [
    "AUDIO_MIME_TYPES",
    "MAX_TRANSCRIPTION_BYTES",
    "MediaClip",
    "MediaReferenceTranscriber",
    "TranscriptionChain",
    "TranscriptionRejectedError",
    "Transcriber",
    "VIDEO_MIME_TYPES",
    "WhisperTranscriber",
    "build_transcribers",
    "should_retry_transcription",
]
