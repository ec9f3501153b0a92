from __future__ import annotations  # Provider adapters: chat-completion JSON, generative-content, bearer NLP

import json
import logging
import math
from textwrap import dedent
from typing import Any, Awaitable, Callable, Dict, List, Optional, Protocol, Sequence
from urllib.parse import quote

import httpx

from agents.types import EvaluationRequest, MetricScoreSet, PartialScores, ProviderOutcome, clamp_score
from config.routes import GEMINI_API_BASES, GEMINI_ROUTE, NLP_ROUTE, OPENAI_ROUTE, ProviderRoute
from observability import log_event

from .llm_gateway import ProviderPayloadError, chat_messages, post_json, sanitize_output
from .loose_json import extract_object
from .retry import status_of, with_retry

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]

EVALUATION_SCHEMA = dedent(
    """
    JSON shape:
    {
      "confidence": number 0-100,
      "communication": number 0-100,
      "grammar": number 0-100,
      "technicalAccuracy": number 0-100,
      "speakingSpeed": number 0-100,
      "facialExpression": number 0-100,
      "relevance": number 0-100,
      "feedbackTips": string[],
      "improvements": string[],
      "relevanceNotes": string
    }
    """
).strip()

CHAT_EVALUATOR_INSTRUCTION = (
    "You are a strict technical interview evaluator.\n"
    "Return valid JSON only.\n"
    "Score fairly. Do not inflate.\n" + EVALUATION_SCHEMA
)

GENERATIVE_EVALUATOR_INSTRUCTION = (
    "You are a strict interview evaluator. Return only valid JSON. "
    "Score fairly, avoid inflated scores, and focus on interview quality."
)

# Wire keys accepted per metric, in lookup order.
METRIC_KEYS: Dict[str, tuple[str, ...]] = {
    "confidence": ("confidence",),
    "communication": ("communication", "clarity"),
    "grammar": ("grammar",),
    "technical_accuracy": ("technicalAccuracy", "technical_accuracy", "relevance"),
    "speaking_speed": ("speakingSpeed", "speaking_speed"),
    "facial_expression": ("facialExpression", "facial_expression"),
}


class ScoringProvider(Protocol):  # Uniform evaluation capability
    name: str

    @property
    def configured(self) -> bool: ...

    async def evaluate(self, request: EvaluationRequest, baseline: MetricScoreSet) -> Optional[ProviderOutcome]: ...


class TextGenerator(Protocol):  # Uniform text-generation capability
    name: str

    async def generate_text(
        self,
        instruction: str,
        prompt: str,
        *,
        temperature: float = 0.5,
        max_tokens: int = 300,
    ) -> Optional[str]: ...


def _numeric(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def normalize_string_list(items: Any, limit: int = 6) -> List[str]:  # Strip, de-duplicate, cap; order preserved
    if not isinstance(items, (list, tuple)):
        return []
    seen: List[str] = []
    for item in items:
        text = str(item if item is not None else "").strip()
        if text and text not in seen:
            seen.append(text)
        if len(seen) >= limit:
            break
    return seen


def normalize_provider_payload(source: str, payload: Dict[str, Any]) -> ProviderOutcome:  # Map any provider JSON onto a partial score set
    reported: Dict[str, int] = {}
    for metric, keys in METRIC_KEYS.items():
        for key in keys:
            number = _numeric(payload.get(key))
            if number is not None:
                reported[metric] = clamp_score(number)
                break
    notes = payload.get("relevanceNotes") or payload.get("relevance_notes") or payload.get("technicalNotes") or ""
    return ProviderOutcome(
        source=source,
        scores=PartialScores(**reported),
        feedback_tips=normalize_string_list(payload.get("feedbackTips", payload.get("feedback_tips"))),
        improvements=normalize_string_list(payload.get("improvements")),
        relevance_notes=str(notes).strip(),
    )


def evaluation_input(request: EvaluationRequest, baseline: MetricScoreSet) -> Dict[str, Any]:  # Wire payload shared by all evaluators
    submission = request.submission
    return {
        "category": request.category,
        "prompt": request.prompt,
        "tags": list(request.tags),
        "answerType": submission.answer_type,
        "durationSec": submission.duration_sec,
        "facialExpressionScore": submission.facial_expression_score,
        "confidenceSelfRating": submission.confidence_self_rating,
        "transcript": submission.text,
        "baseline": {
            "confidence": baseline.confidence,
            "communication": baseline.communication,
            "clarity": baseline.clarity,
            "grammar": baseline.grammar,
            "technicalAccuracy": baseline.technical_accuracy,
            "speakingSpeed": baseline.speaking_speed,
            "facialExpression": baseline.facial_expression,
            "relevance": baseline.relevance,
        },
    }


def extract_chat_content(data: Any) -> str:  # Pull assistant text from a chat-completion body
    if not isinstance(data, dict):
        return ""
    choices = data.get("choices")
    if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
        return ""
    message = choices[0].get("message")
    content = message.get("content") if isinstance(message, dict) else None
    if isinstance(content, str):
        return sanitize_output(content)
    if isinstance(content, list):
        parts = [item.get("text", "") for item in content if isinstance(item, dict) and isinstance(item.get("text"), str)]
        return sanitize_output("\n".join(parts))
    return ""


def extract_generative_text(data: Any) -> str:  # First candidate with non-empty joined parts
    candidates = data.get("candidates") if isinstance(data, dict) else None
    if not isinstance(candidates, list):
        return ""
    for candidate in candidates:
        content = candidate.get("content") if isinstance(candidate, dict) else None
        parts = content.get("parts") if isinstance(content, dict) else None
        if not isinstance(parts, list):
            continue
        text = "\n".join(str(part.get("text") or "") for part in parts if isinstance(part, dict)).strip()
        if text:
            return sanitize_output(text)
    return ""


class _HttpProvider:  # Shared plumbing: route, client, retry ladder, failure reporting
    name = "provider"

    def __init__(
        self,
        route: ProviderRoute,
        *,
        client: Optional[httpx.AsyncClient] = None,
        sleep: Optional[Sleep] = None,
    ) -> None:
        self.route = route
        self.name = route.name
        self._client = client
        self._sleep = sleep

    @property
    def configured(self) -> bool:
        return self.route.configured

    async def _post(
        self,
        url: str,
        body: Dict[str, Any],
        headers: Dict[str, str],
        *,
        min_delay_s: Optional[float] = None,
        max_delay_s: Optional[float] = None,
    ) -> Any:
        async def _attempt(attempt: int) -> Any:
            return await post_json(url, body, headers=headers, timeout_s=self.route.timeout_s, client=self._client)

        kwargs: Dict[str, Any] = {}
        if self._sleep is not None:
            kwargs["sleep"] = self._sleep
        return await with_retry(
            _attempt,
            attempts=self.route.max_retries,
            min_delay_s=self.route.min_delay_s if min_delay_s is None else min_delay_s,
            max_delay_s=self.route.max_delay_s if max_delay_s is None else max_delay_s,
            **kwargs,
        )

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        headers.update(self.route.extra_headers)
        return headers

    def _report(self, what: str, exc: BaseException, *, session_id: str = "", trace_id: str = "") -> None:
        log_event(
            "provider_failed",
            session_id,
            level=logging.WARNING,
            provider=self.name,
            operation=what,
            status=status_of(exc),
            trace_id=trace_id or None,
            outcome=type(exc).__name__,
            error=str(exc)[:200],
        )


class OpenAiChatProvider(_HttpProvider):  # chat-completion endpoint with JSON mode
    def _url(self) -> str:
        return f"{self.route.base_url.rstrip('/')}/chat/completions"

    def _auth_headers(self) -> Dict[str, str]:
        headers = self._headers()
        headers["Authorization"] = f"Bearer {self.route.api_key}"
        return headers

    async def evaluate(self, request: EvaluationRequest, baseline: MetricScoreSet) -> Optional[ProviderOutcome]:
        if not self.configured:
            return None
        body = {
            "model": self.route.models[0],
            "temperature": 0.2,
            "response_format": {"type": "json_object"},
            "messages": chat_messages(CHAT_EVALUATOR_INSTRUCTION, json.dumps(evaluation_input(request, baseline))),
        }
        try:
            data = await self._post(self._url(), body, self._auth_headers(), min_delay_s=0.32, max_delay_s=1.8)
            payload = extract_object(extract_chat_content(data))
            if payload is None:
                raise ProviderPayloadError("Chat evaluation content was not a JSON object")
        except Exception as exc:  # noqa: BLE001
            self._report("evaluate", exc, session_id=request.session_id, trace_id=request.trace_id)
            return None
        return normalize_provider_payload(self.name, payload)

    async def generate_text(
        self,
        instruction: str,
        prompt: str,
        *,
        temperature: float = 0.5,
        max_tokens: int = 300,
    ) -> Optional[str]:
        if not self.configured:
            return None
        body = {
            "model": self.route.models[-1],
            "temperature": temperature,
            "max_tokens": max_tokens,
            "messages": chat_messages(instruction, prompt),
        }
        try:
            data = await self._post(self._url(), body, self._auth_headers(), min_delay_s=0.28, max_delay_s=1.6)
        except Exception as exc:  # noqa: BLE001
            self._report("generate_text", exc)
            return None
        return extract_chat_content(data) or None


class GeminiProvider(_HttpProvider):  # generative-content endpoint across API bases and models
    def __init__(self, route: ProviderRoute, *, fallback_bases: Sequence[str] = GEMINI_API_BASES, **kwargs: Any) -> None:
        super().__init__(route, **kwargs)
        self._fallback_bases = tuple(fallback_bases)

    def api_bases(self) -> List[str]:  # Route base first, then the stock API versions; de-duplicated
        ordered: List[str] = []
        for base in (self.route.base_url, *self._fallback_bases):
            base = (base or "").rstrip("/")
            if base and base not in ordered:
                ordered.append(base)
        return ordered

    @property
    def configured(self) -> bool:
        return bool(self.route.api_key and self.route.models)

    async def generate_text(
        self,
        instruction: str,
        prompt: str,
        *,
        temperature: float = 0.6,
        max_tokens: int = 700,
        response_mime_type: str = "",
    ) -> Optional[str]:
        if not self.configured:
            return None
        generation_config: Dict[str, Any] = {"temperature": temperature, "maxOutputTokens": max_tokens}
        if response_mime_type:
            generation_config["responseMimeType"] = response_mime_type
        body: Dict[str, Any] = {
            "generationConfig": generation_config,
            "contents": [{"role": "user", "parts": [{"text": str(prompt or "")}]}],
        }
        if instruction:
            body["systemInstruction"] = {"parts": [{"text": instruction}]}

        last_failure: Optional[BaseException] = None
        for api_base in self.api_bases():
            for model in self.route.models:
                url = f"{api_base}/{quote(model, safe='')}:generateContent?key={quote(self.route.api_key, safe='')}"
                try:
                    data = await self._post(url, body, self._headers())
                except Exception as exc:  # noqa: BLE001
                    last_failure = exc
                    logger.debug("Generative model %s at %s failed: %s", model, api_base, exc)
                    continue
                text = extract_generative_text(data)
                if text:
                    return text
        if last_failure is not None:
            self._report("generate_text", last_failure)
        return None

    async def evaluate(self, request: EvaluationRequest, baseline: MetricScoreSet) -> Optional[ProviderOutcome]:
        if not self.configured:
            return None
        submission = request.submission
        prompt = "\n".join(
            [
                "Evaluate this interview answer and return JSON object with fields:",
                EVALUATION_SCHEMA.removeprefix("JSON shape:\n"),
                "",
                f"Interview category: {request.category}",
                f"Question: {request.prompt}",
                f"Expected tags: {', '.join(request.tags)}",
                f"Answer type: {submission.answer_type}",
                f"Duration seconds: {submission.duration_sec}",
                f"Facial expression signal: {submission.facial_expression_score}",
                f"Self confidence rating out of 10: {submission.confidence_self_rating}",
                "",
                "Candidate answer transcript:",
                submission.text,
                "",
                "Baseline heuristic scores for reference:",
                json.dumps(evaluation_input(request, baseline)["baseline"]),
            ]
        )
        text = await self.generate_text(
            GENERATIVE_EVALUATOR_INSTRUCTION,
            prompt,
            temperature=0.25,
            max_tokens=900,
            response_mime_type="application/json",
        )
        payload = extract_object(text)
        if payload is None:
            if text:
                self._report("evaluate", ProviderPayloadError("Generative evaluation was not a JSON object"),
                             session_id=request.session_id, trace_id=request.trace_id)
            return None
        return normalize_provider_payload(self.name, payload)


class NlpScoringProvider(_HttpProvider):  # generic bearer-token scoring endpoint
    @property
    def configured(self) -> bool:
        return bool(self.route.api_key and self.route.base_url)

    async def evaluate(self, request: EvaluationRequest, baseline: MetricScoreSet) -> Optional[ProviderOutcome]:
        if not self.configured:
            return None
        headers = self._headers()
        headers["Authorization"] = f"Bearer {self.route.api_key}"
        try:
            data = await self._post(self.route.base_url, evaluation_input(request, baseline), headers)
            if not isinstance(data, dict):
                raise ProviderPayloadError("Scoring response was not a JSON object")
        except Exception as exc:  # noqa: BLE001
            self._report("evaluate", exc, session_id=request.session_id, trace_id=request.trace_id)
            return None
        return normalize_provider_payload(self.name, data)

    async def generate_text(self, instruction: str, prompt: str, *, temperature: float = 0.5, max_tokens: int = 300) -> Optional[str]:
        return None


def build_providers(
    routes: Dict[str, ProviderRoute],
    *,
    client: Optional[httpx.AsyncClient] = None,
    sleep: Optional[Sleep] = None,
) -> tuple[OpenAiChatProvider, GeminiProvider, NlpScoringProvider]:  # Default adapter trio in fan-out order
    return (
        OpenAiChatProvider(routes[OPENAI_ROUTE], client=client, sleep=sleep),
        GeminiProvider(routes[GEMINI_ROUTE], client=client, sleep=sleep),
        NlpScoringProvider(routes[NLP_ROUTE], client=client, sleep=sleep),
    )


__all__ = [
    "GeminiProvider",
    "METRIC_KEYS",
    "NlpScoringProvider",
    "OpenAiChatProvider",
    "ScoringProvider",
    "TextGenerator",
    "build_providers",
    "evaluation_input",
    "extract_chat_content",
    "extract_generative_text",
    "normalize_provider_payload",
    "normalize_string_list",
]
