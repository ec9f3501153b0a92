"""Answer evaluation: heuristic baseline, concurrent provider fan-out, fusion."""
from __future__ import annotations

import asyncio
import logging
import uuid
from typing import Any, Dict, List, Optional, Sequence

from agents.heuristic_scorer import score_answer
from agents.types import EvaluationRequest, EvaluationResult, MetricScoreSet, ProviderOutcome
from llm_gateway.providers import ScoringProvider
from observability import log_event, span
from services.errors import EvaluationFailedError, TranscriptEmptyError
from services.fusion import fuse

logger = logging.getLogger(__name__)


class AnswerEvaluator:
    """Score one answer against every configured provider.

    Providers run concurrently; each one owns its retry ladder and request
    timeout. ``deadline_s`` optionally caps a provider's whole ladder. A
    provider that fails, times out or returns garbage contributes nothing,
    and fusion only starts once all of them have settled.
    """

    def __init__(self, providers: Sequence[ScoringProvider] = (), *, deadline_s: Optional[float] = None) -> None:
        self._providers = list(providers)
        self._deadline_s = deadline_s

    @property
    def provider_names(self) -> List[str]:
        return [provider.name for provider in self._providers]

    async def _run_provider(
        self,
        provider: ScoringProvider,
        request: EvaluationRequest,
        baseline: MetricScoreSet,
        timings: List[Dict[str, Any]],
    ) -> Optional[ProviderOutcome]:
        if not provider.configured:
            return None
        try:
            with span(timings, provider.name):
                call = provider.evaluate(request, baseline)
                if self._deadline_s:
                    return await asyncio.wait_for(call, self._deadline_s)
                return await call
        except Exception as exc:  # noqa: BLE001
            log_event(
                "provider_failed",
                request.session_id,
                level=logging.WARNING,
                provider=provider.name,
                trace_id=request.trace_id or None,
                outcome=type(exc).__name__,
            )
            return None

    async def evaluate(self, request: EvaluationRequest) -> EvaluationResult:
        text = request.submission.text
        if not text:
            raise TranscriptEmptyError("Answer is empty. Provide text or a transcript.")
        trace_id = request.trace_id or str(uuid.uuid4())
        if not request.trace_id:
            request = request.model_copy(update={"trace_id": trace_id})

        try:
            heuristic = score_answer(request.submission, tags=request.tags, prompt=request.prompt)
        except Exception as exc:
            logger.exception("Heuristic scoring failed trace=%s", trace_id)
            raise EvaluationFailedError() from exc

        timings: List[Dict[str, Any]] = []
        outcomes = await asyncio.gather(
            *(self._run_provider(provider, request, heuristic.scores, timings) for provider in self._providers)
        )

        try:
            result = fuse(heuristic, outcomes, transcript=text)
        except Exception as exc:
            logger.exception("Score fusion failed trace=%s", trace_id)
            raise EvaluationFailedError() from exc
        result.timings = timings

        log_event(
            "answer_evaluated",
            request.session_id,
            trace_id=trace_id,
            overall=result.scores.overall,
            sources=",".join(result.sources) or "heuristic",
            transcript_chars=len(text),
        )
        return result


__all__ = ["AnswerEvaluator"]
