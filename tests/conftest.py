import random
import sys
from pathlib import Path
from typing import List, Optional

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from agents.answer_evaluator import AnswerEvaluator
from agents.dialogue_engine import DialogueEngine
from agents.qg.followup import FollowUpGenerator
from agents.qg.qa_pack import QAPackBuilder
from agents.types import PartialScores, ProviderOutcome
from config.settings import DEFAULT_QUESTION_BANK
from llm_gateway.chain import TextGenerationChain
from llm_gateway.transcription import TranscriptionChain
from services.question_bank import QuestionBank
from services.sessions import CoachService
from storage.ttl_store import TTLStore


class FakeProvider:
    """Scoring provider returning a canned outcome, or raising."""

    def __init__(self, name: str, outcome: Optional[ProviderOutcome] = None, *, error: Exception | None = None,
                 configured: bool = True) -> None:
        self.name = name
        self._outcome = outcome
        self._error = error
        self.configured = configured
        self.calls = 0

    async def evaluate(self, request, baseline):
        self.calls += 1
        if self._error is not None:
            raise self._error
        return self._outcome


class FakeGenerator:
    """Text generator that replays a fixed reply and records prompts."""

    def __init__(self, name: str = "fake", reply: Optional[str] = None, *, configured: bool = True) -> None:
        self.name = name
        self.reply = reply
        self.configured = configured
        self.prompts: List[str] = []

    async def generate_text(self, instruction, prompt, *, temperature=0.5, max_tokens=300):
        self.prompts.append(prompt)
        return self.reply


class FakeTranscriber:
    """Transcriber returning a fixed transcript and recording what it was given."""

    def __init__(self, name: str = "stt", transcript: str = "", *, error: Exception | None = None,
                 configured: bool = True) -> None:
        self.name = name
        self.transcript = transcript
        self.configured = configured
        self._error = error
        self.calls: List[dict] = []

    async def transcribe(self, clip, *, media_reference="", answer_type="text"):
        self.calls.append({"clip": clip, "media_reference": media_reference, "answer_type": answer_type})
        if self._error is not None:
            raise self._error
        return self.transcript


def outcome(source: str, **scores) -> ProviderOutcome:
    return ProviderOutcome(source=source, scores=PartialScores(**scores))


@pytest.fixture
def bank() -> QuestionBank:
    return QuestionBank.from_yaml(DEFAULT_QUESTION_BANK, rng=random.Random(7))


@pytest.fixture
def build_service(bank):
    def _build(providers=(), generators=(), transcribers=()) -> CoachService:
        chain = TextGenerationChain(list(generators))
        return CoachService(
            bank=bank,
            evaluator=AnswerEvaluator(list(providers)),
            followups=FollowUpGenerator(chain),
            dialogue=DialogueEngine(chain, QAPackBuilder(bank, TTLStore(60))),
            transcriber=TranscriptionChain(list(transcribers)),
            max_media_bytes=1024,
        )

    return _build


@pytest.fixture
def service(build_service) -> CoachService:
    return build_service()
