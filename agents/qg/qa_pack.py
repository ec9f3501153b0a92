"""Question/answer practice packs drawn from the question bank."""
from __future__ import annotations

from typing import List, Optional, Sequence

from agents.types import QuestionRecord
from services.question_bank import QuestionBank
from storage.ttl_store import TTLStore

from .common import collapse
from .sample_answer import template_sample_answer

EMPTY_PACK_REPLY = (
    "I could not find question bank entries right now. Please retry with category HR, Technical, Behavioral, or Coding."
)


class QAPackBuilder:
    """Format freshly sampled questions with one sample answer each.

    Every request draws new questions from the bank. Answers are cached per
    question id and target role, so a question that comes round again is
    answered without rebuilding its text.
    """

    def __init__(self, bank: QuestionBank, cache: Optional[TTLStore] = None) -> None:
        self._bank = bank
        self._cache = cache

    def _answer(self, question: QuestionRecord, role: str) -> str:
        key = ("qa_answer", question.id, role)
        if self._cache is not None:
            cached = self._cache.get(key)
            if cached is not None:
                return cached
        answer = collapse(template_sample_answer(category=question.category, prompt=question.prompt, target_role=role))
        if self._cache is not None:
            self._cache.set(key, answer)
        return answer

    def build(
        self,
        *,
        categories: Sequence[str],
        count: int,
        target_role: str = "Generalist",
    ) -> str:
        pool = list(categories) or ["HR"]
        role = (target_role or "").strip() or "Generalist"
        selected = self._bank.sample(pool, count, target_role=role)
        if not selected:
            return EMPTY_PACK_REPLY
        lines: List[str] = []
        for number, question in enumerate(selected, start=1):
            lines.append(f"Q{number}: {collapse(question.prompt)}")
            lines.append(f"A{number}: {self._answer(question, role)}")
        label = "/".join(pool)
        header = f"Here are {len(selected)} {label} interview question-answer pairs for {role} practice."
        return "\n".join([header, *lines])


__all__ = ["EMPTY_PACK_REPLY", "QAPackBuilder"]
