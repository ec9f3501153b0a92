"""YAML-backed question bank with context-aware sampling."""
from __future__ import annotations

import hashlib
import logging
import random
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence

import yaml
from pydantic import ValidationError

from agents.types import CATEGORIES, QuestionRecord

logger = logging.getLogger(__name__)

GENERAL = "General"


def _question_id(category: str, prompt: str) -> str:
    digest = hashlib.sha1(f"{category}:{prompt}".encode("utf-8")).hexdigest()
    return f"q_{digest[:12]}"


def load_questions(path: str | Path) -> List[QuestionRecord]:
    """Parse the bank file; malformed entries are skipped with a warning."""

    with open(path, "r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}
    records: List[QuestionRecord] = []
    for index, entry in enumerate(data.get("questions") or []):
        if not isinstance(entry, dict):
            continue
        payload: Dict[str, Any] = dict(entry)
        payload.setdefault("id", _question_id(str(payload.get("category", "")), str(payload.get("prompt", ""))))
        payload["tags"] = [str(tag) for tag in payload.get("tags") or []]
        try:
            records.append(QuestionRecord.model_validate(payload))
        except ValidationError as exc:
            logger.warning("Skipping question bank entry %d: %s", index, exc.errors()[0].get("msg"))
    return records


class QuestionBank:
    """In-memory bank; ``sample`` draws without replacement."""

    def __init__(self, questions: Iterable[QuestionRecord], *, rng: Optional[random.Random] = None) -> None:
        self._questions = list(questions)
        self._rng = rng or random.Random()

    @classmethod
    def from_yaml(cls, path: str | Path, *, rng: Optional[random.Random] = None) -> "QuestionBank":
        return cls(load_questions(path), rng=rng)

    def __len__(self) -> int:
        return len(self._questions)

    def get(self, question_id: str) -> Optional[QuestionRecord]:
        return next((question for question in self._questions if question.id == question_id), None)

    def _draw(self, pool: Sequence[QuestionRecord], size: int) -> List[QuestionRecord]:
        if size <= 0 or not pool:
            return []
        return self._rng.sample(list(pool), min(size, len(pool)))

    def sample(
        self,
        categories: Sequence[str],
        count: int,
        *,
        target_role: str = "",
        company: str = "",
        source: Optional[str] = "predefined",
        fallback_source: Optional[str] = None,
    ) -> List[QuestionRecord]:
        """Up to ``count`` questions from ``categories``.

        Primary draw prefers ``source`` entries whose role/company focus is
        general or matches the given context. When that is short the
        remainder comes from the same categories filtered only by
        ``fallback_source`` (``None`` accepts every source).
        """

        wanted = [category for category in categories if category in CATEGORIES]
        if not wanted or count <= 0:
            return []
        in_category = [question for question in self._questions if question.category in wanted]
        primary_source = [question for question in in_category if source is None or question.source == source]
        roles = {GENERAL, target_role} if target_role else None
        companies = {GENERAL, company} if company else None
        primary_pool = [
            question
            for question in primary_source
            if (roles is None or question.role_focus in roles)
            and (companies is None or question.company_context in companies)
        ]
        selected = self._draw(primary_pool, count)
        if len(selected) < count:
            chosen = {question.id for question in selected}
            remainder = [
                question
                for question in in_category
                if question.id not in chosen and (fallback_source is None or question.source == fallback_source)
            ]
            selected.extend(self._draw(remainder, count - len(selected)))
        return selected


__all__ = ["QuestionBank", "load_questions"]
