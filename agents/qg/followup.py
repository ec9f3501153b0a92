"""Follow-up question generator: AI-assisted with a deterministic template fallback."""
from __future__ import annotations

import re
from typing import Callable, Dict, Optional

from llm_gateway.chain import TextGenerationChain
from observability import log_event

from .common import normalize_words

FOLLOWUP_INSTRUCTION = (
    "You are an interviewer. Write one concise follow-up question only. No list, no commentary, no markdown."
)
FOLLOWUP_PREFIX = "Follow-up: "

_LEADING_LABEL_RE = re.compile(r"^(follow-up|question)\s*:\s*", re.IGNORECASE)


def technical(anchor: str) -> str:
    return f"You mentioned {anchor}. What trade-offs did you evaluate, and what metric proved success?"


def coding(anchor: str) -> str:
    return f"For the {anchor} solution, what is the time/space complexity and which edge case could still fail?"


def behavioral(anchor: str) -> str:
    return (
        f"For the example related to {anchor}, what conflict occurred and how did you resolve it with measurable impact?"
    )


def ownership(anchor: str) -> str:
    return f"In your answer about {anchor}, what specific action did you personally own, and what was the final result?"


ROUTER: Dict[str, Callable[[str], str]] = {
    "Technical": technical,
    "Coding": coding,
    "Behavioral": behavioral,
}


def pick_anchor(answer_text: str, target_role: str = "Generalist") -> str:
    """First long token among the opening words of the answer, else the role."""

    for token in normalize_words(answer_text)[:20]:
        if len(token) >= 6:
            return token
    return (target_role or "Generalist").lower()


def template_followup(
    *,
    answer_text: str,
    category: str = "HR",
    target_role: str = "Generalist",
) -> str:
    anchor = pick_anchor(answer_text, target_role)
    handler = ROUTER.get(category, ownership)
    return FOLLOWUP_PREFIX + handler(anchor)


def strip_label(text: str) -> str:
    return re.sub(r"^follow-up:\s*", "", str(text or ""), flags=re.IGNORECASE).strip()


def clean_generated(text: Optional[str]) -> str:
    """Drop a leading label and keep the first non-empty line."""

    stripped = _LEADING_LABEL_RE.sub("", str(text or "").strip())
    stripped = _LEADING_LABEL_RE.sub("", stripped)
    for line in stripped.splitlines():
        if line.strip():
            return line.strip()
    return ""


class FollowUpGenerator:
    def __init__(self, chain: Optional[TextGenerationChain] = None) -> None:
        self._chain = chain or TextGenerationChain()

    def fallback(self, *, answer_text: str, category: str = "HR", target_role: str = "Generalist") -> str:
        return template_followup(answer_text=answer_text, category=category, target_role=target_role)

    async def generate(
        self,
        *,
        prompt: str,
        answer_text: str,
        category: str = "HR",
        target_role: str = "Generalist",
        session_id: str = "",
    ) -> str:
        """One follow-up question, always prefixed ``Follow-up:``."""

        request = "\n".join(
            [
                f"Interview category: {category}",
                f"Target role: {target_role}",
                f"Original question: {prompt}",
                f"Candidate answer: {answer_text}",
                "",
                "Write one strong follow-up question that digs into depth and measurable impact.",
            ]
        )
        generated = clean_generated(
            await self._chain.generate(FOLLOWUP_INSTRUCTION, request, temperature=0.45, max_tokens=120)
        )
        source = "ai" if generated else "template"
        question = FOLLOWUP_PREFIX + generated if generated else self.fallback(
            answer_text=answer_text, category=category, target_role=target_role
        )
        log_event("followup_generated", session_id, outcome=source)
        return question


__all__ = [
    "FOLLOWUP_INSTRUCTION",
    "FollowUpGenerator",
    "clean_generated",
    "pick_anchor",
    "strip_label",
    "template_followup",
]
