"""Persona utilities: role labels and fixed phrasing per dialogue mode."""
from __future__ import annotations

import re
from typing import Literal

from agents.types import DialogueMode

Purpose = Literal[
    "greeting",
    "repeat_question",
    "sample_answer",
    "score_pending",
    "score_report",
    "language",
]

ROLE_LABELS: dict[str, str] = {"judge": "Judge", "live_interviewer": "Interviewer"}

_ROLE_LABEL_RE = re.compile(r"^(judge|interviewer|assistant)\s*:\s*", re.IGNORECASE)

TEMPLATES_LIVE: dict[Purpose, str] = {
    "greeting": (
        "Hi, welcome. Main ready hoon. Aap bolo: repeat question, explain question, give hint, sample answer, "
        "ya HR/Technical/Coding/Behavioral questions with answers."
    ),
    "repeat_question": 'Sure, here is the question again: "{core}"',
    "sample_answer": "Sure. A strong sample answer for this question is: {core}",
    "score_pending": (
        "I can score accurately after you submit one full answer. For now, focus on STAR plus one quantified outcome."
    ),
    "score_report": "Your current score is {overall}/100. Improve {weakest} in your next response.",
    "language": "Done. I will keep replies in {core}. Ask me to repeat, explain, give hint, or sample answer anytime.",
}

TEMPLATES_JUDGE: dict[Purpose, str] = {
    **TEMPLATES_LIVE,
    "greeting": "We begin now. Answer directly, avoid filler, and support each claim with measurable impact.",
    "score_pending": "I cannot score without a submitted answer. Provide your response first, then ask for rating.",
    "score_report": "Your current score is {overall}/100. Weakest area is {weakest}. Improve that next.",
}


def role_label(mode: DialogueMode | str) -> str:
    return ROLE_LABELS.get(str(mode), "Judge")


def strip_role_label(text: str) -> str:
    """Remove one leading speaker label a model may have echoed."""

    return _ROLE_LABEL_RE.sub("", str(text or "").strip()).strip()


def apply_persona(text: str, *, mode: DialogueMode | str = "judge") -> str:
    """Prefix ``text`` with the mode's role label exactly once."""

    return f"{role_label(mode)}: {strip_role_label(text)}"


def persona_line(purpose: Purpose, *, mode: DialogueMode | str = "judge", core: str = "", **values: object) -> str:
    templates = TEMPLATES_LIVE if mode == "live_interviewer" else TEMPLATES_JUDGE
    return templates[purpose].format(core=core, **values)


__all__ = [
    "Purpose",
    "ROLE_LABELS",
    "TEMPLATES_JUDGE",
    "TEMPLATES_LIVE",
    "apply_persona",
    "persona_line",
    "role_label",
    "strip_role_label",
]
