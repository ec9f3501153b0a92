"""Deterministic coaching templates used by the dialogue engine."""
from __future__ import annotations

import re
from typing import NamedTuple

from agents.qg.common import collapse


class StarHints(NamedTuple):
    situation: bool
    action: bool
    result: bool


_SITUATION_RE = re.compile(r"\b(team|project|client|context|challenge|issue|problem)\b")
_ACTION_RE = re.compile(r"\b(i built|i led|i implemented|i designed|i optimized|i solved|i delivered|i created)\b")
_RESULT_RE = re.compile(r"%|\b(percent|reduced|improved|increased|saved|faster|impact|outcome|result)\b")


def detect_star_hints(text: str) -> StarHints:
    normalized = str(text or "").lower()
    return StarHints(
        situation=bool(_SITUATION_RE.search(normalized)),
        action=bool(_ACTION_RE.search(normalized)),
        result=bool(_RESULT_RE.search(normalized)),
    )


def explanation_reply(question: str, *, category: str = "HR", target_role: str = "Generalist") -> str:
    prompt = collapse(question) or "this question"
    normalized = prompt.lower()
    if re.search(r"conflict|disagree|stakeholder|team", normalized):
        return (
            "Sure. This checks conflict handling and collaboration. Use STAR: short context, your exact action, and "
            'a measurable result. Starter line: "I aligned both sides by clarifying goals and shipping a phased plan."'
        )
    if re.search(r"design|architecture|scalable|system|microservices|observability", normalized):
        return (
            f"This tests system thinking for {target_role}. Start with requirements, then architecture choice, "
            "trade-offs, and one reliability metric. Keep it practical and role-specific."
        )
    if category == "Coding" or re.search(r"algorithm|complexity|edge case|code", normalized):
        return (
            "This checks coding depth. First confirm constraints, then explain approach, complexity, and edge cases. "
            "End with how you validated correctness."
        )
    return (
        f"This question checks role fit, communication, and ownership for {target_role}. Answer in STAR format and "
        "close with one measurable impact."
    )


def starter_hint_reply(question: str, *, category: str = "HR", target_role: str = "Generalist") -> str:
    prompt = collapse(question) or "this question"
    if category == "Coding":
        return (
            'Starter line: "Let me confirm constraints first, then I will share baseline and optimized solutions." '
            f'Then cover complexity and one edge case for "{prompt}".'
        )
    return (
        f'Starter line: "In my previous {target_role} role, I handled a similar situation where..." '
        f'Then cover Situation, your Action, and measurable Result for "{prompt}".'
    )


def judge_stuck_reply(question: str, follow_up: str) -> str:
    prompt = str(question or "this question")
    return "\n".join(
        [
            f'Koi issue nahi, yeh normal hai. Chalo easy steps me karte hain for "{prompt}".',
            "Step 1: Situation bolo - context kya tha.",
            "Step 2: Action bolo - tumne personally kya kiya.",
            "Step 3: Result bolo - measurable impact kya aaya (%, time saved, quality).",
            'Start line use karo: "In my previous role, I handled a similar case where...". '
            f"Try 3-4 lines; then I will refine. {follow_up}",
        ]
    )


def live_stuck_reply(follow_up: str) -> str:
    return (
        'Totally fine, this happens in real interviews too. Start with: "In my previous role, I handled a similar '
        f'situation where...", then tell me your action and result. {follow_up}'
    )


def star_check_reply(message: str, follow_up: str) -> str:
    """Critique a candidate's answer for STAR completeness."""

    hints = detect_star_hints(message)
    if len(message.split()) < 12:
        return f"Your answer is too short. Add context, your exact action, and a measurable result. {follow_up}"
    if not hints.action:
        return f"Clarify what you personally did; ownership is not clear. {follow_up}"
    if not hints.result:
        return (
            "Add one quantified outcome (percentage, time saved, revenue, or quality improvement). "
            f"{follow_up}"
        )
    return f"Good direction. Make it tighter with STAR flow and concrete business impact. {follow_up}"


def direct_query_fallback(query: str) -> str:
    normalized = collapse(query).lower()
    if re.search(r"\brest\b", normalized) and re.search(r"\bgraphql\b", normalized):
        return (
            "REST usually uses multiple fixed endpoints and often over-fetches or under-fetches data, while GraphQL "
            "uses a single endpoint where clients request exactly the fields they need. For fast-changing frontend "
            "requirements, GraphQL can reduce payload and iteration time, but it needs stronger schema governance "
            "and query cost controls."
        )
    if re.search(r"\b(jwt|auth)\b", normalized):
        return (
            "JWT is a signed token carrying claims, commonly used for stateless authentication. Keep token expiry "
            "short, store refresh tokens securely, and always validate signature, issuer, and audience on the "
            "server to prevent misuse."
        )
    if re.search(r"\bmicroservices\b", normalized):
        return (
            "Microservices split a system into independently deployable services, improving team autonomy and "
            "scalability. The trade-off is higher operational complexity, so strong observability, clear service "
            "contracts, and resilient communication patterns are essential."
        )
    return (
        "In simple terms, this depends on the use case and constraints. A strong interview answer is to define the "
        "concept clearly, compare alternatives with one trade-off, and finish with a real project example where "
        "your choice improved reliability, speed, or developer productivity."
    )


DIRECT_ANSWER_INSTRUCTION = "You are an expert technical interviewer and coach. Answer clearly and accurately."


def direct_answer_prompt(query: str, *, question: str, category: str, target_role: str) -> str:
    return "\n".join(
        [
            "Candidate asked a direct question during a live interview. Answer the query directly and accurately.",
            "",
            "Rules:",
            "- 2 to 4 short sentences",
            "- first sentence should directly answer the query",
            "- include one practical example",
            "- include one quick interview tip",
            "- no markdown, no bullet list, no label prefix",
            "",
            f"Candidate query: {collapse(query)}",
            f"Current interview question: {question or 'N/A'}",
            f"Interview category: {category}",
            f"Target role: {target_role}",
        ]
    )


__all__ = [
    "DIRECT_ANSWER_INSTRUCTION",
    "StarHints",
    "detect_star_hints",
    "direct_answer_prompt",
    "direct_query_fallback",
    "explanation_reply",
    "judge_stuck_reply",
    "live_stuck_reply",
    "star_check_reply",
    "starter_hint_reply",
]
