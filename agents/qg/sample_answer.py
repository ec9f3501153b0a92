"""Sample answers for a question: prompt-specific templates plus optional AI generation."""
from __future__ import annotations

import re
from typing import Callable, Dict, Literal, NamedTuple, Optional

from llm_gateway.chain import TextGenerationChain

from .common import collapse, extract_prompt_keywords

class SampleAnswer(NamedTuple):
    text: str
    source: Literal["ai", "template"]


SAMPLE_ANSWER_INSTRUCTION = "You are an expert interview coach. Generate direct, high-quality sample answers."

_HR_PATTERNS = [
    (
        re.compile(r"\btell me about yourself|introduce yourself\b"),
        "I am a {role} with strong execution on end-to-end ownership. In my recent project, I led planning to "
        "delivery, improved release predictability by 25%, and reduced post-release defects by 18%. That mix of "
        "ownership and measurable impact is what I will bring here.",
    ),
    (
        re.compile(r"\bmanager\b|\bteam environment\b|\bwork environment\b"),
        "I work best with a manager who sets clear outcomes and gives autonomy on execution. In my last team, I "
        "aligned weekly goals, documented risks early, and improved sprint completion rate from 78% to 92%. That "
        "environment helped me deliver faster while keeping quality stable.",
    ),
    (
        re.compile(r"\bconflict\b|\bdisagree\b"),
        "In one release, design and engineering priorities conflicted on scope and timeline. I facilitated a "
        "decision meeting, split must-have vs nice-to-have, and created a phased rollout plan. We shipped on time "
        "and reduced rework by 30% compared with the previous release.",
    ),
    (
        re.compile(
            r"\bgoogle\b|\bamazon\b|\bmicrosoft\b|\bmeta\b|\bwhy do you want to work\b|\bvalue would you bring\b"
        ),
        "I want to join because the role requires high ownership, cross-functional execution, and measurable "
        "customer impact. In my current team, I delivered a reliability initiative that cut production incidents "
        "by 35% and improved customer satisfaction by 11 points. I can bring the same outcome-focused execution here.",
    ),
]


def hr_answer(prompt: str, target_role: str) -> str:
    normalized = prompt.lower()
    for pattern, template in _HR_PATTERNS:
        if pattern.search(normalized):
            return template.format(role=target_role)
    keywords = " and ".join(extract_prompt_keywords(prompt, 2))
    topic = f" on {keywords}" if keywords else ""
    return (
        f"For this {target_role} question{topic}, I would answer in STAR format with clear ownership and one "
        "quantified outcome. A good example is leading a process improvement that reduced turnaround time by 22% "
        "while improving quality metrics."
    )


def technical_answer(prompt: str, target_role: str) -> str:
    keywords = extract_prompt_keywords(prompt, 3)
    subject = ", ".join(keywords) if keywords else "system design and implementation"
    return (
        f'For "{prompt.strip()}", I would frame requirements first, then explain architecture choices for {subject}. '
        "I would cover trade-offs, reliability strategy, and observability, then share measurable impact such as "
        "reducing latency by 28% and improving uptime to 99.95%. Finally, I would mention one alternative design "
        "and why I rejected it."
    )


def behavioral_answer(prompt: str, target_role: str) -> str:
    keywords = " and ".join(extract_prompt_keywords(prompt, 2))
    handling = f" while handling {keywords}" if keywords else ""
    return (
        f"I would answer this using STAR with strong ownership as a {target_role}{handling}. I would describe the "
        "challenge, the key decision I made, and how I aligned stakeholders. I would close with a measurable result "
        "such as a 20% delivery speed improvement and stronger team trust."
    )


def coding_answer(prompt: str, target_role: str) -> str:
    keywords = " and ".join(extract_prompt_keywords(prompt, 2))
    around = f" around {keywords}" if keywords else ""
    return (
        f"I would start by clarifying constraints and edge cases{around}, then present a brute-force baseline and an "
        "optimized approach. I would write clean code, dry-run test cases, and explain time-space complexity with "
        "trade-offs. I would finish with how I validated correctness and production readiness."
    )


ROUTER: Dict[str, Callable[[str, str], str]] = {
    "HR": hr_answer,
    "Technical": technical_answer,
    "Behavioral": behavioral_answer,
    "Coding": coding_answer,
}


def template_sample_answer(*, category: str = "HR", prompt: str = "", target_role: str = "Generalist") -> str:
    handler = ROUTER.get(category, hr_answer)
    return handler(str(prompt or "").strip(), target_role or "Generalist")


def generation_prompt(*, category: str, prompt: str, target_role: str) -> str:
    return "\n".join(
        [
            "Generate one concise and interview-ready sample answer for this question.",
            "Rules:",
            "- 4 to 6 lines max",
            "- practical and realistic",
            "- use STAR style implicitly",
            "- include ownership and one measurable impact",
            "- no markdown",
            "",
            f"Category: {category}",
            f"Target role: {target_role}",
            f"Question: {prompt}",
        ]
    )


async def generate_sample_answer(
    chain: Optional[TextGenerationChain],
    *,
    category: str = "HR",
    prompt: str = "",
    target_role: str = "Generalist",
) -> SampleAnswer:
    """AI sample answer when a chain is given and answers, else the template."""

    text = str(prompt or "").strip()
    if chain is not None and text:
        generated = collapse(
            await chain.generate(
                SAMPLE_ANSWER_INSTRUCTION,
                generation_prompt(category=category, prompt=text, target_role=target_role),
                temperature=0.35,
                max_tokens=220,
            )
        )
        if generated:
            return SampleAnswer(generated, "ai")
    return SampleAnswer(template_sample_answer(category=category, prompt=text, target_role=target_role), "template")


__all__ = [
    "SAMPLE_ANSWER_INSTRUCTION",
    "SampleAnswer",
    "generate_sample_answer",
    "generation_prompt",
    "template_sample_answer",
]
