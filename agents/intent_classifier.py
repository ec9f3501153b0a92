"""Rule-based intent classifier for inbound coaching chat messages.

Every rule lives in one ordered table. The first rule whose mode filter
and predicate both match decides the intent, so precedence is simply the
rule's position in ``RULES``. Classification is synchronous and never
touches the network.
"""
from __future__ import annotations

import re
from enum import Enum
from typing import Callable, List, Literal, NamedTuple, Tuple

from pydantic import BaseModel, Field

from agents.types import CATEGORIES, DialogueMode

Stage = Literal["command", "qa_pack", "fallback"]

DEFAULT_PACK_COUNT = 3
MAX_PACK_COUNT = 6


class Intent(str, Enum):
    GREETING = "greeting"
    REPEAT_QUESTION = "repeat_question"
    EXPLAIN = "explain"
    HINT = "hint"
    SAMPLE_ANSWER = "sample_answer"
    SCORE_REQUEST = "score_request"
    LANGUAGE_SWITCH = "language_switch"
    DIRECT_QUESTION = "direct_question"
    QA_PACK_REQUEST = "qa_pack_request"
    EMPTY = "empty"
    STUCK = "stuck"
    IMPROVEMENT_REQUEST = "improvement_request"
    FOLLOW_UP_REQUEST = "follow_up_request"
    JOB_FIT_REQUEST = "job_fit_request"
    NARRATIVE = "narrative"


class IntentResult(BaseModel):
    intent: Intent
    stage: Stage
    augment: bool = False
    categories: List[str] = Field(default_factory=list)
    count: int = DEFAULT_PACK_COUNT
    language: str = ""


def _has(pattern: str) -> Callable[[str], bool]:
    compiled = re.compile(pattern)
    return lambda text: compiled.search(text) is not None


CANDIDATE_PREFIX_RE = re.compile(r"^candidate response:\s*", re.IGNORECASE)

is_live_greeting = _has(r"^(hi|hello|hey|hii|good\s(morning|afternoon|evening))\b")
is_greeting = _has(r"\b(hello|hi|hey|good\s(morning|afternoon|evening))\b")
_asks_again = _has(r"\b(repeat|again|once more|one more time|say (it )?again|dobara|fir se)\b")
_mentions_question = _has(r"\b(question|prompt|ask)\b")
_starts_with_repeat = _has(r"^(repeat|again|dobara)\b")
_asks_explain = _has(r"\b(explain|clarify|meaning|break down|matlab|samjha|samjhao)\b")
_explain_target = _has(r"\b(question|prompt|this|it)\b")
is_hint_request = _has(r"\b(hint|starter|start line|how to start|help me start|tip)\b")
_asks_sample = _has(
    r"\b(sample answer|example answer|model answer|ideal answer|best answer|answer this|give answer|tell answer)\b"
)
_what_should_i_answer = _has(r"\bwhat should i answer\b")
is_live_score_request = _has(r"\b(score|rating|mark|how am i doing)\b")
is_score_request = _has(r"\b(score|mark|rating)\b|\bhow am i\b")
_language_context = _has(r"\b(answer|reply|speak|question|language|lang)\b")
is_stuck = _has(
    r"\b(i don't know|dont know|do not know|not sure|no idea|can't answer|cannot answer|skip|pass|help me|hint)\b"
)
is_improvement_request = _has(r"\b(improve|better|tip|tips|hint|feedback|where)\b")
is_follow_up_request = _has(r"\b(follow|follow-up|next question|next)\b")
is_job_fit_request = _has(r"\b(job description|jd|fit)\b")
_interrogative_start = _has(r"^(what|why|how|can|could|would|should|do|does|did|is|are|please|tell|explain|define)\b")
_question_noun = _has(r"\b(question|questions|ques|interview question|problem|problems|scenario|case study|challenge)\b")
_provide_verb = _has(r"\b(give|share|provide|ask|generate|send|need|want|kuch|some|practice)\b")
_practice_word = _has(r"\b(practice|mock|round|interview)\b")
_first_person = _has(r"\b(i|my|we|our)\b")
_narrative_action = _has(
    r"\b(built|led|implemented|designed|optimized|delivered|created|handled|managed|launched|improved|reduced)\b"
)
_narrative_outcome = _has(r"(%|\b(percent|improved|reduced|increased|impact|result|outcome|saved)\b)")
_any_category = _has(r"\b(any|koi bhi|random|mixed|all)\b")

CATEGORY_PATTERNS: Tuple[Tuple[str, Callable[[str], bool]], ...] = (
    ("HR", _has(r"\b(hr|human resource|human resources)\b")),
    ("Technical", _has(r"\b(technical|system design|backend|frontend|devops)\b")),
    ("Behavioral", _has(r"\b(behavioral|behavioural|leadership|culture)\b")),
    ("Coding", _has(r"\b(coding|code|dsa|algorithm)\b")),
)

_COUNT_PATTERNS = (
    re.compile(r"\b(\d{1,2})\s*(question|questions|ques)\b"),
    re.compile(r"\b(\d{1,2})\b(?:\s+\w+){0,4}\s+(question|questions|ques)\b"),
)


def sanitize_message(message: str) -> str:
    return " ".join(CANDIDATE_PREFIX_RE.sub("", str(message or "")).split())


def is_repeat_request(text: str) -> bool:
    return (_asks_again(text) and _mentions_question(text)) or _starts_with_repeat(text)


def is_explain_request(text: str) -> bool:
    return _asks_explain(text) and _explain_target(text)


def is_sample_answer_request(text: str) -> bool:
    return _asks_sample(text) or _what_should_i_answer(text)


def requested_language(text: str) -> str:
    if re.search(r"\b(hindi|hinglish)\b", text):
        return "Hindi/Hinglish"
    if re.search(r"\benglish\b", text):
        return "English"
    return ""


def is_language_switch(text: str) -> bool:
    return bool(requested_language(text)) and _language_context(text)


def is_direct_question(text: str) -> bool:
    text = text.strip()
    if not text:
        return False
    return "?" in text or _interrogative_start(text)


def is_narrative(text: str) -> bool:
    """Looks like the candidate answering rather than asking."""

    words = text.split()
    return len(words) >= 12 and _first_person(text) and (_narrative_action(text) or _narrative_outcome(text))


def is_pack_request(text: str) -> bool:
    return _question_noun(text) and (_provide_verb(text) or _practice_word(text))


def is_live_direct_question(text: str) -> bool:
    return is_direct_question(text) and not is_pack_request(text) and not is_narrative(text)


def infer_categories(text: str, fallback: str = "HR") -> List[str]:
    found = [category for category, matches in CATEGORY_PATTERNS if matches(text)]
    if found:
        return found
    return [fallback if fallback in CATEGORIES else "HR"]


def category_pool(text: str, fallback: str = "HR") -> List[str]:
    """All matched categories, or only the first when exactly one was asked for."""

    categories = infer_categories(text, fallback)
    if _any_category(text) or len(categories) > 1:
        return categories
    return categories[:1]


def infer_count(text: str, fallback: int = DEFAULT_PACK_COUNT) -> int:
    for pattern in _COUNT_PATTERNS:
        match = pattern.search(text)
        if match:
            return max(1, min(MAX_PACK_COUNT, int(match.group(1))))
    return fallback


class Rule(NamedTuple):
    intent: Intent
    stage: Stage
    modes: Tuple[str, ...]
    matches: Callable[[str], bool]
    augment: bool = False


LIVE = ("live_interviewer",)
JUDGE = ("judge",)
BOTH = ("judge", "live_interviewer")


def _empty(text: str) -> bool:
    return not text


def _always(text: str) -> bool:
    return True


# Ordered: the first matching rule wins.
RULES: Tuple[Rule, ...] = (
    Rule(Intent.GREETING, "command", LIVE, is_live_greeting),
    Rule(Intent.REPEAT_QUESTION, "command", LIVE, is_repeat_request),
    Rule(Intent.EXPLAIN, "command", LIVE, is_explain_request),
    Rule(Intent.HINT, "command", LIVE, is_hint_request),
    Rule(Intent.SAMPLE_ANSWER, "command", LIVE, is_sample_answer_request),
    Rule(Intent.SCORE_REQUEST, "command", LIVE, is_live_score_request),
    Rule(Intent.LANGUAGE_SWITCH, "command", LIVE, is_language_switch),
    Rule(Intent.DIRECT_QUESTION, "command", LIVE, is_live_direct_question),
    Rule(Intent.QA_PACK_REQUEST, "qa_pack", BOTH, is_pack_request),
    Rule(Intent.EMPTY, "fallback", BOTH, _empty, augment=True),
    Rule(Intent.GREETING, "fallback", JUDGE, is_greeting),
    Rule(Intent.STUCK, "fallback", JUDGE, is_stuck, augment=True),
    Rule(Intent.SCORE_REQUEST, "fallback", JUDGE, is_score_request, augment=True),
    Rule(Intent.IMPROVEMENT_REQUEST, "fallback", JUDGE, is_improvement_request, augment=True),
    Rule(Intent.FOLLOW_UP_REQUEST, "fallback", JUDGE, is_follow_up_request, augment=True),
    Rule(Intent.JOB_FIT_REQUEST, "fallback", JUDGE, is_job_fit_request, augment=True),
    Rule(Intent.DIRECT_QUESTION, "fallback", LIVE, is_direct_question, augment=True),
    Rule(Intent.STUCK, "fallback", LIVE, is_stuck, augment=True),
    Rule(Intent.NARRATIVE, "fallback", BOTH, _always, augment=True),
)


def classify(message: str, mode: DialogueMode | str = "judge", *, session_category: str = "HR") -> IntentResult:
    """Resolve exactly one intent for ``message`` in ``mode``."""

    mode = mode if mode in BOTH else "judge"
    text = sanitize_message(message).lower()
    for rule in RULES:
        if mode not in rule.modes or not rule.matches(text):
            continue
        result = IntentResult(intent=rule.intent, stage=rule.stage, augment=rule.augment)
        if rule.intent is Intent.QA_PACK_REQUEST:
            result.categories = category_pool(text, session_category)
            result.count = infer_count(text)
        elif rule.intent is Intent.LANGUAGE_SWITCH:
            result.language = requested_language(text)
        return result
    raise AssertionError("intent table has no catch-all rule")  # pragma: no cover


__all__ = [
    "DEFAULT_PACK_COUNT",
    "Intent",
    "IntentResult",
    "MAX_PACK_COUNT",
    "RULES",
    "Rule",
    "category_pool",
    "classify",
    "infer_categories",
    "infer_count",
    "is_direct_question",
    "is_narrative",
    "is_pack_request",
    "is_stuck",
    "requested_language",
    "sanitize_message",
]
