"""Network-free baseline scoring of an interview answer.

Every metric is derived from the answer text plus the submission signals
(duration, facial-expression score, self rating, answer type). The scorer
is deterministic and never raises for well-typed input; the evaluator
treats any exception escaping it as a hard failure.
"""
from __future__ import annotations

import re
from typing import Iterable, List, Tuple

from agents.qg.common import tokenize
from agents.types import AnswerSubmission, HeuristicResult, MetricScoreSet, clamp_score, round_half_up

FILLER_WORDS = frozenset({"um", "uh", "like", "actually", "basically", "youknow"})
CONFIDENT_WORDS = frozenset(
    {"delivered", "owned", "improved", "built", "led", "solved", "optimized", "launched", "measured"}
)

NOTE_EMPTY = "Very short answer with low technical/topic coverage."
NOTE_GENERAL = "Technical estimate based on general prompt alignment."
NOTE_STRONG = "Strong technical alignment with expected concepts."
NOTE_PARTIAL = "Partial technical alignment; add deeper role-specific details."
NOTE_LOW = "Low technical alignment; include direct examples tied to the question."

_SENTENCE_SPLIT_RE = re.compile(r"[.!?]+")
_TERMINAL_RE = re.compile(r"[.!?]\s*$")
_REPEATED_PUNCT_RE = re.compile(r"[!?.,]{2,}")
_CAPITALIZED_RE = re.compile(r"\b[A-Z][a-z]+\b")
_LONG_DIGITS_RE = re.compile(r"[0-9]{4,}")


def _sentence_count(text: str) -> int:
    return len([part for part in _SENTENCE_SPLIT_RE.split(text) if part.strip()])


def words_per_minute(word_count: int, duration_sec: int) -> int:
    if duration_sec <= 0:
        return word_count * 2
    return round_half_up(word_count / duration_sec * 60)


def score_communication(text: str) -> int:
    words = tokenize(text)
    if not words:
        return 30
    filler_ratio = sum(1 for word in words if word in FILLER_WORDS) / len(words)
    avg_sentence = len(words) / max(_sentence_count(text), 1)
    score = 68 if len(words) >= 35 else 55
    score += 12 if 9 <= avg_sentence <= 24 else -8
    return clamp_score(score - filler_ratio * 120)


def score_grammar(text: str) -> int:
    raw = str(text or "").strip()
    if not raw:
        return 35
    words = tokenize(raw)
    score = 58
    if _sentence_count(raw) >= 2:
        score += 12
    if _TERMINAL_RE.search(raw):
        score += 8
    if len(words) > 20 and _CAPITALIZED_RE.search(raw):
        score += 6
    score -= len(_REPEATED_PUNCT_RE.findall(raw)) * 6
    score -= sum(1 for word in words if _LONG_DIGITS_RE.search(word)) * 2
    return clamp_score(score)


def score_confidence(text: str, self_rating: float) -> int:
    words = tokenize(text)
    if not words:
        return 35
    hits = sum(1 for word in words if word in CONFIDENT_WORDS)
    score: float = 58 + min(hits * 3, 18)
    if self_rating > 0:
        score = score * 0.75 + clamp_score(self_rating * 10) * 0.25
    if text.count("?") > 2:
        score -= 5
    return clamp_score(score)


def score_speaking_speed(word_count: int, duration_sec: int) -> Tuple[int, int]:
    """Return ``(wpm, score)``."""

    wpm = words_per_minute(word_count, duration_sec)
    if 110 <= wpm <= 160:
        score = 90
    elif 90 <= wpm < 110:
        score = 78
    elif 160 < wpm <= 190:
        score = 74
    elif wpm < 70 or wpm > 220:
        score = 42
    else:
        score = 50
    return wpm, score


def expected_keywords(tags: Iterable[str], prompt: str) -> List[str]:
    expected: List[str] = []
    for tag in tags:
        expected.extend(token for token in tokenize(tag) if len(token) >= 4)
    expected.extend(token for token in tokenize(prompt) if len(token) >= 6)
    return list(dict.fromkeys(expected))


def score_technical_accuracy(text: str, tags: Iterable[str], prompt: str) -> Tuple[int, str]:
    """Return ``(score, note)`` from keyword coverage of tags and prompt."""

    answer_words = set(tokenize(text))
    if not answer_words:
        return 30, NOTE_EMPTY
    expected = expected_keywords(tags, prompt)
    if not expected:
        return 72, NOTE_GENERAL
    coverage = sum(1 for token in expected if token in answer_words) / len(expected)
    score = clamp_score(35 + coverage * 65)
    if coverage > 0.6:
        return score, NOTE_STRONG
    if coverage > 0.35:
        return score, NOTE_PARTIAL
    return score, NOTE_LOW


def score_facial_expression(answer_type: str, provided: float) -> int:
    if answer_type != "video":
        return 60
    if provided > 0:
        return clamp_score(provided)
    return 68


def score_answer(submission: AnswerSubmission, *, tags: Iterable[str] = (), prompt: str = "") -> HeuristicResult:
    """Baseline metric set for one answer."""

    text = submission.text
    wpm, speed = score_speaking_speed(len(tokenize(text)), submission.duration_sec)
    technical, note = score_technical_accuracy(text, list(tags), prompt)
    scores = MetricScoreSet.from_metrics(
        {
            "confidence": score_confidence(text, submission.confidence_self_rating),
            "communication": score_communication(text),
            "grammar": score_grammar(text),
            "technical_accuracy": technical,
            "speaking_speed": speed,
            "facial_expression": score_facial_expression(submission.answer_type, submission.facial_expression_score),
        }
    )
    return HeuristicResult(scores=scores, speaking_speed_wpm=wpm, relevance_notes=note)


__all__ = [
    "CONFIDENT_WORDS",
    "FILLER_WORDS",
    "expected_keywords",
    "score_answer",
    "score_communication",
    "score_confidence",
    "score_facial_expression",
    "score_grammar",
    "score_speaking_speed",
    "score_technical_accuracy",
    "words_per_minute",
]
