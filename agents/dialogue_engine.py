"""Conversational judge / live-interviewer engine.

One inbound message yields exactly one labelled reply. The intent is
resolved synchronously first; only then may a single text-generation call
happen (sample answer, direct answer, or augmentation of the fallback).
"""
from __future__ import annotations

import json
from typing import List, Literal, Optional

from langchain_core.prompts import ChatPromptTemplate
from pydantic import BaseModel, Field

from agents.coaching import (
    DIRECT_ANSWER_INSTRUCTION,
    direct_answer_prompt,
    direct_query_fallback,
    explanation_reply,
    judge_stuck_reply,
    live_stuck_reply,
    star_check_reply,
    starter_hint_reply,
)
from agents.intent_classifier import Intent, IntentResult, classify, sanitize_message
from agents.persona_manager import apply_persona, persona_line, role_label, strip_role_label
from agents.qg.common import clamp_text, collapse
from agents.qg.followup import strip_label, template_followup
from agents.qg.qa_pack import EMPTY_PACK_REPLY, QAPackBuilder
from agents.qg.sample_answer import generate_sample_answer
from agents.types import METRIC_LABELS, DialogueContext, DialogueMode, DialogueTurn
from llm_gateway.chain import TextGenerationChain
from llm_gateway.llm_gateway import render_prompt
from observability import log_event

ReplySource = Literal["rule", "qa_pack", "ai", "template"]

JUDGE_INSTRUCTION = (
    "You are an interviewer and live judge. Keep responses concise, specific, and conversation-like."
)
LIVE_INSTRUCTION = "You are a natural interviewer. Sound human, concise, supportive, and conversational."

CONTEXT_TEMPLATE = """Session category: {category}
Target role: {target_role}
Company simulation: {company}
Current question: {question}
Current answer snapshot: {snapshot}
Recent conversation:
{history}

Latest candidate message: {message}"""

LIVE_PROMPT = ChatPromptTemplate.from_messages(
    [
        ("system", LIVE_INSTRUCTION),
        (
            "human",
            "You are a realistic and friendly human interviewer in a live mock interview.\n"
            "Respond like natural spoken conversation in 1-3 short sentences.\n"
            "Always:\n"
            "- keep it practical and role-specific.\n"
            "- if candidate asks a direct question or instruction, answer it directly and clearly first.\n"
            "- ask one follow-up question only when candidate is answering interview content, not when they ask commands.\n"
            "- support voice commands naturally: repeat question, explain question, give hint, provide sample answer, or score request.\n"
            "- if candidate is stuck/not sure, reassure briefly and give one starter line.\n"
            "- do not give a harsh score unless candidate explicitly asks for score.\n"
            "- match candidate language style (English, Hindi, or mixed).\n"
            "- vary phrasing naturally; avoid repetitive template lines.\n"
            "- no markdown, no bullet list, no label prefix.\n\n" + CONTEXT_TEMPLATE,
        ),
    ]
)

JUDGE_PROMPT = ChatPromptTemplate.from_messages(
    [
        ("system", JUDGE_INSTRUCTION),
        (
            "human",
            "You are a strict but helpful interview judge for a live mock interview.\n"
            "Respond in 2-4 short lines only.\n"
            "Always:\n"
            "- evaluate what candidate said\n"
            "- give one concrete improvement\n"
            "- ask one natural follow-up question when possible.\n"
            "- keep it practical and role-specific.\n"
            "- if candidate says they are stuck/not sure, switch to supportive mode: explain simply, give STAR "
            "mini-template, and one starter line.\n"
            "- no markdown, no bullet list, no label prefix.\n\n" + CONTEXT_TEMPLATE + "\n\n"
            "If user asks score and answer exists, mention score hints.\n"
            "Keep tone direct and practical.",
        ),
    ]
)

AUGMENT_TEMPERATURE = 0.42
AUGMENT_MAX_TOKENS = 240


class DialogueReply(BaseModel):
    reply: str
    intent: Intent
    mode: DialogueMode
    source: ReplySource
    history: List[DialogueTurn] = Field(default_factory=list)


class DialogueEngine:
    def __init__(
        self,
        chain: Optional[TextGenerationChain] = None,
        qa_pack: Optional[QAPackBuilder] = None,
        *,
        snapshot_chars: int = 600,
    ) -> None:
        self._chain = chain or TextGenerationChain()
        self._qa_pack = qa_pack
        self._snapshot_chars = snapshot_chars

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------
    async def respond(self, message: str, context: DialogueContext) -> DialogueReply:
        text = sanitize_message(message)
        mode = context.mode
        result = classify(text, mode, session_category=context.session.category)

        if result.stage == "command":
            body, source = await self._command_reply(result, text, context)
        elif result.stage == "qa_pack":
            body, source = self._pack_reply(result, context), "qa_pack"
        else:
            body, source = self._fallback_reply(result, text, context), "template"
            if result.augment:
                augmented = await self._augment(text, context)
                if augmented:
                    body, source = augmented, "ai"

        reply = apply_persona(body, mode=mode)
        updated = context.model_copy(deep=True)
        if text:
            updated.add_turn("candidate", text)
        updated.add_turn(mode_role(mode), strip_role_label(reply))
        log_event(
            "dialogue_reply",
            context.session.session_id,
            intent=result.intent.value,
            mode=mode,
            outcome=source,
        )
        return DialogueReply(reply=reply, intent=result.intent, mode=mode, source=source, history=updated.history)

    # ------------------------------------------------------------------
    # Live-interviewer commands
    # ------------------------------------------------------------------
    async def _command_reply(self, result: IntentResult, text: str, context: DialogueContext) -> tuple[str, ReplySource]:
        mode = context.mode
        session = context.session
        prompt = collapse(context.current_question) or "this question"
        intent = result.intent

        if intent is Intent.GREETING:
            return persona_line("greeting", mode=mode), "rule"
        if intent is Intent.REPEAT_QUESTION:
            return persona_line("repeat_question", mode=mode, core=prompt), "rule"
        if intent is Intent.EXPLAIN:
            return explanation_reply(prompt, category=session.category, target_role=session.target_role), "rule"
        if intent is Intent.HINT:
            return starter_hint_reply(prompt, category=session.category, target_role=session.target_role), "rule"
        if intent is Intent.SAMPLE_ANSWER:
            sample = await generate_sample_answer(
                self._chain, category=session.category, prompt=prompt, target_role=session.target_role
            )
            return persona_line("sample_answer", mode=mode, core=sample.text), sample.source
        if intent is Intent.SCORE_REQUEST:
            return self._score_line(context, require_scored=True), "rule"
        if intent is Intent.LANGUAGE_SWITCH:
            return persona_line("language", mode=mode, core=result.language), "rule"
        return await self._direct_answer(text, context)

    async def _direct_answer(self, text: str, context: DialogueContext) -> tuple[str, ReplySource]:
        session = context.session
        generated = await self._chain.generate(
            DIRECT_ANSWER_INSTRUCTION,
            direct_answer_prompt(
                text, question=context.current_question, category=session.category, target_role=session.target_role
            ),
            temperature=0.28,
            max_tokens=220,
        )
        cleaned = strip_role_label(collapse(generated))
        if cleaned:
            return cleaned, "ai"
        return direct_query_fallback(text), "template"

    def _score_line(self, context: DialogueContext, *, require_scored: bool) -> str:
        snapshot = context.current_answer
        ready = snapshot is not None and (snapshot.scored if require_scored else snapshot.scores is not None)
        if not ready:
            return persona_line("score_pending", mode=context.mode)
        scores = snapshot.scores
        weakest = scores.weakest()
        label = f"{METRIC_LABELS[weakest[0]]} ({weakest[1]})" if weakest else "structure and quantified impact"
        return persona_line("score_report", mode=context.mode, overall=scores.overall, weakest=label)

    # ------------------------------------------------------------------
    # Question/answer packs
    # ------------------------------------------------------------------
    def _pack_reply(self, result: IntentResult, context: DialogueContext) -> str:
        if self._qa_pack is None:
            return EMPTY_PACK_REPLY
        return self._qa_pack.build(
            categories=result.categories,
            count=result.count,
            target_role=context.session.target_role,
        )

    # ------------------------------------------------------------------
    # Mode-specific fallbacks
    # ------------------------------------------------------------------
    def _fallback_reply(self, result: IntentResult, text: str, context: DialogueContext) -> str:
        if context.mode == "live_interviewer":
            return self._live_fallback(result.intent, text, context)
        return self._judge_fallback(result.intent, text, context)

    def _followup(self, answer_text: str, context: DialogueContext) -> str:
        session = context.session
        return template_followup(answer_text=answer_text, category=session.category, target_role=session.target_role)

    def _judge_fallback(self, intent: Intent, text: str, context: DialogueContext) -> str:
        session = context.session
        snapshot = context.current_answer
        question = context.current_question

        if intent is Intent.EMPTY:
            return (
                "Keep this concise and evidence-based. Use STAR and quantify results. "
                f'Start with your strongest example for: "{question or "current question"}".'
            )
        if intent is Intent.GREETING:
            return persona_line("greeting", mode="judge")
        if intent is Intent.STUCK:
            follow_up = strip_label(self._followup(f"{session.target_role or 'candidate'} example", context))
            return judge_stuck_reply(question or "this question", follow_up)
        if intent is Intent.SCORE_REQUEST:
            return self._score_line(context, require_scored=False)
        if intent is Intent.IMPROVEMENT_REQUEST:
            if snapshot is not None and snapshot.improvements:
                return f"Priority improvement: {snapshot.improvements[0]} Then give one quantified result."
            if session.summary_improvements:
                return f"Priority improvement: {session.summary_improvements[0]} Keep your next answer under 90 seconds."
            return "Improve by structuring Situation, Task, Action, and Result, with one concrete metric in the Result."
        if intent is Intent.FOLLOW_UP_REQUEST:
            answer_text = snapshot.transcript if snapshot is not None and snapshot.transcript else text
            return self._followup(answer_text, context)
        if intent is Intent.JOB_FIT_REQUEST:
            if session.job_fit_score > 0:
                return (
                    f"Current job fit score is {session.job_fit_score}/100. "
                    "Mirror JD keywords and tie examples to required outcomes."
                )
            return "Add the job description in setup, then answer with JD keywords and role-relevant impact."
        return star_check_reply(text, self._followup(text, context))

    def _live_fallback(self, intent: Intent, text: str, context: DialogueContext) -> str:
        session = context.session
        prompt = context.current_question or "this question"
        follow_up = strip_label(self._followup(text or f"{session.target_role or 'candidate'} example", context))

        if intent is Intent.EMPTY:
            return f'No rush, take a moment. Start with one short real example for "{prompt}", then we will build it together.'
        if intent is Intent.DIRECT_QUESTION:
            return (
                "Good question. I can repeat the prompt, explain it, give a starter hint, or provide a sample answer. "
                f'Tell me which one you want for "{prompt}".'
            )
        if intent is Intent.STUCK:
            return live_stuck_reply(follow_up)
        if len(text.split()) < 8:
            return f"Good start. Add what exactly you did and one measurable result, then answer this: {follow_up}"
        return f"Nice direction. Can you make it more specific with impact? {follow_up}"

    # ------------------------------------------------------------------
    # AI augmentation
    # ------------------------------------------------------------------
    def _snapshot_block(self, context: DialogueContext) -> str:
        snapshot = context.current_answer
        if snapshot is None:
            return "No scored answer yet."
        return json.dumps(
            {
                "score": snapshot.scores.overall if snapshot.scores is not None else 0,
                "transcript": clamp_text(snapshot.transcript, self._snapshot_chars),
                "improvements": snapshot.improvements[:2],
            }
        )

    def _history_block(self, context: DialogueContext) -> str:
        if not context.history:
            return "No previous turns."
        label = role_label(context.mode)
        return "\n".join(
            f"Candidate: {turn.text}" if turn.role == "candidate" else f"{label}: {turn.text}"
            for turn in context.history
        )

    async def _augment(self, text: str, context: DialogueContext) -> str:
        session = context.session
        template = LIVE_PROMPT if context.mode == "live_interviewer" else JUDGE_PROMPT
        instruction, prompt = render_prompt(
            template,
            category=session.category or "HR",
            target_role=session.target_role or "Generalist",
            company=session.company_simulation or "Startup",
            question=context.current_question or "N/A",
            snapshot=self._snapshot_block(context),
            history=self._history_block(context),
            message=text,
        )
        generated = await self._chain.generate(
            instruction, prompt, temperature=AUGMENT_TEMPERATURE, max_tokens=AUGMENT_MAX_TOKENS
        )
        return strip_role_label(generated or "")


def mode_role(mode: DialogueMode | str) -> str:
    return "interviewer" if mode == "live_interviewer" else "judge"


__all__ = ["DialogueEngine", "DialogueReply", "mode_role"]
