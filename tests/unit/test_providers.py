"""Provider adapters against mocked HTTP transports."""
from __future__ import annotations

import asyncio
import json

import httpx

from agents.types import METRICS, AnswerSubmission, EvaluationRequest, MetricScoreSet
from config.routes import GEMINI_ROUTE, ProviderRoute, resolve_routes
from config.settings import Settings
from llm_gateway.chain import TextGenerationChain
from llm_gateway.providers import (
    GeminiProvider,
    NlpScoringProvider,
    OpenAiChatProvider,
    normalize_provider_payload,
)


REQUEST = EvaluationRequest(
    category="Technical",
    prompt="How would you design a rate limiter?",
    tags=["rate limiting", "scalability"],
    submission=AnswerSubmission(transcript="I would use a token bucket in Redis."),
    trace_id="trace-1",
    session_id="sess-1",
)
BASELINE = MetricScoreSet.from_metrics({metric: 60 for metric in METRICS})


async def _no_sleep(seconds):
    return None


def _run(provider_factory, handler, call):
    async def _go():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            provider = provider_factory(client)
            return await call(provider)

    return asyncio.run(_go())


def test_normalize_accepts_aliases_and_drops_non_numeric():
    outcome = normalize_provider_payload(
        "x",
        {
            "clarity": 81,
            "relevance": 64,
            "grammar": None,
            "confidence": "high",
            "speakingSpeed": True,
            "facial_expression": "77",
            "feedbackTips": ["a", "a", " ", "b"],
            "relevance_notes": "  on topic ",
        },
    )
    assert outcome.scores.reported() == {"communication": 81, "technical_accuracy": 64, "facial_expression": 77}
    assert outcome.feedback_tips == ["a", "b"]
    assert outcome.relevance_notes == "on topic"


def test_openai_evaluate_retries_then_parses_json_content():
    route = ProviderRoute(
        name="openai", base_url="https://api.test/v1", models=["eval-model", "chat-model"], api_key="k", max_retries=2
    )
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        seen.append(body)
        assert request.url.path == "/v1/chat/completions"
        assert request.headers["authorization"] == "Bearer k"
        if len(seen) == 1:
            return httpx.Response(503, text="busy")
        content = json.dumps({"technicalAccuracy": 88, "clarity": 70, "feedbackTips": ["Name the algorithm."]})
        return httpx.Response(200, json={"choices": [{"message": {"content": content}}]})

    outcome = _run(
        lambda client: OpenAiChatProvider(route, client=client, sleep=_no_sleep),
        handler,
        lambda provider: provider.evaluate(REQUEST, BASELINE),
    )
    assert len(seen) == 2
    assert seen[-1]["model"] == "eval-model"
    assert seen[-1]["response_format"] == {"type": "json_object"}
    assert json.loads(seen[-1]["messages"][1]["content"])["baseline"]["technicalAccuracy"] == 60
    assert outcome.source == "openai"
    assert outcome.scores.reported() == {"technical_accuracy": 88, "communication": 70}
    assert outcome.feedback_tips == ["Name the algorithm."]


def test_openai_bad_content_yields_nothing():
    route = ProviderRoute(name="openai", base_url="https://api.test/v1", models=["m"], api_key="k")

    def handler(request):
        return httpx.Response(200, json={"choices": [{"message": {"content": "I cannot score this."}}]})

    outcome = _run(
        lambda client: OpenAiChatProvider(route, client=client, sleep=_no_sleep),
        handler,
        lambda provider: provider.evaluate(REQUEST, BASELINE),
    )
    assert outcome is None


def test_gemini_walks_models_until_one_answers():
    route = ProviderRoute(name="gemini", models=["m1", "m2"], api_key="g")
    paths = []

    def handler(request):
        paths.append(request.url.path)
        if request.url.path.endswith("m1:generateContent"):
            return httpx.Response(500)
        text = "```json\n" + json.dumps({"grammar": 91, "relevanceNotes": "Relevant."}) + "\n```"
        return httpx.Response(200, json={"candidates": [{"content": {"parts": [{"text": text}]}}]})

    outcome = _run(
        lambda client: GeminiProvider(route, fallback_bases=("https://gen.test/v1beta/models",), client=client, sleep=_no_sleep),
        handler,
        lambda provider: provider.evaluate(REQUEST, BASELINE),
    )
    assert paths == ["/v1beta/models/m1:generateContent", "/v1beta/models/m2:generateContent"]
    assert outcome.scores.reported() == {"grammar": 91}
    assert outcome.relevance_notes == "Relevant."


def test_gemini_route_override_base_is_tried_first(tmp_path):
    overrides = tmp_path / "routes.json"
    overrides.write_text(
        json.dumps({"routes": {"gemini": {"name": "gemini", "base_url": "https://proxy.test/gemini/", "models": ["m1"], "api_key": "g"}}})
    )
    route = resolve_routes(Settings(_env_file=None), overrides)[GEMINI_ROUTE]
    urls = []

    def handler(request):
        urls.append(f"{request.url.host}{request.url.path}")
        return httpx.Response(503)

    provider_bases = []

    async def call(provider):
        provider_bases.extend(provider.api_bases())
        return await provider.generate_text("instruction", "prompt")

    assert _run(lambda client: GeminiProvider(route, client=client, sleep=_no_sleep), handler, call) is None
    assert urls[0] == "proxy.test/gemini/m1:generateContent"
    assert provider_bases[0] == "https://proxy.test/gemini"
    assert provider_bases[1:] == ["https://generativelanguage.googleapis.com/v1beta/models", "https://generativelanguage.googleapis.com/v1/models"]
    assert len(urls) == 3


def test_nlp_posts_wire_payload_with_bearer_token():
    route = ProviderRoute(name="nlp", base_url="https://nlp.test/score", models=["nlp"], api_key="secret")
    captured = {}

    def handler(request):
        captured["auth"] = request.headers["authorization"]
        captured["body"] = json.loads(request.content)
        return httpx.Response(200, json={"communication": 66, "technical_accuracy": "77", "grammar": "n/a"})

    outcome = _run(
        lambda client: NlpScoringProvider(route, client=client, sleep=_no_sleep),
        handler,
        lambda provider: provider.evaluate(REQUEST, BASELINE),
    )
    assert captured["auth"] == "Bearer secret"
    assert captured["body"]["transcript"] == "I would use a token bucket in Redis."
    assert captured["body"]["answerType"] == "text"
    assert outcome.scores.reported() == {"communication": 66, "technical_accuracy": 77}


def test_failures_and_unconfigured_routes_return_none():
    calls = []

    def handler(request):
        calls.append(request.url)
        return httpx.Response(500)

    failing = ProviderRoute(name="nlp", base_url="https://nlp.test/score", models=["nlp"], api_key="k")
    assert _run(
        lambda client: NlpScoringProvider(failing, client=client, sleep=_no_sleep),
        handler,
        lambda provider: provider.evaluate(REQUEST, BASELINE),
    ) is None
    assert len(calls) == 1

    unconfigured = ProviderRoute(name="openai", base_url="https://api.test/v1", models=["m"])
    assert _run(
        lambda client: OpenAiChatProvider(unconfigured, client=client, sleep=_no_sleep),
        handler,
        lambda provider: provider.evaluate(REQUEST, BASELINE),
    ) is None
    assert len(calls) == 1


def test_chain_falls_through_to_next_generator():
    openai_route = ProviderRoute(name="openai", base_url="https://api.test/v1", models=["eval", "chat"], api_key="k")
    gemini_route = ProviderRoute(name="gemini", models=["m1"], api_key="g")
    hits = []

    def handler(request):
        hits.append(request.url.host)
        if request.url.host == "api.test":
            return httpx.Response(400)
        return httpx.Response(200, json={"candidates": [{"content": {"parts": [{"text": "What metric moved?"}]}}]})

    async def _go():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            chain = TextGenerationChain(
                [
                    OpenAiChatProvider(openai_route, client=client, sleep=_no_sleep),
                    GeminiProvider(gemini_route, fallback_bases=("https://gen.test/v1/models",), client=client, sleep=_no_sleep),
                ]
            )
            return await chain.generate("instruction", "prompt")

    assert asyncio.run(_go()) == "What metric moved?"
    assert hits == ["api.test", "gen.test"]
