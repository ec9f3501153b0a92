import json

import pytest

from config.routes import (
    GEMINI_ROUTE,
    NLP_ROUTE,
    OPENAI_ROUTE,
    SPEECH_TO_TEXT_ROUTE,
    TRANSCRIPTION_ROUTE,
    ProviderRoute,
    resolve_routes,
    routes_from_settings,
)
from config.settings import Settings


@pytest.fixture
def cfg(monkeypatch):
    for name in ("OPENAI_API_KEY", "GOOGLE_AI_API_KEY", "GOOGLE_AI_MODEL", "GOOGLE_AI_MODELS", "NLP_EVALUATION_API_URL",
                 "NLP_EVALUATION_API_KEY", "OPENAI_TIMEOUT_S", "SPEECH_TO_TEXT_API_URL", "SPEECH_TO_TEXT_API_KEY",
                 "OPENAI_WHISPER_MODEL"):
        monkeypatch.delenv(name, raising=False)

    def _make(**values) -> Settings:
        return Settings(_env_file=None, **values)

    return _make


def test_google_models_are_ordered_and_deduplicated(cfg):
    settings = cfg(GOOGLE_AI_MODEL="m1", GOOGLE_AI_MODELS="m2, m1,")
    assert settings.google_ai_models == ["m1", "m2", "gemini-1.5-flash"]


def test_openai_timeout_has_a_floor(cfg):
    assert cfg(OPENAI_TIMEOUT_S=2).openai_timeout_s == 6.0
    assert cfg(OPENAI_TIMEOUT_S=30).openai_timeout_s == 30.0


def test_routes_are_configured_only_with_credentials(cfg):
    routes = routes_from_settings(cfg())
    assert not any(route.configured for route in routes.values())

    routes = routes_from_settings(cfg(OPENAI_API_KEY="sk", OPENAI_BASE_URL="https://api.test/v1/"))
    openai = routes[OPENAI_ROUTE]
    assert openai.configured
    assert openai.base_url == "https://api.test/v1"
    assert openai.models == ["gpt-4o-mini", "gpt-4o-mini"]
    assert routes[GEMINI_ROUTE].models == ["gemini-1.5-flash"]


def test_route_file_overrides_defaults(cfg, tmp_path):
    path = tmp_path / "routes.json"
    path.write_text(
        json.dumps({"routes": {NLP_ROUTE: {"name": NLP_ROUTE, "base_url": "https://nlp.test", "models": ["nlp"],
                                           "api_key": "k", "max_retries": 3}}}),
        encoding="utf-8",
    )
    routes = resolve_routes(cfg(), path)
    assert routes[NLP_ROUTE].configured
    assert routes[NLP_ROUTE].max_retries == 3
    assert not routes[OPENAI_ROUTE].configured
    assert resolve_routes(cfg(), tmp_path / "missing.json")[NLP_ROUTE].base_url == ""


def test_route_delay_order_is_repaired():
    route = ProviderRoute(name="x", min_delay_s=1.0, max_delay_s=0.5)
    assert route.max_delay_s == 1.0


def test_speech_to_text_routes_follow_their_credentials(cfg):
    routes = routes_from_settings(cfg(OPENAI_API_KEY="sk", OPENAI_TIMEOUT_S=1))
    whisper = routes[TRANSCRIPTION_ROUTE]
    assert whisper.configured
    assert whisper.model == "whisper-1"
    assert whisper.timeout_s == 5.0
    assert (whisper.min_delay_s, whisper.max_delay_s) == (0.3, 1.8)
    assert not routes[SPEECH_TO_TEXT_ROUTE].configured

    routes = routes_from_settings(cfg(SPEECH_TO_TEXT_API_URL="https://stt.test/v1", SPEECH_TO_TEXT_API_KEY="k"))
    assert routes[SPEECH_TO_TEXT_ROUTE].configured
    assert routes[SPEECH_TO_TEXT_ROUTE].timeout_s == 12.0
    assert not routes[TRANSCRIPTION_ROUTE].configured
