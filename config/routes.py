from __future__ import annotations  # Provider route schema for outbound scoring/generation calls

from pathlib import Path
from typing import Dict, List

from pydantic import BaseModel, Field, model_validator

from .settings import Settings

OPENAI_ROUTE = "openai"
GEMINI_ROUTE = "gemini"
NLP_ROUTE = "nlp"
TRANSCRIPTION_ROUTE = "transcription"
SPEECH_TO_TEXT_ROUTE = "speech_to_text"

GEMINI_API_BASES = (
    "https://generativelanguage.googleapis.com/v1beta/models",
    "https://generativelanguage.googleapis.com/v1/models",
)


class ProviderRoute(BaseModel):  # One provider endpoint and its retry ladder
    name: str
    base_url: str = ""
    models: List[str] = Field(default_factory=list)
    api_key: str = ""
    timeout_s: float = Field(default=15.0, ge=0.1)
    max_retries: int = Field(default=1, ge=1)
    min_delay_s: float = Field(default=0.25, ge=0.0)
    max_delay_s: float = Field(default=2.0, ge=0.0)
    extra_headers: Dict[str, str] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _delay_order(self) -> "ProviderRoute":
        if self.max_delay_s < self.min_delay_s:
            self.max_delay_s = self.min_delay_s
        return self

    @property
    def configured(self) -> bool:
        return bool(self.api_key and self.base_url and self.models)

    @property
    def model(self) -> str:
        return self.models[0] if self.models else ""


class RoutesFile(BaseModel):  # On-disk override format
    routes: Dict[str, ProviderRoute]


def routes_from_settings(cfg: Settings) -> Dict[str, ProviderRoute]:  # Build the default scoring and speech-to-text routes
    return {
        OPENAI_ROUTE: ProviderRoute(
            name=OPENAI_ROUTE,
            base_url=cfg.OPENAI_BASE_URL.rstrip("/"),
            models=[cfg.OPENAI_EVALUATION_MODEL, cfg.OPENAI_CHAT_MODEL],
            api_key=cfg.OPENAI_API_KEY,
            timeout_s=cfg.openai_timeout_s,
            max_retries=cfg.OPENAI_MAX_RETRIES,
            min_delay_s=0.32,
            max_delay_s=1.8,
        ),
        GEMINI_ROUTE: ProviderRoute(
            name=GEMINI_ROUTE,
            base_url=GEMINI_API_BASES[0],
            models=cfg.google_ai_models,
            api_key=cfg.GOOGLE_AI_API_KEY,
            timeout_s=cfg.GOOGLE_AI_TIMEOUT_S,
            max_retries=cfg.GOOGLE_AI_MAX_RETRIES,
        ),
        NLP_ROUTE: ProviderRoute(
            name=NLP_ROUTE,
            base_url=cfg.NLP_EVALUATION_API_URL,
            models=["nlp"],
            api_key=cfg.NLP_EVALUATION_API_KEY,
            timeout_s=cfg.NLP_TIMEOUT_S,
            max_retries=cfg.NLP_MAX_RETRIES,
        ),
        TRANSCRIPTION_ROUTE: ProviderRoute(
            name=TRANSCRIPTION_ROUTE,
            base_url=cfg.OPENAI_BASE_URL.rstrip("/"),
            models=[cfg.OPENAI_WHISPER_MODEL],
            api_key=cfg.OPENAI_API_KEY,
            timeout_s=cfg.transcription_timeout_s,
            max_retries=cfg.OPENAI_MAX_RETRIES,
            min_delay_s=0.3,
            max_delay_s=1.8,
        ),
        SPEECH_TO_TEXT_ROUTE: ProviderRoute(
            name=SPEECH_TO_TEXT_ROUTE,
            base_url=cfg.SPEECH_TO_TEXT_API_URL,
            models=["speech-to-text"],
            api_key=cfg.SPEECH_TO_TEXT_API_KEY,
            timeout_s=cfg.SPEECH_TO_TEXT_TIMEOUT_S,
        ),
    }


def load_routes(path: Path) -> Dict[str, ProviderRoute]:  # Load route overrides from disk
    data = path.read_text(encoding="utf-8")
    return RoutesFile.model_validate_json(data).routes


def resolve_routes(cfg: Settings, overrides: Path | None = None) -> Dict[str, ProviderRoute]:  # Defaults patched by an optional file
    routes = routes_from_settings(cfg)
    if overrides is not None and overrides.exists():
        routes.update(load_routes(overrides))
    return routes
