"""Application settings and configuration management."""
from __future__ import annotations

from pathlib import Path
from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_QUESTION_BANK = str(Path(__file__).resolve().parent / "question_bank.yaml")


class Settings(BaseSettings):
    """Settings loaded from environment variables or defaults."""

    OPENAI_API_KEY: str = ""
    OPENAI_BASE_URL: str = "https://api.openai.com/v1"
    OPENAI_EVALUATION_MODEL: str = "gpt-4o-mini"
    OPENAI_CHAT_MODEL: str = "gpt-4o-mini"
    OPENAI_TIMEOUT_S: float = Field(default=20.0, gt=0)
    OPENAI_MAX_RETRIES: int = Field(default=3, ge=1)
    OPENAI_WHISPER_MODEL: str = "whisper-1"
    OPENAI_TRANSCRIPTION_LANGUAGE: str = ""

    GOOGLE_AI_API_KEY: str = ""
    GOOGLE_AI_MODEL: str = "gemini-1.5-flash"
    GOOGLE_AI_MODELS: str = ""
    GOOGLE_AI_TIMEOUT_S: float = Field(default=12.0, gt=0)
    GOOGLE_AI_MAX_RETRIES: int = Field(default=1, ge=1)

    NLP_EVALUATION_API_URL: str = ""
    NLP_EVALUATION_API_KEY: str = ""
    NLP_TIMEOUT_S: float = Field(default=15.0, gt=0)
    NLP_MAX_RETRIES: int = Field(default=2, ge=1)

    SPEECH_TO_TEXT_API_URL: str = ""
    SPEECH_TO_TEXT_API_KEY: str = ""
    SPEECH_TO_TEXT_TIMEOUT_S: float = Field(default=12.0, gt=0)
    MAX_MEDIA_BYTES: int = Field(default=25 * 1024 * 1024, ge=1)

    HISTORY_LIMIT: int = Field(default=10, ge=1)
    QA_PACK_CACHE_TTL_S: float = Field(default=600.0, ge=0)
    ANSWER_SNAPSHOT_CHARS: int = Field(default=600, ge=50)

    QUESTION_BANK_PATH: str = DEFAULT_QUESTION_BANK
    PROVIDER_ROUTES_PATH: str = ""
    EVALUATION_DEADLINE_S: float = Field(default=45.0, ge=0)

    model_config = SettingsConfigDict(env_file=".env", extra="ignore", validate_assignment=True)

    @property
    def openai_timeout_s(self) -> float:
        # Chat completions get at least six seconds regardless of env tuning.
        return max(6.0, self.OPENAI_TIMEOUT_S)

    @property
    def transcription_timeout_s(self) -> float:
        return max(5.0, self.OPENAI_TIMEOUT_S)

    @property
    def google_ai_models(self) -> List[str]:
        """Configured model, extra models, then the stock fallback; de-duplicated."""

        configured = [self.GOOGLE_AI_MODEL, *self.GOOGLE_AI_MODELS.split(",")]
        ordered: List[str] = []
        for name in [*configured, "gemini-1.5-flash"]:
            name = name.strip()
            if name and name not in ordered:
                ordered.append(name)
        return ordered


settings = Settings()
