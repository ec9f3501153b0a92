from __future__ import annotations  # Re-export llm_gateway public API

from .chain import TextGenerationChain
from .llm_gateway import (
    LlmGatewayError,
    ProviderHttpError,
    ProviderPayloadError,
    chat_messages,
    post_json,
    post_multipart,
    render_prompt,
    sanitize_output,
)
from .loose_json import extract_json, extract_object
from .providers import (
    GeminiProvider,
    NlpScoringProvider,
    OpenAiChatProvider,
    ScoringProvider,
    TextGenerator,
    build_providers,
    normalize_provider_payload,
)
from .retry import with_retry
from .transcription import MediaClip, TranscriptionChain, build_transcribers

__all__ = [
    "GeminiProvider",
    "LlmGatewayError",
    "MediaClip",
    "NlpScoringProvider",
    "OpenAiChatProvider",
    "ProviderHttpError",
    "ProviderPayloadError",
    "ScoringProvider",
    "TextGenerationChain",
    "TextGenerator",
    "TranscriptionChain",
    "build_providers",
    "build_transcribers",
    "chat_messages",
    "extract_json",
    "extract_object",
    "normalize_provider_payload",
    "post_json",
    "post_multipart",
    "render_prompt",
    "sanitize_output",
    "with_retry",
]
