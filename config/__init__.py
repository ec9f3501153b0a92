"""Configuration package for the interview coaching engine."""
from .routes import (
    GEMINI_API_BASES,
    GEMINI_ROUTE,
    NLP_ROUTE,
    OPENAI_ROUTE,
    ProviderRoute,
    load_routes,
    resolve_routes,
    routes_from_settings,
)
from .settings import Settings, settings

__all__ = [
    "GEMINI_API_BASES",
    "GEMINI_ROUTE",
    "NLP_ROUTE",
    "OPENAI_ROUTE",
    "ProviderRoute",
    "load_routes",
    "resolve_routes",
    "routes_from_settings",
    "Settings",
    "settings",
]
