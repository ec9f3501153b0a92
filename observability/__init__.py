"""Observability utilities for the interview coaching engine."""
from .logger import LogSettings, configure_logging, log_event
from .tracing import span

__all__ = ["LogSettings", "configure_logging", "log_event", "span"]
