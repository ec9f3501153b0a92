"""Structured event logging for answer evaluation and coaching dialogue.

Every event goes to stdout as one ``key=value`` line. With file logging
enabled, the same event is also written twice under ``COACH_LOG_FILE``:
once as a JSON line and once as the human line (``*-human.log``).
"""
from __future__ import annotations

import json
import logging
import logging.handlers
import os
import sys
import time
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List

EVENT_LOGGER_NAME = "coach"

# Fields promoted into the human line, in display order
HUMAN_FIELDS = (
    "trace_id",
    "question_id",
    "provider",
    "status",
    "intent",
    "mode",
    "overall",
    "sources",
    "version",
    "ms",
    "outcome",
)


@dataclass(frozen=True)
class LogSettings:
    level: str = "INFO"
    to_file: bool = False
    path: str = "logs/coach.log"
    max_bytes: int = 5 * 1024 * 1024
    backups: int = 5

    @classmethod
    def from_env(cls) -> "LogSettings":  # Read COACH_LOG_* variables
        return cls(
            level=os.getenv("COACH_LOG_LEVEL", cls.level).upper(),
            to_file=os.getenv("COACH_LOG_TO_FILE", "0").lower() in ("1", "true", "yes"),
            path=os.getenv("COACH_LOG_FILE", cls.path),
            max_bytes=int(os.getenv("COACH_LOG_MAX_BYTES", str(cls.max_bytes))),
            backups=int(os.getenv("COACH_LOG_BACKUPS", str(cls.backups))),
        )

    @property
    def human_path(self) -> Path:
        path = Path(self.path)
        return path.with_name(f"{path.stem}-human{path.suffix or '.log'}")


class _JsonOnly(logging.Filter):
    def __init__(self, wanted: bool) -> None:
        super().__init__()
        self._wanted = wanted

    def filter(self, record: logging.LogRecord) -> bool:
        return bool(getattr(record, "is_json", False)) is self._wanted


_event_logger = logging.getLogger(EVENT_LOGGER_NAME)
_event_logger.propagate = False
_settings = LogSettings.from_env()


def _human_formatter() -> logging.Formatter:
    return logging.Formatter("[%(asctime)s] %(levelname)s %(name)s :: %(message)s", datefmt="%Y-%m-%d %H:%M:%S")


def _rotating(path: Path, formatter: logging.Formatter, settings: LogSettings) -> logging.Handler:
    handler = logging.handlers.RotatingFileHandler(path, maxBytes=settings.max_bytes, backupCount=settings.backups)
    handler.setFormatter(formatter)
    return handler


def _build_handlers(settings: LogSettings) -> List[logging.Handler]:
    console = logging.StreamHandler(stream=sys.stdout)
    console.setFormatter(_human_formatter())
    console.addFilter(_JsonOnly(False))
    handlers: List[logging.Handler] = [console]
    if settings.to_file:
        Path(settings.path).parent.mkdir(parents=True, exist_ok=True)
        json_file = _rotating(Path(settings.path), logging.Formatter("%(message)s"), settings)
        json_file.addFilter(_JsonOnly(True))
        human_file = _rotating(settings.human_path, _human_formatter(), settings)
        human_file.addFilter(_JsonOnly(False))
        handlers.extend([json_file, human_file])
    return handlers


def configure_logging(settings: LogSettings | None = None) -> None:
    """Replace the event logger's handlers; safe to call again with new settings."""
    global _settings
    if settings is not None:
        _settings = settings
    for handler in list(_event_logger.handlers):
        _event_logger.removeHandler(handler)
        handler.close()
    _event_logger.setLevel(_settings.level)
    for handler in _build_handlers(_settings):
        handler.setLevel(_settings.level)
        _event_logger.addHandler(handler)


def _format_human(event: Dict[str, Any]) -> str:
    parts = [f"session={event.get('session_id')}", f"kind={event.get('kind')}"]
    parts.extend(f"{key}={event[key]}" for key in HUMAN_FIELDS if key in event)
    return " ".join(parts)


def _jsonable(value: Any) -> Any:
    if isinstance(value, BaseException):
        return {"name": type(value).__name__, "message": str(value)}
    return value


def _emit(level: int, message: str, *, is_json: bool) -> None:
    record = _event_logger.makeRecord(_event_logger.name, level, "", 0, message, (), None)
    record.is_json = is_json  # type: ignore[attr-defined]
    _event_logger.handle(record)


def log_event(kind: str, session_id: str, *, level: int = logging.INFO, **fields: Any) -> None:
    """Record one coaching event; ``None`` fields are dropped."""
    if not _event_logger.handlers:
        configure_logging()

    event: Dict[str, Any] = {"ts": time.time(), "event_id": uuid.uuid4().hex, "kind": kind, "session_id": session_id}
    event.update({key: _jsonable(value) for key, value in fields.items() if value is not None})

    _emit(level, _format_human(event), is_json=False)
    if _settings.to_file:
        _emit(level, json.dumps(event, ensure_ascii=False, default=str), is_json=True)


__all__ = ["LogSettings", "configure_logging", "log_event"]
