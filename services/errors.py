"""Domain errors surfaced by the coaching services."""
from __future__ import annotations


class CoachError(Exception):  # Base for errors the API maps to a status code
    status_code = 500

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.__class__.__doc__ or self.__class__.__name__)
        self.message = str(self.args[0])


class TranscriptEmptyError(CoachError, ValueError):
    """Answer is empty. Provide text or a transcript."""

    status_code = 422


class MediaRejectedError(CoachError, ValueError):
    """Invalid media upload."""

    status_code = 400


class EvaluationFailedError(CoachError, RuntimeError):
    """Answer evaluation failed. Please retry once."""

    status_code = 500


class SessionNotFoundError(CoachError, LookupError):
    """Session not found."""

    status_code = 404


class QuestionNotFoundError(CoachError, LookupError):
    """Question not found in this session."""

    status_code = 404


class SessionStateError(CoachError):
    """Session is not in a state that allows this action."""

    status_code = 400


class SessionConflictError(CoachError):
    """Session was modified concurrently; reload and retry."""

    status_code = 409


__all__ = [
    "CoachError",
    "EvaluationFailedError",
    "MediaRejectedError",
    "QuestionNotFoundError",
    "SessionConflictError",
    "SessionNotFoundError",
    "SessionStateError",
    "TranscriptEmptyError",
]
