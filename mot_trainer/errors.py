"""Error types shared by the adapter, orchestrator and HTTP layers."""

from typing import Optional


class TrainerError(Exception):
    """Base class for all trainer errors."""


class ConfigurationError(TrainerError):
    """A required setting is missing or invalid. Never retried."""


class AdapterError(TrainerError):
    """The LLM backend could not produce a reply.

    reason is one of: "network", "timeout", "http_status", "bad_response",
    "empty_response".
    """

    def __init__(self, reason: str, message: str = "", status_code: Optional[int] = None):
        self.reason = reason
        self.status_code = status_code
        super().__init__(message or reason)


class AdviceFormatError(TrainerError):
    """Coach advice did not match the "comment | tags" format."""


class EvaluationError(TrainerError):
    """The end-of-session report could not be produced."""


class SessionError(TrainerError):
    """Base class for session lifecycle errors."""


class SessionNotStartedError(SessionError):
    pass


class SessionClosedError(SessionError):
    """The session was finished and no longer accepts turns."""


class TurnCancelledError(SessionError):
    """The in-flight call chain was cancelled by the user."""


class SessionBusyError(SessionError):
    """Another call chain is already in flight for this session."""
