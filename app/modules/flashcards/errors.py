"""Typed error kinds for card generation and persistence.

Every failure a user can act on is a ``FlashcardError`` subclass carrying a
user-safe ``message``, an HTTP-equivalent ``status_code`` and whether the
caller may simply try again. Anything else raised from the core is a generic
fault: it is logged and never rendered verbatim.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional


class ErrorKind(str, Enum):
    CLIENT_ERROR = "client_error"
    NOT_AUTHENTICATED = "not_authenticated"
    NOT_FOUND = "not_found"
    CONFIG_ERROR = "config_error"
    UPSTREAM_AUTH_ERROR = "upstream_auth_error"
    UPSTREAM_BUSY = "upstream_busy"
    UPSTREAM_UNAVAILABLE = "upstream_unavailable"
    UPSTREAM_ERROR = "upstream_error"
    MALFORMED_UPSTREAM_RESPONSE = "malformed_upstream_response"
    INVALID_FORMAT = "invalid_format"
    INVALID_CARDS = "invalid_cards"
    PERSISTENCE_ERROR = "persistence_error"


class FlashcardError(Exception):
    """Base class for errors whose message may be shown to the user."""

    kind: ErrorKind = ErrorKind.CLIENT_ERROR
    status_code: int = 400
    retryable: bool = False
    default_message: str = "Request failed"

    def __init__(self, message: Optional[str] = None, *, stage: Optional[str] = None):
        self.message = message or self.default_message
        self.stage = stage
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.message, "kind": self.kind.value}


class ClientError(FlashcardError):
    kind = ErrorKind.CLIENT_ERROR
    status_code = 400


class FieldValidationError(ClientError):
    """A single field failed one of the shared validation rules."""

    def __init__(self, field: str, code: str, message: str, *, stage: Optional[str] = None):
        self.field = field
        self.code = code
        super().__init__(message, stage=stage)

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data.update(field=self.field, code=self.code)
        return data


class InvalidCardError(ClientError):
    """A candidate card failed validation at a 1-based position in a batch."""

    def __init__(self, position: int, reason: str, *, code: Optional[str] = None):
        self.position = position
        self.reason = reason
        self.code = code
        super().__init__(f"Card {position}: {reason}")

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["position"] = self.position
        return data


class GenerationInProgress(ClientError):
    default_message = "Cards are already being generated. Please wait."


class NotAuthenticatedError(FlashcardError):
    kind = ErrorKind.NOT_AUTHENTICATED
    status_code = 401
    default_message = "Authentication required. Please sign in again."


class NotFoundError(FlashcardError):
    kind = ErrorKind.NOT_FOUND
    status_code = 404
    default_message = "Not found"


class ConfigError(FlashcardError):
    kind = ErrorKind.CONFIG_ERROR
    status_code = 500
    default_message = "AI service not configured. Please contact support."


class UpstreamAuthError(FlashcardError):
    kind = ErrorKind.UPSTREAM_AUTH_ERROR
    status_code = 500
    default_message = "AI service authentication failed. Please contact support."


class UpstreamBusy(FlashcardError):
    kind = ErrorKind.UPSTREAM_BUSY
    status_code = 429
    retryable = True
    default_message = "AI service is busy. Please try again in a moment."


class UpstreamUnavailable(FlashcardError):
    kind = ErrorKind.UPSTREAM_UNAVAILABLE
    status_code = 503
    retryable = True
    default_message = "AI service is temporarily unavailable. Please try again later."


class UpstreamError(FlashcardError):
    """Unclassified upstream failure; status and body are for logs only."""

    kind = ErrorKind.UPSTREAM_ERROR
    status_code = 500
    default_message = "AI service error. Please try again later."

    def __init__(
        self,
        upstream_status: int,
        upstream_body: str,
        *,
        stage: Optional[str] = None,
    ):
        self.upstream_status = upstream_status
        self.upstream_body = upstream_body
        super().__init__(stage=stage)


class MalformedUpstreamResponse(FlashcardError):
    kind = ErrorKind.MALFORMED_UPSTREAM_RESPONSE
    status_code = 500
    retryable = True
    default_message = "AI service returned malformed response. Please try generating again."


class InvalidFormat(FlashcardError):
    kind = ErrorKind.INVALID_FORMAT
    status_code = 500
    retryable = True
    default_message = "AI service returned invalid format. Please try generating again."


class InvalidCards(FlashcardError):
    kind = ErrorKind.INVALID_CARDS
    status_code = 500
    retryable = True

    def __init__(self, invalid_count: int, message: Optional[str] = None, *, stage: Optional[str] = None):
        self.invalid_count = invalid_count
        super().__init__(
            message
            or f"AI service generated {invalid_count} invalid card(s). Please try generating again.",
            stage=stage,
        )

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["invalid_count"] = self.invalid_count
        return data


class PersistenceError(FlashcardError):
    kind = ErrorKind.PERSISTENCE_ERROR
    status_code = 500
    default_message = "Failed to save to the database. Please try again."


__all__ = [
    "ErrorKind",
    "FlashcardError",
    "ClientError",
    "FieldValidationError",
    "InvalidCardError",
    "GenerationInProgress",
    "NotAuthenticatedError",
    "NotFoundError",
    "ConfigError",
    "UpstreamAuthError",
    "UpstreamBusy",
    "UpstreamUnavailable",
    "UpstreamError",
    "MalformedUpstreamResponse",
    "InvalidFormat",
    "InvalidCards",
    "PersistenceError",
]
