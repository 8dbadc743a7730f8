"""Caller-side library for the flashcards API.

This is what a front end (here: the ``flashfolders`` CLI) uses to talk to a
running server:

- ``GenerationClient`` submits a ``CardGenerationForm`` to the generation
  gateway and hands the cards to a persistence callback;
- ``HttpPersistenceService`` implements ``PersistenceService`` over HTTP so a
  ``PersistenceOrchestrator`` can run on the caller's side;
- ``IdentityClient`` covers login, the current user and the profile.

Failures never escape as raw network exceptions; they become typed
``FlashcardError`` values with a message fit for the user.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Optional, TypeVar

import httpx
from pydantic import BaseModel, RootModel, ValidationError

from app.core.config import ClientSettings
from app.core.logging import get_logger
from app.modules.flashcards.errors import (
    ErrorKind,
    FlashcardError,
    GenerationInProgress,
    InvalidFormat,
    NotAuthenticatedError,
    PersistenceError,
    UpstreamUnavailable,
)
from app.modules.flashcards.models.flashcards import CardDraft, CardRead, FolderRead
from app.modules.flashcards.orchestrator import PersistResult
from app.modules.flashcards.validation import validate_generation_request

logger = get_logger(__name__)

UNREACHABLE_MESSAGE = "Could not reach the card generation service. Please try again."
UNEXPECTED_RESPONSE_MESSAGE = "Unexpected response from the server. Please try again."
_RETRYABLE_KINDS = {
    ErrorKind.UPSTREAM_BUSY,
    ErrorKind.UPSTREAM_UNAVAILABLE,
    ErrorKind.MALFORMED_UPSTREAM_RESPONSE,
    ErrorKind.INVALID_FORMAT,
    ErrorKind.INVALID_CARDS,
}


ModelT = TypeVar("ModelT", bound=BaseModel)


class FolderList(RootModel[list[FolderRead]]):
    pass


class ProfileSummary(BaseModel):
    user_id: int
    username: str
    email: str
    full_name: Optional[str] = None


class RemoteError(FlashcardError):
    """Error reported by the server in its ``{"error": ..., "kind": ...}`` envelope."""

    def __init__(self, message: str, *, status_code: int, kind: Optional[str] = None,
                 details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.status_code = status_code
        try:
            self.kind = ErrorKind(kind) if kind else self._kind_for_status(status_code)
        except ValueError:
            self.kind = self._kind_for_status(status_code)
        self.retryable = self.kind in _RETRYABLE_KINDS
        self.details = details or {}

    @staticmethod
    def _kind_for_status(status_code: int) -> ErrorKind:
        if status_code == 401:
            return ErrorKind.NOT_AUTHENTICATED
        if status_code == 404:
            return ErrorKind.NOT_FOUND
        if status_code == 429:
            return ErrorKind.UPSTREAM_BUSY
        if status_code == 503:
            return ErrorKind.UPSTREAM_UNAVAILABLE
        if status_code < 500:
            return ErrorKind.CLIENT_ERROR
        return ErrorKind.UPSTREAM_ERROR


def error_from_response(response: httpx.Response, fallback: str) -> RemoteError:
    try:
        body = response.json()
    except ValueError:
        body = None
    if not isinstance(body, dict):
        return RemoteError(fallback, status_code=response.status_code)
    message = body.get("error") or body.get("detail")
    if not isinstance(message, str) or not message.strip():
        message = fallback
    return RemoteError(
        message,
        status_code=response.status_code,
        kind=body.get("kind"),
        details=body,
    )


def build_http_client(settings: ClientSettings, token: Optional[str] = None) -> httpx.AsyncClient:
    headers = {}
    bearer = token or settings.token
    if bearer:
        headers["Authorization"] = f"Bearer {bearer}"
    return httpx.AsyncClient(
        base_url=settings.api_url,
        headers=headers,
        timeout=settings.timeout_seconds,
    )


@dataclass
class CardGenerationForm:
    """What the user typed; survives failed submissions untouched."""

    text: str = ""
    count: int = 5
    error: Optional[str] = None
    is_loading: bool = False
    is_open: bool = True


@dataclass
class GenerationOutcome:
    cards: list[CardDraft] = field(default_factory=list)
    error: Optional[FlashcardError] = None
    persist_result: Optional[PersistResult] = None

    @property
    def ok(self) -> bool:
        return self.error is None


PersistCallback = Callable[[list[CardDraft]], Awaitable[PersistResult]]


class GenerationClient:
    def __init__(self, http: httpx.AsyncClient, *, version: str = "v1") -> None:
        self.http = http
        self.version = version

    async def request_cards(self, text: str, count: int) -> list[CardDraft]:
        """Call the generation gateway; raise a typed error on any failure."""
        logger.info(f"Requesting {count} cards from {len(text)} chars of text")
        try:
            response = await self.http.post(
                f"/{self.version}/cards/generate",
                json={"text": text, "count": count},
            )
        except httpx.HTTPError as e:
            logger.error(f"Card generation request failed: {type(e).__name__}")
            raise UpstreamUnavailable(UNREACHABLE_MESSAGE)

        if not response.is_success:
            error = error_from_response(response, "Failed to generate cards")
            logger.error(f"Card generation failed: {response.status_code} {error.kind.value}")
            raise error

        try:
            raw_cards = response.json().get("cards")
            return [CardDraft.model_validate(c) for c in raw_cards]
        except (ValueError, AttributeError, TypeError, ValidationError):
            raise InvalidFormat()

    async def submit(self, form: CardGenerationForm, persist: PersistCallback) -> GenerationOutcome:
        """Generate cards for ``form`` and persist them via ``persist``.

        The form closes only after persistence succeeded. On failure
        ``form.error`` is set and the text and count are left as typed.
        """
        if form.is_loading:
            return GenerationOutcome(error=GenerationInProgress())

        invalid = validate_generation_request(form.text, form.count)
        if invalid is not None:
            form.error = invalid.message
            return GenerationOutcome(error=invalid.to_exception())

        form.is_loading = True
        form.error = None
        try:
            cards = await self.request_cards(form.text, form.count)
            result = await persist(cards)
            if not result.ok:
                form.error = result.error.message
                return GenerationOutcome(cards=cards, error=result.error, persist_result=result)
            form.is_open = False
            return GenerationOutcome(cards=cards, persist_result=result)
        except FlashcardError as e:
            form.error = e.message
            return GenerationOutcome(error=e)
        finally:
            form.is_loading = False


class HttpPersistenceService:
    """``PersistenceService`` backed by the server's folder/card routes."""

    def __init__(self, http: httpx.AsyncClient, *, version: str = "v1") -> None:
        self.http = http
        self.version = version

    async def _request(self, method: str, path: str, fallback: str, **kwargs: Any) -> httpx.Response:
        try:
            response = await self.http.request(method, f"/{self.version}{path}", **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"{method} {path} failed: {type(e).__name__}")
            raise PersistenceError("Could not reach the server. Please try again.")
        if not response.is_success:
            raise error_from_response(response, fallback)
        return response

    @staticmethod
    def _parse(response: httpx.Response, model: type[ModelT]) -> ModelT:
        try:
            return model.model_validate(response.json())
        except (ValueError, ValidationError):
            logger.error(
                f"{response.request.method} {response.request.url.path} returned "
                f"{response.status_code} with a body that is not a {model.__name__}"
            )
            raise PersistenceError(UNEXPECTED_RESPONSE_MESSAGE)

    async def list_folders(self) -> list[FolderRead]:
        response = await self._request("GET", "/folders", "Failed to load folders")
        return self._parse(response, FolderList).root

    async def get_folder(self, folder_id: int) -> FolderRead:
        response = await self._request("GET", f"/folders/{folder_id}", "Failed to load folder")
        return self._parse(response, FolderRead)

    async def create_folder(self, name: str, description: Optional[str] = None) -> FolderRead:
        response = await self._request(
            "POST",
            "/folders",
            "Failed to create folder",
            json={"name": name, "description": description},
        )
        return self._parse(response, FolderRead)

    async def delete_folder(self, folder_id: int) -> None:
        await self._request("DELETE", f"/folders/{folder_id}", "Failed to delete folder")

    async def create_card(self, folder_id: int, question: str, answer: str) -> CardRead:
        response = await self._request(
            "POST",
            f"/folders/{folder_id}/cards",
            "Failed to create card",
            json={"question": question, "answer": answer},
        )
        return self._parse(response, CardRead)

    async def delete_card(self, folder_id: int, card_id: int) -> None:
        await self._request(
            "DELETE", f"/folders/{folder_id}/cards/{card_id}", "Failed to delete card"
        )


class IdentityClient:
    def __init__(self, http: httpx.AsyncClient, *, version: str = "v1") -> None:
        self.http = http
        self.version = version

    async def login(self, email: str, password: str) -> str:
        """Exchange credentials for a bearer token and attach it to the client."""
        try:
            response = await self.http.post(
                f"/{self.version}/auth/login",
                data={"username": email, "password": password},
            )
        except httpx.HTTPError:
            raise NotAuthenticatedError("Could not reach the server. Please try again.")
        if not response.is_success:
            raise NotAuthenticatedError("Invalid email or password")
        try:
            token = response.json()["access_token"]
        except (ValueError, KeyError, TypeError):
            raise NotAuthenticatedError(UNEXPECTED_RESPONSE_MESSAGE)
        if not isinstance(token, str) or not token:
            raise NotAuthenticatedError(UNEXPECTED_RESPONSE_MESSAGE)
        self.http.headers["Authorization"] = f"Bearer {token}"
        return token

    async def current_user_id(self) -> Optional[int]:
        """Id of the signed-in user, or ``None`` without a valid session."""
        try:
            response = await self.http.get(f"/{self.version}/users/me")
        except httpx.HTTPError:
            return None
        if response.status_code == 401:
            return None
        if not response.is_success:
            raise error_from_response(response, "Failed to load current user")
        try:
            return int(response.json()["id"])
        except (ValueError, KeyError, TypeError):
            raise NotAuthenticatedError(UNEXPECTED_RESPONSE_MESSAGE)

    async def get_profile(self) -> ProfileSummary:
        """Profile of the signed-in user; the server creates it on first read."""
        try:
            response = await self.http.get(f"/{self.version}/profile")
        except httpx.HTTPError:
            raise NotAuthenticatedError("Could not reach the server. Please try again.")
        if not response.is_success:
            raise error_from_response(response, "Failed to load profile")
        try:
            return ProfileSummary.model_validate(response.json())
        except (ValueError, ValidationError):
            raise PersistenceError(UNEXPECTED_RESPONSE_MESSAGE)


__all__ = [
    "CardGenerationForm",
    "GenerationClient",
    "GenerationOutcome",
    "HttpPersistenceService",
    "IdentityClient",
    "ProfileSummary",
    "RemoteError",
    "build_http_client",
    "error_from_response",
]
