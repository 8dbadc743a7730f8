"""Server-side proxy between card generation requests and the Gemini API.

One call to :meth:`GenerationGateway.generate` walks a linear set of stages::

    received -> validated -> dispatched -> response_received
             -> response_validated -> completed

and stops at the first failure with a typed ``FlashcardError`` that records
the stage it came from. Exactly one outbound request is made per call and
nothing is retried here; retry policy belongs to the caller.
"""

from __future__ import annotations

import asyncio
import json
from enum import Enum
from typing import Any, Callable, Optional

import httpx

from app.core.config import GeminiSettings, get_gemini_settings
from app.core.logging import get_logger
from app.modules.flashcards.errors import (
    ConfigError,
    InvalidCards,
    InvalidFormat,
    MalformedUpstreamResponse,
    UpstreamAuthError,
    UpstreamBusy,
    UpstreamError,
    UpstreamUnavailable,
)
from app.modules.flashcards.models.flashcards import CardDraft
from app.modules.flashcards.prompt import build_generate_content_body
from app.modules.flashcards.validation import (
    require_valid,
    validate_card,
    validate_generation_request,
)

logger = get_logger(__name__)

# Upstream bodies can be large; logs keep only the head
_LOG_BODY_LIMIT = 2000


class GatewayStage(str, Enum):
    RECEIVED = "received"
    VALIDATED = "validated"
    DISPATCHED = "dispatched"
    RESPONSE_RECEIVED = "response_received"
    RESPONSE_VALIDATED = "response_validated"
    COMPLETED = "completed"


def extract_payload_text(data: Any) -> str:
    """Return ``candidates[0].content.parts[0].text`` or raise ``MalformedUpstreamResponse``."""
    stage = GatewayStage.RESPONSE_RECEIVED.value
    if not isinstance(data, dict):
        raise MalformedUpstreamResponse(stage=stage)
    candidates = data.get("candidates")
    if not isinstance(candidates, list) or not candidates:
        logger.error("Gemini returned no candidates")
        raise MalformedUpstreamResponse(stage=stage)
    content = candidates[0].get("content") if isinstance(candidates[0], dict) else None
    parts = content.get("parts") if isinstance(content, dict) else None
    if not isinstance(parts, list) or not parts or not isinstance(parts[0], dict):
        logger.error("Gemini candidate has no content parts")
        raise MalformedUpstreamResponse(stage=stage)
    text = parts[0].get("text")
    if not isinstance(text, str) or not text.strip():
        logger.error("Gemini returned empty content")
        raise MalformedUpstreamResponse(stage=stage)
    return text


def parse_cards(text: str) -> list[CardDraft]:
    """Parse the model's JSON text into trimmed cards, rejecting any invalid entry."""
    stage = GatewayStage.RESPONSE_VALIDATED.value
    try:
        raw = json.loads(text)
    except ValueError:
        logger.error("Failed to parse AI response as JSON")
        raise InvalidFormat(stage=stage)

    if not isinstance(raw, list):
        raise InvalidCards(
            0, "AI service did not return cards in expected format. Please try again.", stage=stage
        )
    if not raw:
        raise InvalidCards(
            0, "AI service generated no cards. Please try again with different text.", stage=stage
        )

    invalid = 0
    cards: list[CardDraft] = []
    for item in raw:
        if not isinstance(item, dict):
            invalid += 1
            continue
        question, answer = item.get("question"), item.get("answer")
        if not isinstance(question, str) or not isinstance(answer, str):
            invalid += 1
            continue
        if validate_card(question, answer) is not None:
            invalid += 1
            continue
        cards.append(CardDraft(question=question.strip(), answer=answer.strip()))

    if invalid:
        raise InvalidCards(invalid, stage=stage)
    return cards


class GenerationGateway:
    """Validates a generation request, calls Gemini and returns clean cards.

    An ``httpx.AsyncClient`` can be injected (tests pass one backed by
    ``httpx.MockTransport``); otherwise a short-lived client is opened per
    call. Settings are loaded per call so the API key is read once per
    invocation.
    """

    def __init__(
        self,
        *,
        http_client: Optional[httpx.AsyncClient] = None,
        settings_loader: Callable[[], GeminiSettings] = get_gemini_settings,
    ) -> None:
        self._http_client = http_client
        self._settings_loader = settings_loader

    async def handle(self, body: Any) -> list[CardDraft]:
        """Entry point for a raw request body ``{"text": ..., "count": ...}``."""
        if not isinstance(body, dict):
            body = {}
        return await self.generate(body.get("text"), body.get("count"))

    async def generate(self, text: Any, count: Any) -> list[CardDraft]:
        stage = GatewayStage.RECEIVED
        logger.debug(f"Gateway stage: {stage.value}")

        error = validate_generation_request(text, count)
        if error is not None:
            logger.info(f"Rejected generation request: {error.code}")
        require_valid(error)
        stage = self._advance(GatewayStage.VALIDATED)
        logger.info(f"Generation request validated: text_length={len(text)} count={count}")

        gemini = self._settings_loader()
        if not gemini.is_configured:
            logger.error("Missing GEMINI_API_KEY environment variable")
            raise ConfigError(stage=stage.value)

        stage = self._advance(GatewayStage.DISPATCHED)
        response = await self._dispatch(gemini, text, count)

        stage = self._advance(GatewayStage.RESPONSE_RECEIVED)
        self._raise_for_status(response)
        try:
            data = response.json()
        except ValueError:
            logger.error("Gemini response body is not JSON")
            raise MalformedUpstreamResponse(stage=stage.value)
        payload_text = extract_payload_text(data)

        stage = self._advance(GatewayStage.RESPONSE_VALIDATED)
        cards = parse_cards(payload_text)
        if len(cards) != count:
            logger.info(f"Model returned {len(cards)} cards for {count} requested")

        self._advance(GatewayStage.COMPLETED)
        logger.info(f"Successfully validated cards: count={len(cards)}")
        return cards

    def _advance(self, stage: GatewayStage) -> GatewayStage:
        logger.debug(f"Gateway stage: {stage.value}")
        return stage

    async def _dispatch(
        self, gemini: GeminiSettings, text: str, count: int
    ) -> httpx.Response:
        url = f"{gemini.base_url.rstrip('/')}/models/{gemini.model}:generateContent"
        headers = {
            "Content-Type": "application/json",
            "x-goog-api-key": gemini.api_key.strip(),
        }
        body = build_generate_content_body(text, count)
        timeout = httpx.Timeout(gemini.timeout_seconds)
        stage = GatewayStage.DISPATCHED.value

        async def post() -> httpx.Response:
            if self._http_client is not None:
                return await self._http_client.post(
                    url, json=body, headers=headers, timeout=timeout
                )
            async with httpx.AsyncClient(timeout=timeout) as client:
                return await client.post(url, json=body, headers=headers)

        logger.info(f"Making request to Gemini model {gemini.model}")
        try:
            # httpx limits each phase; the deadline bounds the whole exchange
            return await asyncio.wait_for(post(), timeout=gemini.timeout_seconds)
        except (asyncio.TimeoutError, httpx.TimeoutException):
            logger.error(f"Gemini request timed out after {gemini.timeout_seconds}s")
            raise UpstreamUnavailable(stage=stage)
        except httpx.TransportError as e:
            logger.error(f"Gemini request failed: {type(e).__name__}")
            raise UpstreamUnavailable(stage=stage)

    def _raise_for_status(self, response: httpx.Response) -> None:
        status = response.status_code
        logger.info(f"Gemini response status: {status}")
        if response.is_success:
            return

        body = response.text[:_LOG_BODY_LIMIT]
        logger.error(f"Gemini API error: {status} {body}")
        stage = GatewayStage.RESPONSE_RECEIVED.value
        if status in (401, 403):
            raise UpstreamAuthError(stage=stage)
        if status == 429:
            raise UpstreamBusy(stage=stage)
        if status >= 500:
            raise UpstreamUnavailable(stage=stage)
        raise UpstreamError(status, body, stage=stage)


__all__ = [
    "GatewayStage",
    "GenerationGateway",
    "extract_payload_text",
    "parse_cards",
]
