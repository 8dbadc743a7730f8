import asyncio
import json

import httpx
import pytest

from app.core.config import GeminiSettings
from app.modules.flashcards.errors import (
    ConfigError,
    FieldValidationError,
    InvalidCards,
    InvalidFormat,
    MalformedUpstreamResponse,
    UpstreamAuthError,
    UpstreamBusy,
    UpstreamError,
    UpstreamUnavailable,
)
from app.modules.flashcards.gateway import GenerationGateway, extract_payload_text, parse_cards
from app.modules.flashcards.validation import validate_card
from tests.utils import PASSAGE, UpstreamRecorder, gemini_reply, make_gateway, sample_cards


async def test_generate_returns_requested_cards():
    upstream = UpstreamRecorder(body=gemini_reply(sample_cards(5)))
    gateway = make_gateway(upstream)

    cards = await gateway.generate(PASSAGE, 5)

    assert len(cards) == 5
    assert cards[0].question == "Question 1?"
    assert cards[4].answer == "Answer 5"
    for card in cards:
        assert validate_card(card.question, card.answer) is None


async def test_exactly_one_request_with_key_in_header():
    upstream = UpstreamRecorder(body=gemini_reply(sample_cards(2)))
    gateway = make_gateway(upstream, api_key="  secret-key  ")

    await gateway.generate(PASSAGE, 2)

    assert len(upstream.requests) == 1
    request = upstream.requests[0]
    assert request.method == "POST"
    assert request.url.path.endswith(":generateContent")
    assert request.headers["x-goog-api-key"] == "secret-key"
    assert "secret-key" not in str(request.url)

    body = json.loads(request.content)
    prompt = body["contents"][0]["parts"][0]["text"]
    assert "generate 2 flashcards" in prompt
    assert PASSAGE in prompt
    assert body["generationConfig"]["responseMimeType"] == "application/json"


async def test_cards_are_trimmed():
    raw = [{"question": "  What is ATP?  ", "answer": "\nEnergy currency\n"}]
    gateway = make_gateway(UpstreamRecorder(body=gemini_reply(raw)))

    cards = await gateway.generate(PASSAGE, 1)

    assert cards[0].question == "What is ATP?"
    assert cards[0].answer == "Energy currency"


async def test_model_may_return_a_different_number_of_cards():
    gateway = make_gateway(UpstreamRecorder(body=gemini_reply(sample_cards(7))))
    cards = await gateway.generate(PASSAGE, 5)
    assert len(cards) == 7


async def test_handle_reads_raw_body():
    gateway = make_gateway(UpstreamRecorder(body=gemini_reply(sample_cards(3))))
    cards = await gateway.handle({"text": PASSAGE, "count": 3})
    assert len(cards) == 3


@pytest.mark.parametrize(
    "text,count,field",
    [
        ("too short", 5, "text"),
        ("x" * 50_001, 5, "text"),
        (PASSAGE, 0, "count"),
        (PASSAGE, 21, "count"),
        (PASSAGE, "5", "count"),
        (None, 5, "text"),
    ],
)
async def test_invalid_request_never_reaches_upstream(text, count, field):
    upstream = UpstreamRecorder(body=gemini_reply(sample_cards(5)))
    gateway = make_gateway(upstream)

    with pytest.raises(FieldValidationError) as exc_info:
        await gateway.generate(text, count)

    assert exc_info.value.field == field
    assert exc_info.value.status_code == 400
    assert upstream.requests == []


async def test_non_object_body_is_a_client_error():
    upstream = UpstreamRecorder(body=gemini_reply(sample_cards(1)))
    gateway = make_gateway(upstream)

    with pytest.raises(FieldValidationError):
        await gateway.handle(["not", "an", "object"])
    assert upstream.requests == []


async def test_missing_api_key_is_config_error():
    upstream = UpstreamRecorder(body=gemini_reply(sample_cards(5)))
    gateway = make_gateway(upstream, api_key="")

    with pytest.raises(ConfigError) as exc_info:
        await gateway.generate(PASSAGE, 5)

    assert exc_info.value.status_code == 500
    assert exc_info.value.message == "AI service not configured. Please contact support."
    assert upstream.requests == []


@pytest.mark.parametrize(
    "status,error_type,http_status",
    [
        (429, UpstreamBusy, 429),
        (401, UpstreamAuthError, 500),
        (403, UpstreamAuthError, 500),
        (500, UpstreamUnavailable, 503),
        (503, UpstreamUnavailable, 503),
        (400, UpstreamError, 500),
        (404, UpstreamError, 500),
    ],
)
async def test_upstream_status_mapping(status, error_type, http_status):
    gateway = make_gateway(UpstreamRecorder(status_code=status, body={"error": {"message": "nope"}}))

    with pytest.raises(error_type) as exc_info:
        await gateway.generate(PASSAGE, 5)

    assert exc_info.value.status_code == http_status
    assert exc_info.value.stage == "response_received"


async def test_busy_message_is_user_facing():
    gateway = make_gateway(UpstreamRecorder(status_code=429, text="quota exceeded"))

    with pytest.raises(UpstreamBusy) as exc_info:
        await gateway.generate(PASSAGE, 5)

    assert exc_info.value.message == "AI service is busy. Please try again in a moment."
    assert exc_info.value.retryable is True


async def test_unclassified_status_keeps_upstream_details_out_of_message():
    gateway = make_gateway(UpstreamRecorder(status_code=418, text="teapot internals"))

    with pytest.raises(UpstreamError) as exc_info:
        await gateway.generate(PASSAGE, 5)

    error = exc_info.value
    assert error.upstream_status == 418
    assert error.upstream_body == "teapot internals"
    assert "teapot" not in error.message
    assert error.to_dict() == {"error": error.message, "kind": "upstream_error"}


async def test_timeout_is_unavailable():
    def handler(request):
        raise httpx.ReadTimeout("timed out", request=request)

    with pytest.raises(UpstreamUnavailable) as exc_info:
        await make_gateway(handler).generate(PASSAGE, 5)
    assert exc_info.value.stage == "dispatched"


async def test_connection_failure_is_unavailable():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(UpstreamUnavailable):
        await make_gateway(handler).generate(PASSAGE, 5)


@pytest.mark.parametrize(
    "body",
    [
        {},
        {"candidates": []},
        {"candidates": [{}]},
        {"candidates": [{"content": {"parts": []}}]},
        {"candidates": [{"content": {"parts": [{"text": "   "}]}}]},
        {"candidates": [{"content": {"parts": [{"inlineData": {}}]}}]},
    ],
)
async def test_malformed_upstream_response(body):
    gateway = make_gateway(UpstreamRecorder(body=body))

    with pytest.raises(MalformedUpstreamResponse):
        await gateway.generate(PASSAGE, 5)


async def test_non_json_success_body_is_malformed():
    gateway = make_gateway(UpstreamRecorder(text="<html>gateway</html>"))

    with pytest.raises(MalformedUpstreamResponse):
        await gateway.generate(PASSAGE, 5)


async def test_payload_that_is_not_json_is_invalid_format():
    gateway = make_gateway(UpstreamRecorder(body=gemini_reply("Here are your cards: Q1...")))

    with pytest.raises(InvalidFormat) as exc_info:
        await gateway.generate(PASSAGE, 5)
    assert exc_info.value.stage == "response_validated"


async def test_one_bad_card_rejects_the_whole_batch():
    raw = sample_cards(4) + [{"question": "", "answer": "orphan"}]
    gateway = make_gateway(UpstreamRecorder(body=gemini_reply(raw)))

    with pytest.raises(InvalidCards) as exc_info:
        await gateway.generate(PASSAGE, 5)

    assert exc_info.value.invalid_count == 1
    assert exc_info.value.message == (
        "AI service generated 1 invalid card(s). Please try generating again."
    )


def test_parse_cards_counts_every_invalid_entry():
    text = json.dumps(
        [
            {"question": "Q?", "answer": "A"},
            {"question": "Q?"},
            "just a string",
            {"question": 1, "answer": 2},
            {"question": "Q?", "answer": "  "},
        ]
    )
    with pytest.raises(InvalidCards) as exc_info:
        parse_cards(text)
    assert exc_info.value.invalid_count == 4


@pytest.mark.parametrize("payload", ["[]", '{"question": "Q", "answer": "A"}', "42"])
def test_parse_cards_requires_a_non_empty_array(payload):
    with pytest.raises(InvalidCards) as exc_info:
        parse_cards(payload)
    assert exc_info.value.invalid_count == 0


def test_extract_payload_text():
    assert extract_payload_text(gemini_reply("[]")) == "[]"
    with pytest.raises(MalformedUpstreamResponse):
        extract_payload_text("not a dict")


async def test_slow_upstream_hits_the_overall_deadline():
    async def handler(request):
        await asyncio.sleep(1)
        return httpx.Response(200, json=gemini_reply(sample_cards(5)))

    gateway = GenerationGateway(
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
        settings_loader=lambda: GeminiSettings(GEMINI_API_KEY="test-api-key", GEMINI_TIMEOUT_SECONDS=0.05),
    )

    with pytest.raises(UpstreamUnavailable) as exc_info:
        await gateway.generate(PASSAGE, 5)
    assert exc_info.value.stage == "dispatched"
