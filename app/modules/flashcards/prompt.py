"""Prompt and response schema for the upstream card generation model.

Pure formatting: no validation happens here and the source text is embedded
exactly as the caller supplied it.
"""

from __future__ import annotations

from typing import Any

CARDS_RESPONSE_SCHEMA: dict[str, Any] = {
    "type": "array",
    "items": {
        "type": "object",
        "properties": {
            "question": {"type": "string"},
            "answer": {"type": "string"},
        },
        "required": ["question", "answer"],
    },
}

_EXAMPLE = (
    "[\n"
    '  {"question": "What is the capital of France?", "answer": "Paris"},\n'
    '  {"question": "What is the highest mountain in the world?", "answer": "Mount Everest"}\n'
    "]"
)


def build_prompt(text: str, count: int) -> str:
    return (
        f"Given the following text, generate {count} flashcards with a question and answer.\n"
        'The output should be a JSON array of objects, where each object has "question" '
        'and "answer" keys.\n'
        f"Example:\n{_EXAMPLE}\n"
        f"Text: {text}"
    )


def build_generate_content_body(text: str, count: int) -> dict[str, Any]:
    """Request body for Gemini ``generateContent`` with structured JSON output."""
    return {
        "contents": [{"parts": [{"text": build_prompt(text, count)}]}],
        "generationConfig": {
            "responseMimeType": "application/json",
            "responseJsonSchema": CARDS_RESPONSE_SCHEMA,
        },
    }
