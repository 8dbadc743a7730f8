"""Fakes shared by the test modules: upstream replies and an in-memory store."""

import json

import httpx

from app.core.config import GeminiSettings
from app.modules.flashcards.errors import NotFoundError, PersistenceError
from app.modules.flashcards.gateway import GenerationGateway
from app.modules.flashcards.models.flashcards import CardRead, FolderRead


PASSAGE = (
    "Photosynthesis is the process by which green plants, algae and some bacteria "
    "convert light energy into chemical energy. It takes place mainly in the "
    "chloroplasts, where chlorophyll absorbs light. Water is split, releasing "
    "oxygen, and carbon dioxide is fixed into sugars in the Calvin cycle. "
) * 2


def gemini_reply(cards) -> dict:
    """Shape of a successful Gemini generateContent response."""
    text = cards if isinstance(cards, str) else json.dumps(cards)
    return {
        "candidates": [
            {"content": {"role": "model", "parts": [{"text": text}]}, "finishReason": "STOP"}
        ]
    }


def sample_cards(n: int) -> list[dict]:
    return [{"question": f"Question {i}?", "answer": f"Answer {i}"} for i in range(1, n + 1)]


def make_gateway(handler, api_key: str = "test-api-key") -> GenerationGateway:
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return GenerationGateway(
        http_client=http,
        settings_loader=lambda: GeminiSettings(GEMINI_API_KEY=api_key),
    )


class UpstreamRecorder:
    """MockTransport handler that records requests and replays one response."""

    def __init__(self, status_code: int = 200, body=None, text: str | None = None):
        self.status_code = status_code
        self.body = body
        self.text = text
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.text is not None:
            return httpx.Response(self.status_code, text=self.text)
        return httpx.Response(self.status_code, json=self.body)


class FakePersistenceService:
    """In-memory PersistenceService that can fail on the n-th card write."""

    def __init__(self, fail_on_call: int | None = None):
        self.fail_on_call = fail_on_call
        self.create_calls: list[tuple[int, str, str]] = []
        self.get_calls = 0
        self.folders: dict[int, FolderRead] = {1: FolderRead(id=1, name="Biology")}
        self.cards: list[CardRead] = []

    async def list_folders(self):
        return [self._with_cards(f) for f in self.folders.values()]

    async def get_folder(self, folder_id):
        self.get_calls += 1
        if folder_id not in self.folders:
            raise NotFoundError("Folder not found or access denied")
        return self._with_cards(self.folders[folder_id])

    async def create_folder(self, name, description=None):
        folder = FolderRead(id=max(self.folders, default=0) + 1, name=name.strip(), description=description)
        self.folders[folder.id] = folder
        return folder

    async def delete_folder(self, folder_id):
        if self.folders.pop(folder_id, None) is None:
            raise NotFoundError("Folder not found or access denied")
        self.cards = [c for c in self.cards if c.folder_id != folder_id]

    async def create_card(self, folder_id, question, answer):
        self.create_calls.append((folder_id, question, answer))
        if self.fail_on_call == len(self.create_calls):
            raise PersistenceError("Failed to create card. Please try again.")
        card = CardRead(
            id=len(self.cards) + 1,
            folder_id=folder_id,
            question=question.strip(),
            answer=answer.strip(),
        )
        self.cards.append(card)
        return card

    async def delete_card(self, folder_id, card_id):
        self.cards = [c for c in self.cards if c.id != card_id]

    def _with_cards(self, folder):
        return folder.model_copy(update={"cards": [c for c in self.cards if c.folder_id == folder.id]})



def fake_api(handler) -> httpx.AsyncClient:
    """Client pointed at a fake flashfolders server."""
    return httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="http://api")
