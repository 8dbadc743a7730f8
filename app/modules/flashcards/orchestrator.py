"""Persists candidate cards into a folder, one at a time and in order.

Cards are written sequentially, in the order given. The first
invalid card or failed write stops the batch; cards written before it stay
written (no rollback) and the result says how far the batch got. The folder
is re-read once, after the whole batch succeeds.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Optional, Sequence

from app.core.logging import get_logger
from app.modules.flashcards.errors import (
    ClientError,
    FlashcardError,
    InvalidCardError,
    NotAuthenticatedError,
)
from app.modules.flashcards.models.flashcards import CardDraft, CardRead, FolderRead
from app.modules.flashcards.state import LibraryState, PersistenceService
from app.modules.flashcards.validation import (
    require_valid,
    validate_card,
    validate_description,
    validate_folder_name,
)

logger = get_logger(__name__)

NO_CARDS_MESSAGE = "No cards were generated. Please try again with different text."


@dataclass
class PersistResult:
    """Outcome of a batch: what was written and, if it stopped early, why."""

    cards: list[CardRead] = field(default_factory=list)
    attempted: int = 0
    error: Optional[FlashcardError] = None
    folder: Optional[FolderRead] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def persisted(self) -> int:
        return len(self.cards)

    @property
    def failed_position(self) -> Optional[int]:
        if self.error is None or self.attempted == 0:
            return None
        return self.attempted


def _card_fields(card: Any) -> tuple[Any, Any]:
    if isinstance(card, Mapping):
        return card.get("question"), card.get("answer")
    return getattr(card, "question", None), getattr(card, "answer", None)


class PersistenceOrchestrator:
    """The only writer of a ``LibraryState``."""

    def __init__(self, service: PersistenceService, state: LibraryState) -> None:
        self.service = service
        self.state = state

    def _require_user(self) -> None:
        if not self.state.is_authenticated:
            raise NotAuthenticatedError()

    async def persist_cards(
        self,
        folder_id: int,
        cards: Sequence[CardDraft | Mapping[str, Any]],
        *,
        require_at_least_one: bool = False,
    ) -> PersistResult:
        self._require_user()

        drafts = list(cards or [])
        if not drafts:
            if require_at_least_one:
                return PersistResult(error=ClientError(NO_CARDS_MESSAGE))
            return PersistResult()

        persisted: list[CardRead] = []
        for position, card in enumerate(drafts, start=1):
            question, answer = _card_fields(card)
            invalid = validate_card(question, answer)
            if invalid is not None:
                logger.warning(
                    f"Stopping batch for folder {folder_id} at card {position}: {invalid.code}"
                )
                return PersistResult(
                    cards=persisted,
                    attempted=position,
                    error=InvalidCardError(position, invalid.message, code=invalid.code),
                )

            try:
                created = await self.service.create_card(folder_id, question, answer)
            except FlashcardError as e:
                logger.error(
                    f"Persisting card {position} of {len(drafts)} into folder {folder_id} "
                    f"failed after {len(persisted)} saved: {e.kind.value}"
                )
                return PersistResult(cards=persisted, attempted=position, error=e)

            persisted.append(created)
            logger.debug(f"Card {position} saved as {created.id}")

        folder: Optional[FolderRead] = None
        try:
            folder = await self.state.refresh_folder(folder_id)
        except FlashcardError as e:
            # Writes already succeeded; the next full load picks them up
            logger.warning(f"Refreshing folder {folder_id} failed: {e.message}")

        logger.info(f"Persisted {len(persisted)} cards into folder {folder_id}")
        return PersistResult(cards=persisted, attempted=len(drafts), folder=folder)

    async def add_card(self, folder_id: int, question: str, answer: str) -> PersistResult:
        """Manual entry: a batch of exactly one card."""
        return await self.persist_cards(
            folder_id, [{"question": question, "answer": answer}], require_at_least_one=True
        )

    async def create_folder(self, name: str, description: Optional[str] = None) -> FolderRead:
        self._require_user()
        require_valid(validate_folder_name(name))
        require_valid(validate_description(description))
        folder = await self.service.create_folder(name, description)
        self.state.replace_folder(folder)
        return folder

    async def delete_folder(self, folder_id: int) -> None:
        self._require_user()
        await self.service.delete_folder(folder_id)
        self.state.discard_folder(folder_id)

    async def delete_card(self, folder_id: int, card_id: int) -> None:
        self._require_user()
        await self.service.delete_card(folder_id, card_id)
        self.state.discard_card(folder_id, card_id)


__all__ = ["PersistResult", "PersistenceOrchestrator", "NO_CARDS_MESSAGE"]
