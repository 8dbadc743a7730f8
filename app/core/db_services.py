"""Database service classes for folders and cards."""

from __future__ import annotations

from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import selectinload

from app.core.db.schemas.flashcards import Card, Folder
from app.core.logging import get_logger
from app.modules.flashcards.errors import NotFoundError, PersistenceError
from app.modules.flashcards.models.flashcards import CardRead, FolderRead
from app.modules.flashcards.validation import (
    require_valid,
    validate_card,
    validate_description,
    validate_folder_name,
)

logger = get_logger(__name__)


def _folder_read(folder: Folder, cards: Optional[list[Card]] = None) -> FolderRead:
    return FolderRead(
        id=folder.id,
        name=folder.name,
        description=folder.description,
        created_at=folder.created_at,
        cards=[CardRead.model_validate(c) for c in (cards if cards is not None else folder.cards)],
    )


class FolderService:
    """Owner-scoped folder and card storage backed by SQLAlchemy.

    Every query filters on ``user_id`` so a folder owned by someone else is
    indistinguishable from a missing one.
    """

    def __init__(self, session: AsyncSession, user_id: int):
        self.session = session
        self.user_id = user_id

    async def _commit(self, action: str) -> None:
        try:
            await self.session.commit()
        except IntegrityError as e:
            await self.session.rollback()
            logger.error(f"Integrity error while trying to {action}: {e}")
            raise PersistenceError(f"Failed to {action}: conflicting or missing data")
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error(f"Database error while trying to {action}: {e}")
            raise PersistenceError(f"Failed to {action}. Please try again.")

    async def _owned_folder(self, folder_id: int, *, with_cards: bool = False) -> Folder:
        query = select(Folder).where(Folder.id == folder_id, Folder.user_id == self.user_id)
        if with_cards:
            query = query.options(selectinload(Folder.cards))
        result = await self.session.execute(query)
        folder = result.scalar_one_or_none()
        if not folder:
            raise NotFoundError("Folder not found or access denied")
        return folder

    async def list_folders(self) -> list[FolderRead]:
        """All folders of the owner with nested cards, oldest first."""
        result = await self.session.execute(
            select(Folder)
            .options(selectinload(Folder.cards))
            .where(Folder.user_id == self.user_id)
            .order_by(Folder.created_at.asc(), Folder.id.asc())
        )
        folders = result.scalars().all()
        logger.info(
            f"Loaded {len(folders)} folders with "
            f"{sum(len(f.cards) for f in folders)} cards for user {self.user_id}"
        )
        return [_folder_read(f) for f in folders]

    async def get_folder(self, folder_id: int) -> FolderRead:
        folder = await self._owned_folder(folder_id, with_cards=True)
        return _folder_read(folder)

    async def create_folder(self, name: str, description: Optional[str] = None) -> FolderRead:
        require_valid(validate_folder_name(name))
        require_valid(validate_description(description))

        folder = Folder(
            user_id=self.user_id,
            name=name.strip(),
            description=(description or "").strip() or None,
        )
        self.session.add(folder)
        await self._commit("create folder")
        await self.session.refresh(folder)
        return _folder_read(folder, cards=[])

    async def delete_folder(self, folder_id: int) -> None:
        # Cards must be loaded for the delete-orphan cascade
        folder = await self._owned_folder(folder_id, with_cards=True)
        await self.session.delete(folder)
        await self._commit("delete folder")
        logger.info(f"Deleted folder {folder_id}")

    async def create_card(self, folder_id: int, question: str, answer: str) -> CardRead:
        require_valid(validate_card(question, answer))
        await self._owned_folder(folder_id)

        card = Card(
            folder_id=folder_id,
            question=question.strip(),
            answer=answer.strip(),
        )
        self.session.add(card)
        await self._commit("create card")
        await self.session.refresh(card)
        return CardRead.model_validate(card)

    async def delete_card(self, folder_id: int, card_id: int) -> None:
        result = await self.session.execute(
            select(Card)
            .join(Folder, Card.folder_id == Folder.id)
            .where(
                Card.id == card_id,
                Card.folder_id == folder_id,
                Folder.user_id == self.user_id,
            )
        )
        card = result.scalar_one_or_none()
        if not card:
            raise NotFoundError("Card not found or access denied")
        await self.session.delete(card)
        await self._commit("delete card")
