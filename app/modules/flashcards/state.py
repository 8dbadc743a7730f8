"""Explicit in-memory library state: the caller's view of folders and cards.

A ``LibraryState`` is created by whoever drives a session (an API request or
the CLI) and passed by reference to the code that needs it. Reads go through
the public properties; writes happen only from ``PersistenceOrchestrator``
after a persistence call has resolved.
"""

from __future__ import annotations

from typing import Optional, Protocol

from app.core.logging import get_logger
from app.modules.flashcards.models.flashcards import CardRead, FolderRead

logger = get_logger(__name__)


class PersistenceService(Protocol):
    """Owner-scoped folder/card storage (database or remote API)."""

    async def list_folders(self) -> list[FolderRead]: ...

    async def get_folder(self, folder_id: int) -> FolderRead: ...

    async def create_folder(self, name: str, description: Optional[str] = None) -> FolderRead: ...

    async def delete_folder(self, folder_id: int) -> None: ...

    async def create_card(self, folder_id: int, question: str, answer: str) -> CardRead: ...

    async def delete_card(self, folder_id: int, card_id: int) -> None: ...


class LibraryState:
    def __init__(self, service: PersistenceService, user_id: Optional[int] = None) -> None:
        self.service = service
        self.user_id = user_id
        self._folders: list[FolderRead] = []

    @property
    def folders(self) -> tuple[FolderRead, ...]:
        return tuple(self._folders)

    @property
    def is_authenticated(self) -> bool:
        return self.user_id is not None

    def get_folder(self, folder_id: int) -> Optional[FolderRead]:
        return next((f for f in self._folders if f.id == folder_id), None)

    async def load(self) -> tuple[FolderRead, ...]:
        """Replace the cached folders with the service's current list."""
        if not self.is_authenticated:
            self._folders = []
        else:
            self._folders = list(await self.service.list_folders())
        return self.folders

    async def refresh_folder(self, folder_id: int) -> FolderRead:
        """Re-read one folder (with its cards) and swap it into the cache."""
        folder = await self.service.get_folder(folder_id)
        self.replace_folder(folder)
        logger.debug(f"Refreshed folder {folder_id}: {len(folder.cards)} cards")
        return folder

    # Mutators below are for PersistenceOrchestrator.

    def replace_folder(self, folder: FolderRead) -> None:
        for index, existing in enumerate(self._folders):
            if existing.id == folder.id:
                self._folders[index] = folder
                return
        self._folders.append(folder)

    def discard_folder(self, folder_id: int) -> None:
        self._folders = [f for f in self._folders if f.id != folder_id]

    def discard_card(self, folder_id: int, card_id: int) -> None:
        folder = self.get_folder(folder_id)
        if folder is None:
            return
        cards = [c for c in folder.cards if c.id != card_id]
        self.replace_folder(folder.model_copy(update={"cards": cards}))
