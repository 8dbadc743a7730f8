"""Flashcards module exports."""

from .models.flashcards import CardDraft, CardRead, FolderRead
from .gateway import GenerationGateway
from .orchestrator import PersistenceOrchestrator, PersistResult
from .state import LibraryState

__all__ = [
    "CardDraft",
    "CardRead",
    "FolderRead",
    "GenerationGateway",
    "PersistenceOrchestrator",
    "PersistResult",
    "LibraryState",
]
