from .flashcards import CardDraft, CardRead, FolderRead

__all__ = [
    "CardDraft",
    "CardRead",
    "FolderRead",
]
