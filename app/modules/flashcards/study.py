"""Flip-card review over one folder's cards."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from app.modules.flashcards.models.flashcards import CardRead, FolderRead


@dataclass
class StudySession:
    cards: list[CardRead] = field(default_factory=list)
    index: int = 0
    is_flipped: bool = False

    @classmethod
    def for_folder(cls, folder: FolderRead) -> "StudySession":
        return cls(cards=list(folder.cards))

    @property
    def total(self) -> int:
        return len(self.cards)

    @property
    def position(self) -> int:
        """1-based position of the current card, 0 when there are none."""
        return self.index + 1 if self.cards else 0

    @property
    def current(self) -> Optional[CardRead]:
        return self.cards[self.index] if self.cards else None

    @property
    def visible_text(self) -> str:
        card = self.current
        if card is None:
            return ""
        return card.answer if self.is_flipped else card.question

    @property
    def has_next(self) -> bool:
        return self.index < self.total - 1

    @property
    def has_previous(self) -> bool:
        return self.index > 0

    def flip(self) -> None:
        if self.cards:
            self.is_flipped = not self.is_flipped

    def next(self) -> bool:
        if not self.has_next:
            return False
        self.index += 1
        self.is_flipped = False
        return True

    def previous(self) -> bool:
        if not self.has_previous:
            return False
        self.index -= 1
        self.is_flipped = False
        return True
