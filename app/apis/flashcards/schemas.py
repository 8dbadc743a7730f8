from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, Field

from app.modules.flashcards.models.flashcards import CardDraft


class GenerateCardsRequest(BaseModel):
    # Any: type and range checks happen in validate_generation_request
    text: Any = Field(None, description="Source text to turn into flashcards")
    count: Any = Field(None, description="Number of cards to generate (1-20)")


class GenerateCardsResponse(BaseModel):
    cards: list[CardDraft]


class FolderCreate(BaseModel):
    name: Any = Field(None, description="Folder name, 2-50 characters")
    description: Optional[str] = Field(None, description="Optional, up to 200 characters")


class CardCreate(BaseModel):
    question: Optional[str] = None
    answer: Optional[str] = None


class CardBatchCreate(BaseModel):
    cards: list[CardCreate] = Field(default_factory=list)


class ErrorResponse(BaseModel):
    error: str
    kind: str
    field: Optional[str] = None
    code: Optional[str] = None
    position: Optional[int] = None
    persisted: Optional[int] = None
