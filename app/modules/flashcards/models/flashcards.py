"""Pydantic models shared by the gateway, the orchestrator and the client.

``CardDraft`` is a candidate question/answer pair that has not been persisted
yet. ``CardRead`` and ``FolderRead`` mirror what the persistence service hands
back, including the identifiers it assigned.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class CardDraft(BaseModel):
    """Question/answer pair without identifier or folder membership."""

    question: str
    answer: str


class CardRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    folder_id: int
    question: str
    answer: str
    created_at: Optional[datetime] = None


class FolderRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: Optional[str] = None
    created_at: Optional[datetime] = None
    cards: list[CardRead] = Field(default_factory=list)
