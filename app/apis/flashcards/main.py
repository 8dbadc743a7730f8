from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse, Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.db.base import get_session
from app.core.db.schemas.auth import User
from app.core.db_services import FolderService
from app.core.logging import bind_user
from app.modules.auth import current_active_user
from app.modules.flashcards.gateway import GenerationGateway
from app.modules.flashcards.models.flashcards import CardRead, FolderRead
from app.modules.flashcards.orchestrator import PersistenceOrchestrator, PersistResult
from app.modules.flashcards.state import LibraryState
from app.modules.flashcards.validation import require_valid, validate_card
from .schemas import (
    CardBatchCreate,
    CardCreate,
    ErrorResponse,
    FolderCreate,
    GenerateCardsRequest,
    GenerateCardsResponse,
)


router = APIRouter()

CurrentUser = Annotated[User, Depends(current_active_user)]

_ERRORS = {
    400: {"model": ErrorResponse},
    401: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}


def get_generation_gateway() -> GenerationGateway:
    return GenerationGateway()


async def get_folder_service(
    user: CurrentUser,
    session: AsyncSession = Depends(get_session),
) -> FolderService:
    bind_user(user.id)
    return FolderService(session, user.id)


def get_orchestrator(
    service: FolderService = Depends(get_folder_service),
) -> PersistenceOrchestrator:
    state = LibraryState(service, user_id=service.user_id)
    return PersistenceOrchestrator(service, state)


def _batch_error_response(result: PersistResult) -> JSONResponse:
    content = result.error.to_dict()
    content["persisted"] = result.persisted
    return JSONResponse(status_code=result.error.status_code, content=content)


@router.post(
    f"/{settings.app.version}/cards/generate",
    response_model=GenerateCardsResponse,
    responses={**_ERRORS, 429: {"model": ErrorResponse}, 503: {"model": ErrorResponse}},
    tags=["flashcards"],
)
async def generate_cards(
    req: GenerateCardsRequest,
    user: CurrentUser,
    gateway: GenerationGateway = Depends(get_generation_gateway),
) -> GenerateCardsResponse:
    """Turn pasted text into candidate cards; nothing is saved here."""
    bind_user(user.id)
    cards = await gateway.generate(req.text, req.count)
    return GenerateCardsResponse(cards=cards)


@router.get(
    f"/{settings.app.version}/folders",
    response_model=list[FolderRead],
    tags=["folders"],
)
async def list_folders(
    service: FolderService = Depends(get_folder_service),
) -> list[FolderRead]:
    return await service.list_folders()


@router.post(
    f"/{settings.app.version}/folders",
    response_model=FolderRead,
    status_code=status.HTTP_201_CREATED,
    responses=_ERRORS,
    tags=["folders"],
)
async def create_folder(
    req: FolderCreate,
    orchestrator: PersistenceOrchestrator = Depends(get_orchestrator),
) -> FolderRead:
    return await orchestrator.create_folder(req.name, req.description)


@router.get(
    f"/{settings.app.version}/folders/{{folder_id:int}}",
    response_model=FolderRead,
    responses=_ERRORS,
    tags=["folders"],
)
async def get_folder(
    folder_id: int,
    service: FolderService = Depends(get_folder_service),
) -> FolderRead:
    return await service.get_folder(folder_id)


@router.delete(
    f"/{settings.app.version}/folders/{{folder_id:int}}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses=_ERRORS,
    tags=["folders"],
)
async def delete_folder(
    folder_id: int,
    orchestrator: PersistenceOrchestrator = Depends(get_orchestrator),
) -> Response:
    await orchestrator.delete_folder(folder_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    f"/{settings.app.version}/folders/{{folder_id:int}}/cards",
    response_model=CardRead,
    status_code=status.HTTP_201_CREATED,
    responses=_ERRORS,
    tags=["cards"],
)
async def add_card(
    folder_id: int,
    req: CardCreate,
    orchestrator: PersistenceOrchestrator = Depends(get_orchestrator),
):
    """Add one manually written card."""
    require_valid(validate_card(req.question, req.answer))
    result = await orchestrator.add_card(folder_id, req.question, req.answer)
    if not result.ok:
        return _batch_error_response(result)
    return result.cards[0]


@router.post(
    f"/{settings.app.version}/folders/{{folder_id:int}}/cards/batch",
    response_model=FolderRead,
    status_code=status.HTTP_201_CREATED,
    responses=_ERRORS,
    tags=["cards"],
)
async def add_cards(
    folder_id: int,
    req: CardBatchCreate,
    orchestrator: PersistenceOrchestrator = Depends(get_orchestrator),
):
    """Save a reviewed batch (typically AI-generated) in order.

    Stops at the first invalid card or failed write; the error body reports
    how many cards were saved before that.
    """
    result = await orchestrator.persist_cards(
        folder_id,
        [c.model_dump() for c in req.cards],
        require_at_least_one=True,
    )
    if not result.ok:
        return _batch_error_response(result)
    if result.folder is not None:
        return result.folder
    return await orchestrator.service.get_folder(folder_id)


@router.delete(
    f"/{settings.app.version}/folders/{{folder_id:int}}/cards/{{card_id:int}}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses=_ERRORS,
    tags=["cards"],
)
async def delete_card(
    folder_id: int,
    card_id: int,
    orchestrator: PersistenceOrchestrator = Depends(get_orchestrator),
) -> Response:
    await orchestrator.delete_card(folder_id, card_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
