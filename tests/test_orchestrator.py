import pytest

from app.modules.flashcards.errors import (
    FieldValidationError,
    InvalidCardError,
    NotAuthenticatedError,
    NotFoundError,
    PersistenceError,
)
from app.modules.flashcards.models.flashcards import CardDraft
from app.modules.flashcards.orchestrator import NO_CARDS_MESSAGE, PersistenceOrchestrator
from app.modules.flashcards.state import LibraryState
from tests.utils import FakePersistenceService


def make_orchestrator(service=None, user_id=7):
    service = service or FakePersistenceService()
    state = LibraryState(service, user_id=user_id)
    return PersistenceOrchestrator(service, state), service, state


async def test_persists_in_order_and_refreshes_once():
    orchestrator, service, state = make_orchestrator()
    await state.load()
    drafts = [CardDraft(question=f"Q{i}", answer=f"A{i}") for i in range(1, 4)]

    result = await orchestrator.persist_cards(1, drafts)

    assert result.ok
    assert result.persisted == 3
    assert [c.question for c in result.cards] == ["Q1", "Q2", "Q3"]
    assert [call[1] for call in service.create_calls] == ["Q1", "Q2", "Q3"]
    assert service.get_calls == 1
    assert [c.question for c in state.get_folder(1).cards] == ["Q1", "Q2", "Q3"]
    assert result.folder == state.get_folder(1)


async def test_stops_at_first_invalid_card():
    orchestrator, service, state = make_orchestrator()
    cards = [
        {"question": "Q1", "answer": "A1"},
        {"question": "", "answer": "A2"},
        {"question": "Q3", "answer": "A3"},
    ]

    result = await orchestrator.persist_cards(1, cards)

    assert not result.ok
    assert isinstance(result.error, InvalidCardError)
    assert result.error.message == "Card 2: Question is empty"
    assert result.error.position == 2
    assert result.failed_position == 2
    assert result.persisted == 1
    assert [call[1] for call in service.create_calls] == ["Q1"]
    assert service.get_calls == 0


async def test_empty_answer_reported_with_position():
    orchestrator, _, _ = make_orchestrator()

    result = await orchestrator.persist_cards(1, [{"question": "Q1", "answer": "   "}])

    assert result.error.message == "Card 1: Answer is empty"
    assert result.persisted == 0


async def test_persistence_failure_keeps_earlier_cards():
    service = FakePersistenceService(fail_on_call=3)
    orchestrator, service, state = make_orchestrator(service)
    drafts = [CardDraft(question=f"Q{i}", answer=f"A{i}") for i in range(1, 6)]

    result = await orchestrator.persist_cards(1, drafts)

    assert isinstance(result.error, PersistenceError)
    assert result.persisted == 2
    assert result.failed_position == 3
    assert len(service.create_calls) == 3
    assert len(service.cards) == 2
    assert service.get_calls == 0


async def test_missing_folder_surfaces_service_error():
    orchestrator, service, _ = make_orchestrator()

    async def missing(folder_id, question, answer):
        raise NotFoundError("Folder not found or access denied")

    service.create_card = missing
    result = await orchestrator.persist_cards(99, [CardDraft(question="Q", answer="A")])

    assert isinstance(result.error, NotFoundError)
    assert result.persisted == 0


async def test_empty_input_is_a_no_op():
    orchestrator, service, _ = make_orchestrator()

    result = await orchestrator.persist_cards(1, [])

    assert result.ok
    assert result.persisted == 0
    assert service.create_calls == []
    assert service.get_calls == 0


async def test_empty_generated_batch_is_an_error():
    orchestrator, service, _ = make_orchestrator()

    result = await orchestrator.persist_cards(1, [], require_at_least_one=True)

    assert result.error.message == NO_CARDS_MESSAGE
    assert result.error.status_code == 400
    assert service.create_calls == []


async def test_requires_authenticated_user():
    orchestrator, service, _ = make_orchestrator(user_id=None)

    with pytest.raises(NotAuthenticatedError):
        await orchestrator.persist_cards(1, [CardDraft(question="Q", answer="A")])
    with pytest.raises(NotAuthenticatedError):
        await orchestrator.create_folder("Biology")
    assert service.create_calls == []


async def test_refresh_failure_does_not_fail_the_batch():
    orchestrator, service, _ = make_orchestrator()

    async def broken(folder_id):
        raise PersistenceError("Failed to load folder")

    service.get_folder = broken
    result = await orchestrator.persist_cards(1, [CardDraft(question="Q", answer="A")])

    assert result.ok
    assert result.persisted == 1
    assert result.folder is None


async def test_add_card_is_a_batch_of_one():
    orchestrator, service, state = make_orchestrator()

    result = await orchestrator.add_card(1, "  What is DNA?  ", "A molecule")

    assert result.ok
    assert result.cards[0].question == "What is DNA?"
    assert len(state.get_folder(1).cards) == 1


async def test_create_folder_validates_and_updates_state():
    orchestrator, service, state = make_orchestrator()

    folder = await orchestrator.create_folder("  Chemistry  ", "Organic only")

    assert folder.name == "Chemistry"
    assert state.get_folder(folder.id) == folder

    with pytest.raises(FieldValidationError) as exc_info:
        await orchestrator.create_folder("a/b")
    assert exc_info.value.code == "invalid_chars"


async def test_delete_folder_and_card_update_state():
    orchestrator, service, state = make_orchestrator()
    await orchestrator.persist_cards(
        1, [CardDraft(question="Q1", answer="A1"), CardDraft(question="Q2", answer="A2")]
    )
    first = state.get_folder(1).cards[0]

    await orchestrator.delete_card(1, first.id)
    assert [c.question for c in state.get_folder(1).cards] == ["Q2"]

    await orchestrator.delete_folder(1)
    assert state.get_folder(1) is None
    assert state.folders == ()


async def test_load_follows_the_signed_in_user():
    service = FakePersistenceService()
    state = LibraryState(service, user_id=7)

    assert [f.name for f in await state.load()] == ["Biology"]

    state.user_id = None
    assert await state.load() == ()
    assert state.folders == ()
