from __future__ import annotations

import argparse
import asyncio
import json
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Callable, Optional

import httpx

from app.core.config import ClientSettings
from app.core.logging import user_context
from app.modules.flashcards.client import (
    CardGenerationForm,
    GenerationClient,
    HttpPersistenceService,
    IdentityClient,
    build_http_client,
)
from app.modules.flashcards.errors import FlashcardError
from app.modules.flashcards.orchestrator import PersistenceOrchestrator
from app.modules.flashcards.state import LibraryState
from app.modules.flashcards.study import StudySession


def _load_text(args: argparse.Namespace) -> str:
    if args.text and args.text_file:
        raise SystemExit("Provide either --text or --text-file, not both")
    if args.text_file:
        return Path(args.text_file).read_text(encoding="utf-8")
    if args.text:
        return args.text
    raise SystemExit("--text or --text-file is required")


@asynccontextmanager
async def _library(
    args: argparse.Namespace, settings: ClientSettings
) -> AsyncIterator[tuple[httpx.AsyncClient, LibraryState, PersistenceOrchestrator]]:
    """Open a client, resolve the signed-in user and load their folders.

    Log lines emitted inside the block carry the user id.
    """
    async with build_http_client(settings, args.token) as http:
        identity = IdentityClient(http, version=args.api_version)
        service = HttpPersistenceService(http, version=args.api_version)
        state = LibraryState(service, user_id=await identity.current_user_id())
        with user_context(state.user_id):
            await state.load()
            yield http, state, PersistenceOrchestrator(service, state)


async def _login(args: argparse.Namespace, settings: ClientSettings) -> int:
    async with build_http_client(settings) as http:
        token = await IdentityClient(http, version=args.api_version).login(
            args.email, args.password
        )
    print(token)
    return 0


async def _whoami(args: argparse.Namespace, settings: ClientSettings) -> int:
    async with build_http_client(settings, args.token) as http:
        identity = IdentityClient(http, version=args.api_version)
        user_id = await identity.current_user_id()
        if user_id is None:
            print("Not signed in.")
            return 1
        with user_context(user_id):
            profile = await identity.get_profile()
    name = f" ({profile.full_name})" if profile.full_name else ""
    print(f"{profile.username}{name} <{profile.email}>, user {user_id}")
    return 0


async def _folders(args: argparse.Namespace, settings: ClientSettings) -> int:
    async with _library(args, settings) as (_, state, _):
        if args.json:
            print(json.dumps([f.model_dump(mode="json") for f in state.folders], indent=2))
            return 0
        if not state.folders:
            print("No folders yet.")
        for f in state.folders:
            print(f"{f.id:>5}  {f.name}  ({len(f.cards)} cards)")
    return 0


async def _create_folder(args: argparse.Namespace, settings: ClientSettings) -> int:
    async with _library(args, settings) as (_, _, orchestrator):
        folder = await orchestrator.create_folder(args.name, args.description)
    print(f"Created folder {folder.id}: {folder.name}")
    return 0


async def _delete_folder(args: argparse.Namespace, settings: ClientSettings) -> int:
    async with _library(args, settings) as (_, _, orchestrator):
        await orchestrator.delete_folder(args.folder_id)
    print(f"Deleted folder {args.folder_id}")
    return 0


async def _add_card(args: argparse.Namespace, settings: ClientSettings) -> int:
    async with _library(args, settings) as (_, _, orchestrator):
        result = await orchestrator.add_card(args.folder_id, args.question, args.answer)
    if not result.ok:
        print(f"Error: {result.error.message}")
        return 1
    print(f"Added card {result.cards[0].id}")
    return 0


async def _generate(args: argparse.Namespace, settings: ClientSettings) -> int:
    form = CardGenerationForm(text=_load_text(args), count=args.count)
    async with _library(args, settings) as (http, _, orchestrator):
        generator = GenerationClient(http, version=args.api_version)

        async def persist(cards):
            return await orchestrator.persist_cards(
                args.folder_id, cards, require_at_least_one=True
            )

        outcome = await generator.submit(form, persist)

    if not outcome.ok:
        saved = outcome.persist_result.persisted if outcome.persist_result else 0
        print(f"Error: {form.error}")
        if saved:
            print(f"{saved} card(s) were saved before the failure.")
        if outcome.error.retryable:
            print("You can run the same command again to retry.")
        return 1

    print(f"Added {outcome.persist_result.persisted} cards to folder {args.folder_id}")
    return 0


def _study_loop(session: StudySession, read: Callable[[str], str] = input) -> None:
    if not session.total:
        print("This folder has no cards yet.")
        return
    while True:
        side = "A" if session.is_flipped else "Q"
        print(f"\n[{session.position}/{session.total}] {side}: {session.visible_text}")
        choice = read("(f)lip (n)ext (p)revious (q)uit > ").strip().lower()
        if choice in ("q", "quit"):
            return
        if choice in ("f", ""):
            session.flip()
        elif choice == "n" and not session.next():
            print("Last card.")
        elif choice == "p" and not session.previous():
            print("First card.")


async def _study(args: argparse.Namespace, settings: ClientSettings) -> int:
    async with _library(args, settings) as (_, state, _):
        folder = state.get_folder(args.folder_id)
    if folder is None:
        print(f"Folder {args.folder_id} not found")
        return 1
    print(f"Studying {folder.name}")
    _study_loop(StudySession.for_folder(folder))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="flashfolders", description="Flashcard folders client"
    )
    parser.add_argument("--token", help="Bearer token (defaults to FLASHFOLDERS_TOKEN)")
    parser.add_argument("--api-version", default="v1")
    sub = parser.add_subparsers(dest="cmd", required=True)

    lg = sub.add_parser("login", help="Sign in and print a bearer token")
    lg.add_argument("--email", required=True)
    lg.add_argument("--password", required=True)

    sub.add_parser("whoami", help="Show the signed-in user and profile")

    fl = sub.add_parser("folders", help="List folders and card counts")
    fl.add_argument("--json", action="store_true", help="Output JSON")

    cf = sub.add_parser("create-folder", help="Create a folder")
    cf.add_argument("--name", required=True)
    cf.add_argument("--description")

    df = sub.add_parser("delete-folder", help="Delete a folder and its cards")
    df.add_argument("folder_id", type=int)

    ac = sub.add_parser("add-card", help="Add one card manually")
    ac.add_argument("folder_id", type=int)
    ac.add_argument("--question", "-q", required=True)
    ac.add_argument("--answer", "-a", required=True)

    g = sub.add_parser("generate", help="Generate cards from text with AI")
    g.add_argument("folder_id", type=int)
    g.add_argument("--text", "-t", help="Source text")
    g.add_argument("--text-file", help="Path to a file containing the source text")
    g.add_argument("--count", "-n", type=int, default=5, help="Number of cards (1-20)")

    st = sub.add_parser("study", help="Review a folder with flip cards")
    st.add_argument("folder_id", type=int)

    return parser


_COMMANDS = {
    "login": _login,
    "whoami": _whoami,
    "folders": _folders,
    "create-folder": _create_folder,
    "delete-folder": _delete_folder,
    "add-card": _add_card,
    "generate": _generate,
    "study": _study,
}


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    settings = ClientSettings()
    try:
        return asyncio.run(_COMMANDS[args.cmd](args, settings))
    except FlashcardError as e:
        print(f"Error: {e.message}")
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
