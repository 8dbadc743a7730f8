"""Quick DB inspector for folders and cards.

Prints table counts, the most recent folders with their card counts, and a
few sample cards.

Usage:
  python scripts/inspect_flashcards.py [--user-id N]
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

# Ensure project root is on sys.path so `app` package imports resolve
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from sqlalchemy import select, func
from sqlalchemy.orm import selectinload

from app.core.db.base import async_session_maker
from app.core.db.schemas import Card, Folder, User
from app.core.db_services import FolderService


async def main(user_id: int | None) -> int:
    async with async_session_maker() as session:
        total_users = (await session.execute(select(func.count(User.id)))).scalar() or 0
        total_folders = (await session.execute(select(func.count(Folder.id)))).scalar() or 0
        total_cards = (await session.execute(select(func.count(Card.id)))).scalar() or 0

        print("Flashcards DB summary:")
        print(f"- Users: {total_users}")
        print(f"- Folders: {total_folders}")
        print(f"- Cards: {total_cards}")

        if user_id is not None:
            folders = await FolderService(session, user_id).list_folders()
            print(f"\nFolders for user {user_id}:")
            for f in folders:
                print(f"  • ID {f.id} | name={f.name!r} | cards={len(f.cards)}")
            return 0

        recent = (
            (
                await session.execute(
                    select(Folder)
                    .options(selectinload(Folder.cards))
                    .order_by(Folder.created_at.desc())
                    .limit(5)
                )
            )
            .scalars()
            .all()
        )
        if not recent:
            print("- No folders found.")
            return 0

        print("\nRecent folders:")
        for f in recent:
            print(f"  • ID {f.id} | user={f.user_id} | name={f.name!r} | cards={len(f.cards)}")

        print("\nSample cards (first recent folder):")
        for c in recent[0].cards[:3]:
            print(f"  - Q: {c.question[:100]!r}")
            print(f"    A: {c.answer[:120]!r}")

        return 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Summarize folders and cards")
    parser.add_argument("--user-id", type=int, default=None)
    args = parser.parse_args()
    raise SystemExit(asyncio.run(main(args.user_id)))
