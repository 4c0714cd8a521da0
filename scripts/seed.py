#!/usr/bin/env python3
"""Seed a development database.

Creates:
  - the default prompt catalog (only if the table is empty)
  - 2 demo users: alice@example.com and bob@example.com
  - a handful of memories for alice, one shared with bob
  - prints dev JWT tokens for both users

Idempotent: users are matched by id and memories are only added for a
user that has none yet.

Usage:
    # From project root (database must be running and migrated)
    python scripts/seed.py
"""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime, timedelta

from journal.auth.oidc import create_dev_token
from journal.config import get_settings
from journal.database import close_db, get_session_factory, init_db
from journal.models.memory import Emotion, Visibility
from journal.models.memory_share import SharePermission
from journal.models.user import User
from journal.services.memory import MemoryService
from journal.services.prompts import seed_default_prompts
from journal.services.sharing import SharingLedger
from journal.storage import SqlJournalStore

DEMO_USERS: list[dict[str, str]] = [
    {"id": "dev|alice", "email": "alice@example.com", "name": "Alice Example"},
    {"id": "dev|bob", "email": "bob@example.com", "name": "Bob Example"},
]

_now = datetime.now(UTC)

SAMPLE_MEMORIES: list[dict] = [
    {
        "title": "Summit day",
        "content": (
            "Hiking in the Alps with Marco. We started before sunrise and reached "
            "the ridge just as the clouds cleared over the glacier."
        ),
        "location": "Chamonix",
        "people": ["Marco"],
        "emotion": Emotion.EXCITED,
        "date": _now - timedelta(days=200),
    },
    {
        "title": "Sunday pancakes",
        "content": "Made blueberry pancakes for everyone and nobody rushed to leave the table.",
        "location": "Home",
        "people": ["Mum", "Dad"],
        "emotion": Emotion.CONTENT,
        "date": _now - timedelta(days=12),
    },
    {
        "title": "Launch",
        "content": "Shipped the new release at work after three late nights. Relief more than joy.",
        "location": "Office",
        "emotion": Emotion.MIXED,
        "date": _now - timedelta(days=3),
    },
]


async def seed() -> None:
    """Main seed routine - idempotent."""
    settings = get_settings()
    init_db(settings)

    async with get_session_factory()() as session:
        store = SqlJournalStore(session)

        added_prompts = await seed_default_prompts(store)
        print(f"  [{'+' if added_prompts else '~'}] Prompts: {added_prompts} added")

        for data in DEMO_USERS:
            if await store.get_user(data["id"]) is None:
                await store.create_user(
                    User(id=data["id"], email=data["email"], display_name=data["name"])
                )
                print(f"  [+] User created: {data['email']}")
            else:
                print(f"  [~] User exists:  {data['email']}")

        alice, bob = DEMO_USERS
        if not await store.list_memories(alice["id"], limit=1):
            service = MemoryService(store)
            created = [
                await service.create(owner_id=alice["id"], data=dict(m)) for m in SAMPLE_MEMORIES
            ]
            ledger = SharingLedger(store)
            await ledger.set_visibility(created[0].id, Visibility.SHARED)
            await ledger.share_with_user(
                created[0].id,
                email=bob["email"],
                granter_id=alice["id"],
                permission=SharePermission.VIEW,
            )
            print(f"  [+] Memories seeded for {alice['email']}: {len(created)} (1 shared)")
        else:
            print(f"  [~] Memories exist for {alice['email']}")

        await session.commit()

    await close_db()

    secret = settings.dev_jwt_secret.get_secret_value()
    divider = "=" * 72
    print(f"\n{divider}")
    print("SEED COMPLETE - Development JWT tokens (valid 30 days):")
    print(divider)
    for data in DEMO_USERS:
        token = create_dev_token(
            sub=data["id"],
            email=data["email"],
            name=data["name"],
            secret=secret,
            audience=settings.oidc_audience,
            expires_in=30 * 24 * 3600,
        )
        print(f"\n  Email  : {data['email']}\n  Token  : {token}")
    print(f"\n{divider}")
    print("  API Docs : http://localhost:8000/docs")
    print(f"{divider}\n")


if __name__ == "__main__":
    asyncio.run(seed())
