"""Shared fixtures: a throwaway database per test and a client with a fabricated identity."""

import asyncio
import os

# Must be set before the app (and its rate limiter) is imported
os.environ.setdefault("RATE_LIMIT_ENABLED", "0")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.database.engine import create_engine, get_db, init_db
from app.features.groups.models import Group
from app.features.groups.registry import GroupRegistry
from app.features.permissions.models import Actor
from app.features.users.dependencies import get_current_actor
from app.features.users.models import User


def run(coro):
    """Run ``coro`` on a private loop, leaving the current event loop alone."""
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


class Identity:
    """Stands in for the Appwrite-backed identity dependency."""

    def __init__(self):
        self.actor: Actor | None = None

    def __call__(self) -> Actor:
        assert self.actor is not None, "call identity.login(...) first"
        return self.actor

    def login(self, user_id: str, groot: bool = False) -> Actor:
        self.actor = Actor(id=user_id, is_groot=groot)
        return self.actor


@pytest.fixture
def session_factory(tmp_path):
    engine = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    run(init_db(engine))
    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    run(engine.dispose())


@pytest.fixture
def seed(session_factory):
    """Helpers that write users and groups straight to the database."""

    class Seeder:
        def users(self, *user_ids: str) -> None:
            async def _seed():
                async with session_factory() as db:
                    for user_id in user_ids:
                        db.add(User(
                            id=user_id,
                            appwrite_id=f"appwrite-{user_id}",
                            email=f"{user_id}@example.com",
                            name=user_id.upper(),
                        ))
                    await db.commit()
            run(_seed())

        def group(self, name: str, participants: dict, conversations=()) -> Group:
            async def _seed():
                async with session_factory() as db:
                    group = Group(name=name, conversations=list(conversations), reports={})
                    group.set_participants(participants)
                    return await GroupRegistry(db).save_group(group)
            return run(_seed())

    return Seeder()


@pytest.fixture
def identity():
    return Identity()


@pytest.fixture
def client(session_factory, identity):
    from app.main import app

    async def override_get_db():
        async with session_factory() as session:
            yield session
            await session.commit()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_current_actor] = identity
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def cast(seed):
    """The usual suspects, stored as users."""
    seed.users("groot", "bofh", "moss", "pfy", "roy")
