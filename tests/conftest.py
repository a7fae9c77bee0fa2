"""Shared fixtures: a throwaway SQLite database and a recording channel."""

from __future__ import annotations

import os
import sys
import tempfile
from pathlib import Path
from typing import Any, Callable

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

TEST_DB_PATH = Path(tempfile.gettempdir()) / "helpdesk_notifications_test.db"
os.environ["DATABASE_URL"] = f"sqlite:///{TEST_DB_PATH}"
os.environ["SECRET_KEY"] = "test-secret"
os.environ["ACCESS_TOKEN_EXPIRE_MINUTES"] = "30"
os.environ["APP_TIMEZONE"] = "America/Argentina/Buenos_Aires"

from helpdesk.config import get_settings  # noqa: E402

get_settings.cache_clear()

from helpdesk.domain.entities import Role, User  # noqa: E402
from helpdesk.infrastructure.database import (  # noqa: E402
    Base,
    SessionLocal,
    engine,
    initialize_database,
)
from helpdesk.infrastructure.repositories import UserRepository  # noqa: E402


class RecordingChannel:
    """Stand-in for the websocket channel that records every push."""

    def __init__(self, error: Exception | None = None) -> None:
        self.pushes: list[tuple[str, str, Any]] = []
        self.error = error
        self.on_push: Callable[[str, str, Any], None] | None = None

    def push(self, group: str, event_name: str, payload: Any) -> None:
        if self.on_push is not None:
            self.on_push(group, event_name, payload)
        if self.error is not None:
            raise self.error
        self.pushes.append((group, event_name, payload))

    def events(self, event_name: str) -> list[tuple[str, Any]]:
        return [(group, payload) for group, name, payload in self.pushes if name == event_name]


@pytest.fixture(autouse=True)
def reset_database():
    """Ensure every test starts from an empty schema."""

    Base.metadata.drop_all(bind=engine)
    initialize_database()
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def session():
    with SessionLocal() as db:
        yield db


@pytest.fixture()
def make_user(session) -> Callable[..., User]:
    counter = {"value": 0}

    def _make(role: Role = Role.CLIENT, *, status: str = "active", username: str | None = None) -> User:
        counter["value"] += 1
        number = counter["value"]
        return UserRepository(session).create(
            username=username or f"{role.value}{number}",
            email=f"{role.value}{number}@example.com",
            password_hash="not-a-real-hash",
            role=role,
            status=status,
        )

    return _make


@pytest.fixture()
def channel() -> RecordingChannel:
    return RecordingChannel()


@pytest.fixture()
def anyio_backend() -> str:
    return "asyncio"
