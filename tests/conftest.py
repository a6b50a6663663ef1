from __future__ import annotations

import threading
from collections.abc import Generator, Iterable

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from sms_relay.db import init_db
from sms_relay.errors import DispatchError
from sms_relay.store import SubscriberStore


class FakeSender:
    """Records every send; raises DispatchError for contacts in `fail_for`."""

    def __init__(self, fail_for: Iterable[str] = ()) -> None:
        self.fail_for = set(fail_for)
        self.sent: list[tuple[str, str]] = []
        self._lock = threading.Lock()

    def send(self, to: str, body: str) -> None:
        with self._lock:
            self.sent.append((to, body))
        if to in self.fail_for:
            raise DispatchError(to, "simulated provider error")


@pytest.fixture
def session_factory() -> Generator[sessionmaker[Session], None, None]:
    """In-memory SQLite shared by every session of the test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(engine)
    yield sessionmaker(bind=engine, autoflush=False, autocommit=False)
    engine.dispose()


@pytest.fixture
def store(session_factory: sessionmaker[Session]) -> SubscriberStore:
    return SubscriberStore(session_factory)


@pytest.fixture
def broken_store() -> Generator[SubscriberStore, None, None]:
    """A store whose table was never created, so every query fails."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    yield SubscriberStore(sessionmaker(bind=engine))
    engine.dispose()


@pytest.fixture
def sender() -> FakeSender:
    return FakeSender()


@pytest.fixture
def sender_factory() -> type[FakeSender]:
    """Factory for senders that fail for the given contacts."""
    return FakeSender
