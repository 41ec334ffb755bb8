"""Pytest fixtures for notification subsystem tests."""

import os
import threading
import uuid
from collections.abc import Generator
from dataclasses import dataclass, field
from typing import Mapping

os.environ.setdefault("CRON_SECRET", "test-cron-secret")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.api.deps import get_db, get_push_transport, get_session_factory
from app.db import models  # noqa: F401  # Imported for side effects
from app.db.base import Base
from app.db.models import NotificationLogEntry, NotificationPreference, PushSubscription
from app.main import create_app
from app.utils.exceptions import FatalSubscriptionError, TransientDeliveryError

CRON_SECRET = os.environ["CRON_SECRET"]


@dataclass
class FakeTransport:
    """Records attempts and answers per endpoint with a scripted outcome.

    Outcomes: ``"ok"``, ``"gone"`` (410), ``"transient"`` (500) or an
    exception instance to raise.
    """

    outcomes: dict[str, object] = field(default_factory=dict)
    calls: list[tuple[str, str]] = field(default_factory=list)
    _lock: threading.Lock = field(default_factory=threading.Lock)

    def send(self, endpoint: str, keys: Mapping[str, str], data: str) -> None:
        with self._lock:
            self.calls.append((endpoint, data))
        outcome = self.outcomes.get(endpoint, "ok")
        if outcome == "ok":
            return
        if outcome == "gone":
            raise FatalSubscriptionError("Push subscription has unsubscribed or expired", status_code=410)
        if outcome == "transient":
            raise TransientDeliveryError("Push service unavailable", status_code=500)
        raise outcome  # type: ignore[misc]

    @property
    def endpoints_called(self) -> list[str]:
        return [endpoint for endpoint, _ in self.calls]


@pytest.fixture()
def db_engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(
        bind=engine,
        tables=[
            PushSubscription.__table__,
            NotificationPreference.__table__,
            NotificationLogEntry.__table__,
        ],
    )
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture()
def session_factory(db_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=db_engine, expire_on_commit=False)


@pytest.fixture()
def db_session(session_factory) -> Generator[Session, None, None]:
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture()
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture()
def make_subscription(db_session):
    """Insert a subscription row directly and return it."""

    def factory(
        user_id: uuid.UUID | None = None,
        endpoint: str | None = None,
        failure_count: int = 0,
    ) -> PushSubscription:
        subscription = PushSubscription(
            user_id=user_id or uuid.uuid4(),
            endpoint=endpoint or f"https://push.example.com/send/{uuid.uuid4().hex}",
            p256dh="BNcRdreALRFXTkOOUHK1EtK2wtaz5Ry4YfYCA_0QTpQtUbVlUls0VJXg7A8u-Ts1XbjhazAkj7I99e8QcYP7DkM",
            auth="tBHItJI5svbpez7KI4CCXg",
            failure_count=failure_count,
        )
        db_session.add(subscription)
        db_session.commit()
        return subscription

    return factory


@pytest.fixture()
def client(db_session: Session, session_factory, transport: FakeTransport) -> Generator[TestClient, None, None]:
    app = create_app()

    def override_get_db() -> Generator[Session, None, None]:
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_push_transport] = lambda: transport
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    with TestClient(app) as test_client:
        yield test_client
