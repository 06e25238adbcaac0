from datetime import date, datetime, timedelta, timezone

import httpx
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.shared.config import Settings
from app.shared.db import Base, get_db
from app.storage import models as storage_models  # noqa: F401
from app.storage.kv import KeyValueStore
from app.profile.store import ProfileStore
from app.completions.store import CompletionLog
from app.quota.policy import QuotaPolicy
from app.surveys.context import build_context

CATALOG = {
    "surveys": [
        {"id": "s1", "name": "Commute", "premium": False, "payout": 50, "currency": "KSH", "items": ["a", "b", "c"]},
        {"id": "s2", "title": "Money", "premium": False, "payout": 80, "questions": [{"id": "q1"}]},
        {"id": "s3", "name": "Premium spend", "premium": True, "payout": 250, "questions": 7},
        {"id": "s4", "premium": True},
    ]
}


class Clock:
    """Settable clock; `today` follows `now`."""

    def __init__(self, now: datetime):
        self.current = now

    def now(self) -> datetime:
        return self.current

    def today(self) -> date:
        return self.current.date()

    def advance(self, **kw):
        self.current = self.current + timedelta(**kw)


def catalog_transport(doc=None, status: int = 200, calls: list | None = None):
    def handler(request: httpx.Request) -> httpx.Response:
        if calls is not None:
            calls.append(request)
        return httpx.Response(status, json=doc if doc is not None else CATALOG)
    return httpx.MockTransport(handler)


@pytest.fixture
def engine():
    eng = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    Base.metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False)


@pytest.fixture
def db(session_factory):
    s = session_factory()
    yield s
    s.close()


@pytest.fixture
def clock():
    return Clock(datetime(2024, 5, 1, 9, 30, tzinfo=timezone.utc))


@pytest.fixture
def kv(db):
    return KeyValueStore(db, "test")


@pytest.fixture
def profiles(kv):
    return ProfileStore(kv)


@pytest.fixture
def log(kv, clock):
    return CompletionLog(kv, today=clock.today, now=clock.now)


@pytest.fixture
def policy(profiles, log):
    return QuotaPolicy(profiles, log)


@pytest.fixture
def test_settings():
    return Settings(TOASTS_ENABLED=False, CATALOG_URL="http://catalog.test/db.json")


@pytest.fixture
def client(session_factory, test_settings):
    from app.main import app

    def _get_db():
        s = session_factory()
        try:
            yield s
        finally:
            s.close()

    calls: list = []
    saved_ctx = app.state.ctx
    app.state.ctx = build_context(test_settings, transport=catalog_transport(calls=calls))
    app.dependency_overrides[get_db] = _get_db
    c = TestClient(app)
    c.catalog_calls = calls
    yield c
    app.dependency_overrides.clear()
    app.state.ctx = saved_ctx
