from datetime import date
from unittest.mock import AsyncMock, Mock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from claimbot.database import Base
from claimbot.handlers import build_registry
from claimbot.services.idempotency_service import IdempotencyGuard
from claimbot.services.pipeline import WebhookPipeline
from claimbot.services.rate_limit_service import RateLimiter
from claimbot.services.session_service import SessionStore
from claimbot.services.state_machine import ConversationEngine, ExternalContext, HandlerContext
from claimbot.services.verification_service import VerificationCheck

TODAY = date(2024, 11, 20)
SENDER = "+447700900123"


class FakeRedis:
    """In-memory stand-in for the redis.asyncio commands the services use."""

    def __init__(self):
        self.store = {}
        self.ttls = {}
        self.fail = False
        self.fail_ttl = False
        self.fail_once = set()
        self.calls = []

    def _check(self, command):
        self.calls.append(command)
        if command in self.fail_once:
            self.fail_once.discard(command)
            raise RedisConnectionError("connection reset")
        if self.fail:
            raise RedisConnectionError("connection refused")

    async def get(self, key):
        self._check("get")
        return self.store.get(key)

    async def set(self, key, value, ex=None, nx=False):
        self._check("set_nx" if nx else "set")
        if nx and key in self.store:
            return None
        self.store[key] = value
        if ex is not None:
            self.ttls[key] = ex
        return True

    async def setex(self, key, seconds, value):
        self._check("setex")
        self.store[key] = value
        self.ttls[key] = seconds
        return True

    async def incr(self, key):
        self._check("incr")
        value = int(self.store.get(key, 0)) + 1
        self.store[key] = str(value)
        return value

    async def expire(self, key, seconds):
        self._check("expire")
        if key not in self.store:
            return False
        self.ttls[key] = seconds
        return True

    async def ttl(self, key):
        self._check("ttl")
        if self.fail_ttl:
            raise RedisConnectionError("connection refused")
        if key not in self.store:
            return -2
        return self.ttls.get(key, -1)

    async def delete(self, *keys):
        self._check("delete")
        removed = 0
        for key in keys:
            if self.store.pop(key, None) is not None:
                removed += 1
            self.ttls.pop(key, None)
        return removed


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def db_engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return sessionmaker(bind=db_engine, autoflush=False, expire_on_commit=False)


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def verification():
    client = Mock()
    client.start = AsyncMock(return_value="pending")
    client.check = AsyncMock(return_value=VerificationCheck(approved=True, status="approved"))
    return client


@pytest.fixture
def stations():
    client = Mock()
    client.resolve = AsyncMock(return_value=None)
    return client


@pytest.fixture
def journeys():
    client = Mock()
    client.find_routes = AsyncMock(return_value=[])
    return client


@pytest.fixture
def users():
    repository = Mock()
    repository.find_by_phone.return_value = None
    return repository


@pytest.fixture
def make_context(users, verification, stations, journeys):
    """Build a HandlerContext for calling a transition function directly."""

    def _make(state, text="", data=None, media=None):
        external = ExternalContext(
            phone_number=SENDER,
            message_sid="SM-test",
            correlation_id="corr-test",
            users=users,
            verification=verification,
            stations=stations,
            journeys=journeys,
            terms_url="https://railrepay.co.uk/terms",
            media=media or [],
            today=TODAY,
        )
        return HandlerContext(current_state=state, input_text=text, state_data=dict(data or {}), external=external)

    return _make


@pytest.fixture
def pipeline(fake_redis, session_factory, verification, stations, journeys):
    return WebhookPipeline(
        engine=ConversationEngine(build_registry()),
        idempotency=IdempotencyGuard(fake_redis),
        rate_limiter=RateLimiter(fake_redis, clock=lambda: 1_700_000_000_000),
        sessions=SessionStore(fake_redis),
        session_factory=session_factory,
        verification=verification,
        stations=stations,
        journeys=journeys,
        auth_token="test-auth-token",
        terms_url="https://railrepay.co.uk/terms",
        signature_validation_enabled=False,
        today=lambda: TODAY,
    )
