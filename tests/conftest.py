"""
Pytest configuration and fixtures for email service tests.
"""
import asyncio
from typing import List, Optional, Union

import pytest
import pytest_asyncio
from unittest.mock import AsyncMock, MagicMock
from sqlalchemy.ext.asyncio import AsyncSession

from email_service.core.redis_client import RedisClient
from email_service.schemas.email import EmailRequest, EmailType, RenderedEmail
from email_service.services.email_queue import EmailQueue
from email_service.services.email_templates import EmailTemplateRenderer


class FakeTransport:
    """Records every send; outcomes are consumed in order, then `default`."""

    def __init__(self, outcomes: Optional[List[Union[bool, Exception]]] = None, default: bool = True):
        self.outcomes = list(outcomes or [])
        self.default = default
        self.calls: List[RenderedEmail] = []
        self.is_configured = True

    async def send(self, email: RenderedEmail) -> bool:
        self.calls.append(email)
        outcome = self.outcomes.pop(0) if self.outcomes else self.default
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    @property
    def recipients(self) -> List[str]:
        return [email.to for email in self.calls]


class RecordingSleep:
    """
    Stand-in for asyncio.sleep that records requested delays. Backoff delays
    (>= 1s) block on `gate` when one is set, so tests can observe the queue
    mid-backoff.
    """

    def __init__(self):
        self.delays: List[float] = []
        self.gate: Optional[asyncio.Event] = None

    async def __call__(self, delay: float):
        self.delays.append(delay)
        if self.gate is not None and delay >= 1:
            await self.gate.wait()
        else:
            await asyncio.sleep(0)

    @property
    def backoff_delays(self) -> List[float]:
        return [delay for delay in self.delays if delay >= 1]


@pytest_asyncio.fixture
async def mock_session():
    """Mock database session."""
    session = AsyncMock(spec=AsyncSession)
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()
    session.refresh = AsyncMock()
    return session


@pytest.fixture
def mock_redis():
    """Mock Redis client."""
    redis_mock = MagicMock(spec=RedisClient)
    redis_mock.client = AsyncMock()
    redis_mock.get_json = AsyncMock(return_value=None)
    redis_mock.set_json = AsyncMock()
    redis_mock.delete = AsyncMock(return_value=1)
    redis_mock.queue_message = AsyncMock()
    redis_mock.peek_messages = AsyncMock(return_value=[])
    redis_mock.pop_oldest = AsyncMock(return_value=None)
    redis_mock.push_oldest = AsyncMock()
    redis_mock.get_queue_length = AsyncMock(return_value=0)
    return redis_mock


@pytest.fixture
def renderer():
    return EmailTemplateRenderer(
        brand="wagr",
        app_url="https://wagr.app",
        support_email="support@wagr.app",
        default_currency="NGN",
    )


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def fake_sleep():
    return RecordingSleep()


@pytest.fixture
def settings_lookup():
    """All email enabled."""
    lookup = MagicMock()
    lookup.is_email_enabled = AsyncMock(return_value=True)
    lookup.is_type_enabled = AsyncMock(return_value=True)
    return lookup


@pytest.fixture
def failure_hook():
    return AsyncMock()


@pytest.fixture
def email_queue(transport, renderer, settings_lookup, fake_sleep, failure_hook):
    """Queue with production tunables and a controllable clock."""
    return EmailQueue(
        transport,
        renderer,
        settings_lookup=settings_lookup,
        max_retries=3,
        retry_delay=5.0,
        pacing_delay=0.05,
        on_failure=failure_hook,
        sleep=fake_sleep,
    )


@pytest.fixture
def make_request():
    def _make(to: str = "ada@example.com", email_type: EmailType = EmailType.WELCOME, **data) -> EmailRequest:
        return EmailRequest(to=to, type=email_type, data={"recipient_name": "Ada", **data})
    return _make
