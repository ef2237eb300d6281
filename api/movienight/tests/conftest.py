"""Shared pytest fixtures for API tests and database isolation."""

from __future__ import annotations

import os
import uuid

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./movienight-dev.db")

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from passlib.context import CryptContext
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

import movienight.main as main_module
from movienight.api.deps import get_db
from movienight.core import security
from movienight.core.config import settings
from movienight.core.observability import WebhookMonitor
from movienight.db.base import Base
from movienight.main import app
from movienight.services import webhook_service
from movienight.tests.utils import basic_auth_headers


@pytest.fixture(autouse=True)
def _use_plaintext_passwords(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(security, "pwd_context", CryptContext(schemes=["plaintext"]))


@pytest.fixture(autouse=True)
def monitor(monkeypatch: pytest.MonkeyPatch) -> WebhookMonitor:
    """Give every test a fresh webhook monitor so circuit state never leaks between tests."""
    fresh = WebhookMonitor(circuit_threshold=settings.webhook_circuit_threshold)
    monkeypatch.setattr(webhook_service, "webhook_monitor", fresh)
    monkeypatch.setattr(main_module, "webhook_monitor", fresh)
    return fresh


@pytest.fixture(autouse=True)
def _no_webhooks(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(settings, "chat_webhook_url", None)
    monkeypatch.setattr(settings, "log_movie_webhook_url", None)
    monkeypatch.setattr(settings, "block_recommendation_webhook_url", None)


@pytest_asyncio.fixture()
async def session(tmp_path) -> AsyncSession:
    database_url = settings.test_database_url or f"sqlite+aiosqlite:///{tmp_path / 'movienight.db'}"
    url = make_url(database_url)
    schema_name: str | None = None
    engine = create_async_engine(database_url, future=True)
    if url.drivername.startswith("postgresql"):
        # Isolate each test run in its own schema for parallel-friendly cleanup.
        schema_name = f"test_{uuid.uuid4().hex}"
        engine = engine.execution_options(schema_translate_map={None: schema_name})
    async with engine.begin() as conn:
        if schema_name:
            await conn.exec_driver_sql(f'CREATE SCHEMA IF NOT EXISTS "{schema_name}"')
        await conn.run_sync(Base.metadata.create_all)
    TestingSession = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)
    try:
        async with TestingSession() as session:
            yield session
    finally:
        async with engine.begin() as conn:
            if schema_name:
                await conn.exec_driver_sql(f'DROP SCHEMA IF EXISTS "{schema_name}" CASCADE')
            else:
                await conn.run_sync(Base.metadata.drop_all)
        await engine.dispose()


@pytest_asyncio.fixture()
async def client(session: AsyncSession) -> AsyncClient:
    async def _get_test_db():
        yield session

    app.dependency_overrides[get_db] = _get_test_db
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as async_client:
        yield async_client
    app.dependency_overrides.pop(get_db, None)


@pytest_asyncio.fixture()
async def auth_client(session: AsyncSession) -> AsyncClient:
    """Client that sends the configured basic-auth credentials on every request."""

    async def _get_test_db():
        yield session

    app.dependency_overrides[get_db] = _get_test_db
    transport = ASGITransport(app=app)
    async with AsyncClient(
        transport=transport, base_url="http://testserver", headers=basic_auth_headers()
    ) as async_client:
        yield async_client
    app.dependency_overrides.pop(get_db, None)
