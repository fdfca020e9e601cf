# tests/conftest.py

import json

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool
from fastapi_cache import FastAPICache
from fastapi_cache.backends.inmemory import InMemoryBackend

from main import app
from ai.moderation import ModerationGateway
from ai.summarization import SummarizationGateway
from database import get_async_session
from dependencies import get_moderation_gateway, get_summarization_gateway
from links.models import metadata
import messages.models  # noqa: F401

TEST_DATABASE_URL = "sqlite+aiosqlite:///./test.db"
engine = create_async_engine(TEST_DATABASE_URL, poolclass=NullPool)
TestSessionLocal = async_sessionmaker(engine, expire_on_commit=False)

# Messages containing this are treated as hate speech by the fake model
BLOCKED_PHRASE = "I hate"


async def fake_llm(prompt, **kwargs):
    if prompt.startswith("Messages to summarize"):
        count = sum(1 for line in prompt.splitlines() if line.startswith("- "))
        return json.dumps({"summary": f"{count} friendly messages."})
    if BLOCKED_PHRASE in prompt:
        return json.dumps(
            {"isSafe": False, "reason": "Hate Speech: the text disparages a group of people."}
        )
    return json.dumps({"isSafe": True, "reason": "Content meets safety guidelines."})


async def override_get_async_session():
    async with TestSessionLocal() as session:
        yield session


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
async def setup_database(anyio_backend):
    async with engine.begin() as conn:
        await conn.run_sync(metadata.create_all)
    yield
    async with engine.begin() as conn:
        await conn.run_sync(metadata.drop_all)


@pytest.fixture
async def session(setup_database):
    async with TestSessionLocal() as session:
        yield session


@pytest.fixture
async def client(setup_database):
    FastAPICache.init(InMemoryBackend(), prefix="test-cache")
    app.dependency_overrides[get_async_session] = override_get_async_session
    app.dependency_overrides[get_moderation_gateway] = lambda: ModerationGateway(llm=fake_llm)
    app.dependency_overrides[get_summarization_gateway] = lambda: SummarizationGateway(
        llm=fake_llm
    )
    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as ac:
        yield ac
    app.dependency_overrides.clear()
