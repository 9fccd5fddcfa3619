"""Shared fixtures: a fresh SQLite database, fake Redis and a fake OAuth provider."""

import asyncio
import os
import tempfile
from pathlib import Path

_TMP_DIR = Path(tempfile.mkdtemp(prefix="jotter-tests-"))
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_TMP_DIR / 'test.db'}"
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("PUBLIC_BASE_URL", "https://jotter.test")

import pytest
from fakeredis import aioredis as fake_aioredis
from fastapi import HTTPException, status
from fastapi.testclient import TestClient
from sqlalchemy import delete

from jotter import models
from jotter.core import redis_client as redis_module
from jotter.core.database import AsyncSessionLocal, Base, engine
from jotter.core.identity import get_identity_provider
from jotter.schemas.auth import ProviderProfile
from main import app


class FakeIdentityProvider:
    """Accepts only the provider tokens registered by the test."""

    def __init__(self):
        self.profiles = {}

    async def verify(self, provider_token):
        profile = self.profiles.get(provider_token)
        if profile is None:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid provider token"
            )
        return profile


async def _reset_database():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)


async def _delete_user(user_id):
    async with AsyncSessionLocal() as session:
        await session.execute(delete(models.User).where(models.User.id == user_id))
        await session.commit()


def delete_user(user_id):
    asyncio.run(_delete_user(user_id))


@pytest.fixture
def identity_provider():
    return FakeIdentityProvider()


@pytest.fixture
def client(monkeypatch, identity_provider):
    asyncio.run(_reset_database())
    monkeypatch.setattr(
        redis_module.redis,
        "from_url",
        lambda *args, **kwargs: fake_aioredis.FakeRedis(decode_responses=True),
    )
    app.dependency_overrides[get_identity_provider] = lambda: identity_provider
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def login(client, identity_provider):
    """Sign a user in and return the headers authenticating as them."""

    def _login(email, name="Test User", picture=None):
        provider_token = f"provider-token-{email}"
        identity_provider.profiles[provider_token] = ProviderProfile(email=email, name=name, picture=picture)
        response = client.post("/api/auth/login", json={"provider_token": provider_token})
        assert response.status_code == 200, response.text
        return {"Authorization": f"Bearer {response.json()['access_token']}"}

    return _login


@pytest.fixture
def remove_user(client):
    """Delete a user row behind the API's back."""
    return delete_user
