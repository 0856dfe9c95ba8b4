"""
Code Library Backend — Test Configuration (conftest.py)
========================================================

What:  Shared pytest fixtures for the test suite.
How:   Environment variables are set before any codelibrary import so the
       settings singleton never points at a real database or identity provider.

Fixture Hierarchy (all function-scoped):
    ├── kv_store:          fresh InMemoryKVStore
    ├── frozen_clock:      controllable clock for deterministic timestamps
    ├── repository:        SnippetRepository over kv_store + frozen_clock
    ├── identity_provider: FakeIdentityProvider recording created users
    ├── test_client:       httpx AsyncClient talking to create_app(...) in-process
    └── auth_headers:      a well-formed bearer header
"""

import os
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport


# ══════════════════════════════════════════════════════════════════════════
# Environment Setup
# ══════════════════════════════════════════════════════════════════════════

os.environ["KV_BACKEND"] = "memory"
os.environ["API_PREFIX"] = ""
os.environ["IDENTITY_PROVIDER_URL"] = ""
os.environ["IDENTITY_SERVICE_ROLE_KEY"] = ""
os.environ["LOG_LEVEL"] = "WARNING"

from codelibrary.exceptions import UpstreamAuthError  # noqa: E402
from codelibrary.services.identity_provider import IdentityProvider  # noqa: E402
from codelibrary.services.snippet_repository import SnippetRepository  # noqa: E402
from codelibrary.storage.memory_store import InMemoryKVStore  # noqa: E402

AVATAR_TEMPLATE = "https://avatars.test/svg?seed={seed}"


# ══════════════════════════════════════════════════════════════════════════
# Test Doubles
# ══════════════════════════════════════════════════════════════════════════

class FrozenClock:
    """Returns a fixed instant until advanced."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class FakeIdentityProvider(IdentityProvider):
    """
    In-process stand-in for the identity provider.

    Set `error` to make the next create_user() raise it.
    """

    def __init__(self) -> None:
        self.created: List[Dict[str, Any]] = []
        self.error: Optional[Exception] = None
        self.closed = False

    async def create_user(self, email, password, metadata):
        if self.error is not None:
            raise self.error
        if any(user["email"] == email for user in self.created):
            raise UpstreamAuthError(
                message="A user with this email address has already been registered",
                status_code=422,
            )
        user = {
            "id": f"user-{len(self.created) + 1}",
            "email": email,
            "user_metadata": dict(metadata),
            "email_confirmed_at": "2026-01-01T00:00:00Z",
        }
        self.created.append(user)
        return user

    async def aclose(self) -> None:
        self.closed = True


# ══════════════════════════════════════════════════════════════════════════
# Function-Scoped Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def kv_store() -> InMemoryKVStore:
    return InMemoryKVStore()


@pytest.fixture
def frozen_clock() -> FrozenClock:
    return FrozenClock(datetime(2026, 3, 1, 12, 0, 0, 123000, tzinfo=timezone.utc))


@pytest.fixture
def repository(kv_store, frozen_clock) -> SnippetRepository:
    return SnippetRepository(kv_store, clock=frozen_clock, avatar_url_template=AVATAR_TEMPLATE)


@pytest.fixture
def identity_provider() -> FakeIdentityProvider:
    return FakeIdentityProvider()


@pytest.fixture
def auth_headers() -> Dict[str, str]:
    return {"Authorization": "Bearer test-anon-key"}


@pytest_asyncio.fixture
async def test_client(kv_store, identity_provider):
    """
    HTTPX AsyncClient bound to a fresh app instance.

    Usage:
        async def test_health(test_client):
            response = await test_client.get("/health")
            assert response.status_code == 200
    """
    from codelibrary.main import create_app

    app = create_app(kv_store=kv_store, identity_provider=identity_provider)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
