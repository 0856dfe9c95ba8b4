"""
Code Library Backend — Identity Provider Client Tests
======================================================

What:  Tests for SupabaseIdentityProvider request shape and error translation.
How:   httpx.MockTransport answers in-process; nothing leaves the test.
"""

import json

import httpx
import pytest

from codelibrary.config import Settings
from codelibrary.exceptions import IdentityProviderError, UpstreamAuthError
from codelibrary.services.identity_provider import SupabaseIdentityProvider

BASE_URL = "https://project.supabase.test/"
SERVICE_KEY = "service-role-key"


def _provider(handler) -> SupabaseIdentityProvider:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return SupabaseIdentityProvider(BASE_URL, SERVICE_KEY, client=client)


class TestSupabaseIdentityProvider:

    @pytest.mark.asyncio
    async def test_create_user_request_shape(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["method"] = request.method
            seen["url"] = str(request.url)
            seen["headers"] = request.headers
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"id": "user-1", "email": "ada@example.com"})

        provider = _provider(handler)
        user = await provider.create_user("ada@example.com", "s3cret!", {"name": "Ada"})
        await provider.aclose()

        assert user == {"id": "user-1", "email": "ada@example.com"}
        assert seen["method"] == "POST"
        assert seen["url"] == "https://project.supabase.test/auth/v1/admin/users"
        assert seen["headers"]["apikey"] == SERVICE_KEY
        assert seen["headers"]["authorization"] == f"Bearer {SERVICE_KEY}"
        assert seen["body"] == {
            "email": "ada@example.com",
            "password": "s3cret!",
            "user_metadata": {"name": "Ada"},
            "email_confirm": True,
        }

    @pytest.mark.asyncio
    async def test_wrapped_user_is_unwrapped(self):
        provider = _provider(lambda request: httpx.Response(200, json={"user": {"id": "user-2"}}))
        assert await provider.create_user("a@b.c", "pw", {"name": "A"}) == {"id": "user-2"}

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "body, expected",
        [
            ({"msg": "A user with this email address has already been registered"},
             "A user with this email address has already been registered"),
            ({"message": "Password should be at least 6 characters"},
             "Password should be at least 6 characters"),
            ({"error": "invalid_request", "error_description": "Email is invalid"},
             "Email is invalid"),
        ],
    )
    async def test_rejection_carries_provider_message(self, body, expected):
        provider = _provider(lambda request: httpx.Response(422, json=body))

        with pytest.raises(UpstreamAuthError) as exc_info:
            await provider.create_user("a@b.c", "pw", {"name": "A"})

        assert exc_info.value.message == expected
        assert exc_info.value.status_code == 422

    @pytest.mark.asyncio
    async def test_rejection_with_plain_text_body(self):
        provider = _provider(lambda request: httpx.Response(400, text="bad request"))
        with pytest.raises(UpstreamAuthError) as exc_info:
            await provider.create_user("a@b.c", "pw", {"name": "A"})
        assert exc_info.value.message == "bad request"

    @pytest.mark.asyncio
    async def test_transport_failure(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        provider = _provider(handler)
        with pytest.raises(IdentityProviderError):
            await provider.create_user("a@b.c", "pw", {"name": "A"})

    @pytest.mark.asyncio
    async def test_missing_configuration(self):
        provider = SupabaseIdentityProvider.from_settings(
            Settings(identity_provider_url="", identity_service_role_key="")
        )
        with pytest.raises(IdentityProviderError):
            await provider.create_user("a@b.c", "pw", {"name": "A"})

    @pytest.mark.asyncio
    async def test_aclose_releases_client(self):
        provider = _provider(lambda request: httpx.Response(200, json={"id": "x"}))
        await provider.create_user("a@b.c", "pw", {"name": "A"})
        await provider.aclose()
        await provider.aclose()
