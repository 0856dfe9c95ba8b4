"""
Code Library Backend — Identity Provider Client
================================================

What:  Creates user accounts for POST /auth/signup.
How:   IdentityProvider is the abstract contract; SupabaseIdentityProvider
       calls the GoTrue admin endpoint (POST {url}/auth/v1/admin/users) with
       the service-role key, marking the email as already confirmed.
Who:   Injected into the signup route through app.state.

Error Translation:
    provider answered non-2xx      → UpstreamAuthError (provider message, 400)
    missing URL / key              → IdentityProviderError (500)
    timeout / connection failure   → IdentityProviderError (500)

No retries: a sign-up is not idempotent from the caller's point of view.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import httpx

from codelibrary.config import Settings, settings as default_settings
from codelibrary.exceptions import IdentityProviderError, UpstreamAuthError

logger = logging.getLogger(__name__)

ADMIN_USERS_PATH = "/auth/v1/admin/users"

# GoTrue has used several keys for its error text over time.
_ERROR_MESSAGE_KEYS = ("msg", "message", "error_description", "error")


class IdentityProvider(ABC):
    """Contract for the external user directory used by sign-up."""

    @abstractmethod
    async def create_user(
        self, email: str, password: str, metadata: Dict[str, Any]
    ) -> Dict[str, Any]:
        """
        Create a confirmed user and return the provider's user object.

        Raises:
            UpstreamAuthError:     The provider rejected the request.
            IdentityProviderError: The provider could not be reached.
        """
        ...

    async def aclose(self) -> None:
        """Release network resources. No-op by default."""


class SupabaseIdentityProvider(IdentityProvider):
    """
    Supabase Auth (GoTrue) admin API client.

    The httpx.AsyncClient is created lazily and reused across requests; pass
    `client` to inject one (tests use httpx.MockTransport).
    """

    def __init__(
        self,
        base_url: str,
        service_role_key: str,
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.service_role_key = service_role_key
        self.timeout = timeout
        self._client = client

    @classmethod
    def from_settings(cls, cfg: Optional[Settings] = None) -> "SupabaseIdentityProvider":
        cfg = cfg or default_settings
        return cls(
            base_url=cfg.identity_provider_url,
            service_role_key=cfg.identity_service_role_key,
            timeout=cfg.identity_timeout_seconds,
        )

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def create_user(
        self, email: str, password: str, metadata: Dict[str, Any]
    ) -> Dict[str, Any]:
        if not self.base_url or not self.service_role_key:
            raise IdentityProviderError(
                context={"reason": "identity provider URL or service role key not configured"},
            )

        payload = {
            "email": email,
            "password": password,
            "user_metadata": metadata,
            "email_confirm": True,
        }
        headers = {
            "apikey": self.service_role_key,
            "Authorization": f"Bearer {self.service_role_key}",
        }

        try:
            response = await self._get_client().post(
                f"{self.base_url}{ADMIN_USERS_PATH}",
                json=payload,
                headers=headers,
            )
        except httpx.HTTPError as e:
            logger.error("Identity provider request failed: %s: %s", type(e).__name__, str(e))
            raise IdentityProviderError(
                context={"error_type": type(e).__name__},
            ) from e

        if response.is_error:
            message = self._error_message(response)
            logger.warning(
                "Identity provider rejected sign-up (status=%d): %s",
                response.status_code,
                message,
            )
            raise UpstreamAuthError(message=message, status_code=response.status_code)

        try:
            body = response.json()
        except ValueError as e:
            raise IdentityProviderError(
                context={"reason": "provider returned a non-JSON body"},
            ) from e

        # Older GoTrue releases wrap the user in {"user": {...}}.
        user = body.get("user", body) if isinstance(body, dict) else body
        logger.info("User created via identity provider: %s", user.get("id", "?"))
        return user

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            for key in _ERROR_MESSAGE_KEYS:
                value = body.get(key)
                if isinstance(value, str) and value:
                    return value
        return response.text or f"Identity provider returned status {response.status_code}"
