"""
Code Library Backend — FastAPI Dependencies
============================================

What:  Request-scoped dependencies shared by the route handlers.
How:   Collaborators (KV store, repository, identity provider) are built once
       by create_app() and kept on app.state; these functions hand them to
       handlers, so tests can swap them by building an app with fakes.
"""

import re
from typing import Optional

from fastapi import Header, Request

from codelibrary.exceptions import AuthenticationError
from codelibrary.services.identity_provider import IdentityProvider
from codelibrary.services.snippet_repository import SnippetRepository

_BEARER_PATTERN = re.compile(r"^Bearer\s+(\S+)$", re.IGNORECASE)


async def require_bearer_token(
    authorization: Optional[str] = Header(default=None),
) -> str:
    """
    Check that the Authorization header has the form `Bearer <token>`.

    Only the format is checked. The token is not verified against anything and
    carries no identity; it is returned so handlers may log its presence.

    Raises:
        AuthenticationError: Header missing or malformed (401).
    """
    if not authorization:
        raise AuthenticationError(context={"reason": "missing Authorization header"})
    match = _BEARER_PATTERN.match(authorization.strip())
    if match is None:
        raise AuthenticationError(context={"reason": "Authorization header is not a bearer token"})
    return match.group(1)


def get_snippet_repository(request: Request) -> SnippetRepository:
    return request.app.state.snippet_repository


def get_identity_provider(request: Request) -> IdentityProvider:
    return request.app.state.identity_provider
