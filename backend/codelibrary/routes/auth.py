"""
Code Library Backend — Sign-up Route
=====================================

What:  POST /auth/signup creates a confirmed account at the identity provider.
How:   Checks that email, password and name are present, then forwards them;
       the name goes into the user metadata. The provider's user object is
       returned unchanged.

Status mapping:
    missing field            → 400 "Email, password, and name are required"
    provider rejected it     → 400 with the provider's message
    anything else            → 500 "Failed to sign up"
"""

import logging

from fastapi import APIRouter, Depends

from codelibrary.dependencies import get_identity_provider, require_bearer_token
from codelibrary.exceptions import ValidationError, failure_boundary
from codelibrary.schemas.snippet import ErrorResponse, SignupRequest, SignupResponse
from codelibrary.services.identity_provider import IdentityProvider

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/auth",
    tags=["Auth"],
    dependencies=[Depends(require_bearer_token)],
)


@router.post(
    "/signup",
    response_model=SignupResponse,
    responses={
        400: {"description": "Missing fields or rejected by the provider", "model": ErrorResponse},
        401: {"description": "Missing or malformed bearer token", "model": ErrorResponse},
        500: {"description": "Server error", "model": ErrorResponse},
    },
    summary="Create a user account",
)
async def signup(
    payload: SignupRequest,
    provider: IdentityProvider = Depends(get_identity_provider),
) -> SignupResponse:
    with failure_boundary("Failed to sign up"):
        if not payload.email or not payload.password or not payload.name:
            raise ValidationError(message="Email, password, and name are required")
        user = await provider.create_user(
            email=payload.email,
            password=payload.password,
            metadata={"name": payload.name},
        )
    return SignupResponse(user=user)
