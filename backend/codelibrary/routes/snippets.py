"""
Code Library Backend — Snippet Route Handlers
==============================================

What:  CRUD endpoints for code snippets.
How:   Each handler runs its repository call inside failure_boundary, so a
       client-correctable error keeps its status (400/404) and any other
       fault becomes a 500 with the operation's generic message.
Who:   Called by the browser client; every route requires a bearer token.
"""

import logging

from fastapi import APIRouter, Depends

from codelibrary.dependencies import get_snippet_repository, require_bearer_token
from codelibrary.exceptions import failure_boundary
from codelibrary.schemas.snippet import (
    DeleteResponse,
    ErrorResponse,
    SnippetCreate,
    SnippetListResponse,
    SnippetResponse,
    SnippetUpdate,
)
from codelibrary.services.snippet_repository import SnippetRepository

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/snippets",
    tags=["Snippets"],
    dependencies=[Depends(require_bearer_token)],
    responses={
        401: {"description": "Missing or malformed bearer token", "model": ErrorResponse},
        500: {"description": "Server error", "model": ErrorResponse},
    },
)


@router.get(
    "",
    response_model=SnippetListResponse,
    summary="List all snippets",
    description="Returns every stored snippet. Order is unspecified; the client sorts and filters.",
)
async def list_snippets(
    repository: SnippetRepository = Depends(get_snippet_repository),
) -> SnippetListResponse:
    with failure_boundary("Failed to fetch snippets"):
        snippets = await repository.get_all()
    return SnippetListResponse(snippets=snippets)


@router.get(
    "/{snippet_id}",
    response_model=SnippetResponse,
    responses={404: {"description": "Snippet not found", "model": ErrorResponse}},
    summary="Get a single snippet",
)
async def get_snippet(
    snippet_id: str,
    repository: SnippetRepository = Depends(get_snippet_repository),
) -> SnippetResponse:
    with failure_boundary("Failed to fetch snippet"):
        snippet = await repository.get_one(snippet_id)
    return SnippetResponse(snippet=snippet)


@router.post(
    "",
    response_model=SnippetResponse,
    responses={400: {"description": "Missing or invalid fields", "model": ErrorResponse}},
    summary="Create a snippet",
    description=(
        "title, code and category are required. The server assigns id, timestamps "
        "and the avatar URL; userName defaults to 'Anonymous'."
    ),
)
async def create_snippet(
    payload: SnippetCreate,
    repository: SnippetRepository = Depends(get_snippet_repository),
) -> SnippetResponse:
    with failure_boundary("Failed to create snippet"):
        snippet = await repository.create(payload)
    return SnippetResponse(snippet=snippet)


@router.put(
    "/{snippet_id}",
    response_model=SnippetResponse,
    responses={
        400: {"description": "Invalid category", "model": ErrorResponse},
        404: {"description": "Snippet not found", "model": ErrorResponse},
    },
    summary="Partially update a snippet",
    description=(
        "Empty title, code or category leave the stored value unchanged; "
        "description, tags and useCase may be cleared."
    ),
)
async def update_snippet(
    snippet_id: str,
    payload: SnippetUpdate,
    repository: SnippetRepository = Depends(get_snippet_repository),
) -> SnippetResponse:
    with failure_boundary("Failed to update snippet"):
        snippet = await repository.update(snippet_id, payload)
    return SnippetResponse(snippet=snippet)


@router.delete(
    "/{snippet_id}",
    response_model=DeleteResponse,
    responses={404: {"description": "Snippet not found", "model": ErrorResponse}},
    summary="Delete a snippet",
)
async def delete_snippet(
    snippet_id: str,
    repository: SnippetRepository = Depends(get_snippet_repository),
) -> DeleteResponse:
    with failure_boundary("Failed to delete snippet"):
        await repository.delete(snippet_id)
    return DeleteResponse(success=True)
