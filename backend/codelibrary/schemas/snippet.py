"""
Code Library Backend — Pydantic Request/Response Schemas
=========================================================

What:  Pydantic models defining the API contract with the browser client.
How:   Python attributes are snake_case; the wire format is camelCase
       (useCase, userId, userName, userAvatar, createdAt, updatedAt) through an
       alias generator. FastAPI serializes responses by alias.
Who:   Used by route handlers for bodies and by the SnippetRepository for the
       stored record shape.

Request models keep every field optional on purpose: presence and emptiness
rules (required on create, "empty means not supplied" on update) are business
rules enforced by the repository, which reports them as ValidationError (400).
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer
from pydantic.alias_generators import to_camel


class Category(str, Enum):
    """Fixed set of snippet categories offered by the client."""

    UI_COMPONENTS = "UI Components"
    FUNCTIONS = "Functions"
    ANIMATION = "Animation"
    GETX = "GetX"
    STATE_MANAGEMENT = "State Management"
    NAVIGATION = "Navigation"
    WIDGETS = "Widgets"
    LAYOUTS = "Layouts"
    OTHER = "Other"

    @classmethod
    def values(cls) -> List[str]:
        return [member.value for member in cls]


def format_timestamp(value: datetime) -> str:
    """UTC ISO-8601 with millisecond precision and a Z suffix."""
    return value.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class CamelModel(BaseModel):
    """Base for wire models: camelCase aliases, snake_case attributes."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


# ══════════════════════════════════════════════════════════════════════════
# Stored Record
# ══════════════════════════════════════════════════════════════════════════


class Snippet(CamelModel):
    """
    A persisted code snippet, exactly as stored under `snippet:{id}`.

    Invariants (maintained by SnippetRepository):
        - id and created_at never change after creation
        - updated_at >= created_at
        - category is a Category member
        - tags contain only non-empty trimmed strings
    """

    id: str = Field(description="Server-generated identifier")
    title: str
    description: str = ""
    code: str
    category: Category
    tags: List[str] = Field(default_factory=list)
    use_case: str = ""
    user_id: Optional[str] = None
    user_name: str = "Anonymous"
    user_avatar: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    @field_serializer("created_at", "updated_at")
    def _serialize_timestamp(self, value: datetime) -> str:
        return format_timestamp(value)

    def to_record(self) -> Dict[str, Any]:
        """JSON-ready dict with wire (camelCase) keys, as written to the KV store."""
        return self.model_dump(mode="json", by_alias=True)


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class SnippetCreate(CamelModel):
    """
    Body of POST /snippets.

    user_id / user_name are caller-supplied identity metadata; the core does
    not verify them.
    """

    title: Optional[str] = None
    description: Optional[str] = None
    code: Optional[str] = None
    category: Optional[str] = None
    tags: Optional[List[str]] = None
    use_case: Optional[str] = None
    user_id: Optional[str] = None
    user_name: Optional[str] = None


class SnippetUpdate(CamelModel):
    """
    Body of PUT /snippets/{id}.

    Only the editable fields exist here; identity and timestamps cannot be
    changed through an update. Presence is read from `model_fields_set`.
    """

    title: Optional[str] = None
    description: Optional[str] = None
    code: Optional[str] = None
    category: Optional[str] = None
    tags: Optional[List[str]] = None
    use_case: Optional[str] = None


class SignupRequest(BaseModel):
    """Body of POST /auth/signup. Presence is checked by the route (400)."""

    email: Optional[str] = None
    password: Optional[str] = None
    name: Optional[str] = None


# ══════════════════════════════════════════════════════════════════════════
# Response Envelopes
# ══════════════════════════════════════════════════════════════════════════


class SnippetResponse(BaseModel):
    """Envelope for single-item endpoints: {"snippet": {...}}."""

    snippet: Snippet


class SnippetListResponse(BaseModel):
    """Envelope for GET /snippets: {"snippets": [...]}. Order is unspecified."""

    snippets: List[Snippet]


class DeleteResponse(BaseModel):
    success: bool = True


class SignupResponse(BaseModel):
    """The identity provider's user object, passed through unchanged."""

    user: Dict[str, Any]


class ErrorResponse(BaseModel):
    """
    Error envelope for every failed request: {"error": "<message>"}.

    The message is always safe to show to users; internal details are only
    logged. Correlate with server logs through the X-Request-ID header.
    """

    error: str = Field(description="Human-readable error description")


class HealthResponse(BaseModel):
    status: str = Field(default="ok", description="Static liveness status")
