"""
Code Library Backend — Snippet Repository (Business Logic)
===========================================================

What:  Domain operations on snippets (create, get_one, get_all, update, delete)
       built on the KVStore port.
How:   Each snippet is one JSON record under the key `snippet:{id}`. The
       repository owns id generation, default-field population, tag
       normalization, avatar derivation and the merge-on-update rules.
Who:   Called by the snippet route handlers.

Error Handling Strategy:
    - Business-rule violations raise ValidationError (400).
    - Unknown ids raise NotFoundError (404).
    - Store faults propagate as StorageUnavailableError from the adapter.
    Nothing is retried here.

Concurrency:
    No optimistic concurrency control. update() is a read-merge-write against
    the store; two concurrent updates of the same id can both read the same
    version, and whichever set() the store applies last wins. Each write
    replaces the whole record, so fields from two requests are never mixed.
    Adding a version field plus a conditional write to KVStore is the
    extension point if stronger guarantees are ever needed.

Authorization:
    The repository does not compare the caller to a snippet's user_id. Any
    caller that passes the bearer-token format check can update or delete any
    snippet. user_id is display metadata only.
"""

import logging
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Dict, List, Optional
from urllib.parse import quote

from codelibrary.config import settings
from codelibrary.exceptions import NotFoundError, ValidationError
from codelibrary.schemas.snippet import Category, Snippet, SnippetCreate, SnippetUpdate
from codelibrary.storage.base import KVStore

logger = logging.getLogger(__name__)

SNIPPET_KEY_PREFIX = "snippet:"
DEFAULT_USER_NAME = "Anonymous"


class MergePolicy(str, Enum):
    """How a field in an update request is merged into the stored record."""

    # Replaced only when the supplied value is non-empty; "" means "not supplied".
    NON_EMPTY = "non_empty"
    # Replaced whenever the field is present (and not null), including "" / [].
    PRESENT = "present"


# title/code/category cannot be cleared through an update; description, tags
# and use_case can.
UPDATE_POLICIES: Dict[str, MergePolicy] = {
    "title": MergePolicy.NON_EMPTY,
    "description": MergePolicy.PRESENT,
    "code": MergePolicy.NON_EMPTY,
    "category": MergePolicy.NON_EMPTY,
    "tags": MergePolicy.PRESENT,
    "use_case": MergePolicy.PRESENT,
}


def utc_now() -> datetime:
    """Current UTC time truncated to milliseconds (the stored precision)."""
    now = datetime.now(timezone.utc)
    return now.replace(microsecond=(now.microsecond // 1000) * 1000)


def snippet_key(snippet_id: str) -> str:
    return f"{SNIPPET_KEY_PREFIX}{snippet_id}"


def normalize_tags(tags: Optional[List[str]]) -> List[str]:
    """Trim every tag and drop the empty ones, keeping order."""
    if not tags:
        return []
    return [tag.strip() for tag in tags if tag and tag.strip()]


def avatar_url_for(user_name: Optional[str], template: Optional[str] = None) -> Optional[str]:
    """
    Derive the avatar URL for a display name, or None when there is no name.

    Pure function of its inputs; no network call is made.
    """
    if not user_name:
        return None
    template = template or settings.avatar_url_template
    return template.format(seed=quote(user_name, safe=""))


def validate_category(value: str) -> Category:
    try:
        return Category(value)
    except ValueError:
        raise ValidationError(
            message=f"Category must be one of: {', '.join(Category.values())}",
            field="category",
            context={"category": value},
        )


class SnippetRepository:
    """
    Snippet persistence on top of a key-value store.

    Args:
        store:   KVStore adapter (in-memory for tests, SQL in production).
        clock:   Returns "now"; injectable for deterministic tests.
        avatar_url_template: Overrides settings.avatar_url_template.
    """

    def __init__(
        self,
        store: KVStore,
        clock: Callable[[], datetime] = utc_now,
        avatar_url_template: Optional[str] = None,
    ):
        self.store = store
        self.clock = clock
        self.avatar_url_template = avatar_url_template or settings.avatar_url_template

    async def create(self, data: SnippetCreate) -> Snippet:
        """
        Validate, populate defaults and persist a new snippet.

        Raises:
            ValidationError: title, code or category missing/empty, or unknown category.
        """
        if not data.title or not data.code or not data.category:
            missing = [
                name for name in ("title", "code", "category") if not getattr(data, name)
            ]
            raise ValidationError(
                message="Title, code, and category are required",
                context={"missing": missing},
            )
        category = validate_category(data.category)

        now = self.clock()
        snippet = Snippet(
            id=str(uuid.uuid4()),
            title=data.title,
            description=data.description or "",
            code=data.code,
            category=category,
            tags=normalize_tags(data.tags),
            use_case=data.use_case or "",
            user_id=data.user_id or None,
            user_name=data.user_name or DEFAULT_USER_NAME,
            user_avatar=avatar_url_for(data.user_name, self.avatar_url_template),
            created_at=now,
            updated_at=now,
        )

        await self.store.set(snippet_key(snippet.id), snippet.to_record())
        logger.info("Snippet created: %s (category=%s)", snippet.id, snippet.category.value)
        return snippet

    async def get_one(self, snippet_id: str) -> Snippet:
        """
        Raises:
            NotFoundError: No snippet with this id.
        """
        record = await self.store.get(snippet_key(snippet_id))
        if record is None:
            raise NotFoundError(resource="snippet", resource_id=snippet_id)
        return Snippet.model_validate(record)

    async def get_all(self) -> List[Snippet]:
        """All snippets in store order; the client sorts and filters."""
        records = await self.store.scan_by_prefix(SNIPPET_KEY_PREFIX)
        return [Snippet.model_validate(record) for record in records]

    async def update(self, snippet_id: str, changes: SnippetUpdate) -> Snippet:
        """
        Merge `changes` into the stored snippet following UPDATE_POLICIES.

        id, user_id, user_name, user_avatar and created_at are never modified.
        Never creates a record.

        Raises:
            NotFoundError: No snippet with this id.
            ValidationError: A supplied category is not a known Category.
        """
        key = snippet_key(snippet_id)
        existing = await self.store.get(key)
        if existing is None:
            raise NotFoundError(resource="snippet", resource_id=snippet_id)

        current = Snippet.model_validate(existing)
        merged = current.model_dump()
        applied = []
        for field, policy in UPDATE_POLICIES.items():
            if field not in changes.model_fields_set:
                continue
            value = getattr(changes, field)
            if value is None:
                continue
            if policy is MergePolicy.NON_EMPTY and not value:
                continue
            if field == "category":
                value = validate_category(value)
            elif field == "tags":
                value = normalize_tags(value)
            merged[field] = value
            applied.append(field)

        merged["updated_at"] = max(self.clock(), current.created_at)
        snippet = Snippet.model_validate(merged)

        # Race window: another update of the same id may have been written since
        # the get() above. This set() overwrites it (last write wins).
        await self.store.set(key, snippet.to_record())
        logger.info("Snippet updated: %s (fields=%s)", snippet_id, ",".join(applied) or "-")
        return snippet

    async def delete(self, snippet_id: str) -> None:
        """
        Raises:
            NotFoundError: No snippet with this id.
        """
        key = snippet_key(snippet_id)
        if await self.store.get(key) is None:
            raise NotFoundError(resource="snippet", resource_id=snippet_id)
        await self.store.delete(key)
        logger.info("Snippet deleted: %s", snippet_id)
