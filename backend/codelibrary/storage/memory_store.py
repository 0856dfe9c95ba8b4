"""
In-memory key-value adapter.

Process-local and volatile: everything is lost on restart. Used for local
development (KV_BACKEND=memory) and as the test double for the KVStore port.
Values are deep-copied on the way in and out so callers never share mutable
state with the store.
"""

import copy
import logging
from typing import Any, Dict, List, Optional

from codelibrary.storage.base import KVStore

logger = logging.getLogger(__name__)


class InMemoryKVStore(KVStore):
    """Dictionary-backed KVStore."""

    def __init__(self) -> None:
        self._data: Dict[str, Any] = {}

    async def get(self, key: str) -> Optional[Any]:
        value = self._data.get(key)
        return copy.deepcopy(value) if value is not None else None

    async def set(self, key: str, value: Any) -> None:
        self._data[key] = copy.deepcopy(value)

    async def delete(self, key: str) -> None:
        self._data.pop(key, None)

    async def scan_by_prefix(self, prefix: str) -> List[Any]:
        # Snapshot first: a concurrent set() during iteration must not change this scan.
        items = list(self._data.items())
        return [copy.deepcopy(value) for key, value in items if key.startswith(prefix)]

    def __len__(self) -> int:
        return len(self._data)
