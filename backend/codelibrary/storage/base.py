"""
Code Library Backend — Abstract Key-Value Store Interface
==========================================================

What:  Abstract base class defining the contract every key-value adapter meets.
How:   Concrete adapters (InMemoryKVStore, SQLKVStore) inherit from KVStore.
Who:   Called by the SnippetRepository; selected by storage.build_kv_store().

Contract:
    - Keys are opaque strings; values are JSON-serializable structures.
    - Adapters never inspect values.
    - Any fault in the underlying store surfaces as StorageUnavailableError.
    - No retries. Retry policy belongs to the caller/operator.
    - Writes are last-write-wins per key. There is no compare-and-set primitive.
"""

from abc import ABC, abstractmethod
from typing import Any, List, Optional


class KVStore(ABC):
    """Async key-value persistence port."""

    @abstractmethod
    async def get(self, key: str) -> Optional[Any]:
        """
        Return the value stored under `key`, or None when the key is absent.

        Raises:
            StorageUnavailableError: The store could not be read.
        """
        ...

    @abstractmethod
    async def set(self, key: str, value: Any) -> None:
        """
        Store `value` under `key`, replacing any existing value (upsert).

        Raises:
            StorageUnavailableError: The store could not be written.
        """
        ...

    @abstractmethod
    async def delete(self, key: str) -> None:
        """
        Remove `key`. Deleting an absent key is not an error.

        Raises:
            StorageUnavailableError: The store could not be written.
        """
        ...

    @abstractmethod
    async def scan_by_prefix(self, prefix: str) -> List[Any]:
        """
        Return every value whose key starts with `prefix`.

        Order is implementation-defined but stable within a single call.
        An empty list (never None) is returned when nothing matches.

        Raises:
            StorageUnavailableError: The store could not be read.
        """
        ...

    async def health_check(self) -> bool:
        """True if the store is reachable. Stores without I/O are always healthy."""
        return True

    async def close(self) -> None:
        """Release connections held by the adapter. Called on app shutdown."""
        return None
