"""
Local storage implementations for development and tests.

In-memory document storage that works without any external services.
"""

from __future__ import annotations

from typing import Any

from warden.core.utils import utc_now
from warden.storage.base import MetadataStorage, StorageProvider
from warden.storage.grants import MetadataGrantStore


# =============================================================================
# In-Memory Metadata Storage
# =============================================================================


class InMemoryMetadataStorage(MetadataStorage):
    """
    In-memory document storage.

    Documents are copied on the way in and out, so callers never share
    mutable state with the store.
    """

    def __init__(self):
        self._data: dict[str, dict[str, dict[str, Any]]] = {}

    async def save(self, collection: str, id: str, data: dict[str, Any]) -> None:
        self._data.setdefault(collection, {})[id] = {
            **data,
            "_id": id,
            "_updated_at": utc_now().isoformat(),
        }

    async def get(self, collection: str, id: str) -> dict[str, Any] | None:
        doc = self._data.get(collection, {}).get(id)
        return dict(doc) if doc is not None else None

    async def delete(self, collection: str, id: str) -> bool:
        docs = self._data.get(collection, {})
        if id in docs:
            del docs[id]
            return True
        return False

    async def query(
        self,
        collection: str,
        filters: dict[str, Any] | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[dict[str, Any]]:
        docs = self._data.get(collection, {}).values()

        if filters:
            docs = [
                doc for doc in docs
                if all(doc.get(key) == value for key, value in filters.items())
            ]

        return [dict(doc) for doc in list(docs)[offset:offset + limit]]

    async def update(self, collection: str, id: str, updates: dict[str, Any]) -> bool:
        docs = self._data.get(collection, {})
        if id not in docs:
            return False
        docs[id].update(updates)
        docs[id]["_updated_at"] = utc_now().isoformat()
        return True


# =============================================================================
# Factory
# =============================================================================


def create_local_storage() -> StorageProvider:
    """Create a StorageProvider backed by in-memory metadata storage."""
    metadata = InMemoryMetadataStorage()
    return StorageProvider(
        metadata=metadata,
        grants=MetadataGrantStore(metadata),
    )
