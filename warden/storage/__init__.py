"""
Storage abstractions.

- GrantStore -> what the authorization engine reads
- MetadataStorage -> document collections the bundled GrantStore sits on
"""

from warden.storage.base import (
    MetadataStorage,
    GrantStore,
    StorageProvider,
    Collections,
    StorageError,
    StorageUnavailableError,
    GrantConflictError,
    PolicyConflictError,
)
from warden.storage.grants import MetadataGrantStore
from warden.storage.local import InMemoryMetadataStorage, create_local_storage

__all__ = [
    "MetadataStorage",
    "GrantStore",
    "StorageProvider",
    "Collections",
    "StorageError",
    "StorageUnavailableError",
    "GrantConflictError",
    "PolicyConflictError",
    "MetadataGrantStore",
    "InMemoryMetadataStorage",
    "create_local_storage",
]
