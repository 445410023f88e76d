"""
Storage abstraction layer.

The authorization engine never talks to a database directly. It reads
through ``GrantStore``, a narrow read-only collaborator with one method
per grant-edge lookup plus a policy fetch. ``MetadataStorage`` is the
document-collection interface the bundled ``GrantStore`` is built on, so
backends can be swapped (in-memory -> MongoDB, PostgreSQL, ...) without
touching the engine.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from pydantic import BaseModel

from warden.core.models import PolicyDocument


# =============================================================================
# Errors
# =============================================================================


class StorageError(Exception):
    """Base class for storage failures."""
    pass


class StorageUnavailableError(StorageError):
    """The backing store could not be reached or timed out."""
    pass


class GrantConflictError(StorageError):
    """A grant edge with the same endpoints already exists in the tenant."""
    pass


class PolicyConflictError(StorageError):
    """A policy with the same name already exists in the tenant."""
    pass


# =============================================================================
# Storage Interfaces
# =============================================================================


class MetadataStorage(ABC):
    """
    Storage for structured documents grouped in collections.

    Local Implementation: in-memory dict
    """

    @abstractmethod
    async def save(self, collection: str, id: str, data: dict[str, Any]) -> None:
        """Save a document to a collection."""
        pass

    @abstractmethod
    async def get(self, collection: str, id: str) -> dict[str, Any] | None:
        """Get a document by ID."""
        pass

    @abstractmethod
    async def delete(self, collection: str, id: str) -> bool:
        """Delete a document."""
        pass

    @abstractmethod
    async def query(
        self,
        collection: str,
        filters: dict[str, Any] | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[dict[str, Any]]:
        """Query documents whose fields equal every filter value."""
        pass

    @abstractmethod
    async def update(self, collection: str, id: str, updates: dict[str, Any]) -> bool:
        """Partial update of a document."""
        pass


class GrantStore(ABC):
    """
    Read side of the grant graph, as seen by the authorization engine.

    Every lookup is scoped to one tenant and returns ids only. Edges that
    point at deleted entities may still be returned; callers treat them
    as non-matches. Infrastructure failures raise ``StorageError``.
    """

    @abstractmethod
    async def fetch_direct_account_policies(self, tenant_id: str, account_id: str) -> list[str]:
        """Policies granted straight to an account."""
        pass

    @abstractmethod
    async def fetch_account_roles(self, tenant_id: str, account_id: str) -> list[str]:
        pass

    @abstractmethod
    async def fetch_account_groups(self, tenant_id: str, account_id: str) -> list[str]:
        pass

    @abstractmethod
    async def fetch_role_policies(self, tenant_id: str, role_id: str) -> list[str]:
        pass

    @abstractmethod
    async def fetch_group_policies(self, tenant_id: str, group_id: str) -> list[str]:
        """Policies granted straight to a group."""
        pass

    @abstractmethod
    async def fetch_group_roles(self, tenant_id: str, group_id: str) -> list[str]:
        pass

    @abstractmethod
    async def fetch_policy(self, tenant_id: str, policy_id: str) -> PolicyDocument | None:
        """
        A policy with its statements, or None.

        None covers both a deleted policy and a policy owned by another
        tenant.
        """
        pass


# =============================================================================
# Storage Provider
# =============================================================================


class StorageProvider(BaseModel):
    """
    Container for the storage backends.

    Initialize once at app startup with appropriate implementations.
    """

    model_config = {"arbitrary_types_allowed": True}

    metadata: MetadataStorage
    grants: GrantStore


# =============================================================================
# Collection Names (for MetadataStorage)
# =============================================================================


class Collections:
    """Standard collection/table names. Grant edges use ``GrantKind`` values."""

    POLICIES = "policies"
    POLICY_ACTIONS = "policy_actions"
    POLICY_RESOURCES = "policy_resources"
