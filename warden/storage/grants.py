"""
Grant store on top of MetadataStorage.

Reads implement the ``GrantStore`` contract the authorization engine
depends on. The write helpers are the minimal administrative surface
needed to populate a realm (seeding, demo, tests); they enforce the set
semantics of grant edges and the per-tenant uniqueness of policy names.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from warden.core.models import (
    ActionStatement,
    GrantEdge,
    GrantKind,
    Policy,
    PolicyDocument,
    ResourceStatement,
)
from warden.storage.base import (
    Collections,
    GrantConflictError,
    GrantStore,
    MetadataStorage,
    PolicyConflictError,
    StorageUnavailableError,
)

logger = logging.getLogger(__name__)

# Statement rows carry their owning tenant under this key; ``tenant_id``
# on a resource statement is the GRN field, which may be "*" or "${tenantId}".
_OWNER_TENANT = "owner_tenant_id"


class MetadataGrantStore(GrantStore):
    """Grant graph stored as one metadata collection per edge kind."""

    def __init__(self, metadata: MetadataStorage, page_size: int = 100):
        self.metadata = metadata
        self.page_size = page_size

    # =========================================================================
    # Low-level access
    # =========================================================================

    async def _query_all(self, collection: str, filters: dict[str, Any]) -> list[dict[str, Any]]:
        """Query every page of a collection."""
        rows: list[dict[str, Any]] = []
        offset = 0
        while True:
            try:
                page = await self.metadata.query(
                    collection, filters, limit=self.page_size, offset=offset
                )
            except (ConnectionError, TimeoutError) as e:
                raise StorageUnavailableError(f"Query on '{collection}' failed: {e}") from e
            rows.extend(page)
            if len(page) < self.page_size:
                return rows
            offset += self.page_size

    async def _targets(self, kind: GrantKind, tenant_id: str, source_id: str) -> list[str]:
        rows = await self._query_all(
            kind.value,
            {"tenant_id": tenant_id, kind.source_field: source_id},
        )
        return [row[kind.target_field] for row in rows]

    # =========================================================================
    # GrantStore reads
    # =========================================================================

    async def fetch_direct_account_policies(self, tenant_id: str, account_id: str) -> list[str]:
        return await self._targets(GrantKind.ACCOUNT_POLICY, tenant_id, account_id)

    async def fetch_account_roles(self, tenant_id: str, account_id: str) -> list[str]:
        return await self._targets(GrantKind.ACCOUNT_ROLE, tenant_id, account_id)

    async def fetch_account_groups(self, tenant_id: str, account_id: str) -> list[str]:
        return await self._targets(GrantKind.ACCOUNT_GROUP, tenant_id, account_id)

    async def fetch_role_policies(self, tenant_id: str, role_id: str) -> list[str]:
        return await self._targets(GrantKind.ROLE_POLICY, tenant_id, role_id)

    async def fetch_group_policies(self, tenant_id: str, group_id: str) -> list[str]:
        return await self._targets(GrantKind.GROUP_POLICY, tenant_id, group_id)

    async def fetch_group_roles(self, tenant_id: str, group_id: str) -> list[str]:
        return await self._targets(GrantKind.GROUP_ROLE, tenant_id, group_id)

    async def fetch_policy(self, tenant_id: str, policy_id: str) -> PolicyDocument | None:
        try:
            record = await self.metadata.get(Collections.POLICIES, policy_id)
        except (ConnectionError, TimeoutError) as e:
            raise StorageUnavailableError(f"Fetching policy '{policy_id}' failed: {e}") from e

        if record is None or record.get("tenant_id") != tenant_id:
            return None

        scope = {_OWNER_TENANT: tenant_id, "policy_id": policy_id}
        action_rows, resource_rows = await asyncio.gather(
            self._query_all(Collections.POLICY_ACTIONS, scope),
            self._query_all(Collections.POLICY_RESOURCES, scope),
        )

        return PolicyDocument(
            policy=Policy.model_validate(record),
            action_statements=[ActionStatement.model_validate(r) for r in action_rows],
            resource_statements=[ResourceStatement.model_validate(r) for r in resource_rows],
        )

    # =========================================================================
    # Administrative writes
    # =========================================================================

    async def create_policy(self, policy: Policy) -> Policy:
        """
        Store a new policy.

        Raises:
            PolicyConflictError: the tenant already has a policy with this name.
        """
        existing = await self.metadata.query(
            Collections.POLICIES,
            {"tenant_id": policy.tenant_id, "name": policy.name},
            limit=1,
        )
        if existing:
            raise PolicyConflictError(
                f"Policy '{policy.name}' already exists in tenant '{policy.tenant_id}'"
            )

        await self.metadata.save(Collections.POLICIES, policy.id, policy.model_dump(mode="json"))
        logger.debug(f"Created policy {policy.id} ({policy.effect.value}) in {policy.tenant_id}")
        return policy

    async def delete_policy(self, tenant_id: str, policy_id: str) -> bool:
        """
        Delete a policy and its statements.

        Grant edges that reference it are left in place and become dangling.
        """
        record = await self.metadata.get(Collections.POLICIES, policy_id)
        if record is None or record.get("tenant_id") != tenant_id:
            return False

        scope = {_OWNER_TENANT: tenant_id, "policy_id": policy_id}
        for collection in (Collections.POLICY_ACTIONS, Collections.POLICY_RESOURCES):
            for row in await self._query_all(collection, scope):
                await self.metadata.delete(collection, row["id"])

        return await self.metadata.delete(Collections.POLICIES, policy_id)

    async def add_action_statement(self, tenant_id: str, statement: ActionStatement) -> ActionStatement:
        await self.metadata.save(
            Collections.POLICY_ACTIONS,
            statement.id,
            {**statement.model_dump(mode="json"), _OWNER_TENANT: tenant_id},
        )
        return statement

    async def add_resource_statement(self, tenant_id: str, statement: ResourceStatement) -> ResourceStatement:
        await self.metadata.save(
            Collections.POLICY_RESOURCES,
            statement.id,
            {**statement.model_dump(mode="json"), _OWNER_TENANT: tenant_id},
        )
        return statement

    async def grant(self, tenant_id: str, kind: GrantKind, source_id: str, target_id: str) -> GrantEdge:
        """
        Create a grant edge, e.g. ``grant(t, GrantKind.ACCOUNT_ROLE, account, role)``.

        Raises:
            GrantConflictError: the edge already exists.
        """
        existing = await self.metadata.query(
            kind.value,
            {"tenant_id": tenant_id, kind.source_field: source_id, kind.target_field: target_id},
            limit=1,
        )
        if existing:
            raise GrantConflictError(
                f"{kind.value} edge {source_id} -> {target_id} already exists in tenant '{tenant_id}'"
            )

        edge = GrantEdge(tenant_id=tenant_id, kind=kind, source_id=source_id, target_id=target_id)
        await self.metadata.save(kind.value, edge.id, edge.to_record())
        return edge

    async def revoke(self, tenant_id: str, kind: GrantKind, source_id: str, target_id: str) -> bool:
        """Remove a grant edge. Returns False if it did not exist."""
        rows = await self.metadata.query(
            kind.value,
            {"tenant_id": tenant_id, kind.source_field: source_id, kind.target_field: target_id},
        )
        removed = False
        for row in rows:
            removed = await self.metadata.delete(kind.value, row["id"]) or removed
        return removed
