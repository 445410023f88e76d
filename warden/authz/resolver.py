"""
Grant resolver - which policies can reach an account?

Four grant paths are followed and unioned:

    1. account -> policy
    2. account -> role -> policy
    3. account -> group -> policy
    4. account -> group -> role -> policy

Rather than loading the grant graph, each path is a handful of set
fetches against the ``GrantStore``. Fetches that do not depend on each
other are issued together with ``asyncio.gather``:

    hop 1: account policies | account roles | account groups
    hop 2: role policies (per account role) | group policies | group roles
    hop 3: role policies for group roles not already fetched in hop 2

Every fetch is scoped to the evaluation tenant, which is the only
place tenant isolation is enforced. Edges that point at deleted roles,
groups or policies simply lead nowhere.
"""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from enum import Enum
from typing import Iterable

from warden.storage.base import GrantStore

logger = logging.getLogger(__name__)


class GrantPath(str, Enum):
    """How a policy reached the account."""

    DIRECT = "account>policy"
    ROLE = "account>role>policy"
    GROUP = "account>group>policy"
    GROUP_ROLE = "account>group>role>policy"


def _unique(ids: Iterable[str]) -> list[str]:
    """Drop empty ids and duplicates, keeping first-seen order."""
    return list(dict.fromkeys(i for i in ids if i))


class GrantResolver:
    """
    Enumerates the policies granted to an account inside one tenant.

    Holds nothing but the store reference, so one instance can serve any
    number of concurrent resolutions.
    """

    def __init__(self, store: GrantStore):
        self.store = store

    async def resolve_policies(self, tenant_id: str, account_id: str) -> set[str]:
        """
        Policy ids reachable from the account through any grant path.

        An account without grants yields an empty set (default deny).
        """
        return set(await self.resolve_paths(tenant_id, account_id))

    async def resolve_paths(self, tenant_id: str, account_id: str) -> dict[str, set[GrantPath]]:
        """Like ``resolve_policies`` but also reports the paths that reached each policy."""
        store = self.store

        direct, account_roles, groups = await asyncio.gather(
            store.fetch_direct_account_policies(tenant_id, account_id),
            store.fetch_account_roles(tenant_id, account_id),
            store.fetch_account_groups(tenant_id, account_id),
        )
        account_roles = _unique(account_roles)
        groups = _unique(groups)

        role_policies, group_policies, group_roles = await asyncio.gather(
            asyncio.gather(*(store.fetch_role_policies(tenant_id, r) for r in account_roles)),
            asyncio.gather(*(store.fetch_group_policies(tenant_id, g) for g in groups)),
            asyncio.gather(*(store.fetch_group_roles(tenant_id, g) for g in groups)),
        )

        policies_by_role: dict[str, list[str]] = dict(zip(account_roles, role_policies))

        nested_roles = _unique(r for roles in group_roles for r in roles)
        missing = [r for r in nested_roles if r not in policies_by_role]
        if missing:
            fetched = await asyncio.gather(
                *(store.fetch_role_policies(tenant_id, r) for r in missing)
            )
            policies_by_role.update(zip(missing, fetched))

        paths: dict[str, set[GrantPath]] = defaultdict(set)
        for policy_id in _unique(direct):
            paths[policy_id].add(GrantPath.DIRECT)
        for role_id in account_roles:
            for policy_id in _unique(policies_by_role[role_id]):
                paths[policy_id].add(GrantPath.ROLE)
        for policy_ids in group_policies:
            for policy_id in _unique(policy_ids):
                paths[policy_id].add(GrantPath.GROUP)
        for role_id in nested_roles:
            for policy_id in _unique(policies_by_role[role_id]):
                paths[policy_id].add(GrantPath.GROUP_ROLE)

        logger.debug(
            f"Resolved {len(paths)} policies for {account_id} in {tenant_id} "
            f"({len(account_roles)} roles, {len(groups)} groups, {len(nested_roles)} group roles)"
        )
        return dict(paths)
