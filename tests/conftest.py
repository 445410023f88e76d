"""
Shared fixtures: an in-memory realm that tests populate policy by policy.
"""

import pytest

from warden.authz import PolicyEvaluator, parse_action, parse_grn
from warden.core.models import (
    ActionStatement,
    Effect,
    GrantKind,
    Policy,
    ResourceStatement,
)
from warden.storage import create_local_storage


class RealmBuilder:
    """Small helper for writing policies and grants into a fresh store."""

    def __init__(self, tenant_id: str = "t1"):
        self.tenant_id = tenant_id
        self.storage = create_local_storage()
        self.store = self.storage.grants

    @property
    def evaluator(self) -> PolicyEvaluator:
        return PolicyEvaluator(self.store)

    async def policy(
        self,
        policy_id: str,
        effect: Effect,
        actions: list[str] = (),
        resources: list[str] = (),
        tenant_id: str | None = None,
    ) -> Policy:
        tenant_id = tenant_id or self.tenant_id
        policy = Policy(id=policy_id, tenant_id=tenant_id, name=policy_id, effect=effect)
        await self.store.create_policy(policy)

        for raw in actions:
            a = parse_action(raw)
            await self.store.add_action_statement(
                tenant_id,
                ActionStatement(policy_id=policy_id, system=a.system, resource=a.resource, operation=a.operation),
            )
        for raw in resources:
            g = parse_grn(raw)
            await self.store.add_resource_statement(
                tenant_id,
                ResourceStatement(
                    policy_id=policy_id,
                    partition=g.partition,
                    system=g.system,
                    region=g.region,
                    tenant_id=g.tenant_id,
                    resource_path=g.resource_path,
                ),
            )
        return policy

    async def grant(self, kind: GrantKind, source_id: str, target_id: str, tenant_id: str | None = None):
        return await self.store.grant(tenant_id or self.tenant_id, kind, source_id, target_id)


@pytest.fixture
def realm():
    """Empty realm 't1'."""
    return RealmBuilder()
