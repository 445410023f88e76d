"""
Tests for the HTTP surface: evaluation, explain and guarded routes.
"""

import asyncio
from datetime import datetime, timedelta, timezone

import jwt
import pytest
from fastapi.testclient import TestClient

from warden.api.app import app, install_storage
from warden.auth import AccessRule
from warden.authz import parse_action, parse_grn
from warden.config import Settings, get_settings
from warden.core.models import (
    ActionStatement,
    Effect,
    GrantKind,
    Policy,
    ResourceStatement,
)
from warden.main import DEMO_REALM
from warden.seed_loader import load_seed_file
from warden.storage import StorageProvider, StorageUnavailableError, create_local_storage
from warden.storage.base import GrantStore

EVALUATE = "/api/realm/t1/authz/evaluate"
EXPLAIN = "/api/realm/t1/authz/explain"


class UnavailableGrantStore(GrantStore):
    async def _fail(self, *args):
        raise StorageUnavailableError("connection refused")

    fetch_direct_account_policies = _fail
    fetch_account_roles = _fail
    fetch_account_groups = _fail
    fetch_role_policies = _fail
    fetch_group_policies = _fail
    fetch_group_roles = _fail
    fetch_policy = _fail


async def _allow(store, policy_id: str, action: str, resource: str, account_id: str):
    """Create an Allow policy with one action and one resource, granted to one account."""
    a, g = parse_action(action), parse_grn(resource)
    await store.create_policy(Policy(id=policy_id, tenant_id="t1", name=policy_id, effect=Effect.ALLOW))
    await store.add_action_statement(
        "t1", ActionStatement(policy_id=policy_id, system=a.system, resource=a.resource, operation=a.operation)
    )
    await store.add_resource_statement(
        "t1",
        ResourceStatement(
            policy_id=policy_id,
            partition=g.partition,
            system=g.system,
            region=g.region,
            tenant_id=g.tenant_id,
            resource_path=g.resource_path,
        ),
    )
    await store.grant("t1", GrantKind.ACCOUNT_POLICY, account_id, policy_id)


async def _seed_demo() -> StorageProvider:
    storage = create_local_storage()
    store = storage.grants
    await load_seed_file(store, DEMO_REALM)

    # A1 may also use the explain endpoint
    await _allow(store, "P-explain", "iam:authz:explain", "grn:global:iam::t1:authz", "A1")
    # A4 may only read its own account
    await _allow(store, "P-self", "iam:accounts:read", "grn:global:iam::t1:accounts/${accountId}", "A4")
    # An account whose id looks like a placeholder
    await store.grant("t1", GrantKind.ACCOUNT_POLICY, "${accountId}", "P3")
    return storage


@pytest.fixture
def client():
    install_storage(app, asyncio.run(_seed_demo()))
    return TestClient(app)


def _bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def _access_token(account_id: str, **claims) -> str:
    settings = get_settings()
    now = datetime.now(timezone.utc)
    payload = {
        "sub": account_id,
        "iat": now,
        "exp": now + timedelta(minutes=5),
        "type": "access",
        **claims,
    }
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


class TestHealth:
    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy", "service": "warden-api"}


# =============================================================================
# Evaluate
# =============================================================================


class TestEvaluate:
    def test_allowed(self, client):
        response = client.post(EVALUATE, json={
            "accountId": "A1",
            "action": "iam:accounts:read",
            "resource": "grn:global:iam::t1:accounts/42",
        })

        assert response.status_code == 200
        assert response.json() == {"allowed": True}

    def test_denied(self, client):
        response = client.post(EVALUATE, json={
            "tenantId": "t1",
            "accountId": "A3",
            "action": "iam:accounts:read",
            "resource": "grn:global:iam::t1:accounts/42",
        })

        assert response.status_code == 200
        assert response.json() == {"allowed": False}

    def test_malformed_is_not_an_http_error(self, client):
        response = client.post(EVALUATE, json={
            "accountId": "A1",
            "action": "iam:accounts",
            "resource": "grn:global:iam::t1:accounts/42",
        })

        assert response.status_code == 200
        assert response.json() == {"allowed": False, "error": "invalid action or resource format"}

    def test_other_realm_in_body(self, client):
        response = client.post(EVALUATE, json={
            "tenantId": "t2",
            "accountId": "A1",
            "action": "iam:accounts:read",
            "resource": "grn:global:iam::t1:accounts/42",
        })

        assert response.status_code == 400

    def test_realm_comes_from_path(self, client):
        response = client.post("/api/realm/t2/authz/evaluate", json={
            "accountId": "A1",
            "action": "iam:accounts:read",
            "resource": "grn:global:iam::t1:accounts/42",
        })

        assert response.json() == {"allowed": False}

    def test_no_account(self, client):
        response = client.post(EVALUATE, json={
            "action": "iam:accounts:read",
            "resource": "grn:global:iam::t1:accounts/42",
        })

        assert response.status_code == 401

    def test_account_from_dev_token(self, client):
        response = client.post(
            EVALUATE,
            json={"action": "iam:accounts:read", "resource": "grn:global:iam::t1:accounts/42"},
            headers=_bearer("dev_A1"),
        )

        assert response.json() == {"allowed": True}

    def test_account_from_access_token(self, client):
        response = client.post(
            EVALUATE,
            json={"action": "iam:accounts:read", "resource": "grn:global:iam::t1:accounts/42"},
            headers=_bearer(_access_token("A1")),
        )

        assert response.json() == {"allowed": True}

    def test_storage_outage_is_503(self, client):
        install_storage(
            app,
            StorageProvider(metadata=create_local_storage().metadata, grants=UnavailableGrantStore()),
        )

        response = client.post(EVALUATE, json={
            "accountId": "A1",
            "action": "iam:accounts:read",
            "resource": "grn:global:iam::t1:accounts/42",
        })

        assert response.status_code == 503
        assert response.json() == {"detail": "Policy store unavailable"}


# =============================================================================
# Guarded routes
# =============================================================================


class TestGuardedRoutes:
    def test_allowed_caller(self, client):
        response = client.get("/api/realm/t1/accounts/A1/policies", headers=_bearer("dev_A1"))

        assert response.status_code == 200
        assert response.json() == {
            "account_id": "A1",
            "policy_ids": ["P-explain", "P1"],
            "count": 2,
        }

    def test_reads_other_accounts(self, client):
        response = client.get("/api/realm/t1/accounts/A2/policies", headers=_bearer("dev_A1"))

        assert response.status_code == 200
        assert response.json()["policy_ids"] == ["P1", "P3"]

    def test_denied_caller(self, client):
        response = client.get("/api/realm/t1/accounts/A3/policies", headers=_bearer("dev_A3"))

        assert response.status_code == 403

    def test_own_account_only(self, client):
        own = client.get("/api/realm/t1/accounts/A4/policies", headers=_bearer("dev_A4"))
        other = client.get("/api/realm/t1/accounts/A1/policies", headers=_bearer("dev_A4"))

        assert own.status_code == 200
        assert own.json()["policy_ids"] == ["P-self"]
        assert other.status_code == 403

    def test_placeholder_in_path_is_not_filled_in_again(self, client):
        # The route serves account "${accountId}", so that is what must be authorized
        response = client.get("/api/realm/t1/accounts/%24%7BaccountId%7D/policies", headers=_bearer("dev_A4"))

        assert response.status_code == 403

    def test_placeholder_account_readable_with_a_real_grant(self, client):
        response = client.get("/api/realm/t1/accounts/%24%7BaccountId%7D/policies", headers=_bearer("dev_A1"))

        assert response.status_code == 200
        assert response.json()["account_id"] == "${accountId}"
        assert response.json()["policy_ids"] == ["P3"]

    def test_anonymous(self, client):
        assert client.get("/api/realm/t1/accounts/A1/policies").status_code == 401

    def test_invalid_token_is_anonymous(self, client):
        response = client.get("/api/realm/t1/accounts/A1/policies", headers=_bearer("garbage"))

        assert response.status_code == 401

    def test_expired_token(self, client):
        past = datetime.now(timezone.utc) - timedelta(hours=1)
        token = _access_token("A1", iat=past - timedelta(minutes=5), exp=past)

        response = client.get("/api/realm/t1/accounts/A1/policies", headers=_bearer(token))

        assert response.status_code == 401

    def test_token_for_another_realm(self, client):
        token = _access_token("A1", tenant_id="t2")

        response = client.get("/api/realm/t1/accounts/A1/policies", headers=_bearer(token))

        assert response.status_code == 403

    def test_token_for_this_realm(self, client):
        token = _access_token("A1", tenant_id="t1")

        response = client.get("/api/realm/t1/accounts/A1/policies", headers=_bearer(token))

        assert response.status_code == 200


class TestExplain:
    def test_explain(self, client):
        response = client.post(
            EXPLAIN,
            json={"accountId": "A2", "action": "iam:accounts:read", "resource": "grn:global:iam::t1:accounts/42"},
            headers=_bearer("dev_A1"),
        )

        assert response.status_code == 200
        body = response.json()
        assert body["allowed"] is True
        assert body["candidates"] == ["P1", "P3"]
        assert body["allowed_by"] == ["P1"]
        assert body["paths"]["P1"] == ["account>group>role>policy"]
        assert body["paths"]["P3"] == ["account>group>policy"]

    def test_explain_defaults_to_caller(self, client):
        response = client.post(
            EXPLAIN,
            json={"action": "iam:accounts:read", "resource": "grn:global:iam::t1:accounts/42"},
            headers=_bearer("dev_A1"),
        )

        assert response.json()["account_id"] == "A1"

    def test_explain_needs_permission(self, client):
        response = client.post(
            EXPLAIN,
            json={"accountId": "A1", "action": "iam:accounts:read", "resource": "grn:global:iam::t1:accounts/42"},
            headers=_bearer("dev_A2"),
        )

        assert response.status_code == 403


class TestAccessRule:
    def test_default_resource(self):
        rule = AccessRule("iam:authz:explain")

        assert rule.resource == "grn:global:iam::${tenantId}:authz"

    def test_default_resource_uses_configured_names(self, monkeypatch):
        settings = Settings(default_partition="china", system_name="idm")
        monkeypatch.setattr("warden.auth.policies.get_settings", lambda: settings)

        rule = AccessRule("iam:accounts:read")

        assert rule.resource == "grn:china:idm::${tenantId}:accounts"

    def test_explicit_resource_kept(self):
        rule = AccessRule("iam:accounts:read", "grn:global:iam::${tenantId}:accounts/${account_id}")

        assert rule.resource == "grn:global:iam::${tenantId}:accounts/${account_id}"
