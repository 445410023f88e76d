"""
Realm fixture loader.

Loads policies and grant edges from YAML into a grant store, so a
development server, the demo and tests can start from a known realm:

    tenant: t1
    policies:
      - id: P1
        name: read-accounts
        effect: Allow
        actions: ["iam:accounts:read"]
        resources: ["grn:global:iam::t1:accounts/*"]
    grants:
      account_policy:
        - [A1, P1]
      group_role:
        - [G1, R1]

A file may instead hold ``realms:``, a list of such mappings. Quote
actions that start with ``*`` since YAML reads a bare ``*`` as an alias.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from warden.authz.actions import parse_action
from warden.authz.grn import MalformedInputError, parse_grn
from warden.core.models import (
    ActionStatement,
    Effect,
    GrantKind,
    Policy,
    ResourceStatement,
)
from warden.storage.grants import MetadataGrantStore

logger = logging.getLogger(__name__)


class SeedError(ValueError):
    """Raised when a fixture file cannot be loaded."""
    pass


class SeedLoader:
    """Loads realm fixtures into a ``MetadataGrantStore``."""

    def __init__(self, store: MetadataGrantStore):
        self.store = store

    async def load_file(self, path: Path | str) -> dict[str, int]:
        """
        Load one YAML fixture file.

        Returns:
            Dict with counts of policies, statements and grants loaded
        """
        path = Path(path)
        with open(path) as f:
            data = yaml.safe_load(f) or {}

        if not isinstance(data, dict):
            raise SeedError(f"{path}: expected a mapping at the top level")

        realms = data.get("realms", [data])
        counts = {"policies": 0, "statements": 0, "grants": 0}
        for realm in realms:
            for key, value in (await self.load_realm(realm)).items():
                counts[key] += value

        logger.info(
            f"Seeded {counts['policies']} policies, {counts['statements']} statements "
            f"and {counts['grants']} grants from {path}"
        )
        return counts

    async def load_realm(self, data: dict[str, Any]) -> dict[str, int]:
        """Load one realm mapping."""
        tenant_id = data.get("tenant")
        if not tenant_id:
            raise SeedError("Realm fixture needs a 'tenant'")

        counts = {"policies": 0, "statements": 0, "grants": 0}

        for entry in data.get("policies") or []:
            counts["statements"] += await self.load_policy(tenant_id, entry)
            counts["policies"] += 1

        for kind_name, pairs in (data.get("grants") or {}).items():
            try:
                kind = GrantKind(kind_name)
            except ValueError:
                raise SeedError(f"Unknown grant kind '{kind_name}'")
            for pair in pairs or []:
                if not isinstance(pair, (list, tuple)) or len(pair) != 2:
                    raise SeedError(f"{kind_name} grants must be [source, target] pairs, got {pair!r}")
                await self.store.grant(tenant_id, kind, str(pair[0]), str(pair[1]))
                counts["grants"] += 1

        return counts

    async def load_policy(self, tenant_id: str, entry: dict[str, Any]) -> int:
        """Create a policy with its statements. Returns the statement count."""
        fields = {
            key: str(entry[key])
            for key in ("id", "name", "version", "description")
            if entry.get(key) is not None
        }
        try:
            policy = Policy(tenant_id=tenant_id, effect=Effect(entry.get("effect")), **fields)
        except (ValueError, ValidationError) as e:
            raise SeedError(f"Invalid policy {entry.get('name')!r}: {e}")

        await self.store.create_policy(policy)

        statements = 0
        try:
            for raw in entry.get("actions") or []:
                action = parse_action(str(raw))
                await self.store.add_action_statement(
                    tenant_id,
                    ActionStatement(
                        policy_id=policy.id,
                        system=action.system,
                        resource=action.resource,
                        operation=action.operation,
                    ),
                )
                statements += 1

            for raw in entry.get("resources") or []:
                grn = parse_grn(str(raw))
                await self.store.add_resource_statement(
                    tenant_id,
                    ResourceStatement(
                        policy_id=policy.id,
                        partition=grn.partition,
                        system=grn.system,
                        region=grn.region,
                        tenant_id=grn.tenant_id,
                        resource_path=grn.resource_path,
                    ),
                )
                statements += 1
        except MalformedInputError as e:
            raise SeedError(f"Invalid statement in policy {policy.name!r}: {e}")

        return statements


async def load_seed_file(store: MetadataGrantStore, path: Path | str) -> dict[str, int]:
    """Convenience function to load one fixture file."""
    return await SeedLoader(store).load_file(path)
