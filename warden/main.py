"""
Warden - Main entry point.

Runs the authorization engine against the demo realm in
warden/realms/demo.yaml and prints each decision. Useful to verify an
installation without starting the API.

The API itself runs with: uvicorn warden.api.app:app --reload
"""

from __future__ import annotations

import asyncio
from pathlib import Path

from warden.authz import PolicyEvaluator
from warden.core.models import GrantKind
from warden.seed_loader import load_seed_file
from warden.storage import create_local_storage

DEMO_REALM = Path(__file__).parent / "realms" / "demo.yaml"

CHECKS = [
    ("A1", "iam:accounts:read", "grn:global:iam::t1:accounts/42"),
    ("A1", "iam:accounts:delete", "grn:global:iam::t1:accounts/42"),
    ("A2", "iam:accounts:read", "grn:global:iam::t1:accounts"),
    ("A2", "iam:accounts:write", "grn:global:iam::t1:accounts/A2"),
    ("A2", "iam:accounts:write", "grn:global:iam::t1:accounts/A1"),
    ("A3", "iam:accounts:read", "grn:global:iam::t1:accounts/42"),
    ("nobody", "iam:accounts:read", "grn:global:iam::t1:accounts/42"),
    ("A1", "iam:accounts", "grn:global:iam::t1:accounts/42"),
]


async def demo(realm_file: Path = DEMO_REALM):
    """Seed the demo realm, then evaluate a handful of requests."""
    print("=" * 60)
    print("WARDEN AUTHORIZATION DEMO")
    print("=" * 60)
    print()

    storage = create_local_storage()
    counts = await load_seed_file(storage.grants, realm_file)
    print(f"Loaded {realm_file.name}:")
    print(f"  ✓ {counts['policies']} policies")
    print(f"  ✓ {counts['statements']} statements")
    print(f"  ✓ {counts['grants']} grant edges")
    print()

    evaluator = PolicyEvaluator(storage.grants)

    print("Decisions in realm t1:")
    for account_id, action, resource in CHECKS:
        await _show(evaluator, account_id, action, resource)
    print()

    print("Adding A1 to group G2 (role R2 -> Deny P2)...")
    await storage.grants.grant("t1", GrantKind.ACCOUNT_GROUP, "A1", "G2")
    await _show(evaluator, *CHECKS[0])
    detail = await evaluator.explain("t1", *CHECKS[0])
    print(f"    allowed by {detail.allowed_by}, denied by {detail.denied_by}")
    print()

    print("=" * 60)
    print("Demo complete!")
    print("=" * 60)


async def _show(evaluator: PolicyEvaluator, account_id: str, action: str, resource: str):
    result = await evaluator.evaluate("t1", account_id, action, resource)
    verdict = "ALLOW" if result.allowed else "DENY "
    suffix = f"  ({result.error})" if result.error else ""
    print(f"  • {verdict} {account_id:<7} {action:<22} {resource}{suffix}")


def main():
    """Main entry point."""
    asyncio.run(demo())


if __name__ == "__main__":
    main()
