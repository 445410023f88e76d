"""
Policy evaluator - the Allow/Deny decision.

    evaluate(tenant, account, "iam:accounts:read", "grn:global:iam::t1:accounts/42")

1. Parse the action and the resource. Bad input is a structured negative
   result, never an exception.
2. Resolve candidate policies through every grant path. None -> deny.
3. Fetch every candidate policy with its statements.
4. A policy is triggered when at least one action statement AND at least
   one resource statement match the request.
5. Deny-overrides across the whole triggered set: any Deny wins, else any
   Allow allows, else deny.

Denial is a normal return value. Only storage failures raise.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from functools import reduce
from typing import Any, Iterable

from warden.authz.actions import Action, matches_action, parse_action
from warden.authz.grn import Grn, MalformedInputError, parse_grn
from warden.authz.resolver import GrantResolver
from warden.authz.resources import statement_pattern
from warden.core.models import Effect, PolicyDocument
from warden.storage.base import GrantStore

logger = logging.getLogger(__name__)

INVALID_INPUT_ERROR = "invalid action or resource format"


# =============================================================================
# Deny-overrides
# =============================================================================


class DecisionState(str, Enum):
    """Accumulator for the deny-overrides fold."""

    UNSET = "unset"
    ALLOW = "allow"
    DENY_LOCKED = "deny_locked"


def combine(state: DecisionState, effect: Effect) -> DecisionState:
    """One step of the fold. DENY_LOCKED is absorbing."""
    if state is DecisionState.DENY_LOCKED or effect is Effect.DENY:
        return DecisionState.DENY_LOCKED
    return DecisionState.ALLOW


def fold_effects(effects: Iterable[Effect]) -> DecisionState:
    """Fold the effects of every triggered policy; order does not matter."""
    return reduce(combine, effects, DecisionState.UNSET)


# =============================================================================
# Results
# =============================================================================


@dataclass(frozen=True)
class EvaluationResult:
    """What callers of the evaluation API receive."""

    allowed: bool
    error: str | None = None

    def to_response(self) -> dict[str, Any]:
        """Wire shape: ``error`` is present only for malformed input."""
        body: dict[str, Any] = {"allowed": self.allowed}
        if self.error is not None:
            body["error"] = self.error
        return body


@dataclass
class EvaluationDetail:
    """Diagnostic view of one evaluation."""

    tenant_id: str
    account_id: str
    action: str
    resource: str
    state: DecisionState = DecisionState.UNSET
    error: str | None = None

    candidates: list[str] = field(default_factory=list)
    missing: list[str] = field(default_factory=list)
    allowed_by: list[str] = field(default_factory=list)
    denied_by: list[str] = field(default_factory=list)
    paths: dict[str, list[str]] = field(default_factory=dict)

    @property
    def allowed(self) -> bool:
        return self.error is None and self.state is DecisionState.ALLOW

    @property
    def result(self) -> EvaluationResult:
        return EvaluationResult(allowed=self.allowed, error=self.error)

    def to_dict(self) -> dict[str, Any]:
        return {
            "tenant_id": self.tenant_id,
            "account_id": self.account_id,
            "action": self.action,
            "resource": self.resource,
            "allowed": self.allowed,
            "state": self.state.value,
            "error": self.error,
            "candidates": self.candidates,
            "missing": self.missing,
            "allowed_by": self.allowed_by,
            "denied_by": self.denied_by,
            "paths": self.paths,
        }


# =============================================================================
# Evaluator
# =============================================================================


def is_triggered(
    document: PolicyDocument,
    action: Action,
    resource: Grn,
    variables: dict[str, str] | None = None,
) -> bool:
    """
    Does this policy apply to the request?

    Needs a matching action statement and a matching resource statement.
    A policy with no statements of either kind never applies.
    """
    action_hit = any(
        matches_action(action, Action(s.system, s.resource, s.operation))
        for s in document.action_statements
    )
    if not action_hit:
        return False

    return any(
        statement_pattern(s, variables).matches(resource)
        for s in document.resource_statements
    )


class PolicyEvaluator:
    """
    Evaluates requests against the policies granted to an account.

    Stateless apart from its collaborators; safe to share between
    concurrent requests.
    """

    def __init__(self, store: GrantStore, resolver: GrantResolver | None = None):
        self.store = store
        self.resolver = resolver or GrantResolver(store)

    async def evaluate(
        self,
        tenant_id: str,
        account_id: str,
        action: str,
        resource: str,
    ) -> EvaluationResult:
        """
        Decide whether ``account_id`` may perform ``action`` on ``resource``.

        Returns ``EvaluationResult(allowed=False, error=...)`` for malformed
        input. Storage failures propagate.
        """
        detail = await self.explain(tenant_id, account_id, action, resource)
        return detail.result

    async def explain(
        self,
        tenant_id: str,
        account_id: str,
        action: str,
        resource: str,
    ) -> EvaluationDetail:
        """Evaluate and report which policies were considered and why."""
        detail = EvaluationDetail(
            tenant_id=tenant_id,
            account_id=account_id,
            action=action,
            resource=resource,
        )

        try:
            requested_action = parse_action(action)
            requested_resource = parse_grn(resource)
        except MalformedInputError as e:
            logger.debug(f"Rejecting malformed request: {e}")
            detail.error = INVALID_INPUT_ERROR
            return detail

        paths = await self.resolver.resolve_paths(tenant_id, account_id)
        if not paths:
            logger.debug(f"No policies for {account_id} in {tenant_id} - implicit deny")
            return detail

        detail.candidates = sorted(paths)
        detail.paths = {pid: sorted(p.value for p in paths[pid]) for pid in detail.candidates}

        documents = await asyncio.gather(
            *(self.store.fetch_policy(tenant_id, pid) for pid in detail.candidates)
        )

        variables = {"tenantId": tenant_id, "accountId": account_id}
        triggered: list[PolicyDocument] = []
        for policy_id, document in zip(detail.candidates, documents):
            if document is None:
                logger.debug(f"Skipping dangling policy reference {policy_id} in {tenant_id}")
                detail.missing.append(policy_id)
                continue
            if is_triggered(document, requested_action, requested_resource, variables):
                triggered.append(document)

        detail.allowed_by = [d.id for d in triggered if d.effect is Effect.ALLOW]
        detail.denied_by = [d.id for d in triggered if d.effect is Effect.DENY]
        detail.state = fold_effects(d.effect for d in triggered)

        logger.debug(
            f"{account_id} {action} {resource}: {detail.state.value} "
            f"(candidates={len(detail.candidates)}, allow={detail.allowed_by}, deny={detail.denied_by})"
        )
        return detail
