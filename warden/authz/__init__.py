"""
Authorization engine.

    evaluator = PolicyEvaluator(store)
    result = await evaluator.evaluate(tenant_id, account_id, action, resource)
    if result.allowed:
        ...

Components, leaves first:
- patterns: Exact / Wildcard segment patterns
- grn, actions: string codecs for resources and actions
- resources, actions: matchers
- resolver: policies reachable from an account
- evaluator: deny-overrides decision
"""

from warden.authz.actions import (
    Action,
    MalformedActionError,
    format_action,
    matches_action,
    parse_action,
)
from warden.authz.grn import (
    Grn,
    MalformedGrnError,
    MalformedInputError,
    format_grn,
    parse_grn,
)
from warden.authz.resources import ResourcePattern, matches_resource, statement_pattern
from warden.authz.resolver import GrantPath, GrantResolver
from warden.authz.evaluator import (
    INVALID_INPUT_ERROR,
    DecisionState,
    EvaluationDetail,
    EvaluationResult,
    PolicyEvaluator,
    fold_effects,
)

__all__ = [
    "Action",
    "MalformedActionError",
    "format_action",
    "matches_action",
    "parse_action",
    "Grn",
    "MalformedGrnError",
    "MalformedInputError",
    "format_grn",
    "parse_grn",
    "ResourcePattern",
    "matches_resource",
    "statement_pattern",
    "GrantPath",
    "GrantResolver",
    "INVALID_INPUT_ERROR",
    "DecisionState",
    "EvaluationDetail",
    "EvaluationResult",
    "PolicyEvaluator",
    "fold_effects",
]
