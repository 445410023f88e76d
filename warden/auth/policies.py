"""
Route guards - authorization for HTTP handlers.

Just use: `ctx: AuthContext = Depends(require("iam:accounts:read", "grn:global:iam::${tenantId}:accounts/${account_id}"))`

Design:
- `require()` returns a FastAPI Depends that resolves to AuthContext
- It identifies the caller from the bearer token, takes the realm from the
  `tenant_id` path parameter and fills `${...}` placeholders in the
  resource template from the caller and the path parameters
- Anonymous -> 401, denied -> 403, otherwise the route runs
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable

from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from warden.auth.context import AuthContext, get_auth_context
from warden.auth.jwt import TokenError, decode_token
from warden.authz.actions import parse_action
from warden.authz.evaluator import PolicyEvaluator
from warden.config import get_settings

logger = logging.getLogger(__name__)


# =============================================================================
# Caller Identification
# =============================================================================


# Optional JWT bearer (doesn't fail if no token)
optional_bearer = HTTPBearer(auto_error=False)

DEV_TOKEN_PREFIX = "dev_"


@dataclass(frozen=True)
class Caller:
    """The authenticated account behind a request."""

    account_id: str
    tenant_id: str | None = None  # realm the token was issued for, if stated


async def get_caller(
    credentials: HTTPAuthorizationCredentials | None = Depends(optional_bearer),
) -> Caller | None:
    """
    Identify the calling account from the bearer token.

    Handles:
    - Real JWT access tokens (validated with the shared secret)
    - Dev tokens "dev_{account_id}" outside production
    """
    if not credentials:
        return None

    token = credentials.credentials

    try:
        payload = decode_token(token, expected_type="access")
        return Caller(account_id=payload.sub, tenant_id=payload.tenant_id)
    except TokenError as e:
        logger.debug(f"Bearer token rejected: {e}")

    if not get_settings().is_production and token.startswith(DEV_TOKEN_PREFIX):
        account_id = token[len(DEV_TOKEN_PREFIX):]
        if account_id:
            return Caller(account_id=account_id)

    return None


def get_evaluator(request: Request) -> PolicyEvaluator:
    """The evaluator installed on the app at startup."""
    return request.app.state.evaluator


# =============================================================================
# AccessRule - what a route needs
# =============================================================================


class AccessRule:
    """
    An action on a resource template that a route requires.

    Without an explicit template the resource defaults to the collection
    named by the action, inside this service's own system, e.g.
    ``iam:accounts:read`` -> ``grn:global:iam::${tenantId}:accounts``.
    """

    def __init__(self, action: str, resource: str | None = None):
        parsed = parse_action(action)
        if resource is None:
            settings = get_settings()
            resource = (
                f"grn:{settings.default_partition}:{settings.system_name}::"
                f"${{tenantId}}:{parsed.resource}"
            )
        self.action = action
        self.resource = resource

    async def check(self, ctx: AuthContext) -> tuple[bool, str | None]:
        """
        Check if context satisfies this rule.

        Returns: (allowed, error_message)
        """
        if ctx.is_anonymous:
            return False, "Authentication required"

        # Unfilled: can() substitutes exactly once
        if await ctx.can(self.action, self.resource):
            return True, None
        return False, f"Access denied for action '{self.action}' on resource '{ctx.resource(self.resource)}'"

    def __repr__(self) -> str:
        return f"<AccessRule({self.action} on {self.resource})>"


# =============================================================================
# Main Interface - the require() function
# =============================================================================


def require(action: str, resource: str | None = None) -> Callable:
    """
    Require permission for an action on a resource to access a route.

    Usage:
        @app.get("/api/realm/{tenant_id}/accounts/{account_id}")
        async def get_account(
            account_id: str,
            ctx: AuthContext = Depends(require(
                "iam:accounts:read",
                "grn:global:iam::${tenantId}:accounts/${account_id}",
            )),
        ):
            ...

    Args:
        action: ``system:resource:operation``
        resource: GRN template; ``${tenantId}``, ``${accountId}`` and path
            parameters are substituted per request

    Returns:
        FastAPI Depends that resolves to AuthContext
    """
    return _create_dependency(AccessRule(action, resource))


def _create_dependency(rule: AccessRule) -> Callable:
    """Create a FastAPI Depends from an access rule."""

    async def dependency(
        request: Request,
        caller: Caller | None = Depends(get_caller),
        evaluator: PolicyEvaluator = Depends(get_evaluator),
    ) -> AuthContext:
        tenant_id = request.path_params.get("tenant_id")
        if not tenant_id:
            raise HTTPException(status_code=400, detail="Realm context required")

        if caller is None:
            raise HTTPException(status_code=401, detail="Authentication required")

        if caller.tenant_id is not None and caller.tenant_id != tenant_id:
            raise HTTPException(status_code=403, detail="Token is not valid for this realm")

        ctx = get_auth_context(
            account_id=caller.account_id,
            tenant_id=tenant_id,
            evaluator=evaluator,
            path_params=request.path_params,
        )

        allowed, error = await rule.check(ctx)
        if not allowed:
            logger.info(f"Denied {caller.account_id} in {tenant_id}: {error}")
            raise HTTPException(status_code=403, detail=error)

        return ctx

    return dependency
