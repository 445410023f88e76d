"""
Auth context - who is calling, in which realm, and what they may do.

This is the lightweight object handed to guarded route handlers.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from fastapi import HTTPException

from warden.authz.evaluator import PolicyEvaluator
from warden.authz.variables import resolve_variables


@dataclass
class AuthContext:
    """
    Authorization context for a request.

    Usage in routes:
        async def my_route(ctx: AuthContext = Depends(require("iam:accounts:read"))):
            if await ctx.can("iam:accounts:write", "grn:global:iam::${tenantId}:accounts"):
                ...
    """

    # Who
    account_id: str | None = None

    # Where
    tenant_id: str | None = None

    evaluator: PolicyEvaluator | None = field(default=None, repr=False)

    # Extra context (path params, request id, ...)
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def is_authenticated(self) -> bool:
        return self.account_id is not None

    @property
    def is_anonymous(self) -> bool:
        return self.account_id is None

    @property
    def variables(self) -> dict[str, str]:
        """Values available to ``${...}`` placeholders in resource templates."""
        values = {str(k): str(v) for k, v in self.metadata.items()}
        if self.tenant_id is not None:
            values["tenantId"] = self.tenant_id
        if self.account_id is not None:
            values["accountId"] = self.account_id
        return values

    def resource(self, template: str) -> str:
        """Resolve a resource template against this context."""
        return resolve_variables(template, self.variables)

    async def can(self, action: str, resource: str) -> bool:
        """
        Is the caller allowed to perform ``action`` on ``resource``?

        ``resource`` may be a template. Anonymous callers can do nothing.
        """
        if not self.is_authenticated or self.tenant_id is None or self.evaluator is None:
            return False
        result = await self.evaluator.evaluate(
            self.tenant_id,
            self.account_id,
            action,
            self.resource(resource),
        )
        return result.allowed

    async def require(self, action: str, resource: str) -> None:
        """
        Raise 403 unless the caller may perform ``action`` on ``resource``.

        Usage:
            await ctx.require("iam:policies:delete", "grn:global:iam::${tenantId}:policies/p1")
        """
        if not await self.can(action, resource):
            raise HTTPException(
                status_code=403,
                detail=f"Access denied for action '{action}' on resource '{self.resource(resource)}'",
            )

    @classmethod
    def anonymous(cls, tenant_id: str | None = None) -> AuthContext:
        """Create an anonymous context (no account)."""
        return cls(tenant_id=tenant_id)


def get_auth_context(
    account_id: str | None = None,
    tenant_id: str | None = None,
    evaluator: PolicyEvaluator | None = None,
    path_params: dict[str, Any] | None = None,
) -> AuthContext:
    """Build the auth context for a request."""
    if not account_id:
        return AuthContext.anonymous(tenant_id)

    return AuthContext(
        account_id=account_id,
        tenant_id=tenant_id,
        evaluator=evaluator,
        metadata=dict(path_params or {}),
    )
