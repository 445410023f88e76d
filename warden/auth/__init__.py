"""
Caller identification and route guards.

Design principles:
1. One dependency for every guarded route: require(action, resource)
2. Decisions come from the policy evaluator, never from the route
3. Realm comes from the path, account from the bearer token
"""

from warden.auth.context import AuthContext, get_auth_context
from warden.auth.policies import (
    AccessRule,
    Caller,
    get_caller,
    get_evaluator,
    require,
)
from warden.auth.jwt import (
    TokenPayload,
    TokenError,
    TokenExpiredError,
    TokenInvalidError,
    decode_token,
)

__all__ = [
    # Main interface
    "require",
    "AuthContext",
    "get_auth_context",
    "AccessRule",
    "Caller",
    "get_caller",
    "get_evaluator",
    # JWT
    "TokenPayload",
    "TokenError",
    "TokenExpiredError",
    "TokenInvalidError",
    "decode_token",
]
