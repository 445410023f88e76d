# =============================================================================
# JWT Access Token Verification
# =============================================================================
#
# Warden does not issue tokens. It verifies access tokens issued by the
# authentication service to learn which account is calling:
#   - sub        -> account id
#   - tenant_id  -> realm the token was issued for (optional)
#
# =============================================================================

from datetime import datetime, timezone
import logging

from pydantic import BaseModel
import jwt

from warden.config import get_settings

logger = logging.getLogger(__name__)


# =============================================================================
# Models
# =============================================================================

class TokenPayload(BaseModel):
    """Verified access token claims."""
    sub: str  # account_id
    exp: datetime
    iat: datetime
    type: str
    jti: str = ""
    tenant_id: str | None = None


# =============================================================================
# Token Validation
# =============================================================================

class TokenError(Exception):
    """Base exception for token errors."""
    pass


class TokenExpiredError(TokenError):
    """Token has expired."""
    pass


class TokenInvalidError(TokenError):
    """Token is invalid or malformed."""
    pass


def decode_token(token: str, expected_type: str = "access") -> TokenPayload:
    """
    Decode and validate a JWT token.

    Args:
        token: The JWT string
        expected_type: Required value of the "type" claim

    Returns:
        TokenPayload with validated claims

    Raises:
        TokenExpiredError: Token has expired
        TokenInvalidError: Token is invalid
    """
    settings = get_settings()
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
            options={"require": ["sub", "exp", "iat"]},
        )
    except jwt.ExpiredSignatureError:
        raise TokenExpiredError("Token has expired")
    except jwt.InvalidTokenError as e:
        raise TokenInvalidError(f"Invalid token: {e}")

    if payload.get("type") != expected_type:
        raise TokenInvalidError(f"Expected {expected_type} token, got {payload.get('type')}")

    return TokenPayload(
        sub=payload["sub"],
        exp=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
        iat=datetime.fromtimestamp(payload["iat"], tz=timezone.utc),
        type=payload["type"],
        jti=payload.get("jti", ""),
        tenant_id=payload.get("tenant_id"),
    )
