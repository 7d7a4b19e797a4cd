"""
Caller identity for the RecruiterOps API.

Authentication itself belongs to the hosted auth provider; this module only
verifies the provider-issued JWT and extracts the user id from its `sub`
claim. Falls back to the X-User-Id header when no JWT secret is configured
outside production (local development and tests).
"""
from fastapi import Header, Request
from typing import Optional
import jwt
import logging

from recruiterops.core.errors import UnauthorizedError

logger = logging.getLogger(__name__)


def verify_provider_jwt(token: str, secret: str) -> str:
    """
    Verify a provider JWT and extract user_id.

    Args:
        token: JWT from Authorization header (Bearer {token})
        secret: Shared HS256 secret of the auth provider

    Returns:
        user_id from the token's 'sub' claim

    Raises:
        UnauthorizedError: Invalid, expired, or subject-less token
    """
    try:
        payload = jwt.decode(
            token,
            secret,
            algorithms=["HS256"],
            options={"verify_signature": True, "verify_exp": True, "verify_aud": False},
        )
    except jwt.ExpiredSignatureError:
        raise UnauthorizedError("Token expired")
    except jwt.InvalidTokenError as e:
        logger.debug(f"Invalid token: {e}")
        raise UnauthorizedError("Invalid token")

    user_id = payload.get("sub")
    if not user_id:
        raise UnauthorizedError("Token has no subject")
    return user_id


async def get_current_user_id(
    request: Request,
    x_user_id: Optional[str] = Header(None, description="Development-only user ID"),
) -> str:
    """
    Extract current user ID from request context.

    Priority:
    1. Provider JWT from Authorization header (when AUTH_JWT_SECRET is set)
    2. X-User-Id header (only when no secret is set and not in production)
    3. Raise 401 Unauthorized
    """
    cfg = request.app.state.settings
    secret = cfg.AUTH_JWT_SECRET

    auth_header = request.headers.get("Authorization", "")
    if secret:
        if not auth_header.startswith("Bearer "):
            raise UnauthorizedError("Missing Authorization bearer token")
        return verify_provider_jwt(auth_header[7:], secret)

    if x_user_id and cfg.ENV.lower() != "production":
        return x_user_id

    raise UnauthorizedError("Missing Authorization (Bearer JWT) or X-User-Id header")
