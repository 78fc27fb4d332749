"""
Bearer token verification.

Tokens are issued by the external identity provider and signed with the
shared ``JWT_SECRET``. The ``sub`` claim carries the user id.
"""
import jwt

from groupguard.core import config
from groupguard.core.errors import AppError, ErrorKind


def verify_jwt_token(token: str) -> dict:
    """
    Verify a JWT and return its payload.

    Args:
        token: JWT token from Authorization header

    Returns:
        Decoded JWT payload

    Raises:
        AppError: AUTHENTICATION_REQUIRED if the token is invalid or expired
    """
    try:
        return jwt.decode(
            token,
            config.JWT_SECRET,
            algorithms=[config.JWT_ALGORITHM],
            options={"require": ["sub"]},
        )
    except jwt.ExpiredSignatureError:
        raise AppError(ErrorKind.AUTHENTICATION_REQUIRED, "Token has expired")
    except jwt.InvalidTokenError as e:
        raise AppError(ErrorKind.AUTHENTICATION_REQUIRED, f"Invalid token: {str(e)}")


def issue_token(user_id: str, **claims) -> str:
    """Sign a token for ``user_id``. Used by scripts and tests standing in for the provider."""
    return jwt.encode({"sub": user_id, **claims}, config.JWT_SECRET, algorithm=config.JWT_ALGORITHM)
