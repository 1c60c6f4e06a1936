"""
Security Utilities

JWT token handling and secret generation.

Tokens are issued by the identity provider that owns users and workspaces;
this service only validates them.
"""

import secrets
from typing import Any

import jwt

from src.config import get_settings

# 64 bytes of randomness, ~86 urlsafe characters once encoded
ENDPOINT_SECRET_BYTES = 64


def generate_secret(nbytes: int = ENDPOINT_SECRET_BYTES) -> str:
    """
    Generate an opaque, URL-safe signing secret.

    Args:
        nbytes: Bytes of randomness (not output length)

    Returns:
        URL-safe base64 token
    """
    return secrets.token_urlsafe(nbytes)


def decode_token(token: str, expected_type: str | None = None) -> dict[str, Any] | None:
    """
    Decode and validate a JWT token.

    Args:
        token: JWT token string to decode
        expected_type: If provided, validates that token type matches (e.g., "access")

    Returns:
        Decoded token payload or None if invalid/expired/wrong type
    """
    settings = get_settings()

    try:
        payload = jwt.decode(
            token,
            settings.secret_key,
            algorithms=[settings.algorithm],
            issuer=settings.jwt_issuer,
            audience=settings.jwt_audience,
        )

        if expected_type is not None and payload.get("type") != expected_type:
            return None

        return payload
    except jwt.ExpiredSignatureError:
        return None
    except jwt.InvalidTokenError:
        return None
