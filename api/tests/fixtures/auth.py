"""
Test authentication helpers.

Provides JWT token generation and HTTP header helpers for testing
authenticated endpoints through the FastAPI TestClient.
"""

from datetime import datetime, timedelta, timezone
from typing import Any
from uuid import UUID

import jwt


# Test environment JWT settings (must match src/config.py defaults and tests/conftest.py)
TEST_SECRET_KEY = "test-secret-key-for-testing-must-be-32-chars"
TEST_JWT_ISSUER = "hookline-api"
TEST_JWT_AUDIENCE = "hookline-client"
TEST_ALGORITHM = "HS256"

MANAGE_PERMISSION = "settings.webhooks.manage"

# Default test user UUIDs (stable for consistent testing)
DEFAULT_USER_ID = "00000000-0000-4000-8000-000000000001"
DEFAULT_TENANT_ID = "00000000-0000-4000-8000-0000000000aa"


def create_test_jwt(
    workspaces: dict[UUID, list[str]] | None = None,
    user_id: Any = DEFAULT_USER_ID,
    tenant_id: Any = DEFAULT_TENANT_ID,
    email: str = "test@example.com",
    name: str = "Test User",
    is_admin: bool = False,
    token_type: str = "access",
    expires_in: timedelta = timedelta(hours=2),
) -> str:
    """
    Create test JWT token for authentication.

    Args:
        workspaces: Workspace ID -> granted permission names
        user_id: User UUID (sub claim)
        tenant_id: Tenant UUID
        email: User email address
        name: User display name
        is_admin: Tenant admin flag (holds every permission)
        token_type: Value of the "type" claim
        expires_in: Lifetime from now (negative for an expired token)

    Returns:
        str: JWT token signed with test secret
    """
    now = datetime.now(timezone.utc)
    payload = {
        "sub": user_id,
        "tenant_id": tenant_id,
        "email": email,
        "name": name,
        "is_admin": is_admin,
        "workspaces": {str(k): v for k, v in (workspaces or {}).items()},
        "exp": now + expires_in,
        "iat": now,
        "iss": TEST_JWT_ISSUER,
        "aud": TEST_JWT_AUDIENCE,
        "type": token_type,
    }
    return jwt.encode(payload, TEST_SECRET_KEY, algorithm=TEST_ALGORITHM)


def auth_headers(token: str) -> dict[str, str]:
    """Create Authorization header with Bearer token."""
    return {"Authorization": f"Bearer {token}"}


