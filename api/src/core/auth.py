"""
Authentication and Authorization

Provides FastAPI dependencies for authentication and workspace scoping.
Supports JWT bearer token authentication with user context injection.

Workspace access is carried in the token itself:

    {
        "sub": "<user uuid>",
        "email": "...",
        "tenant_id": "<tenant uuid>",
        "is_admin": false,
        "workspaces": {"<workspace uuid>": ["settings.webhooks.manage", ...]}
    }

A workspace missing from the claim is treated as nonexistent (404), so the
existence of other tenants' workspaces never leaks.
"""

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Annotated, Any
from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from src.core.database import DbSession
from src.core.security import decode_token
from src.models.enums import Permission

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)

# HTTP Bearer token scheme
bearer_scheme = HTTPBearer(auto_error=False)


@dataclass
class UserPrincipal:
    """
    Authenticated user principal.

    All user info is extracted from JWT claims (no database lookup required).
    """
    user_id: UUID
    email: str
    tenant_id: UUID
    name: str = ""
    is_admin: bool = False
    workspace_permissions: dict[UUID, frozenset[str]] = field(default_factory=dict)

    def is_member_of(self, workspace_id: UUID) -> bool:
        """Check if the workspace was granted to this user at all."""
        return workspace_id in self.workspace_permissions

    def has_permission(self, workspace_id: UUID, permission: Permission) -> bool:
        """Check a workspace permission. Tenant admins hold every permission."""
        if not self.is_member_of(workspace_id):
            return False
        return self.is_admin or permission.value in self.workspace_permissions[workspace_id]


@dataclass
class WorkspaceContext:
    """
    Request context for workspace-scoped operations.

    Passed explicitly to every call that needs the scope; nothing reads the
    current workspace from global state.
    """
    user: UserPrincipal
    workspace_id: UUID
    db: "AsyncSession"

    @property
    def user_id(self) -> str:
        """Get user ID as string."""
        return str(self.user.user_id)


def _parse_workspace_claims(raw: Any) -> dict[UUID, frozenset[str]] | None:
    """Parse the workspaces claim. Returns None if malformed."""
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        return None

    parsed: dict[UUID, frozenset[str]] = {}
    for key, permissions in raw.items():
        try:
            workspace_id = UUID(str(key))
        except ValueError:
            return None
        if not isinstance(permissions, list):
            return None
        parsed[workspace_id] = frozenset(str(p) for p in permissions)
    return parsed


async def get_current_user_optional(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
) -> UserPrincipal | None:
    """
    Get the current user from a bearer token (optional).

    Tokens must:
    - Have type="access"
    - Have valid issuer and audience claims
    - Include sub, email and tenant_id claims

    Returns None if no token is provided or the token is invalid.
    """
    if not credentials:
        return None

    payload = decode_token(credentials.credentials, expected_type="access")
    if payload is None:
        return None

    try:
        user_id = UUID(str(payload.get("sub", "")))
        tenant_id = UUID(str(payload.get("tenant_id", "")))
    except ValueError:
        logger.warning("Token has missing or malformed sub/tenant_id claims")
        return None

    workspaces = _parse_workspace_claims(payload.get("workspaces"))
    if workspaces is None:
        logger.warning(f"Token for user {user_id} has a malformed workspaces claim")
        return None

    return UserPrincipal(
        user_id=user_id,
        email=payload.get("email", ""),
        tenant_id=tenant_id,
        name=payload.get("name", ""),
        is_admin=bool(payload.get("is_admin", False)),
        workspace_permissions=workspaces,
    )


async def get_current_user(
    user: Annotated[UserPrincipal | None, Depends(get_current_user_optional)],
) -> UserPrincipal:
    """
    Get the current user from a bearer token (required).

    Raises:
        HTTPException: If not authenticated or token is invalid
    """
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


async def get_webhook_context(
    workspace_id: UUID,
    user: Annotated[UserPrincipal, Depends(get_current_user)],
    db: DbSession,
) -> WorkspaceContext:
    """
    Resolve the workspace scope for webhook endpoint management.

    Raises:
        HTTPException: 404 if the workspace is not visible to the user,
            403 if it is visible but the user cannot manage webhooks
    """
    if not user.is_member_of(workspace_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Workspace not found",
        )

    if not user.has_permission(workspace_id, Permission.WEBHOOKS_MANAGE):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You do not have permission to manage webhooks in this workspace",
        )

    return WorkspaceContext(user=user, workspace_id=workspace_id, db=db)


# Type alias for dependency injection
WebhookContext = Annotated[WorkspaceContext, Depends(get_webhook_context)]
