"""
Workspace-Scoped Repository

Base repository for entities owned by exactly one workspace. The workspace
is an explicit constructor argument, never ambient state, and every scoped
query goes through filter_strict().
"""

from typing import Any, Generic, TypeVar
from uuid import UUID

from sqlalchemy import Select, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.models.orm.base import Base
from src.repositories.base import BaseRepository

ModelT = TypeVar("ModelT", bound=Base)


def _workspace_filter(model: Any, workspace_id: UUID) -> Any:
    """Filter by workspace_id - bypasses type checking for generic model."""
    return model.workspace_id == workspace_id


class WorkspaceScopedRepository(BaseRepository[ModelT], Generic[ModelT]):
    """
    Repository with strict workspace scoping.

    Example usage:
        class WebhookEndpointRepository(WorkspaceScopedRepository[WebhookEndpoint]):
            model = WebhookEndpoint

            async def list_endpoints(self) -> list[WebhookEndpoint]:
                query = self.filter_strict(select(self.model))
                result = await self.session.execute(query)
                return list(result.scalars().all())
    """

    def __init__(self, session: AsyncSession, workspace_id: UUID):
        """
        Initialize repository with database session and workspace scope.

        Args:
            session: SQLAlchemy async session
            workspace_id: Workspace UUID every scoped query is restricted to
        """
        super().__init__(session)
        self.workspace_id = workspace_id

    def filter_strict(self, query: Select[tuple[ModelT]]) -> Select[tuple[ModelT]]:
        """
        Restrict a query to this workspace.

        The resulting query: WHERE workspace_id = :workspace_id
        """
        return query.where(_workspace_filter(self.model, self.workspace_id))

    async def get_scoped(self, id: UUID) -> ModelT | None:
        """
        Get an entity by id, only if it belongs to this workspace.

        Entities from other workspaces are indistinguishable from missing ones.
        """
        query = self.filter_strict(
            select(self.model).where(self.model.id == id)  # type: ignore[attr-defined]
        )
        result = await self.session.execute(query)
        return result.scalar_one_or_none()
