# backend/cla_backend/services/repository_service.py
"""
Repository service for CLA-enabled GitHub repositories.

Repositories are addressed by the GitHub numeric repository ID, which is the
value recorded in a user's active signature metadata.
"""

import logging
from typing import List, Optional

from sqlalchemy import select

from ..database.models import Repository
from ..models import RepositoryModel
from .database_service import DatabaseService, database_service

logger = logging.getLogger("cla.services.repository_service")


class RepositoryService:
    def __init__(self, db: Optional[DatabaseService] = None):
        self._db = db or database_service

    async def get_repository(self, repository_id: str) -> Optional[RepositoryModel]:
        """Fetch a repository by its GitHub numeric ID."""
        async with self._db.get_session() as session:
            result = await session.execute(
                select(Repository).where(Repository.repository_external_id == str(repository_id))
            )
            row = result.scalars().first()
            return RepositoryModel.model_validate(row) if row else None

    async def list_cla_group_repositories(self, cla_group_id: str, enabled: Optional[bool] = None) -> List[RepositoryModel]:
        async with self._db.get_session() as session:
            query = select(Repository).where(Repository.repository_project_id == cla_group_id)
            if enabled is not None:
                query = query.where(Repository.enabled == enabled)
            result = await session.execute(query.order_by(Repository.repository_name))
            return [RepositoryModel.model_validate(row) for row in result.scalars()]

    async def add_repository(self, repository: RepositoryModel) -> RepositoryModel:
        async with self._db.get_session() as session:
            row = Repository(**repository.model_dump())
            session.add(row)
            await session.flush()
            logger.debug(f"Added repository {row.repository_name} ({row.repository_external_id})")
            return RepositoryModel.model_validate(row)


# Global singleton instance
repository_service = RepositoryService()
