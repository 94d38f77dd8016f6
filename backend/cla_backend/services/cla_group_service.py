# backend/cla_backend/services/cla_group_service.py
"""CLA group (project) lookups."""

from typing import Optional

from ..database.models import ClaGroup
from ..models import ClaGroupModel
from .database_service import DatabaseService, database_service


class ClaGroupService:
    def __init__(self, db: Optional[DatabaseService] = None):
        self._db = db or database_service

    async def get_cla_group(self, cla_group_id: str) -> Optional[ClaGroupModel]:
        async with self._db.get_session() as session:
            row = await session.get(ClaGroup, cla_group_id)
            return ClaGroupModel.model_validate(row) if row else None

    async def create_cla_group(self, cla_group: ClaGroupModel) -> ClaGroupModel:
        async with self._db.get_session() as session:
            row = ClaGroup(
                project_id=cla_group.project_id,
                project_name=cla_group.project_name,
                project_external_id=cla_group.project_external_id,
                foundation_sfid=cla_group.foundation_sfid,
            )
            session.add(row)
            await session.flush()
            return ClaGroupModel.model_validate(row)


# Global singleton instance
cla_group_service = ClaGroupService()
