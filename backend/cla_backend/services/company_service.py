# backend/cla_backend/services/company_service.py
"""Company lookups."""

import logging
from typing import Optional

from sqlalchemy import select

from ..database.models import Company
from ..models import CompanyModel
from .database_service import DatabaseService, database_service

logger = logging.getLogger("cla.services.company_service")


class CompanyService:
    def __init__(self, db: Optional[DatabaseService] = None):
        self._db = db or database_service

    async def get_company(self, company_id: str) -> Optional[CompanyModel]:
        async with self._db.get_session() as session:
            row = await session.get(Company, company_id)
            return CompanyModel.model_validate(row) if row else None

    async def get_company_by_external_id(self, company_sfid: str) -> Optional[CompanyModel]:
        async with self._db.get_session() as session:
            result = await session.execute(
                select(Company).where(Company.company_external_id == company_sfid).limit(1)
            )
            row = result.scalars().first()
            return CompanyModel.model_validate(row) if row else None

    async def create_company(self, company: CompanyModel) -> CompanyModel:
        async with self._db.get_session() as session:
            row = Company(
                company_id=company.company_id,
                company_name=company.company_name,
                company_external_id=company.company_external_id,
                signing_entity_name=company.signing_entity_name,
                company_acl=list(company.company_acl),
            )
            session.add(row)
            await session.flush()
            logger.debug(f"Created company {row.company_id}")
            return CompanyModel.model_validate(row)


# Global singleton instance
company_service = CompanyService()
