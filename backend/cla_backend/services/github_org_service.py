# backend/cla_backend/services/github_org_service.py
"""GitHub organizations that have the CLA GitHub App installed."""

from typing import Optional

from sqlalchemy import select

from ..database.models import GitHubOrganization
from ..models import GitHubOrganizationModel
from .database_service import DatabaseService, database_service


class GitHubOrgService:
    def __init__(self, db: Optional[DatabaseService] = None):
        self._db = db or database_service

    async def get_github_organization_by_name(self, organization_name: str) -> Optional[GitHubOrganizationModel]:
        """Case-insensitive lookup by organization login."""
        async with self._db.get_session() as session:
            result = await session.execute(
                select(GitHubOrganization).where(
                    GitHubOrganization.organization_name_lower == organization_name.lower()
                )
            )
            row = result.scalars().first()
            return GitHubOrganizationModel.model_validate(row) if row else None

    async def add_github_organization(self, org: GitHubOrganizationModel) -> GitHubOrganizationModel:
        async with self._db.get_session() as session:
            row = GitHubOrganization(
                organization_name=org.organization_name,
                organization_name_lower=org.organization_name.lower(),
                organization_installation_id=org.organization_installation_id,
                organization_sfid=org.organization_sfid,
                project_sfid=org.project_sfid,
                enabled=org.enabled,
                auto_enabled=org.auto_enabled,
            )
            session.add(row)
            await session.flush()
            return GitHubOrganizationModel.model_validate(row)


# Global singleton instance
github_org_service = GitHubOrgService()
