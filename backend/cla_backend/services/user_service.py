# backend/cla_backend/services/user_service.py
"""
User service for contributor identity lookups.

Users are looked up by LF username, email, GitHub username or GitLab
username. Lookups return ``None`` when no record matches; database errors
propagate to the caller.

Usage:
    from cla_backend.services.user_service import user_service

    user = await user_service.get_user_by_email("jane@example.com")
"""

import logging
from typing import Optional

from sqlalchemy import String, cast, func, or_, select

from ..database.models import User
from ..models import UserModel
from .database_service import DatabaseService, database_service

logger = logging.getLogger("cla.services.user_service")


def to_user_model(row: User) -> UserModel:
    return UserModel(
        user_id=row.user_id,
        user_name=row.user_name,
        lf_username=row.lf_username,
        lf_email=row.lf_email,
        emails=list(row.user_emails or []),
        github_id=row.github_id,
        github_username=row.github_username,
        gitlab_id=row.gitlab_id,
        gitlab_username=row.gitlab_username,
        company_id=row.company_id,
        note=row.note,
    )


class UserService:
    """Lookup and creation of contributor identities."""

    def __init__(self, db: Optional[DatabaseService] = None):
        self._db = db or database_service

    async def get_user(self, user_id: str) -> Optional[UserModel]:
        async with self._db.get_session() as session:
            row = await session.get(User, user_id)
            return to_user_model(row) if row else None

    async def get_user_by_username(self, user_name: str, full_match: bool = True) -> Optional[UserModel]:
        """
        Look up a user by LF username.

        Args:
            user_name: LF username
            full_match: Exact match when True, case-insensitive prefix match otherwise
        """
        async with self._db.get_session() as session:
            if full_match:
                query = select(User).where(User.lf_username == user_name)
            else:
                query = select(User).where(func.lower(User.lf_username).like(f"{user_name.lower()}%"))
            result = await session.execute(query.limit(1))
            row = result.scalars().first()
            return to_user_model(row) if row else None

    async def get_user_by_email(self, email: str) -> Optional[UserModel]:
        """Look up a user whose LF email or any alternate email equals ``email``."""
        async with self._db.get_session() as session:
            query = select(User).where(
                or_(
                    User.lf_email == email,
                    cast(User.user_emails, String).contains(f'"{email}"'),
                )
            )
            result = await session.execute(query)
            for row in result.scalars():
                if row.lf_email == email or email in (row.user_emails or []):
                    return to_user_model(row)
            return None

    async def get_user_by_github_username(self, github_username: str) -> Optional[UserModel]:
        if not github_username:
            return None
        async with self._db.get_session() as session:
            result = await session.execute(
                select(User).where(User.github_username == github_username).limit(1)
            )
            row = result.scalars().first()
            return to_user_model(row) if row else None

    async def get_user_by_gitlab_username(self, gitlab_username: str) -> Optional[UserModel]:
        if not gitlab_username:
            return None
        async with self._db.get_session() as session:
            result = await session.execute(
                select(User).where(User.gitlab_username == gitlab_username).limit(1)
            )
            row = result.scalars().first()
            return to_user_model(row) if row else None

    async def create_user(self, user: UserModel) -> UserModel:
        """Persist a new user and return it with its generated ID."""
        async with self._db.get_session() as session:
            row = User(
                user_name=user.user_name,
                lf_username=user.lf_username,
                lf_email=user.lf_email,
                user_emails=list(user.emails),
                github_id=user.github_id,
                github_username=user.github_username,
                gitlab_id=user.gitlab_id,
                gitlab_username=user.gitlab_username,
                company_id=user.company_id,
                note=user.note,
            )
            if user.user_id:
                row.user_id = user.user_id
            session.add(row)
            await session.flush()
            logger.debug(f"Created user {row.user_id}")
            return to_user_model(row)


# Global singleton instance
user_service = UserService()
