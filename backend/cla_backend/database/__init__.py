# backend/cla_backend/database/__init__.py
"""
Database package for the CLA backend.

Provides the SQLAlchemy declarative base and ORM models.
"""

from .base import Base
from .models import (
    ActiveSignature,
    ClaGroup,
    Company,
    Event,
    GitHubOrganization,
    Repository,
    Signature,
    User,
)

__all__ = [
    "Base",
    "ActiveSignature",
    "ClaGroup",
    "Company",
    "Event",
    "GitHubOrganization",
    "Repository",
    "Signature",
    "User",
]
