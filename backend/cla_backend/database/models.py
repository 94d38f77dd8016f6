# backend/cla_backend/database/models.py
"""
SQLAlchemy ORM models for the CLA backend.

Models:
    - ClaGroup: A CLA group (project) that contributors sign against
    - Company: Organization that signs corporate agreements
    - User: Contributor identity (emails, GitHub/GitLab accounts, company)
    - Signature: ICLA, CCLA and ECLA records, including approval lists and ACL
    - ActiveSignature: Pull request that started a user's signing flow
    - Repository: CLA-enabled GitHub repository
    - GitHubOrganization: GitHub organization with the CLA app installed
    - Event: Audit trail entry

Identifiers are string UUIDs. List-valued attributes (emails, approval
lists, ACLs) are JSON columns and must be reassigned, not mutated in place,
for changes to be flushed.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import (
    BigInteger,
    Boolean,
    Column,
    DateTime,
    Index,
    JSON,
    String,
    Text,
)

from .base import Base


def _new_id() -> str:
    return str(uuid.uuid4())


class ClaGroup(Base):
    """
    CLA group (project) model.

    Attributes:
        project_id: Unique CLA group identifier
        project_name: Human-readable name
        project_external_id: Salesforce ID of the project
        foundation_sfid: Salesforce ID of the parent foundation
    """

    __tablename__ = "cla_groups"

    project_id = Column(String(36), primary_key=True, default=_new_id)
    project_name = Column(String(255), nullable=False)
    project_external_id = Column(String(100), nullable=True, index=True)
    foundation_sfid = Column(String(100), nullable=True)

    date_created = Column(DateTime, default=datetime.utcnow, nullable=False)
    date_modified = Column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )

    def __repr__(self) -> str:
        return f"<ClaGroup(project_id={self.project_id}, name={self.project_name})>"


class Company(Base):
    """Company that signs corporate CLAs."""

    __tablename__ = "companies"

    company_id = Column(String(36), primary_key=True, default=_new_id)
    company_name = Column(String(255), nullable=False, index=True)
    company_external_id = Column(String(100), nullable=True, index=True)
    signing_entity_name = Column(String(255), nullable=True)
    company_acl = Column(JSON, nullable=False, default=list)

    date_created = Column(DateTime, default=datetime.utcnow, nullable=False)
    date_modified = Column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )

    def __repr__(self) -> str:
        return f"<Company(company_id={self.company_id}, name={self.company_name})>"


class User(Base):
    """
    Contributor identity.

    A user may be known by several emails, a GitHub account and a GitLab
    account. Users created by the auto-create ECLA workflow carry a note
    explaining where they came from.
    """

    __tablename__ = "users"

    user_id = Column(String(36), primary_key=True, default=_new_id)
    user_name = Column(String(255), nullable=True)
    lf_username = Column(String(100), nullable=True, index=True)
    lf_email = Column(String(255), nullable=True, index=True)
    user_emails = Column(JSON, nullable=False, default=list)

    github_id = Column(String(50), nullable=True, index=True)
    github_username = Column(String(100), nullable=True, index=True)
    gitlab_id = Column(String(50), nullable=True)
    gitlab_username = Column(String(100), nullable=True, index=True)

    company_id = Column(String(36), nullable=True, index=True)
    note = Column(Text, nullable=True)

    date_created = Column(DateTime, default=datetime.utcnow, nullable=False)
    date_modified = Column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )

    def __repr__(self) -> str:
        return f"<User(user_id={self.user_id}, lf_username={self.lf_username})>"


class Signature(Base):
    """
    Signature record.

    One table holds all three kinds of signature:

    - ICLA: reference_type ``user``, signature_type ``cla``
    - CCLA: reference_type ``company``, signature_type ``ccla``
    - ECLA: reference_type ``user``, signature_type ``cla`` and
      ``user_ccla_company_id`` set to the employer

    A CCLA carries the approval lists and the ACL of CLA manager usernames.
    """

    __tablename__ = "signatures"

    signature_id = Column(String(36), primary_key=True, default=_new_id)
    signature_type = Column(String(20), nullable=False, index=True)
    signature_reference_type = Column(String(20), nullable=False)
    signature_reference_id = Column(String(36), nullable=False, index=True)
    signature_reference_name = Column(String(255), nullable=True)
    signature_project_id = Column(String(36), nullable=False, index=True)
    signature_user_ccla_company_id = Column(String(36), nullable=True, index=True)

    signature_approved = Column(Boolean, default=False, nullable=False)
    signature_signed = Column(Boolean, default=False, nullable=False)
    signature_embargo_acked = Column(Boolean, default=True, nullable=False)
    auto_create_ecla = Column(Boolean, default=False, nullable=False)

    signatory_name = Column(String(255), nullable=True)
    user_email = Column(String(255), nullable=True)
    user_github_username = Column(String(100), nullable=True)
    user_gitlab_username = Column(String(100), nullable=True)
    user_lf_username = Column(String(100), nullable=True)

    signature_acl = Column(JSON, nullable=False, default=list)
    email_approval_list = Column(JSON, nullable=False, default=list)
    domain_approval_list = Column(JSON, nullable=False, default=list)
    github_username_approval_list = Column(JSON, nullable=False, default=list)
    github_org_approval_list = Column(JSON, nullable=False, default=list)
    gitlab_username_approval_list = Column(JSON, nullable=False, default=list)
    gitlab_org_approval_list = Column(JSON, nullable=False, default=list)

    note = Column(Text, nullable=True)
    signed_on = Column(DateTime, nullable=True)
    date_created = Column(DateTime, default=datetime.utcnow, nullable=False)
    date_modified = Column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )

    __table_args__ = (
        Index("ix_signatures_project_reference", "signature_project_id", "signature_reference_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<Signature(signature_id={self.signature_id}, type={self.signature_type}, "
            f"project={self.signature_project_id})>"
        )


class ActiveSignature(Base):
    """Pull request context recorded when a user starts signing from GitHub."""

    __tablename__ = "active_signatures"

    user_id = Column(String(36), primary_key=True)
    project_id = Column(String(36), nullable=False)
    repository_id = Column(String(50), nullable=False)
    pull_request_id = Column(String(50), nullable=False)
    return_url = Column(String(1024), nullable=True)
    date_created = Column(DateTime, default=datetime.utcnow, nullable=False)


class Repository(Base):
    """
    CLA-enabled GitHub repository.

    ``repository_external_id`` is the GitHub numeric repository ID, which is
    what the active signature metadata stores.
    """

    __tablename__ = "repositories"

    repository_id = Column(String(36), primary_key=True, default=_new_id)
    repository_external_id = Column(String(50), nullable=False, unique=True, index=True)
    repository_name = Column(String(255), nullable=False)
    repository_organization_name = Column(String(255), nullable=False, index=True)
    repository_url = Column(String(1024), nullable=True)
    repository_project_id = Column(String(36), nullable=True, index=True)
    repository_type = Column(String(20), nullable=False, default="github")
    enabled = Column(Boolean, default=True, nullable=False)

    date_created = Column(DateTime, default=datetime.utcnow, nullable=False)
    date_modified = Column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )


class GitHubOrganization(Base):
    """GitHub organization with the CLA GitHub App installed."""

    __tablename__ = "github_organizations"

    organization_name = Column(String(255), primary_key=True)
    organization_name_lower = Column(String(255), nullable=False, index=True)
    organization_installation_id = Column(BigInteger, nullable=True)
    organization_sfid = Column(String(100), nullable=True)
    project_sfid = Column(String(100), nullable=True)
    enabled = Column(Boolean, default=True, nullable=False)
    auto_enabled = Column(Boolean, default=False, nullable=False)

    date_created = Column(DateTime, default=datetime.utcnow, nullable=False)
    date_modified = Column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )


class Event(Base):
    """
    Audit trail entry.

    Attributes:
        event_type: Dotted-free event type name (e.g. ``ApprovalListUpdated``)
        event_data: Human-readable description of what happened
        event_summary: Short summary used in listings
        contains_pii: Whether event_data includes personal information
    """

    __tablename__ = "events"

    event_id = Column(String(36), primary_key=True, default=_new_id)
    event_type = Column(String(100), nullable=False, index=True)

    event_user_id = Column(String(36), nullable=True)
    event_user_name = Column(String(255), nullable=True)
    event_lf_username = Column(String(100), nullable=True)

    event_cla_group_id = Column(String(36), nullable=True, index=True)
    event_cla_group_name = Column(String(255), nullable=True)
    event_project_sfid = Column(String(100), nullable=True, index=True)
    event_parent_project_sfid = Column(String(100), nullable=True)

    event_company_id = Column(String(36), nullable=True, index=True)
    event_company_name = Column(String(255), nullable=True)
    event_company_sfid = Column(String(100), nullable=True)

    event_data = Column(Text, nullable=True)
    event_summary = Column(Text, nullable=True)
    contains_pii = Column(Boolean, default=False, nullable=False)

    event_time = Column(DateTime, default=datetime.utcnow, nullable=False)
    event_time_epoch = Column(BigInteger, nullable=False, index=True)

    def __repr__(self) -> str:
        return f"<Event(event_id={self.event_id}, type={self.event_type})>"
