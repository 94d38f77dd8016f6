# ============================================================================
# CLA Backend - Pydantic Data Models and Schemas
# ============================================================================
"""
Pydantic data models and schemas for the CLA backend.

This module defines the data structures passed between the API layer and the
services:
- Identity models (authenticated user, user, company, CLA group)
- Signature models and paginated signature lists
- Approval list deltas and approval criteria
- Query parameter bundles for list operations
- GitHub derived models (commit author summaries)

ORM rows are converted with ``Model.model_validate(row)``; the models use
``from_attributes`` so ORM column names map directly where they match.
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


# ============================================================================
# ENUMERATION TYPES
# ============================================================================

class ClaType(str, Enum):
    """Signature kind used by list filters."""
    ICLA = "icla"
    CCLA = "ccla"
    ECLA = "ecla"


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


# Values stored in Signature.signature_type / signature_reference_type
SIGNATURE_TYPE_CLA = "cla"
SIGNATURE_TYPE_CCLA = "ccla"
REFERENCE_TYPE_USER = "user"
REFERENCE_TYPE_COMPANY = "company"


# ============================================================================
# IDENTITY MODELS
# ============================================================================

class AuthUser(BaseModel):
    """The authenticated caller, decoded from the bearer token."""
    user_name: str = Field(..., description="LF username of the caller")
    email: Optional[str] = Field(None, description="Primary email of the caller")


class UserModel(BaseModel):
    """Contributor identity."""
    user_id: str = ""
    user_name: Optional[str] = None
    lf_username: Optional[str] = None
    lf_email: Optional[str] = None
    emails: List[str] = Field(default_factory=list)
    github_id: Optional[str] = None
    github_username: Optional[str] = None
    gitlab_id: Optional[str] = None
    gitlab_username: Optional[str] = None
    company_id: Optional[str] = None
    note: Optional[str] = None

    class Config:
        from_attributes = True


class CompanyModel(BaseModel):
    company_id: str
    company_name: str
    company_external_id: Optional[str] = None
    signing_entity_name: Optional[str] = None
    company_acl: List[str] = Field(default_factory=list)

    class Config:
        from_attributes = True


class ClaGroupModel(BaseModel):
    project_id: str
    project_name: str
    project_external_id: Optional[str] = None
    foundation_sfid: Optional[str] = None

    class Config:
        from_attributes = True


class RepositoryModel(BaseModel):
    repository_id: str
    repository_external_id: str
    repository_name: str
    repository_organization_name: str
    repository_url: Optional[str] = None
    repository_project_id: Optional[str] = None
    repository_type: str = "github"
    enabled: bool = True

    class Config:
        from_attributes = True


class GitHubOrganizationModel(BaseModel):
    organization_name: str
    organization_installation_id: Optional[int] = None
    organization_sfid: Optional[str] = None
    project_sfid: Optional[str] = None
    enabled: bool = True
    auto_enabled: bool = False

    class Config:
        from_attributes = True


class SignatureMetadata(BaseModel):
    """Pull request context of a user's most recent signing flow."""
    user_id: str
    project_id: str
    repository_id: str
    pull_request_id: str
    return_url: Optional[str] = None

    class Config:
        from_attributes = True


# ============================================================================
# SIGNATURE MODELS
# ============================================================================

class SignatureModel(BaseModel):
    """
    A signature with its approval lists.

    ``signature_acl`` holds the CLA managers as user models; when a manager has
    no user record only ``lf_username`` is populated.
    """
    signature_id: str = ""
    signature_type: str
    signature_reference_type: str
    signature_reference_id: str
    signature_reference_name: Optional[str] = None
    project_id: str
    company_id: Optional[str] = None
    signature_approved: bool = False
    signature_signed: bool = False
    signature_embargo_acked: bool = True
    auto_create_ecla: bool = False

    signatory_name: Optional[str] = None
    user_email: Optional[str] = None
    user_github_username: Optional[str] = None
    user_gitlab_username: Optional[str] = None
    user_lf_username: Optional[str] = None

    signature_acl: List[UserModel] = Field(default_factory=list)
    email_approval_list: List[str] = Field(default_factory=list)
    domain_approval_list: List[str] = Field(default_factory=list)
    github_username_approval_list: List[str] = Field(default_factory=list)
    github_org_approval_list: List[str] = Field(default_factory=list)
    gitlab_username_approval_list: List[str] = Field(default_factory=list)
    gitlab_org_approval_list: List[str] = Field(default_factory=list)

    note: Optional[str] = None
    signed_on: Optional[datetime] = None
    date_created: Optional[datetime] = None
    date_modified: Optional[datetime] = None


class SignatureList(BaseModel):
    """A page of signatures; ``last_key`` is the cursor for the next page."""
    project_id: Optional[str] = None
    signatures: List[SignatureModel] = Field(default_factory=list)
    result_count: int = 0
    total_count: int = 0
    last_key: Optional[str] = None


class SignatureReport(BaseModel):
    project_id: str
    signatures: List[SignatureModel] = Field(default_factory=list)
    result_count: int = 0
    total_count: int = 0
    icla_count: int = 0
    ccla_count: int = 0
    ecla_count: int = 0
    last_key: Optional[str] = None


class IclaSignature(BaseModel):
    signature_id: str
    user_id: str
    user_name: Optional[str] = None
    lf_username: Optional[str] = None
    user_email: Optional[str] = None
    github_username: Optional[str] = None
    signed_on: Optional[datetime] = None
    signature_approved: bool = False
    signature_signed: bool = False


class IclaSignatureList(BaseModel):
    items: List[IclaSignature] = Field(default_factory=list)
    result_count: int = 0
    next_key: Optional[str] = None


class CorporateContributor(BaseModel):
    signature_id: str
    user_id: str
    name: Optional[str] = None
    lf_username: Optional[str] = None
    email: Optional[str] = None
    github_username: Optional[str] = None
    company_id: Optional[str] = None
    timestamp: Optional[datetime] = None


class CorporateContributorList(BaseModel):
    items: List[CorporateContributor] = Field(default_factory=list)


class SignatureCompanyID(BaseModel):
    signature_id: str
    company_id: str
    company_name: Optional[str] = None


class GithubOrg(BaseModel):
    id: str


class GhOrgApprovalListParams(BaseModel):
    organization_id: Optional[str] = None


# ============================================================================
# APPROVAL LISTS
# ============================================================================

class ApprovalList(BaseModel):
    """Add/remove lists applied in one transaction to a corporate signature."""
    add_email_approval_list: List[str] = Field(default_factory=list)
    remove_email_approval_list: List[str] = Field(default_factory=list)
    add_domain_approval_list: List[str] = Field(default_factory=list)
    remove_domain_approval_list: List[str] = Field(default_factory=list)
    add_github_username_approval_list: List[str] = Field(default_factory=list)
    remove_github_username_approval_list: List[str] = Field(default_factory=list)
    add_github_org_approval_list: List[str] = Field(default_factory=list)
    remove_github_org_approval_list: List[str] = Field(default_factory=list)
    add_gitlab_username_approval_list: List[str] = Field(default_factory=list)
    remove_gitlab_username_approval_list: List[str] = Field(default_factory=list)
    add_gitlab_org_approval_list: List[str] = Field(default_factory=list)
    remove_gitlab_org_approval_list: List[str] = Field(default_factory=list)

    class Config:
        json_schema_extra = {
            "example": {
                "add_email_approval_list": ["jane@example.com"],
                "add_domain_approval_list": ["*.example.com"],
                "remove_github_username_approval_list": ["octocat"],
            }
        }


class ApprovalCriteria(BaseModel):
    """Optional filters for employee signature lookups."""
    user_id: Optional[str] = None
    user_email: Optional[str] = None
    github_username: Optional[str] = None
    gitlab_username: Optional[str] = None


# ============================================================================
# QUERY PARAMETERS
# ============================================================================

class ProjectSignaturesParams(BaseModel):
    project_id: str
    cla_type: Optional[ClaType] = None
    search_term: Optional[str] = None
    full_match: bool = False
    approved: Optional[bool] = None
    signed: Optional[bool] = None
    next_key: Optional[str] = None
    page_size: Optional[int] = None
    sort_order: SortOrder = SortOrder.ASC


class ProjectCompanyEmployeeSignaturesParams(BaseModel):
    company_id: str
    project_id: str
    next_key: Optional[str] = None
    page_size: Optional[int] = None


class CompanySignaturesParams(BaseModel):
    company_id: str
    signature_type: Optional[str] = None
    next_key: Optional[str] = None
    page_size: Optional[int] = None


class UserSignaturesParams(BaseModel):
    user_id: str
    user_name: Optional[str] = None
    next_key: Optional[str] = None
    page_size: Optional[int] = None


# ============================================================================
# GITHUB
# ============================================================================

class CommitAuthor(BaseModel):
    """GitHub account linked to a commit, if any."""
    id: Optional[int] = None
    login: Optional[str] = None
    name: Optional[str] = None
    email: Optional[str] = None


class UserCommitSummary(BaseModel):
    """A pull request commit paired with its GitHub author."""
    sha: str
    commit_author: Optional[CommitAuthor] = None
    affiliated: bool = False
    authorized: bool = False

    def is_valid(self) -> bool:
        """True when the commit is linked to a GitHub account."""
        return (
            self.commit_author is not None
            and self.commit_author.id is not None
            and bool(self.commit_author.login)
        )

    @property
    def author_username(self) -> Optional[str]:
        if self.commit_author is None:
            return None
        return self.commit_author.login


class GitHubUser(BaseModel):
    id: Optional[int] = None
    login: str
    name: Optional[str] = None
    email: Optional[str] = None


# ============================================================================
# EVENTS
# ============================================================================

class EventModel(BaseModel):
    event_id: str
    event_type: str
    event_user_id: Optional[str] = None
    event_user_name: Optional[str] = None
    event_lf_username: Optional[str] = None
    event_cla_group_id: Optional[str] = None
    event_cla_group_name: Optional[str] = None
    event_project_sfid: Optional[str] = None
    event_parent_project_sfid: Optional[str] = None
    event_company_id: Optional[str] = None
    event_company_name: Optional[str] = None
    event_company_sfid: Optional[str] = None
    event_data: Optional[str] = None
    event_summary: Optional[str] = None
    contains_pii: bool = False
    event_time: Optional[datetime] = None
    event_time_epoch: int = 0

    class Config:
        from_attributes = True


class EventList(BaseModel):
    events: List[EventModel] = Field(default_factory=list)
    next_key: Optional[str] = None
    result_count: int = 0


# ============================================================================
# ERRORS
# ============================================================================

class ErrorResponse(BaseModel):
    """Standard error payload returned by the exception handlers."""
    error: str
    detail: Optional[str] = None
    timestamp: datetime
