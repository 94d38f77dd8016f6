# backend/cla_backend/api/v1/routers/signatures.py
"""
Signature endpoints for the CLA backend API (v1).

Endpoints:
    GET    /signatures/{signature_id} - Get a signature
    GET    /signatures/project/{project_id} - List project signatures
    GET    /signatures/project/{project_id}/report - Project summary report
    GET    /signatures/project/{project_id}/icla - ICLA signatures of a CLA group
    GET    /signatures/project/{project_id}/ccla - CCLA signatures of a CLA group
    GET    /signatures/project/{project_id}/companies - Companies with a signed CCLA
    GET    /signatures/project/{project_id}/corporate-contributors - ECLA contributors
    GET    /signatures/project/{project_id}/company/{company_id} - Company CCLAs
    GET    /signatures/project/{project_id}/company/{company_id}/employee - Company ECLAs
    PUT    /signatures/project/{project_id}/company/{company_id}/approval-list - Update approval lists
    POST   /signatures/project/{project_id}/invalidate - Invalidate every signature of a CLA group
    GET    /signatures/company/{company_id} - Company signatures
    GET    /signatures/user/{user_id} - User signatures
    GET    /signatures/{signature_id}/gh-org-approval-list - GitHub org approval list
    POST   /signatures/{signature_id}/gh-org-approval-list - Add a GitHub org
    DELETE /signatures/{signature_id}/gh-org-approval-list - Remove a GitHub org
    POST   /signatures/{signature_id}/cla-managers - Add a CLA manager
    DELETE /signatures/{signature_id}/cla-managers/{lf_username} - Remove a CLA manager

Security:
    - Mutating endpoints require a bearer JWT
    - Approval list updates additionally require the caller in the CCLA's ACL
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from ....dependencies import get_current_user, get_github_access_token
from ....errors import NotFoundError
from ....models import (
    ApprovalCriteria,
    ApprovalList,
    AuthUser,
    ClaType,
    CompanySignaturesParams,
    CorporateContributorList,
    GhOrgApprovalListParams,
    GithubOrg,
    IclaSignatureList,
    ProjectCompanyEmployeeSignaturesParams,
    ProjectSignaturesParams,
    SignatureCompanyID,
    SignatureList,
    SignatureModel,
    SignatureReport,
    SortOrder,
    UserSignaturesParams,
)
from ....services.cla_group_service import cla_group_service
from ....services.company_service import company_service
from ....services.signature_service import signature_service
from ..models import ClaManagerRequest, InvalidateProjectRequest, InvalidateProjectResponse

router = APIRouter(prefix="/signatures", tags=["Signatures"])

logger = logging.getLogger("cla.api.signatures")


def _project_params(
    project_id: str,
    cla_type: Optional[ClaType] = None,
    search_term: Optional[str] = None,
    full_match: bool = False,
    approved: Optional[bool] = None,
    signed: Optional[bool] = None,
    next_key: Optional[str] = None,
    page_size: Optional[int] = Query(default=None, ge=1, le=1000),
    sort_order: SortOrder = SortOrder.ASC,
) -> ProjectSignaturesParams:
    return ProjectSignaturesParams(
        project_id=project_id,
        cla_type=cla_type,
        search_term=search_term,
        full_match=full_match,
        approved=approved,
        signed=signed,
        next_key=next_key,
        page_size=page_size,
        sort_order=sort_order,
    )


# =========================================================================
# SIGNATURES
# =========================================================================


@router.get("/{signature_id}", response_model=SignatureModel, summary="Get signature")
async def get_signature(signature_id: str) -> SignatureModel:
    signature = await signature_service.get_signature(signature_id)
    if signature is None:
        raise NotFoundError(f"signature not found: {signature_id}")
    return signature


@router.get("/project/{project_id}", response_model=SignatureList, summary="List project signatures")
async def get_project_signatures(params: ProjectSignaturesParams = Depends(_project_params)) -> SignatureList:
    return await signature_service.get_project_signatures(params)


@router.get("/project/{project_id}/report", response_model=SignatureReport, summary="Project summary report")
async def create_project_summary_report(
    params: ProjectSignaturesParams = Depends(_project_params),
) -> SignatureReport:
    return await signature_service.create_project_summary_report(params)


@router.get("/project/{project_id}/icla", response_model=IclaSignatureList, summary="CLA group ICLAs")
async def get_cla_group_icla_signatures(
    project_id: str,
    search_term: Optional[str] = None,
    approved: Optional[bool] = None,
    signed: Optional[bool] = None,
    page_size: int = Query(default=50, ge=1, le=1000),
    next_key: Optional[str] = None,
) -> IclaSignatureList:
    return await signature_service.get_cla_group_icla_signatures(
        project_id, search_term, approved, signed, page_size, next_key
    )


@router.get("/project/{project_id}/ccla", response_model=SignatureList, summary="CLA group CCLAs")
async def get_cla_group_ccla_signatures(
    project_id: str,
    approved: Optional[bool] = None,
    signed: Optional[bool] = None,
) -> SignatureList:
    return await signature_service.get_cla_group_ccla_signatures(project_id, approved, signed)


@router.get(
    "/project/{project_id}/companies",
    response_model=List[SignatureCompanyID],
    summary="Companies with a signed CCLA",
)
async def get_company_ids_with_signed_corporate_signatures(project_id: str) -> List[SignatureCompanyID]:
    return await signature_service.get_company_ids_with_signed_corporate_signatures(project_id)


@router.get(
    "/project/{project_id}/corporate-contributors",
    response_model=CorporateContributorList,
    summary="Corporate contributors of a CLA group",
)
async def get_cla_group_corporate_contributors(
    project_id: str,
    company_id: Optional[str] = None,
    search_term: Optional[str] = None,
) -> CorporateContributorList:
    return await signature_service.get_cla_group_corporate_contributors(project_id, company_id, search_term)


@router.get(
    "/project/{project_id}/company/{company_id}",
    response_model=SignatureList,
    summary="Signed and approved CCLAs of a company",
)
async def get_project_company_signatures(
    project_id: str,
    company_id: str,
    next_key: Optional[str] = None,
    sort_order: SortOrder = SortOrder.ASC,
    page_size: Optional[int] = Query(default=None, ge=1, le=1000),
) -> SignatureList:
    return await signature_service.get_project_company_signatures(
        company_id, project_id, next_key, sort_order, page_size
    )


@router.get(
    "/project/{project_id}/company/{company_id}/employee",
    response_model=SignatureList,
    summary="Employee acknowledgements of a company",
)
async def get_project_company_employee_signatures(
    project_id: str,
    company_id: str,
    user_email: Optional[str] = None,
    github_username: Optional[str] = None,
    gitlab_username: Optional[str] = None,
    next_key: Optional[str] = None,
    page_size: Optional[int] = Query(default=None, ge=1, le=1000),
) -> SignatureList:
    criteria = None
    if user_email or github_username or gitlab_username:
        criteria = ApprovalCriteria(
            user_email=user_email, github_username=github_username, gitlab_username=gitlab_username
        )
    return await signature_service.get_project_company_employee_signatures(
        ProjectCompanyEmployeeSignaturesParams(
            company_id=company_id, project_id=project_id, next_key=next_key, page_size=page_size
        ),
        criteria,
    )


@router.get("/company/{company_id}", response_model=SignatureList, summary="Company signatures")
async def get_company_signatures(
    company_id: str,
    signature_type: Optional[str] = None,
    next_key: Optional[str] = None,
    page_size: Optional[int] = Query(default=None, ge=1, le=1000),
) -> SignatureList:
    return await signature_service.get_company_signatures(
        CompanySignaturesParams(
            company_id=company_id, signature_type=signature_type, next_key=next_key, page_size=page_size
        )
    )


@router.get("/user/{user_id}", response_model=SignatureList, summary="User signatures")
async def get_user_signatures(
    user_id: str,
    next_key: Optional[str] = None,
    page_size: Optional[int] = Query(default=None, ge=1, le=1000),
) -> SignatureList:
    return await signature_service.get_user_signatures(
        UserSignaturesParams(user_id=user_id, next_key=next_key, page_size=page_size)
    )


# =========================================================================
# APPROVAL LISTS
# =========================================================================


@router.put(
    "/project/{project_id}/company/{company_id}/approval-list",
    response_model=SignatureModel,
    summary="Update approval lists",
    description="Add and remove approval list entries on the company's CCLA for the CLA group.",
)
async def update_approval_list(
    project_id: str,
    company_id: str,
    params: ApprovalList,
    current_user: AuthUser = Depends(get_current_user),
) -> SignatureModel:
    """
    Update the approval lists of a company's corporate signature.

    Raises:
        NotFoundError: 404 if the CLA group, company or CCLA does not exist
        ForbiddenError: 403 if the caller is not a CLA manager of the CCLA
    """
    cla_group = await cla_group_service.get_cla_group(project_id)
    if cla_group is None:
        raise NotFoundError(f"CLA group not found: {project_id}")
    company = await company_service.get_company(company_id)
    if company is None:
        raise NotFoundError(f"company not found: {company_id}")

    logger.info(f"Approval list update requested by {current_user.user_name} for {company_id} on {project_id}")
    return await signature_service.update_approval_list(current_user, cla_group, company, project_id, params)


@router.post(
    "/project/{project_id}/invalidate",
    response_model=InvalidateProjectResponse,
    summary="Invalidate CLA group signatures",
)
async def invalidate_project_records(
    project_id: str,
    request: InvalidateProjectRequest,
    current_user: AuthUser = Depends(get_current_user),
) -> InvalidateProjectResponse:
    logger.info(f"Signature invalidation for project {project_id} requested by {current_user.user_name}")
    count = await signature_service.invalidate_project_records(project_id, request.note)
    return InvalidateProjectResponse(project_id=project_id, invalidated_count=count)


@router.get(
    "/{signature_id}/gh-org-approval-list",
    response_model=List[GithubOrg],
    summary="GitHub organization approval list",
)
async def get_github_organizations_from_approval_list(
    signature_id: str,
    github_access_token: Optional[str] = Depends(get_github_access_token),
) -> List[GithubOrg]:
    return await signature_service.get_github_organizations_from_approval_list(signature_id, github_access_token)


@router.post(
    "/{signature_id}/gh-org-approval-list",
    response_model=List[GithubOrg],
    summary="Add a GitHub organization to the approval list",
)
async def add_github_organization_to_approval_list(
    signature_id: str,
    params: GhOrgApprovalListParams,
    current_user: AuthUser = Depends(get_current_user),
    github_access_token: Optional[str] = Depends(get_github_access_token),
) -> List[GithubOrg]:
    return await signature_service.add_github_organization_to_approval_list(
        signature_id, params, github_access_token
    )


@router.delete(
    "/{signature_id}/gh-org-approval-list",
    response_model=List[GithubOrg],
    summary="Remove a GitHub organization from the approval list",
)
async def delete_github_organization_from_approval_list(
    signature_id: str,
    params: GhOrgApprovalListParams,
    current_user: AuthUser = Depends(get_current_user),
    github_access_token: Optional[str] = Depends(get_github_access_token),
) -> List[GithubOrg]:
    return await signature_service.delete_github_organization_from_approval_list(
        signature_id, params, github_access_token
    )


# =========================================================================
# CLA MANAGERS
# =========================================================================


@router.post("/{signature_id}/cla-managers", response_model=SignatureModel, summary="Add a CLA manager")
async def add_cla_manager(
    signature_id: str,
    request: ClaManagerRequest,
    current_user: AuthUser = Depends(get_current_user),
) -> SignatureModel:
    signature = await signature_service.add_cla_manager(signature_id, request.lf_username)
    if signature is None:
        raise NotFoundError(f"signature not found: {signature_id}")
    return signature


@router.delete(
    "/{signature_id}/cla-managers/{lf_username}",
    response_model=SignatureModel,
    summary="Remove a CLA manager",
)
async def remove_cla_manager(
    signature_id: str,
    lf_username: str,
    current_user: AuthUser = Depends(get_current_user),
) -> SignatureModel:
    signature = await signature_service.remove_cla_manager(signature_id, lf_username)
    if signature is None:
        raise NotFoundError(f"signature not found: {signature_id}")
    return signature
