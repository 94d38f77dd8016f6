# backend/cla_backend/services/signature_service.py
"""
Signature Service - orchestration core of the CLA backend.

Coordinates the signature repository with the user, company, repository,
GitHub organization, GitHub API, event and email collaborators:

- Approval list updates by CLA managers, including ACL authorization, audit
  events, notification emails and the auto-create ECLA workflow
- Signature-validity checks for contributors (ICLA, or ECLA plus approval
  list coverage on the company's CCLA)
- Parallel invalidation of every signature of a CLA group
- Pull request reconciliation after ECLAs are auto-created
- Paginated signature queries and GitHub organization approval list edits

Failure policy:
    Authorization and lookup failures abort with a ``SignatureServiceError``
    subclass. Side effects (emails, background audit events, post-update
    pull request reconciliation) are logged and never fail the request.

Usage:
    from cla_backend.services.signature_service import signature_service

    updated = await signature_service.update_approval_list(
        auth_user, cla_group, company, cla_group.project_id, approval_list,
    )
"""

import asyncio
import logging
from typing import Coroutine, List, Optional, Set, Tuple

from ..config import settings
from ..errors import BadRequestError, ForbiddenError, NotFoundError
from ..models import (
    ApprovalCriteria,
    ApprovalList,
    AuthUser,
    ClaGroupModel,
    ClaType,
    CompanyModel,
    CompanySignaturesParams,
    CorporateContributorList,
    GhOrgApprovalListParams,
    GitHubOrganizationModel,
    GithubOrg,
    IclaSignatureList,
    ProjectCompanyEmployeeSignaturesParams,
    ProjectSignaturesParams,
    SignatureCompanyID,
    SignatureList,
    SignatureModel,
    SignatureReport,
    SortOrder,
    UserCommitSummary,
    UserModel,
    UserSignaturesParams,
)
from ..utils.approval import (
    current_user_in_acl,
    emails_in_approval_list,
    emails_match_domains,
    get_best_email,
    user_emails,
)
from .email_service import EmailService, email_service
from .event_service import (
    ApprovalListChangeEventData,
    EmployeeSignatureCreatedEventData,
    EventService,
    EventType,
    LogEventArgs,
    event_service,
)
from .github_client import GitHubClient, github_client
from .github_org_service import GitHubOrgService, github_org_service
from .repository_service import RepositoryService, repository_service
from .signature_repository import SignatureRepository, signature_repository
from .user_service import UserService, user_service

logger = logging.getLogger("cla.services.signature_service")

PROJECT_COMPANY_SIGNATURES_PAGE_SIZE = 10
EMPLOYEE_SIGNATURES_PAGE_SIZE = 10
COMPANY_SIGNATURES_PAGE_SIZE = 50
USER_SIGNATURES_PAGE_SIZE = 10
CLA_GROUP_CCLA_PAGE_SIZE = 1000

# (field suffix, event category) for audit events, in reporting order
APPROVAL_LIST_CATEGORIES = [
    ("email", "email"),
    ("domain", "domain"),
    ("github_username", "GitHub username"),
    ("github_org", "GitHub organization"),
    ("gitlab_username", "GitLab username"),
    ("gitlab_org", "GitLab group"),
]


class SignatureService:
    """
    Business logic over CLA signatures.

    Collaborators are injected for testing and default to the module-level
    singletons of their services.
    """

    def __init__(
        self,
        repo: Optional[SignatureRepository] = None,
        users: Optional[UserService] = None,
        events: Optional[EventService] = None,
        github: Optional[GitHubClient] = None,
        repositories: Optional[RepositoryService] = None,
        github_orgs: Optional[GitHubOrgService] = None,
        email: Optional[EmailService] = None,
        github_org_validation: Optional[bool] = None,
    ):
        self._repo = repo or signature_repository
        self._users = users or user_service
        self._events = events or event_service
        self._github = github or github_client
        self._repositories = repositories or repository_service
        self._github_orgs = github_orgs or github_org_service
        self._email = email or email_service
        self._github_org_validation = (
            settings.github_org_validation if github_org_validation is None else github_org_validation
        )
        # Strong references to fire-and-forget tasks until they complete
        self._background_tasks: Set[asyncio.Task] = set()

    def _schedule(self, coro: Coroutine) -> asyncio.Task:
        task = asyncio.create_task(coro)
        self._background_tasks.add(task)
        task.add_done_callback(self._background_tasks.discard)
        return task

    # =========================================================================
    # SIGNATURE QUERIES
    # =========================================================================

    async def get_signature(self, signature_id: str) -> Optional[SignatureModel]:
        return await self._repo.get_signature(signature_id)

    async def get_individual_signature(
        self, cla_group_id: str, user_id: str, approved: Optional[bool], signed: Optional[bool]
    ) -> Optional[SignatureModel]:
        return await self._repo.get_individual_signature(cla_group_id, user_id, approved, signed)

    async def get_corporate_signature(
        self, cla_group_id: str, company_id: str, approved: Optional[bool], signed: Optional[bool]
    ) -> Optional[SignatureModel]:
        return await self._repo.get_corporate_signature(cla_group_id, company_id, approved, signed)

    async def get_project_signatures(self, params: ProjectSignaturesParams) -> SignatureList:
        return await self._repo.get_project_signatures(params)

    async def create_project_summary_report(self, params: ProjectSignaturesParams) -> SignatureReport:
        return await self._repo.create_project_summary_report(params)

    async def get_project_company_signature(
        self,
        company_id: str,
        project_id: str,
        approved: Optional[bool],
        signed: Optional[bool],
        next_key: Optional[str] = None,
        page_size: Optional[int] = None,
    ) -> Optional[SignatureModel]:
        return await self._repo.get_project_company_signature(
            company_id, project_id, approved, signed, next_key, page_size
        )

    async def get_project_company_signatures(
        self,
        company_id: str,
        project_id: str,
        next_key: Optional[str] = None,
        sort_order: SortOrder = SortOrder.ASC,
        page_size: Optional[int] = None,
    ) -> SignatureList:
        """Signed and approved CCLAs of the company for the project."""
        return await self._repo.get_project_company_signatures(
            company_id,
            project_id,
            True,
            True,
            next_key,
            sort_order,
            page_size or PROJECT_COMPANY_SIGNATURES_PAGE_SIZE,
        )

    async def get_project_company_employee_signatures(
        self,
        params: ProjectCompanyEmployeeSignaturesParams,
        criteria: Optional[ApprovalCriteria] = None,
    ) -> SignatureList:
        if params.page_size is None:
            params = params.model_copy(update={"page_size": EMPLOYEE_SIGNATURES_PAGE_SIZE})
        return await self._repo.get_project_company_employee_signatures(params, criteria)

    async def get_company_signatures(self, params: CompanySignaturesParams) -> SignatureList:
        return await self._repo.get_company_signatures(
            params, params.page_size or COMPANY_SIGNATURES_PAGE_SIZE, load_acl_details=True
        )

    async def get_company_ids_with_signed_corporate_signatures(self, cla_group_id: str) -> List[SignatureCompanyID]:
        return await self._repo.get_company_ids_with_signed_corporate_signatures(cla_group_id)

    async def get_user_signatures(self, params: UserSignaturesParams) -> SignatureList:
        return await self._repo.get_user_signatures(params, params.page_size or USER_SIGNATURES_PAGE_SIZE)

    async def get_cla_group_icla_signatures(
        self,
        cla_group_id: str,
        search_term: Optional[str],
        approved: Optional[bool],
        signed: Optional[bool],
        page_size: int,
        next_key: Optional[str],
    ) -> IclaSignatureList:
        return await self._repo.get_cla_group_icla_signatures(
            cla_group_id, search_term, approved, signed, page_size, next_key
        )

    async def get_cla_group_ccla_signatures(
        self, cla_group_id: str, approved: Optional[bool], signed: Optional[bool]
    ) -> SignatureList:
        return await self._repo.get_project_signatures(
            ProjectSignaturesParams(
                project_id=cla_group_id,
                cla_type=ClaType.CCLA,
                approved=approved,
                signed=signed,
                page_size=CLA_GROUP_CCLA_PAGE_SIZE,
            )
        )

    async def get_cla_group_corporate_contributors(
        self, cla_group_id: str, company_id: Optional[str], search_term: Optional[str]
    ) -> CorporateContributorList:
        return await self._repo.get_cla_group_corporate_contributors(cla_group_id, company_id, search_term)

    # =========================================================================
    # ACL
    # =========================================================================

    async def add_cla_manager(self, signature_id: str, cla_manager_id: str) -> Optional[SignatureModel]:
        return await self._repo.add_cla_manager(signature_id, cla_manager_id)

    async def remove_cla_manager(self, signature_id: str, cla_manager_id: str) -> Optional[SignatureModel]:
        return await self._repo.remove_cla_manager(signature_id, cla_manager_id)

    # =========================================================================
    # GITHUB ORGANIZATION APPROVAL LIST
    # =========================================================================

    async def get_github_organizations_from_approval_list(
        self, signature_id: str, github_access_token: Optional[str] = None
    ) -> List[GithubOrg]:
        """
        Organizations on the approval list, followed by the caller's other
        GitHub organizations when a GitHub access token is supplied.
        """
        if not signature_id:
            msg = "unable to get GitHub organizations approval list - signature ID is empty"
            logger.warning(msg)
            raise BadRequestError(msg)

        orgs = await self._repo.get_github_organizations_from_approval_list(signature_id)

        if github_access_token:
            logger.debug("Authenticated with GitHub - scanning for the user's organizations")
            selected = {org.id for org in orgs}
            for login in await self._github.list_user_organizations(github_access_token):
                if login not in selected:
                    orgs.append(GithubOrg(id=login))

        return orgs

    async def _validate_github_org_params(
        self,
        action: str,
        signature_id: str,
        params: GhOrgApprovalListParams,
        github_access_token: Optional[str],
    ) -> str:
        if not signature_id:
            msg = f"unable to {action} GitHub organization approval list - signature ID is empty"
            logger.warning(msg)
            raise BadRequestError(msg)

        organization_id = params.organization_id
        if not organization_id:
            msg = f"unable to {action} GitHub organization approval list - organization ID is empty"
            logger.warning(msg)
            raise BadRequestError(msg)

        if self._github_org_validation:
            if not github_access_token:
                msg = (
                    f"unable to {action} GitHub organization, not logged in using "
                    f"signature ID: {signature_id}, GitHub organization ID: {organization_id}"
                )
                logger.warning(msg)
                raise BadRequestError(msg)

            logger.debug("Querying for the user's GitHub organizations")
            user_orgs = await self._github.list_user_organizations(github_access_token)
            if organization_id not in user_orgs:
                msg = f"user is not authorized for GitHub organization ID: {organization_id}"
                logger.warning(msg)
                raise BadRequestError(msg)

        return organization_id

    async def add_github_organization_to_approval_list(
        self,
        signature_id: str,
        params: GhOrgApprovalListParams,
        github_access_token: Optional[str] = None,
    ) -> List[GithubOrg]:
        organization_id = await self._validate_github_org_params("add", signature_id, params, github_access_token)
        return await self._repo.add_github_organization_to_approval_list(signature_id, organization_id)

    async def delete_github_organization_from_approval_list(
        self,
        signature_id: str,
        params: GhOrgApprovalListParams,
        github_access_token: Optional[str] = None,
    ) -> List[GithubOrg]:
        organization_id = await self._validate_github_org_params("delete", signature_id, params, github_access_token)
        return await self._repo.delete_github_organization_from_approval_list(signature_id, organization_id)

    # =========================================================================
    # APPROVAL LIST UPDATE
    # =========================================================================

    async def update_approval_list(
        self,
        auth_user: AuthUser,
        cla_group: ClaGroupModel,
        company: CompanyModel,
        cla_group_id: str,
        params: ApprovalList,
    ) -> SignatureModel:
        """
        Apply an approval list delta on behalf of a CLA manager.

        Args:
            auth_user: The authenticated caller; must be in the CCLA's ACL
            cla_group: CLA group the CCLA belongs to
            company: Company that signed the CCLA
            cla_group_id: CLA group ID used for the CCLA lookup
            params: Entries to add and remove per approval list category

        Returns:
            The updated corporate signature

        Raises:
            BadRequestError: The CCLA lookup failed, or an auto-created user
                could not be resolved
            NotFoundError: The company has no signed and approved CCLA
            ForbiddenError: The caller is not a CLA manager of the CCLA
        """
        logger.debug(
            f"Processing approval list update by {auth_user.user_name} for company "
            f"{company.company_name} ({company.company_id}), CLA group {cla_group_id}"
        )

        try:
            ccla = await self.get_project_company_signature(
                company.company_id, cla_group_id, True, True, None, 1
            )
        except Exception as e:
            msg = (
                f"unable to locate project company signature by company ID: {company.company_id}, "
                f"CLA group ID: {cla_group_id}, error: {e}"
            )
            logger.warning(msg)
            raise BadRequestError(msg) from e

        if ccla is None:
            msg = (
                f"unable to locate project company signature by company ID: {company.company_id}, "
                f"CLA group ID: {cla_group_id}"
            )
            logger.warning(msg)
            raise NotFoundError(msg)

        if not current_user_in_acl(auth_user, ccla.signature_acl):
            msg = (
                f"CLA Manager {auth_user.user_name} does not have access to the CCLA for company "
                f"{company.company_name} and CLA group {cla_group.project_name}"
            )
            logger.warning(msg)
            raise ForbiddenError(msg)

        cla_manager = await self._users.get_user_by_username(auth_user.user_name, True)
        if cla_manager is None:
            msg = f"unable to lookup user by user name: {auth_user.user_name}"
            logger.warning(msg)
            raise BadRequestError(msg)

        # Used by the repository for employee signatures it invalidates
        event_args = LogEventArgs(
            event_type=EventType.INVALIDATED_SIGNATURE,
            user_id=cla_manager.user_id,
            user_name=cla_manager.user_name,
            lf_username=cla_manager.lf_username,
            cla_group_id=cla_group.project_id,
            cla_group_name=cla_group.project_name,
            project_sfid=cla_group.project_external_id,
            parent_project_sfid=cla_group.foundation_sfid,
            company_id=company.company_id,
            company_name=company.company_name,
            company_sfid=company.company_external_id,
        )
        updated = await self._repo.update_approval_list(
            cla_manager, cla_group, company.company_id, params, event_args
        )

        employees: List[UserModel] = []
        employee_events: List[LogEventArgs] = []
        try:
            for manager in ccla.signature_acl:
                await self._send_cla_manager_email(company, cla_group, manager, params)

            await self._send_contributor_emails(auth_user, company, cla_group, params)

            if ccla.auto_create_ecla:
                employees = await self._auto_create_employee_signatures(company, cla_group, params, employee_events)
        finally:
            # One audit task per update; ECLAs created before a failure are still logged
            self._schedule(
                self._create_event_log_entries(company, cla_group, cla_manager, params, employee_events)
            )

        if employees:
            logger.debug("Created one or more ECLA records - updating the pull request status")
            await self._update_pull_request_for_employee(employees[-1])
        elif ccla.auto_create_ecla:
            logger.debug("No ECLA records created - no pull request update needed")

        return updated

    async def _auto_create_employee_signatures(
        self,
        company: CompanyModel,
        cla_group: ClaGroupModel,
        params: ApprovalList,
        created_events: List[LogEventArgs],
    ) -> List[UserModel]:
        employees: List[UserModel] = []

        for email in params.add_email_approval_list:
            employee = await self._lookup_user("email", email, self._users.get_user_by_email)
            if employee is None:
                employee = await self.create_user_model(email=email, company_id=company.company_id)
            created_events.append(await self._create_employee_signature(company, cla_group, employee, email))
            employees.append(employee)

        for github_username in params.add_github_username_approval_list:
            employee = await self._lookup_user(
                "GitHub username", github_username, self._users.get_user_by_github_username
            )
            if employee is None:
                github_user = await self._github.get_user_details(github_username)
                if github_user is None or github_user.id is None:
                    msg = f"unable to look up GitHub user details for user: {github_username}"
                    logger.warning(msg)
                    raise BadRequestError(msg)
                employee = await self.create_user_model(
                    github_username=github_username,
                    github_id=str(github_user.id),
                    email=github_user.email or "",
                    company_id=company.company_id,
                )
            created_events.append(
                await self._create_employee_signature(company, cla_group, employee, github_username)
            )
            employees.append(employee)

        return employees

    async def _lookup_user(self, kind: str, value: str, lookup) -> Optional[UserModel]:
        try:
            user = await lookup(value)
        except Exception as e:
            logger.warning(f"Unable to lookup existing user by {kind}: {value}: {e}")
            return None
        if user is None:
            logger.info(f"No existing user with {kind}: {value} - creating a new record")
        return user

    async def _create_employee_signature(
        self, company: CompanyModel, cla_group: ClaGroupModel, employee: UserModel, identity: str
    ) -> LogEventArgs:
        """Create the ECLA and return the audit event describing it."""
        signature = await self._repo.create_project_company_employee_signature(company, cla_group, employee)
        return LogEventArgs(
            event_type=EventType.EMPLOYEE_SIGNATURE_CREATED,
            event_data=EmployeeSignatureCreatedEventData(
                signature_id=signature.signature_id, employee_identity=identity
            ),
            user_id=employee.user_id,
            user_name=employee.user_name,
            lf_username=employee.lf_username,
            cla_group_id=cla_group.project_id,
            cla_group_name=cla_group.project_name,
            project_sfid=cla_group.project_external_id,
            parent_project_sfid=cla_group.foundation_sfid,
            company_id=company.company_id,
            company_name=company.company_name,
            company_sfid=company.company_external_id,
        )

    async def create_user_model(
        self,
        github_username: str = "",
        github_id: str = "",
        gitlab_username: str = "",
        gitlab_id: str = "",
        email: str = "",
        company_id: str = "",
        note: Optional[str] = None,
    ) -> UserModel:
        """Create a contributor record for the auto-create ECLA workflow."""
        user = UserModel(
            user_name=github_username or gitlab_username or email or None,
            emails=[email] if email else [],
            github_username=github_username or None,
            github_id=github_id or None,
            gitlab_username=gitlab_username or None,
            gitlab_id=gitlab_id or None,
            company_id=company_id or None,
            note=note or settings.auto_create_ecla_note,
        )
        return await self._users.create_user(user)

    async def _update_pull_request_for_employee(self, employee: UserModel) -> None:
        try:
            metadata = await self._repo.get_active_signature_metadata(employee.user_id)
            if metadata is None:
                logger.warning(f"No active signature metadata for user {employee.user_id}")
                return

            repository = await self._repositories.get_repository(metadata.repository_id)
            if repository is None:
                logger.warning(f"Unable to fetch repository by ID: {metadata.repository_id}")
                return
            if not repository.enabled:
                logger.warning(
                    f"Repository {repository.repository_url} associated with PR "
                    f"{metadata.pull_request_id} is not enabled"
                )
                return

            github_org = await self._github_orgs.get_github_organization_by_name(
                repository.repository_organization_name
            )
            if github_org is None:
                logger.warning(f"Unable to find GitHub organization {repository.repository_organization_name}")
                return

            await self.update_change_request(
                github_org,
                int(metadata.repository_id),
                int(metadata.pull_request_id),
                metadata.project_id,
            )
        except Exception as e:
            logger.error(f"Unable to update pull request status for user {employee.user_id}: {e}")

    # =========================================================================
    # SIDE EFFECTS
    # =========================================================================

    async def _create_event_log_entries(
        self,
        company: CompanyModel,
        cla_group: ClaGroupModel,
        cla_manager: UserModel,
        params: ApprovalList,
        employee_events: Optional[List[LogEventArgs]] = None,
    ) -> None:
        for suffix, category in APPROVAL_LIST_CATEGORIES:
            for added in (True, False):
                prefix = "add" if added else "remove"
                values = getattr(params, f"{prefix}_{suffix}_approval_list")
                if not values:
                    continue
                await self._events.log_event(
                    LogEventArgs(
                        event_type=EventType.CLA_APPROVAL_LIST_UPDATED,
                        event_data=ApprovalListChangeEventData(
                            category=category, value=", ".join(values), added=added
                        ),
                        user_id=cla_manager.user_id,
                        user_name=cla_manager.user_name,
                        lf_username=cla_manager.lf_username,
                        cla_group_id=cla_group.project_id,
                        cla_group_name=cla_group.project_name,
                        project_sfid=cla_group.project_external_id,
                        parent_project_sfid=cla_group.foundation_sfid,
                        company_id=company.company_id,
                        company_name=company.company_name,
                        company_sfid=company.company_external_id,
                    )
                )

        for args in employee_events or []:
            await self._events.log_event(args)

    async def _send_cla_manager_email(
        self,
        company: CompanyModel,
        cla_group: ClaGroupModel,
        manager: UserModel,
        params: ApprovalList,
    ) -> None:
        try:
            await self._email.send_approval_list_update_email_to_cla_managers(
                company, cla_group, manager.lf_username, get_best_email(manager), params
            )
        except Exception as e:
            logger.error(f"Failed to email CLA manager {manager.lf_username}: {e}")

    async def _send_contributor_emails(
        self,
        auth_user: AuthUser,
        company: CompanyModel,
        cla_group: ClaGroupModel,
        params: ApprovalList,
    ) -> None:
        recipients: List[Tuple[str, bool]] = [(email, True) for email in params.add_email_approval_list]
        recipients += [(email, False) for email in params.remove_email_approval_list]

        for username, added in [(u, True) for u in params.add_github_username_approval_list] + [
            (u, False) for u in params.remove_github_username_approval_list
        ]:
            address = await self._github_user_email(username)
            if address:
                recipients.append((address, added))

        for address, added in recipients:
            try:
                await self._email.send_approval_list_contributor_email(
                    address.strip(), company, cla_group, auth_user.user_name, added
                )
            except Exception as e:
                logger.error(f"Failed to email contributor {address}: {e}")

    async def _github_user_email(self, username: str) -> Optional[str]:
        try:
            user = await self._users.get_user_by_github_username(username)
            if user is not None and get_best_email(user):
                return get_best_email(user)
            github_user = await self._github.get_user_details(username)
            return github_user.email if github_user else None
        except Exception as e:
            logger.warning(f"Unable to resolve an email for GitHub user {username}: {e}")
            return None

    # =========================================================================
    # INVALIDATION
    # =========================================================================

    async def invalidate_project_records(self, project_id: str, note: str) -> int:
        """
        Invalidate every signature of a CLA group concurrently.

        Individual failures are logged and do not stop the others. Cancelling
        the caller does not cancel invalidations already dispatched.

        Returns:
            Number of signatures attempted
        """
        result = await self._repo.project_signatures(project_id)
        if not result.signatures:
            return 0

        logger.debug(f"Invalidating {len(result.signatures)} signatures for project: {project_id}")

        async def invalidate(signature_id: str) -> None:
            try:
                await self._repo.invalidate_project_record(signature_id, note)
            except Exception as e:
                logger.warning(f"Unable to update signature: {signature_id} with project ID: {project_id}, error: {e}")

        # Dispatched invalidations finish even if the caller is cancelled
        tasks = [self._schedule(invalidate(sig.signature_id)) for sig in result.signatures]
        await asyncio.shield(asyncio.gather(*tasks))
        return len(result.signatures)

    # =========================================================================
    # SIGNATURE VALIDITY
    # =========================================================================

    async def has_user_signed(self, user: UserModel, project_id: str) -> bool:
        """
        True when the user holds an approved and signed ICLA for the project,
        or an ECLA under a CCLA whose approval lists cover the user.
        """
        icla = await self.get_individual_signature(project_id, user.user_id, True, True)
        if icla is not None:
            logger.debug(f"ICLA signature check passed for user: {user.user_id} on project: {project_id}")
            return True
        logger.debug(f"ICLA signature check failed for user: {user.user_id} on project: {project_id}")

        if not user.company_id:
            return False

        eclas = await self.get_project_company_employee_signatures(
            ProjectCompanyEmployeeSignaturesParams(company_id=user.company_id, project_id=project_id),
            ApprovalCriteria(user_id=user.user_id),
        )
        if not eclas.signatures:
            logger.debug(f"No employee acknowledgement for user {user.user_id}, company {user.company_id}")
            return False

        logger.debug(f"Located employee acknowledgement - signature ID: {eclas.signatures[0].signature_id}")
        ccla = await self.get_corporate_signature(project_id, user.company_id, True, True)
        if ccla is None:
            return False

        if await self.user_is_approved(user, ccla):
            logger.debug(f"User {user.user_id} is in the approval list for signature: {ccla.signature_id}")
            return True
        return False

    async def user_is_approved(self, user: UserModel, ccla: SignatureModel) -> bool:
        """Check the user against the CCLA's email, domain and GitHub org approval lists."""
        emails = user_emails(user)

        if ccla.email_approval_list:
            if emails_in_approval_list(emails, ccla.email_approval_list):
                return True
        else:
            logger.debug(f"No email approval list for CCLA: {ccla.signature_id}")

        if ccla.domain_approval_list and emails_match_domains(emails, ccla.domain_approval_list):
            return True

        if user.github_username:
            for org in ccla.github_org_approval_list:
                try:
                    membership = await self._github.get_membership(user.github_username, org)
                except Exception as e:
                    logger.warning(f"Unable to check membership of {user.github_username} in {org}: {e}")
                    break
                if membership is not None:
                    logger.debug(f"Found matching GitHub organization: {org} for user: {user.github_username}")
                    return True
                logger.debug(f"User: {user.github_username} is not in the organization: {org}")

        return False

    # =========================================================================
    # PULL REQUEST RECONCILIATION
    # =========================================================================

    async def update_change_request(
        self,
        github_org: GitHubOrganizationModel,
        repository_id: int,
        pull_request_id: int,
        project_id: str,
    ) -> Tuple[List[UserCommitSummary], List[UserCommitSummary]]:
        """
        Triage the commit authors of a pull request into signed and unsigned.

        The triage stops at the first author whose GitHub username has no
        user record, and at the first signature check that fails.

        Returns:
            (signed, unsigned) commit summaries

        Raises:
            ValueError: The repository payload lacks an owner login or name
        """
        installation_id = github_org.organization_installation_id
        repository = await self._github.get_repository(installation_id, repository_id)
        owner = (repository.get("owner") or {}).get("login")
        name = repository.get("name")
        if not owner or not name:
            raise ValueError(f"GitHub repository {repository_id} has no owner login or name")

        logger.debug(f"Fetching commit authors for PR: {pull_request_id}")
        authors = await self._github.get_pull_request_commit_authors(installation_id, pull_request_id, owner, name)

        signed: List[UserCommitSummary] = []
        unsigned: List[UserCommitSummary] = []
        for summary in authors:
            if not summary.is_valid():
                unsigned.append(summary)
                continue

            try:
                user = await self._users.get_user_by_github_username(summary.author_username)
            except Exception as e:
                logger.warning(f"Unable to lookup user by GitHub username {summary.author_username}: {e}")
                user = None
            if user is None:
                unsigned.append(summary)
                break

            try:
                user_signed = await self.has_user_signed(user, project_id)
            except Exception as e:
                logger.warning(f"Unable to check signature status of user {user.user_id}: {e}")
                break

            if user_signed:
                signed.append(summary)
            else:
                unsigned.append(summary)

        logger.debug(
            f"PR {pull_request_id} signed: {[s.sha for s in signed]}, missing: {[s.sha for s in unsigned]}"
        )
        return signed, unsigned


# Global singleton instance
signature_service = SignatureService()
