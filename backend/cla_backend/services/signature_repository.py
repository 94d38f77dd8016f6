# backend/cla_backend/services/signature_repository.py
"""
Signature repository for the CLA backend.

Persists ICLA, CCLA and ECLA records and answers the paginated queries the
signature service needs. Every public method opens its own session, so
methods may be awaited concurrently from separate tasks.

Pagination:
    List queries return a ``SignatureList`` whose ``last_key`` is an opaque
    cursor (the last signature ID of the page, in signature ID order). Pass it
    back as ``next_key`` to fetch the following page; it is None once the
    results are exhausted.

Approval lists:
    ``update_approval_list`` applies an ``ApprovalList`` delta to the active
    corporate signature in one transaction. Employee acknowledgements whose
    identity no longer matches any approval list entry are invalidated, and
    an ``InvalidatedSignature`` audit event is logged for each.

Usage:
    from cla_backend.services.signature_repository import signature_repository

    ccla = await signature_repository.get_corporate_signature(cla_group_id, company_id, True, True)
"""

import logging
from dataclasses import replace
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Sequence

from sqlalchemy import and_, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..database.models import ActiveSignature, Company, Signature, User
from ..models import (
    ApprovalCriteria,
    ApprovalList,
    ClaGroupModel,
    ClaType,
    CompanyModel,
    CompanySignaturesParams,
    CorporateContributor,
    CorporateContributorList,
    GithubOrg,
    IclaSignature,
    IclaSignatureList,
    ProjectCompanyEmployeeSignaturesParams,
    ProjectSignaturesParams,
    REFERENCE_TYPE_COMPANY,
    REFERENCE_TYPE_USER,
    SIGNATURE_TYPE_CCLA,
    SIGNATURE_TYPE_CLA,
    SignatureCompanyID,
    SignatureList,
    SignatureMetadata,
    SignatureModel,
    SignatureReport,
    SortOrder,
    UserModel,
    UserSignaturesParams,
)
from ..utils.approval import emails_in_approval_list, emails_match_domains, merge_approval_list
from .database_service import DatabaseService, database_service
from .event_service import EventService, EventType, LogEventArgs, SignatureInvalidatedEventData, event_service
from .user_service import to_user_model

logger = logging.getLogger("cla.services.signature_repository")

DEFAULT_PAGE_SIZE = 50

# Approval list columns updated by ApprovalList deltas, keyed by delta suffix
APPROVAL_LIST_COLUMNS = {
    "email": "email_approval_list",
    "domain": "domain_approval_list",
    "github_username": "github_username_approval_list",
    "github_org": "github_org_approval_list",
    "gitlab_username": "gitlab_username_approval_list",
    "gitlab_org": "gitlab_org_approval_list",
}


# =========================================================================
# FILTERS
# =========================================================================


def _icla_conditions() -> list:
    return [
        Signature.signature_type == SIGNATURE_TYPE_CLA,
        Signature.signature_reference_type == REFERENCE_TYPE_USER,
        Signature.signature_user_ccla_company_id.is_(None),
    ]


def _ecla_conditions() -> list:
    return [
        Signature.signature_type == SIGNATURE_TYPE_CLA,
        Signature.signature_reference_type == REFERENCE_TYPE_USER,
        Signature.signature_user_ccla_company_id.is_not(None),
    ]


def _ccla_conditions() -> list:
    return [
        Signature.signature_type == SIGNATURE_TYPE_CCLA,
        Signature.signature_reference_type == REFERENCE_TYPE_COMPANY,
    ]


def _cla_type_conditions(cla_type: Optional[ClaType]) -> list:
    if cla_type == ClaType.ICLA:
        return _icla_conditions()
    if cla_type == ClaType.ECLA:
        return _ecla_conditions()
    if cla_type == ClaType.CCLA:
        return _ccla_conditions()
    return []


def _flag_conditions(approved: Optional[bool], signed: Optional[bool]) -> list:
    conditions = []
    if approved is not None:
        conditions.append(Signature.signature_approved == approved)
    if signed is not None:
        conditions.append(Signature.signature_signed == signed)
    return conditions


class SignatureRepository:
    """
    SQLAlchemy-backed store of signature records.

    Attributes:
        _db: Database service providing sessions
        _events: Event service used for invalidation audit events
    """

    def __init__(self, db: Optional[DatabaseService] = None, events: Optional[EventService] = None):
        self._db = db or database_service
        self._events = events or event_service

    # =========================================================================
    # CONVERSION
    # =========================================================================

    async def _load_acl_users(self, session: AsyncSession, usernames: Iterable[str]) -> Dict[str, UserModel]:
        names = sorted({name for name in usernames if name})
        if not names:
            return {}
        result = await session.execute(select(User).where(User.lf_username.in_(names)))
        return {row.lf_username: to_user_model(row) for row in result.scalars()}

    @staticmethod
    def _to_model(row: Signature, acl_users: Optional[Dict[str, UserModel]] = None) -> SignatureModel:
        acl_users = acl_users or {}
        acl = [acl_users.get(name) or UserModel(lf_username=name) for name in (row.signature_acl or [])]
        company_id = (
            row.signature_reference_id
            if row.signature_reference_type == REFERENCE_TYPE_COMPANY
            else row.signature_user_ccla_company_id
        )
        return SignatureModel(
            signature_id=row.signature_id,
            signature_type=row.signature_type,
            signature_reference_type=row.signature_reference_type,
            signature_reference_id=row.signature_reference_id,
            signature_reference_name=row.signature_reference_name,
            project_id=row.signature_project_id,
            company_id=company_id,
            signature_approved=row.signature_approved,
            signature_signed=row.signature_signed,
            signature_embargo_acked=row.signature_embargo_acked,
            auto_create_ecla=row.auto_create_ecla,
            signatory_name=row.signatory_name,
            user_email=row.user_email,
            user_github_username=row.user_github_username,
            user_gitlab_username=row.user_gitlab_username,
            user_lf_username=row.user_lf_username,
            signature_acl=acl,
            email_approval_list=list(row.email_approval_list or []),
            domain_approval_list=list(row.domain_approval_list or []),
            github_username_approval_list=list(row.github_username_approval_list or []),
            github_org_approval_list=list(row.github_org_approval_list or []),
            gitlab_username_approval_list=list(row.gitlab_username_approval_list or []),
            gitlab_org_approval_list=list(row.gitlab_org_approval_list or []),
            note=row.note,
            signed_on=row.signed_on,
            date_created=row.date_created,
            date_modified=row.date_modified,
        )

    async def _to_models(
        self, session: AsyncSession, rows: Sequence[Signature], load_acl_details: bool = True
    ) -> List[SignatureModel]:
        acl_users: Dict[str, UserModel] = {}
        if load_acl_details:
            acl_users = await self._load_acl_users(
                session, (name for row in rows for name in (row.signature_acl or []))
            )
        return [self._to_model(row, acl_users) for row in rows]

    # =========================================================================
    # PAGINATION
    # =========================================================================

    async def _paginate(
        self,
        session: AsyncSession,
        conditions: list,
        next_key: Optional[str],
        page_size: Optional[int],
        sort_order: SortOrder = SortOrder.ASC,
        load_acl_details: bool = True,
        project_id: Optional[str] = None,
    ) -> SignatureList:
        page_size = page_size or DEFAULT_PAGE_SIZE

        count_query = select(func.count()).select_from(Signature)
        for condition in conditions:
            count_query = count_query.where(condition)
        total_count = (await session.execute(count_query)).scalar() or 0

        query = select(Signature)
        for condition in conditions:
            query = query.where(condition)
        if sort_order == SortOrder.DESC:
            if next_key:
                query = query.where(Signature.signature_id < next_key)
            query = query.order_by(Signature.signature_id.desc())
        else:
            if next_key:
                query = query.where(Signature.signature_id > next_key)
            query = query.order_by(Signature.signature_id.asc())
        query = query.limit(page_size + 1)

        rows = list((await session.execute(query)).scalars())
        last_key = None
        if len(rows) > page_size:
            rows = rows[:page_size]
            last_key = rows[-1].signature_id

        signatures = await self._to_models(session, rows, load_acl_details)
        return SignatureList(
            project_id=project_id,
            signatures=signatures,
            result_count=len(signatures),
            total_count=total_count,
            last_key=last_key,
        )

    # =========================================================================
    # SINGLE RECORD LOOKUPS
    # =========================================================================

    async def create_signature(self, signature: SignatureModel) -> SignatureModel:
        """Persist a signature record (used when signing and for seeding)."""
        async with self._db.get_session() as session:
            row = Signature(
                signature_type=signature.signature_type,
                signature_reference_type=signature.signature_reference_type,
                signature_reference_id=signature.signature_reference_id,
                signature_reference_name=signature.signature_reference_name,
                signature_project_id=signature.project_id,
                signature_user_ccla_company_id=(
                    signature.company_id
                    if signature.signature_reference_type == REFERENCE_TYPE_USER
                    else None
                ),
                signature_approved=signature.signature_approved,
                signature_signed=signature.signature_signed,
                signature_embargo_acked=signature.signature_embargo_acked,
                auto_create_ecla=signature.auto_create_ecla,
                signatory_name=signature.signatory_name,
                user_email=signature.user_email,
                user_github_username=signature.user_github_username,
                user_gitlab_username=signature.user_gitlab_username,
                user_lf_username=signature.user_lf_username,
                signature_acl=[u.lf_username for u in signature.signature_acl if u.lf_username],
                email_approval_list=list(signature.email_approval_list),
                domain_approval_list=list(signature.domain_approval_list),
                github_username_approval_list=list(signature.github_username_approval_list),
                github_org_approval_list=list(signature.github_org_approval_list),
                gitlab_username_approval_list=list(signature.gitlab_username_approval_list),
                gitlab_org_approval_list=list(signature.gitlab_org_approval_list),
                note=signature.note,
                signed_on=signature.signed_on,
            )
            if signature.signature_id:
                row.signature_id = signature.signature_id
            session.add(row)
            await session.flush()
            return (await self._to_models(session, [row]))[0]

    async def get_signature(self, signature_id: str) -> Optional[SignatureModel]:
        async with self._db.get_session() as session:
            row = await session.get(Signature, signature_id)
            if row is None:
                return None
            return (await self._to_models(session, [row]))[0]

    async def _first(self, conditions: list) -> Optional[SignatureModel]:
        async with self._db.get_session() as session:
            query = select(Signature)
            for condition in conditions:
                query = query.where(condition)
            query = query.order_by(Signature.date_created.desc(), Signature.signature_id).limit(1)
            row = (await session.execute(query)).scalars().first()
            if row is None:
                return None
            return (await self._to_models(session, [row]))[0]

    async def get_individual_signature(
        self, cla_group_id: str, user_id: str, approved: Optional[bool], signed: Optional[bool]
    ) -> Optional[SignatureModel]:
        """The user's ICLA for the CLA group, if any."""
        return await self._first(
            [
                Signature.signature_project_id == cla_group_id,
                Signature.signature_reference_id == user_id,
                *_icla_conditions(),
                *_flag_conditions(approved, signed),
            ]
        )

    async def get_corporate_signature(
        self, cla_group_id: str, company_id: str, approved: Optional[bool], signed: Optional[bool]
    ) -> Optional[SignatureModel]:
        """The company's CCLA for the CLA group, if any."""
        return await self._first(
            [
                Signature.signature_project_id == cla_group_id,
                Signature.signature_reference_id == company_id,
                *_ccla_conditions(),
                *_flag_conditions(approved, signed),
            ]
        )

    async def get_project_company_signature(
        self,
        company_id: str,
        project_id: str,
        approved: Optional[bool],
        signed: Optional[bool],
        next_key: Optional[str] = None,
        page_size: Optional[int] = None,
    ) -> Optional[SignatureModel]:
        """First CCLA of the company for the project, honouring the cursor."""
        page = await self.get_project_company_signatures(
            company_id, project_id, signed, approved, next_key, SortOrder.ASC, page_size or 1
        )
        return page.signatures[0] if page.signatures else None

    # =========================================================================
    # LIST QUERIES
    # =========================================================================

    async def get_project_signatures(self, params: ProjectSignaturesParams) -> SignatureList:
        conditions = [
            Signature.signature_project_id == params.project_id,
            *_cla_type_conditions(params.cla_type),
            *_flag_conditions(params.approved, params.signed),
        ]
        if params.search_term:
            term = params.search_term.lower()
            searchable = (
                Signature.signature_reference_name,
                Signature.user_email,
                Signature.user_github_username,
                Signature.user_lf_username,
            )
            if params.full_match:
                conditions.append(or_(*(func.lower(col) == term for col in searchable)))
            else:
                conditions.append(or_(*(func.lower(col).like(f"%{term}%") for col in searchable)))

        async with self._db.get_session() as session:
            return await self._paginate(
                session,
                conditions,
                params.next_key,
                params.page_size,
                params.sort_order,
                project_id=params.project_id,
            )

    async def create_project_summary_report(self, params: ProjectSignaturesParams) -> SignatureReport:
        """A page of project signatures plus per-type counts."""
        page = await self.get_project_signatures(params)

        async with self._db.get_session() as session:
            counts = {}
            for cla_type in (ClaType.ICLA, ClaType.CCLA, ClaType.ECLA):
                query = select(func.count()).select_from(Signature).where(
                    Signature.signature_project_id == params.project_id,
                    *_cla_type_conditions(cla_type),
                    *_flag_conditions(params.approved, params.signed),
                )
                counts[cla_type] = (await session.execute(query)).scalar() or 0

        return SignatureReport(
            project_id=params.project_id,
            signatures=page.signatures,
            result_count=page.result_count,
            total_count=page.total_count,
            icla_count=counts[ClaType.ICLA],
            ccla_count=counts[ClaType.CCLA],
            ecla_count=counts[ClaType.ECLA],
            last_key=page.last_key,
        )

    async def get_project_company_signatures(
        self,
        company_id: str,
        project_id: str,
        signed: Optional[bool],
        approved: Optional[bool],
        next_key: Optional[str] = None,
        sort_order: SortOrder = SortOrder.ASC,
        page_size: Optional[int] = None,
    ) -> SignatureList:
        conditions = [
            Signature.signature_project_id == project_id,
            Signature.signature_reference_id == company_id,
            *_ccla_conditions(),
            *_flag_conditions(approved, signed),
        ]
        async with self._db.get_session() as session:
            return await self._paginate(
                session, conditions, next_key, page_size, sort_order, project_id=project_id
            )

    async def get_project_company_employee_signatures(
        self,
        params: ProjectCompanyEmployeeSignaturesParams,
        criteria: Optional[ApprovalCriteria] = None,
    ) -> SignatureList:
        conditions = [
            Signature.signature_project_id == params.project_id,
            Signature.signature_user_ccla_company_id == params.company_id,
            *_ecla_conditions(),
        ]
        if criteria is not None:
            if criteria.user_id:
                conditions.append(Signature.signature_reference_id == criteria.user_id)
            if criteria.user_email:
                conditions.append(Signature.user_email == criteria.user_email)
            if criteria.github_username:
                conditions.append(Signature.user_github_username == criteria.github_username)
            if criteria.gitlab_username:
                conditions.append(Signature.user_gitlab_username == criteria.gitlab_username)

        async with self._db.get_session() as session:
            return await self._paginate(
                session, conditions, params.next_key, params.page_size, project_id=params.project_id
            )

    async def get_company_signatures(
        self,
        params: CompanySignaturesParams,
        page_size: int,
        load_acl_details: bool = True,
    ) -> SignatureList:
        conditions = [
            or_(
                and_(
                    Signature.signature_reference_id == params.company_id,
                    Signature.signature_reference_type == REFERENCE_TYPE_COMPANY,
                ),
                Signature.signature_user_ccla_company_id == params.company_id,
            )
        ]
        if params.signature_type:
            conditions.append(Signature.signature_type == params.signature_type)

        async with self._db.get_session() as session:
            return await self._paginate(
                session, conditions, params.next_key, page_size, load_acl_details=load_acl_details
            )

    async def get_company_ids_with_signed_corporate_signatures(self, cla_group_id: str) -> List[SignatureCompanyID]:
        async with self._db.get_session() as session:
            query = (
                select(Signature.signature_id, Signature.signature_reference_id, Company.company_name)
                .outerjoin(Company, Company.company_id == Signature.signature_reference_id)
                .where(
                    Signature.signature_project_id == cla_group_id,
                    Signature.signature_signed.is_(True),
                    *_ccla_conditions(),
                )
                .order_by(Signature.signature_id)
            )
            result = await session.execute(query)
            return [
                SignatureCompanyID(signature_id=sig_id, company_id=company_id, company_name=company_name)
                for sig_id, company_id, company_name in result.all()
            ]

    async def get_user_signatures(self, params: UserSignaturesParams, page_size: int) -> SignatureList:
        conditions = [
            Signature.signature_reference_id == params.user_id,
            Signature.signature_reference_type == REFERENCE_TYPE_USER,
        ]
        async with self._db.get_session() as session:
            return await self._paginate(session, conditions, params.next_key, page_size)

    async def project_signatures(self, project_id: str) -> SignatureList:
        """Every signature of the project, unpaginated and without ACL details."""
        async with self._db.get_session() as session:
            result = await session.execute(
                select(Signature)
                .where(Signature.signature_project_id == project_id)
                .order_by(Signature.signature_id)
            )
            rows = list(result.scalars())
            signatures = await self._to_models(session, rows, load_acl_details=False)
            return SignatureList(
                project_id=project_id,
                signatures=signatures,
                result_count=len(signatures),
                total_count=len(signatures),
            )

    async def get_cla_group_icla_signatures(
        self,
        cla_group_id: str,
        search_term: Optional[str],
        approved: Optional[bool],
        signed: Optional[bool],
        page_size: int,
        next_key: Optional[str],
    ) -> IclaSignatureList:
        params = ProjectSignaturesParams(
            project_id=cla_group_id,
            cla_type=ClaType.ICLA,
            search_term=search_term,
            approved=approved,
            signed=signed,
            page_size=page_size,
            next_key=next_key,
        )
        page = await self.get_project_signatures(params)
        items = [
            IclaSignature(
                signature_id=sig.signature_id,
                user_id=sig.signature_reference_id,
                user_name=sig.signatory_name or sig.signature_reference_name,
                lf_username=sig.user_lf_username,
                user_email=sig.user_email,
                github_username=sig.user_github_username,
                signed_on=sig.signed_on,
                signature_approved=sig.signature_approved,
                signature_signed=sig.signature_signed,
            )
            for sig in page.signatures
        ]
        return IclaSignatureList(items=items, result_count=len(items), next_key=page.last_key)

    async def get_cla_group_corporate_contributors(
        self,
        cla_group_id: str,
        company_id: Optional[str],
        search_term: Optional[str],
    ) -> CorporateContributorList:
        conditions = [Signature.signature_project_id == cla_group_id, *_ecla_conditions()]
        if company_id:
            conditions.append(Signature.signature_user_ccla_company_id == company_id)
        if search_term:
            term = f"%{search_term.lower()}%"
            conditions.append(
                or_(
                    func.lower(Signature.signatory_name).like(term),
                    func.lower(Signature.user_email).like(term),
                    func.lower(Signature.user_github_username).like(term),
                    func.lower(Signature.user_lf_username).like(term),
                )
            )

        async with self._db.get_session() as session:
            query = select(Signature)
            for condition in conditions:
                query = query.where(condition)
            rows = (await session.execute(query.order_by(Signature.signature_id))).scalars()
            items = [
                CorporateContributor(
                    signature_id=row.signature_id,
                    user_id=row.signature_reference_id,
                    name=row.signatory_name,
                    lf_username=row.user_lf_username,
                    email=row.user_email,
                    github_username=row.user_github_username,
                    company_id=row.signature_user_ccla_company_id,
                    timestamp=row.signed_on or row.date_created,
                )
                for row in rows
            ]
        return CorporateContributorList(items=items)

    # =========================================================================
    # MUTATIONS
    # =========================================================================

    async def invalidate_project_record(self, signature_id: str, note: str) -> None:
        """Mark a signature as no longer approved and record why."""
        async with self._db.get_session() as session:
            row = await session.get(Signature, signature_id)
            if row is None:
                raise ValueError(f"signature not found: {signature_id}")
            row.signature_approved = False
            row.note = f"{row.note}; {note}" if row.note else note
            logger.debug(f"Invalidated signature {signature_id}")

    async def add_cla_manager(self, signature_id: str, cla_manager_id: str) -> Optional[SignatureModel]:
        async with self._db.get_session() as session:
            row = await session.get(Signature, signature_id)
            if row is None:
                return None
            acl = list(row.signature_acl or [])
            if cla_manager_id not in acl:
                acl.append(cla_manager_id)
                row.signature_acl = acl
            await session.flush()
            return (await self._to_models(session, [row]))[0]

    async def remove_cla_manager(self, signature_id: str, cla_manager_id: str) -> Optional[SignatureModel]:
        async with self._db.get_session() as session:
            row = await session.get(Signature, signature_id)
            if row is None:
                return None
            row.signature_acl = [name for name in (row.signature_acl or []) if name != cla_manager_id]
            await session.flush()
            return (await self._to_models(session, [row]))[0]

    async def get_github_organizations_from_approval_list(self, signature_id: str) -> List[GithubOrg]:
        async with self._db.get_session() as session:
            row = await session.get(Signature, signature_id)
            if row is None:
                raise ValueError(f"signature not found: {signature_id}")
            return [GithubOrg(id=org) for org in (row.github_org_approval_list or [])]

    async def add_github_organization_to_approval_list(self, signature_id: str, organization_id: str) -> List[GithubOrg]:
        async with self._db.get_session() as session:
            row = await session.get(Signature, signature_id)
            if row is None:
                raise ValueError(f"signature not found: {signature_id}")
            row.github_org_approval_list = merge_approval_list(
                row.github_org_approval_list or [], [organization_id], []
            )
            return [GithubOrg(id=org) for org in row.github_org_approval_list]

    async def delete_github_organization_from_approval_list(
        self, signature_id: str, organization_id: str
    ) -> List[GithubOrg]:
        async with self._db.get_session() as session:
            row = await session.get(Signature, signature_id)
            if row is None:
                raise ValueError(f"signature not found: {signature_id}")
            row.github_org_approval_list = merge_approval_list(
                row.github_org_approval_list or [], [], [organization_id]
            )
            return [GithubOrg(id=org) for org in row.github_org_approval_list]

    async def update_approval_list(
        self,
        cla_manager: UserModel,
        cla_group: ClaGroupModel,
        company_id: str,
        params: ApprovalList,
        event_args: LogEventArgs,
    ) -> SignatureModel:
        """
        Apply an approval list delta to the company's active CCLA.

        Employee acknowledgements whose user matched a removed email, domain,
        GitHub username or GitLab username and is no longer covered by the
        updated lists are invalidated in the same transaction.

        Raises:
            ValueError: If the company has no signed and approved CCLA
        """
        invalidated: List[str] = []
        async with self._db.get_session() as session:
            query = (
                select(Signature)
                .where(
                    Signature.signature_project_id == cla_group.project_id,
                    Signature.signature_reference_id == company_id,
                    Signature.signature_signed.is_(True),
                    Signature.signature_approved.is_(True),
                    *_ccla_conditions(),
                )
                .order_by(Signature.signature_id)
                .limit(1)
            )
            ccla = (await session.execute(query)).scalars().first()
            if ccla is None:
                raise ValueError(
                    f"no signed and approved corporate signature for company {company_id} "
                    f"and CLA group {cla_group.project_id}"
                )

            for key, column in APPROVAL_LIST_COLUMNS.items():
                add = getattr(params, f"add_{key}_approval_list")
                remove = getattr(params, f"remove_{key}_approval_list")
                if add or remove:
                    setattr(ccla, column, merge_approval_list(getattr(ccla, column) or [], add, remove))

            if (
                params.remove_email_approval_list
                or params.remove_domain_approval_list
                or params.remove_github_username_approval_list
                or params.remove_gitlab_username_approval_list
            ):
                invalidated = await self._invalidate_removed_employees(
                    session, ccla, params, cla_manager
                )

            await session.flush()
            updated = (await self._to_models(session, [ccla]))[0]

        for signature_id in invalidated:
            await self._events.log_event(
                replace(
                    event_args,
                    event_type=EventType.INVALIDATED_SIGNATURE,
                    event_data=SignatureInvalidatedEventData(
                        signature_id=signature_id,
                        reason="identity removed from the approval list",
                    ),
                )
            )

        logger.debug(
            f"Approval list updated for company {company_id}, CLA group {cla_group.project_id}; "
            f"invalidated {len(invalidated)} employee signatures"
        )
        return updated

    async def _invalidate_removed_employees(
        self,
        session: AsyncSession,
        ccla: Signature,
        params: ApprovalList,
        cla_manager: UserModel,
    ) -> List[str]:
        removed_emails = {e.strip() for e in params.remove_email_approval_list if e}
        removed_github = {g.strip() for g in params.remove_github_username_approval_list if g}
        removed_gitlab = {g.strip() for g in params.remove_gitlab_username_approval_list if g}
        removed_domains = [d for d in params.remove_domain_approval_list if d]

        result = await session.execute(
            select(Signature, User)
            .outerjoin(User, User.user_id == Signature.signature_reference_id)
            .where(
                Signature.signature_project_id == ccla.signature_project_id,
                Signature.signature_user_ccla_company_id == ccla.signature_reference_id,
                Signature.signature_approved.is_(True),
                *_ecla_conditions(),
            )
        )

        invalidated = []
        for ecla, user in result.all():
            emails = [ecla.user_email] if ecla.user_email else []
            github_username = ecla.user_github_username
            gitlab_username = ecla.user_gitlab_username
            if user is not None:
                emails.extend(user.user_emails or [])
                if user.lf_email:
                    emails.append(user.lf_email)
                github_username = github_username or user.github_username
                gitlab_username = gitlab_username or user.gitlab_username

            matched_removal = (
                emails_in_approval_list(emails, list(removed_emails))
                or emails_match_domains(emails, removed_domains)
                or (github_username in removed_github if github_username else False)
                or (gitlab_username in removed_gitlab if gitlab_username else False)
            )
            if not matched_removal:
                continue

            still_covered = (
                emails_in_approval_list(emails, ccla.email_approval_list or [])
                or emails_match_domains(emails, ccla.domain_approval_list or [])
                or (github_username in (ccla.github_username_approval_list or []) if github_username else False)
                or (gitlab_username in (ccla.gitlab_username_approval_list or []) if gitlab_username else False)
            )
            if still_covered:
                continue

            ecla.signature_approved = False
            note = (
                f"Signature invalidated (approved set to false) by CLA Manager "
                f"{cla_manager.lf_username} on {datetime.utcnow().isoformat()}: removed from approval list"
            )
            ecla.note = f"{ecla.note}; {note}" if ecla.note else note
            invalidated.append(ecla.signature_id)

        return invalidated

    async def create_project_company_employee_signature(
        self,
        company: CompanyModel,
        cla_group: ClaGroupModel,
        employee: UserModel,
    ) -> SignatureModel:
        """
        Create the employee acknowledgement for a user.

        An existing ECLA for the same user, company and CLA group is
        re-approved instead of duplicated.
        """
        async with self._db.get_session() as session:
            query = select(Signature).where(
                Signature.signature_project_id == cla_group.project_id,
                Signature.signature_reference_id == employee.user_id,
                Signature.signature_user_ccla_company_id == company.company_id,
                *_ecla_conditions(),
            )
            row = (await session.execute(query)).scalars().first()
            now = datetime.utcnow()
            if row is None:
                row = Signature(
                    signature_type=SIGNATURE_TYPE_CLA,
                    signature_reference_type=REFERENCE_TYPE_USER,
                    signature_reference_id=employee.user_id,
                    signature_reference_name=employee.user_name,
                    signature_project_id=cla_group.project_id,
                    signature_user_ccla_company_id=company.company_id,
                    signatory_name=employee.user_name,
                    user_email=employee.lf_email or (employee.emails[0] if employee.emails else None),
                    user_github_username=employee.github_username,
                    user_gitlab_username=employee.gitlab_username,
                    user_lf_username=employee.lf_username,
                    signature_acl=[],
                )
                session.add(row)
            row.signature_approved = True
            row.signature_signed = True
            row.signature_embargo_acked = True
            row.signed_on = now
            await session.flush()
            logger.debug(
                f"Employee signature {row.signature_id} for user {employee.user_id}, "
                f"company {company.company_id}, CLA group {cla_group.project_id}"
            )
            return self._to_model(row)

    # =========================================================================
    # ACTIVE SIGNATURE METADATA
    # =========================================================================

    async def get_active_signature_metadata(self, user_id: str) -> Optional[SignatureMetadata]:
        async with self._db.get_session() as session:
            row = await session.get(ActiveSignature, user_id)
            return SignatureMetadata.model_validate(row) if row else None

    async def set_active_signature_metadata(self, metadata: SignatureMetadata) -> None:
        async with self._db.get_session() as session:
            row = await session.get(ActiveSignature, metadata.user_id)
            if row is None:
                session.add(ActiveSignature(**metadata.model_dump()))
            else:
                row.project_id = metadata.project_id
                row.repository_id = metadata.repository_id
                row.pull_request_id = metadata.pull_request_id
                row.return_url = metadata.return_url


# Global singleton instance
signature_repository = SignatureRepository()
