# backend/tests/test_signature_repository.py
"""
Integration tests for SignatureRepository against a temporary SQLite database.

Covers cursor pagination, type and flag filters, approval list merging with
employee invalidation, ECLA upserts, ACL edits and active signature metadata.
"""

import pytest

from cla_backend.models import (
    ApprovalCriteria,
    ApprovalList,
    ClaGroupModel,
    ClaType,
    CompanyModel,
    CompanySignaturesParams,
    ProjectCompanyEmployeeSignaturesParams,
    ProjectSignaturesParams,
    SignatureMetadata,
    SignatureModel,
    SortOrder,
    UserModel,
    UserSignaturesParams,
)
from cla_backend.services.company_service import CompanyService
from cla_backend.services.event_service import EventService, EventType, LogEventArgs
from cla_backend.services.signature_repository import SignatureRepository
from cla_backend.services.user_service import UserService

PROJECT = "cla-group-1"
COMPANY = "company-1"


def icla(user_id: str, **kwargs) -> SignatureModel:
    values = dict(
        signature_type="cla",
        signature_reference_type="user",
        signature_reference_id=user_id,
        project_id=PROJECT,
        signature_approved=True,
        signature_signed=True,
    )
    values.update(kwargs)
    return SignatureModel(**values)


def ccla(company_id: str = COMPANY, **kwargs) -> SignatureModel:
    values = dict(
        signature_type="ccla",
        signature_reference_type="company",
        signature_reference_id=company_id,
        project_id=PROJECT,
        signature_approved=True,
        signature_signed=True,
    )
    values.update(kwargs)
    return SignatureModel(**values)


def ecla(user_id: str, company_id: str = COMPANY, **kwargs) -> SignatureModel:
    return icla(user_id, company_id=company_id, **kwargs)


@pytest.fixture
def events(db):
    return EventService(db=db)


@pytest.fixture
def repo(db, events):
    return SignatureRepository(db=db, events=events)


@pytest.fixture
def users(db):
    return UserService(db=db)


@pytest.fixture
def cla_group():
    return ClaGroupModel(project_id=PROJECT, project_name="Project One")


@pytest.fixture
def company():
    return CompanyModel(company_id=COMPANY, company_name="Acme")


@pytest.fixture
def manager():
    return UserModel(user_id="manager-id", lf_username="manager")


@pytest.fixture
def event_args(cla_group, company, manager):
    return LogEventArgs(
        event_type=EventType.INVALIDATED_SIGNATURE,
        user_id=manager.user_id,
        lf_username=manager.lf_username,
        cla_group_id=cla_group.project_id,
        cla_group_name=cla_group.project_name,
        company_id=company.company_id,
        company_name=company.company_name,
    )


class TestLookups:
    @pytest.mark.asyncio
    async def test_create_and_get(self, repo):
        created = await repo.create_signature(icla("user-1", user_email="jane@example.com"))

        fetched = await repo.get_signature(created.signature_id)

        assert fetched is not None
        assert fetched.signature_id == created.signature_id
        assert fetched.user_email == "jane@example.com"
        assert fetched.company_id is None

    @pytest.mark.asyncio
    async def test_get_missing_signature(self, repo):
        assert await repo.get_signature("missing") is None

    @pytest.mark.asyncio
    async def test_individual_signature_ignores_employee_acknowledgements(self, repo):
        await repo.create_signature(ecla("user-1"))

        assert await repo.get_individual_signature(PROJECT, "user-1", True, True) is None

        await repo.create_signature(icla("user-1"))
        assert await repo.get_individual_signature(PROJECT, "user-1", True, True) is not None

    @pytest.mark.asyncio
    async def test_flags_filter_lookups(self, repo):
        await repo.create_signature(ccla(signature_approved=False))

        assert await repo.get_corporate_signature(PROJECT, COMPANY, True, True) is None
        assert await repo.get_corporate_signature(PROJECT, COMPANY, None, None) is not None

    @pytest.mark.asyncio
    async def test_project_company_signature(self, repo):
        created = await repo.create_signature(ccla())

        found = await repo.get_project_company_signature(COMPANY, PROJECT, True, True)

        assert found.signature_id == created.signature_id
        assert found.company_id == COMPANY
        assert await repo.get_project_company_signature("other", PROJECT, True, True) is None


class TestPagination:
    @pytest.mark.asyncio
    async def test_cursor_walks_every_signature_once(self, repo):
        created = {
            (await repo.create_signature(icla(f"user-{i}"))).signature_id for i in range(5)
        }

        seen = []
        next_key = None
        pages = 0
        while True:
            page = await repo.get_project_signatures(
                ProjectSignaturesParams(project_id=PROJECT, page_size=2, next_key=next_key)
            )
            pages += 1
            assert page.total_count == 5
            assert page.result_count == len(page.signatures)
            seen.extend(sig.signature_id for sig in page.signatures)
            next_key = page.last_key
            if next_key is None:
                break

        assert pages == 3
        assert len(seen) == 5
        assert set(seen) == created
        assert seen == sorted(seen)

    @pytest.mark.asyncio
    async def test_descending_order(self, repo):
        for i in range(3):
            await repo.create_signature(icla(f"user-{i}"))

        page = await repo.get_project_signatures(
            ProjectSignaturesParams(project_id=PROJECT, sort_order=SortOrder.DESC)
        )

        ids = [sig.signature_id for sig in page.signatures]
        assert ids == sorted(ids, reverse=True)
        assert page.last_key is None

    @pytest.mark.asyncio
    async def test_type_filters_and_report(self, repo):
        await repo.create_signature(icla("user-1"))
        await repo.create_signature(icla("user-2"))
        await repo.create_signature(ccla())
        await repo.create_signature(ecla("user-3"))

        iclas = await repo.get_project_signatures(ProjectSignaturesParams(project_id=PROJECT, cla_type=ClaType.ICLA))
        cclas = await repo.get_project_signatures(ProjectSignaturesParams(project_id=PROJECT, cla_type=ClaType.CCLA))
        report = await repo.create_project_summary_report(ProjectSignaturesParams(project_id=PROJECT))

        assert iclas.total_count == 2
        assert cclas.total_count == 1
        assert (report.icla_count, report.ccla_count, report.ecla_count) == (2, 1, 1)
        assert report.total_count == 4

    @pytest.mark.asyncio
    async def test_search_term(self, repo):
        await repo.create_signature(icla("user-1", user_github_username="octocat"))
        await repo.create_signature(icla("user-2", user_github_username="hubot"))

        partial = await repo.get_project_signatures(ProjectSignaturesParams(project_id=PROJECT, search_term="OCTO"))
        exact = await repo.get_project_signatures(
            ProjectSignaturesParams(project_id=PROJECT, search_term="octo", full_match=True)
        )

        assert [sig.user_github_username for sig in partial.signatures] == ["octocat"]
        assert exact.signatures == []

    @pytest.mark.asyncio
    async def test_company_and_user_signatures(self, repo):
        await repo.create_signature(ccla())
        await repo.create_signature(ecla("user-1"))
        await repo.create_signature(icla("user-1"))
        await repo.create_signature(ccla("company-2"))

        company_page = await repo.get_company_signatures(CompanySignaturesParams(company_id=COMPANY), 50)
        user_page = await repo.get_user_signatures(UserSignaturesParams(user_id="user-1"), 10)

        assert company_page.total_count == 2
        assert user_page.total_count == 2

    @pytest.mark.asyncio
    async def test_employee_signatures_by_user(self, repo):
        await repo.create_signature(ecla("user-1", user_email="one@acme.com"))
        await repo.create_signature(ecla("user-2", user_email="two@acme.com"))

        page = await repo.get_project_company_employee_signatures(
            ProjectCompanyEmployeeSignaturesParams(company_id=COMPANY, project_id=PROJECT, page_size=10),
            ApprovalCriteria(user_id="user-2"),
        )

        assert [sig.signature_reference_id for sig in page.signatures] == ["user-2"]

    @pytest.mark.asyncio
    async def test_cla_group_icla_signatures(self, repo):
        await repo.create_signature(icla("user-1", signatory_name="Jane"))
        await repo.create_signature(ecla("user-2"))

        result = await repo.get_cla_group_icla_signatures(PROJECT, None, True, True, 10, None)

        assert result.result_count == 1
        assert result.items[0].user_id == "user-1"
        assert result.items[0].user_name == "Jane"
        assert result.next_key is None

    @pytest.mark.asyncio
    async def test_corporate_contributors(self, repo):
        await repo.create_signature(ecla("user-1", signatory_name="Jane Dev"))
        await repo.create_signature(ecla("user-2", company_id="company-2", signatory_name="Joe Other"))

        all_contributors = await repo.get_cla_group_corporate_contributors(PROJECT, None, None)
        by_company = await repo.get_cla_group_corporate_contributors(PROJECT, COMPANY, None)
        by_search = await repo.get_cla_group_corporate_contributors(PROJECT, None, "joe")

        assert len(all_contributors.items) == 2
        assert [c.user_id for c in by_company.items] == ["user-1"]
        assert [c.user_id for c in by_search.items] == ["user-2"]

    @pytest.mark.asyncio
    async def test_company_ids_with_signed_corporate_signatures(self, db, repo):
        await CompanyService(db=db).create_company(CompanyModel(company_id=COMPANY, company_name="Acme"))
        signed = await repo.create_signature(ccla())
        await repo.create_signature(ccla("company-2", signature_signed=False))

        result = await repo.get_company_ids_with_signed_corporate_signatures(PROJECT)

        assert len(result) == 1
        assert result[0].signature_id == signed.signature_id
        assert result[0].company_name == "Acme"


class TestMutations:
    @pytest.mark.asyncio
    async def test_invalidate_project_record_appends_note(self, repo):
        created = await repo.create_signature(icla("user-1", note="signed via docusign"))

        await repo.invalidate_project_record(created.signature_id, "project deleted")

        updated = await repo.get_signature(created.signature_id)
        assert updated.signature_approved is False
        assert updated.note == "signed via docusign; project deleted"

    @pytest.mark.asyncio
    async def test_invalidate_missing_record(self, repo):
        with pytest.raises(ValueError):
            await repo.invalidate_project_record("missing", "note")

    @pytest.mark.asyncio
    async def test_project_signatures_is_unpaginated(self, repo):
        for i in range(60):
            await repo.create_signature(icla(f"user-{i}"))

        result = await repo.project_signatures(PROJECT)

        assert result.result_count == 60
        assert result.last_key is None

    @pytest.mark.asyncio
    async def test_cla_manager_acl(self, repo, users):
        manager = await users.create_user(UserModel(lf_username="manager", lf_email="manager@acme.com"))
        created = await repo.create_signature(ccla())

        added = await repo.add_cla_manager(created.signature_id, "manager")
        await repo.add_cla_manager(created.signature_id, "manager")
        fetched = await repo.get_signature(created.signature_id)

        assert [u.lf_username for u in added.signature_acl] == ["manager"]
        assert [u.user_id for u in fetched.signature_acl] == [manager.user_id]
        assert fetched.signature_acl[0].lf_email == "manager@acme.com"

        removed = await repo.remove_cla_manager(created.signature_id, "manager")
        assert removed.signature_acl == []

    @pytest.mark.asyncio
    async def test_cla_manager_missing_signature(self, repo):
        assert await repo.add_cla_manager("missing", "manager") is None
        assert await repo.remove_cla_manager("missing", "manager") is None

    @pytest.mark.asyncio
    async def test_github_org_approval_list(self, repo):
        created = await repo.create_signature(ccla(github_org_approval_list=["acme"]))

        added = await repo.add_github_organization_to_approval_list(created.signature_id, "widgets")
        again = await repo.add_github_organization_to_approval_list(created.signature_id, "widgets")
        removed = await repo.delete_github_organization_from_approval_list(created.signature_id, "acme")

        assert [org.id for org in added] == ["acme", "widgets"]
        assert [org.id for org in again] == ["acme", "widgets"]
        assert [org.id for org in removed] == ["widgets"]
        listed = await repo.get_github_organizations_from_approval_list(created.signature_id)
        assert [org.id for org in listed] == ["widgets"]

    @pytest.mark.asyncio
    async def test_github_org_approval_list_missing_signature(self, repo):
        with pytest.raises(ValueError):
            await repo.get_github_organizations_from_approval_list("missing")
        with pytest.raises(ValueError):
            await repo.add_github_organization_to_approval_list("missing", "acme")

    @pytest.mark.asyncio
    async def test_active_signature_metadata(self, repo):
        assert await repo.get_active_signature_metadata("user-1") is None

        await repo.set_active_signature_metadata(
            SignatureMetadata(user_id="user-1", project_id=PROJECT, repository_id="1001", pull_request_id="7")
        )
        await repo.set_active_signature_metadata(
            SignatureMetadata(user_id="user-1", project_id=PROJECT, repository_id="1001", pull_request_id="8")
        )

        metadata = await repo.get_active_signature_metadata("user-1")
        assert metadata.pull_request_id == "8"
        assert metadata.repository_id == "1001"


class TestUpdateApprovalList:
    @pytest.mark.asyncio
    async def test_merges_delta(self, repo, manager, cla_group, event_args):
        await repo.create_signature(ccla(email_approval_list=["a@x.com"], domain_approval_list=["acme.com"]))

        updated = await repo.update_approval_list(
            manager,
            cla_group,
            COMPANY,
            ApprovalList(
                add_email_approval_list=["b@x.com", "b@x.com"],
                remove_email_approval_list=["a@x.com"],
                add_github_org_approval_list=["acme-gh"],
            ),
            event_args,
        )

        assert updated.email_approval_list == ["b@x.com"]
        assert updated.domain_approval_list == ["acme.com"]
        assert updated.github_org_approval_list == ["acme-gh"]
        stored = await repo.get_corporate_signature(PROJECT, COMPANY, True, True)
        assert stored.email_approval_list == ["b@x.com"]

    @pytest.mark.asyncio
    async def test_requires_active_ccla(self, repo, manager, cla_group, event_args):
        await repo.create_signature(ccla(signature_approved=False))

        with pytest.raises(ValueError):
            await repo.update_approval_list(manager, cla_group, COMPANY, ApprovalList(), event_args)

    @pytest.mark.asyncio
    async def test_removed_employee_is_invalidated(self, repo, users, events, manager, cla_group, event_args):
        removed_user = await users.create_user(UserModel(emails=["dev@acme.com"], company_id=COMPANY))
        covered_user = await users.create_user(UserModel(emails=["lead@acme.com"], company_id=COMPANY))
        await repo.create_signature(
            ccla(email_approval_list=["lead@acme.com"], domain_approval_list=["acme.com"])
        )
        removed_ecla = await repo.create_signature(ecla(removed_user.user_id))
        covered_ecla = await repo.create_signature(ecla(covered_user.user_id))

        await repo.update_approval_list(
            manager, cla_group, COMPANY, ApprovalList(remove_domain_approval_list=["acme.com"]), event_args
        )

        invalidated = await repo.get_signature(removed_ecla.signature_id)
        kept = await repo.get_signature(covered_ecla.signature_id)
        assert invalidated.signature_approved is False
        assert "manager" in invalidated.note
        assert kept.signature_approved is True

        logged = await events.search_events(event_type=EventType.INVALIDATED_SIGNATURE)
        assert logged.result_count == 1
        assert removed_ecla.signature_id in logged.events[0].event_data
        assert logged.events[0].event_company_id == COMPANY

    @pytest.mark.asyncio
    async def test_removed_github_username_is_invalidated(self, repo, manager, cla_group, event_args):
        await repo.create_signature(ccla(github_username_approval_list=["octocat"]))
        employee = await repo.create_signature(ecla("user-1", user_github_username="octocat"))

        updated = await repo.update_approval_list(
            manager,
            cla_group,
            COMPANY,
            ApprovalList(remove_github_username_approval_list=["octocat"]),
            event_args,
        )

        assert updated.github_username_approval_list == []
        assert (await repo.get_signature(employee.signature_id)).signature_approved is False


class TestEmployeeSignature:
    @pytest.mark.asyncio
    async def test_creates_ecla(self, repo, company, cla_group):
        employee = UserModel(user_id="user-1", user_name="Jane", emails=["jane@acme.com"])

        created = await repo.create_project_company_employee_signature(company, cla_group, employee)

        assert created.signature_type == "cla"
        assert created.signature_reference_id == "user-1"
        assert created.company_id == COMPANY
        assert created.signature_approved and created.signature_signed
        assert created.user_email == "jane@acme.com"
        assert await repo.get_individual_signature(PROJECT, "user-1", True, True) is None

    @pytest.mark.asyncio
    async def test_existing_ecla_is_reapproved(self, repo, company, cla_group):
        employee = UserModel(user_id="user-1", emails=["jane@acme.com"])
        first = await repo.create_project_company_employee_signature(company, cla_group, employee)
        await repo.invalidate_project_record(first.signature_id, "removed")

        second = await repo.create_project_company_employee_signature(company, cla_group, employee)

        assert second.signature_id == first.signature_id
        assert second.signature_approved is True
        page = await repo.get_project_signatures(ProjectSignaturesParams(project_id=PROJECT, cla_type=ClaType.ECLA))
        assert page.total_count == 1
