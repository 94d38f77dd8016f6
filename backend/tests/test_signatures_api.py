# backend/tests/test_signatures_api.py
"""
API tests for the signature endpoints.

Services used by the router are patched with AsyncMocks; requests carry a
bearer JWT signed with the configured secret.
"""

from unittest.mock import AsyncMock, patch

import jwt
import pytest
from fastapi.testclient import TestClient

from cla_backend.config import settings
from cla_backend.errors import BadRequestError, ForbiddenError, NotFoundError
from cla_backend.main import app
from cla_backend.models import (
    AuthUser,
    ClaGroupModel,
    ClaType,
    CompanyModel,
    GithubOrg,
    SignatureList,
    SignatureModel,
)

ROUTER = "cla_backend.api.v1.routers.signatures"
APPROVAL_LIST_URL = "/api/v1/signatures/project/cla-group-1/company/company-1/approval-list"


def make_token(user_name: str = "manager", **claims) -> str:
    payload = {"sub": user_name, **claims}
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def auth_headers(user_name: str = "manager") -> dict:
    return {"Authorization": f"Bearer {make_token(user_name)}"}


def make_ccla(**kwargs) -> SignatureModel:
    values = dict(
        signature_id="ccla-1",
        signature_type="ccla",
        signature_reference_type="company",
        signature_reference_id="company-1",
        project_id="cla-group-1",
        company_id="company-1",
        signature_approved=True,
        signature_signed=True,
    )
    values.update(kwargs)
    return SignatureModel(**values)


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def signature_service():
    with patch(f"{ROUTER}.signature_service", new_callable=AsyncMock) as mock:
        yield mock


@pytest.fixture
def lookups():
    with patch(f"{ROUTER}.cla_group_service", new_callable=AsyncMock) as cla_groups, patch(
        f"{ROUTER}.company_service", new_callable=AsyncMock
    ) as companies:
        cla_groups.get_cla_group.return_value = ClaGroupModel(project_id="cla-group-1", project_name="Project One")
        companies.get_company.return_value = CompanyModel(company_id="company-1", company_name="Acme")
        yield cla_groups, companies


class TestSignatureQueries:
    def test_get_signature(self, client, signature_service):
        signature_service.get_signature.return_value = make_ccla()

        response = client.get("/api/v1/signatures/ccla-1")

        assert response.status_code == 200
        assert response.json()["signature_id"] == "ccla-1"

    def test_get_missing_signature(self, client, signature_service):
        signature_service.get_signature.return_value = None

        response = client.get("/api/v1/signatures/missing")

        assert response.status_code == 404
        assert response.json()["error"] == "NotFoundError"

    def test_project_signatures_query_params(self, client, signature_service):
        signature_service.get_project_signatures.return_value = SignatureList(project_id="cla-group-1")

        response = client.get(
            "/api/v1/signatures/project/cla-group-1",
            params={"cla_type": "ccla", "page_size": 5, "search_term": "acme", "approved": "true"},
        )

        assert response.status_code == 200
        params = signature_service.get_project_signatures.await_args.args[0]
        assert params.project_id == "cla-group-1"
        assert params.cla_type == ClaType.CCLA
        assert params.page_size == 5
        assert params.search_term == "acme"
        assert params.approved is True
        assert params.signed is None

    def test_page_size_is_bounded(self, client, signature_service):
        response = client.get("/api/v1/signatures/project/cla-group-1", params={"page_size": 0})

        assert response.status_code == 422
        signature_service.get_project_signatures.assert_not_awaited()

    def test_project_company_signatures(self, client, signature_service):
        signature_service.get_project_company_signatures.return_value = SignatureList(signatures=[make_ccla()])

        response = client.get("/api/v1/signatures/project/cla-group-1/company/company-1")

        assert response.status_code == 200
        assert len(response.json()["signatures"]) == 1
        args = signature_service.get_project_company_signatures.await_args.args
        assert args[:2] == ("company-1", "cla-group-1")

    def test_user_signatures(self, client, signature_service):
        signature_service.get_user_signatures.return_value = SignatureList()

        response = client.get("/api/v1/signatures/user/user-1", params={"page_size": 3})

        assert response.status_code == 200
        params = signature_service.get_user_signatures.await_args.args[0]
        assert params.user_id == "user-1"
        assert params.page_size == 3


class TestApprovalListUpdate:
    def test_requires_token(self, client, signature_service, lookups):
        response = client.put(APPROVAL_LIST_URL, json={"add_email_approval_list": ["a@x.com"]})

        assert response.status_code == 401
        signature_service.update_approval_list.assert_not_awaited()

    def test_rejects_invalid_token(self, client, signature_service, lookups):
        response = client.put(
            APPROVAL_LIST_URL,
            json={},
            headers={"Authorization": "Bearer not-a-jwt"},
        )

        assert response.status_code == 401

    def test_updates_approval_list(self, client, signature_service, lookups):
        signature_service.update_approval_list.return_value = make_ccla(email_approval_list=["a@x.com"])

        response = client.put(
            APPROVAL_LIST_URL,
            json={"add_email_approval_list": ["a@x.com"]},
            headers=auth_headers(),
        )

        assert response.status_code == 200
        assert response.json()["email_approval_list"] == ["a@x.com"]
        auth_user, cla_group, company, cla_group_id, params = signature_service.update_approval_list.await_args.args
        assert auth_user == AuthUser(user_name="manager")
        assert cla_group.project_id == "cla-group-1"
        assert company.company_id == "company-1"
        assert cla_group_id == "cla-group-1"
        assert params.add_email_approval_list == ["a@x.com"]

    def test_unknown_cla_group(self, client, signature_service, lookups):
        cla_groups, _ = lookups
        cla_groups.get_cla_group.return_value = None

        response = client.put(APPROVAL_LIST_URL, json={}, headers=auth_headers())

        assert response.status_code == 404
        signature_service.update_approval_list.assert_not_awaited()

    def test_unknown_company(self, client, signature_service, lookups):
        _, companies = lookups
        companies.get_company.return_value = None

        response = client.put(APPROVAL_LIST_URL, json={}, headers=auth_headers())

        assert response.status_code == 404

    def test_forbidden_maps_to_403(self, client, signature_service, lookups):
        signature_service.update_approval_list.side_effect = ForbiddenError("not a CLA manager")

        response = client.put(APPROVAL_LIST_URL, json={}, headers=auth_headers("intruder"))

        assert response.status_code == 403
        body = response.json()
        assert body["error"] == "ForbiddenError"
        assert body["detail"] == "not a CLA manager"

    def test_missing_ccla_maps_to_404(self, client, signature_service, lookups):
        signature_service.update_approval_list.side_effect = NotFoundError("no CCLA")

        response = client.put(APPROVAL_LIST_URL, json={}, headers=auth_headers())

        assert response.status_code == 404
        assert response.json()["error"] == "NotFoundError"

    def test_bad_request_maps_to_400(self, client, signature_service, lookups):
        signature_service.update_approval_list.side_effect = BadRequestError("lookup failed")

        response = client.put(APPROVAL_LIST_URL, json={}, headers=auth_headers())

        assert response.status_code == 400


class TestProjectInvalidation:
    def test_invalidate(self, client, signature_service):
        signature_service.invalidate_project_records.return_value = 3

        response = client.post(
            "/api/v1/signatures/project/cla-group-1/invalidate",
            json={"note": "CLA group deleted"},
            headers=auth_headers(),
        )

        assert response.status_code == 200
        assert response.json() == {"project_id": "cla-group-1", "invalidated_count": 3}
        signature_service.invalidate_project_records.assert_awaited_once_with("cla-group-1", "CLA group deleted")


class TestGithubOrgApprovalList:
    def test_list_passes_github_token(self, client, signature_service):
        signature_service.get_github_organizations_from_approval_list.return_value = [GithubOrg(id="acme")]

        response = client.get(
            "/api/v1/signatures/ccla-1/gh-org-approval-list",
            headers={"X-GitHub-Token": "gh-token"},
        )

        assert response.status_code == 200
        assert response.json() == [{"id": "acme"}]
        signature_service.get_github_organizations_from_approval_list.assert_awaited_once_with("ccla-1", "gh-token")

    def test_add(self, client, signature_service):
        signature_service.add_github_organization_to_approval_list.return_value = [GithubOrg(id="acme")]

        response = client.post(
            "/api/v1/signatures/ccla-1/gh-org-approval-list",
            json={"organization_id": "acme"},
            headers={**auth_headers(), "X-GitHub-Token": "gh-token"},
        )

        assert response.status_code == 200
        signature_id, params, token = signature_service.add_github_organization_to_approval_list.await_args.args
        assert (signature_id, params.organization_id, token) == ("ccla-1", "acme", "gh-token")

    def test_delete_validation_error(self, client, signature_service):
        signature_service.delete_github_organization_from_approval_list.side_effect = BadRequestError(
            "not logged in"
        )

        response = client.request(
            "DELETE",
            "/api/v1/signatures/ccla-1/gh-org-approval-list",
            json={"organization_id": "acme"},
            headers=auth_headers(),
        )

        assert response.status_code == 400
        assert response.json()["detail"] == "not logged in"


class TestClaManagers:
    def test_add_manager(self, client, signature_service):
        signature_service.add_cla_manager.return_value = make_ccla()

        response = client.post(
            "/api/v1/signatures/ccla-1/cla-managers",
            json={"lf_username": "newmanager"},
            headers=auth_headers(),
        )

        assert response.status_code == 200
        signature_service.add_cla_manager.assert_awaited_once_with("ccla-1", "newmanager")

    def test_remove_manager_missing_signature(self, client, signature_service):
        signature_service.remove_cla_manager.return_value = None

        response = client.delete("/api/v1/signatures/missing/cla-managers/manager", headers=auth_headers())

        assert response.status_code == 404


class TestSystem:
    def test_health(self, client):
        with patch(
            "cla_backend.api.v1.routers.system.database_service.health_check",
            new_callable=AsyncMock,
            return_value={"status": "healthy", "database_type": "sqlite"},
        ):
            response = client.get("/api/v1/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_root(self, client):
        response = client.get("/")

        assert response.status_code == 200
        assert response.json()["health_check"] == "/api/v1/health"
