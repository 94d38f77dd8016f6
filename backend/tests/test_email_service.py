# backend/tests/test_email_service.py
"""
Tests for approval list notification emails.

The backend is replaced with an AsyncMock so rendered bodies can be
inspected without sending anything.
"""

from unittest.mock import AsyncMock, patch

import pytest

from cla_backend.models import ApprovalList, ClaGroupModel, CompanyModel
from cla_backend.services.email_service import (
    ConsoleEmailBackend,
    EmailService,
    OutgoingEmail,
    SMTPEmailBackend,
    approval_list_changes,
    build_approval_list_summary,
)

MESSAGE = OutgoingEmail(
    to="dev@acme.com",
    subject="Subject",
    html_body="<p>hi</p>",
    text_body="hi",
    sender="EasyCLA <noreply@acme.com>",
)


@pytest.fixture
def backend():
    mock = AsyncMock()
    mock.deliver.return_value = True
    return mock


@pytest.fixture
def service(backend):
    return EmailService(backend=backend)


@pytest.fixture
def company():
    return CompanyModel(company_id="company-1", company_name="Acme")


@pytest.fixture
def cla_group():
    return ClaGroupModel(project_id="cla-group-1", project_name="Project One")


class TestApprovalListSummary:
    def test_single_entry(self):
        summary = build_approval_list_summary(ApprovalList(add_email_approval_list=["a@x.com"]))
        assert summary == "<ul><li>Added Email: a@x.com</li></ul>"

    def test_reporting_order(self):
        params = ApprovalList(
            remove_gitlab_org_approval_list=["group"],
            add_github_username_approval_list=["octocat"],
            remove_email_approval_list=["old@x.com"],
            add_domain_approval_list=["acme.com"],
        )

        labels = [label for label, _ in approval_list_changes(params)]

        assert labels == [
            "Removed Email:",
            "Added Domain:",
            "Added GitHub User:",
            "Removed Gitlab Organization:",
        ]

    def test_values_are_escaped(self):
        summary = build_approval_list_summary(ApprovalList(add_domain_approval_list=["<script>"]))
        assert "<script>" not in summary
        assert "&lt;script&gt;" in summary

    def test_empty_delta(self):
        assert build_approval_list_summary(ApprovalList()) == "<ul></ul>"


class TestClaManagerEmail:
    @pytest.mark.asyncio
    async def test_renders_summary(self, service, backend, company, cla_group):
        params = ApprovalList(add_email_approval_list=["a@x.com"], remove_domain_approval_list=["old.com"])

        sent = await service.send_approval_list_update_email_to_cla_managers(
            company, cla_group, "manager", "manager@acme.com", params
        )

        assert sent is True
        message = backend.deliver.await_args.args[0]
        assert message.to == "manager@acme.com"
        assert "Project One" in message.subject
        assert "<li>Added Email: a@x.com</li>" in message.html_body
        assert "<li>Removed Domain: old.com</li>" in message.html_body
        assert "- Added Email: a@x.com" in message.text_body
        assert "Hello manager" in message.text_body

    @pytest.mark.asyncio
    async def test_missing_address_is_skipped(self, service, backend, company, cla_group):
        sent = await service.send_approval_list_update_email_to_cla_managers(
            company, cla_group, "manager", None, ApprovalList()
        )

        assert sent is False
        backend.deliver.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_backend_failure_is_reported_not_raised(self, service, backend, company, cla_group):
        backend.deliver.side_effect = RuntimeError("connection refused")

        sent = await service.send_approval_list_update_email_to_cla_managers(
            company, cla_group, "manager", "manager@acme.com", ApprovalList()
        )

        assert sent is False


class TestContributorEmail:
    @pytest.mark.asyncio
    async def test_added_template(self, service, backend, company, cla_group):
        await service.send_approval_list_contributor_email("dev@acme.com", company, cla_group, "manager", True)

        message = backend.deliver.await_args.args[0]
        assert message.to == "dev@acme.com"
        assert message.subject.startswith("EasyCLA: Added to the Approval List of Acme")
        assert "manager" in message.text_body

    @pytest.mark.asyncio
    async def test_removed_template(self, service, backend, company, cla_group):
        await service.send_approval_list_contributor_email("dev@acme.com", company, cla_group, None, False)

        message = backend.deliver.await_args.args[0]
        assert message.subject.startswith("EasyCLA: Removed from the Approval List of Acme")
        assert "a CLA Manager" in message.text_body


class TestBackends:
    @pytest.mark.asyncio
    async def test_console_backend(self):
        sent = await ConsoleEmailBackend().deliver(MESSAGE)
        assert sent is True

    @pytest.mark.asyncio
    async def test_smtp_backend_uses_aiosmtplib(self):
        backend = SMTPEmailBackend("smtp.acme.com", 587, "user", "secret", use_tls=True)

        with patch("cla_backend.services.email_service.aiosmtplib.send", new_callable=AsyncMock) as send:
            sent = await backend.deliver(MESSAGE)

        assert sent is True
        kwargs = send.await_args.kwargs
        assert kwargs["hostname"] == "smtp.acme.com"
        assert kwargs["port"] == 587
        assert kwargs["start_tls"] is True
        message = send.await_args.args[0]
        assert message["To"] == "dev@acme.com"

    @pytest.mark.asyncio
    async def test_smtp_failure_returns_false(self):
        backend = SMTPEmailBackend("smtp.acme.com", 587, None, None)

        with patch(
            "cla_backend.services.email_service.aiosmtplib.send",
            new_callable=AsyncMock,
            side_effect=OSError("unreachable"),
        ):
            sent = await backend.deliver(MESSAGE)

        assert sent is False
