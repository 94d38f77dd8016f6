# backend/cla_backend/services/email_service.py
"""
Email service for the CLA backend.

Notifies CLA managers and contributors about approval list changes. Sending
goes through a pluggable backend selected by ``settings.email_backend``:

- console: logs the message (development and tests)
- smtp: sends through an SMTP server with aiosmtplib

Messages are rendered from Jinja2 templates in ``templates/emails`` as an
HTML body plus a plain text fallback. Sending is best-effort: failures are
logged and reported as ``False``, never raised.

Usage:
    from cla_backend.services.email_service import email_service

    await email_service.send_approval_list_update_email_to_cla_managers(
        company, cla_group, "jdoe", "jdoe@example.com", approval_list,
    )
"""

import html
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from email.message import EmailMessage
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import aiosmtplib
from jinja2 import Environment, FileSystemLoader, select_autoescape

from ..config import settings
from ..models import ApprovalList, ClaGroupModel, CompanyModel

logger = logging.getLogger("cla.email")

# Order in which approval list changes are reported
APPROVAL_LIST_LABELS: List[Tuple[str, str]] = [
    ("add_email_approval_list", "Added Email:"),
    ("remove_email_approval_list", "Removed Email:"),
    ("add_domain_approval_list", "Added Domain:"),
    ("remove_domain_approval_list", "Removed Domain:"),
    ("add_github_username_approval_list", "Added GitHub User:"),
    ("remove_github_username_approval_list", "Removed GitHub User:"),
    ("add_github_org_approval_list", "Added GitHub Organization:"),
    ("remove_github_org_approval_list", "Removed GitHub Organization:"),
    ("add_gitlab_username_approval_list", "Added Gitlab User:"),
    ("remove_gitlab_username_approval_list", "Removed Gitlab User:"),
    ("add_gitlab_org_approval_list", "Added Gitlab Organization:"),
    ("remove_gitlab_org_approval_list", "Removed Gitlab Organization:"),
]


def approval_list_changes(params: ApprovalList) -> List[Tuple[str, str]]:
    """Flatten a delta into ``(label, value)`` pairs in reporting order."""
    changes = []
    for field, label in APPROVAL_LIST_LABELS:
        for value in getattr(params, field):
            changes.append((label, value))
    return changes


def build_approval_list_summary(params: ApprovalList) -> str:
    """
    Render the delta as an HTML list.

    Example:
        >>> build_approval_list_summary(ApprovalList(add_email_approval_list=["a@x.com"]))
        '<ul><li>Added Email: a@x.com</li></ul>'
    """
    items = "".join(f"<li>{label} {html.escape(value)}</li>" for label, value in approval_list_changes(params))
    return f"<ul>{items}</ul>"


@dataclass
class OutgoingEmail:
    """A rendered message ready for delivery."""

    to: str
    subject: str
    html_body: str
    text_body: str
    sender: str

    def to_mime(self) -> EmailMessage:
        message = EmailMessage()
        message["From"] = self.sender
        message["To"] = self.to
        message["Subject"] = self.subject
        message.set_content(self.text_body)
        message.add_alternative(self.html_body, subtype="html")
        return message


class EmailBackend(ABC):
    """Delivery mechanism for rendered messages."""

    @abstractmethod
    async def deliver(self, message: OutgoingEmail) -> bool:
        """Returns True when the message was handed off."""


class ConsoleEmailBackend(EmailBackend):
    """Writes the plain text body to the log instead of sending."""

    async def deliver(self, message: OutgoingEmail) -> bool:
        logger.info(
            f"[console email] {message.sender} -> {message.to}: {message.subject}\n{message.text_body}"
        )
        return True


class SMTPEmailBackend(EmailBackend):
    """aiosmtplib delivery, with STARTTLS unless disabled."""

    def __init__(
        self,
        host: str,
        port: int,
        username: Optional[str],
        password: Optional[str],
        use_tls: bool = True,
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.use_tls = use_tls

    async def deliver(self, message: OutgoingEmail) -> bool:
        try:
            await aiosmtplib.send(
                message.to_mime(),
                hostname=self.host,
                port=self.port,
                username=self.username,
                password=self.password,
                start_tls=self.use_tls,
            )
        except (aiosmtplib.SMTPException, OSError) as e:
            logger.error(f"SMTP delivery to {message.to} via {self.host}:{self.port} failed: {e}")
            return False
        logger.info(f"Delivered '{message.subject}' to {message.to} via SMTP")
        return True


class EmailService:
    """
    Template-based notification emails.

    Attributes:
        backend: Active email backend
        from_address: Sender address
        from_name: Sender display name
        console_url: Corporate console URL used in links
    """

    def __init__(self, backend: Optional[EmailBackend] = None):
        self.backend = backend or self._create_backend()
        self.from_address = settings.email_from_address
        self.from_name = settings.email_from_name
        self.console_url = settings.cla_console_url
        self.jinja_env = self._create_jinja_env()

    def _create_backend(self) -> EmailBackend:
        backend_type = settings.email_backend.lower()

        if backend_type == "console":
            return ConsoleEmailBackend()

        if backend_type == "smtp":
            if not settings.smtp_host:
                logger.warning("SMTP backend selected but smtp_host not configured. Falling back to console.")
                return ConsoleEmailBackend()
            return SMTPEmailBackend(
                host=settings.smtp_host,
                port=settings.smtp_port,
                username=settings.smtp_username,
                password=settings.smtp_password,
                use_tls=settings.smtp_use_tls,
            )

        logger.warning(f"Unknown email backend: {backend_type}. Falling back to console.")
        return ConsoleEmailBackend()

    def _create_jinja_env(self) -> Environment:
        template_dir = Path(__file__).parent.parent / "templates" / "emails"
        return Environment(
            loader=FileSystemLoader(str(template_dir)),
            autoescape=select_autoescape(["html", "xml"]),
        )

    async def send_email(self, to: str, subject: str, template_name: str, context: Dict) -> bool:
        """
        Render ``template_name`` (.html and .txt) and hand it to the backend.

        Returns:
            bool: True if sent successfully, False otherwise
        """
        try:
            message = OutgoingEmail(
                to=to,
                subject=subject,
                html_body=self.jinja_env.get_template(f"{template_name}.html").render(**context),
                text_body=self.jinja_env.get_template(f"{template_name}.txt").render(**context),
                sender=f"{self.from_name} <{self.from_address}>",
            )
            return await self.backend.deliver(message)
        except Exception as e:
            logger.error(f"Failed to send email to {to}: {e}")
            return False

    async def send_approval_list_update_email_to_cla_managers(
        self,
        company: CompanyModel,
        cla_group: ClaGroupModel,
        recipient_name: Optional[str],
        recipient_address: Optional[str],
        params: ApprovalList,
    ) -> bool:
        """Tell a CLA manager which approval list entries changed."""
        if not recipient_address:
            logger.warning(f"No email address for CLA manager {recipient_name}; skipping approval list summary")
            return False

        return await self.send_email(
            to=recipient_address,
            subject=f"EasyCLA: Approval List Update for {cla_group.project_name}",
            template_name="approval_list_update",
            context={
                "recipient_name": recipient_name or recipient_address,
                "company_name": company.company_name,
                "project_name": cla_group.project_name,
                "approval_list_summary": build_approval_list_summary(params),
                "changes": approval_list_changes(params),
                "console_url": self.console_url,
            },
        )

    async def send_approval_list_contributor_email(
        self,
        recipient_address: str,
        company: CompanyModel,
        cla_group: ClaGroupModel,
        cla_manager_name: Optional[str],
        added: bool,
    ) -> bool:
        """Tell a contributor they were added to or removed from an approval list."""
        action = "Added to" if added else "Removed from"
        return await self.send_email(
            to=recipient_address,
            subject=f"EasyCLA: {action} the Approval List of {company.company_name} for {cla_group.project_name}",
            template_name="contributor_approved" if added else "contributor_removed",
            context={
                "recipient_address": recipient_address,
                "company_name": company.company_name,
                "project_name": cla_group.project_name,
                "cla_manager_name": cla_manager_name or "a CLA Manager",
            },
        )


# Global singleton instance
email_service = EmailService()
