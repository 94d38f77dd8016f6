"""
Approval list matching utilities for the CLA backend.

Provides the matching rules used to decide whether a contributor is covered
by a corporate signature's approval lists, and the ACL helpers used to
authorize CLA managers:

- Email lists: whitespace-trimmed, exact (case-sensitive) comparison
- Domain lists: glob-style patterns translated to anchored regular expressions
- ACL: membership of the caller's username in the signature's manager list

Usage:
    from cla_backend.utils.approval import domain_pattern_to_regex, emails_match_domains

    domain_pattern_to_regex("*.example.com")   # '^.*@.*example\\.com$'
    emails_match_domains(["jane@dev.example.com"], ["*.example.com"])  # True
"""

import re
from typing import Iterable, List, Optional, Sequence

from ..models import AuthUser, UserModel


def domain_pattern_to_regex(pattern: str) -> str:
    """
    Translate a domain approval-list entry into an anchored regex.

    The prefixes ``*.``, ``*`` and a leading ``.`` become ``.*``; the rest of
    the pattern is matched literally.

    Examples:
        >>> domain_pattern_to_regex("example.com")
        '^.*@example\\\\.com$'
        >>> domain_pattern_to_regex("*.example.com")
        '^.*@.*example\\\\.com$'
        >>> domain_pattern_to_regex(".example.com")
        '^.*@.*example\\\\.com$'
    """
    pattern = pattern.strip()
    if pattern.startswith("*."):
        body = ".*" + re.escape(pattern[2:])
    elif pattern.startswith("*"):
        body = ".*" + re.escape(pattern[1:])
    elif pattern.startswith("."):
        body = ".*" + re.escape(pattern[1:])
    else:
        body = re.escape(pattern)
    return f"^.*@{body}$"


def emails_match_domains(emails: Iterable[str], patterns: Sequence[str]) -> bool:
    """Return True as soon as any email matches any domain pattern."""
    candidates = [email.strip() for email in emails if email]
    for pattern in patterns:
        if not pattern or not pattern.strip():
            continue
        compiled = re.compile(domain_pattern_to_regex(pattern))
        for email in candidates:
            if compiled.match(email):
                return True
    return False


def emails_in_approval_list(emails: Iterable[str], approval_list: Sequence[str]) -> bool:
    """Exact membership after trimming whitespace; no case folding."""
    allowed = set(approval_list)
    return any(email.strip() in allowed for email in emails if email)


def user_emails(user: UserModel) -> List[str]:
    """All emails of a user, LF email last."""
    emails = list(user.emails)
    if user.lf_email:
        emails.append(user.lf_email)
    return emails


def current_user_in_acl(auth_user: AuthUser, acl: Sequence[UserModel]) -> bool:
    """True when the caller's username is one of the signature's CLA managers."""
    return any(manager.lf_username == auth_user.user_name for manager in acl)


def get_best_email(user: UserModel) -> Optional[str]:
    """Prefer the LF email, then the first alternate email."""
    if user.lf_email:
        return user.lf_email
    for email in user.emails:
        if email:
            return email
    return None


def merge_approval_list(current: Sequence[str], add: Sequence[str], remove: Sequence[str]) -> List[str]:
    """
    Apply an add/remove delta to an approval list.

    Entries are trimmed, empty entries dropped and duplicates collapsed while
    keeping the existing order. Removals win over additions.
    """
    removed = {value.strip() for value in remove if value and value.strip()}
    result: List[str] = []
    for value in list(current) + list(add):
        value = value.strip() if value else value
        if not value or value in removed or value in result:
            continue
        result.append(value)
    return result
