# backend/cla_backend/services/github_client.py
"""
GitHub REST API client for the CLA backend.

Wraps the handful of GitHub v3 endpoints the signature workflows need:

- organizations of the authenticated caller (``GET /user/orgs``)
- organization membership (``GET /orgs/{org}/memberships/{user}``)
- user details (``GET /users/{user}``)
- repository by numeric ID (``GET /repositories/{id}``)
- pull request commit authors (``GET /repos/{owner}/{repo}/pulls/{n}/commits``)

Membership and user lookups use the configured OAuth token. Repository and
pull request calls authenticate as the GitHub App installation of the
organization: an RS256 app JWT (PyJWT) is exchanged for an installation
access token, which is cached until shortly before it expires.

There is no retry or backoff: ``httpx.HTTPError`` propagates to the caller.

Usage:
    from cla_backend.services.github_client import github_client

    membership = await github_client.get_membership("octocat", "github")
"""

import logging
import time
from typing import Any, Dict, List, Optional, Tuple

import httpx
import jwt

from ..config import settings
from ..models import CommitAuthor, GitHubUser, UserCommitSummary

logger = logging.getLogger("cla.github")

GITHUB_PAGE_SIZE = 100
# Installation tokens live for an hour; refresh five minutes early
TOKEN_EXPIRY_BUFFER_SECONDS = 300


class GitHubClient:
    """
    Thin async client over the GitHub REST API.

    Attributes:
        base_url: API base URL
        timeout: Request timeout in seconds
        oauth_token: Token used for user and membership lookups
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        oauth_token: Optional[str] = None,
        app_id: Optional[str] = None,
        app_private_key: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or settings.github_api_url).rstrip("/")
        self.oauth_token = oauth_token if oauth_token is not None else settings.github_oauth_token
        self.app_id = app_id if app_id is not None else settings.github_app_id
        self.app_private_key = app_private_key if app_private_key is not None else settings.github_app_private_key
        self.timeout = timeout or settings.github_timeout
        self._transport = transport
        self._installation_tokens: Dict[int, Tuple[str, float]] = {}

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout, transport=self._transport)

    async def _request(
        self,
        method: str,
        path: str,
        token: Optional[str] = None,
        params: Optional[Dict[str, Any]] = None,
        auth_scheme: str = "token",
    ) -> httpx.Response:
        """
        Make a request to the GitHub API.

        Raises:
            httpx.HTTPStatusError: On non-2xx responses
            httpx.HTTPError: On transport failures
        """
        headers = {"Accept": "application/vnd.github+json"}
        if token:
            headers["Authorization"] = f"{auth_scheme} {token}"

        async with self._client() as client:
            response = await client.request(method, path, params=params, headers=headers)

        if response.status_code >= 400:
            logger.debug(
                f"GitHub API {method} {path} returned {response.status_code}: "
                f"{response.text[:200] if response.text else 'No body'}"
            )
        response.raise_for_status()
        return response

    # =========================================================================
    # APP AUTHENTICATION
    # =========================================================================

    def _create_app_jwt(self) -> str:
        if not self.app_id or not self.app_private_key:
            raise ValueError(
                "GitHub App credentials not configured. "
                "Set GITHUB_APP_ID and GITHUB_APP_PRIVATE_KEY in environment."
            )
        now = int(time.time())
        payload = {"iat": now - 60, "exp": now + 540, "iss": self.app_id}
        return jwt.encode(payload, self.app_private_key, algorithm="RS256")

    async def get_installation_token(self, installation_id: int) -> str:
        """Return a cached or freshly minted installation access token."""
        cached = self._installation_tokens.get(installation_id)
        if cached and time.time() < cached[1] - TOKEN_EXPIRY_BUFFER_SECONDS:
            return cached[0]

        response = await self._request(
            "POST",
            f"/app/installations/{installation_id}/access_tokens",
            token=self._create_app_jwt(),
            auth_scheme="Bearer",
        )
        data = response.json()
        token = data["token"]
        # Tokens are valid for one hour from issue
        self._installation_tokens[installation_id] = (token, time.time() + 3600)
        logger.debug(f"Obtained installation token for installation {installation_id}")
        return token

    # =========================================================================
    # ORGANIZATIONS AND USERS
    # =========================================================================

    async def list_user_organizations(self, access_token: str) -> List[str]:
        """List the organization logins of the user owning ``access_token``."""
        response = await self._request(
            "GET", "/user/orgs", token=access_token, params={"per_page": GITHUB_PAGE_SIZE}
        )
        return [org["login"] for org in response.json() if org.get("login")]

    async def get_membership(self, username: str, organization: str) -> Optional[Dict[str, Any]]:
        """
        Return the membership of ``username`` in ``organization``.

        Returns:
            The membership payload, or None when the user is not a member
        """
        try:
            response = await self._request(
                "GET", f"/orgs/{organization}/memberships/{username}", token=self.oauth_token
            )
        except httpx.HTTPStatusError as e:
            if e.response.status_code == 404:
                return None
            raise
        return response.json()

    async def get_user_details(self, username: str) -> Optional[GitHubUser]:
        """Look up a GitHub user; None when the login does not exist."""
        try:
            response = await self._request("GET", f"/users/{username}", token=self.oauth_token)
        except httpx.HTTPStatusError as e:
            if e.response.status_code == 404:
                return None
            raise
        data = response.json()
        return GitHubUser(
            id=data.get("id"),
            login=data.get("login", username),
            name=data.get("name"),
            email=data.get("email"),
        )

    # =========================================================================
    # REPOSITORIES AND PULL REQUESTS
    # =========================================================================

    async def get_repository(self, installation_id: int, repository_id: int) -> Dict[str, Any]:
        """Fetch repository metadata by GitHub numeric ID."""
        token = await self.get_installation_token(installation_id)
        response = await self._request("GET", f"/repositories/{repository_id}", token=token)
        return response.json()

    async def get_pull_request_commit_authors(
        self,
        installation_id: int,
        pull_request_id: int,
        owner: str,
        repo: str,
    ) -> List[UserCommitSummary]:
        """
        List one summary per commit on the pull request.

        Commits whose author email is not linked to a GitHub account have no
        ``commit_author`` id/login and report ``is_valid() == False``.
        """
        token = await self.get_installation_token(installation_id)
        summaries: List[UserCommitSummary] = []
        page = 1
        while True:
            response = await self._request(
                "GET",
                f"/repos/{owner}/{repo}/pulls/{pull_request_id}/commits",
                token=token,
                params={"per_page": GITHUB_PAGE_SIZE, "page": page},
            )
            commits = response.json()
            for commit in commits:
                author = commit.get("author") or {}
                git_author = (commit.get("commit") or {}).get("author") or {}
                summaries.append(
                    UserCommitSummary(
                        sha=commit.get("sha", ""),
                        commit_author=CommitAuthor(
                            id=author.get("id"),
                            login=author.get("login"),
                            name=git_author.get("name"),
                            email=git_author.get("email"),
                        ),
                    )
                )
            if len(commits) < GITHUB_PAGE_SIZE:
                break
            page += 1

        logger.debug(f"Found {len(summaries)} commits on {owner}/{repo}#{pull_request_id}")
        return summaries


# Global singleton instance
github_client = GitHubClient()
