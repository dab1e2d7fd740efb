"""GitHub REST API client for pull request operations.

Covers the two endpoints a delegate run needs: opening a pull request and
adding assignees to it.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import requests

from .config import DEFAULT_API_URL

logger = logging.getLogger(__name__)

API_VERSION = "2022-11-28"
DEFAULT_TIMEOUT = 30


class GitHubClientError(Exception):
    """Exception raised for GitHub API errors."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class GitHubRateLimitError(GitHubClientError):
    """Exception raised when the GitHub API rate limit is exceeded."""

    pass


class GitHubClient:
    """Minimal GitHub REST client scoped to one repository."""

    def __init__(
        self,
        token: str,
        owner: str,
        repo: str,
        api_url: str = DEFAULT_API_URL,
        timeout: int = DEFAULT_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        """Initialize the GitHub client.

        Args:
            token: Token used for the Authorization header.
            owner: Repository owner.
            repo: Repository name.
            api_url: API root, overridable for GitHub Enterprise.
            timeout: Request timeout in seconds.
            session: Optional requests session (used by tests).
        """
        if not token:
            raise GitHubClientError("GitHub token is required")
        self.owner = owner
        self.repo = repo
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update(
            {
                "Authorization": f"Bearer {token}",
                "Accept": "application/vnd.github+json",
                "X-GitHub-Api-Version": API_VERSION,
            }
        )

    def _repo_url(self, path: str) -> str:
        return f"{self.api_url}/repos/{self.owner}/{self.repo}/{path.lstrip('/')}"

    def _request(self, method: str, path: str, payload: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        url = self._repo_url(path)
        logger.debug(f"GitHub API {method} {url}")

        try:
            response = self.session.request(method, url, json=payload, timeout=self.timeout)
        except requests.Timeout as exc:
            raise GitHubClientError(
                f"GitHub API request timed out after {self.timeout} seconds"
            ) from exc
        except requests.ConnectionError as exc:
            raise GitHubClientError(f"Failed to connect to GitHub API: {exc}") from exc
        except requests.RequestException as exc:
            raise GitHubClientError(f"GitHub API request failed: {exc}") from exc

        if response.status_code == 429 or (
            response.status_code == 403 and response.headers.get("X-RateLimit-Remaining") == "0"
        ):
            raise GitHubRateLimitError(
                f"GitHub API rate limit exceeded (HTTP {response.status_code})",
                status_code=response.status_code,
            )

        if not response.ok:
            try:
                detail = response.json().get("message", response.text)
            except ValueError:
                detail = response.text[:500]
            raise GitHubClientError(
                f"GitHub API error {response.status_code}: {detail}",
                status_code=response.status_code,
            )

        try:
            return response.json()
        except ValueError as exc:
            raise GitHubClientError(f"Unexpected GitHub API response: {exc}") from exc

    def create_pull(self, title: str, body: str, head: str, base: str) -> Dict[str, Any]:
        """Open a pull request and return the API representation."""
        return self._request(
            "POST",
            "pulls",
            {"title": title, "body": body, "head": head, "base": base},
        )

    def add_assignees(self, issue_number: int, assignees: List[str]) -> Dict[str, Any]:
        """Add assignees to an issue or pull request."""
        return self._request(
            "POST",
            f"issues/{issue_number}/assignees",
            {"assignees": assignees},
        )
