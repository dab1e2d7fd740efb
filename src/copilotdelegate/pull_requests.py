"""Pull request creation and assignment for delegate branches."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from . import actions
from .github_client import GitHubClient, GitHubClientError

logger = logging.getLogger(__name__)


@dataclass
class PullRequestRecord:
    """A pull request opened by a delegate run."""

    number: int
    url: str
    head: str
    base: str
    title: str
    body: str
    assignee: Optional[str] = None


def build_pr_title(filename: Optional[str]) -> str:
    return f"🤖 Delegate: {filename or 'Repository changes'}"


def build_pr_body(filename: Optional[str], base_branch: str, actor: str) -> str:
    """Build the markdown body for a delegate pull request."""
    lines = [
        "## Automated changes by Delegate Action",
        "",
        "This PR was automatically created by the delegate-action.",
        "",
    ]
    if filename:
        lines.extend([f"**File processed:** `{filename}`", ""])
    lines.extend(
        [
            f"**Base branch:** `{base_branch}`",
            f"**Created by:** @{actor}",
            "",
            "Please review the changes carefully before merging.",
        ]
    )
    return "\n".join(lines)


class PullRequestManager:
    """Opens delegate pull requests and assigns them back to the actor."""

    def __init__(self, client: GitHubClient, logger: Optional[logging.Logger] = None):
        self.client = client
        self.logger = logger or logging.getLogger(__name__)
        self.last_record: Optional[PullRequestRecord] = None

    def create_pull_request(self, head: str, base: str, title: str, body: str) -> Optional[int]:
        """Open a pull request from *head* into *base*.

        Returns:
            The pull request number, or None if the API call failed.
        """
        self.logger.info(f"Creating pull request: head={head} base={base}")
        try:
            data = self.client.create_pull(title=title, body=body, head=head, base=base)
            number = int(data["number"])
        except (GitHubClientError, KeyError, TypeError, ValueError) as exc:
            self.logger.error(f"Failed to create PR: head={head} base={base} error={exc}")
            actions.error(f"Failed to create PR: {exc}")
            return None

        url = data.get("html_url", "")
        self.last_record = PullRequestRecord(
            number=number, url=url, head=head, base=base, title=title, body=body
        )
        self.logger.info(f"Pull request created: number={number} url={url}")
        return number

    def assign_pr(self, pr_number: int, actor: str) -> bool:
        """Assign *actor* to the pull request. Failures only warn."""
        self.logger.info(f"Assigning PR #{pr_number} to {actor}")
        if not actor:
            self.logger.warning(f"No actor to assign PR #{pr_number} to")
            return False
        try:
            self.client.add_assignees(pr_number, [actor])
        except GitHubClientError as exc:
            self.logger.warning(f"Failed to assign PR: number={pr_number} actor={actor} error={exc}")
            actions.warning(f"Failed to assign PR: {exc}")
            return False

        if self.last_record is not None and self.last_record.number == pr_number:
            self.last_record.assignee = actor
        self.logger.info(f"PR #{pr_number} assigned to {actor}")
        return True
