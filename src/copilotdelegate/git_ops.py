"""Git operations for delegate branches using GitPython.

Branch creation, committer identity, staging and push. Commit/push failures
never abort a run; they are logged and reported as workflow warnings.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

import git
from git.exc import GitCommandError, GitError, InvalidGitRepositoryError, NoSuchPathError

from . import actions
from .config import GitSettings

logger = logging.getLogger(__name__)

BRANCH_PREFIX = "copilot/delegate-"


class GitOperationsError(Exception):
    """Exception raised when the workspace is not usable as a git repository."""

    pass


def generate_branch_name(now: Optional[datetime] = None) -> str:
    """Generate a branch name from an ISO 8601 UTC timestamp.

    Args:
        now: Timestamp to use. Defaults to the current UTC time.

    Returns:
        Name like 'copilot/delegate-2024-01-02T03-04-05-678Z'.
    """
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is not None:
        now = now.astimezone(timezone.utc)
    iso = now.strftime("%Y-%m-%dT%H:%M:%S.") + f"{now.microsecond // 1000:03d}Z"
    return BRANCH_PREFIX + iso.replace(":", "-").replace(".", "-")


class GitOperations:
    """Runs the git commands a delegate run needs against one checkout."""

    def __init__(
        self,
        repo_path: Optional[Path] = None,
        settings: Optional[GitSettings] = None,
        logger: Optional[logging.Logger] = None,
        repo: Optional[git.Repo] = None,
    ):
        """Initialize git operations.

        Args:
            repo_path: Path to the repository. Defaults to current directory.
            settings: Committer identity and remote.
            logger: Logger for the run.
            repo: Pre-built repository object (used by tests).

        Raises:
            GitOperationsError: If the directory is not a git repository.
        """
        self.repo_path = Path(repo_path or Path.cwd())
        self.settings = settings or GitSettings()
        self.logger = logger or logging.getLogger(__name__)

        if repo is not None:
            self.repo = repo
        else:
            try:
                self.repo = git.Repo(self.repo_path)
            except (InvalidGitRepositoryError, NoSuchPathError) as exc:
                raise GitOperationsError(
                    f"Not a git repository: {self.repo_path}"
                ) from exc

    def create_branch(self, name: str) -> None:
        """Create and switch to *name*, or switch to it if it already exists."""
        self.logger.info(f"Creating new branch: {name}")
        try:
            self.repo.git.checkout("-b", name)
            self.logger.info(f"Branch {name} created successfully")
        except GitCommandError as exc:
            self.logger.warning(f"Failed to create branch {name}: {exc}")
            actions.warning(f"Failed to create branch {name}: {exc.stderr or exc}")
            # Exit status deliberately ignored
            self.repo.git.checkout(name, with_exceptions=False)

    def configure_identity(self) -> None:
        self.repo.git.config("user.name", self.settings.user_name)
        self.repo.git.config("user.email", self.settings.user_email)

    def has_changes(self) -> bool:
        """Return True if the index differs from HEAD.

        ``git diff-index --quiet`` exits 0 when there is NO difference and
        non-zero when there is one.
        """
        status, _, _ = self.repo.git.diff_index(
            "--quiet", "HEAD", "--",
            with_extended_output=True,
            with_exceptions=False,
        )
        return status != 0

    def commit_and_push(self, message: str, branch: str) -> bool:
        """Stage everything and, if anything changed, commit and push it.

        Args:
            message: Commit message.
            branch: Branch to push to the configured remote.

        Returns:
            True if a commit was pushed, False if there was nothing to commit
            or a git command failed.
        """
        self.logger.info(f"Committing and pushing changes: branch={branch}")
        try:
            self.configure_identity()
            self.repo.git.add(".")

            if not self.has_changes():
                self.logger.info("No changes to commit")
                return False

            self.repo.git.commit("-m", message)
            self.repo.git.push("-u", self.settings.remote, branch)
            self.logger.info(f"Changes committed and pushed: branch={branch} message={message!r}")
            return True

        except GitError as exc:
            self.logger.error(f"Commit/push failed: branch={branch} error={exc}")
            actions.warning(f"Commit/push failed: {exc}")
            return False
