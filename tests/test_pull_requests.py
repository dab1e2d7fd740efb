"""Tests for pull request creation and assignment."""

from __future__ import annotations

import logging
from unittest.mock import MagicMock

import pytest

from copilotdelegate.github_client import GitHubClientError
from copilotdelegate.pull_requests import PullRequestManager, build_pr_body, build_pr_title


@pytest.fixture
def client() -> MagicMock:
    client = MagicMock()
    client.create_pull.return_value = {"number": 42, "html_url": "https://github.com/o/r/pull/42"}
    return client


class TestPullRequestText:
    """Tests for title and body formatting."""

    def test_title_with_filename(self) -> None:
        assert build_pr_title("tasks.md") == "🤖 Delegate: tasks.md"

    def test_title_without_filename(self) -> None:
        assert build_pr_title("") == "🤖 Delegate: Repository changes"

    def test_body_with_filename(self) -> None:
        body = build_pr_body("tasks.md", "main", "octocat")

        assert body.startswith("## Automated changes by Delegate Action")
        assert "**File processed:** `tasks.md`" in body
        assert "**Base branch:** `main`" in body
        assert "**Created by:** @octocat" in body
        assert body.endswith("Please review the changes carefully before merging.")

    def test_body_without_filename(self) -> None:
        assert "File processed" not in build_pr_body("", "develop", "octocat")


class TestCreatePullRequest:
    """Tests for PullRequestManager.create_pull_request."""

    def test_returns_number(self, client: MagicMock) -> None:
        manager = PullRequestManager(client)

        number = manager.create_pull_request("copilot/delegate-x", "main", "T", "B")

        assert number == 42
        client.create_pull.assert_called_once_with(title="T", body="B", head="copilot/delegate-x", base="main")
        assert manager.last_record.url == "https://github.com/o/r/pull/42"

    def test_api_failure_returns_none(self, client: MagicMock, capsys: pytest.CaptureFixture) -> None:
        client.create_pull.side_effect = GitHubClientError("GitHub API error 422: No commits", 422)
        manager = PullRequestManager(client)

        assert manager.create_pull_request("h", "main", "T", "B") is None
        assert manager.last_record is None
        assert "::error::Failed to create PR: GitHub API error 422" in capsys.readouterr().out

    def test_malformed_response_returns_none(self, client: MagicMock) -> None:
        client.create_pull.return_value = {"html_url": "x"}

        assert PullRequestManager(client).create_pull_request("h", "main", "T", "B") is None


class TestAssignPullRequest:
    """Tests for PullRequestManager.assign_pr."""

    def test_assigns_actor(self, client: MagicMock) -> None:
        manager = PullRequestManager(client)
        manager.create_pull_request("h", "main", "T", "B")

        assert manager.assign_pr(42, "octocat") is True
        client.add_assignees.assert_called_once_with(42, ["octocat"])
        assert manager.last_record.assignee == "octocat"

    def test_failure_warns(self, client: MagicMock, capsys: pytest.CaptureFixture) -> None:
        client.add_assignees.side_effect = GitHubClientError("GitHub API error 404: Not Found", 404)

        assert PullRequestManager(client).assign_pr(42, "octocat") is False
        assert "::warning::Failed to assign PR" in capsys.readouterr().out

    def test_no_actor(self, client: MagicMock, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.WARNING):
            assert PullRequestManager(client).assign_pr(42, "") is False

        client.add_assignees.assert_not_called()
        assert "No actor to assign" in caplog.text
