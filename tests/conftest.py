"""Shared test fixtures for copilot-delegate tests."""

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import git
import pytest

from copilotdelegate.config import Config

TEST_TOKEN = "test-token-12345"

WORKFLOW_ENV_VARS = (
    "INPUT_PRIVATE_TOKEN",
    "INPUT_FILENAME",
    "INPUT_BRANCH",
    "GITHUB_REPOSITORY",
    "GITHUB_ACTOR",
    "GITHUB_WORKSPACE",
    "GITHUB_OUTPUT",
    "GITHUB_API_URL",
    "GITHUB_ACTIONS",
    "DELEGATE_COPILOT_MODEL",
    "DELEGATE_COPILOT_TIMEOUT",
    "DELEGATE_MOCK_MODE",
    "DELEGATE_LOG_LEVEL",
    "COPILOT_CLI_PATH",
)


@pytest.fixture(autouse=True)
def clean_workflow_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the runner's own workflow environment out of the tests."""
    for name in WORKFLOW_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr("copilotdelegate.config.load_dotenv", lambda: None)


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    """A workspace directory with a small instruction file."""
    root = tmp_path / "workspace"
    root.mkdir()
    (root / "instructions.md").write_text("Add type hints to the utils module.\n")
    return root


@pytest.fixture
def config(workspace: Path, tmp_path: Path) -> Config:
    """Configuration for a run against the test workspace."""
    return Config(
        token=TEST_TOKEN,
        repository="testowner/testrepo",
        actor="testuser",
        workspace=workspace,
        output_path=tmp_path / "github_output",
    )


@pytest.fixture
def git_repo(tmp_path: Path) -> git.Repo:
    """A git repository with one commit and a bare 'origin' remote."""
    remote_path = tmp_path / "remote.git"
    git.Repo.init(remote_path, bare=True)

    work = tmp_path / "checkout"
    repo = git.Repo.init(work)
    with repo.config_writer() as writer:
        writer.set_value("user", "name", "Test User")
        writer.set_value("user", "email", "test@example.com")

    (work / "README.md").write_text("# Test\n")
    repo.index.add(["README.md"])
    repo.index.commit("Initial commit")
    repo.create_remote("origin", str(remote_path))
    return repo


@pytest.fixture
def copilot_client() -> MagicMock:
    """A Copilot SDK client double whose session answers immediately."""
    session = MagicMock()
    session.session_id = "mock-123"
    session.send_and_wait = AsyncMock(
        return_value=SimpleNamespace(data=SimpleNamespace(content="response"))
    )
    session.destroy = AsyncMock()

    client = MagicMock()
    client.start = AsyncMock()
    client.stop = AsyncMock()
    client.force_stop = AsyncMock()
    client.create_session = AsyncMock(return_value=session)
    client.session = session
    return client
