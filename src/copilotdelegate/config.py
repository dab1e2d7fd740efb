"""Configuration management for copilot-delegate."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import yaml
from dotenv import load_dotenv

from . import actions

DEFAULT_API_URL = "https://api.github.com"
DEFAULT_BASE_BRANCH = "main"
SETTINGS_FILE = Path(".github") / "copilot-delegate.yml"


class ConfigError(Exception):
    """Exception raised for invalid configuration."""

    pass


def _is_truthy(value: Optional[str]) -> bool:
    return (value or "").strip().lower() in ("true", "1", "yes")


def _parse_int(value: object, name: str) -> int:
    try:
        return int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{name} must be an integer, got {value!r}") from exc


def _section(data: dict, name: str) -> dict:
    section = data.get(name) or {}
    if not isinstance(section, dict):
        raise ConfigError(f"Settings section '{name}' must be a mapping")
    return section


@dataclass
class CopilotSettings:
    """Settings for the Copilot SDK session."""

    model: Optional[str] = None
    timeout: int = 300
    cli_path: Optional[str] = None
    log_level: str = "error"

    @classmethod
    def from_dict(cls, data: dict) -> CopilotSettings:
        """Create CopilotSettings from dictionary."""
        return cls(
            model=data.get("model"),
            timeout=_parse_int(data.get("timeout", 300), "copilot.timeout"),
            cli_path=data.get("cli_path"),
            log_level=data.get("log_level", "error"),
        )


@dataclass
class GitSettings:
    """Committer identity and remote used for generated commits."""

    user_name: str = "github-actions[bot]"
    user_email: str = "github-actions[bot]@users.noreply.github.com"
    remote: str = "origin"

    @classmethod
    def from_dict(cls, data: dict) -> GitSettings:
        """Create GitSettings from dictionary."""
        return cls(
            user_name=data.get("user_name", "github-actions[bot]"),
            user_email=data.get("user_email", "github-actions[bot]@users.noreply.github.com"),
            remote=data.get("remote", "origin"),
        )


@dataclass
class PromptSettings:
    """Prompts and commit messages used by the delegate pipeline."""

    default_instructions: str = "Analyze the repository and suggest improvements"
    review_instructions: str = (
        "Review the changes in branch {branch}, create documentation for new features, "
        "and suggest test cases"
    )
    changes_commit_message: str = "feat: delegate action changes for {target}"
    review_commit_message: str = "docs: add documentation and tests"

    @classmethod
    def from_dict(cls, data: dict) -> PromptSettings:
        """Create PromptSettings from dictionary."""
        defaults = cls()
        return cls(
            default_instructions=data.get("default_instructions", defaults.default_instructions),
            review_instructions=data.get("review_instructions", defaults.review_instructions),
            changes_commit_message=data.get("changes_commit_message", defaults.changes_commit_message),
            review_commit_message=data.get("review_commit_message", defaults.review_commit_message),
        )


@dataclass
class DelegateSettings:
    """Optional repository-level settings loaded from YAML."""

    copilot: CopilotSettings = field(default_factory=CopilotSettings)
    git: GitSettings = field(default_factory=GitSettings)
    prompts: PromptSettings = field(default_factory=PromptSettings)

    @classmethod
    def from_dict(cls, data: dict) -> DelegateSettings:
        """Create DelegateSettings from dictionary."""
        return cls(
            copilot=CopilotSettings.from_dict(_section(data, "copilot")),
            git=GitSettings.from_dict(_section(data, "git")),
            prompts=PromptSettings.from_dict(_section(data, "prompts")),
        )

    @classmethod
    def load_from_file(cls, path: Path) -> DelegateSettings:
        """Load settings from a YAML file, or defaults if it doesn't exist."""
        if not path.exists():
            return cls()
        try:
            with open(path, encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ConfigError(f"Invalid settings file {path}: {exc}") from exc
        if not isinstance(data, dict):
            raise ConfigError(f"Settings file must contain a mapping: {path}")
        return cls.from_dict(data)


@dataclass
class Config:
    """Configuration for a single delegate run."""

    # Action inputs
    token: Optional[str] = None
    filename: str = ""
    base_branch: str = DEFAULT_BASE_BRANCH

    # Workflow context
    repository: Optional[str] = None
    actor: str = ""
    workspace: Path = field(default_factory=Path.cwd)
    api_url: str = DEFAULT_API_URL
    output_path: Optional[Path] = None

    # Runtime settings
    mock_mode: bool = False
    log_level: str = "INFO"

    copilot: CopilotSettings = field(default_factory=CopilotSettings)
    git: GitSettings = field(default_factory=GitSettings)
    prompts: PromptSettings = field(default_factory=PromptSettings)

    @classmethod
    def from_env(cls, workspace: Optional[Path] = None) -> Config:
        """Load configuration from action inputs and environment variables.

        Args:
            workspace: Optional path to the checked-out repository. Defaults to
                GITHUB_WORKSPACE, then the current directory.

        Returns:
            Config instance populated from environment.
        """
        load_dotenv()

        if workspace is not None:
            root = Path(workspace)
        elif os.getenv("GITHUB_WORKSPACE"):
            root = Path(os.environ["GITHUB_WORKSPACE"])
        else:
            root = Path.cwd()

        settings = DelegateSettings.load_from_file(root / SETTINGS_FILE)

        copilot = settings.copilot
        if os.getenv("DELEGATE_COPILOT_MODEL"):
            copilot.model = os.environ["DELEGATE_COPILOT_MODEL"]
        if os.getenv("DELEGATE_COPILOT_TIMEOUT"):
            copilot.timeout = _parse_int(
                os.environ["DELEGATE_COPILOT_TIMEOUT"], "DELEGATE_COPILOT_TIMEOUT"
            )
        if os.getenv("COPILOT_CLI_PATH"):
            copilot.cli_path = os.environ["COPILOT_CLI_PATH"]

        output = os.getenv("GITHUB_OUTPUT")

        return cls(
            token=actions.get_input("PRIVATE_TOKEN") or None,
            filename=actions.get_input("filename"),
            base_branch=actions.get_input("branch") or DEFAULT_BASE_BRANCH,
            repository=os.getenv("GITHUB_REPOSITORY") or None,
            actor=os.getenv("GITHUB_ACTOR", ""),
            workspace=root,
            api_url=os.getenv("GITHUB_API_URL", DEFAULT_API_URL),
            output_path=Path(output) if output else None,
            mock_mode=_is_truthy(os.getenv("DELEGATE_MOCK_MODE")),
            log_level=os.getenv("DELEGATE_LOG_LEVEL", "INFO"),
            copilot=copilot,
            git=settings.git,
            prompts=settings.prompts,
        )

    def validate(self) -> list[str]:
        """Validate configuration and return list of errors.

        Returns:
            List of validation error messages. Empty if valid.
        """
        errors = []

        if not self.token or not self.token.strip():
            errors.append("Input required and not supplied: PRIVATE_TOKEN")

        if not self.repository or "/" not in self.repository:
            errors.append("GITHUB_REPOSITORY must be set in the form 'owner/repo'")

        if not self.workspace.exists():
            errors.append(f"Workspace does not exist: {self.workspace}")

        if self.copilot.timeout <= 0:
            errors.append("Copilot timeout must be a positive number of seconds")

        return errors

    @property
    def owner(self) -> str:
        return (self.repository or "").partition("/")[0]

    @property
    def repo(self) -> str:
        return (self.repository or "").partition("/")[2]
