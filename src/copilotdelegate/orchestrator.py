"""Orchestrates a delegate run from inputs to an assigned pull request.

Stages run strictly in order:

    INIT -> VALIDATE -> GENERATE -> BRANCH -> COMMIT -> REVIEW
         -> COMMIT_REVIEW -> OPEN_PR -> ASSIGN -> DONE

Validation failures (token, workspace not a git checkout, instruction file,
prompt injection) stop the run.
Assistant, commit and assignment failures are reported as warnings and the
run moves on, so that whatever was produced still ends up in a pull request.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Callable, Optional

from . import actions
from .config import Config, ConfigError
from .copilot_runner import CopilotRunner, MockCopilotRunner
from .git_ops import GitOperations, generate_branch_name
from .github_client import GitHubClient
from .injection import PromptInjectionError
from .pull_requests import PullRequestManager, build_pr_body, build_pr_title
from .validation import load_file

logger = logging.getLogger(__name__)


class RunStage(str, Enum):
    """Pipeline stages, in execution order."""

    INIT = "init"
    VALIDATE = "validate"
    GENERATE = "generate"
    BRANCH = "branch"
    COMMIT = "commit"
    REVIEW = "review"
    COMMIT_REVIEW = "commit_review"
    OPEN_PR = "open_pr"
    ASSIGN = "assign"
    DONE = "done"


@dataclass
class Instructions:
    """Prompt text and the file it came from, if any."""

    text: str
    source_file: Optional[Path] = None


@dataclass
class RunResult:
    """Outcome of a delegate run."""

    success: bool
    stage: RunStage
    branch: Optional[str] = None
    pr_number: Optional[int] = None
    error: Optional[str] = None


class DelegateOrchestrator:
    """Runs the delegate pipeline for one workflow invocation."""

    def __init__(
        self,
        config: Config,
        logger: Optional[logging.Logger] = None,
        runner: Optional[CopilotRunner] = None,
        git_ops: Optional[GitOperations] = None,
        pr_manager: Optional[PullRequestManager] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """Initialize the orchestrator.

        Collaborators not given here are built from *config* when the run
        reaches the stage that needs them.

        Args:
            config: Configuration for this run.
            logger: Logger passed to every component.
            runner: Copilot runner.
            git_ops: Git operations for the workspace.
            pr_manager: Pull request manager.
            clock: Returns the time used for the branch name.
        """
        self.config = config
        self.logger = logger or logging.getLogger(__name__)
        self._runner = runner
        self._git_ops = git_ops
        self._pr_manager = pr_manager
        self._clock = clock
        self.stage = RunStage.INIT
        self.branch: Optional[str] = None

    @property
    def runner(self) -> CopilotRunner:
        if self._runner is None:
            settings = self.config.copilot
            runner_cls = MockCopilotRunner if self.config.mock_mode else CopilotRunner
            self._runner = runner_cls(
                token=self.config.token or "",
                timeout=settings.timeout,
                model=settings.model,
                cli_path=settings.cli_path,
                working_directory=self.config.workspace,
                log_level=settings.log_level,
                logger=self.logger,
            )
        return self._runner

    @property
    def git_ops(self) -> GitOperations:
        if self._git_ops is None:
            self._git_ops = GitOperations(
                self.config.workspace, settings=self.config.git, logger=self.logger
            )
        return self._git_ops

    @property
    def pr_manager(self) -> PullRequestManager:
        if self._pr_manager is None:
            client = GitHubClient(
                token=self.config.token or "",
                owner=self.config.owner,
                repo=self.config.repo,
                api_url=self.config.api_url,
            )
            self._pr_manager = PullRequestManager(client, logger=self.logger)
        return self._pr_manager

    def _enter(self, stage: RunStage) -> None:
        self.stage = stage
        self.logger.debug(f"Stage: {stage.value}")

    def run(self) -> RunResult:
        """Run the whole pipeline.

        Returns:
            RunResult. Any uncaught error is reported via set_failed and
            returned as an unsuccessful result.
        """
        try:
            return self._run()
        except Exception as exc:
            self.logger.error(f"Delegate run failed: stage={self.stage.value} error={exc}")
            actions.set_failed(f"Action failed: {exc}")
            return RunResult(success=False, stage=self.stage, branch=self.branch, error=str(exc))

    def _run(self) -> RunResult:
        config = self.config
        self._enter(RunStage.INIT)

        errors = config.validate()
        if errors:
            raise ConfigError("; ".join(errors))

        # Fails here, before Copilot runs, if the workspace is not a git checkout
        git_ops = self.git_ops

        now = self._clock() if self._clock else None
        branch = generate_branch_name(now)

        self.logger.info("Starting delegate action workflow")
        self.logger.info(f"Repository: {config.repository}")
        self.logger.info(f"Base branch: {config.base_branch}")
        self.logger.info(f"New branch: {branch}")

        self._enter(RunStage.VALIDATE)
        instructions = self.prepare_instructions()

        self._enter(RunStage.GENERATE)
        self._run_assistant(instructions)

        self._enter(RunStage.BRANCH)
        git_ops.create_branch(branch)
        self.branch = branch
        actions.set_output("branch", branch, config.output_path)

        self._enter(RunStage.COMMIT)
        target = config.filename or "repository"
        git_ops.commit_and_push(
            config.prompts.changes_commit_message.replace("{target}", target), branch
        )

        self._enter(RunStage.REVIEW)
        self.logger.info("Running Copilot for review, documentation, and tests")
        review = Instructions(config.prompts.review_instructions.replace("{branch}", branch))
        self._run_assistant(review)

        self._enter(RunStage.COMMIT_REVIEW)
        git_ops.commit_and_push(config.prompts.review_commit_message, branch)

        self._enter(RunStage.OPEN_PR)
        pr_number = self.pr_manager.create_pull_request(
            head=branch,
            base=config.base_branch,
            title=build_pr_title(config.filename),
            body=build_pr_body(config.filename, config.base_branch, config.actor),
        )

        if pr_number is None:
            self.logger.warning("Pull request was not created; skipping assignment")
            self._enter(RunStage.DONE)
            return RunResult(success=True, stage=self.stage, branch=branch)

        self._enter(RunStage.ASSIGN)
        self.pr_manager.assign_pr(pr_number, config.actor)
        actions.set_output("pr_number", pr_number, config.output_path)

        self._enter(RunStage.DONE)
        self.logger.info("Delegate action completed successfully")
        return RunResult(success=True, stage=self.stage, branch=branch, pr_number=pr_number)

    def prepare_instructions(self) -> Instructions:
        """Build the first prompt, from the instruction file if one was given.

        Raises:
            ValidationError: If the instruction file fails validation.
        """
        filename = self.config.filename
        if not filename:
            return Instructions(self.config.prompts.default_instructions)

        validated = load_file(filename, base_dir=self.config.workspace, log=self.logger)
        return Instructions(validated.content, source_file=validated.path)

    def _run_assistant(self, instructions: Instructions) -> None:
        """Run Copilot; injection is fatal, anything else only warns."""
        try:
            self.runner.run(instructions.text, instructions.source_file)
        except PromptInjectionError:
            raise
        except Exception as exc:
            self.logger.warning(f"Continuing without Copilot changes: stage={self.stage.value} error={exc}")
