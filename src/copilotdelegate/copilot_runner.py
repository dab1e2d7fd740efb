"""GitHub Copilot SDK integration.

Runs one instruction through a Copilot SDK session: start the client, open a
streaming session, send the prompt (optionally with a file attachment), wait
for the assistant to go idle, then tear everything down. Whatever happens, the
client ends up stopped before control returns to the caller.
"""

from __future__ import annotations

import asyncio
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Optional

from copilot import CopilotClient

from . import actions
from .injection import ensure_safe_instructions

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 300

# Permission kinds approved without asking. The pull request assigned back to
# the actor is the review gate for everything the assistant does.
AUTO_APPROVED_KINDS = frozenset({"read", "write", "shell"})

TOKEN_ENV_VARS = ("GH_TOKEN", "GITHUB_TOKEN", "COPILOT_GITHUB_TOKEN")


class CopilotRunnerError(Exception):
    """Exception raised when a Copilot session fails."""

    pass


def decide_permission(kind: Optional[str]) -> dict[str, Any]:
    """Return the permission result for a request of the given kind."""
    if kind in AUTO_APPROVED_KINDS:
        return {"kind": "approved"}
    return {"kind": "denied-by-rules", "rules": []}


@dataclass
class AssistantEvent:
    """A session event reduced to its tag and a printable payload."""

    kind: str
    text: str = ""


def _event_tag(event: Any) -> str:
    tag = getattr(event, "type", "")
    return str(getattr(tag, "value", tag))


def _event_field(event: Any, *names: str) -> str:
    data = getattr(event, "data", None)
    for name in names:
        value = getattr(data, name, None)
        if value:
            return str(value)
    return ""


def parse_event(event: Any) -> Optional[AssistantEvent]:
    """Translate an SDK session event into an AssistantEvent.

    Returns None for event types the runner does not report.
    """
    tag = _event_tag(event)
    if tag == "tool.execution_start":
        return AssistantEvent(tag, _event_field(event, "tool_name", "tool_call_id"))
    if tag == "tool.execution_complete":
        return AssistantEvent(tag, _event_field(event, "tool_name", "tool_call_id"))
    if tag == "assistant.message_delta":
        return AssistantEvent(tag, _event_field(event, "delta_content"))
    if tag == "assistant.message":
        return AssistantEvent(tag, _event_field(event, "content"))
    if tag == "session.error":
        return AssistantEvent(tag, _event_field(event, "message", "error") or "session error")
    return None


class CopilotRunner:
    """Runs instructions through a GitHub Copilot SDK session."""

    def __init__(
        self,
        token: str,
        timeout: int = DEFAULT_TIMEOUT,
        model: Optional[str] = None,
        cli_path: Optional[str] = None,
        working_directory: Optional[Path] = None,
        log_level: str = "error",
        logger: Optional[logging.Logger] = None,
        client_factory: Optional[Callable[[dict[str, Any]], Any]] = None,
    ):
        """Initialize the Copilot runner.

        Args:
            token: GitHub token. Only ever passed to the CLI via its environment.
            timeout: Seconds to wait for the assistant to finish.
            model: Optional model identifier for the session.
            cli_path: Optional path to the Copilot CLI executable.
            working_directory: Directory the assistant operates in.
            log_level: Copilot CLI log level.
            logger: Logger for the run.
            client_factory: Builds a client from an options dict. Defaults to
                copilot.CopilotClient.
        """
        self._token = token
        self.timeout = timeout
        self.model = model
        self.cli_path = cli_path
        self.working_directory = working_directory
        self.log_level = log_level
        self.logger = logger or logging.getLogger(__name__)
        self._client_factory = client_factory or CopilotClient
        self.last_response: str = ""

    def client_options(self) -> dict[str, Any]:
        """Options for the SDK client. The token travels only in ``env``."""
        env = os.environ.copy()
        for name in TOKEN_ENV_VARS:
            env[name] = self._token

        options: dict[str, Any] = {
            "auto_start": True,
            "auto_restart": True,
            "use_stdio": True,
            "log_level": self.log_level,
            "env": env,
        }
        if self.cli_path:
            options["cli_path"] = self.cli_path
        if self.working_directory:
            options["cwd"] = str(self.working_directory)
        return options

    def session_config(self) -> dict[str, Any]:
        config: dict[str, Any] = {
            "streaming": True,
            "on_permission_request": self._on_permission_request,
        }
        if self.model:
            config["model"] = self.model
        if self.working_directory:
            config["working_directory"] = str(self.working_directory)
        return config

    def build_message(self, instructions: str, attachment: Optional[Path] = None) -> dict[str, Any]:
        message: dict[str, Any] = {"prompt": instructions}
        if attachment is not None:
            message["attachments"] = [
                {"type": "file", "path": str(attachment), "displayName": attachment.name}
            ]
        return message

    async def _on_permission_request(self, request: Any, invocation: Any = None) -> dict[str, Any]:
        kind = request.get("kind") if isinstance(request, dict) else getattr(request, "kind", None)
        decision = decide_permission(kind)
        self.logger.debug(f"Permission request: kind={kind} decision={decision['kind']}")
        return decision

    def _on_event(self, event: Any) -> None:
        parsed = parse_event(event)
        if parsed is None:
            return
        if parsed.kind == "tool.execution_start":
            self.logger.info(f"Tool started: {parsed.text}")
        elif parsed.kind == "tool.execution_complete":
            self.logger.info(f"Tool finished: {parsed.text}")
        elif parsed.kind == "assistant.message_delta":
            self.logger.debug(f"Assistant: {parsed.text}")
        elif parsed.kind == "assistant.message":
            self.last_response = parsed.text
        elif parsed.kind == "session.error":
            self.logger.error(f"Copilot session error: {parsed.text}")

    def run(self, instructions: str, attachment: Optional[Path] = None) -> str:
        """Run instructions to completion. See run_async()."""
        return asyncio.run(self.run_async(instructions, attachment))

    async def run_async(self, instructions: str, attachment: Optional[Path] = None) -> str:
        """Send instructions to Copilot and wait for the session to finish.

        Args:
            instructions: Prompt text. Checked for prompt injection first.
            attachment: Optional instruction file to attach.

        Returns:
            The final assistant message, or an empty string.

        Raises:
            PromptInjectionError: Before any process starts, if rejected.
            Exception: Whatever the SDK raised, after the client is stopped.
        """
        ensure_safe_instructions(instructions)

        self.last_response = ""
        client = None
        try:
            client = self._client_factory(self.client_options())
            self.logger.info("Starting Copilot client")
            await client.start()
            try:
                session = await client.create_session(self.session_config())
                self.logger.info(f"Copilot session created: id={getattr(session, 'session_id', '?')}")
                try:
                    session.on(self._on_event)
                    response = await session.send_and_wait(
                        self.build_message(instructions, attachment),
                        timeout=self.timeout,
                    )
                    content = _event_field(response, "content") if response is not None else ""
                    if content:
                        self.last_response = content
                finally:
                    await session.destroy()
            finally:
                await client.stop()
        except Exception as exc:
            self.logger.error(f"Copilot execution failed: {type(exc).__name__}: {exc}")
            actions.warning(f"Copilot execution failed: {exc}")
            await self._force_stop(client)
            raise

        self.logger.info("Copilot run completed")
        return self.last_response

    async def _force_stop(self, client: Any) -> None:
        if client is None:
            return
        try:
            await client.force_stop()
        except Exception as exc:
            self.logger.error(f"Forced stop of Copilot client failed: {exc}")


class MockCopilotRunner(CopilotRunner):
    """Mock Copilot runner for testing and --mock runs."""

    def __init__(self, *args, **kwargs):
        """Initialize mock runner."""
        kwargs.setdefault("token", "mock-token")
        super().__init__(*args, **kwargs)
        self.call_count = 0
        self.calls: list[tuple[str, Optional[Path]]] = []
        self.mock_response = "Mock Copilot response"
        self.should_fail = False
        self.fail_error = "Mock failure"

    async def run_async(self, instructions: str, attachment: Optional[Path] = None) -> str:
        """Record the call and return the mock response without starting a client."""
        ensure_safe_instructions(instructions)
        self.call_count += 1
        self.calls.append((instructions, attachment))
        if self.should_fail:
            raise CopilotRunnerError(self.fail_error)
        self.last_response = self.mock_response
        return self.mock_response
