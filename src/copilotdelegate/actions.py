"""GitHub Actions runtime helpers.

Reads action inputs and workflow context from the environment, writes step
outputs to ``$GITHUB_OUTPUT`` and emits workflow commands (annotations and
masks) on stdout.
"""

from __future__ import annotations

import logging
import os
import sys
import uuid
from pathlib import Path
from typing import Optional, TextIO

logger = logging.getLogger(__name__)


class InputError(Exception):
    """Exception raised when a required action input is missing."""

    pass


def _input_env_name(name: str) -> str:
    return f"INPUT_{name.replace(' ', '_').upper()}"


def get_input(name: str, required: bool = False) -> str:
    """Return the trimmed value of an action input.

    Raises:
        InputError: If *required* and the input is empty.
    """
    value = os.getenv(_input_env_name(name), "").strip()
    if required and not value:
        raise InputError(f"Input required and not supplied: {name}")
    return value


def _escape_data(value: str) -> str:
    return value.replace("%", "%25").replace("\r", "%0D").replace("\n", "%0A")


def issue_command(command: str, message: str = "", stream: Optional[TextIO] = None) -> None:
    """Write a ``::command::message`` workflow command."""
    out = stream or sys.stdout
    out.write(f"::{command}::{_escape_data(str(message))}\n")
    out.flush()


def warning(message: str, stream: Optional[TextIO] = None) -> None:
    """Emit a non-fatal warning annotation."""
    issue_command("warning", message, stream)


def error(message: str, stream: Optional[TextIO] = None) -> None:
    """Emit an error annotation."""
    issue_command("error", message, stream)


def add_mask(secret: str, stream: Optional[TextIO] = None) -> None:
    """Ask the runner to mask *secret* in all subsequent job output."""
    if secret:
        issue_command("add-mask", secret, stream)


def set_failed(message: str, stream: Optional[TextIO] = None) -> None:
    """Report the step as failed. The caller is responsible for the exit code."""
    error(message, stream)


def set_output(name: str, value: object, output_path: Optional[Path] = None) -> None:
    """Set a step output.

    Outputs are appended to the file named by ``$GITHUB_OUTPUT``. Multi-line
    values use the heredoc delimiter syntax. Outside of a workflow the output
    is only logged.
    """
    path = output_path or (Path(os.environ["GITHUB_OUTPUT"]) if os.getenv("GITHUB_OUTPUT") else None)
    text = str(value)

    if path is None:
        logger.info(f"Output {name}={text}")
        return

    if "\n" in text:
        delimiter = f"ghadelimiter_{uuid.uuid4()}"
        entry = f"{name}<<{delimiter}\n{text}\n{delimiter}\n"
    else:
        entry = f"{name}={text}\n"

    with open(path, "a", encoding="utf-8") as f:
        f.write(entry)
    logger.debug(f"Wrote output {name} to {path}")


def in_workflow() -> bool:
    """True when running inside a GitHub Actions job."""
    return os.getenv("GITHUB_ACTIONS", "").lower() == "true"
