"""Logging utilities for delegate runs.

Loggers are created explicitly per run and handed to each component, so
nothing depends on process-wide logging state beyond the single Rich
handler installed by the CLI.
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional

from rich.console import Console
from rich.logging import RichHandler

MASK = "***"
RUN_LOGGER_NAME = "copilotdelegate.run"


class SecretMaskingFilter(logging.Filter):
    """Replace known secret values in log records with a mask."""

    def __init__(self, secrets: Optional[Iterable[str]] = None):
        super().__init__()
        self._secrets: set[str] = set()
        for secret in secrets or ():
            self.add_secret(secret)

    def add_secret(self, secret: Optional[str]) -> None:
        """Register a value that must never appear in log output."""
        if secret and secret.strip():
            self._secrets.add(secret)

    def mask(self, text: str) -> str:
        """Return *text* with every registered secret replaced."""
        # Longest first so a secret containing another is masked whole
        for secret in sorted(self._secrets, key=len, reverse=True):
            text = text.replace(secret, MASK)
        return text

    def filter(self, record: logging.LogRecord) -> bool:
        if not self._secrets:
            return True
        message = record.getMessage()
        masked = self.mask(message)
        if masked != message:
            record.msg = masked
            record.args = None
        return True


def setup_logging(
    verbose: bool = False,
    secrets: Optional[Iterable[str]] = None,
    console: Optional[Console] = None,
    level: Optional[str] = None,
) -> SecretMaskingFilter:
    """Configure logging with a Rich handler that masks secrets.

    Args:
        verbose: If True, set DEBUG level; otherwise *level* or INFO.
        secrets: Values to mask in every emitted record.
        console: Optional Rich console to render into.
        level: Optional level name used when not verbose.

    Returns:
        The masking filter, so callers can register secrets discovered later.
    """
    if verbose:
        log_level = logging.DEBUG
    else:
        log_level = logging.getLevelName((level or "INFO").upper())
        if not isinstance(log_level, int):
            log_level = logging.INFO

    masking = SecretMaskingFilter(secrets)
    handler = RichHandler(console=console, rich_tracebacks=True, show_path=False)
    handler.addFilter(masking)

    logging.basicConfig(
        level=log_level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[handler],
        force=True,
    )
    return masking


def create_run_logger(
    name: str = RUN_LOGGER_NAME,
    secrets: Optional[Iterable[str]] = None,
) -> logging.Logger:
    """Create the logger instance that a single run passes to its components.

    The masking filter is attached to the logger itself as well, so records
    are masked even when no handler from setup_logging() is installed.
    """
    logger = logging.getLogger(name)
    for existing in list(logger.filters):
        if isinstance(existing, SecretMaskingFilter):
            logger.removeFilter(existing)
    logger.addFilter(SecretMaskingFilter(secrets))
    return logger
