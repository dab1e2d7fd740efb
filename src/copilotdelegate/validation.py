"""Validation of user-supplied instruction files.

Filenames come straight from workflow inputs, so they are checked for
traversal and absolute paths before anything touches the filesystem, then
sanitized, resolved under the workspace and size-checked.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

MAX_FILENAME_LENGTH = 255
MAX_FILE_SIZE = 1024 * 1024  # 1 MiB

# Characters that are invalid in filenames on common platforms
UNSAFE_FILENAME_CHARS = re.compile(r'[<>:"|?*\x00-\x1f]')
WINDOWS_DRIVE = re.compile(r"^[A-Za-z]:[\\/]")


class ValidationError(Exception):
    """Exception raised when user input fails validation."""

    pass


class PathTraversalError(ValidationError):
    """Filename is absolute or escapes the workspace."""

    pass


class NotFoundError(ValidationError):
    """Instruction file does not exist."""

    pass


class SizeLimitError(ValidationError):
    """Instruction file exceeds MAX_FILE_SIZE."""

    pass


class FileTypeError(ValidationError, TypeError):
    """Instruction path is not a regular file, or not text."""

    pass


@dataclass
class ValidatedFile:
    """An instruction file that passed every check."""

    sanitized_name: str
    path: Path
    size_bytes: int
    content: str = ""


def _is_absolute(raw: str) -> bool:
    return raw.startswith(("/", "\\")) or bool(WINDOWS_DRIVE.match(raw))


def validate_filename(raw: Optional[str], log: Optional[logging.Logger] = None) -> str:
    """Validate and sanitize a filename supplied by the workflow.

    Traversal and absolute-path checks run on the raw input, before any
    character substitution.

    Args:
        raw: Filename as given by the user.
        log: Logger for the run. Defaults to the module logger.

    Returns:
        The sanitized filename.

    Raises:
        ValidationError: If the length is outside 1..255.
        PathTraversalError: If the filename is absolute or contains '..'.
    """
    log = log or logger

    if not isinstance(raw, str) or not 1 <= len(raw) <= MAX_FILENAME_LENGTH:
        raise ValidationError(
            f"Filename must be between 1 and {MAX_FILENAME_LENGTH} characters"
        )

    if _is_absolute(raw):
        raise PathTraversalError(f"Absolute paths are not allowed: {raw}")

    if ".." in raw:
        raise PathTraversalError(f"Path traversal detected in filename: {raw}")

    sanitized = UNSAFE_FILENAME_CHARS.sub("_", raw)
    if sanitized != raw:
        log.warning(f"Filename sanitized: original={raw!r} sanitized={sanitized!r}")

    return sanitized


def validate_file(
    filename: Optional[str],
    base_dir: Optional[Path] = None,
    log: Optional[logging.Logger] = None,
) -> Path:
    """Validate a filename and the file it points to.

    Args:
        filename: Filename relative to *base_dir*.
        base_dir: Directory the file must live under. Defaults to CWD.
        log: Logger for the run. Defaults to the module logger.

    Returns:
        Absolute path to the file.

    Raises:
        ValidationError: Any of its subclasses, see validate_filename().
        NotFoundError: If the file does not exist.
        FileTypeError: If the path is not a regular file.
        SizeLimitError: If the file is larger than MAX_FILE_SIZE.
    """
    log = log or logger

    sanitized = validate_filename(filename, log=log)
    root = (base_dir or Path.cwd()).resolve()
    candidate = root / sanitized

    if not candidate.exists():
        raise NotFoundError(f"File not found: {sanitized}")

    resolved = candidate.resolve()
    try:
        resolved.relative_to(root)
    except ValueError as exc:
        raise PathTraversalError(
            f"File resolves outside the workspace: {sanitized}"
        ) from exc

    if not resolved.is_file():
        raise FileTypeError(f"Not a regular file: {sanitized}")

    size = resolved.stat().st_size
    if size > MAX_FILE_SIZE:
        raise SizeLimitError(
            f"File too large: {sanitized} is {size} bytes (limit {MAX_FILE_SIZE})"
        )

    log.info(f"Validated instruction file: filename={sanitized} size={size}")
    return resolved


def load_file(
    filename: Optional[str],
    base_dir: Optional[Path] = None,
    log: Optional[logging.Logger] = None,
) -> ValidatedFile:
    """Validate an instruction file and read its content as UTF-8 text."""
    path = validate_file(filename, base_dir=base_dir, log=log)
    try:
        content = path.read_text(encoding="utf-8")
    except UnicodeDecodeError as exc:
        raise FileTypeError(f"File is not valid UTF-8 text: {path.name}") from exc

    return ValidatedFile(
        sanitized_name=str(path.relative_to((base_dir or Path.cwd()).resolve())),
        path=path,
        size_bytes=path.stat().st_size,
        content=content,
    )
