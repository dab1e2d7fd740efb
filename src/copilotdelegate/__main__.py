"""Main entry point for running copilot-delegate as a module.

Usage:
    python -m copilotdelegate --help
    python -m copilotdelegate run --filename tasks/refactor.md
    python -m copilotdelegate check tasks/refactor.md
"""

from __future__ import annotations

from .cli import app

if __name__ == "__main__":
    app()
