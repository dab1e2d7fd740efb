"""copilot-delegate: delegate repository changes to GitHub Copilot from CI."""

__version__ = "0.1.0"
