"""Tests for the GitHub Actions runtime helpers."""

from __future__ import annotations

import io
from pathlib import Path

import pytest

from copilotdelegate import actions


class TestInputs:
    """Tests for get_input."""

    def test_reads_and_trims(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("INPUT_FILENAME", "  tasks.md\n")
        assert actions.get_input("filename") == "tasks.md"

    def test_name_with_spaces(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("INPUT_BASE_BRANCH", "main")
        assert actions.get_input("base branch") == "main"

    def test_optional_missing(self) -> None:
        assert actions.get_input("branch") == ""

    def test_required_missing(self) -> None:
        with pytest.raises(actions.InputError, match="Input required and not supplied: PRIVATE_TOKEN"):
            actions.get_input("PRIVATE_TOKEN", required=True)


class TestCommands:
    """Tests for workflow commands."""

    def test_warning(self) -> None:
        stream = io.StringIO()
        actions.warning("Commit/push failed", stream)
        assert stream.getvalue() == "::warning::Commit/push failed\n"

    def test_escapes_multiline(self) -> None:
        stream = io.StringIO()
        actions.error("100% broken\nsecond line", stream)
        assert stream.getvalue() == "::error::100%25 broken%0Asecond line\n"

    def test_add_mask_ignores_empty(self) -> None:
        stream = io.StringIO()
        actions.add_mask("", stream)
        assert stream.getvalue() == ""

    def test_set_failed(self, capsys: pytest.CaptureFixture) -> None:
        actions.set_failed("Action failed: boom")
        assert capsys.readouterr().out == "::error::Action failed: boom\n"

    def test_in_workflow(self, monkeypatch: pytest.MonkeyPatch) -> None:
        assert actions.in_workflow() is False
        monkeypatch.setenv("GITHUB_ACTIONS", "true")
        assert actions.in_workflow() is True


class TestOutputs:
    """Tests for set_output."""

    def test_appends_to_output_file(self, tmp_path: Path) -> None:
        path = tmp_path / "output"
        actions.set_output("branch", "copilot/delegate-x", path)
        actions.set_output("pr_number", 42, path)

        assert path.read_text() == "branch=copilot/delegate-x\npr_number=42\n"

    def test_uses_github_output_env(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        path = tmp_path / "output"
        monkeypatch.setenv("GITHUB_OUTPUT", str(path))

        actions.set_output("branch", "b")

        assert path.read_text() == "branch=b\n"

    def test_multiline_uses_delimiter(self, tmp_path: Path) -> None:
        path = tmp_path / "output"
        actions.set_output("summary", "line one\nline two", path)

        lines = path.read_text().splitlines()
        assert lines[0].startswith("summary<<ghadelimiter_")
        assert lines[1:3] == ["line one", "line two"]
        assert lines[3] == lines[0].split("<<", 1)[1]

    def test_without_output_file_only_logs(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level("INFO"):
            actions.set_output("branch", "b")
        assert "Output branch=b" in caplog.text
