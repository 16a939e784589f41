"""Unit tests for the command-line interface."""

from __future__ import annotations

import io
import json
import zipfile
from pathlib import Path

import pytest
from click.testing import CliRunner
from loguru import logger

from chatexporter import __version__
from chatexporter.cli.main import app
from chatexporter.config import ConfigManager


@pytest.fixture
def cli_runner() -> CliRunner:
    """Create a CLI runner."""
    return CliRunner()


@pytest.fixture(autouse=True)
def isolated_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    """Keep config discovery and log files inside the test directory."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("CHATEXPORTER_CONFIG", raising=False)
    monkeypatch.setenv("CHATEXPORTER_LOG_DIR", str(tmp_path / "logs"))
    monkeypatch.setattr(ConfigManager, "DEFAULT_USER_CONFIG_DIR", tmp_path / "home")
    yield
    logger.remove()


@pytest.fixture
def input_file(tmp_path: Path, raw_mapping_conversation: dict) -> Path:
    """Write a conversations.json with a single conversation."""
    path = tmp_path / "conversations.json"
    path.write_text(json.dumps([raw_mapping_conversation]), encoding="utf-8")
    return path


class TestMainApp:
    """Tests for the top-level command group."""

    def test_help(self, cli_runner: CliRunner) -> None:
        """Help lists the subcommands."""
        result = cli_runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        assert "export" in result.output
        assert "config" in result.output

    def test_version(self, cli_runner: CliRunner) -> None:
        """--version prints the package version."""
        result = cli_runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output


class TestExportCommand:
    """Tests for the export command."""

    def test_export_markdown(
        self, cli_runner: CliRunner, input_file: Path, tmp_output: Path
    ) -> None:
        """A single conversation is written as one document."""
        result = cli_runner.invoke(
            app, ["export", str(input_file), "-s", "text_marker", "-o", str(tmp_output)]
        )

        assert result.exit_code == 0, result.output
        document = (tmp_output / "ChatGPT-Branched.md").read_text(encoding="utf-8")
        assert document == "# Branched\n\n#### You:\nHello\n\n#### ChatGPT:\nNew answer"

    def test_export_html(self, cli_runner: CliRunner, input_file: Path, tmp_output: Path) -> None:
        """The format option selects the renderer."""
        result = cli_runner.invoke(
            app, ["export", str(input_file), "-f", "html", "-o", str(tmp_output)]
        )

        assert result.exit_code == 0, result.output
        assert (tmp_output / "ChatGPT-Branched.html").exists()

    def test_export_rename_on_conflict(
        self, cli_runner: CliRunner, input_file: Path, tmp_output: Path
    ) -> None:
        """Existing outputs are kept and the new file is versioned."""
        (tmp_output / "ChatGPT-Branched.md").write_text("old", encoding="utf-8")

        result = cli_runner.invoke(app, ["export", str(input_file), "-o", str(tmp_output)])

        assert result.exit_code == 0, result.output
        assert (tmp_output / "ChatGPT-Branched.md").read_text(encoding="utf-8") == "old"
        assert (tmp_output / "ChatGPT-Branched.v2.md").exists()

    def test_export_all_builds_archive(
        self, cli_runner: CliRunner, input_file: Path, tmp_output: Path
    ) -> None:
        """--all always produces a batch archive."""
        result = cli_runner.invoke(
            app, ["-q", "export", str(input_file), "--all", "-f", "json", "-o", str(tmp_output)]
        )

        assert result.exit_code == 0, result.output
        archive = (tmp_output / "chatgpt-export-json.zip").read_bytes()
        with zipfile.ZipFile(io.BytesIO(archive)) as zf:
            assert zf.namelist() == ["ChatGPT-Branched.json"]

    def test_unknown_id(self, cli_runner: CliRunner, input_file: Path) -> None:
        """Selecting a missing conversation is a usage error."""
        result = cli_runner.invoke(app, ["export", str(input_file), "--id", "nope"])
        assert result.exit_code == 2

    def test_empty_conversation_fails(self, cli_runner: CliRunner, tmp_path: Path) -> None:
        """A conversation without messages cannot be exported."""
        path = tmp_path / "empty.json"
        path.write_text(json.dumps({"id": "e", "mapping": {}}), encoding="utf-8")

        result = cli_runner.invoke(app, ["export", str(path)])

        assert result.exit_code == 1
        assert "start a conversation" in result.output

    def test_invalid_json(self, cli_runner: CliRunner, tmp_path: Path) -> None:
        """Unreadable input exits with an error."""
        path = tmp_path / "broken.json"
        path.write_text("{not json", encoding="utf-8")

        result = cli_runner.invoke(app, ["export", str(path)])

        assert result.exit_code == 1


class TestConfigCommands:
    """Tests for config subcommands."""

    def test_get(self, cli_runner: CliRunner) -> None:
        """config get prints a single value."""
        result = cli_runner.invoke(app, ["config", "get", "image.strategy"])
        assert result.exit_code == 0
        assert "embed_base64" in result.output

    def test_get_missing_key(self, cli_runner: CliRunner) -> None:
        """Unknown keys exit non-zero."""
        result = cli_runner.invoke(app, ["config", "get", "image.nope"])
        assert result.exit_code == 1

    def test_list_yaml(self, cli_runner: CliRunner) -> None:
        """config list can print YAML."""
        result = cli_runner.invoke(app, ["config", "list", "--format", "yaml"])
        assert result.exit_code == 0
        assert "strategy" in result.output

    def test_set_and_persist(self, cli_runner: CliRunner, tmp_path: Path) -> None:
        """config set writes the change to the loaded file."""
        path = tmp_path / "cfg.json"
        path.write_text("{}", encoding="utf-8")

        result = cli_runner.invoke(
            app, ["--config", str(path), "config", "set", "image.strategy", "text_marker"]
        )

        assert result.exit_code == 0, result.output
        assert json.loads(path.read_text(encoding="utf-8")) == {
            "image": {"strategy": "text_marker"}
        }

    def test_set_invalid(self, cli_runner: CliRunner) -> None:
        """Invalid values are rejected."""
        result = cli_runner.invoke(app, ["config", "set", "image.strategy", "bogus"])
        assert result.exit_code == 1

    def test_init(self, cli_runner: CliRunner, tmp_path: Path) -> None:
        """config init writes a starter file and refuses to overwrite it."""
        target = tmp_path / "starter.json"

        first = cli_runner.invoke(app, ["config", "init", "-o", str(target)])
        second = cli_runner.invoke(app, ["config", "init", "-o", str(target)])

        assert first.exit_code == 0
        assert "image" in json.loads(target.read_text(encoding="utf-8"))
        assert second.exit_code == 1
