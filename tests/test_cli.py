"""Tests for CLI interface."""

import json
from unittest.mock import patch

from typer.testing import CliRunner

from diskdive.cli import app
from diskdive.config import Settings

runner = CliRunner()


class TestVersion:
    def test_version_flag(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert "diskdive version" in result.stdout


class TestHelp:
    def test_help_flag(self):
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        assert "browse" in result.stdout
        assert "scan" in result.stdout
        assert "overview" in result.stdout
        assert "cache" in result.stdout

    def test_scan_help(self):
        result = runner.invoke(app, ["scan", "--help"])
        assert result.exit_code == 0
        assert "--json" in result.stdout
        assert "--no-cache" in result.stdout


class TestScan:
    def test_scan_table(self, tree, tmp_path, monkeypatch):
        monkeypatch.setenv("DISKDIVE_CACHE_DIR", str(tmp_path / "cache"))
        result = runner.invoke(app, ["scan", str(tree)])
        assert result.exit_code == 0
        assert "big" in result.stdout
        assert "notes.txt" in result.stdout
        assert "Total:" in result.stdout

    def test_scan_json(self, tree, tmp_path, monkeypatch):
        monkeypatch.setenv("DISKDIVE_CACHE_DIR", str(tmp_path / "cache"))
        result = runner.invoke(app, ["scan", str(tree), "--json"])
        assert result.exit_code == 0
        payload = json.loads(result.stdout[result.stdout.index("{"):])
        assert payload["total_size"] == 19_500
        assert [e["name"] for e in payload["entries"]][0] == "big"

    def test_second_scan_uses_cache(self, tree, tmp_path, monkeypatch):
        monkeypatch.setenv("DISKDIVE_CACHE_DIR", str(tmp_path / "cache"))
        runner.invoke(app, ["scan", str(tree)])
        result = runner.invoke(app, ["scan", str(tree)])
        assert result.exit_code == 0
        assert "Using cached scan" in result.stdout

    def test_no_cache_writes_nothing(self, tree, tmp_path, monkeypatch):
        monkeypatch.setenv("DISKDIVE_CACHE_DIR", str(tmp_path / "cache"))
        result = runner.invoke(app, ["scan", str(tree), "--no-cache"])
        assert result.exit_code == 0
        assert not list((tmp_path / "cache").glob("*.cache"))

    def test_missing_directory(self, tmp_path):
        result = runner.invoke(app, ["scan", str(tmp_path / "gone")])
        assert result.exit_code != 0


class TestOverview:
    def test_overview_with_config(self, tmp_path, make_file, monkeypatch):
        monkeypatch.setenv("DISKDIVE_CACHE_DIR", str(tmp_path / "cache"))
        make_file(tmp_path / "alpha" / "a.bin", 2048)
        config = tmp_path / "config.json"
        config.write_text(json.dumps({"overview_roots": [str(tmp_path / "alpha")]}))

        result = runner.invoke(app, ["--config", str(config), "overview"])

        assert result.exit_code == 0
        assert "Overview" in result.stdout
        assert "2.0 KB" in result.stdout

    def test_no_roots(self, tmp_path):
        config = tmp_path / "config.json"
        config.write_text(json.dumps({"overview_roots": [str(tmp_path / "missing")]}))
        result = runner.invoke(app, ["--config", str(config), "overview"])
        assert result.exit_code == 0
        assert "None of the overview roots exist" in result.stdout


class TestCacheCommands:
    def test_cache_info(self, tmp_path, monkeypatch):
        monkeypatch.setenv("DISKDIVE_CACHE_DIR", str(tmp_path / "cache"))
        result = runner.invoke(app, ["cache", "info"])
        assert result.exit_code == 0
        assert "Scan records" in result.stdout

    def test_cache_clear(self, tree, tmp_path, monkeypatch):
        monkeypatch.setenv("DISKDIVE_CACHE_DIR", str(tmp_path / "cache"))
        runner.invoke(app, ["scan", str(tree)])
        result = runner.invoke(app, ["cache", "clear", "--yes"])
        assert result.exit_code == 0
        assert "Removed 1 cache file" in result.stdout
        assert not list((tmp_path / "cache").glob("*.cache"))

    @patch("diskdive.cli.confirm_action", return_value=False)
    def test_cache_clear_cancelled(self, mock_confirm, tmp_path, monkeypatch):
        monkeypatch.setenv("DISKDIVE_CACHE_DIR", str(tmp_path / "cache"))
        result = runner.invoke(app, ["cache", "clear"])
        assert result.exit_code == 0
        assert "Cancelled" in result.stdout
        mock_confirm.assert_called_once()


class TestBrowse:
    @patch("diskdive.tui.run_tui")
    def test_browse_path(self, mock_run, tree, tmp_path, monkeypatch):
        monkeypatch.setenv("DISKDIVE_CACHE_DIR", str(tmp_path / "cache"))
        result = runner.invoke(app, ["browse", str(tree)])
        assert result.exit_code == 0
        mock_run.assert_called_once()
        args, kwargs = mock_run.call_args
        assert args[0] == tree
        assert isinstance(kwargs["settings"], Settings)
        assert kwargs["overview"] is False

    @patch("diskdive.tui.run_tui")
    def test_default_command_uses_env_path(self, mock_run, tree, tmp_path, monkeypatch):
        monkeypatch.setenv("DISKDIVE_CACHE_DIR", str(tmp_path / "cache"))
        monkeypatch.setenv("DISKDIVE_PATH", str(tree))
        result = runner.invoke(app, [])
        assert result.exit_code == 0
        assert mock_run.call_args[0][0] == tree

    @patch("diskdive.tui.run_tui")
    def test_browse_logs_to_file(self, mock_run, tree, tmp_path, monkeypatch):
        monkeypatch.setenv("DISKDIVE_CACHE_DIR", str(tmp_path / "cache"))
        runner.invoke(app, ["-v", "browse", str(tree)])
        assert (tmp_path / "cache" / "diskdive.log").exists()

    @patch("diskdive.tui.run_tui")
    def test_browse_not_a_directory(self, mock_run, tmp_path):
        result = runner.invoke(app, ["browse", str(tmp_path / "gone")])
        assert result.exit_code == 1
        mock_run.assert_not_called()
