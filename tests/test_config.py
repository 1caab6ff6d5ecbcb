"""Tests for settings loading."""

import json

from diskdive.config import (
    DAY,
    Settings,
    absolute_path,
    default_config_path,
    load_settings,
)


class TestSettingsDefaults:
    def test_defaults(self):
        settings = Settings()
        assert settings.size_timeout == 0.5
        assert settings.max_depth == 3
        assert settings.max_files == 10_000
        assert settings.max_workers == 32
        assert settings.large_file_threshold == 100 * 1024 * 1024
        assert settings.cache_ttl == 7 * DAY
        assert settings.stale_ttl == 1 * DAY
        assert settings.mtime_grace == 2.0
        assert settings.reuse_window == 30.0

    def test_default_cache_dir_uses_xdg(self, tmp_path):
        assert Settings().resolved_cache_dir() == tmp_path / "xdg-cache" / "diskdive"

    def test_cache_dir_field(self, tmp_path):
        settings = Settings(cache_dir=str(tmp_path / "elsewhere"))
        assert settings.resolved_cache_dir() == tmp_path / "elsewhere"

    def test_env_overrides_cache_dir(self, tmp_path, monkeypatch):
        monkeypatch.setenv("DISKDIVE_CACHE_DIR", str(tmp_path / "env"))
        settings = Settings(cache_dir=str(tmp_path / "elsewhere"))
        assert settings.resolved_cache_dir() == tmp_path / "env"


class TestOverviewRoots:
    def test_missing_roots_dropped(self, tmp_path):
        (tmp_path / "a").mkdir()
        settings = Settings(overview_roots=[str(tmp_path / "a"), str(tmp_path / "missing")])
        assert settings.existing_overview_roots() == [tmp_path / "a"]

    def test_duplicates_dropped(self, tmp_path):
        (tmp_path / "a").mkdir()
        settings = Settings(overview_roots=[str(tmp_path / "a"), str(tmp_path / "a")])
        assert len(settings.existing_overview_roots()) == 1


class TestLoadSettings:
    def test_missing_file_gives_defaults(self, tmp_path):
        assert load_settings(tmp_path / "nope.json") == Settings()

    def test_default_path_is_xdg(self, tmp_path):
        assert default_config_path() == tmp_path / "xdg-config" / "diskdive" / "config.json"

    def test_values_loaded(self, tmp_path):
        config = tmp_path / "config.json"
        config.write_text(json.dumps({"max_depth": 5, "reuse_window": 0}))
        settings = load_settings(config)
        assert settings.max_depth == 5
        assert settings.reuse_window == 0
        assert settings.max_files == 10_000

    def test_invalid_json_gives_defaults(self, tmp_path):
        config = tmp_path / "config.json"
        config.write_text("{not json")
        assert load_settings(config) == Settings()

    def test_non_object_gives_defaults(self, tmp_path):
        config = tmp_path / "config.json"
        config.write_text("[1, 2]")
        assert load_settings(config) == Settings()

    def test_invalid_value_gives_defaults(self, tmp_path):
        config = tmp_path / "config.json"
        config.write_text(json.dumps({"max_files": -3}))
        assert load_settings(config) == Settings()


class TestAbsolutePath:
    def test_expands_home(self, monkeypatch, tmp_path):
        monkeypatch.setenv("HOME", str(tmp_path))
        assert absolute_path("~/x") == str(tmp_path / "x")

    def test_relative_made_absolute(self, monkeypatch, tmp_path):
        monkeypatch.chdir(tmp_path)
        assert absolute_path("sub") == str(tmp_path / "sub")

    def test_dollar_kept(self, tmp_path):
        assert absolute_path(str(tmp_path / "$HOME")) == str(tmp_path / "$HOME")
