"""Tests for run configuration loading."""

import pytest

from api_tracker.config import TrackerConfig, load_config
from api_tracker.exceptions import InvalidConfigError


class TestTrackerConfig:
    """Validation and derived properties."""

    def test_defaults(self):
        config = TrackerConfig()
        assert config.analyzer_command == "japi-compliance-checker"
        assert config.analyzer_min_version == "1.8"
        assert config.key_length == 5
        assert not config.rebuild

    def test_unknown_target_element(self):
        with pytest.raises(InvalidConfigError):
            TrackerConfig(target_element="everything")

    def test_bad_key_length(self):
        with pytest.raises(InvalidConfigError):
            TrackerConfig(key_length=0)

    def test_bad_timeout(self):
        with pytest.raises(InvalidConfigError):
            TrackerConfig(analyzer_timeout=-1)

    def test_wants(self):
        assert TrackerConfig().wants("apidump")
        assert TrackerConfig(target_element="apidump").wants("apidump")
        assert not TrackerConfig(target_element="apidump").wants("apireport")
        assert TrackerConfig(target_element="packagediff").wants("pkgdiff")

    def test_archives_report_target(self):
        config = TrackerConfig(target_element="archivesreport")
        assert config.summaries_only
        assert config.wants("apireport")
        assert not config.wants("apidump")

    def test_skips_version(self):
        config = TrackerConfig(target_version="1.1")
        assert config.skips_version("1.0")
        assert not config.skips_version("1.1")
        assert not TrackerConfig().skips_version("1.0")


class TestLoadConfig:
    """Merging files, environment and overrides."""

    def test_overrides(self):
        config = load_config(rebuild=True, target_version="2.0")
        assert config.rebuild
        assert config.target_version == "2.0"

    def test_none_overrides_are_ignored(self, tmp_path):
        path = tmp_path / "tracker.toml"
        path.write_text('analyzer_command = "japicc"\n', encoding="utf-8")
        config = load_config(config_file=path, analyzer_command=None)
        assert config.analyzer_command == "japicc"

    def test_debug_and_quiet(self):
        assert load_config(debug=True).verbosity == "verbose"
        assert load_config(quiet=True).verbosity == "quiet"
        assert load_config(debug=False, quiet=False).verbosity == "normal"

    def test_environment(self, monkeypatch):
        monkeypatch.setenv("API_TRACKER_ANALYZER_TIMEOUT", "30")
        monkeypatch.setenv("API_TRACKER_SYMBOL_CACHE_ENABLED", "off")
        config = load_config()
        assert config.analyzer_timeout == 30.0
        assert config.symbol_cache_enabled is False

    def test_bad_environment_value(self, monkeypatch):
        monkeypatch.setenv("API_TRACKER_KEY_LENGTH", "five")
        with pytest.raises(InvalidConfigError):
            load_config()

    def test_overrides_beat_environment(self, monkeypatch):
        monkeypatch.setenv("API_TRACKER_ANALYZER_COMMAND", "from-env")
        assert load_config(analyzer_command="from-cli").analyzer_command == "from-cli"

    def test_global_config(self, tmp_path):
        (tmp_path / "home" / ".api-tracker.toml").write_text("key_length = 8\n", encoding="utf-8")
        assert load_config().key_length == 8

    def test_missing_config_file(self, tmp_path):
        with pytest.raises(InvalidConfigError):
            load_config(config_file=tmp_path / "missing.toml")

    def test_malformed_config_file(self, tmp_path):
        path = tmp_path / "bad.toml"
        path.write_text("key_length = = 3\n", encoding="utf-8")
        with pytest.raises(InvalidConfigError):
            load_config(config_file=path)

    def test_unknown_key(self, tmp_path):
        path = tmp_path / "tracker.toml"
        path.write_text("no_such_option = 1\n", encoding="utf-8")
        with pytest.raises(InvalidConfigError):
            load_config(config_file=path)
