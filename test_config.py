"""
Tests for task and logging configuration.
"""

import dataclasses
import json

import pytest

from periodic import ConfigurationError, LoggingConfig, TaskConfig, load_logging_config


def fetch_prices():
    return []


class TestTaskConfig:

    def test_defaults(self):
        config = TaskConfig(work=fetch_prices)
        assert config.interval == 5.0
        assert config.arguments == ()
        assert config.error_rate_limit == 0
        assert config.resume_after_abort is False
        assert config.resume_delay == 60.0
        assert config.quiet is False
        assert not config.limits_error_rate

    def test_missing_work(self):
        with pytest.raises(ConfigurationError, match="'work' is required"):
            TaskConfig(interval=1)

    def test_all_problems_reported(self):
        with pytest.raises(ConfigurationError) as exc_info:
            TaskConfig(work="not callable", interval=-1, error_rate_limit=1.5, on_success=3)
        message = str(exc_info.value)
        assert "'work' must be callable" in message
        assert "'interval'" in message
        assert "'error_rate_limit'" in message
        assert "'on_success'" in message

    def test_configuration_error_is_value_error(self):
        with pytest.raises(ValueError):
            TaskConfig(work=fetch_prices, resume_delay=-5)

    def test_bool_is_not_a_limit(self):
        with pytest.raises(ConfigurationError):
            TaskConfig(work=fetch_prices, error_rate_limit=True)

    def test_list_arguments_become_tuple(self):
        config = TaskConfig(work=fetch_prices, arguments=["AAPL", 3])
        assert config.arguments == ("AAPL", 3)

    def test_immutable(self):
        config = TaskConfig(work=fetch_prices)
        with pytest.raises(dataclasses.FrozenInstanceError):
            config.interval = 10

    def test_names(self):
        assert TaskConfig(work=fetch_prices).display_name == "fetch_prices"
        assert TaskConfig(work=lambda: None).display_name == "Anonymous"
        assert TaskConfig(work=fetch_prices, name="prices").display_name == "prices"

    def test_name_must_be_string(self):
        with pytest.raises(ConfigurationError, match="'name' must be a string"):
            TaskConfig(work=fetch_prices, name=5)

    def test_limits_error_rate(self):
        assert TaskConfig(work=fetch_prices, error_rate_limit=3).limits_error_rate


class TestLoggingConfig:

    @pytest.fixture(autouse=True)
    def clean_env(self, monkeypatch):
        for name in ("PERIODIC_LOG_LEVEL", "PERIODIC_LOG_FILE", "PERIODIC_LOG_COLOR", "PERIODIC_CONFIG_PATH"):
            monkeypatch.delenv(name, raising=False)

    def test_defaults(self):
        config = LoggingConfig()
        assert config.level == "INFO"
        assert config.file is None
        assert config.color is True

    def test_environment_overrides(self, monkeypatch, tmp_path):
        monkeypatch.setenv("PERIODIC_LOG_LEVEL", "debug")
        monkeypatch.setenv("PERIODIC_LOG_FILE", str(tmp_path / "runner.log"))
        monkeypatch.setenv("PERIODIC_LOG_COLOR", "false")

        config = LoggingConfig()
        assert config.level == "DEBUG"
        assert config.level_number == 10
        assert config.file == str(tmp_path / "runner.log")
        assert config.color is False

    def test_unknown_level(self):
        with pytest.raises(ConfigurationError):
            LoggingConfig(level="LOUD")

    def test_load_without_path_uses_environment(self, monkeypatch):
        monkeypatch.setenv("PERIODIC_LOG_LEVEL", "WARNING")
        assert load_logging_config().level == "WARNING"

    def test_load_missing_file(self, tmp_path):
        config = load_logging_config(str(tmp_path / "missing.json"))
        assert config.level == "INFO"

    def test_load_from_file(self, tmp_path):
        path = tmp_path / "periodic.json"
        path.write_text(json.dumps({'logging': {'level': 'error', 'color': False}}))

        config = load_logging_config(str(path))
        assert config.level == "ERROR"
        assert config.color is False
        assert config.file is None
        assert config.to_dict() == {'level': 'ERROR', 'file': None, 'color': False}

    def test_load_path_from_environment(self, monkeypatch, tmp_path):
        path = tmp_path / "periodic.json"
        path.write_text(json.dumps({'logging': {'level': 'CRITICAL'}}))
        monkeypatch.setenv("PERIODIC_CONFIG_PATH", str(path))

        assert load_logging_config().level == "CRITICAL"

    def test_load_rejects_unknown_keys(self, tmp_path):
        path = tmp_path / "periodic.json"
        path.write_text(json.dumps({'logging': {'rotation': 'daily'}}))
        with pytest.raises(ConfigurationError, match="rotation"):
            load_logging_config(str(path))

    def test_load_rejects_bad_json(self, tmp_path):
        path = tmp_path / "periodic.json"
        path.write_text("{not json")
        with pytest.raises(ConfigurationError):
            load_logging_config(str(path))
