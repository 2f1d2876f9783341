"""Tests for settings, the YAML loader and the error types."""

from pathlib import Path

import pytest

from erlcheck.core.config.loader import ConfigLoader
from erlcheck.core.config.settings import LoggingSettings, Settings, ToolSettings
from erlcheck.core.exceptions.errors import (
    BuildConfigError,
    CommandError,
    ConfigurationError,
    ErlCheckError,
    TermParseError,
)


class TestToolSettings:
    """Tests for ToolSettings."""

    def test_defaults(self) -> None:
        """Test default executable names and timeouts."""
        tools = ToolSettings()
        assert tools.erl == "erl"
        assert tools.erlc == "erlc"
        assert tools.rebar3 == "rebar3"
        assert tools.command_timeout == 300

    def test_environment_override(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test environment variables with the ERLCHECK_TOOLS_ prefix."""
        monkeypatch.setenv("ERLCHECK_TOOLS_ERLC", "/opt/otp/bin/erlc")
        monkeypatch.setenv("ERLCHECK_TOOLS_RPC_TIMEOUT", "5")
        tools = ToolSettings()
        assert tools.erlc == "/opt/otp/bin/erlc"
        assert tools.rpc_timeout == 5


class TestLoggingSettings:
    """Tests for LoggingSettings."""

    def test_level_is_normalized(self) -> None:
        """Test lower-case levels are accepted."""
        assert LoggingSettings(level="debug").level == "DEBUG"

    def test_invalid_level(self) -> None:
        """Test unknown levels are rejected."""
        with pytest.raises(ValueError):
            LoggingSettings(level="chatty")

    def test_empty_file_means_none(self) -> None:
        """Test an empty file setting disables the file sink."""
        assert LoggingSettings(file="").file is None


class TestSettingsLoad:
    """Tests for loading settings from YAML."""

    def test_from_yaml(self, temp_dir: Path) -> None:
        """Test sections of a YAML file are applied."""
        config = temp_dir / "config.yaml"
        config.write_text("tools:\n  rebar3: rebar3-nightly\nlogging:\n  use_rich: false\n")

        settings = Settings.from_yaml(config)

        assert settings.tools.rebar3 == "rebar3-nightly"
        assert settings.logging.use_rich is False

    def test_load_from_env_path(self, temp_dir: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test ERLCHECK_CONFIG points at the YAML file."""
        config = temp_dir / "erlcheck.yaml"
        config.write_text("tools:\n  erl: /opt/erl\n")
        monkeypatch.setenv("ERLCHECK_CONFIG", str(config))

        assert Settings.load().tools.erl == "/opt/erl"

    def test_load_missing_env_path(self, temp_dir: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test a missing configured file is an error."""
        monkeypatch.setenv("ERLCHECK_CONFIG", str(temp_dir / "missing.yaml"))
        with pytest.raises(ConfigurationError):
            Settings.load()


class TestConfigLoader:
    """Tests for ConfigLoader."""

    def test_invalid_yaml(self, temp_dir: Path) -> None:
        """Test malformed YAML is reported."""
        config = temp_dir / "bad.yaml"
        config.write_text("tools: [unclosed\n")
        with pytest.raises(ConfigurationError, match="Invalid YAML"):
            ConfigLoader(config).load()

    def test_not_a_mapping(self, temp_dir: Path) -> None:
        """Test a YAML list is refused."""
        config = temp_dir / "list.yaml"
        config.write_text("- a\n- b\n")
        with pytest.raises(ConfigurationError, match="mapping"):
            ConfigLoader(config).load()

    def test_missing_section(self, temp_dir: Path) -> None:
        """Test a missing section is empty."""
        config = temp_dir / "empty.yaml"
        config.write_text("")
        loader = ConfigLoader(config)
        assert loader.load() == {}
        assert loader.get_section("tools") == {}


class TestErrors:
    """Tests for the exception hierarchy."""

    def test_details_in_str(self) -> None:
        """Test details are rendered after the message."""
        error = CommandError("failed", command=["rebar3", "path"])
        assert isinstance(error, ErlCheckError)
        assert "failed" in str(error)
        assert "rebar3 path" in str(error)

    def test_build_config_error_location(self) -> None:
        """Test the file and line of a configuration error."""
        error = BuildConfigError("bad term", file="/proj/rebar.config", line=3)
        assert error.file == Path("/proj/rebar.config")
        assert error.line == 3
        assert BuildConfigError("no file").file is None
        assert BuildConfigError("no file").line == 1

    def test_term_parse_error_line(self) -> None:
        """Test TermParseError carries the line."""
        assert TermParseError("oops", line=4).line == 4
