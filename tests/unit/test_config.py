"""
Unit tests for configuration loading.
"""

import json
from pathlib import Path

import pytest
import yaml

from bangrouter.utils.config import BangConfig, ConfigLoader, load_commands, load_config
from bangrouter.utils.errors import ConfigurationError


class TestLoadCommands:
    """Test the commands document loader."""

    def test_json(self, commands_file):
        document = load_commands(commands_file)

        assert [c.name for c in document.commands] == ["google", "stackoverflow", "author", "github"]
        google = document.commands[0]
        assert google.requires_query is True
        assert google.is_default is True
        assert document.commands[2].is_default is False

    def test_yaml(self, temp_dir, sample_commands):
        path = temp_dir / "commands.yaml"
        path.write_text(yaml.safe_dump(sample_commands))

        document = load_commands(path)
        assert document.commands[3].subcommands[0].aliases == ["pull"]

    def test_optional_fields_default(self, temp_dir):
        path = temp_dir / "commands.json"
        path.write_text(json.dumps({"commands": [{"name": "x", "url": "https://x.test", "extra": 1}]}))

        command = load_commands(path).commands[0]
        assert command.aliases == []
        assert command.subcommands == []
        assert command.requires_query is False
        assert command.is_default is False

    def test_missing_file(self, temp_dir):
        with pytest.raises(ConfigurationError) as exc_info:
            load_commands(temp_dir / "commands.json")

        assert "commands.json.sample" in exc_info.value.message

    def test_invalid_json(self, temp_dir):
        path = temp_dir / "commands.json"
        path.write_text("{not json")

        with pytest.raises(ConfigurationError):
            load_commands(path)

    def test_missing_url(self, temp_dir):
        path = temp_dir / "commands.json"
        path.write_text(json.dumps({"commands": [{"name": "x"}]}))

        with pytest.raises(ConfigurationError) as exc_info:
            load_commands(path)

        assert "url" in exc_info.value.message

    def test_sample_file_is_valid(self, temp_dir):
        sample = Path(__file__).resolve().parents[2] / "commands.json.sample"
        path = temp_dir / "commands.json"
        path.write_text(sample.read_text())

        document = load_commands(path)
        assert any(c.is_default for c in document.commands)


class TestConfigLoader:
    """Test settings loading and precedence."""

    def test_defaults(self):
        config = ConfigLoader(env={}).load()

        assert config.server.port == 8080
        assert config.server.host == "0.0.0.0"
        assert config.analytics.log_path == Path("usage.log")
        assert config.analytics.top_n == 10
        assert config.commands_path == Path("commands.json")

    def test_env_prefix(self):
        config = ConfigLoader(env={
            "BANG_SERVER_PORT": "9000",
            "BANG_ANALYTICS_LOG_PATH": "/var/log/bang/usage.log",
            "BANG_COMMANDS_PATH": "/etc/bang/commands.json",
            "BANG_LOGGING_LEVEL": "debug",
        }).load()

        assert config.server.port == 9000
        assert config.analytics.log_path == Path("/var/log/bang/usage.log")
        assert config.commands_path == Path("/etc/bang/commands.json")
        assert config.logging.level == "DEBUG"

    def test_port_overrides_prefixed_env(self):
        config = ConfigLoader(env={"BANG_SERVER_PORT": "9000", "PORT": "7000"}).load()
        assert config.server.port == 7000

    def test_yaml_source(self, temp_dir):
        path = temp_dir / "bangrouter.yaml"
        path.write_text(yaml.safe_dump({"server": {"port": 8181}, "analytics": {"top_n": 5}}))

        loader = ConfigLoader(env={})
        loader.add_source(path)
        config = loader.load()

        assert config.server.port == 8181
        assert config.analytics.top_n == 5

    def test_priority_and_env_precedence(self, temp_dir):
        low = temp_dir / "low.json"
        low.write_text(json.dumps({"server": {"port": 1111, "host": "127.0.0.1"}}))

        loader = ConfigLoader(env={"BANG_SERVER_PORT": "3333"})
        loader.add_source({"server": {"port": 2222}}, priority=50)
        loader.add_source(low, priority=10)
        config = loader.load()

        assert config.server.port == 3333
        assert config.server.host == "127.0.0.1"

    def test_env_file(self, temp_dir):
        path = temp_dir / ".env"
        path.write_text("# settings\nPORT=8282\nBANG_ANALYTICS_TOP_N='3'\n")

        loader = ConfigLoader(env={})
        loader.add_source(path)
        config = loader.load()

        assert config.server.port == 8282
        assert config.analytics.top_n == 3

    def test_missing_optional_file(self, temp_dir):
        loader = ConfigLoader(env={})
        loader.add_source(temp_dir / "absent.yaml")
        assert loader.load().server.port == 8080

    def test_invalid_port(self):
        with pytest.raises(ConfigurationError):
            ConfigLoader(env={"PORT": "70000"}).load()

    def test_invalid_log_level(self):
        with pytest.raises(ConfigurationError):
            ConfigLoader(env={"BANG_LOGGING_LEVEL": "chatty"}).load()

    def test_unknown_file_type(self, temp_dir):
        with pytest.raises(ConfigurationError):
            ConfigLoader(env={}).add_source(temp_dir / "settings.ini")

    def test_load_config_extra(self, temp_dir, monkeypatch):
        monkeypatch.chdir(temp_dir)
        config = load_config(extra_config={"analytics": {"top_n": 7}}, env={})

        assert isinstance(config, BangConfig)
        assert config.analytics.top_n == 7
