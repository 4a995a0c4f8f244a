"""
Configuration loader for bangrouter.

This module provides configuration management with:
- Multiple configuration sources (dicts, JSON, YAML and .env files, env vars)
- Schema validation through pydantic
- Type coercion for environment values
- Priority-based merging
- Loading of the command configuration document
"""

import os
import json
import yaml
from pathlib import Path
from typing import Optional, Dict, Any, List, Union
from pydantic import BaseModel, Field, field_validator, ValidationError, ConfigDict

from .logging import get_logger
from .errors import ConfigurationError
from ..commands.models import CommandsDocument


logger = get_logger("bangrouter.config")

ENV_PREFIX = "BANG_"


class ConfigSource(BaseModel):
    """Configuration source definition."""
    path: Optional[Path] = None
    data: Dict[str, Any] = Field(default_factory=dict)
    priority: int = 0
    source_type: str = "dict"

    model_config = ConfigDict(arbitrary_types_allowed=True)


class ServerConfig(BaseModel):
    """HTTP server configuration."""
    host: str = "0.0.0.0"
    port: int = 8080

    @field_validator('port')
    @classmethod
    def validate_port(cls, v):
        """Ensure port is in the TCP range."""
        if not 0 < v < 65536:
            raise ValueError(f"Invalid port: {v}")
        return v


class AnalyticsConfig(BaseModel):
    """Usage analytics configuration."""
    log_path: Path = Path("usage.log")
    top_n: int = 10


class LoggingConfig(BaseModel):
    """Logging configuration."""
    level: str = "INFO"
    directory: Path = Field(default_factory=lambda: Path.home() / ".bangrouter" / "logs")
    enable_json: bool = False
    enable_sentry: bool = False
    sentry_dsn: Optional[str] = None

    @field_validator('level')
    @classmethod
    def validate_level(cls, v):
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Invalid log level: {v}")
        return v.upper()


class BangConfig(BaseModel):
    """Main bangrouter configuration."""
    app_name: str = "bangrouter"
    commands_path: Path = Path("commands.json")

    server: ServerConfig = Field(default_factory=ServerConfig)
    analytics: AnalyticsConfig = Field(default_factory=AnalyticsConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = ConfigDict(validate_assignment=True)


def detect_source_type(path: Path) -> str:
    """Detect configuration file type from its suffix."""
    suffix = path.suffix.lower()
    if suffix == ".json":
        return "json"
    elif suffix in (".yaml", ".yml"):
        return "yaml"
    elif suffix == ".env" or path.name == ".env":
        return "env"
    else:
        raise ConfigurationError(f"Unknown config file type: {suffix or path.name}")


def _format_validation_error(error: ValidationError) -> str:
    errors = []
    for item in error.errors():
        field = ".".join(str(x) for x in item["loc"])
        errors.append(f"{field}: {item['msg']}")
    return "; ".join(errors)


class ConfigLoader:
    """Configuration loader with multiple source support."""

    def __init__(self, env: Optional[Dict[str, str]] = None):
        """
        Initialize configuration loader.

        Args:
            env: Environment mapping to read overrides from (defaults to os.environ)
        """
        self._sources: List[ConfigSource] = []
        self._config: Optional[BangConfig] = None
        self._env = env if env is not None else os.environ

    def add_source(
        self,
        source: Union[str, Path, Dict[str, Any]],
        priority: int = 0,
        source_type: Optional[str] = None
    ) -> None:
        """
        Add configuration source.

        Args:
            source: Configuration source (file path or dict)
            priority: Source priority (higher wins)
            source_type: Source type (auto-detected if None)
        """
        if isinstance(source, (str, Path)):
            path = Path(source)
            if not source_type:
                source_type = detect_source_type(path)

            self._sources.append(ConfigSource(
                path=path,
                priority=priority,
                source_type=source_type
            ))
        else:
            self._sources.append(ConfigSource(
                data=source,
                priority=priority,
                source_type="dict"
            ))

        self._sources.sort(key=lambda s: s.priority)

    def load(self) -> BangConfig:
        """
        Load configuration from all sources.

        Sources are merged lowest priority first, then BANG_* environment
        variables, then the bare PORT variable.

        Returns:
            Merged configuration
        """
        merged_data: Dict[str, Any] = {}

        for source in self._sources:
            data = self._load_source(source)
            merged_data = self._deep_merge(merged_data, data)

        merged_data = self._deep_merge(merged_data, self._load_env_vars())

        port = self._env.get("PORT")
        if port:
            merged_data = self._deep_merge(merged_data, {"server": {"port": self._convert_value(port)}})

        try:
            self._config = BangConfig(**merged_data)
        except ValidationError as e:
            raise ConfigurationError(
                f"Configuration validation failed: {_format_validation_error(e)}"
            ) from e

        logger.info("configuration_loaded", sources=len(self._sources))
        return self._config

    def _load_source(self, source: ConfigSource) -> Dict[str, Any]:
        """Load data from a configuration source."""
        if source.path is None:
            return source.data

        if not source.path.exists():
            logger.warning("config_file_not_found", path=str(source.path))
            return {}

        content = source.path.read_text(encoding="utf-8")

        try:
            if source.source_type == "json":
                return json.loads(content)
            elif source.source_type == "yaml":
                return yaml.safe_load(content) or {}
            elif source.source_type == "env":
                return self._parse_env_file(content)
        except (json.JSONDecodeError, yaml.YAMLError) as e:
            raise ConfigurationError(f"Failed to parse {source.path}: {e}", cause=e) from e

        raise ConfigurationError(f"Unknown source type: {source.source_type}")

    def _parse_env_file(self, content: str) -> Dict[str, Any]:
        """Parse .env file format using the same key rules as the environment."""
        entries = {}

        for line in content.splitlines():
            line = line.strip()
            if not line or line.startswith("#") or "=" not in line:
                continue

            key, value = line.split("=", 1)
            entries[key.strip()] = value.strip().strip('"').strip("'")

        result = self._nest_env(entries)
        if entries.get("PORT"):
            result = self._deep_merge(result, {"server": {"port": self._convert_value(entries["PORT"])}})
        return result

    def _load_env_vars(self) -> Dict[str, Any]:
        """Load configuration from BANG_* environment variables."""
        return self._nest_env(self._env)

    def _nest_env(self, entries: Dict[str, str]) -> Dict[str, Any]:
        """Map BANG_SECTION_FIELD keys onto {section: {field: value}}."""
        result: Dict[str, Any] = {}

        for key, value in entries.items():
            if not key.startswith(ENV_PREFIX):
                continue

            key = key[len(ENV_PREFIX):].lower()
            section, _, name = key.partition("_")

            if name and section in BangConfig.model_fields:
                result.setdefault(section, {})[name] = self._convert_value(value)
            else:
                result[key] = self._convert_value(value)

        return result

    def _convert_value(self, value: str) -> Any:
        """Convert string value to appropriate type."""
        if value.lower() in ("true", "yes", "on"):
            return True
        elif value.lower() in ("false", "no", "off"):
            return False

        try:
            if "." in value:
                return float(value)
            else:
                return int(value)
        except ValueError:
            pass

        if value.startswith("~"):
            return Path(value).expanduser()

        return value

    def _deep_merge(self, base: Dict[str, Any], update: Dict[str, Any]) -> Dict[str, Any]:
        """Deep merge two dictionaries."""
        result = base.copy()

        for key, value in update.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._deep_merge(result[key], value)
            else:
                result[key] = value

        return result

    def get_config(self) -> BangConfig:
        """Get current configuration."""
        if self._config is None:
            raise ConfigurationError("Configuration not loaded")
        return self._config


def load_config(
    config_paths: Optional[List[Union[str, Path]]] = None,
    extra_config: Optional[Dict[str, Any]] = None,
    env: Optional[Dict[str, str]] = None
) -> BangConfig:
    """
    Load configuration from standard locations.

    Args:
        config_paths: Additional configuration paths
        extra_config: Extra configuration to merge (highest file priority)
        env: Environment mapping (defaults to os.environ)

    Returns:
        Loaded configuration
    """
    loader = ConfigLoader(env=env)

    default_paths = [
        Path.home() / ".bangrouter" / "config.yaml",
        Path("./bangrouter.yaml"),
        Path("./bangrouter.json"),
        Path("./.env"),
    ]

    for path in default_paths:
        if path.exists():
            loader.add_source(path, priority=10)

    if config_paths:
        for i, path in enumerate(config_paths):
            loader.add_source(path, priority=20 + i)

    if extra_config:
        loader.add_source(extra_config, priority=100)

    return loader.load()


def load_commands(path: Union[str, Path]) -> CommandsDocument:
    """
    Load and validate the command configuration document.

    Args:
        path: Path to a .json, .yaml or .yml commands file

    Returns:
        Validated commands document
    """
    path = Path(path)
    if not path.exists():
        raise ConfigurationError(
            f"Configuration file '{path}' not found. "
            f"Copy 'commands.json.sample' to '{path.name}' and customize it."
        )

    source_type = detect_source_type(path)
    if source_type == "env":
        raise ConfigurationError(f"Commands file must be JSON or YAML: {path}")

    content = path.read_text(encoding="utf-8")
    try:
        data = json.loads(content) if source_type == "json" else yaml.safe_load(content)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Failed to parse commands file {path}: {e}", cause=e) from e

    try:
        document = CommandsDocument.model_validate(data or {})
    except ValidationError as e:
        raise ConfigurationError(
            f"Invalid commands file {path}: {_format_validation_error(e)}", cause=e
        ) from e

    logger.info("commands_loaded", path=str(path), count=len(document.commands))
    return document


__all__ = [
    'BangConfig',
    'ServerConfig',
    'AnalyticsConfig',
    'LoggingConfig',
    'ConfigLoader',
    'load_config',
    'load_commands',
    'detect_source_type',
]
