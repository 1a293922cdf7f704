"""Configuration management module.

This module handles persistent configuration storage using TOML format.
Stores user preferences like the default provider, region and AI backend.

Security:
- Config file permissions: 0600 (owner read/write only)
- Path validation
- Input validation for known keys
"""

import logging
import os
import tempfile
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any

import tomli
import tomlkit

from rig.exceptions import ConfigError

logger = logging.getLogger(__name__)

SUPPORTED_PROVIDERS = ("aws", "gcp", "azure")
SUPPORTED_AI_PROVIDERS = ("anthropic", "openai", "ollama", "local")
ENVIRONMENTS = ("dev", "staging", "production")

TRUE_VALUES = ("1", "true", "yes", "on")
FALSE_VALUES = ("0", "false", "no", "off")


def parse_bool(value: Any) -> bool:
    """Parse a boolean from a config value or CLI string.

    Raises:
        ConfigError: Value is not a recognized boolean
    """
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in TRUE_VALUES:
        return True
    if text in FALSE_VALUES:
        return False
    raise ConfigError(f"Expected a boolean (true/false), got: {value}")


@dataclass
class RigConfig:
    """rig configuration data."""

    default_provider: str = "gcp"
    default_region: str = "us-central1"
    default_environment: str = "dev"
    gcp_project: str | None = None
    aws_region: str = "us-east-1"
    ai_provider: str = "local"
    management_enabled: bool = False

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary, excluding None values."""
        data = asdict(self)
        # TOML has no null
        return {k: v for k, v in data.items() if v is not None}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RigConfig":
        """Create from dictionary, ignoring unknown keys."""
        return cls(
            default_provider=data.get("default_provider", "gcp"),
            default_region=data.get("default_region", "us-central1"),
            default_environment=data.get("default_environment", "dev"),
            gcp_project=data.get("gcp_project"),
            aws_region=data.get("aws_region", "us-east-1"),
            ai_provider=data.get("ai_provider", "local"),
            management_enabled=parse_bool(data.get("management_enabled", False)),
        )

    @classmethod
    def keys(cls) -> tuple[str, ...]:
        return tuple(f.name for f in fields(cls))


class ConfigManager:
    """Manage the rig configuration file.

    Configuration is stored at ~/.rig/config.toml with secure permissions.
    RIG_CONFIG or --config point at another file.
    """

    DEFAULT_CONFIG_DIR = Path.home() / ".rig"
    DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.toml"

    @classmethod
    def _validate_config_path(cls, path: Path) -> Path:
        """Validate configuration file path for security.

        Ensures the path is within allowed directories to prevent path traversal attacks.

        Raises:
            ConfigError: If path is outside allowed directories
        """
        resolved_path = path.resolve()

        allowed_dirs = [
            cls.DEFAULT_CONFIG_DIR.resolve(),
            Path.cwd().resolve(),
            Path(tempfile.gettempdir()).resolve(),
        ]

        for allowed_dir in allowed_dirs:
            try:
                resolved_path.relative_to(allowed_dir)
                return resolved_path
            except ValueError:
                continue

        raise ConfigError(
            f"Config path outside allowed directories: {resolved_path}\n"
            f"Allowed directories:\n"
            f"  - {cls.DEFAULT_CONFIG_DIR}\n"
            f"  - {Path.cwd()}"
        )

    @classmethod
    def get_config_path(cls, custom_path: str | None = None) -> Path:
        """Get configuration file path.

        Args:
            custom_path: Custom config file path (default: RIG_CONFIG, then
                ~/.rig/config.toml)

        Raises:
            ConfigError: If path is outside allowed directories
        """
        custom_path = custom_path or os.getenv("RIG_CONFIG")
        if custom_path:
            return cls._validate_config_path(Path(custom_path).expanduser())
        return cls.DEFAULT_CONFIG_FILE

    @classmethod
    def ensure_config_dir(cls) -> Path:
        """Ensure config directory exists with secure permissions.

        Raises:
            ConfigError: If directory creation fails
        """
        try:
            cls.DEFAULT_CONFIG_DIR.mkdir(parents=True, exist_ok=True)
            os.chmod(cls.DEFAULT_CONFIG_DIR, 0o700)
            logger.debug(f"Config directory ready: {cls.DEFAULT_CONFIG_DIR}")
            return cls.DEFAULT_CONFIG_DIR
        except OSError as e:
            raise ConfigError(f"Failed to create config directory: {e}") from e

    @classmethod
    def load_config(cls, custom_path: str | None = None) -> RigConfig:
        """Load configuration from file, falling back to defaults.

        Raises:
            ConfigError: If the file exists but cannot be read or parsed
        """
        config_path = cls.get_config_path(custom_path)

        if not config_path.exists():
            logger.debug("Config file not found, using defaults")
            return RigConfig()

        try:
            mode = config_path.stat().st_mode & 0o777
            if mode & 0o077:
                logger.warning(
                    f"Config file has insecure permissions: {oct(mode)}. Fixing to 0600..."
                )
                os.chmod(config_path, 0o600)

            with open(config_path, "rb") as f:
                data = tomli.load(f)

            logger.debug(f"Loaded config from: {config_path}")
            return RigConfig.from_dict(data)

        except (OSError, tomli.TOMLDecodeError) as e:
            raise ConfigError(f"Failed to load config: {e}") from e

    @classmethod
    def save_config(cls, config: RigConfig, custom_path: str | None = None) -> Path:
        """Save configuration to file.

        Comments and formatting of an existing file are preserved.

        Returns:
            Path the configuration was written to

        Raises:
            ConfigError: If saving fails or path is outside allowed directories
        """
        temp_path: Path | None = None
        try:
            config_path = cls.get_config_path(custom_path)
            if config_path == cls.DEFAULT_CONFIG_FILE:
                cls.ensure_config_dir()
            else:
                config_path.parent.mkdir(parents=True, exist_ok=True)

            # Temporary file and atomic rename
            temp_path = config_path.with_suffix(".tmp")

            if config_path.exists():
                with open(config_path) as f:
                    doc = tomlkit.load(f)
            else:
                doc = tomlkit.document()
            for key, value in config.to_dict().items():
                doc[key] = value
            if config.gcp_project is None and "gcp_project" in doc:
                del doc["gcp_project"]

            with open(temp_path, "w") as f:
                tomlkit.dump(doc, f)

            os.chmod(temp_path, 0o600)
            temp_path.replace(config_path)

            logger.debug(f"Saved config to: {config_path}")
            return config_path

        except OSError as e:
            if temp_path and temp_path.exists():
                temp_path.unlink()
            raise ConfigError(f"Failed to save config: {e}") from e

    @classmethod
    def set_value(cls, key: str, value: str, custom_path: str | None = None) -> RigConfig:
        """Validate and persist a single key from its string form.

        Raises:
            ConfigError: Unknown key or invalid value
        """
        if key not in RigConfig.keys():
            raise ConfigError(
                f"Unknown config key: {key} (valid keys: {', '.join(RigConfig.keys())})"
            )
        return cls.update_config(custom_path, **{key: cls._coerce(key, value)})

    @staticmethod
    def _coerce(key: str, value: str) -> Any:
        if key == "management_enabled":
            return parse_bool(value)
        if key == "gcp_project":
            return value or None

        choices = {
            "default_provider": SUPPORTED_PROVIDERS,
            "ai_provider": SUPPORTED_AI_PROVIDERS,
            "default_environment": ENVIRONMENTS,
        }.get(key)
        value = value.strip()
        if choices is not None:
            value = value.lower()
            if value not in choices:
                raise ConfigError(f"Invalid value for {key}: {value} (choose from {', '.join(choices)})")
        if not value:
            raise ConfigError(f"{key} cannot be empty")
        return value

    @classmethod
    def update_config(cls, custom_path: str | None = None, **updates: Any) -> RigConfig:
        """Update configuration values.

        Raises:
            ConfigError: If update fails
        """
        config = cls.load_config(custom_path)

        for key, value in updates.items():
            if hasattr(config, key):
                setattr(config, key, value)
            else:
                logger.warning(f"Unknown config key: {key}")

        cls.save_config(config, custom_path)
        return config


__all__ = ["ConfigManager", "RigConfig", "parse_bool"]
