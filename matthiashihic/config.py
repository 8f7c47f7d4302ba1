"""
Configuration management for the matthiashihic compiler

This module provides a small configuration system with:
- Sensible defaults that work out of the box
- Clear validation with helpful error messages
- YAML or JSON configuration files
- Environment variable support (MATTHIASHIHIC_*)

Precedence is defaults < file < environment; command line flags are applied
on top by the CLI.
"""

import json
import logging
import math
import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, cast
from urllib.parse import urlparse

import yaml

from .codegen import (
    DEFAULT_API_KEY_ENV,
    DEFAULT_CONNECT_TIMEOUT,
    DEFAULT_ENDPOINT_URL,
    DEFAULT_MODEL,
)
from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)

ENV_PREFIX = "MATTHIASHIHIC_"


@dataclass
class CompilerConfig:
    """Settings baked into generated programs"""

    default_model: str = DEFAULT_MODEL
    endpoint_url: str = DEFAULT_ENDPOINT_URL
    api_key_env: str = DEFAULT_API_KEY_ENV
    api_key: str | None = None
    keystream_label: str = "matthiashihic"
    connect_timeout: float = DEFAULT_CONNECT_TIMEOUT

    def validate(self) -> list[str]:
        """Validate compiler configuration"""
        errors: list[str] = []

        for name in ("default_model", "endpoint_url", "api_key_env", "keystream_label"):
            value = getattr(self, name)
            if not isinstance(value, str):
                errors.append(f"{name} must be a string, got {value!r}")
        if errors:
            return errors + self._timeout_errors()

        if not self.default_model.strip():
            errors.append("default_model cannot be empty")

        parsed = urlparse(self.endpoint_url)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            errors.append(f"endpoint_url must be an absolute http(s) URL, got {self.endpoint_url!r}")

        if not self.api_key_env or not self.api_key_env.replace("_", "").isalnum():
            errors.append(f"api_key_env must be a valid environment variable name, got {self.api_key_env!r}")

        if not self.keystream_label:
            errors.append("keystream_label cannot be empty")

        return errors + self._timeout_errors()

    def _timeout_errors(self) -> list[str]:
        timeout = self.connect_timeout
        if isinstance(timeout, bool) or not isinstance(timeout, (int, float)):
            return [f"connect_timeout must be a number, got {timeout!r}"]
        # inf and nan have no literal form in generated source
        if not math.isfinite(timeout):
            return [f"connect_timeout must be finite, got {timeout}"]
        if timeout <= 0:
            return [f"connect_timeout must be positive, got {timeout}"]
        return []


@dataclass
class BuildConfig:
    """Settings for turning generated source into an executable"""

    bundle: bool = True
    interpreter: str = "/usr/bin/env python3"
    pip_args: list[str] = field(default_factory=list)
    keep_build_dir: bool = False
    build_dir_prefix: str = "matthiashihic"

    def validate(self) -> list[str]:
        errors: list[str] = []
        if not isinstance(self.interpreter, str):
            errors.append(f"interpreter must be a string, got {self.interpreter!r}")
        elif not self.interpreter.strip():
            errors.append("interpreter cannot be empty")
        if not isinstance(self.build_dir_prefix, str):
            errors.append(f"build_dir_prefix must be a string, got {self.build_dir_prefix!r}")
        elif not self.build_dir_prefix:
            errors.append("build_dir_prefix cannot be empty")
        if not isinstance(self.pip_args, list) or not all(isinstance(a, str) for a in self.pip_args):
            errors.append(f"pip_args must be a list of strings, got {self.pip_args!r}")
        return errors


@dataclass
class Config:
    """Main configuration class"""

    compiler: CompilerConfig = field(default_factory=CompilerConfig)
    build: BuildConfig = field(default_factory=BuildConfig)
    version: str = "1.0"

    def validate(self) -> list[str]:
        """Validate entire configuration"""
        return self.compiler.validate() + self.build.validate()

    # ---- Private helpers for environment overrides ----
    _ENV_KEYS = {
        "MATTHIASHIHIC_MODEL": "compiler.default_model",
        "MATTHIASHIHIC_ENDPOINT_URL": "compiler.endpoint_url",
        "MATTHIASHIHIC_API_KEY_ENV": "compiler.api_key_env",
        "MATTHIASHIHIC_CONNECT_TIMEOUT": "compiler.connect_timeout",
        "MATTHIASHIHIC_BUNDLE": "build.bundle",
        "MATTHIASHIHIC_INTERPRETER": "build.interpreter",
        "MATTHIASHIHIC_KEEP_BUILD_DIR": "build.keep_build_dir",
    }

    def _coerce_override_value(self, path: str, raw: str) -> tuple[bool, Any]:
        current = self._get_value_by_path(path)
        if isinstance(current, bool):
            return True, raw.strip().lower() in {"1", "true", "yes", "on"}
        if isinstance(current, (int, float)):
            try:
                return True, float(raw)
            except ValueError:
                logger.warning("Ignoring invalid float for %s: %r", path, raw)
                return False, None
        return True, raw

    def _get_value_by_path(self, path: str) -> Any:
        section, name = path.split(".", 1)
        return getattr(getattr(self, section), name)

    def _apply_override(self, path: str, value: Any) -> None:
        section, name = path.split(".", 1)
        setattr(getattr(self, section), name, value)

    def apply_env_overrides(self):
        """Apply environment variable overrides"""
        for env_key, path in self._ENV_KEYS.items():
            raw = os.environ.get(env_key)
            if raw is None:
                continue
            ok, value = self._coerce_override_value(path, raw)
            if not ok:
                continue
            self._apply_override(path, value)
            logger.debug("Config override from %s applied to %s", env_key, path)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization; the API key is never written out"""
        data = asdict(self)
        data["compiler"].pop("api_key", None)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Config":
        """Create from dictionary, ignoring unknown keys"""
        config = cls()

        compiler_raw = data.get("compiler")
        if isinstance(compiler_raw, dict):
            known = set(CompilerConfig.__dataclass_fields__)
            compiler_data = cast("dict[str, Any]", compiler_raw)
            config.compiler = CompilerConfig(
                **{k: v for k, v in compiler_data.items() if k in known}
            )

        build_raw = data.get("build")
        if isinstance(build_raw, dict):
            known = set(BuildConfig.__dataclass_fields__)
            build_data = cast("dict[str, Any]", build_raw)
            config.build = BuildConfig(**{k: v for k, v in build_data.items() if k in known})

        if "version" in data:
            config.version = str(data["version"])

        return config


class ConfigManager:
    """Simple configuration manager"""

    DEFAULT_CONFIG_PATH = Path.home() / ".matthiashihic" / "config.yaml"

    @staticmethod
    def load(path: str | Path | None = None, strict: bool = True) -> Config:
        """
        Load configuration from file or create default.

        Precedence: defaults < file < env

        Raises:
            ConfigurationError: If an explicitly given file is unreadable, or
                the result is invalid and strict is set
        """
        config_path = Path(path) if path else ConfigManager.DEFAULT_CONFIG_PATH
        config = Config()

        if config_path.exists():
            try:
                with open(config_path, encoding="utf-8") as f:
                    if config_path.suffix in [".yaml", ".yml"]:
                        data = yaml.safe_load(f) or {}
                    else:
                        data = json.load(f)
            except (OSError, ValueError, yaml.YAMLError) as e:
                raise ConfigurationError(
                    f"Failed to load config from {config_path}: {e}", cause=e
                ) from e

            if not isinstance(data, dict):
                raise ConfigurationError(
                    f"Configuration file must contain a mapping at the top level: {config_path}"
                )
            config = Config.from_dict(data)
            logger.debug("Loaded configuration from %s", config_path)
        elif path:
            raise ConfigurationError(f"Configuration file not found: {config_path}")
        else:
            logger.debug("No configuration file found, using defaults")

        config.apply_env_overrides()

        errors = config.validate()
        if errors and strict:
            preview = "; ".join(errors[:3])
            raise ConfigurationError(f"Invalid configuration: {preview}")
        for error in errors:
            logger.warning("Config warning: %s", error)

        return config

    @staticmethod
    def save(config: Config, path: str | Path | None = None):
        """Save configuration to file"""
        config_path = Path(path) if path else ConfigManager.DEFAULT_CONFIG_PATH
        config_path.parent.mkdir(parents=True, exist_ok=True)

        with open(config_path, "w", encoding="utf-8") as f:
            if config_path.suffix in [".yaml", ".yml"]:
                yaml.dump(config.to_dict(), f, default_flow_style=False, sort_keys=False)
            else:
                json.dump(config.to_dict(), f, indent=2)

        logger.info("Configuration saved to %s", config_path)
