"""Configuration management for appmodel."""

import os
from pathlib import Path
from typing import Any, Dict, List

PARAMETERS_ENV_PREFIX = "Parameters__"
PARAMETERS_CONFIG_PREFIX = "Parameters:"


def _read_parameters_from_environment() -> Dict[str, str]:
    """Map ``Parameters__<name>`` environment variables to ``Parameters:<name>`` keys."""
    parameters = {}
    for key, value in os.environ.items():
        if key.startswith(PARAMETERS_ENV_PREFIX) and len(key) > len(PARAMETERS_ENV_PREFIX):
            name = key[len(PARAMETERS_ENV_PREFIX):].replace("__", ":")
            parameters[f"{PARAMETERS_CONFIG_PREFIX}{name}"] = value
    return parameters


class Config:
    """Configuration manager for appmodel with environment-driven defaults."""

    def __init__(self, config_dir: str | None = None):
        """Initialize configuration.

        Args:
            config_dir: Optional directory that relative definition paths are resolved against
        """
        self.config_dir = Path(config_dir) if config_dir else Path.cwd()

        apphost_file = os.environ.get("APPHOST_FILE", "apphost.yaml")
        apphost_dir = os.environ.get("APPHOST_DIR", "apphost.d")

        self._defaults = {
            # Definition sources
            "apphost_file": str(self.config_dir / apphost_file),
            "apphost_dir": str(self.config_dir / apphost_dir),

            # Publishing
            "publisher": os.environ.get("APPMODEL_PUBLISHER", ""),
            "manifest_output_path": os.environ.get("MANIFEST_OUTPUT_PATH", "manifest.json"),
            "validate_manifest": os.environ.get("VALIDATE_MANIFEST", "true").lower() in ["true", "1", "yes"],

            # Logging
            "log_level": os.environ.get("LOG_LEVEL", "INFO"),
            "log_dir": os.environ.get("LOG_DIR", ""),
            "log_max_bytes": self._read_int("LOG_MAX_BYTES", "10485760"),  # 10MB
            "log_backup_count": self._read_int("LOG_BACKUP_COUNT", "5"),

            # Parameter values keyed as Parameters:<name>
            "parameters": _read_parameters_from_environment(),
        }

        self._load_from_environment()

    @staticmethod
    def _read_int(env_var: str, default: str) -> int:
        value = os.environ.get(env_var, default)
        try:
            return int(value)
        except ValueError:
            raise ValueError(f"Invalid integer value for {env_var}: {value}")

    def _load_from_environment(self):
        """Apply boolean overrides from environment variables."""
        bool_env_mapping = {
            "VALIDATE_MANIFEST": "validate_manifest",
        }

        for env_var, config_key in bool_env_mapping.items():
            value = os.getenv(env_var)
            if value is not None:
                if value.lower() in ("true", "1", "yes", "on"):
                    self._defaults[config_key] = True
                elif value.lower() in ("false", "0", "no", "off"):
                    self._defaults[config_key] = False
                else:
                    raise ValueError(f"Invalid boolean value for {env_var}: {value}")

    def __getattr__(self, name: str) -> Any:
        """Get configuration value."""
        if name in self._defaults:
            return self._defaults[name]
        raise AttributeError(f"'{self.__class__.__name__}' object has no attribute '{name}'")

    def __setattr__(self, name: str, value: Any) -> None:
        """Prevent modification of configuration after initialization."""
        try:
            defaults = object.__getattribute__(self, '_defaults')
            if name in defaults:
                raise AttributeError(f"Configuration is immutable: cannot set '{name}'")
        except AttributeError as exc:
            if "immutable" in str(exc):
                raise
        super().__setattr__(name, value)

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value with optional default."""
        return self._defaults.get(key, default)

    def validate(self) -> List[str]:
        """Validate configuration and return list of errors.

        Returns:
            List of validation error messages. Empty list means valid.
        """
        errors = []

        if self.publisher and self.publisher != "manifest":
            errors.append(f"Unknown publisher: {self.publisher}")

        if self.log_level.upper() not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            errors.append(f"Invalid log level: {self.log_level}")

        output_dir = Path(self.manifest_output_path).resolve().parent
        if output_dir.exists() and not os.access(output_dir, os.W_OK):
            errors.append(f"Manifest output directory not writable: {output_dir}")

        if self.log_dir:
            log_dir = Path(self.log_dir)
            if log_dir.exists() and not os.access(log_dir, os.W_OK):
                errors.append(f"Log directory not writable: {log_dir}")

        return errors

    def to_dict(self) -> dict[str, Any]:
        """Convert configuration to dictionary."""
        data = self._defaults.copy()
        data["parameters"] = dict(self._defaults["parameters"])
        return data

    def __str__(self) -> str:
        return f"Config(config_dir={self.config_dir})"

    def __repr__(self) -> str:
        return f"Config(config_dir={self.config_dir}, apphost_file={self.apphost_file})"

    def get_startup_summary(self) -> Dict[str, Any]:
        """Get startup configuration summary for logging (without secrets).

        Returns:
            Dictionary with key configuration values for startup logging
        """
        return {
            "apphost_file": self.apphost_file,
            "apphost_dir": self.apphost_dir,
            "publisher": self.publisher or "none",
            "manifest_output_path": self.manifest_output_path,
            "validate_manifest": self.validate_manifest,
            "log_level": self.log_level,
            "log_dir": self.log_dir or "disabled",
            "configured_parameters": sorted(
                key[len(PARAMETERS_CONFIG_PREFIX):] for key in self.parameters
            ),
        }

    @classmethod
    def load_runtime_config(cls) -> 'Config':
        """Load runtime configuration from the process environment."""
        return cls()
