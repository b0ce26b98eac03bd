#!/usr/bin/env python3
"""
Configuration classes for the FFI runtime.

Provides configuration management for logging, contract verification and
callback dispatch.
"""

"""
Copyright (c) 2025 Firefly Software Solutions Inc.

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at:

    http://www.apache.org/licenses/LICENSE-2.0

Unless required by applicable law or agreed to in writing, software
distributed under the License is distributed on an "AS IS" BASIS,
WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
See the License for the specific language governing permissions and
limitations under the License.
"""

import json
import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import toml
import yaml
from pydantic import BaseModel, Field, field_validator


def _parse_bool(value: str) -> bool:
    return value.lower() in ("1", "true", "yes", "on")


class LoggingConfig(BaseModel):
    """Configuration for FireflyFFI logging."""

    level: str = Field(default="INFO", description="Logging level")
    format: str = Field(default="json", description="Log format: json or text")
    output_file: Optional[str] = Field(default=None, description="Log output file path")
    max_file_size_mb: int = Field(default=100, ge=1, description="Maximum log file size in MB")
    backup_count: int = Field(default=5, ge=1, description="Number of backup log files to keep")
    include_thread_info: bool = Field(
        default=True, description="Include thread information in logs"
    )

    @field_validator("level")
    @classmethod
    def validate_log_level(cls, v):
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of: {valid_levels}")
        return v.upper()

    @field_validator("format")
    @classmethod
    def validate_format(cls, v):
        valid_formats = {"json", "text"}
        if v.lower() not in valid_formats:
            raise ValueError(f"Log format must be one of: {valid_formats}")
        return v.lower()


class ContractConfig(BaseModel):
    """Configuration for startup contract verification."""

    manifest_file: Optional[str] = Field(
        default=None, description="Path to the contract manifest (YAML, JSON or TOML)"
    )
    verify_on_start: bool = Field(
        default=True, description="Verify contract version and checksums when the runtime starts"
    )


class CallbackConfig(BaseModel):
    """Configuration for callback dispatch."""

    log_dispatch: bool = Field(
        default=False, description="Log every callback dispatch and free at DEBUG level"
    )
    warn_on_leaked_handles: bool = Field(
        default=True, description="Warn at shutdown about handles the native side never freed"
    )


class RuntimeConfig(BaseModel):
    """Main configuration class for the FFI runtime."""

    namespace: Optional[str] = Field(
        default=None, description="Interface namespace; defaults to the contract manifest's"
    )
    library_path: Optional[str] = Field(
        default=None, description="Native library path, used by the command-line tools"
    )

    contract: ContractConfig = Field(
        default_factory=ContractConfig, description="Contract verification configuration"
    )
    callbacks: CallbackConfig = Field(
        default_factory=CallbackConfig, description="Callback dispatch configuration"
    )
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig, description="Logging configuration"
    )

    @classmethod
    def from_file(cls, config_path: Union[str, Path]) -> "RuntimeConfig":
        """Load configuration from a JSON, YAML or TOML file."""
        path = Path(config_path)
        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        content = path.read_text(encoding="utf-8")

        try:
            if path.suffix.lower() in [".yml", ".yaml"]:
                data = yaml.safe_load(content)
            elif path.suffix.lower() == ".toml":
                data = toml.loads(content)
            else:
                data = json.loads(content)
        except (json.JSONDecodeError, yaml.YAMLError, toml.TomlDecodeError) as e:
            raise ValueError(f"Failed to parse configuration file: {e}")

        return cls(**(data or {}))

    @classmethod
    def from_env(cls, prefix: str = "FIREFLYFFI_") -> "RuntimeConfig":
        """Load configuration from environment variables.

        Only explicitly set variables are applied; everything else keeps the
        model defaults.
        """
        return cls(**ConfigurationManager._get_env_overrides(prefix))

    def to_file(self, config_path: Union[str, Path], format: str = "auto") -> None:
        """Save configuration to a file."""
        path = Path(config_path)

        if format == "auto":
            suffix = path.suffix.lower()
            if suffix in [".yml", ".yaml"]:
                format = "yaml"
            elif suffix == ".toml":
                format = "toml"
            else:
                format = "json"

        data = self.model_dump(exclude_none=format == "toml")

        if format == "yaml":
            content = yaml.dump(data, default_flow_style=False, sort_keys=False, indent=2)
        elif format == "toml":
            content = toml.dumps(data)
        else:
            content = json.dumps(data, indent=2)

        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")

    def validate_configuration(self) -> List[str]:
        """Validate the configuration and return any warnings."""
        warnings = []

        if not self.contract.verify_on_start:
            warnings.append(
                "Contract verification is disabled; skewed builds will not be detected at startup"
            )

        if self.contract.verify_on_start and not self.contract.manifest_file:
            warnings.append("No contract manifest file configured; one must be passed explicitly")

        if self.callbacks.log_dispatch and self.logging.level != "DEBUG":
            warnings.append("log_dispatch has no visible effect unless the log level is DEBUG")

        return warnings


class ConfigurationManager:
    """Utility class for managing configurations."""

    @staticmethod
    def create_default_config_file(path: Union[str, Path], format: str = "yaml") -> None:
        """Create a default configuration file."""
        config = RuntimeConfig()
        config.to_file(path, format)

    @staticmethod
    def merge_configs(*configs: RuntimeConfig) -> RuntimeConfig:
        """Merge multiple configurations, with later configs taking precedence."""
        if not configs:
            return RuntimeConfig()

        merged_data = configs[0].model_dump()

        for config in configs[1:]:
            config_data = config.model_dump(exclude_unset=True)
            merged_data = ConfigurationManager._deep_merge(merged_data, config_data)

        return RuntimeConfig(**merged_data)

    @staticmethod
    def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
        """Deep merge two dictionaries."""
        result = base.copy()

        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = ConfigurationManager._deep_merge(result[key], value)
            else:
                result[key] = value

        return result

    @staticmethod
    def load_config(
        config_file: Optional[Union[str, Path]] = None,
        env_prefix: str = "FIREFLYFFI_",
        use_env: bool = True,
    ) -> RuntimeConfig:
        """Load configuration from file and/or environment variables."""
        if config_file:
            try:
                base_config = RuntimeConfig.from_file(config_file)
            except FileNotFoundError:
                base_config = RuntimeConfig()
        else:
            base_config = RuntimeConfig()

        if use_env:
            env_overrides = ConfigurationManager._get_env_overrides(env_prefix)
            if env_overrides:
                base_data = base_config.model_dump(exclude_unset=True)
                merged_data = ConfigurationManager._deep_merge(base_data, env_overrides)
                return RuntimeConfig(**merged_data)

        return base_config

    @staticmethod
    def _get_env_overrides(prefix: str = "FIREFLYFFI_") -> Dict[str, Any]:
        """Get only the environment variable overrides that are actually set."""
        config_data = {}

        env_mappings = {
            f"{prefix}NAMESPACE": ("namespace", str),
            f"{prefix}LIBRARY_PATH": ("library_path", str),
            f"{prefix}CONTRACT_MANIFEST": ("contract.manifest_file", str),
            f"{prefix}VERIFY_ON_START": ("contract.verify_on_start", _parse_bool),
            f"{prefix}LOG_DISPATCH": ("callbacks.log_dispatch", _parse_bool),
            f"{prefix}LOG_LEVEL": ("logging.level", str),
            f"{prefix}LOG_FORMAT": ("logging.format", str),
            f"{prefix}LOG_FILE": ("logging.output_file", str),
        }

        for env_var, (config_key, converter) in env_mappings.items():
            value = os.getenv(env_var)
            if value is not None:
                try:
                    converted_value = converter(value)
                    if "." in config_key:
                        parts = config_key.split(".")
                        current = config_data
                        for part in parts[:-1]:
                            if part not in current:
                                current[part] = {}
                            current = current[part]
                        current[parts[-1]] = converted_value
                    else:
                        config_data[config_key] = converted_value
                except (ValueError, TypeError) as e:
                    raise ValueError(f"Invalid value for {env_var}: {value} ({e})")

        return config_data
