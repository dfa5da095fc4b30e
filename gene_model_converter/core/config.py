#!/usr/bin/env python3

"""
Configuration management for the gene model converter.

Centralized configuration with support for file-based configuration
and environment variable overrides.
"""

import os
import json
from dataclasses import dataclass, asdict, field
from typing import Optional, Dict, Any, List

import yaml

from .exceptions import ConfigurationError

LIST_FIELDS = ('sources', 'skip_sources')


def split_list(value) -> List[str]:
    """Accept either a list or a comma-separated string."""
    if value is None:
        return []
    if isinstance(value, str):
        items = value.split(',')
    else:
        items = value
    return [str(item).strip() for item in items if str(item).strip()]


def _bool(value: str) -> bool:
    return value.lower() in ('true', '1', 'yes')


@dataclass
class ConverterConfig:
    """Centralized configuration for the gene model converter."""

    # Input / output
    input_path: Optional[str] = None
    output_path: Optional[str] = None

    # Filters
    sources: List[str] = field(default_factory=list)
    id_list_path: Optional[str] = None
    skip_sources: List[str] = field(default_factory=list)
    keep_unconverted: bool = False

    # Reporting
    verbose: bool = False
    progress_interval: int = 100000

    # Performance settings
    memory_limit_mb: int = 4096
    enable_memory_monitoring: bool = True

    # Advanced settings
    debug_mode: bool = False

    @classmethod
    def from_file(cls, config_path: str) -> 'ConverterConfig':
        """Load configuration from file (JSON or YAML)."""
        if not os.path.exists(config_path):
            raise ConfigurationError(f"Configuration file not found: {config_path}")

        try:
            with open(config_path, 'r') as f:
                if config_path.lower().endswith(('.yaml', '.yml')):
                    config_data = yaml.safe_load(f)
                else:
                    config_data = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Invalid configuration file format: {e}")
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML configuration file format: {e}")
        except OSError as e:
            raise ConfigurationError(f"Error loading configuration: {e}")

        if not isinstance(config_data, dict):
            raise ConfigurationError(f"Configuration file must contain a mapping: {config_path}")

        return cls.from_dict(config_data)

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any]) -> 'ConverterConfig':
        """Create configuration from dictionary."""
        # Filter out unknown keys
        known_keys = set(cls.__dataclass_fields__.keys())
        filtered_dict = {k: v for k, v in config_dict.items() if k in known_keys}

        for key in LIST_FIELDS:
            if key in filtered_dict:
                filtered_dict[key] = split_list(filtered_dict[key])

        try:
            return cls(**filtered_dict)
        except TypeError as e:
            raise ConfigurationError(f"Invalid configuration parameters: {e}")

    @classmethod
    def from_env(cls) -> 'ConverterConfig':
        """Load configuration from environment variables."""
        config = cls()

        # Map environment variables to config fields
        env_mappings = {
            'CONVERTER_INPUT': ('input_path', str),
            'CONVERTER_OUTPUT': ('output_path', str),
            'CONVERTER_SOURCES': ('sources', split_list),
            'CONVERTER_ID_LIST': ('id_list_path', str),
            'CONVERTER_SKIP_SOURCES': ('skip_sources', split_list),
            'CONVERTER_KEEP_UNCONVERTED': ('keep_unconverted', _bool),
            'CONVERTER_VERBOSE': ('verbose', _bool),
            'CONVERTER_PROGRESS_INTERVAL': ('progress_interval', int),
            'CONVERTER_MEMORY_LIMIT_MB': ('memory_limit_mb', int),
            'CONVERTER_DEBUG_MODE': ('debug_mode', _bool),
        }

        for env_var, (field_name, converter) in env_mappings.items():
            env_value = os.getenv(env_var)
            if env_value:
                try:
                    setattr(config, field_name, converter(env_value))
                except (ValueError, TypeError) as e:
                    raise ConfigurationError(f"Invalid environment variable {env_var}: {e}")

        config.validate()
        return config

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary."""
        return asdict(self)

    def save_to_file(self, config_path: str) -> None:
        """Save configuration to file."""
        config_dict = self.to_dict()

        try:
            with open(config_path, 'w') as f:
                if config_path.lower().endswith(('.yaml', '.yml')):
                    yaml.safe_dump(config_dict, f, default_flow_style=False)
                else:
                    json.dump(config_dict, f, indent=2)
        except (OSError, yaml.YAMLError) as e:
            raise ConfigurationError(f"Error saving configuration: {e}")

    def validate(self) -> None:
        """Validate configuration parameters."""
        if self.memory_limit_mb < 100:
            raise ConfigurationError("memory_limit_mb must be >= 100")

        if self.progress_interval < 1:
            raise ConfigurationError("progress_interval must be >= 1")

        overlap = set(self.sources) & set(self.skip_sources)
        if overlap:
            raise ConfigurationError(
                f"Sources cannot be both accepted and skipped: {', '.join(sorted(overlap))}"
            )

    def check_required(self) -> None:
        """Ensure the settings needed for a run are present."""
        if not self.input_path:
            raise ConfigurationError("An input GFF3 file is required")
        if not self.sources:
            raise ConfigurationError("At least one accepted source is required")

    def resolve_output_path(self) -> str:
        """Explicit output path, or <input stem>.converted.gff3 beside the input."""
        if self.output_path:
            return self.output_path
        if not self.input_path:
            raise ConfigurationError("Cannot derive an output path without an input path")
        stem, _ = os.path.splitext(self.input_path)
        return f"{stem}.converted.gff3"

    def __post_init__(self):
        """Validate configuration after initialization."""
        self.validate()


def load_config(config_path: Optional[str] = None,
                use_env: bool = True) -> ConverterConfig:
    """
    Load configuration with priority: file > environment > defaults.

    Args:
        config_path: Path to configuration file (optional)
        use_env: Whether to load environment variables

    Returns:
        ConverterConfig: Loaded configuration
    """
    # Start with defaults
    config = ConverterConfig()

    # Override with environment variables if requested
    if use_env:
        env_config = ConverterConfig.from_env()
        for field_name in ConverterConfig.__dataclass_fields__:
            env_value = getattr(env_config, field_name)
            if env_value != getattr(config, field_name):
                setattr(config, field_name, env_value)

    # Override with non-default values from the configuration file
    if config_path:
        defaults = ConverterConfig()
        file_config = ConverterConfig.from_file(config_path)
        for field_name in ConverterConfig.__dataclass_fields__:
            file_value = getattr(file_config, field_name)
            if file_value != getattr(defaults, field_name):
                setattr(config, field_name, file_value)

    config.validate()
    return config
