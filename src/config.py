"""Configuration loading and validation module.

This module handles all YAML configuration loading and provides a typed
Config dataclass consumed by all other modules.
"""

from dataclasses import dataclass, field
from typing import Any
import yaml


class ConfigError(Exception):
    """Raised when configuration is invalid or missing required fields."""
    pass


@dataclass
class RecordingConfig:
    """Recording scheduler configuration."""
    interval_seconds: float = 1
    recovery_interval_seconds: float = 5
    shutdown_timeout_seconds: float = 10


@dataclass
class DatabaseConfig:
    """Database configuration."""
    path: str


@dataclass
class OutputConfig:
    """Status output configuration."""
    json_path: str
    report_interval_seconds: float = 5
    include_records: bool = False


@dataclass
class Config:
    """Root configuration dataclass."""
    database: DatabaseConfig
    output: OutputConfig
    recording: RecordingConfig = field(default_factory=RecordingConfig)


def _get_nested(data: dict, path: str, required: bool = True, default: Any = None) -> Any:
    """Get a nested value from a dictionary using dot notation.

    Args:
        data: The dictionary to search
        path: Dot-separated path to the value (e.g., "database.path")
        required: If True, raises ConfigError when value is missing
        default: Default value if not required and missing

    Returns:
        The value at the path, or default if not required and missing

    Raises:
        ConfigError: If required value is missing
    """
    keys = path.split(".")
    current = data

    for key in keys:
        if not isinstance(current, dict):
            if required:
                raise ConfigError(f"Configuration path '{path}' is not a valid nested structure")
            return default
        if key not in current:
            if required:
                raise ConfigError(f"Missing required configuration field: {path}")
            return default
        current = current[key]

    return current


def _validate_type(value: Any, expected_type: Any, field_name: str) -> None:
    """Validate that a value is of the expected type.

    ``float`` accepts any real number (int or float) but never a bool.

    Args:
        value: The value to validate
        expected_type: The expected type
        field_name: Name of the field for error messages

    Raises:
        ConfigError: If value is not of the expected type
    """
    if expected_type is float:
        if not isinstance(value, (int, float)) or isinstance(value, bool):
            raise ConfigError(
                f"Field '{field_name}' must be a number, got {type(value).__name__}"
            )
    elif expected_type is bool:
        if not isinstance(value, bool):
            raise ConfigError(
                f"Field '{field_name}' must be a boolean, got {type(value).__name__}"
            )
    elif expected_type is str:
        if not isinstance(value, str):
            raise ConfigError(
                f"Field '{field_name}' must be a string, got {type(value).__name__}"
            )
    elif expected_type is dict:
        if not isinstance(value, dict):
            raise ConfigError(
                f"Field '{field_name}' must be a mapping, got {type(value).__name__}"
            )
    else:
        if not isinstance(value, expected_type):
            raise ConfigError(
                f"Field '{field_name}' must be of type {expected_type.__name__}, got {type(value).__name__}"
            )


def _load_recording(data: dict) -> RecordingConfig:
    """Build the recording section, falling back to defaults per key."""
    defaults = RecordingConfig()
    recording_data = _get_nested(data, "recording", required=False, default={})
    _validate_type(recording_data, dict, "recording")

    values = {}
    for name in (
        "interval_seconds",
        "recovery_interval_seconds",
        "shutdown_timeout_seconds",
    ):
        value = _get_nested(
            recording_data, name, required=False, default=getattr(defaults, name)
        )
        _validate_type(value, float, f"recording.{name}")
        values[name] = value

    if values["interval_seconds"] <= 0:
        raise ConfigError("recording.interval_seconds must be > 0")
    if values["recovery_interval_seconds"] <= 0:
        raise ConfigError("recording.recovery_interval_seconds must be > 0")
    if values["shutdown_timeout_seconds"] < 0:
        raise ConfigError("recording.shutdown_timeout_seconds must be >= 0")

    return RecordingConfig(**values)


def _load_output(data: dict) -> OutputConfig:
    """Build the output section."""
    output_data = _get_nested(data, "output")
    _validate_type(output_data, dict, "output")

    json_path = _get_nested(output_data, "json_path")
    _validate_type(json_path, str, "output.json_path")

    report_interval_seconds = _get_nested(
        output_data, "report_interval_seconds", required=False, default=5
    )
    _validate_type(report_interval_seconds, float, "output.report_interval_seconds")
    if report_interval_seconds <= 0:
        raise ConfigError("output.report_interval_seconds must be > 0")

    include_records = _get_nested(
        output_data, "include_records", required=False, default=False
    )
    _validate_type(include_records, bool, "output.include_records")

    return OutputConfig(
        json_path=json_path,
        report_interval_seconds=report_interval_seconds,
        include_records=include_records,
    )


def load_config(path: str) -> Config:
    """Load and validate configuration from a YAML file.

    Args:
        path: Path to the YAML configuration file

    Returns:
        Config: Validated configuration object

    Raises:
        ConfigError: If the file cannot be read or configuration is invalid
    """
    try:
        with open(path, 'r') as f:
            data = yaml.safe_load(f)
    except FileNotFoundError:
        raise ConfigError(f"Configuration file not found: {path}")
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in configuration file: {e}")

    if data is None:
        raise ConfigError("Configuration file is empty")

    if not isinstance(data, dict):
        raise ConfigError("Configuration file must contain a YAML dictionary")

    recording = _load_recording(data)

    # Database configuration
    database_data = _get_nested(data, "database")
    database_path = _get_nested(database_data, "path")
    _validate_type(database_path, str, "database.path")
    if not database_path:
        raise ConfigError("database.path must not be empty")

    database = DatabaseConfig(path=database_path)

    output = _load_output(data)

    return Config(database=database, output=output, recording=recording)
