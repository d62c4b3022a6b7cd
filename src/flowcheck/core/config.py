"""
Configuration schema and loading for flowcheck.

Uses Pydantic for validation and Dynaconf for multi-source loading.
Settings are frozen (immutable) after construction, so one settings object
can be shared by concurrent validation calls.

Example YAML:
    trigger_alias: trigger
    default_event_name: default
    validation:
      require_descriptions: true
      report_orphans: true
    logging:
      level: DEBUG
      json_output: true
"""

import os
import re
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator

_IDENTIFIER_PATTERN = re.compile(r"[A-Za-z0-9_-]+")


class ValidationSettings(BaseModel):
    """Which optional structural checks run.

    The core rules (single trigger, single input, port wiring, unique
    labels) always run. These toggles cover the completeness checks a
    studio may prefer to show as warnings while a flow is still a draft.
    """

    model_config = {"frozen": True}

    require_descriptions: bool = Field(
        default=False,
        description="Every node must carry a non-empty description",
    )
    check_node_config: bool = Field(
        default=True,
        description="Report missing kind-specific configuration (url, assignee, ...)",
    )
    report_orphans: bool = Field(
        default=True,
        description="Report nodes that cannot be reached from the trigger",
    )
    report_cycles: bool = Field(
        default=True,
        description="Report cycles in the graph",
    )
    require_action_node: bool = Field(
        default=True,
        description="A flow with a trigger must contain at least one other node",
    )


class LoggingSettings(BaseModel):
    """Logging output configuration."""

    model_config = {"frozen": True}

    level: str = Field(default="INFO", description="Log level (DEBUG, INFO, WARNING, ERROR)")
    json_output: bool = Field(default=False, description="Emit JSON lines instead of console output")

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        normalized = v.upper()
        if normalized not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level {v!r}")
        return normalized


class FlowcheckSettings(BaseModel):
    """Top-level flowcheck configuration.

    All settings are validated and frozen after construction.
    """

    model_config = {"frozen": True}

    trigger_alias: str = Field(
        default="trigger",
        description="Reserved alias that refers to the flow's single trigger node in {{ steps.<alias> }}",
    )
    default_event_name: str = Field(
        default="default",
        description="Event name assumed for correlation rules that declare none",
    )
    validation: ValidationSettings = Field(default_factory=ValidationSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    @field_validator("trigger_alias")
    @classmethod
    def validate_trigger_alias(cls, v: str) -> str:
        """The alias must be expressible in the reference grammar."""
        if not _IDENTIFIER_PATTERN.fullmatch(v):
            raise ValueError(f"trigger_alias {v!r} must contain only letters, digits, '_' and '-'")
        return v

    @field_validator("default_event_name")
    @classmethod
    def validate_default_event_name(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("default_event_name must not be blank")
        return v


DEFAULT_SETTINGS = FlowcheckSettings()


# Regex pattern for ${VAR} or ${VAR:-default} syntax
_ENV_VAR_PATTERN = re.compile(r"\$\{([A-Z_][A-Z0-9_]*)(?::-([^}]*))?\}")


def _expand_env_vars(config: dict[str, Any]) -> dict[str, Any]:
    """Recursively expand ${VAR} and ${VAR:-default} patterns in config values.

    Args:
        config: Configuration dict (may contain nested structures)

    Returns:
        New dict with environment variables expanded
    """

    def _expand_string(value: str) -> str:
        def replacer(match: re.Match[str]) -> str:
            var_name = match.group(1)
            default = match.group(2)
            env_value = os.environ.get(var_name)
            if env_value is not None:
                return env_value
            if default is not None:
                return default
            return match.group(0)

        return _ENV_VAR_PATTERN.sub(replacer, value)

    def _expand_value(value: Any) -> Any:
        if isinstance(value, str):
            return _expand_string(value)
        elif isinstance(value, dict):
            return {k: _expand_value(v) for k, v in value.items()}
        elif isinstance(value, list):
            return [_expand_value(item) for item in value]
        else:
            return value

    return {k: _expand_value(v) for k, v in config.items()}


def _lower_keys(value: Any) -> Any:
    """Lowercase mapping keys at every depth (Dynaconf uppercases top-level keys)."""
    if isinstance(value, dict):
        return {str(k).lower(): _lower_keys(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_lower_keys(item) for item in value]
    return value


def load_settings(config_path: Path) -> FlowcheckSettings:
    """Load settings from YAML file with environment variable overrides.

    Uses Dynaconf for multi-source loading with precedence:
    1. Environment variables (FLOWCHECK_*) - highest priority
    2. Config file
    3. Defaults from Pydantic schema - lowest priority

    Environment variable format: FLOWCHECK_VALIDATION__REPORT_ORPHANS=false
    for nested keys.

    Args:
        config_path: Path to YAML configuration file

    Returns:
        Validated FlowcheckSettings instance

    Raises:
        ValidationError: If configuration fails Pydantic validation
        FileNotFoundError: If config file doesn't exist
    """
    from dynaconf import Dynaconf

    # Dynaconf silently accepts missing files
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    dynaconf_settings = Dynaconf(
        envvar_prefix="FLOWCHECK",
        settings_files=[str(config_path)],
        environments=False,
        load_dotenv=False,
        merge_enabled=True,
    )

    internal_keys = {"LOAD_DOTENV", "ENVIRONMENTS", "SETTINGS_FILES"}
    raw_config = {k: v for k, v in dynaconf_settings.as_dict().items() if k not in internal_keys}
    raw_config = _lower_keys(raw_config)
    raw_config = _expand_env_vars(raw_config)

    return FlowcheckSettings(**raw_config)


def load_settings_from_yaml(text: str) -> FlowcheckSettings:
    """Parse settings from a YAML string without environment overrides.

    Used by hosts that keep engine settings inside a larger config document.
    """
    import yaml

    raw = yaml.safe_load(text) or {}
    if not isinstance(raw, dict):
        raise ValueError(f"Settings YAML must be a mapping, got {type(raw).__name__}")
    return FlowcheckSettings(**_expand_env_vars(raw))
