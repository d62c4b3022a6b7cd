# tests/unit/core/test_config.py
"""Tests for settings models and loading."""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from flowcheck.core.config import (
    DEFAULT_SETTINGS,
    FlowcheckSettings,
    LoggingSettings,
    ValidationSettings,
    load_settings,
    load_settings_from_yaml,
)


class TestSettingsModels:
    def test_defaults(self) -> None:
        assert DEFAULT_SETTINGS.trigger_alias == "trigger"
        assert DEFAULT_SETTINGS.default_event_name == "default"
        assert DEFAULT_SETTINGS.validation == ValidationSettings()
        assert DEFAULT_SETTINGS.validation.require_descriptions is False
        assert DEFAULT_SETTINGS.logging.level == "INFO"

    def test_frozen(self) -> None:
        with pytest.raises(ValidationError):
            DEFAULT_SETTINGS.trigger_alias = "start"  # type: ignore[misc]

    def test_trigger_alias_must_be_identifier(self) -> None:
        with pytest.raises(ValidationError, match="trigger_alias"):
            FlowcheckSettings(trigger_alias="my trigger")

    @pytest.mark.parametrize("alias", ["trigger\n", "\ntrigger", ""])
    def test_trigger_alias_must_match_whole_string(self, alias: str) -> None:
        with pytest.raises(ValidationError, match="trigger_alias"):
            FlowcheckSettings(trigger_alias=alias)

    def test_blank_event_name_rejected(self) -> None:
        with pytest.raises(ValidationError):
            FlowcheckSettings(default_event_name="  ")

    def test_log_level_normalised(self) -> None:
        assert LoggingSettings(level="debug").level == "DEBUG"

    def test_unknown_log_level(self) -> None:
        with pytest.raises(ValidationError, match="Unknown log level"):
            LoggingSettings(level="chatty")


class TestLoadSettings:
    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_settings(tmp_path / "absent.yaml")

    def test_load_yaml_file(self, tmp_path: Path) -> None:
        config = tmp_path / "flowcheck.yaml"
        config.write_text(
            "trigger_alias: start\nvalidation:\n  require_descriptions: true\nlogging:\n  level: debug\n",
            encoding="utf-8",
        )
        settings = load_settings(config)
        assert settings.trigger_alias == "start"
        assert settings.validation.require_descriptions is True
        assert settings.validation.report_orphans is True
        assert settings.logging.level == "DEBUG"

    def test_env_override(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        config = tmp_path / "flowcheck.yaml"
        config.write_text("validation:\n  report_orphans: true\n", encoding="utf-8")
        monkeypatch.setenv("FLOWCHECK_VALIDATION__REPORT_ORPHANS", "false")
        settings = load_settings(config)
        assert settings.validation.report_orphans is False

    def test_env_var_expansion(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        config = tmp_path / "flowcheck.yaml"
        config.write_text('default_event_name: "${SIGNAL_EVENT:-fallback}"\n', encoding="utf-8")
        monkeypatch.delenv("SIGNAL_EVENT", raising=False)
        assert load_settings(config).default_event_name == "fallback"

        monkeypatch.setenv("SIGNAL_EVENT", "TruckArrival")
        assert load_settings(config).default_event_name == "TruckArrival"


class TestLoadSettingsFromYaml:
    def test_empty_text_gives_defaults(self) -> None:
        assert load_settings_from_yaml("") == DEFAULT_SETTINGS

    def test_nested_values(self) -> None:
        settings = load_settings_from_yaml("validation:\n  report_cycles: false\n")
        assert settings.validation.report_cycles is False

    def test_non_mapping_rejected(self) -> None:
        with pytest.raises(ValueError, match="must be a mapping"):
            load_settings_from_yaml("- a\n- b\n")
