"""Tests for configuration loading."""

import pytest
from pydantic import ValidationError

from notifsync.config import SNOWFLAKE_EPOCH_MS, Config, IdClockConfig, load_config


class TestLoadConfig:
    """Test YAML configuration loading."""

    def test_defaults(self):
        config = Config()
        assert config.scan.max_pages == 3
        assert config.scan.stop_after_consecutive_closed == 5
        assert config.scan.since_hours == 48
        assert config.scan.strict_transitions is False
        assert config.id_clock.shift_bits == 22
        assert config.id_clock.epoch_ms == SNOWFLAKE_EPOCH_MS
        assert config.id_clock.unit == "ms"

    def test_load_yaml_with_env_expansion(self, tmp_path, monkeypatch):
        """Test that ${VAR} values are expanded from the environment."""
        monkeypatch.setenv("NOTIF_DB", str(tmp_path / "n.db"))
        path = tmp_path / "config.yaml"
        path.write_text(
            "store:\n"
            "  database_path: ${NOTIF_DB}\n"
            "scan:\n"
            "  max_results: 50\n"
            "  strict_transitions: true\n"
            "id_clock:\n"
            "  preset: null\n"
            "  shift_bits: 32\n"
            "  unit: s\n"
        )

        config = load_config(path)

        assert config.store.database_path == str(tmp_path / "n.db")
        assert config.scan.max_results == 50
        assert config.scan.strict_transitions is True
        assert config.id_clock.shift_bits == 32
        assert config.id_clock.unit == "s"

    def test_empty_file_uses_defaults(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("")
        assert load_config(path) == Config()

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "nope.yaml")

    def test_missing_env_var(self, tmp_path, monkeypatch):
        monkeypatch.delenv("NOTIF_MISSING", raising=False)
        path = tmp_path / "config.yaml"
        path.write_text("store:\n  database_path: ${NOTIF_MISSING}\n")
        with pytest.raises(ValueError):
            load_config(path)

    def test_invalid_scan_values(self):
        with pytest.raises(ValidationError):
            Config(scan={"max_pages": 0})

    def test_id_clock_without_preset_needs_explicit_values(self):
        with pytest.raises(ValidationError):
            IdClockConfig(preset=None)
        config = IdClockConfig(preset=None, shift_bits=20, unit="s")
        assert config.epoch_ms == 0

    def test_unknown_preset_rejected(self):
        with pytest.raises(ValidationError):
            IdClockConfig(preset="unix_seconds")
