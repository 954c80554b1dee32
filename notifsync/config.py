"""Configuration management for the notification reconciler."""

import os
from pathlib import Path
from typing import Literal, Optional

import yaml
from pydantic import BaseModel, Field, model_validator

# Epoch of the snowflake-style notification IDs: 2013-01-01 00:00:00 UTC in ms.
SNOWFLAKE_EPOCH_MS = 1356998400000

ID_CLOCK_PRESETS: dict[str, dict] = {
    "snowflake_ms": {"shift_bits": 22, "epoch_ms": SNOWFLAKE_EPOCH_MS, "unit": "ms"},
}


class StoreConfig(BaseModel):
    """Status store settings."""

    database_path: str = Field(
        default="~/.notifsync/notifications.db", description="Path to SQLite database file"
    )


class ScanConfig(BaseModel):
    """Defaults for reconciliation scans and lifecycle rules."""

    max_pages: int = Field(default=3, ge=1, description="Pages to pull per scan")
    stop_after_consecutive_closed: int = Field(
        default=5, ge=1, description="Stop after N already-closed items in a row"
    )
    since_hours: int = Field(default=48, ge=1, description="Lookback when no prior scan exists")
    max_results: int = Field(default=20, ge=1, description="Scanned entries returned per call")
    max_retries: int = Field(default=5, ge=1, description="Retries before auto-skip")
    strict_transitions: bool = Field(
        default=False, description="Reject unknown IDs and transitions out of closed states"
    )


class IdClockConfig(BaseModel):
    """How creation time is embedded in notification IDs.

    Either name a preset or give ``shift_bits``/``epoch_ms``/``unit``
    explicitly; explicit values win over the preset.
    """

    preset: Optional[Literal["snowflake_ms"]] = "snowflake_ms"
    shift_bits: Optional[int] = Field(default=None, ge=0, le=63)
    epoch_ms: Optional[int] = Field(default=None, ge=0)
    unit: Optional[Literal["ms", "s"]] = None
    safety_margin_seconds: int = Field(default=300, ge=0)

    @model_validator(mode="after")
    def _apply_preset(self) -> "IdClockConfig":
        base = ID_CLOCK_PRESETS.get(self.preset or "", {})
        if self.shift_bits is None:
            self.shift_bits = base.get("shift_bits")
        if self.epoch_ms is None:
            self.epoch_ms = base.get("epoch_ms", 0)
        if self.unit is None:
            self.unit = base.get("unit")
        if self.shift_bits is None or self.unit is None:
            raise ValueError("id_clock needs a preset or explicit shift_bits and unit")
        return self


class Config(BaseModel):
    """Root configuration model."""

    store: StoreConfig = StoreConfig()
    scan: ScanConfig = ScanConfig()
    id_clock: IdClockConfig = IdClockConfig()


def load_config(config_path: str | Path = "config.yaml") -> Config:
    """Load and validate configuration from YAML file.

    Supports ${VAR_NAME} syntax for environment variable expansion.

    Args:
        config_path: Path to the configuration file.

    Returns:
        Validated Config object.

    Raises:
        FileNotFoundError: If config file doesn't exist.
        ValidationError: If config is invalid.
        ValueError: If referenced environment variable is not set.
    """
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(
            f"Config file not found: {path}\n"
            "Copy config.example.yaml to config.yaml and adjust it."
        )

    with path.open() as f:
        raw_config = yaml.safe_load(f) or {}

    # Expand environment variables in the format ${VAR_NAME}
    def expand_env_vars(obj):
        if isinstance(obj, dict):
            return {k: expand_env_vars(v) for k, v in obj.items()}
        elif isinstance(obj, list):
            return [expand_env_vars(item) for item in obj]
        elif isinstance(obj, str) and obj.startswith("${") and obj.endswith("}"):
            env_var = obj[2:-1]
            value = os.getenv(env_var)
            if value is None:
                raise ValueError(f"Environment variable '{env_var}' is not set")
            return value
        return obj

    raw_config = expand_env_vars(raw_config)

    return Config(**raw_config)
