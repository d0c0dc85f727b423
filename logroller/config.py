"""Configuration module: frozen RotationConfig loaded from env vars and optional YAML."""

import logging
import os
import sys
import tempfile
from dataclasses import dataclass

import yaml

from logroller.errors import ConfigError

logger = logging.getLogger(__name__)

MEGABYTE = 1024 * 1024


def _parse_bool(value) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("true", "1", "yes")


def default_filename() -> str:
    """Active file used when none is configured: <tmpdir>/<program>-logroller.log."""
    prog = os.path.basename(sys.argv[0]) if sys.argv and sys.argv[0] else "python"
    return os.path.join(tempfile.gettempdir(), f"{prog}-logroller.log")


@dataclass(frozen=True)
class RotationConfig:
    filename: str = ""
    max_size_bytes: int = 100 * MEGABYTE
    max_backups: int = 0
    max_age_days: float = 0
    max_total_size_bytes: int = 0
    compress: bool = False
    local_time: bool = False

    def __post_init__(self):
        if not self.filename:
            # frozen dataclass: bypass __setattr__ for the derived default
            object.__setattr__(self, "filename", default_filename())
        if self.max_size_bytes <= 0:
            raise ConfigError(f"max_size_bytes must be positive, got {self.max_size_bytes}")
        for name in ("max_backups", "max_age_days", "max_total_size_bytes"):
            if getattr(self, name) < 0:
                raise ConfigError(f"{name} must not be negative, got {getattr(self, name)}")

    @property
    def directory(self) -> str:
        return os.path.dirname(os.path.abspath(self.filename))


def load_yaml_config(path: str | None) -> dict:
    """Load writer settings from a YAML file. Returns empty dict if no path."""
    if not path:
        return {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        logger.info("Loaded YAML config from %s", path)
    except FileNotFoundError:
        logger.warning("Config file %s not found, using defaults", path)
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"YAML config {path} must be a mapping, got {type(data).__name__}")
    return data


def load_config(yaml_data: dict | None = None) -> RotationConfig:
    """Build RotationConfig from env vars, then YAML data, then defaults."""
    data = dict(yaml_data or {})

    def pick(env_name, key, default):
        raw = os.environ.get(env_name)
        if raw is not None:
            return raw
        return data.get(key, default)

    # MAX_FILE_SIZE_BYTES takes precedence over MAX_FILE_SIZE_MB
    raw_bytes = os.environ.get("MAX_FILE_SIZE_BYTES")
    raw_mb = os.environ.get("MAX_FILE_SIZE_MB")
    if raw_bytes is not None:
        max_size = int(raw_bytes)
    elif raw_mb is not None:
        max_size = int(float(raw_mb) * MEGABYTE)
    elif "max_size_bytes" in data:
        max_size = int(data["max_size_bytes"])
    elif "max_size_mb" in data:
        max_size = int(float(data["max_size_mb"]) * MEGABYTE)
    else:
        max_size = RotationConfig.max_size_bytes

    try:
        return RotationConfig(
            filename=pick("LOG_FILENAME", "filename", RotationConfig.filename),
            max_size_bytes=max_size,
            max_backups=int(pick("MAX_BACKUPS", "max_backups", RotationConfig.max_backups)),
            max_age_days=float(pick("MAX_AGE_DAYS", "max_age_days", RotationConfig.max_age_days)),
            max_total_size_bytes=int(
                pick("MAX_TOTAL_SIZE_BYTES", "max_total_size_bytes", RotationConfig.max_total_size_bytes)
            ),
            compress=_parse_bool(pick("COMPRESSION_ENABLED", "compress", RotationConfig.compress)),
            local_time=_parse_bool(pick("LOCAL_TIME", "local_time", RotationConfig.local_time)),
        )
    except ConfigError:
        raise
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"invalid rotation setting: {exc}") from exc
