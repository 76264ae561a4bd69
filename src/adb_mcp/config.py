from __future__ import annotations

import json
import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Optional

from .errors import ConfigurationError


@dataclass(frozen=True)
class AdbConfig:
    executable: Optional[str] = None
    timeout_sec: float = 30.0


@dataclass(frozen=True)
class GradleConfig:
    timeout_sec: float = 600.0


@dataclass(frozen=True)
class LoggingConfig:
    level: str = "INFO"
    file: str | None = None


@dataclass(frozen=True)
class AppConfig:
    adb: AdbConfig = field(default_factory=AdbConfig)
    gradle: GradleConfig = field(default_factory=GradleConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def _load_json(path: Path) -> dict[str, Any]:
    try:
        with path.open("r", encoding="utf-8") as handle:
            raw = json.load(handle)
    except (OSError, json.JSONDecodeError) as exc:
        raise ConfigurationError(f"Cannot read config file {path}: {exc}") from exc
    if not isinstance(raw, dict):
        raise ConfigurationError(f"Config file {path} must contain a JSON object")
    return raw


def _env_float(name: str, default: float) -> float:
    env_val = os.environ.get(name)
    if env_val is None:
        return default
    try:
        value = float(env_val)
    except ValueError:
        return default
    if value <= 0:
        return default
    return value


def _from_file(path: Path) -> AppConfig:
    raw = _load_json(path)
    adb_raw = raw.get("adb", {}) or {}
    gradle_raw = raw.get("gradle", {}) or {}
    logging_raw = raw.get("logging", {}) or {}
    try:
        return AppConfig(
            adb=AdbConfig(
                executable=adb_raw.get("executable"),
                timeout_sec=float(adb_raw.get("timeout_sec", 30.0)),
            ),
            gradle=GradleConfig(
                timeout_sec=float(gradle_raw.get("timeout_sec", 600.0)),
            ),
            logging=LoggingConfig(
                level=str(logging_raw.get("level", "INFO")),
                file=logging_raw.get("file"),
            ),
        )
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"Invalid value in config file {path}: {exc}") from exc


def load_config() -> AppConfig:
    """Build the configuration from defaults, ``ADB_MCP_CONFIG`` and env overrides."""
    config = AppConfig()
    config_path = os.getenv("ADB_MCP_CONFIG")
    if config_path:
        path = Path(config_path)
        if path.exists():
            config = _from_file(path)

    adb_path = os.getenv("ADB_MCP_ADB_PATH", "").strip()
    adb = replace(
        config.adb,
        executable=adb_path or config.adb.executable,
        timeout_sec=_env_float("ADB_MCP_ADB_TIMEOUT", config.adb.timeout_sec),
    )
    gradle = replace(
        config.gradle,
        timeout_sec=_env_float("ADB_MCP_GRADLE_TIMEOUT", config.gradle.timeout_sec),
    )
    log_level = os.getenv("ADB_MCP_LOG_LEVEL", "").strip()
    logging_config = replace(config.logging, level=log_level or config.logging.level)
    return AppConfig(adb=adb, gradle=gradle, logging=logging_config)
