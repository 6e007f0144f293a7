from __future__ import annotations

import json
import os
import tomllib
from pathlib import Path
from typing import Any, Dict, Mapping

import yaml

from bitcoin_monitor.config.models import MonitorConfig, default_config


CONFIG_ENV_PREFIX = "BTCMON_"


def load_config(path: str | Path | None = None, env_prefix: str = CONFIG_ENV_PREFIX) -> MonitorConfig:
    config = default_config()
    if path:
        payload = _read_file(Path(path))
        config = MonitorConfig.model_validate(payload or {})
    return _apply_env_overrides(config, env_prefix=env_prefix)


def _read_file(path: Path) -> Mapping[str, Any]:
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")
    suffix = path.suffix.lower()
    if suffix in {".yaml", ".yml"}:
        return yaml.safe_load(path.read_text(encoding="utf-8"))
    if suffix in {".toml", ".tml"}:
        with path.open("rb") as fh:
            return tomllib.load(fh)
    if suffix == ".json":
        with path.open("r", encoding="utf-8") as fh:
            return json.load(fh)
    raise ValueError(f"Unsupported config format: {path.suffix}")


def _apply_env_overrides(config: MonitorConfig, env_prefix: str) -> MonitorConfig:
    refresh = _get_env_float(f"{env_prefix}REFRESH_SECONDS")
    timeout = _get_env_float(f"{env_prefix}TIMEOUT_SECONDS")
    attempts = _get_env_int(f"{env_prefix}RETRY_ATTEMPTS")
    tip_mode = os.getenv(f"{env_prefix}TIP_MODE")
    mvrv_strategy = os.getenv(f"{env_prefix}MVRV_STRATEGY")
    hash_rate_unit = os.getenv(f"{env_prefix}HASH_RATE_UNIT")

    updates: Dict[str, Dict[str, Any]] = {}
    if refresh is not None:
        updates.setdefault("scheduling", {})["refresh_seconds"] = refresh
    if timeout is not None:
        updates.setdefault("http", {})["timeout_seconds"] = timeout
    if attempts is not None:
        updates.setdefault("http", {})["retry_attempts"] = attempts
    if tip_mode:
        updates.setdefault("metrics", {})["tip_mode"] = tip_mode
    if hash_rate_unit:
        updates.setdefault("metrics", {})["hash_rate_unit"] = hash_rate_unit
    if mvrv_strategy:
        updates.setdefault("metrics", {}).setdefault("mvrv", {})["strategy"] = mvrv_strategy
    if not updates:
        return config

    merged = _deep_merge(config.model_dump(mode="json"), updates)
    return MonitorConfig.model_validate(merged)


def _deep_merge(base: Dict[str, Any], updates: Mapping[str, Any]) -> Dict[str, Any]:
    result = dict(base)
    for key, value in updates.items():
        if isinstance(value, Mapping) and isinstance(result.get(key), dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _get_env_float(key: str) -> float | None:
    raw = os.getenv(key)
    if raw is None:
        return None
    try:
        return float(raw)
    except ValueError:
        return None


def _get_env_int(key: str) -> int | None:
    raw = os.getenv(key)
    if raw is None:
        return None
    try:
        return int(raw)
    except ValueError:
        return None
