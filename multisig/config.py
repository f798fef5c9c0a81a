"""
multisig.config: configuration for the multisig authorization registry

Covers:
- Logging (level, format, optional JSON log file)
- Registry limits (maximum owners, maximum payload size)
- Event emission toggle

Configuration precedence:
  1) Environment variables (MULTISIG_*)
  2) Optional file named by MULTISIG_CONFIG_FILE (.json / .yaml / .yml)
  3) Hardcoded safe defaults below

Environment overrides (all optional):

  MULTISIG_LOG_LEVEL=INFO
  MULTISIG_LOG_FORMAT=auto            # auto | json | text
  MULTISIG_LOG_FILE=/var/log/multisig.jsonl
  MULTISIG_MAX_OWNERS=0               # 0 = unlimited
  MULTISIG_MAX_PAYLOAD_BYTES=0        # 0 = unlimited
  MULTISIG_EMIT_EVENTS=true

Usage:
    from multisig.config import load_config
    CFG = load_config()
    if CFG.max_owners: ...
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, replace
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Mapping, Optional
import json
import os

import yaml

from .errors import ConfigError

ENV_PREFIX = "MULTISIG_"
CONFIG_FILE_ENV = "MULTISIG_CONFIG_FILE"

_LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG", "NOTSET")
_LOG_FORMATS = ("auto", "json", "text")


@dataclass(frozen=True)
class MultisigConfig:
    log_level: str = "INFO"
    log_format: str = "auto"
    log_file: Optional[str] = None
    max_owners: int = 0
    max_payload_bytes: int = 0
    emit_events: bool = True

    def validate(self) -> "MultisigConfig":
        if str(self.log_level).upper() not in _LOG_LEVELS:
            raise ConfigError(f"log_level must be one of {_LOG_LEVELS} (got {self.log_level!r}).")
        if self.log_format not in _LOG_FORMATS:
            raise ConfigError(f"log_format must be one of {_LOG_FORMATS} (got {self.log_format!r}).")
        if self.max_owners < 0:
            raise ConfigError(f"max_owners must be >= 0 (got {self.max_owners}).")
        if self.max_payload_bytes < 0:
            raise ConfigError(f"max_payload_bytes must be >= 0 (got {self.max_payload_bytes}).")
        return self

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)


# -------------------------- helpers --------------------------


def _env_bool(raw: str) -> bool:
    return raw.strip().lower() in ("1", "true", "t", "yes", "y", "on")


def _env_int(name: str, raw: str) -> int:
    try:
        return int(raw.replace("_", ""), 0)
    except ValueError as e:
        raise ConfigError(f"Invalid int for {name}: {raw!r}") from e


def _coerce(values: Mapping[str, Any]) -> Dict[str, Any]:
    """Keep only known fields, normalizing their types."""
    out: Dict[str, Any] = {}
    for key, val in values.items():
        if key not in MultisigConfig.__dataclass_fields__:
            raise ConfigError(f"unknown config key: {key!r}")
        if key in ("max_owners", "max_payload_bytes"):
            if isinstance(val, bool) or not isinstance(val, int):
                raise ConfigError(f"{key} must be an integer (got {val!r}).")
        elif key == "emit_events":
            val = _env_bool(val) if isinstance(val, str) else bool(val)
        elif key == "log_level":
            val = str(val).upper()
        elif key == "log_format":
            val = str(val).lower()
        elif key == "log_file":
            val = str(val) if val else None
        out[key] = val
    return out


# -------------------------- loaders --------------------------


def from_file(path: str | os.PathLike[str], base: Optional[MultisigConfig] = None) -> MultisigConfig:
    """
    Load configuration from a JSON or YAML file, layered over `base` (or defaults).
    """
    p = Path(path)
    if not p.exists():
        raise ConfigError(f"config file not found: {p}")

    text = p.read_text(encoding="utf-8")
    try:
        if p.suffix.lower() in (".yaml", ".yml"):
            data = yaml.safe_load(text) or {}
        else:
            data = json.loads(text or "{}")
    except (yaml.YAMLError, json.JSONDecodeError) as e:
        raise ConfigError(f"cannot parse config file {p}: {e}") from e
    if not isinstance(data, Mapping):
        raise ConfigError(f"config file {p} must contain a mapping")

    section = data.get("multisig", data)
    return replace(base or MultisigConfig(), **_coerce(section)).validate()


def from_env(base: Optional[MultisigConfig] = None, prefix: str = ENV_PREFIX) -> MultisigConfig:
    """
    Build a MultisigConfig from environment variables, layered over `base`.
    """
    cfg = base or MultisigConfig()
    overrides: Dict[str, Any] = {}

    if (v := os.getenv(f"{prefix}LOG_LEVEL")):
        overrides["log_level"] = v.upper()
    if (v := os.getenv(f"{prefix}LOG_FORMAT")):
        overrides["log_format"] = v.strip().lower()
    if (v := os.getenv(f"{prefix}LOG_FILE")):
        overrides["log_file"] = v
    if (v := os.getenv(f"{prefix}MAX_OWNERS")):
        overrides["max_owners"] = _env_int(f"{prefix}MAX_OWNERS", v)
    if (v := os.getenv(f"{prefix}MAX_PAYLOAD_BYTES")):
        overrides["max_payload_bytes"] = _env_int(f"{prefix}MAX_PAYLOAD_BYTES", v)
    if (v := os.getenv(f"{prefix}EMIT_EVENTS")):
        overrides["emit_events"] = _env_bool(v)

    return replace(cfg, **overrides).validate()


@lru_cache(maxsize=1)
def load_config() -> MultisigConfig:
    """
    Build and cache a MultisigConfig from defaults → file → environment.
    """
    cfg = MultisigConfig()
    file_path = os.getenv(CONFIG_FILE_ENV)
    if file_path:
        cfg = from_file(file_path, cfg)
    return from_env(cfg)


def reload_config() -> MultisigConfig:
    """Drop the cached config and rebuild it (tests, long-lived processes)."""
    load_config.cache_clear()
    return load_config()


__all__ = [
    "MultisigConfig",
    "from_file",
    "from_env",
    "load_config",
    "reload_config",
    "ENV_PREFIX",
    "CONFIG_FILE_ENV",
]
