"""Configuration loading for the user registry service."""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple

import yaml

logger = logging.getLogger("smallservice.config")

DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 8080


@dataclass(frozen=True)
class Settings:
    """Runtime settings for the HTTP service."""

    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    debug: bool = False
    # No limit unless MAX_USERS or the YAML file sets one.
    max_users: Optional[int] = None
    seed_demo_users: bool = True

    @property
    def server_addr(self) -> str:
        return f"{self.host}:{self.port}"


def _env_flag(value: Optional[str], default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _yaml_flag(value: object, key: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"1", "true", "yes", "on"}:
            return True
        if lowered in {"0", "false", "no", "off"}:
            return False
    raise ValueError(f"Setting '{key}' must be a boolean, got {value!r}")


def parse_server_addr(value: str) -> Tuple[str, int]:
    """Split ``host:port`` (or ``:port``) into its parts."""

    host, sep, port_text = value.strip().rpartition(":")
    if not sep:
        raise ValueError(f"Server address must look like 'host:port', got {value!r}")
    try:
        port = int(port_text)
    except ValueError as exc:
        raise ValueError(f"Invalid port in server address {value!r}") from exc
    if not 0 < port < 65536:
        raise ValueError(f"Port out of range in server address {value!r}")
    return host.strip("[]") or DEFAULT_HOST, port


def _parse_max_users(raw: object) -> Optional[int]:
    value = int(str(raw).strip())
    if value < 0:
        raise ValueError("max_users must not be negative")
    return value or None


def _apply_mapping(settings: Settings, data: Mapping[str, Any]) -> Settings:
    updates: Dict[str, Any] = {}
    if data.get("server_addr"):
        updates["host"], updates["port"] = parse_server_addr(str(data["server_addr"]))
    if "debug" in data:
        updates["debug"] = _yaml_flag(data["debug"], "debug")
    if "max_users" in data:
        updates["max_users"] = _parse_max_users(data["max_users"])
    if "seed_demo_users" in data:
        updates["seed_demo_users"] = _yaml_flag(data["seed_demo_users"], "seed_demo_users")
    return replace(settings, **updates)


def _apply_environment(settings: Settings, environ: Mapping[str, str]) -> Settings:
    updates: Dict[str, Any] = {}

    server_addr = environ.get("SERVER_ADDR")
    if server_addr:
        updates["host"], updates["port"] = parse_server_addr(server_addr)

    if "DEBUG" in environ:
        updates["debug"] = _env_flag(environ["DEBUG"])

    max_users = environ.get("MAX_USERS")
    if max_users:
        try:
            updates["max_users"] = _parse_max_users(max_users)
        except ValueError:
            logger.warning("Ignoring invalid MAX_USERS value %r", max_users)

    if "SEED_DEMO_USERS" in environ:
        updates["seed_demo_users"] = _env_flag(environ["SEED_DEMO_USERS"], True)

    return replace(settings, **updates)


def resolve_config_path(env_value: Optional[str]) -> Path:
    """Resolve the path to the optional YAML settings file."""
    if env_value:
        return Path(env_value).expanduser().resolve(strict=False)
    return (Path(__file__).resolve().parent.parent / "config" / "settings.yaml").resolve(strict=False)


def load_settings(
    config_path: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Settings:
    """Build settings from defaults, the YAML file, then the environment."""
    env = os.environ if environ is None else environ
    path = config_path or resolve_config_path(env.get("SMALL_SERVICE_CONFIG"))

    settings = Settings()
    if path.is_file():
        with path.open("r", encoding="utf-8") as handle:
            raw = yaml.safe_load(handle) or {}
        if not isinstance(raw, dict):
            raise ValueError(f"Configuration file {path} must contain a mapping")
        settings = _apply_mapping(settings, raw)
        logger.debug("Loaded settings from %s", path)

    return _apply_environment(settings, env)


__all__ = ["Settings", "load_settings", "parse_server_addr", "resolve_config_path"]
