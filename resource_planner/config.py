from __future__ import annotations

import json
import os
from dataclasses import dataclass, replace
from datetime import date
from pathlib import Path
from typing import Mapping, Optional
from urllib.parse import urlparse

from dateutil import parser as dateparser

DEFAULT_BACKEND_URL = "http://127.0.0.1:5000"
DEFAULT_TIMEOUT_SECONDS = 10.0
DEFAULT_WEEK_COUNT = 12

BACKEND_URL_ENV = "PLANNER_BACKEND_URL"
CONFIG_PATH_ENV = "PLANNER_CONFIG"

_LOGGING_LEVELS = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}


@dataclass(frozen=True)
class ClientConfig:
    backend_url: str
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    week_count: int = DEFAULT_WEEK_COUNT
    planning_start: Optional[date] = None
    storage_path: Optional[Path] = None
    logging_level: str = "INFO"


def _validate_backend_url(value: object) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValueError("backend_url must be a non-empty string")
    url = value.strip().rstrip("/")
    parsed = urlparse(url)
    if parsed.scheme not in {"http", "https"} or not parsed.netloc:
        raise ValueError(f"backend_url must be an http(s) URL: {value}")
    return url


def _parse_optional_date(value: object, field_name: str) -> Optional[date]:
    if value is None or (isinstance(value, str) and value.strip() == ""):
        return None
    try:
        return dateparser.isoparse(str(value)).date()
    except (ValueError, TypeError) as exc:
        raise ValueError(f"{field_name} must be null or an ISO date string") from exc


def config_from_mapping(data: Mapping[str, object], base_dir: Optional[Path] = None) -> ClientConfig:
    if not isinstance(data, Mapping):
        raise ValueError("config must be a JSON object")
    backend_url = _validate_backend_url(data.get("backend_url", DEFAULT_BACKEND_URL))

    timeout = data.get("timeout_seconds", DEFAULT_TIMEOUT_SECONDS)
    if isinstance(timeout, bool) or not isinstance(timeout, (int, float)):
        raise ValueError("timeout_seconds must be a number")
    if timeout <= 0:
        raise ValueError("timeout_seconds must be positive")

    week_count = data.get("week_count", DEFAULT_WEEK_COUNT)
    if isinstance(week_count, bool) or not isinstance(week_count, int) or week_count <= 0:
        raise ValueError("week_count must be a positive integer")

    planning_start = _parse_optional_date(data.get("planning_start"), "planning_start")

    storage_raw = data.get("storage_path")
    storage_path: Optional[Path] = None
    if storage_raw is not None:
        if not isinstance(storage_raw, str) or not storage_raw.strip():
            raise ValueError("storage_path must be a non-empty string if provided")
        storage_path = Path(storage_raw).expanduser()
        if not storage_path.is_absolute() and base_dir is not None:
            storage_path = base_dir / storage_path

    logging_level = data.get("logging_level", "INFO")
    if not isinstance(logging_level, str) or logging_level.upper() not in _LOGGING_LEVELS:
        raise ValueError(f"logging_level must be one of {', '.join(sorted(_LOGGING_LEVELS))}")

    return ClientConfig(
        backend_url=backend_url,
        timeout_seconds=float(timeout),
        week_count=week_count,
        planning_start=planning_start,
        storage_path=storage_path,
        logging_level=logging_level.upper(),
    )


def _apply_env(config: ClientConfig, environ: Mapping[str, str]) -> ClientConfig:
    env_url = environ.get(BACKEND_URL_ENV)
    if env_url:
        config = replace(config, backend_url=_validate_backend_url(env_url))
    return config


def load_config(path: str | Path, environ: Optional[Mapping[str, str]] = None) -> ClientConfig:
    config_path = Path(path)
    try:
        data = json.loads(config_path.read_text())
    except json.JSONDecodeError as exc:
        raise ValueError(f"invalid JSON in {config_path}: {exc.msg}") from exc
    config = config_from_mapping(data, base_dir=config_path.resolve().parent)
    return _apply_env(config, os.environ if environ is None else environ)


def default_config(environ: Optional[Mapping[str, str]] = None) -> ClientConfig:
    """Config from ``PLANNER_CONFIG`` when set, otherwise defaults plus environment overrides."""
    env = os.environ if environ is None else environ
    config_path = env.get(CONFIG_PATH_ENV)
    if config_path:
        return load_config(Path(config_path).expanduser(), env)
    return _apply_env(ClientConfig(backend_url=DEFAULT_BACKEND_URL), env)
