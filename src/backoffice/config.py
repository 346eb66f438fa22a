from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Mapping
import os
import sys


@dataclass(frozen=True)
class AppPaths:
    base_dir: Path
    session_path: Path
    logs_dir: Path
    exports_dir: Path


@dataclass(frozen=True)
class ApiSettings:
    base_url: str = "http://localhost:8080"
    timeout_seconds: int = 30
    retry_attempts: int = 3
    retry_backoff_ms: int = 300
    approval_threshold: float = 10000.0
    low_stock_threshold: int = 10
    default_location: str = "default"
    currency: str = "MZN"


def _windows_appdata() -> Path:
    return Path(os.environ.get("APPDATA", str(Path.home() / "AppData" / "Roaming")))


def _mac_app_support() -> Path:
    return Path.home() / "Library" / "Application Support"


def get_app_paths(app_name: str = "BackofficeAdmin") -> AppPaths:
    if sys.platform.startswith("win"):
        base = _windows_appdata() / app_name
    elif sys.platform == "darwin":
        base = _mac_app_support() / app_name
    else:
        base = Path.home() / f".{app_name.lower()}"

    logs = base / "logs"
    exports = base / "exports"

    base.mkdir(parents=True, exist_ok=True)
    logs.mkdir(parents=True, exist_ok=True)
    exports.mkdir(parents=True, exist_ok=True)

    return AppPaths(base_dir=base, session_path=base / "session.json", logs_dir=logs, exports_dir=exports)


def _int_env(env: Mapping[str, str], key: str, default: int, minimum: int = 0) -> int:
    try:
        value = int(str(env.get(key, default)).strip())
    except (TypeError, ValueError):
        return default
    return value if value >= minimum else default


def _float_env(env: Mapping[str, str], key: str, default: float) -> float:
    try:
        value = float(str(env.get(key, default)).strip())
    except (TypeError, ValueError):
        return default
    return value if value >= 0 else default


def _str_env(env: Mapping[str, str], key: str, default: str) -> str:
    value = str(env.get(key) or "").strip()
    return value or default


def load_settings(environ: Mapping[str, str] | None = None) -> ApiSettings:
    env = os.environ if environ is None else environ
    defaults = ApiSettings()
    return ApiSettings(
        base_url=_str_env(env, "BACKOFFICE_API_URL", defaults.base_url).rstrip("/"),
        timeout_seconds=_int_env(env, "BACKOFFICE_API_TIMEOUT", defaults.timeout_seconds, minimum=1),
        retry_attempts=_int_env(env, "BACKOFFICE_RETRY_ATTEMPTS", defaults.retry_attempts, minimum=1),
        retry_backoff_ms=_int_env(env, "BACKOFFICE_RETRY_BACKOFF_MS", defaults.retry_backoff_ms),
        approval_threshold=_float_env(env, "BACKOFFICE_APPROVAL_THRESHOLD", defaults.approval_threshold),
        low_stock_threshold=_int_env(env, "BACKOFFICE_LOW_STOCK_THRESHOLD", defaults.low_stock_threshold),
        default_location=_str_env(env, "BACKOFFICE_DEFAULT_LOCATION", defaults.default_location),
        currency=_str_env(env, "BACKOFFICE_CURRENCY", defaults.currency),
    )
