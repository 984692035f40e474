# src/dynamic_todo/config.py

"""Process settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app.
- Plugin (user) settings live separately in a JSON file; see cli/bootstrap.py.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

from .errors import ConfigError

ENV_PREFIX = "DTODO"

load_dotenv(override=False)


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    normalized = raw.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    raise ConfigError(f"{name} must be a boolean value.")


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigError(f"{name} must be an integer.") from None


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str

    # ---- Vault ----
    vault_path: Path
    vault_name: str

    # ---- Local data paths ----
    data_dir: Path
    plugin_settings_path: Path

    # ---- Sync timing ----
    self_edit_grace_ms: int
    rebuild_debounce_ms: int

    # ---- Connectors ----
    watch_enabled: bool
    console_enabled: bool

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "dynamic-todo")
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        vault_path = _env_path(_k("VAULT_PATH"), Path("."))
        vault_name = _env(_k("VAULT_NAME"), "").strip() or vault_path.resolve().name

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/dynamic_todo"))
        plugin_settings_path = _env_path(_k("PLUGIN_SETTINGS_PATH"), data_dir / "data.json")

        self_edit_grace_ms = _env_int(_k("SELF_EDIT_GRACE_MS"), 500)
        rebuild_debounce_ms = _env_int(_k("REBUILD_DEBOUNCE_MS"), 100)
        if self_edit_grace_ms < 0 or rebuild_debounce_ms < 0:
            raise ConfigError("Timing settings must not be negative.")

        watch_enabled = _env_bool(_k("WATCH_ENABLED"), True)
        console_enabled = _env_bool(_k("CONSOLE_ENABLED"), True)

        return Settings(
            app_name=app_name,
            log_level=log_level,
            vault_path=vault_path,
            vault_name=vault_name,
            data_dir=data_dir,
            plugin_settings_path=plugin_settings_path,
            self_edit_grace_ms=self_edit_grace_ms,
            rebuild_debounce_ms=rebuild_debounce_ms,
            watch_enabled=watch_enabled,
            console_enabled=console_enabled,
        )


_SETTINGS: Settings | None = None


def get_settings() -> Settings:
    global _SETTINGS
    if _SETTINGS is None:
        _SETTINGS = Settings.from_env()
    return _SETTINGS
