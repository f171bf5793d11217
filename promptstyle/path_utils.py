"""Where PromptStyle keeps its settings file, preset/snapshot namespaces and CLI log.

Each location has a ``PROMPTSTYLE_*`` environment override; Windows falls back
to APPDATA (settings) and LOCALAPPDATA (state, logs).
"""
from __future__ import annotations

import os
import platform
from pathlib import Path
from typing import Optional


def _env_path(name: str) -> Optional[Path]:
    value = os.environ.get(name)
    return Path(value).expanduser() if value else None


def _windows_dir(env_name: str, *parts: str) -> Optional[Path]:
    if not platform.system().lower().startswith("windows"):
        return None
    base = os.environ.get(env_name)
    return Path(base, "PromptStyle", *parts) if base else None


def get_config_file() -> Path:
    """Settings file; PROMPTSTYLE_CONFIG_FILE wins over PROMPTSTYLE_CONFIG_DIR."""

    config_file = _env_path("PROMPTSTYLE_CONFIG_FILE")
    if config_file:
        return config_file
    root = (
        _env_path("PROMPTSTYLE_CONFIG_DIR")
        or _windows_dir("APPDATA", "config")
        or Path.home() / ".config" / "promptstyle"
    )
    return root / "config.yaml"


def get_state_dir() -> Path:
    """Directory holding the ``presets.json`` and ``ui_prefs.json`` namespaces."""

    return (
        _env_path("PROMPTSTYLE_STATE_DIR")
        or _windows_dir("LOCALAPPDATA", "state")
        or Path.home() / ".local" / "state" / "promptstyle"
    )


def get_log_path() -> Path:
    """File sink used by the CLI's ``--log`` flag."""

    return (
        _env_path("PROMPTSTYLE_LOG_PATH")
        or _windows_dir("LOCALAPPDATA", "logs", "promptstyle.log")
        or get_state_dir() / "promptstyle.log"
    )


def ensure_file_path(path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.touch(exist_ok=True)
    return path
