"""Configuration service for PromptStyle.

Loads and saves a single JSON/YAML settings file with migrations, environment
overrides, and ``key=value`` overrides for the CLI and session layer.
"""
from __future__ import annotations

import argparse
import json
import os
import sys
from copy import deepcopy
from dataclasses import dataclass
from typing import Any, Dict, List, Tuple

import yaml

from ..path_utils import get_config_file, get_state_dir


class ConfigError(Exception):
    pass


DEFAULT_CONFIG_PATH = str(get_config_file())
DEFAULT_ENV_PREFIX = "PROMPTSTYLE_"
CURRENT_VERSION = 1

AUTOSAVE_POLICIES = {"on_change", "explicit"}

DEFAULT_CONFIG: Dict[str, Any] = {
    "version": CURRENT_VERSION,
    "storage": {
        "state_dir": "",
    },
    "catalog": {
        "path": "",
    },
    "autosave": {
        "policy": "on_change",
    },
    "composer": {
        "live_preview": False,
    },
}

# Flat keys written by the first release, mapped to their nested home
DEPRECATED_FIELD_MAP = {
    "state_dir": "storage.state_dir",
    "catalog_path": "catalog.path",
    "autosave": "autosave.policy",
    "live_preview": "composer.live_preview",
}


@dataclass
class LoadedConfig:
    data: Dict[str, Any]
    warnings: List[str]
    migrated: bool


def ensure_config_root(path: str) -> None:
    root = os.path.dirname(path)
    if root and not os.path.exists(root):
        os.makedirs(root, exist_ok=True)


def coerce_value(value: Any) -> Any:
    if isinstance(value, str):
        lower = value.strip().lower()
        if lower in {"true", "1", "yes", "on"}:
            return True
        if lower in {"false", "0", "no", "off"}:
            return False
    return value


def deep_get(data: Dict[str, Any], path: str) -> Any:
    current: Any = data
    for key in path.split("."):
        if not isinstance(current, dict) or key not in current:
            return None
        current = current[key]
    return current


def deep_set(data: Dict[str, Any], path: str, value: Any) -> None:
    current = data
    parts = path.split(".")
    for key in parts[:-1]:
        if key not in current or not isinstance(current[key], dict):
            current[key] = {}
        current = current[key]
    current[parts[-1]] = value


def load_raw_config(path: str) -> Tuple[Dict[str, Any], List[str]]:
    warnings: List[str] = []
    if not os.path.exists(path):
        return deepcopy(DEFAULT_CONFIG), warnings

    with open(path, "r", encoding="utf-8") as f:
        text = f.read()

    stripped = text.lstrip()
    if not stripped:
        return deepcopy(DEFAULT_CONFIG), warnings

    try:
        if stripped.startswith("{"):
            data = json.loads(text)
        else:
            data = yaml.safe_load(text) or {}
    except (json.JSONDecodeError, yaml.YAMLError) as exc:
        raise ConfigError(f"Failed to parse {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError("Configuration root must be an object/dictionary.")
    return data, warnings


def migrate_v0_to_v1(data: Dict[str, Any], warnings: List[str]) -> Dict[str, Any]:
    migrated = deepcopy(DEFAULT_CONFIG)
    for key, value in data.items():
        if key == "version":
            continue
        if key in DEFAULT_CONFIG and isinstance(value, dict):
            for child_key, child_value in value.items():
                deep_set(migrated, f"{key}.{child_key}", child_value)
            continue
        target = DEPRECATED_FIELD_MAP.get(key)
        if not target:
            warnings.append(f"Deprecated or unknown field '{key}' preserved under legacy namespace.")
            migrated.setdefault("legacy", {})[key] = value
            continue
        deep_set(migrated, target, value)
    migrated["version"] = 1
    return migrated


MIGRATIONS = {
    0: migrate_v0_to_v1,
}


def migrate(data: Dict[str, Any], warnings: List[str]) -> Tuple[Dict[str, Any], bool]:
    migrated = False
    version = data.get("version", 0)
    if isinstance(version, bool) or not isinstance(version, int):
        raise ConfigError(f"Config version must be an integer, got {version!r}")
    while version < CURRENT_VERSION:
        migrate_fn = MIGRATIONS.get(version)
        if not migrate_fn:
            raise ConfigError(f"No migration path from version {version}")
        data = migrate_fn(data, warnings)
        version = data.get("version", version + 1)
        migrated = True
    return data, migrated


def validate(config: Dict[str, Any], warnings: List[str]) -> Dict[str, Any]:
    for section, defaults in DEFAULT_CONFIG.items():
        if isinstance(defaults, dict):
            if not isinstance(config.get(section), dict):
                config[section] = {}
            for key, value in defaults.items():
                config[section].setdefault(key, value)

    policy = deep_get(config, "autosave.policy")
    if policy not in AUTOSAVE_POLICIES:
        warnings.append(
            f"Invalid autosave.policy '{policy}' replaced with 'on_change'. Allowed: {sorted(AUTOSAVE_POLICIES)}"
        )
        deep_set(config, "autosave.policy", "on_change")

    live_preview = deep_get(config, "composer.live_preview")
    if not isinstance(live_preview, bool):
        coerced = coerce_value(live_preview) if isinstance(live_preview, str) else live_preview
        if not isinstance(coerced, bool):
            coerced = DEFAULT_CONFIG["composer"]["live_preview"]
        warnings.append(f"Field composer.live_preview expected boolean; {live_preview!r} read as {coerced}.")
        deep_set(config, "composer.live_preview", coerced)

    for path in ("storage.state_dir", "catalog.path"):
        value = deep_get(config, path)
        if value is None:
            deep_set(config, path, "")
        elif not isinstance(value, str):
            warnings.append(f"Field {path} expected string; coerced from {value!r}.")
            deep_set(config, path, str(value))

    return config


def save_config(data: Dict[str, Any], path: str) -> None:
    ensure_config_root(path)
    ext = os.path.splitext(path)[1].lower()
    if ext in {".yaml", ".yml"}:
        with open(path, "w", encoding="utf-8") as f:
            yaml.safe_dump(data, f, sort_keys=False)
    else:
        with open(path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)


def apply_overrides(config: Dict[str, Any], overrides: List[str]) -> None:
    for override in overrides:
        if "=" not in override:
            raise ConfigError(f"Override '{override}' must use key=value format")
        key, raw_value = override.split("=", 1)
        deep_set(config, key.strip(), coerce_value(raw_value.strip()))


def apply_env_overrides(config: Dict[str, Any], prefix: str, warnings: List[str]) -> None:
    if not prefix:
        return
    for key, value in os.environ.items():
        if not key.startswith(prefix):
            continue
        path = key[len(prefix) :].lower().replace("__", ".")
        # PROMPTSTYLE_CONFIG_DIR and friends are path_utils settings, not config keys
        if "." not in path:
            continue
        warnings.append(f"Environment override {key} applied to {path}")
        deep_set(config, path, coerce_value(value))


def load_config(path: str = DEFAULT_CONFIG_PATH, env_prefix: str = DEFAULT_ENV_PREFIX, overrides: List[str] | None = None) -> LoadedConfig:
    raw, warnings = load_raw_config(path)
    migrated_config, migrated = migrate(raw, warnings)
    apply_env_overrides(migrated_config, env_prefix, warnings)
    if overrides:
        apply_overrides(migrated_config, overrides)
    validated = validate(migrated_config, warnings)
    return LoadedConfig(validated, warnings, migrated)


def resolve_state_dir(config: Dict[str, Any]) -> str:
    """Return the configured state directory, falling back to the platform default."""

    configured = deep_get(config, "storage.state_dir")
    if configured:
        return os.path.expanduser(configured)
    return str(get_state_dir())


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="PromptStyle configuration service")
    parser.add_argument("--config", default=DEFAULT_CONFIG_PATH, help="Path to the JSON/YAML config file")
    subparsers = parser.add_subparsers(dest="command", required=True)

    export_parser = subparsers.add_parser("export", help="Print the effective configuration")
    export_parser.add_argument("--format", choices=["json", "yaml"], default="yaml")
    export_parser.add_argument("--env-prefix", default=DEFAULT_ENV_PREFIX, help="Environment variable prefix for overrides")
    export_parser.add_argument("--set", dest="overrides", action="append", default=[], help="Override key=value pairs")

    save_parser = subparsers.add_parser("save", help="Persist configuration changes")
    save_parser.add_argument("--set", dest="overrides", action="append", default=[], help="Updated key=value pairs")

    subparsers.add_parser("migrate", help="Migrate config file to the latest version")
    return parser


def command_export(args: argparse.Namespace) -> int:
    loaded = load_config(args.config, args.env_prefix, args.overrides)
    if args.format == "json":
        json.dump(loaded.data, sys.stdout, indent=2)
        sys.stdout.write("\n")
    else:
        yaml.safe_dump(loaded.data, sys.stdout, sort_keys=False)
    for note in loaded.warnings:
        print(f"[warn] {note}", file=sys.stderr)
    return 0


def command_save(args: argparse.Namespace) -> int:
    loaded = load_config(args.config, env_prefix="", overrides=args.overrides)
    save_config(loaded.data, args.config)
    for note in loaded.warnings:
        print(f"[warn] {note}", file=sys.stderr)
    return 0


def command_migrate(args: argparse.Namespace) -> int:
    raw, warnings = load_raw_config(args.config)
    migrated, did_migrate = migrate(raw, warnings)
    validated = validate(migrated, warnings)
    if did_migrate:
        save_config(validated, args.config)
    for note in warnings:
        print(f"[warn] {note}", file=sys.stderr)
    print(json.dumps({"migrated": did_migrate, "version": validated.get("version")}, indent=2))
    return 0


def main(argv: List[str] | None = None) -> int:
    parser = build_arg_parser()
    args = parser.parse_args(argv)

    try:
        if args.command == "export":
            return command_export(args)
        if args.command == "save":
            return command_save(args)
        if args.command == "migrate":
            return command_migrate(args)
    except ConfigError as exc:
        print(f"[error] {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
