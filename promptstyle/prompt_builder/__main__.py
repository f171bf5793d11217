"""CLI entrypoint for the trailer prompt builder.

- Purpose: compose trailer prompts from option selections and manage named presets from a shell.
- Assumptions: selections are passed as ``group=key`` pairs matching the option catalog.
- Side effects: ``presets save``/``presets delete`` rewrite the preset namespace under the state directory.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from ..config_service.config_service import DEFAULT_CONFIG_PATH, ConfigError, load_config
from ..errors import CatalogError, PresetNotFoundError, ValidationError
from ..path_utils import ensure_file_path, get_log_path
from . import compiler
from .models import FlagMap, OptionCatalog, empty_flags
from .services import PromptSession, open_session

logger = logging.getLogger(__name__)


def _parse_selections(catalog: OptionCatalog, pairs: Iterable[str], base: Optional[FlagMap] = None) -> FlagMap:
    flags = {group_id: list(values) for group_id, values in (base or empty_flags(catalog)).items()}
    for pair in pairs:
        if "=" not in pair:
            raise ValidationError(f"selection '{pair}' must use group=option format")
        group_id, option = (part.strip() for part in pair.split("=", 1))
        group = catalog.group(group_id)
        flags[group_id][group.index_of(int(option) if option.isdigit() else option)] = True
    return flags


def _configure_logging(level: str, log_file: Optional[Path]) -> None:
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file is not None:
        handlers.append(logging.FileHandler(ensure_file_path(log_file), encoding="utf-8"))
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        handlers=handlers,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Compose trailer prompts and manage option presets")
    parser.add_argument("--config", default=DEFAULT_CONFIG_PATH, help="Path to the JSON/YAML config file")
    parser.add_argument("--state-dir", type=Path, help="Directory holding presets and UI state")
    parser.add_argument("--log-level", default="WARNING", help="Logging level (DEBUG, INFO, WARNING, ...)")
    parser.add_argument("--log-file", type=Path, help="Also write logs to this file")
    parser.add_argument("--log", action="store_true", help="Also write logs to the platform log path")
    subparsers = parser.add_subparsers(dest="command", required=True)

    compose_parser = subparsers.add_parser("compose", help="Compose a trailer prompt")
    compose_parser.add_argument("--base", default="", help="Base description appended verbatim")
    compose_parser.add_argument("--select", action="append", default=[], help="Selected option as group=key")
    compose_parser.add_argument("--intensity", help="Music intensity level")
    compose_parser.add_argument("--preset", help="Start from a saved preset")
    compose_parser.add_argument("--json", action="store_true", help="Emit prompt and selections as JSON")

    subparsers.add_parser("groups", help="List option groups and keys")

    presets_parser = subparsers.add_parser("presets", help="Manage saved presets")
    preset_commands = presets_parser.add_subparsers(dest="preset_command", required=True)
    preset_commands.add_parser("list", help="List preset names")
    show_parser = preset_commands.add_parser("show", help="Show a preset's selections")
    show_parser.add_argument("name")
    save_parser = preset_commands.add_parser("save", help="Save selections under a name")
    save_parser.add_argument("name")
    save_parser.add_argument("--select", action="append", default=[], help="Selected option as group=key")
    save_parser.add_argument("--intensity", help="Music intensity level")
    save_parser.add_argument("--force", action="store_true", help="Overwrite an existing preset")
    delete_parser = preset_commands.add_parser("delete", help="Delete a preset")
    delete_parser.add_argument("name")
    return parser


def command_compose(session: PromptSession, args: argparse.Namespace) -> int:
    catalog = session.catalog
    base_flags = None
    intensity = None
    if args.preset:
        entry = session.presets.get(args.preset)
        base_flags = entry.flags
        intensity = catalog.intensity_label(entry.intensity)
    flags = _parse_selections(catalog, args.select, base_flags)
    if args.intensity:
        intensity = catalog.intensity_levels[catalog.intensity_index(args.intensity)]

    selections: Dict[str, str] = {"intensity": intensity} if intensity else {}
    prompt = compiler.compose(args.base, catalog, flags, selections)
    if args.json:
        payload = {
            "prompt": prompt,
            "selections": compiler.describe_selection(catalog, flags),
            "intensity": intensity,
        }
        print(json.dumps(payload, indent=2, ensure_ascii=False))
    else:
        print(prompt)
    return 0


def command_groups(session: PromptSession) -> int:
    for group in session.catalog.groups:
        print(f"{group.id} ({group.title})")
        for idx, option in enumerate(group.options):
            print(f"  {idx:>2} {option.key}: {option.label}")
    if session.catalog.intensity_levels:
        print("intensity: " + ", ".join(session.catalog.intensity_levels))
    return 0


def command_presets(session: PromptSession, args: argparse.Namespace) -> int:
    store = session.presets
    catalog = session.catalog
    if args.preset_command == "list":
        for name in store.list()[1:]:
            print(name)
        return 0

    if args.preset_command == "show":
        entry = store.get(args.name)
        payload = {
            "name": entry.name,
            "selections": compiler.describe_selection(catalog, entry.flags),
            "intensity": catalog.intensity_label(entry.intensity),
        }
        print(json.dumps(payload, indent=2, ensure_ascii=False))
        return 0

    if args.preset_command == "save":
        if args.name.strip() in store and not args.force:
            raise ValidationError(f"Preset '{args.name.strip()}' already exists; pass --force to overwrite")
        intensity = catalog.intensity_index(args.intensity) if args.intensity else None
        entry = store.save(args.name, _parse_selections(catalog, args.select), intensity)
        print(f"Preset '{entry.name}' saved")
        return 0

    if args.preset_command == "delete":
        if store.delete(args.name):
            print(f"Deleted '{args.name.strip()}'")
        else:
            print(f"Preset '{args.name}' not found; nothing deleted")
        return 0
    return 1


def main(argv: Iterable[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)
    _configure_logging(args.log_level, args.log_file or (get_log_path() if args.log else None))

    try:
        loaded = load_config(args.config)
        for note in loaded.warnings:
            logger.warning(note)
        session = open_session(loaded.data, state_dir=args.state_dir)
        if args.command == "compose":
            return command_compose(session, args)
        if args.command == "groups":
            return command_groups(session)
        if args.command == "presets":
            return command_presets(session, args)
    except (ConfigError, CatalogError, ValidationError, PresetNotFoundError) as exc:
        print(f"[error] {exc}", file=sys.stderr)
        return 1
    return 1


if __name__ == "__main__":
    sys.exit(main())
