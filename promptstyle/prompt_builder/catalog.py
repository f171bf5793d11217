"""Option catalog loading.

The catalog is data: group definitions, option fragments, role assignments and
intensity levels live in ``catalog.yaml`` so new options can be appended without
touching the composer.
"""

from __future__ import annotations

import json
import logging
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

import yaml

from ..errors import CatalogError
from .models import Option, OptionCatalog, OptionGroup

logger = logging.getLogger(__name__)

DEFAULT_CATALOG_PATH = Path(__file__).resolve().parent / "catalog.yaml"
REQUIRED_ROLES = ("cinematic_lead", "animated_lead", "expressive_eyes")


def _require_text(value: object, field_name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise CatalogError(f"{field_name} must be a non-empty string")
    return value.strip()


def _parse_group(payload: object, idx: int) -> OptionGroup:
    if not isinstance(payload, dict):
        raise CatalogError(f"groups[{idx}] must be a mapping")
    group_id = _require_text(payload.get("id"), f"groups[{idx}].id")
    options_payload = payload.get("options", [])
    if not isinstance(options_payload, list):
        raise CatalogError(f"groups[{idx}].options must be a list")

    options: List[Option] = []
    seen_keys = set()
    for opt_idx, option in enumerate(options_payload):
        where = f"{group_id}.options[{opt_idx}]"
        if not isinstance(option, dict):
            raise CatalogError(f"{where} must be a mapping")
        key = _require_text(option.get("key"), f"{where}.key")
        if key in seen_keys:
            raise CatalogError(f"{where}.key '{key}' is duplicated")
        seen_keys.add(key)
        fragment = option.get("fragment") or ""
        if not isinstance(fragment, str):
            raise CatalogError(f"{where}.fragment must be a string")
        options.append(Option(key=key, label=_require_text(option.get("label"), f"{where}.label"), fragment=fragment.strip()))

    title = payload.get("title") or group_id
    return OptionGroup(id=group_id, title=str(title), options=tuple(options))


def _resolve_role(reference: object, groups: Dict[str, OptionGroup], role: str) -> Tuple[str, int]:
    text = _require_text(reference, f"roles.{role}")
    group_id, _, key = text.partition(".")
    group = groups.get(group_id)
    if group is None or not key:
        raise CatalogError(f"roles.{role} must reference '<group>.<option>'; got '{text}'")
    for idx, option in enumerate(group.options):
        if option.key == key:
            return group_id, idx
    raise CatalogError(f"roles.{role} references unknown option '{text}'")


def parse_catalog(payload: Any) -> OptionCatalog:
    """Validate a decoded catalog document and build an ``OptionCatalog``."""

    if not isinstance(payload, dict):
        raise CatalogError("catalog root must be a mapping")

    schema_version = payload.get("schema_version", 1)
    if isinstance(schema_version, bool) or not isinstance(schema_version, int):
        raise CatalogError("schema_version must be an integer")

    groups_payload = payload.get("groups")
    if not isinstance(groups_payload, list) or not groups_payload:
        raise CatalogError("groups must be a non-empty list")
    groups = [_parse_group(group, idx) for idx, group in enumerate(groups_payload)]
    by_id = {group.id: group for group in groups}
    if len(by_id) != len(groups):
        raise CatalogError("group ids must be unique")

    roles_payload = payload.get("roles") or {}
    if not isinstance(roles_payload, dict):
        raise CatalogError("roles must be a mapping")
    missing = [role for role in REQUIRED_ROLES if role not in roles_payload]
    if missing:
        raise CatalogError(f"roles missing required entries: {', '.join(missing)}")
    roles = {str(role): _resolve_role(ref, by_id, str(role)) for role, ref in roles_payload.items()}

    levels = payload.get("intensity_levels") or []
    if not isinstance(levels, list):
        raise CatalogError("intensity_levels must be a list")
    intensity_levels = tuple(_require_text(level, f"intensity_levels[{idx}]").lower() for idx, level in enumerate(levels))

    return OptionCatalog(
        groups=tuple(groups),
        roles=roles,
        intensity_levels=intensity_levels,
        schema_version=schema_version,
    )


def load_catalog(path: Optional[Union[str, Path]] = None) -> OptionCatalog:
    """Load a catalog from YAML or JSON; ``None`` selects the packaged catalog."""

    if path is None or str(path) == "":
        return default_catalog()

    catalog_path = Path(path).expanduser()
    if not catalog_path.exists():
        raise CatalogError(f"Catalog file not found at {catalog_path}")
    text = catalog_path.read_text(encoding="utf-8")
    try:
        if catalog_path.suffix.lower() == ".json":
            payload = json.loads(text)
        else:
            payload = yaml.safe_load(text)
    except (json.JSONDecodeError, yaml.YAMLError) as exc:
        raise CatalogError(f"Failed to parse catalog {catalog_path}: {exc}") from exc

    catalog = parse_catalog(payload)
    logger.debug("Loaded catalog %s (schema v%s)", catalog_path, catalog.schema_version)
    return catalog


@lru_cache(maxsize=1)
def default_catalog() -> OptionCatalog:
    payload = yaml.safe_load(DEFAULT_CATALOG_PATH.read_text(encoding="utf-8"))
    return parse_catalog(payload)
