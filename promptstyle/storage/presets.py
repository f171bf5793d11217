"""Named preset persistence.

- Purpose: own the name -> PresetEntry map and persist it as one JSON blob.
- Assumptions: a single caller mutates the store; overwrite confirmation is a UI concern.
- Side effects: rewrites the whole blob in the backing ``KeyValueStore`` on every mutation.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from ..errors import CorruptStateError, PresetNotFoundError, StorageError, ValidationError
from ..prompt_builder.catalog import default_catalog
from ..prompt_builder.models import (
    LEGACY_PRESET_FIELDS,
    OptionCatalog,
    PresetEntry,
    normalize_flag_map,
    validate_preset_name,
)
from .kv_store import KeyValueStore

logger = logging.getLogger(__name__)

PRESET_KEY = "preset_data"
SENTINEL_LABEL = "— Load Preset —"
CURRENT_VERSION = 1


def migrate_v0_to_v1(data: Dict[str, Any]) -> Dict[str, Any]:
    """Wrap a bare first-release ``name -> {genres, styles, ...}`` mapping in the versioned envelope."""

    presets: Dict[str, Any] = {}
    for name, groups in data.items():
        if not isinstance(groups, dict):
            raise CorruptStateError(f"preset '{name}' must be an object")
        intensity = groups.get("intensity")
        flags = {
            LEGACY_PRESET_FIELDS.get(key, key): value for key, value in groups.items() if key != "intensity"
        }
        presets[name] = {"flags": flags, "intensity": intensity}
    return {"version": 1, "presets": presets}


MIGRATIONS: Dict[int, Callable[[Dict[str, Any]], Dict[str, Any]]] = {
    0: migrate_v0_to_v1,
}


def encode_presets(presets: Mapping[str, PresetEntry]) -> str:
    payload = {
        "version": CURRENT_VERSION,
        "presets": {name: presets[name].to_dict() for name in sorted(presets)},
    }
    return json.dumps(payload, ensure_ascii=False)


def decode_presets(blob: str) -> Dict[str, PresetEntry]:
    """Decode a preset blob, migrating older layouts; raises ``CorruptStateError``."""

    try:
        data = json.loads(blob)
    except (TypeError, json.JSONDecodeError) as exc:
        raise CorruptStateError(f"preset blob is not valid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise CorruptStateError("preset blob root must be an object")

    version = data.get("version", 0) if "presets" in data else 0
    if isinstance(version, bool) or not isinstance(version, int) or version > CURRENT_VERSION:
        raise CorruptStateError(f"unsupported preset blob version {version!r}")
    while version < CURRENT_VERSION:
        data = MIGRATIONS[version](data)
        version = data["version"]

    raw_presets = data.get("presets")
    if not isinstance(raw_presets, dict):
        raise CorruptStateError("presets must be an object")

    decoded: Dict[str, PresetEntry] = {}
    for raw_name, payload in raw_presets.items():
        try:
            name = validate_preset_name(raw_name)
            decoded[name] = PresetEntry.from_dict(name, payload)
        except ValueError as exc:
            raise CorruptStateError(str(exc)) from exc
    return decoded


class PresetStore:
    """Keyed persistence of named flag-vector snapshots."""

    def __init__(
        self,
        store: KeyValueStore,
        catalog: Optional[OptionCatalog] = None,
        key: str = PRESET_KEY,
    ) -> None:
        self.store = store
        self.catalog = catalog or default_catalog()
        self.key = key
        self._presets: Dict[str, PresetEntry] = self._read()

    def _read(self) -> Dict[str, PresetEntry]:
        blob = self.store.get(self.key)
        if blob is None:
            return {}
        try:
            return decode_presets(blob)
        except CorruptStateError as exc:
            logger.warning("Discarding corrupt preset data under '%s': %s", self.key, exc)
            return {}

    def _persist(self) -> None:
        try:
            self.store.set(self.key, encode_presets(self._presets))
        except StorageError as exc:
            logger.warning("Failed to persist presets: %s", exc)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.strip() in self._presets

    def __len__(self) -> int:
        return len(self._presets)

    def save(
        self,
        name: str,
        flags: Mapping[str, Sequence[bool]],
        intensity: Optional[int] = None,
    ) -> PresetEntry:
        """Create or overwrite ``name``; callers confirm overwrites beforehand."""

        name = validate_preset_name(name)
        if intensity is not None and self.catalog.intensity_label(intensity) is None:
            raise ValidationError(f"intensity index {intensity} out of range")
        entry = PresetEntry(name=name, flags=normalize_flag_map(self.catalog, flags), intensity=intensity)
        self._presets[name] = entry
        self._persist()
        logger.info("Saved preset '%s'", name)
        return entry

    def delete(self, name: str) -> bool:
        """Remove ``name``; an unknown name leaves the store untouched."""

        key = name.strip() if isinstance(name, str) else name
        if key not in self._presets:
            logger.debug("Delete ignored; preset '%s' not found", name)
            return False
        del self._presets[key]
        self._persist()
        logger.info("Deleted preset '%s'", key)
        return True

    def list(self) -> List[str]:
        """Return the sentinel label followed by stored names, sorted ascending."""

        return [SENTINEL_LABEL] + sorted(self._presets)

    def name_at(self, index: int) -> Optional[str]:
        """Map a ``list()`` position back to a preset name; ``None`` for the sentinel."""

        names = self.list()
        if index <= 0 or index >= len(names):
            return None
        return names[index]

    def get(self, name: str) -> PresetEntry:
        """Return a preset by name or raise ``PresetNotFoundError``."""

        key = name.strip() if isinstance(name, str) else name
        entry = self._presets.get(key)
        if entry is None:
            raise PresetNotFoundError(str(name))
        return PresetEntry(
            name=entry.name,
            flags=normalize_flag_map(self.catalog, entry.flags),
            intensity=entry.intensity,
        )

    def load(self, name: str) -> Optional[PresetEntry]:
        """Return a preset when it exists, otherwise ``None``."""

        try:
            return self.get(name)
        except PresetNotFoundError:
            return None
