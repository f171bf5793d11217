"""Shared data models for the trailer prompt builder.

- Purpose: define option groups, flag vectors, presets and UI snapshots as plain data.
- Assumptions: option identity is its index inside a group; vectors are order-sensitive.
- Side effects: none; classes are passive containers.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from ..errors import ValidationError

FlagVector = List[bool]
FlagMap = Dict[str, FlagVector]
OptionRef = Union[int, str]


@dataclass(frozen=True)
class Option:
    key: str
    label: str
    fragment: str = ""


@dataclass(frozen=True)
class OptionGroup:
    """An ordered, fixed-length list of selectable options."""

    id: str
    title: str
    options: Tuple[Option, ...] = ()

    def __len__(self) -> int:
        return len(self.options)

    def index_of(self, option: OptionRef) -> int:
        """Resolve an option index or key to its position in the group."""

        if isinstance(option, bool):
            raise ValidationError(f"{self.id}: option reference must be an index or key")
        if isinstance(option, int):
            if not 0 <= option < len(self.options):
                raise ValidationError(f"{self.id}: option index {option} out of range")
            return option
        for idx, candidate in enumerate(self.options):
            if candidate.key == option:
                return idx
        raise ValidationError(f"{self.id}: unknown option '{option}'")

    def labels(self) -> List[str]:
        return [option.label for option in self.options]


@dataclass(frozen=True)
class OptionCatalog:
    """Versioned set of option groups plus the designated role flags."""

    groups: Tuple[OptionGroup, ...]
    roles: Dict[str, Tuple[str, int]] = field(default_factory=dict)
    intensity_levels: Tuple[str, ...] = ()
    schema_version: int = 1

    def group(self, group_id: str) -> OptionGroup:
        for group in self.groups:
            if group.id == group_id:
                return group
        raise ValidationError(f"unknown option group '{group_id}'")

    def group_ids(self) -> List[str]:
        return [group.id for group in self.groups]

    def role(self, name: str) -> Optional[Tuple[str, int]]:
        return self.roles.get(name)

    def intensity_label(self, index: Optional[int]) -> Optional[str]:
        if index is None or not 0 <= index < len(self.intensity_levels):
            return None
        return self.intensity_levels[index]

    def intensity_index(self, label: str) -> int:
        try:
            return self.intensity_levels.index(label.strip().lower())
        except ValueError as exc:
            raise ValidationError(
                f"unknown intensity '{label}'; expected one of {list(self.intensity_levels)}"
            ) from exc


def normalize_flags(values: Optional[Iterable[object]], length: int) -> FlagVector:
    """Zero-extend (or truncate) a stored vector to ``length`` booleans."""

    flags = [bool(value) for value in (values or [])][:length]
    flags.extend([False] * (length - len(flags)))
    return flags


def normalize_flag_map(catalog: OptionCatalog, flags: Optional[Mapping[str, Sequence[object]]]) -> FlagMap:
    """Return one normalized vector per catalog group; unknown groups are dropped."""

    flags = flags or {}
    return {group.id: normalize_flags(flags.get(group.id), len(group)) for group in catalog.groups}


def empty_flags(catalog: OptionCatalog) -> FlagMap:
    return normalize_flag_map(catalog, None)


def is_set(flags: Mapping[str, Sequence[bool]], ref: Optional[Tuple[str, int]]) -> bool:
    if ref is None:
        return False
    group_id, index = ref
    vector = flags.get(group_id) or []
    return index < len(vector) and bool(vector[index])


def validate_preset_name(name: object) -> str:
    """Return the trimmed preset name or raise ``ValidationError``."""

    if not isinstance(name, str) or not name.strip():
        raise ValidationError("preset name must be a non-empty string")
    return name.strip()


def _validate_flag_payload(flags: object, field_name: str) -> FlagMap:
    if not isinstance(flags, dict):
        raise ValueError(f"{field_name} must be a mapping of group id to list")
    validated: FlagMap = {}
    for group_id, values in flags.items():
        if not isinstance(values, list):
            raise ValueError(f"{field_name}.{group_id} must be a list")
        for idx, value in enumerate(values):
            if not isinstance(value, bool):
                raise ValueError(f"{field_name}.{group_id}[{idx}] must be a boolean")
        validated[str(group_id)] = list(values)
    return validated


# Field names written by the first (mobile) release, mapped to catalog group ids
LEGACY_PRESET_FIELDS = {
    "genres": "genre",
    "styles": "visual_style",
    "animStyles": "animation_detail",
    "musicDetails": "music_instrument",
    "musicMood": "music_mood",
}
LEGACY_SNAPSHOT_FLAG_FIELDS = {
    "genreStates": "genre",
    "styleStates": "visual_style",
    "animStyleStates": "animation_detail",
    "musicDetailStates": "music_instrument",
    "musicMoodStates": "music_mood",
}
LEGACY_SNAPSHOT_FIELDS = {
    "basePromptText": "base_text",
    "presetNameText": "preset_name_text",
    "selectedPresetIndex": "selected_preset_index",
}


def upgrade_legacy_snapshot(payload: Dict[str, object]) -> Dict[str, object]:
    """Translate a first-release snapshot (camelCase fields) to the current layout."""

    legacy_keys = set(LEGACY_SNAPSHOT_FIELDS) | set(LEGACY_SNAPSHOT_FLAG_FIELDS)
    if not legacy_keys.intersection(payload):
        return payload
    upgraded: Dict[str, object] = {
        new: payload[old] for old, new in LEGACY_SNAPSHOT_FIELDS.items() if old in payload
    }
    upgraded["flags"] = {
        group_id: payload[old] for old, group_id in LEGACY_SNAPSHOT_FLAG_FIELDS.items() if old in payload
    }
    return upgraded


def _validate_optional_int(value: object, field_name: str) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{field_name} must be an integer or null")
    return value


@dataclass
class PresetEntry:
    """Named snapshot of flag vectors plus an optional intensity index."""

    name: str
    flags: FlagMap = field(default_factory=dict)
    intensity: Optional[int] = None

    def to_dict(self) -> Dict[str, object]:
        return {
            "flags": {group_id: list(values) for group_id, values in self.flags.items()},
            "intensity": self.intensity,
        }

    @classmethod
    def from_dict(cls, name: str, payload: object) -> "PresetEntry":
        if not isinstance(payload, dict):
            raise ValueError(f"preset '{name}' must be an object")
        return cls(
            name=name,
            flags=_validate_flag_payload(payload.get("flags", {}), f"{name}.flags"),
            intensity=_validate_optional_int(payload.get("intensity"), f"{name}.intensity"),
        )


@dataclass
class UiSnapshot:
    """Last-used screen state restored on launch."""

    base_text: str = ""
    preset_name_text: str = ""
    selected_preset_index: int = 0
    flags: FlagMap = field(default_factory=dict)
    intensity: Optional[int] = None

    def to_dict(self) -> Dict[str, object]:
        return {
            "base_text": self.base_text,
            "preset_name_text": self.preset_name_text,
            "selected_preset_index": self.selected_preset_index,
            "flags": {group_id: list(values) for group_id, values in self.flags.items()},
            "intensity": self.intensity,
        }

    @classmethod
    def from_dict(cls, payload: object) -> "UiSnapshot":
        if not isinstance(payload, dict):
            raise ValueError("ui snapshot must be an object")
        payload = upgrade_legacy_snapshot(payload)
        base_text = payload.get("base_text", "")
        preset_name_text = payload.get("preset_name_text", "")
        if not isinstance(base_text, str):
            raise ValueError("base_text must be a string")
        if not isinstance(preset_name_text, str):
            raise ValueError("preset_name_text must be a string")
        selected = _validate_optional_int(payload.get("selected_preset_index", 0), "selected_preset_index")
        return cls(
            base_text=base_text,
            preset_name_text=preset_name_text,
            selected_preset_index=selected or 0,
            flags=_validate_flag_payload(payload.get("flags", {}), "flags"),
            intensity=_validate_optional_int(payload.get("intensity"), "intensity"),
        )
