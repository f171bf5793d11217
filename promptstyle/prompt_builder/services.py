"""Session layer binding UI state to the composer and stores.

- Purpose: hold the screen state as plain data and route toggles, generate, preset and clear actions.
- Assumptions: a single UI thread drives the session; presentation (dialogs, toasts, clipboard) stays outside.
- Side effects: writes the UI snapshot and preset blob through the configured key-value namespaces.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from ..config_service.config_service import AUTOSAVE_POLICIES, DEFAULT_CONFIG, deep_get, resolve_state_dir
from ..errors import ValidationError
from ..storage.kv_store import JsonFileStore
from ..storage.presets import PresetStore
from ..storage.ui_state import UiStateStore
from . import compiler
from .catalog import load_catalog
from .models import FlagMap, OptionCatalog, OptionRef, PresetEntry, UiSnapshot, empty_flags, validate_preset_name

logger = logging.getLogger(__name__)

UI_NAMESPACE_FILE = "ui_prefs.json"
PRESET_NAMESPACE_FILE = "presets.json"


class PromptSession:
    """Headless counterpart of the trailer prompt screen."""

    def __init__(
        self,
        catalog: OptionCatalog,
        presets: PresetStore,
        ui_state: UiStateStore,
        autosave_policy: str = "on_change",
        live_preview: bool = False,
    ) -> None:
        self.catalog = catalog
        self.presets = presets
        self.ui_state = ui_state
        self.autosave_policy = autosave_policy
        self.live_preview = live_preview

        self.base_text = ""
        self.preset_name_text = ""
        self.selected_preset_index = 0
        self.flags: FlagMap = empty_flags(catalog)
        self.intensity: Optional[int] = None
        self.result = ""

    # -- state capture -------------------------------------------------
    def snapshot(self) -> UiSnapshot:
        return UiSnapshot(
            base_text=self.base_text,
            preset_name_text=self.preset_name_text,
            selected_preset_index=self.selected_preset_index,
            flags={group_id: list(values) for group_id, values in self.flags.items()},
            intensity=self.intensity,
        )

    def _save_state(self) -> None:
        self.ui_state.save(self.snapshot())

    def _changed(self) -> None:
        if self.live_preview:
            self.result = self._compose()
        if self.autosave_policy == "on_change":
            self._save_state()

    def _compose(self) -> str:
        selections: Dict[str, str] = {}
        intensity = self.catalog.intensity_label(self.intensity)
        if intensity:
            selections["intensity"] = intensity
        return compiler.compose(self.base_text, self.catalog, self.flags, selections)

    # -- lifecycle -----------------------------------------------------
    def restore(self) -> str:
        """Rebuild the prior screen state and regenerate the result."""

        snapshot = self.ui_state.restore(self.catalog, len(self.presets.list()))
        self.base_text = snapshot.base_text
        self.preset_name_text = snapshot.preset_name_text
        self.selected_preset_index = snapshot.selected_preset_index
        self.flags = snapshot.flags
        self.intensity = snapshot.intensity
        self.result = self._compose()
        return self.result

    def suspend(self) -> None:
        self._save_state()

    # -- mutations -----------------------------------------------------
    def set_flag(self, group_id: str, option: OptionRef, value: bool = True) -> None:
        group = self.catalog.group(group_id)
        self.flags[group_id][group.index_of(option)] = bool(value)
        self._changed()

    def set_base_text(self, text: str) -> None:
        self.base_text = text or ""
        self._changed()

    def set_preset_name(self, text: str) -> None:
        self.preset_name_text = text or ""
        self._changed()

    def set_intensity(self, label: Optional[str]) -> None:
        self.intensity = self.catalog.intensity_index(label) if label else None
        self._changed()

    def generate(self) -> str:
        self.result = self._compose()
        self._save_state()
        return self.result

    def clear_all(self) -> None:
        """Reset flags, intensity, result and selection; base text and preset name are kept."""

        self.flags = empty_flags(self.catalog)
        self.intensity = None
        self.result = ""
        self.selected_preset_index = 0
        self.ui_state.clear()

    # -- presets -------------------------------------------------------
    def select_preset(self, index: int) -> Optional[PresetEntry]:
        name = self.presets.name_at(index)
        if name is None:
            return None
        entry = self.presets.get(name)
        self.selected_preset_index = index
        self.flags = entry.flags
        self.intensity = entry.intensity
        self.preset_name_text = name
        if self.live_preview:
            self.result = self._compose()
        self._save_state()
        return entry

    def save_preset(self, confirm_overwrite: Optional[Callable[[str], bool]] = None) -> Optional[PresetEntry]:
        """Save the current flags under the preset-name field.

        Raises ``ValidationError`` for an empty name. An existing name is only
        overwritten when ``confirm_overwrite(name)`` returns true.
        """

        name = validate_preset_name(self.preset_name_text)
        if name in self.presets and not (confirm_overwrite and confirm_overwrite(name)):
            logger.info("Overwrite of preset '%s' declined", name)
            return None
        entry = self.presets.save(name, self.flags, self.intensity)
        self.selected_preset_index = 0
        self._changed()
        return entry

    def delete_selected_preset(self) -> Optional[str]:
        name = self.presets.name_at(self.selected_preset_index)
        if name is None:
            return None
        self.presets.delete(name)
        self.selected_preset_index = 0
        self._changed()
        return name


def open_session(config: Optional[Dict[str, Any]] = None, state_dir: Optional[Path] = None) -> PromptSession:
    """Build a session backed by JSON namespaces under the configured state directory."""

    config = config or DEFAULT_CONFIG
    root = Path(state_dir) if state_dir else Path(resolve_state_dir(config))
    catalog = load_catalog(deep_get(config, "catalog.path") or None)

    policy = deep_get(config, "autosave.policy") or "on_change"
    if policy not in AUTOSAVE_POLICIES:
        raise ValidationError(f"unknown autosave policy '{policy}'")

    return PromptSession(
        catalog=catalog,
        presets=PresetStore(JsonFileStore(root / PRESET_NAMESPACE_FILE), catalog),
        ui_state=UiStateStore(JsonFileStore(root / UI_NAMESPACE_FILE)),
        autosave_policy=policy,
        live_preview=bool(deep_get(config, "composer.live_preview")),
    )
