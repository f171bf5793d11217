"""Last-used UI snapshot persistence."""

from __future__ import annotations

import json
import logging
from typing import Optional

from ..errors import CorruptStateError, StorageError
from ..prompt_builder.models import OptionCatalog, UiSnapshot, empty_flags, normalize_flag_map
from .kv_store import KeyValueStore

logger = logging.getLogger(__name__)

UI_STATE_KEY = "ui_state"


def encode_snapshot(snapshot: UiSnapshot) -> str:
    return json.dumps(snapshot.to_dict(), ensure_ascii=False)


def decode_snapshot(blob: str) -> UiSnapshot:
    try:
        return UiSnapshot.from_dict(json.loads(blob))
    except (TypeError, ValueError) as exc:
        # json.JSONDecodeError is a ValueError subclass
        raise CorruptStateError(f"ui snapshot is invalid: {exc}") from exc


class UiStateStore:
    """Persist and restore the screen state under its own key."""

    def __init__(self, store: KeyValueStore, key: str = UI_STATE_KEY) -> None:
        self.store = store
        self.key = key

    def save(self, snapshot: UiSnapshot) -> None:
        try:
            self.store.set(self.key, encode_snapshot(snapshot))
        except StorageError as exc:
            logger.warning("Failed to persist UI snapshot: %s", exc)

    def restore(self, catalog: OptionCatalog, option_count: int) -> UiSnapshot:
        """Return the stored snapshot normalized to ``catalog``.

        Flags are zero-extended per group and the preset selection is clamped
        into ``[0, option_count)``. Missing or corrupt data yields the default
        snapshot.
        """

        blob: Optional[str] = self.store.get(self.key)
        if blob is None:
            return UiSnapshot(flags=empty_flags(catalog))
        try:
            snapshot = decode_snapshot(blob)
        except CorruptStateError as exc:
            logger.warning("Discarding corrupt UI snapshot under '%s': %s", self.key, exc)
            return UiSnapshot(flags=empty_flags(catalog))

        snapshot.flags = normalize_flag_map(catalog, snapshot.flags)
        snapshot.selected_preset_index = min(max(snapshot.selected_preset_index, 0), max(option_count - 1, 0))
        if catalog.intensity_label(snapshot.intensity) is None:
            snapshot.intensity = None
        return snapshot

    def clear(self) -> None:
        try:
            self.store.remove(self.key)
        except StorageError as exc:
            logger.warning("Failed to clear UI snapshot: %s", exc)
