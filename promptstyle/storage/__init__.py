"""Local persistence for presets and the last-used UI snapshot."""

from ..errors import CorruptStateError, PresetNotFoundError, PromptStyleError, StorageError, ValidationError
from .kv_store import JsonFileStore, KeyValueStore, MemoryStore
from .presets import SENTINEL_LABEL, PresetStore
from .ui_state import UiStateStore

__all__ = [
    "CorruptStateError",
    "JsonFileStore",
    "KeyValueStore",
    "MemoryStore",
    "PresetNotFoundError",
    "PresetStore",
    "PromptStyleError",
    "SENTINEL_LABEL",
    "StorageError",
    "UiStateStore",
    "ValidationError",
]
