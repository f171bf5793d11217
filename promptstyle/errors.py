"""Error taxonomy shared by the stores and the session layer."""

from __future__ import annotations


class PromptStyleError(Exception):
    pass


class ValidationError(PromptStyleError, ValueError):
    """Raised when user-supplied input (e.g. a preset name) is rejected."""


class PresetNotFoundError(PromptStyleError, KeyError):
    """Raised when a preset name is not present in the store."""

    def __init__(self, name: str) -> None:
        super().__init__(name)
        self.name = name

    def __str__(self) -> str:
        return f"Preset '{self.name}' not found"


class CorruptStateError(PromptStyleError):
    """Raised when a persisted blob cannot be decoded into the expected structure."""


class StorageError(PromptStyleError):
    """Raised by key-value namespaces when the backing medium cannot be written."""


class CatalogError(PromptStyleError, ValueError):
    """Raised when an option catalog file is missing or structurally invalid."""
