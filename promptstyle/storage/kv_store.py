"""Opaque string key-value namespaces used by the preset and snapshot stores.

- Purpose: give the stores a get/set/remove string store without tying them to a medium.
- Assumptions: one namespace per file; values are already-serialized strings.
- Side effects: ``JsonFileStore`` rewrites its file on every ``set``/``remove``.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Dict, Optional

from ..errors import StorageError

logger = logging.getLogger(__name__)


class KeyValueStore:
    """Minimal string store interface."""

    def get(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def set(self, key: str, value: str) -> None:
        raise NotImplementedError

    def remove(self, key: str) -> None:
        raise NotImplementedError


class MemoryStore(KeyValueStore):
    """In-process store, used by tests and one-shot CLI invocations."""

    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self._values: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        self._values[key] = value

    def remove(self, key: str) -> None:
        self._values.pop(key, None)


class JsonFileStore(KeyValueStore):
    """File-backed namespace holding a flat JSON object of string values.

    An unreadable file is treated as an empty namespace so a damaged file never
    blocks startup; the next write replaces it.
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self._values: Dict[str, str] = self._read()

    def _read(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            payload = json.loads(self.path.read_text(encoding="utf-8") or "{}")
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("Ignoring unreadable store %s: %s", self.path, exc)
            return {}
        if not isinstance(payload, dict):
            logger.warning("Ignoring store %s: root is not an object", self.path)
            return {}
        return {str(key): value for key, value in payload.items() if isinstance(value, str)}

    def _write(self) -> None:
        tmp_name: Optional[str] = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=self.path.name, suffix=".tmp")
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(self._values, handle, indent=2, ensure_ascii=False)
            os.replace(tmp_name, self.path)
        except OSError as exc:
            if tmp_name is not None:
                self._discard_temp(tmp_name)
            raise StorageError(f"Failed to write {self.path}: {exc}") from exc

    @staticmethod
    def _discard_temp(tmp_name: str) -> None:
        try:
            os.unlink(tmp_name)
        except FileNotFoundError:
            pass
        except OSError as exc:
            logger.warning("Could not remove temporary file %s: %s", tmp_name, exc)

    def get(self, key: str) -> Optional[str]:
        return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        self._values[key] = value
        self._write()

    def remove(self, key: str) -> None:
        if self._values.pop(key, None) is not None:
            self._write()
