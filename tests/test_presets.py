import json
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from promptstyle.errors import CorruptStateError, PresetNotFoundError, StorageError, ValidationError  # noqa: E402
from promptstyle.prompt_builder.catalog import default_catalog  # noqa: E402
from promptstyle.prompt_builder.models import empty_flags  # noqa: E402
from promptstyle.storage import JsonFileStore, MemoryStore, PresetStore, SENTINEL_LABEL  # noqa: E402
from promptstyle.storage.presets import PRESET_KEY, decode_presets  # noqa: E402


@pytest.fixture
def catalog():
    return default_catalog()


def _sample_flags(catalog):
    flags = empty_flags(catalog)
    flags["visual_style"][0] = True
    flags["music_instrument"][0] = True
    flags["music_mood"][31] = True
    return flags


def test_save_then_load_roundtrip(catalog):
    store = PresetStore(MemoryStore(), catalog)
    flags = _sample_flags(catalog)

    store.save("Epic", flags, intensity=3)
    loaded = store.load("Epic")

    assert loaded.flags == flags
    assert loaded.intensity == 3


def test_roundtrip_survives_reopen(tmp_path, catalog):
    path = tmp_path / "presets.json"
    PresetStore(JsonFileStore(path), catalog).save("  Noir ", _sample_flags(catalog))

    reopened = PresetStore(JsonFileStore(path), catalog)

    assert reopened.get("Noir").flags == _sample_flags(catalog)


def test_save_rejects_blank_name(catalog):
    store = PresetStore(MemoryStore(), catalog)

    with pytest.raises(ValidationError):
        store.save("   ", empty_flags(catalog))
    with pytest.raises(ValidationError):
        store.save("Loud", empty_flags(catalog), intensity=12)


def test_list_has_sentinel_then_sorted_names(catalog):
    store = PresetStore(MemoryStore(), catalog)
    for name in ["gamma", "Alpha", "beta", "gamma"]:
        store.save(name, empty_flags(catalog))

    assert store.list() == [SENTINEL_LABEL, "Alpha", "beta", "gamma"]
    assert store.name_at(0) is None
    assert store.name_at(2) == "beta"
    assert store.name_at(10) is None


def test_delete_unknown_name_is_noop(catalog):
    backing = MemoryStore()
    store = PresetStore(backing, catalog)
    store.save("keep", empty_flags(catalog))
    before = backing.get(PRESET_KEY)

    assert store.delete("ghost") is False
    assert backing.get(PRESET_KEY) == before
    assert store.list() == [SENTINEL_LABEL, "keep"]


def test_delete_removes_and_persists(catalog):
    backing = MemoryStore()
    store = PresetStore(backing, catalog)
    store.save("gone", empty_flags(catalog))

    assert store.delete("gone") is True
    assert "gone" not in PresetStore(backing, catalog)


def test_get_missing_raises_not_found(catalog):
    store = PresetStore(MemoryStore(), catalog)

    with pytest.raises(PresetNotFoundError):
        store.get("nope")
    assert store.load("nope") is None


def test_short_stored_vectors_zero_extend(catalog):
    blob = json.dumps({"version": 1, "presets": {"old": {"flags": {"genre": [True]}, "intensity": None}}})
    store = PresetStore(MemoryStore({PRESET_KEY: blob}), catalog)

    entry = store.get("old")

    assert entry.flags["genre"] == [True, False, False, False, False, False]
    assert entry.flags["music_mood"] == [False] * 32


def test_version_zero_blob_is_migrated(catalog):
    legacy = {"Spooky": {"genre": [False, True], "visual_style": [False, False, True]}}

    decoded = decode_presets(json.dumps(legacy))

    assert decoded["Spooky"].flags["genre"] == [False, True]
    assert decoded["Spooky"].intensity is None


def test_first_release_field_names_are_mapped_to_groups(catalog):
    legacy = {
        "Spooky": {
            "genres": [False, True],
            "styles": [True],
            "animStyles": [False, False, True],
            "musicDetails": [True],
            "musicMood": [False, True],
        }
    }

    store = PresetStore(MemoryStore({PRESET_KEY: json.dumps(legacy)}), catalog)
    entry = store.get("Spooky")

    assert entry.flags["genre"][:2] == [False, True]
    assert entry.flags["visual_style"][0] is True
    assert entry.flags["animation_detail"][2] is True
    assert entry.flags["music_instrument"][0] is True
    assert entry.flags["music_mood"][1] is True
    assert set(entry.flags) == set(catalog.group_ids())


@pytest.mark.parametrize(
    "blob",
    [
        "not json",
        "[]",
        json.dumps({"version": 1, "presets": []}),
        json.dumps({"version": 1, "presets": {"x": {"flags": {"genre": [1]}}}}),
        json.dumps({"version": 99, "presets": {}}),
    ],
)
def test_corrupt_blob_falls_back_to_empty(catalog, blob):
    with pytest.raises(CorruptStateError):
        decode_presets(blob)

    store = PresetStore(MemoryStore({PRESET_KEY: blob}), catalog)

    assert store.list() == [SENTINEL_LABEL]


class _FailingStore(MemoryStore):
    def set(self, key, value):
        raise StorageError("disk full")


def test_write_failure_is_swallowed(catalog):
    store = PresetStore(_FailingStore(), catalog)

    entry = store.save("kept", empty_flags(catalog))

    assert entry.name == "kept"
    assert store.list() == [SENTINEL_LABEL, "kept"]


def test_json_file_store_ignores_unreadable_file(tmp_path):
    path = tmp_path / "presets.json"
    path.write_text("{broken", encoding="utf-8")

    store = JsonFileStore(path)
    store.set("k", "v")

    assert json.loads(path.read_text(encoding="utf-8")) == {"k": "v"}


def test_json_file_store_failed_write_leaves_no_temp_file(tmp_path):
    target = tmp_path / "presets.json"
    store = JsonFileStore(target)
    target.mkdir()

    with pytest.raises(StorageError):
        store.set("k", "v")

    assert list(tmp_path.glob("*.tmp")) == []
