import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[3]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from promptstyle.errors import CatalogError, ValidationError  # noqa: E402
from promptstyle.prompt_builder.catalog import default_catalog, load_catalog, parse_catalog  # noqa: E402
from promptstyle.prompt_builder.models import (  # noqa: E402
    PresetEntry,
    UiSnapshot,
    normalize_flag_map,
    normalize_flags,
    validate_preset_name,
)


def test_normalize_flags_zero_extends_and_truncates():
    assert normalize_flags([True], 3) == [True, False, False]
    assert normalize_flags(None, 2) == [False, False]
    assert normalize_flags([True, True, True], 2) == [True, True]


def test_normalize_flag_map_covers_every_group():
    catalog = default_catalog()

    flags = normalize_flag_map(catalog, {"genre": [True], "unknown": [True]})

    assert set(flags) == set(catalog.group_ids())
    assert flags["genre"] == [True, False, False, False, False, False]
    assert len(flags["music_mood"]) == 32


def test_validate_preset_name_trims():
    assert validate_preset_name("  Noir  ") == "Noir"
    with pytest.raises(ValidationError):
        validate_preset_name("   ")


def test_group_index_of_accepts_key_or_index():
    group = default_catalog().group("visual_style")

    assert group.index_of("cinematic") == 5
    assert group.index_of(1) == 1
    with pytest.raises(ValidationError, match="unknown option"):
        group.index_of("sparkly")


def test_default_catalog_roles_and_intensity():
    catalog = default_catalog()

    assert catalog.role("animated_lead") == ("genre", 5)
    assert catalog.role("expressive_eyes") == ("visual_style", 1)
    assert catalog.intensity_index("High") == 2
    assert catalog.intensity_label(9) is None


def test_preset_entry_rejects_non_boolean_flags():
    with pytest.raises(ValueError, match=r"genre\[1\] must be a boolean"):
        PresetEntry.from_dict("bad", {"flags": {"genre": [True, "yes"]}})


def test_snapshot_from_dict_defaults():
    snapshot = UiSnapshot.from_dict({"base_text": "hello"})

    assert snapshot.selected_preset_index == 0
    assert snapshot.flags == {}
    assert snapshot.intensity is None


def test_parse_catalog_requires_roles():
    payload = {"groups": [{"id": "genre", "options": [{"key": "action", "label": "Action"}]}]}

    with pytest.raises(CatalogError, match="roles missing"):
        parse_catalog(payload)


def test_load_catalog_from_json(tmp_path):
    catalog_path = tmp_path / "catalog.json"
    catalog_path.write_text(
        """{
          "schema_version": 7,
          "roles": {"cinematic_lead": "style.cine", "animated_lead": "style.cine", "expressive_eyes": "style.eyes"},
          "groups": [{"id": "style", "options": [
            {"key": "cine", "label": "Cine"},
            {"key": "eyes", "label": "Eyes", "fragment": "with eyes."}
          ]}]
        }""",
        encoding="utf-8",
    )

    catalog = load_catalog(catalog_path)

    assert catalog.schema_version == 7
    assert catalog.group("style").options[1].fragment == "with eyes."


def test_load_catalog_missing_file(tmp_path):
    with pytest.raises(CatalogError, match="not found"):
        load_catalog(tmp_path / "missing.yaml")
