"""Trailer prompt composition.

``compose`` is pure: it reads flag vectors (zero-extended per group), emits the
catalog's fixed fragments in a fixed order and appends the user's base text.
"""

from __future__ import annotations

from typing import Dict, List, Mapping, Optional, Sequence

from .models import FlagMap, OptionCatalog, is_set, normalize_flag_map

CINEMATIC_PREFIX = "Cinematic "
ANIMATED_PREFIX = "3D animated "
TRAILER_LABEL = "movie trailer,"
MUSIC_FALLBACK = "featuring epic orchestral swells, deep braams, and dramatic risers."
INTENSITY_TEMPLATE = "Use powerful trailer music with {intensity} intensity"

STYLE_GROUP = "visual_style"
ANIMATION_GROUP = "animation_detail"
INSTRUMENT_GROUP = "music_instrument"
MOOD_GROUP = "music_mood"


def _lead_phrase(catalog: OptionCatalog, flags: FlagMap) -> str:
    lead = ""
    if is_set(flags, catalog.role("cinematic_lead")):
        lead += CINEMATIC_PREFIX
    if is_set(flags, catalog.role("animated_lead")):
        lead += ANIMATED_PREFIX
    return lead + TRAILER_LABEL


def _fragments(catalog: OptionCatalog, flags: FlagMap, group_id: str, skip: Sequence[int] = ()) -> List[str]:
    if group_id not in catalog.group_ids():
        return []
    group = catalog.group(group_id)
    return [
        option.fragment
        for idx, (option, selected) in enumerate(zip(group.options, flags[group_id]))
        if selected and idx not in skip and option.fragment
    ]


def _selected_labels(catalog: OptionCatalog, flags: FlagMap, group_id: str) -> List[str]:
    if group_id not in catalog.group_ids():
        return []
    group = catalog.group(group_id)
    return [option.label for option, selected in zip(group.options, flags[group_id]) if selected]


def music_clause(instruments: Sequence[str], moods: Sequence[str], intensity: Optional[str] = None) -> str:
    """Render the music section from selected instrument and mood labels."""

    clause = ""
    if instruments:
        clause = "featuring " + ", ".join(instruments)
    if moods:
        if clause:
            clause += ", "
        clause += "with " + " and ".join(moods)
    if not clause:
        clause = MUSIC_FALLBACK
    if intensity:
        clause = INTENSITY_TEMPLATE.format(intensity=intensity) + ", " + clause
    return clause


def compose(
    base_text: Optional[str],
    catalog: OptionCatalog,
    flags: Optional[Mapping[str, Sequence[bool]]] = None,
    selections: Optional[Mapping[str, str]] = None,
) -> str:
    """Compose the trailer description for the given base text and flag state.

    ``flags`` maps group id to a flag vector; missing groups and short vectors
    read as unselected. ``selections`` may carry an ``intensity`` label that
    prefixes the music clause. Empty base text is omitted rather than replaced.
    """

    normalized = normalize_flag_map(catalog, flags)
    selections = selections or {}

    eyes_ref = catalog.role("expressive_eyes")
    reserved = [eyes_ref[1]] if eyes_ref and eyes_ref[0] == STYLE_GROUP else []

    segments: List[str] = [_lead_phrase(catalog, normalized)]
    segments.extend(_fragments(catalog, normalized, STYLE_GROUP, skip=reserved))
    segments.extend(_fragments(catalog, normalized, ANIMATION_GROUP))

    intensity = (selections.get("intensity") or "").strip()
    segments.append(
        music_clause(
            _selected_labels(catalog, normalized, INSTRUMENT_GROUP),
            _selected_labels(catalog, normalized, MOOD_GROUP),
            intensity or None,
        )
    )

    if is_set(normalized, eyes_ref):
        group_id, index = eyes_ref
        segments.append(catalog.group(group_id).options[index].fragment)

    segments.append((base_text or "").strip())
    return " ".join(segment for segment in segments if segment).strip()


def describe_selection(catalog: OptionCatalog, flags: Optional[Mapping[str, Sequence[bool]]]) -> Dict[str, List[str]]:
    """Return the selected option labels per group, in catalog order."""

    normalized = normalize_flag_map(catalog, flags)
    return {group.id: _selected_labels(catalog, normalized, group.id) for group in catalog.groups}
