"""Per-wine scoring against a guest preference."""

from __future__ import annotations

from collections.abc import Mapping

from wine_pipeline.core.scales import describe_scale, in_band
from wine_pipeline.core.schema import GuestPreference, InventoryWine, WineRecord

# Structural criteria compared by band containment: (preference field, wine field, label)
BAND_CRITERIA = (
    ("tannin", "tannin", "tannin level"),
    ("acidity", "acidity", "acidity level"),
    ("sweetness", "sweetness", "sweetness level"),
)


def _specified(value) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    return True


def _contains(haystack: str | None, needle: str) -> bool:
    return needle.strip().lower() in (haystack or "").lower()


def matched_flavor_notes(wine: WineRecord, preference: GuestPreference) -> list[str]:
    """Preference flavor keywords found in the wine's flavor notes."""
    wine_notes = (wine.flavor_notes or "").lower()
    if not wine_notes:
        return []
    return [note for note in preference.flavor_notes if note.lower() in wine_notes]


def score_wine(
    wine: WineRecord,
    preference: GuestPreference,
    weights: Mapping[str, float],
) -> float:
    """
    Weighted match score in [0, 1].

    Each criterion contributes only when both the wine and the preference
    specify it. A wine with no comparable criterion scores 0.

    Args:
        wine: The candidate wine.
        preference: Parsed guest preference.
        weights: Criterion weights keyed color, tannin, acidity, body,
            sweetness and flavor_note.
    """
    score = 0.0
    evaluated = 0

    if _specified(preference.color) and wine.wine_type:
        evaluated += 1
        if _contains(wine.wine_type, preference.color):
            score += weights.get("color", 0.0)

    for pref_field, wine_field, _ in BAND_CRITERIA:
        matched = in_band(getattr(wine, wine_field), getattr(preference, pref_field))
        if matched is None:
            continue
        evaluated += 1
        if matched:
            score += weights.get(pref_field, 0.0)

    if _specified(preference.body) and wine.body_description:
        evaluated += 1
        if _contains(wine.body_description, preference.body):
            score += weights.get("body", 0.0)

    if preference.flavor_notes and wine.flavor_notes:
        evaluated += 1
        score += weights.get("flavor_note", 0.0) * len(matched_flavor_notes(wine, preference))

    if evaluated == 0:
        return 0.0
    return round(min(max(score, 0.0), 1.0), 4)


def find_missed_criteria(wine: WineRecord, preference: GuestPreference) -> list[str]:
    """
    Requested criteria the wine does not satisfy, phrased for guests.

    e.g. ["wine color (requested red)", "tannin level (requested medium-high)"]
    """
    missed: list[str] = []

    if _specified(preference.color) and not _contains(wine.wine_type, preference.color):
        missed.append(f"wine color (requested {preference.color})")

    if _specified(preference.body) and not _contains(wine.body_description, preference.body):
        missed.append(f"body style (requested {preference.body})")

    for pref_field, wine_field, label in BAND_CRITERIA:
        requested = getattr(preference, pref_field)
        if in_band(getattr(wine, wine_field), requested) is False:
            missed.append(f"{label} (requested {requested})")

    return missed


def characteristics_for(wine: WineRecord) -> dict[str, str]:
    """Guest-facing scale terms, e.g. {"tannin": "medium-high (4.00 out of 5)"}."""
    characteristics: dict[str, str] = {}
    for field_name in ("acidity", "tannin", "intensity", "sweetness"):
        value = getattr(wine, field_name)
        if value:
            characteristics[field_name] = describe_scale(value)
    if wine.body_description:
        characteristics["body_description"] = wine.body_description
    return characteristics


def describe_match(entry: InventoryWine) -> str:
    """
    One-line description of a listed wine.

    The restaurant's own description wins; otherwise it is assembled from
    body, the first two flavor notes, tannins (reds only) and acidity.
    """
    if entry.custom_description.strip():
        return entry.custom_description.strip()

    wine = entry.wine
    parts: list[str] = []

    body = wine.body_description.strip().rstrip(".")
    if body:
        parts.append(body if "bodied" in body.lower() else f"{body}-bodied")

    notes = [n.strip() for n in wine.flavor_notes.split(",") if n.strip()][:2]
    if notes:
        parts.append(f"with {' and '.join(notes)} flavors")

    if wine.tannin and "red" in wine.wine_type.lower():
        parts.append(f"{describe_scale(wine.tannin).split(' ')[0]} tannins")

    if wine.acidity:
        parts.append(f"{describe_scale(wine.acidity).split(' ')[0]} acidity")

    return ", ".join(parts)
