"""Mapping between wine records and research queries/results."""

import logging
import re

from wine_pipeline.core.scales import parse_scale_value
from wine_pipeline.core.schema import RawCharacteristics, WineRecord

logger = logging.getLogger(__name__)

# Identity fields, in the order they appear in a research query
QUERY_FIELDS = ("producer", "name", "vintage", "region", "country", "varietals")

TEXT_FIELDS = (
    "wine_type",
    "tasting_notes",
    "flavor_notes",
    "aroma_notes",
    "body_description",
    "food_pairing",
    "serving_temp",
    "aging_potential",
)

SCALE_FIELDS = ("acidity", "tannin", "intensity", "sweetness")

_RATING_RE = re.compile(r"(\d+(?:\.\d+)?)")


def build_query(record: WineRecord) -> str:
    """
    Compose the research query from identity fields.

    Blank fields are left out; a wine with only a name still yields a query.
    Repeated words (a producer that is also part of the name) are kept once.
    """
    words: list[str] = []
    seen: set[str] = set()
    for field_name in QUERY_FIELDS:
        value = (getattr(record, field_name) or "").strip()
        if not value:
            continue
        for word in value.split():
            key = word.lower()
            if key in seen:
                continue
            seen.add(key)
            words.append(word)
    return " ".join(words)


def parse_rating(raw) -> float | None:
    """Read a 0-5 rating; anything outside that range is dropped."""
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, (int, float)):
        value = float(raw)
    else:
        match = _RATING_RE.search(str(raw))
        if not match:
            return None
        value = float(match.group(1))
    if not 0.0 <= value <= 5.0:
        return None
    return round(value, 2)


def apply_characteristics(record: WineRecord, raw: RawCharacteristics) -> WineRecord:
    """
    Merge researched characteristics into a copy of the record.

    Only values the provider actually returned are written. A blank or
    unreadable value keeps whatever the record already had, which may be
    nothing. Identity fields and enrichment state are never touched.

    Args:
        record: The wine being enriched.
        raw: The provider's answer.

    Returns:
        A new WineRecord; the input is not modified.
    """
    updates: dict = {}

    for field_name in TEXT_FIELDS:
        value = (getattr(raw, field_name) or "").strip()
        if value:
            updates[field_name] = value.lower() if field_name == "wine_type" else value

    for field_name in SCALE_FIELDS:
        value = parse_scale_value(getattr(raw, field_name))
        if value is not None:
            updates[field_name] = value
        elif getattr(raw, field_name) not in (None, ""):
            logger.debug(f"Ignoring unreadable {field_name} value {getattr(raw, field_name)!r}")

    rating = parse_rating(raw.rating)
    if rating is not None:
        updates["rating"] = rating

    return record.model_copy(update=updates)
