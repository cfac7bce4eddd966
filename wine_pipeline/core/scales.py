"""Conversion between 1-5 characteristic values and band terms."""

from __future__ import annotations

import re

# Ordered band terms and the closed numeric range each covers.
SCALE_BANDS: dict[str, tuple[float, float]] = {
    "low": (1.0, 1.5),
    "medium-low": (1.6, 2.5),
    "medium": (2.6, 3.5),
    "medium-high": (3.6, 4.5),
    "high": (4.6, 5.0),
}

_TERMS_BY_STEP = {1: "low", 2: "medium-low", 3: "medium", 4: "medium-high", 5: "high"}

DEFAULT_BAND = "medium"

_NUMBER_RE = re.compile(r"(\d+(?:\.\d+)?)")


def _canonical_term(term: str) -> str:
    """Fold spelling variants ("med_plus", "Medium High") into a band name."""
    lowered = term.strip().lower().replace("_", "-").replace(" ", "-")
    aliases = {
        "med-minus": "medium-low",
        "med-plus": "medium-high",
        "medium-minus": "medium-low",
        "medium-plus": "medium-high",
        "med": "medium",
    }
    return aliases.get(lowered, lowered)


def band_range(preference: str | float | int) -> tuple[float, float]:
    """
    Resolve a preference into the numeric range it accepts.

    Band terms map onto SCALE_BANDS; a number selects the band containing its
    rounded value. Unrecognised terms fall back to the medium band.

    Args:
        preference: A band term such as "medium-high" or a 1-5 number.

    Returns:
        (min, max) inclusive range on the 1-5 scale.
    """
    if isinstance(preference, (int, float)) and not isinstance(preference, bool):
        step = min(5, max(1, round(float(preference))))
        return SCALE_BANDS[_TERMS_BY_STEP[step]]

    term = _canonical_term(str(preference))
    if term in SCALE_BANDS:
        return SCALE_BANDS[term]

    # Numeric strings such as "4"
    match = _NUMBER_RE.fullmatch(term)
    if match:
        return band_range(float(match.group(1)))

    if "low" in term and "medium" not in term:
        return SCALE_BANDS["low"]
    if "high" in term and "medium" not in term:
        return SCALE_BANDS["high"]
    return SCALE_BANDS[DEFAULT_BAND]


def in_band(value: float | None, preference: str | float | int | None) -> bool | None:
    """
    Check a wine value against a preference band.

    Returns None when either side is missing, so callers can tell an
    unevaluable criterion apart from a miss.
    """
    if value is None or preference is None or preference == "":
        return None
    low, high = band_range(preference)
    return low <= float(value) <= high


def parse_scale_value(raw: str | float | int | None) -> float | None:
    """
    Read a 1-5 value from provider output.

    Accepts plain numbers, numeric strings, strings like "medium-high (4.20 out
    of 5)" and bare band terms (mapped to the band midpoint). Values outside
    the scale are rejected rather than clamped.
    """
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, (int, float)):
        value = float(raw)
    else:
        text = str(raw).strip()
        if not text:
            return None
        match = _NUMBER_RE.search(text)
        if match:
            value = float(match.group(1))
        else:
            term = _canonical_term(text)
            if term not in SCALE_BANDS:
                return None
            low, high = SCALE_BANDS[term]
            value = round((low + high) / 2, 2)
    if not 1.0 <= value <= 5.0:
        return None
    return value


def describe_scale(value: float | None) -> str:
    """Render a 1-5 value as e.g. "medium-high (4.20 out of 5)"."""
    if not value:
        return "unknown"
    step = min(5, max(1, round(value)))
    return f"{_TERMS_BY_STEP[step]} ({value:.2f} out of 5)"
