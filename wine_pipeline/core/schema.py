"""Pydantic v2 models for wine records, guest preferences and recommendations."""

import re
from datetime import UTC, datetime
from typing import Annotated, Any

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
)

from wine_pipeline.core.enums import EnrichmentStatus, MatchType, PriceRange


def _utc_now() -> datetime:
    """Return current UTC datetime (timezone-aware)."""
    return datetime.now(UTC)


_WHITESPACE_RE = re.compile(r"\s+")

# 1-5 characteristic scale used for acidity, tannin, intensity and sweetness
ScaleValue = Annotated[float, Field(ge=0.0, le=5.0)]

# Characteristic fields written by enrichment, in display order
CHARACTERISTIC_FIELDS: tuple[str, ...] = (
    "wine_type",
    "acidity",
    "tannin",
    "intensity",
    "sweetness",
    "body_description",
    "tasting_notes",
    "flavor_notes",
    "aroma_notes",
    "serving_temp",
    "aging_potential",
    "food_pairing",
    "rating",
)


def normalize_key_part(value: str | None) -> str:
    """Lowercase and collapse whitespace for uniqueness comparisons."""
    if not value:
        return ""
    return _WHITESPACE_RE.sub(" ", str(value)).strip().lower()


def make_cache_key(name: str, producer: str | None, vintage: str | None) -> str:
    """Build the (name, producer, vintage) uniqueness key."""
    return "|".join(
        normalize_key_part(part) for part in (name, producer, vintage)
    )


def _coerce_text(value: Any) -> Any:
    """Turn null-ish or list values from providers into plain strings."""
    if value is None:
        return ""
    if isinstance(value, (list, tuple)):
        return ", ".join(str(v).strip() for v in value if str(v).strip())
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    if isinstance(value, str) and value.strip().lower() in {"null", "undefined", "none", "n/a"}:
        return ""
    return value


class WineRecord(BaseModel):
    """A wine with its identity, researched characteristics and enrichment state."""

    id: int | None = None

    # Identity
    name: str
    producer: str = ""
    vintage: str = ""
    region: str = ""
    country: str = ""
    varietals: str = ""
    wine_type: str = ""
    wine_style: str = ""

    # Structural characteristics (1-5 scale)
    acidity: ScaleValue | None = None
    tannin: ScaleValue | None = None
    intensity: ScaleValue | None = None
    sweetness: ScaleValue | None = None

    # Descriptive characteristics
    body_description: str = ""
    tasting_notes: str = ""
    flavor_notes: str = ""
    aroma_notes: str = ""
    serving_temp: str = ""
    aging_potential: str = ""
    food_pairing: str = ""

    # Enrichment state
    enrichment_status: EnrichmentStatus = EnrichmentStatus.UNVERIFIED
    verified_source: str = ""
    rating: Annotated[float, Field(ge=0.0, le=5.0)] | None = None
    enrichment_attempts: int = 0
    last_enriched_at: datetime | None = None

    created_at: datetime = Field(default_factory=_utc_now)
    updated_at: datetime = Field(default_factory=_utc_now)

    @field_validator(
        "producer", "vintage", "region", "country", "varietals",
        "wine_type", "wine_style", "body_description", "tasting_notes",
        "flavor_notes", "aroma_notes", "serving_temp", "aging_potential",
        "food_pairing", "verified_source",
        mode="before",
    )
    @classmethod
    def coerce_text(cls, value: Any) -> Any:
        """Accept nulls, numbers and lists where plain text is stored."""
        return _coerce_text(value)

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, value: str) -> str:
        """A wine must have a name."""
        value = value.strip()
        if not value:
            raise ValueError("Wine name must not be blank")
        return value

    @property
    def cache_key(self) -> str:
        """Normalized uniqueness key."""
        return make_cache_key(self.name, self.producer, self.vintage)

    @property
    def label(self) -> str:
        """Short human-readable label, e.g. for log lines."""
        parts = [self.producer, self.name, self.vintage]
        return " ".join(p for p in parts if p)

    @property
    def is_verified(self) -> bool:
        return self.enrichment_status == EnrichmentStatus.VERIFIED


class RawCharacteristics(BaseModel):
    """Characteristics returned by a research provider, before mapping."""

    model_config = ConfigDict(extra="ignore")

    wine_type: str = ""
    tasting_notes: str = ""
    flavor_notes: str = ""
    aroma_notes: str = ""
    body_description: str = ""
    food_pairing: str = ""
    serving_temp: str = ""
    aging_potential: str = ""
    acidity: float | str | None = None
    tannin: float | str | None = Field(
        default=None, validation_alias=AliasChoices("tannin", "tannins")
    )
    intensity: float | str | None = None
    sweetness: float | str | None = None
    rating: float | str | None = Field(
        default=None, validation_alias=AliasChoices("rating", "wine_rating")
    )

    @field_validator(
        "wine_type", "tasting_notes", "flavor_notes", "aroma_notes",
        "body_description", "food_pairing", "serving_temp", "aging_potential",
        mode="before",
    )
    @classmethod
    def coerce_text(cls, value: Any) -> Any:
        """Providers sometimes send lists or nulls for text fields."""
        return _coerce_text(value)


class StructuredWine(BaseModel):
    """A wine-list line after classification."""

    model_config = ConfigDict(extra="ignore")

    name: str = Field(validation_alias=AliasChoices("name", "wine_name"))
    producer: str = ""
    vintage: str = ""
    region: str = ""
    country: str = ""
    varietals: str = ""
    wine_type: str = Field(
        default="", validation_alias=AliasChoices("wine_type", "style")
    )
    price: str = ""
    aroma: str = ""
    taste: str = ""
    food_pairings: str = ""

    @field_validator(
        "producer", "vintage", "region", "country", "varietals", "wine_type",
        "price", "aroma", "taste", "food_pairings",
        mode="before",
    )
    @classmethod
    def coerce_text(cls, value: Any) -> Any:
        """Normalize null-ish classifier output to empty strings."""
        return _coerce_text(value)

    def to_record(self) -> WineRecord:
        """Build a new, unverified WineRecord from the classified line."""
        return WineRecord(
            name=self.name,
            producer=self.producer,
            vintage=self.vintage,
            region=self.region,
            country=self.country,
            varietals=self.varietals,
            wine_type=self.wine_type.lower(),
            aroma_notes=self.aroma,
            flavor_notes=self.taste,
            food_pairing=self.food_pairings,
            enrichment_status=EnrichmentStatus.UNVERIFIED,
        )


class GuestPreference(BaseModel):
    """Structured guest preference, produced by a preference parser."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    color: str | None = None
    body: str | None = None
    tannin: str | float | None = Field(
        default=None, validation_alias=AliasChoices("tannin", "tannins")
    )
    acidity: str | float | None = None
    sweetness: str | float | None = None
    intensity: str | float | None = None
    flavor_notes: tuple[str, ...] = ()
    price_range: PriceRange | None = None
    confidence_score: float | None = None

    @field_validator("flavor_notes", mode="before")
    @classmethod
    def coerce_notes(cls, value: Any) -> Any:
        """Accept a comma-separated string or any iterable of notes."""
        if value is None:
            return ()
        if isinstance(value, str):
            value = value.split(",")
        return tuple(str(v).strip() for v in value if str(v).strip())

    @field_validator("price_range", mode="before")
    @classmethod
    def blank_price_range(cls, value: Any) -> Any:
        """Unknown price bands are ignored rather than rejected."""
        if value in ("", None):
            return None
        if isinstance(value, str):
            value = value.strip().lower()
            return value if value in {p.value for p in PriceRange} else None
        return value


class InventoryWine(BaseModel):
    """A wine as listed by a specific restaurant."""

    wine: WineRecord
    restaurant_wine_id: int | None = None
    price: str = ""
    promotion_priority: int = 0
    custom_description: str = ""


class WineMatch(BaseModel):
    """A single scored recommendation."""

    wine_id: int | None
    restaurant_wine_id: int | None = None
    name: str
    producer: str = ""
    vintage: str = ""
    price: str = "Market Price"
    match_score: Annotated[float, Field(ge=0.0, le=1.0)]
    match_type: MatchType
    characteristics: dict[str, str] = Field(default_factory=dict)
    description: str = ""
    missed_criteria: list[str] | None = None


class RecommendationResult(BaseModel):
    """Ranked, diversified recommendations for one guest request."""

    recommendations: list[WineMatch] = Field(default_factory=list)
    guest_preferences: GuestPreference
    total_inventory_count: int = 0
    processing_time_ms: int = 0

    @property
    def wine_ids(self) -> list[int | None]:
        return [match.wine_id for match in self.recommendations]
