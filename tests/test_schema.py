"""Tests for domain models."""

import pytest
from pydantic import ValidationError

from wine_pipeline.core.enums import EnrichmentStatus, MatchType, PriceRange
from wine_pipeline.core.schema import (
    GuestPreference,
    RawCharacteristics,
    StructuredWine,
    WineMatch,
    WineRecord,
    make_cache_key,
)


class TestCacheKey:
    """Tests for the (name, producer, vintage) uniqueness key."""

    def test_case_and_whitespace_insensitive(self) -> None:
        assert make_cache_key("Opus  One", "Opus One Winery", "2018") == make_cache_key(
            "opus one", " OPUS ONE winery ", "2018"
        )

    def test_missing_parts(self) -> None:
        assert make_cache_key("Barolo", None, None) == "barolo||"

    def test_record_property(self) -> None:
        record = WineRecord(name="Barolo", producer="Vietti", vintage="2016")
        assert record.cache_key == "barolo|vietti|2016"


class TestWineRecord:
    """Tests for WineRecord validation."""

    def test_defaults(self) -> None:
        record = WineRecord(name="Chablis")
        assert record.enrichment_status == EnrichmentStatus.UNVERIFIED
        assert record.acidity is None
        assert record.tasting_notes == ""
        assert not record.is_verified

    def test_blank_name_rejected(self) -> None:
        with pytest.raises(ValidationError):
            WineRecord(name="   ")

    def test_text_fields_coerced(self) -> None:
        """Null placeholders, numbers and lists become plain text."""
        record = WineRecord(
            name="Rioja",
            vintage=2015,
            flavor_notes=["cherry", "vanilla"],
            aroma_notes="null",
            food_pairing=None,
        )
        assert record.vintage == "2015"
        assert record.flavor_notes == "cherry, vanilla"
        assert record.aroma_notes == ""
        assert record.food_pairing == ""

    def test_scale_bounds(self) -> None:
        with pytest.raises(ValidationError):
            WineRecord(name="Port", sweetness=6.0)

    def test_label(self) -> None:
        record = WineRecord(name="Monte Bello", producer="Ridge", vintage="2018")
        assert record.label == "Ridge Monte Bello 2018"


class TestRawCharacteristics:
    """Tests for provider payload parsing."""

    def test_aliases_and_extra_fields(self) -> None:
        raw = RawCharacteristics.model_validate(
            {"tannins": 4, "wine_rating": "4.1", "unexpected": "ignored"}
        )
        assert raw.tannin == 4
        assert raw.rating == "4.1"

    def test_list_text_fields(self) -> None:
        raw = RawCharacteristics.model_validate({"food_pairing": ["duck", "mushrooms"]})
        assert raw.food_pairing == "duck, mushrooms"


class TestStructuredWine:
    """Tests for classified wine-list lines."""

    def test_to_record(self) -> None:
        wine = StructuredWine.model_validate(
            {
                "wine_name": "Sancerre",
                "producer": "Domaine Vacheron",
                "vintage": "2021",
                "style": "White",
                "aroma": "citrus, flint",
                "taste": "lemon, gooseberry",
                "food_pairings": "goat cheese",
                "price": None,
            }
        )
        record = wine.to_record()

        assert record.name == "Sancerre"
        assert record.wine_type == "white"
        assert record.aroma_notes == "citrus, flint"
        assert record.flavor_notes == "lemon, gooseberry"
        assert record.food_pairing == "goat cheese"
        assert record.enrichment_status == EnrichmentStatus.UNVERIFIED


class TestGuestPreference:
    """Tests for GuestPreference parsing."""

    def test_comma_separated_notes(self) -> None:
        pref = GuestPreference(flavor_notes="cherry, plum ,")
        assert pref.flavor_notes == ("cherry", "plum")

    def test_tannins_alias(self) -> None:
        pref = GuestPreference.model_validate({"color": "red", "tannins": 4})
        assert pref.tannin == 4

    def test_unknown_price_range_ignored(self) -> None:
        assert GuestPreference(price_range="cheap").price_range is None
        assert GuestPreference(price_range="premium").price_range == PriceRange.PREMIUM

    def test_frozen(self) -> None:
        pref = GuestPreference(color="red")
        with pytest.raises(ValidationError):
            pref.color = "white"


class TestWineMatch:
    """Tests for WineMatch."""

    def test_score_bounds(self) -> None:
        with pytest.raises(ValidationError):
            WineMatch(wine_id=1, name="X", match_score=1.2, match_type=MatchType.PERFECT)

    def test_default_price(self) -> None:
        match = WineMatch(wine_id=1, name="X", match_score=0.5, match_type=MatchType.SURPRISE)
        assert match.price == "Market Price"
