"""Tests for database persistence layer."""

from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from wine_pipeline.core.enums import EnrichmentStatus
from wine_pipeline.core.errors import LogWriteError, StorageWriteError
from wine_pipeline.core.schema import GuestPreference, WineRecord
from wine_pipeline.db.engine import get_session, init_db, reset_engine
from wine_pipeline.db.repositories import (
    RecommendationLogRepository,
    RestaurantWineRepository,
    WineRepository,
)


class TestWineRepository:
    """Tests for WineRepository."""

    def test_create_and_get(self, session: Session) -> None:
        """Test creating a wine and reading it back."""
        repo = WineRepository(session)
        created = repo.create(
            WineRecord(name="Monte Bello", producer="Ridge", vintage="2018", tannin=4.2)
        )
        repo.commit()

        fetched = repo.get_by_id(created.id)
        assert fetched is not None
        assert fetched.name == "Monte Bello"
        assert fetched.tannin == 4.2
        assert fetched.enrichment_status == EnrichmentStatus.UNVERIFIED

    def test_get_by_id_not_found(self, session: Session) -> None:
        assert WineRepository(session).get_by_id(999) is None

    def test_get_by_key_is_normalized(self, session: Session) -> None:
        """Lookups ignore case and extra whitespace."""
        repo = WineRepository(session)
        created = repo.create(WineRecord(name="Monte Bello", producer="Ridge", vintage="2018"))
        repo.commit()

        found = repo.get_by_key("  monte   BELLO ", "ridge", "2018")
        assert found is not None
        assert found.id == created.id
        assert repo.get_by_key("Monte Bello", "Ridge", "2019") is None

    def test_duplicate_key_rejected(self, session: Session) -> None:
        repo = WineRepository(session)
        repo.create(WineRecord(name="Monte Bello", producer="Ridge", vintage="2018"))
        repo.commit()

        with pytest.raises(StorageWriteError):
            repo.create(WineRecord(name="monte bello", producer="RIDGE", vintage="2018"))

        assert len(repo.list_all()) == 1

    def test_update(self, session: Session) -> None:
        repo = WineRepository(session)
        created = repo.create(WineRecord(name="Sancerre"))
        repo.commit()

        updated = repo.update(
            created.model_copy(
                update={
                    "flavor_notes": "citrus, flint",
                    "enrichment_status": EnrichmentStatus.VERIFIED,
                    "verified_source": "anthropic:test",
                }
            )
        )
        repo.commit()

        fetched = repo.get_by_id(created.id)
        assert updated.flavor_notes == "citrus, flint"
        assert fetched.enrichment_status == EnrichmentStatus.VERIFIED
        assert fetched.verified_source == "anthropic:test"

    def test_update_missing_wine(self, session: Session) -> None:
        with pytest.raises(ValueError):
            WineRepository(session).update(WineRecord(id=42, name="Ghost"))

    def test_set_status(self, session: Session) -> None:
        repo = WineRepository(session)
        created = repo.create(WineRecord(name="Sancerre", flavor_notes="citrus"))
        repo.commit()

        result = repo.set_status(created.id, EnrichmentStatus.PENDING)

        assert result.enrichment_status == EnrichmentStatus.PENDING
        assert result.flavor_notes == "citrus"
        assert repo.set_status(999, EnrichmentStatus.PENDING) is None

    def test_list_needing_enrichment_order(self, session: Session) -> None:
        """Pending first, then unverified, then failed; verified never."""
        repo = WineRepository(session)
        for name, status in [
            ("Failed One", EnrichmentStatus.FAILED),
            ("Fresh One", EnrichmentStatus.UNVERIFIED),
            ("Done", EnrichmentStatus.VERIFIED),
            ("Interrupted", EnrichmentStatus.PENDING),
            ("Fresh Two", EnrichmentStatus.UNVERIFIED),
        ]:
            repo.create(WineRecord(name=name, enrichment_status=status))
        repo.commit()

        names = [w.name for w in repo.list_needing_enrichment(10)]

        assert names == ["Interrupted", "Fresh One", "Fresh Two", "Failed One"]
        assert [w.name for w in repo.list_needing_enrichment(2)] == ["Interrupted", "Fresh One"]
        assert repo.list_needing_enrichment(0) == []

    def test_verification_stats(self, session: Session) -> None:
        repo = WineRepository(session)
        for i, status in enumerate(
            [EnrichmentStatus.VERIFIED, EnrichmentStatus.VERIFIED, EnrichmentStatus.FAILED,
             EnrichmentStatus.UNVERIFIED]
        ):
            repo.create(WineRecord(name=f"Wine {i}", enrichment_status=status))
        repo.commit()

        stats = repo.verification_stats()

        assert stats.total == 4
        assert stats.verified == 2
        assert stats.failed == 1
        assert stats.unverified == 1
        assert stats.pending == 0
        assert stats.verification_rate == 50.0

    def test_verification_rate_empty(self, session: Session) -> None:
        assert WineRepository(session).verification_stats().verification_rate == 0.0


class TestRestaurantWineRepository:
    """Tests for RestaurantWineRepository."""

    def test_inventory_order_and_availability(self, session: Session) -> None:
        """Promoted wines first, then by rating with unrated wines last."""
        wines = WineRepository(session)
        listing = RestaurantWineRepository(session)
        unrated = wines.create(WineRecord(name="Unrated"))
        good = wines.create(WineRecord(name="Good", rating=4.1))
        great = wines.create(WineRecord(name="Great", rating=4.7))
        promoted = wines.create(WineRecord(name="Promoted", rating=3.2))
        gone = wines.create(WineRecord(name="Sold Out", rating=4.9))

        listing.add(1, unrated.id)
        listing.add(1, good.id, price="$60")
        listing.add(1, great.id)
        listing.add(1, promoted.id, promotion_priority=5, custom_description="House pick")
        listing.add(1, gone.id, is_available=False)
        listing.add(2, great.id)
        session.commit()

        inventory = listing.list_inventory(1)

        assert [e.wine.name for e in inventory] == ["Promoted", "Great", "Good", "Unrated"]
        assert inventory[0].custom_description == "House pick"
        assert inventory[2].price == "$60"
        assert listing.list_inventory(3) == []

    def test_duplicate_listing_rejected(self, session: Session) -> None:
        wine = WineRepository(session).create(WineRecord(name="Chablis"))
        listing = RestaurantWineRepository(session)
        listing.add(1, wine.id)
        with pytest.raises(StorageWriteError):
            listing.add(1, wine.id)


class TestRecommendationLogRepository:
    """Tests for RecommendationLogRepository."""

    def test_create_and_list(self, session: Session) -> None:
        repo = RecommendationLogRepository(session)
        pref = GuestPreference(color="white", flavor_notes=["citrus"])

        repo.create(4, pref, [3, None], search_query="something crisp")
        repo.create(4, GuestPreference(color="red"), [1])
        repo.create(5, pref, [])

        rows = repo.list_for_restaurant(4)
        assert len(rows) == 2
        assert rows[0]["recommended_wine_ids"] == [1]
        assert rows[1]["recommended_wine_ids"] == [3, None]
        assert rows[1]["guest_preferences"] == {"color": "white", "flavor_notes": ["citrus"]}
        assert rows[1]["search_query"] == "something crisp"

    def test_write_failure_raises_log_error(self) -> None:
        session = MagicMock()
        session.commit.side_effect = OperationalError("INSERT", {}, Exception("database is locked"))
        repo = RecommendationLogRepository(session)

        with pytest.raises(LogWriteError):
            repo.create(1, GuestPreference(color="red"), [1])

        session.rollback.assert_called_once()


class TestEngine:
    """Tests for DATABASE_URL handling in the shared engine."""

    @pytest.fixture(autouse=True)
    def fresh_engine(self):
        reset_engine()
        yield
        reset_engine()

    def test_file_path(self, tmp_path, monkeypatch) -> None:
        db_file = tmp_path / "nested" / "wines.db"
        monkeypatch.setenv("DATABASE_URL", str(db_file))

        init_db()
        with get_session() as session:
            WineRepository(session).create(WineRecord(name="Barolo"))
            session.commit()

        assert db_file.exists()

    def test_full_url(self, tmp_path, monkeypatch) -> None:
        db_file = tmp_path / "url.db"
        monkeypatch.setenv("DATABASE_URL", f"sqlite:///{db_file}")

        init_db()
        with get_session() as session:
            assert WineRepository(session).list_all() == []

        assert db_file.exists()
