"""Repository classes for database operations."""

import json
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import UTC, datetime

from sqlalchemy import case, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from wine_pipeline.core.enums import EnrichmentStatus
from wine_pipeline.core.errors import LogWriteError, StorageWriteError
from wine_pipeline.core.schema import (
    GuestPreference,
    InventoryWine,
    WineRecord,
    make_cache_key,
)
from wine_pipeline.db.models import RecommendationLogDB, RestaurantWineDB, WineDB


def _utc_now() -> datetime:
    """Return current UTC datetime."""
    return datetime.now(UTC)


# Columns copied verbatim between WineRecord and WineDB
_WINE_COLUMNS = (
    "name", "producer", "vintage", "region", "country", "varietals",
    "wine_type", "wine_style", "acidity", "tannin", "intensity", "sweetness",
    "body_description", "tasting_notes", "flavor_notes", "aroma_notes",
    "serving_temp", "aging_potential", "food_pairing", "verified_source",
    "rating", "enrichment_attempts", "last_enriched_at",
)

# Order in which not-yet-verified wines are picked up for enrichment
_STATUS_PRIORITY = {
    EnrichmentStatus.PENDING.value: 0,
    EnrichmentStatus.UNVERIFIED.value: 1,
    EnrichmentStatus.FAILED.value: 2,
}


@dataclass
class VerificationStats:
    """Counts of wines per enrichment status."""

    total: int
    verified: int
    unverified: int
    pending: int
    failed: int

    @property
    def verification_rate(self) -> float:
        """Percentage of wines verified, rounded to two decimals."""
        if self.total == 0:
            return 0.0
        return round(self.verified / self.total * 100, 2)


class WineRepository:
    """Repository for WineRecord persistence."""

    def __init__(self, session: Session):
        self.session = session

    def create(self, record: WineRecord) -> WineRecord:
        """
        Insert a new wine.

        Args:
            record: The WineRecord to create.

        Returns:
            The created WineRecord with its database id.

        Raises:
            StorageWriteError: If the insert fails (including key collisions).
        """
        db_wine = WineDB(
            cache_key=record.cache_key,
            enrichment_status=record.enrichment_status.value,
            created_at=record.created_at,
            updated_at=record.updated_at,
            **{column: getattr(record, column) for column in _WINE_COLUMNS},
        )
        try:
            self.session.add(db_wine)
            self.session.flush()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise StorageWriteError(f"Could not insert wine '{record.label}': {e}") from e
        return self._to_domain(db_wine)

    def get_by_id(self, wine_id: int) -> WineRecord | None:
        """
        Get a wine by ID.

        Args:
            wine_id: The wine's primary key.

        Returns:
            The WineRecord if found, None otherwise.
        """
        db_wine = self.session.get(WineDB, wine_id)
        return self._to_domain(db_wine) if db_wine else None

    def get_by_key(
        self, name: str, producer: str | None = None, vintage: str | None = None
    ) -> WineRecord | None:
        """
        Look up a wine by its (name, producer, vintage) key.

        Matching is case- and whitespace-insensitive.
        """
        stmt = select(WineDB).where(WineDB.cache_key == make_cache_key(name, producer, vintage))
        db_wine = self.session.execute(stmt).scalar_one_or_none()
        return self._to_domain(db_wine) if db_wine else None

    def list_all(self, status: EnrichmentStatus | None = None) -> list[WineRecord]:
        """List wines, optionally filtered by enrichment status."""
        stmt = select(WineDB).order_by(WineDB.id)
        if status is not None:
            stmt = stmt.where(WineDB.enrichment_status == status.value)
        return [self._to_domain(w) for w in self.session.execute(stmt).scalars().all()]

    def list_needing_enrichment(self, limit: int) -> list[WineRecord]:
        """
        List wines that are not yet verified.

        Pending wines (interrupted runs) come first, then unverified, then
        previously failed ones; insertion order within each status.

        Args:
            limit: Maximum number of wines to return.
        """
        if limit <= 0:
            return []
        priority = case(_STATUS_PRIORITY, value=WineDB.enrichment_status, else_=3)
        stmt = (
            select(WineDB)
            .where(WineDB.enrichment_status != EnrichmentStatus.VERIFIED.value)
            .order_by(priority, WineDB.id)
            .limit(limit)
        )
        return [self._to_domain(w) for w in self.session.execute(stmt).scalars().all()]

    def update(self, record: WineRecord) -> WineRecord:
        """
        Write every field of an existing wine.

        Raises:
            ValueError: If the wine does not exist.
            StorageWriteError: If the write fails.
        """
        if record.id is None:
            raise ValueError("Cannot update a wine without an id")
        db_wine = self.session.get(WineDB, record.id)
        if db_wine is None:
            raise ValueError(f"Wine with id {record.id} not found")

        for column in _WINE_COLUMNS:
            setattr(db_wine, column, getattr(record, column))
        db_wine.cache_key = record.cache_key
        db_wine.enrichment_status = record.enrichment_status.value
        db_wine.updated_at = _utc_now()
        self._flush()
        return self._to_domain(db_wine)

    def set_status(self, wine_id: int, status: EnrichmentStatus) -> WineRecord | None:
        """
        Change only the enrichment status of a wine.

        Returns:
            The updated WineRecord, or None if not found.
        """
        db_wine = self.session.get(WineDB, wine_id)
        if db_wine is None:
            return None
        db_wine.enrichment_status = status.value
        db_wine.updated_at = _utc_now()
        self._flush()
        return self._to_domain(db_wine)

    def verification_stats(self) -> VerificationStats:
        """Count wines per enrichment status."""
        rows = self.session.execute(
            select(WineDB.enrichment_status, func.count(WineDB.id)).group_by(
                WineDB.enrichment_status
            )
        ).all()
        counts = {status: count for status, count in rows}
        return VerificationStats(
            total=sum(counts.values()),
            verified=counts.get(EnrichmentStatus.VERIFIED.value, 0),
            unverified=counts.get(EnrichmentStatus.UNVERIFIED.value, 0),
            pending=counts.get(EnrichmentStatus.PENDING.value, 0),
            failed=counts.get(EnrichmentStatus.FAILED.value, 0),
        )

    def commit(self) -> None:
        """
        Commit the current transaction.

        Raises:
            StorageWriteError: If the commit fails; the session is rolled back.
        """
        try:
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise StorageWriteError(f"Commit failed: {e}") from e

    def _flush(self) -> None:
        try:
            self.session.flush()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise StorageWriteError(f"Write failed: {e}") from e

    def _to_domain(self, db_wine: WineDB) -> WineRecord:
        """Convert DB model to domain model."""
        return WineRecord(
            id=db_wine.id,
            enrichment_status=EnrichmentStatus(db_wine.enrichment_status),
            created_at=db_wine.created_at,
            updated_at=db_wine.updated_at,
            **{column: getattr(db_wine, column) for column in _WINE_COLUMNS},
        )


class RestaurantWineRepository:
    """Repository for restaurant wine lists."""

    def __init__(self, session: Session):
        self.session = session

    def add(
        self,
        restaurant_id: int,
        wine_id: int,
        price: str = "",
        promotion_priority: int = 0,
        custom_description: str = "",
        is_available: bool = True,
    ) -> int:
        """
        Put a wine on a restaurant's list.

        Returns:
            The restaurant_wines row id.
        """
        row = RestaurantWineDB(
            restaurant_id=restaurant_id,
            wine_id=wine_id,
            price=price,
            promotion_priority=promotion_priority,
            custom_description=custom_description,
            is_available=is_available,
        )
        try:
            self.session.add(row)
            self.session.flush()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise StorageWriteError(f"Could not add wine {wine_id} to restaurant {restaurant_id}: {e}") from e
        return row.id

    def list_inventory(self, restaurant_id: int) -> list[InventoryWine]:
        """
        List a restaurant's available wines.

        Ordered by promotion priority, then rating (unrated last).
        """
        stmt = (
            select(RestaurantWineDB, WineDB)
            .join(WineDB, RestaurantWineDB.wine_id == WineDB.id)
            .where(RestaurantWineDB.restaurant_id == restaurant_id)
            .where(RestaurantWineDB.is_available == True)  # noqa: E712
            .order_by(
                RestaurantWineDB.promotion_priority.desc(),
                WineDB.rating.is_(None),
                WineDB.rating.desc(),
                RestaurantWineDB.id,
            )
        )
        wine_repo = WineRepository(self.session)
        return [
            InventoryWine(
                wine=wine_repo._to_domain(db_wine),
                restaurant_wine_id=row.id,
                price=row.price,
                promotion_priority=row.promotion_priority,
                custom_description=row.custom_description,
            )
            for row, db_wine in self.session.execute(stmt).all()
        ]


class RecommendationLogRepository:
    """Repository for recommendation analytics rows."""

    def __init__(self, session: Session):
        self.session = session

    def create(
        self,
        restaurant_id: int | None,
        preference: GuestPreference,
        wine_ids: Sequence[int | None],
        search_query: str = "",
    ) -> int:
        """
        Record one recommendation request and commit it.

        Raises:
            LogWriteError: If the row cannot be written.
        """
        row = RecommendationLogDB(
            restaurant_id=restaurant_id,
            search_query=search_query,
            guest_preferences=preference.model_dump_json(exclude_none=True),
            recommended_wine_ids=json.dumps(list(wine_ids)),
        )
        try:
            self.session.add(row)
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise LogWriteError(f"Could not write recommendation log: {e}") from e
        return row.id

    def list_for_restaurant(self, restaurant_id: int) -> list[dict]:
        """Return logged requests for a restaurant, newest first."""
        stmt = (
            select(RecommendationLogDB)
            .where(RecommendationLogDB.restaurant_id == restaurant_id)
            .order_by(RecommendationLogDB.created_at.desc(), RecommendationLogDB.id.desc())
        )
        return [
            {
                "id": row.id,
                "restaurant_id": row.restaurant_id,
                "search_query": row.search_query,
                "guest_preferences": json.loads(row.guest_preferences),
                "recommended_wine_ids": json.loads(row.recommended_wine_ids),
                "created_at": row.created_at,
            }
            for row in self.session.execute(stmt).scalars().all()
        ]
