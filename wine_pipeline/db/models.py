"""SQLAlchemy ORM models for the wine pipeline database."""

from datetime import UTC, datetime

from sqlalchemy import (
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def _utc_now() -> datetime:
    """Return current UTC datetime (timezone-aware)."""
    return datetime.now(UTC)


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


class WineDB(Base):
    """
    Database model for wines.

    One row per (name, producer, vintage); the normalized form of that triple
    is stored in cache_key and is unique.
    """

    __tablename__ = "wines"
    __table_args__ = (UniqueConstraint("cache_key", name="uq_wines_cache_key"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    cache_key: Mapped[str] = mapped_column(String(800), nullable=False)

    # Identity
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    producer: Mapped[str] = mapped_column(String(255), default="", index=True)
    vintage: Mapped[str] = mapped_column(String(10), default="")
    region: Mapped[str] = mapped_column(String(255), default="")
    country: Mapped[str] = mapped_column(String(255), default="")
    varietals: Mapped[str] = mapped_column(String(255), default="")
    wine_type: Mapped[str] = mapped_column(String(50), default="")
    wine_style: Mapped[str] = mapped_column(String(100), default="")

    # 1-5 scale characteristics
    acidity: Mapped[float | None] = mapped_column(Float, nullable=True)
    tannin: Mapped[float | None] = mapped_column(Float, nullable=True)
    intensity: Mapped[float | None] = mapped_column(Float, nullable=True)
    sweetness: Mapped[float | None] = mapped_column(Float, nullable=True)

    # Descriptive characteristics
    body_description: Mapped[str] = mapped_column(Text, default="")
    tasting_notes: Mapped[str] = mapped_column(Text, default="")
    flavor_notes: Mapped[str] = mapped_column(Text, default="")
    aroma_notes: Mapped[str] = mapped_column(Text, default="")
    serving_temp: Mapped[str] = mapped_column(String(100), default="")
    aging_potential: Mapped[str] = mapped_column(Text, default="")
    food_pairing: Mapped[str] = mapped_column(Text, default="")

    # Enrichment state
    enrichment_status: Mapped[str] = mapped_column(
        String(20), default="unverified", index=True
    )  # unverified/pending/verified/failed
    verified_source: Mapped[str] = mapped_column(String(100), default="")
    rating: Mapped[float | None] = mapped_column(Float, nullable=True)
    enrichment_attempts: Mapped[int] = mapped_column(Integer, default=0)
    last_enriched_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utc_now)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=_utc_now, onupdate=_utc_now)

    def __repr__(self) -> str:
        return f"<WineDB(id={self.id}, name='{self.name}', vintage='{self.vintage}')>"


class RestaurantWineDB(Base):
    """
    Database model linking wines to a restaurant's list.

    Carries restaurant-specific pricing, ordering and availability.
    """

    __tablename__ = "restaurant_wines"
    __table_args__ = (
        UniqueConstraint("restaurant_id", "wine_id", name="uq_restaurant_wine"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    restaurant_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    wine_id: Mapped[int] = mapped_column(ForeignKey("wines.id"), nullable=False, index=True)
    price: Mapped[str] = mapped_column(String(50), default="")
    promotion_priority: Mapped[int] = mapped_column(Integer, default=0)
    custom_description: Mapped[str] = mapped_column(Text, default="")
    is_available: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utc_now)

    def __repr__(self) -> str:
        return f"<RestaurantWineDB(restaurant={self.restaurant_id}, wine={self.wine_id})>"


class RecommendationLogDB(Base):
    """
    Database model for recommendation analytics.

    One row per recommendation request.
    """

    __tablename__ = "wine_recommendation_logs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    restaurant_id: Mapped[int | None] = mapped_column(Integer, nullable=True, index=True)
    search_query: Mapped[str] = mapped_column(Text, default="")
    guest_preferences: Mapped[str] = mapped_column(Text, default="{}")  # JSON
    recommended_wine_ids: Mapped[str] = mapped_column(Text, default="[]")  # JSON array
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utc_now)

    def __repr__(self) -> str:
        return f"<RecommendationLogDB(id={self.id}, restaurant={self.restaurant_id})>"
