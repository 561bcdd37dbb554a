"""ORM models for the alert store and their conversion to domain models.

Timestamps are stored as fixed-width ISO 8601 UTC strings (see
``listing_alerts.utils.timestamps.STORAGE_FORMAT``) so that string comparison
in SQL orders them chronologically. Filters and amenity tags are JSON.
"""

import logging

from sqlalchemy import JSON, Boolean, Column, Float, Index, Integer, String, Text, inspect
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base

from listing_alerts.domain.models import (
    AlertFrequency,
    AlertRecord,
    ContactInfo,
    FilterSpec,
    ListingSnapshot,
    SavedSearch,
)
from listing_alerts.utils.timestamps import from_storage, to_storage

logger = logging.getLogger(__name__)

Base = declarative_base()


class SavedSearchModel(Base):
    """ORM model for the saved_searches table."""

    __tablename__ = "saved_searches"

    id = Column(String(64), primary_key=True, nullable=False)
    owner_id = Column(String(64), nullable=False)
    name = Column(String(255), nullable=False)
    filters = Column(JSON, nullable=False, default=dict)
    frequency = Column(String(16), nullable=False, default=AlertFrequency.NEVER.value)
    active = Column(Boolean, nullable=False, default=True)

    # Written only through the conditional update in SavedSearchRepository
    last_alert_sent = Column(String(50), nullable=True)
    created_at = Column(String(50), nullable=True)

    __table_args__ = (
        Index("idx_saved_searches_frequency_active", "frequency", "active"),
        Index("idx_saved_searches_owner", "owner_id"),
    )

    def to_domain(self) -> SavedSearch:
        try:
            frequency = AlertFrequency(self.frequency)
        except ValueError:
            logger.warning(f"Unknown frequency {self.frequency!r} on search {self.id}")
            frequency = AlertFrequency.NEVER

        return SavedSearch(
            id=self.id,
            owner_id=self.owner_id,
            name=self.name,
            filter=FilterSpec.from_raw(self.filters),
            frequency=frequency,
            active=bool(self.active),
            last_alert_sent=from_storage(self.last_alert_sent),
            created_at=from_storage(self.created_at),
        )

    @classmethod
    def from_domain(cls, search: SavedSearch) -> "SavedSearchModel":
        return cls(
            id=search.id,
            owner_id=search.owner_id,
            name=search.name,
            filters=search.filter.to_storage(),
            frequency=search.frequency.value,
            active=search.active,
            last_alert_sent=to_storage(search.last_alert_sent),
            created_at=to_storage(search.created_at),
        )


class ListingModel(Base):
    """ORM model for the listings table (the columns the engine reads)."""

    __tablename__ = "listings"

    id = Column(String(64), primary_key=True, nullable=False)
    title = Column(Text, nullable=False, default="")
    slug = Column(String(255), nullable=True)
    status = Column(String(32), nullable=False)

    listing_type = Column(String(32), nullable=True)
    property_type = Column(String(64), nullable=True)
    city = Column(String(128), nullable=True)
    area = Column(String(255), nullable=True)

    price = Column(Float, nullable=True)
    size = Column(Float, nullable=True)
    bedrooms = Column(Integer, nullable=True)
    bathrooms = Column(Integer, nullable=True)
    amenities = Column(JSON, nullable=False, default=list)

    image_url = Column(Text, nullable=True)
    featured = Column(Boolean, nullable=False, default=False)
    created_at = Column(String(50), nullable=False)

    __table_args__ = (Index("idx_listings_status_created", "status", "created_at"),)

    def to_domain(self) -> ListingSnapshot:
        return ListingSnapshot(
            id=self.id,
            title=self.title or "",
            slug=self.slug,
            status=self.status,
            listing_type=self.listing_type,
            property_type=self.property_type,
            city=self.city,
            area=self.area,
            price=self.price,
            size=self.size,
            bedrooms=self.bedrooms,
            bathrooms=self.bathrooms,
            amenities=self.amenities or [],
            image_url=self.image_url,
            featured=bool(self.featured),
            created_at=from_storage(self.created_at),
        )

    def apply(self, listing: ListingSnapshot) -> None:
        """Copy every column from a snapshot onto this row."""
        self.title = listing.title
        self.slug = listing.slug
        self.status = listing.status
        self.listing_type = listing.listing_type
        self.property_type = listing.property_type
        self.city = listing.city
        self.area = listing.area
        self.price = listing.price
        self.size = listing.size
        self.bedrooms = listing.bedrooms
        self.bathrooms = listing.bathrooms
        self.amenities = sorted(listing.amenities)
        self.image_url = listing.image_url
        self.featured = listing.featured
        self.created_at = to_storage(listing.created_at)

    @classmethod
    def from_domain(cls, listing: ListingSnapshot) -> "ListingModel":
        model = cls(id=listing.id)
        model.apply(listing)
        return model


class UserModel(Base):
    """ORM model for the users table (contact fields only)."""

    __tablename__ = "users"

    id = Column(String(64), primary_key=True, nullable=False)
    name = Column(String(255), nullable=True)
    email = Column(String(320), nullable=True)

    def to_contact(self) -> ContactInfo:
        return ContactInfo(owner_id=self.id, name=self.name, email=self.email)


class AlertRecordModel(Base):
    """ORM model for the alerts_sent table.

    One row per (saved search, listing) instant alert; the composite primary
    key is what makes a claim idempotent.
    """

    __tablename__ = "alerts_sent"

    search_id = Column(String(64), primary_key=True, nullable=False)
    listing_id = Column(String(64), primary_key=True, nullable=False)
    sent_at = Column(String(50), nullable=False)

    __table_args__ = (Index("idx_alerts_sent_at", "sent_at"),)

    def to_domain(self) -> AlertRecord:
        return AlertRecord(
            search_id=self.search_id,
            listing_id=self.listing_id,
            sent_at=from_storage(self.sent_at),
        )


def create_schema(engine: Engine) -> None:
    """Create missing tables and indexes; safe to call repeatedly."""
    try:
        Base.metadata.create_all(engine, checkfirst=True)
    except Exception as e:
        logger.error(f"Failed to create database schema: {e}", exc_info=True)
        raise

    tables = inspect(engine).get_table_names()
    logger.info(f"Database schema ready. Tables: {', '.join(sorted(tables))}")
