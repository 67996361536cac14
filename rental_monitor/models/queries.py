"""SQLAlchemy model for users' saved searches."""

from sqlalchemy import Boolean, Column, DateTime, Integer, Numeric, Text, text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.sql import func

from rental_monitor.config import SCHEMA
from rental_monitor.models.base import Base


class SavedQuery(Base):
    """
    ORM model for a saved search.

    Rows are created and paused by the client app; the monitor only reads
    rows with active = TRUE. A query is anchored either on coordinates or on
    an upstream location identifier.
    """

    __tablename__ = "saved_queries"
    __table_args__ = {"schema": SCHEMA}

    id = Column(UUID(as_uuid=False), primary_key=True, server_default=text("gen_random_uuid()"))
    user_id = Column(UUID(as_uuid=False), nullable=True, index=True)
    name = Column(Text, nullable=False)
    location_identifier = Column(Text, nullable=True)
    latitude = Column(Numeric(10, 8), nullable=True)
    longitude = Column(Numeric(11, 8), nullable=True)
    min_price = Column(Integer, nullable=True)
    max_price = Column(Integer, nullable=True)
    min_bedrooms = Column(Integer, nullable=True)
    max_bedrooms = Column(Integer, nullable=True)
    min_bathrooms = Column(Integer, nullable=True)
    max_bathrooms = Column(Integer, nullable=True)
    furnish_type = Column(Text, nullable=True)
    radius = Column(Numeric(3, 1), nullable=True)
    active = Column(Boolean, nullable=False, server_default=text("TRUE"), index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )
