from sqlalchemy import Boolean, Column, DateTime, Integer, Numeric, Text, text
from sqlalchemy.dialects.postgresql import ARRAY, UUID
from sqlalchemy.sql import func

from rental_monitor.config import SCHEMA
from rental_monitor.models.base import Base


class Listing(Base):
    """
    ORM model for canonical rental listings.

    Exactly one row exists per upstream listing id (external_id). Every
    sighting from any saved query upserts onto that row, so price and photo
    changes overwrite the previous values. The monitor never deletes rows.
    """

    __tablename__ = "listings"
    __table_args__ = {"schema": SCHEMA}

    id = Column(UUID(as_uuid=False), primary_key=True, server_default=text("gen_random_uuid()"))
    external_id = Column(Integer, unique=True, nullable=False, index=True)
    address = Column(Text, nullable=False)
    area = Column(Text, nullable=True)
    price = Column(Text, nullable=False)
    bedrooms = Column(Integer, nullable=False, server_default=text("0"))
    bathrooms = Column(Integer, nullable=False, server_default=text("0"))
    images = Column(ARRAY(Text), nullable=False, server_default=text("'{}'"))
    source_url = Column(Text, nullable=True)
    agent_name = Column(Text, nullable=True)
    agent_phone = Column(Text, nullable=True)
    branch_name = Column(Text, nullable=True)
    latitude = Column(Numeric(10, 8), nullable=True)
    longitude = Column(Numeric(11, 8), nullable=True)
    active = Column(Boolean, nullable=False, server_default=text("TRUE"))
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )
