from sqlalchemy import Column, DateTime, ForeignKey, UniqueConstraint, text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.sql import func

from rental_monitor.config import SCHEMA
from rental_monitor.models.base import Base


class QueryListing(Base):
    """
    ORM model linking a listing to the saved query that discovered it.

    The (query_id, listing_id) pair is unique and is the dedup key: a listing
    is "new" for a query exactly when no row exists for that pair, regardless
    of links to other queries. Rows are inserted once and never updated.
    """

    __tablename__ = "query_listings"
    __table_args__ = (
        UniqueConstraint("query_id", "listing_id", name="uq_query_listings_query_listing"),
        {"schema": SCHEMA},
    )

    id = Column(UUID(as_uuid=False), primary_key=True, server_default=text("gen_random_uuid()"))
    query_id = Column(
        UUID(as_uuid=False),
        ForeignKey(f"{SCHEMA}.saved_queries.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    listing_id = Column(
        UUID(as_uuid=False),
        ForeignKey(f"{SCHEMA}.listings.id", ondelete="CASCADE"),
        nullable=False,
    )
    found_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
