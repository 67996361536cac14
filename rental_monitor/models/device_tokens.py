from sqlalchemy import Column, DateTime, Text, UniqueConstraint, text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.sql import func

from rental_monitor.config import SCHEMA
from rental_monitor.models.base import Base


class DeviceToken(Base):
    """
    ORM model for registered push-notification device tokens.

    Tokens are registered by the client app. The monitor deletes a token once
    APNs reports it permanently invalid.
    """

    __tablename__ = "device_tokens"
    __table_args__ = (
        UniqueConstraint("user_id", "device_token", name="uq_device_tokens_user_token"),
        {"schema": SCHEMA},
    )

    id = Column(UUID(as_uuid=False), primary_key=True, server_default=text("gen_random_uuid()"))
    user_id = Column(UUID(as_uuid=False), nullable=False, index=True)
    device_token = Column(Text, nullable=False)
    device_type = Column(Text, nullable=False, server_default=text("'ios'"))
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )
