import uuid

from sqlalchemy import (
    Column,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import relationship

from rushr_messaging.database import Base


class OfferModel(Base):
    """SQLAlchemy model for message_offers table (1:1 with an offer message)."""

    __tablename__ = "message_offers"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    message_id = Column(Uuid, ForeignKey("messages.id"), nullable=False, unique=True)
    title = Column(String(255), nullable=False)
    price = Column(Numeric(12, 2), nullable=False)
    delivery_days = Column(Integer, nullable=False)
    notes = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default="pending", index=True)
    counter_price = Column(Numeric(12, 2), nullable=True)
    counter_days = Column(Integer, nullable=True)
    counter_notes = Column(Text, nullable=True)
    expires_at = Column(DateTime(timezone=True), nullable=True)
    responded_by = Column(Uuid, nullable=True)
    responded_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)

    # Relationships
    message = relationship("MessageModel", back_populates="offer")

    # Constraints (enforced by database CHECK constraints in migrations)
    # status IN ('pending', 'accepted', 'declined', 'countered', 'expired')
    # price > 0 AND delivery_days > 0
