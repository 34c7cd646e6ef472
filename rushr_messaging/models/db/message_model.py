import uuid

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import relationship

from rushr_messaging.database import Base


class MessageModel(Base):
    """SQLAlchemy model for messages table."""

    __tablename__ = "messages"
    __table_args__ = (
        UniqueConstraint("conversation_id", "seq", name="uq_messages_conversation_seq"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    conversation_id = Column(
        Uuid, ForeignKey("conversations.id"), nullable=False, index=True
    )
    sender_id = Column(Uuid, nullable=False)
    kind = Column(String(10), nullable=False)
    content = Column(Text, nullable=True)
    reply_to_id = Column(
        Uuid, ForeignKey("messages.id", ondelete="SET NULL"), nullable=True
    )
    seq = Column(Integer, nullable=False)
    deleted = Column(Boolean, nullable=False, default=False)
    deleted_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)

    # Relationships
    conversation = relationship("ConversationModel", back_populates="messages")
    attachments = relationship(
        "AttachmentModel",
        back_populates="message",
        cascade="all, delete-orphan",
        order_by="AttachmentModel.position",
    )
    offer = relationship(
        "OfferModel", back_populates="message", uselist=False, cascade="all, delete-orphan"
    )

    # Constraints (enforced by database CHECK constraints in migrations)
    # kind IN ('text', 'offer', 'system', 'file')
