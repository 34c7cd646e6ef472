import uuid

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import relationship

from rushr_messaging.database import Base


class ParticipantModel(Base):
    """SQLAlchemy model for per-user conversation state."""

    __tablename__ = "conversation_participants"
    __table_args__ = (
        UniqueConstraint(
            "conversation_id", "user_id", name="uq_participants_conversation_user"
        ),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    conversation_id = Column(Uuid, ForeignKey("conversations.id"), nullable=False)
    user_id = Column(Uuid, nullable=False, index=True)
    role = Column(String(20), nullable=False)

    # Read cursor
    last_read_message_id = Column(Uuid, nullable=True)
    last_read_seq = Column(Integer, nullable=True)
    last_read_at = Column(DateTime(timezone=True), nullable=True)

    # Typing presence
    is_typing = Column(Boolean, nullable=False, default=False)
    typing_updated_at = Column(DateTime(timezone=True), nullable=True)

    # Archive / delete overlay for this user only
    visibility = Column(String(20), nullable=False, default="active")
    visibility_changed_at = Column(DateTime(timezone=True), nullable=True)

    joined_at = Column(DateTime(timezone=True), nullable=False)

    # Relationships
    conversation = relationship("ConversationModel", back_populates="participants")

    # Constraints (enforced by database CHECK constraints in migrations)
    # role IN ('requester', 'provider')
    # visibility IN ('active', 'archived', 'deleted')
