import uuid

from sqlalchemy import (
    Column,
    DateTime,
    Integer,
    String,
    UniqueConstraint,
    Uuid,
    func,
)
from sqlalchemy.orm import relationship

from rushr_messaging.database import Base


class ConversationModel(Base):
    """SQLAlchemy model for conversations table."""

    __tablename__ = "conversations"
    __table_args__ = (
        UniqueConstraint(
            "requester_id", "provider_id", "job_scope", name="uq_conversations_parties"
        ),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    requester_id = Column(Uuid, nullable=False, index=True)
    provider_id = Column(Uuid, nullable=False, index=True)
    title = Column(String(255), nullable=False)
    job_ref = Column(Uuid, nullable=True)
    # str(job_ref) or "" so the uniqueness key also covers conversations
    # without a job
    job_scope = Column(String(64), nullable=False, default="")
    status = Column(String(20), nullable=False, default="active")
    next_seq = Column(Integer, nullable=False, default=1)
    last_activity_at = Column(DateTime(timezone=True), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), default=func.now())
    updated_at = Column(
        DateTime(timezone=True), default=func.now(), onupdate=func.now()
    )

    # Relationships
    messages = relationship(
        "MessageModel", back_populates="conversation", cascade="all, delete-orphan"
    )
    participants = relationship(
        "ParticipantModel", back_populates="conversation", cascade="all, delete-orphan"
    )

    # Constraints (enforced by database CHECK constraints in migrations)
    # status IN ('active', 'archived', 'closed', 'deleted')
