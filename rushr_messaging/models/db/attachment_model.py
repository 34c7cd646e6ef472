import uuid

from sqlalchemy import (
    BigInteger,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import relationship

from rushr_messaging.database import Base


class AttachmentModel(Base):
    """SQLAlchemy model for message_attachments table.

    Rows are immutable; the binary lives in external object storage.
    """

    __tablename__ = "message_attachments"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    message_id = Column(Uuid, ForeignKey("messages.id"), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)
    file_name = Column(String(255), nullable=False)
    url = Column(Text, nullable=False)
    mime_type = Column(String(255), nullable=False)
    size_bytes = Column(BigInteger, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False)

    # Relationships
    message = relationship("MessageModel", back_populates="attachments")
