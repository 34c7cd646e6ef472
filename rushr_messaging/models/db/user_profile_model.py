from sqlalchemy import Column, String, Uuid

from rushr_messaging.database import Base


class UserProfileModel(Base):
    """Read-only view of profiles owned by the identity provider."""

    __tablename__ = "user_profiles"

    id = Column(Uuid, primary_key=True)
    name = Column(String(255), nullable=True)
    email = Column(String(255), nullable=True)
    role = Column(String(20), nullable=True)
