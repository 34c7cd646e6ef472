from typing import Dict, Sequence
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from rushr_messaging.models.db.user_profile_model import UserProfileModel


class UserProfileRepository:
    """Read-only lookups against profiles owned by the identity provider."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_display_names(self, user_ids: Sequence[UUID]) -> Dict[UUID, str]:
        """Map user ids to a display name (name, falling back to email).

        Users without a profile or without either field are omitted.
        """
        if not user_ids:
            return {}
        query = select(UserProfileModel).where(UserProfileModel.id.in_(set(user_ids)))
        result = await self.db.execute(query)
        names: Dict[UUID, str] = {}
        for profile in result.scalars().all():
            display_name = profile.name or profile.email
            if display_name:
                names[profile.id] = display_name
        return names
