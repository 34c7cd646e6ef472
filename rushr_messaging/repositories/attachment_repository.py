from datetime import datetime
from typing import List, Sequence
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from rushr_messaging.models.api.messages import AttachmentIn
from rushr_messaging.models.db.attachment_model import AttachmentModel


class AttachmentRepository:
    """Stores attachment metadata; the binary lives in object storage."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def add_many(
        self, message_id: UUID, attachments: Sequence[AttachmentIn], now: datetime
    ) -> List[AttachmentModel]:
        """Stage attachment rows in the order they were given."""
        db_models = [
            AttachmentModel(
                message_id=message_id,
                position=position,
                file_name=attachment.file_name.strip(),
                url=attachment.url.strip(),
                mime_type=attachment.mime_type.strip(),
                size_bytes=attachment.size_bytes,
                created_at=now,
            )
            for position, attachment in enumerate(attachments)
        ]
        self.db.add_all(db_models)
        await self.db.flush()
        return db_models
