from datetime import datetime, timedelta
from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from rushr_messaging import config
from rushr_messaging.logging_config import get_logger
from rushr_messaging.repositories.message_repository import MessageRepository
from rushr_messaging.timeutils import as_utc, utc_now

logger = get_logger(__name__)


def eligible_for_purge(message: Any, now: datetime, retention_days: int) -> bool:
    """Whether a soft-deleted message has outlived its retention period."""
    if not message.deleted or message.deleted_at is None:
        return False
    return now - as_utc(message.deleted_at) > timedelta(days=retention_days)


class PurgeMessagesService:
    """Hard-deletes soft-deleted messages past retention."""

    def __init__(self, db: AsyncSession, retention_days: Optional[int] = None):
        self.db = db
        self.retention_days = (
            config.RETENTION_DAYS if retention_days is None else retention_days
        )
        self.message_repo = MessageRepository(db)

    async def purge_deleted_messages(
        self, now: Optional[datetime] = None, batch_size: int = 500
    ) -> int:
        """Remove eligible messages in batches.

        Returns:
            Number of messages removed
        """
        now = now or utc_now()
        cutoff = now - timedelta(days=self.retention_days)
        total = 0

        while True:
            try:
                candidates = await self.message_repo.get_purge_candidates(
                    cutoff, limit=batch_size
                )
                message_ids = [
                    message.id
                    for message in candidates
                    if eligible_for_purge(message, now, self.retention_days)
                ]
                removed = await self.message_repo.hard_delete(message_ids)
                await self.db.commit()
            except Exception:
                await self.db.rollback()
                raise

            total += removed
            logger.info("purge_batch_completed", removed=removed)
            if len(candidates) < batch_size or not message_ids:
                break

        logger.info(
            "purge_completed", removed=total, retention_days=self.retention_days
        )
        return total
