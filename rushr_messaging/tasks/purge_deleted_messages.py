"""Hard-delete soft-deleted messages past retention.

Run from a scheduler:
    python -m rushr_messaging.tasks.purge_deleted_messages
"""

import asyncio

from rushr_messaging.database import AsyncSessionLocal, close_db
from rushr_messaging.logging_config import configure_logging, get_logger
from rushr_messaging.services.purge_messages_service import PurgeMessagesService

logger = get_logger(__name__)


async def run() -> int:
    async with AsyncSessionLocal() as session:
        service = PurgeMessagesService(session)
        return await service.purge_deleted_messages()


async def main() -> None:
    configure_logging()
    try:
        removed = await run()
        logger.info("purge_task_finished", removed=removed)
    finally:
        await close_db()


if __name__ == "__main__":
    asyncio.run(main())
