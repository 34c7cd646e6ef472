"""Expire open offers whose expiry time has passed.

Run from a scheduler:
    python -m rushr_messaging.tasks.expire_offers
"""

import asyncio

from rushr_messaging.database import AsyncSessionLocal, close_db
from rushr_messaging.logging_config import configure_logging, get_logger
from rushr_messaging.services.respond_to_offer_service import RespondToOfferService

logger = get_logger(__name__)


async def run() -> int:
    async with AsyncSessionLocal() as session:
        service = RespondToOfferService(session)
        expired = await service.expire_due_offers()
        return len(expired)


async def main() -> None:
    configure_logging()
    try:
        count = await run()
        logger.info("expire_task_finished", expired=count)
    finally:
        await close_db()


if __name__ == "__main__":
    asyncio.run(main())
