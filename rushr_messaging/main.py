from contextlib import asynccontextmanager
from typing import AsyncGenerator, Dict, Optional

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from rushr_messaging import config
from rushr_messaging.clients.webhook_notification_client import (
    WebhookNotificationClient,
)
from rushr_messaging.database import close_db, get_db, init_db
from rushr_messaging.errors import MessagingError
from rushr_messaging.events.broker import get_broker
from rushr_messaging.events.notifications import NotificationDispatcher
from rushr_messaging.logging_config import configure_logging, get_logger
from rushr_messaging.middleware import RequestIDMiddleware
from rushr_messaging.routers.conversations import router as conversations_router
from rushr_messaging.routers.messages import router as messages_router
from rushr_messaging.routers.offers import router as offers_router

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Handle application startup and shutdown."""
    # Startup
    configure_logging()
    await init_db()

    broker = get_broker()
    notification_client: Optional[WebhookNotificationClient] = None
    dispatcher: Optional[NotificationDispatcher] = None
    if config.NOTIFICATION_WEBHOOK_URL:
        notification_client = WebhookNotificationClient(
            url=config.NOTIFICATION_WEBHOOK_URL,
            api_key=config.NOTIFICATION_API_KEY,
            timeout=config.NOTIFICATION_TIMEOUT_SECONDS,
        )
        dispatcher = NotificationDispatcher(notification_client)
        broker.add_listener(dispatcher)
    else:
        logger.info("notifications_disabled")

    logger.info("service_started", environment=config.ENV, version=config.COMMIT_HASH)
    yield

    # Shutdown
    if dispatcher is not None:
        broker.remove_listener(dispatcher)
    await broker.drain(timeout=config.NOTIFICATION_TIMEOUT_SECONDS)
    if notification_client is not None:
        await notification_client.aclose()
    await close_db()


app = FastAPI(
    title="Rushr Messaging Service",
    description="Conversations, messages and offers between requesters and providers",
    version=config.COMMIT_HASH,
    lifespan=lifespan,
)

app.add_middleware(RequestIDMiddleware)


@app.exception_handler(MessagingError)
async def messaging_error_handler(request: Request, exc: MessagingError) -> JSONResponse:
    """Render typed service errors with their stable code."""
    logger.info(
        "request_rejected",
        code=exc.code.value,
        status_code=exc.status_code,
        path=request.url.path,
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": {"code": exc.code.value, "message": exc.message}},
    )


# Include routers
app.include_router(
    conversations_router, prefix="/api/conversations", tags=["conversations"]
)
app.include_router(messages_router, prefix="/api/messages", tags=["messages"])
app.include_router(offers_router, prefix="/api/offers", tags=["offers"])


@app.get("/health")
async def health_check(db: AsyncSession = Depends(get_db)) -> Dict[str, Optional[str]]:
    """Health check endpoint with database connectivity."""
    try:
        # Test database connection
        result = await db.execute(text("SELECT 1"))
        db_status = "connected" if result.scalar() == 1 else "error"
    except Exception:
        logger.exception("health_check_failed")
        db_status = "disconnected"

    return {
        "status": "healthy" if db_status == "connected" else "degraded",
        "database": db_status,
        "environment": config.ENV,
        "version": config.COMMIT_HASH,
    }


# If run directly, start the server
if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=config.APP_ADDR, port=config.APP_PORT)
