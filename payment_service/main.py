import asyncio
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI

from . import models
from .database import engine
from .errors import register_error_handlers
from .routers import payment_router, wallet_router, webhook_router
from .outbox_poller import run_outbox_poller

import redis.asyncio as redis
from fastapi_limiter import FastAPILimiter
from .config import settings

# Setup logger
logger = logging.getLogger("payment_service")

# Create database tables on startup. Alembic owns the schema in production.
models.Base.metadata.create_all(bind=engine)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manages application startup and shutdown events.
    """
    if not settings.RAZORPAY_WEBHOOK_SECRET:
        logger.critical("RAZORPAY_WEBHOOK_SECRET is not set. Webhook calls will be rejected with 500.")
    if not settings.RAZORPAY_KEY_SECRET:
        logger.warning("RAZORPAY_KEY_SECRET is not set. Checkout verification is disabled.")

    redis_client = redis.from_url(settings.REDIS_URL, encoding="utf-8")
    try:
        await FastAPILimiter.init(redis_client)
        logger.info("FastAPILimiter initialized with Redis.")
    except Exception as e:
        logger.error(f"Failed to initialize FastAPILimiter: {e}")

    # Publishes queued booking notifications to Kafka
    poller_task = asyncio.create_task(run_outbox_poller())

    yield  # The application is now running

    logger.info("Shutting down background tasks...")
    await redis_client.close()

    poller_task.cancel()
    try:
        await poller_task
    except asyncio.CancelledError:
        logger.info("Outbox poller task successfully cancelled.")
    except Exception as e:
        logger.error(f"Error during outbox poller shutdown: {e}")


app = FastAPI(
    title="Payment Event Service",
    description="Consumes payment gateway webhooks and keeps bookings, commissions and wallets in step.",
    version="1.0.0",
    lifespan=lifespan
)

register_error_handlers(app)

app.include_router(webhook_router.router)
app.include_router(payment_router.router)
app.include_router(wallet_router.router)


@app.get("/")
def read_root():
    return {"message": "Welcome to the Payment Event Service"}
