from decimal import Decimal
from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    DATABASE_URL: str

    # Shared with the auth service so we can VERIFY customer tokens
    SECRET_KEY: str
    ALGORITHM: str

    # Gateway secrets. The webhook secret is checked at startup and on every
    # webhook call; the key secret signs the client-side checkout callback.
    RAZORPAY_WEBHOOK_SECRET: Optional[str] = None
    RAZORPAY_KEY_SECRET: Optional[str] = None

    # Percentages, e.g. 20 means 20%
    COMMISSION_RATE: Decimal = Field(ge=0, le=100)
    TAX_RATE: Decimal = Field(ge=0, le=100)
    DEFAULT_CURRENCY: str = "INR"

    KAFKA_BOOTSTRAP_SERVERS: str = "kafka:9092"
    KAFKA_NOTIFICATION_TOPIC: str = "booking_notifications"
    NOTIFICATION_CHANNELS: List[str] = ["email", "whatsapp"]
    OUTBOX_POLL_INTERVAL_SECONDS: int = 5

    REDIS_URL: str

    model_config = SettingsConfigDict(env_file=".env")


settings = Settings()
