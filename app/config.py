"""Environment configuration for the call-style reminders backend."""

import os
from functools import lru_cache

from dotenv import load_dotenv

load_dotenv()


class Settings:
    """Application settings loaded from environment variables."""

    def __init__(self) -> None:
        self.DATABASE_URL: str = os.getenv("DATABASE_URL", "")
        self.AUTH_SECRET: str = os.getenv("AUTH_SECRET", "")
        self.FRONTEND_URL: str = os.getenv("FRONTEND_URL", "http://localhost:8081")
        self.JWT_ALGORITHM: str = "HS256"

        # Blob storage for attachments
        self.BLOB_STORAGE_URL: str = os.getenv("BLOB_STORAGE_URL", "")
        self.BLOB_STORAGE_BUCKET: str = os.getenv("BLOB_STORAGE_BUCKET", "media")
        self.BLOB_STORAGE_KEY: str = os.getenv("BLOB_STORAGE_KEY", "")
        self.LOCAL_BLOB_DIR: str = os.getenv("LOCAL_BLOB_DIR", "uploads")

        # Device notification gateway (empty = in-process notifications)
        self.PUSH_GATEWAY_URL: str = os.getenv("PUSH_GATEWAY_URL", "")
        self.PUSH_GATEWAY_KEY: str = os.getenv("PUSH_GATEWAY_KEY", "")

        self.HTTP_TIMEOUT_SECONDS: float = float(os.getenv("HTTP_TIMEOUT_SECONDS", "10"))
        self.STRIPE_WEBHOOK_SECRET: str = os.getenv("STRIPE_WEBHOOK_SECRET", "")

        # Trigger worker
        self.WORKER_BATCH_SIZE: int = int(os.getenv("WORKER_BATCH_SIZE", "50"))
        self.WORKER_POLL_INTERVAL_SECONDS: int = int(
            os.getenv("WORKER_POLL_INTERVAL_SECONDS", "5")
        )

    def validate(self) -> None:
        """Validate that required environment variables are set."""
        if not self.DATABASE_URL:
            raise ValueError("DATABASE_URL environment variable is required")
        if not self.AUTH_SECRET:
            raise ValueError("AUTH_SECRET environment variable is required")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    settings = Settings()
    return settings
