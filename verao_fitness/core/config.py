from pydantic_settings import BaseSettings
from typing import List
from dotenv import load_dotenv
import os

load_dotenv()


class Settings(BaseSettings):
    # Environment
    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")
    DEBUG: bool = os.getenv("DEBUG", "true").lower() == "true"
    APP_VERSION: str = os.getenv("APP_VERSION", "1.0.0")

    # Supabase
    SUPABASE_URL: str = os.getenv("SUPABASE_URL", "")
    SUPABASE_ANON_KEY: str = os.getenv("SUPABASE_ANON_KEY", "")
    SUPABASE_SERVICE_KEY: str = os.getenv("SUPABASE_SERVICE_KEY", "")
    SUPABASE_REALTIME_ENABLED: bool = (
        os.getenv("SUPABASE_REALTIME_ENABLED", "true").lower() == "true"
    )

    # Storage
    PROOF_PHOTOS_BUCKET: str = os.getenv("PROOF_PHOTOS_BUCKET", "proof_photos")
    MAX_PHOTO_SIZE_BYTES: int = int(
        os.getenv("MAX_PHOTO_SIZE_BYTES", str(10 * 1024 * 1024))
    )
    MAX_PHOTO_DIMENSION: int = int(os.getenv("MAX_PHOTO_DIMENSION", "4096"))

    # Redis
    REDIS_URL: str = os.getenv("REDIS_URL", "redis://localhost:6379")

    # Query cache
    QUERY_CACHE_TTL_SECONDS: int = int(os.getenv("QUERY_CACHE_TTL_SECONDS", "3600"))
    WEEKLY_LEADERBOARD_STALE_SECONDS: int = int(
        os.getenv("WEEKLY_LEADERBOARD_STALE_SECONDS", "300")
    )
    RECENT_PROOFS_LIMIT: int = int(os.getenv("RECENT_PROOFS_LIMIT", "5"))

    # Sessions and notifications
    SESSION_TTL_SECONDS: int = int(os.getenv("SESSION_TTL_SECONDS", "3600"))
    NOTIFICATION_HISTORY_LIMIT: int = int(
        os.getenv("NOTIFICATION_HISTORY_LIMIT", "20")
    )
    NOTIFICATION_TTL_SECONDS: int = int(os.getenv("NOTIFICATION_TTL_SECONDS", "60"))

    # Calendar days and weeks are computed in this timezone
    DISPLAY_TIMEZONE: str = os.getenv("DISPLAY_TIMEZONE", "America/Sao_Paulo")

    # Comma separated emails allowed to manage competitors and any proof
    ADMIN_EMAILS: str = os.getenv("ADMIN_EMAILS", "")

    # CORS
    ALLOWED_ORIGINS: str = os.getenv("ALLOWED_ORIGINS", "*")
    ALLOWED_HOSTS: str = os.getenv("ALLOWED_HOSTS", "*")

    @property
    def allowed_origins_list(self) -> List[str]:
        return self.ALLOWED_ORIGINS.split(",")

    @property
    def allowed_hosts_list(self) -> List[str]:
        return self.ALLOWED_HOSTS.split(",")

    @property
    def admin_emails(self) -> List[str]:
        return [
            email.strip().lower()
            for email in self.ADMIN_EMAILS.split(",")
            if email.strip()
        ]

    @property
    def supabase_configured(self) -> bool:
        return bool(self.SUPABASE_URL and self.SUPABASE_SERVICE_KEY)

    class Config:
        env_file = [".env.local", ".env"]
        case_sensitive = True
        extra = "ignore"


# Create settings instance
settings = Settings()
