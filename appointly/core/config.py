import os
from typing import List, Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    Application settings model.

    All configuration variables are loaded from environment variables
    with fallback defaults for development.
    """

    # Database
    database_url: str = os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./appointly.db")

    # JWT settings (tokens are issued by the identity provider and signed with this key)
    secret_key: str = os.getenv("SECRET_KEY", "your-super-secret-key-change-in-production")
    algorithm: str = os.getenv("ALGORITHM", "HS256")
    access_token_expire_minutes: int = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "60"))

    # Google Calendar settings
    google_client_id: Optional[str] = os.getenv("GOOGLE_CLIENT_ID")
    google_calendar_api_url: str = os.getenv(
        "GOOGLE_CALENDAR_API_URL", "https://www.googleapis.com/calendar/v3"
    )
    google_userinfo_url: str = os.getenv(
        "GOOGLE_USERINFO_URL", "https://www.googleapis.com/oauth2/v2/userinfo"
    )
    google_api_timeout: float = float(os.getenv("GOOGLE_API_TIMEOUT", "30.0"))

    # Scheduling
    require_seller_calendar: bool = os.getenv("REQUIRE_SELLER_CALENDAR", "true").lower() in ("1", "true", "yes")

    # HTTP / logging
    cors_origins: str = os.getenv("CORS_ORIGINS", "*")
    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    @property
    def cors_origin_list(self) -> List[str]:
        """Split the comma-separated CORS origins setting."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    class Config:
        env_file = ".env"
        case_sensitive = False
        extra = "ignore"


# Global settings instance
settings = Settings()
