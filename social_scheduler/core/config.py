# social_scheduler/core/config.py

from functools import lru_cache
from typing import List

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    APP_NAME: str = "Social Scheduler API"
    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: List[str] = [
        "http://localhost:3000",  # CRA dev server
        "http://localhost:5173",  # Vite dev server
    ]
    ALLOWED_HOSTS: List[str] = ["*"]

    # Supabase
    SUPABASE_URL: str = ""
    SUPABASE_KEY: str = ""  # anon key
    SUPABASE_SERVICE_ROLE_KEY: str = ""

    # Fernet key for OAuth tokens at rest
    ENCRYPTION_KEY: str = ""

    # R2 / S3 compatible media storage
    R2_ENDPOINT_URL: str = ""
    R2_ACCESS_KEY_ID: str = ""
    R2_SECRET_ACCESS_KEY: str = ""
    R2_BUCKET_NAME: str = "social-scheduler-media"
    CDN_DOMAIN: str = "cdn.example.com"

    # OpenAI compatible chat completion API for captions
    AI_API_KEY: str = ""
    AI_BASE_URL: str = "https://api.openai.com/v1"
    AI_MODEL: str = "gpt-4o-mini"
    AI_TIMEOUT: float = 60.0

    # Platform OAuth apps
    OAUTH_REDIRECT_BASE_URL: str = "http://localhost:3000/oauth/callback"
    FACEBOOK_APP_ID: str = ""
    FACEBOOK_APP_SECRET: str = ""
    LINKEDIN_CLIENT_ID: str = ""
    LINKEDIN_CLIENT_SECRET: str = ""
    TWITTER_CLIENT_ID: str = ""
    TWITTER_CLIENT_SECRET: str = ""

    # Publishing
    PUBLISH_TIMEOUT: float = 30.0
    AUTO_PUBLISH_ENABLED: bool = False
    AUTO_PUBLISH_INTERVAL_SECONDS: int = 60

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"


@lru_cache()
def get_settings():
    return Settings()
