"""Application configuration."""

from os import getenv

from pydantic import BaseModel


def _csv(value: str) -> list[str]:
    return [part.strip() for part in value.split(",") if part.strip()]


DEV_JWT_SECRET: str = "dev-only-change-me-to-a-long-random-secret"


class Settings(BaseModel):
    """Runtime settings for the application."""

    app_name: str = "Shop API"
    app_env: str = getenv("APP_ENV", "dev")
    debug: bool = getenv("DEBUG", "0") == "1"
    database_url: str = getenv("DATABASE_URL", "sqlite:///./shop.db")
    jwt_secret_key: str = getenv("JWT_SECRET_KEY", DEV_JWT_SECRET)
    jwt_algorithm: str = getenv("JWT_ALGORITHM", "HS256")
    jwt_expire_minutes: int = int(getenv("JWT_EXPIRE_MINUTES", str(60 * 24 * 7)))
    jwt_issuer: str = getenv("JWT_ISSUER", "shop-api")
    media_root: str = getenv("MEDIA_ROOT", "./media")
    images_bucket: str = getenv("IMAGES_BUCKET", "images")
    videos_bucket: str = getenv("VIDEOS_BUCKET", "videos")
    max_upload_bytes: int = int(getenv("MAX_UPLOAD_BYTES", str(10 * 1024 * 1024)))
    audit_retention_days: int = int(getenv("AUDIT_RETENTION_DAYS", "90"))
    audit_cleanup_default_days: int = int(getenv("AUDIT_CLEANUP_DEFAULT_DAYS", "30"))
    supported_languages: list[str] = _csv(getenv("SUPPORTED_LANGUAGES", "en,zh"))
    default_language: str = getenv("DEFAULT_LANGUAGE", "en")
    cors_origins: list[str] = _csv(getenv("CORS_ORIGINS", "*"))
    admin_email: str = getenv("ADMIN_EMAIL", "")
    admin_password: str = getenv("ADMIN_PASSWORD", "")
    google_client_id: str = getenv("GOOGLE_CLIENT_ID", "")
    google_certs_url: str = getenv("GOOGLE_CERTS_URL", "https://www.googleapis.com/oauth2/v3/certs")
    google_certs_ttl_seconds: int = int(getenv("GOOGLE_CERTS_TTL_SECONDS", "3600"))


settings: Settings = Settings()
