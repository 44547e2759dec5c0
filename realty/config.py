from pydantic_settings import BaseSettings
from pydantic import ConfigDict, field_validator
from typing import Optional


class Settings(BaseSettings):
    # Database
    DATABASE_URL: str = "sqlite:///./realty.db"

    # JWT
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 24 * 60

    # Uploads
    UPLOADS_DIR: str = "./uploads"
    UPLOADS_PUBLIC_BASE: str = "/uploads"
    PUBLIC_BASE_URL: str = "http://localhost:8000"
    IMAGE_CACHE_BUST: bool = True
    MAX_IMAGE_SIZE: int = 10 * 1024 * 1024
    MAX_DOCUMENT_SIZE: int = 10 * 1024 * 1024
    MAX_IMAGES_PER_PROPERTY: int = 50

    # Pagination
    DEFAULT_PAGE_SIZE: int = 16
    MAX_PAGE_SIZE: int = 100

    # Runtime
    APP_DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: str = "*"  # comma separated

    # First admin account, created at startup when both are set
    ADMIN_EMAIL: Optional[str] = None
    ADMIN_PASSWORD: Optional[str] = None
    ADMIN_NAME: str = "Administrator"

    @field_validator("UPLOADS_PUBLIC_BASE", mode="before")
    @classmethod
    def normalize_public_base(cls, v):
        """Always a leading slash and no trailing one, e.g. "/uploads"."""
        if isinstance(v, str):
            return "/" + v.strip().strip("/")
        return v

    @property
    def cors_origins(self) -> list[str]:
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]

    model_config = ConfigDict(env_file=".env", extra="ignore")


settings = Settings()
