import os
from functools import lru_cache
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, field_validator

load_dotenv()

OTP_CLEANUP_DELAY_MS = 10 * 60 * 1000
JWT_EXPIRE_DAYS = 30
JWT_ALGORITHM = "HS256"

REQUIRED_ENV = (
    "DATABASE_URL",
    "JWT_SECRET",
    "OTP_SECRET",
    "MAIL_USERNAME",
    "MAIL_PASSWORD",
    "MAIL_FROM",
)


class ConfigError(RuntimeError):
    pass


class Settings(BaseModel):
    database_url: str
    jwt_secret: str
    otp_secret: str

    mail_username: str
    mail_password: str
    mail_from: str
    mail_server: str = "smtp.gmail.com"
    mail_port: int = 587

    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_password: Optional[str] = None

    gemini_api_key: Optional[str] = None
    cloudinary_cloud_name: Optional[str] = None
    cloudinary_api_key: Optional[str] = None
    cloudinary_api_secret: Optional[str] = None

    cors_origins: List[str] = ["*"]

    @field_validator("jwt_secret", "otp_secret")
    @classmethod
    def secret_not_blank(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("secret must be non-empty")
        return value

    @field_validator("cors_origins", mode="before")
    @classmethod
    def split_cors_origins(cls, value):
        if isinstance(value, str):
            return [origin.strip() for origin in value.split(",") if origin.strip()]
        return value

    @property
    def broker_url(self) -> str:
        auth = f":{self.redis_password}@" if self.redis_password else ""
        return f"redis://{auth}{self.redis_host}:{self.redis_port}/0"

    @classmethod
    def from_env(cls) -> "Settings":
        missing = [name for name in REQUIRED_ENV if not (os.getenv(name) or "").strip()]
        if missing:
            raise ConfigError(f"Missing required environment variables: {', '.join(missing)}")

        values = {name.lower(): os.getenv(name) for name in REQUIRED_ENV}
        optional = (
            "MAIL_SERVER",
            "MAIL_PORT",
            "REDIS_HOST",
            "REDIS_PORT",
            "REDIS_PASSWORD",
            "GEMINI_API_KEY",
            "CLOUDINARY_CLOUD_NAME",
            "CLOUDINARY_API_KEY",
            "CLOUDINARY_API_SECRET",
            "CORS_ORIGINS",
        )
        for name in optional:
            value = os.getenv(name)
            if value:
                values[name.lower()] = value
        return cls(**values)


@lru_cache
def get_settings() -> Settings:
    return Settings.from_env()
