import logging
import os
from logging.handlers import RotatingFileHandler
from typing import List, Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    PROJECT_NAME: str = "Nutramitra"

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./nutramitra.db"
    DB_ECHO: bool = False

    # SMTP Configuration
    MAIL_USERNAME: str = ""
    MAIL_PASSWORD: str = ""
    MAIL_FROM: str = "noreply@nutramitra.com"
    MAIL_PORT: int = 587
    MAIL_SERVER: str = "smtp.gmail.com"
    MAIL_TIMEOUT: float = 10

    # Where contact form submissions are delivered
    CONTACT_EMAIL: str = ""
    # Public site, used for links in outgoing mail
    PUBLIC_BASE_URL: str = "http://localhost:3000"

    # Security
    SECRET_KEY: str = "CHANGE_THIS_IN_PRODUCTION_TO_A_VERY_STRONG_KEY"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24
    RESET_TOKEN_EXPIRE_MINUTES: int = 10
    SIGNUP_TOKEN_EXPIRE_MINUTES: int = 30

    # Verification codes
    OTP_TTL_SECONDS: int = 10 * 60
    OTP_MAX_ATTEMPTS: int = 5

    # Media host (S3 compatible)
    S3_ACCESS_KEY: Optional[str] = None
    S3_SECRET_KEY: Optional[str] = None
    S3_BUCKET_NAME: Optional[str] = None
    S3_REGION: str = "us-east-1"
    S3_ENDPOINT_URL: Optional[str] = None  # MinIO, DigitalOcean Spaces, ...
    S3_PUBLIC_URL: Optional[str] = None  # CDN in front of the bucket
    MEDIA_TIMEOUT: float = 10
    MEDIA_MAX_ATTEMPTS: int = 3
    MAX_IMAGE_SIZE: int = 10 * 1024 * 1024

    CORS_ORIGINS: List[str] = ["*"]

    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = ""

    class Config:
        env_file = ".env"
        extra = "ignore"

    @property
    def contact_inbox(self) -> str:
        return self.CONTACT_EMAIL or self.MAIL_USERNAME or "admin@nutramitra.com"


settings = Settings()


def configure_logging():
    """
    Configure the root logger from LOG_LEVEL / LOG_FILE.

    Safe to call more than once: existing handlers are reused and only
    their level and format are refreshed.
    """
    level = getattr(logging, (settings.LOG_LEVEL or "INFO").upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    formatter = logging.Formatter(
        fmt="%(asctime)s [%(levelname)-5s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )

    stream_handler = None
    for h in root_logger.handlers:
        if isinstance(h, logging.StreamHandler) and not isinstance(h, logging.FileHandler):
            stream_handler = h
            break
    if stream_handler is None:
        stream_handler = logging.StreamHandler()
        root_logger.addHandler(stream_handler)
    stream_handler.setLevel(level)
    stream_handler.setFormatter(formatter)

    if settings.LOG_FILE:
        log_dir = os.path.dirname(settings.LOG_FILE)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)

        file_handler = None
        for h in root_logger.handlers:
            if isinstance(h, logging.FileHandler):
                file_handler = h
                break
        if file_handler is None:
            file_handler = RotatingFileHandler(
                settings.LOG_FILE, maxBytes=5 * 1024 * 1024, backupCount=3, encoding="utf-8"
            )
            root_logger.addHandler(file_handler)
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)

    # Quiet third-party libraries
    for name in ("botocore", "boto3", "s3transfer", "aiosqlite", "aiosmtplib"):
        logging.getLogger(name).setLevel(logging.WARNING)
