import logging
import time
import uuid

from sqlalchemy import JSON, Boolean, Column, Float, Integer, String
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import NullPool

from nutramitra.core.config import settings

logger = logging.getLogger(__name__)


def _engine_options(url: str) -> dict:
    options = {"echo": settings.DB_ECHO}
    if url.startswith("sqlite"):
        # SQLite connections are cheap to open and must not outlive their event loop
        options["poolclass"] = NullPool
    return options


engine = create_async_engine(settings.DATABASE_URL, **_engine_options(settings.DATABASE_URL))
AsyncSessionLocal = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
Base = declarative_base()


def _new_id() -> str:
    return uuid.uuid4().hex


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)  # always lower-cased
    hashed_password = Column(String, nullable=False)
    salt = Column(String, nullable=False)
    role = Column(String, default="user", nullable=False)  # user, admin
    is_verified = Column(Boolean, default=False, nullable=False)
    profile_pic = Column(String, nullable=True)
    created_at = Column(Float, default=time.time)
    updated_at = Column(Float, default=time.time, onupdate=time.time)


class Fruit(Base):
    __tablename__ = "fruits"

    id = Column(String, primary_key=True, default=_new_id)
    name = Column(String, unique=True, index=True, nullable=False)
    category = Column(String, nullable=False)  # fruit, vegetable
    description = Column(String, nullable=True)
    calories = Column(Float, nullable=True)
    vitamins = Column(JSON, default=list, nullable=False)
    minerals = Column(JSON, default=dict, nullable=False)  # {"calcium": 50, "iron": 10}
    health_benefits = Column(JSON, default=list, nullable=False)
    seasonal_availability = Column(String, nullable=True)
    is_organic = Column(Boolean, default=False, nullable=False)
    origin_story = Column(String, nullable=True)
    image_url = Column(String, nullable=True)
    image_public_id = Column(String, nullable=True)
    created_at = Column(Float, default=time.time, index=True)
    updated_at = Column(Float, default=time.time, onupdate=time.time)


class VerificationCode(Base):
    __tablename__ = "verification_codes"

    purpose = Column(String, primary_key=True)  # signup, reset
    email = Column(String, primary_key=True, index=True)
    code = Column(String, nullable=False)
    issued_at = Column(Float, nullable=False)
    expires_at = Column(Float, nullable=False)
    attempts = Column(Integer, default=0, nullable=False)


async def init_db(bind=None):
    async with (bind or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables ready")


# Helper dependency
async def get_db():
    async with AsyncSessionLocal() as session:
        yield session
