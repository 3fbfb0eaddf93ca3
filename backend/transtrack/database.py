from __future__ import annotations

from pathlib import Path

import motor.motor_asyncio
from loguru import logger
from pydantic_settings import BaseSettings, SettingsConfigDict
from pymongo.errors import ConfigurationError, InvalidURI
from pymongo.uri_parser import parse_uri


BASE_DIR = Path(__file__).resolve().parents[1]
ENV_FILES = [BASE_DIR / ".env.local", BASE_DIR / ".env"]

DEFAULT_DATABASE = "transtrack"
LOCAL_MONGO_URL = f"mongodb://localhost:27017/{DEFAULT_DATABASE}"


class Settings(BaseSettings):
    """Runtime configuration, read from ``TRANSTRACK_*`` variables or the env files."""

    mongodb_url: str = LOCAL_MONGO_URL
    mongo_server_timeout_ms: int = 2000
    mongo_connect_timeout_ms: int = 2000
    mongo_socket_timeout_ms: int = 2000

    jwt_secret: str = "supersecret"
    jwt_algorithm: str = "HS256"
    jwt_expires_min: int = 60
    bcrypt_rounds: int = 12

    twilio_sid: str | None = None
    twilio_token: str | None = None
    twilio_phone: str | None = None

    # Requests without a token act as this user only when explicitly enabled.
    auto_authorize_demo: bool = False
    demo_user_email: str = "demo@transtrack.org"
    demo_user_name: str = "Demo Surgeon"
    demo_user_password: str = "demo1234"
    demo_user_role: str = "surgeon"

    # Upper bound on patients read per matching run or bulk recalculation.
    candidate_pool_limit: int = 5000

    model_config = SettingsConfigDict(
        env_file=[str(path) for path in ENV_FILES],
        case_sensitive=False,
        env_prefix="TRANSTRACK_",
    )


settings = Settings()


def create_client(config: Settings) -> motor.motor_asyncio.AsyncIOMotorClient:
    options = {
        "serverSelectionTimeoutMS": config.mongo_server_timeout_ms,
        "connectTimeoutMS": config.mongo_connect_timeout_ms,
        "socketTimeoutMS": config.mongo_socket_timeout_ms,
    }
    try:
        return motor.motor_asyncio.AsyncIOMotorClient(config.mongodb_url, **options)
    except ConfigurationError as exc:
        if config.mongodb_url == LOCAL_MONGO_URL:
            raise
        logger.warning("Cannot resolve MongoDB at {} ({}); using {}", config.mongodb_url, exc, LOCAL_MONGO_URL)
        return motor.motor_asyncio.AsyncIOMotorClient(LOCAL_MONGO_URL, **options)


def database_name_from_url(url: str | None) -> str:
    if not url:
        return DEFAULT_DATABASE
    try:
        return parse_uri(url).get("database") or DEFAULT_DATABASE
    except (InvalidURI, ConfigurationError, ValueError) as exc:
        logger.warning("Cannot parse MongoDB URL {} ({}); using database {!r}", url, exc, DEFAULT_DATABASE)
        return DEFAULT_DATABASE


client = create_client(settings)
db = client.get_database(database_name_from_url(settings.mongodb_url))


def get_database() -> motor.motor_asyncio.AsyncIOMotorDatabase:
    """FastAPI dependency; tests override it with an in-memory database."""
    return db
