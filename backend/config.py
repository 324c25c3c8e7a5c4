# ============================================================
# config.py — Environment Settings
# ============================================================

import os
from pydantic import BaseModel
from typing import List


DEFAULT_DATABASE_URL = "sqlite+aiosqlite:///./case_desk.db"


def _env_flag(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def normalize_database_url(url: str) -> str:
    """Point plain postgres URLs (Render, Heroku style) at the asyncpg driver"""
    if url.startswith("postgres://"):
        return url.replace("postgres://", "postgresql+asyncpg://", 1)
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+asyncpg://", 1)
    return url


class Settings(BaseModel):
    database_url: str = DEFAULT_DATABASE_URL
    db_pool_size: int = 3
    db_max_overflow: int = 2
    identity_header: str = "X-Caller-Identity"
    strict_identity_references: bool = False
    log_level: str = "INFO"
    cors_origins: List[str] = ["*"]


def load_settings() -> Settings:
    """Build settings from the process environment"""
    return Settings(
        database_url=normalize_database_url(
            os.getenv("DATABASE_URL", DEFAULT_DATABASE_URL)
        ),
        db_pool_size=int(os.getenv("DB_POOL_SIZE", "3")),
        db_max_overflow=int(os.getenv("DB_MAX_OVERFLOW", "2")),
        identity_header=os.getenv("IDENTITY_HEADER", "X-Caller-Identity"),
        strict_identity_references=_env_flag("STRICT_IDENTITY_REFERENCES"),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        cors_origins=[
            origin.strip()
            for origin in os.getenv("CORS_ORIGINS", "*").split(",")
            if origin.strip()
        ],
    )
