"""
Хранилища документов.

DATABASE_URL задан -> PostgreSQL (psycopg2), иначе in-memory.
"""
from typing import Optional

from mdserver.domain.posts import PostRepository
from mdserver.logging_config import get_logger
from mdserver.settings import Settings, settings as default_settings

from .memory import InMemoryPostRepository

logger = get_logger("mdserver.infrastructure.database")


def build_repository(settings: Optional[Settings] = None) -> PostRepository:
    settings = settings or default_settings
    if not settings.DATABASE_URL:
        logger.warning("⚠️ DATABASE_URL is not set, using in-memory store (data is lost on restart)")
        return InMemoryPostRepository()

    from .postgres import PostgresPostRepository

    logger.info(f"🗄️ Database: {settings.DATABASE_URL[:50]}...")
    return PostgresPostRepository(
        settings.DATABASE_URL,
        table_name=settings.POSTS_TABLE_NAME,
        timeout=settings.STORE_TIMEOUT_SECONDS,
    )


__all__ = ["InMemoryPostRepository", "build_repository"]
