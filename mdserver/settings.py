"""
Настройки Markdown Server

Все значения можно переопределить через переменные окружения или .env.
Значения по умолчанию подобраны так, чтобы сервис стартовал локально
без базы данных (in-memory хранилище) и с папкой ./content.
"""
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


def _split_csv(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


class Settings(BaseSettings):
    """Настройки приложения"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore"
    )

    # === APPLICATION ===
    APP_NAME: str = "Markdown Server"
    VERSION: str = "2.0.0"
    ENVIRONMENT: str = "development"  # development | production
    HOST: str = "0.0.0.0"
    PORT: int = 8080

    # === LOGGING ===
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "%(asctime)s | %(levelname)-8s | %(name)s - %(message)s"

    # === STORE ===
    # Пустой DATABASE_URL -> in-memory хранилище (только для разработки)
    DATABASE_URL: str = ""
    POSTS_TABLE_NAME: str = "posts"
    STORE_TIMEOUT_SECONDS: float = 5.0  # Таймаут на один вызов хранилища

    # === SYNC ===
    SYNC_DIR: str = "./content"
    AUTO_SYNC: bool = False
    SCAN_INTERVAL_SECONDS: float = 3.0
    ALLOWED_EXTENSIONS: str = ".md"  # Через запятую
    EXCLUDED_DIRS: str = ""  # Через запятую, скрытые папки пропускаются всегда
    EXCLUDED_PATTERNS: str = "~*,.*"  # Шаблоны имён файлов через запятую
    FILE_MAX_SIZE: int = 10 * 1024 * 1024
    COLLECTION_PREFIX: str = "content/"  # Пространство имён синхронизируемых коллекций
    ROOT_COLLECTION: str = "root"  # Коллекция для файлов в корне SYNC_DIR
    UPLOADED_PREFIX: str = "uploaded/"  # Коллекции, созданные через API
    FAILED_ENTRY_POLICY: str = "forget"  # forget | retry
    RETRY_MAX_ATTEMPTS: int = 5
    PRUNE_ORPHANS_ON_START: bool = True

    # === NOTIFICATIONS ===
    SUBSCRIBER_BUFFER_SIZE: int = 10
    SSE_POLL_INTERVAL_SECONDS: float = 0.5
    SSE_KEEPALIVE_SECONDS: float = 15.0

    # === DIAGRAMS ===
    PLANTUML_SERVER: str = "http://plantuml:8080"  # Внутренний адрес рендер-сервиса
    PLANTUML_PUBLIC_URL: str = "/plantuml"  # Адрес для браузера (через прокси)

    @property
    def allowed_extensions(self) -> List[str]:
        return [ext.lower() for ext in _split_csv(self.ALLOWED_EXTENSIONS)]

    @property
    def excluded_dirs(self) -> List[str]:
        return _split_csv(self.EXCLUDED_DIRS)

    @property
    def excluded_patterns(self) -> List[str]:
        return _split_csv(self.EXCLUDED_PATTERNS)


settings = Settings()
