"""
Markdown Server - синхронизация markdown-папки в хранилище и HTML-страницы.
"""
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Callable, Optional

from fastapi import FastAPI, Request

from mdserver.api import router as api_router
from mdserver.application.notifications import NotificationBus
from mdserver.application.sync import FileFilter, PathMapper, Reconciler, SyncScheduler, TreeScanner
from mdserver.domain.posts import PostRepository
from mdserver.domain.sync import FailedEntryPolicy
from mdserver.infrastructure.database import build_repository
from mdserver.infrastructure.plantuml import PlantUMLTransformer
from mdserver.logging_config import get_logger, setup_logging
from mdserver.settings import Settings, settings as default_settings

logger = get_logger("mdserver")

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "SAMEORIGIN",
    "X-XSS-Protection": "1; mode=block",
    "Cache-Control": "no-cache, no-store, must-revalidate",
}
SSE_PATH = "/api/events"


@dataclass
class Components:
    """Собранные компоненты приложения"""
    settings: Settings
    repository: PostRepository
    bus: NotificationBus
    mapper: PathMapper
    transformer: Callable[[str, str], str]
    scheduler: SyncScheduler


def build_components(
    settings: Optional[Settings] = None,
    repository: Optional[PostRepository] = None,
    transformer: Optional[Callable[[str, str], str]] = None,
) -> Components:
    settings = settings or default_settings
    repository = repository if repository is not None else build_repository(settings)
    transformer = transformer or PlantUMLTransformer(settings.SYNC_DIR, settings.PLANTUML_PUBLIC_URL)

    bus = NotificationBus(buffer_size=settings.SUBSCRIBER_BUFFER_SIZE)
    mapper = PathMapper(
        collection_prefix=settings.COLLECTION_PREFIX,
        root_collection=settings.ROOT_COLLECTION,
    )
    scanner = TreeScanner(settings.SYNC_DIR, file_filter=FileFilter.from_settings(settings))
    reconciler = Reconciler(repository, mapper, transformer)
    scheduler = SyncScheduler(
        scanner,
        reconciler,
        bus,
        mapper,
        repository=repository,
        interval=settings.SCAN_INTERVAL_SECONDS,
        failed_entry_policy=FailedEntryPolicy(settings.FAILED_ENTRY_POLICY),
        retry_max_attempts=settings.RETRY_MAX_ATTEMPTS,
        prune_orphans_on_start=settings.PRUNE_ORPHANS_ON_START,
    )
    return Components(
        settings=settings,
        repository=repository,
        bus=bus,
        mapper=mapper,
        transformer=transformer,
        scheduler=scheduler,
    )


def create_app(
    settings: Optional[Settings] = None,
    repository: Optional[PostRepository] = None,
    transformer: Optional[Callable[[str, str], str]] = None,
) -> FastAPI:
    settings = settings or default_settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Lifecycle: startup и shutdown."""
        setup_logging()
        logger.info(f"🚀 {settings.APP_NAME} v{settings.VERSION} starting...")
        logger.info(f"📂 Sync dir: {settings.SYNC_DIR} (auto sync: {settings.AUTO_SYNC})")

        components = build_components(settings, repository, transformer)
        app.state.repository = components.repository
        app.state.bus = components.bus
        app.state.mapper = components.mapper
        app.state.transformer = components.transformer
        app.state.scheduler = components.scheduler

        if settings.AUTO_SYNC:
            components.scheduler.start()

        yield

        logger.info("👋 Markdown Server shutting down...")
        components.scheduler.stop(timeout=settings.SCAN_INTERVAL_SECONDS + 5)
        components.bus.close_all()

    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.VERSION,
        description="Markdown-папка -> хранилище документов -> HTML с live-reload",
        lifespan=lifespan,
    )
    app.state.settings = settings

    @app.middleware("http")
    async def security_headers(request: Request, call_next):
        response = await call_next(request)
        # SSE отдаёт свои заголовки
        if request.url.path != SSE_PATH:
            for name, value in SECURITY_HEADERS.items():
                response.headers.setdefault(name, value)
        return response

    app.include_router(api_router)
    return app


app = create_app()
