"""
API роуты Markdown Server.

Структура эндпоинтов:
- /health — проверка здоровья
- /api/sync — ручная синхронизация
- /api/events — SSE для live-reload
- /collections, /api/collection/... — коллекции
- /, /post/{url}, /content/{collection} — HTML-страницы
- /plantuml/... — прокси к PlantUML серверу
"""
from fastapi import APIRouter

from .collections import router as collections_router
from .events import router as events_router
from .health import router as health_router
from .plantuml import router as plantuml_router
from .posts import router as posts_router
from .sync import router as sync_router

router = APIRouter()
router.include_router(health_router)
router.include_router(sync_router, prefix="/api")
router.include_router(events_router, prefix="/api")
router.include_router(collections_router)
router.include_router(posts_router)
router.include_router(plantuml_router)

__all__ = ["router"]
