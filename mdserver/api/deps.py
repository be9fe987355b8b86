"""
Доступ к компонентам приложения из роутов.

Компоненты создаются в lifespan (mdserver.main) и лежат в app.state.
"""
from fastapi import Request

from mdserver.application.notifications import NotificationBus
from mdserver.application.sync import PathMapper, SyncScheduler
from mdserver.domain.posts import PostRepository
from mdserver.settings import Settings


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_repository(request: Request) -> PostRepository:
    return request.app.state.repository


def get_bus(request: Request) -> NotificationBus:
    return request.app.state.bus


def get_scheduler(request: Request) -> SyncScheduler:
    return request.app.state.scheduler


def get_mapper(request: Request) -> PathMapper:
    return request.app.state.mapper


def get_transformer(request: Request):
    return request.app.state.transformer
