"""
Server-Sent Events для live-reload страниц.

Каждое соединение получает свою подписку на NotificationBus:

    data: connected      сразу после подключения
    data: reload         на каждое изменение хранилища
    : keepalive          комментарий, если долго нет сообщений
"""
import asyncio
from typing import AsyncIterator, Awaitable, Callable

from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse

from mdserver.application.notifications import CONNECTED_MESSAGE, NotificationBus, Subscription
from mdserver.logging_config import get_logger
from mdserver.settings import Settings

from .deps import get_bus, get_settings

logger = get_logger("mdserver.api.events")

router = APIRouter(tags=["Events"])

SSE_HEADERS = {
    "Cache-Control": "no-cache, no-store, must-revalidate",
    "Connection": "keep-alive",
    "Access-Control-Allow-Origin": "*",
    "X-Accel-Buffering": "no",
    "X-Content-Type-Options": "nosniff",
}


def format_event(message: str) -> str:
    return f"data: {message}\n\n"


async def event_stream(
    bus: NotificationBus,
    subscription: Subscription,
    is_disconnected: Callable[[], Awaitable[bool]],
    poll_interval: float = 0.5,
    keepalive: float = 15.0,
) -> AsyncIterator[str]:
    """Поток событий одного клиента. Подписка снимается при любом выходе."""
    try:
        yield format_event(CONNECTED_MESSAGE)
        idle = 0.0
        while not subscription.closed:
            if await is_disconnected():
                logger.debug(f"SSE client {subscription.id} disconnected")
                break

            message = subscription.get_nowait()
            if message is not None:
                idle = 0.0
                yield format_event(message)
                continue

            await asyncio.sleep(poll_interval)
            idle += poll_interval
            if idle >= keepalive:
                idle = 0.0
                yield ": keepalive\n\n"
    finally:
        bus.unsubscribe(subscription)


@router.get("/events")
async def events(
    request: Request,
    bus: NotificationBus = Depends(get_bus),
    settings: Settings = Depends(get_settings),
):
    subscription = bus.subscribe()
    logger.debug(f"SSE client {subscription.id} connected ({bus.subscriber_count} total)")
    stream = event_stream(
        bus,
        subscription,
        request.is_disconnected,
        poll_interval=settings.SSE_POLL_INTERVAL_SECONDS,
        keepalive=settings.SSE_KEEPALIVE_SECONDS,
    )
    return StreamingResponse(stream, media_type="text/event-stream", headers=SSE_HEADERS)
