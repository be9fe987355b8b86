"""
Шина уведомлений для подключённых зрителей (live-reload).

Каждый подписчик получает ограниченную очередь. Broadcast никогда не
блокируется: если очередь подписчика заполнена, сообщение для него
отбрасывается, остальные подписчики его получают.

Регистрация, удаление и рассылка взаимоисключающие (общий lock), поэтому
подписчик, добавленный во время рассылки, либо получает её целиком, либо нет.
"""
import queue
import threading
import uuid
from typing import Dict, Optional

from mdserver.logging_config import get_logger

logger = get_logger("mdserver.notifications")

RELOAD_MESSAGE = "reload"
CONNECTED_MESSAGE = "connected"


class Subscription:
    """Ограниченный буфер сообщений одного подписчика"""

    def __init__(self, buffer_size: int):
        self.id = uuid.uuid4().hex
        self._queue: "queue.Queue[str]" = queue.Queue(maxsize=buffer_size)
        self._closed = threading.Event()

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def offer(self, message: str) -> bool:
        """Положить сообщение без ожидания. False если буфер полон или подписка закрыта."""
        if self.closed:
            return False
        try:
            self._queue.put_nowait(message)
        except queue.Full:
            return False
        return True

    def get_nowait(self) -> Optional[str]:
        try:
            return self._queue.get_nowait()
        except queue.Empty:
            return None

    def get(self, timeout: Optional[float] = None) -> Optional[str]:
        """Ждать сообщение не дольше timeout секунд"""
        if self.closed:
            return self.get_nowait()
        try:
            return self._queue.get(timeout=timeout)
        except queue.Empty:
            return None

    def close(self) -> None:
        self._closed.set()


class NotificationBus:
    """Реестр подписчиков с неблокирующей рассылкой"""

    def __init__(self, buffer_size: int = 10):
        if buffer_size < 1:
            raise ValueError("buffer_size must be >= 1")
        self.buffer_size = buffer_size
        self._lock = threading.Lock()
        self._subscribers: Dict[str, Subscription] = {}

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def subscribe(self) -> Subscription:
        subscription = Subscription(self.buffer_size)
        with self._lock:
            self._subscribers[subscription.id] = subscription
        logger.debug(f"Subscriber {subscription.id} connected")
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        """Удалить и закрыть подписку. Повторный вызов ничего не делает."""
        with self._lock:
            removed = self._subscribers.pop(subscription.id, None)
        subscription.close()
        if removed is not None:
            logger.debug(f"Subscriber {subscription.id} disconnected")

    def broadcast(self, message: str) -> int:
        """Разослать сообщение всем подписчикам. Возвращает число доставленных."""
        delivered = 0
        dropped = 0
        with self._lock:
            for subscription in self._subscribers.values():
                if subscription.offer(message):
                    delivered += 1
                else:
                    dropped += 1

        if dropped:
            logger.debug(f"Broadcast '{message}': {dropped} subscriber(s) busy, message dropped")
        logger.info(f"📣 Broadcast '{message}' to {delivered} client(s)")
        return delivered

    def close_all(self) -> None:
        with self._lock:
            subscriptions = list(self._subscribers.values())
            self._subscribers.clear()
        for subscription in subscriptions:
            subscription.close()
