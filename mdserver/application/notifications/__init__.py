from .bus import NotificationBus, Subscription, RELOAD_MESSAGE, CONNECTED_MESSAGE

__all__ = ["NotificationBus", "Subscription", "RELOAD_MESSAGE", "CONNECTED_MESSAGE"]
