"""Прикладной слой: движок синхронизации и шина уведомлений."""
