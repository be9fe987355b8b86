"""Доменный слой: сущности, контракты хранилища и ошибки синхронизации."""
