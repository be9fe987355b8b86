"""Инфраструктура: хранилища документов и внешние сервисы."""
