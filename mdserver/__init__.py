"""Markdown Server: публикация дерева markdown-файлов с живой синхронизацией."""

__version__ = "2.0.0"
