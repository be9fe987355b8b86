"""
Правила отбора файлов дерева синхронизации.

Документом становится файл с разрешённым расширением (по умолчанию .md),
имя которого не попало под шаблоны исключения и размер не больше max_size.
Скрытые папки и папки из excluded_dirs не обходятся и не считаются
коллекциями, их исчезновение не удаляет ничего в хранилище.
"""
import fnmatch
import os
from typing import Iterable, Optional

DEFAULT_EXTENSIONS = (".md",)
DEFAULT_MAX_SIZE = 10 * 1024 * 1024


class FileFilter:
    """Какие папки обходить и какие файлы отпечатывать"""

    def __init__(
        self,
        allowed_extensions: Iterable[str] = DEFAULT_EXTENSIONS,
        excluded_dirs: Optional[Iterable[str]] = None,
        excluded_patterns: Optional[Iterable[str]] = None,
        max_size: int = DEFAULT_MAX_SIZE,
    ):
        self.allowed_extensions = frozenset(ext.lower() for ext in allowed_extensions)
        self.excluded_dirs = frozenset(excluded_dirs or ())
        self.excluded_patterns = tuple(excluded_patterns or ())
        self.max_size = max_size

    @classmethod
    def from_settings(cls, settings) -> "FileFilter":
        return cls(
            allowed_extensions=settings.allowed_extensions,
            excluded_dirs=settings.excluded_dirs,
            excluded_patterns=settings.excluded_patterns,
            max_size=settings.FILE_MAX_SIZE,
        )

    def walks_into(self, dir_name: str) -> bool:
        return not dir_name.startswith(".") and dir_name not in self.excluded_dirs

    def is_document_name(self, filename: str) -> bool:
        """Проверка по имени, без stat: расширение и шаблоны исключения."""
        ext = os.path.splitext(filename)[1].lower()
        if self.allowed_extensions and ext not in self.allowed_extensions:
            return False
        return not any(fnmatch.fnmatch(filename, pattern) for pattern in self.excluded_patterns)

    def fits_size(self, size: int) -> bool:
        return size <= self.max_size
