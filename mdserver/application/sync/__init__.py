"""
Движок синхронизации дерева markdown-файлов с хранилищем.

=== КОМПОНЕНТЫ ===
- PathMapper: путь файла -> коллекция, заголовок, url, признак индекса
- fingerprint: отпечаток содержимого (MD5)
- TreeScanner: один проход по SYNC_DIR
- detect_changes: разница двух снимков (EditScript)
- Reconciler: применение EditScript к хранилищу
- SyncScheduler: цикл по таймеру и по запросу

=== ИСПОЛЬЗОВАНИЕ ===

    mapper = PathMapper(collection_prefix="content/")
    scanner = TreeScanner("./content", FileFilter(allowed_extensions=[".md"]))
    reconciler = Reconciler(repository, mapper, transformer)
    scheduler = SyncScheduler(scanner, reconciler, bus, mapper, repository)
    scheduler.start()
    result = scheduler.run_now(timeout=30)
"""

from .paths import PathMapper, slugify, parse_content, relative_to_root
from .fingerprint import fingerprint, fingerprint_file
from .file_filter import FileFilter
from .scanner import TreeScanner
from .detector import detect_changes, next_tracked_files
from .reconciler import Reconciler, noop_transform
from .scheduler import SyncScheduler

__all__ = [
    "PathMapper",
    "slugify",
    "parse_content",
    "relative_to_root",
    "fingerprint",
    "fingerprint_file",
    "FileFilter",
    "TreeScanner",
    "detect_changes",
    "next_tracked_files",
    "Reconciler",
    "noop_transform",
    "SyncScheduler",
]
