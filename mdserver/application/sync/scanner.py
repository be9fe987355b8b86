"""
Сканер дерева файлов.

Один проход по SYNC_DIR: отпечатки подходящих файлов и множество папок
первого уровня (коллекций). Снимок собирается целиком и только потом
возвращается, детектор изменений никогда не видит частичный результат.
"""
import os
from typing import Dict, Optional, Set

from mdserver.domain.sync import ScanError, TreeSnapshot
from mdserver.logging_config import get_logger

from .file_filter import FileFilter
from .fingerprint import fingerprint_file

logger = get_logger("mdserver.sync.scanner")


class TreeScanner:
    def __init__(self, root: str, file_filter: Optional[FileFilter] = None):
        self.root = os.path.abspath(root)
        self.file_filter = file_filter or FileFilter()

    def _check_root(self) -> None:
        if not os.path.exists(self.root):
            raise ScanError(f"directory does not exist: {self.root}")
        if not os.path.isdir(self.root):
            raise ScanError(f"not a directory: {self.root}")
        try:
            os.listdir(self.root)
        except OSError as e:
            raise ScanError(f"cannot read directory {self.root}: {e}") from e

    def _on_walk_error(self, error: OSError) -> None:
        logger.warning(f"⚠️ Skipping unreadable directory {error.filename}: {error.strerror}")

    def scan(self) -> TreeSnapshot:
        """Сканирует корень и возвращает снимок

        Raises:
            ScanError: корень не существует или не читается
        """
        self._check_root()

        files: Dict[str, str] = {}
        collections: Set[str] = set()
        skipped: Set[str] = set()

        for current, dirs, filenames in os.walk(self.root, onerror=self._on_walk_error):
            dirs[:] = sorted(d for d in dirs if self.file_filter.walks_into(d))

            if current == self.root:
                collections.update(dirs)

            for filename in filenames:
                if not self.file_filter.is_document_name(filename):
                    continue

                path = os.path.join(current, filename)
                try:
                    if not self.file_filter.fits_size(os.stat(path).st_size):
                        logger.debug(f"Skipping {path}: larger than {self.file_filter.max_size} bytes")
                        continue
                    files[path] = fingerprint_file(path)
                except FileNotFoundError:
                    # Удалён между листингом и чтением
                    continue
                except OSError as e:
                    logger.warning(f"⚠️ Cannot read {path}: {e}")
                    skipped.add(path)

        logger.debug(f"Scanned {self.root}: {len(files)} files, {len(collections)} collections")

        return TreeSnapshot(
            root=self.root,
            files=files,
            collections=frozenset(collections),
            skipped=frozenset(skipped),
        )
