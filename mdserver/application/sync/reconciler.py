"""
Применение EditScript к хранилищу документов.

=== ПОРЯДОК ===
1. removed_collections: delete_many по коллекции
2. removed_files: delete_one по (collection, url); "не найдено" = успех
3. added_or_modified: чтение, сборка Post, transform, upsert

Удаление коллекций идёт первым, чтобы переименование папки
(удаление + создание) не оставило старые документы поверх новых.
Ошибка одного документа логируется и не прерывает остальные.

=== ОБЩИЕ КЛЮЧИ ===
Разные файлы могут давать один ключ (collection, url): A/index.md и
A/sub/README.md, A/sub/x.md и A/sub-x.md, корневые файлы и папка root.
Если после удаления ключ ещё занят живым файлом, delete_one не
выполняется, а выжившие файлы удалённой коллекции и общего ключа
загружаются заново в том же цикле.
"""
from typing import Callable, Dict, Iterable, Optional, Tuple

from mdserver.domain.posts import Post, PostRepository
from mdserver.domain.sync import EditScript, PostLocation, ReconcileReport, StoreError, TransformError
from mdserver.logging_config import get_logger

from .paths import PathMapper, relative_to_root

logger = get_logger("mdserver.sync.reconciler")

Transformer = Callable[[str, str], str]


def noop_transform(body: str, base_dir: str) -> str:
    return body


class Reconciler:
    """Применяет разницу снимков к PostRepository"""

    def __init__(
        self,
        repository: PostRepository,
        mapper: PathMapper,
        transformer: Optional[Transformer] = None,
    ):
        self.repository = repository
        self.mapper = mapper
        self.transformer = transformer or noop_transform

    def load_post(self, path: str, root: str, report: Optional[ReconcileReport] = None) -> Post:
        """Читает файл и собирает документ с преобразованным телом

        Raises:
            OSError: файл не читается
        """
        relative_path = relative_to_root(path, root)
        with open(path, "r", encoding="utf-8", errors="replace") as f:
            text = f.read()

        post = self.mapper.build_post(relative_path, text)
        base_dir = self.mapper.locate(relative_path).base_dir

        try:
            post.body = self.transformer(post.body, base_dir)
        except TransformError as e:
            logger.warning(f"⚠️ Transform failed for {relative_path}, storing raw body: {e}")
            if report is not None:
                report.transform_failures += 1

        return post

    def _live_locations(
        self, script: EditScript, root: str, live_paths: Iterable[str]
    ) -> Dict[str, PostLocation]:
        removed = set(script.removed_files)
        return {
            path: self.mapper.locate(relative_to_root(path, root))
            for path in sorted(live_paths)
            if path not in removed
        }

    def apply(self, script: EditScript, root: str, live_paths: Iterable[str] = ()) -> ReconcileReport:
        """
        Args:
            script: Разница снимков
            root: Корень синхронизации
            live_paths: Все файлы текущего снимка (для проверки общих ключей)
        """
        report = ReconcileReport()
        live = self._live_locations(script, root, live_paths)
        reload_paths: Dict[str, None] = {}

        for name in script.removed_collections:
            collection = self.mapper.collection_name(name)
            try:
                count = self.repository.delete_many(collection)
                report.collections_deleted += 1
                logger.info(f"🗑️ Deleted collection '{collection}' ({count} posts)")
            except StoreError as e:
                report.failed_collections.add(name)
                logger.error(f"❌ Failed to delete collection '{collection}': {e}")
                continue

            for path, location in live.items():
                if location.collection == collection:
                    reload_paths[path] = None

        # при общем ключе побеждает последний по пути файл, как при импорте с нуля
        keys: Dict[Tuple[str, str], str] = {}
        for path, location in live.items():
            keys[(location.collection, location.url)] = path

        for path in script.removed_files:
            location = self.mapper.locate(relative_to_root(path, root))
            survivor = keys.get((location.collection, location.url))
            if survivor is not None:
                logger.info(
                    f"♻️ {location.collection}/{location.url} still provided by {survivor}, reloading"
                )
                reload_paths[survivor] = None
                continue

            try:
                found = self.repository.delete_one(location.collection, location.url)
            except StoreError as e:
                report.failed_paths.add(path)
                logger.error(f"❌ Failed to delete post {location.collection}/{location.url}: {e}")
                continue

            if found:
                report.deleted += 1
                logger.info(f"🗑️ Deleted post {location.collection}/{location.url}")
            else:
                logger.debug(f"Post {location.collection}/{location.url} already deleted")

        upserts = list(script.added_or_modified)
        upserts.extend(path for path in reload_paths if path not in script.added_or_modified)

        for path in upserts:
            try:
                post = self.load_post(path, root, report)
            except OSError as e:
                report.failed_paths.add(path)
                logger.error(f"❌ Cannot read {path}: {e}")
                continue

            try:
                self.repository.upsert(post)
            except StoreError as e:
                report.failed_paths.add(path)
                logger.error(f"❌ Failed to upsert '{post.title}' ({path}): {e}")
                continue

            report.upserted += 1
            logger.info(
                f"✓ Synced '{post.title}' -> collection '{post.collection}' "
                f"(url={post.url}, index={post.is_index})"
            )

        return report
