"""
Pytest fixtures для тестирования синхронизации и API
"""
import logging
from typing import Callable, Dict, Optional

import pytest

from mdserver import logging_config
from mdserver.application.notifications import NotificationBus
from mdserver.application.sync import PathMapper, Reconciler, SyncScheduler, TreeScanner
from mdserver.domain.posts import Post, PostRepository
from mdserver.domain.sync import FailedEntryPolicy, StoreError
from mdserver.infrastructure.database import InMemoryPostRepository


@pytest.fixture(scope="session", autouse=True)
def setup_test_logging():
    """Настройка логирования для тестов - в тестах показываем только ошибки"""
    root_logger = logging.getLogger()
    root_logger.handlers.clear()

    handler = logging.StreamHandler()
    handler.setLevel(logging.ERROR)
    handler.setFormatter(logging.Formatter('%(asctime)s | %(levelname)-8s | %(name)s - %(message)s'))
    root_logger.addHandler(handler)
    root_logger.setLevel(logging.ERROR)

    # setup_logging() из приложения не перенастраивает логирование поверх тестового
    previous = logging_config._logging_configured
    logging_config._logging_configured = True

    yield

    logging_config._logging_configured = previous


class CountingRepository(PostRepository):
    """Обёртка над хранилищем: считает вызовы и умеет падать по запросу"""

    def __init__(self, inner: Optional[PostRepository] = None):
        self.inner = inner or InMemoryPostRepository()
        self.calls: Dict[str, list] = {}
        # method -> predicate(args) -> True значит бросить StoreError
        self.failures: Dict[str, Callable[..., bool]] = {}

    def _call(self, method: str, *args):
        self.calls.setdefault(method, []).append(args)
        predicate = self.failures.get(method)
        if predicate is not None and predicate(*args):
            raise StoreError(f"{method} failed")
        return getattr(self.inner, method)(*args)

    def count(self, method: str) -> int:
        return len(self.calls.get(method, []))

    @property
    def total_calls(self) -> int:
        return sum(len(v) for v in self.calls.values())

    def reset_calls(self) -> None:
        self.calls.clear()

    def upsert(self, post: Post) -> None:
        return self._call("upsert", post)

    def delete_one(self, collection: str, url: str) -> bool:
        return self._call("delete_one", collection, url)

    def delete_many(self, collection: str) -> int:
        return self._call("delete_many", collection)

    def rename_collection(self, old_name: str, new_name: str) -> int:
        return self._call("rename_collection", old_name, new_name)

    def list_collections(self):
        return self._call("list_collections")

    def list_by_collection(self, collection: str):
        return self._call("list_by_collection", collection)

    def find_index(self, collection: str):
        return self._call("find_index", collection)

    def find_by_url(self, url: str, collection: Optional[str] = None):
        return self._call("find_by_url", url, collection)


@pytest.fixture
def content_dir(tmp_path):
    """Пустой корень синхронизации"""
    root = tmp_path / "content"
    root.mkdir()
    return root


@pytest.fixture
def write_file(content_dir):
    """Создать файл относительно корня синхронизации"""
    def _write(relative_path: str, text: str) -> str:
        path = content_dir / relative_path
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
        return str(path)
    return _write


@pytest.fixture
def repository() -> CountingRepository:
    return CountingRepository()


@pytest.fixture
def make_scheduler(content_dir, repository):
    """Фабрика планировщика поверх tmp-папки и in-memory хранилища"""
    created = []

    def _make(
        collection_prefix: str = "",
        transformer=None,
        bus: Optional[NotificationBus] = None,
        **kwargs,
    ) -> SyncScheduler:
        mapper = PathMapper(collection_prefix=collection_prefix)
        scheduler = SyncScheduler(
            TreeScanner(str(content_dir)),
            Reconciler(repository, mapper, transformer),
            bus or NotificationBus(),
            mapper,
            repository=repository,
            interval=kwargs.pop("interval", 60.0),
            failed_entry_policy=kwargs.pop("failed_entry_policy", FailedEntryPolicy.FORGET),
            **kwargs,
        )
        created.append(scheduler)
        return scheduler

    yield _make

    for scheduler in created:
        if scheduler.is_running:
            scheduler.stop(timeout=5)

