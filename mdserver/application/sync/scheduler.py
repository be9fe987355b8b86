"""
Планировщик синхронизации.

=== СОСТОЯНИЯ ===
    Idle -> Scanning -> Diffing -> Reconciling -> Notifying -> Idle

Цикл запускается по таймеру (interval) в отдельном потоке и по запросу
(trigger / run_now). Одновременно выполняется не больше одного цикла;
запросы, пришедшие во время цикла, схлопываются в один следующий цикл.

Отслеживаемое состояние (отпечатки файлов и папки первого уровня)
принадлежит только планировщику и не сохраняется между перезапусками:
после рестарта всё переотпечатывается, reconcile идемпотентен.

=== ПОЛИТИКА ОШИБОК ===
- forget: состояние заменяется новым снимком всегда, неудачная запись
  повторится только если файл изменится снова
- retry: неудачная запись сохраняет прошлое состояние и повторяется
  в следующих циклах, не больше retry_max_attempts раз
"""
import threading
import time
from typing import Dict, FrozenSet, Optional, Set

from mdserver.application.notifications import NotificationBus, RELOAD_MESSAGE
from mdserver.domain.posts import PostRepository
from mdserver.domain.sync import (
    CycleResult,
    FailedEntryPolicy,
    ReconcileReport,
    ScanError,
    StoreError,
    SyncState,
    TreeSnapshot,
)
from mdserver.logging_config import get_logger

from .detector import detect_changes, next_tracked_files
from .paths import PathMapper, relative_to_root
from .reconciler import Reconciler
from .scanner import TreeScanner

logger = get_logger("mdserver.sync.scheduler")


class SyncScheduler:
    """Периодический цикл scan -> diff -> reconcile -> notify"""

    def __init__(
        self,
        scanner: TreeScanner,
        reconciler: Reconciler,
        bus: NotificationBus,
        mapper: PathMapper,
        repository: Optional[PostRepository] = None,
        interval: float = 3.0,
        failed_entry_policy: FailedEntryPolicy = FailedEntryPolicy.FORGET,
        retry_max_attempts: int = 5,
        prune_orphans_on_start: bool = False,
    ):
        """
        Args:
            scanner: Сканер дерева файлов
            reconciler: Применяет разницу к хранилищу
            bus: Шина уведомлений для live-reload
            mapper: Маппинг путей в коллекции (нужен для инвалидации)
            repository: Хранилище, используется только для prune_orphans_on_start
            interval: Период сканирования в секундах
            failed_entry_policy: forget | retry
            retry_max_attempts: Лимит повторов для политики retry
            prune_orphans_on_start: В первом цикле удалить коллекции, папок которых больше нет
        """
        self.scanner = scanner
        self.reconciler = reconciler
        self.bus = bus
        self.mapper = mapper
        self.repository = repository
        self.interval = interval
        self.failed_entry_policy = FailedEntryPolicy(failed_entry_policy)
        self.retry_max_attempts = retry_max_attempts
        self.prune_orphans_on_start = prune_orphans_on_start

        # Состояние, которым владеет только выполняющийся цикл
        self._tracked_files: Dict[str, str] = {}
        self._tracked_collections: FrozenSet[str] = frozenset()
        self._attempts: Dict[str, int] = {}
        self._seeded = False
        self._state = SyncState.IDLE

        # Координация циклов
        self._cond = threading.Condition()
        self._running = False
        self._pending = False
        self._started = 0
        self._last_result: Optional[CycleResult] = None
        self._invalidations: Set[str] = set()

        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    # -------------------------------------------------------------------------
    # Публичный API
    # -------------------------------------------------------------------------

    @property
    def state(self) -> SyncState:
        return self._state

    @property
    def last_result(self) -> Optional[CycleResult]:
        with self._cond:
            return self._last_result

    @property
    def tracked_files(self) -> Dict[str, str]:
        return dict(self._tracked_files)

    @property
    def tracked_collections(self) -> FrozenSet[str]:
        return self._tracked_collections

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Запустить фоновый поток. Первый цикл выполняется сразу."""
        if self.is_running:
            return
        self._stop.clear()
        with self._cond:
            self._pending = True
        self._thread = threading.Thread(target=self._loop, name="sync-scheduler", daemon=True)
        self._thread.start()
        logger.info(f"File watcher started for: {self.scanner.root} (every {self.interval}s)")

    def stop(self, timeout: Optional[float] = None) -> None:
        """Остановить поток. Текущий цикл доводится до конца."""
        self._stop.set()
        with self._cond:
            self._cond.notify_all()
        if self._thread is not None:
            self._thread.join(timeout)
            if self._thread.is_alive():
                logger.warning("⚠️ Sync cycle still running after stop timeout")
            else:
                self._thread = None
        logger.info("File watcher stopped")

    def trigger(self) -> int:
        """Запросить внеочередной цикл. Возвращает номер цикла, который его выполнит."""
        with self._cond:
            self._pending = True
            self._cond.notify_all()
            return self._started + 1

    def run_now(self, timeout: Optional[float] = None) -> Optional[CycleResult]:
        """Запросить цикл и дождаться результата цикла, начавшегося после запроса.

        Без фонового потока цикл выполняется в вызывающем потоке.
        Возвращает None, если результат не получен за timeout.
        """
        ticket = self.trigger()
        if self.is_running:
            with self._cond:
                if not self._cond.wait_for(lambda: self._is_done(ticket), timeout):
                    return None
                return self._last_result
        return self._execute(ticket)

    def run_cycle(self) -> CycleResult:
        """Выполнить один цикл синхронно"""
        return self._execute()

    def forget_collection(self, collection: str) -> None:
        """Забыть файлы коллекции, чтобы следующий цикл импортировал их заново."""
        with self._cond:
            self._invalidations.add(collection)

    # -------------------------------------------------------------------------
    # Выполнение цикла
    # -------------------------------------------------------------------------

    def _is_done(self, ticket: int) -> bool:
        return self._last_result is not None and self._last_result.cycle >= ticket

    def _loop(self) -> None:
        while not self._stop.is_set():
            with self._cond:
                if not self._pending and not self._stop.is_set():
                    self._cond.wait(timeout=self.interval)
            if self._stop.is_set():
                break
            self._execute()

    def _execute(self, ticket: Optional[int] = None) -> Optional[CycleResult]:
        with self._cond:
            while self._running:
                self._cond.wait()
            if ticket is not None and self._is_done(ticket):
                return self._last_result
            self._running = True
            self._pending = False
            self._started += 1
            number = self._started
            invalidations = set(self._invalidations)
            self._invalidations.clear()

        result: Optional[CycleResult] = None
        started_at = time.time()
        try:
            result = self._run_cycle(number, invalidations)
        except Exception as e:
            logger.error(f"❌ Error during sync cycle #{number}: {e}", exc_info=True)
            result = CycleResult(cycle=number, success=False, error=str(e),
                                 duration=time.time() - started_at)
        finally:
            self._state = SyncState.IDLE
            with self._cond:
                self._running = False
                if result is not None:
                    self._last_result = result
                self._cond.notify_all()
        return result

    def _run_cycle(self, number: int, invalidations: Set[str]) -> CycleResult:
        started_at = time.time()

        self._state = SyncState.SCANNING
        try:
            snapshot = self.scanner.scan()
        except ScanError as e:
            logger.warning(f"⚠️ Scan skipped, retrying next tick: {e}")
            return CycleResult(cycle=number, success=False, error=str(e),
                               duration=time.time() - started_at)

        self._state = SyncState.DIFFING
        if invalidations:
            self._apply_invalidations(invalidations, snapshot.root)

        previous_collections = self._tracked_collections
        if not self._seeded:
            self._seeded = True
            if self.prune_orphans_on_start:
                previous_collections = previous_collections | self._stored_directories()

        script = detect_changes(self._tracked_files, previous_collections, snapshot)

        if script.is_empty:
            self._tracked_files = next_tracked_files(self._tracked_files, snapshot)
            self._tracked_collections = snapshot.collections
            duration = time.time() - started_at
            logger.debug(f"#{number} no changes ({len(snapshot.files)} files) in {duration:.2f}s")
            return CycleResult(cycle=number, success=True, duration=duration)

        logger.info(
            f"🔄 Changes detected: ~{len(script.added_or_modified)} "
            f"-{len(script.removed_files)} files, -{len(script.removed_collections)} collections"
        )

        self._state = SyncState.RECONCILING
        report = self.reconciler.apply(script, snapshot.root, snapshot.files)

        self._state = SyncState.NOTIFYING
        self.bus.broadcast(RELOAD_MESSAGE)

        self._update_tracked_state(snapshot, report)

        duration = time.time() - started_at
        logger.info(
            f"#{number} sync[files:{len(snapshot.files)}, "
            f"+~{report.upserted}, -{report.deleted}, "
            f"-dirs:{report.collections_deleted}, failed:{report.failed}] "
            f"in {duration:.2f}s"
        )
        return CycleResult(
            cycle=number,
            success=report.failed == 0,
            changes=len(script),
            report=report,
            error=f"{report.failed} entries failed" if report.failed else None,
            duration=duration,
        )

    # -------------------------------------------------------------------------
    # Отслеживаемое состояние
    # -------------------------------------------------------------------------

    def _update_tracked_state(self, snapshot: TreeSnapshot, report: ReconcileReport) -> None:
        previous_files = self._tracked_files
        tracked_files = next_tracked_files(previous_files, snapshot)
        tracked_collections = set(snapshot.collections)

        if self.failed_entry_policy is FailedEntryPolicy.RETRY:
            failed_keys = set()

            for path in report.failed_paths:
                if not self._register_attempt(path):
                    continue
                failed_keys.add(path)
                if path in previous_files:
                    tracked_files[path] = previous_files[path]
                else:
                    tracked_files.pop(path, None)

            for name in report.failed_collections:
                key = f"collection:{name}"
                if not self._register_attempt(key):
                    continue
                failed_keys.add(key)
                tracked_collections.add(name)

            self._attempts = {k: v for k, v in self._attempts.items() if k in failed_keys}

        self._tracked_files = tracked_files
        self._tracked_collections = frozenset(tracked_collections)

    def _register_attempt(self, key: str) -> bool:
        """Увеличить счётчик попыток. False если лимит исчерпан и запись забыта."""
        attempts = self._attempts.get(key, 0) + 1
        if attempts >= self.retry_max_attempts:
            logger.warning(f"⚠️ Giving up on {key} after {attempts} attempts")
            self._attempts.pop(key, None)
            return False
        self._attempts[key] = attempts
        return True

    def _apply_invalidations(self, collections: Set[str], root: str) -> None:
        forgotten = [
            path for path in self._tracked_files
            if self.mapper.locate(relative_to_root(path, root)).collection in collections
        ]
        for path in forgotten:
            del self._tracked_files[path]
        logger.info(f"♻️ Forgot {len(forgotten)} tracked files of {sorted(collections)}")

    def _stored_directories(self) -> FrozenSet[str]:
        """Папки, коллекции которых уже есть в хранилище (для удаления сирот после рестарта)."""
        if self.repository is None:
            return frozenset()
        try:
            names = self.repository.list_collections()
        except StoreError as e:
            logger.warning(f"⚠️ Cannot list stored collections, orphan pruning skipped: {e}")
            return frozenset()
        directories = {self.mapper.directory_of(name) for name in names}
        directories.discard(None)
        # content/root занята и корневыми файлами, и папкой root: reconcile
        # перезагрузит выжившие корневые файлы после delete_many
        if self.mapper.root_collection_name in names:
            directories.add(self.mapper.root_collection)
        return frozenset(directories)

