from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, FrozenSet, Optional, Tuple


class SyncState(str, Enum):
    """Состояния планировщика синхронизации."""

    IDLE = "idle"
    SCANNING = "scanning"
    DIFFING = "diffing"
    RECONCILING = "reconciling"
    NOTIFYING = "notifying"


class FailedEntryPolicy(str, Enum):
    """Что делать с записями, которые не удалось применить к store."""

    FORGET = "forget"  # состояние перезаписывается, запись повторится один раз
    RETRY = "retry"  # запись остаётся "грязной" до успеха или лимита попыток


@dataclass(frozen=True, slots=True)
class PostLocation:
    """Куда файл попадает в store."""

    collection: str
    url: str
    is_index: bool
    base_dir: str  # имя папки коллекции без префикса, "" для корня
    file_stem: str


@dataclass(frozen=True)
class TreeSnapshot:
    """Результат одного прохода по дереву файлов."""

    root: str
    files: Dict[str, str] = field(default_factory=dict)  # абсолютный путь -> fingerprint
    collections: FrozenSet[str] = frozenset()
    skipped: FrozenSet[str] = frozenset()  # существуют, но не прочитались


@dataclass(frozen=True)
class EditScript:
    """Разница между двумя снимками."""

    added_or_modified: Dict[str, str] = field(default_factory=dict)
    removed_files: Tuple[str, ...] = ()
    removed_collections: Tuple[str, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not (self.added_or_modified or self.removed_files or self.removed_collections)

    def __len__(self) -> int:
        return len(self.added_or_modified) + len(self.removed_files) + len(self.removed_collections)


@dataclass
class ReconcileReport:
    upserted: int = 0
    deleted: int = 0
    collections_deleted: int = 0
    transform_failures: int = 0
    failed_paths: set = field(default_factory=set)
    failed_collections: set = field(default_factory=set)

    @property
    def touched(self) -> int:
        return self.upserted + self.deleted + self.collections_deleted

    @property
    def failed(self) -> int:
        return len(self.failed_paths) + len(self.failed_collections)

    def as_dict(self) -> Dict[str, int]:
        return {
            "upserted": self.upserted,
            "deleted": self.deleted,
            "collections_deleted": self.collections_deleted,
            "transform_failures": self.transform_failures,
            "failed": self.failed,
        }


@dataclass
class CycleResult:
    """Итог одного цикла scan -> diff -> reconcile -> notify."""

    cycle: int
    success: bool
    changes: int = 0
    report: Optional[ReconcileReport] = None
    error: Optional[str] = None
    duration: float = 0.0

    @property
    def touched(self) -> int:
        return self.report.touched if self.report else 0

    def as_dict(self) -> Dict[str, Any]:
        return {
            "cycle": self.cycle,
            "success": self.success,
            "changes": self.changes,
            "touched": self.touched,
            "report": self.report.as_dict() if self.report else None,
            "error": self.error,
            "duration": round(self.duration, 3),
        }
