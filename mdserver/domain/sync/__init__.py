"""
Доменные объекты движка синхронизации.

=== ЦИКЛ ===
    TreeSnapshot (scan) -> EditScript (diff) -> ReconcileReport (apply) -> CycleResult

=== ОШИБКИ ===
- ScanError: корень не найден/не читается, цикл пропускается
- TransformError: тело сохраняется без преобразования
- StoreError: ошибка хранилища, запись попадает в failed_* отчёта
"""

from .errors import SyncError, ScanError, TransformError, StoreError
from .models import (
    SyncState,
    FailedEntryPolicy,
    PostLocation,
    TreeSnapshot,
    EditScript,
    ReconcileReport,
    CycleResult,
)

__all__ = [
    "SyncError",
    "ScanError",
    "TransformError",
    "StoreError",
    "SyncState",
    "FailedEntryPolicy",
    "PostLocation",
    "TreeSnapshot",
    "EditScript",
    "ReconcileReport",
    "CycleResult",
]
