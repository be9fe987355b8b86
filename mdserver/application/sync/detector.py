"""
Детектор изменений: два последовательных снимка -> EditScript.

Правило приоритета: если папка коллекции удалена целиком, её файлы не
попадают в removed_files: коллекция удаляется одним delete_many, без
отдельных удалений, которые гонялись бы с очисткой коллекции.
"""
import os
from typing import AbstractSet, Dict, Mapping, Optional

from mdserver.domain.sync import EditScript, TreeSnapshot


def owning_directory(path: str, root: str) -> Optional[str]:
    """Папка первого уровня, которой принадлежит файл (None для файлов в корне)."""
    relative = os.path.relpath(path, root)
    parts = relative.split(os.sep)
    return parts[0] if len(parts) > 1 else None


def detect_changes(
    previous_files: Mapping[str, str],
    previous_collections: AbstractSet[str],
    snapshot: TreeSnapshot,
) -> EditScript:
    added_or_modified = {
        path: digest
        for path, digest in snapshot.files.items()
        if previous_files.get(path) != digest
    }

    removed_collections = sorted(previous_collections - snapshot.collections)
    removed_set = set(removed_collections)

    removed_files = sorted(
        path
        for path in previous_files
        if path not in snapshot.files
        and path not in snapshot.skipped
        and owning_directory(path, snapshot.root) not in removed_set
    )

    return EditScript(
        added_or_modified=dict(sorted(added_or_modified.items())),
        removed_files=tuple(removed_files),
        removed_collections=tuple(removed_collections),
    )


def next_tracked_files(previous_files: Mapping[str, str], snapshot: TreeSnapshot) -> Dict[str, str]:
    """Новое отслеживаемое состояние: текущий снимок + прошлые отпечатки нечитаемых файлов."""
    tracked = dict(snapshot.files)
    for path in snapshot.skipped:
        if path in previous_files:
            tracked[path] = previous_files[path]
    return tracked
