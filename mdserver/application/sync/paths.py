"""
Маппинг пути файла в документ.

Чистые функции без I/O: одинаковые путь и содержимое всегда дают
одинаковый документ.

    A/index.md        -> collection="content/A", url="content-A-index", is_index=True
    A/notes.md        -> collection="content/A", url="notes"
    A/sub/My Note.md  -> collection="content/A", url="sub-my-note"
    top.md            -> collection="content/root", url="top"
"""
import os
import posixpath
import re
from typing import Optional, Tuple

from mdserver.domain.posts import Post
from mdserver.domain.sync import PostLocation

FRONTMATTER_DELIMITER = "---"
INDEX_STEMS = ("index", "readme")
SLUG_SEPARATOR = "-"

_REPEATED_SEPARATORS = re.compile(f"{re.escape(SLUG_SEPARATOR)}{{2,}}")


def slugify(value: str) -> str:
    """Нижний регистр, разделители пути и пробелы -> '-', повторы схлопываются."""
    slug = value.lower()
    for char in ("\\", "/", " "):
        slug = slug.replace(char, SLUG_SEPARATOR)
    return _REPEATED_SEPARATORS.sub(SLUG_SEPARATOR, slug)


def index_url(collection: str) -> str:
    return collection.replace("/", SLUG_SEPARATOR) + SLUG_SEPARATOR + "index"


def is_index_filename(filename: str) -> bool:
    stem = posixpath.splitext(filename)[0]
    return stem.lower() in INDEX_STEMS


def parse_content(text: str, filename: str) -> Tuple[str, str]:
    """Возвращает (title, body).

    Приоритет заголовка: title из front-matter, первый '# ' заголовок, имя файла.
    Блок front-matter из тела удаляется.
    """
    body = text
    title = ""

    if text.startswith(FRONTMATTER_DELIMITER):
        parts = text.split(FRONTMATTER_DELIMITER, 2)
        if len(parts) == 3:
            frontmatter = parts[1]
            body = parts[2].strip()
            for line in frontmatter.splitlines():
                line = line.strip()
                if line.startswith("title:"):
                    title = line[len("title:"):].strip().strip("\"'")
                    break

    if not title:
        for line in body.splitlines():
            line = line.strip()
            if line.startswith("# "):
                title = line[2:].strip()
                break

    if not title:
        title = posixpath.splitext(filename)[0]

    return title, body


class PathMapper:
    """Путь относительно корня синхронизации -> коллекция, url, признак индекса"""

    def __init__(self, collection_prefix: str = "content/", root_collection: str = "root"):
        self.collection_prefix = collection_prefix
        self.root_collection = root_collection

    def collection_name(self, directory: str) -> str:
        """Имя коллекции с префиксом для папки первого уровня."""
        return f"{self.collection_prefix}{directory}"

    @property
    def root_collection_name(self) -> str:
        return self.collection_name(self.root_collection)

    def directory_of(self, collection: str) -> Optional[str]:
        """Обратное отображение: коллекция -> папка первого уровня (или None)."""
        if not collection.startswith(self.collection_prefix):
            return None
        directory = collection[len(self.collection_prefix):]
        if not directory or "/" in directory or collection == self.root_collection_name:
            return None
        return directory

    def locate(self, relative_path: str) -> PostLocation:
        parts = [p for p in relative_path.replace("\\", "/").split("/") if p and p != "."]
        filename = parts[-1]
        stem = posixpath.splitext(filename)[0]

        if len(parts) > 1:
            base_dir = parts[0]
            inner = parts[1:]
            collection = self.collection_name(base_dir)
        else:
            base_dir = ""
            inner = parts
            collection = self.root_collection_name

        is_index = is_index_filename(filename)
        if is_index:
            url = index_url(collection)
        else:
            url = slugify("/".join(inner[:-1] + [stem]))

        return PostLocation(
            collection=collection,
            url=url,
            is_index=is_index,
            base_dir=base_dir,
            file_stem=stem,
        )

    def build_post(self, relative_path: str, text: str) -> Post:
        location = self.locate(relative_path)
        title, body = parse_content(text, posixpath.basename(relative_path.replace("\\", "/")))
        return Post(
            title=title,
            body=body,
            url=location.url,
            collection=location.collection,
            is_index=location.is_index,
        )


def relative_to_root(path: str, root: str) -> str:
    """Абсолютный путь файла -> POSIX-путь относительно корня синхронизации."""
    return os.path.relpath(path, root).replace(os.sep, "/")
