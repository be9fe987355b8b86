"""
Загрузка markdown-файлов через API в коллекции uploaded/<name>.

Имя файла может содержать путь папки (выбор директории в браузере):
"Docs/guide/intro.md" -> коллекция "Docs", документ "intro".
"""
import posixpath
from typing import Optional

from mdserver.domain.posts import Post

from .sync.paths import index_url, is_index_filename, parse_content, slugify

MARKDOWN_EXTENSION = ".md"


def upload_basename(filename: str) -> str:
    return posixpath.basename((filename or "").replace("\\", "/"))


def folder_of_upload(filename: str) -> Optional[str]:
    """Папка первого уровня из пути загруженного файла, None если пути нет."""
    parts = [p for p in (filename or "").replace("\\", "/").split("/") if p]
    return parts[0] if len(parts) > 1 else None


def is_markdown_upload(filename: str) -> bool:
    return upload_basename(filename).lower().endswith(MARKDOWN_EXTENSION)


def post_from_upload(filename: str, text: str, collection: str) -> Post:
    """Документ из загруженного файла; index.md / README.md становятся индексом коллекции."""
    name = upload_basename(filename)
    stem = posixpath.splitext(name)[0]
    title, body = parse_content(text, name)

    is_index = is_index_filename(name)
    if is_index:
        url = index_url(collection)
    else:
        url = slugify(stem).replace("_", "-")

    return Post(title=title, body=body, url=url, collection=collection, is_index=is_index)
