"""
Рендеринг документов в HTML.

Тело документа -> PlantUML -> перекрёстные ссылки -> markdown -> страница
с подпиской на /api/events (live-reload).
"""
import html
from typing import Callable, Iterable, Optional
from urllib.parse import urlencode

import markdown

from mdserver.domain.posts import Post

from .sync.paths import PathMapper

MARKDOWN_EXTENSIONS = ["fenced_code", "tables"]

LIVE_RELOAD_SCRIPT = """<script>
(function () {
  var source = new EventSource("/api/events");
  source.onmessage = function (event) {
    if (event.data === "reload") { window.location.reload(); }
  };
})();
</script>"""

PAGE_TEMPLATE = """<!DOCTYPE html>
<html>
<head>
<meta charset="utf-8">
<title>{title}</title>
</head>
<body>
<article class="content">
{content}
</article>
{script}
</body>
</html>
"""


def _collection_query(collection: Optional[str]) -> str:
    if not collection:
        return ""
    return "?" + urlencode({"collection": collection}, safe="/")


def post_href(url: str, collection: Optional[str] = None) -> str:
    """Ссылка на страницу документа; url уникален только внутри коллекции."""
    return f"/post/{url}{_collection_query(collection)}"


def process_cross_references(body: str, collection: Optional[str] = None) -> str:
    """[text](./file.md) и [text](/post/file.md) -> [text](/post/file?collection=...)"""
    suffix = _collection_query(collection)
    lines = body.split("\n")
    for i, line in enumerate(lines):
        line = line.replace("](./", "](/post/")
        line = line.replace("](.md)", "]")
        if "](/post/" in line:
            line = line.replace(".md)", suffix + ")")
        lines[i] = line
    return "\n".join(lines)


def collection_listing(collection: str, posts: Iterable[Post]) -> str:
    """Markdown-список документов коллекции без индекса"""
    out = f"# {collection}\n---\n"
    for post in posts:
        out += f"- [{post.title}]({post_href(post.url, collection)})\n"
    return out


def base_dir_for(collection: str, mapper: PathMapper) -> str:
    """Папка в SYNC_DIR, относительно которой ищутся .puml (пусто для загруженных)"""
    return mapper.directory_of(collection) or ""


def render_markdown(text: str) -> str:
    return markdown.markdown(text, extensions=MARKDOWN_EXTENSIONS)


def render_page(title: str, content_html: str, live_reload: bool = True) -> str:
    return PAGE_TEMPLATE.format(
        title=html.escape(title),
        content=content_html,
        script=LIVE_RELOAD_SCRIPT if live_reload else "",
    )


def render_document(
    title: str,
    body: str,
    base_dir: str = "",
    transformer: Optional[Callable[[str, str], str]] = None,
    collection: Optional[str] = None,
) -> str:
    """Полный конвейер для одной страницы"""
    if transformer is not None:
        body = transformer(body, base_dir)
    body = process_cross_references(body, collection)
    return render_page(title, render_markdown(body))


NOT_FOUND_MARKDOWN = "# Error 404\nThis page not found"
