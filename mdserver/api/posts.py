"""
HTML-страницы документов и коллекций.

url уникален только внутри коллекции: /post/{url}?collection=... выбирает
документ точно, без параметра берётся первый по имени коллекции.
"""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import HTMLResponse

from mdserver.application.rendering import (
    NOT_FOUND_MARKDOWN,
    base_dir_for,
    collection_listing,
    render_document,
)
from mdserver.application.sync import PathMapper
from mdserver.domain.posts import PostRepository
from mdserver.domain.sync import StoreError, TransformError
from mdserver.logging_config import get_logger

from .deps import get_mapper, get_repository, get_transformer

logger = get_logger("mdserver.api.posts")

router = APIRouter(tags=["Pages"])


def _render(title: str, body: str, base_dir: str, transformer, collection: str) -> str:
    try:
        return render_document(title, body, base_dir, transformer, collection)
    except TransformError as e:
        logger.warning(f"⚠️ Transform failed while rendering '{title}', showing raw body: {e}")
        return render_document(title, body, collection=collection)


def _not_found() -> HTMLResponse:
    return HTMLResponse(render_document("Not found", NOT_FOUND_MARKDOWN), status_code=404)


@router.get("/", response_class=HTMLResponse)
def index_page(repository: PostRepository = Depends(get_repository)):
    """Список коллекций"""
    try:
        names = repository.list_collections()
    except StoreError as e:
        logger.error(f"❌ Failed to list collections: {e}")
        raise HTTPException(status_code=500, detail="Internal Server Error")

    body = "# Collections\n---\n" + "".join(f"- [{name}](/content/{name})\n" for name in names)
    return render_document("Collections", body)


@router.get("/post/{url}", response_class=HTMLResponse)
def post_page(
    url: str,
    collection: Optional[str] = Query(None, description="Коллекция документа"),
    repository: PostRepository = Depends(get_repository),
    mapper: PathMapper = Depends(get_mapper),
    transformer=Depends(get_transformer),
):
    try:
        post = repository.find_by_url(url, collection)
    except StoreError as e:
        logger.error(f"❌ Failed to load post '{url}': {e}")
        raise HTTPException(status_code=500, detail="Internal Server Error")

    if post is None:
        return _not_found()

    return _render(post.title, post.body, base_dir_for(post.collection, mapper), transformer, post.collection)


@router.get("/content/{collection:path}", response_class=HTMLResponse)
def collection_page(
    collection: str,
    repository: PostRepository = Depends(get_repository),
    mapper: PathMapper = Depends(get_mapper),
    transformer=Depends(get_transformer),
):
    """Индексный документ коллекции или сгенерированный список документов"""
    try:
        index_post = repository.find_index(collection)
        if index_post is not None:
            title, body = index_post.title, index_post.body
        else:
            title, body = collection, collection_listing(collection, repository.list_by_collection(collection))
    except StoreError as e:
        logger.error(f"❌ Failed to load collection '{collection}': {e}")
        raise HTTPException(status_code=500, detail="Internal Server Error")

    return _render(title, body, base_dir_for(collection, mapper), transformer, collection)
