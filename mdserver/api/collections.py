"""
Collections API - список коллекций и управление ими.

Коллекции с префиксом COLLECTION_PREFIX ("content/") принадлежат
синхронизации и пересоздаются из SYNC_DIR; коллекции с UPLOADED_PREFIX
создаются через API (в том числе загрузкой .md файлов multipart-формой).
"""
from typing import List, Optional, Tuple

from fastapi import APIRouter, BackgroundTasks, Depends, File, Form, HTTPException, UploadFile
from pydantic import BaseModel, Field

from mdserver.application.notifications import NotificationBus, RELOAD_MESSAGE
from mdserver.application.sync import PathMapper, SyncScheduler, slugify
from mdserver.application.sync.paths import INDEX_STEMS, index_url
from mdserver.application.uploads import folder_of_upload, is_markdown_upload, post_from_upload
from mdserver.domain.posts import Post, PostRepository
from mdserver.domain.sync import StoreError
from mdserver.logging_config import get_logger
from mdserver.settings import Settings

from .deps import get_bus, get_mapper, get_repository, get_scheduler, get_settings

logger = get_logger("mdserver.api.collections")

router = APIRouter(tags=["Collections"])


class CollectionInfo(BaseModel):
    name: str
    autoSync: bool = Field(..., description="Коллекция синхронизируется из SYNC_DIR")


class PostRequest(BaseModel):
    """Документ для ручной загрузки"""
    title: str
    body: str = ""
    url: Optional[str] = Field(None, description="По умолчанию slug заголовка")
    is_index: bool = False


class RenameRequest(BaseModel):
    new_name: str


def _store_error(action: str, e: StoreError) -> HTTPException:
    logger.error(f"❌ Failed to {action}: {e}")
    return HTTPException(status_code=500, detail=f"Failed to {action}: {e}")


@router.get("/collections", response_model=List[CollectionInfo])
def list_collections(
    repository: PostRepository = Depends(get_repository),
    mapper: PathMapper = Depends(get_mapper),
):
    """Все коллекции с признаком autoSync"""
    try:
        names = repository.list_collections()
    except StoreError as e:
        raise _store_error("list collections", e)
    return [
        CollectionInfo(name=name, autoSync=name.startswith(mapper.collection_prefix))
        for name in names
    ]


@router.get("/api/collection/{name:path}")
def get_collection_posts(name: str, repository: PostRepository = Depends(get_repository)):
    """Документы коллекции, отсортированные по заголовку"""
    try:
        posts = repository.list_by_collection(name)
    except StoreError as e:
        raise _store_error("load collection", e)
    return [post.as_dict() for post in posts]


def _read_upload(upload: UploadFile) -> str:
    return upload.file.read().decode("utf-8", errors="replace")


def _store_uploads(
    uploads: List[UploadFile], collection: str, repository: PostRepository
) -> Tuple[int, List[str]]:
    """Сохранить .md файлы в коллекцию. Возвращает (сохранено, пропущенные имена)."""
    stored = 0
    skipped: List[str] = []
    for upload in uploads:
        if not is_markdown_upload(upload.filename):
            logger.debug(f"Skipping non-markdown upload: {upload.filename}")
            skipped.append(upload.filename)
            continue

        post = post_from_upload(upload.filename, _read_upload(upload), collection)
        try:
            repository.upsert(post)
        except StoreError as e:
            raise _store_error(f"store file {upload.filename}", e)
        stored += 1
        logger.info(f"  ✓ Uploaded '{post.title}' -> '{collection}' (url={post.url}, index={post.is_index})")
    return stored, skipped


@router.post("/api/collection/create")
def create_collection(
    name: str = Form(""),
    files: Optional[List[UploadFile]] = File(None),
    repository: PostRepository = Depends(get_repository),
    bus: NotificationBus = Depends(get_bus),
    settings: Settings = Depends(get_settings),
):
    """
    Создать коллекцию uploaded/<name>.

    Без файлов создаётся индексная заглушка. Если имя не передано, оно
    берётся из папки первого загруженного файла.
    """
    files = files or []
    name = name.strip().strip("/")
    if not name and files:
        name = folder_of_upload(files[0].filename) or ""
    if not name:
        raise HTTPException(status_code=400, detail="Collection name is required")

    collection = f"{settings.UPLOADED_PREFIX}{name}"

    if files:
        logger.info(f"📁 Creating collection '{collection}' from {len(files)} file(s)")
        count, skipped = _store_uploads(files, collection, repository)
    else:
        post = Post(
            title=collection,
            body=f"# {collection}\n\nNew collection created.",
            url=index_url(collection),
            collection=collection,
            is_index=True,
        )
        try:
            repository.upsert(post)
        except StoreError as e:
            raise _store_error("create collection", e)
        count, skipped = 1, []

    logger.info(f"📁 Collection '{collection}' created")
    bus.broadcast(RELOAD_MESSAGE)
    return {"status": "success", "collection": collection, "count": count, "skipped": skipped}


@router.post("/api/collection/{name:path}/upload")
def upload_files(
    name: str,
    replace: bool = Form(False),
    files: Optional[List[UploadFile]] = File(None),
    repository: PostRepository = Depends(get_repository),
    bus: NotificationBus = Depends(get_bus),
):
    """Загрузить .md файлы в существующую коллекцию; replace=true очищает её перед загрузкой"""
    if not files:
        raise HTTPException(status_code=400, detail="No files uploaded")

    if replace:
        try:
            removed = repository.delete_many(name)
        except StoreError as e:
            raise _store_error("clear collection", e)
        logger.info(f"🗑️ Cleared collection '{name}' before upload ({removed} posts)")

    count, skipped = _store_uploads(files, name, repository)

    logger.info(f"📤 Uploaded {count} file(s) to '{name}'")
    bus.broadcast(RELOAD_MESSAGE)
    return {"status": "success", "count": count, "skipped": skipped}


@router.post("/api/collection/{name:path}/posts")
def upsert_post(
    name: str,
    request: PostRequest,
    repository: PostRepository = Depends(get_repository),
    bus: NotificationBus = Depends(get_bus),
):
    """Добавить или заменить один документ коллекции"""
    title = request.title.strip()
    if not title:
        raise HTTPException(status_code=400, detail="Title is required")

    is_index = request.is_index or title.lower() in INDEX_STEMS
    if is_index:
        url = index_url(name)
    else:
        url = slugify(request.url or title).replace("_", "-")

    post = Post(title=title, body=request.body, url=url, collection=name, is_index=is_index)
    try:
        repository.upsert(post)
    except StoreError as e:
        raise _store_error("save post", e)

    logger.info(f"✓ Saved '{title}' -> collection '{name}' (url={url}, index={is_index})")
    bus.broadcast(RELOAD_MESSAGE)
    return {"status": "success", "post": post.as_dict()}


@router.post("/api/collection/{name:path}/rename")
def rename_collection(
    name: str,
    request: RenameRequest,
    repository: PostRepository = Depends(get_repository),
    bus: NotificationBus = Depends(get_bus),
):
    new_name = request.new_name.strip().strip("/")
    if not new_name:
        raise HTTPException(status_code=400, detail="New collection name is required")

    try:
        count = repository.rename_collection(name, new_name)
    except StoreError as e:
        raise _store_error("rename collection", e)
    if count == 0:
        raise HTTPException(status_code=404, detail=f"Collection not found: {name}")

    logger.info(f"✏️ Collection '{name}' renamed to '{new_name}' ({count} posts)")
    bus.broadcast(RELOAD_MESSAGE)
    return {"status": "success", "collection": new_name, "count": count}


@router.delete("/api/collection/{name:path}")
def delete_collection(
    name: str,
    background_tasks: BackgroundTasks,
    repository: PostRepository = Depends(get_repository),
    bus: NotificationBus = Depends(get_bus),
    scheduler: SyncScheduler = Depends(get_scheduler),
    mapper: PathMapper = Depends(get_mapper),
):
    """
    Удалить коллекцию целиком.

    Коллекции из SYNC_DIR только для чтения: после удаления планировщик
    забывает их файлы и сразу импортирует заново.
    """
    try:
        count = repository.delete_many(name)
    except StoreError as e:
        raise _store_error("delete collection", e)

    logger.info(f"🗑️ Collection '{name}' deleted via API ({count} posts)")

    reimport = name.startswith(mapper.collection_prefix)
    if reimport:
        scheduler.forget_collection(name)
        if scheduler.is_running:
            scheduler.trigger()
        else:
            background_tasks.add_task(scheduler.run_cycle)

    bus.broadcast(RELOAD_MESSAGE)
    return {"status": "success", "deleted": count, "reimport": reimport}
