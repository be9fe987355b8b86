"""
Прокси к PlantUML серверу.

Браузер получает картинки с того же origin: /plantuml/png/<encoded>
-> PLANTUML_SERVER/png/<encoded>.
"""
import httpx
from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import Response

from mdserver.logging_config import get_logger
from mdserver.settings import Settings

from .deps import get_settings

logger = get_logger("mdserver.api.plantuml")

router = APIRouter(tags=["PlantUML"])

DIAGRAM_CACHE_CONTROL = "public, max-age=86400"


@router.get("/plantuml/{path:path}")
async def plantuml_proxy(path: str, settings: Settings = Depends(get_settings)):
    if not path:
        raise HTTPException(status_code=400, detail="Invalid PlantUML path")

    target_url = f"{settings.PLANTUML_SERVER.rstrip('/')}/{path}"
    try:
        async with httpx.AsyncClient(timeout=10.0) as client:
            response = await client.get(target_url)
    except httpx.RequestError as e:
        logger.error(f"❌ PlantUML server unavailable: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch diagram")

    return Response(
        content=response.content,
        status_code=response.status_code,
        media_type=response.headers.get("content-type"),
        headers={"Cache-Control": DIAGRAM_CACHE_CONTROL},
    )
