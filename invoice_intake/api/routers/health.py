from fastapi import APIRouter, Depends

from ..deps import get_extractor
from ...core.config import settings
from ...services.extractors.base import InvoiceExtractor

router = APIRouter(tags=["health"])


@router.get("/health")
async def health(extractor: InvoiceExtractor = Depends(get_extractor)):
    return {"status": "ok", "app": settings.app_name, "env": settings.app_env, "extractor": extractor.name}
