"""
Annotool API — Admin routes.
"""
from __future__ import annotations

from fastapi import APIRouter, Depends

from annotool.api.responses import no_content
from annotool.core.config import get_settings
from annotool.core.errors import Forbidden, NotFound
from annotool.services.annotation import ExtendedAnnotationService, get_annotation_service

router = APIRouter(prefix="/admin", tags=["Admin"])


@router.delete("/database", status_code=204)
async def clear_database(svc: ExtendedAnnotationService = Depends(get_annotation_service)):
    """Hard-delete all annotation data. Answers 404 unless enabled in settings."""
    if not get_settings().enable_clear_database:
        raise NotFound("Not enabled")
    if not svc.principal.is_admin:
        raise Forbidden("Administrator role required")
    await svc.clear_database()
    return no_content()
