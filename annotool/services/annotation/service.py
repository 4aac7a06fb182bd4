"""
Annotool Extended Annotation Service.

One request-scoped object exposing every annotation operation. The routers get
it from ``get_annotation_service`` and never touch the session directly.
"""
from __future__ import annotations

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from annotool.core.database import get_db
from annotool.core.security import Principal, get_principal
from annotool.services.annotation.categories import CategoryOperations
from annotool.services.annotation.scales import QuestionnaireOperations, ScaleOperations
from annotool.services.annotation.templates import TemplateOperations
from annotool.services.annotation.tracks import TrackOperations
from annotool.services.annotation.users import UserVideoOperations
from annotool.services.host.platform import (
    AclEvaluator,
    MediaLookup,
    get_acl_evaluator,
    get_media_lookup,
)


class ExtendedAnnotationService(
    TemplateOperations,
    CategoryOperations,
    QuestionnaireOperations,
    ScaleOperations,
    TrackOperations,
    UserVideoOperations,
):
    """Users, videos, tracks, annotations, comments, scales, categories, labels, questionnaires."""


async def get_annotation_service(
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_principal),
    media_lookup: MediaLookup = Depends(get_media_lookup),
    acl_evaluator: AclEvaluator = Depends(get_acl_evaluator),
) -> ExtendedAnnotationService:
    return ExtendedAnnotationService(db, principal, media_lookup, acl_evaluator)
