"""
Annotool API — Questionnaire routes (templates and per-video).
"""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Form, Request

from annotool.api.deps import annotatable_video, parent_video, readable, writable
from annotool.api.params import list_filter, parse_tags, require, trim_to_none
from annotool.api.responses import created, listing, location, ok
from annotool.core.errors import BadInput, NotFound
from annotool.models.models import Questionnaire
from annotool.schemas.schemas import QuestionnaireSchema
from annotool.services.annotation import ExtendedAnnotationService, ListFilter, get_annotation_service

router = APIRouter(prefix="/questionnaires", tags=["Questionnaires"])
video_router = APIRouter(prefix="/videos/{video_id}/questionnaires", tags=["Questionnaires"])


def _questionnaire_url(request: Request, questionnaire: Questionnaire, video_id: Optional[int]) -> str:
    if video_id is not None and questionnaire.video_id is not None:
        return location(request, "videos", questionnaire.video_id, "questionnaires", questionnaire.id)
    return location(request, "questionnaires", questionnaire.id)


# ── Shared handlers ─────────────────────────────────────────────────────

async def _create(request, svc, video_id, title, content, settings, access, tags):
    require(title, content)
    await annotatable_video(svc, video_id)
    resource = await svc.create_resource(access, parse_tags(tags))
    questionnaire = await svc.create_questionnaire(video_id, title, content, trim_to_none(settings), resource)
    return created(QuestionnaireSchema.model_validate(questionnaire), _questionnaire_url(request, questionnaire, video_id))


async def _put(request, svc, video_id, questionnaire_id, title, content, settings, access, tags):
    require(title, content)
    await annotatable_video(svc, video_id)
    tag_map = parse_tags(tags)

    questionnaire = await svc.get_questionnaire(questionnaire_id)
    if questionnaire is None:
        resource = await svc.create_resource(access, tag_map)
        questionnaire = await svc.create_questionnaire(video_id, title, content, trim_to_none(settings), resource)
        return created(
            QuestionnaireSchema.model_validate(questionnaire), _questionnaire_url(request, questionnaire, video_id)
        )

    await writable(svc, questionnaire)
    await svc.update_questionnaire(
        questionnaire, title=title, content=content, settings=trim_to_none(settings), access=access, tags=tag_map
    )
    return ok(QuestionnaireSchema.model_validate(questionnaire), _questionnaire_url(request, questionnaire, video_id))


async def _get(svc, video_id, questionnaire_id):
    await parent_video(svc, video_id)
    questionnaire = await readable(svc, await svc.get_questionnaire(questionnaire_id))
    return ok(QuestionnaireSchema.model_validate(questionnaire))


async def _list(svc, video_id, filters: ListFilter):
    await parent_video(svc, video_id)
    questionnaires = await svc.get_questionnaires(video_id, filters)
    return listing(
        "questionnaires", filters.offset or 0, [QuestionnaireSchema.model_validate(q) for q in questionnaires]
    )


async def _delete(request, svc, video_id, questionnaire_id):
    await annotatable_video(svc, video_id)
    questionnaire = await svc.get_questionnaire(questionnaire_id)
    if questionnaire is None:
        raise BadInput(f"Questionnaire {questionnaire_id} does not exist")
    await writable(svc, questionnaire)
    questionnaire = await svc.delete_questionnaire(questionnaire)
    return ok(QuestionnaireSchema.model_validate(questionnaire), _questionnaire_url(request, questionnaire, video_id))


# ── Templates ───────────────────────────────────────────────────────────

@router.post("", status_code=201)
async def create_template_questionnaire(
    request: Request,
    title: Optional[str] = Form(None),
    content: str = Form("[]"),
    settings: Optional[str] = Form(None),
    access: Optional[int] = Form(None),
    tags: Optional[str] = Form(None),
    svc: ExtendedAnnotationService = Depends(get_annotation_service),
):
    return await _create(request, svc, None, title, content, settings, access, tags)


@router.put("/{questionnaire_id}")
async def put_template_questionnaire(
    request: Request,
    questionnaire_id: int,
    title: Optional[str] = Form(None),
    content: str = Form("[]"),
    settings: Optional[str] = Form(None),
    access: Optional[int] = Form(None),
    tags: Optional[str] = Form(None),
    svc: ExtendedAnnotationService = Depends(get_annotation_service),
):
    return await _put(request, svc, None, questionnaire_id, title, content, settings, access, tags)


@router.get("")
async def list_template_questionnaires(
    filters: ListFilter = Depends(list_filter),
    svc: ExtendedAnnotationService = Depends(get_annotation_service),
):
    return await _list(svc, None, filters)


@router.get("/{questionnaire_id}")
async def get_template_questionnaire(
    questionnaire_id: int, svc: ExtendedAnnotationService = Depends(get_annotation_service)
):
    return await _get(svc, None, questionnaire_id)


@router.delete("/{questionnaire_id}")
async def delete_template_questionnaire(
    request: Request, questionnaire_id: int, svc: ExtendedAnnotationService = Depends(get_annotation_service)
):
    return await _delete(request, svc, None, questionnaire_id)


# ── Video questionnaires ────────────────────────────────────────────────

@video_router.post("", status_code=201)
async def create_video_questionnaire(
    request: Request,
    video_id: int,
    questionnaire_id: Optional[int] = Form(None),
    title: Optional[str] = Form(None),
    content: str = Form("[]"),
    settings: Optional[str] = Form(None),
    access: Optional[int] = Form(None),
    tags: Optional[str] = Form(None),
    svc: ExtendedAnnotationService = Depends(get_annotation_service),
):
    """Create a questionnaire for the video, or copy the template ``questionnaire_id``."""
    if questionnaire_id is None:
        return await _create(request, svc, video_id, title, content, settings, access, tags)

    await annotatable_video(svc, video_id)
    resource = await svc.create_resource(access, parse_tags(tags))
    questionnaire = await svc.create_questionnaire_from_template(questionnaire_id, video_id, resource)
    if questionnaire is None:
        raise NotFound(f"Template questionnaire {questionnaire_id} not found")
    return created(QuestionnaireSchema.model_validate(questionnaire), _questionnaire_url(request, questionnaire, video_id))


@video_router.put("/{questionnaire_id}")
async def put_video_questionnaire(
    request: Request,
    video_id: int,
    questionnaire_id: int,
    title: Optional[str] = Form(None),
    content: str = Form("[]"),
    settings: Optional[str] = Form(None),
    access: Optional[int] = Form(None),
    tags: Optional[str] = Form(None),
    svc: ExtendedAnnotationService = Depends(get_annotation_service),
):
    return await _put(request, svc, video_id, questionnaire_id, title, content, settings, access, tags)


@video_router.get("")
async def list_video_questionnaires(
    video_id: int,
    filters: ListFilter = Depends(list_filter),
    svc: ExtendedAnnotationService = Depends(get_annotation_service),
):
    return await _list(svc, video_id, filters)


@video_router.get("/{questionnaire_id}")
async def get_video_questionnaire(
    video_id: int, questionnaire_id: int, svc: ExtendedAnnotationService = Depends(get_annotation_service)
):
    return await _get(svc, video_id, questionnaire_id)


@video_router.delete("/{questionnaire_id}")
async def delete_video_questionnaire(
    request: Request, video_id: int, questionnaire_id: int,
    svc: ExtendedAnnotationService = Depends(get_annotation_service),
):
    return await _delete(request, svc, video_id, questionnaire_id)
