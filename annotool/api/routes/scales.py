"""
Annotool API — Scale and scale value routes.

Every route exists twice: once for templates (``/scales``) and once scoped to a
video (``/videos/{video_id}/scales``). Both resolve to the same handlers, with
``video_id`` None for templates.
"""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Form, Request

from annotool.api.deps import annotatable_video, parent_scale, parent_video, readable, writable
from annotool.api.params import list_filter, parse_tags, require, trim_to_none
from annotool.api.responses import created, listing, location, ok
from annotool.core.errors import NotFound
from annotool.models.models import Scale, ScaleValue
from annotool.schemas.schemas import ScaleSchema, ScaleValueSchema
from annotool.services.annotation import ExtendedAnnotationService, ListFilter, get_annotation_service

router = APIRouter(prefix="/scales", tags=["Scales"])
video_router = APIRouter(prefix="/videos/{video_id}/scales", tags=["Scales"])


def _scale_url(request: Request, scale: Scale, video_id: Optional[int]) -> str:
    if video_id is not None:
        return location(request, "videos", scale.video_id or video_id, "scales", scale.id)
    return location(request, "scales", scale.id)


def _value_url(request: Request, value: ScaleValue, video_id: Optional[int]) -> str:
    if video_id is not None:
        return location(request, "videos", video_id, "scales", value.scale_id, "scalevalues", value.id)
    return location(request, "scales", value.scale_id, "scalevalues", value.id)


# ═══════════════════════════════════════════════════════════════════════
# Shared handlers
# ═══════════════════════════════════════════════════════════════════════

async def _create_scale(request, svc, video_id, name, description, access, tags):
    require(name)
    await annotatable_video(svc, video_id)
    resource = await svc.create_resource(access, parse_tags(tags))
    scale = await svc.create_scale(video_id, name, trim_to_none(description), resource)
    return created(ScaleSchema.model_validate(scale), _scale_url(request, scale, video_id))


async def _put_scale(request, svc, video_id, scale_id, name, description, tags):
    require(name)
    await annotatable_video(svc, video_id)
    tag_map = parse_tags(tags)

    scale = await svc.get_scale(scale_id, include_deleted=True)
    if scale is None:
        resource = await svc.create_resource(tags=tag_map)
        scale = await svc.create_scale(video_id, name, trim_to_none(description), resource)
        return created(ScaleSchema.model_validate(scale), _scale_url(request, scale, video_id))

    await writable(svc, scale)
    await svc.update_scale(scale, video_id=video_id, name=name, description=trim_to_none(description), tags=tag_map)
    return ok(ScaleSchema.model_validate(scale), _scale_url(request, scale, video_id))


async def _get_scale(svc, video_id, scale_id):
    await parent_video(svc, video_id)
    scale = await readable(svc, await svc.get_scale(scale_id))
    return ok(ScaleSchema.model_validate(scale))


async def _list_scales(svc, video_id, filters: ListFilter):
    await parent_video(svc, video_id)
    scales = await svc.get_scales(video_id, filters)
    return listing("scales", filters.offset or 0, [ScaleSchema.model_validate(s) for s in scales])


async def _delete_scale(request, svc, video_id, scale_id):
    """Soft-delete the scale and its values; responds with the deleted scale."""
    await annotatable_video(svc, video_id)
    scale = await svc.get_scale(scale_id, include_deleted=True)
    if scale is None:
        raise NotFound(f"Scale {scale_id} not found")
    await writable(svc, scale)
    scale = await svc.delete_scale(scale)
    return ok(ScaleSchema.model_validate(scale), _scale_url(request, scale, video_id))


async def _create_value(request, svc, video_id, scale_id, name, value, order, access, tags):
    require(name)
    await annotatable_video(svc, video_id)
    await parent_scale(svc, scale_id)
    resource = await svc.create_resource(access, parse_tags(tags))
    scale_value = await svc.create_scale_value(scale_id, name, value, order, resource)
    return created(ScaleValueSchema.model_validate(scale_value), _value_url(request, scale_value, video_id))


async def _put_value(request, svc, video_id, scale_id, value_id, name, value, order, access, tags):
    require(name)
    await annotatable_video(svc, video_id)
    await parent_scale(svc, scale_id)
    tag_map = parse_tags(tags)

    scale_value = await svc.get_scale_value(value_id, include_deleted=True)
    if scale_value is None:
        resource = await svc.create_resource(access, tag_map)
        scale_value = await svc.create_scale_value(scale_id, name, value, order, resource)
        return created(ScaleValueSchema.model_validate(scale_value), _value_url(request, scale_value, video_id))

    await writable(svc, scale_value)
    await svc.update_scale_value(scale_value, scale_id=scale_id, name=name, value=value, order=order, tags=tag_map)
    return ok(ScaleValueSchema.model_validate(scale_value), _value_url(request, scale_value, video_id))


async def _get_value(svc, video_id, scale_id, value_id):
    await parent_video(svc, video_id)
    await parent_scale(svc, scale_id)
    scale_value = await readable(svc, await svc.get_scale_value(value_id))
    return ok(ScaleValueSchema.model_validate(scale_value))


async def _list_values(svc, video_id, scale_id, filters: ListFilter):
    await parent_video(svc, video_id)
    await parent_scale(svc, scale_id, include_deleted=True)
    values = await svc.get_scale_values(scale_id, filters)
    return listing("scaleValues", filters.offset or 0, [ScaleValueSchema.model_validate(v) for v in values])


async def _delete_value(request, svc, video_id, scale_id, value_id):
    await annotatable_video(svc, video_id)
    await parent_scale(svc, scale_id)
    scale_value = await svc.get_scale_value(value_id, include_deleted=True)
    if scale_value is None:
        raise NotFound(f"Scale value {value_id} not found")
    await writable(svc, scale_value)
    scale_value = await svc.delete_scale_value(scale_value)
    return ok(ScaleValueSchema.model_validate(scale_value), _value_url(request, scale_value, video_id))


# ═══════════════════════════════════════════════════════════════════════
# Template scales
# ═══════════════════════════════════════════════════════════════════════

@router.post("", status_code=201)
async def create_template_scale(
    request: Request,
    name: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    access: Optional[int] = Form(None),
    tags: Optional[str] = Form(None),
    svc: ExtendedAnnotationService = Depends(get_annotation_service),
):
    return await _create_scale(request, svc, None, name, description, access, tags)


@router.put("/{scale_id}")
async def put_template_scale(
    request: Request,
    scale_id: int,
    name: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    tags: Optional[str] = Form(None),
    svc: ExtendedAnnotationService = Depends(get_annotation_service),
):
    return await _put_scale(request, svc, None, scale_id, name, description, tags)


@router.get("")
async def list_template_scales(
    filters: ListFilter = Depends(list_filter),
    svc: ExtendedAnnotationService = Depends(get_annotation_service),
):
    return await _list_scales(svc, None, filters)


@router.get("/{scale_id}")
async def get_template_scale(scale_id: int, svc: ExtendedAnnotationService = Depends(get_annotation_service)):
    return await _get_scale(svc, None, scale_id)


@router.delete("/{scale_id}")
async def delete_template_scale(
    request: Request, scale_id: int, svc: ExtendedAnnotationService = Depends(get_annotation_service)
):
    return await _delete_scale(request, svc, None, scale_id)


@router.post("/{scale_id}/scalevalues", status_code=201)
async def create_template_scale_value(
    request: Request,
    scale_id: int,
    name: Optional[str] = Form(None),
    value: float = Form(0),
    order: int = Form(0),
    access: Optional[int] = Form(None),
    tags: Optional[str] = Form(None),
    svc: ExtendedAnnotationService = Depends(get_annotation_service),
):
    return await _create_value(request, svc, None, scale_id, name, value, order, access, tags)


@router.put("/{scale_id}/scalevalues/{value_id}")
async def put_template_scale_value(
    request: Request,
    scale_id: int,
    value_id: int,
    name: Optional[str] = Form(None),
    value: float = Form(0),
    order: int = Form(0),
    access: Optional[int] = Form(None),
    tags: Optional[str] = Form(None),
    svc: ExtendedAnnotationService = Depends(get_annotation_service),
):
    return await _put_value(request, svc, None, scale_id, value_id, name, value, order, access, tags)


@router.get("/{scale_id}/scalevalues")
async def list_template_scale_values(
    scale_id: int,
    filters: ListFilter = Depends(list_filter),
    svc: ExtendedAnnotationService = Depends(get_annotation_service),
):
    return await _list_values(svc, None, scale_id, filters)


@router.get("/{scale_id}/scalevalues/{value_id}")
async def get_template_scale_value(
    scale_id: int, value_id: int, svc: ExtendedAnnotationService = Depends(get_annotation_service)
):
    return await _get_value(svc, None, scale_id, value_id)


@router.delete("/{scale_id}/scalevalues/{value_id}")
async def delete_template_scale_value(
    request: Request, scale_id: int, value_id: int, svc: ExtendedAnnotationService = Depends(get_annotation_service)
):
    return await _delete_value(request, svc, None, scale_id, value_id)


# ═══════════════════════════════════════════════════════════════════════
# Video scales
# ═══════════════════════════════════════════════════════════════════════

@video_router.post("", status_code=201)
async def create_video_scale(
    request: Request,
    video_id: int,
    name: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    scale_id: Optional[int] = Form(None),
    access: Optional[int] = Form(None),
    tags: Optional[str] = Form(None),
    svc: ExtendedAnnotationService = Depends(get_annotation_service),
):
    """Create a scale for the video, or copy the template ``scale_id`` into it."""
    if scale_id is None:
        return await _create_scale(request, svc, video_id, name, description, access, tags)

    await annotatable_video(svc, video_id)
    resource = await svc.create_resource(access, parse_tags(tags))
    scale = await svc.create_scale_from_template(video_id, scale_id, resource)
    return created(ScaleSchema.model_validate(scale), _scale_url(request, scale, video_id))


@video_router.put("/{scale_id}")
async def put_video_scale(
    request: Request,
    video_id: int,
    scale_id: int,
    name: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    tags: Optional[str] = Form(None),
    svc: ExtendedAnnotationService = Depends(get_annotation_service),
):
    return await _put_scale(request, svc, video_id, scale_id, name, description, tags)


@video_router.get("")
async def list_video_scales(
    video_id: int,
    filters: ListFilter = Depends(list_filter),
    svc: ExtendedAnnotationService = Depends(get_annotation_service),
):
    return await _list_scales(svc, video_id, filters)


@video_router.get("/{scale_id}")
async def get_video_scale(
    video_id: int, scale_id: int, svc: ExtendedAnnotationService = Depends(get_annotation_service)
):
    return await _get_scale(svc, video_id, scale_id)


@video_router.delete("/{scale_id}")
async def delete_video_scale(
    request: Request, video_id: int, scale_id: int, svc: ExtendedAnnotationService = Depends(get_annotation_service)
):
    return await _delete_scale(request, svc, video_id, scale_id)


@video_router.post("/{scale_id}/scalevalues", status_code=201)
async def create_video_scale_value(
    request: Request,
    video_id: int,
    scale_id: int,
    name: Optional[str] = Form(None),
    value: float = Form(0),
    order: int = Form(0),
    access: Optional[int] = Form(None),
    tags: Optional[str] = Form(None),
    svc: ExtendedAnnotationService = Depends(get_annotation_service),
):
    return await _create_value(request, svc, video_id, scale_id, name, value, order, access, tags)


@video_router.put("/{scale_id}/scalevalues/{value_id}")
async def put_video_scale_value(
    request: Request,
    video_id: int,
    scale_id: int,
    value_id: int,
    name: Optional[str] = Form(None),
    value: float = Form(0),
    order: int = Form(0),
    access: Optional[int] = Form(None),
    tags: Optional[str] = Form(None),
    svc: ExtendedAnnotationService = Depends(get_annotation_service),
):
    return await _put_value(request, svc, video_id, scale_id, value_id, name, value, order, access, tags)


@video_router.get("/{scale_id}/scalevalues")
async def list_video_scale_values(
    video_id: int,
    scale_id: int,
    filters: ListFilter = Depends(list_filter),
    svc: ExtendedAnnotationService = Depends(get_annotation_service),
):
    return await _list_values(svc, video_id, scale_id, filters)


@video_router.get("/{scale_id}/scalevalues/{value_id}")
async def get_video_scale_value(
    video_id: int, scale_id: int, value_id: int, svc: ExtendedAnnotationService = Depends(get_annotation_service)
):
    return await _get_value(svc, video_id, scale_id, value_id)


@video_router.delete("/{scale_id}/scalevalues/{value_id}")
async def delete_video_scale_value(
    request: Request,
    video_id: int,
    scale_id: int,
    value_id: int,
    svc: ExtendedAnnotationService = Depends(get_annotation_service),
):
    return await _delete_value(request, svc, video_id, scale_id, value_id)
