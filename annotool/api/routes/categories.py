"""
Annotool API — Category and label routes.

Like scales, each route is mounted for templates (``/categories``) and for a
video (``/videos/{video_id}/categories``). Video listings with ``series-extid``
pull the series masters into the video first.
"""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Form, Query, Request

from annotool.api.deps import annotatable_video, category_out, parent_category, parent_video, readable, writable
from annotool.api.params import list_filter, parse_tags, require, trim_to_none
from annotool.api.responses import created, listing, location, ok
from annotool.core.errors import NotFound
from annotool.models.models import Category, Label
from annotool.schemas.schemas import LabelSchema
from annotool.services.annotation import ExtendedAnnotationService, ListFilter, get_annotation_service

router = APIRouter(prefix="/categories", tags=["Categories"])
video_router = APIRouter(prefix="/videos/{video_id}/categories", tags=["Categories"])


def _category_url(request: Request, category: Category, video_id: Optional[int]) -> str:
    if video_id is not None and category.video_id is not None:
        return location(request, "videos", category.video_id, "categories", category.id)
    return location(request, "categories", category.id)


def _label_url(request: Request, category_id: int, label_id: int, video_id: Optional[int]) -> str:
    if video_id is not None:
        return location(request, "videos", video_id, "categories", category_id, "labels", label_id)
    return location(request, "categories", category_id, "labels", label_id)


# ═══════════════════════════════════════════════════════════════════════
# Shared handlers
# ═══════════════════════════════════════════════════════════════════════

async def _create_category(
    request, svc, video_id, series_extid, series_category_id, name, description, scale_id, settings, access, tags
):
    require(name)
    await annotatable_video(svc, video_id)
    resource = await svc.create_resource(access, parse_tags(tags))
    category = await svc.create_category(
        trim_to_none(series_extid),
        series_category_id,
        video_id,
        scale_id,
        name,
        trim_to_none(description),
        trim_to_none(settings),
        resource,
    )
    return created(await category_out(svc, category), _category_url(request, category, video_id))


async def _put_category(
    request, svc, video_id, category_id, series_extid, series_category_id,
    name, description, scale_id, settings, access, tags,
):
    require(name)
    await annotatable_video(svc, video_id)
    tag_map = parse_tags(tags)
    series_extid = trim_to_none(series_extid)

    category = await svc.get_category(category_id, include_deleted=True)
    if category is None:
        resource = await svc.create_resource(access, tag_map)
        category = await svc.create_category(
            series_extid,
            series_category_id,
            video_id,
            scale_id,
            name,
            trim_to_none(description),
            trim_to_none(settings),
            resource,
        )
        return created(await category_out(svc, category), _category_url(request, category, video_id))

    await writable(svc, category)
    fields = dict(
        series_ext_id=series_extid,
        series_category_id=series_category_id,
        # An edit arriving through a local copy must not move the master to another video
        video_id=await svc.resolve_series_video_id(series_category_id, video_id),
        scale_id=scale_id,
        name=name,
        description=trim_to_none(description),
        settings=trim_to_none(settings),
        access=access,
        tags=tag_map,
    )
    if series_category_id is None:
        await svc.update_category_and_delete_other_series_categories(category, **fields)
    else:
        await svc.update_category(category, **fields)
    return ok(await category_out(svc, category), _category_url(request, category, video_id))


async def _get_category(svc, video_id, category_id):
    await parent_video(svc, video_id)
    category = await readable(svc, await svc.get_category(category_id))
    return ok(await category_out(svc, category))


async def _list_categories(svc, video_id, series_extid, filters: ListFilter):
    await parent_video(svc, video_id)
    categories = await svc.get_categories(trim_to_none(series_extid), video_id, filters)
    return listing("categories", filters.offset or 0, [await category_out(svc, c) for c in categories])


async def _delete_category(request, svc, video_id, category_id):
    """Soft-delete the category and its labels; responds with the deleted category."""
    await annotatable_video(svc, video_id)
    category = await parent_category(svc, category_id)
    await writable(svc, category)
    category = await svc.delete_category(category)
    return ok(await category_out(svc, category), _category_url(request, category, video_id))


async def _create_label(request, svc, video_id, category_id, value, abbreviation, description, settings, access, tags):
    require(value, abbreviation)
    await annotatable_video(svc, video_id)
    await parent_category(svc, category_id)
    resource = await svc.create_resource(access, parse_tags(tags))
    label = await svc.create_label(
        category_id, value, abbreviation, trim_to_none(description), trim_to_none(settings), resource
    )
    return created(LabelSchema.model_validate(label), _label_url(request, category_id, label.id, video_id))


async def _put_label(
    request, svc, video_id, category_id, label_id, value, abbreviation, description, settings, access, tags
):
    require(value, abbreviation)
    await annotatable_video(svc, video_id)
    await parent_category(svc, category_id)
    tag_map = parse_tags(tags)

    label = await svc.get_label(label_id, include_deleted=True)
    if label is None:
        resource = await svc.create_resource(access, tag_map)
        label = await svc.create_label(
            category_id, value, abbreviation, trim_to_none(description), trim_to_none(settings), resource
        )
        return created(LabelSchema.model_validate(label), _label_url(request, category_id, label.id, video_id))

    await writable(svc, label)
    await svc.update_label(
        label,
        category_id=category_id,
        value=value,
        abbreviation=abbreviation,
        description=trim_to_none(description),
        settings=trim_to_none(settings),
        tags=tag_map,
    )
    return ok(LabelSchema.model_validate(label), _label_url(request, category_id, label.id, video_id))


async def _get_label(svc, video_id, category_id, label_id):
    await parent_video(svc, video_id)
    await parent_category(svc, category_id)
    label = await readable(svc, await svc.get_label(label_id))
    return ok(LabelSchema.model_validate(label))


async def _list_labels(svc, video_id, category_id, filters: ListFilter):
    await parent_video(svc, video_id)
    await parent_category(svc, category_id, include_deleted=True)
    labels = await svc.get_labels(category_id, filters)
    return listing("labels", filters.offset or 0, [LabelSchema.model_validate(label) for label in labels])


async def _delete_label(request, svc, video_id, category_id, label_id):
    """
    Delete a label. A copy of a series label deletes the series master instead;
    the body is the deleted master while ``Location`` stays on the requested copy.
    """
    await annotatable_video(svc, video_id)
    await parent_category(svc, category_id)
    label = await svc.get_label(label_id, include_deleted=True)
    if label is None:
        raise NotFound(f"Label {label_id} not found")
    await writable(svc, label)

    target: Label = await svc.resolve_label_delete_target(label)
    if target is not label:
        await writable(svc, target)
    target = await svc.delete_label(target)
    return ok(LabelSchema.model_validate(target), _label_url(request, category_id, label_id, video_id))


# ═══════════════════════════════════════════════════════════════════════
# Template categories
# ═══════════════════════════════════════════════════════════════════════

@router.post("", status_code=201)
async def create_template_category(
    request: Request,
    name: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    scale_id: Optional[int] = Form(None),
    settings: Optional[str] = Form(None),
    access: Optional[int] = Form(None),
    tags: Optional[str] = Form(None),
    svc: ExtendedAnnotationService = Depends(get_annotation_service),
):
    return await _create_category(
        request, svc, None, None, None, name, description, scale_id, settings, access, tags
    )


@router.put("/{category_id}")
async def put_template_category(
    request: Request,
    category_id: int,
    series_extid: Optional[str] = Form(None),
    series_category_id: Optional[int] = Form(None),
    name: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    scale_id: Optional[int] = Form(None),
    settings: Optional[str] = Form(None),
    access: Optional[int] = Form(None),
    tags: Optional[str] = Form(None),
    svc: ExtendedAnnotationService = Depends(get_annotation_service),
):
    return await _put_category(
        request, svc, None, category_id, series_extid, series_category_id,
        name, description, scale_id, settings, access, tags,
    )


@router.get("")
async def list_template_categories(
    series_extid: Optional[str] = Query(None, alias="series-extid"),
    filters: ListFilter = Depends(list_filter),
    svc: ExtendedAnnotationService = Depends(get_annotation_service),
):
    return await _list_categories(svc, None, series_extid, filters)


@router.get("/{category_id}")
async def get_template_category(category_id: int, svc: ExtendedAnnotationService = Depends(get_annotation_service)):
    return await _get_category(svc, None, category_id)


@router.delete("/{category_id}")
async def delete_template_category(
    request: Request, category_id: int, svc: ExtendedAnnotationService = Depends(get_annotation_service)
):
    return await _delete_category(request, svc, None, category_id)


@router.post("/{category_id}/labels", status_code=201)
async def create_template_label(
    request: Request,
    category_id: int,
    value: Optional[str] = Form(None),
    abbreviation: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    settings: Optional[str] = Form(None),
    access: Optional[int] = Form(None),
    tags: Optional[str] = Form(None),
    svc: ExtendedAnnotationService = Depends(get_annotation_service),
):
    return await _create_label(
        request, svc, None, category_id, value, abbreviation, description, settings, access, tags
    )


@router.put("/{category_id}/labels/{label_id}")
async def put_template_label(
    request: Request,
    category_id: int,
    label_id: int,
    value: Optional[str] = Form(None),
    abbreviation: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    settings: Optional[str] = Form(None),
    access: Optional[int] = Form(None),
    tags: Optional[str] = Form(None),
    svc: ExtendedAnnotationService = Depends(get_annotation_service),
):
    return await _put_label(
        request, svc, None, category_id, label_id, value, abbreviation, description, settings, access, tags
    )


@router.get("/{category_id}/labels")
async def list_template_labels(
    category_id: int,
    filters: ListFilter = Depends(list_filter),
    svc: ExtendedAnnotationService = Depends(get_annotation_service),
):
    return await _list_labels(svc, None, category_id, filters)


@router.get("/{category_id}/labels/{label_id}")
async def get_template_label(
    category_id: int, label_id: int, svc: ExtendedAnnotationService = Depends(get_annotation_service)
):
    return await _get_label(svc, None, category_id, label_id)


@router.delete("/{category_id}/labels/{label_id}")
async def delete_template_label(
    request: Request, category_id: int, label_id: int,
    svc: ExtendedAnnotationService = Depends(get_annotation_service),
):
    return await _delete_label(request, svc, None, category_id, label_id)


# ═══════════════════════════════════════════════════════════════════════
# Video categories
# ═══════════════════════════════════════════════════════════════════════

@video_router.post("", status_code=201)
async def create_video_category(
    request: Request,
    video_id: int,
    category_id: Optional[int] = Form(None),
    series_extid: Optional[str] = Form(None),
    series_category_id: Optional[int] = Form(None),
    name: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    scale_id: Optional[int] = Form(None),
    settings: Optional[str] = Form(None),
    access: Optional[int] = Form(None),
    tags: Optional[str] = Form(None),
    svc: ExtendedAnnotationService = Depends(get_annotation_service),
):
    """Create a category for the video, or deep-copy the template ``category_id`` into it."""
    if category_id is None:
        return await _create_category(
            request, svc, video_id, series_extid, series_category_id,
            name, description, scale_id, settings, access, tags,
        )

    await annotatable_video(svc, video_id)
    resource = await svc.create_resource(access, parse_tags(tags))
    category = await svc.create_category_from_template(
        category_id, trim_to_none(series_extid), series_category_id, video_id, resource
    )
    if category is None:
        raise NotFound(f"Template category {category_id} not found")
    return created(await category_out(svc, category), _category_url(request, category, video_id))


@video_router.put("/{category_id}")
async def put_video_category(
    request: Request,
    video_id: int,
    category_id: int,
    series_extid: Optional[str] = Form(None),
    series_category_id: Optional[int] = Form(None),
    name: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    scale_id: Optional[int] = Form(None),
    settings: Optional[str] = Form(None),
    access: Optional[int] = Form(None),
    tags: Optional[str] = Form(None),
    svc: ExtendedAnnotationService = Depends(get_annotation_service),
):
    return await _put_category(
        request, svc, video_id, category_id, series_extid, series_category_id,
        name, description, scale_id, settings, access, tags,
    )


@video_router.get("")
async def list_video_categories(
    video_id: int,
    series_extid: Optional[str] = Query(None, alias="series-extid"),
    filters: ListFilter = Depends(list_filter),
    svc: ExtendedAnnotationService = Depends(get_annotation_service),
):
    return await _list_categories(svc, video_id, series_extid, filters)


@video_router.get("/{category_id}")
async def get_video_category(
    video_id: int, category_id: int, svc: ExtendedAnnotationService = Depends(get_annotation_service)
):
    return await _get_category(svc, video_id, category_id)


@video_router.delete("/{category_id}")
async def delete_video_category(
    request: Request, video_id: int, category_id: int,
    svc: ExtendedAnnotationService = Depends(get_annotation_service),
):
    return await _delete_category(request, svc, video_id, category_id)


@video_router.post("/{category_id}/labels", status_code=201)
async def create_video_label(
    request: Request,
    video_id: int,
    category_id: int,
    value: Optional[str] = Form(None),
    abbreviation: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    settings: Optional[str] = Form(None),
    access: Optional[int] = Form(None),
    tags: Optional[str] = Form(None),
    svc: ExtendedAnnotationService = Depends(get_annotation_service),
):
    return await _create_label(
        request, svc, video_id, category_id, value, abbreviation, description, settings, access, tags
    )


@video_router.put("/{category_id}/labels/{label_id}")
async def put_video_label(
    request: Request,
    video_id: int,
    category_id: int,
    label_id: int,
    value: Optional[str] = Form(None),
    abbreviation: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    settings: Optional[str] = Form(None),
    access: Optional[int] = Form(None),
    tags: Optional[str] = Form(None),
    svc: ExtendedAnnotationService = Depends(get_annotation_service),
):
    return await _put_label(
        request, svc, video_id, category_id, label_id, value, abbreviation, description, settings, access, tags
    )


@video_router.get("/{category_id}/labels")
async def list_video_labels(
    video_id: int,
    category_id: int,
    filters: ListFilter = Depends(list_filter),
    svc: ExtendedAnnotationService = Depends(get_annotation_service),
):
    return await _list_labels(svc, video_id, category_id, filters)


@video_router.get("/{category_id}/labels/{label_id}")
async def get_video_label(
    video_id: int, category_id: int, label_id: int,
    svc: ExtendedAnnotationService = Depends(get_annotation_service),
):
    return await _get_label(svc, video_id, category_id, label_id)


@video_router.delete("/{category_id}/labels/{label_id}")
async def delete_video_label(
    request: Request, video_id: int, category_id: int, label_id: int,
    svc: ExtendedAnnotationService = Depends(get_annotation_service),
):
    return await _delete_label(request, svc, video_id, category_id, label_id)
