"""
Annotool API — Video routes.

Videos are keyed by the host platform's media package id (``video_extid``); every
write is checked against the package's ``annotate`` ACL first.
"""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Form, Request

from annotool.api.deps import readable, require_annotate, writable
from annotool.api.params import parse_tags, require
from annotool.api.responses import created, location, no_content, ok
from annotool.core.errors import Duplicate, NotFound
from annotool.schemas.schemas import VideoSchema
from annotool.services.annotation import ExtendedAnnotationService, get_annotation_service

router = APIRouter(prefix="/videos", tags=["Videos"])


@router.post("", status_code=201)
async def create_video(
    request: Request,
    video_extid: Optional[str] = Form(None),
    tags: Optional[str] = Form(None),
    svc: ExtendedAnnotationService = Depends(get_annotation_service),
):
    require(video_extid)
    require_annotate(svc, video_extid)
    if await svc.get_video_by_ext_id(video_extid) is not None:
        raise Duplicate(f"Video {video_extid} already exists")

    resource = await svc.create_resource(tags=parse_tags(tags))
    video = await svc.create_video(video_extid, resource)
    return created(VideoSchema.model_validate(video), location(request, "videos", video.id))


@router.put("")
async def put_video(
    request: Request,
    video_extid: Optional[str] = Form(None),
    access: Optional[int] = Form(None),
    tags: Optional[str] = Form(None),
    svc: ExtendedAnnotationService = Depends(get_annotation_service),
):
    """Create or update by external id. ``access`` only applies on creation."""
    require(video_extid)
    require_annotate(svc, video_extid)
    tag_map = parse_tags(tags)

    video = await svc.get_video_by_ext_id(video_extid)
    if video is None:
        resource = await svc.create_resource(access, tag_map)
        video = await svc.create_video(video_extid, resource)
        return created(VideoSchema.model_validate(video), location(request, "videos", video.id))

    await writable(svc, video)
    await svc.update_video(video, ext_id=video_extid, tags=tag_map)
    return ok(VideoSchema.model_validate(video), location(request, "videos", video.id))


@router.get("/{video_id}")
async def get_video(video_id: int, svc: ExtendedAnnotationService = Depends(get_annotation_service)):
    video = await readable(svc, await svc.get_video(video_id))
    return ok(VideoSchema.model_validate(video))


@router.delete("/{video_id}", status_code=204)
async def delete_video(video_id: int, svc: ExtendedAnnotationService = Depends(get_annotation_service)):
    """Soft-delete the video with its tracks, annotations and comments."""
    video = await svc.get_video(video_id)
    if video is None:
        raise NotFound(f"Video {video_id} not found")
    await writable(svc, video)
    require_annotate(svc, video.ext_id)
    if not await svc.delete_video(video):
        raise NotFound(f"Video {video_id} not found")
    return no_content()
