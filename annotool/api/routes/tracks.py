"""
Annotool API — Track, annotation and comment routes nested under a video.
"""
from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Form, Request

from annotool.api.deps import annotatable_video, comment_out, parent_video, readable, writable
from annotool.api.params import list_filter, parse_tags, require, trim_to_none
from annotool.api.responses import created, listing, location, no_content, ok
from annotool.core.errors import BadInput, NotFound
from annotool.models.models import Annotation, Comment, Track
from annotool.schemas.schemas import AnnotationSchema, CommentSchema, TrackSchema
from annotool.services.annotation import ExtendedAnnotationService, ListFilter, get_annotation_service

router = APIRouter(prefix="/videos/{video_id}/tracks", tags=["Tracks"])


# ── Scope resolution ────────────────────────────────────────────────────

async def _parent_track(svc: ExtendedAnnotationService, video_id: int, track_id: int) -> Track:
    track = await svc.get_track(track_id)
    if track is None or track.video_id != video_id:
        raise BadInput(f"Track {track_id} does not exist in video {video_id}")
    return track


async def _parent_annotation(svc: ExtendedAnnotationService, track_id: int, annotation_id: int) -> Annotation:
    annotation = await svc.get_annotation(annotation_id)
    if annotation is None or annotation.track_id != track_id:
        raise BadInput(f"Annotation {annotation_id} does not exist in track {track_id}")
    return annotation


async def _track_in(svc, video_id: int, track_id: int) -> Optional[Track]:
    track = await svc.get_track(track_id)
    return track if track is not None and track.video_id == video_id else None


async def _annotation_in(svc, track_id: int, annotation_id: int) -> Optional[Annotation]:
    annotation = await svc.get_annotation(annotation_id)
    return annotation if annotation is not None and annotation.track_id == track_id else None


async def _comment_in(svc, annotation_id: int, comment_id: int) -> Optional[Comment]:
    comment = await svc.get_comment(comment_id)
    return comment if comment is not None and comment.annotation_id == annotation_id else None


def _track_url(request: Request, track: Track) -> str:
    return location(request, "videos", track.video_id, "tracks", track.id)


def _annotation_url(request: Request, video_id: int, annotation: Annotation) -> str:
    return location(request, "videos", video_id, "tracks", annotation.track_id, "annotations", annotation.id)


def _comment_url(request: Request, video_id: int, track_id: int, comment: Comment) -> str:
    return location(
        request, "videos", video_id, "tracks", track_id,
        "annotations", comment.annotation_id, "comments", comment.id,
    )


# ═══════════════════════════════════════════════════════════════════════
# Tracks
# ═══════════════════════════════════════════════════════════════════════

@router.post("", status_code=201)
async def create_track(
    request: Request,
    video_id: int,
    name: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    settings: Optional[str] = Form(None),
    access: Optional[int] = Form(None),
    tags: Optional[str] = Form(None),
    svc: ExtendedAnnotationService = Depends(get_annotation_service),
):
    require(name)
    await annotatable_video(svc, video_id)
    resource = await svc.create_resource(access, parse_tags(tags))
    track = await svc.create_track(video_id, name, trim_to_none(description), trim_to_none(settings), resource)
    return created(TrackSchema.model_validate(track), _track_url(request, track))


@router.put("/{track_id}")
async def put_track(
    request: Request,
    video_id: int,
    track_id: int,
    name: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    settings: Optional[str] = Form(None),
    access: Optional[int] = Form(None),
    tags: Optional[str] = Form(None),
    svc: ExtendedAnnotationService = Depends(get_annotation_service),
):
    require(name)
    await annotatable_video(svc, video_id)
    tag_map = parse_tags(tags)

    track = await _track_in(svc, video_id, track_id)
    if track is None:
        resource = await svc.create_resource(access, tag_map)
        track = await svc.create_track(video_id, name, trim_to_none(description), trim_to_none(settings), resource)
        return created(TrackSchema.model_validate(track), _track_url(request, track))

    await writable(svc, track)
    await svc.update_track(
        track,
        name=name,
        description=trim_to_none(description),
        settings=trim_to_none(settings),
        access=access,
        tags=tag_map,
    )
    return ok(TrackSchema.model_validate(track), _track_url(request, track))


@router.get("")
async def list_tracks(
    video_id: int,
    filters: ListFilter = Depends(list_filter),
    svc: ExtendedAnnotationService = Depends(get_annotation_service),
):
    await parent_video(svc, video_id)
    tracks = await svc.get_tracks(video_id, filters)
    return listing("tracks", filters.offset or 0, [TrackSchema.model_validate(t) for t in tracks])


@router.get("/{track_id}")
async def get_track(video_id: int, track_id: int, svc: ExtendedAnnotationService = Depends(get_annotation_service)):
    await parent_video(svc, video_id)
    track = await readable(svc, await _track_in(svc, video_id, track_id))
    return ok(TrackSchema.model_validate(track))


@router.delete("/{track_id}", status_code=204)
async def delete_track(video_id: int, track_id: int, svc: ExtendedAnnotationService = Depends(get_annotation_service)):
    await annotatable_video(svc, video_id)
    track = await _track_in(svc, video_id, track_id)
    if track is None:
        raise NotFound(f"Track {track_id} not found")
    await writable(svc, track)
    await svc.delete_track(track)
    return no_content()


# ═══════════════════════════════════════════════════════════════════════
# Annotations
# ═══════════════════════════════════════════════════════════════════════

@router.post("/{track_id}/annotations", status_code=201)
async def create_annotation(
    request: Request,
    video_id: int,
    track_id: int,
    start: Optional[float] = Form(None),
    duration: Optional[float] = Form(None),
    content: Optional[str] = Form(None),
    created_from_questionnaire: int = Form(0),
    settings: Optional[str] = Form(None),
    access: Optional[int] = Form(None),
    tags: Optional[str] = Form(None),
    svc: ExtendedAnnotationService = Depends(get_annotation_service),
):
    require(start, content)
    await annotatable_video(svc, video_id)
    await _parent_track(svc, video_id, track_id)
    resource = await svc.create_resource(access, parse_tags(tags))
    annotation = await svc.create_annotation(
        track_id, start, duration, content, created_from_questionnaire, trim_to_none(settings), resource
    )
    return created(AnnotationSchema.model_validate(annotation), _annotation_url(request, video_id, annotation))


@router.put("/{track_id}/annotations/{annotation_id}")
async def put_annotation(
    request: Request,
    video_id: int,
    track_id: int,
    annotation_id: int,
    start: Optional[float] = Form(None),
    duration: Optional[float] = Form(None),
    content: Optional[str] = Form(None),
    created_from_questionnaire: int = Form(0),
    settings: Optional[str] = Form(None),
    access: Optional[int] = Form(None),
    tags: Optional[str] = Form(None),
    svc: ExtendedAnnotationService = Depends(get_annotation_service),
):
    require(start, content)
    await annotatable_video(svc, video_id)
    await _parent_track(svc, video_id, track_id)
    tag_map = parse_tags(tags)

    annotation = await _annotation_in(svc, track_id, annotation_id)
    if annotation is None:
        resource = await svc.create_resource(access, tag_map)
        annotation = await svc.create_annotation(
            track_id, start, duration, content, created_from_questionnaire, trim_to_none(settings), resource
        )
        return created(AnnotationSchema.model_validate(annotation), _annotation_url(request, video_id, annotation))

    await writable(svc, annotation)
    await svc.update_annotation(
        annotation,
        start=start,
        duration=duration,
        content=content,
        created_from_questionnaire=created_from_questionnaire,
        settings=trim_to_none(settings),
        access=access,
        tags=tag_map,
    )
    return ok(AnnotationSchema.model_validate(annotation), _annotation_url(request, video_id, annotation))


@router.get("/{track_id}/annotations")
async def list_annotations(
    video_id: int,
    track_id: int,
    filters: ListFilter = Depends(list_filter),
    svc: ExtendedAnnotationService = Depends(get_annotation_service),
):
    await parent_video(svc, video_id)
    await _parent_track(svc, video_id, track_id)
    annotations = await svc.get_annotations(track_id, filters)
    return listing("annotations", filters.offset or 0, [AnnotationSchema.model_validate(a) for a in annotations])


@router.get("/{track_id}/annotations/{annotation_id}")
async def get_annotation(
    video_id: int,
    track_id: int,
    annotation_id: int,
    svc: ExtendedAnnotationService = Depends(get_annotation_service),
):
    await parent_video(svc, video_id)
    await _parent_track(svc, video_id, track_id)
    annotation = await readable(svc, await _annotation_in(svc, track_id, annotation_id))
    return ok(AnnotationSchema.model_validate(annotation))


@router.delete("/{track_id}/annotations/{annotation_id}", status_code=204)
async def delete_annotation(
    video_id: int,
    track_id: int,
    annotation_id: int,
    svc: ExtendedAnnotationService = Depends(get_annotation_service),
):
    await annotatable_video(svc, video_id)
    await _parent_track(svc, video_id, track_id)
    annotation = await _annotation_in(svc, track_id, annotation_id)
    if annotation is None:
        raise NotFound(f"Annotation {annotation_id} not found")
    await writable(svc, annotation)
    await svc.delete_annotation(annotation)
    return no_content()


# ═══════════════════════════════════════════════════════════════════════
# Comments
# ═══════════════════════════════════════════════════════════════════════

async def _comment_scope(svc, video_id: int, track_id: int, annotation_id: int, write: bool = False) -> None:
    if write:
        await annotatable_video(svc, video_id)
    else:
        await parent_video(svc, video_id)
    await _parent_track(svc, video_id, track_id)
    await _parent_annotation(svc, track_id, annotation_id)


async def _post_comment(
    request: Request,
    svc: ExtendedAnnotationService,
    video_id: int,
    track_id: int,
    annotation_id: int,
    reply_to_id: Optional[int],
    text: Optional[str],
    access: Optional[int],
    tags: Optional[str],
):
    require(text)
    await _comment_scope(svc, video_id, track_id, annotation_id, write=True)
    if reply_to_id is not None and await _comment_in(svc, annotation_id, reply_to_id) is None:
        raise BadInput(f"Comment {reply_to_id} does not exist in annotation {annotation_id}")
    resource = await svc.create_resource(access, parse_tags(tags))
    comment = await svc.create_comment(annotation_id, reply_to_id, text, resource)
    return created(await comment_out(svc, comment), _comment_url(request, video_id, track_id, comment))


async def _list_comments(
    svc: ExtendedAnnotationService, annotation_id: int, reply_to_id: Optional[int], filters: ListFilter
):
    comments: List[CommentSchema] = [
        await comment_out(svc, c) for c in await svc.get_comments(annotation_id, reply_to_id, filters)
    ]
    return listing("comments", filters.offset or 0, comments)


@router.post("/{track_id}/annotations/{annotation_id}/comments", status_code=201)
async def create_comment(
    request: Request,
    video_id: int,
    track_id: int,
    annotation_id: int,
    text: Optional[str] = Form(None),
    access: Optional[int] = Form(None),
    tags: Optional[str] = Form(None),
    svc: ExtendedAnnotationService = Depends(get_annotation_service),
):
    return await _post_comment(request, svc, video_id, track_id, annotation_id, None, text, access, tags)


@router.post("/{track_id}/annotations/{annotation_id}/comments/{comment_id}/replies", status_code=201)
async def create_reply(
    request: Request,
    video_id: int,
    track_id: int,
    annotation_id: int,
    comment_id: int,
    text: Optional[str] = Form(None),
    access: Optional[int] = Form(None),
    tags: Optional[str] = Form(None),
    svc: ExtendedAnnotationService = Depends(get_annotation_service),
):
    return await _post_comment(request, svc, video_id, track_id, annotation_id, comment_id, text, access, tags)


@router.put("/{track_id}/annotations/{annotation_id}/comments/{comment_id}")
async def put_comment(
    request: Request,
    video_id: int,
    track_id: int,
    annotation_id: int,
    comment_id: int,
    text: Optional[str] = Form(None),
    access: Optional[int] = Form(None),
    tags: Optional[str] = Form(None),
    svc: ExtendedAnnotationService = Depends(get_annotation_service),
):
    require(text)
    await _comment_scope(svc, video_id, track_id, annotation_id, write=True)
    tag_map = parse_tags(tags)

    comment = await _comment_in(svc, annotation_id, comment_id)
    if comment is None:
        resource = await svc.create_resource(access, tag_map)
        comment = await svc.create_comment(annotation_id, None, text, resource)
        return created(await comment_out(svc, comment), _comment_url(request, video_id, track_id, comment))

    await writable(svc, comment)
    await svc.update_comment(comment, text=text, tags=tag_map)
    return ok(await comment_out(svc, comment), _comment_url(request, video_id, track_id, comment))


@router.get("/{track_id}/annotations/{annotation_id}/comments")
async def list_comments(
    video_id: int,
    track_id: int,
    annotation_id: int,
    filters: ListFilter = Depends(list_filter),
    svc: ExtendedAnnotationService = Depends(get_annotation_service),
):
    """Top-level comments of the annotation."""
    await _comment_scope(svc, video_id, track_id, annotation_id)
    return await _list_comments(svc, annotation_id, None, filters)


@router.get("/{track_id}/annotations/{annotation_id}/comments/{comment_id}/replies")
async def list_replies(
    video_id: int,
    track_id: int,
    annotation_id: int,
    comment_id: int,
    filters: ListFilter = Depends(list_filter),
    svc: ExtendedAnnotationService = Depends(get_annotation_service),
):
    await _comment_scope(svc, video_id, track_id, annotation_id)
    await readable(svc, await _comment_in(svc, annotation_id, comment_id))
    return await _list_comments(svc, annotation_id, comment_id, filters)


@router.get("/{track_id}/annotations/{annotation_id}/comments/{comment_id}")
async def get_comment(
    video_id: int,
    track_id: int,
    annotation_id: int,
    comment_id: int,
    svc: ExtendedAnnotationService = Depends(get_annotation_service),
):
    await _comment_scope(svc, video_id, track_id, annotation_id)
    comment = await readable(svc, await _comment_in(svc, annotation_id, comment_id))
    return ok(await comment_out(svc, comment))


@router.delete("/{track_id}/annotations/{annotation_id}/comments/{comment_id}", status_code=204)
async def delete_comment(
    video_id: int,
    track_id: int,
    annotation_id: int,
    comment_id: int,
    svc: ExtendedAnnotationService = Depends(get_annotation_service),
):
    """Delete the comment and every reply below it."""
    await _comment_scope(svc, video_id, track_id, annotation_id, write=True)
    comment = await _comment_in(svc, annotation_id, comment_id)
    if comment is None:
        raise NotFound(f"Comment {comment_id} not found")
    await writable(svc, comment)
    await svc.delete_comment(comment)
    return no_content()
