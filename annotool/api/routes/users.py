"""
Annotool API — User routes.
"""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Form, Request
from fastapi.responses import PlainTextResponse

from annotool.api.deps import readable, writable
from annotool.api.params import require, trim_to_none
from annotool.api.responses import created, location, no_content, ok
from annotool.core.errors import Duplicate, NotFound
from annotool.models.models import User
from annotool.schemas.schemas import UserSchema
from annotool.services.annotation import ExtendedAnnotationService, get_annotation_service
from annotool.services.host.platform import ANNOTATE_ADMIN_ACTION

router = APIRouter(prefix="/users", tags=["Users"])


async def _known_user(svc: ExtendedAnnotationService, ext_id: str) -> Optional[User]:
    """Live user with this external id. Deleted users keep their id reserved."""
    user = await svc.get_user_by_ext_id(ext_id, include_deleted=True)
    if user is not None and user.is_deleted:
        raise Duplicate(f"User {ext_id} was deleted; its external id stays reserved")
    return user


@router.post("", status_code=201)
async def create_user(
    request: Request,
    user_extid: Optional[str] = Form(None),
    nickname: Optional[str] = Form(None),
    email: Optional[str] = Form(None),
    svc: ExtendedAnnotationService = Depends(get_annotation_service),
):
    """Register an annotation user. An existing external id is a conflict."""
    require(user_extid, nickname)
    if await _known_user(svc, user_extid) is not None:
        raise Duplicate(f"User {user_extid} already exists")

    resource = await svc.create_resource()
    user = await svc.create_user(user_extid, nickname, trim_to_none(email), resource)
    return created(UserSchema.model_validate(user), location(request, "users", user.id))


@router.put("")
async def put_user(
    request: Request,
    user_extid: Optional[str] = Form(None),
    nickname: Optional[str] = Form(None),
    email: Optional[str] = Form(None),
    svc: ExtendedAnnotationService = Depends(get_annotation_service),
):
    """Create the user, or update it when the external id is already known."""
    require(user_extid, nickname)
    user = await _known_user(svc, user_extid)
    if user is None:
        resource = await svc.create_resource()
        user = await svc.create_user(user_extid, nickname, trim_to_none(email), resource)
        return created(UserSchema.model_validate(user), location(request, "users", user.id))

    await writable(svc, user)
    await svc.update_user(user, ext_id=user_extid, nickname=nickname, email=trim_to_none(email))
    return ok(UserSchema.model_validate(user), location(request, "users", user.id))


@router.get("/is-annotate-admin/{mp_id}", response_class=PlainTextResponse)
async def is_annotate_admin(
    mp_id: str,
    svc: ExtendedAnnotationService = Depends(get_annotation_service),
):
    """``true`` when the caller may administrate annotations of the media package."""
    media_package = svc.find_media_package(mp_id)
    if media_package is None:
        return "false"
    return "true" if svc.has_video_access(media_package, ANNOTATE_ADMIN_ACTION) else "false"


@router.get("/{user_id}")
async def get_user(user_id: int, svc: ExtendedAnnotationService = Depends(get_annotation_service)):
    user = await readable(svc, await svc.get_user(user_id))
    return ok(UserSchema.model_validate(user))


@router.delete("/{user_id}", status_code=204)
async def delete_user(user_id: int, svc: ExtendedAnnotationService = Depends(get_annotation_service)):
    user = await svc.get_user(user_id)
    if user is None:
        raise NotFound(f"User {user_id} not found")
    await writable(svc, user)
    if not await svc.delete_user(user):
        raise NotFound(f"User {user_id} not found")
    return no_content()
