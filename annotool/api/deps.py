"""
Annotool API — lookups and guards shared by the routers.

Each guard either returns the entity it resolved or raises the ``AnnotationError``
the endpoint contract calls for; the exception handler does the HTTP mapping.
"""
from __future__ import annotations

from typing import Optional, TypeVar

from annotool.core.errors import BadInput, Forbidden, NotFound, Unauthorized
from annotool.models.models import Category, Comment, ResourceMixin, Scale, Video
from annotool.schemas.schemas import CategorySchema, CommentSchema, LabelSchema
from annotool.services.annotation import ExtendedAnnotationService
from annotool.services.host.platform import ANNOTATE_ACTION

E = TypeVar("E", bound=ResourceMixin)


async def parent_video(svc: ExtendedAnnotationService, video_id: Optional[int]) -> Optional[Video]:
    """The video a scoped route hangs off; a missing parent is a bad request."""
    if video_id is None:
        return None
    video = await svc.get_video(video_id)
    if video is None:
        raise BadInput(f"Video {video_id} does not exist")
    return video


async def parent_scale(svc: ExtendedAnnotationService, scale_id: int, include_deleted: bool = False) -> Scale:
    scale = await svc.get_scale(scale_id, include_deleted)
    if scale is None:
        raise BadInput(f"Scale {scale_id} does not exist")
    return scale


async def parent_category(
    svc: ExtendedAnnotationService, category_id: int, include_deleted: bool = False
) -> Category:
    category = await svc.get_category(category_id, include_deleted)
    if category is None:
        raise BadInput(f"Category {category_id} does not exist")
    return category


def require_annotate(svc: ExtendedAnnotationService, video_ext_id: str) -> None:
    """The principal must be allowed to annotate the host media package."""
    media_package = svc.find_media_package(video_ext_id)
    if media_package is None:
        raise BadInput(f"No media package {video_ext_id}")
    if not svc.has_video_access(media_package, ANNOTATE_ACTION):
        raise Forbidden(f"Not allowed to annotate {video_ext_id}")


async def annotatable_video(svc: ExtendedAnnotationService, video_id: Optional[int]) -> Optional[Video]:
    """Parent video of a write; the principal must be allowed to annotate it. Templates pass through."""
    video = await parent_video(svc, video_id)
    if video is not None:
        require_annotate(svc, video.ext_id)
    return video


async def readable(svc: ExtendedAnnotationService, entity: Optional[E]) -> E:
    if entity is None:
        raise NotFound()
    if not await svc.has_resource_access(entity):
        raise Unauthorized()
    return entity


async def writable(svc: ExtendedAnnotationService, entity: E) -> E:
    if not await svc.has_resource_access(entity, write=True):
        raise Unauthorized()
    return entity


# ── Representations ─────────────────────────────────────────────────────

async def comment_out(svc: ExtendedAnnotationService, comment: Comment) -> CommentSchema:
    schema = CommentSchema.model_validate(comment)
    return schema.model_copy(update={"replies_count": await svc.count_replies(comment.id)})


async def category_out(svc: ExtendedAnnotationService, category: Category) -> CategorySchema:
    schema = CategorySchema.model_validate(category)
    if category.is_deleted:
        return schema
    labels = [LabelSchema.model_validate(label) for label in await svc.get_labels(category.id)]
    return schema.model_copy(update={"labels": labels})
