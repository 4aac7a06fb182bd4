"""
Annotool Annotation Service — tracks, annotations and threaded comments.
"""
from __future__ import annotations

from typing import Dict, List, Optional

from sqlalchemy import func, select

from annotool.core.errors import NotFound
from annotool.models.models import Annotation, Comment, Resource, Track, Video
from annotool.services.annotation.base import NO_FILTER, BaseAnnotationService, ListFilter


class TrackOperations(BaseAnnotationService):

    # ── Tracks ───────────────────────────────────────────────────────────

    async def create_track(
        self,
        video_id: int,
        name: str,
        description: Optional[str],
        settings: Optional[str],
        resource: Resource,
    ) -> Track:
        if await self._get(Video, video_id) is None:
            raise NotFound(f"Video {video_id} not found")
        track = Track(video_id=video_id, name=name, description=description, settings=settings)
        track.resource = resource
        return await self._add(track)

    async def update_track(
        self,
        track: Track,
        *,
        name: str,
        description: Optional[str],
        settings: Optional[str],
        access: Optional[int] = None,
        tags: Optional[Dict[str, str]] = None,
    ) -> bool:
        fields = {"name": name, "description": description, "settings": settings}
        if access is not None:
            fields["access"] = access
        return await self._update(track, fields, tags)

    async def delete_track(self, track: Track) -> bool:
        if track.is_deleted:
            return False
        for annotation in await self._live(Annotation, Annotation.track_id == track.id):
            await self.delete_annotation(annotation)
        await self._soft_delete(track)
        return True

    async def get_track(self, track_id: int, include_deleted: bool = False) -> Optional[Track]:
        return await self._get(Track, track_id, include_deleted)

    async def get_tracks(self, video_id: int, filters: ListFilter = NO_FILTER) -> List[Track]:
        return await self._list(Track, filters, Track.video_id == video_id)

    # ── Annotations ──────────────────────────────────────────────────────

    async def create_annotation(
        self,
        track_id: int,
        start: float,
        duration: Optional[float],
        content: str,
        created_from_questionnaire: int,
        settings: Optional[str],
        resource: Resource,
    ) -> Annotation:
        if await self._get(Track, track_id) is None:
            raise NotFound(f"Track {track_id} not found")
        annotation = Annotation(
            track_id=track_id,
            start=start,
            duration=duration,
            content=content,
            created_from_questionnaire=created_from_questionnaire,
            settings=settings,
        )
        annotation.resource = resource
        return await self._add(annotation)

    async def update_annotation(
        self,
        annotation: Annotation,
        *,
        start: float,
        duration: Optional[float],
        content: str,
        created_from_questionnaire: int,
        settings: Optional[str],
        access: Optional[int] = None,
        tags: Optional[Dict[str, str]] = None,
    ) -> bool:
        fields = {
            "start": start,
            "duration": duration,
            "content": content,
            "created_from_questionnaire": created_from_questionnaire,
            "settings": settings,
        }
        if access is not None:
            fields["access"] = access
        return await self._update(annotation, fields, tags)

    async def delete_annotation(self, annotation: Annotation) -> bool:
        if annotation.is_deleted:
            return False
        for comment in await self._live(Comment, Comment.annotation_id == annotation.id):
            await self._soft_delete(comment)
        await self._soft_delete(annotation)
        return True

    async def get_annotation(self, annotation_id: int, include_deleted: bool = False) -> Optional[Annotation]:
        return await self._get(Annotation, annotation_id, include_deleted)

    async def get_annotations(self, track_id: int, filters: ListFilter = NO_FILTER) -> List[Annotation]:
        return await self._list(Annotation, filters, Annotation.track_id == track_id)

    # ── Comments ─────────────────────────────────────────────────────────

    async def create_comment(
        self, annotation_id: int, reply_to_id: Optional[int], text: str, resource: Resource
    ) -> Comment:
        if await self._get(Annotation, annotation_id) is None:
            raise NotFound(f"Annotation {annotation_id} not found")
        if reply_to_id is not None:
            parent = await self._get(Comment, reply_to_id)
            if parent is None or parent.annotation_id != annotation_id:
                raise NotFound(f"Comment {reply_to_id} not found")
        comment = Comment(annotation_id=annotation_id, reply_to_id=reply_to_id, text=text)
        comment.resource = resource
        return await self._add(comment)

    async def update_comment(
        self, comment: Comment, *, text: str, tags: Optional[Dict[str, str]] = None
    ) -> bool:
        return await self._update(comment, {"text": text}, tags)

    async def delete_comment(self, comment: Comment) -> bool:
        """Soft-delete a comment together with its reply subtree."""
        if comment.is_deleted:
            return False
        for reply in await self._live(Comment, Comment.reply_to_id == comment.id):
            await self.delete_comment(reply)
        await self._soft_delete(comment)
        return True

    async def get_comment(self, comment_id: int, include_deleted: bool = False) -> Optional[Comment]:
        return await self._get(Comment, comment_id, include_deleted)

    async def get_comments(
        self,
        annotation_id: int,
        reply_to_id: Optional[int] = None,
        filters: ListFilter = NO_FILTER,
    ) -> List[Comment]:
        """Top-level comments of an annotation, or the direct replies to ``reply_to_id``."""
        if reply_to_id is None:
            thread = Comment.reply_to_id.is_(None)
        else:
            thread = Comment.reply_to_id == reply_to_id
        return await self._list(Comment, filters, Comment.annotation_id == annotation_id, thread)

    async def count_replies(self, comment_id: int) -> int:
        return await self.db.scalar(
            select(func.count(Comment.id)).where(
                Comment.reply_to_id == comment_id, Comment.deleted_at.is_(None)
            )
        ) or 0
