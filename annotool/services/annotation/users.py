"""
Annotool Annotation Service — users, videos and database maintenance.
"""
from __future__ import annotations

import logging
from dataclasses import replace
from typing import Dict, Optional

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError

from annotool.core.errors import InternalError
from annotool.models.models import ALL_TABLES, Resource, Track, User, Video
from annotool.services.annotation.base import BaseAnnotationService

logger = logging.getLogger(__name__)


class UserVideoOperations(BaseAnnotationService):

    # ── Users ────────────────────────────────────────────────────────────

    async def create_user(
        self, ext_id: str, nickname: str, email: Optional[str], resource: Resource
    ) -> User:
        user = User(ext_id=ext_id, nickname=nickname, email=email)
        user.resource = resource
        await self._add(user)

        # The principal may have had no user record when the resource was stamped;
        # in that case the new user owns itself.
        if resource.created_by is None and ext_id == self.principal.ext_id:
            self.forget_current_user()
            user.resource = replace(resource, created_by=user.id, updated_by=user.id)
            await self._flush()
        logger.info(f"Created user {user.id} ({ext_id})")
        return user

    async def update_user(
        self, user: User, *, ext_id: str, nickname: str, email: Optional[str]
    ) -> bool:
        return await self._update(user, {"ext_id": ext_id, "nickname": nickname, "email": email})

    async def delete_user(self, user: User) -> bool:
        if user.is_deleted:
            return False
        await self._soft_delete(user)
        if user.ext_id == self.principal.ext_id:
            self.forget_current_user()
        return True

    async def get_user(self, user_id: int, include_deleted: bool = False) -> Optional[User]:
        return await self._get(User, user_id, include_deleted)

    async def get_user_by_ext_id(self, ext_id: str, include_deleted: bool = False) -> Optional[User]:
        query = select(User).where(User.ext_id == ext_id)
        if not include_deleted:
            query = query.where(User.deleted_at.is_(None))
        return await self.db.scalar(query)

    # ── Videos ───────────────────────────────────────────────────────────

    async def create_video(self, ext_id: str, resource: Resource) -> Video:
        video = Video(ext_id=ext_id)
        video.resource = resource
        await self._add(video)
        logger.info(f"Created video {video.id} ({ext_id})")
        return video

    async def update_video(
        self, video: Video, *, ext_id: str, tags: Optional[Dict[str, str]] = None
    ) -> bool:
        return await self._update(video, {"ext_id": ext_id}, tags)

    async def delete_video(self, video: Video) -> bool:
        """Soft-delete the video and everything annotated on it."""
        if video.is_deleted:
            return False
        for track in await self._live(Track, Track.video_id == video.id):
            await self.delete_track(track)
        await self._soft_delete(video)
        return True

    async def get_video(self, video_id: int, include_deleted: bool = False) -> Optional[Video]:
        return await self._get(Video, video_id, include_deleted)

    async def get_video_by_ext_id(self, ext_id: str) -> Optional[Video]:
        return await self.db.scalar(
            select(Video).where(Video.ext_id == ext_id, Video.deleted_at.is_(None))
        )

    # ── Maintenance ──────────────────────────────────────────────────────

    async def clear_database(self) -> bool:
        """Hard-delete every annotation table. Not access-checked."""
        try:
            for model in ALL_TABLES:
                await self.db.execute(delete(model))
            await self.db.flush()
        except SQLAlchemyError as e:
            raise InternalError(str(e)) from e
        self.db.expunge_all()
        self.forget_current_user()
        logger.warning("Annotation database cleared")
        return True
