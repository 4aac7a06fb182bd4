"""
Annotool Annotation Service — shared plumbing.

Resource stamping, access checks, list filtering and the persistence error
translation every entity operation goes through.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence, Type, TypeVar

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from annotool.core.config import get_settings
from annotool.core.errors import Duplicate, InternalError
from annotool.core.security import Principal
from annotool.models.models import Access, Resource, ResourceMixin, User
from annotool.services.host.platform import AclEvaluator, MediaLookup, MediaPackage

logger = logging.getLogger(__name__)

E = TypeVar("E", bound=ResourceMixin)

_UNSET = object()


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class ListFilter:
    """Pagination, modified-since and tag filters for collection reads."""
    offset: Optional[int] = None
    limit: Optional[int] = None
    since: Optional[datetime] = None
    tags_and: Optional[Dict[str, str]] = None
    tags_or: Optional[Dict[str, str]] = None

    def matches_tags(self, tags: Optional[Dict[str, str]]) -> bool:
        tags = tags or {}
        if self.tags_and and any(tags.get(k) != v for k, v in self.tags_and.items()):
            return False
        if self.tags_or and not any(tags.get(k) == v for k, v in self.tags_or.items()):
            return False
        return True

    def page(self, rows: Sequence[E]) -> List[E]:
        start = self.offset or 0
        end = start + self.limit if self.limit else None
        return list(rows[start:end])


NO_FILTER = ListFilter()


class BaseAnnotationService:
    """Holds the request-scoped session, principal and host platform adapters."""

    def __init__(
        self,
        db: AsyncSession,
        principal: Principal,
        media_lookup: MediaLookup,
        acl_evaluator: AclEvaluator,
    ):
        self.db = db
        self.principal = principal
        self.media_lookup = media_lookup
        self.acl_evaluator = acl_evaluator
        self._current_user: Any = _UNSET

    # ── Principal ────────────────────────────────────────────────────────

    async def current_user(self) -> Optional[User]:
        """Annotation user record of the acting principal, if one exists."""
        if self._current_user is _UNSET:
            self._current_user = await self.db.scalar(
                select(User).where(User.ext_id == self.principal.ext_id, User.deleted_at.is_(None))
            )
        return self._current_user

    def forget_current_user(self) -> None:
        self._current_user = _UNSET

    async def current_user_id(self) -> Optional[int]:
        user = await self.current_user()
        return user.id if user is not None else None

    # ── Resources ────────────────────────────────────────────────────────

    async def create_resource(
        self, access: Optional[int] = None, tags: Optional[Dict[str, str]] = None
    ) -> Resource:
        user_id = await self.current_user_id()
        now = utcnow()
        return Resource(
            access=get_settings().default_access if access is None else access,
            created_by=user_id,
            updated_by=user_id,
            created_at=now,
            updated_at=now,
            tags=dict(tags or {}),
        )

    async def update_resource(self, entity: ResourceMixin, tags: Optional[Dict[str, str]] = None) -> Resource:
        entity.updated_by = await self.current_user_id()
        entity.updated_at = utcnow()
        if tags is not None:
            entity.tags = dict(tags)
        return entity.resource

    async def delete_resource(self, entity: ResourceMixin) -> Resource:
        if entity.deleted_at is None:
            entity.deleted_by = await self.current_user_id()
            entity.deleted_at = utcnow()
        return entity.resource

    async def has_resource_access(self, entity: ResourceMixin, write: bool = False) -> bool:
        resource = entity.resource
        if self.principal.is_admin:
            return True
        user_id = await self.current_user_id()
        if user_id is not None and resource.created_by == user_id:
            return True
        if not write and _readable_by_everyone(resource.access):
            return True
        return False

    # ── Host platform ────────────────────────────────────────────────────

    def find_media_package(self, ext_id: str) -> Optional[MediaPackage]:
        return self.media_lookup.find(ext_id)

    def has_video_access(self, media_package: MediaPackage, action: str) -> bool:
        return self.acl_evaluator.allows(self.principal, media_package, action)

    # ── Persistence helpers ──────────────────────────────────────────────

    async def _flush(self) -> None:
        try:
            await self.db.flush()
        except IntegrityError as e:
            raise Duplicate(str(e.orig)) from e
        except SQLAlchemyError as e:
            raise InternalError(str(e)) from e

    async def _add(self, entity: E) -> E:
        self.db.add(entity)
        await self._flush()
        return entity

    async def _get(self, model: Type[E], entity_id: int, include_deleted: bool = False) -> Optional[E]:
        try:
            entity = await self.db.get(model, entity_id)
        except SQLAlchemyError as e:
            raise InternalError(str(e)) from e
        if entity is None or (entity.deleted_at is not None and not include_deleted):
            return None
        return entity

    async def _list(self, model: Type[E], filters: ListFilter, *criteria) -> List[E]:
        query = select(model).where(model.deleted_at.is_(None), *criteria)
        if filters.since is not None:
            query = query.where(model.updated_at >= filters.since)
        query = query.order_by(model.id)
        try:
            rows = (await self.db.execute(query)).scalars().all()
        except SQLAlchemyError as e:
            raise InternalError(str(e)) from e

        visible = []
        for row in rows:
            if filters.matches_tags(row.tags) and await self.has_resource_access(row):
                visible.append(row)
        return filters.page(visible)

    async def _live(self, model: Type[E], *criteria) -> List[E]:
        """Every non-deleted row matching ``criteria``, regardless of access."""
        query = select(model).where(model.deleted_at.is_(None), *criteria).order_by(model.id)
        try:
            return list((await self.db.execute(query)).scalars().all())
        except SQLAlchemyError as e:
            raise InternalError(str(e)) from e

    async def _update(self, entity: E, fields: Dict[str, Any], tags: Optional[Dict[str, str]] = None) -> bool:
        """
        Apply ``fields`` (and ``tags``) to ``entity``. Nothing is written and no
        resource stamp changes when every value already equals the stored one.
        """
        changed = False
        for name, value in fields.items():
            if getattr(entity, name) != value:
                setattr(entity, name, value)
                changed = True
        if tags is not None and dict(entity.tags or {}) != dict(tags):
            changed = True
        if not changed:
            return False
        await self.update_resource(entity, tags)
        await self._flush()
        return True

    async def _soft_delete(self, entity: ResourceMixin) -> None:
        await self.delete_resource(entity)
        await self._flush()


def _readable_by_everyone(access: int) -> bool:
    try:
        return Access(access).readable_by_everyone
    except ValueError:
        return False
