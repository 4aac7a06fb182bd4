"""
Annotool Annotation Service — categories and labels.
"""
from __future__ import annotations

from typing import Dict, List, Optional

from annotool.core.errors import NotFound
from annotool.models.models import Category, Label, Resource, Scale, Video
from annotool.services.annotation.base import NO_FILTER, BaseAnnotationService, ListFilter


class CategoryOperations(BaseAnnotationService):

    # ── Categories ───────────────────────────────────────────────────────

    async def create_category(
        self,
        series_ext_id: Optional[str],
        series_category_id: Optional[int],
        video_id: Optional[int],
        scale_id: Optional[int],
        name: str,
        description: Optional[str],
        settings: Optional[str],
        resource: Resource,
    ) -> Category:
        if video_id is not None and await self._get(Video, video_id) is None:
            raise NotFound(f"Video {video_id} not found")
        if scale_id is not None and await self._get(Scale, scale_id) is None:
            raise NotFound(f"Scale {scale_id} not found")
        category = Category(
            series_ext_id=series_ext_id,
            series_category_id=series_category_id,
            video_id=video_id,
            scale_id=scale_id,
            name=name,
            description=description,
            settings=settings,
        )
        category.resource = resource
        return await self._add(category)

    async def update_category(
        self,
        category: Category,
        *,
        series_ext_id: Optional[str],
        series_category_id: Optional[int],
        video_id: Optional[int],
        scale_id: Optional[int],
        name: str,
        description: Optional[str],
        settings: Optional[str],
        access: Optional[int] = None,
        tags: Optional[Dict[str, str]] = None,
    ) -> bool:
        fields = {
            "series_ext_id": series_ext_id,
            "series_category_id": series_category_id,
            "video_id": video_id,
            "scale_id": scale_id,
            "name": name,
            "description": description,
            "settings": settings,
        }
        if access is not None:
            fields["access"] = access
        return await self._update(category, fields, tags)

    async def delete_category(self, category: Category) -> Category:
        for label in await self._live(Label, Label.category_id == category.id):
            await self._soft_delete(label)
        await self._soft_delete(category)
        return category

    async def get_category(self, category_id: int, include_deleted: bool = False) -> Optional[Category]:
        return await self._get(Category, category_id, include_deleted)

    async def get_categories(
        self,
        series_ext_id: Optional[str],
        video_id: Optional[int],
        filters: ListFilter = NO_FILTER,
    ) -> List[Category]:
        """
        Categories of a video, or the templates when ``video_id`` is None.

        With a ``series_ext_id`` and a video, series masters living in other videos
        are first copied into this video so the listing always carries the series.
        """
        if video_id is None:
            criteria = [Category.video_id.is_(None)]
            if series_ext_id is not None:
                criteria.append(Category.series_ext_id == series_ext_id)
            return await self._list(Category, filters, *criteria)

        if series_ext_id is not None:
            await self.derive_series_categories(series_ext_id, video_id)
        return await self._list(Category, filters, Category.video_id == video_id)

    # ── Labels ───────────────────────────────────────────────────────────

    async def create_label(
        self,
        category_id: int,
        value: str,
        abbreviation: str,
        description: Optional[str],
        settings: Optional[str],
        resource: Resource,
        series_label_id: Optional[int] = None,
    ) -> Label:
        if await self._get(Category, category_id) is None:
            raise NotFound(f"Category {category_id} not found")
        label = Label(
            series_label_id=series_label_id,
            category_id=category_id,
            value=value,
            abbreviation=abbreviation,
            description=description,
            settings=settings,
        )
        label.resource = resource
        return await self._add(label)

    async def update_label(
        self,
        label: Label,
        *,
        category_id: int,
        value: str,
        abbreviation: str,
        description: Optional[str],
        settings: Optional[str],
        tags: Optional[Dict[str, str]] = None,
    ) -> bool:
        fields = {
            "category_id": category_id,
            "value": value,
            "abbreviation": abbreviation,
            "description": description,
            "settings": settings,
        }
        return await self._update(label, fields, tags)

    async def delete_label(self, label: Label) -> Label:
        await self._soft_delete(label)
        return label

    async def get_label(self, label_id: int, include_deleted: bool = False) -> Optional[Label]:
        return await self._get(Label, label_id, include_deleted)

    async def get_labels(self, category_id: int, filters: ListFilter = NO_FILTER) -> List[Label]:
        return await self._list(Label, filters, Label.category_id == category_id)
