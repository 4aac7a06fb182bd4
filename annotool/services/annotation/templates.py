"""
Annotool Template/Instance Resolver.

Scales, categories and questionnaires can be authored once as templates (no video)
and copied into videos. Categories and labels additionally form a series hierarchy:

    template (no video)
      → series master   (series_ext_id set, series_category_id unset)
        → per-video copy (series_category_id / series_label_id → master)

All copy, re-derivation, update-propagation and delete-redirect rules for that
hierarchy live here.
"""
from __future__ import annotations

import logging
from typing import Optional

from annotool.core.errors import BadInput, NotFound
from annotool.models.models import Category, Label, Questionnaire, Resource, Scale, ScaleValue
from annotool.services.annotation.base import BaseAnnotationService

logger = logging.getLogger(__name__)


class TemplateOperations(BaseAnnotationService):

    # ── Copies ───────────────────────────────────────────────────────────

    async def create_scale_from_template(
        self, video_id: int, template_scale_id: int, resource: Resource
    ) -> Scale:
        template = await self.get_scale(template_scale_id)
        if template is None:
            raise NotFound(f"Template scale {template_scale_id} not found")

        scale = await self.create_scale(video_id, template.name, template.description, resource)
        values = await self._live(ScaleValue, ScaleValue.scale_id == template.id)
        for value in values:
            await self.create_scale_value(scale.id, value.name, value.value, value.order, resource)
        logger.info(f"Copied scale {template.id} into video {video_id} as {scale.id} ({len(values)} values)")
        return scale

    async def create_category_from_template(
        self,
        template_category_id: int,
        series_ext_id: Optional[str],
        series_category_id: Optional[int],
        video_id: int,
        resource: Resource,
    ) -> Optional[Category]:
        """
        Deep-copy a category and its labels into ``video_id``. When copying from a
        series master (``series_category_id`` given) every label copy remembers the
        master label it came from. Returns None when the template does not exist.
        """
        template = await self.get_category(template_category_id)
        if template is None:
            return None

        scale_id = template.scale_id
        if scale_id is not None:
            scale = await self.get_scale(scale_id)
            if scale is not None and scale.video_id is None:
                scale_id = (await self.create_scale_from_template(video_id, scale.id, resource)).id

        category = await self.create_category(
            series_ext_id,
            series_category_id,
            video_id,
            scale_id,
            template.name,
            template.description,
            template.settings,
            resource,
        )
        for label in await self._live(Label, Label.category_id == template.id):
            await self.create_label(
                category.id,
                label.value,
                label.abbreviation,
                label.description,
                label.settings,
                resource,
                series_label_id=label.id if series_category_id is not None else None,
            )
        return category

    async def create_questionnaire_from_template(
        self, template_questionnaire_id: int, video_id: int, resource: Resource
    ) -> Optional[Questionnaire]:
        template = await self.get_questionnaire(template_questionnaire_id)
        if template is None:
            return None
        return await self.create_questionnaire(
            video_id, template.title, template.content, template.settings, resource
        )

    # ── Series ───────────────────────────────────────────────────────────

    async def derive_series_categories(self, series_ext_id: str, video_id: int) -> int:
        """Copy every master of the series that this video lacks. Returns the copy count."""
        masters = await self._live(
            Category,
            Category.series_ext_id == series_ext_id,
            Category.series_category_id.is_(None),
        )
        local = await self._live(Category, Category.video_id == video_id)
        present = {c.series_category_id for c in local if c.series_category_id is not None}

        created = 0
        for master in masters:
            if master.video_id == video_id or master.id in present:
                continue
            resource = await self.create_resource(master.access, master.tags)
            await self.create_category_from_template(master.id, series_ext_id, master.id, video_id, resource)
            created += 1
        if created:
            logger.info(f"Derived {created} series categories of {series_ext_id} into video {video_id}")
        return created

    async def resolve_series_video_id(
        self, series_category_id: Optional[int], video_id: Optional[int]
    ) -> Optional[int]:
        """
        Video an edited category should stay associated with: the series master's own
        video when the edit comes from a copy, otherwise ``video_id``.
        """
        if series_category_id is None:
            return video_id
        master = await self.get_category(series_category_id)
        if master is None:
            raise BadInput(f"Series category {series_category_id} not found")
        return master.video_id if master.video_id is not None else video_id

    async def update_category_and_delete_other_series_categories(
        self, category: Category, **fields
    ) -> bool:
        """
        Write the edit to the master and soft-delete every copy derived from it;
        copies are re-derived the next time a video of the series lists categories.
        """
        changed = await self.update_category(category, **fields)
        if not changed:
            return False
        copies = await self._live(
            Category, Category.series_category_id == category.id, Category.id != category.id
        )
        for copy in copies:
            await self.delete_category(copy)
        if copies:
            logger.info(f"Series category {category.id} updated; dropped {len(copies)} copies")
        return True

    async def resolve_label_delete_target(self, label: Label) -> Label:
        """
        Deleting a copy of a series label deletes the series master instead.
        A missing master is NotFound.
        """
        if label.series_label_id is None:
            return label
        master = await self.get_label(label.series_label_id)
        if master is None:
            raise NotFound(f"Series label {label.series_label_id} not found")
        return master
