"""
Annotool Annotation Service — scales, scale values and questionnaires.
"""
from __future__ import annotations

from typing import Dict, List, Optional

from annotool.core.errors import NotFound
from annotool.models.models import Questionnaire, Resource, Scale, ScaleValue, Video
from annotool.services.annotation.base import NO_FILTER, BaseAnnotationService, ListFilter


class ScaleOperations(BaseAnnotationService):

    # ── Scales ───────────────────────────────────────────────────────────

    async def create_scale(
        self, video_id: Optional[int], name: str, description: Optional[str], resource: Resource
    ) -> Scale:
        if video_id is not None and await self._get(Video, video_id) is None:
            raise NotFound(f"Video {video_id} not found")
        scale = Scale(video_id=video_id, name=name, description=description)
        scale.resource = resource
        return await self._add(scale)

    async def update_scale(
        self,
        scale: Scale,
        *,
        video_id: Optional[int],
        name: str,
        description: Optional[str],
        tags: Optional[Dict[str, str]] = None,
    ) -> bool:
        return await self._update(
            scale, {"video_id": video_id, "name": name, "description": description}, tags
        )

    async def delete_scale(self, scale: Scale) -> Scale:
        for value in await self._live(ScaleValue, ScaleValue.scale_id == scale.id):
            await self._soft_delete(value)
        await self._soft_delete(scale)
        return scale

    async def get_scale(self, scale_id: int, include_deleted: bool = False) -> Optional[Scale]:
        return await self._get(Scale, scale_id, include_deleted)

    async def get_scales(self, video_id: Optional[int], filters: ListFilter = NO_FILTER) -> List[Scale]:
        """Scales of a video, or the templates when ``video_id`` is None."""
        if video_id is None:
            return await self._list(Scale, filters, Scale.video_id.is_(None))
        return await self._list(Scale, filters, Scale.video_id == video_id)

    # ── Scale values ─────────────────────────────────────────────────────

    async def create_scale_value(
        self, scale_id: int, name: str, value: float, order: int, resource: Resource
    ) -> ScaleValue:
        if await self._get(Scale, scale_id) is None:
            raise NotFound(f"Scale {scale_id} not found")
        scale_value = ScaleValue(scale_id=scale_id, name=name, value=value, order=order)
        scale_value.resource = resource
        return await self._add(scale_value)

    async def update_scale_value(
        self,
        scale_value: ScaleValue,
        *,
        scale_id: int,
        name: str,
        value: float,
        order: int,
        tags: Optional[Dict[str, str]] = None,
    ) -> bool:
        return await self._update(
            scale_value, {"scale_id": scale_id, "name": name, "value": value, "order": order}, tags
        )

    async def delete_scale_value(self, scale_value: ScaleValue) -> ScaleValue:
        await self._soft_delete(scale_value)
        return scale_value

    async def get_scale_value(self, scale_value_id: int, include_deleted: bool = False) -> Optional[ScaleValue]:
        return await self._get(ScaleValue, scale_value_id, include_deleted)

    async def get_scale_values(self, scale_id: int, filters: ListFilter = NO_FILTER) -> List[ScaleValue]:
        return await self._list(ScaleValue, filters, ScaleValue.scale_id == scale_id)


class QuestionnaireOperations(BaseAnnotationService):

    async def create_questionnaire(
        self,
        video_id: Optional[int],
        title: str,
        content: str,
        settings: Optional[str],
        resource: Resource,
    ) -> Questionnaire:
        if video_id is not None and await self._get(Video, video_id) is None:
            raise NotFound(f"Video {video_id} not found")
        questionnaire = Questionnaire(video_id=video_id, title=title, content=content, settings=settings)
        questionnaire.resource = resource
        return await self._add(questionnaire)

    async def update_questionnaire(
        self,
        questionnaire: Questionnaire,
        *,
        title: str,
        content: str,
        settings: Optional[str],
        access: Optional[int] = None,
        tags: Optional[Dict[str, str]] = None,
    ) -> bool:
        fields = {"title": title, "content": content, "settings": settings}
        if access is not None:
            fields["access"] = access
        return await self._update(questionnaire, fields, tags)

    async def delete_questionnaire(self, questionnaire: Questionnaire) -> Questionnaire:
        await self._soft_delete(questionnaire)
        return questionnaire

    async def get_questionnaire(self, questionnaire_id: int, include_deleted: bool = False) -> Optional[Questionnaire]:
        return await self._get(Questionnaire, questionnaire_id, include_deleted)

    async def get_questionnaires(
        self, video_id: Optional[int], filters: ListFilter = NO_FILTER
    ) -> List[Questionnaire]:
        if video_id is None:
            return await self._list(Questionnaire, filters, Questionnaire.video_id.is_(None))
        return await self._list(Questionnaire, filters, Questionnaire.video_id == video_id)
