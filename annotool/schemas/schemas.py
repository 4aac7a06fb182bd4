"""
Annotool API Schemas — Pydantic v2 response models.

Requests are form-encoded and parsed in the routers; everything returned to
clients goes through these models, built straight from ORM rows.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ResourceSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: int
    access: int = 0
    created_by: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_by: Optional[int] = None
    updated_at: Optional[datetime] = None
    deleted_by: Optional[int] = None
    deleted_at: Optional[datetime] = None
    tags: Dict[str, str] = {}

    @field_validator("tags", mode="before")
    @classmethod
    def _tags_default(cls, value):
        return value or {}

    @field_validator("created_at", "updated_at", "deleted_at")
    @classmethod
    def _as_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        # Timestamps are written in UTC; some backends hand them back naive
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


# ═══════════════════════════════════════════════════════════════════════
# Users & Videos
# ═══════════════════════════════════════════════════════════════════════

class UserSchema(ResourceSchema):
    user_extid: str = Field(validation_alias="ext_id")
    nickname: str
    email: Optional[str] = None


class VideoSchema(ResourceSchema):
    video_extid: str = Field(validation_alias="ext_id")


# ═══════════════════════════════════════════════════════════════════════
# Tracks, Annotations, Comments
# ═══════════════════════════════════════════════════════════════════════

class TrackSchema(ResourceSchema):
    video_id: int
    name: str
    description: Optional[str] = None
    settings: Optional[str] = None


class AnnotationSchema(ResourceSchema):
    track_id: int
    start: float
    duration: Optional[float] = None
    content: str
    created_from_questionnaire: int
    settings: Optional[str] = None


class CommentSchema(ResourceSchema):
    annotation_id: int
    reply_to_id: Optional[int] = None
    text: str
    replies_count: int = 0


# ═══════════════════════════════════════════════════════════════════════
# Scales, Questionnaires, Categories, Labels
# ═══════════════════════════════════════════════════════════════════════

class ScaleValueSchema(ResourceSchema):
    scale_id: int
    name: str
    value: float
    order: int


class ScaleSchema(ResourceSchema):
    video_id: Optional[int] = None
    name: str
    description: Optional[str] = None


class QuestionnaireSchema(ResourceSchema):
    video_id: Optional[int] = None
    title: str
    content: str
    settings: Optional[str] = None


class LabelSchema(ResourceSchema):
    series_label_id: Optional[int] = None
    category_id: int
    value: str
    abbreviation: str
    description: Optional[str] = None
    settings: Optional[str] = None


class CategorySchema(ResourceSchema):
    series_extid: Optional[str] = Field(default=None, validation_alias="series_ext_id")
    series_category_id: Optional[int] = None
    video_id: Optional[int] = None
    scale_id: Optional[int] = None
    name: str
    description: Optional[str] = None
    settings: Optional[str] = None
    labels: List[LabelSchema] = []


# ═══════════════════════════════════════════════════════════════════════
# Service info
# ═══════════════════════════════════════════════════════════════════════

class HealthResponse(BaseModel):
    status: str
    version: str
