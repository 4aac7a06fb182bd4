"""
Annotool ORM Models — complete annotation data layer.

Every entity embeds the same audit/access envelope (``ResourceMixin``). Rows are
never physically removed by the API: deletion stamps ``deleted_at``/``deleted_by``.
"""
from __future__ import annotations

import enum
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Dict, Optional

from sqlalchemy import (
    JSON, DateTime, Float, ForeignKey, Index, Integer, String, Text,
)
from sqlalchemy.orm import Mapped, mapped_column

from annotool.core.database import Base


# ═══════════════════════════════════════════════════════════════════════
# Resource envelope
# ═══════════════════════════════════════════════════════════════════════

class Access(enum.IntEnum):
    PRIVATE = 0
    PUBLIC = 1
    SHARED_WITH_ADMIN = 2
    SHARED_WITH_EVERYONE = 3

    @property
    def readable_by_everyone(self) -> bool:
        return self in (Access.PUBLIC, Access.SHARED_WITH_EVERYONE)


@dataclass(frozen=True)
class Resource:
    """Value object view of the resource columns."""
    access: int = Access.PRIVATE
    created_by: Optional[int] = None
    updated_by: Optional[int] = None
    deleted_by: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    deleted_at: Optional[datetime] = None
    tags: Dict[str, str] = field(default_factory=dict)

    def with_access(self, access: Optional[int]) -> "Resource":
        return self if access is None else replace(self, access=access)


class ResourceMixin:
    access: Mapped[int] = mapped_column(Integer, default=Access.PRIVATE)
    created_by: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    updated_by: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    deleted_by: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    created_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    deleted_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    tags: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)

    @property
    def resource(self) -> Resource:
        return Resource(
            access=self.access if self.access is not None else Access.PRIVATE,
            created_by=self.created_by,
            updated_by=self.updated_by,
            deleted_by=self.deleted_by,
            created_at=self.created_at,
            updated_at=self.updated_at,
            deleted_at=self.deleted_at,
            tags=dict(self.tags or {}),
        )

    @resource.setter
    def resource(self, resource: Resource) -> None:
        self.access = int(resource.access)
        self.created_by = resource.created_by
        self.updated_by = resource.updated_by
        self.deleted_by = resource.deleted_by
        self.created_at = resource.created_at
        self.updated_at = resource.updated_at
        self.deleted_at = resource.deleted_at
        self.tags = dict(resource.tags)

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None


# ═══════════════════════════════════════════════════════════════════════
# Users & Videos
# ═══════════════════════════════════════════════════════════════════════

class User(ResourceMixin, Base):
    __tablename__ = "xannotations_user"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    ext_id: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    nickname: Mapped[str] = mapped_column(String(255))
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)


class Video(ResourceMixin, Base):
    __tablename__ = "xannotations_video"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    ext_id: Mapped[str] = mapped_column(String(255), unique=True, index=True)


# ═══════════════════════════════════════════════════════════════════════
# Tracks, Annotations, Comments
# ═══════════════════════════════════════════════════════════════════════

class Track(ResourceMixin, Base):
    __tablename__ = "xannotations_track"
    __table_args__ = (
        Index("ix_track_video", "video_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    video_id: Mapped[int] = mapped_column(ForeignKey("xannotations_video.id"))
    name: Mapped[str] = mapped_column(String(255))
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    settings: Mapped[Optional[str]] = mapped_column(Text, nullable=True)


class Annotation(ResourceMixin, Base):
    """Time-anchored note on a track; ``start``/``duration`` are in seconds."""
    __tablename__ = "xannotations_annotation"
    __table_args__ = (
        Index("ix_annotation_track", "track_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    track_id: Mapped[int] = mapped_column(ForeignKey("xannotations_track.id"))
    start: Mapped[float] = mapped_column(Float, default=0.0)
    duration: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    content: Mapped[str] = mapped_column(Text)
    created_from_questionnaire: Mapped[int] = mapped_column(Integer, default=0)
    settings: Mapped[Optional[str]] = mapped_column(Text, nullable=True)


class Comment(ResourceMixin, Base):
    """Threaded comment node — replies point at their parent via ``reply_to_id``."""
    __tablename__ = "xannotations_comment"
    __table_args__ = (
        Index("ix_comment_annotation", "annotation_id"),
        Index("ix_comment_reply_to", "reply_to_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    annotation_id: Mapped[int] = mapped_column(ForeignKey("xannotations_annotation.id"))
    reply_to_id: Mapped[Optional[int]] = mapped_column(ForeignKey("xannotations_comment.id"), nullable=True)
    text: Mapped[str] = mapped_column(Text)


# ═══════════════════════════════════════════════════════════════════════
# Scales, Questionnaires, Categories, Labels
# ═══════════════════════════════════════════════════════════════════════

class Scale(ResourceMixin, Base):
    """A scale without a video is a template."""
    __tablename__ = "xannotations_scale"
    __table_args__ = (
        Index("ix_scale_video", "video_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    video_id: Mapped[Optional[int]] = mapped_column(ForeignKey("xannotations_video.id"), nullable=True)
    name: Mapped[str] = mapped_column(String(255))
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)


class ScaleValue(ResourceMixin, Base):
    __tablename__ = "xannotations_scale_value"
    __table_args__ = (
        Index("ix_scale_value_scale", "scale_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    scale_id: Mapped[int] = mapped_column(ForeignKey("xannotations_scale.id"))
    name: Mapped[str] = mapped_column(String(255))
    value: Mapped[float] = mapped_column(Float, default=0.0)
    order: Mapped[int] = mapped_column("order_index", Integer, default=0)


class Questionnaire(ResourceMixin, Base):
    __tablename__ = "xannotations_questionnaire"
    __table_args__ = (
        Index("ix_questionnaire_video", "video_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    video_id: Mapped[Optional[int]] = mapped_column(ForeignKey("xannotations_video.id"), nullable=True)
    title: Mapped[str] = mapped_column(String(255))
    content: Mapped[str] = mapped_column(Text)
    settings: Mapped[Optional[str]] = mapped_column(Text, nullable=True)


class Category(ResourceMixin, Base):
    """
    Template (no video), series master (``series_ext_id`` set) or per-video copy of
    a master (``series_category_id`` points at the master).
    """
    __tablename__ = "xannotations_category"
    __table_args__ = (
        Index("ix_category_video", "video_id"),
        Index("ix_category_series", "series_ext_id"),
        Index("ix_category_series_category", "series_category_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    series_ext_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    series_category_id: Mapped[Optional[int]] = mapped_column(ForeignKey("xannotations_category.id"), nullable=True)
    video_id: Mapped[Optional[int]] = mapped_column(ForeignKey("xannotations_video.id"), nullable=True)
    scale_id: Mapped[Optional[int]] = mapped_column(ForeignKey("xannotations_scale.id"), nullable=True)
    name: Mapped[str] = mapped_column(String(255))
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    settings: Mapped[Optional[str]] = mapped_column(Text, nullable=True)


class Label(ResourceMixin, Base):
    __tablename__ = "xannotations_label"
    __table_args__ = (
        Index("ix_label_category", "category_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    series_label_id: Mapped[Optional[int]] = mapped_column(ForeignKey("xannotations_label.id"), nullable=True)
    category_id: Mapped[int] = mapped_column(ForeignKey("xannotations_category.id"))
    value: Mapped[str] = mapped_column(String(255))
    abbreviation: Mapped[str] = mapped_column(String(255))
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    settings: Mapped[Optional[str]] = mapped_column(Text, nullable=True)


# Children first, so hard deletes never trip a foreign key
ALL_TABLES = (
    Comment, Annotation, Track, Label, Category, ScaleValue, Scale,
    Questionnaire, Video, User,
)
