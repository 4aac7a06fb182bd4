from annotool.services.annotation.base import NO_FILTER, ListFilter
from annotool.services.annotation.service import ExtendedAnnotationService, get_annotation_service

__all__ = ["ExtendedAnnotationService", "ListFilter", "NO_FILTER", "get_annotation_service"]
