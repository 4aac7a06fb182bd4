"""
Annotool API — lenient parameter parsing shared by every router.

Absent or blank optional values mean "no filter"; present-but-unparseable values
are a ``BadInput``. Mandatory values are checked before the service is touched.
"""
from __future__ import annotations

import json
from datetime import date, datetime, time
from typing import Dict, Optional

from fastapi import Query
from pydantic import TypeAdapter, ValidationError

from annotool.core.errors import BadInput
from annotool.services.annotation.base import ListFilter

_datetime_adapter = TypeAdapter(datetime)


def require(*values: Optional[str]) -> None:
    """Every mandatory parameter must be present and non-blank."""
    for value in values:
        if value is None or not str(value).strip():
            raise BadInput("Missing mandatory parameter")


def trim_to_none(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


def parse_tags(value: Optional[str]) -> Optional[Dict[str, str]]:
    """JSON object of string → string, or None when absent."""
    value = trim_to_none(value)
    if value is None:
        return None
    try:
        parsed = json.loads(value)
    except ValueError:
        raise BadInput("Tags must be a JSON object")
    if not isinstance(parsed, dict):
        raise BadInput("Tags must be a JSON object")
    return {str(k): v if isinstance(v, str) else json.dumps(v) for k, v in parsed.items()}


def parse_since(value: Optional[str]) -> Optional[datetime]:
    """ISO-8601 date-time (or plain date), or None when absent."""
    value = trim_to_none(value)
    if value is None:
        return None
    try:
        return _datetime_adapter.validate_python(value)
    except ValidationError:
        pass
    try:
        return datetime.combine(date.fromisoformat(value), time.min)
    except ValueError:
        raise BadInput(f"Unparseable date: {value}")


def list_filter(
    limit: int = Query(0),
    offset: int = Query(0),
    since: Optional[str] = Query(None),
    tags_and: Optional[str] = Query(None, alias="tags-and"),
    tags_or: Optional[str] = Query(None, alias="tags-or"),
) -> ListFilter:
    """Dependency turning the common list query parameters into a ``ListFilter``."""
    return ListFilter(
        offset=offset if offset > 0 else None,
        limit=limit if limit > 0 else None,
        since=parse_since(since),
        tags_and=parse_tags(tags_and),
        tags_or=parse_tags(tags_or),
    )
