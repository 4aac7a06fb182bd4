"""
Annotool API — response helpers: JSON bodies, ``Location`` headers, list envelopes.
"""
from __future__ import annotations

from typing import Iterable, Optional

from fastapi import Request, Response
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from annotool.core.config import get_settings


def location(request: Request, *segments) -> str:
    base = str(request.base_url).rstrip("/") + get_settings().api_prefix
    return "/".join([base, *(str(s) for s in segments)])


def ok(body: BaseModel, location_url: Optional[str] = None) -> JSONResponse:
    headers = {"Location": location_url} if location_url else None
    return JSONResponse(status_code=200, content=jsonable_encoder(body), headers=headers)


def created(body: BaseModel, location_url: str) -> JSONResponse:
    return JSONResponse(status_code=201, content=jsonable_encoder(body), headers={"Location": location_url})


def listing(name: str, offset: int, items: Iterable[BaseModel]) -> JSONResponse:
    items = list(items)
    return JSONResponse(
        status_code=200,
        content={"offset": offset, "count": len(items), name: jsonable_encoder(items)},
    )


def no_content() -> Response:
    return Response(status_code=204)
