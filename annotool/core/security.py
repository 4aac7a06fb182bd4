"""
Request principal — the authenticated caller as reported by the host platform.

Authentication itself happens upstream; the host's auth proxy forwards the user
name and roles in headers (see ``Settings.user_header`` / ``Settings.roles_header``).
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import FrozenSet

from fastapi import Request

from annotool.core.config import get_settings


@dataclass(frozen=True)
class Principal:
    ext_id: str
    roles: FrozenSet[str] = field(default_factory=frozenset)

    @property
    def is_admin(self) -> bool:
        return get_settings().admin_role in self.roles

    def has_any_role(self, roles) -> bool:
        return any(role in self.roles for role in roles)


def principal_from_headers(headers) -> Principal:
    settings = get_settings()
    user = (headers.get(settings.user_header) or "").strip()
    if not user:
        return Principal(settings.anonymous_user, frozenset(settings.anonymous_roles))
    raw_roles = headers.get(settings.roles_header) or ""
    roles = frozenset(r.strip() for r in raw_roles.split(",") if r.strip())
    return Principal(user, roles)


async def get_principal(request: Request) -> Principal:
    return principal_from_headers(request.headers)
