"""
Annotool host platform adapters.

The surrounding video platform owns media metadata and ACLs. The annotation
service only needs two narrow questions answered:

  - does a media package with this external id exist?  (``MediaLookup``)
  - may this principal perform ``action`` on it?        (``AclEvaluator``)

``RegistryMediaLookup`` answers the first from a JSON registry file (optionally
falling back to an open lookup where every id exists); ``RoleAclEvaluator`` answers
the second from the package ACL's role lists.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Protocol

from annotool.core.config import get_settings
from annotool.core.security import Principal

logger = logging.getLogger(__name__)

ANNOTATE_ACTION = "annotate"
ANNOTATE_ADMIN_ACTION = "annotate-admin"


@dataclass(frozen=True)
class MediaPackage:
    id: str
    series_id: Optional[str] = None
    acl: Dict[str, List[str]] = field(default_factory=dict)


class MediaLookup(Protocol):
    def find(self, ext_id: str) -> Optional[MediaPackage]:
        ...


class AclEvaluator(Protocol):
    def allows(self, principal: Principal, media_package: MediaPackage, action: str) -> bool:
        ...


def default_acl() -> Dict[str, List[str]]:
    settings = get_settings()
    return {
        ANNOTATE_ACTION: list(settings.annotate_roles),
        ANNOTATE_ADMIN_ACTION: list(settings.annotate_admin_roles),
    }


class RegistryMediaLookup:
    """In-memory registry of media packages, optionally seeded from a JSON file."""

    def __init__(self, packages: Optional[Dict[str, MediaPackage]] = None, open_lookup: bool = False):
        self._packages: Dict[str, MediaPackage] = dict(packages or {})
        self.open_lookup = open_lookup

    @classmethod
    def from_file(cls, path: str, open_lookup: bool = False) -> "RegistryMediaLookup":
        raw = json.loads(Path(path).read_text(encoding="utf-8"))
        packages = {}
        for mp_id, entry in raw.items():
            packages[mp_id] = MediaPackage(
                id=mp_id,
                series_id=entry.get("series_id"),
                acl={action: list(roles) for action, roles in (entry.get("acl") or {}).items()},
            )
        logger.info(f"Loaded {len(packages)} media packages from {path}")
        return cls(packages, open_lookup=open_lookup)

    def register(self, media_package: MediaPackage) -> None:
        self._packages[media_package.id] = media_package

    def find(self, ext_id: str) -> Optional[MediaPackage]:
        mp = self._packages.get(ext_id)
        if mp is None and self.open_lookup:
            return MediaPackage(id=ext_id, acl=default_acl())
        return mp


class RoleAclEvaluator:
    """Grants an action when the principal holds one of the roles listed for it."""

    def allows(self, principal: Principal, media_package: MediaPackage, action: str) -> bool:
        if principal.is_admin:
            return True
        return principal.has_any_role(media_package.acl.get(action, ()))


_media_lookup: Optional[RegistryMediaLookup] = None
_acl_evaluator = RoleAclEvaluator()


def get_media_lookup() -> MediaLookup:
    global _media_lookup
    if _media_lookup is None:
        settings = get_settings()
        if settings.media_registry_file:
            _media_lookup = RegistryMediaLookup.from_file(
                settings.media_registry_file, open_lookup=settings.open_media_lookup
            )
        else:
            _media_lookup = RegistryMediaLookup(open_lookup=settings.open_media_lookup)
    return _media_lookup


def get_acl_evaluator() -> AclEvaluator:
    return _acl_evaluator
