"""
Annotool Core Settings.

All values can be overridden through ``ANNOTOOL_*`` environment variables or a
``.env`` file next to the process working directory.
"""
from __future__ import annotations

from functools import lru_cache
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8",
        env_prefix="ANNOTOOL_", case_sensitive=False,
    )

    # ── App ──────────────────────────────────────────────────────────────
    app_name: str = "Annotool"
    app_version: str = "2.0.0"
    debug: bool = False
    log_level: str = "INFO"
    api_prefix: str = "/extended-annotations"
    cors_origins: List[str] = ["*"]

    # ── PostgreSQL ───────────────────────────────────────────────────────
    db_host: str = "postgres"
    db_port: int = 5432
    db_user: str = "annotool"
    db_password: str = "annotool_secret"
    db_name: str = "annotool"
    db_echo: bool = False
    database_url_override: Optional[str] = None

    @property
    def database_url(self) -> str:
        if self.database_url_override:
            return self.database_url_override
        return (
            f"postgresql+asyncpg://{self.db_user}:{self.db_password}"
            f"@{self.db_host}:{self.db_port}/{self.db_name}"
        )

    # ── Resources ────────────────────────────────────────────────────────
    # 0 = private, 1 = public, 2 = shared with admin, 3 = shared with everyone
    default_access: int = 0
    admin_role: str = "ROLE_ADMIN"

    # ── Principal (set by the host platform's auth proxy) ───────────────
    user_header: str = "X-Annotate-User"
    roles_header: str = "X-Annotate-Roles"
    anonymous_user: str = "anonymous"
    anonymous_roles: List[str] = ["ROLE_ANONYMOUS"]

    # ── Host platform ────────────────────────────────────────────────────
    # JSON file mapping media package ids to {"series_id": ..., "acl": {action: [roles]}}
    media_registry_file: Optional[str] = None
    # When true, unknown media package ids resolve to a package with the default ACL
    open_media_lookup: bool = True
    annotate_roles: List[str] = ["ROLE_USER", "ROLE_ANONYMOUS"]
    annotate_admin_roles: List[str] = ["ROLE_ADMIN"]

    # ── Admin ────────────────────────────────────────────────────────────
    enable_clear_database: bool = False


@lru_cache()
def get_settings() -> Settings:
    return Settings()
