"""Request Dependencies — identity, admin gate and dispatcher injection.

Invariants:
    - X-User-Id is set by the upstream auth proxy; missing or non-UUID → 401
    - Admin surface closed unless ADMIN_TOKEN is configured; comparison is constant-time
    - Every dependency is overridable through app.dependency_overrides in tests
"""

import secrets
from uuid import UUID

from fastapi import Depends, Header

from mirrio.config import Settings, get_settings
from mirrio.core.domain_types import UserId
from mirrio.core.errors import AuthenticationError, PermissionDeniedError
from mirrio.infrastructure.notifications import (
    NotificationDispatcher, build_dispatcher,
)


async def get_current_user_id(
    x_user_id: str | None = Header(None, alias="X-User-Id"),
) -> UserId:
    if not x_user_id:
        raise AuthenticationError()
    try:
        return UserId(UUID(x_user_id))
    except ValueError:
        raise AuthenticationError()


async def require_admin(
    x_admin_token: str | None = Header(None, alias="X-Admin-Token"),
    settings: Settings = Depends(get_settings),
) -> None:
    if not settings.admin_token or not x_admin_token:
        raise PermissionDeniedError("Admin access required")
    if not secrets.compare_digest(x_admin_token, settings.admin_token):
        raise PermissionDeniedError("Admin access required")


def get_dispatcher(
    settings: Settings = Depends(get_settings),
) -> NotificationDispatcher:
    return build_dispatcher(settings)
