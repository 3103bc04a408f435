"""Role/permission based access checks.

A caller's permission set is the names of the active permissions attached
to their role. There is no inheritance between roles; checks are plain set
membership.
"""

from __future__ import annotations

from typing import Iterable

from fastapi import Depends

from identity_hub.models.permission import Permission
from identity_hub.models.role import Role
from identity_hub.models.user import User
from identity_hub.services.auth import get_current_user
from identity_hub.services.cache import cache_delete, cache_get, cache_set
from identity_hub.utils.errors import Forbidden


def _cache_key(role_uid: str) -> str:
    return f"role-permissions:{role_uid}"


def role_permission_names(role_uid: str) -> frozenset[str]:
    cached = cache_get(_cache_key(role_uid))
    if cached is not None:
        return frozenset(cached)

    role: Role | None = Role.objects(uid=role_uid).first()
    if not role or not role.is_active:
        return frozenset()

    names = frozenset(
        p.name for p in Permission.objects(uid__in=role.permissions, is_active=True).only("name")
    )
    cache_set(_cache_key(role_uid), sorted(names))
    return names


def resolve_permission_names(user: User | None) -> frozenset[str]:
    """Unauthenticated, role-less or dangling-role callers get the empty set."""
    if user is None or not user.role:
        return frozenset()
    return role_permission_names(user.role)


def has_permission(user: User | None, permission_name: str) -> bool:
    return permission_name in resolve_permission_names(user)


def invalidate_roles(role_uids: Iterable[str]) -> None:
    cache_delete(*[_cache_key(uid) for uid in role_uids])


def invalidate_permission(permission_uid: str) -> None:
    """Drop cached sets of every role holding the permission."""
    invalidate_roles(r.uid for r in Role.objects(permissions=permission_uid).only("uid"))


def require_permission(permission_name: str):
    """FastAPI dependency: authenticated caller holding `permission_name`."""

    def _dependency(current_user: User = Depends(get_current_user)) -> User:
        if not has_permission(current_user, permission_name):
            raise Forbidden("Forbidden. You do not have the required rights to access this resource.")
        return current_user

    return _dependency
