from __future__ import annotations

from typing import Any

from mongoengine import NotUniqueError

from identity_hub.models.permission import Permission
from identity_hub.models.role import Role
from identity_hub.services.aggregation import (
    aggregate_permissions,
    assemble_permission,
    build_match,
    build_sort,
    paginate,
)
from identity_hub.services.authorization import invalidate_permission
from identity_hub.services.validation import validate_permission_name
from identity_hub.utils.base import Actor, Err, Ok, Result
from identity_hub.utils.errors import Conflict, DuplicateField, NoChange, NotFound
from identity_hub.utils.logging import get_logger


logger = get_logger(__name__)


def create_permission(actor: Actor, data: dict[str, Any]) -> Result[dict]:
    name = validate_permission_name(data.get("name"))
    if isinstance(name, Err):
        return name
    if Permission.objects(name=name.value).first():
        return Err(DuplicateField("Permission name already exists.", field="name"))

    permission = Permission(name=name.value, is_active=data.get("is_active", True), created_by=actor.uid)
    try:
        permission.save()
    except NotUniqueError:
        return Err(DuplicateField("Permission name already exists.", field="name"))
    logger.info("permission_created", permission=permission.uid, name=permission.name, actor=actor.uid)
    return Ok(assemble_permission(permission.uid), message="Permission created successfully.", status_code=201)


def query_permissions(filters: dict[str, Any] | None, options: dict[str, Any] | None) -> Result[dict]:
    options = options or {}
    match = build_match(filters)
    limit, page, skip = paginate(options.get("limit"), options.get("page"))

    total = Permission._get_collection().count_documents(match)
    permissions = aggregate_permissions(match, build_sort(options.get("sort_by")), skip, limit)
    if not permissions:
        return Err(NotFound("No permissions found."))
    return Ok(
        {"total": total, "limit": limit, "page": page, "permissions": permissions},
        message="Permissions found successfully.",
    )


def get_permission(permission_uid: str) -> Result[dict]:
    view = assemble_permission(permission_uid)
    if view is None:
        return Err(NotFound("Permission not found."))
    return Ok(view, message="Permission found successfully.")


def update_permission(actor: Actor, permission_uid: str, data: dict[str, Any]) -> Result[dict]:
    permission: Permission | None = Permission.objects(uid=permission_uid).first()
    if not permission:
        return Err(NotFound("Permission not found."))

    name = data.get("name")
    is_active = data.get("is_active")
    if (name is None or name == permission.name) and (is_active is None or is_active == permission.is_active):
        return Err(NoChange("No changes detected. Update not performed."))

    if name is not None and name != permission.name:
        checked = validate_permission_name(name)
        if isinstance(checked, Err):
            return checked
        if Permission.objects(name=name).first():
            return Err(DuplicateField("Permission name already exists.", field="name"))
        permission.name = name
    if is_active is not None:
        permission.is_active = is_active

    permission.updated_by = actor.uid
    try:
        permission.save()
    except NotUniqueError:
        return Err(DuplicateField("Permission name already exists.", field="name"))
    invalidate_permission(permission.uid)
    logger.info("permission_updated", permission=permission.uid, actor=actor.uid)
    return Ok(assemble_permission(permission.uid), message="Permission updated successfully.")


def delete_permission(actor: Actor, permission_uid: str) -> Result[None]:
    """Refuse to delete a permission that roles still reference."""
    permission: Permission | None = Permission.objects(uid=permission_uid).first()
    if not permission:
        return Err(NotFound("Permission not found."))

    in_use = Role.objects(permissions=permission.uid).count()
    if in_use:
        return Err(Conflict(f"Permission is attached to {in_use} role(s) and cannot be deleted."))

    permission.delete()
    logger.info("permission_deleted", permission=permission_uid, actor=actor.uid)
    return Ok(None, message="Permission deleted successfully.")
