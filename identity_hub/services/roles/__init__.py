from __future__ import annotations

from typing import Any, Iterable

from mongoengine import NotUniqueError

from identity_hub.models.role import Role
from identity_hub.models.user import User
from identity_hub.services.aggregation import aggregate_roles, assemble_role, build_match, build_sort, paginate
from identity_hub.services.authorization import invalidate_roles
from identity_hub.services.validation import validate_permission_references
from identity_hub.utils.base import Actor, Err, Ok, Result
from identity_hub.utils.errors import Conflict, DuplicateField, NoChange, NotFound, ValidationFailed
from identity_hub.utils.logging import get_logger


logger = get_logger(__name__)

ROLE_NAME_MIN_LENGTH = 3
ROLE_NAME_MAX_LENGTH = 50


def _populated(role: Role, message: str, status_code: int = 200) -> Result[dict]:
    view = assemble_role(role.uid)
    if view is None:
        # Written but the join came back empty: report the bare document
        return Ok(role.to_output(), message=f"{message.rstrip('.')} but population failed.", status_code=status_code)
    return Ok(view, message=message, status_code=status_code)


def create_role(actor: Actor, data: dict[str, Any]) -> Result[dict]:
    name = (data.get("name") or "").strip()
    if not ROLE_NAME_MIN_LENGTH <= len(name) <= ROLE_NAME_MAX_LENGTH:
        return Err(ValidationFailed(
            f"Role name must be between {ROLE_NAME_MIN_LENGTH} and {ROLE_NAME_MAX_LENGTH} characters.", field="name"
        ))
    if Role.objects(name=name).first():
        return Err(DuplicateField("Role name already exists. Please use a different name.", field="name"))

    permissions = validate_permission_references(data.get("permissions") or [])
    if isinstance(permissions, Err):
        return permissions

    role = Role(
        name=name,
        permissions=permissions.value,
        is_active=data.get("is_active", True),
        created_by=actor.uid,
    )
    try:
        role.save()
    except NotUniqueError:
        return Err(DuplicateField("Role name already exists. Please use a different name.", field="name"))
    logger.info("role_created", role=role.uid, actor=actor.uid)
    return _populated(role, "Role created successfully.", status_code=201)


def query_roles(filters: dict[str, Any] | None, options: dict[str, Any] | None) -> Result[dict]:
    options = options or {}
    match = build_match(filters)
    limit, page, skip = paginate(options.get("limit"), options.get("page"))

    total = Role._get_collection().count_documents(match)
    roles = aggregate_roles(match, build_sort(options.get("sort_by")), skip, limit)
    if not roles:
        return Err(NotFound("No roles found."))
    return Ok({"total": total, "limit": limit, "page": page, "roles": roles}, message="Roles found successfully.")


def get_role(role_uid: str) -> Result[dict]:
    view = assemble_role(role_uid)
    if view is None:
        return Err(NotFound("Role not found."))
    return Ok(view, message="Role found successfully.")


def update_role(
    actor: Actor,
    role_uid: str,
    data: dict[str, Any],
) -> Result[dict]:
    """Rename/toggle a role and add or remove permissions.

    Every added permission must exist and not already be attached; every
    removed permission must currently be attached.
    """
    role: Role | None = Role.objects(uid=role_uid).first()
    if not role:
        return Err(NotFound("Role not found."))

    add: Iterable[str] = data.get("add_permissions") or []
    remove: Iterable[str] = data.get("delete_permissions") or []
    name = data.get("name")
    is_active = data.get("is_active")

    changed = False
    if name is not None and name.strip() != role.name:
        if Role.objects(name=name.strip(), uid__ne=role.uid).first():
            return Err(DuplicateField("Role name already exists. Please use a different name.", field="name"))
        role.name = name.strip()
        changed = True
    if is_active is not None and is_active != role.is_active:
        role.is_active = is_active
        changed = True

    current = list(role.permissions)
    if add:
        already = [uid for uid in add if uid in current]
        if already:
            return Err(ValidationFailed(f"Permission {already[0]} already exists in the role.", field="add_permissions"))
        checked = validate_permission_references(add)
        if isinstance(checked, Err):
            return checked
        current.extend(checked.value)
        changed = True
    if remove:
        absent = [uid for uid in remove if uid not in current]
        if absent:
            return Err(ValidationFailed(f"Permission {absent[0]} does not exist in the role.", field="delete_permissions"))
        current = [uid for uid in current if uid not in set(remove)]
        changed = True

    if not changed:
        return Err(NoChange("No changes detected. Update not performed."))

    role.permissions = current
    role.updated_by = actor.uid
    try:
        role.save()
    except NotUniqueError:
        return Err(DuplicateField("Role name already exists. Please use a different name.", field="name"))
    invalidate_roles([role.uid])
    logger.info("role_updated", role=role.uid, actor=actor.uid)
    return _populated(role, "Role updated successfully.")


def delete_role(actor: Actor, role_uid: str) -> Result[None]:
    """Refuse to delete a role that users still reference."""
    role: Role | None = Role.objects(uid=role_uid).first()
    if not role:
        return Err(NotFound("Role not found."))

    in_use = User.objects(role=role.uid).count()
    if in_use:
        return Err(Conflict(f"Role is assigned to {in_use} user(s) and cannot be deleted."))

    role.delete()
    invalidate_roles([role.uid])
    logger.info("role_deleted", role=role_uid, actor=actor.uid)
    return Ok(None, message="Role deleted successfully.")
