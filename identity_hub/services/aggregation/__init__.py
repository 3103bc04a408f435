"""Aggregation pipelines and response projections.

Joins run inside MongoDB in a fixed order (role, created_by, updated_by);
field projection happens afterwards in Python so nested joined documents
are stripped with the same rules as top-level ones.
"""

from __future__ import annotations

import re
from typing import Any

from identity_hub.models.permission import Permission
from identity_hub.models.role import Role
from identity_hub.models.user import ATTEMPT_COUNTERS, User
from identity_hub.models.base import INTERNAL_FIELDS, sanitize_value
from identity_hub.utils.base import day_range


SORTABLE_FIELDS = {
    "name": "name",
    "created_at": "created_at",
    "createdAt": "created_at",
    "updated_at": "updated_at",
    "updatedAt": "updated_at",
}
DEFAULT_LIMIT = 10

# Never leave the store
USER_HIDDEN_FIELDS = INTERNAL_FIELDS + ("password", "lock_until") + ATTEMPT_COUNTERS
# Joined creator/updater users expose even less
AUDIT_USER_HIDDEN_FIELDS = USER_HIDDEN_FIELDS + ("uid", "role", "is_email_verified")
PRIVATE_PICTURE_FIELDS = ("file_id", "shareable_link")


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() == "true"
    return bool(value)


def build_match(filters: dict | None) -> dict:
    """Translate optional list filters into a `$match` document.

    Supported keys: name (case-insensitive substring), is_active, created_by,
    updated_by, created_at/updated_at (whole calendar day).
    """
    match: dict = {}
    if not filters:
        return match

    if filters.get("name"):
        match["name"] = re.compile(re.escape(filters["name"]), re.IGNORECASE)
    if filters.get("is_active") is not None:
        match["is_active"] = _as_bool(filters["is_active"])
    for field in ("created_by", "updated_by"):
        if filters.get(field):
            match[field] = filters[field]
    for field in ("created_at", "updated_at"):
        if filters.get(field):
            start, end = day_range(filters[field])
            match[field] = {"$gte": start, "$lte": end}
    return match


def build_sort(sort_by: str | None) -> dict:
    """`field:asc|desc` limited to SORTABLE_FIELDS; defaults to newest first.

    `_id` is always appended so pages stay disjoint when the sort key ties.
    """
    field, order = "created_at", -1
    if sort_by:
        name, _, direction = sort_by.partition(":")
        if name in SORTABLE_FIELDS:
            field = SORTABLE_FIELDS[name]
            order = -1 if direction.strip().lower() == "desc" else 1
    return {field: order, "_id": order}


def paginate(limit: Any = None, page: Any = None) -> tuple[int, int, int]:
    """Return (limit, page, skip) with 1-based pages."""
    limit = int(limit) if limit else DEFAULT_LIMIT
    page = int(page) if page else 1
    limit = max(limit, 1)
    page = max(page, 1)
    return limit, page, (page - 1) * limit


def _window(sort: dict | None, skip: int, limit: int | None) -> list[dict]:
    stages: list[dict] = []
    if sort:
        stages.append({"$sort": sort})
    if skip:
        stages.append({"$skip": skip})
    if limit:
        stages.append({"$limit": limit})
    return stages


def _audit_lookups() -> list[dict]:
    return [
        {"$lookup": {"from": "users", "localField": "created_by", "foreignField": "uid", "as": "created_by_user"}},
        {"$lookup": {"from": "users", "localField": "updated_by", "foreignField": "uid", "as": "updated_by_user"}},
    ]


def user_pipeline(match: dict, sort: dict | None = None, skip: int = 0, limit: int | None = None) -> list[dict]:
    return [
        {"$match": match},
        *_window(sort, skip, limit),
        {"$lookup": {"from": "roles", "localField": "role", "foreignField": "uid", "as": "role"}},
        *_audit_lookups(),
    ]


def role_pipeline(match: dict, sort: dict | None = None, skip: int = 0, limit: int | None = None) -> list[dict]:
    return [
        {"$match": match},
        *_window(sort, skip, limit),
        {"$lookup": {"from": "permissions", "localField": "permissions", "foreignField": "uid", "as": "permissions"}},
        *_audit_lookups(),
    ]


def permission_pipeline(match: dict, sort: dict | None = None, skip: int = 0, limit: int | None = None) -> list[dict]:
    return [
        {"$match": match},
        *_window(sort, skip, limit),
        *_audit_lookups(),
    ]


def _strip(doc: dict, hidden: tuple[str, ...]) -> dict:
    return {k: v for k, v in doc.items() if k not in hidden}


def _first(value: Any) -> Any:
    if isinstance(value, list):
        return value[0] if value else None
    return value


def project_audit_user(doc: Any) -> Any:
    # Unjoined references stay as the raw uid
    if not isinstance(doc, dict):
        return doc
    data = _strip(doc, AUDIT_USER_HIDDEN_FIELDS)
    if isinstance(data.get("picture"), dict):
        data["picture"] = _strip(data["picture"], PRIVATE_PICTURE_FIELDS)
    return sanitize_value(data)


def _project_audit(doc: dict) -> dict:
    # Actors without a user document (the system actor) keep their raw uid
    for field in ("created_by", "updated_by"):
        joined = _first(doc.pop(f"{field}_user", None))
        if joined:
            doc[field] = project_audit_user(joined)
        else:
            doc.setdefault(field, None)
    return doc


def project_permission(doc: Any) -> Any:
    if not isinstance(doc, dict):
        return doc
    return sanitize_value(_strip(doc, INTERNAL_FIELDS))


def project_role(doc: dict) -> dict:
    data = _project_audit(_strip(doc, INTERNAL_FIELDS))
    data["permissions"] = [project_permission(p) for p in data.get("permissions") or []]
    return sanitize_value(data)


def project_user(doc: dict, owner_view: bool = True) -> dict:
    """Sanitized user view; non-owner views also lose private picture links."""
    data = _project_audit(_strip(doc, USER_HIDDEN_FIELDS))
    if not owner_view and isinstance(data.get("picture"), dict):
        data["picture"] = _strip(data["picture"], PRIVATE_PICTURE_FIELDS)
    role = _first(data.get("role"))
    data["role"] = project_role(role) if isinstance(role, dict) else None
    return sanitize_value(data)


def _attach_role_permissions(docs: list[dict]) -> None:
    """Replace permission uids inside joined roles with permission documents."""
    roles = [r for d in docs for r in (d.get("role") or []) if isinstance(r, dict)]
    wanted = {uid for r in roles for uid in r.get("permissions") or [] if isinstance(uid, str)}
    if not wanted:
        return
    by_uid = {p["uid"]: p for p in Permission._get_collection().find({"uid": {"$in": list(wanted)}})}
    for role in roles:
        role["permissions"] = [by_uid[uid] for uid in role.get("permissions") or [] if uid in by_uid]


def aggregate_users(match: dict, sort: dict | None = None, skip: int = 0, limit: int | None = None,
                    owner_view: bool = True) -> list[dict]:
    docs = list(User._get_collection().aggregate(user_pipeline(match, sort, skip, limit)))
    _attach_role_permissions(docs)
    return [project_user(doc, owner_view=owner_view) for doc in docs]


def aggregate_roles(match: dict, sort: dict | None = None, skip: int = 0, limit: int | None = None) -> list[dict]:
    docs = Role._get_collection().aggregate(role_pipeline(match, sort, skip, limit))
    return [project_role(doc) for doc in docs]


def aggregate_permissions(match: dict, sort: dict | None = None, skip: int = 0, limit: int | None = None) -> list[dict]:
    docs = Permission._get_collection().aggregate(permission_pipeline(match, sort, skip, limit))
    return [_project_audit(project_permission(doc)) for doc in docs]


def assemble_user(user_uid: str, owner_view: bool = True) -> dict | None:
    """Joined view of one user, or None when the user does not exist.

    A dangling role reference leaves `role` as None; callers report that as
    degraded success.
    """
    views = aggregate_users({"uid": user_uid}, owner_view=owner_view)
    return views[0] if views else None


def assemble_role(role_uid: str) -> dict | None:
    views = aggregate_roles({"uid": role_uid})
    return views[0] if views else None


def assemble_permission(permission_uid: str) -> dict | None:
    views = aggregate_permissions({"uid": permission_uid})
    return views[0] if views else None
