from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from identity_hub.api import list_query, respond
from identity_hub.models.user import User
from identity_hub.services import permissions as permission_service
from identity_hub.services.authorization import require_permission
from identity_hub.utils.base import Actor


router = APIRouter()


class CreatePermissionBody(BaseModel):
    name: str
    is_active: bool = True


class UpdatePermissionBody(BaseModel):
    name: Optional[str] = None
    is_active: Optional[bool] = None


@router.post("")
def create_permission(
    body: CreatePermissionBody,
    current_user: User = Depends(require_permission("permission-create")),
):
    return respond(permission_service.create_permission(Actor.of(current_user), body.model_dump()))


@router.get("")
def list_permissions(
    query: tuple[dict, dict] = Depends(list_query),
    current_user: User = Depends(require_permission("permission-get")),
):
    filters, options = query
    return respond(permission_service.query_permissions(filters, options))


@router.get("/{permission_id}")
def get_permission(permission_id: str, current_user: User = Depends(require_permission("permission-get"))):
    return respond(permission_service.get_permission(permission_id))


@router.put("/{permission_id}")
def update_permission(
    permission_id: str,
    body: UpdatePermissionBody,
    current_user: User = Depends(require_permission("permission-modify")),
):
    return respond(permission_service.update_permission(Actor.of(current_user), permission_id, body.model_dump()))


@router.delete("/{permission_id}")
def delete_permission(
    permission_id: str,
    current_user: User = Depends(require_permission("permission-delete")),
):
    return respond(permission_service.delete_permission(Actor.of(current_user), permission_id))
