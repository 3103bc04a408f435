from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from identity_hub.api import list_query, respond
from identity_hub.models.user import User
from identity_hub.services import roles as role_service
from identity_hub.services.authorization import require_permission
from identity_hub.utils.base import Actor


router = APIRouter()


class CreateRoleBody(BaseModel):
    name: str
    permissions: list[str] = Field(default_factory=list)
    is_active: bool = True


class UpdateRoleBody(BaseModel):
    name: Optional[str] = None
    is_active: Optional[bool] = None
    add_permissions: list[str] = Field(default_factory=list)
    delete_permissions: list[str] = Field(default_factory=list)


@router.post("")
def create_role(body: CreateRoleBody, current_user: User = Depends(require_permission("role-create"))):
    return respond(role_service.create_role(Actor.of(current_user), body.model_dump()))


@router.get("")
def list_roles(
    query: tuple[dict, dict] = Depends(list_query),
    current_user: User = Depends(require_permission("role-get")),
):
    filters, options = query
    return respond(role_service.query_roles(filters, options))


@router.get("/{role_id}")
def get_role(role_id: str, current_user: User = Depends(require_permission("role-get"))):
    return respond(role_service.get_role(role_id))


@router.put("/{role_id}")
def update_role(
    role_id: str,
    body: UpdateRoleBody,
    current_user: User = Depends(require_permission("role-modify")),
):
    """PROTECTED: Rename, toggle, or add/remove permissions."""
    return respond(role_service.update_role(Actor.of(current_user), role_id, body.model_dump()))


@router.delete("/{role_id}")
def delete_role(role_id: str, current_user: User = Depends(require_permission("role-delete"))):
    return respond(role_service.delete_role(Actor.of(current_user), role_id))
