from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile

from identity_hub.api import list_query, read_upload, respond
from identity_hub.models.user import User
from identity_hub.services import users as user_service
from identity_hub.services.authorization import require_permission
from identity_hub.utils.base import Actor


router = APIRouter()


@router.post("")
def create_user(
    name: str = Form(...),
    email: str = Form(...),
    password: str = Form(...),
    phone: Optional[str] = Form(None),
    role: Optional[str] = Form(None),
    picture: Optional[UploadFile] = File(None),
    current_user: User = Depends(require_permission("user-create")),
):
    """PROTECTED: Create a user on behalf of the caller."""
    data = {"name": name, "email": email, "password": password, "phone": phone, "role": role}
    return respond(user_service.create_user(Actor.of(current_user), data, read_upload(picture)))


@router.get("")
def list_users(
    query: tuple[dict, dict] = Depends(list_query),
    current_user: User = Depends(require_permission("user-get")),
):
    """PROTECTED: Filtered, paginated list of users."""
    filters, options = query
    return respond(user_service.query_users(filters, options))


@router.get("/{user_id}")
def get_user(user_id: str, current_user: User = Depends(require_permission("user-get"))):
    return respond(user_service.get_user_by_id(user_id))


@router.put("/{user_id}")
def update_user(
    user_id: str,
    name: Optional[str] = Form(None),
    email: Optional[str] = Form(None),
    password: Optional[str] = Form(None),
    phone: Optional[str] = Form(None),
    role: Optional[str] = Form(None),
    is_active: Optional[bool] = Form(None),
    picture: Optional[UploadFile] = File(None),
    current_user: User = Depends(require_permission("user-modify")),
):
    """PROTECTED: Partial update; only submitted fields are applied."""
    patch = {"name": name, "email": email, "password": password, "phone": phone, "role": role, "is_active": is_active}
    return respond(user_service.update_user_by_id(Actor.of(current_user), user_id, patch, read_upload(picture)))


@router.delete("/{user_id}")
def delete_user(user_id: str, current_user: User = Depends(require_permission("user-modify"))):
    return respond(user_service.delete_user_by_id(Actor.of(current_user), user_id))
