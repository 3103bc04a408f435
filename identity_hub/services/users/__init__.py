"""User management.

Creation and updates validate everything up front, upload the optional
profile picture before touching the store and return the joined, sanitized
view. Work done after the user document is written (tokens, notification)
is not rolled back when it fails.
"""

from __future__ import annotations

from typing import Any

from mongoengine import NotUniqueError

from identity_hub.models.role import Role
from identity_hub.models.token import Token
from identity_hub.models.user import PictureRef, User
from identity_hub.services.aggregation import (
    aggregate_users,
    assemble_user,
    build_match,
    build_sort,
    paginate,
)
from identity_hub.services.attachments import AttachmentManager, UploadedFile, get_attachment_manager
from identity_hub.services.email import Notifier, get_notifier
from identity_hub.services.token import generate_auth_tokens, generate_verify_email_token
from identity_hub.services.validation import (
    validate_email,
    validate_password,
    validate_phone,
    validate_role_reference,
)
from identity_hub.utils.base import Actor, Err, Ok, Result
from identity_hub.utils.errors import DuplicateEmail, DuplicateField, NoChange, NotFound
from identity_hub.utils.logging import get_logger


logger = get_logger(__name__)

DEFAULT_ROLE_NAME = "Default"
UPDATABLE_FIELDS = ("name", "email", "phone", "password", "role", "is_active")


def get_or_create_default_role(actor: Actor) -> Role:
    role: Role | None = Role.objects(name=DEFAULT_ROLE_NAME).first()
    if role:
        return role
    role = Role(name=DEFAULT_ROLE_NAME, permissions=[], is_active=True, created_by=actor.uid)
    try:
        role.save()
    except NotUniqueError:
        # Created concurrently by another request
        role = Role.objects(name=DEFAULT_ROLE_NAME).first()
    return role


def get_user_by_email(email: str) -> User | None:
    """Case-insensitive lookup; the stored email is always lowercased."""
    return User.find_by_email(email)


def _email_taken(email: str, exclude_uid: str | None = None) -> bool:
    query = User.objects(email=email)
    if exclude_uid:
        query = query.filter(uid__ne=exclude_uid)
    return query.first() is not None


def _phone_taken(phone: str, exclude_uid: str | None = None) -> bool:
    query = User.objects(phone=phone)
    if exclude_uid:
        query = query.filter(uid__ne=exclude_uid)
    return query.first() is not None


def _discard_upload(attachments: AttachmentManager, picture: dict | None) -> None:
    if picture:
        attachments.delete_file(picture["file_id"])


def create_user(
    actor: Actor,
    data: dict[str, Any],
    file: UploadedFile | None = None,
    *,
    attachments: AttachmentManager | None = None,
    notifier: Notifier | None = None,
) -> Result[dict]:
    """Register a user and log them in; returns the view plus auth tokens."""
    email = validate_email(data.get("email"))
    if isinstance(email, Err):
        return email
    if _email_taken(email.value):
        return Err(DuplicateEmail("Email already taken. Please use a different email.", field="email"))

    phone = data.get("phone")
    if phone:
        checked_phone = validate_phone(phone)
        if isinstance(checked_phone, Err):
            return checked_phone
        if _phone_taken(phone):
            return Err(DuplicateField("Phone number already taken.", field="phone"))

    password = validate_password(data.get("password"))
    if isinstance(password, Err):
        return password

    if data.get("role"):
        role = validate_role_reference(data["role"])
        if isinstance(role, Err):
            return role
        role_uid = role.value.uid
    else:
        role_uid = get_or_create_default_role(actor).uid

    attachments = attachments or get_attachment_manager()
    picture = None
    if file is not None:
        uploaded = attachments.upload_file(file)
        if isinstance(uploaded, Err):
            return uploaded
        picture = uploaded.value

    user = User(
        name=data.get("name"),
        email=email.value,
        phone=phone or None,
        password=password.value,
        role=role_uid,
        picture=PictureRef(**picture) if picture else None,
        created_by=actor.uid,
    )
    try:
        user.save()
    except NotUniqueError:
        _discard_upload(attachments, picture)
        return Err(DuplicateField("A user with the same unique fields already exists."))
    logger.info("user_created", user=user.uid, actor=actor.uid)

    tokens = generate_auth_tokens(user)
    if isinstance(tokens, Err):
        return tokens

    verify_token = generate_verify_email_token(user.uid)
    if isinstance(verify_token, Err):
        return verify_token
    (notifier or get_notifier()).send_registration_email(user.name, user.email, verify_token.value)

    view = assemble_user(user.uid)
    message = "User created successfully."
    if view["role"] is None:
        message = "User created successfully but role population failed."
    return Ok({**view, "tokens": tokens.value}, message=message, status_code=201)


def get_user_by_id(user_uid: str) -> Result[dict]:
    view = assemble_user(user_uid)
    if view is None:
        return Err(NotFound("User not found."))
    message = "User found successfully."
    if view["role"] is None:
        message = "User found successfully but role population failed."
    return Ok(view, message=message)


def _is_unchanged(user: User, patch: dict[str, Any]) -> bool:
    for key, value in patch.items():
        if key == "password":
            if not user.is_password_match(value):
                return False
        elif key == "email":
            if (value or "").strip().lower() != user.email:
                return False
        elif getattr(user, key) != value:
            return False
    return True


def update_user_by_id(
    actor: Actor,
    user_uid: str,
    patch: dict[str, Any],
    file: UploadedFile | None = None,
    *,
    attachments: AttachmentManager | None = None,
) -> Result[dict]:
    """Apply a partial update; an upload failure leaves the stored picture as it was."""
    user: User | None = User.objects(uid=user_uid).first()
    if not user:
        return Err(NotFound("User not found."))

    patch = {k: v for k, v in patch.items() if k in UPDATABLE_FIELDS and v is not None}
    if _is_unchanged(user, patch) and file is None:
        return Err(NoChange("No changes detected. Update not performed."))

    if "email" in patch:
        email = validate_email(patch["email"])
        if isinstance(email, Err):
            return email
        if email.value != user.email and _email_taken(email.value, exclude_uid=user.uid):
            return Err(DuplicateEmail("Email already taken. Please use a different email.", field="email"))
        patch["email"] = email.value

    if patch.get("phone") and patch["phone"] != user.phone:
        checked_phone = validate_phone(patch["phone"])
        if isinstance(checked_phone, Err):
            return checked_phone
        if _phone_taken(patch["phone"], exclude_uid=user.uid):
            return Err(DuplicateField("Phone number already taken.", field="phone"))

    if "password" in patch:
        password = validate_password(patch["password"])
        if isinstance(password, Err):
            return password

    if "role" in patch and patch["role"] != user.role:
        role = validate_role_reference(patch["role"])
        if isinstance(role, Err):
            return role

    attachments = attachments or get_attachment_manager()
    replaced_file_id = None
    new_picture = None
    if file is not None:
        uploaded = attachments.upload_file(file)
        if isinstance(uploaded, Err):
            return uploaded
        new_picture = uploaded.value
        if user.picture and user.picture.file_id:
            replaced_file_id = user.picture.file_id
        user.picture = PictureRef(**new_picture)

    for key, value in patch.items():
        if key == "password":
            user.set_password(value)
        else:
            setattr(user, key, value)
    user.is_email_verified = False
    user.updated_by = actor.uid
    try:
        user.save()
    except NotUniqueError:
        _discard_upload(attachments, new_picture)
        return Err(DuplicateField("A user with the same unique fields already exists."))
    logger.info("user_updated", user=user.uid, actor=actor.uid, fields=sorted(patch))

    if replaced_file_id:
        deleted = attachments.delete_file(replaced_file_id)
        if isinstance(deleted, Err):
            logger.warning("old_picture_not_deleted", user=user.uid, file_id=replaced_file_id)

    view = assemble_user(user.uid, owner_view=False)
    message = "User updated successfully."
    if view["role"] is None:
        message = "User updated successfully but role population failed."
    return Ok(view, message=message)


def delete_user_by_id(actor: Actor, user_uid: str) -> Result[dict]:
    """Remove the user together with every token issued to them."""
    user: User | None = User.objects(uid=user_uid).first()
    if not user:
        return Err(NotFound("User not found."))

    view = assemble_user(user.uid)
    Token.objects(user=user.uid).delete()
    user.delete()
    logger.info("user_deleted", user=user_uid, actor=actor.uid)
    return Ok(view, message="User deleted successfully.")


def query_users(filters: dict[str, Any] | None, options: dict[str, Any] | None) -> Result[dict]:
    """Filtered, sorted page of joined user views."""
    options = options or {}
    match = build_match(filters)
    sort = build_sort(options.get("sort_by"))
    limit, page, skip = paginate(options.get("limit"), options.get("page"))

    total = User._get_collection().count_documents(match)
    users = aggregate_users(match, sort, skip, limit, owner_view=False)
    if not users:
        return Err(NotFound("No users found."))
    return Ok({"total": total, "limit": limit, "page": page, "users": users}, message="Users found successfully.")
