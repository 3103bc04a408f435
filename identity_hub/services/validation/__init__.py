"""Explicit validators run by the services before anything is persisted.

Each returns a Result: Ok carrying the (possibly normalised) value, or Err
carrying a ValidationFailed/NotFound naming the offending field.
"""

from __future__ import annotations

import re
from typing import Iterable

from mongoengine import Document
from mongoengine.base import get_document
from mongoengine.errors import NotRegistered

from identity_hub.models.permission import Permission
from identity_hub.models.role import Role
from identity_hub.utils.base import Err, Ok, PermissionAction, Result
from identity_hub.utils.errors import NotFound, ValidationFailed


EMAIL_PATTERN = re.compile(
    r"^(([^<>()\[\]\\.,;:\s@\"]+(\.[^<>()\[\]\\.,;:\s@\"]+)*)|(\".+\"))@"
    r"((\[[0-9]{1,3}\.[0-9]{1,3}\.[0-9]{1,3}\.[0-9]{1,3}])|(([a-zA-Z\-0-9]+\.)+[a-zA-Z]{2,}))$"
)
PHONE_PATTERN = re.compile(r"^(?:\+88|88)?(01[3-9]\d{8})$")
PERMISSION_NAME_PATTERN = re.compile(
    r"^[a-z]+-(" + "|".join(PermissionAction.values()) + r")$"
)
UPPERCASE = re.compile(r"[A-Z]")
LOWERCASE = re.compile(r"[a-z]")
DIGITS = re.compile(r"\d")
SPECIAL_CHARS = re.compile(r"[\s~`!@#$%^&*+=\-\[\]\\';,/{}|\":<>?()._]")
REPEATED_CHAR = re.compile(r"^(.)\1+$")

BLOCKED_EMAIL_DOMAINS = frozenset({"tempmail.com", "mailinator.com", "guerrillamail.com", "10minutemail.com"})

COMMON_PASSWORDS = frozenset({
    "123456", "password", "12345678", "qwerty", "123456789", "12345", "1234", "111111",
    "1234567", "dragon", "123123", "baseball", "abc123", "football", "monkey", "letmein",
    "696969", "shadow", "master", "666666", "qwertyuiop", "123321", "mustang", "1234567890",
    "michael", "654321", "superman", "1qaz2wsx", "7777777", "121212", "000000", "qazwsx",
    "123qwe", "killer", "trustno1", "jordan", "jennifer", "zxcvbnm", "asdfgh", "hunter",
    "buster", "soccer", "harley", "batman", "andrew", "tigger", "sunshine", "iloveyou",
    "password1", "password123", "p@ssw0rd", "passw0rd!", "p@ssword1", "welcome1!",
    "qwerty123!", "admin@123", "admin123!", "letmein1!", "changeme1!", "iloveyou1!",
})

PASSWORD_MIN_LENGTH = 8
PASSWORD_MAX_LENGTH = 20


def validate_password(value: str) -> Result[str]:
    """Check length, character classes and trivial/common passwords."""
    if not value or not (PASSWORD_MIN_LENGTH <= len(value) <= PASSWORD_MAX_LENGTH):
        return Err(ValidationFailed(
            f"Password must be between {PASSWORD_MIN_LENGTH} and {PASSWORD_MAX_LENGTH} characters",
            field="password",
        ))
    if not UPPERCASE.search(value):
        return Err(ValidationFailed("Password must contain at least 1 uppercase letter", field="password"))
    if not LOWERCASE.search(value):
        return Err(ValidationFailed("Password must contain at least 1 lowercase letter", field="password"))
    if not DIGITS.search(value):
        return Err(ValidationFailed("Password must contain at least 1 digit", field="password"))
    if not SPECIAL_CHARS.search(value):
        return Err(ValidationFailed("Password must contain at least 1 special character", field="password"))
    if REPEATED_CHAR.match(value):
        return Err(ValidationFailed("Password contains a simple pattern", field="password"))
    if value.lower() in COMMON_PASSWORDS:
        return Err(ValidationFailed("Use of common password is not allowed", field="password"))
    return Ok(value)


def validate_email(value: str) -> Result[str]:
    email = (value or "").strip().lower()
    if not EMAIL_PATTERN.match(email):
        return Err(ValidationFailed("Email must be a valid email", field="email"))
    local, domain = email.rsplit("@", 1)
    if domain in BLOCKED_EMAIL_DOMAINS:
        return Err(ValidationFailed("Use of emails from this domain is not allowed", field="email"))
    if re.search(r"\+\d+$", local):
        return Err(ValidationFailed('Emails with a "+number" pattern are not allowed', field="email"))
    return Ok(email)


def validate_phone(value: str) -> Result[str]:
    if not PHONE_PATTERN.match(value or ""):
        return Err(ValidationFailed("Please enter a valid Bangladeshi mobile number", field="phone"))
    return Ok(value)


def validate_permission_name(value: str) -> Result[str]:
    """`<entity>-<action>` where `<entity>` names a registered Document type."""
    message = (
        f"{value} is not a valid permission name. It must follow the pattern entity-action "
        f"(where entity is a registered model and action is one of {', '.join(PermissionAction.values())})."
    )
    if not PERMISSION_NAME_PATTERN.match(value or ""):
        return Err(ValidationFailed(message, field="name"))

    entity = value.split("-", 1)[0]
    try:
        document_cls = get_document(entity.capitalize())
    except NotRegistered:
        return Err(ValidationFailed(message, field="name"))
    if not issubclass(document_cls, Document) or document_cls._meta.get("abstract"):
        return Err(ValidationFailed(message, field="name"))
    return Ok(value)


def validate_role_reference(role_uid: str) -> Result[Role]:
    role: Role | None = Role.objects(uid=role_uid).first()
    if not role:
        return Err(NotFound(f"Role {role_uid} does not exist.", field="role"))
    return Ok(role)


def validate_permission_references(permission_uids: Iterable[str]) -> Result[list[str]]:
    """Every uid must reference an existing Permission; duplicates are collapsed."""
    wanted = list(dict.fromkeys(permission_uids))
    found = {p.uid for p in Permission.objects(uid__in=wanted).only("uid")}
    missing = [uid for uid in wanted if uid not in found]
    if missing:
        return Err(NotFound(
            "Invalid permission ID. The referenced permission does not exist.",
            field="permissions",
            details=missing,
        ))
    return Ok(wanted)
