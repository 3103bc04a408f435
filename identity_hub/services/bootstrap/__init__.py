"""Initial setup: CRUD permissions for the core entities, the admin roles
and a super-admin account. Safe to run on every start."""

from __future__ import annotations

from mongoengine import NotUniqueError

from identity_hub.models.permission import Permission
from identity_hub.models.role import Role
from identity_hub.models.user import User
from identity_hub.services.authorization import invalidate_roles
from identity_hub.utils.base import Actor, PermissionAction
from identity_hub.utils.config import settings
from identity_hub.utils.logging import get_logger


logger = get_logger(__name__)

SEEDED_ENTITIES = ("role", "permission", "user")
ADMIN_ROLE_NAME = "Admin"
SUPER_ADMIN_ROLE_NAME = "Super Admin"


def seed_permissions(actor: Actor) -> list[str]:
    """Return the uids of every seeded permission, creating missing ones."""
    uids = []
    for entity in SEEDED_ENTITIES:
        for action in PermissionAction.values():
            name = f"{entity}-{action}"
            permission = Permission.objects(name=name).first()
            if not permission:
                permission = Permission(name=name, created_by=actor.uid)
                try:
                    permission.save()
                except NotUniqueError:
                    permission = Permission.objects(name=name).first()
                else:
                    logger.info("permission_seeded", name=name)
            uids.append(permission.uid)
    return uids


def seed_role(actor: Actor, name: str, permission_uids: list[str]) -> Role:
    """Create the role, or top up an existing one with missing permissions."""
    role = Role.objects(name=name).first()
    if not role:
        role = Role(name=name, permissions=permission_uids, created_by=actor.uid)
        role.save()
        logger.info("role_seeded", name=name)
        return role

    missing = [uid for uid in permission_uids if uid not in role.permissions]
    if missing:
        role.permissions = list(role.permissions) + missing
        role.updated_by = actor.uid
        role.save()
        invalidate_roles([role.uid])
    return role


def seed_super_admin(actor: Actor, role: Role) -> User:
    user = User.objects(email=settings.admin_email.lower()).first()
    if user:
        return user
    user = User(
        name=SUPER_ADMIN_ROLE_NAME,
        email=settings.admin_email,
        password=settings.admin_password,
        role=role.uid,
        is_email_verified=True,
        created_by=actor.uid,
    )
    user.save()
    logger.info("super_admin_seeded", user=user.uid, email=user.email)
    return user


def run_initial_setup() -> User:
    actor = Actor.system()
    permission_uids = seed_permissions(actor)
    seed_role(actor, ADMIN_ROLE_NAME, permission_uids)
    super_admin_role = seed_role(actor, SUPER_ADMIN_ROLE_NAME, permission_uids)
    return seed_super_admin(actor, super_admin_role)
