from unittest.mock import MagicMock

from identity_hub.models import Permission, Role, User
from identity_hub.services.authorization import resolve_permission_names
from identity_hub.services.bootstrap import ADMIN_ROLE_NAME, SUPER_ADMIN_ROLE_NAME, run_initial_setup
from identity_hub.utils.base import SYSTEM_USER_ID
from identity_hub.utils.config import settings


def test_initial_setup_seeds_everything_once():
    first = run_initial_setup()
    second = run_initial_setup()

    assert first.uid == second.uid
    assert Permission.objects.count() == 15
    assert Role.objects.count() == 2
    assert User.objects.count() == 1
    assert Permission.objects(name="role-delete").first().created_by == SYSTEM_USER_ID


def test_admin_roles_hold_every_seeded_permission():
    admin = run_initial_setup()

    all_names = {p.name for p in Permission.objects}
    assert resolve_permission_names(admin) == all_names
    for name in (ADMIN_ROLE_NAME, SUPER_ADMIN_ROLE_NAME):
        assert len(Role.objects(name=name).first().permissions) == 15


def test_super_admin_uses_configured_credentials():
    admin = run_initial_setup()
    assert admin.email == settings.admin_email
    assert admin.is_password_match(settings.admin_password)
    assert admin.is_email_verified


def test_topped_up_role_drops_cached_permissions(monkeypatch):
    run_initial_setup()
    admin_role = Role.objects(name=ADMIN_ROLE_NAME).first()
    admin_role.permissions = admin_role.permissions[:-1]
    admin_role.save()

    client = MagicMock()
    monkeypatch.setattr("identity_hub.connections.redis._redis_client", client)
    run_initial_setup()

    assert len(Role.objects(name=ADMIN_ROLE_NAME).first().permissions) == 15
    client.delete.assert_called_once_with(f"role-permissions:{admin_role.uid}")
