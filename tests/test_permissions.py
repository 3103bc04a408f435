import pytest
from mongoengine import NotUniqueError

from identity_hub.models import Permission, Role
from identity_hub.models.base import BaseDocument
from identity_hub.services.permissions import (
    create_permission,
    delete_permission,
    get_permission,
    query_permissions,
    update_permission,
)
from identity_hub.utils.base import Actor, Err, Ok
from identity_hub.utils.base.ids import PERMISSION_ID_PATTERN
from identity_hub.utils.errors import Conflict, DuplicateField, NoChange, NotFound, ValidationFailed


SYSTEM = Actor.system()


class Invoice(BaseDocument):
    id_prefix = "invoice"
    meta = {"collection": "invoices"}


def test_create_permission_for_registered_entity():
    result = create_permission(SYSTEM, {"name": "invoice-create"})
    assert isinstance(result, Ok)
    assert result.status_code == 201
    assert PERMISSION_ID_PATTERN.match(result.value["uid"])
    assert result.value["name"] == "invoice-create"


@pytest.mark.parametrize("name", ["INVOICE-create", "invoice-archive", "shipment-create"])
def test_create_permission_rejects_invalid_names(name):
    result = create_permission(SYSTEM, {"name": name})
    assert isinstance(result.error, ValidationFailed)
    assert Permission.objects.count() == 0


def test_create_permission_rejects_duplicates():
    create_permission(SYSTEM, {"name": "invoice-get"})
    assert isinstance(create_permission(SYSTEM, {"name": "invoice-get"}).error, DuplicateField)


def test_update_permission():
    uid = create_permission(SYSTEM, {"name": "invoice-get"}).value["uid"]

    assert isinstance(update_permission(SYSTEM, uid, {"is_active": True}).error, NoChange)
    assert isinstance(update_permission(SYSTEM, uid, {"name": "invoice-view"}).error, ValidationFailed)

    result = update_permission(SYSTEM, uid, {"name": "invoice-update", "is_active": False})
    assert result.value["name"] == "invoice-update"
    assert result.value["is_active"] is False


def test_update_permission_rename_lost_to_concurrent_insert(monkeypatch):
    uid = create_permission(SYSTEM, {"name": "invoice-get"}).value["uid"]

    def conflicting_save(self, *args, **kwargs):
        raise NotUniqueError("E11000 duplicate key error")

    monkeypatch.setattr(Permission, "save", conflicting_save)
    result = update_permission(SYSTEM, uid, {"name": "invoice-update"})

    assert isinstance(result.error, DuplicateField)
    assert result.error.field == "name"


def test_delete_permission_in_use_is_refused():
    uid = create_permission(SYSTEM, {"name": "invoice-delete"}).value["uid"]
    Role(name="Accounts", permissions=[uid]).save()

    assert isinstance(delete_permission(SYSTEM, uid).error, Conflict)

    Role.objects(name="Accounts").delete()
    assert isinstance(delete_permission(SYSTEM, uid), Ok)
    assert isinstance(get_permission(uid).error, NotFound)


def test_query_permissions():
    for action in ("create", "get", "delete"):
        create_permission(SYSTEM, {"name": f"invoice-{action}"})

    result = query_permissions({"name": "invoice"}, {"limit": 2, "sort_by": "name:asc"})
    assert result.value["total"] == 3
    assert [p["name"] for p in result.value["permissions"]] == ["invoice-create", "invoice-delete"]
    assert isinstance(query_permissions({"is_active": False}, {}), Err)
