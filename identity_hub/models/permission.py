from mongoengine import BooleanField, StringField

from identity_hub.models.base import BaseDocument


class Permission(BaseDocument):
    """Permission document.

    Fields:
    - name (str, unique): `<entity>-<create|modify|get|update|delete>`
    - is_active (bool): inactive permissions grant nothing
    """
    id_prefix = "permission"

    name = StringField(required=True, null=False, unique=True, min_length=3, max_length=50)
    is_active = BooleanField(required=True, null=False, default=True)

    meta = {
        "collection": "permissions",
        "indexes": [
            {"fields": ["created_at"]},
        ],
    }
