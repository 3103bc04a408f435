from mongoengine import BooleanField, ListField, StringField

from identity_hub.models.base import BaseDocument


class Role(BaseDocument):
    """Role document.

    A named set of permissions assignable to users.

    Fields:
    - name (str, unique): 3-50 characters
    - permissions (list[str]): uids of Permission documents
    - is_active (bool)
    """
    id_prefix = "role"

    name = StringField(required=True, null=False, unique=True, min_length=3, max_length=50)
    permissions = ListField(StringField(), required=False, null=False, default=list)
    is_active = BooleanField(required=True, null=False, default=True)

    meta = {
        "collection": "roles",
        "indexes": [
            {"fields": ["permissions"]},
            {"fields": ["created_at"]},
        ],
    }
