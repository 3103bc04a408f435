from datetime import datetime, timezone

from mongoengine import BooleanField, DateTimeField, Document, StringField

from identity_hub.models.base import BaseDocumentMixin
from identity_hub.utils.base import TokenType


class Token(Document, BaseDocumentMixin):
    """Persisted bearer token (refresh, reset-password, verify-email).

    Fields:
    - token (str): the signed JWT
    - user (str): uid of the owning user
    - type (str): TokenType value
    - expires (datetime)
    - blacklisted (bool): only ever flipped to true
    """
    token = StringField(required=True, null=False)
    user = StringField(required=True, null=False)
    type = StringField(required=True, null=False, choices=TokenType.choices())
    expires = DateTimeField(required=True, null=False)
    blacklisted = BooleanField(required=True, null=False, default=False)
    created_at = DateTimeField(default=lambda: datetime.now(timezone.utc), null=False)

    meta = {
        "collection": "tokens",
        "indexes": [
            {"fields": ["token"]},
            {"fields": ["user", "type"]},
            {"fields": ["expires"]},
        ],
    }
