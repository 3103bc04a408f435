from datetime import datetime, timezone
from typing import Any
from bson.objectid import ObjectId
from mongoengine import Document, DateTimeField, EmbeddedDocument, StringField

from identity_hub.utils.base import generate_unique_id


# Storage-only keys never returned to clients
INTERNAL_FIELDS = ("_id", "__v", "_cls")


def sanitize_value(value: Any) -> Any:
    """Convert documents, ids and datetimes into JSON-friendly values."""
    if isinstance(value, Document):
        return value.to_output() if hasattr(value, "to_output") else getattr(value, "uid", str(value.pk))
    if isinstance(value, EmbeddedDocument):
        value = {k: sanitize_value(getattr(value, k)) for k in value._fields}
    if isinstance(value, list):
        return [sanitize_value(v) for v in value]
    if isinstance(value, dict):
        return {k: sanitize_value(v) for k, v in value.items() if k not in INTERNAL_FIELDS}
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, ObjectId):
        return str(value)
    return value


class BaseDocumentMixin:
    def to_output(self, fields=None, exclude=None):
        data: dict[str, Any] = {}
        exclude = exclude or []
        fields = fields or self._fields.keys()

        for field in fields:
            if field in exclude or field == "id":
                continue
            value = getattr(self, field)
            data[field] = sanitize_value(value)

        return data


class BaseEmbeddedDocument(EmbeddedDocument, BaseDocumentMixin):
    meta = {
        "abstract": True,
    }


class BaseDocument(Document, BaseDocumentMixin):
    """Abstract base for every persisted entity.

    Fields:
    - uid (str, unique): `<prefix>-<YYYYMMDDHHMMSS>-<digits>`, generated on first save
    - created_by/updated_by (str): uid of the acting user
    - created_at/updated_at (datetime)

    Subclasses set `id_prefix`.
    """
    id_prefix: str = "doc"

    uid = StringField(required=False, null=False, unique=True)
    created_by = StringField(required=False, null=True)
    updated_by = StringField(required=False, null=True)
    created_at = DateTimeField(default=lambda: datetime.now(timezone.utc), null=False)
    updated_at = DateTimeField(required=False, null=True)

    meta = {
        "abstract": True,
    }

    def save(self, *args, **kwargs):
        if not self.uid:
            self.uid = generate_unique_id(self.id_prefix)
        elif self.pk is not None:
            self.updated_at = datetime.now(timezone.utc)
        return super().save(*args, **kwargs)
