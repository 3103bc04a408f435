from mongoengine import (
    BooleanField,
    DateTimeField,
    EmailField,
    EmbeddedDocumentField,
    IntField,
    NotUniqueError,
    StringField,
)
from passlib.context import CryptContext

from identity_hub.models.base import BaseDocument, BaseEmbeddedDocument
from identity_hub.utils.base import generate_username
from identity_hub.utils.config import settings


pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

ATTEMPT_COUNTERS = (
    "login_attempts",
    "reset_password_attempts",
    "verify_email_attempts",
    "change_email_attempts",
    "change_password_attempts",
)


class PictureRef(BaseEmbeddedDocument):
    """Embedded: reference to a profile picture stored on Google Drive.

    Fields:
    - file_id (str): Drive object id
    - shareable_link (str): webViewLink
    - download_link (str): direct download URL
    """
    file_id = StringField(required=True, null=False, max_length=100)
    shareable_link = StringField(required=False, null=True, max_length=500)
    download_link = StringField(required=False, null=True, max_length=500)


class User(BaseDocument):
    """User document.

    Fields:
    - name (str): Display name
    - username (str, unique): Derived from name on first save
    - email (str, unique): Login identifier, stored lowercased
    - phone (str, unique when set)
    - password (str, hashed): Bcrypt hash, hashed on save whenever plaintext is assigned
    - picture (PictureRef|None)
    - role (str): uid of a Role
    - is_email_verified/is_active/is_locked (bool), lock_until (datetime|None)
    - *_attempts (int): remaining attempts, reset to the configured maximum
    """
    id_prefix = "user"

    name = StringField(required=True, null=False, min_length=1, max_length=100)
    username = StringField(required=False, null=False, unique=True)
    email = EmailField(required=True, null=False, unique=True)
    phone = StringField(required=False, null=True)
    password = StringField(required=True, null=False)
    picture = EmbeddedDocumentField(PictureRef, required=False, null=True)
    role = StringField(required=False, null=True)

    is_email_verified = BooleanField(required=True, null=False, default=False)
    is_active = BooleanField(required=True, null=False, default=True)
    is_locked = BooleanField(required=True, null=False, default=False)
    lock_until = DateTimeField(required=False, null=True)

    login_attempts = IntField(required=True, null=False, default=lambda: settings.maximum_login_attempts, min_value=0)
    reset_password_attempts = IntField(required=True, null=False, default=lambda: settings.maximum_reset_password_attempts, min_value=0)
    verify_email_attempts = IntField(required=True, null=False, default=lambda: settings.maximum_verify_email_attempts, min_value=0)
    change_email_attempts = IntField(required=True, null=False, default=lambda: settings.maximum_change_email_attempts, min_value=0)
    change_password_attempts = IntField(required=True, null=False, default=lambda: settings.maximum_change_password_attempts, min_value=0)

    meta = {
        "collection": "users",
        "indexes": [
            {"fields": ["phone"], "unique": True, "sparse": True},
            {"fields": ["role"]},
            {"fields": ["created_at"]},
        ],
    }

    def clean(self):
        if self.email:
            self.email = self.email.strip().lower()
        if self.name:
            self.name = self.name.strip()

    @classmethod
    def find_by_email(cls, email: str):
        return cls.objects(email=(email or "").strip().lower()).first()

    def set_password(self, plain: str) -> None:
        self.password = plain

    def is_password_match(self, plain: str) -> bool:
        return pwd_context.verify(plain, self.password)

    def save(self, *args, **kwargs):
        # Plaintext is never persisted; an already hashed value is left alone
        if self.password and pwd_context.identify(self.password) is None:
            self.password = pwd_context.hash(self.password)

        if self.username:
            return super().save(*args, **kwargs)

        # Optimistic username allocation: regenerate on collision up to a ceiling
        for _ in range(settings.username_max_attempts):
            candidate = generate_username(self.name)
            if User.objects(username=candidate).first():
                continue
            self.username = candidate
            try:
                return super().save(*args, **kwargs)
            except NotUniqueError as exc:
                if "username" not in str(exc):
                    self.username = None
                    raise
                self.username = None
        raise NotUniqueError(f"Could not allocate a unique username after {settings.username_max_attempts} attempts")
