"""
Shared test configuration.

Every test runs against a fresh mongomock-backed mongoengine connection and
never reads the project's real .env file. Google Drive and outbound email
are replaced by in-memory fakes.
"""

from __future__ import annotations

import mongomock
import pytest
from fastapi.testclient import TestClient
from mongoengine import connect, disconnect

from identity_hub.models import Permission, Role, Token, User
from identity_hub.services.bootstrap import run_initial_setup
from identity_hub.services.token import generate_auth_tokens
from identity_hub.utils.base import Err, Ok
from identity_hub.utils.errors import ExternalServiceError, UploadFailed


STRONG_PASSWORD = "Str0ng!Pass"


@pytest.fixture(autouse=True)
def disable_dotenv_loading(monkeypatch):
    """Prevent pydantic-settings from loading .env files."""
    import pydantic_settings.sources.providers.dotenv as ps_dotenv

    monkeypatch.setattr(ps_dotenv, "dotenv_values", lambda *a, **kw: {})


@pytest.fixture(autouse=True)
def mongo():
    connect("identity_hub_test", alias="default", mongo_client_class=mongomock.MongoClient)
    yield
    for model in (User, Role, Permission, Token):
        model.drop_collection()
    disconnect(alias="default")


class FakeAttachments:
    """In-memory stand-in for the Drive backed AttachmentManager."""

    def __init__(self, fail_upload: bool = False, fail_delete: bool = False):
        self.fail_upload = fail_upload
        self.fail_delete = fail_delete
        self.uploaded: list[str] = []
        self.deleted: list[str] = []

    def upload_file(self, file):
        if self.fail_upload:
            return Err(UploadFailed("Failed to upload picture to Google Drive."))
        file_id = f"drive-file-{len(self.uploaded) + 1}"
        self.uploaded.append(file_id)
        return Ok({
            "file_id": file_id,
            "shareable_link": f"https://drive.google.com/file/d/{file_id}/view",
            "download_link": f"https://drive.google.com/u/1/uc?id={file_id}&export=download",
        })

    def delete_file(self, file_id):
        if self.fail_delete:
            return Err(ExternalServiceError("Failed to delete file from Google Drive."))
        self.deleted.append(file_id)
        return Ok(None)


class RecordingNotifier:
    def __init__(self):
        self.sent: list[tuple[str, str, str]] = []

    def send_registration_email(self, name, email, verify_email_token):
        self.sent.append(("registration", email, verify_email_token))
        return True

    def send_verification_email(self, name, email, verify_email_token):
        self.sent.append(("verification", email, verify_email_token))
        return True

    def send_reset_password_email(self, email, reset_password_token):
        self.sent.append(("reset_password", email, reset_password_token))
        return True

    def send_account_locked_email(self, name, email):
        self.sent.append(("account_locked", email, None))
        return True

    def send_maximum_active_session_email(self, name, email):
        self.sent.append(("maximum_active_sessions", email, None))
        return True


@pytest.fixture
def attachments():
    return FakeAttachments()


@pytest.fixture
def notifier(monkeypatch):
    recorder = RecordingNotifier()
    monkeypatch.setattr("identity_hub.services.email._notifier", recorder)
    return recorder


@pytest.fixture
def user_data():
    return {"name": "Jane Doe", "email": "jane@example.com", "password": STRONG_PASSWORD}


@pytest.fixture
def super_admin():
    return run_initial_setup()


def auth_headers(user: User) -> dict:
    tokens = generate_auth_tokens(user)
    assert isinstance(tokens, Ok)
    return {"Authorization": f"Bearer {tokens.value['access']['token']}"}


@pytest.fixture
def admin_headers(super_admin):
    return auth_headers(super_admin)


@pytest.fixture
def client(attachments, monkeypatch):
    from main import create_app

    monkeypatch.setattr("identity_hub.services.attachments._manager", attachments)
    with TestClient(create_app(lifespan=None)) as test_client:
        yield test_client
