from unittest.mock import MagicMock

from google.auth.exceptions import GoogleAuthError

from identity_hub.services.attachments import AttachmentManager, UploadedFile
from identity_hub.utils.base import Err, Ok
from identity_hub.utils.errors import ExternalServiceError, UploadFailed


PICTURE = UploadedFile(filename="me.png", content_type="image/png", content=b"\x89PNG")


def drive_mock(file_id="drive-123"):
    drive = MagicMock()
    drive.files.return_value.create.return_value.execute.return_value = {"id": file_id}
    drive.files.return_value.get.return_value.execute.return_value = {
        "webViewLink": f"https://drive.google.com/file/d/{file_id}/view",
    }
    return drive


def test_upload_returns_links_and_shares_publicly():
    drive = drive_mock()
    manager = AttachmentManager(service_factory=lambda: drive, folder_id="folder-1")

    result = manager.upload_file(PICTURE)

    assert result == Ok({
        "file_id": "drive-123",
        "shareable_link": "https://drive.google.com/file/d/drive-123/view",
        "download_link": "https://drive.google.com/u/1/uc?id=drive-123&export=download",
    })
    create_kwargs = drive.files.return_value.create.call_args.kwargs
    assert create_kwargs["body"] == {"name": "me.png", "parents": ["folder-1"]}
    drive.permissions.return_value.create.assert_called_once_with(
        fileId="drive-123", body={"role": "reader", "type": "anyone"}
    )


def test_upload_failure_is_reported_not_raised():
    drive = drive_mock()
    drive.files.return_value.create.return_value.execute.side_effect = OSError("connection reset")
    manager = AttachmentManager(service_factory=lambda: drive, folder_id="")

    result = manager.upload_file(PICTURE)
    assert isinstance(result, Err)
    assert isinstance(result.error, UploadFailed)
    assert result.error.status_code == 502


def test_auth_failure_is_reported_not_raised():
    def factory():
        raise GoogleAuthError("bad key")

    result = AttachmentManager(service_factory=factory, folder_id="").upload_file(PICTURE)
    assert isinstance(result.error, UploadFailed)


def test_delete_file():
    drive = drive_mock()
    manager = AttachmentManager(service_factory=lambda: drive, folder_id="")

    assert manager.delete_file("drive-123") == Ok(None)
    drive.files.return_value.delete.assert_called_once_with(fileId="drive-123")

    drive.files.return_value.delete.return_value.execute.side_effect = OSError("timeout")
    result = manager.delete_file("drive-123")
    assert isinstance(result.error, ExternalServiceError)
