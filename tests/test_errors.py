import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from pydantic import BaseModel

from identity_hub.utils.base import Err, Ok, unwrap
from identity_hub.utils.errors import (
    AppError,
    Conflict,
    DuplicateEmail,
    DuplicateField,
    ExternalServiceError,
    Forbidden,
    InternalError,
    NoChange,
    NotFound,
    RateLimited,
    TokenNotFound,
    Unauthorized,
    UploadFailed,
    ValidationFailed,
    register_error_handlers,
)


@pytest.mark.parametrize(
    "cls, status_code, error_code",
    [
        (ValidationFailed, 400, "validation_failed"),
        (NoChange, 400, "no_change"),
        (Unauthorized, 401, "unauthorized"),
        (Forbidden, 403, "forbidden"),
        (NotFound, 404, "not_found"),
        (TokenNotFound, 404, "token_not_found"),
        (Conflict, 409, "conflict"),
        (DuplicateField, 409, "duplicate_field"),
        (DuplicateEmail, 409, "duplicate_email"),
        (RateLimited, 429, "rate_limited"),
        (ExternalServiceError, 502, "external_service_error"),
        (UploadFailed, 502, "upload_failed"),
        (InternalError, 500, "internal_error"),
    ],
)
def test_error_status_codes(cls, status_code, error_code):
    error = cls("boom")
    assert isinstance(error, AppError)
    assert error.status_code == status_code
    assert error.error_code == error_code
    assert error.message == "boom"


def test_to_dict_includes_optional_context():
    assert NotFound("missing").to_dict() == {"code": "not_found"}
    assert ValidationFailed("bad", field="email", details=["x"]).to_dict() == {
        "code": "validation_failed",
        "field": "email",
        "details": ["x"],
    }


def test_unwrap():
    assert unwrap(Ok(3)) == 3
    with pytest.raises(Conflict):
        unwrap(Err(Conflict("taken")))


class Body(BaseModel):
    count: int


@pytest.fixture
def client():
    app = FastAPI()
    register_error_handlers(app)

    @app.get("/missing")
    def missing():
        raise NotFound("Thing not found.", field="thing")

    @app.post("/body")
    def body(payload: Body):
        return payload

    @app.get("/crash")
    def crash():
        raise RuntimeError("unexpected")

    return TestClient(app, raise_server_exceptions=False)


def test_app_errors_are_enveloped(client):
    response = client.get("/missing")
    assert response.status_code == 404
    assert response.json() == {
        "success": False,
        "statusCode": 404,
        "message": "Thing not found.",
        "data": {"code": "not_found", "field": "thing"},
    }


def test_request_validation_is_400(client):
    response = client.post("/body", json={"count": "many"})
    assert response.status_code == 400
    body = response.json()
    assert body["data"]["code"] == "validation_failed"
    assert body["data"]["details"][0]["field"] == "count"


def test_unknown_route_is_enveloped(client):
    response = client.get("/nowhere")
    assert response.status_code == 404
    assert response.json()["success"] is False


def test_unhandled_errors_are_generic_500(client):
    response = client.get("/crash")
    assert response.status_code == 500
    assert response.json()["message"] == "An internal server error occurred."
