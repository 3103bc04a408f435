from unittest.mock import MagicMock

import pytest
from fastapi import Depends, FastAPI
from fastapi.testclient import TestClient

from identity_hub.services.rate_limit import limit_requests
from identity_hub.utils.errors import register_error_handlers


@pytest.fixture
def limited_client():
    app = FastAPI()
    register_error_handlers(app)

    @app.get("/ping", dependencies=[Depends(limit_requests(max_requests=2, window_seconds=60))])
    def ping():
        return {"pong": True}

    return TestClient(app)


def test_requests_over_the_limit_are_rejected(limited_client, monkeypatch):
    client = MagicMock()
    client.incr.side_effect = [1, 2, 3]
    client.ttl.return_value = 42
    monkeypatch.setattr("identity_hub.connections.redis._redis_client", client)

    assert limited_client.get("/ping").status_code == 200
    assert limited_client.get("/ping").status_code == 200

    response = limited_client.get("/ping")
    assert response.status_code == 429
    body = response.json()
    assert body["success"] is False
    assert body["data"]["code"] == "rate_limited"
    assert "42s" in body["message"]

    client.expire.assert_called_once_with("rl:testclient:/ping", 60)


def test_limit_is_not_enforced_without_redis(limited_client):
    for _ in range(5):
        assert limited_client.get("/ping").status_code == 200
