# tests/test_api.py
from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from conftest import FakeClock
from microflake.core.config import settings
from microflake.core.exceptions import InvalidArgumentError
from microflake.main import app
from microflake.services.generator import get_generator
from microflake.utils.snowflake import (
    EPOCH,
    MAX_TIMESTAMP_OFFSET,
    SnowflakeIDGenerator,
    datacenter_id_from,
    worker_id_from,
)


def test_create_id(client):
    response = client.post("/ids")

    assert response.status_code == 201
    snowflake_id = int(response.json()["id"])
    assert worker_id_from(snowflake_id) == settings.WORKER_ID
    assert datacenter_id_from(snowflake_id) == settings.DATACENTER_ID


def test_ids_increase_across_requests(client):
    ids = [int(client.post("/ids").json()["id"]) for _ in range(5)]

    assert ids == sorted(ids)
    assert len(set(ids)) == 5


def test_create_batch(client):
    response = client.post("/ids/batch", json={"count": 50})

    assert response.status_code == 201
    ids = [int(i) for i in response.json()["ids"]]
    assert len(ids) == 50
    assert ids == sorted(ids)
    assert len(set(ids)) == 50


def test_batch_count_must_be_positive(client):
    response = client.post("/ids/batch", json={"count": 0})

    assert response.status_code == 422


def test_batch_count_is_capped(client):
    response = client.post("/ids/batch", json={"count": settings.MAX_BATCH_SIZE + 1})

    assert response.status_code == 422


def test_decode_id(client):
    response = client.get("/ids/1")

    assert response.status_code == 200
    body = response.json()
    assert body["id"] == "1"
    assert body["sequence"] == 1
    assert body["worker_id"] == 0
    assert body["datacenter_id"] == 0
    assert body["timestamp_offset"] == 0
    assert body["timestamp"] == EPOCH


def test_decode_generated_id(client):
    snowflake_id = client.post("/ids").json()["id"]

    body = client.get(f"/ids/{snowflake_id}").json()

    assert body["id"] == snowflake_id
    assert body["worker_id"] == settings.WORKER_ID
    assert body["datacenter_id"] == settings.DATACENTER_ID


def test_decode_rejects_non_integer(client):
    assert client.get("/ids/not-a-number").status_code == 422


def test_decode_rejects_out_of_range(client):
    assert client.get(f"/ids/{1 << 63}").status_code == 422
    assert client.get("/ids/-1").status_code == 422


def test_health_reports_node_identity(client):
    body = client.get("/health").json()

    assert body == {
        "env": settings.ENV,
        "worker_id": settings.WORKER_ID,
        "datacenter_id": settings.DATACENTER_ID,
        "epoch": settings.EPOCH,
    }


def test_clock_moving_backwards_returns_503(client):
    now_ms = EPOCH + 1_000
    generator = SnowflakeIDGenerator(0, 0, clock=FakeClock(now_ms, now_ms - 10))
    generator.generate_id()
    app.dependency_overrides[get_generator] = lambda: generator

    response = client.post("/ids")

    assert response.status_code == 503
    assert "backwards" in response.json()["detail"]


def test_timestamp_overflow_returns_503(client):
    generator = SnowflakeIDGenerator(
        0, 0, clock=FakeClock(EPOCH + MAX_TIMESTAMP_OFFSET + 1)
    )
    app.dependency_overrides[get_generator] = lambda: generator

    response = client.post("/ids/batch", json={"count": 2})

    assert response.status_code == 503


def test_startup_fails_on_out_of_range_worker_id(monkeypatch):
    monkeypatch.setattr(settings, "WORKER_ID", 32)

    with pytest.raises(InvalidArgumentError):
        with TestClient(app):
            pass
