import logging
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

import app.main as main_module
from app.main import create_app
from datastore.mongo import (
    ReadingStore,
    StoreConnectionError,
    StoreReadError,
    StoreWriteError,
)
from models.records import SensorReading


def _save(client: TestClient, payload):
    return client.post("/api/v1/data/save", json=payload)


def test_save_then_fetch_latest(api_client: TestClient) -> None:
    before = datetime.now(timezone.utc) - timedelta(seconds=1)

    response = _save(api_client, {"device_id": "ESP32_001", "temperature": 26.5})

    assert response.status_code == 201
    assert response.json() == {"message": "Data saved successfully."}

    latest = api_client.get("/api/v1/data/latest", params={"device": "ESP32_001"})

    assert latest.status_code == 200
    body = latest.json()
    assert set(body.keys()) == {"temperature", "timestamp"}
    assert body["temperature"] == 26.5
    timestamp = datetime.fromisoformat(body["timestamp"].replace("Z", "+00:00"))
    assert timestamp.tzinfo is not None
    assert before <= timestamp <= datetime.now(timezone.utc) + timedelta(seconds=1)


def test_latest_for_unknown_device_returns_not_found(api_client: TestClient) -> None:
    response = api_client.get("/api/v1/data/latest", params={"device": "UNKNOWN_DEVICE"})

    assert response.status_code == 404
    assert response.json() == {"error": "No data found for this device."}


@pytest.mark.parametrize(
    "payload",
    [
        {"device_id": "", "temperature": 26.5},
        {"device_id": "   ", "temperature": 26.5},
        {"temperature": 26.5},
        {"device_id": 17, "temperature": 26.5},
        {"device_id": "ESP32_001", "temperature": "26.5"},
        {"device_id": "ESP32_001", "temperature": True},
        {"device_id": "ESP32_001", "temperature": None},
        {"device_id": "ESP32_001"},
        [],
    ],
)
def test_invalid_save_is_rejected_without_writing(api_client: TestClient, collection, payload) -> None:
    response = _save(api_client, payload)

    assert response.status_code == 400
    assert response.json() == {"error": "Missing or invalid device_id or temperature."}
    assert collection.count_documents({}) == 0


def test_malformed_json_is_rejected(api_client: TestClient, collection) -> None:
    response = api_client.post(
        "/api/v1/data/save",
        content=b'{"device_id": "ESP32_001", "temperature": ',
        headers={"Content-Type": "application/json"},
    )

    assert response.status_code == 400
    assert "error" in response.json()
    assert collection.count_documents({}) == 0


@pytest.mark.parametrize(
    "raw_temperature",
    [b"NaN", b"Infinity", b"-Infinity", b"1e400", b"9" * 400],
)
def test_non_finite_or_oversized_temperature_is_rejected(
    api_client: TestClient, collection, raw_temperature: bytes
) -> None:
    response = api_client.post(
        "/api/v1/data/save",
        content=b'{"device_id": "ESP32_001", "temperature": ' + raw_temperature + b"}",
        headers={"Content-Type": "application/json"},
    )

    assert response.status_code == 400
    assert response.json() == {"error": "Missing or invalid device_id or temperature."}
    assert collection.count_documents({}) == 0


def test_integer_temperature_is_accepted(api_client: TestClient, collection) -> None:
    response = _save(api_client, {"device_id": "ESP32_002", "temperature": 25})

    assert response.status_code == 201
    latest = api_client.get("/api/v1/data/latest", params={"device": "ESP32_002"})
    assert latest.json()["temperature"] == 25.0


def test_device_id_is_stored_trimmed(api_client: TestClient, collection) -> None:
    response = _save(api_client, {"device_id": "  ESP32_003 ", "temperature": 21.0})

    assert response.status_code == 201
    stored = collection.find_one({})
    assert stored["device_id"] == "ESP32_003"
    assert isinstance(stored["timestamp"], datetime)


@pytest.mark.parametrize("params", [{}, {"device": ""}, {"device": "  "}])
def test_latest_without_device_is_rejected(api_client: TestClient, store, monkeypatch, params) -> None:
    def fail(_device_id: str):
        raise AssertionError("store must not be queried")

    monkeypatch.setattr(store, "find_latest", fail)

    response = api_client.get("/api/v1/data/latest", params=params)

    assert response.status_code == 400
    assert response.json() == {"error": "Missing device ID query parameter."}


def test_latest_returns_newest_timestamp_not_last_insert(api_client: TestClient, store) -> None:
    older = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)
    newer = older + timedelta(minutes=5)
    store.insert(SensorReading(device_id="ESP32_001", temperature=30.0, timestamp=newer))
    store.insert(SensorReading(device_id="ESP32_001", temperature=20.0, timestamp=older))
    store.insert(
        SensorReading(device_id="ESP32_999", temperature=99.0, timestamp=newer + timedelta(hours=1))
    )

    response = api_client.get("/api/v1/data/latest", params={"device": "ESP32_001"})

    assert response.status_code == 200
    body = response.json()
    assert body["temperature"] == 30.0
    assert datetime.fromisoformat(body["timestamp"].replace("Z", "+00:00")) == newer


def test_write_failure_returns_generic_server_error(api_client: TestClient, store, monkeypatch) -> None:
    def broken_insert(_reading):
        raise StoreWriteError("connection reset by mongo-internal-host")

    monkeypatch.setattr(store, "insert", broken_insert)

    response = _save(api_client, {"device_id": "ESP32_001", "temperature": 26.5})

    assert response.status_code == 500
    assert response.json() == {"error": "Failed to save data to database."}
    assert "mongo-internal-host" not in response.text


def test_read_failure_returns_generic_server_error(api_client: TestClient, store, monkeypatch) -> None:
    def broken_find(_device_id):
        raise StoreReadError("cursor killed on mongo-internal-host")

    monkeypatch.setattr(store, "find_latest", broken_find)

    response = api_client.get("/api/v1/data/latest", params={"device": "ESP32_001"})

    assert response.status_code == 500
    assert response.json() == {"error": "Failed to retrieve data from database."}
    assert "mongo-internal-host" not in response.text


def test_unknown_route_uses_error_body(api_client: TestClient) -> None:
    response = api_client.get("/api/v1/data/history")

    assert response.status_code == 404
    assert response.json() == {"error": "Not Found"}


def test_health_endpoints(api_client: TestClient) -> None:
    assert api_client.get("/health").json() == {"status": "ok"}
    assert api_client.get("/").json()["status"] == "ok"


def test_lifespan_closes_store(store: ReadingStore, monkeypatch) -> None:
    closed = []
    monkeypatch.setattr(store, "close", lambda: closed.append(True))

    with TestClient(create_app(store_factory=lambda: store)) as client:
        assert client.app.state.store is store
        assert closed == []

    assert closed == [True]


def test_startup_fails_when_database_is_unreachable() -> None:
    def unreachable() -> ReadingStore:
        raise StoreConnectionError("Could not connect to MongoDB at mongodb://nowhere")

    app = create_app(store_factory=unreachable)

    with pytest.raises(StoreConnectionError):
        with TestClient(app):
            pass


def test_run_exits_non_zero_when_database_is_unreachable(monkeypatch) -> None:
    def unreachable() -> ReadingStore:
        raise StoreConnectionError("Could not connect to MongoDB at mongodb://nowhere")

    def serve(*_args, **_kwargs):
        raise AssertionError("server must not start without a database")

    monkeypatch.setattr(main_module, "connect_default_store", unreachable)
    monkeypatch.setattr(main_module.uvicorn, "run", serve)

    with pytest.raises(SystemExit) as excinfo:
        main_module.run()

    assert excinfo.value.code == 1


def test_run_serves_with_connected_store(store: ReadingStore, monkeypatch, caplog) -> None:
    served = {}

    def serve(app, **kwargs):
        served["app"] = app
        served["messages_before_bind"] = [record.getMessage() for record in caplog.records]
        served.update(kwargs)

    caplog.set_level(logging.INFO, logger="app.main")
    monkeypatch.delenv("HOST", raising=False)
    monkeypatch.setenv("PORT", "8081")
    monkeypatch.setattr(main_module, "connect_default_store", lambda: store)
    monkeypatch.setattr(main_module.uvicorn, "run", serve)

    main_module.run()

    assert served["port"] == 8081
    assert served["lifespan"] == "on"
    assert "Starting sensor relay API on http://0.0.0.0:8081" in served["messages_before_bind"]
    assert not any("running" in message for message in served["messages_before_bind"])
    with TestClient(served["app"]) as client:
        assert client.app.state.store is store
