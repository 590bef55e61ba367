import asyncio
import os
import sys

import pytest
from fastapi.testclient import TestClient

# Add the project root to sys.path to resolve module imports correctly
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

import config
import db_manager
from draper import draperize
from obfuscation import get_draperizer


@pytest.fixture
def db_file(tmp_path, monkeypatch):
    """Points the persistence layer at a fresh, temporary database file."""
    test_db_path = tmp_path / "test_draper.db"
    monkeypatch.setattr("db_manager.DB_FILE", str(test_db_path))
    get_draperizer.cache_clear()
    db_manager.init_db()
    yield test_db_path
    get_draperizer.cache_clear()


@pytest.fixture
def client(db_file):
    """
    Pytest fixture to provide a test client with an isolated, temporary database.
    The TestClient context manager runs the application's lifespan events.
    """
    from app import app

    with TestClient(app) as test_client:
        yield test_client


# ===================================
# 1. Persistence Tests
# ===================================

def test_init_db_is_idempotent(db_file):
    db_manager.init_db()
    db_manager.init_db()
    with db_manager.get_db_connection() as conn:
        tables = {row["name"] for row in conn.execute("SELECT name FROM sqlite_master WHERE type = 'table'")}
    assert {"dd_sequences", "records"} <= tables


def test_sql_functions(db_file):
    with db_manager.get_db_connection() as conn:
        assert conn.execute("SELECT draperize(42, 0, 4)").fetchone()[0] == "0945"
        assert conn.execute("SELECT undraperize('0945', 0)").fetchone()[0] == "0042"
        assert conn.execute("SELECT draperize(-1, 0, 4)").fetchone()[0] is None
        assert conn.execute("SELECT undraperize('09x5', 0)").fetchone()[0] is None


def test_register_functions_twice(db_file):
    with db_manager.get_db_connection() as conn:
        db_manager.register_functions(conn)
        assert conn.execute("SELECT draperize(1, 0, 10)").fetchone()[0] == "4517239960"


def test_next_value_is_monotonic(db_file):
    with db_manager.get_db_connection() as conn:
        values = [db_manager.next_value(conn, "a_seq") for _ in range(3)]
        other = db_manager.next_value(conn, "b_seq")
    assert values == [1, 2, 3]
    assert other == 1


def test_create_record_from_sequence(db_file):
    first = asyncio.run(db_manager.create_record(label="first"))
    second = asyncio.run(db_manager.create_record(label="second"))
    assert first["source_value"] == 1
    assert second["source_value"] == 2
    assert first["public_id"] == draperize(1, config.SPIN, config.LENGTH)
    assert first["public_id"] != second["public_id"]

    fetched = asyncio.run(db_manager.get_record_by_public_id(first["public_id"]))
    assert fetched["label"] == "first"
    assert fetched["source_value"] == 1
    assert asyncio.run(db_manager.get_record_by_source(2))["public_id"] == second["public_id"]
    assert asyncio.run(db_manager.get_record_by_public_id("0000000000")) is None


def test_create_record_rejects_source_value_for_sequence(db_file):
    with pytest.raises(ValueError):
        asyncio.run(db_manager.create_record(label="x", source_value=5))


def test_create_record_from_column(db_file, monkeypatch):
    monkeypatch.setattr(config, "SOURCE", "column")
    record = asyncio.run(db_manager.create_record(label="legacy", source_value=77))
    assert record["source_value"] == 77
    assert get_draperizer().deobfuscate(record["public_id"]) == 77

    with pytest.raises(ValueError, match="already in use"):
        asyncio.run(db_manager.create_record(label="again", source_value=77))
    with pytest.raises(ValueError):
        asyncio.run(db_manager.create_record(label="missing"))
    with pytest.raises(ValueError):
        asyncio.run(db_manager.create_record(label="negative", source_value=-3))


def test_create_record_with_prefix(db_file, monkeypatch):
    monkeypatch.setattr(config, "PREFIX_LENGTH", 2)
    get_draperizer.cache_clear()
    record = asyncio.run(db_manager.create_record(label="prefixed"))
    assert len(record["public_id"]) == config.LENGTH + 2
    assert record["public_id"][2:] == draperize(1, config.SPIN, config.LENGTH)
    assert get_draperizer().deobfuscate(record["public_id"]) == 1


# ===================================
# 2. API Endpoint Tests
# ===================================

def test_health_check_ok(client: TestClient):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_api_draperize(client: TestClient):
    response = client.post("/api/v1/draperize", json={"value": 42, "spin": 0, "length": 4})
    assert response.status_code == 200
    assert response.json() == {"encoded": "0945", "spin": 0, "length": 4}


def test_api_undraperize(client: TestClient):
    response = client.post("/api/v1/undraperize", json={"encoded": "0945", "spin": 0, "length": 4})
    assert response.status_code == 200
    assert response.json() == {"decoded": "0042", "value": 42}


def test_api_drawn_round_trip(client: TestClient):
    encoded = client.post(
        "/api/v1/draperize", json={"value": 31337, "spin": 9, "length": 8, "drawn": True}
    ).json()["encoded"]
    response = client.post(
        "/api/v1/undraperize", json={"encoded": encoded, "spin": 9, "drawn": True}
    )
    assert response.json()["value"] == 31337


def test_api_draperize_unsafe_spin(client: TestClient):
    response = client.post("/api/v1/draperize", json={"value": 42, "spin": 5, "length": 4})
    assert response.status_code == 400
    assert "not reversible" in response.json()["error"]


def test_api_draperize_strict_overflow(client: TestClient):
    response = client.post(
        "/api/v1/draperize", json={"value": 123456, "spin": 0, "length": 4, "strict": True}
    )
    assert response.status_code == 400


def test_api_draperize_rejects_negative_value(client: TestClient):
    response = client.post("/api/v1/draperize", json={"value": -1})
    assert response.status_code == 422


def test_api_undraperize_width_mismatch(client: TestClient):
    response = client.post("/api/v1/undraperize", json={"encoded": "0945", "spin": 0, "length": 5})
    assert response.status_code == 422
    assert "Expected 5 digits" in response.json()["error"]


def test_api_undraperize_invalid_digits(client: TestClient):
    response = client.post("/api/v1/undraperize", json={"encoded": "09a5", "spin": 0})
    assert response.status_code == 400


def test_api_create_and_get_record(client: TestClient):
    response = client.post("/api/v1/records", json={"label": "invoice"})
    assert response.status_code == 201
    data = response.json()
    assert data["source_value"] == 1
    assert data["public_id"] == draperize(1, config.SPIN, config.LENGTH)

    lookup = client.get(f"/api/v1/records/{data['public_id']}")
    assert lookup.status_code == 200
    assert lookup.json()["label"] == "invoice"


def test_api_get_record_not_found(client: TestClient):
    response = client.get("/api/v1/records/1234567890")
    assert response.status_code == 404
    assert "not found" in response.json()["error"]


def test_api_create_record_rejects_source_value_for_sequence(client: TestClient):
    response = client.post("/api/v1/records", json={"label": "x", "source_value": 3})
    assert response.status_code == 400


def test_api_create_record_conflict(client: TestClient, monkeypatch):
    monkeypatch.setattr(config, "SOURCE", "column")
    first = client.post("/api/v1/records", json={"label": "a", "source_value": 9})
    assert first.status_code == 201
    second = client.post("/api/v1/records", json={"label": "b", "source_value": 9})
    assert second.status_code == 409


def test_api_get_record_by_source(client: TestClient):
    created = client.post("/api/v1/records", json={"label": "by-source"}).json()

    response = client.get(f"/api/v1/records/by-source/{created['source_value']}")
    assert response.status_code == 200
    assert response.json()["public_id"] == created["public_id"]

    missing = client.get("/api/v1/records/by-source/424242")
    assert missing.status_code == 404
    assert client.get("/api/v1/records/by-source/-1").status_code == 422
