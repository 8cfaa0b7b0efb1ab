import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["APP_SECRET"] = "test-secret"

import pytest
from fastapi.testclient import TestClient

from apps.fleet.models.vehicle import VehicleModel
from db import SessionLocal
from main import app


@pytest.fixture()
def db():
    session = SessionLocal()
    # seed vehicles are imported on startup, every test starts from an empty fleet
    session.query(VehicleModel).delete()
    session.commit()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def client(db):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture()
def make_vehicle_payload():
    counter = iter(range(1, 10_000))

    def _make(**overrides) -> dict:
        payload = {
            "registration_number": f"DL-09-ZZ-{next(counter):04d}",
            "type": "4w",
            "driver_name": "Rajesh Kumar",
            "driver_phone": "+91-9876543210",
            "carrier_name": "BlueDart Express",
            "max_weight": 50,
            "max_volume": 2.5,
        }
        payload.update(overrides)
        return payload

    return _make


@pytest.fixture()
def create_vehicle(client, make_vehicle_payload):
    def _create(**overrides) -> dict:
        response = client.post("/vehicles", json=make_vehicle_payload(**overrides))
        assert response.status_code == 200, response.text
        return response.json()

    return _create
