import os

import pytest
from fastapi import FastAPI

from apps.fleet.models import VehicleStatus, VehicleType
from apps.fleet.models.vehicle import VehicleModel
from core.utils.install_apps import import_csv_data, install_apps
from core.utils.models_pool import models_pool
from settings import BASE_DIR

SEED_FILE = os.path.join(BASE_DIR, "apps", "fleet", "data", "vehicle.csv")


def test_models_pool_discovers_vehicle():
    assert models_pool["vehicle"] is VehicleModel


def test_import_seed_vehicles(db):
    import_csv_data(SEED_FILE, db)

    vehicles = VehicleModel.get_all(db)
    assert [vehicle.registration_number for vehicle in vehicles] == [
        "DL-01-AB-1234",
        "DL-02-CD-5678",
        "DL-03-EF-9012",
    ]

    scooter = vehicles[1]
    assert scooter.type == VehicleType.two_wheeler
    assert scooter.status == VehicleStatus.in_transit
    assert scooter.max_weight == 15
    assert scooter.current_lat == pytest.approx(28.5355)
    assert scooter.allow_consolidation is True
    assert scooter.driver_license is None
    assert scooter.total_deliveries == 89


def test_import_is_idempotent(db):
    import_csv_data(SEED_FILE, db)
    import_csv_data(SEED_FILE, db)

    assert len(VehicleModel.get_all(db)) == 3


def test_import_requires_string_id(db, tmp_path):
    data_file = tmp_path / "vehicle.csv"
    data_file.write_text("registration_number,type\nDL-01-AB-1234,4w\n", encoding="utf-8")

    with pytest.raises(Exception, match="string_id"):
        import_csv_data(str(data_file), db)


def test_import_skips_unknown_model(db, tmp_path):
    data_file = tmp_path / "parcel.csv"
    data_file.write_text("string_id\nparcel_1\n", encoding="utf-8")

    import_csv_data(str(data_file), db)

    assert VehicleModel.get_all(db) == []


def test_install_apps_registers_routes(db):
    fastapi_app = FastAPI()

    install_apps(fastapi_app)

    paths = {route.path for route in fastapi_app.routes}
    assert {"/auth/login", "/auth/me", "/util/health", "/vehicles", "/vehicles/{vehicle_id}", "/ws"} <= paths
    assert len(VehicleModel.get_all(db)) == 3
