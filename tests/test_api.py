import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from app.api import register_error_handlers
from app.api.v1 import routers
from app.domain import EntityStore
from app.services.v1 import TransportService
from common.logger.logger_middleware import RequestLoggingMiddleware
from tests.conftest import TODAY, TRIP_DAY


@pytest.fixture()
def client():
    app = FastAPI()
    app.add_middleware(RequestLoggingMiddleware, log_query_params=False)
    for router in routers:
        app.include_router(router)
    register_error_handlers(app)
    app.state.transport = TransportService(EntityStore(clock=lambda: TODAY))
    with TestClient(app) as test_client:
        yield test_client


def _create(client: TestClient, path: str, body: dict) -> dict:
    response = client.post(path, json=body)
    assert response.status_code == 201, response.text
    return response.json()


@pytest.fixture()
def fleet(client):
    destination = _create(client, "/registry/destinations", {"name": "Hospital A"})
    treatment = _create(
        client,
        "/registry/treatment_types",
        {"name": "Oncology", "default_destination_id": destination["id"]},
    )
    vehicle = _create(
        client, "/registry/vehicles", {"model": "Car", "plate": "CAR0001", "capacity": 1}
    )
    driver = _create(client, "/registry/drivers", {"name": "Joao Motorista"})
    return {
        "destination": destination,
        "treatment": treatment,
        "vehicle": vehicle,
        "driver": driver,
    }


def test_soft_warning_needs_explicit_confirmation(client, fleet):
    first = _create(client, "/patients", {"name": "Walker", "is_tfd": False})
    second = _create(client, "/patients", {"name": "Runner", "is_tfd": False})
    draft = _create(
        client,
        "/manifests",
        {"date": TRIP_DAY.isoformat(), "vehicle_id": fleet["vehicle"]["id"]},
    )

    _create(client, f"/manifests/{draft['id']}/patients/{first['id']}", {})
    response = client.post(f"/manifests/{draft['id']}/patients/{second['id']}", json={})

    assert response.status_code == 409
    body = response.json()
    assert body["error"] == "CONFIRMATION_REQUIRED"
    assert body["details"]["warnings"][0]["code"] == "CAPACITY_WARNING"

    confirmed = client.post(
        f"/manifests/{draft['id']}/patients/{second['id']}", params={"confirm": True}, json={}
    )
    assert confirmed.status_code == 201
    assert client.get(f"/manifests/{draft['id']}").json()["occupancy"] == 2

    save = client.post(
        f"/manifests/{draft['id']}/save",
        json={
            "details": {
                "date": TRIP_DAY.isoformat(),
                "vehicle_id": fleet["vehicle"]["id"],
                "driver_id": fleet["driver"]["id"],
            }
        },
    )
    assert save.status_code == 422
    assert save.json()["error"] == "CAPACITY_EXCEEDED"


def test_appointment_flow_and_error_payloads(client, fleet):
    patient = _create(client, "/patients", {"name": "Maria Silva"})
    appointment = {
        "patient_id": patient["id"],
        "date": TRIP_DAY.isoformat(),
        "treatment_id": fleet["treatment"]["id"],
    }
    created = _create(client, "/appointments", appointment)
    assert created["destination_name"] == "Hospital A"

    duplicate = client.post("/appointments", json=appointment)
    assert duplicate.status_code == 409
    assert duplicate.json()["error"] == "DUPLICATE_APPOINTMENT"

    found = client.get("/appointments", params={"patient_name": "maria"})
    assert [a["id"] for a in found.json()] == [created["id"]]

    missing = client.get("/appointments/nope")
    assert missing.status_code == 404
    assert missing.json()["details"]["kind"] == "Appointment"

    in_use = client.delete(f"/patients/{patient['id']}")
    assert in_use.status_code == 409
    assert in_use.json()["error"] == "REFERENTIAL_INTEGRITY"


def test_tfd_patient_cannot_be_added_by_hand(client, fleet):
    patient = _create(client, "/patients", {"name": "Tereza"})
    draft = _create(client, "/manifests", {"date": TRIP_DAY.isoformat()})

    response = client.post(f"/manifests/{draft['id']}/patients/{patient['id']}", json={})

    assert response.status_code == 422
    assert response.json()["error"] == "MANUAL_ADD_NOT_ALLOWED"


def test_registry_rejects_invalid_payload(client):
    response = client.post("/registry/vehicles", json={"model": "Van", "capacity": 0})

    assert response.status_code == 422
    assert response.json()["error"] == "VALIDATION_ERROR"


def test_request_id_is_echoed(client):
    response = client.get("/patients", headers={"X-Request-ID": "req-42"})

    assert response.status_code == 200
    assert response.headers["X-Request-ID"] == "req-42"
    assert client.get("/patients").headers["X-Request-ID"]


def test_malformed_body_uses_the_error_payload(client):
    response = client.post("/patients", json={"is_tfd": True})

    assert response.status_code == 422
    body = response.json()
    assert body["error"] == "VALIDATION_ERROR"
    assert body["details"]["errors"][0]["field"] == "body.name"
