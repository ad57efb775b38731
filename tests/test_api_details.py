from fastapi.testclient import TestClient

from texas_parcel_viewer.api.app import create_app
from texas_parcel_viewer.details.store import DEMO_MASTER_ID, open_store, seed_demo


def _client(tmp_path):
    with open_store(str(tmp_path / "parcels.sqlite")) as store:
        seed_demo(store)
    return TestClient(create_app())


def test_api_routes_exist():
    paths = set(create_app().openapi()["paths"])
    assert "/health" in paths
    assert "/api/details/{identifier}" in paths
    assert "/api/parcels/{parcel_id}" in paths


def test_health_ok(tmp_path):
    resp = _client(tmp_path).get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"ok": True}


def test_details_by_master_id_and_prop_id(tmp_path):
    client = _client(tmp_path)
    by_master = client.get(f"/api/details/{DEMO_MASTER_ID}")
    by_prop = client.get("/api/details/PROP-100")
    assert by_master.status_code == 200
    details = by_master.json()["details"]
    assert details["prop_id"] == "PROP-100"
    assert details["land_segments_list"][0]["land_type_desc"] == "Residential Lot"
    assert "note" not in by_master.json()
    assert by_prop.json()["details"]["master_id"] == DEMO_MASTER_ID


def test_details_no_match(tmp_path):
    resp = _client(tmp_path).get("/api/details/does-not-exist")
    assert resp.status_code == 200
    assert resp.json() == {"details": None, "note": "no_match"}


def test_parcels_route_is_prop_id_only(tmp_path):
    client = _client(tmp_path)
    assert client.get("/api/parcels/PROP-200").json()["details"]["prop_id"] == "PROP-200"
    assert client.get(f"/api/parcels/{DEMO_MASTER_ID}").json()["note"] == "no_match"


def test_store_failure_returns_500(tmp_path, monkeypatch):
    from texas_parcel_viewer.api.routes import details as details_routes

    def broken(_path):
        raise RuntimeError("database is locked")

    monkeypatch.setattr(details_routes, "open_store", broken)
    resp = TestClient(create_app()).get("/api/details/PROP-100")
    assert resp.status_code == 500
    assert resp.json() == {"error": "Internal server error"}


def test_health_reports_store_failure(monkeypatch):
    from texas_parcel_viewer.api import app as app_module

    def broken(_path):
        raise RuntimeError("unable to open database file")

    monkeypatch.setattr(app_module, "open_store", broken)
    resp = TestClient(create_app()).get("/health")
    assert resp.status_code == 500
    assert resp.json()["ok"] is False


def test_details_are_cached(tmp_path, monkeypatch):
    client = _client(tmp_path)
    assert client.get("/api/details/PROP-200").status_code == 200

    from texas_parcel_viewer.api.routes import details as details_routes

    def broken(_path):
        raise RuntimeError("should not be called")

    monkeypatch.setattr(details_routes, "open_store", broken)
    assert client.get("/api/details/PROP-200").json()["details"]["prop_id"] == "PROP-200"


def test_request_id_header(tmp_path):
    resp = _client(tmp_path).get("/health")
    assert len(resp.headers["X-Request-ID"]) == 8
