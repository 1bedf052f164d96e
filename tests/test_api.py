import pytest
from fastapi.testclient import TestClient

from saferoute import main
from saferoute.config import PREDEFINED_LOCATIONS

START = {"start_lat": 18.457905, "start_lon": 73.850494}


@pytest.fixture
def client():
    with TestClient(main.app) as c:
        yield c
    main.DANGERS.clear()


def test_root(client):
    response = client.get("/")
    assert response.status_code == 200
    assert "message" in response.json()


def test_health(client):
    data = client.get("/api/health").json()
    assert data["status"] == "ok"
    assert data["dangers"] == 2
    assert data["grid_step"] == 0.0005
    assert data["danger_radius"] == 50.0


def test_locations(client):
    data = client.get("/api/locations").json()
    assert [loc["name"] for loc in data] == list(PREDEFINED_LOCATIONS)


def test_report_danger(client):
    response = client.post("/api/dangers", json={"lat": 18.4560, "lng": 73.8420})
    assert response.status_code == 201
    assert response.json()["count"] == 3

    dangers = client.get("/api/dangers").json()
    assert {"lat": 18.4560, "lng": 73.8420} in dangers


def test_report_danger_out_of_range(client):
    response = client.post("/api/dangers", json={"lat": 95.0, "lng": 73.8420})
    assert response.status_code == 422


def test_route_to_named_destination(client):
    response = client.post("/api/route", json={**START, "destination_name": "Playfield"})
    assert response.status_code == 200

    data = response.json()
    assert not data["is_fallback"]
    assert data["waypoint_count"] == len(data["path"])
    assert data["path"][0] == {"lat": START["start_lat"], "lng": START["start_lon"]}
    assert data["duration"] == pytest.approx(data["distance"] / 1.4)


def test_route_with_explicit_dangers(client):
    payload = {
        "start_lat": 18.4579, "start_lon": 73.8400,
        "end_lat": 18.4579, "end_lon": 73.8440,
        "dangers": [{"lat": 18.4579, "lng": 73.8420}],
    }
    data = client.post("/api/route", json=payload).json()

    assert not data["is_fallback"]
    assert any(p["lat"] != 18.4579 for p in data["path"])
    assert data["min_clearance"] >= 50.0


def test_route_encircled_destination_is_fallback(client):
    end_lat, end_lon = 18.4579, 73.8430
    ring = [{"lat": end_lat + i * 0.0005, "lng": end_lon + j * 0.0005}
            for i in (-1, 0, 1) for j in (-1, 0, 1)]
    payload = {"start_lat": 18.4579, "start_lon": 73.8400,
               "end_lat": end_lat, "end_lon": end_lon, "dangers": ring}

    data = client.post("/api/route", json=payload).json()

    assert data["is_fallback"]
    assert data["waypoint_count"] == 2
    assert data["path"][-1] == {"lat": end_lat, "lng": end_lon}
    assert data["failure_reason"]
    assert data["min_clearance"] is None


def test_route_unknown_destination(client):
    response = client.post("/api/route", json={**START, "destination_name": "Mall"})
    assert response.status_code == 404


def test_route_missing_destination(client):
    response = client.post("/api/route", json=START)
    assert response.status_code == 400


def test_route_invalid_start(client):
    response = client.post("/api/route", json={"start_lat": 95.0, "start_lon": 73.85,
                                               "destination_name": "Home"})
    assert response.status_code == 400
