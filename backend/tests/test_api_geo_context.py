import json
from unittest.mock import patch

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from api.routes import geo_context
from domain.errors import MissingCredentialsError, PlacesServiceError
from domain.models import PlaceCandidate
from services.rate_limit import FixedWindowRateLimiter
from tests.fakes import FakePlaces

NORTH = PlaceCandidate("North Pier", 37.7965, -122.3937, "north", ("tourist_attraction",), 4.5)
SOUTH = PlaceCandidate("South Cafe", 37.7945, -122.3937, "south", ("cafe",), 4.5)

BODY = {"latitude": 37.7955, "longitude": -122.3937, "direction": {"x": 0, "y": 0, "z": 1}}


@pytest.fixture
def limiter():
    return FixedWindowRateLimiter(max_requests=60, clock=lambda: 1_700_000_000.0)


def _client(places, limiter):
    app = FastAPI()
    app.include_router(geo_context.router, prefix="/api")
    return TestClient(app), patch.multiple(
        geo_context,
        get_places=lambda: places,
        get_rate_limiter=lambda: limiter,
    )


def test_ranks_places_in_pointing_direction(limiter):
    places = FakePlaces(nearby_results={500.0: [SOUTH, NORTH]})
    client, patches = _client(places, limiter)
    with patches:
        resp = client.post("/api/geo-context", json=BODY)
    assert resp.status_code == 200
    data = resp.json()["places"]
    assert [p["placeId"] for p in data] == ["north", "south"]
    assert data[0]["type"] == "tourist_attraction"
    assert 0 < data[1]["confidence"] < data[0]["confidence"] <= 1
    assert resp.headers["X-RateLimit-Limit"] == "60"
    assert "Cache-Control" in resp.headers


def test_top_five_only(limiter):
    many = [PlaceCandidate(f"P{i}", 37.7955 + i * 0.0001, -122.3937, f"p{i}") for i in range(9)]
    client, patches = _client(FakePlaces(nearby_results={500.0: many}), limiter)
    with patches:
        resp = client.post("/api/geo-context", json=BODY)
    assert len(resp.json()["places"]) == 5


@pytest.mark.parametrize(
    "body",
    [
        {"latitude": 37.7, "longitude": -122.4},
        {"longitude": -122.4, "direction": {"x": 0, "y": 0, "z": 1}},
    ],
)
def test_missing_fields(limiter, body):
    client, patches = _client(FakePlaces(), limiter)
    with patches:
        resp = client.post("/api/geo-context", json=body)
    assert resp.status_code == 400
    assert resp.json() == {"error": "Location and direction required"}


def test_out_of_range(limiter):
    client, patches = _client(FakePlaces(), limiter)
    with patches:
        resp = client.post("/api/geo-context", json={**BODY, "latitude": 91})
    assert resp.status_code == 400
    assert resp.json() == {"error": "Invalid coordinates"}


@pytest.mark.parametrize(
    "body",
    [
        {**BODY, "latitude": float("nan")},
        {**BODY, "heading": float("inf")},
        {**BODY, "direction": {"x": float("nan"), "y": 0, "z": 1}},
    ],
)
def test_non_finite_values_rejected(limiter, body):
    client, patches = _client(FakePlaces(), limiter)
    with patches:
        resp = client.post(
            "/api/geo-context",
            content=json.dumps(body),
            headers={"Content-Type": "application/json"},
        )
    assert resp.status_code == 400
    assert resp.json() == {"error": "Invalid coordinates"}


@pytest.mark.parametrize(
    "error",
    [MissingCredentialsError("GOOGLE_API_KEY"), PlacesServiceError("down")],
)
def test_places_unavailable_returns_empty_list(limiter, error):
    client, patches = _client(FakePlaces(nearby_error=error), limiter)
    with patches:
        resp = client.post("/api/geo-context", json=BODY)
    assert resp.status_code == 200
    assert resp.json() == {"places": []}


def test_rate_limited():
    limiter = FixedWindowRateLimiter(max_requests=1, clock=lambda: 1_700_000_000.0)
    client, patches = _client(FakePlaces(), limiter)
    with patches:
        client.post("/api/geo-context", json=BODY)
        resp = client.post("/api/geo-context", json=BODY)
    assert resp.status_code == 429
