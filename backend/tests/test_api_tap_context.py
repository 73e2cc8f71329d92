import base64
import io
import json
from unittest.mock import patch

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from PIL import Image

from api.routes import tap_context
from services.disambiguation import DisambiguationEngine
from services.rate_limit import FixedWindowRateLimiter
from tests.fakes import FERRY_CANDIDATE, FERRY_DETAILS, FakePlaces, FakeVision

FERRY_JSON = json.dumps({"name": "Ferry Building", "type": "landmark", "year": "1898"})


def _image_b64(width=640, height=480) -> str:
    buf = io.BytesIO()
    Image.new("RGB", (width, height), (200, 180, 160)).save(buf, format="JPEG")
    return base64.b64encode(buf.getvalue()).decode()


def _client(engine):
    app = FastAPI()
    app.include_router(tap_context.router, prefix="/api")
    patcher = patch.object(tap_context, "get_engine", return_value=engine)
    patcher.start()
    return TestClient(app), patcher


@pytest.fixture
def vision():
    return FakeVision(FERRY_JSON)


@pytest.fixture
def places():
    return FakePlaces(text_results={"Ferry Building": [FERRY_CANDIDATE]}, details={"ferry": FERRY_DETAILS})


@pytest.fixture
def make_client():
    patchers = []

    def _make(engine):
        client, patcher = _client(engine)
        patchers.append(patcher)
        return client

    yield _make
    for p in patchers:
        p.stop()


def _engine(vision, places, max_requests=60):
    limiter = FixedWindowRateLimiter(max_requests=max_requests, clock=lambda: 1_700_000_000.0)
    return DisambiguationEngine(vision, places, rate_limiter=limiter, clock=lambda: 1_700_000_000.0)


def _body(**overrides):
    body = {"image": _image_b64(), "tapX": 0.5, "tapY": 0.5, "latitude": 37.7955, "longitude": -122.3937}
    body.update(overrides)
    return body


def test_missing_image(make_client, vision, places):
    client = make_client(_engine(vision, places))
    resp = client.post("/api/tap-context", json={"tapX": 0.5, "tapY": 0.5})
    assert resp.status_code == 400
    assert resp.json() == {"error": "Image and tap coordinates required"}
    assert vision.calls == []


def test_missing_tap(make_client, vision, places):
    client = make_client(_engine(vision, places))
    resp = client.post("/api/tap-context", json={"image": _image_b64(), "tapX": 0.5})
    assert resp.status_code == 400


def test_frame_too_large(make_client, vision, places):
    client = make_client(_engine(vision, places))
    with patch.object(tap_context.settings, "MAX_FRAME_BYTES", 100):
        resp = client.post("/api/tap-context", json=_body())
    assert resp.status_code == 400
    assert resp.json() == {"error": "Frame too large"}


def test_not_an_image(make_client, vision, places):
    client = make_client(_engine(vision, places))
    resp = client.post("/api/tap-context", json=_body(image=base64.b64encode(b"plain text").decode()))
    assert resp.status_code == 400
    assert resp.json() == {"error": "Unreadable image"}


@pytest.mark.parametrize("field", ["tapX", "tapY", "latitude", "longitude", "heading"])
def test_non_finite_coordinates_rejected(make_client, vision, places, field):
    client = make_client(_engine(vision, places))
    raw = json.dumps(_body(**{field: float("nan")}))
    assert "NaN" in raw
    resp = client.post("/api/tap-context", content=raw, headers={"Content-Type": "application/json"})
    assert resp.status_code == 400
    assert resp.json() == {"error": "Invalid coordinates"}
    assert vision.calls == []


def test_place_match(make_client, vision, places):
    client = make_client(_engine(vision, places))
    resp = client.post("/api/tap-context", json=_body(image="data:image/jpeg;base64," + _image_b64()))
    assert resp.status_code == 200
    data = resp.json()
    assert data["kind"] == "place_match"
    assert data["title"] == "Ferry Building"
    assert data["confidence"] == 0.9
    assert data["year"] == "1898"
    assert data["tapPoint"] == {"x": 0.5, "y": 0.5}
    assert resp.headers["X-RateLimit-Limit"] == "60"
    assert resp.headers["X-RateLimit-Remaining"] == "59"
    assert resp.headers["X-RateLimit-Reset"].endswith("Z")


def test_roi_is_cropped_before_vision(make_client, vision, places):
    client = make_client(_engine(vision, places))
    client.post("/api/tap-context", json=_body(roiSize=200, tapX=0.9, tapY=0.1))
    sent = Image.open(io.BytesIO(vision.calls[0]))
    assert sent.size == (200, 200)


def test_without_location(make_client, places):
    client = make_client(_engine(FakeVision(""), places))
    resp = client.post("/api/tap-context", json=_body(latitude=None, longitude=None))
    assert resp.status_code == 200
    assert resp.json()["kind"] == "location_required"
    assert places.call_count == 0


def test_rate_limited(make_client, vision, places):
    client = make_client(_engine(vision, places, max_requests=1))
    assert client.post("/api/tap-context", json=_body()).status_code == 200
    resp = client.post("/api/tap-context", json=_body())
    assert resp.status_code == 429
    assert resp.json() == {"error": "Rate limit exceeded"}
    assert resp.headers["X-RateLimit-Remaining"] == "0"


def test_clients_identified_by_forwarded_for(make_client, vision, places):
    client = make_client(_engine(vision, places, max_requests=1))
    first = client.post("/api/tap-context", json=_body(), headers={"x-forwarded-for": "1.1.1.1, 10.0.0.1"})
    second = client.post("/api/tap-context", json=_body(), headers={"x-forwarded-for": "2.2.2.2"})
    again = client.post("/api/tap-context", json=_body(), headers={"x-real-ip": "1.1.1.1"})
    assert [first.status_code, second.status_code, again.status_code] == [200, 200, 429]


def test_unexpected_failure_is_generic_500(make_client, vision):
    places = FakePlaces(text_error=RuntimeError("api key abc123 leaked"))
    client = make_client(_engine(vision, places))
    resp = client.post("/api/tap-context", json=_body())
    assert resp.status_code == 500
    assert resp.json() == {"error": "Context lookup failed"}
