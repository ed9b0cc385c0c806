"""
Tests for the HTTP layer.

The app runs with mock model and mock frame sources, so requests go
through the real synchronizer without FFmpeg or network access.
Dependencies are swapped through app.dependency_overrides.
"""

import asyncio
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from slidesync.api.dependencies import get_sync_model_client
from slidesync.api.routes.sync import status_for_error
from slidesync.config.settings import Settings, get_settings
from slidesync.core.sync.errors import (
    DocumentDecodeError,
    InvalidDurationError,
    ModelResponseError,
    PayloadTooLargeError,
    RateLimitExceeded,
    RequestRejectedError,
)
from slidesync.main import create_app

API_KEY = "test-key"
HEADERS = {"X-API-Key": API_KEY}


def make_settings(**overrides) -> Settings:
    values = {
        "api_keys": API_KEY,
        "model_mock_mode": True,
        "video_mock_mode": True,
        "anthropic_api_key": "",
    }
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def app():
    application = create_app()
    application.dependency_overrides[get_settings] = lambda: make_settings()
    yield application
    application.dependency_overrides.clear()


@pytest.fixture
def client(app):
    return TestClient(app)


def upload(pdf, video=b"fake video bytes"):
    return {
        "video": ("lecture.mp4", video, "video/mp4"),
        "document": ("slides.pdf", pdf, "application/pdf"),
    }


class RaisingModelClient:
    accepts_inline_video = False

    def __init__(self, error):
        self.error = error

    async def generate_sync_events(self, parts):
        raise self.error


class SlowModelClient:
    accepts_inline_video = False

    async def generate_sync_events(self, parts):
        await asyncio.sleep(5)
        return []


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------

class TestHealth:

    def test_liveness(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "ok"
        assert body["details"]["mock_mode"] == {"model": True, "video": True}

    def test_ready_in_mock_mode(self, client):
        response = client.get("/health/ready")

        assert response.status_code == 200
        assert response.json()["status"] == "ready"

    def test_not_ready_without_api_key(self, app, client):
        app.dependency_overrides[get_settings] = lambda: make_settings(model_mock_mode=False)

        response = client.get("/health/ready")

        assert response.status_code == 503
        checks = {c["name"]: c for c in response.json()["checks"]}
        assert checks["configuration"]["status"] == "error"
        assert "ANTHROPIC_API_KEY" in checks["configuration"]["error"]

    def test_not_ready_without_ffprobe(self, app, client):
        app.dependency_overrides[get_settings] = lambda: make_settings(
            video_mock_mode=False, ffprobe_path="/missing/ffprobe"
        )

        with patch(
            "slidesync.api.routes.health.ffmpeg_available",
            side_effect=lambda path: path != "/missing/ffprobe",
        ):
            response = client.get("/health/ready")

        assert response.status_code == 503
        checks = {c["name"]: c for c in response.json()["checks"]}
        assert checks["ffmpeg"]["status"] == "ok"
        assert checks["ffprobe"]["status"] == "error"
        assert "/missing/ffprobe" in checks["ffprobe"]["error"]


# ---------------------------------------------------------------------------
# Sync
# ---------------------------------------------------------------------------

class TestSyncEndpoint:

    def test_requires_api_key(self, client, pdf_bytes):
        response = client.post("/api/v1/sync", files=upload(pdf_bytes))

        assert response.status_code == 403

    def test_rejects_unknown_api_key(self, client, pdf_bytes):
        response = client.post("/api/v1/sync", files=upload(pdf_bytes), headers={"X-API-Key": "nope"})

        assert response.status_code == 403

    def test_returns_events_in_wire_format(self, client, pdf_bytes):
        response = client.post("/api/v1/sync", files=upload(pdf_bytes), headers=HEADERS)

        assert response.status_code == 200
        body = response.json()
        assert body["video_sampled"] is True
        assert body["document_rasterized"] is False
        assert body["sampling_interval_seconds"] == 2
        assert body["frame_count"] == 60
        assert body["timing_corrected"] is True
        event = body["events"][0]
        assert set(event) == {"timestamp", "seconds", "pdfPageNumber", "slideTitle", "reasoning"}
        assert event["pdfPageNumber"] == 1
        assert event["reasoning"].endswith("(timing auto-corrected)")

    def test_rasterized_deck_yields_event_per_page(self, app, client, pdf_bytes):
        app.dependency_overrides[get_settings] = lambda: make_settings(document_direct_limit_mb=0)

        response = client.post("/api/v1/sync", files=upload(pdf_bytes), headers=HEADERS)

        assert response.status_code == 200
        body = response.json()
        assert body["page_count"] == 3
        assert [(e["pdfPageNumber"], e["timestamp"]) for e in body["events"]] == [
            (1, "00:00"),
            (2, "00:39"),
            (3, "01:19"),
        ]

    def test_empty_upload_is_rejected(self, client, pdf_bytes):
        response = client.post("/api/v1/sync", files=upload(pdf_bytes, video=b""), headers=HEADERS)

        assert response.status_code == 422

    def test_oversized_upload_is_rejected(self, app, client, pdf_bytes):
        app.dependency_overrides[get_settings] = lambda: make_settings(max_upload_size_mb=0)

        response = client.post("/api/v1/sync", files=upload(pdf_bytes), headers=HEADERS)

        assert response.status_code == 413

    def test_corrupt_pdf_is_unprocessable(self, app, client):
        app.dependency_overrides[get_settings] = lambda: make_settings(document_direct_limit_mb=0)

        response = client.post("/api/v1/sync", files=upload(b"not a pdf"), headers=HEADERS)

        assert response.status_code == 422
        assert "PDF" in response.json()["detail"]

    @pytest.mark.parametrize(
        "error,expected_status",
        [
            (PayloadTooLargeError("too large", status_code=413), 413),
            (RequestRejectedError("context exceeded", status_code=400), 400),
            (RateLimitExceeded("slow down", status_code=429), 429),
            (ModelResponseError("no data"), 502),
        ],
    )
    def test_model_errors_are_mapped(self, app, client, pdf_bytes, error, expected_status):
        app.dependency_overrides[get_sync_model_client] = lambda: RaisingModelClient(error)

        response = client.post("/api/v1/sync", files=upload(pdf_bytes), headers=HEADERS)

        assert response.status_code == expected_status
        assert response.json()["detail"]

    def test_timeout(self, app, client, pdf_bytes):
        app.dependency_overrides[get_settings] = lambda: make_settings(sync_timeout_seconds=0.05)
        app.dependency_overrides[get_sync_model_client] = SlowModelClient

        response = client.post("/api/v1/sync", files=upload(pdf_bytes), headers=HEADERS)

        assert response.status_code == 504


class TestStatusForError:

    @pytest.mark.parametrize(
        "error,expected",
        [
            (InvalidDurationError(0.0), 422),
            (DocumentDecodeError("bad"), 422),
            (PayloadTooLargeError("x"), 413),
            (RequestRejectedError("x"), 400),
            (RateLimitExceeded("x"), 429),
            (ModelResponseError("x"), 502),
        ],
    )
    def test_mapping(self, error, expected):
        assert status_for_error(error) == expected
