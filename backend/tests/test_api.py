from __future__ import annotations

import io

import pytest
from fastapi.testclient import TestClient
from PIL import Image

from conftest import FakeProcess
from stickerbot.api import routes as routes_module
from stickerbot.conversion import service as service_module
from stickerbot.conversion.service import StickerService
from stickerbot.main import app


class FakeURLResponse:
    def __init__(self, body: bytes, headers: dict[str, str] | None = None, status: int = 200):
        self._body = io.BytesIO(body)
        self.headers = headers or {}
        self.status = status
        self.reads = 0

    def read(self, size: int = -1) -> bytes:
        self.reads += 1
        return self._body.read(size)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False


@pytest.fixture
def client(monkeypatch) -> TestClient:
    monkeypatch.setattr(service_module, "_sticker_service", None)
    return TestClient(app)


@pytest.fixture
def small_limit(monkeypatch) -> StickerService:
    svc = StickerService(max_input_bytes=1000)
    monkeypatch.setattr(service_module, "_sticker_service", svc)
    return svc


def test_health(client) -> None:
    assert client.get("/api/health").json() == {"status": "ok"}


def test_limits(client) -> None:
    body = client.get("/api/limits").json()

    assert body["max_input_size_bytes"] == 10 * 1024 * 1024
    assert body["sticker_size"] == 512
    assert body["clip_target_bytes"] == 256000
    assert body["kinds"] == ["photo", "document", "animation"]


def test_upload_photo_returns_webp_sticker(client, image_bytes) -> None:
    response = client.post(
        "/api/stickers",
        files={"file": ("holiday.jpg", image_bytes((2000, 1000), fmt="JPEG"), "image/jpeg")},
        data={"kind": "photo"},
    )

    assert response.status_code == 200
    assert response.headers["content-type"] == "image/webp"
    assert response.headers["x-sticker-format"] == "webp"
    assert 'filename="holiday.webp"' in response.headers["content-disposition"]
    assert Image.open(io.BytesIO(response.content)).size == (512, 256)


def test_upload_garbage_reports_not_an_image(client) -> None:
    response = client.post(
        "/api/stickers",
        files={"file": ("notes.txt", b"just some text", "text/plain")},
    )

    assert response.status_code == 415
    assert response.json() == {"detail": "File is not an image."}


def test_upload_gif_document_goes_through_clip_path(client, fake_ffmpeg) -> None:
    fake = fake_ffmpeg(FakeProcess(stdout=b"webm" * 100))

    response = client.post(
        "/api/stickers",
        files={"file": ("dance.gif", b"GIF89a-not-really", "image/gif")},
        data={"kind": "document"},
    )

    assert response.status_code == 200
    assert response.headers["content-type"] == "video/webm"
    assert 'filename="dance.webm"' in response.headers["content-disposition"]
    assert response.content == b"webm" * 100
    assert len(fake.commands) == 1


def test_transcoder_failure_is_generic(client, fake_ffmpeg) -> None:
    fake_ffmpeg(FakeProcess(stderr=b"moov atom not found", returncode=1))

    response = client.post(
        "/api/stickers",
        files={"file": ("clip.mp4", b"broken", "video/mp4")},
        data={"kind": "animation"},
    )

    assert response.status_code == 500
    assert response.json() == {"detail": "Something went wrong."}


def test_upload_over_limit_is_rejected(client, small_limit, fake_ffmpeg) -> None:
    fake = fake_ffmpeg()

    response = client.post(
        "/api/stickers",
        files={"file": ("big.gif", b"x" * 2000, "image/gif")},
        data={"kind": "animation"},
    )

    assert response.status_code == 413
    assert response.json()["detail"].startswith("File is too large")
    assert fake.commands == []


def test_from_url_converts_download(client, monkeypatch, image_bytes) -> None:
    body = image_bytes((64, 64))
    fake = FakeURLResponse(body, {"Content-Length": str(len(body))})
    monkeypatch.setattr(routes_module, "urlopen", lambda req, timeout: fake)

    response = client.post("/api/stickers/from-url", json={"url": "https://example.com/img/cat.png"})

    assert response.status_code == 200
    assert response.headers["x-sticker-format"] == "webp"
    assert 'filename="cat.webp"' in response.headers["content-disposition"]


def test_from_url_declared_size_checked_before_download(client, monkeypatch, small_limit) -> None:
    fake = FakeURLResponse(b"x" * 5000, {"Content-Length": "5000"})
    monkeypatch.setattr(routes_module, "urlopen", lambda req, timeout: fake)

    response = client.post("/api/stickers/from-url", json={"url": "https://example.com/a.png"})

    assert response.status_code == 413
    assert fake.reads == 0


def test_from_url_without_length_is_cut_off(client, monkeypatch, small_limit) -> None:
    fake = FakeURLResponse(b"x" * 5000)
    monkeypatch.setattr(routes_module, "urlopen", lambda req, timeout: fake)

    response = client.post("/api/stickers/from-url", json={"url": "https://example.com/a.png"})

    assert response.status_code == 413


def test_from_url_network_error_is_generic(client, monkeypatch) -> None:
    def broken(req, timeout):
        raise OSError("connection refused")

    monkeypatch.setattr(routes_module, "urlopen", broken)

    response = client.post("/api/stickers/from-url", json={"url": "https://example.com/a.png"})

    assert response.status_code == 500
    assert response.json() == {"detail": "Something went wrong."}


def test_from_url_rejects_other_schemes(client) -> None:
    response = client.post("/api/stickers/from-url", json={"url": "file:///etc/passwd"})

    assert response.status_code == 400
