import io
import json
import sys
from pathlib import Path

ROOT_DIR = Path(__file__).resolve().parents[1]
sys.path.append(str(ROOT_DIR))

import httpx
import pytest
from fastapi.testclient import TestClient
from PIL import Image

from vidlock.core.config import Settings
from vidlock.main import create_app


def make_image_bytes(width: int, height: int, fmt: str = "PNG", color=(200, 40, 40)) -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", (width, height), color).save(buf, format=fmt)
    return buf.getvalue()


def extract_jpeg(body: bytes) -> Image.Image:
    """Decode the first JPEG embedded in a multipart request body."""
    start = body.index(b"\xff\xd8\xff")
    end = body.index(b"\xff\xd9", start) + 2
    return Image.open(io.BytesIO(body[start:end]))


def form_fields(request: httpx.Request) -> dict:
    """Parse the plain (non-file) fields of a multipart request."""
    content_type = request.headers["content-type"]
    boundary = content_type.split("boundary=", 1)[1].encode()
    fields = {}
    for part in request.content.split(b"--" + boundary):
        if b"\r\n\r\n" not in part:
            continue
        head, value = part.split(b"\r\n\r\n", 1)
        if b"filename=" in head or b'name="' not in head:
            continue
        name = head.split(b'name="', 1)[1].split(b'"', 1)[0].decode()
        fields[name] = value.rstrip(b"\r\n-").decode()
    return fields


class FakeProviderAPI:
    """In-memory stand-in for the /videos API, served through httpx.MockTransport."""

    def __init__(self):
        self.requests = []
        self.videos = {}
        self.create_errors = []
        self.content_ready = set()
        self._counter = 0

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if request.method == "POST" and path.endswith("/videos"):
            if self.create_errors:
                status, body = self.create_errors.pop(0)
                return httpx.Response(status, text=body)
            self._counter += 1
            video = {"id": f"video_{self._counter}", "object": "video", "status": "queued", "progress": 0}
            self.videos[video["id"]] = video
            return httpx.Response(200, json=video)
        if request.method == "GET" and path.endswith("/videos"):
            return httpx.Response(200, json={"object": "list", "data": list(self.videos.values())})
        if path.endswith("/content"):
            video_id = path.split("/")[-2]
            if video_id not in self.content_ready:
                return httpx.Response(404, text=json.dumps({"error": {"message": "Video is not ready"}}))
            if request.method == "HEAD":
                return httpx.Response(200, headers={"content-type": "video/mp4"})
            return httpx.Response(
                200,
                content=b"\x00\x00\x00\x18ftypmp42" + b"\x01" * 64,
                headers={"content-type": "video/mp4"},
            )
        if request.method == "GET" and "/videos/" in path:
            video_id = path.rsplit("/", 1)[-1]
            if video_id not in self.videos:
                return httpx.Response(404, text=json.dumps({"error": {"message": "Video not found"}}))
            return httpx.Response(200, json=self.videos[video_id])
        return httpx.Response(404, text="unexpected route")

    @property
    def create_requests(self):
        return [r for r in self.requests if r.method == "POST" and r.url.path.endswith("/videos")]


@pytest.fixture()
def settings(tmp_path):
    return Settings(
        OPENAI_API_KEY="sk-test",
        DATA_DIR=str(tmp_path / "data"),
        STORE_BACKEND="json",
        APP_PASSWORD=None,
        DEFAULT_MODEL="sora-2",
        FALLBACK_MODEL="sora-2",
        ALLOWED_MODELS=["sora-2", "sora-2-pro"],
        MODERATION_FALLBACK=True,
    )


@pytest.fixture()
def provider_api():
    return FakeProviderAPI()


@pytest.fixture()
def client(settings, provider_api):
    app = create_app(settings, provider_transport=httpx.MockTransport(provider_api))
    with TestClient(app) as test_client:
        yield test_client
