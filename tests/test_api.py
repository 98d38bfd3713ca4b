import httpx
from fastapi.testclient import TestClient

from vidlock.main import create_app
from vidlock.services.job_store import JobStore

from conftest import extract_jpeg, form_fields, make_image_bytes


def test_health_echoes_configuration(client):
    response = client.get("/health")
    assert response.status_code == 200
    payload = response.json()
    assert payload["ok"] is True
    assert payload["defaultModel"] == "sora-2"
    assert payload["moderationFallback"] is True
    assert payload["gate"] is False
    assert "OPENAI_API_KEY" not in response.text
    assert "sk-test" not in response.text


def test_render_status_history_flow(client, provider_api):
    response = client.post("/api/render", data={"prompt": "a red fox in snow", "seconds": "8"})
    assert response.status_code == 200
    job = response.json()
    assert job["id"] == "video_1"
    assert job["status"] == "queued"
    assert job["model"] == "sora-2"
    assert "note" not in job

    upstream = form_fields(provider_api.create_requests[0])
    assert upstream == {"prompt": "a red fox in snow", "model": "sora-2", "seconds": "8", "size": "1280x720"}

    provider_api.videos["video_1"].update({"status": "in_progress", "progress": 100})
    status = client.get("/api/status/video_1").json()
    assert status["status"] == "in_progress"
    assert status["done"] is False

    provider_api.content_ready.add("video_1")
    status = client.get("/api/status/video_1").json()
    assert status["status"] == "ready"
    assert status["synthetic_ready"] is True
    assert status["object"] == "video"

    history = client.get("/api/history").json()
    assert len(history) == 1
    assert history[0]["id"] == "video_1"
    assert history[0]["prompt"] == "a red fox in snow"
    assert history[0]["status"] == "ready"
    assert history[0]["completedAt"]

    record = client.get("/api/job/video_1").json()
    assert record["seconds"] == "8"


def test_history_is_newest_first(client):
    for prompt in ("first", "second", "third"):
        assert client.post("/api/render", data={"prompt": prompt}).status_code == 200

    history = client.get("/api/history", params={"limit": 2}).json()
    assert [h["prompt"] for h in history] == ["third", "second"]


def test_large_reference_is_normalized_to_requested_size(client, provider_api):
    response = client.post(
        "/api/render",
        data={"prompt": "portrait of a lighthouse", "size": "720x1280", "fit": "cover"},
        files={"ref": ("photo.jpg", make_image_bytes(4000, 3000, fmt="JPEG"), "image/jpeg")},
    )
    assert response.status_code == 200
    assert response.json()["usedReference"] is True

    body = provider_api.create_requests[0].content
    assert b'filename="reference_720x1280.jpg"' in body
    image = extract_jpeg(body)
    assert image.format == "JPEG"
    assert image.size == (720, 1280)


def test_oversized_target_falls_back_to_default_size(client, provider_api):
    response = client.post(
        "/api/render",
        data={"prompt": "fox", "size": "60000x60000"},
        files={"ref": ("small.png", make_image_bytes(64, 64), "image/png")},
    )
    assert response.status_code == 200

    request = provider_api.create_requests[0]
    assert form_fields(request)["size"] == "1280x720"
    assert extract_jpeg(request.content).size == (1280, 720)


def test_seconds_outside_allowed_set_use_default(client, provider_api):
    client.post("/api/render", data={"prompt": "waves", "seconds": "7", "size": "huge"})
    upstream = form_fields(provider_api.create_requests[0])
    assert upstream["seconds"] == "4"
    assert upstream["size"] == "1280x720"


def test_empty_prompt_is_rejected(client, provider_api):
    response = client.post("/api/render", data={"prompt": "   "})
    assert response.status_code == 400
    assert response.json() == {"error": "Empty prompt"}
    assert provider_api.create_requests == []


def test_access_denied_render_falls_back_and_reports_note(client, provider_api):
    provider_api.create_errors.append((403, '{"error": {"code": "permission_denied", "message": "no access"}}'))

    response = client.post("/api/render", data={"prompt": "a fox", "model": "sora-2-pro"})

    assert response.status_code == 200
    assert response.json()["model"] == "sora-2"
    assert "sora-2-pro" in response.json()["note"]
    models = [form_fields(r)["model"] for r in provider_api.create_requests]
    assert models == ["sora-2-pro", "sora-2"]


def test_provider_error_is_surfaced_with_its_status(client, provider_api):
    provider_api.create_errors.append((500, "upstream exploded"))

    response = client.post("/api/render", data={"prompt": "a fox"})

    assert response.status_code == 500
    assert response.json() == {"error": "500 upstream exploded"}
    assert client.get("/api/history").json() == []


def test_unknown_job_lookups(client):
    response = client.get("/api/job/video_missing")
    assert response.status_code == 404
    assert response.json() == {"error": "Not found"}

    response = client.get("/api/status/video_missing")
    assert response.status_code == 404
    assert response.json()["error"].startswith("404 ")


def test_content_streams_bytes_and_errors_as_plain_text(client, provider_api):
    client.post("/api/render", data={"prompt": "a fox"})

    pending = client.get("/api/content/video_1")
    assert pending.status_code == 404
    assert pending.headers["content-type"].startswith("text/plain")
    assert pending.text.startswith("404 ")

    ping = client.get("/api/ping-content/video_1", params={"type": "video"})
    assert ping.json() == {"id": "video_1", "type": "video", "ready": False}

    provider_api.content_ready.add("video_1")
    assert client.get("/api/ping-content/video_1").json()["ready"] is True

    response = client.get("/api/content/video_1")
    assert response.status_code == 200
    assert response.headers["content-type"] == "video/mp4"
    assert "no-store" in response.headers["cache-control"]
    assert response.content.startswith(b"\x00\x00\x00\x18ftyp")

    response = client.get("/api/content/video_1", params={"type": "poster"})
    assert response.status_code == 400
    assert response.headers["content-type"].startswith("text/plain")
    assert "poster" in response.text


def test_list_passes_through_provider(client):
    client.post("/api/render", data={"prompt": "a fox"})

    payload = client.get("/api/list", params={"limit": 5}).json()
    assert payload["object"] == "list"
    assert payload["data"][0]["id"] == "video_1"

    response = client.get("/api/list", params={"limit": 0})
    assert response.status_code == 400
    assert "error" in response.json()


def test_character_crud_and_lock_render(client, provider_api):
    created = client.post("/api/characters", json={"name": "Captain Nova", "bible": "Silver hair."})
    assert created.status_code == 201
    assert created.json()["id"] == "captain-nova"
    assert created.json()["hasLock"] is False

    lock = client.post(
        "/api/characters/captain-nova/lock",
        files={"file": ("nova.jpg", make_image_bytes(512, 512, fmt="JPEG"), "image/jpeg")},
    )
    assert lock.status_code == 200
    assert lock.json()["hasLock"] is True

    image = client.get("/api/characters/captain-nova/lock")
    assert image.status_code == 200
    assert image.headers["content-type"] == "image/png"

    updated = client.put("/api/characters/captain-nova/bible", json={"bible": "Silver hair, red scarf."})
    assert updated.json()["bible"] == "Silver hair, red scarf."
    assert [c["id"] for c in client.get("/api/characters").json()] == ["captain-nova"]

    render = client.post("/api/render", data={"prompt": "walks on mars", "useLock": "on", "character": "Captain Nova"})
    assert render.json()["usedLock"] is True
    upstream = form_fields(provider_api.create_requests[0])
    assert upstream["prompt"] == "walks on mars\n\nSilver hair, red scarf."

    assert client.delete("/api/characters/captain-nova/lock").json()["hasLock"] is False
    assert client.get("/api/characters/captain-nova/lock").status_code == 404

    assert client.delete("/api/characters/captain-nova").status_code == 200
    missing = client.get("/api/characters/captain-nova")
    assert missing.status_code == 404
    assert missing.json() == {"error": "Character not found"}


def test_lock_upload_rejects_non_images(client):
    response = client.post(
        "/api/characters/nova/lock",
        files={"file": ("notes.txt", b"hello", "text/plain")},
    )
    assert response.status_code == 400

    response = client.post(
        "/api/characters/nova/lock",
        files={"file": ("broken.png", b"not really a png", "image/png")},
    )
    assert response.status_code == 422


def test_global_lock_is_used_without_character(client, provider_api):
    assert client.post("/api/lock", files={"file": ("g.png", make_image_bytes(64, 64), "image/png")}).status_code == 200
    assert client.get("/api/lock").headers["content-type"] == "image/png"

    render = client.post("/api/render", data={"prompt": "a fox", "useLock": "true"})
    assert render.json()["usedLock"] is True
    assert b"input_reference" in provider_api.create_requests[0].content

    assert client.delete("/api/lock").json()["removed"] is True
    assert client.get("/api/lock").status_code == 404


def test_snapshot_crud(client):
    created = client.post("/api/snapshots", json={"name": "fox", "prompt": "a fox", "seconds": "8"})
    assert created.status_code == 201
    snapshot = created.json()
    assert snapshot["id"].startswith("snap_")

    assert client.get(f"/api/snapshots/{snapshot['id']}").json()["prompt"] == "a fox"
    assert [s["id"] for s in client.get("/api/snapshots").json()] == [snapshot["id"]]

    assert client.delete(f"/api/snapshots/{snapshot['id']}").status_code == 200
    assert client.get(f"/api/snapshots/{snapshot['id']}").status_code == 404
    assert client.delete(f"/api/snapshots/{snapshot['id']}").status_code == 404


def test_password_gate(settings, provider_api):
    settings.APP_PASSWORD = "hunter2"
    app = create_app(settings, provider_transport=httpx.MockTransport(provider_api))

    with TestClient(app) as client:
        assert client.get("/health").status_code == 200

        denied = client.get("/api/history")
        assert denied.status_code == 401
        assert "error" in denied.json()

        assert client.get("/api/history", headers={"X-App-Password": "wrong"}).status_code == 401
        assert client.get("/api/history", headers={"X-App-Password": "hunter2"}).status_code == 200
        assert client.get("/api/history", params={"pwd": "hunter2"}).status_code == 200


def test_unreadable_history_returns_json_error(client, settings):
    (settings.data_path / "history.json").write_text("{not json", encoding="utf-8")

    response = client.get("/api/history")

    assert response.status_code == 500
    assert "history.json" in response.json()["error"]


def test_unexpected_errors_return_json_error(settings, provider_api, monkeypatch):
    async def broken_list(self, limit=None):
        raise RuntimeError("disk on fire")

    monkeypatch.setattr(JobStore, "list", broken_list)
    app = create_app(settings, provider_transport=httpx.MockTransport(provider_api))

    with TestClient(app, raise_server_exceptions=False) as client:
        response = client.get("/api/history")

    assert response.status_code == 500
    assert response.json() == {"error": "Internal server error"}
