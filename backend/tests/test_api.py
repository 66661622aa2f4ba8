"""Tests for the HTTP API."""

import pytest
from fastapi.testclient import TestClient

from ytstudio.api.app import create_app

from conftest import (
    PNG_BYTES,
    VIDEO_BYTES,
    FakeVideoClient,
    finished,
    make_pipeline,
    running,
)


@pytest.fixture
def pipeline():
    return make_pipeline(video=FakeVideoClient(running(), finished()))


@pytest.fixture
def client(pipeline):
    with TestClient(create_app(pipeline)) as c:
        yield c


def _to_video_stage(client):
    client.post("/api/topic", json={"topic": "The history of coffee"})
    client.post("/api/script")
    client.post("/api/audio/skip")
    return client.post("/api/image", files={"file": ("base.png", PNG_BYTES, "image/png")})


def test_initial_state(client):
    response = client.get("/api/state")

    assert response.status_code == 200
    body = response.json()
    assert body["stage"] == 1
    assert body["title"] == "Write the Script"
    assert body["busy"] == {"script": False, "audio": False, "video": False}
    assert body["last_error"] is None
    assert not body["can_resubmit"]


def test_full_run(client):
    assert client.post("/api/topic", json={"topic": "Coffee"}).json()["topic"] == "Coffee"

    body = client.post("/api/script").json()
    assert body["stage"] == 2
    assert body["script"]

    body = client.put("/api/script", json={"script": "Edited script."}).json()
    assert body["script"] == "Edited script."

    assert client.post("/api/voice", json={"voice": "male"}).json()["voice"] == "male"

    body = client.post("/api/audio").json()
    assert body["stage"] == 3
    assert body["audio_media_type"] == "audio/mpeg"

    audio = client.get("/api/audio")
    assert audio.content == b"ID3audio"
    assert audio.headers["content-disposition"] == "attachment; filename=voiceover.mp3"

    body = client.post(
        "/api/image", files={"file": ("base.png", PNG_BYTES, "image/png")},
    ).json()
    assert body["stage"] == 4
    assert body["image_media_type"] == "image/png"

    response = client.post("/api/video")
    assert response.status_code == 202

    body = client.get("/api/state").json()
    assert body["stage"] == 5
    assert body["video_media_type"] == "video/mp4"
    assert not body["busy"]["video"]

    video = client.get("/api/video")
    assert video.status_code == 200
    assert video.content == VIDEO_BYTES
    assert video.headers["content-type"] == "video/mp4"


def test_empty_topic_is_reported_in_state(client):
    body = client.post("/api/script").json()

    assert body["stage"] == 1
    assert body["last_error"]["message"] == "Please enter a topic."
    assert body["last_error"]["category"] == "invalid_input"


def test_non_image_upload_is_reported_in_state(client):
    client.post("/api/topic", json={"topic": "Coffee"})
    client.post("/api/script")
    client.post("/api/audio/skip")

    body = client.post(
        "/api/image", files={"file": ("notes.pdf", b"%PDF-1.4", "application/pdf")},
    ).json()

    assert body["stage"] == 3
    assert body["last_error"]["message"] == "Please upload an image file."


def test_invalid_transition_is_conflict(client):
    response = client.post("/api/back")

    assert response.status_code == 409
    assert response.json()["error"] == "Invalid transition"
    assert response.json()["stage"] == 1

    assert client.post("/api/video").status_code == 409


def test_busy_action_is_conflict(client, pipeline):
    client.post("/api/topic", json={"topic": "Coffee"})
    pipeline.state.busy.script = True

    response = client.post("/api/script")

    assert response.status_code == 409
    assert response.json()["action"] == "script"


def test_failed_video_can_be_resubmitted():
    pipeline = make_pipeline(video=FakeVideoClient(finished(uri=None), finished()))
    with TestClient(create_app(pipeline)) as client:
        _to_video_stage(client)
        client.post("/api/video")

        body = client.get("/api/state").json()
        assert body["stage"] == 5
        assert body["video_failed"]
        assert body["last_error"]["category"] == "missing_result"
        assert body["can_resubmit"]
        assert client.get("/api/video").status_code == 404

        assert client.post("/api/video/resubmit").status_code == 202

        body = client.get("/api/state").json()
        assert not body["video_failed"]
        assert body["last_error"] is None
        assert client.get("/api/video").content == VIDEO_BYTES


def test_clear_image_and_reset(client):
    _to_video_stage(client)

    body = client.delete("/api/image").json()
    assert body["stage"] == 3
    assert body["image_media_type"] is None

    body = client.post("/api/reset").json()
    assert body["stage"] == 1
    assert body["topic"] == ""
    assert body["script"] == ""


def test_video_request_claims_the_action(client):
    _to_video_stage(client)

    body = client.post("/api/video").json()

    assert body["stage"] == 5
    assert body["busy"]["video"]
    assert not body["video_failed"]


def test_second_video_request_is_conflict(pipeline):
    with TestClient(create_app(pipeline)) as client:
        _to_video_stage(client)
        action = pipeline.start_video()

        assert client.post("/api/video").status_code == 409
        client.post("/api/back")
        response = client.post("/api/video")
        assert response.status_code == 409
        assert response.json()["action"] == "video"

        action.close()


def test_next_after_back_keeps_work(client):
    client.post("/api/topic", json={"topic": "Coffee"})
    client.post("/api/script")
    client.put("/api/script", json={"script": "Edited script."})
    client.post("/api/audio/skip")
    client.post("/api/image", files={"file": ("base.png", PNG_BYTES, "image/png")})

    client.post("/api/back")
    client.post("/api/back")
    client.post("/api/back")
    body = client.post("/api/next").json()
    assert body["stage"] == 2
    assert body["script"] == "Edited script."

    client.post("/api/next")
    body = client.post("/api/next").json()
    assert body["stage"] == 4
    assert body["image_media_type"] == "image/png"


def test_next_without_work_is_conflict(client):
    response = client.post("/api/next")

    assert response.status_code == 409
    assert response.json()["stage"] == 1


def test_missing_audio_is_not_found(client):
    assert client.get("/api/audio").status_code == 404
