"""Tests for the command-line interface."""

import pytest
from typer.testing import CliRunner

from ytstudio.cli import commands
from ytstudio.cli.commands import app
from ytstudio.config import settings

from conftest import PNG_BYTES, VIDEO_BYTES, FakeVideoClient, finished, make_pipeline

runner = CliRunner()


@pytest.fixture
def image(tmp_path):
    path = tmp_path / "base.png"
    path.write_bytes(PNG_BYTES)
    return path


@pytest.fixture
def api_key(monkeypatch):
    monkeypatch.setattr(settings, "api_key", "test-key")


def _use_pipeline(monkeypatch, pipeline):
    monkeypatch.setattr(commands, "build_pipeline", lambda voice_provider, config: pipeline)


def test_generate_writes_artifacts(api_key, monkeypatch, image, tmp_path):
    _use_pipeline(monkeypatch, make_pipeline())
    out = tmp_path / "out"

    result = runner.invoke(
        app, ["generate", "Coffee", "--image", str(image), "--skip-audio", "-o", str(out)],
    )

    assert result.exit_code == 0, result.output
    assert "Video generation complete" in result.output
    (run_dir,) = out.iterdir()
    assert (run_dir / "script.txt").read_text(encoding="utf-8")
    assert (run_dir / "video.mp4").read_bytes() == VIDEO_BYTES
    assert not list(run_dir.glob("voiceover.*"))


def test_generate_with_voiceover(api_key, monkeypatch, image, tmp_path):
    _use_pipeline(monkeypatch, make_pipeline())
    out = tmp_path / "out"

    result = runner.invoke(
        app, ["generate", "Coffee", "-i", str(image), "-v", "male", "-o", str(out)],
    )

    assert result.exit_code == 0, result.output
    (run_dir,) = out.iterdir()
    assert (run_dir / "voiceover.mp3").read_bytes() == b"ID3audio"


def test_failed_video_is_resubmitted(api_key, monkeypatch, image, tmp_path):
    video_client = FakeVideoClient(finished(uri=None), finished())
    _use_pipeline(monkeypatch, make_pipeline(video=video_client))

    result = runner.invoke(
        app,
        ["generate", "Coffee", "-i", str(image), "--skip-audio", "--resubmits", "1",
         "-o", str(tmp_path / "out")],
    )

    assert result.exit_code == 0, result.output
    assert len(video_client.submits) == 2


def test_failed_video_exits_nonzero(api_key, monkeypatch, image, tmp_path):
    _use_pipeline(monkeypatch, make_pipeline(video=FakeVideoClient(finished(uri=None))))
    out = tmp_path / "out"

    result = runner.invoke(
        app, ["generate", "Coffee", "-i", str(image), "--skip-audio", "-o", str(out)],
    )

    assert result.exit_code == 1
    assert "Video failed" in result.output
    (run_dir,) = out.iterdir()
    assert (run_dir / "script.txt").exists()


def test_missing_api_key_exits(monkeypatch, image):
    monkeypatch.setattr(settings, "api_key", None)

    result = runner.invoke(app, ["generate", "Coffee", "-i", str(image)])

    assert result.exit_code == 1
    assert "API_KEY" in result.output


def test_non_image_file_exits(api_key, tmp_path):
    notes = tmp_path / "notes.txt"
    notes.write_text("not an image")

    result = runner.invoke(app, ["generate", "Coffee", "-i", str(notes)])

    assert result.exit_code == 1
    assert "Not an image file" in result.output


def test_check_reports_settings(api_key):
    result = runner.invoke(app, ["check"])

    assert result.exit_code == 0, result.output
    assert "Configuration OK" in result.output
