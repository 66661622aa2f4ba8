"""Tests for run artifact storage."""

import pytest

from ytstudio.schemas.artifacts import AudioArtifact, VideoArtifact
from ytstudio.services.file_manager import FileManager, extension_for


def test_extension_for_known_and_unknown_types():
    assert extension_for("video/mp4") == ".mp4"
    assert extension_for("audio/mpeg") == ".mp3"
    assert extension_for("audio/wav") == ".wav"
    assert extension_for("application/x-nothing-known") == ".bin"


def test_save_script_and_artifacts(tmp_path):
    manager = FileManager(tmp_path)

    script_path = manager.save_script("run-1", "INT. CAFE")
    audio_path = manager.save_artifact("run-1", "voiceover", AudioArtifact(data=b"ID3"))
    video_path = manager.save_artifact("run-1", "video", VideoArtifact(data=b"mp4"))

    assert script_path == tmp_path.resolve() / "run-1" / "script.txt"
    assert script_path.read_text(encoding="utf-8") == "INT. CAFE"
    assert audio_path.name == "voiceover.mp3"
    assert video_path.read_bytes() == b"mp4"


@pytest.mark.parametrize("run_id", ["../escape", "..", "."])
def test_run_dir_outside_base_is_rejected(tmp_path, run_id):
    manager = FileManager(tmp_path / "out")

    with pytest.raises(ValueError, match="Invalid run path"):
        manager.get_run_dir(run_id)
