"""
File management service for ytstudio.

Writes the artifacts of a finished pipeline run to disk with path traversal
protection. Each run gets its own directory under the output root.
"""
import mimetypes
import uuid
from pathlib import Path

from ytstudio.config import settings
from ytstudio.schemas.artifacts import MediaArtifact

# mimetypes has no entry for some audio types on older platforms
_EXTENSIONS = {
    "audio/mpeg": ".mp3",
    "audio/wav": ".wav",
    "video/mp4": ".mp4",
}


def extension_for(media_type: str) -> str:
    """Return a file extension (with dot) for a MIME type, '.bin' if unknown."""
    return _EXTENSIONS.get(media_type) or mimetypes.guess_extension(media_type) or ".bin"


class FileManager:
    """
    Manage filesystem artifacts for pipeline runs.

    Creates one directory per run:
    - {base_dir}/{run_id}/script.txt
    - {base_dir}/{run_id}/voiceover.<ext>
    - {base_dir}/{run_id}/image.<ext>
    - {base_dir}/{run_id}/video.<ext>
    """

    def __init__(self, base_dir: str | Path | None = None):
        """
        Initialize FileManager with base directory.

        Args:
            base_dir: Root directory for all run artifacts.
                     If None, uses settings.storage.output_dir
        """
        if base_dir is None:
            base_dir = settings.storage.output_dir

        self.base_dir = Path(base_dir).resolve()
        self.base_dir.mkdir(parents=True, exist_ok=True)

    def get_run_dir(self, run_id: uuid.UUID | str) -> Path:
        """
        Get or create the directory for a run.

        Raises:
            ValueError: If run_id creates path outside base_dir (traversal attack)
        """
        run_dir = (self.base_dir / str(run_id)).resolve()

        if not run_dir.is_relative_to(self.base_dir) or run_dir == self.base_dir:
            raise ValueError("Invalid run path")

        run_dir.mkdir(exist_ok=True)
        return run_dir

    def save_script(self, run_id: uuid.UUID | str, script: str) -> Path:
        filepath = self.get_run_dir(run_id) / "script.txt"
        filepath.write_text(script, encoding="utf-8")
        return filepath

    def save_artifact(
        self, run_id: uuid.UUID | str, name: str, artifact: MediaArtifact
    ) -> Path:
        """
        Save a media artifact as ``{name}{ext}`` in the run directory.

        Args:
            run_id: Run identifier
            name: Base filename without extension (e.g., 'video')
            artifact: Artifact whose media type picks the extension

        Returns:
            Path to saved file
        """
        filepath = self.get_run_dir(run_id) / f"{name}{extension_for(artifact.media_type)}"
        filepath.write_bytes(artifact.data)
        return filepath
