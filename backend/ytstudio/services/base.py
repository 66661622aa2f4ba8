"""Abstract collaborator interfaces consumed by the pipeline.

The orchestrator only talks to these; concrete implementations wrap the
google-genai SDK (or a simulated stand-in for voice).
"""

from abc import ABC, abstractmethod

from ytstudio.schemas.artifacts import AudioArtifact, VideoOperation, VoicePreference


class ScriptClient(ABC):
    """Turns a prompt into script text."""

    @abstractmethod
    async def generate(self, prompt: str) -> str:
        """Generate text for the prompt.

        Failures should carry a detectable rate-limit marker so the retry
        wrapper can back off.
        """
        ...


class VideoClient(ABC):
    """Long-running image-conditioned video generation."""

    @abstractmethod
    async def submit(
        self, prompt: str, image_bytes: bytes, media_type: str,
    ) -> VideoOperation:
        """Start a generation job and return its operation handle."""
        ...

    @abstractmethod
    async def poll(self, operation: VideoOperation) -> VideoOperation:
        """Return a fresh view of the operation. Safe to call repeatedly."""
        ...

    @abstractmethod
    async def fetch(self, uri: str) -> bytes:
        """Download the finished video referenced by ``uri``.

        Raises:
            VideoFetchError: On a non-success response.
        """
        ...


class VoiceClient(ABC):
    """Reads script text aloud."""

    @abstractmethod
    async def synthesize(self, text: str, voice: VoicePreference) -> AudioArtifact:
        ...
