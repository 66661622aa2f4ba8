"""Shared fakes for pipeline tests.

Collaborators are scripted: each call pops the next queued response, and a
queued exception is raised instead of returned. Sleeps are recorded, never
awaited for real.
"""

import asyncio
from typing import Optional

import pytest

from ytstudio.config import PipelineConfig
from ytstudio.errors import RATE_LIMIT_MARKER
from ytstudio.orchestrator import StudioPipeline
from ytstudio.schemas.artifacts import AudioArtifact, VideoOperation, VoicePreference
from ytstudio.services.base import ScriptClient, VideoClient, VoiceClient

PNG_BYTES = b"\x89PNG\r\n\x1a\nfake-image"
VIDEO_BYTES = b"\x00\x00\x00\x18ftypmp42fake-video"
RESULT_URI = "https://generativelanguage.example/v1beta/files/abc:download?alt=media"


class RateLimitError(Exception):
    """Mimics a 429 from the service."""

    def __init__(self, n: int = 0):
        self.n = n
        super().__init__(f"429 {RATE_LIMIT_MARKER}: Resource has been exhausted (call {n})")


class SleepRecorder:
    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


def _next(queue: list, label: str):
    if not queue:
        raise AssertionError(f"unexpected {label} call")
    item = queue.pop(0)
    if isinstance(item, BaseException):
        raise item
    return item


class FakeScriptClient(ScriptClient):
    def __init__(self, *responses):
        self.responses = list(responses) or ["INT. KITCHEN - Coffee brews."]
        self.prompts: list[str] = []

    async def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        return _next(self.responses, "generate")


class FakeVoiceClient(VoiceClient):
    def __init__(self, *responses):
        self.responses = list(responses) or [AudioArtifact(data=b"ID3audio")]
        self.calls: list[tuple[str, VoicePreference]] = []

    async def synthesize(self, text: str, voice: VoicePreference) -> AudioArtifact:
        self.calls.append((text, voice))
        return _next(self.responses, "synthesize")


def running(name: str = "operations/veo-1") -> VideoOperation:
    return VideoOperation(name=name, done=False)


def finished(
    uri: Optional[str] = RESULT_URI,
    error_message: Optional[str] = None,
    name: str = "operations/veo-1",
) -> VideoOperation:
    return VideoOperation(
        name=name,
        done=True,
        result_uri=uri,
        error_message=error_message,
        has_error=error_message is not None,
    )


class FakeVideoClient(VideoClient):
    """Submit returns the first queued operation; each poll the next one."""

    def __init__(self, *operations, fetch_result=VIDEO_BYTES, on_submit=None):
        self.operations = list(operations) or [finished()]
        self.fetch_result = fetch_result
        self.on_submit = on_submit
        self.submits: list[tuple[str, bytes, str]] = []
        self.polls: list[VideoOperation] = []
        self.fetches: list[str] = []

    async def submit(self, prompt, image_bytes, media_type):
        self.submits.append((prompt, image_bytes, media_type))
        if self.on_submit is not None:
            await self.on_submit()
        return _next(self.operations, "submit")

    async def poll(self, operation):
        self.polls.append(operation)
        return _next(self.operations, "poll")

    async def fetch(self, uri):
        self.fetches.append(uri)
        if isinstance(self.fetch_result, BaseException):
            raise self.fetch_result
        return self.fetch_result


class BlockingVideoClient(FakeVideoClient):
    """Submission parks until released, so tests can act mid-flight."""

    def __init__(self, *operations, **kwargs):
        super().__init__(*operations, **kwargs)
        self.submitted = asyncio.Event()
        self.release = asyncio.Event()
        self.on_submit = self._block

    async def _block(self):
        self.submitted.set()
        await self.release.wait()


TEST_CONFIG = PipelineConfig(
    retry_max_attempts=3,
    retry_initial_delay=2.0,
    video_poll_interval=30,
    video_poll_max_wait=None,
)


def make_pipeline(script=None, video=None, voice=None, sleep=None, config=TEST_CONFIG):
    return StudioPipeline(
        script or FakeScriptClient(),
        video or FakeVideoClient(),
        voice or FakeVoiceClient(),
        config=config,
        sleep=sleep or SleepRecorder(),
    )


async def advance_to_video_stage(pipeline: StudioPipeline) -> None:
    """Drive a pipeline from stage 1 to stage 4 (ready to generate video)."""
    pipeline.set_topic("The history of coffee")
    assert await pipeline.generate_script()
    assert pipeline.skip_audio()
    assert pipeline.upload_image(PNG_BYTES, "image/png")


@pytest.fixture
def sleeper() -> SleepRecorder:
    return SleepRecorder()
