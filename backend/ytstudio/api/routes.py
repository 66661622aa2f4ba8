"""API route handlers and Pydantic response schemas.

Each route maps to one pipeline operation. Script and audio generation are
awaited inline; video generation runs as a background task because polling
takes minutes. Failures of an action are reported through the returned state,
while misuse of the state machine becomes a 409 (see app.py).
"""

import logging
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, File, HTTPException, Request, Response, UploadFile
from pydantic import BaseModel

from ytstudio.orchestrator import PipelineState, StudioPipeline
from ytstudio.schemas.artifacts import VoicePreference
from ytstudio.services.classifier import ClassifiedError
from ytstudio.services.file_manager import extension_for

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")


# ---------------------------------------------------------------------------
# Schemas
# ---------------------------------------------------------------------------
class TopicRequest(BaseModel):
    topic: str


class ScriptRequest(BaseModel):
    script: str


class VoiceRequest(BaseModel):
    voice: VoicePreference


class BusyResponse(BaseModel):
    script: bool
    audio: bool
    video: bool


class StateResponse(BaseModel):
    """Serializable snapshot of the pipeline state (artifact bytes omitted)."""

    stage: int
    title: str
    topic: str
    script: str
    voice: VoicePreference
    audio_media_type: Optional[str] = None
    image_media_type: Optional[str] = None
    video_media_type: Optional[str] = None
    busy: BusyResponse
    last_error: Optional[ClassifiedError] = None
    audio_error: Optional[ClassifiedError] = None
    video_failed: bool
    can_resubmit: bool

    @classmethod
    def from_state(cls, state: PipelineState) -> "StateResponse":
        return cls(
            stage=int(state.stage),
            title=state.title,
            topic=state.topic,
            script=state.script,
            voice=state.voice,
            audio_media_type=state.audio.media_type if state.audio else None,
            image_media_type=state.image.media_type if state.image else None,
            video_media_type=state.video.media_type if state.video else None,
            busy=BusyResponse(**state.busy.model_dump()),
            last_error=state.last_error,
            audio_error=state.audio_error,
            video_failed=state.video_failed,
            can_resubmit=(
                state.video_failed
                and not state.busy.video
                and (state.last_error is None or state.last_error.resubmit_eligible)
            ),
        )


def get_pipeline(request: Request) -> StudioPipeline:
    return request.app.state.pipeline


def _snapshot(request: Request) -> StateResponse:
    return StateResponse.from_state(get_pipeline(request).state)


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------
@router.get("/state", response_model=StateResponse)
async def get_state(request: Request):
    return _snapshot(request)


@router.post("/topic", response_model=StateResponse)
async def set_topic(body: TopicRequest, request: Request):
    get_pipeline(request).set_topic(body.topic)
    return _snapshot(request)


@router.post("/script", response_model=StateResponse)
async def generate_script(request: Request):
    await get_pipeline(request).generate_script()
    return _snapshot(request)


@router.put("/script", response_model=StateResponse)
async def edit_script(body: ScriptRequest, request: Request):
    get_pipeline(request).edit_script(body.script)
    return _snapshot(request)


@router.post("/voice", response_model=StateResponse)
async def choose_voice(body: VoiceRequest, request: Request):
    get_pipeline(request).choose_voice(body.voice)
    return _snapshot(request)


@router.post("/audio", response_model=StateResponse)
async def generate_audio(request: Request):
    await get_pipeline(request).generate_audio()
    return _snapshot(request)


@router.post("/audio/skip", response_model=StateResponse)
async def skip_audio(request: Request):
    get_pipeline(request).skip_audio()
    return _snapshot(request)


@router.post("/image", response_model=StateResponse)
async def upload_image(request: Request, file: UploadFile = File(...)):
    data = await file.read()
    get_pipeline(request).upload_image(data, file.content_type or "")
    return _snapshot(request)


@router.delete("/image", response_model=StateResponse)
async def clear_image(request: Request):
    get_pipeline(request).clear_image()
    return _snapshot(request)


@router.post("/video", response_model=StateResponse, status_code=202)
async def generate_video(request: Request, background_tasks: BackgroundTasks):
    pipeline = get_pipeline(request)
    # The busy flag is set before the response is sent
    action = pipeline.start_video()
    background_tasks.add_task(pipeline.run_tracked, action)
    logger.info("Video generation scheduled")
    return _snapshot(request)


@router.post("/video/resubmit", response_model=StateResponse, status_code=202)
async def resubmit_video(request: Request, background_tasks: BackgroundTasks):
    pipeline = get_pipeline(request)
    action = pipeline.start_video(resubmit=True)
    background_tasks.add_task(pipeline.run_tracked, action)
    logger.info("Video resubmission scheduled")
    return _snapshot(request)


@router.post("/back", response_model=StateResponse)
async def go_back(request: Request):
    get_pipeline(request).go_back()
    return _snapshot(request)


@router.post("/next", response_model=StateResponse)
async def advance(request: Request):
    get_pipeline(request).advance()
    return _snapshot(request)


@router.post("/reset", response_model=StateResponse)
async def reset(request: Request):
    get_pipeline(request).reset()
    return _snapshot(request)


@router.get("/video")
async def download_video(request: Request):
    video = get_pipeline(request).state.video
    if video is None:
        raise HTTPException(status_code=404, detail="No video has been generated")
    return Response(content=video.data, media_type=video.media_type)


@router.get("/audio")
async def download_audio(request: Request):
    audio = get_pipeline(request).state.audio
    if audio is None:
        raise HTTPException(status_code=404, detail="No voiceover has been generated")
    return Response(
        content=audio.data,
        media_type=audio.media_type,
        headers={
            "Content-Disposition": f"attachment; filename=voiceover{extension_for(audio.media_type)}",
        },
    )
