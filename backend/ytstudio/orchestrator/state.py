"""Pipeline state model and stage transition rules.

``PipelineState`` is the single source of truth for one pipeline run: the
active stage, every artifact produced so far, per-action busy flags and the
last classified errors. Artifacts survive rewinds, so the model validates on
every assignment that the stage is still reachable from what it holds.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from ytstudio.schemas.artifacts import (
    AudioArtifact,
    ImageArtifact,
    Stage,
    VideoArtifact,
    VoicePreference,
)
from ytstudio.services.classifier import ClassifiedError

# Human-readable stage titles
STAGE_TITLES = {
    Stage.SCRIPT: "Write the Script",
    Stage.VOICE: "Review Script & Voiceover",
    Stage.IMAGE: "Provide a Base Image",
    Stage.VIDEO: "Generate Video",
    Stage.RESULT: "Final Video",
}

# Forward transitions
STEP_TRANSITIONS = {
    Stage.SCRIPT: Stage.VOICE,
    Stage.VOICE: Stage.IMAGE,
    Stage.IMAGE: Stage.VIDEO,
    Stage.VIDEO: Stage.RESULT,
}


class BusyFlags(BaseModel):
    """Independent in-progress flags, one per long-running action."""

    model_config = ConfigDict(validate_assignment=True)

    script: bool = False
    audio: bool = False
    video: bool = False

    def active(self) -> bool:
        return self.script or self.audio or self.video


class PipelineState(BaseModel):
    """Mutable state of one pipeline run."""

    model_config = ConfigDict(validate_assignment=True)

    stage: Stage = Stage.SCRIPT
    topic: str = ""
    script: str = ""
    voice: VoicePreference = VoicePreference.FEMALE
    audio: Optional[AudioArtifact] = None
    image: Optional[ImageArtifact] = None
    video: Optional[VideoArtifact] = None
    busy: BusyFlags = Field(default_factory=BusyFlags)
    last_error: Optional[ClassifiedError] = None
    audio_error: Optional[ClassifiedError] = None
    video_failed: bool = False
    # Fingerprint of the script and image a content-policy failure rejected
    rejected_input: Optional[str] = None

    @model_validator(mode="after")
    def _check_reachable(self) -> "PipelineState":
        if self.stage >= Stage.IMAGE and not self.script.strip():
            raise ValueError(f"stage {self.stage.name} requires a script")
        if self.stage >= Stage.VIDEO and self.image is None:
            raise ValueError(f"stage {self.stage.name} requires an image")
        return self

    @property
    def title(self) -> str:
        return STAGE_TITLES[self.stage]

    def is_complete(self, stage: Stage) -> bool:
        """A stage counts as complete once the pointer has moved past it."""
        return self.stage > stage
