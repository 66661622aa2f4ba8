"""Pipeline orchestrator for the five-stage studio workflow.

Coordinates script, voiceover, image and video stages with:
- Stage preconditions checked before every transition
- One busy flag per action guarding against duplicate concurrent runs
- Retry-wrapped collaborator calls
- Failures classified and stored on the state, never raised past the action
- Non-destructive rewind and re-advance, atomic reset and video resubmission

Usage:
    pipeline = StudioPipeline(GeminiScriptClient(), VeoVideoClient(), get_voice_client())
    pipeline.set_topic("The history of coffee")
    await pipeline.generate_script()
"""

import asyncio
import hashlib
import logging
from typing import Any, Awaitable, Callable, Coroutine, Optional

from ytstudio.config import PipelineConfig, settings
from ytstudio.errors import ActionInProgressError, GenerationError, InvalidTransitionError
from ytstudio.orchestrator.state import STEP_TRANSITIONS, PipelineState
from ytstudio.pipeline.video_gen import generate_video
from ytstudio.schemas.artifacts import ImageArtifact, Stage, VoicePreference
from ytstudio.services.base import ScriptClient, VideoClient, VoiceClient
from ytstudio.services.classifier import FailureStage, classify_failure, input_error
from ytstudio.services.retry import with_retries
from ytstudio.services.script_writer import build_script_prompt

logger = logging.getLogger(__name__)

# Action whose busy flag blocks leaving each stage
_STAGE_ACTIONS = {
    Stage.SCRIPT: "script",
    Stage.VOICE: "audio",
}


class StudioPipeline:
    """Owns one ``PipelineState`` and every operation that mutates it.

    Actions capture the state object they started on. A reset swaps in a new
    state, so a late completion of an abandoned action only touches the
    discarded one.
    """

    def __init__(
        self,
        script_client: ScriptClient,
        video_client: VideoClient,
        voice_client: VoiceClient,
        *,
        config: Optional[PipelineConfig] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._script_client = script_client
        self._video_client = video_client
        self._voice_client = voice_client
        self._config = config or settings.pipeline
        self._sleep = sleep
        self._state = PipelineState()
        self._tasks: set[asyncio.Task] = set()

    @property
    def state(self) -> PipelineState:
        return self._state

    # ------------------------------------------------------------------
    # Guards
    # ------------------------------------------------------------------
    def _require_stage(self, operation: str, *allowed: Stage) -> None:
        if self._state.stage not in allowed:
            names = ", ".join(s.name for s in allowed)
            raise InvalidTransitionError(
                f"{operation} is only allowed at stage {names}, "
                f"current stage is {self._state.stage.name}",
                stage=int(self._state.stage),
            )

    @staticmethod
    def _ensure_idle(state: PipelineState, action: str) -> None:
        if getattr(state.busy, action):
            raise ActionInProgressError(action)

    def _advance(self, state: PipelineState, from_stage: Stage) -> None:
        """Move to the next stage if the pointer has not moved meanwhile."""
        if state.stage == from_stage:
            state.stage = STEP_TRANSITIONS[from_stage]
            logger.info("Advanced to stage %d (%s)", state.stage, state.title)

    def _abandoned(self, state: PipelineState, action: str) -> bool:
        if state is not self._state:
            logger.info("Discarding result of %s from an abandoned run", action)
            return True
        return False

    def _call_with_retries(self, call, label: str):
        return with_retries(
            call,
            max_attempts=self._config.retry_max_attempts,
            initial_delay=self._config.retry_initial_delay,
            label=label,
            sleep=self._sleep,
        )

    # ------------------------------------------------------------------
    # Stage 1: Script
    # ------------------------------------------------------------------
    def set_topic(self, topic: str) -> None:
        self._require_stage("set_topic", Stage.SCRIPT)
        self._ensure_idle(self._state, "script")
        self._state.topic = topic

    async def generate_script(self) -> bool:
        """Generate the script for the current topic and advance to stage 2.

        Returns:
            True on success. On failure the classified error is stored in
            ``state.last_error`` and the stage is unchanged.
        """
        self._require_stage("generate_script", Stage.SCRIPT)
        state = self._state
        if not state.topic.strip():
            state.last_error = input_error("Please enter a topic.", FailureStage.SCRIPT)
            return False
        self._ensure_idle(state, "script")

        state.last_error = None
        state.busy.script = True
        prompt = build_script_prompt(state.topic)

        async def _generate() -> str:
            text = await self._script_client.generate(prompt)
            if not text or not text.strip():
                raise GenerationError("The model returned an empty script.")
            return text

        try:
            script = await self._call_with_retries(_generate, "script generation")
            if self._abandoned(state, "script generation"):
                return False
            state.script = script
            self._advance(state, Stage.SCRIPT)
        except Exception as e:
            logger.error(f"Script generation failed: {type(e).__name__}: {e}")
            state.last_error = classify_failure(e, FailureStage.SCRIPT)
            return False
        finally:
            state.busy.script = False
        return True

    # ------------------------------------------------------------------
    # Stage 2: Script review and voiceover
    # ------------------------------------------------------------------
    def edit_script(self, script: str) -> None:
        self._require_stage("edit_script", Stage.VOICE)
        self._state.script = script

    def choose_voice(self, voice: VoicePreference | str) -> None:
        self._require_stage("choose_voice", Stage.VOICE)
        self._state.voice = VoicePreference(voice)

    def _script_ready(self, state: PipelineState, error_field: str) -> bool:
        if state.script.strip():
            return True
        setattr(
            state, error_field,
            input_error("No script is available. Please write or generate one first."),
        )
        return False

    async def generate_audio(self) -> bool:
        """Read the script aloud with the chosen voice and advance to stage 3.

        Returns:
            True on success. On failure the classified error is stored in
            ``state.audio_error`` and the stage is unchanged, so the action
            can be retried or skipped.
        """
        self._require_stage("generate_audio", Stage.VOICE)
        state = self._state
        if not self._script_ready(state, "audio_error"):
            return False
        self._ensure_idle(state, "audio")

        state.audio_error = None
        state.busy.audio = True
        script, voice = state.script, state.voice
        try:
            audio = await self._call_with_retries(
                lambda: self._voice_client.synthesize(script, voice),
                "audio generation",
            )
            if self._abandoned(state, "audio generation"):
                return False
            state.audio = audio
            self._advance(state, Stage.VOICE)
        except Exception as e:
            logger.error(f"Audio generation failed: {type(e).__name__}: {e}")
            state.audio_error = classify_failure(e, FailureStage.AUDIO)
            return False
        finally:
            state.busy.audio = False
        return True

    def skip_audio(self) -> bool:
        """Continue to stage 3 without a voiceover."""
        self._require_stage("skip_audio", Stage.VOICE)
        state = self._state
        self._ensure_idle(state, "audio")
        if not self._script_ready(state, "audio_error"):
            return False
        state.audio = None
        state.audio_error = None
        self._advance(state, Stage.VOICE)
        return True

    # ------------------------------------------------------------------
    # Stage 3: Image
    # ------------------------------------------------------------------
    def upload_image(self, data: bytes, media_type: str) -> bool:
        """Store the base image and advance to stage 4."""
        self._require_stage("upload_image", Stage.IMAGE)
        state = self._state
        if not data or not media_type.startswith("image/"):
            state.last_error = input_error("Please upload an image file.")
            return False
        state.last_error = None
        state.image = ImageArtifact(data=data, media_type=media_type)
        self._advance(state, Stage.IMAGE)
        return True

    def clear_image(self) -> None:
        """Drop the image and return to stage 3."""
        self._require_stage("clear_image", Stage.IMAGE, Stage.VIDEO)
        state = self._state
        self._ensure_idle(state, "video")
        state.stage = Stage.IMAGE
        state.image = None

    # ------------------------------------------------------------------
    # Stages 4-5: Video
    # ------------------------------------------------------------------
    @staticmethod
    def _input_fingerprint(state: PipelineState) -> str:
        digest = hashlib.sha256(state.script.encode("utf-8"))
        if state.image is not None:
            digest.update(state.image.data)
        return digest.hexdigest()

    def _check_inputs_changed(self, state: PipelineState, operation: str) -> None:
        if state.rejected_input is not None and state.rejected_input == self._input_fingerprint(state):
            raise InvalidTransitionError(
                f"{operation}: the script and image were rejected by content "
                "policy; edit the script or replace the image first",
                stage=int(state.stage),
            )

    def check_video_ready(self) -> None:
        """Raise if generate_video() would be refused. Leaves state untouched."""
        self._require_stage("generate_video", Stage.VIDEO)
        state = self._state
        self._ensure_idle(state, "video")
        self._check_inputs_changed(state, "generate_video")

    def check_resubmit_ready(self) -> None:
        """Raise if resubmit_video() would be refused. Leaves state untouched."""
        self._require_stage("resubmit_video", Stage.RESULT)
        state = self._state
        self._ensure_idle(state, "video")
        if not state.video_failed:
            raise InvalidTransitionError(
                "resubmit_video requires a failed video attempt", stage=int(state.stage),
            )
        if state.last_error is not None and not state.last_error.resubmit_eligible:
            raise InvalidTransitionError(
                f"{state.last_error.category.value} failures cannot be resubmitted "
                "unchanged; go back and edit the script or image",
                stage=int(state.stage),
            )

    def start_video(self, resubmit: bool = False) -> Coroutine[Any, Any, bool]:
        """Claim the video action now and return the coroutine that runs it.

        The checks run and the busy flag is set before this returns, so a
        second caller is refused even while the returned coroutine has not
        started yet.

        Raises:
            InvalidTransitionError: Wrong stage, nothing to resubmit, or
                inputs unchanged since a content-policy rejection.
            ActionInProgressError: A video action is already running.
        """
        if resubmit:
            self.check_resubmit_ready()
        else:
            self.check_video_ready()

        state = self._state
        state.last_error = None
        state.video_failed = False
        state.video = None
        state.busy.video = True
        state.stage = Stage.RESULT
        return self._run_video(state)

    async def generate_video(self) -> bool:
        """Generate the video from the script and image, moving to stage 5.

        Returns:
            True on success. On failure ``state.video_failed`` is latched and
            the classified error is stored in ``state.last_error``.
        """
        return await self.start_video()

    async def resubmit_video(self) -> bool:
        """Re-run video generation after a failure, keeping script and image."""
        return await self.start_video(resubmit=True)

    async def _run_video(self, state: PipelineState) -> bool:
        try:
            video = await generate_video(
                self._video_client,
                state.script,
                state.image,
                poll_interval=self._config.video_poll_interval,
                max_wait=self._config.video_poll_max_wait,
                max_attempts=self._config.retry_max_attempts,
                initial_delay=self._config.retry_initial_delay,
                sleep=self._sleep,
            )
            if self._abandoned(state, "video generation"):
                return False
            state.video = video
            state.rejected_input = None
        except Exception as e:
            logger.error(f"Video generation failed: {type(e).__name__}: {e}")
            state.video_failed = True
            state.last_error = classify_failure(e, FailureStage.VIDEO)
            if not state.last_error.resubmit_eligible:
                state.rejected_input = self._input_fingerprint(state)
            return False
        finally:
            state.busy.video = False
        return True

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------
    def go_back(self) -> None:
        """Rewind one stage. Produced artifacts are kept."""
        state = self._state
        if state.stage == Stage.SCRIPT:
            raise InvalidTransitionError("Already at the first stage", stage=int(state.stage))
        state.stage = Stage(state.stage - 1)
        logger.info("Went back to stage %d (%s)", state.stage, state.title)

    def advance(self) -> None:
        """Move forward one stage over work that is already done.

        Nothing is regenerated or cleared, so going back and forward again
        keeps every artifact. Stages 1 and 2 need a script, stage 3 an
        image and stage 4 a video attempt (running, finished or failed).
        """
        state = self._state
        stage = state.stage
        if stage == Stage.RESULT:
            raise InvalidTransitionError("Already at the last stage", stage=int(stage))
        if stage in _STAGE_ACTIONS:
            self._ensure_idle(state, _STAGE_ACTIONS[stage])

        if stage in (Stage.SCRIPT, Stage.VOICE):
            missing = None if state.script.strip() else "a script"
        elif stage == Stage.IMAGE:
            missing = None if state.image is not None else "an image"
        else:
            has_attempt = state.video is not None or state.video_failed or state.busy.video
            missing = None if has_attempt else "a video attempt"
        if missing:
            raise InvalidTransitionError(
                f"Cannot advance from stage {stage.name} without {missing}",
                stage=int(stage),
            )
        self._advance(state, stage)

    def reset(self) -> None:
        """Discard the run and start over at stage 1.

        In-flight actions started through run_in_background() are cancelled;
        any other in-flight action finishes against the discarded state.
        """
        for task in list(self._tasks):
            task.cancel()
        self._state = PipelineState()
        logger.info("Pipeline reset")

    # ------------------------------------------------------------------
    # Background execution
    # ------------------------------------------------------------------
    def run_in_background(self, action: Coroutine[Any, Any, Any]) -> asyncio.Task:
        """Schedule an action as a task that reset() can cancel."""
        task = asyncio.create_task(action)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def run_tracked(self, action: Coroutine[Any, Any, Any]) -> Any:
        """Run an action as a cancellable task and wait for it.

        Returns the action's result, or None if a reset cancelled it.
        """
        task = self.run_in_background(action)
        await asyncio.wait({task})
        if task.cancelled():
            logger.info("Action cancelled by reset")
            return None
        return task.result()
