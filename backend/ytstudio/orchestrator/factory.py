"""Builds a StudioPipeline wired to the production collaborators."""

from typing import Optional

from ytstudio.config import PipelineConfig
from ytstudio.orchestrator.pipeline import StudioPipeline
from ytstudio.services.script_writer import GeminiScriptClient
from ytstudio.services.veo_client import VeoVideoClient
from ytstudio.services.voice import get_voice_client


def build_pipeline(
    voice_provider: Optional[str] = None,
    config: Optional[PipelineConfig] = None,
) -> StudioPipeline:
    """Wire Gemini script, Veo video and the configured voice provider."""
    return StudioPipeline(
        GeminiScriptClient(),
        VeoVideoClient(),
        get_voice_client(voice_provider),
        config=config,
    )
