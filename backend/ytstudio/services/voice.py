"""Voiceover providers.

Two implementations of ``VoiceClient``:
- SimulatedVoiceClient: fixed delay, random "server busy" failures, returns a
  silent MP3. Stands in for a real provider during development.
- GeminiVoiceClient: Gemini text-to-speech with a prebuilt voice per
  preference; raw PCM is wrapped in a WAV container.

Use get_voice_client() to build the configured provider.
"""

import asyncio
import base64
import io
import logging
import random
import wave
from typing import Awaitable, Callable, Optional

from google import genai
from google.genai import types

from ytstudio.config import settings
from ytstudio.errors import GenerationError, VoiceServiceBusyError
from ytstudio.schemas.artifacts import AudioArtifact, VoicePreference
from ytstudio.services.base import VoiceClient
from ytstudio.services.genai_client import get_genai_client

logger = logging.getLogger(__name__)

# One second of silence, used as the simulated provider's output.
SILENT_MP3 = base64.b64decode(
    "SUQzBAAAAAABEVRYWFgAAAAtAAADY29tbWVudABCaWcgYnVjayBibGFuayBzb3VuZCBvZiBz"
    "aWxlbmNlMP4/AAAAAAAAAAAA//tgZA=="
)

# Gemini prebuilt voices
GEMINI_VOICES = {
    VoicePreference.FEMALE: "Kore",
    VoicePreference.MALE: "Charon",
}

# Gemini TTS returns 16-bit mono PCM at 24 kHz
_PCM_RATE = 24000
_PCM_WIDTH = 2


class SimulatedVoiceClient(VoiceClient):
    """Placeholder provider: waits, then fails with probability ``failure_rate``."""

    def __init__(
        self,
        delay: Optional[float] = None,
        failure_rate: Optional[float] = None,
        rng: Optional[random.Random] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._delay = settings.pipeline.audio_delay if delay is None else delay
        self._failure_rate = (
            settings.pipeline.audio_failure_rate if failure_rate is None else failure_rate
        )
        self._rng = rng or random.Random()
        self._sleep = sleep

    async def synthesize(self, text: str, voice: VoicePreference) -> AudioArtifact:
        await self._sleep(self._delay)
        if self._rng.random() < self._failure_rate:
            logger.warning("Simulated voice provider reported busy")
            raise VoiceServiceBusyError()
        logger.info("Simulated %s voiceover for %d chars", voice.value, len(text))
        return AudioArtifact(data=SILENT_MP3, media_type="audio/mpeg")


def pcm_to_wav(pcm: bytes, rate: int = _PCM_RATE, width: int = _PCM_WIDTH) -> bytes:
    """Wrap raw mono PCM samples in a WAV container."""
    buf = io.BytesIO()
    with wave.open(buf, "wb") as wav:
        wav.setnchannels(1)
        wav.setsampwidth(width)
        wav.setframerate(rate)
        wav.writeframes(pcm)
    return buf.getvalue()


class GeminiVoiceClient(VoiceClient):
    """VoiceClient backed by a Gemini text-to-speech model."""

    def __init__(
        self,
        model_id: Optional[str] = None,
        client: Optional[genai.Client] = None,
    ) -> None:
        self._model_id = model_id or settings.models.tts
        self._client = client

    async def synthesize(self, text: str, voice: VoicePreference) -> AudioArtifact:
        client = self._client or get_genai_client()
        response = await client.aio.models.generate_content(
            model=self._model_id,
            contents=text,
            config=types.GenerateContentConfig(
                response_modalities=["AUDIO"],
                speech_config=types.SpeechConfig(
                    voice_config=types.VoiceConfig(
                        prebuilt_voice_config=types.PrebuiltVoiceConfig(
                            voice_name=GEMINI_VOICES[voice],
                        )
                    )
                ),
            ),
        )

        pcm = None
        for candidate in response.candidates or []:
            for part in (candidate.content.parts if candidate.content else None) or []:
                if part.inline_data and part.inline_data.data:
                    pcm = part.inline_data.data
                    break
            if pcm:
                break
        if not pcm:
            raise GenerationError("The voice service returned no audio.")

        logger.info(
            "Gemini voiceover (%s) generated: %d bytes PCM",
            GEMINI_VOICES[voice], len(pcm),
        )
        return AudioArtifact(data=pcm_to_wav(pcm), media_type="audio/wav")


def get_voice_client(provider: Optional[str] = None) -> VoiceClient:
    """Return the voice client for ``provider`` ("simulated" or "gemini").

    Defaults to settings.pipeline.voice_provider.
    """
    name = provider or settings.pipeline.voice_provider
    if name == "gemini":
        logger.debug("Using GeminiVoiceClient")
        return GeminiVoiceClient()
    if name == "simulated":
        logger.debug("Using SimulatedVoiceClient")
        return SimulatedVoiceClient()
    raise ValueError(f"Unknown voice provider: {name}")
