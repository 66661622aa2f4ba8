"""Script generation backed by Gemini."""

import logging
from typing import Optional

from google import genai

from ytstudio.config import settings
from ytstudio.services.base import ScriptClient
from ytstudio.services.genai_client import get_genai_client

logger = logging.getLogger(__name__)

SCRIPT_PROMPT = (
    'Generate a short, engaging YouTube video script about "{topic}". '
    "The script should be around 150 words and include brief scene "
    "descriptions or visual cues."
)


def build_script_prompt(topic: str) -> str:
    return SCRIPT_PROMPT.format(topic=topic.strip())


class GeminiScriptClient(ScriptClient):
    """ScriptClient that calls ``generate_content`` on a Gemini model."""

    def __init__(
        self,
        model_id: Optional[str] = None,
        client: Optional[genai.Client] = None,
    ) -> None:
        self._model_id = model_id or settings.models.script_llm
        self._client = client

    async def generate(self, prompt: str) -> str:
        client = self._client or get_genai_client()
        response = await client.aio.models.generate_content(
            model=self._model_id,
            contents=prompt,
        )
        text = response.text or ""
        logger.info("Script generated with %s (%d chars)", self._model_id, len(text))
        return text
