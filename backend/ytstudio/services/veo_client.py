"""Veo video generation client.

Submits image-conditioned generation jobs, re-reads their long-running
operations and downloads the finished video over plain HTTP. Retry and polling
policy live in ``ytstudio.pipeline.video_gen``; this module performs single
calls only.
"""

import logging
from typing import Optional

import httpx
from google import genai
from google.genai import types

from ytstudio.config import settings
from ytstudio.errors import VideoFetchError
from ytstudio.schemas.artifacts import VideoOperation
from ytstudio.services.base import VideoClient
from ytstudio.services.genai_client import get_genai_client, require_api_key

logger = logging.getLogger(__name__)

_DOWNLOAD_TIMEOUT = httpx.Timeout(120.0, connect=10.0)


def _to_video_operation(operation) -> VideoOperation:
    """Flatten a GenerateVideosOperation into the fields the poller consumes."""
    error = getattr(operation, "error", None)
    error_message = None
    error_code = None
    if error:
        if isinstance(error, dict):
            error_message = error.get("message")
            error_code = error.get("code")
        else:
            error_message = getattr(error, "message", None) or str(error)
            error_code = getattr(error, "code", None)

    result_uri = None
    response = getattr(operation, "response", None) or getattr(operation, "result", None)
    if response is not None:
        videos = getattr(response, "generated_videos", None) or []
        if videos and videos[0].video is not None:
            result_uri = videos[0].video.uri
        filtered = getattr(response, "rai_media_filtered_count", None)
        if filtered:
            logger.warning(
                "Operation %s: %d video(s) filtered by responsible AI: %s",
                operation.name, filtered,
                getattr(response, "rai_media_filtered_reasons", None),
            )

    return VideoOperation(
        name=operation.name,
        done=bool(operation.done),
        has_error=bool(error),
        error_message=error_message,
        error_code=error_code,
        result_uri=result_uri,
        handle=operation,
    )


def _error_detail(response: httpx.Response) -> str:
    """Best server-supplied error message, else the HTTP reason phrase."""
    detail = response.reason_phrase or f"HTTP {response.status_code}"
    try:
        body = response.json()
    except ValueError:
        logger.warning("Could not parse error response body as JSON.")
        return detail
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict) and error.get("message"):
            return error["message"]
    return detail


class VeoVideoClient(VideoClient):
    """VideoClient backed by Veo through the google-genai SDK."""

    def __init__(
        self,
        model_id: Optional[str] = None,
        client: Optional[genai.Client] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        api_key: Optional[str] = None,
    ) -> None:
        self._model_id = model_id or settings.models.video_gen
        self._client = client
        self._http_client = http_client
        self._api_key = api_key

    def _genai(self) -> genai.Client:
        return self._client or get_genai_client(self._api_key)

    async def submit(
        self, prompt: str, image_bytes: bytes, media_type: str,
    ) -> VideoOperation:
        operation = await self._genai().aio.models.generate_videos(
            model=self._model_id,
            prompt=prompt,
            image=types.Image(image_bytes=image_bytes, mime_type=media_type),
            config=types.GenerateVideosConfig(number_of_videos=1),
        )
        logger.info("Submitted %s job: %s", self._model_id, operation.name)
        return _to_video_operation(operation)

    async def poll(self, operation: VideoOperation) -> VideoOperation:
        handle = operation.handle
        if handle is None:
            handle = types.GenerateVideosOperation(name=operation.name)
        fresh = await self._genai().aio.operations.get(operation=handle)
        return _to_video_operation(fresh)

    async def fetch(self, uri: str) -> bytes:
        # Result URIs already carry alt=media; the key is added next to it
        url = httpx.URL(uri).copy_merge_params({"key": require_api_key(self._api_key)})
        if self._http_client is not None:
            response = await self._http_client.get(url)
        else:
            async with httpx.AsyncClient(
                timeout=_DOWNLOAD_TIMEOUT, follow_redirects=True,
            ) as client:
                response = await client.get(url)

        if not response.is_success:
            raise VideoFetchError(
                f"Failed to fetch video: {_error_detail(response)}",
                status_code=response.status_code,
            )
        return response.content
