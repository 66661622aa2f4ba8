"""Image-conditioned video generation with long-running operation polling.

Drives one video job from submission to downloaded bytes:
- Submit the job (retried on rate limits)
- Poll the operation at a fixed interval until done (each poll retried)
- Raise on an operation error payload, or on a finished operation with no
  video (the missing-result sentinel)
- Download the finished video; a non-success response becomes a failure

Failures of the submission, a poll or the final fetch are logged with their
layer name and then propagate unchanged for the caller to classify.

Usage:
    from ytstudio.pipeline.video_gen import generate_video

    video = await generate_video(client, script, image)
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from ytstudio.config import settings
from ytstudio.errors import (
    VideoOperationError,
    VideoResultMissingError,
    VideoTimeoutError,
)
from ytstudio.schemas.artifacts import ImageArtifact, VideoArtifact, VideoOperation
from ytstudio.services.base import VideoClient
from ytstudio.services.retry import with_retries

logger = logging.getLogger(__name__)

_GENERIC_OPERATION_ERROR = "The video generation service returned an error."


async def wait_for_operation(
    client: VideoClient,
    operation: VideoOperation,
    *,
    poll_interval: Optional[float] = None,
    max_wait: Optional[float] = None,
    max_attempts: Optional[int] = None,
    initial_delay: Optional[float] = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> VideoOperation:
    """Poll ``operation`` until it reports done and return the final view.

    Args:
        client: Video client used for each poll.
        operation: Handle returned by submission.
        poll_interval: Seconds between polls. Defaults to settings.
        max_wait: Upper bound on total seconds spent sleeping between polls;
            None polls without limit.
        max_attempts: Retry attempts per poll call.
        initial_delay: Retry backoff base per poll call.
        sleep: Awaitable sleep, injectable for tests.

    Raises:
        VideoTimeoutError: If ``max_wait`` would be exceeded.
        ValueError: If the poll interval is not positive.
    """
    pipeline_cfg = settings.pipeline
    interval = pipeline_cfg.video_poll_interval if poll_interval is None else poll_interval
    attempts = max_attempts or pipeline_cfg.retry_max_attempts
    delay = pipeline_cfg.retry_initial_delay if initial_delay is None else initial_delay
    if interval <= 0:
        raise ValueError(f"poll_interval must be positive, got {interval}")

    waited = 0.0
    poll_count = 0
    while not operation.done:
        if max_wait is not None and waited + interval > max_wait:
            logger.error(
                "Operation %s still running after %d poll(s), %gs waited",
                operation.name, poll_count, waited,
            )
            raise VideoTimeoutError(waited)

        await sleep(interval)
        waited += interval

        current = operation
        operation = await with_retries(
            lambda: client.poll(current),
            max_attempts=attempts,
            initial_delay=delay,
            label="operation poll",
            sleep=sleep,
        )
        poll_count += 1
        logger.info(
            "Operation %s poll %d: done=%s", operation.name, poll_count, operation.done,
        )

    return operation


async def generate_video(
    client: VideoClient,
    prompt: str,
    image: ImageArtifact,
    *,
    poll_interval: Optional[float] = None,
    max_wait: Optional[float] = None,
    max_attempts: Optional[int] = None,
    initial_delay: Optional[float] = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> VideoArtifact:
    """Generate a video from ``prompt`` conditioned on ``image``.

    Returns:
        VideoArtifact holding the downloaded bytes.

    Raises:
        VideoOperationError: The finished operation carried an error.
        VideoResultMissingError: The operation finished with no video.
        VideoFetchError: Downloading the video failed.
        VideoTimeoutError: ``max_wait`` elapsed before completion.
        Exception: Any failure of the submission or a poll, unchanged.
    """
    pipeline_cfg = settings.pipeline
    attempts = max_attempts or pipeline_cfg.retry_max_attempts
    delay = pipeline_cfg.retry_initial_delay if initial_delay is None else initial_delay
    if max_wait is None:
        max_wait = pipeline_cfg.video_poll_max_wait

    operation = await with_retries(
        lambda: client.submit(prompt, image.data, image.media_type),
        max_attempts=attempts,
        initial_delay=delay,
        label="video submission",
        sleep=sleep,
    )
    logger.info("Video operation submitted: %s", operation.name)

    operation = await wait_for_operation(
        client,
        operation,
        poll_interval=poll_interval,
        max_wait=max_wait,
        max_attempts=attempts,
        initial_delay=delay,
        sleep=sleep,
    )

    if operation.has_error or operation.error_message:
        logger.error(
            "Video generation failed with an operation error: %s",
            operation.error_message,
        )
        raise VideoOperationError(
            operation.error_message or _GENERIC_OPERATION_ERROR,
            code=operation.error_code,
        )

    if not operation.result_uri:
        logger.error(
            "Video generation completed, but no video URI was found. Operation: %s",
            operation.model_dump_json(),
        )
        raise VideoResultMissingError()

    try:
        data = await client.fetch(operation.result_uri)
    except Exception as e:
        logger.error("video fetch failed for %s: %s", operation.name, e)
        raise

    logger.info("Video downloaded: %d bytes", len(data))
    return VideoArtifact(data=data, source_uri=operation.result_uri)
