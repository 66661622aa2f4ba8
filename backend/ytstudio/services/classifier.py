"""Failure classification into user-actionable categories.

A caught failure of unknown shape is mapped to one ``ErrorCategory`` plus a
message that fits the stage it came from. Collaborators may expose
``is_rate_limit()`` / ``is_policy_violation()`` on their exceptions; when they
do, those answers win. Otherwise classification falls back to matching marker
substrings in the failure's message and serialized form, case-insensitively.
"""

import json
import logging
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel

from ytstudio.errors import (
    MISSING_RESULT_MARKER,
    RATE_LIMIT_MARKER,
    VideoTimeoutError,
)

logger = logging.getLogger(__name__)

_QUOTA_MARKERS = ("quota", RATE_LIMIT_MARKER.lower())
_POLICY_MARKERS = ("sensitive", "policy", "responsible ai")


class ErrorCategory(str, Enum):
    QUOTA_EXCEEDED = "quota_exceeded"
    CONTENT_POLICY = "content_policy"
    MISSING_RESULT = "missing_result"
    TIMEOUT = "timeout"
    UNEXPECTED = "unexpected"
    INVALID_INPUT = "invalid_input"

    @property
    def resubmit_eligible(self) -> bool:
        """Whether the failing stage may be re-run with unchanged inputs."""
        return self not in (ErrorCategory.CONTENT_POLICY, ErrorCategory.INVALID_INPUT)


class FailureStage(str, Enum):
    """Stage context that selects the message copy."""

    SCRIPT = "script"
    AUDIO = "audio"
    VIDEO = "video"


class ClassifiedError(BaseModel):
    """A failure as stored on the pipeline state and shown to the user."""

    category: ErrorCategory
    stage: Optional[FailureStage] = None
    message: str
    detail: str = ""

    @property
    def resubmit_eligible(self) -> bool:
        return self.category.resubmit_eligible


_MESSAGES: dict[FailureStage, dict[ErrorCategory, str]] = {
    FailureStage.SCRIPT: {
        ErrorCategory.QUOTA_EXCEEDED: (
            "You've exceeded your API quota. Please check your plan and billing "
            "details, or try again later."
        ),
        ErrorCategory.CONTENT_POLICY: (
            "The topic was rejected due to content policies. Please revise it "
            "and try again. (Details: {detail})"
        ),
        ErrorCategory.MISSING_RESULT: (
            "Script generation finished, but no script was returned. "
            "Please try again."
        ),
        ErrorCategory.TIMEOUT: "Script generation timed out. Please try again.",
        ErrorCategory.UNEXPECTED: (
            "Failed to generate script. Please try again. (Details: {detail})"
        ),
    },
    FailureStage.AUDIO: {
        ErrorCategory.QUOTA_EXCEEDED: (
            "You've exceeded your API quota for audio generation. Please check "
            "your plan and billing details, or try again later."
        ),
        ErrorCategory.CONTENT_POLICY: (
            "The script was rejected by the voice service due to content "
            "policies. Please edit the script and try again. (Details: {detail})"
        ),
        ErrorCategory.MISSING_RESULT: (
            "Audio generation finished, but no audio was returned. Please retry "
            "or continue without audio."
        ),
        ErrorCategory.TIMEOUT: (
            "Audio generation timed out. Please retry or continue without audio."
        ),
        ErrorCategory.UNEXPECTED: "{detail}",
    },
    FailureStage.VIDEO: {
        ErrorCategory.QUOTA_EXCEEDED: (
            "You've exceeded your API quota for video generation. Please check "
            "your plan and billing details, or try again later."
        ),
        ErrorCategory.CONTENT_POLICY: (
            "The prompt was rejected due to content policies. Please revise your "
            "script to align with safety guidelines and try again. "
            "(Details: {detail})"
        ),
        ErrorCategory.MISSING_RESULT: (
            "Video generation finished, but no video was created. This often "
            "happens due to content policy violations. Please try adjusting your "
            "script or image and resubmitting."
        ),
        ErrorCategory.TIMEOUT: (
            "Video generation is taking longer than expected and was stopped. "
            "Please resubmit. (Details: {detail})"
        ),
        ErrorCategory.UNEXPECTED: (
            "Failed to generate video due to an unexpected error. Please try "
            "again. (Details: {detail})"
        ),
    },
}


def _failure_message(exc: Any) -> str:
    if isinstance(exc, BaseException):
        return str(exc)
    return ""


def _serialize_failure(exc: Any) -> str:
    """Best-effort full text of a failure, including structured payloads."""
    parts = [repr(exc)]
    payload = getattr(exc, "details", None)
    if payload is None and not isinstance(exc, BaseException):
        payload = exc
    if payload is not None:
        try:
            parts.append(json.dumps(payload, default=str))
        except (TypeError, ValueError):
            parts.append(str(payload))
    return " ".join(parts)


def _capability(exc: Any, name: str) -> Optional[bool]:
    check = getattr(exc, name, None)
    if callable(check):
        return bool(check())
    return None


def categorize(exc: Any) -> ErrorCategory:
    """Return the category for a failure, independent of stage."""
    if isinstance(exc, VideoTimeoutError):
        return ErrorCategory.TIMEOUT
    if _capability(exc, "is_rate_limit"):
        return ErrorCategory.QUOTA_EXCEEDED
    if _capability(exc, "is_policy_violation"):
        return ErrorCategory.CONTENT_POLICY

    combined = f"{_failure_message(exc)} {_serialize_failure(exc)}".lower()
    if any(marker in combined for marker in _QUOTA_MARKERS):
        return ErrorCategory.QUOTA_EXCEEDED
    if MISSING_RESULT_MARKER.lower() in combined:
        return ErrorCategory.MISSING_RESULT
    if any(marker in combined for marker in _POLICY_MARKERS):
        return ErrorCategory.CONTENT_POLICY
    return ErrorCategory.UNEXPECTED


def classify_failure(exc: Any, stage: FailureStage) -> ClassifiedError:
    """Classify a caught failure and render the message for ``stage``.

    Args:
        exc: The caught exception, or any other failure value.
        stage: Which stage raised it; only changes the message copy.

    Returns:
        ClassifiedError with category, stage-specific message and raw detail.
    """
    category = categorize(exc)
    detail = _failure_message(exc) or str(exc)
    message = _MESSAGES[stage][category].format(detail=detail)
    logger.info("Classified %s failure as %s: %s", stage.value, category.value, detail)
    return ClassifiedError(
        category=category, stage=stage, message=message, detail=detail,
    )


def input_error(message: str, stage: Optional[FailureStage] = None) -> ClassifiedError:
    """Inline precondition error (e.g. an empty topic)."""
    return ClassifiedError(
        category=ErrorCategory.INVALID_INPUT, stage=stage, message=message,
    )
