"""Typed error hierarchy for the studio pipeline.

Generation errors are raised inside stage actions and caught at the action
boundary, where the classifier turns them into a stored ``ClassifiedError``.
Pipeline errors signal misuse of the state machine and propagate to the
caller. ``ConfigurationError`` is fatal at startup.
"""

from __future__ import annotations

# Sentinel text carried by VideoResultMissingError. The classifier matches it
# textually so a re-wrapped or serialized failure still maps to MISSING_RESULT.
MISSING_RESULT_MARKER = "VIDEO_URI_MISSING"

# Marker the generative-AI service puts in rate-limit failures.
RATE_LIMIT_MARKER = "RESOURCE_EXHAUSTED"


class StudioError(Exception):
    """Base exception for all ytstudio errors."""


class ConfigurationError(StudioError):
    """Raised when required configuration (the API key) is missing or invalid."""


class PipelineError(StudioError):
    """Base exception for state machine misuse."""


class InvalidTransitionError(PipelineError):
    """Raised when an operation is invoked from a stage that does not allow it."""

    def __init__(self, message: str, stage: int | None = None):
        self.stage = stage
        super().__init__(message)


class ActionInProgressError(PipelineError):
    """Raised when an action is started while its busy flag is already set."""

    def __init__(self, action: str):
        self.action = action
        super().__init__(f"{action} generation is already in progress")


class GenerationError(StudioError):
    """Base exception for failures of a generation call."""


class VideoOperationError(GenerationError):
    """The completed video operation carried an explicit error payload."""

    def __init__(self, message: str, code: int | None = None):
        self.code = code
        super().__init__(message)


class VideoResultMissingError(GenerationError):
    """The video operation finished without error but produced no video."""

    def __init__(self, message: str = MISSING_RESULT_MARKER):
        super().__init__(message)


class VideoFetchError(GenerationError):
    """Downloading the finished video returned a non-success response."""

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)


class VideoTimeoutError(GenerationError):
    """The video operation did not finish within the configured maximum wait."""

    def __init__(self, waited: float):
        self.waited = waited
        super().__init__(f"Video generation did not complete after {waited:g} seconds")


class VoiceServiceBusyError(GenerationError):
    """The voice provider refused the request because it is busy."""

    def __init__(
        self,
        message: str = (
            "The audio generation server is currently busy. "
            "Please reload or try again in a moment."
        ),
    ):
        super().__init__(message)
