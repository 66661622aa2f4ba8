"""AI YouTube Studio - script, voiceover and video generation pipeline.

This module provides the startup validation function that ensures the
required API key is configured before any pipeline runs.
Call validate_configuration() during application startup.
"""

import logging

__version__ = "0.1.0"

logger = logging.getLogger(__name__)


def validate_configuration() -> None:
    """Validate that the generative-AI API key is configured.

    This function should be called during application startup to fail fast
    with a clear message if the key is missing.

    Raises:
        ConfigurationError: If no API key is set.
    """
    from ytstudio.services.genai_client import require_api_key

    require_api_key()
    logger.info("API key configured")
