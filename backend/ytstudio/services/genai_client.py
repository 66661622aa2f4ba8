"""Google Generative AI client factory using the google-genai SDK.

Uses the Gemini Developer API with an API key rather than Vertex AI, because
finished Veo videos are downloaded from a URI that is authenticated with the
same key.

Usage:
    from ytstudio.services.genai_client import get_genai_client

    client = get_genai_client()
"""

from pathlib import Path

from dotenv import load_dotenv
from google import genai

from ytstudio.config import settings
from ytstudio.errors import ConfigurationError

# Load .env from the repository root so API_KEY is visible to settings users
load_dotenv(Path(__file__).resolve().parent.parent.parent.parent / ".env")

# Per-key client cache
_clients: dict[str, genai.Client] = {}


def require_api_key(api_key: str | None = None) -> str:
    """Return the configured API key or fail with a ConfigurationError."""
    key = api_key or settings.api_key
    if not key:
        raise ConfigurationError(
            "API_KEY environment variable not set. "
            "Export API_KEY (or YTSTUDIO_API_KEY) or add it to .env."
        )
    return key


def get_genai_client(api_key: str | None = None) -> genai.Client:
    """Get or create a client for the given API key.

    Clients are cached per key so repeated calls are cheap.

    Args:
        api_key: Gemini API key. Defaults to settings.api_key.

    Returns:
        genai.Client: Configured client instance.

    Raises:
        ConfigurationError: If no API key is configured.
    """
    key = require_api_key(api_key)
    if key not in _clients:
        _clients[key] = genai.Client(api_key=key)
    return _clients[key]
