"""Pydantic schemas for pipeline stages and the artifacts they produce."""

from enum import Enum, IntEnum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class Stage(IntEnum):
    """The five sequential pipeline steps."""

    SCRIPT = 1
    VOICE = 2
    IMAGE = 3
    VIDEO = 4
    RESULT = 5


class VoicePreference(str, Enum):
    """Voice used when the script is read aloud."""

    FEMALE = "female"
    MALE = "male"


class MediaArtifact(BaseModel):
    """Binary payload plus its MIME type."""

    model_config = ConfigDict(frozen=True)

    data: bytes = Field(repr=False)
    media_type: str

    @property
    def size(self) -> int:
        return len(self.data)


class AudioArtifact(MediaArtifact):
    """Generated voiceover audio."""

    media_type: str = "audio/mpeg"


class ImageArtifact(MediaArtifact):
    """User-supplied source image that conditions video generation."""


class VideoArtifact(MediaArtifact):
    """Generated video downloaded from the operation's result URI."""

    media_type: str = "video/mp4"
    source_uri: Optional[str] = None


class VideoOperation(BaseModel):
    """Provider-independent view of a long-running video operation.

    ``handle`` keeps the provider's own operation object so the client can
    poll it again; it is never serialized.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    name: Optional[str] = None
    done: bool = False
    error_message: Optional[str] = None
    error_code: Optional[int] = None
    has_error: bool = False
    result_uri: Optional[str] = None
    handle: Any = Field(default=None, exclude=True, repr=False)
