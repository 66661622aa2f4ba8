"""Settings for ytstudio, read from config.yaml, .env and YTSTUDIO_* variables.

Nested sections map to environment variables with a double underscore, e.g.
``YTSTUDIO_PIPELINE__VIDEO_POLL_MAX_WAIT=600``. The YAML file defaults to
``config.yaml`` in the working directory; point ``YTSTUDIO_CONFIG`` elsewhere
to use another file.
"""

import os
from pathlib import Path
from typing import Any, ClassVar, Literal, Optional

import yaml
from pydantic import AliasChoices, BaseModel, Field
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)


class YamlConfigSettingsSource(PydanticBaseSettingsSource):
    """Reads the whole YAML document as one dict of section values."""

    def get_field_value(self, field, field_name: str) -> tuple[Any, str, bool]:
        # Values come from __call__ in one piece
        return None, field_name, False

    def __call__(self) -> dict[str, Any]:
        yaml_path = Path(os.environ.get("YTSTUDIO_CONFIG", "config.yaml"))
        if not yaml_path.is_file():
            return {}

        with open(yaml_path, encoding="utf-8") as f:
            return yaml.safe_load(f) or {}


class ModelsConfig(BaseModel):
    """AI model identifiers."""

    script_llm: str = "gemini-2.5-flash"
    video_gen: str = "veo-2.0-generate-001"
    tts: str = "gemini-2.5-flash-preview-tts"


class PipelineConfig(BaseModel):
    """Pipeline execution parameters.

    All delays are in seconds. ``video_poll_max_wait`` of None polls until
    the operation reports done.
    """

    retry_max_attempts: int = Field(default=3, ge=1)
    retry_initial_delay: float = Field(default=2.0, ge=0)
    video_poll_interval: float = Field(default=30, gt=0)
    video_poll_max_wait: Optional[float] = Field(default=None, gt=0)
    voice_provider: Literal["simulated", "gemini"] = "simulated"
    audio_delay: float = Field(default=3.0, ge=0)
    audio_failure_rate: float = Field(default=0.5, ge=0, le=1)


class StorageConfig(BaseModel):
    """Where finished artifacts are written."""

    output_dir: Path = Path("output")


class ServerConfig(BaseModel):
    """API server bind address."""

    host: str = "127.0.0.1"
    port: int = 8000


class Settings(BaseSettings):
    """ytstudio settings.

    Sources, highest priority first: process environment, ``.env``, the YAML
    file, then keyword arguments. The API key is also accepted as a bare
    ``API_KEY`` variable.
    """

    model_config: ClassVar[SettingsConfigDict] = SettingsConfigDict(
        env_nested_delimiter="__",
        env_prefix="YTSTUDIO_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    api_key: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("YTSTUDIO_API_KEY", "API_KEY", "api_key"),
    )
    models: ModelsConfig = ModelsConfig()
    pipeline: PipelineConfig = PipelineConfig()
    storage: StorageConfig = StorageConfig()
    server: ServerConfig = ServerConfig()

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ):
        return (
            env_settings,
            dotenv_settings,
            YamlConfigSettingsSource(settings_cls),
            init_settings,
        )


# Singleton instance
settings = Settings()
