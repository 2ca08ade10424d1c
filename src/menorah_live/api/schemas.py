from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from typing import Any


class _CamelRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class AssociateAudioRequest(_CamelRequest):
    gif_filename: Any = None
    audio_url: str | None = None


class TriggerRequest(_CamelRequest):
    gif_url: Any = None
    audio_url: str | None = None


class HealthResponse(BaseModel):
    status: str = "ok"
