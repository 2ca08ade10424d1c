import logging
import math
import re
from typing import Any, Literal, get_args
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

logger = logging.getLogger(__name__)

HEX_COLOR = re.compile(r"^#[0-9a-fA-F]{6}$")

SoundChoice = Literal["etincelle", "flamme", "embrasement", "revelation", "accomplissement"]
SOUND_CHOICES = get_args(SoundChoice)

COLOR_FIELDS = ("background_color", "primary_color", "accent_color", "text_color")

DEFAULT_GOAL_AMOUNT = 10_000_000
DEFAULT_PRESET_AMOUNTS = [1800, 3600, 18000, 36000, 100000]


def _positive_number(value, message: str) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
        raise ValueError(message)
    if value <= 0:
        raise ValueError(message)
    return math.floor(value)


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class MenorahSegment(_CamelModel):
    id: str
    threshold_percent: int | float
    order: int

    @field_validator("id", mode="before")
    @classmethod
    def check_id(cls, value):
        if not value or not isinstance(value, str):
            raise ValueError("segment id is required")
        return value

    @field_validator("threshold_percent", mode="before")
    @classmethod
    def check_threshold(cls, value):
        if isinstance(value, bool) or not isinstance(value, (int, float)) or not 0 <= value <= 100:
            raise ValueError("thresholdPercent must be between 0 and 100")
        return value

    @field_validator("order", mode="before")
    @classmethod
    def check_order(cls, value):
        if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value) or value < 1:
            raise ValueError("order must be a positive integer")
        return math.floor(value)


class DisplaySettings(_CamelModel):
    background_color: str = "#0b1026"
    primary_color: str = "#f5b301"
    accent_color: str = "#ff6b00"
    text_color: str = "#ffffff"
    background_image_url: str | None = None
    sound_choice: SoundChoice | None = None

    def merged(self, changes: Any) -> "DisplaySettings":
        """
        Returns a copy with each valid key of ``changes`` applied.

        Invalid values and unknown keys are dropped, the previous value is kept.
        """
        if not isinstance(changes, dict):
            logger.warning(f"Ignoring displaySettings update of type {type(changes).__name__}")
            return self.model_copy()

        accepted = {}
        for key, value in changes.items():
            name = _DISPLAY_FIELDS_BY_ALIAS.get(key, key)
            if name in COLOR_FIELDS:
                if isinstance(value, str) and HEX_COLOR.fullmatch(value):
                    accepted[name] = value
                    continue
            elif name == "background_image_url":
                if value is None or isinstance(value, str):
                    accepted[name] = value or None
                    continue
            elif name == "sound_choice":
                if value is None or value in SOUND_CHOICES:
                    accepted[name] = value
                    continue
            logger.info(f"Dropping invalid display setting {key}={value!r}")

        return self.model_copy(update=accepted)


_DISPLAY_FIELDS_BY_ALIAS = {to_camel(name): name for name in DisplaySettings.model_fields}


class ConfigUpdate(_CamelModel):
    """Top-level config fields. Any invalid field aborts the whole update."""

    goal_amount: int | None = None
    preset_amounts: list[int] | None = None
    menorah_segments: list[MenorahSegment] | None = None
    display_settings: Any = None

    @field_validator("goal_amount", mode="before")
    @classmethod
    def check_goal(cls, value):
        return _positive_number(value, "goalAmount must be a positive number")

    @field_validator("preset_amounts", mode="before")
    @classmethod
    def check_presets(cls, value):
        if not isinstance(value, list):
            raise ValueError("presetAmounts must be an array")
        return [_positive_number(amount, "presetAmounts must contain positive numbers") for amount in value]

    @field_validator("menorah_segments", mode="before")
    @classmethod
    def check_segments(cls, value):
        if not isinstance(value, list):
            raise ValueError("menorahSegments must be an array")
        return value

    @model_validator(mode="after")
    def check_unique_segment_ids(self):
        if self.menorah_segments:
            ids = [segment.id for segment in self.menorah_segments]
            if len(ids) != len(set(ids)):
                raise ValueError("menorahSegments ids must be unique")
        return self


class CampaignConfig(_CamelModel):
    goal_amount: int = DEFAULT_GOAL_AMOUNT
    preset_amounts: list[int] = Field(default_factory=lambda: list(DEFAULT_PRESET_AMOUNTS))
    menorah_segments: list[MenorahSegment] = Field(default_factory=list)
    display_settings: DisplaySettings = Field(default_factory=DisplaySettings)

    def to_public(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)
