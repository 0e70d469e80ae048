"""Edit action catalog and the validation gate in front of execution."""
from typing import Annotated, Any, List, Literal, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, TypeAdapter, field_validator
from pydantic import ValidationError as PydanticValidationError

from promptcut.errors import UnsupportedActionError, ValidationError
from promptcut.pipeline.segments import MAX_SPEED, MIN_SPEED
from promptcut.pipeline.timecode import parse_time_expression

SUPPORTED_ACTIONS = frozenset({
    "cut",
    "remove_segment",
    "add_overlay",
    "extract_audio",
    "slow_motion",
    "add_subtitles",
    "export",
    "undo",
    "redo",
})

AudioFormat = Literal["mp3", "wav"]
ExportFormat = Literal["mp4", "mov", "webm"]

DEFAULT_SLOW_MOTION_SPEED = 0.5


class _ActionBase(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    # Usually supplied by the request rather than the classifier
    filename: Optional[str] = None


class _TimedAction(_ActionBase):
    start: str
    end: str

    @field_validator("start", "end")
    @classmethod
    def _check_time_expression(cls, value: str) -> str:
        # Raises InvalidTimeFormatError straight through pydantic
        parse_time_expression(value)
        return value.strip()


class CutAction(_TimedAction):
    """Keep only [start, end]."""
    action: Literal["cut"]


class RemoveSegmentAction(_TimedAction):
    """Delete [start, end] and join what is left."""
    action: Literal["remove_segment"]


class SlowMotionAction(_TimedAction):
    """Slow [start, end] down; speed 0.5 means half speed."""
    action: Literal["slow_motion"]
    speed: float = Field(DEFAULT_SLOW_MOTION_SPEED, ge=MIN_SPEED, le=MAX_SPEED)


class AddOverlayAction(_ActionBase):
    """Overlay text described by a free-form prompt."""
    action: Literal["add_overlay"]
    prompt: str = Field(..., min_length=1)


class ExtractAudioAction(_ActionBase):
    action: Literal["extract_audio"]
    format: AudioFormat = "mp3"

    @field_validator("format", mode="before")
    @classmethod
    def _lower_format(cls, value: Any) -> Any:
        return value.lower() if isinstance(value, str) else value


class AddSubtitlesAction(_ActionBase):
    action: Literal["add_subtitles"]


class ExportAction(_ActionBase):
    action: Literal["export"]
    target_format: ExportFormat = Field(
        "mp4", validation_alias=AliasChoices("target_format", "targetFormat", "format")
    )
    new_name: Optional[str] = Field(
        None, validation_alias=AliasChoices("new_name", "newName")
    )

    @field_validator("target_format", mode="before")
    @classmethod
    def _lower_format(cls, value: Any) -> Any:
        return value.lower() if isinstance(value, str) else value


class UndoAction(_ActionBase):
    action: Literal["undo"]


class RedoAction(_ActionBase):
    action: Literal["redo"]


EditAction = Annotated[
    Union[
        CutAction,
        RemoveSegmentAction,
        AddOverlayAction,
        ExtractAudioAction,
        SlowMotionAction,
        AddSubtitlesAction,
        ExportAction,
        UndoAction,
        RedoAction,
    ],
    Field(discriminator="action"),
]

_ACTION_LIST = TypeAdapter(List[EditAction])


def _summarize(error: PydanticValidationError) -> str:
    problems = []
    for item in error.errors():
        location = ".".join(str(part) for part in item["loc"])
        problems.append(f"{location}: {item['msg']}")
    return "Invalid action parameters: " + "; ".join(problems)


def validate_actions(raw: Any) -> List[EditAction]:
    """
    Validate a batch of raw classifier actions.

    Every tag is checked before any action is parsed, and nothing is
    returned unless the whole batch is valid.

    Args:
        raw: ``[{"action": ...}, ...]`` or ``{"actions": [...]}``

    Returns:
        Typed actions, in order

    Raises:
        UnsupportedActionError: For the first tag outside the catalog
        ValidationError: For malformed batches or parameters
    """
    if isinstance(raw, dict) and "actions" in raw:
        raw = raw["actions"]

    if not isinstance(raw, list):
        raise ValidationError("Expected a list of actions.")

    for index, item in enumerate(raw):
        if not isinstance(item, dict) or not isinstance(item.get("action"), str):
            raise ValidationError(f"Action {index} has no action tag.")
        if item["action"] not in SUPPORTED_ACTIONS:
            raise UnsupportedActionError(item["action"])

    try:
        return _ACTION_LIST.validate_python(raw)
    except PydanticValidationError as e:
        raise ValidationError(_summarize(e))
