"""Pydantic schemas for API requests and responses."""
from typing import Any, Dict, List, Optional
from pydantic import AliasChoices, BaseModel, Field


# =============================================================================
# Edit Requests
# =============================================================================

class TimedEditRequest(BaseModel):
    """Request carrying an asset and a time window."""
    filename: str = Field(..., description="Asset identifier (uploaded or produced file)")
    start: str = Field(..., description="HH:MM:SS, start, beginning, end or end-HH:MM:SS")
    end: str = Field(..., description="HH:MM:SS, end or end-HH:MM:SS")


class CutVideoRequest(TimedEditRequest):
    """Request to keep only a span."""


class RemoveSegmentRequest(TimedEditRequest):
    """Request to delete a span."""


class SlowMotionRequest(TimedEditRequest):
    """Request to slow a span down."""
    speed: float = Field(0.5, description="Playback speed, 0.5 = half speed")


class AddOverlayRequest(BaseModel):
    """Request to overlay text described in free form."""
    filename: str
    prompt: str = Field(..., min_length=1)


class ExtractAudioRequest(BaseModel):
    """Request to extract the audio track."""
    filename: str
    format: str = Field("mp3", description="mp3 or wav")


class AddSubtitlesRequest(BaseModel):
    """Request to transcribe and burn in subtitles."""
    filename: str


class ExportRequest(BaseModel):
    """Request to re-encode to a delivery format."""
    filename: str
    target_format: str = Field(
        "mp4", validation_alias=AliasChoices("target_format", "targetFormat")
    )
    new_name: Optional[str] = Field(
        None, validation_alias=AliasChoices("new_name", "newName")
    )


class ParsePromptRequest(BaseModel):
    """Request to classify a natural-language prompt."""
    prompt: str = Field(..., min_length=1)


class ApplyActionsRequest(BaseModel):
    """Request to run a batch of classifier actions."""
    filename: str
    actions: List[Dict[str, Any]] = Field(..., min_length=1)


# =============================================================================
# Responses
# =============================================================================

class EditResponse(BaseModel):
    """Result of an executed edit."""
    success: bool = True
    action: str
    message: str
    filename: Optional[str] = None
    url: Optional[str] = None


class ApplyActionsResponse(BaseModel):
    """Results of a batch, in order."""
    success: bool = True
    results: List[EditResponse]
    filename: Optional[str] = Field(None, description="Latest produced video")


class ParsePromptResponse(BaseModel):
    """Validated actions produced by the classifier."""
    success: bool = True
    actions: List[Dict[str, Any]]


class UploadResponse(BaseModel):
    """Stored upload."""
    success: bool = True
    filename: str
    url: str


class ErrorResponse(BaseModel):
    """Failure with a machine-checkable kind."""
    success: bool = False
    error: str
    message: str
    stage: Optional[str] = None


# =============================================================================
# Health Check
# =============================================================================

class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    ffmpeg_available: bool
    ffprobe_available: bool
    message: Optional[str] = None
