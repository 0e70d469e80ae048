"""Error taxonomy shared by the edit pipelines and the API layer."""
from typing import Optional


class EditError(Exception):
    """Base class for every failure an edit request can report."""
    kind = "edit_error"
    status_code = 500

    def __init__(self, message: str, stage: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.stage = stage

    def to_dict(self) -> dict:
        data = {"success": False, "error": self.kind, "message": self.message}
        if self.stage:
            data["stage"] = self.stage
        return data


class ValidationError(EditError):
    """Bad identifier, malformed time, out-of-range speed or parameters."""
    kind = "validation_error"
    status_code = 400


class InvalidFilenameError(ValidationError):
    kind = "invalid_filename"


class InvalidTimeFormatError(ValidationError):
    kind = "invalid_time_format"


class UnsupportedActionError(ValidationError):
    """Raised when a classifier returns an action outside the catalog."""
    kind = "unsupported_action"

    def __init__(self, tag: str):
        super().__init__(f"The requested action '{tag}' is not currently supported.")
        self.tag = tag


class NotFoundError(EditError):
    kind = "not_found"
    status_code = 404


class ProbeError(EditError):
    """Duration detection failed."""
    kind = "probe_error"
    status_code = 500


class TranscodeError(EditError):
    """A backend stage exited with an error."""
    kind = "transcode_error"
    status_code = 500


class TranscodeTimeoutError(TranscodeError):
    """A backend stage exceeded its wall-clock bound and was killed."""
    kind = "timeout"
    status_code = 504


class TranscriptionError(EditError):
    kind = "transcription_error"
    status_code = 502


class ClassificationError(EditError):
    kind = "classification_error"
    status_code = 502


class EmptyResultError(EditError):
    """The requested operation would delete the entire asset."""
    kind = "empty_result"
    status_code = 400


# Subtitle pipeline stage errors

class AudioExtractionFailed(TranscodeError):
    kind = "audio_extraction_failed"

    def __init__(self, message: str):
        super().__init__(message, stage="extract_audio")


class TranscriptionFailed(TranscriptionError):
    kind = "transcription_failed"

    def __init__(self, message: str):
        super().__init__(message, stage="transcribe")


class SubtitleBurnFailed(TranscodeError):
    kind = "subtitle_burn_failed"

    def __init__(self, message: str):
        super().__init__(message, stage="burn_subtitles")
