# Models module
from promptcut.models.actions import (
    SUPPORTED_ACTIONS,
    AddOverlayAction,
    AddSubtitlesAction,
    CutAction,
    EditAction,
    ExportAction,
    ExtractAudioAction,
    RedoAction,
    RemoveSegmentAction,
    SlowMotionAction,
    UndoAction,
    validate_actions,
)

__all__ = [
    "SUPPORTED_ACTIONS",
    "AddOverlayAction",
    "AddSubtitlesAction",
    "CutAction",
    "EditAction",
    "ExportAction",
    "ExtractAudioAction",
    "RedoAction",
    "RemoveSegmentAction",
    "SlowMotionAction",
    "UndoAction",
    "validate_actions",
]
