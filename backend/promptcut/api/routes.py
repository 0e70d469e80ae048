"""API routes."""
import logging
from pathlib import Path

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from fastapi.responses import FileResponse

from promptcut.api.schemas import (
    AddOverlayRequest,
    AddSubtitlesRequest,
    ApplyActionsRequest,
    ApplyActionsResponse,
    CutVideoRequest,
    EditResponse,
    ErrorResponse,
    ExportRequest,
    ExtractAudioRequest,
    HealthResponse,
    ParsePromptRequest,
    ParsePromptResponse,
    RemoveSegmentRequest,
    SlowMotionRequest,
    UploadResponse,
)
from promptcut.config import settings
from promptcut.errors import InvalidFilenameError
from promptcut.services.classifier import ActionClassifier, OpenAIActionClassifier
from promptcut.services.edit_service import EditResult, EditService
from promptcut.services.media_store import MediaStore, validate_filename
from promptcut.services.transcription import WhisperTranscriber
from promptcut.utils.ffmpeg import check_ffmpeg_available, check_ffprobe_available

EDIT_ERROR_RESPONSES = {
    status: {"model": ErrorResponse}
    for status in (400, 404, 500, 502, 504)
}

router = APIRouter(responses=EDIT_ERROR_RESPONSES)
files_router = APIRouter()
logger = logging.getLogger(__name__)

UPLOAD_CHUNK_BYTES = 1024 * 1024


# =============================================================================
# Dependencies
# =============================================================================

def get_media_store() -> MediaStore:
    return MediaStore.from_settings()


def get_edit_service(store: MediaStore = Depends(get_media_store)) -> EditService:
    return EditService(store, transcriber=WhisperTranscriber())


def get_classifier() -> ActionClassifier:
    return OpenAIActionClassifier()


def _to_response(result: EditResult) -> EditResponse:
    return EditResponse(**result.to_dict())


# =============================================================================
# Health
# =============================================================================

@router.get("/health", response_model=HealthResponse)
async def health_check():
    """Check API health and dependencies."""
    ffmpeg_ok = check_ffmpeg_available()
    ffprobe_ok = check_ffprobe_available()

    message = None
    if not (ffmpeg_ok and ffprobe_ok):
        missing = [name for name, ok in (("ffmpeg", ffmpeg_ok), ("ffprobe", ffprobe_ok)) if not ok]
        message = f"Missing dependencies: {', '.join(missing)}"

    return HealthResponse(
        status="healthy" if ffmpeg_ok and ffprobe_ok else "degraded",
        ffmpeg_available=ffmpeg_ok,
        ffprobe_available=ffprobe_ok,
        message=message
    )


# =============================================================================
# Upload
# =============================================================================

@router.post("/upload", response_model=UploadResponse)
async def upload_video(
    video: UploadFile = File(...),
    store: MediaStore = Depends(get_media_store)
):
    """Store an uploaded video under a generated name."""
    ext = Path(video.filename or "").suffix.lower()
    if ext not in settings.allowed_video_extensions or not (video.content_type or "").startswith("video/"):
        raise HTTPException(status_code=400, detail="Only video files are allowed!")

    limit = settings.max_upload_mb * 1024 * 1024
    target = store.upload_path(ext)
    written = 0
    try:
        with open(target, "wb") as f:
            while True:
                chunk = await video.read(UPLOAD_CHUNK_BYTES)
                if not chunk:
                    break
                written += len(chunk)
                if written > limit:
                    raise HTTPException(
                        status_code=413,
                        detail=f"File exceeds {settings.max_upload_mb} MB limit"
                    )
                f.write(chunk)
    except HTTPException:
        target.unlink(missing_ok=True)
        raise

    logger.info(f"Stored upload {video.filename} as {target.name} ({written} bytes)")
    return UploadResponse(filename=target.name, url=store.url_for(target))


# =============================================================================
# Prompt Classification
# =============================================================================

@router.post("/parse-prompt", response_model=ParsePromptResponse)
async def parse_prompt(
    data: ParsePromptRequest,
    classifier: ActionClassifier = Depends(get_classifier)
):
    """Turn a sentence into validated edit actions."""
    actions = await classifier.classify(data.prompt)
    return ParsePromptResponse(actions=[a.model_dump(exclude_none=True) for a in actions])


@router.post("/actions/apply", response_model=ApplyActionsResponse)
async def apply_actions(
    data: ApplyActionsRequest,
    service: EditService = Depends(get_edit_service)
):
    """Validate a batch of actions, then run it in order."""
    results = await service.apply_actions(data.filename, data.actions)
    produced = [r.filename for r in results if r.filename and r.action != "extract_audio"]
    return ApplyActionsResponse(
        results=[_to_response(r) for r in results],
        filename=produced[-1] if produced else data.filename,
    )


# =============================================================================
# Edits
# =============================================================================

@router.post("/cut-video", response_model=EditResponse)
async def cut_video(data: CutVideoRequest, service: EditService = Depends(get_edit_service)):
    """Keep only a span of the video."""
    return _to_response(await service.cut_video(data.filename, data.start, data.end))


@router.post("/remove-segment", response_model=EditResponse)
async def remove_segment(data: RemoveSegmentRequest, service: EditService = Depends(get_edit_service)):
    """Delete a span of the video."""
    return _to_response(await service.remove_segment(data.filename, data.start, data.end))


@router.post("/slow-motion", response_model=EditResponse)
async def slow_motion(data: SlowMotionRequest, service: EditService = Depends(get_edit_service)):
    """Slow a span of the video down."""
    return _to_response(
        await service.slow_motion(data.filename, data.start, data.end, data.speed)
    )


@router.post("/add-overlay", response_model=EditResponse)
async def add_overlay(data: AddOverlayRequest, service: EditService = Depends(get_edit_service)):
    """Overlay text described by a prompt."""
    return _to_response(await service.add_overlay(data.filename, data.prompt))


@router.post("/extract-audio", response_model=EditResponse)
async def extract_audio(data: ExtractAudioRequest, service: EditService = Depends(get_edit_service)):
    """Extract the audio track as mp3 or wav."""
    return _to_response(await service.extract_audio(data.filename, data.format))


@router.post("/add-subtitles", response_model=EditResponse)
async def add_subtitles(data: AddSubtitlesRequest, service: EditService = Depends(get_edit_service)):
    """Transcribe and burn in subtitles."""
    return _to_response(await service.add_subtitles(data.filename))


@router.post("/export", response_model=EditResponse)
async def export_video(data: ExportRequest, service: EditService = Depends(get_edit_service)):
    """Re-encode to mp4, mov or webm."""
    return _to_response(
        await service.export(data.filename, data.target_format, data.new_name)
    )


# =============================================================================
# Downloads
# =============================================================================

@files_router.get("/force-download/{filename}")
async def force_download(filename: str, store: MediaStore = Depends(get_media_store)):
    """Serve an extracted audio file as an attachment."""
    try:
        validate_filename(filename)
    except InvalidFilenameError:
        raise HTTPException(status_code=400, detail="Invalid filename")

    path = store.downloads_dir / filename
    if not path.is_file():
        raise HTTPException(status_code=404, detail="File not found")
    return FileResponse(path, filename=filename)
