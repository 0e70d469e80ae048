"""Edit service: validates a request, probes, plans and runs the pipeline."""
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, List, Optional

from promptcut.config import settings
from promptcut.errors import TranscriptionError, ValidationError
from promptcut.models.actions import (
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
from promptcut.pipeline.overlay import (
    build_drawtext_filter,
    parse_overlay_prompt,
    resolve_overlay_start,
)
from promptcut.pipeline.segments import (
    cleanup_files,
    MAX_SPEED,
    MIN_SPEED,
    encode_options,
    format_ts,
    plan_remove_segment,
    plan_slow_motion,
    run_pipeline,
    single_stage_job,
    transcode_stage,
)
from promptcut.pipeline.subtitles import Transcriber, run_subtitle_pipeline
from promptcut.pipeline.timecode import parse_time_expression, resolve_window
from promptcut.services.media_store import MediaStore, unique_token, validate_filename
from promptcut.utils.ffmpeg import has_audio_stream, probe_duration

logger = logging.getLogger(__name__)

AUDIO_CODECS = {
    "mp3": "libmp3lame",
    "wav": "pcm_s16le",
}

EXPORT_FORMATS = ("mp4", "mov", "webm")

_EXPORT_NAME_RE = re.compile(r"^[\w.-]+$")


@dataclass
class EditResult:
    """Outcome of one executed action."""
    action: str
    message: str
    path: Optional[Path] = None
    url: Optional[str] = None

    @property
    def filename(self) -> Optional[str]:
        return self.path.name if self.path else None

    def to_dict(self) -> dict:
        return {
            "success": True,
            "action": self.action,
            "message": self.message,
            "filename": self.filename,
            "url": self.url,
        }


def _check_speed(speed: Any) -> float:
    try:
        value = float(speed)
    except (TypeError, ValueError):
        raise ValidationError(f"Speed must be between {MIN_SPEED:g} and {MAX_SPEED:g}.")
    if not MIN_SPEED <= value <= MAX_SPEED:
        raise ValidationError(f"Speed must be between {MIN_SPEED:g} and {MAX_SPEED:g}.")
    return value


def _export_base_name(new_name: Optional[str]) -> str:
    if not new_name or not new_name.strip():
        return "exported"
    base = re.sub(r"\s+", "_", new_name.strip())
    if ".." in base or not _EXPORT_NAME_RE.match(base):
        raise ValidationError("Export name may only contain letters, digits, '_', '-' and '.'.")
    return base


def _export_options(target_format: str) -> List[str]:
    if target_format == "webm":
        return [
            "-c:v", "libvpx-vp9",
            "-crf", "32",
            "-b:v", "0",
            "-c:a", "libopus",
            "-b:a", "128k",
        ]
    return [*encode_options(), "-movflags", "+faststart"]


class EditService:
    """Runs edit actions against assets in a ``MediaStore``."""

    def __init__(
        self,
        store: MediaStore,
        transcriber: Optional[Transcriber] = None,
        stage_timeout: Optional[float] = None,
        bold_font_path: Optional[str] = None,
    ):
        self.store = store
        self.transcriber = transcriber
        self.stage_timeout = stage_timeout or settings.stage_timeout_seconds
        self.bold_font_path = bold_font_path or settings.overlay_bold_font_path

    def _result(self, action: str, message: str, path: Path) -> EditResult:
        return EditResult(action=action, message=message, path=path, url=self.store.url_for(path))

    async def cut_video(self, filename: str, start: str, end: str) -> EditResult:
        """Keep only [start, end] of the asset."""
        validate_filename(filename)
        start_expr, end_expr = parse_time_expression(start), parse_time_expression(end)
        source = self.store.resolve(filename)

        duration = await probe_duration(source)
        window = resolve_window(start_expr, end_expr, duration)
        logger.info(f"Cutting {filename} to {window}")

        output = self.store.artifact_path("cut", source.suffix)
        stage = transcode_stage(
            "cut", source, output,
            output_options=[
                "-ss", format_ts(window.start.seconds),
                "-to", format_ts(window.end.seconds),
                *encode_options(),
            ],
            expected_duration=window.duration,
        )
        await run_pipeline(single_stage_job(stage), timeout=self.stage_timeout)
        return self._result("cut", "Video cut successfully.", output)

    async def remove_segment(self, filename: str, start: str, end: str) -> EditResult:
        """Delete [start, end] and join the remaining parts."""
        validate_filename(filename)
        start_expr, end_expr = parse_time_expression(start), parse_time_expression(end)
        source = self.store.resolve(filename)

        duration = await probe_duration(source)
        window = resolve_window(start_expr, end_expr, duration)
        logger.info(f"Removing {window} from {filename} ({duration:.2f}s)")

        token = unique_token()
        output = self.store.artifact_path("removed", source.suffix, token)
        job = plan_remove_segment(source, duration, window, output, self.store.cuts_dir, token)
        await run_pipeline(job, timeout=self.stage_timeout)
        return self._result("remove_segment", "Segment removed.", output)

    async def slow_motion(self, filename: str, start: str, end: str, speed: Any = 0.5) -> EditResult:
        """Slow [start, end] down by ``speed``."""
        validate_filename(filename)
        start_expr, end_expr = parse_time_expression(start), parse_time_expression(end)
        speed = _check_speed(speed)
        source = self.store.resolve(filename)

        duration = await probe_duration(source)
        window = resolve_window(start_expr, end_expr, duration)
        has_audio = await has_audio_stream(source)
        logger.info(f"Slowing {window} of {filename} to {speed:g}x (audio: {has_audio})")

        token = unique_token()
        output = self.store.artifact_path("slowmo", source.suffix, token)
        job = plan_slow_motion(
            source, duration, window, speed, output, self.store.cuts_dir, token, has_audio=has_audio
        )
        await run_pipeline(job, timeout=self.stage_timeout)
        return self._result("slow_motion", "Slow motion applied.", output)

    async def add_overlay(self, filename: str, prompt: str) -> EditResult:
        """Overlay text described by ``prompt``."""
        validate_filename(filename)
        if not prompt or not prompt.strip():
            raise ValidationError("Missing overlay prompt.")
        source = self.store.resolve(filename)

        spec = parse_overlay_prompt(prompt)
        if spec.is_end_relative:
            spec = resolve_overlay_start(spec, await probe_duration(source))
        drawtext = build_drawtext_filter(spec, self.bold_font_path)
        logger.info(f"Overlay filter for {filename}: {drawtext}")

        output = self.store.artifact_path("overlay", source.suffix)
        stage = transcode_stage(
            "overlay", source, output,
            output_options=[
                "-vf", drawtext,
                "-c:v", settings.export_video_codec,
                "-preset", settings.export_video_preset,
                "-crf", str(settings.export_video_crf),
                "-c:a", "copy",
            ],
        )
        await run_pipeline(single_stage_job(stage), timeout=self.stage_timeout)
        return self._result("add_overlay", "Overlay added.", output)

    async def extract_audio(self, filename: str, audio_format: Optional[str] = "mp3") -> EditResult:
        """Save the audio track as mp3 or wav."""
        validate_filename(filename)
        audio_format = (audio_format or "mp3").lower()
        if audio_format not in AUDIO_CODECS:
            raise ValidationError("Unsupported format. Use mp3 or wav.")
        source = self.store.resolve(filename)

        output = self.store.download_path("audio", f".{audio_format}")
        stage = transcode_stage(
            "extract_audio", source, output,
            output_options=["-vn", "-acodec", AUDIO_CODECS[audio_format]],
        )
        await run_pipeline(single_stage_job(stage), timeout=self.stage_timeout)
        return self._result("extract_audio", "Audio extracted.", output)

    async def add_subtitles(self, filename: str) -> EditResult:
        """Transcribe the asset and burn the subtitles in."""
        validate_filename(filename)
        if self.transcriber is None:
            raise TranscriptionError("No transcription service is configured.")
        source = self.store.resolve(filename)

        token = unique_token()
        output = self.store.artifact_path("subtitled", source.suffix, token)
        await run_subtitle_pipeline(
            source,
            audio_path=self.store.scratch_audio_path(token),
            subtitle_path=self.store.scratch_subtitle_path(token),
            output_path=output,
            transcriber=self.transcriber,
            timeout=self.stage_timeout,
        )
        return self._result("add_subtitles", "Subtitles added and burned into video.", output)

    async def export(
        self,
        filename: str,
        target_format: Optional[str] = "mp4",
        new_name: Optional[str] = None
    ) -> EditResult:
        """Re-encode to a delivery format."""
        validate_filename(filename)
        target_format = (target_format or "mp4").lower()
        if target_format not in EXPORT_FORMATS:
            raise ValidationError("Invalid or unsupported export format.")
        base = _export_base_name(new_name)
        source = self.store.resolve(filename)

        output = self.store.artifact_path(base, f".{target_format}")
        stage = transcode_stage("export", source, output, output_options=_export_options(target_format))
        await run_pipeline(single_stage_job(stage), timeout=self.stage_timeout)
        return self._result("export", "Export complete.", output)

    async def apply_action(self, action: EditAction, filename: str) -> EditResult:
        """Execute one validated action against ``filename``."""
        if isinstance(action, CutAction):
            return await self.cut_video(filename, action.start, action.end)
        if isinstance(action, RemoveSegmentAction):
            return await self.remove_segment(filename, action.start, action.end)
        if isinstance(action, SlowMotionAction):
            return await self.slow_motion(filename, action.start, action.end, action.speed)
        if isinstance(action, AddOverlayAction):
            return await self.add_overlay(filename, action.prompt)
        if isinstance(action, ExtractAudioAction):
            return await self.extract_audio(filename, action.format)
        if isinstance(action, AddSubtitlesAction):
            return await self.add_subtitles(filename)
        if isinstance(action, ExportAction):
            return await self.export(filename, action.target_format, action.new_name)
        if isinstance(action, (UndoAction, RedoAction)):
            # History lives with the caller, which tracks its produced filenames
            return EditResult(
                action=action.action,
                message=f"{action.action.capitalize()} is handled by the client's edit history.",
            )
        raise ValidationError(f"Unhandled action: {action!r}")

    async def apply_actions(self, filename: str, raw_actions: Any) -> List[EditResult]:
        """
        Validate a whole batch, then run it in order.

        Each action operates on the latest video produced by the batch;
        audio extraction does not replace the working video. If any action
        fails, every artifact the batch already produced is removed.
        """
        actions = validate_actions(raw_actions)
        validate_filename(filename)
        for action in actions:
            if action.filename is not None:
                validate_filename(action.filename)

        results: List[EditResult] = []
        current = filename
        succeeded = False
        try:
            for action in actions:
                result = await self.apply_action(action, action.filename or current)
                results.append(result)
                if result.path is not None and not isinstance(action, ExtractAudioAction):
                    current = result.filename
            succeeded = True
            return results
        finally:
            if not succeeded:
                produced = [r.path for r in results if r.path is not None]
                if produced:
                    logger.warning(f"Batch failed; removing {len(produced)} partial artifact(s)")
                cleanup_files(produced)
