"""Subtitle pipeline: extract audio -> transcribe -> burn in.

Each stage consumes the previous stage's output, so a failure anywhere
stops the run. The scratch audio and subtitle files never outlive the run.
"""
import logging
from pathlib import Path
from typing import List, Optional, Protocol

from promptcut.config import settings
from promptcut.errors import (
    AudioExtractionFailed,
    SubtitleBurnFailed,
    TranscodeError,
    TranscriptionError,
    TranscriptionFailed,
)
from promptcut.pipeline.segments import cleanup_files
from promptcut.utils.ffmpeg import escape_filter_value, run_ffmpeg

logger = logging.getLogger(__name__)


class Transcriber(Protocol):
    """Speech-to-text collaborator returning an SRT document."""

    async def transcribe(self, audio_path: Path) -> str:
        ...


def extract_audio_args(source: Path, audio_path: Path) -> List[str]:
    return [
        "-i", str(source),
        "-vn",
        "-acodec", "libmp3lame",
        "-ar", "44100",
        "-ac", "2",
        "-b:a", "192k",
        str(audio_path),
    ]


def burn_subtitles_args(source: Path, subtitle_path: Path, output_path: Path) -> List[str]:
    return [
        "-i", str(source),
        "-vf", f"subtitles=filename={escape_filter_value(str(subtitle_path))}",
        "-c:v", settings.export_video_codec,
        "-preset", settings.export_video_preset,
        "-crf", str(settings.export_video_crf),
        "-c:a", "copy",
        str(output_path),
    ]


async def run_subtitle_pipeline(
    source: Path,
    audio_path: Path,
    subtitle_path: Path,
    output_path: Path,
    transcriber: Transcriber,
    timeout: Optional[float] = None
) -> Path:
    """
    Burn generated subtitles into ``source``.

    Args:
        source: Input video
        audio_path: Scratch path for the extracted audio
        subtitle_path: Scratch path for the SRT track
        output_path: Final artifact path
        transcriber: Speech-to-text collaborator
        timeout: Per-stage backend timeout in seconds

    Returns:
        Path to the subtitled video

    Raises:
        AudioExtractionFailed, TranscriptionFailed, SubtitleBurnFailed
    """
    succeeded = False
    try:
        logger.info(f"[subtitles] extracting audio from {source.name}")
        try:
            await run_ffmpeg(extract_audio_args(source, audio_path), timeout=timeout)
        except TranscodeError as e:
            raise AudioExtractionFailed(f"Failed to extract audio: {e}") from e

        logger.info(f"[subtitles] transcribing {audio_path.name}")
        try:
            srt = await transcriber.transcribe(audio_path)
        except TranscriptionError as e:
            raise TranscriptionFailed(f"Failed to generate subtitles: {e}") from e
        if not srt or not srt.strip():
            raise TranscriptionFailed("Transcription returned no subtitles")

        try:
            subtitle_path.write_text(srt, encoding="utf-8")
        except OSError as e:
            raise SubtitleBurnFailed(f"Could not write subtitle track: {e}") from e

        logger.info(f"[subtitles] burning {subtitle_path.name} into {output_path.name}")
        try:
            await run_ffmpeg(burn_subtitles_args(source, subtitle_path, output_path), timeout=timeout)
        except TranscodeError as e:
            raise SubtitleBurnFailed(f"Failed to burn subtitles: {e}") from e

        succeeded = True
        return output_path

    finally:
        cleanup_files([audio_path, subtitle_path])
        if not succeeded:
            cleanup_files([output_path])
