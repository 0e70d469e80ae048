"""Segment pipeline: split -> transform -> concatenate.

Removing a span and slowing a span are both planned as up to three
ordered stages over the source:

    head   [0, s]         stream copy        (only if s > 0)
    middle [s, e]         dropped or re-encoded slower
    tail   [e, duration]  stream copy        (only if e < duration)

Surviving stage outputs are listed in a concat manifest and joined by one
re-encoding concat call. Stage outputs and the manifest are removed on
every exit path; the final output is removed too if the run fails.
"""
import enum
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Optional

from promptcut.config import settings
from promptcut.errors import EmptyResultError, TranscodeError, ValidationError
from promptcut.pipeline.timecode import TimeWindow
from promptcut.utils.ffmpeg import run_ffmpeg

logger = logging.getLogger(__name__)

MIN_SPEED = 0.1
MAX_SPEED = 5.0


@dataclass
class Segment:
    """A span of the source with start and end times."""
    start: float
    end: float

    @property
    def duration(self) -> float:
        return self.end - self.start

    def __repr__(self):
        return f"Segment({self.start:.2f}-{self.end:.2f}, dur={self.duration:.2f}s)"


class StageOp(str, enum.Enum):
    """What a stage does to its input."""
    COPY = "copy"
    TRANSFORM = "transform"


@dataclass
class Stage:
    """One backend invocation: one input file -> one output file."""
    name: str
    op: StageOp
    input_path: Path
    output_path: Path
    input_options: List[str] = field(default_factory=list)
    output_options: List[str] = field(default_factory=list)
    expected_duration: Optional[float] = None

    def to_args(self) -> List[str]:
        return [
            *self.input_options,
            "-i", str(self.input_path),
            *self.output_options,
            str(self.output_path),
        ]


@dataclass
class PipelineJob:
    """Ordered stages plus, when there is more than one, a concat step."""
    name: str
    stages: List[Stage]
    output_path: Path
    manifest_path: Optional[Path] = None

    @property
    def needs_concat(self) -> bool:
        return self.manifest_path is not None

    @property
    def intermediate_paths(self) -> List[Path]:
        paths = [s.output_path for s in self.stages if s.output_path != self.output_path]
        if self.manifest_path is not None:
            paths.append(self.manifest_path)
        return paths

    @property
    def expected_duration(self) -> Optional[float]:
        if any(s.expected_duration is None for s in self.stages):
            return None
        return sum(s.expected_duration for s in self.stages)


def format_ts(seconds: float) -> str:
    return f"{seconds:.3f}"


def encode_options() -> List[str]:
    """Video/audio re-encode options from settings."""
    return [
        "-c:v", settings.export_video_codec,
        "-preset", settings.export_video_preset,
        "-crf", str(settings.export_video_crf),
        "-c:a", settings.export_audio_codec,
        "-b:a", settings.export_audio_bitrate,
    ]


def build_atempo_filters(speed: float) -> List[str]:
    # atempo accepts [0.5, 2.0] per filter instance
    filters: List[str] = []
    remaining = speed

    while remaining > 2.0:
        filters.append("atempo=2.0")
        remaining /= 2.0

    while remaining < 0.5:
        filters.append("atempo=0.5")
        remaining /= 0.5

    filters.append(f"atempo={remaining:.5f}")
    return filters


def copy_stage(
    name: str,
    source: Path,
    output: Path,
    segment: Segment,
    to_end: bool = False
) -> Stage:
    """Stream-copy a span; ``to_end`` reads until the end of the source."""
    input_options = ["-ss", format_ts(segment.start)]
    if not to_end:
        input_options += ["-t", format_ts(segment.duration)]
    return Stage(
        name=name,
        op=StageOp.COPY,
        input_path=source,
        output_path=output,
        input_options=input_options,
        output_options=["-c", "copy"],
        expected_duration=segment.duration,
    )


def slow_motion_stage(
    name: str,
    source: Path,
    output: Path,
    segment: Segment,
    speed: float,
    has_audio: bool = True
) -> Stage:
    """Re-encode a span with video PTS scaled by 1/speed and audio tempo by speed."""
    slowed = segment.duration / speed
    filter_complex = f"[0:v]setpts={1 / speed:.5f}*PTS[v]"
    maps = ["-map", "[v]"]
    if has_audio:
        atempo = ",".join(build_atempo_filters(speed))
        filter_complex += f";[0:a]{atempo}[a]"
        maps += ["-map", "[a]"]
    return Stage(
        name=name,
        op=StageOp.TRANSFORM,
        input_path=source,
        output_path=output,
        input_options=["-ss", format_ts(segment.start), "-t", format_ts(segment.duration)],
        output_options=[
            "-filter_complex", filter_complex,
            *maps,
            "-t", format_ts(slowed),
            *encode_options(),
        ],
        expected_duration=slowed,
    )


def transcode_stage(
    name: str,
    source: Path,
    output: Path,
    output_options: List[str],
    input_options: Optional[List[str]] = None,
    expected_duration: Optional[float] = None
) -> Stage:
    """Any single re-encoding stage (cut, overlay, export, audio extraction)."""
    return Stage(
        name=name,
        op=StageOp.TRANSFORM,
        input_path=source,
        output_path=output,
        input_options=list(input_options or []),
        output_options=list(output_options),
        expected_duration=expected_duration,
    )


def single_stage_job(stage: Stage) -> PipelineJob:
    return PipelineJob(name=stage.name, stages=[stage], output_path=stage.output_path)


def _split_around(
    source: Path,
    duration: float,
    window: TimeWindow,
    work_dir: Path,
    token: str,
    ext: str,
    middle: Optional[Stage],
    head_prefix: str,
    tail_prefix: str
) -> List[Stage]:
    s, e = window.start.seconds, window.end.seconds
    stages: List[Stage] = []

    if s > 0:
        stages.append(copy_stage(
            "head", source, work_dir / f"{head_prefix}-{token}{ext}", Segment(0.0, s)
        ))
    if middle is not None:
        stages.append(middle)
    if e < duration:
        stages.append(copy_stage(
            "tail", source, work_dir / f"{tail_prefix}-{token}{ext}",
            Segment(e, duration), to_end=True
        ))

    return stages


def plan_remove_segment(
    source: Path,
    duration: float,
    window: TimeWindow,
    output_path: Path,
    work_dir: Path,
    token: str
) -> PipelineJob:
    """
    Plan removal of ``window`` from the source.

    Raises:
        EmptyResultError: If nothing would be left to keep
    """
    ext = source.suffix
    stages = _split_around(
        source, duration, window, work_dir, token, ext,
        middle=None, head_prefix="keepA", tail_prefix="keepB"
    )
    if not stages:
        raise EmptyResultError("Nothing left to keep. Removing this span would delete the whole video.")

    return PipelineJob(
        name="remove_segment",
        stages=stages,
        output_path=output_path,
        manifest_path=work_dir / f"list-{token}.txt",
    )


def plan_slow_motion(
    source: Path,
    duration: float,
    window: TimeWindow,
    speed: float,
    output_path: Path,
    work_dir: Path,
    token: str,
    has_audio: bool = True
) -> PipelineJob:
    """
    Plan slowing ``window`` down to ``speed`` (0.5 = half speed).

    Sources without an audio stream get a video-only slow stage.

    Raises:
        ValidationError: If speed is out of range
    """
    if not MIN_SPEED <= speed <= MAX_SPEED:
        raise ValidationError(f"Speed must be between {MIN_SPEED:g} and {MAX_SPEED:g}.")

    ext = source.suffix
    middle = slow_motion_stage(
        "slow", source, work_dir / f"slow-{token}{ext}",
        Segment(window.start.seconds, window.end.seconds), speed, has_audio
    )
    stages = _split_around(
        source, duration, window, work_dir, token, ext,
        middle=middle, head_prefix="pre", tail_prefix="post"
    )

    return PipelineJob(
        name="slow_motion",
        stages=stages,
        output_path=output_path,
        manifest_path=work_dir / f"list-{token}.txt",
    )


def _quote_manifest_path(path: Path) -> str:
    return str(path.resolve()).replace("'", "'\\''")


def write_concat_manifest(manifest_path: Path, paths: Iterable[Path]) -> Path:
    """Write a concat demuxer list: one ``file '<absolute path>'`` per line."""
    lines = [f"file '{_quote_manifest_path(p)}'" for p in paths]
    manifest_path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return manifest_path


def concat_args(manifest_path: Path, output_path: Path) -> List[str]:
    # Stage outputs mix copied and re-encoded streams, so concat re-encodes
    return [
        "-f", "concat",
        "-safe", "0",
        "-i", str(manifest_path),
        *encode_options(),
        str(output_path),
    ]


def cleanup_files(paths: Iterable[Path]) -> None:
    """Best-effort removal; already-missing files are fine."""
    for path in paths:
        try:
            Path(path).unlink(missing_ok=True)
        except OSError as e:
            logger.warning(f"Could not remove {path}: {e}")


async def run_pipeline(job: PipelineJob, timeout: Optional[float] = None) -> Path:
    """
    Execute a job's stages in order, then concat if the job has a manifest.

    Args:
        job: Planned pipeline
        timeout: Per-stage timeout in seconds (defaults to settings)

    Returns:
        Path to the final artifact

    Raises:
        TranscodeError: Tagged with the failing stage name
    """
    total = len(job.stages)
    logger.info(f"Running {job.name}: {total} stage(s) -> {job.output_path.name}")
    if job.expected_duration is not None:
        logger.info(f"[{job.name}] expected output length {job.expected_duration:.2f}s")

    succeeded = False
    try:
        for i, stage in enumerate(job.stages, start=1):
            logger.info(f"[{job.name}] stage {i}/{total}: {stage.name} ({stage.op.value})")
            try:
                await run_ffmpeg(stage.to_args(), timeout=timeout)
            except TranscodeError as e:
                e.stage = stage.name
                logger.error(f"[{job.name}] stage {stage.name} failed: {e}")
                raise

        if job.needs_concat:
            try:
                write_concat_manifest(job.manifest_path, [s.output_path for s in job.stages])
            except OSError as e:
                raise TranscodeError(f"Could not write concat manifest: {e}", stage="concat") from e
            logger.info(f"[{job.name}] concatenating {total} part(s)")
            try:
                await run_ffmpeg(concat_args(job.manifest_path, job.output_path), timeout=timeout)
            except TranscodeError as e:
                e.stage = "concat"
                logger.error(f"[{job.name}] concat failed: {e}")
                raise

        succeeded = True
        logger.info(f"[{job.name}] done: {job.output_path.name}")
        return job.output_path

    finally:
        cleanup_files(job.intermediate_paths)
        if not succeeded:
            cleanup_files([job.output_path])
