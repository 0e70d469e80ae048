"""Time expressions and their resolution against a probed duration.

Times travel through the pipeline as seconds inside a ``Timecode`` and
are formatted to ``HH:MM:SS`` only at the API boundary.
"""
import enum
import math
import re
from dataclasses import dataclass
from typing import Optional

from promptcut.errors import InvalidTimeFormatError, ValidationError

TIME_PATTERN = re.compile(r"^([0-1]?\d|2[0-3]):([0-5]\d):([0-5]\d)$")
END_OFFSET_PREFIX = "end-"


def time_to_seconds(text: str) -> int:
    """Convert a strict HH:MM:SS string to seconds."""
    match = TIME_PATTERN.match(text)
    if not match:
        raise InvalidTimeFormatError(f"Invalid time '{text}'. Use HH:MM:SS.")
    hours, minutes, seconds = (int(part) for part in match.groups())
    return hours * 3600 + minutes * 60 + seconds


def seconds_to_time(seconds: float) -> str:
    """Format seconds as HH:MM:SS, flooring fractional seconds."""
    total = int(math.floor(max(0.0, seconds)))
    return f"{total // 3600:02d}:{(total % 3600) // 60:02d}:{total % 60:02d}"


@dataclass(frozen=True, order=True)
class Timecode:
    """An absolute position in a media asset."""
    seconds: float

    @classmethod
    def parse(cls, text: str) -> "Timecode":
        return cls(float(time_to_seconds(text)))

    @property
    def hhmmss(self) -> str:
        return seconds_to_time(self.seconds)

    def __str__(self) -> str:
        return self.hhmmss


class TimeKind(str, enum.Enum):
    """Kinds of time expression accepted at the boundary."""
    ABSOLUTE = "absolute"
    START = "start"
    END = "end"
    END_MINUS_OFFSET = "end_minus_offset"


@dataclass(frozen=True)
class TimeExpression:
    """A parsed, not yet resolved, time expression."""
    kind: TimeKind
    value: Optional[Timecode] = None  # absolute time or end offset

    def resolve(self, duration: float) -> Timecode:
        """Resolve against a duration in seconds."""
        if self.kind == TimeKind.START:
            return Timecode(0.0)
        if self.kind == TimeKind.END:
            return Timecode(duration)
        if self.kind == TimeKind.END_MINUS_OFFSET:
            return Timecode(max(0.0, duration - self.value.seconds))
        return self.value


def parse_time_expression(text: str) -> TimeExpression:
    """
    Parse a time expression without needing a duration.

    Accepted forms, checked in order: ``start``/``beginning``, ``end``,
    ``end-HH:MM:SS`` and a strict ``HH:MM:SS``.

    Raises:
        InvalidTimeFormatError: For anything else
    """
    if not isinstance(text, str):
        raise InvalidTimeFormatError(f"Invalid time {text!r}. Use HH:MM:SS.")

    value = text.strip()
    lowered = value.lower()

    if lowered in ("start", "beginning"):
        return TimeExpression(TimeKind.START)
    if lowered == "end":
        return TimeExpression(TimeKind.END)
    if lowered.startswith(END_OFFSET_PREFIX):
        offset = Timecode.parse(value[len(END_OFFSET_PREFIX):])
        return TimeExpression(TimeKind.END_MINUS_OFFSET, offset)

    return TimeExpression(TimeKind.ABSOLUTE, Timecode.parse(value))


def resolve_time(text: str, duration: float) -> Timecode:
    """Parse and resolve a time expression in one step."""
    return parse_time_expression(text).resolve(duration)


@dataclass(frozen=True)
class TimeWindow:
    """A resolved [start, end] span."""
    start: Timecode
    end: Timecode

    @property
    def duration(self) -> float:
        return self.end.seconds - self.start.seconds

    def __repr__(self) -> str:
        return f"TimeWindow({self.start}-{self.end})"


def resolve_window(
    start: str | TimeExpression,
    end: str | TimeExpression,
    duration: float
) -> TimeWindow:
    """
    Resolve a start/end pair against a duration.

    An end past the duration is clamped to the duration; an end at or
    before the start is rejected.

    Raises:
        InvalidTimeFormatError: If either expression is malformed
        ValidationError: If the window is inverted or starts past the end
    """
    if isinstance(start, str):
        start = parse_time_expression(start)
    if isinstance(end, str):
        end = parse_time_expression(end)

    start_tc = start.resolve(duration)
    end_tc = end.resolve(duration)

    if end_tc.seconds <= start_tc.seconds:
        raise ValidationError("End time must be after start time.")

    if end_tc.seconds > duration:
        end_tc = Timecode(duration)
        if end_tc.seconds <= start_tc.seconds:
            raise ValidationError("Start time is beyond the end of the video.")

    return TimeWindow(start_tc, end_tc)
