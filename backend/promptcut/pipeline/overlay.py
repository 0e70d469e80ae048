"""Text overlays: prompt interpretation and drawtext filter rendering.

``parse_overlay_prompt`` turns free text such as
"Add 'Subscribe Now' at the end in red top-right bold text" into an
``OverlaySpec``. Each field is extracted by its own pattern and never looks
at the other fields, so a prompt always yields a fully populated spec.

``build_drawtext_filter`` turns a spec into an ffmpeg ``drawtext`` filter.
A spec anchored to the end of the video must go through
``resolve_overlay_start`` first.
"""
import logging
import math
import re
from dataclasses import dataclass, replace
from types import MappingProxyType
from typing import Optional, Union

from promptcut.utils.ffmpeg import escape_filter_value

logger = logging.getLogger(__name__)

# Start-time placeholder for overlays shown at the end of the video
OVERLAY_END = "END"

DEFAULT_TEXT = "Text"
DEFAULT_DURATION = 3
DEFAULT_COLOR = "white"
DEFAULT_POSITION = "center"
DEFAULT_FONT_SIZE = 64

FONT_SIZES = MappingProxyType({
    "small": 24,
    "medium": 36,
    "large": 48,
    "big": 48,
    "huge": 60,
    "extra large": 80,
})

KNOWN_COLORS = frozenset({
    "red", "blue", "green", "white", "black",
    "yellow", "purple", "orange", "pink", "gray",
})

MARGIN = 20

# Anchor -> (x, y) drawtext expressions over frame and text-box size
ANCHOR_POSITIONS = MappingProxyType({
    "top-left": (f"{MARGIN}", f"{MARGIN}"),
    "top-center": ("(main_w-text_w)/2", f"{MARGIN}"),
    "top-right": (f"main_w-text_w-{MARGIN}", f"{MARGIN}"),
    "bottom-left": (f"{MARGIN}", f"main_h-text_h-{MARGIN}"),
    "bottom-center": ("(main_w-text_w)/2", f"main_h-text_h-{MARGIN}"),
    "bottom-right": (f"main_w-text_w-{MARGIN}", f"main_h-text_h-{MARGIN}"),
    "center": ("(main_w-text_w)/2", "(main_h-text_h)/2"),
})

POSITION_ALIASES = MappingProxyType({
    "right": "top-right",
    "left": "top-left",
    "bottom": "bottom-center",
    "top": "top-center",
})

# Applied in this order; a later keyword overwrites an earlier one
DIRECTIONAL_KEYWORDS = (
    (re.compile(r"\btop\b", re.IGNORECASE), "top-center"),
    (re.compile(r"\bbottom\b", re.IGNORECASE), "bottom-center"),
    (re.compile(r"\bleft\b", re.IGNORECASE), "top-left"),
    (re.compile(r"\bright\b", re.IGNORECASE), "top-right"),
)

_FONT_SIZE_RE = re.compile(r"\b(extra large|huge|big|large|medium|small)\b", re.IGNORECASE)
_QUOTED_RE = re.compile(r"['\"](.+?)['\"]")
_VERB_TEXT_RE = re.compile(r"\b(?:add|put)\s+([a-zA-Z0-9!?,.' ]+)", re.IGNORECASE)
_TIME_RE = re.compile(r"\b(?:at|minute)\s*(\d{1,2}):?(\d{2})?", re.IGNORECASE)
_AT_END_RE = re.compile(r"\bat (?:the end|end of the video)", re.IGNORECASE)
_AT_START_RE = re.compile(r"\bat (?:the start|start of the video)", re.IGNORECASE)
_DURATION_RE = re.compile(r"\bfor (\d+) seconds?", re.IGNORECASE)
_COLOR_RE = re.compile(r"\bin (\w+)", re.IGNORECASE)
_ANCHOR_RE = re.compile(
    r"\b(top-left|top-right|top-center|bottom-left|bottom-right|bottom-center|center)\b",
    re.IGNORECASE,
)
_BOLD_RE = re.compile(r"bold", re.IGNORECASE)


@dataclass(frozen=True)
class OverlaySpec:
    """Structured text overlay."""
    text: str = DEFAULT_TEXT
    start: Union[int, str] = 0  # seconds, or OVERLAY_END
    duration: int = DEFAULT_DURATION
    color: str = DEFAULT_COLOR
    position: str = DEFAULT_POSITION
    bold: bool = False
    fontsize: int = DEFAULT_FONT_SIZE

    @property
    def is_end_relative(self) -> bool:
        return self.start == OVERLAY_END


def parse_overlay_prompt(prompt: str) -> OverlaySpec:
    """
    Extract an overlay spec from free text. Never fails.

    Args:
        prompt: User sentence describing the overlay

    Returns:
        OverlaySpec with defaults for every field the prompt does not mention
    """
    fontsize = DEFAULT_FONT_SIZE
    size_match = _FONT_SIZE_RE.search(prompt)
    if size_match:
        fontsize = FONT_SIZES[size_match.group(1).lower()]

    quoted = _QUOTED_RE.search(prompt)
    verb_text = _VERB_TEXT_RE.search(prompt)
    if quoted:
        text = quoted.group(1)
    elif verb_text and verb_text.group(1).strip():
        text = verb_text.group(1).strip()
    else:
        text = DEFAULT_TEXT

    start: Union[int, str] = 0
    time_match = _TIME_RE.search(prompt)
    if time_match:
        minutes = int(time_match.group(1) or 0)
        seconds = int(time_match.group(2) or 0)
        start = minutes * 60 + seconds
    elif _AT_END_RE.search(prompt):
        start = OVERLAY_END
    elif _AT_START_RE.search(prompt):
        start = 0

    duration = DEFAULT_DURATION
    duration_match = _DURATION_RE.search(prompt)
    if duration_match:
        duration = int(duration_match.group(1))

    color = DEFAULT_COLOR
    color_match = _COLOR_RE.search(prompt)
    if color_match and color_match.group(1).lower() in KNOWN_COLORS:
        color = color_match.group(1).lower()

    position = DEFAULT_POSITION
    anchor_match = _ANCHOR_RE.search(prompt)
    if anchor_match:
        position = anchor_match.group(1).lower()
    else:
        for pattern, anchor in DIRECTIONAL_KEYWORDS:
            if pattern.search(prompt):
                position = anchor
    position = POSITION_ALIASES.get(position, position)

    spec = OverlaySpec(
        text=text,
        start=start,
        duration=duration,
        color=color,
        position=position,
        bold=bool(_BOLD_RE.search(prompt)),
        fontsize=fontsize,
    )
    logger.debug(f"Parsed overlay: {spec}")
    return spec


def resolve_overlay_start(spec: OverlaySpec, media_duration: float) -> OverlaySpec:
    """Replace an end-relative start with floor(duration - overlay duration)."""
    if not spec.is_end_relative:
        return spec
    start = max(0, int(math.floor(media_duration - spec.duration)))
    return replace(spec, start=start)


def get_position_xy(position: str) -> tuple[str, str]:
    """Coordinates for a named anchor, falling back to center."""
    return ANCHOR_POSITIONS.get(position, ANCHOR_POSITIONS[DEFAULT_POSITION])


def build_drawtext_filter(spec: OverlaySpec, bold_font_path: Optional[str] = None) -> str:
    """
    Build the drawtext filter for a resolved overlay spec.

    Text is drawn literally: ``expansion=none`` keeps ``%`` from being read
    as a drawtext expansion.

    Raises:
        ValueError: If the spec still carries the end-relative placeholder
    """
    if spec.is_end_relative:
        raise ValueError("Overlay start must be resolved against the video duration first")

    x, y = get_position_xy(spec.position)
    end = spec.start + spec.duration

    parts = [
        f"drawtext=text={escape_filter_value(spec.text)}",
        "expansion=none",
        f"x={x}",
        f"y={y}",
        f"fontsize={spec.fontsize}",
        f"fontcolor={spec.color}",
    ]
    if spec.bold and bold_font_path:
        parts.append(f"fontfile={escape_filter_value(bold_font_path)}")
    parts.append(f"enable='between(t,{spec.start},{end})'")

    return ":".join(parts)
