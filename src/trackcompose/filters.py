"""Filter library — the closed set of ffmpeg filters the lowering emits.

Each filter is a small dataclass that knows its ffmpeg name, how many
video/audio pins it consumes and produces, and how to render itself as
the ``name=key=value:key=value`` text of a filtergraph stage. Optional
parameters left as None are omitted so ffmpeg applies its own default.

User-supplied filters from the project's filter side-data become
CustomFilter instances: an arbitrary ffmpeg filter name plus options,
assumed to be a single video-in, video-out stage.
"""

import re
from dataclasses import dataclass, field

from .timebase import Duration

VALID_ASPECT_OPTIONS = {"disable", "decrease", "increase"}

VALID_FPS_ROUNDING = {"zero", "inf", "down", "up", "near"}

VALID_EOF_ACTIONS = {"round", "pass"}

XFADE_TRANSITIONS = {
    "custom", "fade", "wipeleft", "wiperight", "wipeup", "wipedown",
    "slideleft", "slideright", "slideup", "slidedown", "circlecrop",
    "rectcrop", "distance", "fadeblack", "fadewhite", "radial",
    "smoothleft", "smoothright", "smoothup", "smoothdown", "circleopen",
    "circleclose", "vertopen", "vertclose", "horzopen", "horzclose",
    "dissolve", "pixelize", "diagtl", "diagtr", "diagbl", "diagbr",
    "hlslice", "hrslice", "vuslice", "vdslice", "hblur", "fadegrays",
    "wipetl", "wipetr", "wipebl", "wipebr", "squeezeh", "squeezev",
    "zoomin", "fadefast", "fadeslow", "hlwind", "hrwind", "vuwind",
    "vdwind", "coverleft", "coverright", "coverup", "coverdown",
    "revealleft", "revealright", "revealup", "revealdown",
}

_SPECIAL_CHARS = re.compile(r"[\\':=,;\[\]\s]")


def escape_value(value) -> str:
    """Escape an option value for use inside a filtergraph string.

    Values are parsed twice by ffmpeg (graph level, then option level),
    so option-level specials are backslash-escaped and the result is
    single-quoted at graph level.
    """
    if isinstance(value, bool):
        return "true" if value else "false"
    text = str(value)
    if not _SPECIAL_CHARS.search(text):
        return text
    inner = re.sub(r"([\\':])", r"\\\1", text)
    return "'" + inner.replace("'", "'\\''") + "'"


def _render(name: str, options: list[tuple[str, object]]) -> str:
    parts = [f"{key}={escape_value(value)}" for key, value in options if value is not None]
    if not parts:
        return name
    return f"{name}=" + ":".join(parts)


class Filter:
    """Base class: one filtergraph stage."""

    name = ""
    description = ""

    def num_sinks(self) -> tuple[int, int]:
        """(video, audio) input pins."""
        return (1, 0)

    def num_sources(self) -> tuple[int, int]:
        """(video, audio) output pins."""
        return (1, 0)

    def options(self) -> list[tuple[str, object]]:
        return []

    def render(self) -> str:
        return _render(self.name, self.options())


@dataclass
class FpsFilter(Filter):
    fps: str | None = None
    start_time: float | None = None
    round: str | None = None
    eof_action: str | None = None

    name = "fps"
    description = "Force constant framerate."

    def __post_init__(self):
        if self.round is not None and self.round not in VALID_FPS_ROUNDING:
            raise ValueError(
                f"Invalid fps rounding '{self.round}'. Valid: {sorted(VALID_FPS_ROUNDING)}"
            )
        if self.eof_action is not None and self.eof_action not in VALID_EOF_ACTIONS:
            raise ValueError(
                f"Invalid fps eof_action '{self.eof_action}'. Valid: {sorted(VALID_EOF_ACTIONS)}"
            )

    def options(self):
        return [
            ("fps", self.fps),
            ("start_time", self.start_time),
            ("round", self.round),
            ("eof_action", self.eof_action),
        ]


@dataclass
class ScaleFilter(Filter):
    width: int
    height: int
    interl: bool | None = None
    force_original_aspect_ratio: str | None = None
    force_divisible_by: int | None = None

    name = "scale"
    description = "Scale the input video size and/or convert the image format."

    def __post_init__(self):
        aspect = self.force_original_aspect_ratio
        if aspect is not None and aspect not in VALID_ASPECT_OPTIONS:
            raise ValueError(
                f"Invalid force_original_aspect_ratio '{aspect}'. "
                f"Valid: {sorted(VALID_ASPECT_OPTIONS)}"
            )

    def options(self):
        return [
            ("w", self.width),
            ("h", self.height),
            ("interl", self.interl),
            ("force_original_aspect_ratio", self.force_original_aspect_ratio),
            ("force_divisible_by", self.force_divisible_by),
        ]


@dataclass
class PadFilter(Filter):
    width: str | None = None
    height: str | None = None
    x: str | None = None
    y: str | None = None
    color: str | None = None
    aspect: str | None = None

    name = "pad"
    description = "Pad the input video."

    def options(self):
        return [
            ("width", self.width),
            ("height", self.height),
            ("x", self.x),
            ("y", self.y),
            ("color", self.color),
            ("aspect", self.aspect),
        ]


@dataclass
class SetsarFilter(Filter):
    ratio: str | None = None
    max: int | None = None

    name = "setsar"
    description = "Set the pixel sample aspect ratio."

    def options(self):
        return [("ratio", self.ratio), ("max", self.max)]


@dataclass
class ConcatFilter(Filter):
    """segments: number of segments to join; video/audio_streams per segment.

    unsafe: try to join segments of different size and framerate.
    """

    segments: int = 2
    video_streams: int = 1
    audio_streams: int = 0
    unsafe: bool = False

    name = "concat"
    description = "Concatenate audio and video streams."

    def num_sinks(self):
        return (self.video_streams * self.segments, self.audio_streams * self.segments)

    def num_sources(self):
        return (self.video_streams, self.audio_streams)

    def options(self):
        return [
            ("n", self.segments),
            ("v", self.video_streams),
            ("a", self.audio_streams),
            ("unsafe", self.unsafe),
        ]


@dataclass
class XFadeFilter(Filter):
    """Cross-fade from the first input into the second.

    offset is measured from the start of the first input stream; the
    fade runs over [offset, offset + duration).
    """

    duration: Duration
    offset: Duration
    transition: str | None = None
    expression: str | None = None

    name = "xfade"
    description = "Cross fade one video with another video."

    def __post_init__(self):
        if self.transition is not None and self.transition not in XFADE_TRANSITIONS:
            raise ValueError(f"Unknown xfade transition '{self.transition}'")
        if self.expression is not None and self.transition not in (None, "custom"):
            raise ValueError("xfade expression requires transition 'custom'")

    def num_sinks(self):
        return (2, 0)

    def options(self):
        return [
            ("transition", self.transition),
            ("duration", str(self.duration)),
            ("offset", str(self.offset)),
            ("expr", self.expression),
        ]


@dataclass
class ColorSource(Filter):
    """Solid-color generator; no inputs."""

    color: str
    width: int
    height: int
    rate: str
    duration: Duration

    name = "color"
    description = "Provide an uniformly colored input."

    def num_sinks(self):
        return (0, 0)

    def options(self):
        return [
            ("c", self.color),
            ("s", f"{self.width}x{self.height}"),
            ("r", self.rate),
            ("d", str(self.duration)),
        ]


@dataclass
class CustomFilter(Filter):
    """A user filter from the project's filter side-data."""

    filter_name: str
    filter_options: dict[str, object] = field(default_factory=dict)

    description = "User-defined filter."

    def __post_init__(self):
        if not re.fullmatch(r"[A-Za-z0-9_]+", self.filter_name or ""):
            raise ValueError(f"Invalid filter name: '{self.filter_name}'")

    @property
    def name(self):
        return self.filter_name

    def options(self):
        return list(self.filter_options.items())


def custom_filters_from_specs(specs, context: str) -> list[CustomFilter]:
    """Build CustomFilters from manifest entries: [{name, options}, ...].

    Raises:
        ValueError: an entry is not a mapping, has no name, or its options
            are not a mapping. The message is prefixed with context.
    """
    if specs is None:
        return []
    if not isinstance(specs, list):
        raise ValueError(f"{context}: filters must be a list, got {type(specs).__name__}")
    result = []
    for i, spec in enumerate(specs):
        if not isinstance(spec, dict) or "name" not in spec:
            raise ValueError(f"{context}: filter {i} needs a 'name' field")
        options = spec.get("options") or {}
        if not isinstance(options, dict):
            raise ValueError(f"{context}: filter {i} ({spec['name']}) options must be a mapping")
        try:
            result.append(CustomFilter(str(spec["name"]), dict(options)))
        except ValueError as e:
            raise ValueError(f"{context}: {e}") from None
    return result
