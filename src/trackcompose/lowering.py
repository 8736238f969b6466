"""Lowering — timeline tree to ffmpeg filter graph and command line.

Each tree node becomes a short chain of filter stages:

  Background  color source at canvas size and output rate      (bg)
  Video       -ss/-t/-i input -> fps -> scale -> pad -> setsar
              -> item and track filters                         (vf)
  Concat      both children -> concat -> fps                    (conc, vf)
  XFade       both children -> xfade                            (xfade)

Labels come from one StreamNamer per render, so they are unique across
the whole graph; check_unique_labels() verifies that before the
expression is emitted.
"""

import logging
from dataclasses import dataclass, field

from .common import ffmpeg_exe, format_fps
from .content import Background, Concat, Timeline, TimelineContent, Video, XFade
from .errors import GraphError
from .filters import (
    ColorSource, ConcatFilter, Filter, FpsFilter, PadFilter, ScaleFilter,
    SetsarFilter, XFadeFilter,
)
from .graph import InputSource, Node, check_unique_labels, filter_expression, input_args
from .settings import RenderSettings
from .stream_ids import StreamNamer
from .timebase import ZERO

logger = logging.getLogger(__name__)


@dataclass
class Lowered:
    """A lowered subtree: its nodes in emission order and its output label."""

    id: str
    nodes: list[Node] = field(default_factory=list)

    @property
    def input_args(self) -> list[str]:
        return input_args(self.nodes)

    @property
    def filter_expression(self) -> str:
        return filter_expression(self.nodes)


class GraphLowering:
    """Lowers timeline trees using one set of render settings.

    A StreamNamer is shared by every lower() call on the same instance;
    use a fresh GraphLowering per render.
    """

    def __init__(self, settings: RenderSettings, namer: StreamNamer | None = None):
        self.settings = settings
        self.namer = namer or StreamNamer()

    def lower(self, node: TimelineContent) -> Lowered:
        if isinstance(node, Background):
            return self._background(node)
        if isinstance(node, Video):
            return self._video(node)
        if isinstance(node, Concat):
            return self._concat(node)
        if isinstance(node, XFade):
            return self._xfade(node)
        raise TypeError(f"Unknown timeline node: {node!r}")

    def lower_root(self, root: TimelineContent) -> Lowered:
        """Lower a whole tree, append master filters and check labels.

        Raises:
            GraphError: the finished graph has duplicate labels.
        """
        lowered = self.lower(root)
        if self.settings.master_filters:
            lowered = self._extend(lowered, self.settings.master_filters, "vf")
        check_unique_labels(lowered.nodes)
        return lowered

    # ── Node kinds ──

    def _background(self, node: Background) -> Lowered:
        width, height = self.settings.resolution
        source = ColorSource(
            color=self.settings.pad_color,
            width=width,
            height=height,
            rate=format_fps(self.settings.fps),
            duration=node.duration,
        )
        stage = Node.from_filter(source, self.namer, "bg")
        return Lowered(stage.id, [stage])

    def _video(self, node: Video) -> Lowered:
        clip = node.input
        width, height = self.settings.resolution
        source = Node.from_input(InputSource(clip.file, clip.source_offset, clip.duration), self.namer)
        chain = [
            FpsFilter(fps=format_fps(self.settings.fps)),
            ScaleFilter(width, height, force_original_aspect_ratio="decrease", force_divisible_by=2),
            PadFilter(
                width=str(width), height=str(height),
                x="(ow-iw)/2", y="(oh-ih)/2",
                color=self.settings.pad_color,
            ),
            SetsarFilter(ratio="1/1"),
        ]
        chain.extend(clip.filters)
        return self._extend(Lowered(source.id, [source]), chain, "vf")

    def _concat(self, node: Concat) -> Lowered:
        left = self.lower(node.left)
        right = self.lower(node.right)
        concat = ConcatFilter(segments=2, video_streams=1, audio_streams=0)
        joined = self._join(left, right, concat, "conc")
        return self._extend(joined, [FpsFilter(fps=format_fps(self.settings.fps))], "vf")

    def _xfade(self, node: XFade) -> Lowered:
        left = self.lower(node.left)
        right = self.lower(node.right)
        xfade = XFadeFilter(
            duration=node.fade_duration,
            offset=node.right.timeline_position - node.left.timeline_position,
            transition=self.settings.transition,
        )
        return self._join(left, right, xfade, "xfade")

    # ── Wiring ──

    def _extend(self, lowered: Lowered, filters: list[Filter], prefix: str) -> Lowered:
        """Append a linear chain of single-input stages."""
        nodes = list(lowered.nodes)
        tail = nodes[-1]
        for flt in filters:
            stage = Node.from_filter(flt, self.namer, prefix)
            stage.connect_sink(tail)
            nodes.append(stage)
            tail = stage
        return Lowered(tail.id, nodes)

    def _join(self, left: Lowered, right: Lowered, flt: Filter, prefix: str) -> Lowered:
        stage = Node.from_filter(flt, self.namer, prefix)
        stage.connect_sink(left.nodes[-1], 0)
        stage.connect_sink(right.nodes[-1], 1)
        return Lowered(stage.id, left.nodes + right.nodes + [stage])


def lower(root: TimelineContent, settings: RenderSettings | None = None) -> Lowered:
    """Lower one tree with a fresh StreamNamer."""
    return GraphLowering(settings or RenderSettings()).lower_root(root)


def _flags(options: dict[str, str]) -> list[str]:
    args = []
    for name, value in options.items():
        args.extend([f"-{name}", str(value)])
    return args


def build_command(timeline: Timeline, settings: RenderSettings | None = None) -> list[str]:
    """Full ffmpeg argument list for one timeline.

    The region audio file, when set, is input 0 and supplies the audio
    track. Without one the output has no audio.

    Raises:
        GraphError: the filter graph could not be wired.
    """
    settings = settings or RenderSettings()
    namer = StreamNamer()
    duration = timeline.duration
    if duration <= ZERO:
        raise GraphError(f"Timeline for '{timeline.output}' is empty")

    cmd = [ffmpeg_exe(settings.ffmpeg), "-hide_banner", "-y", "-nostats", "-progress", "pipe:1"]

    if timeline.audio_file:
        namer.input_index()
        cmd += ["-ss", str(timeline.start), "-t", str(duration), "-i", str(timeline.audio_file)]

    lowered = GraphLowering(settings, namer).lower_root(timeline.content)
    cmd += lowered.input_args
    cmd += ["-filter_complex", lowered.filter_expression]
    cmd += ["-map", f"[{lowered.id}]"]

    # Clip inputs are trimmed to their own span, so only the region
    # audio file can carry a soundtrack for the whole render.
    if timeline.audio_file:
        cmd += ["-map", "0:a"]

    cmd += ["-c:v", settings.video_encoder] + _flags(settings.video_encoder_options)
    cmd += ["-pix_fmt", settings.pixel_format]
    if settings.audio_encoder:
        cmd += ["-c:a", settings.audio_encoder] + _flags(settings.audio_encoder_options)
    else:
        cmd += ["-c:a", "copy"]
    cmd += ["-f", settings.muxer] + _flags(settings.muxer_options)
    cmd += ["-r", format_fps(settings.fps)]
    cmd += ["-t", str(duration)]
    cmd.append(f"{timeline.output}.{settings.extension}")

    logger.debug("ffmpeg command for %s: %s", timeline.output, cmd)
    return cmd
