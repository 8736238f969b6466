"""Timeline composition tree.

A render region is described by a gap-free tree of four node kinds:

  Background  solid pad color, the bottom of every stack
  Video       one clip (or a piece of one) read from a media file
  Concat      left then right, back to back
  XFade       left cross-fading into right over fade_duration

The tree always covers the region exactly. Clips are folded in one at a
time with push_video(), back to front: each new clip occludes whatever it
covers, and its fades become cross-fades with the content underneath.
split() cuts any tree at a timeline position so a clip can be spliced in.

Trees are treated as immutable values: both operations return new nodes
and share untouched subtrees.
"""

from dataclasses import dataclass, field, replace

from .filters import Filter
from .timebase import ZERO, ORIGIN, Duration, Position

BACKGROUND_Z = -1


# ── Inputs ─────────────────────────────────────────────────────────

@dataclass
class VideoInput:
    """One clip to place on the timeline.

    Fades of zero length are normalized to None. If fade_in + fade_out is
    longer than the clip, fade_out is shortened first, then fade_in.

    Raises:
        ValueError: empty or inverted span, negative source_offset or fade.
    """

    file: str
    timeline_position: Position
    timeline_end_position: Position
    source_offset: Duration = ZERO
    fade_in: Duration | None = None
    fade_out: Duration | None = None
    z_index: int = 0
    filters: list[Filter] = field(default_factory=list)

    def __post_init__(self):
        if self.timeline_position >= self.timeline_end_position:
            raise ValueError(
                f"Video '{self.file}' must end after it starts: "
                f"[{self.timeline_position}, {self.timeline_end_position})"
            )
        if self.source_offset < ZERO:
            raise ValueError(f"Video '{self.file}' has negative source_offset {self.source_offset}")
        for name in ("fade_in", "fade_out"):
            fade = getattr(self, name)
            if fade is not None and fade < ZERO:
                raise ValueError(f"Video '{self.file}' has negative {name} {fade}")
        fade_in = self.fade_in or ZERO
        fade_out = self.fade_out or ZERO
        excess = fade_in + fade_out - self.duration
        if excess > ZERO:
            cut = min(fade_out, excess)
            fade_out = fade_out - cut
            fade_in = fade_in - (excess - cut)
        self.fade_in = fade_in or None
        self.fade_out = fade_out or None

    @property
    def duration(self) -> Duration:
        return self.timeline_end_position - self.timeline_position

    @property
    def solid_start(self) -> Position:
        return self.timeline_position + (self.fade_in or ZERO)

    @property
    def solid_end(self) -> Position:
        return self.timeline_end_position - (self.fade_out or ZERO)


# ── Tree nodes ─────────────────────────────────────────────────────

class TimelineContent:
    """Common span accessors. Subclasses provide timeline_position,
    timeline_end_position and z_index."""

    @property
    def duration(self) -> Duration:
        return self.timeline_end_position - self.timeline_position

    def contains(self, position: Position) -> bool:
        """True if position lies strictly inside the span."""
        return self.timeline_position < position < self.timeline_end_position


@dataclass
class Background(TimelineContent):
    timeline_position: Position
    timeline_end_position: Position
    z_index: int = BACKGROUND_Z

    def __post_init__(self):
        assert self.timeline_position < self.timeline_end_position, "empty Background"


@dataclass
class Video(TimelineContent):
    input: VideoInput

    @property
    def timeline_position(self) -> Position:
        return self.input.timeline_position

    @property
    def timeline_end_position(self) -> Position:
        return self.input.timeline_end_position

    @property
    def z_index(self) -> int:
        return self.input.z_index


@dataclass
class Concat(TimelineContent):
    left: TimelineContent
    right: TimelineContent

    def __post_init__(self):
        assert self.left.timeline_end_position == self.right.timeline_position, (
            f"Concat seam mismatch: {self.left.timeline_end_position} != "
            f"{self.right.timeline_position}"
        )

    @property
    def timeline_position(self) -> Position:
        return self.left.timeline_position

    @property
    def timeline_end_position(self) -> Position:
        return self.right.timeline_end_position

    @property
    def z_index(self) -> int:
        return min(self.left.z_index, self.right.z_index)


@dataclass
class XFade(TimelineContent):
    left: TimelineContent
    right: TimelineContent
    fade_duration: Duration

    def __post_init__(self):
        assert self.fade_duration > ZERO, "XFade needs a positive fade"
        assert self.left.timeline_end_position - self.fade_duration == self.right.timeline_position, (
            f"XFade seam mismatch: {self.left.timeline_end_position} - "
            f"{self.fade_duration} != {self.right.timeline_position}"
        )
        assert self.fade_duration <= self.left.duration, "fade longer than left side"
        assert self.fade_duration <= self.right.duration, "fade longer than right side"

    @property
    def timeline_position(self) -> Position:
        return self.left.timeline_position

    @property
    def timeline_end_position(self) -> Position:
        return self.right.timeline_end_position

    @property
    def z_index(self) -> int:
        return min(self.left.z_index, self.right.z_index)


def empty_timeline(duration: Duration) -> Background:
    """The starting tree for a region: background over [0, duration)."""
    return Background(ORIGIN, ORIGIN + duration)


def iter_leaves(node: TimelineContent):
    """Yield Background and Video leaves, left to right."""
    if isinstance(node, (Concat, XFade)):
        yield from iter_leaves(node.left)
        yield from iter_leaves(node.right)
    else:
        yield node


def max_z(node: TimelineContent, start: Position, end: Position) -> int:
    """Highest z_index of any leaf overlapping [start, end)."""
    return max(
        (leaf.z_index for leaf in iter_leaves(node)
         if leaf.timeline_position < end and leaf.timeline_end_position > start),
        default=BACKGROUND_Z,
    )


def output_duration(node: TimelineContent) -> Duration:
    """Length of the stream the node renders to.

    Leaves contribute their own length; each cross-fade overlaps its two
    sides by fade_duration. Equals node.duration for every valid tree.
    """
    if isinstance(node, Concat):
        return output_duration(node.left) + output_duration(node.right)
    if isinstance(node, XFade):
        return output_duration(node.left) + output_duration(node.right) - node.fade_duration
    return node.duration


# ── split ──────────────────────────────────────────────────────────

def split(node: TimelineContent, position: Position) -> tuple[TimelineContent, TimelineContent]:
    """Cut a tree into [start, position) and [position, end).

    Raises:
        ValueError: position is not strictly inside the node's span.
    """
    if not node.contains(position):
        raise ValueError(
            f"Split position {position} outside "
            f"({node.timeline_position}, {node.timeline_end_position})"
        )

    if isinstance(node, Background):
        return (
            Background(node.timeline_position, position, node.z_index),
            Background(position, node.timeline_end_position, node.z_index),
        )

    if isinstance(node, Video):
        clip = node.input
        left = replace(clip, timeline_end_position=position, fade_out=None)
        right = replace(
            clip,
            timeline_position=position,
            source_offset=clip.source_offset + (position - clip.timeline_position),
            fade_in=None,
        )
        return Video(left), Video(right)

    if isinstance(node, Concat):
        seam = node.left.timeline_end_position
        if position == seam:
            return node.left, node.right
        if position < seam:
            left_a, left_b = split(node.left, position)
            return left_a, Concat(left_b, node.right)
        right_a, right_b = split(node.right, position)
        return Concat(node.left, right_a), right_b

    if isinstance(node, XFade):
        window_start = node.right.timeline_position
        window_end = node.left.timeline_end_position
        if position <= window_start:
            left_a, left_b = split(node.left, position)
            return left_a, XFade(left_b, node.right, node.fade_duration)
        if position >= window_end:
            right_a, right_b = split(node.right, position)
            return XFade(node.left, right_a, node.fade_duration), right_b
        # Inside the overlap: both halves keep their share of the fade.
        left_a, left_b = split(node.left, position)
        right_a, right_b = split(node.right, position)
        return (
            XFade(left_a, right_a, position - window_start),
            XFade(left_b, right_b, window_end - position),
        )

    raise TypeError(f"Unknown timeline node: {node!r}")


# ── push_video ─────────────────────────────────────────────────────

def push_video(node: TimelineContent, clip: VideoInput) -> TimelineContent:
    """Fold a clip into the tree and return the new root.

    The clip occludes everything under its solid range. Its fade-in
    cross-fades from the content before it, its fade-out into the content
    after it. Clips must be pushed back to front: a clip may not sit
    below what it is folded into.
    """
    start, end = node.timeline_position, node.timeline_end_position
    covered_z = max_z(node, clip.timeline_position, clip.timeline_end_position)
    assert clip.z_index >= covered_z, (
        f"Clip '{clip.file}' (z={clip.z_index}) pushed under content at z={covered_z}"
    )
    assert start <= clip.timeline_position and clip.timeline_end_position <= end, (
        f"Clip '{clip.file}' outside timeline [{start}, {end})"
    )

    video = Video(clip)
    if (clip.timeline_position == start and clip.timeline_end_position == end
            and clip.fade_in is None and clip.fade_out is None):
        return video

    solid_start, solid_end = clip.solid_start, clip.solid_end

    before = after = None
    rest = node
    if solid_start > start:
        if solid_start >= end:
            before, rest = node, None
        else:
            before, rest = split(node, solid_start)
    if rest is not None and solid_end < end:
        if solid_end <= rest.timeline_position:
            after = rest
        else:
            _, after = split(rest, solid_end)

    composite = video
    if before is not None:
        composite = _join_before(before, video, clip.fade_in)
    if after is not None:
        composite = _join_after(composite, after, clip.fade_out)
    return composite


def _join_before(before, video, fade):
    if fade is None:
        return Concat(before, video)
    # Earlier clip fading out to background over exactly this fade-in
    # window: cross-fade the two clips directly.
    if (isinstance(before, XFade) and isinstance(before.right, Background)
            and before.right.timeline_position == video.timeline_position
            and before.fade_duration == fade):
        return XFade(before.left, video, fade)
    return XFade(before, video, fade)


def _join_after(composite, after, fade):
    if fade is None:
        return Concat(composite, after)
    if (isinstance(after, XFade) and isinstance(after.left, Background)
            and after.left.timeline_end_position == composite.timeline_end_position
            and after.fade_duration == fade):
        return XFade(composite, after.right, fade)
    return XFade(composite, after, fade)


@dataclass
class Timeline:
    """A finished composition for one render region.

    start is the region's position on the project timeline; the tree
    itself always begins at 0. output is the target path without
    extension.
    """

    content: TimelineContent
    output: str
    start: Position = ORIGIN
    audio_file: str | None = None

    @property
    def duration(self) -> Duration:
        return self.content.duration
