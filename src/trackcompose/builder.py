"""TimelineBuilder — project tracks and items to one composition per region.

Tracks are walked in project order, first track first. A track's index
is its z_index, so later tracks are pushed later and occlude earlier
ones wherever they overlap. This is the reverse of editors that list
the frontmost track first. Within a track, items are pushed in timeline
order.

Before pushing, each item is clipped to the region and shifted so the
region starts at 0. Overlapping neighbours on the same track are turned
into a clean cross-fade: the earlier item is shortened so the overlap is
exactly one fade long, and both items use that fade.
"""

import logging
from dataclasses import replace

from .content import Timeline, VideoInput, empty_timeline, push_video
from .project import Item, Project, Track
from .regions import RenderRegion, render_regions
from .timebase import ORIGIN, ZERO, Duration, Position

logger = logging.getLogger(__name__)


class TimelineBuilder:
    def __init__(self, project: Project):
        self.project = project

    def visible_tracks(self) -> list[tuple[int, Track]]:
        """(index, track) pairs that take part in the render.

        Muted tracks never do. If any track is soloed, only soloed
        tracks do.
        """
        tracks = list(enumerate(self.project.tracks))
        soloed = any(track.solo for _, track in tracks)
        return [
            (i, track) for i, track in tracks
            if not track.muted and (track.solo or not soloed)
        ]

    def video_input(self, item: Item, track: Track, z_index: int,
                    region: RenderRegion) -> VideoInput | None:
        """The item clipped to region, or None if nothing of it is rendered."""
        if item.muted or item.take is None or item.take.source_type != "VIDEO":
            return None

        item_start = Position.from_seconds(item.position)
        item_end = Position.from_seconds(item.end)
        start = max(item_start, region.start)
        end = min(item_end, region.end)
        if start >= end:
            return None

        fade_in = Duration.from_seconds(item.fade_in)
        fade_out = Duration.from_seconds(item.fade_out)
        # A fade cut by the region keeps only its visible part.
        if start > item_start:
            fade_in = max(ZERO, (item_start + fade_in) - start)
        if end < item_end:
            fade_out = max(ZERO, end - (item_end - fade_out))

        offset = Duration.from_seconds(item.take.start_offset) + (start - item_start)
        origin = region.start - ORIGIN
        return VideoInput(
            file=item.take.file,
            timeline_position=start - origin,
            timeline_end_position=end - origin,
            source_offset=offset,
            fade_in=fade_in,
            fade_out=fade_out,
            z_index=z_index,
            filters=self.project.filters_for(item.guid) + self.project.filters_for(track.guid),
        )

    def track_inputs(self, index: int, track: Track, region: RenderRegion) -> list[VideoInput]:
        clips = []
        for item in sorted(track.items, key=lambda it: it.position):
            clip = self.video_input(item, track, index, region)
            if clip is None:
                logger.debug("Skipping item at %.3fs on track '%s'", item.position, track.name)
                continue
            clips.append(clip)
        return resolve_overlaps(clips)

    def build(self, region: RenderRegion) -> Timeline:
        root = empty_timeline(region.duration)
        pushed = 0
        for index, track in self.visible_tracks():
            for clip in self.track_inputs(index, track, region):
                root = push_video(root, clip)
                pushed += 1
        logger.debug("Region '%s': %d clip(s) composed", region.name, pushed)
        return Timeline(root, region.output, region.start, self.project.audio_file)


def resolve_overlaps(clips: list[VideoInput]) -> list[VideoInput]:
    """Turn overlapping neighbours on one track into a single cross-fade.

    clips must be sorted by timeline position. When B starts before A
    ends (and A does not run past B), the fade is the longer of A's
    fade-out and B's fade-in, capped at the overlap. A then ends exactly
    one fade after B starts and both fades are set to it.

    A's fade-in is limited to the time before B starts, so adding the
    fade-out never makes VideoInput clamp it away. If A itself was the
    right side of a cross-fade, that earlier fade shrinks with it.
    """
    result = list(clips)
    for i in range(len(result) - 1):
        a, b = result[i], result[i + 1]
        overlap = a.timeline_end_position - b.timeline_position
        if overlap <= ZERO or a.timeline_end_position > b.timeline_end_position:
            continue
        if b.timeline_position <= a.timeline_position:
            continue
        fade = min(max(a.fade_out or ZERO, b.fade_in or ZERO), overlap)
        room = b.timeline_position - a.timeline_position
        fade_in = a.fade_in
        if fade_in is not None and fade_in > room:
            fade_in = room
            prev = result[i - 1] if i > 0 else None
            if (prev is not None and prev.fade_out is not None
                    and prev.timeline_end_position > a.timeline_position):
                result[i - 1] = replace(
                    prev,
                    timeline_end_position=a.timeline_position + room,
                    fade_out=room,
                )
        result[i] = replace(
            a, timeline_end_position=b.timeline_position + fade, fade_in=fade_in, fade_out=fade,
        )
        result[i + 1] = replace(b, fade_in=fade)
    return result


def build_timelines(project: Project) -> list[Timeline]:
    """One Timeline per render region.

    Raises:
        RenderRegionError: regions could not be derived.
    """
    builder = TimelineBuilder(project)
    return [builder.build(region) for region in render_regions(project)]
