"""Render regions — which spans of the project to render, and where to.

The project's bounds mode picks the spans:

  entire_project   [0, project length)
  custom           the project's custom bounds
  time_selection   the current time selection
  all_regions      one render per marked region

Output targets are matched by index: the single-span modes use the first
target, all_regions uses one target per region. Any extension on a
target is replaced by the render settings' extension.
"""

from dataclasses import dataclass
from pathlib import Path

from .errors import RenderRegionError
from .project import Project
from .timebase import Duration, Position


@dataclass
class RenderRegion:
    name: str
    start: Position
    end: Position
    output: str

    @property
    def duration(self) -> Duration:
        return self.end - self.start


def _target(project: Project, index: int) -> str:
    if index >= len(project.render_targets):
        raise RenderRegionError(
            f"No render target for region {index + 1} "
            f"({len(project.render_targets)} target(s) configured)"
        )
    target = Path(project.render_targets[index])
    return str(target.with_suffix("")) if target.suffix else str(target)


def _region(name: str, bounds, output: str) -> RenderRegion:
    start, end = Position.from_seconds(bounds[0]), Position.from_seconds(bounds[1])
    if start.ticks < 0 or start >= end:
        raise RenderRegionError(f"Region '{name}' has empty or inverted bounds [{start}, {end})")
    return RenderRegion(name, start, end, output)


def render_regions(project: Project) -> list[RenderRegion]:
    """Derive the list of regions to render.

    Raises:
        RenderRegionError: unsupported bounds mode, missing bounds or
            output target, or an empty span.
    """
    mode = project.bounds_mode
    if mode == "entire_project":
        return [_region("project", (0.0, project.length), _target(project, 0))]
    if mode == "custom":
        if project.custom_bounds is None:
            raise RenderRegionError("Bounds mode 'custom' needs custom_bounds")
        return [_region("custom", project.custom_bounds, _target(project, 0))]
    if mode == "time_selection":
        if project.time_selection is None:
            raise RenderRegionError("Bounds mode 'time_selection' needs a time_selection")
        return [_region("time selection", project.time_selection, _target(project, 0))]
    if mode == "all_regions":
        if not project.regions:
            raise RenderRegionError("Bounds mode 'all_regions' but the project has no regions")
        return [
            _region(region.name, (region.start, region.end), _target(project, i))
            for i, region in enumerate(project.regions)
        ]
    if mode == "selected_items":
        raise RenderRegionError("Rendering selected items is not supported")
    if mode == "selected_regions":
        raise RenderRegionError("Rendering selected regions (render matrix) is not supported")
    raise RenderRegionError(f"Unknown bounds mode '{mode}'")
