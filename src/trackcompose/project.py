"""Project model and manifest loader.

The project is the read-only source of everything a render needs: tracks
in stacking order, their items, fades, mute/solo state, user filters and
the render bounds. The dataclasses here are all the rest of the package
looks at; load_project_manifest() fills them from YAML.

Project manifest schema:
  paths:
    media: "/data/footage"
  project:
    length: 30.0                  # optional, defaults to the last item end
    bounds: entire_project        # custom | time_selection | all_regions
    custom_bounds: [0, 10]
    time_selection: [2, 8]
    regions:
      - {name: intro, start: 0, end: 5}
    render_targets: ["renders/full"]
    audio: "${media}/mix.wav"     # optional, the only audio in the render
  tracks:                         # first track is the bottom layer, the last
                                  # one is drawn on top (the reverse of editors
                                  # that show the top track in front)
    - name: V1
      guid: "{track-1}"
      muted: false
      solo: false
      items:
        - file: "${media}/a.mp4"
          position: 0.0
          length: 6.0
          start_offset: 0.0
          fade_in: 0.0
          fade_out: 1.0
          muted: false
          type: VIDEO
          guid: "{item-1}"
  filters:                        # keyed by track or item guid
    "{item-1}":
      - {name: hflip}
      - {name: eq, options: {brightness: 0.1}}
  render: {...}                   # optional, see settings.py
"""

from dataclasses import dataclass, field
from pathlib import Path

import yaml

from .common import resolve_path_vars
from .filters import CustomFilter, custom_filters_from_specs
from .settings import RenderSettings, settings_from_dict

VALID_BOUNDS_MODES = {
    "entire_project", "custom", "time_selection", "all_regions",
    "selected_items", "selected_regions",
}

VALID_SOURCE_TYPES = {"VIDEO", "AUDIO", "MIDI", "IMAGE", "EMPTY"}


@dataclass
class Take:
    file: str
    source_type: str = "VIDEO"
    start_offset: float = 0.0


@dataclass
class Item:
    position: float
    length: float
    take: Take | None
    fade_in: float = 0.0
    fade_out: float = 0.0
    muted: bool = False
    guid: str | None = None

    @property
    def end(self) -> float:
        return self.position + self.length


@dataclass
class Track:
    name: str
    items: list[Item] = field(default_factory=list)
    guid: str | None = None
    muted: bool = False
    solo: bool = False


@dataclass
class Region:
    name: str
    start: float
    end: float


@dataclass
class Project:
    length: float
    tracks: list[Track] = field(default_factory=list)
    bounds_mode: str = "entire_project"
    custom_bounds: tuple[float, float] | None = None
    time_selection: tuple[float, float] | None = None
    regions: list[Region] = field(default_factory=list)
    render_targets: list[str] = field(default_factory=list)
    audio_file: str | None = None
    filters: dict[str, list[CustomFilter]] = field(default_factory=dict)
    settings: RenderSettings = field(default_factory=RenderSettings)

    def filters_for(self, guid: str | None) -> list[CustomFilter]:
        if guid is None:
            return []
        return self.filters.get(guid, [])


# ── Field helpers ──────────────────────────────────────────────────

def _number(data: dict, key: str, where: str, default=None, minimum=None) -> float:
    if key not in data or data[key] is None:
        if default is None:
            raise ValueError(f"{where}: missing required field '{key}'")
        return default
    value = data[key]
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"{where}: '{key}' must be a number, got {value!r}")
    if minimum is not None and value < minimum:
        raise ValueError(f"{where}: '{key}' must be >= {minimum}, got {value}")
    return float(value)


def _flag(data: dict, key: str, where: str) -> bool:
    value = data.get(key, False)
    if not isinstance(value, bool):
        raise ValueError(f"{where}: '{key}' must be true or false, got {value!r}")
    return value


def _range(value, key: str) -> tuple[float, float] | None:
    if value is None:
        return None
    if not isinstance(value, (list, tuple)) or len(value) != 2:
        raise ValueError(f"Project: '{key}' must be [start, end], got {value!r}")
    start, end = (float(v) for v in value)
    return start, end


# ── Loaders ────────────────────────────────────────────────────────

def _parse_item(raw: dict, where: str, paths: dict) -> Item:
    if not isinstance(raw, dict):
        raise ValueError(f"{where}: must be a mapping")
    position = _number(raw, "position", where, minimum=0)
    length = _number(raw, "length", where)
    if length <= 0:
        raise ValueError(f"{where}: 'length' must be > 0, got {length}")

    source_type = str(raw.get("type", "VIDEO")).upper()
    if source_type not in VALID_SOURCE_TYPES:
        raise ValueError(
            f"{where}: invalid type '{source_type}'. Valid: {sorted(VALID_SOURCE_TYPES)}"
        )
    take = None
    if raw.get("file") is not None:
        take = Take(
            file=resolve_path_vars(str(raw["file"]), paths),
            source_type=source_type,
            start_offset=_number(raw, "start_offset", where, default=0.0, minimum=0),
        )
    elif source_type != "EMPTY":
        raise ValueError(f"{where}: missing required field 'file'")

    return Item(
        position=position,
        length=length,
        take=take,
        fade_in=_number(raw, "fade_in", where, default=0.0, minimum=0),
        fade_out=_number(raw, "fade_out", where, default=0.0, minimum=0),
        muted=_flag(raw, "muted", where),
        guid=str(raw["guid"]) if raw.get("guid") is not None else None,
    )


def _parse_track(raw: dict, index: int, paths: dict) -> Track:
    where = f"Track {index}"
    if not isinstance(raw, dict):
        raise ValueError(f"{where}: must be a mapping")
    name = str(raw.get("name", f"Track {index + 1}"))
    where = f"Track {index} ({name})"
    items = [
        _parse_item(item, f"{where} item {j}", paths)
        for j, item in enumerate(raw.get("items") or [])
    ]
    return Track(
        name=name,
        items=items,
        guid=str(raw["guid"]) if raw.get("guid") is not None else None,
        muted=_flag(raw, "muted", where),
        solo=_flag(raw, "solo", where),
    )


def _parse_regions(raw_regions) -> list[Region]:
    regions = []
    for i, raw in enumerate(raw_regions or []):
        where = f"Region {i}"
        if not isinstance(raw, dict):
            raise ValueError(f"{where}: must be a mapping")
        start = _number(raw, "start", where, minimum=0)
        end = _number(raw, "end", where)
        if start >= end:
            raise ValueError(f"{where}: start ({start}) must be < end ({end})")
        regions.append(Region(str(raw.get("name", f"region-{i + 1}")), start, end))
    return regions


def project_from_dict(raw: dict, base_settings: RenderSettings | None = None) -> Project:
    """Validate a parsed manifest and build the Project.

    Raises:
        ValueError: missing/invalid fields.
    """
    if not isinstance(raw, dict):
        raise ValueError("Project manifest: expected a mapping at top level")
    if "tracks" not in raw:
        raise ValueError("Project manifest: missing required 'tracks' section")

    paths = raw.get("paths") or {}
    section = raw.get("project") or {}

    tracks = [_parse_track(t, i, paths) for i, t in enumerate(raw["tracks"] or [])]

    bounds = str(section.get("bounds", "entire_project"))
    if bounds not in VALID_BOUNDS_MODES:
        raise ValueError(
            f"Project: invalid bounds '{bounds}'. Valid: {sorted(VALID_BOUNDS_MODES)}"
        )

    item_end = max((item.end for t in tracks for item in t.items), default=0.0)
    length = _number(section, "length", "Project", default=item_end, minimum=0)

    targets = section.get("render_targets") or []
    if isinstance(targets, str):
        targets = [targets]
    targets = [resolve_path_vars(str(t), paths) for t in targets]

    audio = section.get("audio")
    audio = resolve_path_vars(str(audio), paths) if audio else None

    filters = {}
    for guid, specs in (raw.get("filters") or {}).items():
        filters[str(guid)] = custom_filters_from_specs(specs, f"Filters for '{guid}'")

    return Project(
        length=length,
        tracks=tracks,
        bounds_mode=bounds,
        custom_bounds=_range(section.get("custom_bounds"), "custom_bounds"),
        time_selection=_range(section.get("time_selection"), "time_selection"),
        regions=_parse_regions(section.get("regions")),
        render_targets=targets,
        audio_file=audio,
        filters=filters,
        settings=settings_from_dict(raw.get("render"), base_settings),
    )


def load_project_manifest(manifest_path: str | Path,
                          base_settings: RenderSettings | None = None) -> Project:
    """Load, validate, and normalize a project manifest.

    Processing pipeline:
      1. Parse YAML.
      2. Resolve ${path} variables in media, audio and target paths.
      3. Validate tracks, items, regions and filters.
      4. Overlay the optional render section on base_settings.

    Args:
        manifest_path: Path to the YAML project manifest.
        base_settings: Settings the manifest's render section overrides
            (e.g. loaded from --settings). Defaults apply when None.

    Returns:
        The Project.

    Raises:
        ValueError: Missing/invalid fields.
    """
    with open(manifest_path) as f:
        raw = yaml.safe_load(f)
    return project_from_dict(raw, base_settings)


def validate_project_paths(project: Project) -> None:
    """Check that every referenced media file exists on disk.

    Raises:
        FileNotFoundError: Lists all missing files.
    """
    files = [
        item.take.file
        for track in project.tracks
        for item in track.items
        if item.take is not None
    ]
    if project.audio_file:
        files.append(project.audio_file)

    missing = sorted({f for f in files if not Path(f).exists()})
    if missing:
        raise FileNotFoundError(
            f"Missing {len(missing)} media file(s):\n"
            + "\n".join(f"  - {m}" for m in missing)
        )
