"""Render settings — output format, canvas and encoder configuration.

Settings come from a standalone YAML file (--settings) or from the
optional ``render:`` section of a project manifest. Every key is
optional; missing keys keep the defaults below.

Settings schema:
  muxer: matroska
  extension: mkv
  video_encoder: libx264
  video_encoder_options: {crf: 18, preset: medium}
  audio_encoder: null            # null = copy the audio stream
  audio_encoder_options: {}
  muxer_options: {}
  fps: 29.97                     # or 30, "30000/1001"
  pixel_format: yuv420p
  resolution: 1920x1080          # or [1920, 1080]
  pad_color: black               # CSS name or hex
  transition: fade               # any ffmpeg xfade transition
  master_filters: [{name: eq, options: {gamma: 1.1}}]
  ffmpeg: null                   # null = imageio-ffmpeg's binary
  parallel: true
"""

from dataclasses import dataclass, field, fields, replace
from fractions import Fraction
from pathlib import Path

import yaml

from .common import ffmpeg_color, parse_fps, parse_resolution
from .filters import XFADE_TRANSITIONS, CustomFilter, custom_filters_from_specs


@dataclass
class RenderSettings:
    muxer: str = "matroska"
    extension: str = "mkv"
    video_encoder: str = "libx264"
    video_encoder_options: dict[str, str] = field(default_factory=dict)
    audio_encoder: str | None = None
    audio_encoder_options: dict[str, str] = field(default_factory=dict)
    muxer_options: dict[str, str] = field(default_factory=dict)
    fps: Fraction = Fraction(30000, 1001)
    pixel_format: str = "yuv420p"
    resolution: tuple[int, int] = (1920, 1080)
    pad_color: str = "0x000000"
    transition: str = "fade"
    master_filters: list[CustomFilter] = field(default_factory=list)
    ffmpeg: str | None = None
    parallel: bool = True


_STRING_FIELDS = {"muxer", "extension", "video_encoder", "pixel_format"}
_OPTION_FIELDS = {"video_encoder_options", "audio_encoder_options", "muxer_options"}


def _options(value, key: str) -> dict[str, str]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ValueError(f"Render settings: {key} must be a mapping, got {value!r}")
    return {str(k): str(v) for k, v in value.items()}


def settings_from_dict(data: dict | None, base: RenderSettings | None = None) -> RenderSettings:
    """Validate a settings mapping and overlay it on base (or the defaults).

    Raises:
        ValueError: unknown key or invalid value.
    """
    settings = base or RenderSettings()
    if not data:
        return settings
    if not isinstance(data, dict):
        raise ValueError(f"Render settings must be a mapping, got {type(data).__name__}")

    known = {f.name for f in fields(RenderSettings)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ValueError(f"Render settings: unknown keys {unknown}. Valid: {sorted(known)}")

    updates = {}
    for key, value in data.items():
        if key in _STRING_FIELDS:
            if not value or not isinstance(value, str):
                raise ValueError(f"Render settings: {key} must be a non-empty string")
            updates[key] = value.lstrip(".") if key == "extension" else value
        elif key in _OPTION_FIELDS:
            updates[key] = _options(value, key)
        elif key == "audio_encoder":
            updates[key] = str(value) if value else None
        elif key == "fps":
            updates[key] = parse_fps(value)
        elif key == "resolution":
            updates[key] = parse_resolution(value)
        elif key == "pad_color":
            updates[key] = ffmpeg_color(value)
        elif key == "transition":
            if value not in XFADE_TRANSITIONS or value == "custom":
                raise ValueError(f"Render settings: unknown transition '{value}'")
            updates[key] = value
        elif key == "master_filters":
            updates[key] = custom_filters_from_specs(value, "Render settings: master_filters")
        elif key == "ffmpeg":
            updates[key] = str(value) if value else None
        elif key == "parallel":
            if not isinstance(value, bool):
                raise ValueError(f"Render settings: parallel must be true or false, got {value!r}")
            updates[key] = value

    return replace(settings, **updates)


def load_render_settings(path: str | Path, base: RenderSettings | None = None) -> RenderSettings:
    """Load a settings YAML file.

    Raises:
        ValueError: invalid settings.
    """
    with open(path) as f:
        raw = yaml.safe_load(f)
    return settings_from_dict(raw, base)
