"""Media probing — resolution, framerate and duration of a video file.

imageio-ffmpeg ships no ffprobe, so files are opened with moviepy's
VideoFileClip, which reads the stream header through the bundled ffmpeg.
"""

from dataclasses import dataclass
from fractions import Fraction
from pathlib import Path

from moviepy import VideoFileClip

from .common import parse_fps


@dataclass
class MediaInfo:
    width: int
    height: int
    fps: Fraction
    duration: float

    @property
    def resolution(self) -> tuple[int, int]:
        return self.width, self.height


def probe_media(path: str | Path) -> MediaInfo:
    """Read a video file's header.

    The reported fps is snapped to the exact NTSC fraction when it is one
    of the usual decimal approximations (29.97 -> 30000/1001).

    Raises:
        FileNotFoundError: path does not exist.
        ValueError: the file has no readable video stream.
    """
    if not Path(path).exists():
        raise FileNotFoundError(f"Media file not found: {path}")
    with VideoFileClip(str(path), audio=False) as clip:
        width, height = clip.size
        fps = clip.fps
        duration = clip.duration
    if not fps:
        raise ValueError(f"No framerate found in '{path}'")
    fps_text = f"{fps:.3f}".rstrip("0").rstrip(".")
    try:
        rate = parse_fps(fps_text)
    except ValueError:
        raise ValueError(f"Invalid framerate {fps!r} in '{path}'") from None
    return MediaInfo(int(width), int(height), rate, float(duration))
