"""CLI for media probing — print a video's resolution, framerate and duration.

Usage:
    trackcompose probe footage.mp4
"""

import argparse
import sys

from .common import format_fps
from .probe import probe_media


def main(args=None):
    parser = argparse.ArgumentParser(
        description="Show resolution, framerate and duration of a video file.",
    )
    parser.add_argument("file", help="Path to video file")
    parsed = parser.parse_args(args)

    try:
        info = probe_media(parsed.file)
    except (FileNotFoundError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    print(f"{parsed.file}")
    print(f"  resolution: {info.width}x{info.height}")
    print(f"  fps:        {format_fps(info.fps)} ({float(info.fps):.3f})")
    print(f"  duration:   {info.duration:.3f}s")


if __name__ == "__main__":
    main()
