#!/usr/bin/env python3
"""Generate synthetic footage for the trackcompose demo project.

Creates a few clips in examples/demo-clips/. Every frame shows the clip
name and its own source time, so trims, source offsets and cross-fades
are easy to check in the render.

Usage:
    python examples/generate_demo_clips.py
    # Then render:
    trackcompose render --manifest examples/demo-project.yaml
"""

from pathlib import Path

import numpy as np
from moviepy import VideoClip
from PIL import Image, ImageDraw, ImageFont

OUTPUT_DIR = Path(__file__).resolve().parent / "demo-clips"
FPS = 30

# (name, background color, duration, size). The overlay clip is smaller
# than the canvas so the pad stage has something to do.
CLIPS = [
    ("shot-a", (180, 60, 60),  8.0, (640, 360)),
    ("shot-b", (60, 60, 180),  8.0, (640, 360)),
    ("shot-c", (60, 160, 60),  6.0, (480, 360)),
    ("title",  (30, 30, 30),   4.0, (640, 200)),
]


def _load_font(size: int):
    try:
        return ImageFont.truetype("/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf", size)
    except OSError:
        return ImageFont.load_default()


def _frame_maker(name: str, color: tuple[int, int, int], size: tuple[int, int]):
    """Return a make_frame(t) drawing the clip name and source timestamp."""
    font = _load_font(size[1] // 6)

    def make_frame(t):
        img = Image.new("RGB", size, color)
        draw = ImageDraw.Draw(img)
        text = f"{name}  {t:05.2f}s"
        bbox = draw.textbbox((0, 0), text, font=font)
        tw, th = bbox[2] - bbox[0], bbox[3] - bbox[1]
        draw.text(((size[0] - tw) / 2, (size[1] - th) / 2), text, fill=(255, 255, 255), font=font)
        return np.array(img)

    return make_frame


def main():
    OUTPUT_DIR.mkdir(parents=True, exist_ok=True)
    for name, color, duration, size in CLIPS:
        out = OUTPUT_DIR / f"{name}.mp4"
        if out.exists():
            print(f"  skip {name} (exists)")
            continue
        clip = VideoClip(_frame_maker(name, color, size), duration=duration)
        clip.write_videofile(str(out), fps=FPS, logger=None)
        print(f"  wrote {name} ({duration}s, {size[0]}x{size[1]})")

    print(f"\nDone. {len(CLIPS)} clips in {OUTPUT_DIR}")


if __name__ == "__main__":
    main()
