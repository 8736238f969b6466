"""Shared test fixtures for trackcompose tests."""

import subprocess
import sys
import textwrap

import pytest
import imageio_ffmpeg

_FFMPEG = imageio_ffmpeg.get_ffmpeg_exe()


@pytest.fixture
def source_video(tmp_path):
    """Create a 5-second test video (320x240, 10fps) with audio using ffmpeg.

    Shared across test_render.py, test_probe.py and the CLI tests.
    """
    out = tmp_path / "source.mp4"
    subprocess.run(
        [
            _FFMPEG, "-y",
            "-f", "lavfi", "-i", "color=c=blue:s=320x240:d=5:r=10",
            "-f", "lavfi", "-i", "anullsrc=r=44100:cl=mono",
            "-shortest",
            "-c:v", "libx264", "-crf", "28", "-pix_fmt", "yuv420p",
            "-c:a", "aac", "-b:a", "32k",
            str(out),
        ],
        check=True,
        capture_output=True,
    )
    return out


@pytest.fixture
def second_video(tmp_path):
    """A 4-second red 160x120 clip at 10fps, no audio."""
    out = tmp_path / "second.mp4"
    subprocess.run(
        [
            _FFMPEG, "-y",
            "-f", "lavfi", "-i", "color=c=red:s=160x120:d=4:r=10",
            "-c:v", "libx264", "-crf", "28", "-pix_fmt", "yuv420p",
            str(out),
        ],
        check=True,
        capture_output=True,
    )
    return out


@pytest.fixture
def scripted_process(tmp_path):
    """Factory for a fake ffmpeg: a Python child printing scripted output.

    Returns make(stdout_lines, stderr_lines=(), exit_code=0, delay=0.0)
    -> command list. delay is slept before each stdout line.
    """
    def make(stdout_lines, stderr_lines=(), exit_code=0, delay=0.0):
        script = tmp_path / f"fake_ffmpeg_{len(list(tmp_path.glob('fake_ffmpeg_*')))}.py"
        script.write_text(textwrap.dedent(f"""
            import sys, time
            for line in {list(stderr_lines)!r}:
                print(line, file=sys.stderr, flush=True)
            for line in {list(stdout_lines)!r}:
                time.sleep({delay!r})
                print(line, flush=True)
            sys.exit({exit_code!r})
        """))
        return [sys.executable, str(script)]

    return make
