"""Tests for RenderJob: progress parsing, state machine, subprocess driving."""

import sys

import pytest

from trackcompose.content import Timeline, empty_timeline
from trackcompose.errors import RenderError
from trackcompose.job import (
    CANCELLED,
    Exited,
    Progress,
    ProgressMessage,
    RenderJob,
    Result,
    SpawnFailed,
    StderrMessage,
    parse_progress_line,
)
from trackcompose.settings import RenderSettings
from trackcompose.timebase import Duration

PROGRESS_BLOCK = [
    "frame=120",
    "fps=29.7",
    "stream_0_0_q=28.0",
    "bitrate= 512.3kbits/s",
    "out_time_us=4000000",
    "out_time_ms=4000000",
    "out_time=00:00:04.000000",
    "dup_frames=0",
    "speed=1.02x",
    "progress=continue",
]


def _job(seconds=8.0, command=None):
    return RenderJob(command or ["ffmpeg"], "out.mkv", Duration.from_seconds(seconds))


def _feed(job, lines):
    for line in lines:
        message = parse_progress_line(line)
        if message is not None:
            job.apply(message)


class TestParseProgressLine:
    def test_known_keys(self):
        assert parse_progress_line("frame=120") == ProgressMessage("frame", 120)
        assert parse_progress_line("fps=29.7") == ProgressMessage("fps", 29.7)
        assert parse_progress_line("out_time=00:00:04.000000") == ProgressMessage(
            "out_time", Duration.from_seconds(4),
        )
        assert parse_progress_line("speed=1.02x") == ProgressMessage("speed", "1.02x")
        assert parse_progress_line("progress=end") == ProgressMessage("progress", "end")

    def test_padded_values(self):
        assert parse_progress_line("speed= 1.5x\n") == ProgressMessage("speed", "1.5x")
        assert parse_progress_line("frame=  7") == ProgressMessage("frame", 7)

    @pytest.mark.parametrize("line", [
        "out_time_ms=4000000",
        "out_time_us=4000000",
        "out_time=N/A",
        "bitrate=N/A",
        "fps=",
        "",
        "garbage",
        "[libx264 @ 0x1] frame I:1",
    ])
    def test_unknown_lines_ignored(self, line):
        assert parse_progress_line(line) is None


class TestStateMachine:
    def test_initial_state(self):
        job = _job()
        assert job.state == Progress(0.0)
        assert not job.done

    def test_progress_block(self):
        job = _job(seconds=8.0)
        _feed(job, PROGRESS_BLOCK)
        assert job.status.frame == 120
        assert job.status.fps == 29.7
        assert job.status.time == Duration.from_seconds(4)
        assert job.status.speed == "1.02x"
        assert job.state == Progress(0.5)

    def test_end_is_ok(self):
        job = _job()
        _feed(job, PROGRESS_BLOCK + ["progress=end"])
        assert job.state == Result(None)
        assert job.ok and job.done

    def test_fraction_clamped(self):
        job = _job(seconds=2.0)
        _feed(job, ["out_time=00:00:05.000000"])
        assert job.state == Progress(1.0)
        _feed(job, ["out_time=-00:00:00.040000"])
        assert job.state == Progress(0.0)

    def test_unknown_progress_word_is_error(self):
        job = _job()
        _feed(job, ["progress=failed"])
        assert isinstance(job.state, Result)
        assert job.state.error == "ffmpeg reported progress=failed"

    def test_stderr_error_latches(self):
        job = _job()
        job.apply(StderrMessage("Input #0, matroska"))
        job.apply(StderrMessage("Error opening input file a.mp4"))
        _feed(job, PROGRESS_BLOCK + ["progress=end"])
        assert job.state == Result("Error opening input file a.mp4")
        assert job.error_log == ["Input #0, matroska", "Error opening input file a.mp4"]
        # Progress is not updated once terminal.
        assert job.status.frame == 120
        assert not job.ok

    def test_errors_accumulate(self):
        job = _job()
        job.apply(StderrMessage("Error one"))
        job.apply(StderrMessage("Error two"))
        job.apply(Exited(1))
        assert job.state.error == "Error one\nError two"

    def test_nonzero_exit(self):
        job = _job()
        job.apply(Exited(3))
        assert job.state == Result("ffmpeg exited with code 3")
        assert job.exited and job.returncode == 3

    def test_clean_exit_without_end_is_ok(self):
        job = _job()
        job.apply(Exited(0))
        assert job.state == Result(None)

    def test_spawn_failure(self):
        job = _job()
        job.apply(SpawnFailed("Could not start ffmpeg: no such file"))
        assert job.state.error == "Could not start ffmpeg: no such file"
        assert job.exited

    def test_cancel(self):
        job = _job()
        job.cancel()
        _feed(job, ["out_time=00:00:01.000000", "progress=end"])
        job.apply(Exited(-9))
        assert job.state == Result(CANCELLED)


class TestConstruction:
    def test_empty_command(self):
        with pytest.raises(RenderError, match="Empty command"):
            RenderJob([], "x.mkv", Duration.from_seconds(1))

    def test_zero_duration(self):
        with pytest.raises(RenderError, match="no duration"):
            RenderJob(["ffmpeg"], "x.mkv", Duration(0))

    def test_render_script_is_shell_quoted(self):
        job = _job(command=["ffmpeg", "-filter_complex", "[0:v]fps=fps=25[vf0]", "my file.mkv"])
        assert job.render_script == "ffmpeg -filter_complex '[0:v]fps=fps=25[vf0]' 'my file.mkv'"

    def test_from_timeline(self):
        timeline = Timeline(empty_timeline(Duration.from_seconds(3)), "out/x")
        job = RenderJob.from_timeline(timeline, RenderSettings(extension="mp4", muxer="mp4"))
        assert job.filename == "out/x.mp4"
        assert job.duration == Duration.from_seconds(3)
        assert "-filter_complex" in job.command

    def test_wait_requires_start(self):
        with pytest.raises(RenderError, match="never started"):
            _job().wait(timeout=0.1)


class TestSubprocess:
    def test_successful_run(self, scripted_process):
        cmd = scripted_process(PROGRESS_BLOCK + ["progress=end"], stderr_lines=["ffmpeg version x"])
        job = _job(command=cmd)
        job.start()
        state = job.wait(timeout=30)
        assert state == Result(None)
        assert job.status.frame == 120
        assert job.status.speed == "1.02x"
        assert job.error_log == ["ffmpeg version x"]
        assert job.returncode == 0

    def test_nonzero_exit(self, scripted_process):
        job = _job(command=scripted_process(["frame=1", "progress=continue"], exit_code=3))
        job.start()
        assert job.wait(timeout=30) == Result("ffmpeg exited with code 3")

    def test_stderr_error(self, scripted_process):
        cmd = scripted_process(
            ["progress=end"], stderr_lines=["Error while opening encoder"], exit_code=1,
        )
        job = _job(command=cmd)
        job.start()
        state = job.wait(timeout=30)
        assert isinstance(state, Result)
        assert state.error.startswith("Error while opening encoder")

    def test_spawn_failure(self, tmp_path):
        job = _job(command=[str(tmp_path / "no-such-ffmpeg")])
        job.start()
        state = job.wait(timeout=30)
        assert state.error.startswith("Could not start ffmpeg")

    def test_cancel_stops_process(self, scripted_process):
        cmd = scripted_process(["frame=1"] * 200, delay=0.1)
        job = _job(command=cmd)
        job.start()
        job.cancel()
        state = job.wait(timeout=30)
        assert state == Result(CANCELLED)
        assert job.exited

    def test_start_twice(self, scripted_process):
        job = _job(command=scripted_process(["progress=end"]))
        job.start()
        with pytest.raises(RenderError, match="already started"):
            job.start()
        job.wait(timeout=30)

    def test_poll_is_non_blocking(self):
        job = _job(command=[sys.executable, "-c", "import time; time.sleep(5)"])
        job.start()
        assert job.poll() == Progress(0.0)
        job.cancel()
