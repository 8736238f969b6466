"""RenderJob — run one ffmpeg render and track its progress.

ffmpeg is started with ``-progress pipe:1 -nostats``, so stdout carries
blocks of ``key=value`` lines and stderr carries diagnostics. A worker
thread spawns the process and reads stdout, a second thread reads
stderr. Both only put messages on a queue; all job state is updated by
poll() on the caller's thread.

States:
  Progress(fraction)   running, fraction of the target duration written
  Result(error=None)   finished successfully
  Result(error="...")  failed or cancelled

Errors latch: once a job has failed, later progress never turns it back
into a running or successful job.
"""

import logging
import queue
import re
import shlex
import subprocess
import threading
import time
from dataclasses import dataclass

from .content import Timeline
from .errors import RenderError
from .lowering import build_command
from .settings import RenderSettings
from .timebase import ZERO, Duration, parse_timestamp

logger = logging.getLogger(__name__)

CANCELLED = "render cancelled"

_PROGRESS_KEYS = [
    ("frame", re.compile(r"^frame=\s*(\d+)"), int),
    ("fps", re.compile(r"^fps=\s*([\d.]+)"), float),
    ("out_time", re.compile(r"^out_time=\s*(-?[\d.:]+)"), parse_timestamp),
    ("speed", re.compile(r"^speed=\s*(\S+)"), str),
    ("progress", re.compile(r"^progress=\s*(\w+)"), str),
]


# ── States ─────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Progress:
    fraction: float = 0.0


@dataclass(frozen=True)
class Result:
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class RenderStatus:
    """Last values ffmpeg reported."""

    frame: int | None = None
    fps: float | None = None
    time: Duration | None = None
    speed: str | None = None
    progress: str | None = None


# ── Messages ───────────────────────────────────────────────────────

@dataclass(frozen=True)
class ProgressMessage:
    key: str
    value: object


@dataclass(frozen=True)
class StderrMessage:
    line: str


@dataclass(frozen=True)
class SpawnFailed:
    error: str


@dataclass(frozen=True)
class Exited:
    returncode: int


def parse_progress_line(line: str) -> ProgressMessage | None:
    """Decode one stdout line of ffmpeg's -progress output.

    Returns None for every line that is not one of frame, fps, out_time,
    speed or progress (ffmpeg emits many more keys).
    """
    line = line.strip()
    for key, pattern, convert in _PROGRESS_KEYS:
        match = pattern.match(line)
        if match is None:
            continue
        try:
            return ProgressMessage(key, convert(match.group(1)))
        except ValueError:
            return None
    return None


def _terminate(proc: subprocess.Popen):
    if proc.poll() is not None:
        return
    try:
        proc.kill()
    except OSError as e:
        logger.warning("Could not kill ffmpeg (pid %s): %s", proc.pid, e)


# ── Job ────────────────────────────────────────────────────────────

class RenderJob:
    """One ffmpeg process rendering one file.

    Args:
        command: Full argument list, executable first.
        filename: Output file (for display).
        duration: Expected output duration; out_time is measured against it.
    """

    def __init__(self, command: list[str], filename: str, duration: Duration):
        if not command:
            raise RenderError(f"Empty command for '{filename}'")
        if duration <= ZERO:
            raise RenderError(f"Render '{filename}' has no duration")
        self.command = list(command)
        self.filename = filename
        self.duration = duration
        self.status = RenderStatus()
        self.state: Progress | Result = Progress(0.0)
        self.error_log: list[str] = []
        self.exited = False
        self.returncode: int | None = None

        self._errors: list[str] = []
        self._messages: queue.Queue = queue.Queue()
        self._stop = threading.Event()
        self._worker: threading.Thread | None = None

    @classmethod
    def from_timeline(cls, timeline: Timeline, settings: RenderSettings) -> "RenderJob":
        command = build_command(timeline, settings)
        return cls(command, command[-1], timeline.duration)

    @property
    def render_script(self) -> str:
        """The command as one shell-quoted line."""
        return shlex.join(self.command)

    @property
    def done(self) -> bool:
        return isinstance(self.state, Result)

    @property
    def ok(self) -> bool:
        return isinstance(self.state, Result) and self.state.ok

    # ── Control ──

    def start(self):
        if self._worker is not None:
            raise RenderError(f"Render '{self.filename}' already started")
        logger.debug("Starting render %s: %s", self.filename, self.render_script)
        self._worker = threading.Thread(
            target=self._run, name=f"render-{self.filename}", daemon=True
        )
        self._worker.start()

    def cancel(self):
        """Ask the readers to kill ffmpeg at the next output line."""
        self._stop.set()
        self._latch(CANCELLED)

    def poll(self) -> Progress | Result:
        """Apply every queued message without blocking; return the state."""
        while True:
            try:
                message = self._messages.get_nowait()
            except queue.Empty:
                break
            self.apply(message)
        return self.state

    def wait(self, timeout: float | None = None, interval: float = 0.1) -> Progress | Result:
        """Poll until the process has exited (or timeout seconds passed)."""
        if self._worker is None and not self.done:
            raise RenderError(f"Render '{self.filename}' was never started")
        deadline = None if timeout is None else time.monotonic() + timeout
        while True:
            self.poll()
            if self.exited or (self._worker is None and self.done):
                return self.state
            if deadline is not None and time.monotonic() >= deadline:
                return self.state
            time.sleep(interval)

    # ── State machine ──

    def apply(self, message):
        """Update status and state from one reader message."""
        if isinstance(message, ProgressMessage):
            self._apply_progress(message)
        elif isinstance(message, StderrMessage):
            self.error_log.append(message.line)
            if "Error" in message.line:
                self._latch(message.line)
        elif isinstance(message, SpawnFailed):
            self._latch(message.error)
            self.exited = True
        elif isinstance(message, Exited):
            self.exited = True
            self.returncode = message.returncode
            if message.returncode != 0 and not self._stop.is_set():
                self._latch(f"ffmpeg exited with code {message.returncode}")
            elif not self.done:
                self.state = Result(self._error_text())

    def _apply_progress(self, message: ProgressMessage):
        key, value = message.key, message.value
        if key == "frame":
            self.status.frame = value
        elif key == "fps":
            self.status.fps = value
        elif key == "speed":
            self.status.speed = value
        elif key == "out_time":
            self.status.time = value
            if not self.done:
                fraction = min(max(value / self.duration, 0.0), 1.0)
                self.state = Progress(fraction)
        elif key == "progress":
            self.status.progress = value
            if value == "end":
                if not self.done:
                    self.state = Result(self._error_text())
            elif value != "continue":
                self._latch(f"ffmpeg reported progress={value}")

    def _error_text(self) -> str | None:
        return "\n".join(self._errors) if self._errors else None

    def _latch(self, error: str):
        if error not in self._errors:
            self._errors.append(error)
        self.state = Result(self._error_text())
        self._stop.set()

    # ── Threads ──

    def _run(self):
        try:
            proc = subprocess.Popen(
                self.command,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                stdin=subprocess.DEVNULL,
                text=True,
                errors="replace",
                bufsize=1,
            )
        except OSError as e:
            self._messages.put(SpawnFailed(f"Could not start ffmpeg: {e}"))
            return

        stderr_reader = threading.Thread(
            target=self._read_stderr, args=(proc,), name=f"stderr-{self.filename}", daemon=True
        )
        stderr_reader.start()

        for line in proc.stdout:
            if self._stop.is_set():
                _terminate(proc)
                break
            message = parse_progress_line(line)
            if message is not None:
                self._messages.put(message)

        proc.stdout.close()
        returncode = proc.wait()
        stderr_reader.join()
        logger.debug("ffmpeg for %s exited with %s", self.filename, returncode)
        self._messages.put(Exited(returncode))

    def _read_stderr(self, proc: subprocess.Popen):
        for line in proc.stderr:
            if self._stop.is_set():
                _terminate(proc)
            self._messages.put(StderrMessage(line.rstrip("\r\n")))
        proc.stderr.close()
