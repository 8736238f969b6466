"""Timeline time values — positions and durations on a fixed tick grid.

All arithmetic happens on integer microsecond ticks. Float seconds coming
from the host or from manifests are quantized once, on construction, so
two boundaries computed along different paths compare equal instead of
flickering by a floating-point epsilon.

  Position - Position -> Duration
  Position + Duration -> Position
  Position - Duration -> Position
  Duration ± Duration -> Duration
"""

import re
from dataclasses import dataclass
from decimal import Decimal

TICKS_PER_SECOND = 1_000_000

_TIMESTAMP_RE = re.compile(r"^(-)?(\d+):(\d{1,2}):(\d{1,2}(?:\.\d+)?)$")


def format_seconds(ticks: int) -> str:
    """Shortest decimal seconds string for a tick count ('5', '1.5')."""
    sign = "-" if ticks < 0 else ""
    whole, frac = divmod(abs(ticks), TICKS_PER_SECOND)
    if not frac:
        return f"{sign}{whole}"
    return f"{sign}{whole}.{frac:06d}".rstrip("0")


@dataclass(frozen=True, order=True)
class _TimeValue:
    ticks: int = 0

    @classmethod
    def from_seconds(cls, seconds):
        """Build a value from seconds (int, float, Fraction), quantized to ticks."""
        return cls(round(seconds * TICKS_PER_SECOND))

    @property
    def seconds(self) -> float:
        return self.ticks / TICKS_PER_SECOND

    def __str__(self) -> str:
        return format_seconds(self.ticks)


@dataclass(frozen=True, order=True)
class Duration(_TimeValue):
    """A signed length of time."""

    def __add__(self, other):
        if isinstance(other, Duration):
            return Duration(self.ticks + other.ticks)
        return NotImplemented

    def __sub__(self, other):
        if isinstance(other, Duration):
            return Duration(self.ticks - other.ticks)
        return NotImplemented

    def __neg__(self):
        return Duration(-self.ticks)

    def __mul__(self, factor):
        if isinstance(factor, int):
            return Duration(self.ticks * factor)
        return NotImplemented

    __rmul__ = __mul__

    def __truediv__(self, other):
        if isinstance(other, Duration):
            return self.ticks / other.ticks
        return NotImplemented

    def __bool__(self) -> bool:
        return self.ticks != 0

    def timestamp(self) -> str:
        """Format as HH:MM:SS.ffffff (the form ffmpeg prints in out_time)."""
        sign = "-" if self.ticks < 0 else ""
        total, micros = divmod(abs(self.ticks), TICKS_PER_SECOND)
        hours, rem = divmod(total, 3600)
        minutes, secs = divmod(rem, 60)
        return f"{sign}{hours:02d}:{minutes:02d}:{secs:02d}.{micros:06d}"


@dataclass(frozen=True, order=True)
class Position(_TimeValue):
    """A point on a timeline."""

    def __add__(self, other):
        if isinstance(other, Duration):
            return Position(self.ticks + other.ticks)
        return NotImplemented

    def __sub__(self, other):
        if isinstance(other, Position):
            return Duration(self.ticks - other.ticks)
        if isinstance(other, Duration):
            return Position(self.ticks - other.ticks)
        return NotImplemented


ZERO = Duration(0)
ORIGIN = Position(0)


def parse_timestamp(text: str) -> Duration:
    """Parse 'HH:MM:SS[.ffffff]' into a Duration.

    Raises:
        ValueError: text is not a timestamp.
    """
    match = _TIMESTAMP_RE.match(text.strip())
    if match is None:
        raise ValueError(f"Not a timestamp: '{text}'")
    sign, hours, minutes, seconds = match.groups()
    ticks = (int(hours) * 3600 + int(minutes) * 60) * TICKS_PER_SECOND
    ticks += round(Decimal(seconds) * TICKS_PER_SECOND)
    return Duration(-ticks if sign else ticks)
