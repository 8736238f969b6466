"""trackcompose.common — shared parsing helpers for manifests and settings.

Contains: path variable resolution, color parsing to ffmpeg syntax,
framerate and resolution parsing, ffmpeg binary lookup.
"""

import re
from fractions import Fraction

import imageio_ffmpeg
from PIL import ImageColor


# ── Path utilities ─────────────────────────────────────────────────

def resolve_path_vars(text: str, paths: dict[str, str]) -> str:
    """Replace ${name} variables in a string using the paths dict."""
    def _replace(match):
        key = match.group(1)
        if key not in paths:
            raise ValueError(f"Unknown path variable: ${{{key}}}")
        return paths[key]
    return re.sub(r"\$\{(\w+)\}", _replace, text)


# ── Color utilities ────────────────────────────────────────────────

def ffmpeg_color(value: str) -> str:
    """Convert a color name or hex string to ffmpeg's 0xRRGGBB[AA] form.

    Accepts anything Pillow's ImageColor understands: CSS names
    ('DarkCyan'), '#RGB', '#RRGGBB', '#RRGGBBAA', 'rgb(...)'. A bare
    6-digit hex string without '#' is accepted too. Fully opaque colors
    drop the alpha byte.
    """
    text = str(value).strip()
    if re.fullmatch(r"[0-9a-fA-F]{6}([0-9a-fA-F]{2})?", text):
        text = "#" + text
    try:
        rgba = ImageColor.getrgb(text)
    except ValueError:
        raise ValueError(f"Unknown color: '{value}'") from None
    r, g, b = rgba[:3]
    alpha = rgba[3] if len(rgba) == 4 else 0xFF
    if alpha == 0xFF:
        return f"0x{r:02X}{g:02X}{b:02X}"
    return f"0x{r:02X}{g:02X}{b:02X}{alpha:02X}"


# ── Numeric parsing ────────────────────────────────────────────────

# NTSC rates are written as decimals in most UIs but must stay exact.
_NTSC_RATES = {
    "23.976": Fraction(24000, 1001),
    "29.97": Fraction(30000, 1001),
    "59.94": Fraction(60000, 1001),
}


def parse_fps(value) -> Fraction:
    """Parse a framerate: 30, 29.97, '30000/1001' or a Fraction.

    Raises:
        ValueError: not a positive rate.
    """
    if isinstance(value, Fraction):
        fps = value
    else:
        text = str(value).strip()
        if text in _NTSC_RATES:
            fps = _NTSC_RATES[text]
        else:
            try:
                fps = Fraction(text)
            except (ValueError, ZeroDivisionError):
                raise ValueError(f"Invalid framerate: {value!r}") from None
    if fps <= 0:
        raise ValueError(f"Framerate must be > 0, got {value!r}")
    return fps


def format_fps(fps: Fraction) -> str:
    """Render a framerate the way ffmpeg expects ('30', '30000/1001')."""
    if fps.denominator == 1:
        return str(fps.numerator)
    return f"{fps.numerator}/{fps.denominator}"


def parse_resolution(value) -> tuple[int, int]:
    """Parse '1920x1080' or [1920, 1080] into a (width, height) tuple.

    Raises:
        ValueError: malformed or non-positive dimensions.
    """
    if isinstance(value, str):
        match = re.fullmatch(r"\s*(\d+)\s*[xX]\s*(\d+)\s*", value)
        if match is None:
            raise ValueError(f"Invalid resolution: '{value}'. Expected WIDTHxHEIGHT")
        width, height = int(match.group(1)), int(match.group(2))
    else:
        try:
            width, height = (int(v) for v in value)
        except (TypeError, ValueError):
            raise ValueError(f"Invalid resolution: {value!r}") from None
    if width <= 0 or height <= 0:
        raise ValueError(f"Resolution must be positive, got {width}x{height}")
    return width, height


# ── ffmpeg binary ──────────────────────────────────────────────────

def ffmpeg_exe(override: str | None = None) -> str:
    """Path of the ffmpeg binary: explicit override or imageio-ffmpeg's."""
    if override:
        return override
    return imageio_ffmpeg.get_ffmpeg_exe()
