"""Exception hierarchy for trackcompose.

Structural invariant violations inside the composition tree are
programming errors and stay plain ``assert`` statements. Everything a
caller can recover from derives from TrackComposeError.
"""


class TrackComposeError(Exception):
    """Base class for all recoverable trackcompose errors."""


class GraphError(TrackComposeError):
    """Filter graph wiring failed (bad pin index, pin kind, missing target)."""


class RenderRegionError(TrackComposeError):
    """Render regions could not be derived from the project."""


class RenderError(TrackComposeError):
    """A render job could not be prepared."""
