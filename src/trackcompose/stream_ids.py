"""Collision-free stream labels for one filter graph.

Every filter output in an ffmpeg ``-filter_complex`` expression is
addressed by a textual label. Reusing a label silently rewires the graph,
so all labels of one render come from a single StreamNamer: one
monotonic counter per short prefix ('vf', 'conc', 'xfade', 'bg').
Input streams are addressed by position ('0:v', '1:a') and use their own
counter, in the order inputs are added to the command line.
"""


class StreamNamer:
    """Hands out unique labels per prefix: vf0, vf1, conc0, ..."""

    def __init__(self):
        self._counters: dict[str, int] = {}
        self._inputs = 0

    def id(self, prefix: str) -> str:
        # 'a1' + '0' would collide with 'a' + '10'.
        if not prefix or prefix[-1].isdigit():
            raise ValueError(f"Stream prefix must not end with a digit: '{prefix}'")
        index = self._counters.get(prefix, 0)
        self._counters[prefix] = index + 1
        return f"{prefix}{index}"

    def input_index(self) -> int:
        """Reserve the next ffmpeg input index."""
        index = self._inputs
        self._inputs += 1
        return index

    def input_video_id(self) -> str:
        return f"{self.input_index()}:v"

    def input_audio_id(self) -> str:
        return f"{self.input_index()}:a"

    @property
    def inputs_used(self) -> int:
        return self._inputs
