"""Filter graph primitives: nodes with ordered, name-bound pins.

Connecting two pins writes each pin's name into the other's ``target``.
Nothing holds a reference to another node, so a finished graph is plain
data and renders straight to ffmpeg's ``-filter_complex`` syntax:

    [vf0][vf3]xfade=duration=1:offset=5[xfade0]
"""

from collections import Counter
from dataclasses import dataclass, field
from enum import Enum

from .errors import GraphError
from .filters import Filter
from .stream_ids import StreamNamer
from .timebase import Duration


class PinKind(Enum):
    VIDEO = "video"
    AUDIO = "audio"


@dataclass
class Pin:
    kind: PinKind
    name: str
    target: str | None = None


@dataclass
class InputSource:
    """A media file read from source_offset for length."""

    file: str
    source_offset: Duration
    length: Duration

    def args(self) -> list[str]:
        return ["-ss", str(self.source_offset), "-t", str(self.length), "-i", str(self.file)]


def _pins(counts: tuple[int, int], names: list[str]) -> list[Pin]:
    video, audio = counts
    kinds = [PinKind.VIDEO] * video + [PinKind.AUDIO] * audio
    return [Pin(kind, name) for kind, name in zip(kinds, names)]


@dataclass
class Node:
    content: Filter | InputSource
    inputs: list[Pin] = field(default_factory=list)
    outputs: list[Pin] = field(default_factory=list)

    @classmethod
    def from_filter(cls, flt: Filter, namer: StreamNamer, prefix: str) -> "Node":
        """Build a stage with fresh output labels and unbound input pins.

        Input pins are named after the first output label, so they are
        unique whenever output labels are.
        """
        n_out = sum(flt.num_sources())
        out_names = [namer.id(prefix) for _ in range(n_out)]
        stage = out_names[0] if out_names else namer.id(prefix)
        n_in = sum(flt.num_sinks())
        in_names = [f"{stage}_in{i}" for i in range(n_in)]
        return cls(flt, _pins(flt.num_sinks(), in_names), _pins(flt.num_sources(), out_names))

    @classmethod
    def from_input(cls, source: InputSource, namer: StreamNamer) -> "Node":
        """An input file node; its only output is the '<index>:v' stream."""
        return cls(source, [], [Pin(PinKind.VIDEO, namer.input_video_id())])

    @property
    def id(self) -> str:
        return self.outputs[0].name

    @property
    def is_input(self) -> bool:
        return isinstance(self.content, InputSource)

    def connect_sink(self, other: "Node", sink_index: int = 0, source_index: int = 0):
        """Feed other's output pin source_index into this node's input sink_index."""
        sink = _pin_at(self.inputs, sink_index, "sink", self)
        source = _pin_at(other.outputs, source_index, "source", other)
        _bind(source, sink)

    def connect_source(self, other: "Node", source_index: int = 0, sink_index: int = 0):
        """Feed this node's output source_index into other's input sink_index."""
        other.connect_sink(self, sink_index, source_index)

    def render(self) -> str:
        """One filtergraph stage: '[in0][in1]filter=...[out0]'.

        Raises:
            GraphError: called on an input node, or an input pin is unbound.
        """
        if self.is_input:
            raise GraphError(f"Input node '{self.id}' has no filter expression")
        labels = []
        for pin in self.inputs:
            if pin.target is None:
                raise GraphError(f"Sink '{pin.name}' of '{self.content.name}' is not connected")
            labels.append(f"[{pin.target}]")
        outs = "".join(f"[{pin.name}]" for pin in self.outputs)
        return "".join(labels) + self.content.render() + outs


def _pin_at(pins: list[Pin], index: int, role: str, node: Node) -> Pin:
    if not 0 <= index < len(pins):
        raise GraphError(
            f"{role} index {index} out of range for '{_describe(node)}' ({len(pins)} pins)"
        )
    return pins[index]


def _describe(node: Node) -> str:
    if node.is_input:
        return node.content.file
    return node.content.name


def _bind(source: Pin, sink: Pin):
    if source.kind != sink.kind:
        raise GraphError(
            f"Cannot connect {source.kind.value} pin '{source.name}' "
            f"to {sink.kind.value} pin '{sink.name}'"
        )
    source.target = sink.name
    sink.target = source.name


def check_unique_labels(nodes: list[Node]):
    """Raise GraphError if two pins anywhere in the graph share a name."""
    names = Counter(pin.name for node in nodes for pin in node.inputs + node.outputs)
    duplicates = sorted(name for name, count in names.items() if count > 1)
    if duplicates:
        raise GraphError(f"Duplicate stream labels: {', '.join(duplicates)}")


def filter_expression(nodes: list[Node]) -> str:
    """Join the rendered filter stages with ';' (input nodes are skipped)."""
    return ";".join(node.render() for node in nodes if not node.is_input)


def input_args(nodes: list[Node]) -> list[str]:
    """All '-ss/-t/-i' triples, in node order."""
    args = []
    for node in nodes:
        if node.is_input:
            args.extend(node.content.args())
    return args
