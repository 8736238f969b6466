"""Tests for filter graph nodes and pin binding."""

import pytest

from trackcompose.errors import GraphError
from trackcompose.filters import ConcatFilter, FpsFilter, XFadeFilter
from trackcompose.graph import (
    InputSource, Node, Pin, PinKind, check_unique_labels, filter_expression, input_args,
)
from trackcompose.stream_ids import StreamNamer
from trackcompose.timebase import Duration


def _input(namer, name="a.mp4"):
    return Node.from_input(InputSource(name, Duration.from_seconds(1), Duration.from_seconds(4)), namer)


class TestNodeConstruction:
    def test_filter_node_labels(self):
        namer = StreamNamer()
        node = Node.from_filter(FpsFilter(fps="30"), namer, "vf")
        assert node.id == "vf0"
        assert [p.name for p in node.inputs] == ["vf0_in0"]
        assert all(p.target is None for p in node.inputs + node.outputs)

    def test_concat_audio_pins(self):
        node = Node.from_filter(ConcatFilter(audio_streams=1), StreamNamer(), "conc")
        assert [p.kind for p in node.inputs] == [
            PinKind.VIDEO, PinKind.VIDEO, PinKind.AUDIO, PinKind.AUDIO,
        ]
        assert [p.kind for p in node.outputs] == [PinKind.VIDEO, PinKind.AUDIO]

    def test_input_node(self):
        node = _input(StreamNamer())
        assert node.id == "0:v"
        assert node.is_input
        assert node.content.args() == ["-ss", "1", "-t", "4", "-i", "a.mp4"]


class TestConnect:
    def test_binding_is_symmetric(self):
        namer = StreamNamer()
        src = _input(namer)
        fps = Node.from_filter(FpsFilter(fps="30"), namer, "vf")
        fps.connect_sink(src)
        assert fps.inputs[0].target == "0:v"
        assert src.outputs[0].target == "vf0_in0"

    def test_connect_source_mirrors_connect_sink(self):
        namer = StreamNamer()
        src = _input(namer)
        fps = Node.from_filter(FpsFilter(), namer, "vf")
        src.connect_source(fps)
        assert fps.inputs[0].target == "0:v"

    def test_sink_index_out_of_range(self):
        namer = StreamNamer()
        fps = Node.from_filter(FpsFilter(), namer, "vf")
        with pytest.raises(GraphError, match="sink index 1 out of range"):
            fps.connect_sink(_input(namer), sink_index=1)

    def test_source_index_out_of_range(self):
        namer = StreamNamer()
        fps = Node.from_filter(FpsFilter(), namer, "vf")
        with pytest.raises(GraphError, match="source index 2 out of range"):
            fps.connect_sink(_input(namer), source_index=2)

    def test_kind_mismatch(self):
        namer = StreamNamer()
        concat = Node.from_filter(ConcatFilter(audio_streams=1), namer, "conc")
        with pytest.raises(GraphError, match="Cannot connect video pin"):
            concat.connect_sink(_input(namer), sink_index=2)


class TestRender:
    def test_two_input_stage(self):
        namer = StreamNamer()
        a, b = _input(namer, "a.mp4"), _input(namer, "b.mp4")
        xfade = Node.from_filter(
            XFadeFilter(Duration.from_seconds(1), Duration.from_seconds(3), transition="fade"),
            namer, "xfade",
        )
        xfade.connect_sink(a, 0)
        xfade.connect_sink(b, 1)
        assert xfade.render() == "[0:v][1:v]xfade=transition=fade:duration=1:offset=3[xfade0]"

    def test_unbound_sink(self):
        node = Node.from_filter(FpsFilter(), StreamNamer(), "vf")
        with pytest.raises(GraphError, match="not connected"):
            node.render()

    def test_input_node_has_no_expression(self):
        with pytest.raises(GraphError):
            _input(StreamNamer()).render()

    def test_expression_and_args(self):
        namer = StreamNamer()
        src = _input(namer)
        fps = Node.from_filter(FpsFilter(fps="25"), namer, "vf")
        fps.connect_sink(src)
        nodes = [src, fps]
        assert filter_expression(nodes) == "[0:v]fps=fps=25[vf0]"
        assert input_args(nodes) == ["-ss", "1", "-t", "4", "-i", "a.mp4"]


class TestUniqueLabels:
    def test_unique_passes(self):
        namer = StreamNamer()
        check_unique_labels([Node.from_filter(FpsFilter(), namer, "vf") for _ in range(3)])

    def test_duplicate_raises(self):
        nodes = [
            Node.from_filter(FpsFilter(), StreamNamer(), "vf"),
            Node.from_filter(FpsFilter(), StreamNamer(), "vf"),
        ]
        with pytest.raises(GraphError, match="Duplicate stream labels: vf0, vf0_in0"):
            check_unique_labels(nodes)

    def test_hand_built_duplicate(self):
        node = Node(FpsFilter(), [Pin(PinKind.VIDEO, "x")], [Pin(PinKind.VIDEO, "x")])
        with pytest.raises(GraphError):
            check_unique_labels([node])
