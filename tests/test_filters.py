"""Tests for the filter library's textual rendering."""

import pytest

from trackcompose.filters import (
    ColorSource,
    ConcatFilter,
    CustomFilter,
    FpsFilter,
    PadFilter,
    ScaleFilter,
    SetsarFilter,
    XFadeFilter,
    custom_filters_from_specs,
    escape_value,
)
from trackcompose.timebase import Duration


class TestRender:
    def test_fps(self):
        assert FpsFilter(fps="30000/1001").render() == "fps=fps=30000/1001"

    def test_fps_no_options(self):
        assert FpsFilter().render() == "fps"

    def test_scale(self):
        flt = ScaleFilter(1920, 1080, force_original_aspect_ratio="decrease", force_divisible_by=2)
        assert flt.render() == (
            "scale=w=1920:h=1080:force_original_aspect_ratio=decrease:force_divisible_by=2"
        )

    def test_pad(self):
        flt = PadFilter(width="640", height="360", x="(ow-iw)/2", y="(oh-ih)/2", color="0x000000")
        assert flt.render() == "pad=width=640:height=360:x=(ow-iw)/2:y=(oh-ih)/2:color=0x000000"

    def test_setsar_ratio_avoids_colon(self):
        assert SetsarFilter(ratio="1/1").render() == "setsar=ratio=1/1"

    def test_concat(self):
        assert ConcatFilter().render() == "concat=n=2:v=1:a=0:unsafe=false"

    def test_xfade(self):
        flt = XFadeFilter(Duration.from_seconds(1), Duration.from_seconds(5), transition="fade")
        assert flt.render() == "xfade=transition=fade:duration=1:offset=5"

    def test_color(self):
        flt = ColorSource("0x000000", 640, 360, "30", Duration.from_seconds(2.5))
        assert flt.render() == "color=c=0x000000:s=640x360:r=30:d=2.5"

    def test_custom(self):
        flt = CustomFilter("eq", {"brightness": 0.1, "contrast": 1.2})
        assert flt.render() == "eq=brightness=0.1:contrast=1.2"

    def test_custom_without_options(self):
        assert CustomFilter("hflip").render() == "hflip"


class TestPins:
    def test_single_stage_filters(self):
        assert FpsFilter().num_sinks() == (1, 0)
        assert FpsFilter().num_sources() == (1, 0)

    def test_concat_counts(self):
        flt = ConcatFilter(segments=3, video_streams=1, audio_streams=1)
        assert flt.num_sinks() == (3, 3)
        assert flt.num_sources() == (1, 1)

    def test_xfade_two_sinks(self):
        assert XFadeFilter(Duration(1), Duration(0)).num_sinks() == (2, 0)

    def test_color_no_sinks(self):
        assert ColorSource("red", 2, 2, "1", Duration(1)).num_sinks() == (0, 0)


class TestValidation:
    def test_unknown_transition(self):
        with pytest.raises(ValueError, match="Unknown xfade transition"):
            XFadeFilter(Duration(1), Duration(0), transition="spin")

    def test_expression_needs_custom(self):
        with pytest.raises(ValueError, match="custom"):
            XFadeFilter(Duration(1), Duration(0), transition="fade", expression="A")

    def test_bad_aspect_option(self):
        with pytest.raises(ValueError, match="force_original_aspect_ratio"):
            ScaleFilter(10, 10, force_original_aspect_ratio="stretch")

    def test_bad_fps_rounding(self):
        with pytest.raises(ValueError, match="rounding"):
            FpsFilter(round="sideways")

    def test_bad_custom_name(self):
        with pytest.raises(ValueError, match="Invalid filter name"):
            CustomFilter("eq;drop")


class TestEscapeValue:
    def test_plain(self):
        assert escape_value("0x000000") == "0x000000"

    def test_bool(self):
        assert escape_value(True) == "true"

    def test_colon_quoted(self):
        assert escape_value("a:b") == "'a\\:b'"

    def test_graph_delimiters_quoted(self):
        assert escape_value("a,b") == "'a,b'"


class TestCustomFiltersFromSpecs:
    def test_builds_filters(self):
        filters = custom_filters_from_specs(
            [{"name": "hflip"}, {"name": "eq", "options": {"gamma": 1.1}}], "Track 0",
        )
        assert [f.render() for f in filters] == ["hflip", "eq=gamma=1.1"]

    def test_none_is_empty(self):
        assert custom_filters_from_specs(None, "x") == []

    def test_missing_name(self):
        with pytest.raises(ValueError, match="Track 0: filter 0 needs a 'name'"):
            custom_filters_from_specs([{"options": {}}], "Track 0")

    def test_options_must_be_mapping(self):
        with pytest.raises(ValueError, match="options must be a mapping"):
            custom_filters_from_specs([{"name": "eq", "options": [1]}], "x")
