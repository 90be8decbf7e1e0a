"""
Tests for the filter graph compiler.
"""

import math

import pytest


EXPECTED_GRAPH_1_0_HABLE = (
    "zscale=transfer=bt709:matrix=bt709:primaries=bt709;"
    "split=3[luma][mid][hi];"
    "[luma]eq=gamma=0.90:saturation=1.00[luma_adj];"
    "[mid]curves=preset=medium_contrast:intensity=0.20[mid_adj];"
    "[hi]curves=preset=strong_contrast:intensity=0.30[hi_adj];"
    "[luma_adj][mid_adj]blend=all_mode='screen'[mix1];"
    "[mix1][hi_adj]blend=all_mode='lighten'[pre_hdr];"
    "[pre_hdr]tonemap=hable:desat=1.25:peak=1000[z];"
    "[z]zscale=matrix=bt2020ncl:primaries=bt2020:transfer=smpte2084,format=yuv420p10le"
)


class TestFormatDecimal:
    """Tests for two-decimal formatting."""

    def test_trailing_zeros_kept(self):
        """Test that whole and one-decimal values keep two digits."""
        from hdrify.graph import format_decimal

        assert format_decimal(1.0) == "1.00"
        assert format_decimal(0.9) == "0.90"
        assert format_decimal(1000) == "1000.00"

    def test_half_rounds_up(self):
        """Test that an exact half rounds away from zero."""
        from hdrify.graph import format_decimal

        assert format_decimal(0.375) == "0.38"
        assert format_decimal(0.125) == "0.13"

    def test_float_noise(self):
        """Test values carrying binary representation noise."""
        from hdrify.graph import format_decimal

        assert format_decimal(0.9 + 0.25 * 0.8) == "1.10"
        assert format_decimal(0.3 * 1.0) == "0.30"


class TestCompileCommand:
    """Tests for compile_command."""

    def test_determinism(self):
        """Test that identical parameters give identical commands."""
        from hdrify.graph import ToneParameters, compile_command

        params = ToneParameters(1.35, "reinhard")
        first = compile_command(params)
        second = compile_command(ToneParameters(1.35, "reinhard"))

        assert first == second
        assert first.to_args() == second.to_args()
        assert first.describe() == second.describe()

    def test_numeric_derivation(self):
        """Test derived numbers at intensity 1.25 with mobius."""
        from hdrify.graph import ToneParameters, compile_command

        stages = compile_command(ToneParameters(1.25, "mobius")).filter_graph
        by_name = {stage.name: stage.parameters for stage in stages}

        assert by_name["luma_gamma"] == {"gamma": "1.10", "saturation": "1.25"}
        assert by_name["mid_curves"]["intensity"] == "0.25"
        assert by_name["hi_curves"]["intensity"] == "0.38"
        assert by_name["tonemap"]["desat"] == "1.00"
        assert by_name["tonemap"]["curve"] == "mobius"
        assert by_name["tonemap"]["peak"] == "1000"

    def test_minimum_intensity_runs_full_pipeline(self):
        """Test that intensity 1.0 still compiles every stage."""
        from hdrify.graph import Operation, ToneParameters, compile_command

        command = compile_command(ToneParameters(1.0, "hable"))

        assert [s.operation for s in command.filter_graph] == [
            Operation.COLOR_SPACE_CONVERT,
            Operation.SPLIT,
            Operation.GAMMA_ADJUST,
            Operation.CURVES_ADJUST,
            Operation.CURVES_ADJUST,
            Operation.BLEND,
            Operation.BLEND,
            Operation.TONE_MAP,
            Operation.FINAL_CONVERT,
        ]
        assert command.filter_expression == EXPECTED_GRAPH_1_0_HABLE

    def test_maximum_intensity(self):
        """Test the upper bound is accepted."""
        from hdrify.graph import ToneParameters, compile_command

        command = compile_command(ToneParameters(1.7, "hable"))
        tonemap = command.filter_graph[7]
        assert tonemap.parameters["desat"] == "0.74"
        assert command.filter_graph[2].parameters["saturation"] == "1.70"

    def test_argument_list(self):
        """Test the engine argument list layout."""
        from hdrify.graph import ToneParameters, compile_command

        args = compile_command(ToneParameters(1.0, "hable")).to_args()

        assert args == [
            "-i", "input-video.mp4",
            "-vf", EXPECTED_GRAPH_1_0_HABLE,
            "-c:v", "libx265",
            "-preset", "medium",
            "-pix_fmt", "yuv420p10le",
            "-tag:v", "hvc1",
            "-c:a", "copy",
            "hdr-output.mp4",
        ]

    def test_custom_scratch_names(self):
        """Test that scratch names are passed through."""
        from hdrify.graph import ToneParameters, compile_command

        command = compile_command(ToneParameters(), input_name="a.mov", output_name="b.mp4")
        args = command.to_args()
        assert args[1] == "a.mov"
        assert args[-1] == "b.mp4"

    def test_curve_names(self):
        """Test curve parsing from names and enum members."""
        from hdrify.graph import ToneCurve, ToneParameters, compile_command

        upper = compile_command(ToneParameters(1.2, "REINHARD"))
        member = compile_command(ToneParameters(1.2, ToneCurve.REINHARD))
        assert upper == member

    @pytest.mark.parametrize("intensity", [0.99, 1.71, -1.0, math.nan, math.inf])
    def test_intensity_out_of_range(self, intensity):
        """Test that out-of-range intensities are refused, not clamped."""
        from hdrify.core.errors import InvalidParameterError
        from hdrify.graph import ToneParameters, compile_command

        with pytest.raises(InvalidParameterError):
            compile_command(ToneParameters(intensity, "hable"))

    @pytest.mark.parametrize("intensity", ["1.2", None, True])
    def test_intensity_not_a_number(self, intensity):
        """Test that non-numeric intensities are refused."""
        from hdrify.core.errors import InvalidParameterError
        from hdrify.graph import ToneParameters, compile_command

        with pytest.raises(InvalidParameterError):
            compile_command(ToneParameters(intensity, "hable"))

    def test_unknown_curve(self):
        """Test that an unrecognized curve name is refused."""
        from hdrify.core.errors import InvalidParameterError
        from hdrify.graph import ToneParameters, compile_command

        with pytest.raises(InvalidParameterError, match="aces"):
            compile_command(ToneParameters(1.25, "aces"))

    def test_invalid_parameter_is_value_error(self):
        """Test that callers can catch parameter errors as ValueError."""
        from hdrify.graph import ToneParameters, compile_command

        with pytest.raises(ValueError):
            compile_command(ToneParameters(2.0, "hable"))

    def test_intensity_choices(self):
        """Test selector values from 1.00 to 1.70 in 0.05 steps."""
        from hdrify.graph import intensity_choices

        choices = intensity_choices()
        assert len(choices) == 15
        assert choices[0] == 1.0
        assert choices[-1] == 1.7
        assert 1.25 in choices


class TestGraphValidation:
    """Tests for filter graph ordering rules."""

    def test_compiled_graph_is_valid(self):
        """Test that compiled graphs pass validation."""
        from hdrify.graph import ToneParameters, build_filter_graph, validate_graph

        validate_graph(build_filter_graph(ToneParameters(1.5, "mobius")))

    def test_pad_used_before_produced(self):
        """Test that consuming an unknown pad fails."""
        from hdrify.core.errors import GraphError
        from hdrify.graph import FilterStage, Operation, validate_graph

        stages = [
            FilterStage("blend", Operation.BLEND, {"all_mode": "screen"},
                        input_pads=("a", "b"), output_pads=("c",)),
        ]
        with pytest.raises(GraphError, match="before any stage produces"):
            validate_graph(stages)

    def test_pad_consumed_twice(self):
        """Test that a pad can only feed one stage."""
        from hdrify.core.errors import GraphError
        from hdrify.graph import FilterStage, Operation, validate_graph

        stages = [
            FilterStage("split", Operation.SPLIT, {"outputs": "1"}, output_pads=("a",)),
            FilterStage("eq1", Operation.GAMMA_ADJUST, {"gamma": "1", "saturation": "1"},
                        input_pads=("a",), output_pads=("b",)),
            FilterStage("eq2", Operation.GAMMA_ADJUST, {"gamma": "1", "saturation": "1"},
                        input_pads=("a",), output_pads=("c",)),
        ]
        with pytest.raises(GraphError, match="reuses"):
            validate_graph(stages)

    def test_duplicate_stage_name(self):
        """Test that stage names are unique."""
        from hdrify.core.errors import GraphError
        from hdrify.graph import FilterStage, Operation, validate_graph

        stages = [
            FilterStage("s", Operation.SPLIT, {"outputs": "2"}, output_pads=("a", "b")),
            FilterStage("s", Operation.BLEND, {"all_mode": "screen"},
                        input_pads=("a", "b")),
        ]
        with pytest.raises(GraphError, match="Duplicate"):
            validate_graph(stages)

    def test_empty_graph(self):
        """Test that an empty graph is rejected."""
        from hdrify.core.errors import GraphError
        from hdrify.graph import serialize_graph

        with pytest.raises(GraphError):
            serialize_graph([])

    def test_missing_parameter(self):
        """Test that a renderer reports missing parameters."""
        from hdrify.core.errors import GraphError
        from hdrify.graph import FilterStage, Operation

        stage = FilterStage("eq", Operation.GAMMA_ADJUST, {"gamma": "1.00"})
        with pytest.raises(GraphError, match="saturation"):
            stage.render()

    def test_stage_render(self):
        """Test pad labels around the filter text."""
        from hdrify.graph import FilterStage, Operation

        stage = FilterStage("blend", Operation.BLEND, {"all_mode": "lighten"},
                            input_pads=("x", "y"), output_pads=("z",))
        assert stage.render() == "[x][y]blend=all_mode='lighten'[z]"
