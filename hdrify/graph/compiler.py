"""
Tone-expansion filter graph compiler.

compile_command() turns two user controls, an intensity scalar and a
tone-mapping curve, into a complete EncodeCommand: the nine-stage filter
graph plus fixed 10-bit HEVC encode parameters.

The compiler is pure. Identical parameters always produce an equal command
and byte-identical argument lists, so every number is formatted with exactly
two decimals using round-half-up on the float's exact value.

Example:
    >>> from hdrify.graph import ToneParameters, compile_command
    >>> command = compile_command(ToneParameters(1.25, "mobius"))
    >>> command.filter_graph[2].parameters["gamma"]
    '1.10'
"""

import math
import shlex
from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from typing import Mapping

from hdrify.core.errors import InvalidParameterError
from hdrify.graph.stages import FilterStage, Operation, serialize_graph


INTENSITY_MIN = 1.0
INTENSITY_MAX = 1.7
INTENSITY_STEP = 0.05

DEFAULT_INPUT_NAME = "input-video.mp4"
DEFAULT_OUTPUT_NAME = "hdr-output.mp4"

# Nominal peak luminance handed to the tone mapper, in nits
PEAK_LUMINANCE = 1000

CODEC_PARAMS: Mapping[str, str] = {
    "c:v": "libx265",
    "preset": "medium",
    "pix_fmt": "yuv420p10le",
    "tag:v": "hvc1",  # QuickTime/Safari only play HEVC tagged hvc1
    "c:a": "copy",
}


class ToneCurve(Enum):
    """Tone-mapping curves supported by the tonemap stage."""
    HABLE = "hable"
    MOBIUS = "mobius"
    REINHARD = "reinhard"

    @property
    def label(self) -> str:
        """Human-readable name for selectors."""
        return _CURVE_LABELS[self]

    @classmethod
    def parse(cls, value: "ToneCurve | str") -> "ToneCurve":
        """
        Resolve a curve from an enum member or a case-insensitive name.

        Raises:
            InvalidParameterError: If the name is not a supported curve
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                pass
        choices = ", ".join(c.value for c in cls)
        raise InvalidParameterError(f"Unknown tone curve: {value!r}. Available: {choices}")


_CURVE_LABELS = {
    ToneCurve.HABLE: "Hable (Filmic)",
    ToneCurve.MOBIUS: "Mobius (Balanced)",
    ToneCurve.REINHARD: "Reinhard (Natural)",
}


@dataclass(frozen=True)
class ToneParameters:
    """The two user controls. Validated by compile_command()."""
    intensity: float = 1.25
    curve: ToneCurve | str = ToneCurve.HABLE


@dataclass(frozen=True)
class EncodeCommand:
    """
    Everything the engine needs for one conversion.

    Attributes:
        input_name: Scratch name the source is written under
        output_name: Scratch name the engine writes the result to
        filter_graph: Ordered filter stages
        codec_params: Ordered encoder options, keys without the leading dash
    """
    input_name: str
    output_name: str
    filter_graph: tuple[FilterStage, ...]
    codec_params: Mapping[str, str] = field(default_factory=lambda: dict(CODEC_PARAMS))

    @property
    def filter_expression(self) -> str:
        """The serialized filter graph passed to -vf."""
        return serialize_graph(self.filter_graph)

    def to_args(self) -> list[str]:
        """Build the engine argument list."""
        args = ["-i", self.input_name, "-vf", self.filter_expression]
        for key, value in self.codec_params.items():
            args.extend([f"-{key}", value])
        args.append(self.output_name)
        return args

    def describe(self) -> str:
        """Shell-quoted command line, for previews and logs."""
        return shlex.join(["ffmpeg", *self.to_args()])


def format_decimal(value: float) -> str:
    """Format with exactly two decimals, rounding half up (0.375 -> '0.38')."""
    return str(Decimal(value).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def validate_parameters(params: ToneParameters) -> tuple[float, ToneCurve]:
    """
    Check the tone parameters and return (intensity, curve).

    Raises:
        InvalidParameterError: If intensity is not a number in
            [INTENSITY_MIN, INTENSITY_MAX] or the curve is unknown
    """
    intensity = params.intensity
    if isinstance(intensity, bool) or not isinstance(intensity, (int, float)):
        raise InvalidParameterError(f"Intensity must be a number, got {intensity!r}")
    intensity = float(intensity)
    if math.isnan(intensity) or not INTENSITY_MIN <= intensity <= INTENSITY_MAX:
        raise InvalidParameterError(
            f"Intensity {intensity} outside [{INTENSITY_MIN:.2f}, {INTENSITY_MAX:.2f}]"
        )
    return intensity, ToneCurve.parse(params.curve)


def build_filter_graph(params: ToneParameters) -> tuple[FilterStage, ...]:
    """
    Derive the ordered tone-expansion stages.

    The normalized signal is split into three branches. The luma branch gets
    a gamma/saturation ramp, the mid and hi branches get contrast curves
    scaled by intensity. Screen-blending luma with mid and then lightening
    with hi gives one expanded signal, which is tone mapped and converted to
    BT.2020/PQ 10-bit.
    """
    intensity, curve = validate_parameters(params)

    gamma = format_decimal(0.9 + (intensity - 1) * 0.8)
    saturation = format_decimal(intensity)
    midtones = format_decimal(0.2 * intensity)
    highlights = format_decimal(0.3 * intensity)
    desaturation = format_decimal(1.25 / intensity)

    return (
        FilterStage(
            "normalize", Operation.COLOR_SPACE_CONVERT,
            {"transfer": "bt709", "matrix": "bt709", "primaries": "bt709"},
        ),
        FilterStage(
            "split", Operation.SPLIT, {"outputs": "3"},
            output_pads=("luma", "mid", "hi"),
        ),
        FilterStage(
            "luma_gamma", Operation.GAMMA_ADJUST,
            {"gamma": gamma, "saturation": saturation},
            input_pads=("luma",), output_pads=("luma_adj",),
        ),
        FilterStage(
            "mid_curves", Operation.CURVES_ADJUST,
            {"preset": "medium_contrast", "intensity": midtones},
            input_pads=("mid",), output_pads=("mid_adj",),
        ),
        FilterStage(
            "hi_curves", Operation.CURVES_ADJUST,
            {"preset": "strong_contrast", "intensity": highlights},
            input_pads=("hi",), output_pads=("hi_adj",),
        ),
        FilterStage(
            "screen_blend", Operation.BLEND, {"all_mode": "screen"},
            input_pads=("luma_adj", "mid_adj"), output_pads=("mix1",),
        ),
        FilterStage(
            "lighten_blend", Operation.BLEND, {"all_mode": "lighten"},
            input_pads=("mix1", "hi_adj"), output_pads=("pre_hdr",),
        ),
        FilterStage(
            "tonemap", Operation.TONE_MAP,
            {"curve": curve.value, "desat": desaturation, "peak": str(PEAK_LUMINANCE)},
            input_pads=("pre_hdr",), output_pads=("z",),
        ),
        FilterStage(
            "hdr_convert", Operation.FINAL_CONVERT,
            {
                "matrix": "bt2020ncl",
                "primaries": "bt2020",
                "transfer": "smpte2084",
                "pix_fmt": CODEC_PARAMS["pix_fmt"],
            },
            input_pads=("z",),
        ),
    )


def compile_command(
    params: ToneParameters,
    input_name: str = DEFAULT_INPUT_NAME,
    output_name: str = DEFAULT_OUTPUT_NAME,
) -> EncodeCommand:
    """
    Compile tone parameters into an EncodeCommand.

    Args:
        params: Intensity and tone curve
        input_name: Scratch name for the source clip
        output_name: Scratch name for the result

    Raises:
        InvalidParameterError: If the parameters are out of range
    """
    return EncodeCommand(
        input_name=input_name,
        output_name=output_name,
        filter_graph=build_filter_graph(params),
        codec_params=dict(CODEC_PARAMS),
    )


def intensity_choices() -> list[float]:
    """Intensity values offered by selectors, from min to max in steps."""
    count = round((INTENSITY_MAX - INTENSITY_MIN) / INTENSITY_STEP)
    return [round(INTENSITY_MIN + i * INTENSITY_STEP, 2) for i in range(count + 1)]
