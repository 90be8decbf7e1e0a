"""
Graph module - Tone-expansion filter graph compiler.

This module provides:
- ToneParameters / ToneCurve: The two user controls
- compile_command: Pure (intensity, curve) -> EncodeCommand
- FilterStage / Operation: Graph nodes and their FFmpeg rendering

Example:
    >>> from hdrify.graph import ToneParameters, compile_command
    >>> command = compile_command(ToneParameters(1.0, "hable"))
    >>> command.to_args()[:2]
    ['-i', 'input-video.mp4']
"""

from hdrify.graph.stages import (
    Operation,
    FilterStage,
    register_renderer,
    render_operation,
    validate_graph,
    serialize_graph,
)
from hdrify.graph.compiler import (
    INTENSITY_MIN,
    INTENSITY_MAX,
    INTENSITY_STEP,
    CODEC_PARAMS,
    ToneCurve,
    ToneParameters,
    EncodeCommand,
    build_filter_graph,
    compile_command,
    format_decimal,
    intensity_choices,
)

__all__ = [
    "Operation",
    "FilterStage",
    "register_renderer",
    "render_operation",
    "validate_graph",
    "serialize_graph",
    "INTENSITY_MIN",
    "INTENSITY_MAX",
    "INTENSITY_STEP",
    "CODEC_PARAMS",
    "ToneCurve",
    "ToneParameters",
    "EncodeCommand",
    "build_filter_graph",
    "compile_command",
    "format_decimal",
    "intensity_choices",
]
