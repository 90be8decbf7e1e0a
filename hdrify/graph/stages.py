"""
Filter stages and their FFmpeg rendering.

A filter graph is an ordered list of FilterStage objects. Each stage names
the pads it consumes and produces; serialize_graph() renders the list into
a single FFmpeg filter-graph expression, one chain per stage joined by ';'.

Each operation has a renderer registered with @register_renderer that turns
the stage parameters into the filter text between the pad labels.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, Mapping

from hdrify.core.errors import GraphError


class Operation(Enum):
    """Kinds of filter stage the compiler emits."""
    COLOR_SPACE_CONVERT = "ColorSpaceConvert"
    SPLIT = "Split"
    GAMMA_ADJUST = "GammaAdjust"
    CURVES_ADJUST = "CurvesAdjust"
    BLEND = "Blend"
    TONE_MAP = "ToneMap"
    FINAL_CONVERT = "FinalConvert"


@dataclass(frozen=True)
class FilterStage:
    """
    One node of a filter graph.

    Attributes:
        name: Stage identifier, unique within a graph
        operation: What the stage does
        parameters: Ordered string parameters, already formatted
        input_pads: Labels consumed, in order (empty = the chain's default input)
        output_pads: Labels produced, in order (empty = the chain's default output)
    """
    name: str
    operation: Operation
    parameters: Mapping[str, str] = field(default_factory=dict)
    input_pads: tuple[str, ...] = ()
    output_pads: tuple[str, ...] = ()

    def render(self) -> str:
        """Render this stage as one filter chain with its pad labels."""
        body = render_operation(self.operation, self.parameters)
        inputs = "".join(f"[{pad}]" for pad in self.input_pads)
        outputs = "".join(f"[{pad}]" for pad in self.output_pads)
        return f"{inputs}{body}{outputs}"


# Registry of operation renderers
_RENDERERS: Dict[Operation, Callable[[Mapping[str, str]], str]] = {}


def register_renderer(operation: Operation):
    """Decorator to register the renderer of an operation."""
    def decorator(func: Callable[[Mapping[str, str]], str]):
        _RENDERERS[operation] = func
        return func
    return decorator


def render_operation(operation: Operation, parameters: Mapping[str, str]) -> str:
    """Render an operation's filter text from its parameters."""
    if operation not in _RENDERERS:
        raise GraphError(f"No renderer for operation: {operation.value}")
    return _RENDERERS[operation](parameters)


def _options(parameters: Mapping[str, str], keys: tuple[str, ...]) -> str:
    """Join key=value pairs with ':' in the given key order."""
    missing = [k for k in keys if k not in parameters]
    if missing:
        raise GraphError(f"Missing filter parameters: {missing}")
    return ":".join(f"{k}={parameters[k]}" for k in keys)


# =============================================================================
# Built-in Renderers
# =============================================================================

@register_renderer(Operation.COLOR_SPACE_CONVERT)
def render_color_space_convert(parameters: Mapping[str, str]) -> str:
    return "zscale=" + _options(parameters, ("transfer", "matrix", "primaries"))


@register_renderer(Operation.SPLIT)
def render_split(parameters: Mapping[str, str]) -> str:
    return f"split={parameters['outputs']}"


@register_renderer(Operation.GAMMA_ADJUST)
def render_gamma_adjust(parameters: Mapping[str, str]) -> str:
    return "eq=" + _options(parameters, ("gamma", "saturation"))


@register_renderer(Operation.CURVES_ADJUST)
def render_curves_adjust(parameters: Mapping[str, str]) -> str:
    return "curves=" + _options(parameters, ("preset", "intensity"))


@register_renderer(Operation.BLEND)
def render_blend(parameters: Mapping[str, str]) -> str:
    return f"blend=all_mode='{parameters['all_mode']}'"


@register_renderer(Operation.TONE_MAP)
def render_tone_map(parameters: Mapping[str, str]) -> str:
    # Curve is the positional first option of ffmpeg's tonemap filter
    return f"tonemap={parameters['curve']}:" + _options(parameters, ("desat", "peak"))


@register_renderer(Operation.FINAL_CONVERT)
def render_final_convert(parameters: Mapping[str, str]) -> str:
    zscale = "zscale=" + _options(parameters, ("matrix", "primaries", "transfer"))
    return f"{zscale},format={parameters['pix_fmt']}"


# =============================================================================
# Graph helpers
# =============================================================================

def validate_graph(stages: list[FilterStage] | tuple[FilterStage, ...]) -> None:
    """
    Check that a stage list is a valid flattened DAG.

    Every labelled input pad must have been produced by an earlier stage and
    may be consumed only once; output labels and stage names must be unique.

    Raises:
        GraphError: On the first violation found
    """
    if not stages:
        raise GraphError("Filter graph has no stages")

    names: set[str] = set()
    available: set[str] = set()
    produced: set[str] = set()

    for stage in stages:
        if stage.name in names:
            raise GraphError(f"Duplicate stage name: {stage.name}")
        names.add(stage.name)

        for pad in stage.input_pads:
            if pad not in available:
                if pad in produced:
                    raise GraphError(f"Stage {stage.name} reuses consumed pad [{pad}]")
                raise GraphError(
                    f"Stage {stage.name} consumes [{pad}] before any stage produces it"
                )
            available.remove(pad)

        for pad in stage.output_pads:
            if pad in produced:
                raise GraphError(f"Stage {stage.name} redefines pad [{pad}]")
            produced.add(pad)
            available.add(pad)


def serialize_graph(stages: list[FilterStage] | tuple[FilterStage, ...]) -> str:
    """Validate and render stages into one filter-graph expression."""
    validate_graph(stages)
    return ";".join(stage.render() for stage in stages)
