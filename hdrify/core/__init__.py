"""
Core module - Engine lifecycle, configuration and errors.
"""

from hdrify.core.config import Settings, load_config, save_config, get_env_config, resolve_settings
from hdrify.core.engine import FFmpegEngine, MediaEngine
from hdrify.core.handle import EngineHandle, EngineState
from hdrify.core.errors import (
    HdrifyError,
    InvalidParameterError,
    GraphError,
    EngineError,
    EngineInitError,
    EngineNotLoadedError,
    EngineExecError,
    ConversionError,
    ConversionInProgressError,
    ConversionStateError,
)

__all__ = [
    "Settings",
    "load_config",
    "save_config",
    "get_env_config",
    "resolve_settings",
    "FFmpegEngine",
    "MediaEngine",
    "EngineHandle",
    "EngineState",
    "HdrifyError",
    "InvalidParameterError",
    "GraphError",
    "EngineError",
    "EngineInitError",
    "EngineNotLoadedError",
    "EngineExecError",
    "ConversionError",
    "ConversionInProgressError",
    "ConversionStateError",
]
