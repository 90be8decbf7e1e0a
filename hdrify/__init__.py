"""
hdrify - SDR to HDR Video Converter
===================================

Applies a parameterized tone-expansion transform to ordinary video clips
using a local FFmpeg engine.

Main modules:
- hdrify.graph: Filter graph compiler (intensity + tone curve -> command)
- hdrify.core: Engine handle, FFmpeg backend, configuration and errors
- hdrify.jobs: Conversion job orchestrator, log buffer and artifacts
- hdrify.utils: Source clip probing
- hdrify.web: Browser interface

Quick start:
    >>> import asyncio
    >>> from hdrify import EngineHandle, FFmpegEngine, ConversionOrchestrator, ToneParameters
    >>> async def convert(data):
    ...     async with EngineHandle(FFmpegEngine()) as handle:
    ...         async with ConversionOrchestrator(handle) as jobs:
    ...             await jobs.start_session()
    ...             jobs.select_source(data, "clip.mp4")
    ...             await jobs.start_conversion(ToneParameters(1.25, "hable"))
    ...             return jobs.result.read_bytes()
"""

__version__ = "0.1.0"

# Convenience imports
from hdrify.core import Settings, FFmpegEngine, EngineHandle, EngineState
from hdrify.graph import ToneCurve, ToneParameters, EncodeCommand, compile_command
from hdrify.jobs import ConversionOrchestrator, JobState, LogBuffer, OutputArtifact

__all__ = [
    "__version__",
    "Settings",
    "FFmpegEngine",
    "EngineHandle",
    "EngineState",
    "ToneCurve",
    "ToneParameters",
    "EncodeCommand",
    "compile_command",
    "ConversionOrchestrator",
    "JobState",
    "LogBuffer",
    "OutputArtifact",
]
