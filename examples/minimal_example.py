#!/usr/bin/env python3
"""
Minimal Example: hdrify API Usage
=================================

Shows the essential API calls without extra boilerplate.
This is the "quick reference" version.
"""

import asyncio
from pathlib import Path

from hdrify import (
    ConversionOrchestrator,
    EngineHandle,
    FFmpegEngine,
    JobState,
    ToneParameters,
    compile_command,
)
from hdrify.utils import get_video_properties


# =============================================================================
# STEP 1: COMPILE
# Equivalent to: hdrify graph -i 1.4 -t mobius
# =============================================================================

params = ToneParameters(intensity=1.4, curve="mobius")
command = compile_command(params)

for stage in command.filter_graph:
    print(f"{stage.name:14s} {stage.render()}")
print(command.describe())


# =============================================================================
# STEP 2: CONVERT
# Equivalent to: hdrify convert beach.mp4 -i 1.4 -t mobius
# =============================================================================

input_video = Path("beach.mp4")
print("Source:", get_video_properties(input_video))


async def convert():
    async with EngineHandle(FFmpegEngine()) as handle:
        async with ConversionOrchestrator(handle) as jobs:
            await jobs.start_session()
            jobs.select_source(input_video.read_bytes(), input_video.name)

            state = await jobs.start_conversion(params)
            if state is not JobState.COMPLETED:
                print(jobs.error_message)
                print("\n".join(jobs.logs))
                return None
            return jobs.result.save(input_video.with_name("beach_hdr.mp4"))


saved = asyncio.run(convert())
if saved:
    print("HDR video:", saved)
