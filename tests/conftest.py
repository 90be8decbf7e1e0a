"""
Shared fixtures: an in-memory media engine and a scripted ffmpeg stand-in.
"""

import asyncio
import os
import stat
import sys

import pytest


class FakeEngine:
    """In-memory MediaEngine that records every call."""

    def __init__(self, output=b"\x00\x00\x00\x18ftypmp42HDR", returncode=0,
                 fail_load=False, log_lines=("Input #0, mov", "frame=1", "frame=2")):
        self.output = output
        self.returncode = returncode
        self.fail_load = fail_load
        self.log_lines = list(log_lines)
        self.files = {}
        self.load_calls = 0
        self.exec_calls = []
        self.deleted = []
        self.closed = False
        self.exec_gate = None
        self.exec_started = None
        self.exec_error = None
        self._log_callback = None

    def on_log(self, callback):
        self._log_callback = callback

    def emit(self, line):
        if self._log_callback is not None:
            self._log_callback(line)

    async def load(self):
        self.load_calls += 1
        # Yield so concurrent callers can pile up on the in-flight load
        await asyncio.sleep(0)
        await asyncio.sleep(0)
        if self.fail_load:
            raise RuntimeError("engine runtime unavailable")

    async def write_file(self, name, data):
        self.files[name] = bytes(data)

    async def exec(self, args):
        self.exec_calls.append(list(args))
        if self.exec_started is not None:
            self.exec_started.set()
        for line in self.log_lines:
            self.emit(line)
        if self.exec_error is not None:
            raise self.exec_error
        if self.exec_gate is not None:
            await self.exec_gate.wait()
        if self.returncode == 0 and self.output is not None:
            self.files[args[-1]] = self.output
        return self.returncode

    async def read_file(self, name):
        if name not in self.files:
            raise FileNotFoundError(name)
        return self.files[name]

    async def delete_file(self, name):
        self.deleted.append(name)
        if name not in self.files:
            raise FileNotFoundError(name)
        del self.files[name]

    def close(self):
        self.closed = True

    def status(self):
        return {
            "backend": "fake",
            "platform": sys.platform,
            "binary": "",
            "version": "fake 1.0",
            "loaded": self.load_calls > 0 and not self.fail_load,
            "missing_filters": [],
            "missing_encoders": [],
        }


@pytest.fixture
def fake_engine():
    return FakeEngine()


@pytest.fixture
def handle(fake_engine):
    from hdrify.core.handle import EngineHandle
    return EngineHandle(fake_engine)


@pytest.fixture
def orchestrator(handle, tmp_path):
    from hdrify.jobs import ConversionOrchestrator, OutputArtifact

    jobs = ConversionOrchestrator(
        handle,
        artifact_factory=lambda data: OutputArtifact(data, directory=tmp_path),
    )
    yield jobs
    jobs.close()


FAKE_FFMPEG = """#!/bin/sh
case "$2" in
  -version)
    echo "ffmpeg version 6.1-fake Copyright (c) 2000-2023"
    exit 0;;
  -filters)
    echo "Filters:"
    echo "  T.. = Timeline support"
    echo " ------"
{filters}
    exit 0;;
  -encoders)
    echo "Encoders:"
    echo " ------"
    echo " V....D libx265              libx265 H.265 / HEVC (codec hevc)"
    exit 0;;
esac
for last; do :; done
printf 'Input #0, mov,mp4\\nframe=    1\\rframe=    2\\r' >&2
if [ {exit_code} -ne 0 ]; then
  echo "Error while filtering" >&2
  exit {exit_code}
fi
cp "$5" "$last"
exit 0
"""

ALL_FILTERS = ("zscale", "split", "eq", "curves", "blend", "tonemap", "format")


@pytest.fixture
def make_fake_ffmpeg(tmp_path):
    """Write an executable shell script that behaves like a tiny ffmpeg."""
    if os.name != "posix":
        pytest.skip("fake ffmpeg script needs a POSIX shell")

    def make(exit_code=0, filters=ALL_FILTERS, name="ffmpeg"):
        lines = "\n".join(f'    echo " TSC {f:<20s} V->V       {f} filter"' for f in filters)
        path = tmp_path / name
        path.write_text(FAKE_FFMPEG.replace("{filters}", lines).replace("{exit_code}", str(exit_code)))
        path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return str(path)

    return make
