"""
Media engine backends for hdrify.

The engine is the black box that executes compiled commands. It exposes a
tiny virtual file system (named scratch files), an execute call taking an
FFmpeg-style argument list, and a log callback that receives free-text
diagnostic lines one at a time.

FFmpegEngine implements the protocol on top of a local ffmpeg binary:
- Virtual files live in a private temporary directory
- Each execute call spawns one ffmpeg process in that directory
- stderr is forwarded line by line to the log callback

Usage:
    from hdrify.core.engine import FFmpegEngine

    engine = FFmpegEngine()
    await engine.load()
    await engine.write_file("input-video.mp4", data)
    code = await engine.exec(["-i", "input-video.mp4", "out.mp4"])
"""

import asyncio
import logging
import platform
import re
import shutil
import tempfile
from pathlib import Path
from typing import Callable, Protocol, runtime_checkable


logger = logging.getLogger(__name__)

LogCallback = Callable[[str], None]

# Filters referenced by the compiled graph and the encoder it targets
REQUIRED_FILTERS = ("zscale", "split", "eq", "curves", "blend", "tonemap", "format")
REQUIRED_ENCODERS = ("libx265",)


@runtime_checkable
class MediaEngine(Protocol):
    """Protocol for media-processing engines driven by the EngineHandle."""

    def on_log(self, callback: LogCallback | None) -> None:
        """Register the callback that receives engine log lines."""
        ...

    async def load(self) -> None:
        """Initialize the engine runtime."""
        ...

    async def write_file(self, name: str, data: bytes) -> None:
        """Store bytes under a virtual file name."""
        ...

    async def exec(self, args: list[str]) -> int:
        """Execute an argument list and return the exit status."""
        ...

    async def read_file(self, name: str) -> bytes:
        """Return the bytes stored under a virtual file name."""
        ...

    async def delete_file(self, name: str) -> None:
        """Delete a virtual file."""
        ...

    def close(self) -> None:
        """Release everything the engine holds."""
        ...

    def status(self) -> dict:
        """Describe the engine for diagnostics."""
        ...


def parse_capabilities(listing: str) -> set[str]:
    """
    Extract component names from `ffmpeg -filters` / `ffmpeg -encoders`.

    Both listings put a flags column first and the component name second.
    """
    names = set()
    for line in listing.splitlines():
        parts = line.split()
        if len(parts) >= 2:
            names.add(parts[1])
    return names


class LineSplitter:
    """
    Incrementally split raw stderr bytes into log lines.

    ffmpeg terminates progress lines with a bare carriage return, so both
    \\r and \\n end a line. Blank lines are dropped.
    """

    _BREAK = re.compile(rb"\r\n|\r|\n")

    def __init__(self):
        self._pending = b""

    def feed(self, chunk: bytes) -> list[str]:
        """Add a chunk and return the lines it completed."""
        *complete, self._pending = self._BREAK.split(self._pending + chunk)
        return self._decode(complete)

    def flush(self) -> list[str]:
        """Return whatever is left after the stream ended."""
        rest, self._pending = self._pending, b""
        return self._decode([rest])

    @staticmethod
    def _decode(pieces: list[bytes]) -> list[str]:
        lines = []
        for piece in pieces:
            text = piece.decode("utf-8", errors="replace").rstrip()
            if text:
                lines.append(text)
        return lines


class FFmpegEngine:
    """
    Media engine backed by a local ffmpeg executable.

    Attributes:
        ffmpeg_path: Explicit binary path (looked up on PATH if empty)
        scratch_parent: Directory in which the scratch directory is created
        timeout: Seconds allowed for each capability query during load
    """

    def __init__(
        self,
        ffmpeg_path: str = "",
        scratch_parent: str = "",
        timeout: float = 30.0,
    ):
        self.ffmpeg_path = ffmpeg_path
        self.scratch_parent = scratch_parent
        self.timeout = timeout

        self._binary: str | None = None
        self._scratch: tempfile.TemporaryDirectory | None = None
        self._log_callback: LogCallback | None = None
        self._version: str = ""
        self._filters: set[str] = set()
        self._encoders: set[str] = set()

    @classmethod
    def from_settings(cls, settings) -> "FFmpegEngine":
        """Create an engine from a Settings object."""
        return cls(
            ffmpeg_path=settings.ffmpeg_path,
            scratch_parent=settings.scratch_dir,
            timeout=settings.load_timeout,
        )

    @property
    def loaded(self) -> bool:
        return self._binary is not None

    @property
    def scratch_dir(self) -> Path:
        """Directory backing the virtual file system."""
        if self._scratch is None:
            raise RuntimeError("Engine not loaded. Call load() first.")
        return Path(self._scratch.name)

    def on_log(self, callback: LogCallback | None) -> None:
        self._log_callback = callback

    def _emit(self, line: str) -> None:
        if self._log_callback is not None:
            self._log_callback(line)

    def _resolve_binary(self) -> str:
        if self.ffmpeg_path:
            resolved = shutil.which(self.ffmpeg_path)
            if resolved is None:
                raise FileNotFoundError(f"ffmpeg not found: {self.ffmpeg_path}")
            return resolved
        resolved = shutil.which("ffmpeg")
        if resolved is None:
            raise FileNotFoundError("ffmpeg not found on PATH")
        return resolved

    async def _query(self, binary: str, flag: str) -> str:
        """Run `ffmpeg -hide_banner <flag>` and return its stdout."""
        proc = await asyncio.create_subprocess_exec(
            binary, "-hide_banner", flag,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        try:
            stdout, stderr = await asyncio.wait_for(proc.communicate(), self.timeout)
        except asyncio.TimeoutError:
            proc.kill()
            await proc.wait()
            raise RuntimeError(f"ffmpeg {flag} timed out after {self.timeout}s")
        if proc.returncode != 0:
            message = stderr.decode("utf-8", errors="replace").strip()
            raise RuntimeError(f"ffmpeg {flag} failed: {message}")
        return stdout.decode("utf-8", errors="replace")

    async def load(self) -> None:
        """
        Locate ffmpeg, verify its capabilities and create the scratch space.

        Raises:
            FileNotFoundError: If the binary cannot be found
            RuntimeError: If a required filter or encoder is missing
        """
        binary = self._resolve_binary()

        version = await self._query(binary, "-version")
        self._version = version.splitlines()[0] if version else ""
        self._filters = parse_capabilities(await self._query(binary, "-filters"))
        self._encoders = parse_capabilities(await self._query(binary, "-encoders"))

        missing = [f for f in REQUIRED_FILTERS if f not in self._filters]
        missing += [e for e in REQUIRED_ENCODERS if e not in self._encoders]
        if missing:
            raise RuntimeError(
                f"ffmpeg at {binary} is missing required components: {', '.join(missing)}"
            )

        self._scratch = tempfile.TemporaryDirectory(
            prefix="hdrify-", dir=self.scratch_parent or None
        )
        self._binary = binary
        logger.info("Loaded %s (%s)", binary, self._version)

    def _path(self, name: str) -> Path:
        """Map a virtual file name onto the scratch directory."""
        if not name or name in (".", "..") or "/" in name or "\\" in name:
            raise ValueError(f"Invalid virtual file name: {name!r}")
        return self.scratch_dir / name

    async def write_file(self, name: str, data: bytes) -> None:
        path = self._path(name)
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, path.write_bytes, bytes(data))

    async def read_file(self, name: str) -> bytes:
        path = self._path(name)
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, path.read_bytes)

    async def delete_file(self, name: str) -> None:
        self._path(name).unlink()

    async def exec(self, args: list[str]) -> int:
        """
        Run ffmpeg with the given arguments inside the scratch directory.

        Every stderr line is forwarded to the log callback in emission order.

        Returns:
            The ffmpeg exit status
        """
        if self._binary is None:
            raise RuntimeError("Engine not loaded. Call load() first.")

        cmd = [self._binary, "-hide_banner", "-nostdin", "-y", *args]
        logger.debug("Executing: %s", cmd)
        proc = await asyncio.create_subprocess_exec(
            *cmd,
            cwd=str(self.scratch_dir),
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.PIPE,
        )

        splitter = LineSplitter()
        while True:
            chunk = await proc.stderr.read(4096)
            if not chunk:
                break
            for line in splitter.feed(chunk):
                self._emit(line)
        for line in splitter.flush():
            self._emit(line)

        return await proc.wait()

    def close(self) -> None:
        """Remove the scratch directory and forget the binary."""
        if self._scratch is not None:
            self._scratch.cleanup()
            self._scratch = None
        self._binary = None

    def status(self) -> dict:
        """Get current engine status."""
        return {
            "backend": "ffmpeg",
            "platform": platform.system(),
            "binary": self._binary or self.ffmpeg_path or shutil.which("ffmpeg") or "",
            "version": self._version,
            "loaded": self.loaded,
            "missing_filters": [f for f in REQUIRED_FILTERS if f not in self._filters],
            "missing_encoders": [e for e in REQUIRED_ENCODERS if e not in self._encoders],
        }

    def __repr__(self) -> str:
        state = "loaded" if self.loaded else "not loaded"
        return f"FFmpegEngine({state}, binary={self._binary or self.ffmpeg_path or 'ffmpeg'})"
