"""
Engine handle: lifecycle, log fan-out and command execution.

One EngineHandle exists per session. It is created once, passed to the
orchestrator, and moves through

    Uninitialized -> Loading -> Loaded

Once Loaded it never reverts and is never reloaded. A failed load returns
the handle to Uninitialized so a later ensure_loaded() can retry.
"""

import asyncio
import logging
from collections import deque
from enum import Enum
from typing import Iterable

from hdrify.core.engine import LogCallback, MediaEngine
from hdrify.core.errors import EngineExecError, EngineInitError, EngineNotLoadedError


logger = logging.getLogger(__name__)


class EngineState(Enum):
    """Lifecycle of the shared engine."""
    UNINITIALIZED = "uninitialized"
    LOADING = "loading"
    LOADED = "loaded"


class EngineHandle:
    """
    Process-wide wrapper around a MediaEngine.

    Loading is single-flight: callers arriving while a load is in progress
    await the same load instead of starting another one. Log lines from the
    engine are fanned out to the currently subscribed sinks.

    Example:
        async with EngineHandle(FFmpegEngine()) as handle:
            await handle.ensure_loaded()
            handle.subscribe(buffer.append)
            data = await handle.run(command, source_bytes)
    """

    def __init__(self, engine: MediaEngine, tail_size: int = 25):
        """
        Args:
            engine: The engine backend to drive
            tail_size: Number of recent log lines kept for error diagnostics
        """
        self.engine = engine
        self._state = EngineState.UNINITIALIZED
        self._load_task: asyncio.Task | None = None
        self._sinks: list[LogCallback] = []
        self._tail: deque[str] = deque(maxlen=tail_size)

    @property
    def state(self) -> EngineState:
        return self._state

    @property
    def loaded(self) -> bool:
        return self._state is EngineState.LOADED

    @property
    def log_tail(self) -> list[str]:
        """Most recent engine log lines, oldest first."""
        return list(self._tail)

    async def ensure_loaded(self) -> None:
        """
        Load the engine if needed.

        Returns immediately when already loaded. Concurrent callers share
        the in-flight load and all observe its outcome.

        Raises:
            EngineInitError: If the engine failed to initialize
        """
        if self._state is EngineState.LOADED:
            return
        if self._load_task is None:
            self._state = EngineState.LOADING
            self._load_task = asyncio.ensure_future(self._load())
        await asyncio.shield(self._load_task)

    async def _load(self) -> None:
        logger.info("Loading media engine")
        try:
            self.engine.on_log(self._dispatch)
            await self.engine.load()
        except Exception as exc:
            self._state = EngineState.UNINITIALIZED
            self.engine.on_log(None)
            logger.error("Media engine failed to initialize: %s", exc)
            raise EngineInitError(f"Engine failed to initialize: {exc}") from exc
        else:
            self._state = EngineState.LOADED
            logger.info("Media engine ready")
        finally:
            self._load_task = None

    def subscribe(self, sink: LogCallback) -> None:
        """Attach a line sink. Sinks receive lines in emission order."""
        if sink not in self._sinks:
            self._sinks.append(sink)

    def unsubscribe(self, sink: LogCallback) -> None:
        """Detach a line sink. Unknown sinks are ignored."""
        if sink in self._sinks:
            self._sinks.remove(sink)

    def _dispatch(self, line: str) -> None:
        """Engine log callback: keep a diagnostic tail and fan out."""
        self._tail.append(line)
        logger.debug("engine: %s", line)
        for sink in list(self._sinks):
            try:
                sink(line)
            except Exception:
                logger.exception("Log sink %r failed", sink)

    async def run(self, command, source: bytes) -> bytes:
        """
        Execute a compiled command against the source bytes.

        Args:
            command: EncodeCommand produced by the compiler
            source: Bytes of the source clip

        Returns:
            Bytes of the produced output file

        Raises:
            EngineNotLoadedError: If called before the engine is loaded
            EngineExecError: If staging, execution or retrieval failed
        """
        if self._state is not EngineState.LOADED:
            raise EngineNotLoadedError("Engine not loaded. Call ensure_loaded() first.")

        self._tail.clear()
        try:
            await self.engine.write_file(command.input_name, source)
            returncode = await self.engine.exec(command.to_args())
        except Exception as exc:
            raise EngineExecError(f"Engine execution failed: {exc}", self.log_tail) from exc

        if returncode != 0:
            raise EngineExecError(
                f"Engine exited with status {returncode}", self.log_tail, returncode
            )

        try:
            data = await self.engine.read_file(command.output_name)
        except Exception as exc:
            raise EngineExecError(
                f"Engine output {command.output_name} could not be read: {exc}",
                self.log_tail,
                returncode,
            ) from exc

        if not data:
            raise EngineExecError(
                f"Engine output {command.output_name} is empty", self.log_tail, returncode
            )
        return bytes(data)

    async def cleanup(self, names: Iterable[str]) -> None:
        """
        Best-effort deletion of scratch files.

        Each name is attempted once. Failures, including names that were
        never created, are logged at debug level and otherwise ignored.
        """
        if self._state is not EngineState.LOADED:
            return
        for name in dict.fromkeys(names):
            try:
                await self.engine.delete_file(name)
            except Exception as exc:
                logger.debug("Could not delete scratch file %s: %s", name, exc)

    def status(self) -> dict:
        """Get engine lifecycle state plus backend details."""
        status = {"state": self._state.value, "subscribers": len(self._sinks)}
        status.update(self.engine.status())
        return status

    def close(self) -> None:
        """Session end: detach sinks and release the engine."""
        self._sinks.clear()
        self.engine.on_log(None)
        self.engine.close()

    async def __aenter__(self) -> "EngineHandle":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> bool:
        self.close()
        return False

    def __repr__(self) -> str:
        return f"EngineHandle({self._state.value}, engine={self.engine!r})"
