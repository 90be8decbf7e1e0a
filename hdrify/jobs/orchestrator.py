"""
Conversion job orchestrator.

The orchestrator owns the one active job: the source clip, the bounded log
buffer and the current result artifact. It is the only writer of the job
state, which moves through

    Idle -> EngineLoading -> Ready -> Running -> Completed | Failed

Completed and Failed go back to Ready when a new source is selected. A job
always runs to completion; requests arriving while Running are rejected,
never queued.
"""

import asyncio
import logging
from enum import Enum
from typing import Callable

from hdrify.core.config import Settings
from hdrify.core.errors import (
    ConversionInProgressError,
    ConversionStateError,
    EngineExecError,
    EngineInitError,
)
from hdrify.core.handle import EngineHandle
from hdrify.graph.compiler import EncodeCommand, ToneParameters, compile_command
from hdrify.jobs.artifact import OutputArtifact, SourceFile
from hdrify.jobs.logs import LogBuffer


logger = logging.getLogger(__name__)

INIT_FAILURE_MESSAGE = "Failed to initialize the HDR engine. Refresh and try again."
CONVERSION_FAILURE_MESSAGE = "Conversion failed. Try lowering intensity or using a shorter clip."


class JobState(Enum):
    """Authoritative state of the conversion job."""
    IDLE = "idle"
    ENGINE_LOADING = "engine-loading"
    READY = "ready"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


STATE_LABELS = {
    JobState.IDLE: "Initializing HDR engine…",
    JobState.ENGINE_LOADING: "Loading HDR engine…",
    JobState.READY: "Ready for conversion",
    JobState.RUNNING: "Converting to HDR…",
    JobState.COMPLETED: "HDR conversion completed",
    JobState.FAILED: "Error",
}


class ConversionOrchestrator:
    """
    Sequences one conversion job against a shared EngineHandle.

    Example:
        async with EngineHandle(FFmpegEngine()) as handle:
            async with ConversionOrchestrator(handle) as jobs:
                await jobs.start_session()
                jobs.select_source(data, "clip.mov")
                state = await jobs.start_conversion(ToneParameters(1.25, "hable"))
                if state is JobState.COMPLETED:
                    jobs.result.save("clip_hdr.mp4")
    """

    def __init__(
        self,
        engine: EngineHandle,
        settings: Settings | None = None,
        artifact_factory: Callable[[bytes], OutputArtifact] | None = None,
    ):
        """
        Args:
            engine: Shared engine handle (not owned; closed by the session)
            settings: Scratch names, log capacity and result naming
            artifact_factory: Builds the result artifact from output bytes
        """
        self.engine = engine
        self.settings = settings or Settings()
        self.logs = LogBuffer(self.settings.log_capacity)
        self.error_message: str | None = None
        self.last_error: BaseException | None = None
        self.last_command: EncodeCommand | None = None

        self._state = JobState.IDLE
        self._source: SourceFile | None = None
        self._result: OutputArtifact | None = None
        self._artifact_factory = artifact_factory or self._make_artifact

    @property
    def state(self) -> JobState:
        return self._state

    @property
    def label(self) -> str:
        """Presentation text for the current state."""
        return STATE_LABELS[self._state]

    @property
    def source(self) -> SourceFile | None:
        return self._source

    @property
    def result(self) -> OutputArtifact | None:
        return self._result

    @property
    def running(self) -> bool:
        return self._state is JobState.RUNNING

    def _make_artifact(self, data: bytes) -> OutputArtifact:
        return OutputArtifact(
            data,
            filename=self.settings.result_filename,
            media_type=self.settings.result_media_type,
        )

    def _reject_if_running(self, action: str) -> None:
        if self._state is JobState.RUNNING:
            raise ConversionInProgressError(f"Cannot {action} while a conversion is running")

    def _revoke_result(self) -> None:
        previous, self._result = self._result, None
        if previous is not None:
            previous.revoke()

    def _fail(self, message: str, exc: BaseException) -> None:
        self._state = JobState.FAILED
        self.error_message = message
        self.last_error = exc
        if isinstance(exc, EngineExecError):
            logger.error("%s\n%s", message, exc.diagnostics)
        else:
            logger.error("%s", message, exc_info=exc)

    async def start_session(self) -> JobState:
        """
        Load the engine and move to Ready.

        Safe to call again after an initialization failure; that is the
        retry path. Once the engine is loaded this is a no-op, so a failed
        conversion stays Failed until a new source is selected. Returns the
        resulting state.
        """
        self._reject_if_running("start a session")
        if self._state is JobState.FAILED and self.engine.loaded:
            return self._state
        if self._state not in (JobState.IDLE, JobState.ENGINE_LOADING, JobState.FAILED):
            return self._state

        self._state = JobState.ENGINE_LOADING
        self.error_message = None
        try:
            await self.engine.ensure_loaded()
        except EngineInitError as exc:
            self._fail(INIT_FAILURE_MESSAGE, exc)
            return self._state

        self._state = JobState.READY
        return self._state

    def select_source(self, data: bytes, name: str = "source.mp4") -> SourceFile:
        """
        Make a clip the source of the next job.

        Revokes the previous result. Moves to Ready when the engine is
        loaded; before that the state is left for start_session() to drive.

        Raises:
            ConversionInProgressError: If a conversion is running
        """
        self._reject_if_running("select a new source")
        self._revoke_result()
        self._source = SourceFile(name=name, data=bytes(data))
        self.error_message = None
        if self.engine.loaded:
            self._state = JobState.READY
        logger.info("Selected source %s (%d bytes)", name, len(self._source.data))
        return self._source

    async def start_conversion(self, params: ToneParameters) -> JobState:
        """
        Run one conversion with the given tone parameters.

        Engine failures do not raise: they end in Failed with a short
        message in error_message and full diagnostics in the log. Scratch
        files are deleted on every exit path.

        Returns:
            Completed or Failed

        Raises:
            ConversionInProgressError: If a conversion is already running
            ConversionStateError: If the engine or the source is missing
            InvalidParameterError: If the parameters are out of range
        """
        self._reject_if_running("start a conversion")
        if not self.engine.loaded:
            raise ConversionStateError("The HDR engine is not loaded yet")
        if self._source is None:
            raise ConversionStateError("Select a source clip first")

        command = compile_command(
            params,
            input_name=self.settings.input_name,
            output_name=self.settings.output_name,
        )

        self._state = JobState.RUNNING
        self.error_message = None
        self.last_error = None
        self.last_command = command
        self.logs.reset()
        sink = self.logs.append
        self.engine.subscribe(sink)
        logger.info("Converting %s: %s", self._source.name, command.filter_expression)

        try:
            try:
                data = await self.engine.run(command, self._source.data)
            finally:
                self.engine.unsubscribe(sink)
                await self.engine.cleanup((command.input_name, command.output_name))
            self._revoke_result()
            loop = asyncio.get_running_loop()
            artifact = await loop.run_in_executor(None, self._artifact_factory, data)
        except Exception as exc:
            self._fail(CONVERSION_FAILURE_MESSAGE, exc)
            return self._state
        except BaseException as exc:
            self._fail(CONVERSION_FAILURE_MESSAGE, exc)
            raise

        self._result = artifact
        self._state = JobState.COMPLETED
        logger.info("Conversion finished: %r", artifact)
        return self._state

    def snapshot(self) -> dict:
        """Plain-data view of the job for status displays."""
        return {
            "state": self._state.value,
            "label": self.label,
            "engine": self.engine.state.value,
            "error": self.error_message,
            "logs": self.logs.lines,
            "source": (
                {"name": self._source.name, "size": self._source.size}
                if self._source else None
            ),
            "result": (
                {
                    "filename": self._result.filename,
                    "media_type": self._result.media_type,
                    "size": self._result.size,
                }
                if self._result else None
            ),
        }

    def close(self) -> None:
        """Session end: revoke any live result handle."""
        self._revoke_result()

    async def __aenter__(self) -> "ConversionOrchestrator":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> bool:
        self.close()
        return False

    def __repr__(self) -> str:
        return f"ConversionOrchestrator({self._state.value}, engine={self.engine.state.value})"
