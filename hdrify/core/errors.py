"""
Exception hierarchy for hdrify.

Every error raised on purpose by the package derives from HdrifyError so
callers can catch the whole family at a boundary.
"""


class HdrifyError(Exception):
    """Base class for all hdrify errors."""


class InvalidParameterError(HdrifyError, ValueError):
    """Tone parameters outside their documented ranges."""


class GraphError(HdrifyError):
    """A filter graph violates the pad ordering rules."""


class EngineError(HdrifyError):
    """Base class for failures at the media engine boundary."""


class EngineInitError(EngineError):
    """The engine runtime failed to initialize."""


class EngineNotLoadedError(EngineError):
    """An engine operation was requested before the engine was loaded."""


class EngineExecError(EngineError):
    """
    A compiled command failed while the engine executed it.

    Attributes:
        log_tail: The most recent engine log lines at the time of failure
        returncode: Engine exit status, if the engine reported one
    """

    def __init__(
        self,
        message: str,
        log_tail: list[str] | None = None,
        returncode: int | None = None,
    ):
        super().__init__(message)
        self.log_tail = list(log_tail or [])
        self.returncode = returncode

    @property
    def diagnostics(self) -> str:
        """Message followed by the log tail, one line each."""
        return "\n".join([str(self), *self.log_tail])


class ConversionError(HdrifyError):
    """Base class for orchestrator request rejections."""


class ConversionInProgressError(ConversionError):
    """A request arrived while a conversion job is running."""


class ConversionStateError(ConversionError):
    """A conversion was requested before the engine or a source was ready."""
