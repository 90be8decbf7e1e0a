"""
Owned source and result objects of a conversion job.

An OutputArtifact holds the converted bytes and exposes them through a
temporary file, its handle. The handle stays valid until revoke() is called;
the orchestrator revokes the previous artifact before exposing a new one and
revokes the live one at session end.
"""

import logging
import os
import shutil
import tempfile
from dataclasses import dataclass
from pathlib import Path


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SourceFile:
    """A user-supplied clip, held in memory."""
    name: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)

    @classmethod
    def from_path(cls, path: str | Path) -> "SourceFile":
        """Read a clip from disk."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Video file not found: {path}")
        return cls(name=path.name, data=path.read_bytes())


class OutputArtifact:
    """
    Downloadable result of one successful conversion.

    Attributes:
        filename: Name offered for download
        media_type: MIME type of the content
    """

    def __init__(
        self,
        data: bytes,
        filename: str = "hdr-video.mp4",
        media_type: str = "video/mp4",
        directory: str | Path | None = None,
    ):
        """
        Materialize the bytes as a temporary file.

        Args:
            data: Converted video bytes
            filename: Name offered for download
            media_type: MIME type of the content
            directory: Where to create the handle (system temp if None)
        """
        self.filename = filename
        self.media_type = media_type
        self._size = len(data)

        suffix = Path(filename).suffix
        fd, path = tempfile.mkstemp(prefix="hdrify-result-", suffix=suffix, dir=directory)
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
        except OSError:
            os.unlink(path)
            raise
        self._path: Path | None = Path(path)

    @property
    def revoked(self) -> bool:
        return self._path is None

    @property
    def size(self) -> int:
        return self._size

    @property
    def path(self) -> Path:
        """Filesystem handle of the content."""
        if self._path is None:
            raise RuntimeError(f"Artifact {self.filename} has been revoked")
        return self._path

    def read_bytes(self) -> bytes:
        return self.path.read_bytes()

    def save(self, destination: str | Path) -> Path:
        """Copy the content to a destination path."""
        destination = Path(destination)
        shutil.copyfile(self.path, destination)
        return destination

    def revoke(self) -> None:
        """Release the handle. Calling it again is a no-op."""
        if self._path is None:
            return
        path, self._path = self._path, None
        try:
            path.unlink()
        except FileNotFoundError:
            pass
        logger.debug("Revoked artifact handle %s", path)

    def __enter__(self) -> "OutputArtifact":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        self.revoke()
        return False

    def __repr__(self) -> str:
        state = "revoked" if self.revoked else str(self._path)
        return f"OutputArtifact({self.filename}, {self._size} bytes, {state})"
