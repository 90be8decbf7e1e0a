"""
Source clip inspection with OpenCV.

Used by the CLI to describe a clip before converting it and by the web
surface to render a preview frame of the selected source.
"""

import os
import tempfile
from dataclasses import dataclass
from pathlib import Path

import cv2


@dataclass
class VideoProperties:
    """Properties of a video file."""
    width: int
    height: int
    fps: float
    frame_count: int

    @classmethod
    def from_capture(cls, cap: cv2.VideoCapture) -> "VideoProperties":
        """Create VideoProperties from an OpenCV VideoCapture."""
        return cls(
            width=int(cap.get(cv2.CAP_PROP_FRAME_WIDTH)),
            height=int(cap.get(cv2.CAP_PROP_FRAME_HEIGHT)),
            fps=cap.get(cv2.CAP_PROP_FPS),
            frame_count=int(cap.get(cv2.CAP_PROP_FRAME_COUNT)),
        )

    def to_dict(self) -> dict:
        return {
            "width": self.width,
            "height": self.height,
            "fps": self.fps,
            "frame_count": self.frame_count,
        }

    @property
    def is_portrait(self) -> bool:
        """Check if video is in portrait orientation."""
        return self.height > self.width

    @property
    def duration(self) -> float:
        """Duration in seconds (0 if the frame rate is unknown)."""
        return self.frame_count / self.fps if self.fps > 0 else 0.0

    def __str__(self) -> str:
        return f"{self.width}x{self.height} @ {self.fps:.2f} fps, {self.frame_count} frames"


def get_video_properties(path: str | Path) -> VideoProperties:
    """
    Get properties of a video file.

    Raises:
        FileNotFoundError: If the file doesn't exist
        RuntimeError: If OpenCV cannot decode the file
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Video file not found: {path}")
    cap = cv2.VideoCapture(str(path))
    if not cap.isOpened():
        raise RuntimeError(f"Failed to open video: {path}")
    try:
        return VideoProperties.from_capture(cap)
    finally:
        cap.release()


def read_preview_frame(
    path: str | Path,
    frame: int = 1,
    max_width: int = 1280,
    quality: int = 85,
) -> bytes:
    """
    Decode one frame (1-indexed) and return it as JPEG bytes.

    Frames wider than max_width are scaled down keeping the aspect ratio.

    Raises:
        FileNotFoundError: If the file doesn't exist
        RuntimeError: If the frame cannot be decoded or encoded
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Video file not found: {path}")

    cap = cv2.VideoCapture(str(path))
    if not cap.isOpened():
        raise RuntimeError(f"Failed to open video: {path}")
    try:
        cap.set(cv2.CAP_PROP_POS_FRAMES, frame - 1)
        ret, img = cap.read()
    finally:
        cap.release()
    if not ret:
        raise RuntimeError(f"Cannot read frame {frame} of {path}")

    height, width = img.shape[:2]
    if width > max_width:
        scale = max_width / width
        img = cv2.resize(img, (max_width, int(height * scale)))

    ok, jpeg = cv2.imencode(".jpg", img, [cv2.IMWRITE_JPEG_QUALITY, quality])
    if not ok:
        raise RuntimeError(f"Cannot encode frame {frame} of {path}")
    return jpeg.tobytes()


def preview_from_bytes(data: bytes, name: str = "source.mp4", **kwargs) -> bytes:
    """
    Like read_preview_frame() for an in-memory clip.

    OpenCV only decodes from files, so the bytes are spilled to a temporary
    file that is removed before returning.
    """
    suffix = Path(name).suffix or ".mp4"
    fd, tmp = tempfile.mkstemp(prefix="hdrify-preview-", suffix=suffix)
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
        return read_preview_frame(tmp, **kwargs)
    finally:
        os.unlink(tmp)
