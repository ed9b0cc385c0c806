"""
Frame sources backed by FFmpeg.

FFmpeg works best with file paths, so the uploaded video is written to a
temporary file for the lifetime of the source and removed on close. Each
capture is a separate `ffmpeg -ss <t> -frames:v 1` run that writes one PNG
to stdout; Pillow decodes it.

Captures are strictly sequential: the source remembers a single position,
set by seek() and consumed by capture().
"""

import io
import json
import logging
import math
import os
import subprocess
import tempfile
from pathlib import PurePath
from typing import Optional

from PIL import Image

from ...core.sync.errors import FrameExtractionError
from ...core.sync.frames import FrameSource
from ...core.sync.synchronizer import FrameSourceFactory

logger = logging.getLogger(__name__)

# Seeks this close to the end are pulled back so the decoder still has a
# frame to hand out.
END_GUARD_SECONDS = 0.1


def ffmpeg_available(ffmpeg_path: str = "ffmpeg") -> bool:
    """Return True if the ffmpeg binary can be executed."""
    try:
        result = subprocess.run(
            [ffmpeg_path, "-version"],
            capture_output=True,
            timeout=5,
        )
    except (FileNotFoundError, subprocess.TimeoutExpired):
        return False
    return result.returncode == 0


class FFmpegFrameSource:
    """
    Frame source for one video file, using FFmpeg/FFprobe.

    Use as a context manager; the temporary copy of the video is deleted
    on exit whether extraction succeeded or not.
    """

    def __init__(
        self,
        video_data: bytes,
        filename: str = "",
        ffmpeg_path: str = "ffmpeg",
        ffprobe_path: str = "ffprobe",
        capture_timeout: int = 30,
    ) -> None:
        self._ffmpeg = ffmpeg_path
        self._ffprobe = ffprobe_path
        self._capture_timeout = capture_timeout
        self._position = 0.0

        suffix = PurePath(filename).suffix or ".mp4"
        with tempfile.NamedTemporaryFile(suffix=suffix, delete=False) as tmp:
            tmp.write(video_data)
            self._path: Optional[str] = tmp.name

        try:
            self._duration = self._probe_duration()
        except BaseException:
            self.close()
            raise

    def __enter__(self) -> "FFmpegFrameSource":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    @property
    def duration_seconds(self) -> float:
        return self._duration

    def seek(self, timestamp: float) -> None:
        if self._path is None:
            raise FrameExtractionError("Frame source is closed", timestamp)
        if math.isfinite(self._duration):
            timestamp = min(timestamp, max(0.0, self._duration - END_GUARD_SECONDS))
        self._position = timestamp

    def capture(self) -> Image.Image:
        """Decode the frame at the current position."""
        if self._path is None:
            raise FrameExtractionError("Frame source is closed", self._position)

        # -ss before -i for fast seeking
        cmd = [
            self._ffmpeg,
            "-v", "error",
            "-ss", f"{self._position:.3f}",
            "-i", self._path,
            "-frames:v", "1",
            "-f", "image2pipe",
            "-vcodec", "png",
            "-",
        ]

        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                timeout=self._capture_timeout,
            )
        except subprocess.TimeoutExpired as e:
            raise FrameExtractionError("ffmpeg timed out", self._position, cause=e) from e
        except FileNotFoundError as e:
            raise FrameExtractionError(
                "ffmpeg not found. Install with: apt-get install ffmpeg", self._position, cause=e
            ) from e

        if result.returncode != 0 or not result.stdout:
            stderr = result.stderr.decode(errors="replace").strip()
            raise FrameExtractionError(
                f"ffmpeg produced no frame: {stderr or 'empty output'}", self._position
            )

        image = Image.open(io.BytesIO(result.stdout))
        image.load()
        return image

    def close(self) -> None:
        if self._path is None:
            return
        try:
            os.unlink(self._path)
        except FileNotFoundError:
            pass
        self._path = None

    def _probe_duration(self) -> float:
        """
        Read the container duration with FFprobe.

        Returns NaN when the container doesn't report one; the interval
        planner turns that into an InvalidDurationError.
        """
        cmd = [
            self._ffprobe,
            "-v", "quiet",
            "-print_format", "json",
            "-show_format",
            "-show_streams",
            self._path,
        ]

        try:
            result = subprocess.run(cmd, capture_output=True, text=True, timeout=30)
        except subprocess.TimeoutExpired as e:
            raise FrameExtractionError("ffprobe timed out", cause=e) from e
        except FileNotFoundError as e:
            raise FrameExtractionError(
                "ffprobe not found. Install with: apt-get install ffmpeg", cause=e
            ) from e

        if result.returncode != 0:
            raise FrameExtractionError(f"Could not load video metadata: {result.stderr.strip()}")

        try:
            info = json.loads(result.stdout or "{}")
        except json.JSONDecodeError as e:
            raise FrameExtractionError("Could not parse ffprobe output", cause=e) from e

        # duration from format, falling back to the first video stream
        duration = info.get("format", {}).get("duration")
        if duration is None:
            for stream in info.get("streams", []):
                if stream.get("codec_type") == "video" and stream.get("duration"):
                    duration = stream["duration"]
                    break

        try:
            return float(duration)
        except (TypeError, ValueError):
            return math.nan


class MockFrameSource:
    """
    Frame source for local development without FFmpeg.

    Pretends every upload is a video of a fixed duration and returns a
    solid-colour frame whose shade changes with the position, so runs
    are deterministic.
    """

    def __init__(
        self,
        duration_seconds: float = 120.0,
        size: tuple[int, int] = (1280, 720),
    ) -> None:
        self._duration = duration_seconds
        self._size = size
        self._position = 0.0
        self.closed = False
        self.seeks: list[float] = []

    def __enter__(self) -> "MockFrameSource":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    @property
    def duration_seconds(self) -> float:
        return self._duration

    def seek(self, timestamp: float) -> None:
        self._position = timestamp
        self.seeks.append(timestamp)

    def capture(self) -> Image.Image:
        shade = int(self._position * 7) % 256
        return Image.new("RGB", self._size, (shade, 128, 255 - shade))

    def close(self) -> None:
        self.closed = True


def create_frame_source_factory(
    mock_mode: bool = False,
    ffmpeg_path: str = "ffmpeg",
    ffprobe_path: str = "ffprobe",
) -> FrameSourceFactory:
    """
    Factory function for frame sources.

    Args:
        mock_mode: If True, return mock sources (no FFmpeg required)

    Returns:
        Callable taking (video bytes, filename) and returning a FrameSource
    """
    if mock_mode:
        logger.info("Using mock frame sources")
        return lambda video_data, filename: MockFrameSource()

    def open_source(video_data: bytes, filename: str) -> FrameSource:
        return FFmpegFrameSource(
            video_data,
            filename,
            ffmpeg_path=ffmpeg_path,
            ffprobe_path=ffprobe_path,
        )

    return open_source
